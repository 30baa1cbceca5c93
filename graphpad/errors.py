from __future__ import annotations


OVERLAP_MESSAGE = "A point may NOT be plotted more than once."
VERTICAL_LINE_MESSAGE = (
    "A point has already been plotted on this X axis.\n"
    "A function can only have one output, y, for each unique input, x."
)


class GraphpadError(Exception):
    """Base class for graphpad errors."""


class ConstraintViolation(GraphpadError):
    """A mutation broke a plotting rule and was rolled back."""

    message = ""

    def __init__(self, point_id: int | None = None, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.point_id = point_id


class OverlapError(ConstraintViolation):
    message = OVERLAP_MESSAGE


class VerticalLineError(ConstraintViolation):
    message = VERTICAL_LINE_MESSAGE


class SessionFormatError(GraphpadError, ValueError):
    """Raised when a serialized session string cannot be parsed."""
