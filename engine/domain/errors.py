"""Exception taxonomy for the engine."""

from typing import Any


class EngineError(Exception):
    """Base class for errors signalled by the engine."""

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class InvalidOperationError(EngineError):
    """A precondition of the requested operation does not hold.

    Raised (or returned inside a Result) for caller bugs such as driving a
    session timer before an exercise has been selected.
    """
