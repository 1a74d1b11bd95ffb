from abc import ABC


class OrderingError(ABC, Exception):
    """Base class for ordering errors.

    All errors raised by the allocator, the reorder engine and the
    collaborators inherit from OrderingError so callers can catch the
    whole family in one place.
    """


class NotFoundError(OrderingError):
    """Raised when a record is not found in its ordered collection."""

    def __init__(self, message: str = "Record not found") -> None:
        super().__init__(message)


class ValidationError(OrderingError):
    """Raised when caller input fails validation."""


class QueryError(OrderingError):
    """Raised when the collaborator cannot execute a range fetch."""

    def __init__(self, message: str = "Range query failed") -> None:
        super().__init__(message)


class CommitError(OrderingError):
    """Raised when the collaborator cannot persist a batch of position writes.

    The collaborator guarantees that no write from the failed batch is visible.
    """

    def __init__(self, message: str = "Position commit failed") -> None:
        super().__init__(message)


class InvalidTargetError(OrderingError):
    """Raised when a move targets a position outside the collection."""
