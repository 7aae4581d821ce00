"""
Outcome type returned by slot store transactions.

An Outcome carries either a success payload or a typed BookingSystemError,
so dialogue handlers branch on the error kind instead of catching
exceptions raised across component boundaries.
"""
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .exceptions import BookingSystemError, ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of a slot store operation.

    Attributes:
        value: Success payload (None on failure)
        error: Typed error (None on success)

    Examples:
        Outcome.success(ReservationResult(...))
        Outcome.failure(SlotUnavailableError(42, status="booked"))
    """
    value: Optional[T] = None
    error: Optional[BookingSystemError] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BookingSystemError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        """Error kind, or None on success."""
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """Return the payload, raising the carried error on failure."""
        if self.error is not None:
            raise self.error
        return self.value
