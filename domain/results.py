# domain/results.py - Outcome of a repository operation
#
# Expected errors (validation, invalid range, unknown id) come back as values
# so callers can show them inline without aborting the session.

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from domain.errors import CalibrationError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    value: the created/updated entity (or removal flag for deletes).
    error: the expected error that stopped the operation, if any.
    persisted: False when the write-through to storage failed (or was not attempted
    because the operation changed nothing or failed).
    """

    value: Optional[T] = None
    error: Optional[CalibrationError] = None
    persisted: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> str:
        return str(self.error) if self.error is not None else ""

    @classmethod
    def failure(cls, error: CalibrationError) -> "Result[Any]":
        return cls(error=error)
