"""Result container returned at every external-call boundary."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an external call: a value on success, an error message otherwise.

    Attributes:
        ok: Whether the call succeeded
        value: Payload of a successful call
        error: Human-readable failure description
        exception: Original exception, when the failure came from one
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    exception: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def from_exception(cls, exception: BaseException) -> "Result[T]":
        return cls(ok=False, error=str(exception) or type(exception).__name__, exception=exception)
