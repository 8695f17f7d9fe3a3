"""Two-variant Result type used by every fallible core operation."""

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

from .errors import EnrichError
from .exceptions import UnwrapError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome holding a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def bind(self, func: Callable[[T], "Result[U]"]) -> "Result[U]":
        """Apply a Result-returning function to the value."""
        return func(self.value)

    def map(self, func: Callable[[T], U]) -> "Result[U]":
        """Apply a plain function to the value and wrap the outcome in Ok."""
        return Ok(func(self.value))

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome holding an EnrichError."""

    error: EnrichError

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def bind(self, func: Callable) -> "Err":
        # Short-circuit: the existing error propagates unchanged
        return self

    def map(self, func: Callable) -> "Err":
        return self

    def unwrap(self):
        raise UnwrapError(f"Called unwrap on an Err result: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Ok[T], Err]
