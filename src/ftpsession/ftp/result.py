"""Operation results for ftpsession.

Every session operation returns either ``Ok`` wrapping its value or
``Err`` wrapping the ``FTPError`` that describes the failure. ``Ok`` is
always truthy, so a successful ``Ok(0)`` can never be mistaken for a
failure, and ``Err`` is always falsy.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from ftpsession.ftp.exceptions import FTPError


T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the operation's value."""
    value: T

    def __bool__(self) -> bool:
        return True

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    @property
    def error(self) -> None:
        return None

    def unwrap(self) -> T:
        """Return the carried value."""
        return self.value

    def unwrap_or(self, default: Any) -> T:
        return self.value

    def and_then(self, func: Callable[[T], "Result"]) -> "Result":
        """
        Chain another operation onto this result.

        Args:
            func: Called with the carried value, must return a Result

        Returns:
            Whatever ``func`` returns
        """
        return func(self.value)


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying the error that caused it."""
    error: FTPError

    def __bool__(self) -> bool:
        return False

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    @property
    def kind(self) -> type:
        """Class of the carried error, e.g. FTPPathError."""
        return type(self.error)

    @property
    def message(self) -> str:
        """Human-readable error message."""
        return str(self.error)

    def unwrap(self):
        """Raise the carried error."""
        raise self.error

    def unwrap_or(self, default: Any) -> Any:
        return default

    def and_then(self, func: Callable[[Any], "Result"]) -> "Err":
        # First failure wins
        return self


Result = Union[Ok, Err]
