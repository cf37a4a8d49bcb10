"""
Result values for operations whose failures are part of normal control flow.

Services return ``Ok(value)`` or ``Err(code)`` instead of raising, so callers
can surface the error message directly and pattern-match on the outcome::

    match await issuer.issue(phone):
        case Ok():
            ...
        case Err(code=AuthErrorCode.INVALID_PHONE_FORMAT):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar, Union

from errors import AuthErrorCode, auth_error_message

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T = None  # type: ignore[assignment]

    @property
    def success(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None


@dataclass(frozen=True)
class Err:
    code: AuthErrorCode
    message: str = field(default="")

    def __post_init__(self) -> None:
        if not self.message:
            object.__setattr__(self, "message", auth_error_message(self.code))

    @property
    def success(self) -> bool:
        return False

    @property
    def error(self) -> AuthErrorCode:
        return self.code


Result = Union[Ok[T], Err]