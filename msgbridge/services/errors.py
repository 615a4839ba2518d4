from __future__ import annotations

from typing import Any


class ApiError(Exception):
    """Base of the closed set of failures reported across the API boundary.

    Only the subclasses below are ever raised or carried in an ``Err``; code that
    renders errors matches on them exhaustively.
    """

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self._key() == other._key()  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self), self._key()))

    def _key(self) -> tuple[Any, ...]:
        return self.args


class DecodeFailure(ApiError):
    def __init__(self, detail: str = "payload could not be decoded") -> None:
        super().__init__(detail)
        self.detail = detail


class UnexpectedStatus(ApiError):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"unexpected response status {status_code}")
        self.status_code = status_code

    def _key(self) -> tuple[Any, ...]:
        return (self.status_code,)


class InvalidTimestamp(ApiError):
    def __init__(self, raw: Any) -> None:
        super().__init__(f"invalid timestamp {raw!r}")
        self.raw = raw

    def _key(self) -> tuple[Any, ...]:
        return (repr(self.raw),)


class MissingCredential(ApiError):
    def __init__(self, header: str) -> None:
        super().__init__(f"missing {header} header")
        self.header = header


class InvalidCredential(ApiError):
    def __init__(self, reason: str = "credential mismatch") -> None:
        super().__init__(reason)
        self.reason = reason


class Unexpected(ApiError):
    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"unexpected error: {cause!r}")
        self.cause = cause
        self.__cause__ = cause

    def _key(self) -> tuple[Any, ...]:
        return (self.cause,)


API_ERRORS: tuple[type[ApiError], ...] = (
    DecodeFailure,
    UnexpectedStatus,
    InvalidTimestamp,
    MissingCredential,
    InvalidCredential,
    Unexpected,
)


def normalize(exc: BaseException) -> ApiError:
    if isinstance(exc, ApiError):
        return exc
    return Unexpected(exc)
