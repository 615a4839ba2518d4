from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterable, NoReturn, TypeVar, Union

from msgbridge.services.errors import ApiError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: ApiError

    def is_ok(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        raise self.error


Result = Union[Ok[T], Err]


def collect(results: Iterable[Result[T]]) -> Result[list[T]]:
    """Turn a sequence of results into one, stopping at the first ``Err``."""
    values: list[T] = []
    for result in results:
        if isinstance(result, Err):
            return result
        values.append(result.value)
    return Ok(values)
