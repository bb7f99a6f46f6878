"""Ok/Err result values.

Git commands, HTTP requests and config loading report failure by returning
``Err`` rather than raising, so the engine can decide per repository whether
a failure ends the run or only that repository's pass.

    match repo.fetch("origin"):
        case Ok(_):
            ...
        case Err(error):
            p.fail(error.message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

__all__ = ["Err", "Ok", "Result"]

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[..., object]) -> Ok[T]:
        return self

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    error: E

    def map(self, f: Callable[..., object]) -> Err[E]:
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        return Err(f(self.error))

    def unwrap_or(self, default: T) -> T:
        return default


Result = Union[Ok[T], Err[E]]
