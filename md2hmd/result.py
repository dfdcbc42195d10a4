"""
Synchronize Markdown files with HackMD notes.

Copyright 2022-2026, Levente Hunyadi

:see: https://github.com/hunyadi/md2conf
"""

import functools
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, NoReturn, ParamSpec, TypeAlias, TypeVar, Union

from .environment import ErrorKind, HackMDError

P = ParamSpec("P")
T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """
    Outcome of an operation that completed successfully.

    :param value: Value produced by the operation.
    """

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """
    Outcome of an operation that failed.

    :param error: Describes what went wrong.
    """

    error: HackMDError

    @property
    def ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    def unwrap(self) -> NoReturn:
        "Re-raises the error such that the caller can propagate it to its own caller."

        raise self.error


Result: TypeAlias = Union[Ok[T], Err]


def as_result(func: Callable[P, T]) -> Callable[P, Result[T]]:
    """
    Turns a function that raises `HackMDError` on failure into a function that returns `Ok` or `Err`.

    Exceptions other than `HackMDError` are not caught.
    """

    @functools.wraps(func)
    def _wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            return Ok(func(*args, **kwargs))
        except HackMDError as e:
            return Err(e)

    return _wrapper
