"""
Success/failure values returned by pipeline stages.

Stage functions never raise for user-input problems. They return ``Ok``
with the produced value or ``Err`` carrying a :class:`SkillSupplyError`
subclass, so a single caller can report which stage failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """A successful stage result."""

    value: T

    @property
    def ok(self) -> Literal[True]:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """A failed stage result carrying the error."""

    error: E

    @property
    def ok(self) -> Literal[False]:
        return False

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err[E]]
