"""Helpers that build where clauses for generated query code."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from .query import Query


@runtime_checkable
class Nullable(Protocol):
    """A value that can report whether it holds SQL NULL."""

    def is_zero(self) -> bool:
        """Return True if the value is NULL."""


class Operator(str, Enum):
    """Comparison operators usable with :func:`where`."""

    EQ = "="
    NEQ = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="


@dataclass
class WhereQueryMod:
    """A query mod that appends one where clause with its arguments."""

    clause: str
    args: list[Any] = field(default_factory=list)

    def apply(self, query: Query) -> None:
        query.append_where(self.clause, *self.args)


def _is_null(value: Any) -> bool:
    if value is None:
        return True
    if not isinstance(value, type) and isinstance(value, Nullable):
        return bool(value.is_zero())
    return False


def where_null_eq(name: str, negated: bool, value: Any) -> WhereQueryMod:
    """Compare ``name`` with a value that may be NULL.

    A NULL value gives ``name is null`` (or ``is not null`` when negated);
    anything else gives ``name = ?`` (or ``!=``) with the value as argument.
    """
    if _is_null(value):
        not_ = "not " if negated else ""
        return WhereQueryMod(f"{name} is {not_}null")

    op = Operator.NEQ if negated else Operator.EQ
    return WhereQueryMod(f"{name} {op.value} ?", [value])


def where_is_null(name: str) -> WhereQueryMod:
    """Return a ``name is null`` clause."""
    return WhereQueryMod(f"{name} is null")


def where_is_not_null(name: str) -> WhereQueryMod:
    """Return a ``name is not null`` clause."""
    return WhereQueryMod(f"{name} is not null")


def where(name: str, operator: Operator | str, value: Any) -> WhereQueryMod:
    """Compare ``name`` with ``value`` using ``operator``.

    Raises ValueError if ``operator`` is not one of :class:`Operator`.
    """
    op = Operator(operator)
    return WhereQueryMod(f"{name} {op.value} ?", [value])