"""Query mods: small objects that each change a query in one way."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from .qmhelper import WhereQueryMod
from .query import Query


@runtime_checkable
class QueryMod(Protocol):
    """Anything that modifies a query."""

    def apply(self, query: Query) -> None:
        """Modify ``query`` in place."""


@dataclass(frozen=True)
class _FuncMod:
    func: Callable[[Query], None]

    def apply(self, query: Query) -> None:
        self.func(query)


class QueryMods(list):
    """A list of query mods that is itself applicable to a query."""

    def apply(self, query: Query) -> None:
        apply(query, *self)


def apply(query: Query, *mods: QueryMod) -> None:
    """Apply each mod to ``query`` in order."""
    for mod in mods:
        mod.apply(query)


def sql(sql: str, *args: Any) -> QueryMod:
    """Replace the query with a plain SQL statement."""
    return _FuncMod(lambda q: q.set_sql(sql, *args))


def load(relationship: str, *mods: QueryMod) -> QueryMod:
    """Eager load ``relationship`` (e.g. ``"Videos.Tags"``).

    Any mods given apply to the query for the last relationship in the path.
    """

    def _apply(q: Query) -> None:
        q.append_load(relationship)
        if mods:
            q.set_load_mods(relationship, QueryMods(mods))

    return _FuncMod(_apply)


def inner_join(clause: str, *args: Any) -> QueryMod:
    """Inner join on another table."""
    return _FuncMod(lambda q: q.append_inner_join(clause, *args))


def left_outer_join(clause: str, *args: Any) -> QueryMod:
    """Left outer join on another table."""
    return _FuncMod(lambda q: q.append_left_outer_join(clause, *args))


def right_outer_join(clause: str, *args: Any) -> QueryMod:
    """Right outer join on another table."""
    return _FuncMod(lambda q: q.append_right_outer_join(clause, *args))


def full_outer_join(clause: str, *args: Any) -> QueryMod:
    """Full outer join on another table."""
    return _FuncMod(lambda q: q.append_full_outer_join(clause, *args))


def distinct(clause: str) -> QueryMod:
    """Select distinct rows on ``clause``."""

    def _apply(q: Query) -> None:
        q.distinct = clause

    return _FuncMod(_apply)


def with_(clause: str, *args: Any) -> QueryMod:
    """Add a common table expression."""
    return _FuncMod(lambda q: q.append_with(clause, *args))


def select(*columns: str) -> QueryMod:
    """Select specific columns instead of all of them."""
    return _FuncMod(lambda q: q.append_select(*columns))


def where(clause: str, *args: Any) -> QueryMod:
    """Add a where clause; several are joined with AND."""
    return WhereQueryMod(clause, list(args))


def and_(clause: str, *args: Any) -> QueryMod:
    """Add a where clause joined with AND; the same as :func:`where`."""
    return _FuncMod(lambda q: q.append_where(clause, *args))


def or_(clause: str, *args: Any) -> QueryMod:
    """Add a where clause joined with OR."""

    def _apply(q: Query) -> None:
        q.append_where(clause, *args)
        q.set_last_where_as_or()

    return _FuncMod(_apply)


def or2(mod: QueryMod) -> QueryMod:
    """Apply ``mod`` and join its last where element with OR."""

    def _apply(q: Query) -> None:
        mod.apply(q)
        q.set_last_where_as_or()

    return _FuncMod(_apply)


def where_in(clause: str, *args: Any) -> QueryMod:
    """Add an ``x IN (set)`` clause, e.g. ``"column in ?"``."""
    return _FuncMod(lambda q: q.append_in(clause, *args))


def and_in(clause: str, *args: Any) -> QueryMod:
    """Add an IN clause joined with AND; the same as :func:`where_in`."""
    return _FuncMod(lambda q: q.append_in(clause, *args))


def or_in(clause: str, *args: Any) -> QueryMod:
    """Add an IN clause joined with OR."""

    def _apply(q: Query) -> None:
        q.append_in(clause, *args)
        q.set_last_where_as_or()

    return _FuncMod(_apply)


def where_not_in(clause: str, *args: Any) -> QueryMod:
    """Add an ``x NOT IN (set)`` clause, e.g. ``"column not in ?"``."""
    return _FuncMod(lambda q: q.append_not_in(clause, *args))


def and_not_in(clause: str, *args: Any) -> QueryMod:
    """Add a NOT IN clause joined with AND."""
    return _FuncMod(lambda q: q.append_not_in(clause, *args))


def or_not_in(clause: str, *args: Any) -> QueryMod:
    """Add a NOT IN clause joined with OR."""

    def _apply(q: Query) -> None:
        q.append_not_in(clause, *args)
        q.set_last_where_as_or()

    return _FuncMod(_apply)


def expr(*where_mods: QueryMod) -> QueryMod:
    """Group where mods in parentheses.

    Once used, the where expression gets no automatic parentheses, so only
    where mods belong inside.
    """

    def _apply(q: Query) -> None:
        q.append_where_left_paren()
        apply(q, *where_mods)
        q.append_where_right_paren()

    return _FuncMod(_apply)


def group_by(clause: str) -> QueryMod:
    """Add a group by clause."""
    return _FuncMod(lambda q: q.append_group_by(clause))


def order_by(clause: str) -> QueryMod:
    """Add an order by clause."""
    return _FuncMod(lambda q: q.append_order_by(clause))


def having(clause: str, *args: Any) -> QueryMod:
    """Add a having clause."""
    return _FuncMod(lambda q: q.append_having(clause, *args))


def from_(table: str) -> QueryMod:
    """Add a table to select from."""
    return _FuncMod(lambda q: q.append_from(table))


def limit(count: int) -> QueryMod:
    """Limit the number of rows returned."""

    def _apply(q: Query) -> None:
        q.limit = count

    return _FuncMod(_apply)


def offset(count: int) -> QueryMod:
    """Skip ``count`` rows of the result."""

    def _apply(q: Query) -> None:
        q.offset = count

    return _FuncMod(_apply)


def for_(clause: str) -> QueryMod:
    """Add a locking clause such as ``UPDATE`` at the end of the statement."""

    def _apply(q: Query) -> None:
        q.for_lock = clause

    return _FuncMod(_apply)


def comment(text: str) -> QueryMod:
    """Put a comment at the start of the query."""

    def _apply(q: Query) -> None:
        q.comment = text

    return _FuncMod(_apply)


def rels(*names: str) -> str:
    """Join relationship names into a path for :func:`load`."""
    return ".".join(names)


def with_deleted() -> QueryMod:
    """Drop the automatic soft delete where clause."""
    return _FuncMod(lambda q: q.remove_soft_delete_where())