"""The query object and the operations that build it up."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable


@dataclass
class Dialect:
    """Quoting and placeholder conventions of a database."""

    lq: str = '"'
    rq: str = '"'
    use_index_placeholders: bool = False
    use_top_clause: bool = False


class JoinKind(Enum):
    INNER = 0
    OUTER_LEFT = 1
    OUTER_RIGHT = 2
    NATURAL = 3
    OUTER_FULL = 4


class WhereKind(Enum):
    NORMAL = 0
    LEFT_PAREN = 1
    RIGHT_PAREN = 2
    IN = 3
    NOT_IN = 4


@dataclass
class Where:
    """One element of a where expression."""

    clause: str = ""
    args: list[Any] = field(default_factory=list)
    kind: WhereKind = WhereKind.NORMAL
    or_separator: bool = False


@dataclass
class ArgClause:
    """A clause with its bound arguments."""

    clause: str
    args: list[Any] = field(default_factory=list)


@dataclass
class Join:
    """A join clause with its kind and bound arguments."""

    kind: JoinKind
    clause: str
    args: list[Any] = field(default_factory=list)


@runtime_checkable
class Applicator(Protocol):
    """Anything that can modify a query, such as query mods for eager loading."""

    def apply(self, query: "Query") -> None:
        """Modify ``query`` in place."""


_DELETED_AT = re.compile(r"deleted_at[\"'`]? is null")


@dataclass
class Query:
    """The state of a query being built."""

    dialect: Dialect = field(default_factory=Dialect)
    raw_sql: str = ""
    raw_args: list[Any] = field(default_factory=list)

    load: list[str] = field(default_factory=list)
    load_mods: dict[str, Applicator] = field(default_factory=dict)

    delete: bool = False
    update: dict[str, Any] = field(default_factory=dict)
    withs: list[ArgClause] = field(default_factory=list)
    select_cols: list[str] = field(default_factory=list)
    count: bool = False
    from_: list[str] = field(default_factory=list)
    joins: list[Join] = field(default_factory=list)
    where: list[Where] = field(default_factory=list)
    group_by: list[str] = field(default_factory=list)
    order_by: list[ArgClause] = field(default_factory=list)
    having: list[ArgClause] = field(default_factory=list)
    limit: Optional[int] = None
    offset: int = 0
    for_lock: str = ""
    distinct: str = ""
    comment: str = ""

    remove_soft_delete: bool = False

    def set_sql(self, sql: str, *args: Any) -> None:
        """Replace the query with raw SQL and its arguments."""
        self.raw_sql = sql
        self.raw_args = list(args)

    def set_args(self, *args: Any) -> None:
        """Replace the arguments of the raw SQL, keeping its text."""
        self.raw_args = list(args)

    def set_load(self, *relationships: str) -> None:
        self.load = list(relationships)

    def append_load(self, relationship: str) -> None:
        self.load.append(relationship)

    def set_load_mods(self, relationship: str, applicator: Applicator) -> None:
        self.load_mods[relationship] = applicator

    def append_select(self, *columns: str) -> None:
        self.select_cols.extend(columns)

    def append_from(self, *tables: str) -> None:
        self.from_.extend(tables)

    def set_from(self, *tables: str) -> None:
        self.from_ = list(tables)

    def append_inner_join(self, clause: str, *args: Any) -> None:
        self.joins.append(Join(JoinKind.INNER, clause, list(args)))

    def append_left_outer_join(self, clause: str, *args: Any) -> None:
        self.joins.append(Join(JoinKind.OUTER_LEFT, clause, list(args)))

    def append_right_outer_join(self, clause: str, *args: Any) -> None:
        self.joins.append(Join(JoinKind.OUTER_RIGHT, clause, list(args)))

    def append_full_outer_join(self, clause: str, *args: Any) -> None:
        self.joins.append(Join(JoinKind.OUTER_FULL, clause, list(args)))

    def append_having(self, clause: str, *args: Any) -> None:
        self.having.append(ArgClause(clause, list(args)))

    def append_where(self, clause: str, *args: Any) -> None:
        self.where.append(Where(clause, list(args)))

    def append_in(self, clause: str, *args: Any) -> None:
        self.where.append(Where(clause, list(args), WhereKind.IN))

    def append_not_in(self, clause: str, *args: Any) -> None:
        self.where.append(Where(clause, list(args), WhereKind.NOT_IN))

    def set_last_where_as_or(self) -> None:
        """Join the last where element (or parenthesised group) with OR.

        Raises ValueError if a closing parenthesis has no opening match.
        """
        if not self.where:
            return

        last = self.where[-1]
        if last.kind is not WhereKind.RIGHT_PAREN:
            last.or_separator = True
            return

        depth = 0
        for item in reversed(self.where[:-1]):
            if item.kind is WhereKind.LEFT_PAREN:
                if depth == 0:
                    item.or_separator = True
                    return
                depth -= 1
            elif item.kind is WhereKind.RIGHT_PAREN:
                depth += 1

        raise ValueError("could not find matching ( in where query expr")

    def append_where_left_paren(self) -> None:
        self.where.append(Where(kind=WhereKind.LEFT_PAREN))

    def append_where_right_paren(self) -> None:
        self.where.append(Where(kind=WhereKind.RIGHT_PAREN))

    def append_group_by(self, clause: str) -> None:
        self.group_by.append(clause)

    def append_order_by(self, clause: str, *args: Any) -> None:
        self.order_by.append(ArgClause(clause, list(args)))

    def append_with(self, clause: str, *args: Any) -> None:
        self.withs.append(ArgClause(clause, list(args)))

    def remove_soft_delete_where(self) -> None:
        """Ask for the automatic soft delete clause to be dropped when building."""
        self.remove_soft_delete = True

    def strip_soft_delete_where(self) -> None:
        """Remove the last ``deleted_at is null`` clause if removal was requested."""
        if not self.remove_soft_delete:
            return

        for index in range(len(self.where) - 1, -1, -1):
            item = self.where[index]
            if item.kind is WhereKind.NORMAL and _DELETED_AT.search(item.clause):
                # Only one is removed; any others may come from the user.
                del self.where[index]
                return


def raw(sql: str, *args: Any) -> Query:
    """Make a query from raw SQL."""
    return Query(raw_sql=sql, raw_args=list(args))