"""Turn a :class:`~sqlboil.query.Query` into SQL text and arguments, and run it."""

from __future__ import annotations

import logging
import re
from typing import Any

from .identifiers import ident_quote, ident_quote_all, placeholders
from .query import ArgClause, JoinKind, Query, WhereKind

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(
    r'"?[a-z_][_a-z0-9]*"?(?:\."?[_a-z][_a-z0-9]*"?)*', re.IGNORECASE
)
_IN_CLAUSE = re.compile(r"(.*[\s|\)|\?])IN([\s|\(|\?].*)", re.IGNORECASE)
_NOT_IN_CLAUSE = re.compile(r"(.*[\s|\)|\?])NOT\s+IN([\s|\(|\?].*)", re.IGNORECASE)

_JOIN_KEYWORDS = {
    JoinKind.INNER: "INNER JOIN",
    JoinKind.OUTER_LEFT: "LEFT JOIN",
    JoinKind.OUTER_RIGHT: "RIGHT JOIN",
    JoinKind.OUTER_FULL: "FULL JOIN",
}


def build_query(query: Query) -> tuple[str, list[Any]]:
    """Build the SQL text and arguments of ``query`` without running it.

    The result is cached on the query as its raw SQL so the query can be reused.
    """
    query.strip_soft_delete_where()

    if query.raw_sql:
        return query.raw_sql, list(query.raw_args)
    if query.delete:
        sql, args = _build_delete(query)
    elif query.update:
        sql, args = _build_update(query)
    else:
        sql, args = _build_select(query)

    query.raw_sql = sql
    query.raw_args = list(args)
    return sql, args


def _quoted_from(query: Query) -> str:
    d = query.dialect
    return ", ".join(ident_quote_all(d.lq, d.rq, query.from_))


def _build_select(query: Query) -> tuple[str, list[Any]]:
    d = query.dialect
    args: list[Any] = []
    parts = [write_comment(query), _write_ctes(query, args), "SELECT "]

    if d.use_top_clause and query.limit is not None and query.offset == 0:
        parts.append(f" TOP ({query.limit}) ")

    if query.count:
        parts.append("COUNT(")

    has_select_cols = bool(query.select_cols)
    has_joins = bool(query.joins)
    if query.distinct:
        parts.append("DISTINCT ")
        parts.append(f"({query.distinct})" if query.count else query.distinct)
    elif has_joins and has_select_cols and not query.count:
        parts.append(", ".join(write_as_statements(query)))
    elif has_select_cols:
        parts.append(", ".join(ident_quote_all(d.lq, d.rq, query.select_cols)))
    elif has_joins and not query.count:
        parts.append(", ".join(write_stars(query)))
    else:
        parts.append("*")

    if query.count:
        parts.append(")")

    parts.append(f" FROM {_quoted_from(query)}")

    if query.joins:
        args_len = len(args)
        join_parts = []
        for join in query.joins:
            keyword = _JOIN_KEYWORDS.get(join.kind)
            if keyword is None:
                raise ValueError(f"Unsupported join of kind {join.kind}")
            join_parts.append(f" {keyword} {join.clause}")
            args.extend(join.args)
        text = "".join(join_parts)
        if d.use_index_placeholders:
            text, _ = convert_question_marks(text, args_len + 1)
        parts.append(text)

    where, where_args = where_clause(query, len(args) + 1)
    parts.append(where)
    args.extend(where_args)

    parts.append(_write_modifiers(query, args))
    parts.append(";")
    return "".join(parts), args


def _build_delete(query: Query) -> tuple[str, list[Any]]:
    args: list[Any] = []
    parts = [write_comment(query), _write_ctes(query, args)]
    parts.append("DELETE FROM ")
    parts.append(_quoted_from(query))

    where, where_args = where_clause(query, 1)
    args.extend(where_args)
    parts.append(where)

    parts.append(_write_modifiers(query, args))
    parts.append(";")
    return "".join(parts), args


def _build_update(query: Query) -> tuple[str, list[Any]]:
    d = query.dialect
    args: list[Any] = []
    parts = [write_comment(query), _write_ctes(query, args)]
    parts.append("UPDATE ")
    parts.append(_quoted_from(query))

    columns = sorted(query.update)
    args.extend(query.update[name] for name in columns)
    assignments = [
        f"{ident_quote(d.lq, d.rq, name)} = "
        f"{placeholders(d.use_index_placeholders, 1, index, 1)}"
        for index, name in enumerate(columns, start=1)
    ]
    parts.append(f" SET {', '.join(assignments)}")

    where, where_args = where_clause(query, len(args) + 1)
    args.extend(where_args)
    parts.append(where)

    parts.append(_write_modifiers(query, args))
    parts.append(";")
    return "".join(parts), args


def _write_parameterized(
    query: Query, args: list[Any], keyword: str, delim: str, clauses: list[ArgClause]
) -> str:
    args_len = len(args)
    text = keyword + delim.join(c.clause for c in clauses)
    for c in clauses:
        args.extend(c.args)
    if query.dialect.use_index_placeholders:
        text, _ = convert_question_marks(text, args_len + 1)
    return text


def _write_modifiers(query: Query, args: list[Any]) -> str:
    parts = []
    if query.group_by:
        parts.append(f" GROUP BY {', '.join(query.group_by)}")

    if query.having:
        parts.append(_write_parameterized(query, args, " HAVING ", " AND ", query.having))

    if query.order_by:
        parts.append(_write_parameterized(query, args, " ORDER BY ", ", ", query.order_by))

    if not query.dialect.use_top_clause:
        if query.limit is not None:
            parts.append(f" LIMIT {query.limit}")
        if query.offset != 0:
            parts.append(f" OFFSET {query.offset}")
    elif query.offset != 0:
        # OFFSET ... FETCH requires an ORDER BY; this one keeps arbitrary order.
        if not query.order_by:
            parts.append(" ORDER BY (SELECT NULL)")
        parts.append(f" OFFSET {query.offset} ROWS")
        if query.limit is not None:
            parts.append(f" FETCH NEXT {query.limit} ROWS ONLY")

    if query.for_lock:
        parts.append(f" FOR {query.for_lock}")

    return "".join(parts)


def _write_ctes(query: Query, args: list[Any]) -> str:
    if not query.withs:
        return ""

    args_len = len(args)
    text = ",".join(f" {w.clause}" for w in query.withs) + " "
    for w in query.withs:
        args.extend(w.args)
    if query.dialect.use_index_placeholders:
        text, _ = convert_question_marks(text, args_len + 1)
    return "WITH" + text


def write_stars(query: Query) -> list[str]:
    """Return ``table.*`` selections for every from clause, honouring aliases.

    An empty list is returned if a from clause cannot be understood.
    """
    d = query.dialect
    columns = []
    for source in query.from_:
        tokens = source.split(" ")
        if len(tokens) == 1:
            columns.append(f"{ident_quote(d.lq, d.rq, tokens[0])}.*")
            continue

        alias, name, ok = parse_from_clause(tokens)
        if not ok:
            return []
        columns.append(f"{ident_quote(d.lq, d.rq, alias or name)}.*")
    return columns


def write_as_statements(query: Query) -> list[str]:
    """Quote selected columns, aliasing dotted ones by their dotted name."""
    d = query.dialect
    columns = []
    for column in query.select_cols:
        if not _IDENTIFIER.fullmatch(column):
            columns.append(column)
            continue

        tokens = column.split(".")
        if len(tokens) == 1:
            columns.append(ident_quote(d.lq, d.rq, column))
            continue

        alias = ".".join(token.strip('"') for token in tokens)
        columns.append(f'{ident_quote(d.lq, d.rq, column)} as "{alias}"')
    return columns


def where_clause(query: Query, start_at: int) -> tuple[str, list[Any]]:
    """Render the where expression of ``query`` and collect its arguments.

    ``start_at`` is the number of the first indexed placeholder.
    """
    if not query.where:
        return "", []

    d = query.dialect
    manual_parens = any(
        w.kind in (WhereKind.LEFT_PAREN, WhereKind.RIGHT_PAREN) for w in query.where
    )

    def wrap(text: str) -> str:
        return text if manual_parens else f"({text})"

    parts = [" WHERE "]
    args: list[Any] = []
    not_first = False
    for item in query.where:
        if not_first and item.kind is not WhereKind.RIGHT_PAREN:
            parts.append(" OR " if item.or_separator else " AND ")
        else:
            not_first = True

        if item.kind is WhereKind.NORMAL:
            clause = item.clause
            if d.use_index_placeholders:
                clause, n = convert_question_marks(clause, start_at)
                start_at += n
            parts.append(wrap(clause))
            args.extend(item.args)
        elif item.kind is WhereKind.LEFT_PAREN:
            parts.append("(")
            not_first = False
        elif item.kind is WhereKind.RIGHT_PAREN:
            parts.append(")")
        elif item.kind in (WhereKind.IN, WhereKind.NOT_IN):
            start_at = _write_in(query, item, start_at, parts, args, wrap)
        else:
            raise ValueError("unknown where type")

    return "".join(parts), args


def _write_in(query, item, start_at, parts, args, wrap) -> int:
    d = query.dialect
    is_in = item.kind is WhereKind.IN
    total = len(item.args)
    # An empty IN list is invalid SQL, so it becomes an always-false/true test.
    if total == 0:
        parts.append("(1=0)" if is_in else "(1=1)")
        return start_at

    pattern = _IN_CLAUSE if is_in else _NOT_IN_CLAUSE
    match = pattern.fullmatch(item.clause)
    if match is None:
        clause, count = convert_in_question_marks(
            d.use_index_placeholders, item.clause, start_at, 1, total
        )
        parts.append(wrap(clause))
        args.extend(item.args)
        return start_at + count

    left_side = match.group(1).strip()
    right_side = match.group(2).strip()
    columns = ident_quote_all(d.lq, d.rq, left_side.split(","))
    group_at = len(columns)

    if d.use_index_placeholders:
        left_clause, left_count = convert_question_marks(",".join(columns), start_at)
    else:
        left_count = sum(1 for c in columns if c == "?")
        left_clause = ",".join(columns)

    right_clause, right_count = convert_in_question_marks(
        d.use_index_placeholders,
        right_side,
        start_at + left_count,
        group_at,
        total - left_count,
    )
    keyword = " IN " if is_in else " NOT IN "
    parts.append(wrap(f"{left_clause}{keyword}{right_clause}"))
    args.extend(item.args)
    return start_at + left_count + right_count


def convert_in_question_marks(
    use_index_placeholders: bool, clause: str, start_at: int, group_at: int, total: int
) -> tuple[str, int]:
    """Replace the first unescaped ``?`` with a parenthesised placeholder list.

    ``group_at`` placeholders go in each group, e.g. ``(($1,$2),($3,$4))``.
    Returns the new clause and the number of placeholders written.
    """
    if start_at == 0 or not clause:
        raise ValueError("Not a valid start number.")

    found_at = next(
        (
            i
            for i, ch in enumerate(clause)
            if ch == "?" and (i == 0 or clause[i - 1] != "\\")
        ),
        -1,
    )
    if found_at == -1:
        return clause.replace("\\?", "?"), 0

    marks = placeholders(use_index_placeholders, total, start_at, group_at)
    result = f"{clause[:found_at]}({marks}){clause[found_at + 1:]}"
    return result.replace("\\?", "?"), total


def convert_question_marks(clause: str, start_at: int) -> tuple[str, int]:
    """Replace each unescaped ``?`` with ``$n``, counting up from ``start_at``.

    An escaped ``\\?`` becomes a literal ``?``. Returns the new clause and
    the number of placeholders written.
    """
    if start_at == 0:
        raise ValueError("Not a valid start number.")

    out = []
    index = 0
    total = 0
    while index < len(clause):
        clause = clause[index:]
        index = clause.find("?")
        if index == -1:
            out.append(clause)
            break

        escape = clause.find("\\?")
        if escape != -1 and index > escape:
            out.append(clause[:escape] + "?")
            index += 1
            continue

        out.append(f"{clause[:index]}${start_at}")
        total += 1
        start_at += 1
        index += 1

    return "".join(out), total


def parse_from_clause(tokens: list[str]) -> tuple[str, str, bool]:
    """Parse ``a``, ``a b`` or ``a as b`` into ``(alias, name, ok)``."""
    alias = name = ""
    ok = False
    saw_ident = saw_as = False
    for token in tokens[:3]:
        lowered = token.lower()
        if saw_ident and lowered == "as":
            saw_as = True
            continue
        if saw_ident and lowered == "on":
            break
        if not _IDENTIFIER.fullmatch(token):
            break
        if saw_ident or saw_as:
            alias = token.strip('"')
            break
        name = token.strip('"')
        saw_ident = True
        ok = True
    return alias, name, ok


def write_comment(query: Query) -> str:
    """Render the query comment as ``--`` lines, or an empty string."""
    if not query.comment:
        return ""
    return "".join(f"-- {line}\n" for line in query.comment.split("\n"))


def _prepare(query: Query) -> tuple[str, list[Any]]:
    sql, args = build_query(query)
    logger.debug("%s", sql)
    logger.debug("%r", args)
    return sql, args


def exec_query(query: Query, executor: Any) -> Any:
    """Run a query that returns no rows; returns the executor's result."""
    sql, args = _prepare(query)
    return executor.execute(sql, args)


def query_rows(query: Query, executor: Any) -> Any:
    """Run the query and return the executor's cursor over all rows."""
    sql, args = _prepare(query)
    return executor.execute(sql, args)


def query_row(query: Query, executor: Any) -> Any:
    """Run the query and return its first row, or None if there is none."""
    sql, args = _prepare(query)
    return executor.execute(sql, args).fetchone()