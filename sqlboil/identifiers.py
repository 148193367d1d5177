"""Identifier quoting and placeholder generation for SQL text."""

from __future__ import annotations

import re
from collections.abc import Iterable

_SMART_QUOTE = re.compile(
    r'"?[a-z_][_a-z0-9\-]*"?(\."?[_a-z][_a-z0-9]*"?)*(\.\*)?',
    re.IGNORECASE,
)


def ident_quote(lq: str, rq: str, name: str) -> str:
    """Quote each dotted part of a simple identifier.

    Anything that is not a plain (optionally dotted) identifier, the
    literal ``null`` and the ``?`` placeholder are returned unchanged.
    Parts that are already quoted and ``*`` are left as they are.
    """
    if name.lower() == "null" or name == "?":
        return name
    if not _SMART_QUOTE.fullmatch(name):
        return name

    parts = []
    for part in name.split("."):
        if part.startswith(lq) or part.endswith(rq) or part == "*":
            parts.append(part)
        else:
            parts.append(f"{lq}{part}{rq}")
    return ".".join(parts)


def ident_quote_all(lq: str, rq: str, names: Iterable[str]) -> list[str]:
    """Quote every name in ``names`` with :func:`ident_quote`."""
    return [ident_quote(lq, rq, name) for name in names]


def placeholders(use_index: bool, count: int, start: int, group: int) -> str:
    """Return ``count`` placeholders, grouped into tuples of ``group``.

    Indexed placeholders look like ``$1``; otherwise ``?`` is used.
    """
    if start == 0 or group == 0:
        raise ValueError("Invalid start or group numbers supplied.")

    pieces: list[str] = []
    if group > 1:
        pieces.append("(")
    for i in range(count):
        if i:
            pieces.append("),(" if group > 1 and i % group == 0 else ",")
        pieces.append(f"${start + i}" if use_index else "?")
    if group > 1:
        pieces.append(")")
    return "".join(pieces)