"""Bind result rows onto dataclass instances using ``boil`` field metadata.

A field's ``boil`` metadata has the form ``"name"`` or ``"name,bind"``:

- without a name the column name is the field name, un-title-cased;
- the name ``-`` excludes the field;
- ``,bind`` on a field holding a dataclass recurses into it, prefixing
  its columns with ``name.``.
"""

from __future__ import annotations

import dataclasses
import inspect
import re
import threading
import types
import typing
from collections.abc import Iterable, Sequence
from enum import Enum
from functools import lru_cache
from typing import Any, Optional

Path = tuple[str, ...]


class BindKind(Enum):
    """What kind of object rows are bound to."""

    STRUCT = 0
    SLICE = 1


class NoRowsError(LookupError):
    """Raised when a single object is bound but the result has no rows."""


def get_boil_tag(field: dataclasses.Field) -> tuple[str, bool]:
    """Return the column name and the recurse flag from a field's metadata."""
    tag = field.metadata.get("boil", "")
    if not tag:
        return "", False
    name, comma, _ = tag.partition(",")
    if not comma:
        return tag, False
    return name, True


_OPTIONAL_RE = re.compile(r"^(?:typing\.)?Optional\[(.*)\]$")


def _lookup_name(cls: type, text: str) -> Any:
    """Find a class named by an annotation string, without evaluating it."""
    text = text.strip()
    match = _OPTIONAL_RE.match(text)
    if match:
        text = match.group(1).strip()
    parts = [part.strip() for part in text.split("|")]
    parts = [part for part in parts if part != "None"]
    if len(parts) != 1:
        return None
    head, *rest = parts[0].split(".")

    namespaces: list[dict[str, Any]] = [dict(vars(cls))]
    module = inspect.getmodule(cls)
    if module is not None:
        namespaces.append(vars(module))

    for namespace in namespaces:
        if head in namespace:
            target = namespace[head]
            for name in rest:
                target = getattr(target, name, None)
                if target is None:
                    break
            if target is not None:
                return target
    return None


def _nested_type(cls: type, field: dataclasses.Field) -> type:
    hint: Any = field.type
    if isinstance(hint, str):
        resolved = None
        if field.default_factory is not dataclasses.MISSING:
            resolved = type(field.default_factory())
        elif field.default is not dataclasses.MISSING and field.default is not None:
            resolved = type(field.default)
        if resolved is None or not dataclasses.is_dataclass(resolved):
            resolved = _lookup_name(cls, hint)
        hint = resolved
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(members) == 1:
            hint = members[0]
    if not (isinstance(hint, type) and dataclasses.is_dataclass(hint)):
        raise TypeError(
            f"field {field.name!r} of {cls.__name__} is marked bind "
            "but does not hold a dataclass"
        )
    return hint


def _walk(cls: type, prefix: str, path: Path, out: dict[str, Path]) -> None:
    for field in dataclasses.fields(cls):
        tag, recurse = get_boil_tag(field)
        if not tag:
            tag = un_title_case(field.name)
        elif tag.startswith("-"):
            continue

        if prefix:
            tag = f"{prefix}.{tag}"

        if recurse:
            _walk(_nested_type(cls, field), tag, path + (field.name,), out)
            continue

        out[tag] = path + (field.name,)


@lru_cache(maxsize=None)
def _struct_mapping(cls: type) -> dict[str, Path]:
    out: dict[str, Path] = {}
    _walk(cls, "", (), out)
    return out


def make_struct_mapping(cls: type) -> dict[str, Path]:
    """Map every bindable column name of ``cls`` to its attribute path."""
    return dict(_struct_mapping(cls))


def bind_mapping(mapping: dict[str, Path], columns: Iterable[str]) -> list[Optional[Path]]:
    """Find the attribute path for each column.

    A column matches a name exactly, or else the first name ending in
    ``.column``. Columns with no match map to None and are discarded.
    """
    result: list[Optional[Path]] = []
    for column in columns:
        path = mapping.get(column)
        if path is None:
            suffix = "." + column
            path = next(
                (p for name, p in mapping.items() if name.endswith(suffix)), None
            )
        result.append(path)
    return result


_column_cache: dict[tuple[type, tuple[str, ...]], list[Optional[Path]]] = {}
_column_cache_lock = threading.Lock()


def _column_mapping(cls: type, columns: Sequence[str]) -> list[Optional[Path]]:
    key = (cls, tuple(columns))
    with _column_cache_lock:
        cached = _column_cache.get(key)
        if cached is None:
            cached = bind_mapping(_struct_mapping(cls), columns)
            _column_cache[key] = cached
        return cached


def _parent(obj: Any, path: Path) -> Any:
    target = obj
    for name in path[:-1]:
        target = getattr(target, name)
        if target is None:
            raise ValueError(f"cannot reach {'.'.join(path)}: {name} is None")
    return target


def set_from_mapping(
    obj: Any, mapping: Sequence[Optional[Path]], values: Iterable[Any]
) -> None:
    """Set each value on ``obj`` at the attribute path given by ``mapping``."""
    for path, value in zip(mapping, values, strict=True):
        if path is None:
            continue
        setattr(_parent(obj, path), path[-1], value)


def values_from_mapping(obj: Any, mapping: Sequence[Optional[Path]]) -> list[Any]:
    """Read the value at each attribute path; unmapped entries give None."""
    return [
        None if path is None else getattr(_parent(obj, path), path[-1])
        for path in mapping
    ]


def bind_checks(obj: Any, model: Optional[type] = None) -> tuple[type, BindKind]:
    """Work out the dataclass and bind kind of ``obj``.

    ``obj`` is a dataclass instance, or a list to which instances of
    ``model`` are appended. Raises TypeError for anything else.
    """
    if isinstance(obj, list):
        if not (isinstance(model, type) and dataclasses.is_dataclass(model)):
            raise TypeError("binding to a list needs a dataclass model")
        return model, BindKind.SLICE
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return type(obj), BindKind.STRUCT
    raise TypeError(
        "obj should be a dataclass instance or a list of them "
        f"but was {type(obj).__name__!r}"
    )


def bind(rows: Any, obj: Any, model: Optional[type] = None) -> Any:
    """Bind the rows of a DB-API cursor onto ``obj`` and return it.

    A single object takes the first row and NoRowsError is raised if
    there is none; a list gets one new ``model`` instance per row.
    """
    model, kind = bind_checks(obj, model)

    description = getattr(rows, "description", None)
    if description is None:
        raise ValueError("bind failed to get column names")
    columns = [column[0] for column in description]
    mapping = _column_mapping(model, columns)

    if kind is BindKind.STRUCT:
        for row in rows:
            set_from_mapping(obj, mapping, row)
            return obj
        raise NoRowsError("no rows in result set")

    for row in rows:
        item = model()
        set_from_mapping(item, mapping, row)
        obj.append(item)
    return obj


# Longest first so that e.g. GUID wins over UID and ID.
_SPECIAL_WORDS = [
    ("ASCII", "Ascii"),
    ("GUID", "Guid"),
    ("JSON", "Json"),
    ("UUID", "Uuid"),
    ("UTF8", "Utf8"),
    ("ACL", "Acl"),
    ("API", "Api"),
    ("CPU", "Cpu"),
    ("EOF", "Eof"),
    ("RAM", "Ram"),
    ("SLA", "Sla"),
    ("UDP", "Udp"),
    ("UID", "Uid"),
    ("URI", "Uri"),
    ("URL", "Url"),
    ("ID", "Id"),
    ("IP", "Ip"),
    ("UI", "Ui"),
]
_SPECIAL_MAP = dict(_SPECIAL_WORDS)
_SPECIAL_RE = re.compile("|".join(word for word, _ in _SPECIAL_WORDS))


def un_title_case(name: str) -> str:
    """Turn a TitleCased name into snake_case, e.g. ``FunID`` to ``fun_id``."""
    if not name:
        return ""

    name = _SPECIAL_RE.sub(lambda m: _SPECIAL_MAP[m.group(0)], name)

    words: list[str] = []
    last_up = True
    start = 0
    for i, ch in enumerate(name):
        up = ch.isupper()
        digit = ch.isdecimal()

        if not digit and not last_up and up:
            words.append(name[start:i])
            start = i

        if not digit and last_up and not up and i - 1 - start > 1:
            words.append(name[start : i - 1])
            start = i - 1

        last_up = up

    if name[start:]:
        words.append(name[start:])

    return "_".join(word.lower() for word in words)