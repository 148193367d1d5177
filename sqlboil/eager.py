"""Eager loading of relationships onto model objects.

A model object holds its loaded relationships in an attribute ``R`` (None
until something is loaded) and a loader in an attribute ``L``. For a
relationship named ``name`` the loader has a method::

    load_name(executor, singular, obj, mods)

where ``obj`` is one model when ``singular`` is true and a list of models
otherwise, and ``mods`` is the applicator registered for that path or None.
The loader sets ``obj.R.name`` to a model, a list of models, or None.

Relationship paths such as ``"videos.tags"`` are loaded level by level:
all objects of one level are gathered and loaded with a single call.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from .binding import BindKind, bind, bind_checks
from .builder import query_rows
from .query import Applicator, Query

_RELATIONSHIP_ATTR = "R"
_LOADER_ATTR = "L"
_LOAD_METHOD_PREFIX = "load_"
_MISSING = object()


def _relationships(obj: Any, action: str) -> Any:
    rel = getattr(obj, _RELATIONSHIP_ATTR, _MISSING)
    if rel is _MISSING:
        raise AttributeError(f"{action}: relationship struct was invalid")
    if rel is None:
        raise ValueError(f"{action}: relationship struct was nil")
    return rel


def _related(rel: Any, key: str, action: str) -> Any:
    value = getattr(rel, key, _MISSING)
    if value is _MISSING:
        raise AttributeError(f"{action}: no relationship named {key}")
    return value


@dataclass
class _LoadState:
    executor: Any
    mods: Mapping[str, Applicator]
    loaded: set[str] = field(default_factory=set)
    to_load: list[str] = field(default_factory=list)

    def key(self, depth: int) -> str:
        return ".".join(self.to_load[: depth + 1])

    def load(self, depth: int, obj: Any, kind: BindKind) -> None:
        if obj is None:
            return

        if self.key(depth) not in self.loaded:
            self.call_loader(depth, obj, kind)

        if depth + 1 >= len(self.to_load):
            return

        if kind is BindKind.STRUCT:
            self.recurse(depth, obj)
            return

        if not obj:
            return

        collected = collect_loaded(self.to_load[depth], obj)
        if collected:
            self.load(depth + 1, collected, BindKind.SLICE)

    def call_loader(self, depth: int, obj: Any, kind: BindKind) -> None:
        current = self.to_load[depth]
        if kind is BindKind.STRUCT:
            sample = obj
        else:
            if not obj or obj[0] is None:
                return
            sample = obj[0]

        loader = getattr(sample, _LOADER_ATTR, _MISSING)
        if loader is _MISSING:
            raise AttributeError(
                f"attempted to load {current} but no {_LOADER_ATTR} struct was found"
            )

        method = getattr(loader, _LOAD_METHOD_PREFIX + current, None)
        if not callable(method):
            raise AttributeError(
                f"could not find {_LOAD_METHOD_PREFIX}{current} method for eager loading"
            )

        key = self.key(depth)
        try:
            method(self.executor, kind is BindKind.STRUCT, obj, self.mods.get(key))
        except Exception as exc:
            raise RuntimeError(f"failed to eager load {current}") from exc

        self.loaded.add(key)

    def recurse(self, depth: int, obj: Any) -> None:
        key = self.to_load[depth]
        action = f"failed to append loaded {key}"
        loaded = _related(_relationships(obj, action), key, action)
        if loaded is None:
            return
        kind = BindKind.SLICE if isinstance(loaded, list) else BindKind.STRUCT
        self.load(depth + 1, loaded, kind)


def eager_load(
    executor: Any,
    to_load: Iterable[str],
    mods: Optional[Mapping[str, Applicator]],
    obj: Any,
    kind: BindKind,
) -> None:
    """Load every relationship path in ``to_load`` onto ``obj``.

    ``obj`` is one model (``BindKind.STRUCT``) or a list of models
    (``BindKind.SLICE``). ``mods`` maps a relationship path to the
    applicator handed to the loader for that path. Each path prefix is
    loaded only once.
    """
    state = _LoadState(executor, dict(mods or {}))
    for path in to_load:
        state.to_load = path.split(".")
        state.load(0, obj, kind)


def collect_loaded(key: str, objs: Iterable[Any]) -> list[Any]:
    """Gather the objects loaded under relationship ``key`` of every object.

    Single relationships that are None are skipped; lists are flattened.
    """
    action = f"failed to collect loaded {key}"
    collected: list[Any] = []
    for item in objs:
        value = _related(_relationships(item, action), key, action)
        if isinstance(value, list):
            collected.extend(value)
        elif value is not None:
            collected.append(value)
    return collected


def bind_query(
    query: Query, executor: Any, obj: Any, model: Optional[type] = None
) -> Any:
    """Run ``query``, bind its rows onto ``obj`` and eager load its relationships.

    ``obj`` is a dataclass instance, or a list to which instances of
    ``model`` are appended. Returns ``obj``.
    """
    model, kind = bind_checks(obj, model)
    cursor = query_rows(query, executor)
    try:
        bind(cursor, obj, model)
    finally:
        close = getattr(cursor, "close", None)
        if callable(close):
            close()

    if query.load:
        eager_load(executor, query.load, query.load_mods, obj, kind)
    return obj