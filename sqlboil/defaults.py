"""Helpers for columns that have database defaults."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable
from typing import Any

from .binding import get_boil_tag


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    try:
        zero = type(value)()
    except TypeError:
        return False
    return value == zero


def non_zero_default_set(defaults: Iterable[str], obj: Any) -> list[str]:
    """Return the column names in ``defaults`` whose fields on ``obj`` are not zero.

    Columns are matched against the ``boil`` names of the fields of the
    dataclass ``obj``. Raises ValueError if a column has no field.
    """
    object_fields = dataclasses.fields(obj)
    result = []
    for name in defaults:
        match = next(
            (f for f in object_fields if get_boil_tag(f)[0] == name), None
        )
        if match is None:
            raise ValueError(
                f"could not find field name {name} in type {type(obj).__name__}"
            )
        if not _is_zero(getattr(obj, match.name)):
            result.append(name)
    return result