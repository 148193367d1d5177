"""Comparing and assigning column values that may be wrapped in nullable types.

A *valuer* is any object with a ``value()`` method that returns a primitive
(or None for SQL NULL). A *scanner* is any object with a ``scan(value)``
method that stores a primitive into itself.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Valuer(Protocol):
    """An object that can produce a primitive database value."""

    def value(self) -> Any:
        """Return the primitive value, or None for NULL."""


@runtime_checkable
class Scanner(Protocol):
    """An object that can take on a primitive database value."""

    def scan(self, value: Any) -> None:
        """Store ``value`` in this object."""


def _is_valuer(obj: Any) -> bool:
    return not isinstance(obj, type) and isinstance(obj, Valuer)


def _is_scanner(obj: Any) -> bool:
    return not isinstance(obj, type) and isinstance(obj, Scanner)


def _call_value(valuer: Any, context: str) -> Any:
    try:
        return valuer.value()
    except Exception as exc:
        raise ValueError(f"{context} but got an error: {exc}") from exc


def _call_scan(scanner: Any, value: Any) -> None:
    try:
        scanner.scan(value)
    except Exception as exc:
        raise ValueError(
            f"tried to call scan on {type(scanner).__name__} with {value!r} "
            f"but got an error: {exc}"
        ) from exc


def _is_numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_numeric(text: str, like: Any) -> Any:
    try:
        return int(text, 0) if isinstance(like, int) else float(text)
    except ValueError as exc:
        raise ValueError(
            f"tried to parse {text!r} as {type(like).__name__} but got error: {exc}"
        ) from exc


def _normalize(value: Any) -> Any:
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return value


def equal(a: Any, b: Any) -> bool:
    """Compare two primitive or valuer values the way key columns compare.

    A string compared with a number is parsed as that kind of number.
    Raises TypeError if the primitive types differ, and ValueError if a
    valuer fails or a string cannot be parsed.
    """
    if (a is None) != (b is None):
        return False

    if isinstance(a, (bytes, bytearray)) and isinstance(b, (bytes, bytearray)):
        return bytes(a) == bytes(b)

    if _is_valuer(a):
        a = _call_value(a, "while comparing values, calling value on 'a' failed")
    if _is_valuer(b):
        b = _call_value(b, "while comparing values, calling value on 'b' failed")

    # A nullable type may have produced None.
    if (a is None) != (b is None):
        return False

    if isinstance(a, str) and _is_numeric(b):
        a = _parse_numeric(a, b)
    if isinstance(b, str) and _is_numeric(a):
        b = _parse_numeric(b, a)

    a, b = _normalize(a), _normalize(b)

    if type(a) is not type(b):
        raise TypeError(
            f"primitive type of a ({type(a).__name__}) was not the same "
            f"primitive type as b ({type(b).__name__})"
        )

    if isinstance(a, (bool, int, float, str, bytes, datetime)):
        return a == b
    return False


def _convert(dst: Any, value: Any) -> Any:
    if value is None:
        if isinstance(dst, datetime):
            return datetime.min
        try:
            return type(dst)()
        except TypeError:
            return None
    if isinstance(dst, bytearray):
        dst[:] = value
        return dst
    if isinstance(dst, str) and isinstance(value, (bytes, bytearray)):
        return bytes(value).decode()
    if isinstance(dst, (bool, int, float, str, bytes)):
        return type(dst)(value)
    return value


def assign(dst: Any, src: Any) -> Any:
    """Assign ``src`` to ``dst`` and return the result.

    A scanner ``dst`` and a ``bytearray`` ``dst`` are changed in place and
    returned. Otherwise ``dst`` gives the type of the result, which is
    converted from the primitive value of the valuer ``src``. Raises
    TypeError when neither side is a scanner or valuer.
    """
    if isinstance(dst, (bytes, bytearray)) and isinstance(src, (bytes, bytearray)):
        if isinstance(dst, bytearray):
            dst[:] = src
            return dst
        return bytes(src)

    dst_scanner = _is_scanner(dst)
    src_valuer = _is_valuer(src)

    if dst_scanner:
        value = (
            _call_value(src, f"tried to call value on {type(src).__name__}")
            if src_valuer
            else src
        )
        _call_scan(dst, value)
        return dst

    if src_valuer:
        value = _call_value(src, f"tried to call value on {type(src).__name__}")
        return _convert(dst, value)

    raise TypeError(
        "this case should have been handled by something other than this method"
    )


def must_time(valuer: Valuer) -> datetime:
    """Return the time held by ``valuer``, or ``datetime.min`` if it is NULL.

    Raises TypeError if the value is not a datetime.
    """
    value = _call_value(
        valuer, f"attempted to call value on {type(valuer).__name__} to get time"
    )
    if value is None:
        return datetime.min
    if not isinstance(value, datetime):
        raise TypeError(
            f"value of {type(valuer).__name__} is {type(value).__name__}, not a time"
        )
    return value


def is_valuer_nil(valuer: Valuer) -> bool:
    """Return True if the valuer's value is NULL."""
    value = _call_value(valuer, f"attempted to call value on {type(valuer).__name__}")
    return value is None


def is_nil(value: Any) -> bool:
    """Return True for None and for valuers whose value is NULL."""
    if value is None:
        return True
    if _is_valuer(value):
        return is_valuer_nil(value)
    return False


def set_scanner(scanner: Scanner, value: Any) -> None:
    """Scan ``value`` into ``scanner``; raises ValueError if it refuses."""
    _call_scan(scanner, value)