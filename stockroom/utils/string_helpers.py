"""
String Helpers.

Small text predicates shared by the validation paths, plus the recursive
JSON value alias used for Supabase payloads.
"""

from __future__ import annotations

from typing import Union

__all__ = [
    "JsonValue",
    "is_ascii_digits",
]

# ---------------------------------------------------------------------------
# Recursive JSON value type (PEP 484, no ``Any``)
# ---------------------------------------------------------------------------

JsonValue = Union[
    str,
    int,
    float,
    bool,
    None,
    dict[str, "JsonValue"],
    list["JsonValue"],
]


def is_ascii_digits(value: str) -> bool:
    """Return ``True`` when *value* is non-empty and made of ``0-9`` only.

    ``str.isdigit`` also accepts superscripts and non-Latin digits, which a
    numeric keypad can never produce::

        >>> is_ascii_digits("2059")
        True
        >>> is_ascii_digits("²059")
        False
        >>> is_ascii_digits("")
        False
    """
    return bool(value) and value.isascii() and value.isdigit()
