"""Alphanumeric ordering of file names by numerical prefix."""

from __future__ import annotations

import re
from collections.abc import Iterable

_NUM_PREFIX = re.compile(r"([0-9]+)(.*)")
_INT_MAX = 2**63 - 1


def _split_prefix(name: str) -> tuple[int | None, str]:
    match = _NUM_PREFIX.fullmatch(name)
    if match is not None:
        number = int(match.group(1))
        if number <= _INT_MAX:
            return number, match.group(2)
    return None, name


def _sort_key(name: str) -> tuple:
    number, rest = _split_prefix(name)
    if number is None:
        return (1, 0, name)
    return (0, number, rest)


def alphanumeric_less(a: str, b: str) -> bool:
    """Tell whether ``a`` sorts before ``b``.

    Names with a numerical prefix come first, ordered by that number and then
    by the rest of the name; the others follow in plain string order.
    """
    return _sort_key(a) < _sort_key(b)


def alphanumeric_sort(values: Iterable[str]) -> list[str]:
    """Return the values in alphanumeric order."""
    return sorted(values, key=_sort_key)