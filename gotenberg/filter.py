"""Allow/deny filtering of values by regular expressions under a deadline."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Union

import regex

from gotenberg.cancellation import DeadlineExceeded

Deadline = Union[float, datetime]


class FilteredError(Exception):
    """Raised when a value is rejected by the allow or deny expression."""


def _seconds_until(deadline: Deadline) -> float:
    if isinstance(deadline, datetime):
        return (deadline - datetime.now(deadline.tzinfo)).total_seconds()
    return float(deadline) - time.time()


def _pattern_text(pattern: Any) -> str:
    if isinstance(pattern, str):
        return pattern
    return pattern.pattern


def _matches(pattern: str, value: str, deadline: Deadline) -> bool:
    compiled = regex.compile(pattern)
    remaining = _seconds_until(deadline)
    if remaining <= 0:
        raise DeadlineExceeded("context deadline exceeded")
    try:
        return compiled.search(value, timeout=remaining) is not None
    except TimeoutError as err:
        if _seconds_until(deadline) <= 0:
            raise DeadlineExceeded("context deadline exceeded") from err
        raise ValueError(f"'{pattern}' cannot handle '{value}': {err}") from err


def filter_deadline(allowed: Any, denied: Any, value: str, deadline: Deadline) -> None:
    """Check that ``value`` matches ``allowed`` and does not match ``denied``.

    An empty expression is ignored. ``deadline`` is a ``time.time()`` timestamp
    or a datetime. Raises FilteredError when the value is rejected and
    DeadlineExceeded when matching cannot finish before the deadline.
    """
    allow = _pattern_text(allowed)
    if allow and not _matches(allow, value, deadline):
        raise FilteredError(
            f"'{value}' does not match the expression from the allowed list: "
            "value filtered"
        )

    deny = _pattern_text(denied)
    if deny and _matches(deny, value, deadline):
        raise FilteredError(
            f"'{value}' matches the expression from the denied list: value filtered"
        )