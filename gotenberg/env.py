"""Typed access to environment variables."""

from __future__ import annotations

import os
import re

_INT_SYNTAX = re.compile(r"[+-]?[0-9]+")
_INT_MIN = -(2**63)
_INT_MAX = 2**63 - 1


class EnvironmentVariableError(ValueError):
    """Raised when an environment variable is missing, empty or malformed."""


def string_env(key: str) -> str:
    """Return the value of ``key``; it must exist and not be empty."""
    try:
        value = os.environ[key]
    except KeyError:
        raise EnvironmentVariableError(
            f"environment variable '{key}' does not exist"
        ) from None
    if not value:
        raise EnvironmentVariableError(f"environment variable '{key}' is empty")
    return value


def int_env(key: str) -> int:
    """Return the value of ``key`` as a 64-bit signed integer."""
    value = string_env(key)
    if _INT_SYNTAX.fullmatch(value) is None:
        raise EnvironmentVariableError(
            f"get int value of environment variable '{key}': "
            f"parsing '{value}': invalid syntax"
        )
    number = int(value)
    if not _INT_MIN <= number <= _INT_MAX:
        raise EnvironmentVariableError(
            f"get int value of environment variable '{key}': "
            f"parsing '{value}': value out of range"
        )
    return number