"""Command-line flag sets and typed access to their parsed values."""

from __future__ import annotations

import csv
import re
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from fractions import Fraction
from typing import Any, Callable

import regex

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class FlagError(Exception):
    """Raised when a flag is undefined, of another type, or cannot be parsed."""


# --------------------------------------------------------------------------
# Value parsers
# --------------------------------------------------------------------------

_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_TERM = re.compile(r"([0-9]*(?:\.[0-9]*)?)([^0-9.]*)")


def _decimal_fraction(number: str) -> Fraction:
    whole, _, frac = number.partition(".")
    value = Fraction(int(whole or "0"))
    if frac:
        value += Fraction(int(frac), 10 ** len(frac))
    return value


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"300ms"``, ``"1.5h"`` or ``"2h45m"``.

    Valid units are ns, us (or µs), ms, s, m and h. Precision below a
    microsecond is truncated.
    """
    invalid = ValueError(f'time: invalid duration "{text}"')
    body = text
    sign = 1
    if body[:1] in ("+", "-"):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise invalid

    total = Fraction(0)
    pos = 0
    while pos < len(body):
        match = _DURATION_TERM.match(body, pos)
        number, unit = match.group(1), match.group(2)
        if not any(char.isdigit() for char in number):
            raise invalid
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _DURATION_UNITS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        total += _decimal_fraction(number) * _DURATION_UNITS[unit]
        pos = match.end()

    nanoseconds = int(total)
    limit = -_INT64_MIN if sign < 0 else _INT64_MAX
    if nanoseconds > limit:
        raise invalid
    return timedelta(microseconds=sign * (nanoseconds // 1000))


_BYTES_BINARY = re.compile(r"(-?[0-9]+(?:\.[0-9]+)?)[ \t\n\f\r]?([KMGTPE]iB?)", re.I)
_BYTES_DECIMAL = re.compile(
    r"(-?[0-9]+(?:\.[0-9]+)?)[ \t\n\f\r]?([KMGTPE]B?|B?)", re.I
)
_UNIT_POWERS = {"K": 1, "M": 2, "G": 3, "T": 4, "P": 5, "E": 6}


def parse_bytes(text: str) -> int:
    """Parse a human-readable size: ``"6GiB"`` is binary, ``"6GB"`` decimal."""
    match = _BYTES_BINARY.fullmatch(text)
    if match is not None:
        multiplier = 1024 ** _UNIT_POWERS[match.group(2)[0].upper()]
        return int(float(match.group(1)) * multiplier)

    match = _BYTES_DECIMAL.fullmatch(text)
    if match is not None:
        unit = match.group(2).upper()
        multiplier = 1 if unit in ("", "B") else 1000 ** _UNIT_POWERS[unit[0]]
        return int(float(match.group(1)) * multiplier)

    raise ValueError(f"error parsing value={text}")


_BOOL_VALUES = {
    **dict.fromkeys(("1", "t", "T", "TRUE", "true", "True"), True),
    **dict.fromkeys(("0", "f", "F", "FALSE", "false", "False"), False),
}


def _parse_bool(text: str) -> bool:
    try:
        return _BOOL_VALUES[text]
    except KeyError:
        raise ValueError(f'strconv.ParseBool: parsing "{text}": invalid syntax') from None


_INT_SYNTAX = re.compile(r"[+-]?[0-9A-Za-z_]+")


def _parse_int(text: str) -> int:
    error = ValueError(f'strconv.ParseInt: parsing "{text}": invalid syntax')
    if _INT_SYNTAX.fullmatch(text) is None:
        raise error
    sign = -1 if text.startswith("-") else 1
    body = text.lstrip("+-")
    try:
        if body[:2].lower() in ("0x", "0o", "0b"):
            number = int(body, 0)
        elif body.startswith("0") and len(body) > 1:
            number = int(body, 8)
        else:
            number = int(body, 10)
    except ValueError:
        raise error from None
    number *= sign
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f'strconv.ParseInt: parsing "{text}": value out of range')
    return number


def _parse_float(text: str) -> float:
    if text != text.strip() or not text:
        raise ValueError(f'strconv.ParseFloat: parsing "{text}": invalid syntax')
    try:
        return float(text)
    except ValueError:
        raise ValueError(
            f'strconv.ParseFloat: parsing "{text}": invalid syntax'
        ) from None


def _parse_csv(text: str) -> list[str]:
    if text == "":
        return []
    try:
        return next(csv.reader([text], strict=True))
    except csv.Error as err:
        raise ValueError(str(err)) from err


# --------------------------------------------------------------------------
# Flags
# --------------------------------------------------------------------------


class _Kind(Enum):
    STRING = "string"
    STRING_SLICE = "stringSlice"
    BOOL = "bool"
    INT = "int"
    INT64 = "int64"
    FLOAT64 = "float64"
    DURATION = "duration"


_PARSERS: dict[_Kind, Callable[[str], Any]] = {
    _Kind.STRING: str,
    _Kind.STRING_SLICE: _parse_csv,
    _Kind.BOOL: _parse_bool,
    _Kind.INT: _parse_int,
    _Kind.INT64: _parse_int,
    _Kind.FLOAT64: _parse_float,
    _Kind.DURATION: parse_duration,
}


@dataclass
class _Flag:
    name: str
    kind: _Kind
    usage: str
    default: Any
    value: Any
    changed: bool = False

    def set(self, text: str) -> None:
        parsed = _PARSERS[self.kind](text)
        if self.kind is _Kind.STRING_SLICE and self.changed:
            self.value = [*self.value, *parsed]
        else:
            self.value = parsed
        self.changed = True


def _as_duration(value: timedelta | float) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=value)


class FlagSet:
    """A named set of long ``--name[=value]`` flags."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._flags: dict[str, _Flag] = {}
        self._args: list[str] = []

    def __contains__(self, name: object) -> bool:
        return name in self._flags

    def __iter__(self) -> Iterator[str]:
        return iter(self._flags)

    @property
    def args(self) -> list[str]:
        """Positional arguments left over by the last parse."""
        return list(self._args)

    def _add(self, name: str, kind: _Kind, default: Any, usage: str) -> None:
        if name in self._flags:
            raise FlagError(f"{self.name} flag redefined: {name}")
        self._flags[name] = _Flag(name, kind, usage, default, default)

    def add_string(self, name: str, default: str = "", usage: str = "") -> None:
        """Define a string flag."""
        self._add(name, _Kind.STRING, str(default), usage)

    def add_string_slice(
        self, name: str, default: Iterable[str] = (), usage: str = ""
    ) -> None:
        """Define a flag holding a list of comma-separated strings."""
        self._add(name, _Kind.STRING_SLICE, list(default), usage)

    def add_bool(self, name: str, default: bool = False, usage: str = "") -> None:
        """Define a boolean flag; ``--name`` alone sets it to true."""
        self._add(name, _Kind.BOOL, bool(default), usage)

    def add_int(self, name: str, default: int = 0, usage: str = "") -> None:
        """Define an integer flag."""
        self._add(name, _Kind.INT, int(default), usage)

    def add_int64(self, name: str, default: int = 0, usage: str = "") -> None:
        """Define a 64-bit integer flag."""
        self._add(name, _Kind.INT64, int(default), usage)

    def add_float64(self, name: str, default: float = 0.0, usage: str = "") -> None:
        """Define a floating-point flag."""
        self._add(name, _Kind.FLOAT64, float(default), usage)

    def add_duration(
        self, name: str, default: timedelta | float = timedelta(0), usage: str = ""
    ) -> None:
        """Define a duration flag; a numeric default is taken as seconds."""
        self._add(name, _Kind.DURATION, _as_duration(default), usage)

    def add_flag_set(self, other: FlagSet | None) -> None:
        """Share the flags of ``other`` that this set does not define yet."""
        if other is None:
            return
        for name, flag in other._flags.items():
            self._flags.setdefault(name, flag)

    def parse(self, args: Iterable[str]) -> None:
        """Parse ``args``, setting flags and collecting positional arguments."""
        remaining = deque(args)
        positional: list[str] = []
        while remaining:
            arg = remaining.popleft()
            if arg == "--":
                positional.extend(remaining)
                break
            if arg == "-" or not arg.startswith("-"):
                positional.append(arg)
            elif arg.startswith("--"):
                self._parse_long(arg, remaining)
            else:
                raise FlagError(f"unknown shorthand flag: '{arg[1]}' in {arg}")
        self._args = positional

    def _parse_long(self, arg: str, remaining: deque[str]) -> None:
        body = arg[2:]
        if not body or body[0] in "-=":
            raise FlagError(f"bad flag syntax: {arg}")
        name, sep, value = body.partition("=")
        flag = self._flags.get(name)
        if flag is None:
            raise FlagError(f"unknown flag: --{name}")
        if not sep:
            if flag.kind is _Kind.BOOL:
                value = "true"
            elif remaining:
                value = remaining.popleft()
            else:
                raise FlagError(f"flag needs an argument: --{name}")
        try:
            flag.set(value)
        except ValueError as err:
            raise FlagError(
                f'invalid argument "{value}" for "--{name}" flag: {err}'
            ) from err

    def changed(self, name: str) -> bool:
        """Tell whether the flag was set explicitly on the command line."""
        flag = self._flags.get(name)
        return flag is not None and flag.changed

    def _lookup(self, name: str) -> _Flag:
        try:
            return self._flags[name]
        except KeyError:
            raise FlagError(f"flag accessed but not defined: {name}") from None

    def get(self, name: str) -> Any:
        """Return the current value of a flag."""
        value = self._lookup(name).value
        return list(value) if isinstance(value, list) else value


class ParsedFlags:
    """Typed, raising access to the values of a parsed :class:`FlagSet`."""

    def __init__(self, flag_set: FlagSet | None = None) -> None:
        self.flag_set = flag_set if flag_set is not None else FlagSet()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParsedFlags):
            return NotImplemented
        return self.flag_set is other.flag_set

    def __hash__(self) -> int:
        return id(self.flag_set)

    def _get(self, name: str, kind: _Kind) -> Any:
        flag = self.flag_set._lookup(name)
        if flag.kind is not kind:
            raise FlagError(
                f"trying to get {kind.value} value of flag of type {flag.kind.value}"
            )
        return self.flag_set.get(name)

    def _pick(self, deprecated: str, new_name: str) -> str:
        return deprecated if self.flag_set.changed(deprecated) else new_name

    def must_string(self, name: str) -> str:
        """Return the value of a string flag."""
        return self._get(name, _Kind.STRING)

    def must_deprecated_string(self, deprecated: str, new_name: str) -> str:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_string(self._pick(deprecated, new_name))

    def must_string_slice(self, name: str) -> list[str]:
        """Return the value of a string slice flag."""
        return self._get(name, _Kind.STRING_SLICE)

    def must_deprecated_string_slice(self, deprecated: str, new_name: str) -> list[str]:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_string_slice(self._pick(deprecated, new_name))

    def must_bool(self, name: str) -> bool:
        """Return the value of a boolean flag."""
        return self._get(name, _Kind.BOOL)

    def must_deprecated_bool(self, deprecated: str, new_name: str) -> bool:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_bool(self._pick(deprecated, new_name))

    def must_int64(self, name: str) -> int:
        """Return the value of a 64-bit integer flag."""
        return self._get(name, _Kind.INT64)

    def must_deprecated_int64(self, deprecated: str, new_name: str) -> int:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_int64(self._pick(deprecated, new_name))

    def must_int(self, name: str) -> int:
        """Return the value of an integer flag."""
        return self._get(name, _Kind.INT)

    def must_deprecated_int(self, deprecated: str, new_name: str) -> int:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_int(self._pick(deprecated, new_name))

    def must_float64(self, name: str) -> float:
        """Return the value of a floating-point flag."""
        return self._get(name, _Kind.FLOAT64)

    def must_deprecated_float64(self, deprecated: str, new_name: str) -> float:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_float64(self._pick(deprecated, new_name))

    def must_duration(self, name: str) -> timedelta:
        """Return the value of a duration flag."""
        return self._get(name, _Kind.DURATION)

    def must_deprecated_duration(self, deprecated: str, new_name: str) -> timedelta:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_duration(self._pick(deprecated, new_name))

    def must_human_readable_bytes_string(self, name: str) -> str:
        """Return a string flag whose value must be a valid size such as 1MB."""
        value = self.must_string(name)
        try:
            parse_bytes(value)
        except ValueError as err:
            raise FlagError(str(err)) from err
        return value

    def must_deprecated_human_readable_bytes_string(
        self, deprecated: str, new_name: str
    ) -> str:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_human_readable_bytes_string(self._pick(deprecated, new_name))

    def must_regexp(self, name: str) -> regex.Pattern:
        """Return a string flag compiled as a regular expression."""
        value = self.must_string(name)
        try:
            return regex.compile(value)
        except regex.error as err:
            raise FlagError(f"error parsing regexp '{value}': {err}") from err

    def must_deprecated_regexp(self, deprecated: str, new_name: str) -> regex.Pattern:
        """Return the deprecated flag's value if it was set, else the new one's."""
        return self.must_regexp(self._pick(deprecated, new_name))