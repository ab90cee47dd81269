"""Type-directed parsing of single environment strings.

Example:
    parser = DefaultParser()
    parser.parse_type("14", UInt)             # -> UInt(14)
    parser.parse_type("1, -2, 3", List[int])  # -> [1, -2, 3]
    parser.parse_type("1h2m", Duration)       # -> Duration('1h2m0s')
"""

from __future__ import annotations

import re
import struct
from datetime import datetime
from typing import Any, List

from envbind.core.descriptors import Kind, TypeDescriptor, describe_type
from envbind.core.duration import parse_duration
from envbind.core.errors import (
    ElementError,
    EnvError,
    InvalidFormat,
    Overflow,
    UnsupportedType,
)
from envbind.core.kinds import FLOAT32_MAX, Duration, int_bounds

_UINT_RE = re.compile(r"[0-9]+")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)
_SPECIAL_FLOATS = {"inf", "infinity", "nan"}

_TRUE = {"1", "t", "true"}
_FALSE = {"0", "f", "false"}


class DefaultParser:
    """Parses strings into numbers, booleans, strings, durations and sequences.

    Optional[T] hints are treated as references to T: the string is parsed
    as T. Sequences are comma separated, with each element trimmed before it
    is parsed; the empty string is the empty sequence.

    The parser holds no state and can be shared freely.
    """

    def parse_type(self, value: str, tp: Any) -> Any:
        """Parse ``value`` into an instance of the type hint ``tp``.

        Raises:
            InvalidFormat, Overflow, ElementError, UnsupportedType
        """
        return self.parse(value, describe_type(tp))

    def parse(self, value: str, td: TypeDescriptor) -> Any:
        """Parse ``value`` against an already built descriptor."""
        if td.kind is Kind.DURATION:
            return self._parse_duration(value, td)
        if td.kind is Kind.POINTER:
            return self.parse(value, td.elem)
        if td.kind is Kind.STRING:
            return td.py_type(value.strip())
        if td.kind is Kind.BOOL:
            return self._parse_bool(value)
        if td.kind is Kind.UINT:
            return self._parse_int(value, td, _UINT_RE, signed=False)
        if td.kind is Kind.INT:
            return self._parse_int(value, td, _INT_RE, signed=True)
        if td.kind is Kind.FLOAT:
            return self._parse_float(value, td)
        if td.kind is Kind.SEQUENCE:
            return self._parse_sequence(value, td)
        if td.kind is Kind.TIME:
            return self._parse_time(value, td)
        raise UnsupportedType(f"cannot unmarshal objects of type {td.name}")

    def _parse_duration(self, value: str, td: TypeDescriptor) -> Any:
        try:
            duration = parse_duration(value)
        except EnvError as e:
            e.wrap(f'could not parse duration "{value}"')
            raise
        if issubclass(td.py_type, Duration):
            return td.py_type(duration)
        return duration.to_timedelta()

    def _parse_bool(self, value: str) -> bool:
        lowered = value.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise InvalidFormat(f"cannot convert {value} to a boolean value")

    def _parse_int(
        self, value: str, td: TypeDescriptor, pattern: re.Pattern, *, signed: bool
    ) -> int:
        if not pattern.fullmatch(value):
            raise InvalidFormat(f"cannot convert {value} to {td.name}")
        number = int(value, 10)
        low, high = int_bounds(td.bits, signed)
        if not low <= number <= high:
            raise Overflow(f"the value {number} overflows type {td.name}")
        return td.py_type(number)

    def _parse_float(self, value: str, td: TypeDescriptor) -> float:
        if not _FLOAT_RE.fullmatch(value):
            raise InvalidFormat(f"cannot convert {value} to {td.name}")
        number = float(value)
        literal = value.lstrip("+-").lower()
        if literal not in _SPECIAL_FLOATS:
            if number in (float("inf"), float("-inf")):
                raise Overflow(f"the value {value} overflows type {td.name}")
            if td.bits == 32:
                if abs(number) > FLOAT32_MAX:
                    raise Overflow(f"the value {number} overflows type {td.name}")
                number = struct.unpack("f", struct.pack("f", number))[0]
        return td.py_type(number)

    def _parse_sequence(self, value: str, td: TypeDescriptor) -> Any:
        # "" reads better as an empty list than as a list with one empty element
        parts = value.split(",") if value else []
        items: List[Any] = []
        for i, part in enumerate(parts):
            try:
                items.append(self.parse(part.strip(), td.elem))
            except EnvError as e:
                raise ElementError(i, e) from e
        return td.container(items)

    def _parse_time(self, value: str, td: TypeDescriptor) -> datetime:
        try:
            return td.py_type.fromisoformat(value)
        except ValueError as e:
            raise InvalidFormat(f"cannot convert {value} to {td.name}: {e}") from e
