"""Width-carrying numeric kinds and the nanosecond Duration.

Python's ``int`` and ``float`` are unbounded/double precision, so fields that
need an exact destination width declare one of the classes below instead:

    @dataclass
    class Limits:
        retries: UInt8 = env_field("RETRIES")
        ratio: Float32 = env_field("RATIO")

Plain ``int`` fields behave as signed 64-bit and plain ``float`` as 64-bit.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, ClassVar, Tuple

from pydantic import GetCoreSchemaHandler
from pydantic_core import core_schema


class FixedInt(int):
    """An ``int`` tagged with a bit width and signedness."""

    bits: ClassVar[int] = 64
    signed: ClassVar[bool] = True

    @classmethod
    def bounds(cls) -> Tuple[int, int]:
        """Inclusive (min, max) range representable by the type."""
        return int_bounds(cls.bits, cls.signed)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        low, high = cls.bounds()
        return core_schema.no_info_after_validator_function(
            cls, core_schema.int_schema(ge=low, le=high)
        )


class Int8(FixedInt):
    bits = 8


class Int16(FixedInt):
    bits = 16


class Int32(FixedInt):
    bits = 32


class Int64(FixedInt):
    bits = 64


class UInt8(FixedInt):
    bits = 8
    signed = False


class UInt16(FixedInt):
    bits = 16
    signed = False


class UInt32(FixedInt):
    bits = 32
    signed = False


class UInt64(FixedInt):
    bits = 64
    signed = False


class UInt(FixedInt):
    """Native-width unsigned integer (64 bits)."""

    bits = 64
    signed = False


class FixedFloat(float):
    """A ``float`` tagged with a bit width."""

    bits: ClassVar[int] = 64

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls, core_schema.float_schema()
        )


class Float32(FixedFloat):
    bits = 32


class Float64(FixedFloat):
    bits = 64


def int_bounds(bits: int, signed: bool) -> Tuple[int, int]:
    """Inclusive range of a two's complement (or unsigned) integer."""
    if signed:
        return -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    return 0, (1 << bits) - 1


# Float limits
FLOAT32_MAX: float = 3.4028234663852886e38

# --- Duration --- #
NANOSECOND: int = 1
MICROSECOND: int = 1000 * NANOSECOND
MILLISECOND: int = 1000 * MICROSECOND
SECOND: int = 1000 * MILLISECOND
MINUTE: int = 60 * SECOND
HOUR: int = 60 * MINUTE

DURATION_MIN, DURATION_MAX = int_bounds(64, True)


class Duration(int):
    """Signed count of nanoseconds, printed like ``1h2m0.0002s``."""

    @classmethod
    def from_timedelta(cls, td: timedelta) -> "Duration":
        """Convert a timedelta (microsecond resolution) to a Duration."""
        micros = (td.days * 86400 + td.seconds) * 1_000_000 + td.microseconds
        return cls(micros * MICROSECOND)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(cls._coerce)

    @classmethod
    def _coerce(cls, value: Any) -> "Duration":
        """Accept Durations, nanosecond ints, timedeltas and duration literals."""
        if isinstance(value, timedelta):
            return cls.from_timedelta(value)
        if isinstance(value, str):
            from envbind.core.duration import parse_duration

            return cls(parse_duration(value))
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        raise ValueError(f"cannot interpret {value!r} as a duration")

    def to_timedelta(self) -> timedelta:
        """Convert to a timedelta, truncating below one microsecond."""
        td = timedelta(microseconds=abs(int(self)) // MICROSECOND)
        return -td if self < 0 else td

    def __repr__(self) -> str:
        return f"Duration({str(self)!r})"

    def __str__(self) -> str:
        ns = int(self)
        if ns == 0:
            return "0s"
        sign = "-" if ns < 0 else ""
        ns = abs(ns)

        if ns < SECOND:
            for unit, size in (("ms", MILLISECOND), ("µs", MICROSECOND)):
                if ns >= size:
                    return f"{sign}{_format_fraction(ns, size)}{unit}"
            return f"{sign}{ns}ns"

        hours, rem = divmod(ns, HOUR)
        minutes, rem = divmod(rem, MINUTE)
        out = sign
        if hours:
            out += f"{hours}h"
        if hours or minutes:
            out += f"{minutes}m"
        return f"{out}{_format_fraction(rem, SECOND)}s"


def _format_fraction(value: int, size: int) -> str:
    whole, frac = divmod(value, size)
    if not frac:
        return str(whole)
    width = len(str(size)) - 1
    return f"{whole}.{str(frac).rjust(width, '0').rstrip('0')}"
