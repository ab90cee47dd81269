"""Duration literal parsing.

A duration is a possibly signed sequence of decimal numbers, each with an
optional fraction and a unit suffix, such as ``300ms``, ``-1.5h`` or
``2h45m``. Valid units are ``ns``, ``us`` (or ``µs``), ``ms``, ``s``, ``m``
and ``h``. The bare literal ``0`` needs no unit.
"""

from __future__ import annotations

import re
from fractions import Fraction

from envbind.core.errors import InvalidFormat, Overflow
from envbind.core.kinds import (
    DURATION_MAX,
    DURATION_MIN,
    HOUR,
    MICROSECOND,
    MILLISECOND,
    MINUTE,
    NANOSECOND,
    SECOND,
    Duration,
)

UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # micro sign
    "μs": MICROSECOND,  # greek mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

# A unit runs until the next digit or dot, so "1h-30m" yields the unit "h-".
_COMPONENT = re.compile(r"(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?(?P<unit>[^0-9.]*)")


def parse_duration(text: str) -> Duration:
    """Parse a duration literal into a :class:`Duration`.

    Raises:
        InvalidFormat: if the text is not a sequence of number+unit pairs.
        Overflow: if the total does not fit in signed 64-bit nanoseconds.
    """
    s = text
    negative = False
    if s and s[0] in "+-":
        negative = s[0] == "-"
        s = s[1:]

    if s == "0":
        return Duration(0)
    if not s:
        raise InvalidFormat(f'invalid duration "{text}"')

    total = 0
    pos = 0
    while pos < len(s):
        m = _COMPONENT.match(s, pos)
        whole, frac, unit = m.group("whole"), m.group("frac"), m.group("unit")
        if not whole and not frac:
            raise InvalidFormat(f'invalid duration "{text}"')
        if not unit:
            raise InvalidFormat(f'missing unit in duration "{text}"')
        if unit not in UNITS:
            raise InvalidFormat(f'unknown unit "{unit}" in duration "{text}"')

        amount = Fraction(int(whole or "0"))
        if frac:
            amount += Fraction(int(frac), 10 ** len(frac))
        total += int(amount * UNITS[unit])
        if total > -DURATION_MIN:
            raise Overflow(f'duration "{text}" overflows 64-bit nanoseconds')
        pos = m.end()

    if negative:
        total = -total
    if not DURATION_MIN <= total <= DURATION_MAX:
        raise Overflow(f'duration "{text}" overflows 64-bit nanoseconds')
    return Duration(total)
