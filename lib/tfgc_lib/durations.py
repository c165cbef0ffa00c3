"""
Parsing of Go-style duration strings such as ``2h``, ``90m`` or ``1h30m``.
"""

import re
from datetime import timedelta

_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,  # U+00B5 micro sign
    'μs': 1e-6,  # U+03BC Greek mu
    'ms': 1e-3,
    's': 1,
    'm': 60,
    'h': 3600,
}

_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)')

# Largest duration Go can represent: int64 nanoseconds, about 2562047h
MAX_SECONDS = (2 ** 63 - 1) / 1e9


def parse_duration(value: str) -> timedelta:
    """Parse a duration like ``2h`` or ``1h30m`` into a timedelta.

    Raises ValueError for anything that is not a sequence of number+unit pairs
    or that is longer than a Go duration can hold. A bare ``0`` is accepted,
    as Go does.
    """
    text = value.strip()
    if text in ('0', '+0'):
        return timedelta(0)

    negative = text.startswith('-')
    if text[:1] in ('-', '+'):
        text = text[1:]
    if not text:
        raise ValueError(f'invalid duration {value!r}')

    seconds = 0.0
    pos = 0
    while pos < len(text):
        m = _PART.match(text, pos)
        if not m:
            raise ValueError(f'invalid duration {value!r}')
        seconds += float(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()

    if seconds > MAX_SECONDS:
        raise ValueError(f'invalid duration {value!r}: out of range')
    try:
        return timedelta(seconds=-seconds if negative else seconds)
    except OverflowError as e:
        raise ValueError(f'invalid duration {value!r}: out of range') from e


def format_duration(delta: timedelta) -> str:
    """Render a timedelta compactly, e.g. ``2h0m0s``."""
    total = int(delta.total_seconds())
    sign = '-' if total < 0 else ''
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f'{sign}{hours}h{minutes}m{seconds}s'
    if minutes:
        return f'{sign}{minutes}m{seconds}s'
    return f'{sign}{seconds}s'
