"""Robust coercion of broker export cells into typed values.

Every function here is total: it returns ``None`` for anything it cannot
interpret instead of raising, so the row normalizer can turn failures
into reportable errors.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time

from trade_journal.core.enums import Direction
from trade_journal.core.models import PAIR_PATTERN

# ---------------------------------------------------------------------------
# Numbers
# ---------------------------------------------------------------------------

_CURRENCY_SYMBOLS = "$€£¥₹"
_CURRENCY_CODES = re.compile(
    r"\b(?:USD|USDT|USC|EUR|GBP|JPY|CAD|AUD|CHF|NZD)\b", re.IGNORECASE
)
_DASHES = {"−": "-", "–": "-", "—": "-"}
_PLAIN_NUMBER = re.compile(r"^(?:\d+(?:\.\d*)?|\.\d+)$")
_COMMA_THOUSANDS = re.compile(r"^\d{1,3}(?:,\d{3})+(?:\.\d*)?$")
_DOT_THOUSANDS = re.compile(r"^\d{1,3}(?:\.\d{3})+(?:,\d*)?$")


def _normalize_separators(s: str) -> str | None:
    """Reduce thousands/decimal separators to a plain ``1234.5`` form."""
    has_comma, has_dot = "," in s, "." in s
    if has_comma and has_dot:
        if s.rfind(",") > s.rfind("."):
            # European: 1.234,56
            if not _DOT_THOUSANDS.match(s):
                return None
            return s.replace(".", "").replace(",", ".")
        if not _COMMA_THOUSANDS.match(s):
            return None
        return s.replace(",", "")
    if has_comma:
        if _COMMA_THOUSANDS.match(s):
            return s.replace(",", "")
        if s.count(",") == 1:
            return s.replace(",", ".")
        return None
    if s.count(".") > 1:
        return s.replace(".", "") if _DOT_THOUSANDS.match(s) else None
    return s


def parse_number(value: str | None) -> float | None:
    """Parse a numeric cell, ignoring currency marks and thousands separators.

    Handles ``$1,234.50``, ``1 234,50 €``, ``(12.50)`` and ``12.50-``
    (accounting negatives), and unicode minus signs.  Returns ``None``
    for empty or non-numeric input.
    """
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None

    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1].strip()
    for dash, ascii_dash in _DASHES.items():
        s = s.replace(dash, ascii_dash)
    s = _CURRENCY_CODES.sub("", s)
    for sym in _CURRENCY_SYMBOLS:
        s = s.replace(sym, "")
    s = s.replace(" ", "").replace("\xa0", "").replace("'", "")

    if s.endswith("-"):
        negative = not negative
        s = s[:-1]
    if s.startswith("+"):
        s = s[1:]
    elif s.startswith("-"):
        negative = not negative
        s = s[1:]
    if not s:
        return None

    normalized = _normalize_separators(s)
    if normalized is None or not _PLAIN_NUMBER.match(normalized):
        return None
    number = float(normalized)
    return -number if negative else number


def is_numeric(value: str | None) -> bool:
    return parse_number(value) is not None


# ---------------------------------------------------------------------------
# Direction
# ---------------------------------------------------------------------------

_LONG_WORDS = frozenset({"buy", "long", "b", "1", "up"})
_SHORT_WORDS = frozenset({"sell", "short", "s", "-1", "down"})


def parse_direction(value: str | None) -> Direction | None:
    """Map buy/long/b to Long and sell/short/s to Short (case-insensitive).

    MT4 order types such as ``buy limit`` or ``sell stop`` resolve by
    their first word.
    """
    v = (value or "").strip().lower()
    if not v:
        return None
    if v in _LONG_WORDS:
        return Direction.LONG
    if v in _SHORT_WORDS:
        return Direction.SHORT
    first = v.split()[0]
    if first in ("buy", "long"):
        return Direction.LONG
    if first in ("sell", "short"):
        return Direction.SHORT
    return None


def is_direction_word(value: str | None) -> bool:
    return parse_direction(value) is not None


# ---------------------------------------------------------------------------
# Dates and times
# ---------------------------------------------------------------------------

# Ordered; the first format that parses wins
DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y.%m.%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%m/%d/%y",
    "%d.%m.%Y",
    "%d-%m-%Y",
)

TIME_FORMATS = (
    "%H:%M:%S",
    "%H:%M",
    "%H:%M:%S.%f",
    "%I:%M:%S %p",
    "%I:%M %p",
    "%I:%M:%S%p",
    "%I:%M%p",
)

_DATETIME_SPLIT = re.compile(r"^(\S+?)(?:[T\s]+(.+))?$")
_TZ_SUFFIX = re.compile(r"(?:Z|[+-]\d{2}:?\d{2})$")


def parse_time(value: str | None) -> time | None:
    """Parse a clock time such as ``14:30``, ``14:30:05`` or ``2:30 PM``."""
    s = (value or "").strip()
    if not s:
        return None
    s = _TZ_SUFFIX.sub("", s).strip()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(s.upper(), fmt).time()
        except ValueError:
            continue
    return None


def _parse_date_part(s: str) -> date | None:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def parse_date_time(value: str | None) -> tuple[date | None, time | None]:
    """Parse a date or combined date-time cell.

    Returns ``(date, time)``.  The time component is split off when
    present (``2024.01.05 10:30:00``, ``2024-01-05T10:30``); ``time`` is
    ``None`` for pure dates.  ``(None, None)`` means the date could not
    be parsed.
    """
    s = (value or "").strip()
    if not s:
        return None, None
    m = _DATETIME_SPLIT.match(s)
    if m is None:
        return None, None
    date_part, time_part = m.group(1), m.group(2)
    parsed = _parse_date_part(date_part)
    if parsed is None:
        return None, None
    return parsed, parse_time(time_part) if time_part else None


def parse_date(value: str | None) -> date | None:
    return parse_date_time(value)[0]


def is_bare_time(value: str | None) -> bool:
    """True for clock times with no calendar date (``09:30``)."""
    return parse_date(value) is None and parse_time(value) is not None


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------

_PAIR_RE = re.compile(PAIR_PATTERN)
_PAIR_JOINERS = re.compile(r"[\s/\-_]")
_PAIR_SUFFIX = re.compile(r"[#+!]+$")


def parse_pair(value: str | None) -> str | None:
    """Normalize a symbol to ``^[A-Z0-9]{3,8}$`` or return ``None``.

    ``EUR/USD`` becomes ``EURUSD``; broker suffixes after a dot
    (``EURUSD.m``, ``US30.cash``) or trailing ``#``/``+`` are dropped.
    """
    s = (value or "").strip().upper()
    if not s:
        return None
    if "." in s and not s.startswith("."):
        s = s.split(".", 1)[0]
    s = _PAIR_SUFFIX.sub("", _PAIR_JOINERS.sub("", s))
    return s if _PAIR_RE.match(s) else None
