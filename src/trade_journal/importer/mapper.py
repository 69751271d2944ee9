"""Heuristic column mapping: source header -> canonical trade field.

Each header is scored against a declarative keyword table.  Scores are
nudged by the shape of the column's sample values (numbers, buy/sell
words, dates, clock times) and columns are then assigned greedily, best
score first, so every field ends up with at most one column.

Usage::

    mappings = detect_column_mappings(table)
    mappings = apply_overrides(mappings, {"Ticket": None, "Strategy": CanonicalField.SETUP})
"""

from __future__ import annotations

import logging
import re
from difflib import SequenceMatcher
from typing import Iterable, Mapping

from trade_journal.core.enums import CanonicalField
from trade_journal.core.models import ColumnMapping, RawTable

from .coercion import is_bare_time, is_direction_word, is_numeric, parse_date

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.75

# Keyword table.  Phrases are compared on their compact form
# ("open price" -> "openprice").
FIELD_KEYWORDS: dict[CanonicalField, tuple[str, ...]] = {
    CanonicalField.PAIR: (
        "pair", "symbol", "instrument", "market", "ticker", "item", "currency pair",
    ),
    CanonicalField.DIRECTION: (
        "direction", "side", "type", "buy sell", "action", "trade type", "position",
    ),
    CanonicalField.ENTRY: (
        "entry", "entry price", "open price", "price", "open", "avg price", "fill price",
    ),
    CanonicalField.EXIT: (
        "exit", "exit price", "close price", "close", "closing price", "price 2",
    ),
    CanonicalField.PNL: (
        "pnl", "p l", "p&l", "profit", "net profit", "net", "net p l", "result",
        "gain", "realized pnl", "profit loss",
    ),
    CanonicalField.LOTS: (
        "lots", "lot", "lot size", "size", "volume", "qty", "quantity", "units",
    ),
    CanonicalField.DATE: (
        "date", "open date", "trade date", "date time", "datetime", "open time",
        "time",
    ),
    CanonicalField.TIME: ("time", "open time", "trade time", "entry time"),
    CanonicalField.SETUP: ("setup", "strategy", "pattern", "playbook"),
    CanonicalField.EMOTION: ("emotion", "mood", "feeling", "mental", "psychology"),
    CanonicalField.NOTES: ("notes", "note", "comment", "comments", "remark", "description"),
    CanonicalField.STOP_LOSS: ("stop loss", "stop", "sl", "s l"),
    CanonicalField.TAKE_PROFIT: ("take profit", "tp", "t p", "target"),
}

# Partial weight for keywords that only appear as tokens inside a header
_TOKEN_SUBSET_SCORE = 0.85
_FUZZY_WEIGHT = 0.9
# Keywords so generic that a fuzzy near-miss means nothing
_MIN_FUZZY_LENGTH = 4

_FIELD_ORDER = {f: i for i, f in enumerate(CanonicalField)}


# ---------------------------------------------------------------------------
# Header normalization and scoring
# ---------------------------------------------------------------------------

def header_tokens(header: str) -> list[str]:
    """Lower-case, strip punctuation, split into tokens (``&`` kept)."""
    return [t for t in re.split(r"[^a-z0-9&]+", (header or "").lower()) if t]


def _compact(text: str) -> str:
    return "".join(header_tokens(text))


def header_score(header: str, field: CanonicalField) -> float:
    """Similarity in [0, 1] between *header* and *field*'s keywords."""
    tokens = set(header_tokens(header))
    compact = "".join(header_tokens(header))
    if not compact:
        return 0.0
    best = 0.0
    for phrase in FIELD_KEYWORDS[field]:
        phrase_compact = _compact(phrase)
        if compact == phrase_compact:
            return 1.0
        phrase_tokens = set(header_tokens(phrase))
        if phrase_tokens and phrase_tokens <= tokens:
            best = max(best, _TOKEN_SUBSET_SCORE)
        elif len(phrase_compact) >= _MIN_FUZZY_LENGTH:
            ratio = SequenceMatcher(None, compact, phrase_compact).ratio()
            best = max(best, ratio * _FUZZY_WEIGHT)
    return best


def shape_adjustment(field: CanonicalField, samples: list[str]) -> float:
    """Score nudge from what the column's values look like."""
    if not samples:
        return 0.0
    n = len(samples)
    if field.is_numeric:
        numeric = sum(1 for s in samples if is_numeric(s))
        if numeric == n:
            return 0.05
        if numeric == 0:
            return -0.3
        return 0.0
    if field == CanonicalField.DIRECTION:
        words = sum(1 for s in samples if is_direction_word(s))
        if words == n:
            return 0.1
        return -0.3 if words == 0 else 0.0
    if field in (CanonicalField.DATE, CanonicalField.TIME):
        dated = sum(1 for s in samples if parse_date(s) is not None)
        bare = sum(1 for s in samples if is_bare_time(s))
        if field == CanonicalField.DATE:
            if dated == n:
                return 0.3
            return -0.5 if bare == n else 0.0
        if bare == n:
            return 0.1
        return -0.3 if dated == n else 0.0
    if field == CanonicalField.PAIR:
        return -0.3 if all(is_numeric(s) for s in samples) else 0.0
    return 0.0


def column_samples(table: RawTable, header: str, limit: int = 3) -> list[str]:
    """First *limit* non-empty values of a column."""
    out: list[str] = []
    for value in table.column(header):
        if value.strip():
            out.append(value.strip())
            if len(out) >= limit:
                break
    return out


# ---------------------------------------------------------------------------
# Mapping
# ---------------------------------------------------------------------------

def detect_column_mappings(
    table: RawTable,
    *,
    threshold: float = DEFAULT_THRESHOLD,
    sample_size: int = 3,
) -> list[ColumnMapping]:
    """Auto-assign each column of *table* to zero or one canonical field.

    Candidates scoring at least *threshold* are assigned greedily by
    (score desc, column position asc, field declaration order asc); a
    field taken by a better column is never assigned twice.  An exact
    header match is never penalized by its samples, so a ``Profit``
    column full of garbage still maps to pnl and fails row by row.
    Bonuses are not capped while ranking, which lets ``Type`` with
    buy/sell samples beat a numeric ``Position`` column for direction.
    """
    samples = {h: column_samples(table, h, sample_size) for h in table.headers}
    candidates: list[tuple[float, int, int, CanonicalField]] = []
    for col, header in enumerate(table.headers):
        for f in CanonicalField:
            base = header_score(header, f)
            if base <= 0.0:
                continue
            adjustment = shape_adjustment(f, samples[header])
            if base >= 1.0:
                adjustment = max(adjustment, 0.0)
            score = base + adjustment
            if score >= threshold:
                candidates.append((score, col, _FIELD_ORDER[f], f))

    candidates.sort(key=lambda c: (-c[0], c[1], c[2]))
    assigned: dict[int, tuple[CanonicalField, float]] = {}
    taken: set[CanonicalField] = set()
    for score, col, _, f in candidates:
        if col in assigned or f in taken:
            continue
        assigned[col] = (f, score)
        taken.add(f)

    mappings = []
    for col, header in enumerate(table.headers):
        target, score = assigned.get(col, (None, 0.0))
        mappings.append(
            ColumnMapping(
                source=header,
                target=target,
                sample_values=samples[header],
                score=round(min(score, 1.0), 4),
            )
        )
    logger.debug(
        "Auto-mapped %d of %d columns", len(assigned), len(table.headers)
    )
    return mappings


def add_sample_values(
    mappings: list[ColumnMapping], table: RawTable, limit: int = 3
) -> list[ColumnMapping]:
    """Return copies of *mappings* with fresh sample values from *table*."""
    return [
        m.model_copy(update={"sample_values": column_samples(table, m.source, limit)})
        for m in mappings
    ]


def apply_overrides(
    mappings: list[ColumnMapping],
    overrides: Mapping[str, CanonicalField | str | None]
    | Iterable[tuple[str, CanonicalField | str | None]]
    | None,
    warnings: list[str] | None = None,
) -> list[ColumnMapping]:
    """Apply caller overrides on top of auto-detected mappings.

    An override wins over auto-detection; any other column that held the
    same target is unmapped.  ``None`` unmaps a column.  Overrides for
    unknown headers or unknown field names are reported in *warnings*
    and ignored.
    """
    if not overrides:
        return list(mappings)
    pairs = overrides.items() if isinstance(overrides, Mapping) else overrides
    result = [m.model_copy() for m in mappings]
    by_source = {m.source: m for m in result}

    for source, raw_target in pairs:
        mapping = by_source.get(source)
        if mapping is None:
            if warnings is not None:
                warnings.append(f"Mapping override for unknown column {source!r} ignored")
            continue
        try:
            target = CanonicalField(raw_target) if raw_target is not None else None
        except ValueError:
            if warnings is not None:
                warnings.append(
                    f"Mapping override {source!r} -> {raw_target!r}: unknown field, ignored"
                )
            continue
        if target is not None:
            for other in result:
                if other is not mapping and other.target == target:
                    other.target = None
                    other.score = 0.0
                    other.overridden = False
        mapping.target = target
        mapping.score = 1.0 if target is not None else 0.0
        mapping.overridden = True
    return result


def resolve_conflicts(
    mappings: list[ColumnMapping], warnings: list[str] | None = None
) -> dict[CanonicalField, str]:
    """Build the field -> source lookup, first mapping in column order wins."""
    lookup: dict[CanonicalField, str] = {}
    for m in mappings:
        if m.target is None:
            continue
        if m.target in lookup:
            if warnings is not None:
                warnings.append(
                    f"Columns {lookup[m.target]!r} and {m.source!r} both map to "
                    f"{m.target.value}; using {lookup[m.target]!r}"
                )
            continue
        lookup[m.target] = m.source
    return lookup
