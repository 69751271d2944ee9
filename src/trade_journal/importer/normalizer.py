"""Row normalization: mapped ``RawTable`` rows -> canonical ``Trade`` records.

Coercion failures never abort a batch.  A failure in a required field
(pair, direction, entry, pnl) skips the row after every failure of that
row has been recorded as an ``ImportRowError``; failures in optional
fields drop the field and add a warning.

Usage::

    result = convert_rows(table, mappings, min_lot=0.01)
    print(result.imported_count, result.skipped_rows)
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from trade_journal.core.enums import REQUIRED_FIELDS, CanonicalField
from trade_journal.core.instruments import instrument_spec
from trade_journal.core.models import (
    ColumnMapping,
    ImportResult,
    ImportRowError,
    RawTable,
    Trade,
)

from .coercion import parse_date_time, parse_direction, parse_number, parse_pair, parse_time
from .mapper import resolve_conflicts

logger = logging.getLogger(__name__)

F = CanonicalField

_PRICE_FIELDS = (F.EXIT, F.STOP_LOSS, F.TAKE_PROFIT)
_TEXT_FIELDS = (F.EMOTION, F.NOTES)


class _RowContext:
    """Errors and warnings collected while converting one row."""

    def __init__(self, row_number: int, lookup: dict[CanonicalField, str], row: dict[str, str]):
        self.row_number = row_number
        self.lookup = lookup
        self.row = row
        self.errors: list[ImportRowError] = []
        self.warnings: list[str] = []

    def cell(self, f: CanonicalField) -> str:
        source = self.lookup.get(f)
        return (self.row.get(source, "") if source else "").strip()

    def fail(self, f: CanonicalField, value: str, message: str) -> None:
        column = self.lookup.get(f, f.value)
        self.errors.append(
            ImportRowError(row=self.row_number, column=column, value=value, message=message)
        )

    def warn(self, f: CanonicalField, value: str, message: str) -> None:
        column = self.lookup.get(f, f.value)
        self.warnings.append(f"Row {self.row_number}: {column} {value!r} {message}")


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _required(ctx: _RowContext) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for f in (F.PAIR, F.DIRECTION, F.ENTRY, F.PNL):
        if f not in ctx.lookup:
            # Entry is tolerated as a whole-file gap; see convert_rows
            if f != F.ENTRY:
                ctx.fail(f, "", f"no column mapped to {f.value}")
            continue
        raw = ctx.cell(f)
        if not raw:
            ctx.fail(f, raw, f"{f.value} is required but empty")
            continue

        if f == F.PAIR:
            value = parse_pair(raw)
            if value is None:
                ctx.fail(f, raw, "not a valid symbol (expected 3-8 letters or digits)")
        elif f == F.DIRECTION:
            value = parse_direction(raw)
            if value is None:
                ctx.fail(f, raw, "direction must be buy/long or sell/short")
        else:
            value = parse_number(raw)
            if value is None:
                ctx.fail(f, raw, "not a number")
            elif f == F.ENTRY and value <= 0:
                ctx.fail(f, raw, "entry price must be positive")
                value = None
        if value is not None:
            values[f.value] = value
    return values


def _optional(ctx: _RowContext, min_lot: float, default_setup: str) -> dict[str, Any]:
    values: dict[str, Any] = {}

    for f in _PRICE_FIELDS:
        raw = ctx.cell(f)
        if not raw:
            continue
        price = parse_number(raw)
        if price is None:
            ctx.warn(f, raw, "is not a number; ignored")
        elif price < 0:
            ctx.warn(f, raw, "is negative; ignored")
        else:
            values[f.value] = price

    raw = ctx.cell(F.LOTS)
    if raw:
        lots = parse_number(raw)
        if lots is None:
            ctx.warn(F.LOTS, raw, "is not a number; lots set to 0")
            lots = 0.0
        elif lots < 0:
            ctx.warn(F.LOTS, raw, "is negative; lots set to 0")
            lots = 0.0
        elif 0 < lots < min_lot:
            ctx.warn(F.LOTS, raw, f"is below the broker minimum of {min_lot}; lots set to 0")
            lots = 0.0
        values["lots"] = lots

    raw = ctx.cell(F.DATE)
    if raw:
        day, clock = parse_date_time(raw)
        if day is None:
            ctx.warn(F.DATE, raw, "is not a recognized date; trade has no date")
        else:
            values["date"] = day
            if clock is not None:
                values["time"] = clock

    raw = ctx.cell(F.TIME)
    if raw:
        clock = parse_time(raw)
        if clock is None:
            # Some exports repeat the full timestamp in the time column
            clock = parse_date_time(raw)[1]
        if clock is None:
            ctx.warn(F.TIME, raw, "is not a recognized time; ignored")
        else:
            values["time"] = clock

    values["setup"] = ctx.cell(F.SETUP) or default_setup
    for f in _TEXT_FIELDS:
        raw = ctx.cell(f)
        if raw:
            values[f.value] = raw
    return values


def _column_for(lookup: dict[CanonicalField, str], name: str) -> str:
    try:
        return lookup.get(CanonicalField(name), name)
    except ValueError:
        return name


def _check_prices(ctx: _RowContext, values: dict[str, Any]) -> None:
    entry, exit_ = values.get("entry"), values.get("exit")
    if entry is None or exit_ is None:
        return
    spec = instrument_spec(values["pair"])
    if spec.same_price(entry, exit_):
        ctx.warnings.append(
            f"Row {ctx.row_number}: entry {entry} and exit {exit_} are equal "
            f"within the {values['pair']} tick size ({spec.tick_size})"
        )


# ---------------------------------------------------------------------------
# Batch conversion
# ---------------------------------------------------------------------------

def convert_rows(
    table: RawTable,
    mappings: list[ColumnMapping],
    *,
    min_lot: float = 0.01,
    default_setup: str = "Unknown",
) -> ImportResult:
    """Convert every row of *table* using *mappings*.

    Parameters
    ----------
    table : RawTable
        Parsed source table.
    mappings : list[ColumnMapping]
        Finalized mappings.  If two columns still target one field, the
        first in column order is used and a warning is recorded.
    min_lot : float
        Broker minimum lot; non-zero sizes below it are reset to 0.
    default_setup : str
        Setup name for rows with no setup value.

    Returns
    -------
    ImportResult
        ``success`` is always true here; ``len(trades) + skipped_rows``
        equals the number of table rows.
    """
    warnings: list[str] = []
    lookup = resolve_conflicts(mappings, warnings)

    missing_required = [f for f in F if f in REQUIRED_FIELDS and f not in lookup]
    for f in missing_required:
        if f == F.ENTRY:
            warnings.append(
                "No column mapped to entry; trades are imported without an entry price"
            )
        else:
            warnings.append(f"No column mapped to required field {f.value}; every row will fail")
    if F.DATE not in lookup:
        warnings.append("No column mapped to optional field date; trades have no date")

    trades: list[Trade] = []
    errors: list[ImportRowError] = []
    skipped = 0

    for index, row in enumerate(table.rows):
        ctx = _RowContext(table.row_number(index), lookup, row)
        values = _required(ctx)
        optional = _optional(ctx, min_lot, default_setup)

        if ctx.errors:
            errors.extend(ctx.errors)
            skipped += 1
            continue

        values.update(optional)
        if values.get("exit") is None and values.get("entry") is not None:
            values["exit"] = values["entry"]
        else:
            _check_prices(ctx, values)

        try:
            trade = Trade(source_row=ctx.row_number, **values)
        except ValidationError as exc:
            for detail in exc.errors():
                loc = str(detail["loc"][0]) if detail.get("loc") else ""
                errors.append(
                    ImportRowError(
                        row=ctx.row_number,
                        column=_column_for(lookup, loc),
                        value=str(detail.get("input", "")),
                        message=detail.get("msg", "invalid value"),
                    )
                )
            skipped += 1
            continue

        warnings.extend(ctx.warnings)
        trades.append(trade)

    if skipped:
        logger.info(
            "Converted %d of %d rows; %d skipped", len(trades), len(table.rows), skipped
        )
    return ImportResult(
        success=True,
        trades=trades,
        errors=errors,
        warnings=warnings,
        skipped_rows=skipped,
        total_rows=len(table.rows),
    )
