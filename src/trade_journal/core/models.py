"""Core domain models for the import pipeline.

These are the canonical "truth models" of the journal core.  Every broker
format is reduced to these types; nothing format-specific leaks out.
"""

from __future__ import annotations

import datetime as dt
import math

from pydantic import BaseModel, ConfigDict, Field

from .enums import CanonicalField, Direction, FileType, TradeOutcome
from .ids import new_id

PAIR_PATTERN = r"^[A-Z0-9]{3,8}$"


# ---------------------------------------------------------------------------
# Parsed source table
# ---------------------------------------------------------------------------

class RawTable(BaseModel):
    """Header names plus rows of string cells, exactly as parsed.

    ``headers`` are unique (duplicates are suffixed ``"Price 2"``) and each
    row maps every header to its cell, in header order.
    """

    model_config = ConfigDict(frozen=True)

    headers: list[str]
    rows: list[dict[str, str]] = Field(default_factory=list)
    # 1-based source row of each data row; empty means "header on row 1,
    # data rows consecutive from row 2"
    row_numbers: list[int] = Field(default_factory=list)

    def column(self, header: str) -> list[str]:
        """All cells of one column, in row order."""
        return [row.get(header, "") for row in self.rows]

    def row_number(self, index: int) -> int:
        """Source-file row number for the 0-based data row *index*."""
        if index < len(self.row_numbers):
            return self.row_numbers[index]
        return index + 2


class ColumnMapping(BaseModel):
    """Assignment of one source column to zero or one canonical field."""

    source: str
    target: CanonicalField | None = None
    sample_values: list[str] = Field(default_factory=list)
    score: float = 0.0  # Similarity that selected the target
    overridden: bool = False  # Set by a caller override, not auto-detected


# ---------------------------------------------------------------------------
# Canonical trade
# ---------------------------------------------------------------------------

class Trade(BaseModel):
    """One canonical, immutable trade record.

    Created by the row normalizer from a single source row and never
    mutated afterwards.  ``entry`` is only ``None`` when the source file
    has no entry-price column at all.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    pair: str = Field(pattern=PAIR_PATTERN)
    direction: Direction
    entry: float | None = Field(default=None, gt=0)
    exit: float | None = Field(default=None, ge=0)
    lots: float = Field(default=0.0, ge=0)
    pnl: float
    date: dt.date | None = None
    time: dt.time | None = None
    setup: str = "Unknown"
    emotion: str | None = None
    notes: str | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    source_row: int | None = None  # 1-based row in the imported file

    @property
    def timestamp(self) -> dt.datetime | None:
        """Combined date and time; midnight when only the date is known."""
        if self.date is None:
            return None
        return dt.datetime.combine(self.date, self.time or dt.time(0, 0))

    @property
    def has_finite_pnl(self) -> bool:
        return math.isfinite(self.pnl)

    @property
    def outcome(self) -> TradeOutcome:
        """Win / loss / break-even classification."""
        if self.pnl > 0:
            return TradeOutcome.WIN
        if self.pnl < 0:
            return TradeOutcome.LOSS
        return TradeOutcome.BREAKEVEN


# ---------------------------------------------------------------------------
# Import outcome
# ---------------------------------------------------------------------------

class ImportRowError(BaseModel):
    """A non-fatal problem with one cell of one source row."""

    row: int  # 1-based, matching the source file
    column: str
    value: str
    message: str

    def __str__(self) -> str:
        return f"Row {self.row}, {self.column} = {self.value!r}: {self.message}"


class AccountInfo(BaseModel):
    """Account metadata found in a broker report header (all best-effort)."""

    name: str | None = None
    account_number: str | None = None
    broker: str | None = None
    currency: str | None = None

    @property
    def is_empty(self) -> bool:
        return not any((self.name, self.account_number, self.broker, self.currency))


class ImportResult(BaseModel):
    """Everything one import run produced.

    When ``success`` is true, ``len(trades) + skipped_rows == total_rows``.
    When false, ``file_errors`` says why and no trades are returned.

    ``content_hash`` is the same for every import of byte-identical
    content, so callers can recognise a re-import; ``import_id`` is unique
    per run and matches the ``import_id`` on that run's log events.
    """

    success: bool
    import_id: str = ""
    content_hash: str = ""
    trades: list[Trade] = Field(default_factory=list)
    errors: list[ImportRowError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    skipped_rows: int = 0
    total_rows: int = 0
    file_type: FileType = FileType.UNKNOWN
    account_info: AccountInfo | None = None
    starting_balance: float | None = None
    file_errors: list[str] = Field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.trades)

    @property
    def errored_rows(self) -> int:
        """Distinct source rows with at least one error."""
        return len({e.row for e in self.errors})

    def error_preview(self, limit: int = 10) -> list[ImportRowError]:
        """The first *limit* errors, in source-row order."""
        return self.errors[:limit]

    def is_reimport_of(self, other: ImportResult) -> bool:
        """True when both runs read the same non-empty content."""
        return bool(self.content_hash) and self.content_hash == other.content_hash

    @classmethod
    def failed(
        cls,
        message: str,
        file_type: FileType = FileType.UNKNOWN,
        *,
        import_id: str = "",
        content_hash: str = "",
    ) -> ImportResult:
        """Fatal, file-level failure."""
        return cls(
            success=False,
            import_id=import_id,
            content_hash=content_hash,
            file_type=file_type,
            file_errors=[message],
        )


class ImportPreview(BaseModel):
    """First half of a two-step import: parsed table plus proposed mappings.

    The caller reviews or edits ``mappings`` and hands the preview back to
    :func:`trade_journal.importer.pipeline.convert`.
    """

    filename: str = ""
    import_id: str = ""
    content_hash: str = ""
    file_type: FileType
    table: RawTable
    mappings: list[ColumnMapping]
    account_info: AccountInfo | None = None
    starting_balance: float | None = None
    warnings: list[str] = Field(default_factory=list)

    @property
    def unmapped_columns(self) -> list[str]:
        return [m.source for m in self.mappings if m.target is None]

    @property
    def mapped_fields(self) -> set[CanonicalField]:
        return {m.target for m in self.mappings if m.target is not None}
