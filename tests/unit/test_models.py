"""Test core models and instrument metadata."""

import datetime as dt
import math

import pytest
from pydantic import ValidationError

from trade_journal.core.enums import Direction, FileType, TradeOutcome
from trade_journal.core.ids import content_hash, new_id
from trade_journal.core.instruments import (
    AssetClass,
    broker_min_lot,
    classify_symbol,
    instrument_spec,
)
from trade_journal.core.models import ImportResult, ImportRowError, RawTable, Trade


class TestTrade:
    def test_minimal_trade(self):
        trade = Trade(pair="EURUSD", direction=Direction.LONG, entry=1.1, pnl=5.0)
        assert trade.setup == "Unknown"
        assert trade.lots == 0.0
        assert trade.date is None
        assert trade.id

    def test_ids_are_unique(self):
        a = Trade(pair="EURUSD", direction=Direction.LONG, entry=1.1, pnl=5.0)
        b = Trade(pair="EURUSD", direction=Direction.LONG, entry=1.1, pnl=5.0)
        assert a.id != b.id

    def test_frozen(self):
        trade = Trade(pair="EURUSD", direction=Direction.LONG, entry=1.1, pnl=5.0)
        with pytest.raises(ValidationError):
            trade.pnl = 10.0

    @pytest.mark.parametrize("pair", ["eurusd", "EU", "EURUSD.M", "ABCDEFGHI"])
    def test_pair_pattern(self, pair):
        with pytest.raises(ValidationError):
            Trade(pair=pair, direction=Direction.LONG, entry=1.1, pnl=0)

    def test_entry_must_be_positive(self):
        with pytest.raises(ValidationError):
            Trade(pair="EURUSD", direction=Direction.LONG, entry=0, pnl=0)

    def test_timestamp(self):
        trade = Trade(
            pair="EURUSD", direction=Direction.SHORT, entry=1.1, pnl=-1,
            date=dt.date(2024, 1, 5), time=dt.time(10, 30),
        )
        assert trade.timestamp == dt.datetime(2024, 1, 5, 10, 30)

    def test_timestamp_date_only_is_midnight(self):
        trade = Trade(
            pair="EURUSD", direction=Direction.SHORT, entry=1.1, pnl=-1,
            date=dt.date(2024, 1, 5),
        )
        assert trade.timestamp == dt.datetime(2024, 1, 5)

    @pytest.mark.parametrize("pnl,outcome", [
        (5.0, TradeOutcome.WIN),
        (-5.0, TradeOutcome.LOSS),
        (0.0, TradeOutcome.BREAKEVEN),
    ])
    def test_outcome(self, pnl, outcome):
        trade = Trade(pair="EURUSD", direction=Direction.LONG, entry=1.1, pnl=pnl)
        assert trade.outcome == outcome

    def test_non_finite_pnl_is_representable(self):
        trade = Trade(pair="EURUSD", direction=Direction.LONG, entry=1.1, pnl=math.nan)
        assert not trade.has_finite_pnl


class TestRawTable:
    def test_column_and_row_numbers(self):
        table = RawTable(
            headers=["A", "B"],
            rows=[{"A": "1", "B": "x"}, {"A": "2", "B": "y"}],
            row_numbers=[3, 5],
        )
        assert table.column("B") == ["x", "y"]
        assert table.row_number(1) == 5

    def test_default_row_numbers_follow_header(self):
        table = RawTable(headers=["A"], rows=[{"A": "1"}, {"A": "2"}])
        assert table.row_number(0) == 2
        assert table.row_number(1) == 3


class TestImportResult:
    def test_failed(self):
        result = ImportResult.failed("boom", FileType.DELIMITED)
        assert not result.success
        assert result.trades == []
        assert result.file_errors == ["boom"]
        assert result.file_type == FileType.DELIMITED

    def test_error_preview_and_counts(self):
        errors = [
            ImportRowError(row=r, column="Profit", value="x", message="not a number")
            for r in (2, 2, 3, 4)
        ]
        result = ImportResult(success=True, errors=errors, skipped_rows=3, total_rows=3)
        assert result.errored_rows == 3
        assert [e.row for e in result.error_preview(2)] == [2, 2]
        assert result.imported_count == 0

    def test_reimport_recognised_by_content_hash(self):
        first = ImportResult(success=True, import_id="a", content_hash="abc123")
        second = ImportResult(success=True, import_id="b", content_hash="abc123")
        other = ImportResult(success=True, import_id="c", content_hash="def456")
        assert second.is_reimport_of(first)
        assert not other.is_reimport_of(first)
        assert not ImportResult(success=False).is_reimport_of(ImportResult(success=False))

    def test_row_error_str(self):
        err = ImportRowError(row=7, column="Profit", value="abc", message="not a number")
        assert str(err) == "Row 7, Profit = 'abc': not a number"


class TestIds:
    def test_new_id_is_uuid4(self):
        assert len(new_id()) == 36

    def test_content_hash_deterministic(self):
        assert content_hash("a", "b") == content_hash("a", "b")
        assert content_hash("a", "b") != content_hash("b", "a")
        assert len(content_hash("x", length=8)) == 8


class TestInstruments:
    @pytest.mark.parametrize("pair,asset_class", [
        ("EURUSD", AssetClass.FX),
        ("USDJPY", AssetClass.FX_YEN),
        ("XAUUSD", AssetClass.METAL),
        ("BTCUSD", AssetClass.CRYPTO),
        ("US30", AssetClass.INDEX),
    ])
    def test_classify(self, pair, asset_class):
        assert classify_symbol(pair) == asset_class

    def test_same_price_within_half_tick(self):
        spec = instrument_spec("EURUSD")
        assert spec.same_price(1.08500, 1.08504)
        assert not spec.same_price(1.08500, 1.08510)

    @pytest.mark.parametrize("pair,tick", [
        ("EURUSD", 0.0001),
        ("GBPJPY", 0.01),
        ("XAUUSD", 0.01),
        ("BTCUSD", 1.0),
        ("NAS100", 1.0),
    ])
    def test_tick_size(self, pair, tick):
        spec = instrument_spec(pair)
        assert spec.tick_size == tick
        assert spec.asset_class == classify_symbol(pair)

    def test_broker_min_lot(self):
        assert broker_min_lot("OANDA Corporation") == 0.001
        assert broker_min_lot("PlexyTrade Ltd") == 0.01
        assert broker_min_lot("Unknown Broker", default=0.1) == 0.1
        assert broker_min_lot(None, default=0.05) == 0.05
