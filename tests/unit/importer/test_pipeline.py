"""End-to-end tests of the import pipeline (bytes in, ImportResult out)."""

import datetime as dt

import pytest

from trade_journal.core.config import ImportConfig, Settings
from trade_journal.core.enums import CanonicalField, Direction, FileType
from trade_journal.core.errors import EmptyContentError, ImportFailure
from trade_journal.importer import apply_overrides, convert, import_file, prepare_import
from trade_journal.importer.tabular import FIELD_SIZE_LIMIT

SCENARIO_B_CSV = (
    b"Date,Symbol,Type,Price,Close,Lots,Profit\n"
    b"2024-01-05,EURUSD,buy,1.0850,1.0900,0.10,abc\n"
)

SCENARIO_C_CSV = (
    b"Ticket,Symbol,Type,Profit\n"
    b"1001,EURUSD,buy,50.00\n"
    b"1002,GBPUSD,sell,-20.00\n"
)


def _broker_report(company: str, volume: str) -> str:
    return (
        "<html><body><table>"
        f"<tr><td>Company:</td><td>{company}</td></tr>"
        "<tr><td>Time</td><td>Symbol</td><td>Type</td><td>Volume</td>"
        "<td>Price</td><td>Profit</td></tr>"
        f"<tr><td>2024.01.10 08:15:00</td><td>EURUSD</td><td>buy</td><td>{volume}</td>"
        "<td>1.0850</td><td>3.20</td></tr>"
        "</table></body></html>"
    )


class TestScenarios:
    def test_single_clean_row(self, scenario_a_csv, settings):
        result = import_file(scenario_a_csv, "trades.csv", settings=settings)
        assert result.success
        assert result.file_type == FileType.DELIMITED
        assert result.errors == []
        assert result.warnings == []
        assert result.account_info is None
        (trade,) = result.trades
        assert trade.pair == "EURUSD"
        assert trade.direction == Direction.LONG
        assert trade.entry == pytest.approx(1.085)
        assert trade.exit == pytest.approx(1.09)
        assert trade.lots == pytest.approx(0.10)
        assert trade.pnl == pytest.approx(50.0)
        assert trade.date == dt.date(2024, 1, 5)

    def test_bad_profit_cell(self, settings):
        result = import_file(SCENARIO_B_CSV, "trades.csv", settings=settings)
        assert result.success
        assert result.trades == []
        assert result.skipped_rows == 1
        (error,) = result.errors
        assert error.row == 2
        assert error.column == "Profit"
        assert error.value == "abc"

    def test_no_date_column(self, settings):
        result = import_file(SCENARIO_C_CSV, "trades.csv", settings=settings)
        assert result.success
        assert len(result.trades) == 2
        assert all(t.date is None for t in result.trades)
        assert any("optional field date" in w for w in result.warnings)
        assert [t.pnl for t in result.trades] == [50.0, -20.0]


class TestFailures:
    @pytest.mark.parametrize("data", [b"", b"   \n\n"])
    def test_empty_content(self, data, settings):
        result = import_file(data, "empty.csv", settings=settings)
        assert not result.success
        assert result.trades == []
        assert result.file_errors

    def test_unknown_format(self, settings):
        result = import_file(b"\x89PNG just some words", "chart.png", settings=settings)
        assert not result.success
        assert result.file_type == FileType.UNKNOWN
        assert "chart.png" in result.file_errors[0]

    def test_html_without_trade_table(self, settings):
        data = b"<html><body><table><tr><td>Hello</td></tr></table></body></html>"
        result = import_file(data, "report.htm", settings=settings)
        assert not result.success
        assert result.file_type == FileType.BROKER_HTML

    def test_oversized_cell_fails_cleanly(self, settings):
        data = (
            b"Symbol,Type,Price,Profit,Notes\n"
            b"EURUSD,buy,1.1,5," + b"x" * (FIELD_SIZE_LIMIT + 1) + b"\n"
        )
        result = import_file(data, "trades.csv", settings=settings)
        assert not result.success
        assert result.file_type == FileType.DELIMITED
        assert "line 2" in result.file_errors[0]
        assert result.content_hash

    def test_unterminated_quote_fails_cleanly(self, settings):
        data = b'Symbol,Type,Price,Profit\nEURUSD,buy,1.1,"5\n' + b"GBPUSD,sell,1.3,-2\n" * 20_000
        result = import_file(data, "trades.csv", settings=settings)
        assert not result.success
        assert "Unterminated quoted field" in result.file_errors[0]

    def test_long_notes_cell_imports(self, settings):
        data = b"Symbol,Type,Price,Profit,Notes\nEURUSD,buy,1.1,5," + b"x" * 200_000 + b"\n"
        result = import_file(data, "trades.csv", settings=settings)
        assert result.success
        assert len(result.trades[0].notes) == 200_000

    def test_prepare_raises(self, settings):
        with pytest.raises(EmptyContentError):
            prepare_import(b"", "empty.csv", settings=settings)
        with pytest.raises(ImportFailure):
            prepare_import(b"no table here", "x.txt", settings=settings)


class TestBrokerReports:
    def test_mt4_statement(self, mt4_statement, settings):
        result = import_file(mt4_statement.encode(), "Statement.htm", settings=settings)
        assert result.success
        assert result.file_type == FileType.BROKER_HTML
        assert [t.pair for t in result.trades] == ["EURUSD", "GBPUSD", "USDJPY"]
        assert [t.source_row for t in result.trades] == [4, 5, 6]
        assert [t.direction for t in result.trades] == [
            Direction.LONG, Direction.SHORT, Direction.LONG,
        ]
        assert result.trades[1].entry == pytest.approx(1.27)
        assert result.trades[1].exit == pytest.approx(1.2725)
        assert result.trades[1].time == dt.time(15, 2, 11)
        assert result.account_info.account_number == "2088888"
        assert result.starting_balance == 10000.0
        assert result.skipped_rows == 0
        assert any("did not match the header layout" in w for w in result.warnings)

    def test_mt5_report(self, mt5_report, settings):
        result = import_file(mt5_report, "ReportHistory.html", settings=settings)
        assert result.success
        assert [t.pair for t in result.trades] == ["XAUUSD", "EURUSD"]
        assert result.trades[1].stop_loss == pytest.approx(1.1)
        assert result.trades[1].pnl == pytest.approx(-20.0)
        assert result.account_info.broker == "PlexyTrade Ltd"
        assert result.account_info.currency == "EUR"
        assert result.starting_balance == 5000.0

    def test_truncated_report_keeps_last_row(self, settings):
        data = (
            b"<html><body><table>"
            b"<tr><td>Symbol</td><td>Type</td><td>Price</td><td>Profit</td></tr>"
            b"<tr><td>EURUSD</td><td>buy</td><td>1.1</td><td>5</td></tr>"
            b"<tr><td>GBPUSD</td><td>sell</td><td>1.3</td><td>-2"
        )
        result = import_file(data, "report.htm", settings=settings)
        assert result.success
        assert result.total_rows == 2
        assert [t.pair for t in result.trades] == ["EURUSD", "GBPUSD"]
        assert result.trades[1].pnl == -2.0
        assert any("ends inside the trade table" in w for w in result.warnings)

    def test_micro_lot_broker_keeps_small_sizes(self, settings):
        result = import_file(_broker_report("OANDA Corporation", "0.005"), "r.htm", settings=settings)
        assert result.trades[0].lots == pytest.approx(0.005)

    def test_default_minimum_lot(self, settings):
        result = import_file(_broker_report("Other Markets Ltd", "0.005"), "r.htm", settings=settings)
        assert result.trades[0].lots == 0.0
        assert any("below the broker minimum" in w for w in result.warnings)


class TestMappingOverrides:
    CSV = (
        b"Date,Symbol,Type,Price,Close,Profit,Tag\n"
        b"2024-01-05,EURUSD,buy,1.0850,1.0900,50.00,Breakout\n"
    )

    def test_two_step_flow(self, settings):
        preview = prepare_import(self.CSV, "trades.csv", settings=settings)
        assert "Tag" in preview.unmapped_columns
        assert CanonicalField.PNL in preview.mapped_fields
        mappings = apply_overrides(preview.mappings, {"Tag": "setup"})
        result = convert(preview, mappings, settings=settings)
        assert result.trades[0].setup == "Breakout"

    def test_overrides_argument(self, settings):
        result = import_file(self.CSV, overrides={"Close": None}, settings=settings)
        trade = result.trades[0]
        assert trade.exit == trade.entry

    def test_configured_overrides(self):
        settings = Settings(
            importer=ImportConfig(mapping_overrides={"Tag": CanonicalField.SETUP})
        )
        result = import_file(self.CSV, settings=settings)
        assert result.trades[0].setup == "Breakout"

    def test_unknown_override_column_warns(self, settings):
        result = import_file(self.CSV, overrides={"Nope": "setup"}, settings=settings)
        assert result.success
        assert any("Nope" in w for w in result.warnings)


class TestImportIdentity:
    CSV = b"Symbol,Type,Price,Profit\nEURUSD,buy,1.1,5\n"

    def test_reimport_shares_hash_not_id(self, settings):
        first = import_file(self.CSV, "trades.csv", settings=settings)
        second = import_file(self.CSV, "copy.csv", settings=settings)
        assert first.import_id and second.import_id
        assert first.import_id != second.import_id
        assert second.is_reimport_of(first)

    def test_different_content_is_not_reimport(self, settings):
        first = import_file(self.CSV, settings=settings)
        other = import_file(self.CSV + b"GBPUSD,sell,1.3,-2\n", settings=settings)
        assert not other.is_reimport_of(first)

    def test_two_step_flow_keeps_import_id(self, settings):
        preview = prepare_import(self.CSV, "trades.csv", settings=settings)
        result = convert(preview, settings=settings)
        assert preview.import_id
        assert result.import_id == preview.import_id
        assert result.content_hash == preview.content_hash

    def test_failed_import_has_id(self, settings):
        result = import_file(b"", "empty.csv", settings=settings)
        assert result.import_id
        assert result.content_hash == ""


class TestInvariants:
    def test_trades_plus_skipped_equals_rows(self, settings):
        data = (
            b"Symbol,Type,Price,Profit\n"
            b"EURUSD,buy,1.1,5\n"
            b"EURUSD,hold,1.1,5\n"
            b"EURUSD,sell,1.1,\n"
            b"GBPUSD,sell,1.3,-2\n"
        )
        result = import_file(data, settings=settings)
        assert len(result.trades) + result.skipped_rows == result.total_rows == 4

    def test_deterministic(self, mt4_statement, settings):
        first = import_file(mt4_statement, settings=settings)
        second = import_file(mt4_statement, settings=settings)
        strip = lambda r: [t.model_dump(exclude={"id"}) for t in r.trades]  # noqa: E731
        assert strip(first) == strip(second)
        assert first.errors == second.errors
        assert first.warnings == second.warnings
