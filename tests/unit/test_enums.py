"""Test enums have the expected members and order."""

from trade_journal.core.enums import (
    NUMERIC_FIELDS,
    REQUIRED_FIELDS,
    CanonicalField,
    Direction,
    FileType,
    Session,
)


class TestCanonicalField:
    def test_declaration_order(self):
        assert [f.value for f in CanonicalField] == [
            "pair", "direction", "entry", "exit", "pnl", "lots", "date", "time",
            "setup", "emotion", "notes", "stop_loss", "take_profit",
        ]

    def test_required(self):
        assert REQUIRED_FIELDS == {
            CanonicalField.PAIR,
            CanonicalField.DIRECTION,
            CanonicalField.ENTRY,
            CanonicalField.PNL,
        }
        assert CanonicalField.PNL.is_required
        assert not CanonicalField.DATE.is_required

    def test_numeric(self):
        assert CanonicalField.LOTS in NUMERIC_FIELDS
        assert CanonicalField.STOP_LOSS.is_numeric
        assert not CanonicalField.PAIR.is_numeric


class TestOtherEnums:
    def test_direction_values(self):
        assert Direction.LONG.value == "Long"
        assert Direction.SHORT.value == "Short"

    def test_file_type_values(self):
        assert {f.value for f in FileType} == {"delimited", "broker-html", "unknown"}

    def test_session_order(self):
        assert list(Session) == [Session.ASIA, Session.LONDON, Session.NEW_YORK]
