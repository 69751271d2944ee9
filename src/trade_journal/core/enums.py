"""Enumerations used across the import pipeline and analytics engine."""

from enum import Enum


class CanonicalField(str, Enum):
    """Trade attributes the importer knows how to populate.

    Declaration order matters: it is the tie-break order used by the
    column mapper when two fields score equally for one header.
    """

    PAIR = "pair"
    DIRECTION = "direction"
    ENTRY = "entry"
    EXIT = "exit"
    PNL = "pnl"
    LOTS = "lots"
    DATE = "date"
    TIME = "time"
    SETUP = "setup"
    EMOTION = "emotion"
    NOTES = "notes"
    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"

    @property
    def is_required(self) -> bool:
        return self in REQUIRED_FIELDS

    @property
    def is_numeric(self) -> bool:
        return self in NUMERIC_FIELDS


REQUIRED_FIELDS = frozenset({
    CanonicalField.PAIR,
    CanonicalField.DIRECTION,
    CanonicalField.ENTRY,
    CanonicalField.PNL,
})

NUMERIC_FIELDS = frozenset({
    CanonicalField.ENTRY,
    CanonicalField.EXIT,
    CanonicalField.PNL,
    CanonicalField.LOTS,
    CanonicalField.STOP_LOSS,
    CanonicalField.TAKE_PROFIT,
})


class Direction(str, Enum):
    LONG = "Long"
    SHORT = "Short"


class FileType(str, Enum):
    DELIMITED = "delimited"
    BROKER_HTML = "broker-html"
    UNKNOWN = "unknown"


class TradeOutcome(str, Enum):
    """Win / loss / break-even classification."""

    WIN = "win"
    LOSS = "loss"
    BREAKEVEN = "breakeven"


class Session(str, Enum):
    """Trading sessions, in the order their start hours are configured."""

    ASIA = "asia"
    LONDON = "london"
    NEW_YORK = "new_york"
