"""Instrument-class metadata for imported symbols.

Broker exports carry bare symbols (``EURUSD``, ``XAUUSD``, ``US30``) with
no contract specification, so price granularity is inferred from the
symbol class the same way the journal's trade entry form does.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AssetClass(str, Enum):
    FX = "fx"
    FX_YEN = "fx_yen"
    METAL = "metal"
    CRYPTO = "crypto"
    INDEX = "index"


@dataclass(frozen=True)
class InstrumentSpec:
    """Price granularity for one instrument class."""

    asset_class: AssetClass
    tick_size: float  # Smallest meaningful price step

    def same_price(self, a: float, b: float) -> bool:
        """True if *a* and *b* round to the same tick."""
        return abs(a - b) < self.tick_size / 2


_SPECS: dict[AssetClass, InstrumentSpec] = {
    AssetClass.FX: InstrumentSpec(AssetClass.FX, 0.0001),
    AssetClass.FX_YEN: InstrumentSpec(AssetClass.FX_YEN, 0.01),
    AssetClass.METAL: InstrumentSpec(AssetClass.METAL, 0.01),
    AssetClass.CRYPTO: InstrumentSpec(AssetClass.CRYPTO, 1.0),
    AssetClass.INDEX: InstrumentSpec(AssetClass.INDEX, 1.0),
}

_INDEX_MARKERS = ("US30", "NAS", "SPX", "US500", "US100", "GER", "DAX", "UK100")
_CRYPTO_MARKERS = ("BTC", "ETH", "SOL", "XRP", "LTC")

# Minimum tradable lot per supported broker
BROKER_MIN_LOTS: dict[str, float] = {
    "PlexyTrade": 0.01,
    "OANDA": 0.001,
    "Forex.com": 0.01,
}


def classify_symbol(pair: str) -> AssetClass:
    """Infer the asset class of a normalized symbol."""
    p = (pair or "").upper()
    if "JPY" in p:
        return AssetClass.FX_YEN
    if "XAU" in p or "XAG" in p:
        return AssetClass.METAL
    if any(m in p for m in _CRYPTO_MARKERS):
        return AssetClass.CRYPTO
    if any(m in p for m in _INDEX_MARKERS):
        return AssetClass.INDEX
    return AssetClass.FX


def instrument_spec(pair: str) -> InstrumentSpec:
    """Return the :class:`InstrumentSpec` for *pair*."""
    return _SPECS[classify_symbol(pair)]


def broker_min_lot(broker: str | None, default: float = 0.01) -> float:
    """Minimum lot for *broker*, falling back to *default* when unknown."""
    if not broker:
        return default
    for name, min_lot in BROKER_MIN_LOTS.items():
        if name.lower() in broker.lower():
            return min_lot
    return default
