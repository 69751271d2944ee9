"""Shared fixtures for the trade-journal test suite."""

from __future__ import annotations

import datetime as dt
from typing import Callable

import pytest

from trade_journal.core.config import Settings
from trade_journal.core.enums import Direction
from trade_journal.core.models import Trade


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

@pytest.fixture
def make_trade() -> Callable[..., Trade]:
    """Factory for canonical trades; only ``pnl`` usually matters."""

    def _make(
        pnl: float = 10.0,
        *,
        pair: str = "EURUSD",
        direction: Direction = Direction.LONG,
        entry: float | None = 1.1,
        setup: str = "Unknown",
        date: dt.date | None = None,
        time: dt.time | None = None,
        source_row: int | None = None,
        **kwargs,
    ) -> Trade:
        return Trade(
            pair=pair,
            direction=direction,
            entry=entry,
            exit=entry,
            pnl=pnl,
            setup=setup,
            date=date,
            time=time,
            source_row=source_row,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_trades(make_trade) -> Callable[..., list[Trade]]:
    """Factory for a list of trades from a P&L sequence, one per day."""

    def _make(pnls: list[float], **kwargs) -> list[Trade]:
        start = dt.date(2024, 1, 1)
        return [
            make_trade(pnl, date=start + dt.timedelta(days=i), source_row=i + 2, **kwargs)
            for i, pnl in enumerate(pnls)
        ]

    return _make


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(monkeypatch) -> Settings:
    """Default settings, isolated from TRADE_JOURNAL_* environment variables."""
    import os

    for key in list(os.environ):
        if key.startswith("TRADE_JOURNAL_"):
            monkeypatch.delenv(key)
    return Settings()


# ---------------------------------------------------------------------------
# Broker files
# ---------------------------------------------------------------------------

SCENARIO_A_CSV = (
    "Date,Symbol,Type,Price,Close,Lots,Profit\n"
    "2024-01-05,EURUSD,buy,1.0850,1.0900,0.10,50.00\n"
)


@pytest.fixture
def scenario_a_csv() -> bytes:
    return SCENARIO_A_CSV.encode()


@pytest.fixture
def mt4_statement() -> str:
    """A trimmed MT4 'Statement' export."""
    return """<html><head><title>Statement: 2088888 - John Doe</title></head>
<body>
<div align=center><b>Demo Broker Ltd</b></div>
<table width=820 cellspacing=1 cellpadding=3 border=0>
<tr align=left>
  <td colspan=2><b>Account: 2088888</b></td>
  <td colspan=5><b>Name: John Doe</b></td>
  <td colspan=2><b>Currency: USD</b></td>
  <td colspan=2><b>Leverage: 1:100</b></td>
</tr>
</table>
<table width=820 cellspacing=1 cellpadding=3 border=0>
<tr><td colspan=14><b>Closed Transactions:</b></td></tr>
<tr align=center>
  <td>Ticket</td><td>Open Time</td><td>Type</td><td>Size</td><td>Item</td>
  <td>Price</td><td>S / L</td><td>T / P</td><td>Close Time</td><td>Price</td>
  <td>Commission</td><td>Taxes</td><td>Swap</td><td>Profit</td>
</tr>
<tr><td>1001</td><td>2024.01.05 10:30:00</td><td>balance</td><td colspan=10>Deposit</td><td>10&nbsp;000.00</td></tr>
<tr align=right>
  <td>1002</td><td>2024.01.05 10:31:00</td><td>buy</td><td>0.10</td><td>eurusd</td>
  <td>1.08500</td><td>1.08000</td><td>1.09500</td><td>2024.01.05 14:00:00</td><td>1.09000</td>
  <td>0.00</td><td>0.00</td><td>0.00</td><td>50.00</td>
</tr>
<tr align=right>
  <td>1003</td><td>2024.01.08 15:02:11</td><td>sell</td><td>0.20</td><td>gbpusd</td>
  <td>1.27000</td><td>0.00000</td><td>0.00000</td><td>2024.01.08 16:10:00</td><td>1.27250</td>
  <td>0.00</td><td>0.00</td><td>-0.40</td><td>-50.00</td>
</tr>
<tr align=right>
  <td>1004</td><td>2024.01.09 03:15:00</td><td>buy</td><td>1.00</td><td>usdjpy</td>
  <td>145.200</td><td>0.000</td><td>0.000</td><td>2024.01.09 05:00:00</td><td>145.500</td>
  <td>0.00</td><td>0.00</td><td>0.00</td><td>206.61</td>
</tr>
<tr><td colspan=13>&nbsp;</td><td>206.61</td></tr>
</table>
</body></html>
"""


@pytest.fixture
def mt5_report() -> str:
    """A trimmed MT5 'Trade History Report' with label/value header cells."""
    return """<!DOCTYPE html>
<html><head><title>Trade History Report</title></head>
<body>
<table>
<tr><th colspan=13><div>Trade History Report</div></th></tr>
<tr><th colspan=3>Name:</th><th colspan=10><b>Jane Roe</b></th></tr>
<tr><th colspan=3>Account:</th><th colspan=10><b>51234567&nbsp;(EUR, PlexyTrade-Server, real, Hedge)</b></th></tr>
<tr><th colspan=3>Company:</th><th colspan=10><b>PlexyTrade Ltd</b></th></tr>
<tr><th colspan=3>Date:</th><th colspan=10><b>2024.02.01 09:00</b></th></tr>
<tr><td colspan=13><b>Positions</b></td></tr>
<tr>
  <td>Time</td><td>Position</td><td>Symbol</td><td>Type</td><td>Volume</td><td>Price</td>
  <td>S / L</td><td>T / P</td><td>Time</td><td>Price</td><td>Commission</td><td>Swap</td><td>Profit</td>
</tr>
<tr>
  <td>2024.01.10 08:15:00</td><td>7001</td><td>XAUUSD</td><td>buy</td><td>0.05</td><td>2030.10</td>
  <td></td><td></td><td>2024.01.10 09:00:00</td><td>2035.10</td><td>0.00</td><td>0.00</td><td>25.00</td>
</tr>
<tr>
  <td>2024.01.11 17:45:00</td><td>7002</td><td>EURUSD.m</td><td>sell</td><td>0.10</td><td>1.09500</td>
  <td>1.10000</td><td></td><td>2024.01.11 18:00:00</td><td>1.09700</td><td>0.00</td><td>0.00</td><td>-20.00</td>
</tr>
<tr><td colspan=13><b>Results</b></td></tr>
<tr><td colspan=3>Initial Deposit:</td><td colspan=10>5 000.00</td></tr>
</table>
</body></html>
"""
