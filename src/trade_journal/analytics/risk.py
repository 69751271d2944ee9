"""Account-level risk metrics: win/loss aggregates, drawdown and streaks.

All functions are pure.  Trades are walked in chronological order (see
:func:`chronological`); trades with a non-finite P&L are left out of
every ratio and every walk but still counted in ``total_trades``.

Usage::

    balances = balance_series(trades, starting_balance=10_000)
    metrics = calculate_risk_metrics(trades, balances)
    print(metrics.win_rate, metrics.profit_factor, metrics.max_drawdown_pct)
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Sequence

import numpy as np

from trade_journal.core.models import Trade

from .models import RiskMetrics

logger = logging.getLogger(__name__)


def chronological(trades: Sequence[Trade]) -> list[Trade]:
    """Stable chronological order.

    Sorted by ``(date, time, source_row, input position)``; undated
    trades come first and missing times sort as midnight.
    """
    indexed = list(enumerate(trades))
    indexed.sort(
        key=lambda it: (
            it[1].date is not None,
            it[1].date or dt.date.min,
            it[1].time or dt.time.min,
            it[1].source_row if it[1].source_row is not None else 0,
            it[0],
        )
    )
    return [t for _, t in indexed]


def split_finite(trades: Sequence[Trade]) -> tuple[list[Trade], int]:
    """Return trades with a finite P&L and the number left out."""
    finite = [t for t in trades if t.has_finite_pnl]
    excluded = len(trades) - len(finite)
    if excluded:
        logger.warning("Excluded %d trades with non-finite P&L from ratios", excluded)
    return finite, excluded


# ---------------------------------------------------------------------------
# Balance and drawdown
# ---------------------------------------------------------------------------

def balance_series(trades: Sequence[Trade], starting_balance: float) -> list[float]:
    """Running balance, starting value first, one point per finite trade."""
    pnls = [t.pnl for t in chronological(trades) if t.has_finite_pnl]
    return [starting_balance, *(starting_balance + np.cumsum(pnls)).tolist()]


def max_drawdown_pct(balances: Sequence[float]) -> float:
    """Largest peak-to-trough decline, in percent.

    The peak starts at the first balance and only moves up.  Points
    where the running peak is not positive contribute no drawdown;
    an empty series gives 0.
    """
    arr = np.asarray(balances, dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return 0.0
    peak = np.maximum.accumulate(arr)
    safe_peak = np.where(peak > 0, peak, 1.0)
    dd = np.where(peak > 0, (peak - arr) / safe_peak, 0.0)
    return float(dd.max() * 100)


# ---------------------------------------------------------------------------
# Streaks
# ---------------------------------------------------------------------------

def trade_streaks(trades: Sequence[Trade]) -> tuple[int, int, int]:
    """Walk *trades* in the given order: ``(current, best, worst)``.

    A win after losses resets the counter to +1, a loss after wins to
    -1; breakeven trades leave it untouched.
    """
    current = best = worst = 0
    for t in trades:
        if not t.has_finite_pnl:
            continue
        if t.pnl > 0:
            current = current + 1 if current > 0 else 1
            best = max(best, current)
        elif t.pnl < 0:
            current = current - 1 if current < 0 else -1
            worst = min(worst, current)
    return current, best, worst


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def profit_factor(gross_win: float, gross_loss: float) -> float | None:
    """Gross win / gross loss; ``None`` if wins exist but losses do not."""
    if gross_loss > 0:
        return gross_win / gross_loss
    return None if gross_win > 0 else 0.0


def calculate_risk_metrics(
    trades: Sequence[Trade],
    balance_history: Sequence[float] | None = None,
    *,
    starting_balance: float | None = None,
) -> RiskMetrics:
    """Compute :class:`RiskMetrics` for *trades*.

    Parameters
    ----------
    trades : Sequence[Trade]
        Any order; streaks use :func:`chronological` order.
    balance_history : Sequence[float], optional
        Running balance for drawdown.  When absent and
        *starting_balance* is given, it is derived with
        :func:`balance_series`; otherwise drawdown is 0.
    starting_balance : float, optional
        Opening balance, e.g. an imported initial deposit.
    """
    finite, excluded = split_finite(trades)
    wins = [t.pnl for t in finite if t.pnl > 0]
    losses = [t.pnl for t in finite if t.pnl < 0]
    gross_win = float(sum(wins))
    gross_loss = float(abs(sum(losses)))

    if balance_history is None and starting_balance is not None:
        balance_history = balance_series(trades, starting_balance)
    current, best, worst = trade_streaks(chronological(finite))

    return RiskMetrics(
        win_rate=len(wins) / len(finite) * 100 if finite else 0.0,
        average_win=gross_win / len(wins) if wins else 0.0,
        average_loss=-gross_loss / len(losses) if losses else 0.0,
        largest_win=max(wins) if wins else 0.0,
        largest_loss=min(losses) if losses else 0.0,
        profit_factor=profit_factor(gross_win, gross_loss),
        max_drawdown_pct=max_drawdown_pct(
            balance_history if balance_history is not None else []
        ),
        current_streak=current,
        best_streak=best,
        worst_streak=worst,
        expectancy=float(np.mean([t.pnl for t in finite])) if finite else 0.0,
        total_trades=len(trades),
        wins=len(wins),
        losses=len(losses),
        breakevens=len(finite) - len(wins) - len(losses),
        excluded_trades=excluded,
    )
