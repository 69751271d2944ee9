"""Headline summary statistics and daily profit streaks."""

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from typing import Sequence

import numpy as np

from trade_journal.core.models import Trade

from .expectancy import expectancy_by_setup
from .models import AnalyticsSummary, DailyStreak
from .r_multiple import r_multiple
from .risk import profit_factor, split_finite
from .sessions import DEFAULT_BOUNDARIES, SESSION_ORDER, session_totals

logger = logging.getLogger(__name__)


def calculate_summary(
    trades: Sequence[Trade],
    base_risk: float = 10.0,
    boundaries: Sequence[int] = DEFAULT_BOUNDARIES,
) -> AnalyticsSummary:
    """Summarize *trades* in R-multiples.

    Non-winning trades (breakevens included) count as losses, so
    ``expectancy`` equals the mean R.  ``sharpe_ratio`` is mean R over
    the population standard deviation of R (0 when all R are equal).
    The best session is the one with the highest total P&L among
    trades that have a time of day.
    """
    finite, excluded = split_finite(trades)
    if not finite:
        return AnalyticsSummary(total_trades=len(trades), excluded_trades=excluded)

    win_r = [r_multiple(t, base_risk) for t in finite if t.pnl > 0]
    loss_r = [abs(r_multiple(t, base_risk)) for t in finite if t.pnl <= 0]
    gross_win = sum(t.pnl for t in finite if t.pnl > 0)
    gross_loss = abs(sum(t.pnl for t in finite if t.pnl <= 0))

    avg_win_r = sum(win_r) / len(win_r) if win_r else 0.0
    avg_loss_r = sum(loss_r) / len(loss_r) if loss_r else 0.0
    win_rate = len(win_r) / len(finite)

    setups = expectancy_by_setup(finite, base_risk)
    totals = session_totals(finite, boundaries)
    best_session = max(
        (s for s in SESSION_ORDER if s in totals), key=lambda s: totals[s], default=None
    )

    r = np.array([r_multiple(t, base_risk) for t in finite], dtype=float)
    std = float(np.std(r))
    sharpe = float(np.mean(r)) / std if std > 0 else 0.0

    return AnalyticsSummary(
        total_trades=len(trades),
        win_rate=win_rate,
        profit_factor=profit_factor(gross_win, gross_loss),
        expectancy=win_rate * avg_win_r - (1 - win_rate) * avg_loss_r,
        avg_win_r=avg_win_r,
        avg_loss_r=avg_loss_r,
        best_setup=setups[0].setup if setups else None,
        worst_setup=setups[-1].setup if setups else None,
        best_session=best_session,
        sharpe_ratio=sharpe,
        excluded_trades=excluded,
    )


def daily_pnl(trades: Sequence[Trade]) -> dict[dt.date, float]:
    """Net finite P&L per calendar day; undated trades are ignored."""
    days: dict[dt.date, float] = defaultdict(float)
    for t in trades:
        if t.date is not None and t.has_finite_pnl:
            days[t.date] += t.pnl
    return dict(days)


def daily_streaks(trades: Sequence[Trade]) -> DailyStreak:
    """Consecutive profitable trading days.

    Days without trades do not break a run.  ``current_streak`` counts
    back from the most recent trading day and is 0 when that day was
    not profitable.
    """
    days = daily_pnl(trades)
    if not days:
        return DailyStreak()
    ordered = sorted(days)

    longest = run = 0
    for day in ordered:
        run = run + 1 if days[day] > 0 else 0
        longest = max(longest, run)

    current = 0
    for day in reversed(ordered):
        if days[day] <= 0:
            break
        current += 1

    profitable = [d for d in ordered if days[d] > 0]
    return DailyStreak(
        current_streak=current,
        longest_streak=longest,
        last_profitable_day=profitable[-1] if profitable else None,
    )
