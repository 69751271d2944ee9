"""Session and hour-of-day performance.

Breaks performance down by the hour a trade was opened and by trading
session (Asia/London/New York).  Answers questions like "Am I better in
the London open?" or "Which hours lose money?"

Session start hours are configuration, not business rules: the default
``(0, 8, 16)`` matches UTC, and shifted boundaries such as ``(21, 5, 13)``
wrap around midnight.

Usage::

    heatmap = session_heatmap(trades, boundaries=(0, 8, 16), base_risk=10)
    for cell in heatmap.by_session()[Session.LONDON]:
        print(cell.hour, cell.trades, cell.win_rate)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from trade_journal.core.enums import Session
from trade_journal.core.models import Trade

from .models import HeatmapCell, SessionHeatmap
from .r_multiple import r_multiple

logger = logging.getLogger(__name__)

DEFAULT_BOUNDARIES: tuple[int, int, int] = (0, 8, 16)
SESSION_ORDER = (Session.ASIA, Session.LONDON, Session.NEW_YORK)


def session_for_hour(
    hour: int, boundaries: Sequence[int] = DEFAULT_BOUNDARIES
) -> Session:
    """Session containing *hour*: the one whose start most recently passed."""
    idx = min(
        range(len(SESSION_ORDER)),
        key=lambda i: ((hour - boundaries[i]) % 24, i),
    )
    return SESSION_ORDER[idx]


def session_for_trade(
    trade: Trade, boundaries: Sequence[int] = DEFAULT_BOUNDARIES
) -> Session | None:
    """Session of *trade*'s opening hour, ``None`` without a time of day."""
    if trade.time is None:
        return None
    return session_for_hour(trade.time.hour, boundaries)


@dataclass
class _BucketStats:
    """Accumulator for a time bucket."""

    trades: int = 0
    wins: int = 0
    total_pnl: float = 0.0
    total_r: float = 0.0
    excluded: int = 0

    def record(self, trade: Trade, base_risk: float) -> None:
        self.trades += 1
        if not trade.has_finite_pnl:
            self.excluded += 1
            return
        self.total_pnl += trade.pnl
        self.total_r += r_multiple(trade, base_risk)
        if trade.pnl > 0:
            self.wins += 1

    def to_cell(self, session: Session, hour: int) -> HeatmapCell:
        counted = self.trades - self.excluded
        return HeatmapCell(
            session=session,
            hour=hour,
            trades=self.trades,
            wins=self.wins,
            win_rate=self.wins / counted if counted else 0.0,
            total_pnl=self.total_pnl,
            expectancy=self.total_r / counted if counted else 0.0,
            excluded=self.excluded,
        )


def session_heatmap(
    trades: Sequence[Trade],
    boundaries: Sequence[int] = DEFAULT_BOUNDARIES,
    base_risk: float = 10.0,
) -> SessionHeatmap:
    """Bucket *trades* by (session, opening hour).

    Returns
    -------
    SessionHeatmap
        Exactly 24 cells, grouped by session in Asia/London/New York
        order and, within a session, by hour counted from the session
        start.  Trades without a time are counted in ``unbucketed``.
    """
    by_hour = [_BucketStats() for _ in range(24)]
    unbucketed = 0
    for t in trades:
        if t.time is None:
            unbucketed += 1
            continue
        by_hour[t.time.hour].record(t, base_risk)

    cells: list[HeatmapCell] = []
    for i, session in enumerate(SESSION_ORDER):
        hours = [h for h in range(24) if session_for_hour(h, boundaries) == session]
        hours.sort(key=lambda h: (h - boundaries[i]) % 24)
        cells.extend(by_hour[h].to_cell(session, h) for h in hours)

    excluded = sum(b.excluded for b in by_hour)
    if unbucketed:
        logger.debug("%d trades without a time of day left out of the heatmap", unbucketed)
    return SessionHeatmap(
        boundaries=tuple(boundaries),
        cells=cells,
        unbucketed=unbucketed,
        excluded=excluded,
    )


def session_totals(
    trades: Sequence[Trade], boundaries: Sequence[int] = DEFAULT_BOUNDARIES
) -> dict[Session, float]:
    """Total finite P&L per session, for sessions with at least one trade."""
    totals: dict[Session, float] = {}
    for t in trades:
        session = session_for_trade(t, boundaries)
        if session is None or not t.has_finite_pnl:
            continue
        totals[session] = totals.get(session, 0.0) + t.pnl
    return totals
