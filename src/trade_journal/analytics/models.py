"""Analytics result containers.

Plain dataclasses, recomputed on demand from an immutable trade list and
never persisted by the core.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from typing import Any

from trade_journal.core.enums import Session


@dataclass
class RiskMetrics:
    """Account-level performance and risk metrics (currency units)."""

    win_rate: float = 0.0  # Percent, 0-100
    average_win: float = 0.0
    average_loss: float = 0.0  # <= 0
    largest_win: float = 0.0
    largest_loss: float = 0.0  # <= 0
    # None when there are wins but no losses (unbounded ratio)
    profit_factor: float | None = 0.0
    max_drawdown_pct: float = 0.0
    current_streak: int = 0  # > 0 consecutive wins, < 0 consecutive losses
    best_streak: int = 0
    worst_streak: int = 0  # <= 0
    expectancy: float = 0.0  # Mean P&L per trade

    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    breakevens: int = 0
    excluded_trades: int = 0  # Non-finite P&L, counted in total_trades only

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SetupExpectancy:
    """Expectancy of one setup, in R-multiples.

    ``expectancy = win_rate * avg_win_r - (1 - win_rate) * avg_loss_r``,
    which equals the group's mean R because every non-winning trade
    (breakevens included, at 0R) counts on the loss side.
    """

    setup: str
    trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0  # Fraction, 0-1
    avg_win_r: float = 0.0
    avg_loss_r: float = 0.0  # Absolute value, >= 0
    expectancy: float = 0.0
    total_pnl: float = 0.0
    excluded: int = 0


@dataclass(frozen=True)
class ECDFPoint:
    """One step of the R-multiple ECDF: fraction of trades with R <= r."""

    r: float
    cumulative: float


@dataclass
class HeatmapCell:
    """Performance of the trades opened in one (session, hour) bucket."""

    session: Session
    hour: int
    trades: int = 0
    wins: int = 0
    win_rate: float = 0.0  # Fraction, 0-1
    total_pnl: float = 0.0
    expectancy: float = 0.0  # Mean R
    excluded: int = 0


@dataclass
class SessionHeatmap:
    """24 hourly cells ordered by session then hour."""

    boundaries: tuple[int, int, int]
    cells: list[HeatmapCell] = field(default_factory=list)
    unbucketed: int = 0  # Trades without a time of day
    excluded: int = 0

    def by_session(self) -> dict[Session, list[HeatmapCell]]:
        out: dict[Session, list[HeatmapCell]] = {s: [] for s in Session}
        for cell in self.cells:
            out[cell.session].append(cell)
        return out

    def cell(self, hour: int) -> HeatmapCell:
        return next(c for c in self.cells if c.hour == hour)


@dataclass
class AnalyticsSummary:
    """Headline numbers for a trade set (R-multiples unless noted)."""

    total_trades: int = 0
    win_rate: float = 0.0  # Fraction, 0-1
    profit_factor: float | None = 0.0
    expectancy: float = 0.0
    avg_win_r: float = 0.0
    avg_loss_r: float = 0.0
    best_setup: str | None = None
    worst_setup: str | None = None
    best_session: Session | None = None  # By total P&L
    sharpe_ratio: float = 0.0  # Mean R / population std of R
    excluded_trades: int = 0


@dataclass
class DailyStreak:
    """Runs of consecutive profitable trading days."""

    current_streak: int = 0
    longest_streak: int = 0
    last_profitable_day: dt.date | None = None
