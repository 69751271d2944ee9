"""Trade analytics: pure functions over an immutable list of trades.

Key components
--------------
calculate_risk_metrics  Win/loss aggregates, profit factor, drawdown, streaks
r_multiple_ecdf         Empirical distribution of R-multiples
ecdf_quantile           Percentile queries on that distribution
expectancy_by_setup     Per-setup win rate, average R and expectancy
session_heatmap         Session x hour-of-day performance grid
calculate_summary       Headline numbers (expectancy, Sharpe-style ratio)
daily_streaks           Consecutive profitable trading days
"""

from .expectancy import expectancy_by_setup
from .models import (
    AnalyticsSummary,
    DailyStreak,
    ECDFPoint,
    HeatmapCell,
    RiskMetrics,
    SessionHeatmap,
    SetupExpectancy,
)
from .r_multiple import (
    ecdf_at,
    ecdf_percentiles,
    ecdf_quantile,
    estimate_risk,
    r_multiple,
    r_multiple_ecdf,
)
from .risk import balance_series, calculate_risk_metrics, chronological, max_drawdown_pct
from .sessions import session_for_hour, session_heatmap
from .summary import calculate_summary, daily_streaks

__all__ = [
    "expectancy_by_setup",
    "AnalyticsSummary",
    "DailyStreak",
    "ECDFPoint",
    "HeatmapCell",
    "RiskMetrics",
    "SessionHeatmap",
    "SetupExpectancy",
    "ecdf_at",
    "ecdf_percentiles",
    "ecdf_quantile",
    "estimate_risk",
    "r_multiple",
    "r_multiple_ecdf",
    "balance_series",
    "calculate_risk_metrics",
    "chronological",
    "max_drawdown_pct",
    "session_for_hour",
    "session_heatmap",
    "calculate_summary",
    "daily_streaks",
]
