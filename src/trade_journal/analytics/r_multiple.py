"""R-multiple normalization and its empirical distribution (ECDF).

``R = pnl / base_risk``: a +2R trade made twice the amount risked.  The
ECDF is a right-continuous step function; equal R values collapse into
one step whose height is their combined share of the trades.

Usage::

    points = r_multiple_ecdf(trades, base_risk=10)
    ecdf_at(points, 0.0)          # fraction of trades at or below 0R
    ecdf_quantile(points, 0.5)    # median R
"""

from __future__ import annotations

import bisect
import logging
from typing import Sequence

import numpy as np

from trade_journal.core.errors import AnalyticsError
from trade_journal.core.models import Trade

from .models import ECDFPoint

logger = logging.getLogger(__name__)

PERCENTILES = (0.10, 0.25, 0.50, 0.75, 0.90)


def r_multiple(trade: Trade, base_risk: float = 10.0) -> float:
    """P&L of *trade* in units of *base_risk*; 0 when *base_risk* is 0."""
    if base_risk == 0:
        return 0.0
    return trade.pnl / base_risk


def estimate_risk(account_size: float, risk_percent: float = 1.0) -> float:
    """Currency risked per trade at *risk_percent* of *account_size*."""
    return account_size * (risk_percent / 100)


def r_values(trades: Sequence[Trade], base_risk: float = 10.0) -> np.ndarray:
    """Sorted finite R-multiples of *trades*."""
    r = np.array([r_multiple(t, base_risk) for t in trades], dtype=float)
    finite = r[np.isfinite(r)]
    if finite.size < r.size:
        logger.warning(
            "Excluded %d trades with non-finite R from the ECDF", r.size - finite.size
        )
    return np.sort(finite)


def r_multiple_ecdf(
    trades: Sequence[Trade],
    base_risk: float = 10.0,
    setup: str | None = None,
) -> list[ECDFPoint]:
    """Collapsed ECDF of R-multiples, ascending by ``r``.

    Parameters
    ----------
    trades : Sequence[Trade]
    base_risk : float
        Currency amount equal to 1R.
    setup : str, optional
        Only trades with exactly this setup name.

    Returns
    -------
    list[ECDFPoint]
        One point per distinct R; ``cumulative`` is non-decreasing and
        the last point is exactly 1.0.  Empty when no trade qualifies.
    """
    if setup is not None:
        trades = [t for t in trades if t.setup == setup]
    r = r_values(trades, base_risk)
    if r.size == 0:
        return []
    distinct, counts = np.unique(r, return_counts=True)
    cumulative = np.cumsum(counts) / r.size
    return [
        ECDFPoint(r=float(v), cumulative=float(c))
        for v, c in zip(distinct, cumulative)
    ]


def ecdf_at(points: Sequence[ECDFPoint], r: float) -> float:
    """Fraction of trades with R <= *r* (0 below the smallest R)."""
    idx = bisect.bisect_right([p.r for p in points], r)
    return points[idx - 1].cumulative if idx else 0.0


def ecdf_quantile(points: Sequence[ECDFPoint], q: float) -> float:
    """R at cumulative probability *q*.

    Returns the exact R when *q* lands on a step, interpolates linearly
    between the two bracketing steps otherwise, and clamps to the
    smallest R below the first step.

    Raises
    ------
    AnalyticsError
        *q* is outside [0, 1] or *points* is empty.
    """
    if not 0.0 <= q <= 1.0:
        raise AnalyticsError(f"quantile must be in [0, 1], got {q}")
    if not points:
        raise AnalyticsError("quantile of an empty distribution")
    cumulative = [p.cumulative for p in points]
    rs = [p.r for p in points]
    return float(np.interp(q, cumulative, rs))


def ecdf_percentiles(points: Sequence[ECDFPoint]) -> dict[str, float]:
    """p10/p25/p50/p75/p90 of the distribution (all 0 when empty)."""
    keys = [f"p{round(q * 100)}" for q in PERCENTILES]
    if not points:
        return dict.fromkeys(keys, 0.0)
    return {k: ecdf_quantile(points, q) for k, q in zip(keys, PERCENTILES)}
