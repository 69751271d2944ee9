"""Expectancy by setup.

Groups are keyed by the exact (case-sensitive) setup name; a blank setup
counts as ``"Unknown"``.  No minimum sample size is applied here, a
setup traded once still gets an entry.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

from trade_journal.core.models import Trade

from .models import SetupExpectancy
from .r_multiple import r_multiple

logger = logging.getLogger(__name__)

UNKNOWN_SETUP = "Unknown"


def setup_expectancy(setup: str, trades: Sequence[Trade], base_risk: float = 10.0) -> SetupExpectancy:
    """Expectancy of one group of trades.

    Winners have pnl > 0; every other finite trade is on the loss side,
    so breakevens pull ``avg_loss_r`` towards 0 and the expectancy
    equals the mean R of the group.
    """
    finite = [t for t in trades if t.has_finite_pnl]
    win_r = [r_multiple(t, base_risk) for t in finite if t.pnl > 0]
    loss_r = [abs(r_multiple(t, base_risk)) for t in finite if t.pnl <= 0]

    avg_win_r = sum(win_r) / len(win_r) if win_r else 0.0
    avg_loss_r = sum(loss_r) / len(loss_r) if loss_r else 0.0
    win_rate = len(win_r) / len(finite) if finite else 0.0

    return SetupExpectancy(
        setup=setup,
        trades=len(trades),
        wins=len(win_r),
        losses=len(loss_r),
        win_rate=win_rate,
        avg_win_r=avg_win_r,
        avg_loss_r=avg_loss_r,
        expectancy=win_rate * avg_win_r - (1 - win_rate) * avg_loss_r,
        total_pnl=sum(t.pnl for t in finite),
        excluded=len(trades) - len(finite),
    )


def expectancy_by_setup(
    trades: Sequence[Trade], base_risk: float = 10.0
) -> list[SetupExpectancy]:
    """One :class:`SetupExpectancy` per setup, best expectancy first.

    Ties are ordered by setup name so the result is deterministic.
    """
    groups: dict[str, list[Trade]] = defaultdict(list)
    for t in trades:
        groups[t.setup or UNKNOWN_SETUP].append(t)

    results = [setup_expectancy(name, group, base_risk) for name, group in groups.items()]
    results.sort(key=lambda s: (-s.expectancy, s.setup))
    logger.debug("Computed expectancy for %d setups", len(results))
    return results
