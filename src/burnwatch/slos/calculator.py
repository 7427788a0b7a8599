"""
Error budget calculator.

Turns a window's good/total counts into an error rate, a burn rate
relative to the SLO's allowed error rate, and the share of the SLO
period's budget the window consumed.
"""

from __future__ import annotations

import math
from datetime import timedelta
from fractions import Fraction

from burnwatch.core.errors import InsufficientDataError
from burnwatch.slos.models import SLOSpec, WindowAggregate


def error_rate(agg: WindowAggregate) -> float:
    """
    Fraction of bad events in the window.

    Raises:
        InsufficientDataError: If the window has no usable data
    """
    if agg.insufficient_data or agg.total == 0:
        raise InsufficientDataError(
            "Window has no events to compute an error rate from",
            {"window_seconds": agg.window.total_seconds(), "total": agg.total},
        )
    return (agg.total - agg.good) / agg.total


def burn_rate(target: float, agg: WindowAggregate) -> float:
    """
    Calculate burn rate as a multiplier of the sustainable pace.

    Burn rate of 1.0 means the window consumed budget exactly as fast as
    the SLO allows. A target of 1.0 leaves no budget: any error burns at
    an infinite rate, no error burns at 0.

    Args:
        target: SLO target ratio (e.g., 0.999)
        agg: Window aggregate to evaluate

    Returns:
        Non-negative burn rate

    Raises:
        InsufficientDataError: If the window has no usable data
    """
    observed = error_rate(agg)
    # Exact ratio so that errorRate == 1 - target yields exactly 1.0
    allowed = 1 - Fraction(str(target))

    if allowed <= 0:
        return math.inf if observed > 0 else 0.0

    return float(Fraction(agg.bad, agg.total) / allowed)


def budget_consumed(target: float, agg: WindowAggregate, period: timedelta) -> float:
    """
    Fraction of the SLO period's error budget consumed during the window.

    A window burning at rate ``b`` for ``w`` out of an SLO period ``p``
    consumes ``b * w / p`` of the whole budget.
    """
    if period <= timedelta(0):
        raise ValueError("period must be positive")
    return burn_rate(target, agg) * (agg.window / period)


class ErrorBudgetCalculator:
    """Budget arithmetic bound to one SLO."""

    def __init__(self, slo: SLOSpec) -> None:
        self.slo = slo

    def error_rate(self, agg: WindowAggregate) -> float:
        return error_rate(agg)

    def burn_rate(self, agg: WindowAggregate) -> float:
        return burn_rate(self.slo.target, agg)

    def budget_consumed(self, agg: WindowAggregate) -> float:
        return budget_consumed(self.slo.target, agg, self.slo.period)

    def time_to_exhaustion(self, agg: WindowAggregate) -> timedelta | None:
        """
        Project how long a full budget lasts at the window's burn rate.

        Returns None when the window burns nothing.
        """
        rate = self.burn_rate(agg)
        if rate <= 0:
            return None
        if math.isinf(rate):
            return timedelta(0)
        return self.slo.period / rate
