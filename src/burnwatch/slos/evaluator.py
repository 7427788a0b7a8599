"""
Multi-window burn rate evaluation.

A tier's condition holds only when both its short and its long window
burn faster than the tier threshold: the short window alone reacts to
blips, the long window alone reacts too late to severe outages.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from burnwatch.core.errors import InsufficientDataError
from burnwatch.slos.calculator import burn_rate
from burnwatch.slos.models import BurnRateResult, SLOSpec
from burnwatch.slos.store import SLIWindowStore

logger = structlog.get_logger()


class BurnRateEvaluator:
    """Evaluates burn-rate tiers against an SLI window store."""

    def __init__(self, store: SLIWindowStore) -> None:
        self.store = store

    def evaluate(self, slo: SLOSpec, tier_index: int, now: datetime) -> BurnRateResult:
        """
        Evaluate one tier of ``slo`` as of ``now``.

        Windows without enough history never satisfy the condition.
        """
        tier = slo.tiers[tier_index]

        short_agg = self.store.aggregate(slo.name, tier.short_window, now)
        long_agg = self.store.aggregate(slo.name, tier.long_window, now)

        try:
            short_burn = burn_rate(slo.target, short_agg)
            long_burn = burn_rate(slo.target, long_agg)
        except InsufficientDataError:
            logger.debug(
                "tier_insufficient_data",
                slo=slo.name,
                severity=tier.severity,
                short_total=short_agg.total,
                long_total=long_agg.total,
            )
            return BurnRateResult(
                slo_name=slo.name,
                tier_index=tier_index,
                severity=tier.severity,
                short_burn=None,
                long_burn=None,
                condition_met=False,
                insufficient_data=True,
                evaluated_at=now,
            )

        condition_met = short_burn > tier.threshold and long_burn > tier.threshold

        return BurnRateResult(
            slo_name=slo.name,
            tier_index=tier_index,
            severity=tier.severity,
            short_burn=short_burn,
            long_burn=long_burn,
            condition_met=condition_met,
            insufficient_data=False,
            evaluated_at=now,
        )

    def evaluate_slo(self, slo: SLOSpec, now: datetime) -> list[BurnRateResult]:
        """Evaluate every tier of ``slo`` against the same instant."""
        return [self.evaluate(slo, index, now) for index in range(len(slo.tiers))]
