"""
Alert state machine.

Debounces the per-tick tier condition into Inactive -> Pending -> Firing
transitions. The tier's ``for`` duration applies both before firing and
before resolving, so a condition flapping inside that duration produces
no events at all.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import structlog

from burnwatch.slos.models import (
    AlertFired,
    AlertPhase,
    AlertResolved,
    AlertState,
    AlertTransition,
    BurnRateResult,
    BurnRateTier,
    DataGap,
)

logger = structlog.get_logger()

StateKey = tuple[str, int]


class AlertStateMachine:
    """Owns the AlertState of every (SLO name, tier index) pair."""

    def __init__(self) -> None:
        self._states: dict[StateKey, AlertState] = {}

    def get(self, slo_name: str, tier_index: int) -> AlertState:
        return self._states.get((slo_name, tier_index), AlertState())

    def snapshot(self) -> dict[StateKey, AlertState]:
        """Return copies of all tracked states."""
        return {key: replace(state) for key, state in self._states.items()}

    def reset(self, slo_name: str) -> None:
        """Forget every state of ``slo_name``."""
        for key in [k for k in self._states if k[0] == slo_name]:
            del self._states[key]

    def step(
        self,
        tier: BurnRateTier,
        result: BurnRateResult,
        now: datetime,
    ) -> AlertTransition | None:
        """
        Apply one evaluation result and return the emitted transition, if any.

        The new state is computed on a copy and stored in one assignment.
        """
        key = (result.slo_name, result.tier_index)
        state = replace(self._states.get(key, AlertState()))
        event: AlertTransition | None = None

        if result.condition_met:
            state.last_short_burn = result.short_burn
            state.last_long_burn = result.long_burn

            if state.phase == AlertPhase.INACTIVE:
                state.phase = AlertPhase.PENDING
                state.pending_since = now
                logger.debug("alert_pending", slo=result.slo_name, severity=tier.severity)

            if state.phase == AlertPhase.PENDING:
                if now - state.pending_since >= tier.for_duration:
                    state.phase = AlertPhase.FIRING
                    state.fired_at = now
                    event = AlertFired(
                        slo_name=result.slo_name,
                        tier_severity=tier.severity,
                        tier_index=result.tier_index,
                        short_burn=result.short_burn,
                        long_burn=result.long_burn,
                        fired_at=now,
                    )
            elif state.recover_since is not None:
                logger.info(
                    "alert_recovery_aborted",
                    slo=result.slo_name,
                    severity=tier.severity,
                )
                state.recover_since = None

        else:
            if state.phase == AlertPhase.PENDING:
                logger.debug(
                    "alert_pending_cleared",
                    slo=result.slo_name,
                    severity=tier.severity,
                )
                state = AlertState()

            elif state.phase == AlertPhase.FIRING:
                if state.recover_since is None:
                    state.recover_since = now
                if now - state.recover_since >= tier.for_duration:
                    if result.insufficient_data:
                        event = DataGap(
                            slo_name=result.slo_name,
                            tier_severity=tier.severity,
                            tier_index=result.tier_index,
                            detected_at=now,
                        )
                    else:
                        event = AlertResolved(
                            slo_name=result.slo_name,
                            tier_severity=tier.severity,
                            tier_index=result.tier_index,
                            resolved_at=now,
                        )
                    state = AlertState()

        if state.phase == AlertPhase.INACTIVE:
            self._states.pop(key, None)
        else:
            self._states[key] = state

        if event is not None:
            logger.info(
                f"alert_{event.kind}",
                slo=result.slo_name,
                severity=tier.severity,
                short_burn=result.short_burn,
                long_burn=result.long_burn,
            )

        return event
