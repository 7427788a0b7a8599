"""
Burn-rate alerting engine.

Owns one SLI window store, the alert state of every (SLO, tier) pair,
and the sink transitions are delivered to. ``evaluate`` is the
synchronous core of one tick; ``run`` drives it periodically on an
asyncio loop until ``stop`` is called.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Callable, Iterable

import structlog

from burnwatch.core.errors import ConfigurationError, OutOfOrderSampleError
from burnwatch.slos.evaluator import BurnRateEvaluator
from burnwatch.slos.models import AlertTransition, SLISample, SLOSpec, to_utc, utcnow
from burnwatch.slos.notifiers import AlertSink, deliver
from burnwatch.slos.state import AlertStateMachine
from burnwatch.slos.store import DuplicatePolicy, SLIWindowStore

logger = structlog.get_logger()


class Engine:
    """Multi-window multi-burn-rate alerting engine."""

    def __init__(
        self,
        sink: AlertSink,
        slos: Iterable[SLOSpec] = (),
        evaluation_interval: timedelta = timedelta(minutes=1),
        bucket_interval: timedelta = timedelta(minutes=1),
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.OVERWRITE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if evaluation_interval <= timedelta(0):
            raise ValueError("evaluation_interval must be positive")

        self.sink = sink
        self.evaluation_interval = evaluation_interval
        self.clock = clock
        self.store = SLIWindowStore(bucket_interval, duplicate_policy)
        self.evaluator = BurnRateEvaluator(self.store)
        self.states = AlertStateMachine()

        self._slos: dict[str, SLOSpec] = {}
        self._pending: set[asyncio.Task[None]] = set()
        self._stop: asyncio.Event | None = None
        self.ticks = 0
        self.evaluation_failures = 0

        for slo in slos:
            self.add_slo(slo)

    @property
    def slos(self) -> list[SLOSpec]:
        return list(self._slos.values())

    def add_slo(self, slo: SLOSpec) -> None:
        """
        Start evaluating ``slo``, replacing any SLO of the same name.

        Replacing an SLO discards its history and alert state.

        Raises:
            ConfigurationError: If the SLO definition is invalid
        """
        errors = slo.validate()
        if errors:
            raise ConfigurationError(
                f"Invalid SLO {slo.name!r}: {'; '.join(errors)}",
                {"slo": slo.name},
            )
        for warning in slo.warnings():
            logger.warning("slo_config_warning", slo=slo.name, warning=warning)

        if slo.name in self._slos:
            self.states.reset(slo.name)
            logger.info("slo_reconfigured", slo=slo.name)

        self._slos[slo.name] = slo
        self.store.register(slo.name, slo.longest_window)
        logger.info("slo_added", slo=slo.name, target=slo.target, tiers=len(slo.tiers))

    def remove_slo(self, slo_name: str) -> bool:
        if self._slos.pop(slo_name, None) is None:
            return False
        self.store.unregister(slo_name)
        self.states.reset(slo_name)
        logger.info("slo_removed", slo=slo_name)
        return True

    def ingest(self, slo_name: str, sample: SLISample) -> bool:
        """
        Record one bucket's counts for ``slo_name``.

        Returns:
            False if the sample was dropped for being older than retained history
        """
        try:
            self.store.ingest(slo_name, sample)
        except OutOfOrderSampleError as exc:
            logger.warning("sample_out_of_order", **exc.details)
            return False
        return True

    def evaluate(self, now: datetime | None = None) -> list[AlertTransition]:
        """
        Run one evaluation tick against a single instant.

        A failure while evaluating one (SLO, tier) pair is logged and
        skipped; every other pair is still evaluated.
        """
        now = to_utc(now) if now is not None else self.clock()
        transitions: list[AlertTransition] = []

        for slo in list(self._slos.values()):
            for index, tier in enumerate(slo.tiers):
                try:
                    result = self.evaluator.evaluate(slo, index, now)
                    event = self.states.step(tier, result, now)
                except Exception as exc:
                    self.evaluation_failures += 1
                    logger.exception(
                        "tier_evaluation_failed",
                        slo=slo.name,
                        tier_index=index,
                        severity=tier.severity,
                        error=str(exc),
                    )
                    continue
                if event is not None:
                    transitions.append(event)

        self.ticks += 1
        return transitions

    async def tick(self, now: datetime | None = None) -> list[AlertTransition]:
        """Evaluate once and hand every transition to the sink without waiting."""
        transitions = self.evaluate(now)
        for event in transitions:
            self._dispatch(event)
        return transitions

    async def run(self) -> None:
        """Evaluate every ``evaluation_interval`` until ``stop`` is called."""
        self._stop = asyncio.Event()
        interval = self.evaluation_interval.total_seconds()
        logger.info("engine_started", slos=len(self._slos), interval_seconds=interval)

        while not self._stop.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.info("engine_stopped", ticks=self.ticks)

    def stop(self) -> None:
        """Ask ``run`` to return after the tick in flight."""
        if self._stop is not None:
            self._stop.set()

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight notifications; abandon them after ``timeout``."""
        if not self._pending:
            return
        _, pending = await asyncio.wait(set(self._pending), timeout=timeout)
        if pending:
            logger.warning("notifications_abandoned", count=len(pending))
            for task in pending:
                task.cancel()

    def _dispatch(self, event: AlertTransition) -> None:
        task = asyncio.create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: AlertTransition) -> None:
        try:
            await deliver(self.sink, event)
        except Exception as exc:
            logger.error(
                "notification_failed",
                slo=event.slo_name,
                severity=event.tier_severity,
                kind=event.kind,
                error=str(exc),
            )
