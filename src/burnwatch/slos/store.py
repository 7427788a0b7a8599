"""
SLI window store.

Keeps recent good/total counts per SLO in fixed-size time buckets and
sums them over trailing windows. Memory per SLO is bounded by its
retention (the longest window any of its tiers looks at).
"""

from __future__ import annotations

import heapq
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

import structlog

from burnwatch.core.errors import OutOfOrderSampleError, UnknownSLOError
from burnwatch.slos.models import SLISample, WindowAggregate, to_utc

logger = structlog.get_logger()


class DuplicatePolicy(str, Enum):
    """How a second sample for an already stored bucket is applied."""

    OVERWRITE = "overwrite"
    SUM = "sum"


@dataclass
class _Series:
    """Bucketed counts of one SLO. Guarded by its own lock."""

    retention_buckets: int
    buckets: dict[int, tuple[int, int]]
    order: list[int]  # min-heap of stored bucket indices
    lock: threading.Lock
    newest: int | None = None
    history_start: int | None = None
    dropped_samples: int = 0

    @property
    def horizon(self) -> int | None:
        """Index of the oldest bucket still retained."""
        if self.newest is None:
            return None
        return self.newest - self.retention_buckets + 1


class SLIWindowStore:
    """In-memory bucketed SLI history for a set of SLOs."""

    def __init__(
        self,
        bucket_interval: timedelta = timedelta(minutes=1),
        duplicate_policy: DuplicatePolicy = DuplicatePolicy.OVERWRITE,
    ) -> None:
        if bucket_interval <= timedelta(0):
            raise ValueError("bucket_interval must be positive")
        self.bucket_interval = bucket_interval
        self.duplicate_policy = DuplicatePolicy(duplicate_policy)
        self._bucket_seconds = bucket_interval.total_seconds()
        self._series: dict[str, _Series] = {}
        self._lock = threading.Lock()

    def register(self, slo_name: str, retention: timedelta) -> None:
        """Create an empty series for ``slo_name``, replacing any existing one."""
        if retention <= timedelta(0):
            raise ValueError("retention must be positive")

        retention_buckets = max(1, math.ceil(retention.total_seconds() / self._bucket_seconds))
        series = _Series(
            retention_buckets=retention_buckets,
            buckets={},
            order=[],
            lock=threading.Lock(),
        )
        with self._lock:
            self._series[slo_name] = series

        logger.debug(
            "series_registered",
            slo=slo_name,
            retention_buckets=retention_buckets,
        )

    def unregister(self, slo_name: str) -> bool:
        with self._lock:
            return self._series.pop(slo_name, None) is not None

    def __contains__(self, slo_name: str) -> bool:
        return slo_name in self._series

    def ingest(self, slo_name: str, sample: SLISample) -> None:
        """
        Store a sample in its bucket.

        Raises:
            UnknownSLOError: If the SLO was never registered
            OutOfOrderSampleError: If the sample is older than retained history
        """
        series = self._get_series(slo_name)
        index = self._bucket_index(sample.timestamp)

        with series.lock:
            horizon = series.horizon
            if horizon is not None and index < horizon:
                series.dropped_samples += 1
                raise OutOfOrderSampleError(
                    "Sample is older than retained history",
                    {
                        "slo": slo_name,
                        "timestamp": sample.timestamp.isoformat(),
                        "oldest_retained": self._bucket_start(horizon).isoformat(),
                    },
                )

            existing = series.buckets.get(index)
            if existing is not None and self.duplicate_policy == DuplicatePolicy.SUM:
                series.buckets[index] = (existing[0] + sample.good, existing[1] + sample.total)
            else:
                series.buckets[index] = (sample.good, sample.total)
            if existing is None:
                heapq.heappush(series.order, index)

            if series.history_start is None or index < series.history_start:
                series.history_start = index

            if series.newest is None or index > series.newest:
                series.newest = index
                self._prune(series)

    def aggregate(self, slo_name: str, window: timedelta, as_of: datetime) -> WindowAggregate:
        """
        Sum counts of the buckets starting in ``[as_of - window, as_of)``.

        The result is flagged ``insufficient_data`` when retained history does
        not reach back to the window start, or when the window holds no events.
        """
        series = self._get_series(slo_name)
        as_of = to_utc(as_of)
        end_seconds = as_of.timestamp()
        start_seconds = end_seconds - window.total_seconds()

        first = math.ceil(start_seconds / self._bucket_seconds)
        stop = math.ceil(end_seconds / self._bucket_seconds)

        good = total = 0
        with series.lock:
            covered = (
                series.history_start is not None
                and series.history_start <= first
                and stop - first <= series.retention_buckets
            )
            if covered:
                for index in range(first, stop):
                    counts = series.buckets.get(index)
                    if counts is not None:
                        good += counts[0]
                        total += counts[1]

        return WindowAggregate(
            good=good,
            total=total,
            window=window,
            as_of=as_of,
            insufficient_data=not covered or total == 0,
        )

    def stats(self, slo_name: str) -> dict[str, Any]:
        """Return bookkeeping counters for one series."""
        series = self._get_series(slo_name)
        with series.lock:
            return {
                "retained_buckets": len(series.buckets),
                "retention_buckets": series.retention_buckets,
                "dropped_samples": series.dropped_samples,
                "newest_bucket": (
                    self._bucket_start(series.newest).isoformat()
                    if series.newest is not None
                    else None
                ),
            }

    def _get_series(self, slo_name: str) -> _Series:
        try:
            return self._series[slo_name]
        except KeyError:
            raise UnknownSLOError(f"Unknown SLO: {slo_name}", {"slo": slo_name}) from None

    def _prune(self, series: _Series) -> None:
        horizon = series.horizon
        if horizon is None:
            return
        while series.order and series.order[0] < horizon:
            del series.buckets[heapq.heappop(series.order)]
        if series.history_start is not None and series.history_start < horizon:
            series.history_start = horizon

    def _bucket_index(self, timestamp: datetime) -> int:
        return math.floor(to_utc(timestamp).timestamp() / self._bucket_seconds)

    def _bucket_start(self, index: int) -> datetime:
        return datetime.fromtimestamp(index * self._bucket_seconds, tz=timezone.utc)
