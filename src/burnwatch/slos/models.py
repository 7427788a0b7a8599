"""
SLO data models.

Objectives, burn-rate tiers, ingested SLI samples, and the transient
views (window aggregates, burn rate results, alert states) derived
from them during evaluation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from burnwatch.core.errors import InvalidSampleError

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw])\s*$")

_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value: str | int | float | timedelta) -> timedelta:
    """
    Convert a duration string (e.g. "5m", "6h", "30d") to a timedelta.

    Plain numbers are taken as seconds.

    Raises:
        ValueError: If the value is not a supported duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Unsupported duration: {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Unsupported duration: {value!r}")

    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


def format_duration(value: timedelta) -> str:
    """Render a timedelta in the shortest exact duration unit."""
    seconds = int(value.total_seconds())
    for unit, size in (("w", 604800), ("d", 86400), ("h", 3600), ("m", 60)):
        if seconds and seconds % size == 0:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


def to_utc(value: datetime) -> datetime:
    """Normalise a datetime to UTC; naive values are assumed to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BurnRateTier:
    """
    One multi-window burn-rate alerting tier.

    The tier's condition holds when both the short and the long window
    burn the error budget faster than ``threshold`` times the sustainable
    pace. ``for_duration`` is the confirmation delay applied both before
    firing and before resolving.
    """

    short_window: timedelta
    long_window: timedelta
    threshold: float
    for_duration: timedelta = timedelta(0)
    severity: str = "critical"

    def validate(self) -> list[str]:
        """Return the list of invariant violations (empty if valid)."""
        errors = []

        if self.short_window <= timedelta(0):
            errors.append("short_window must be positive")
        if self.long_window <= timedelta(0):
            errors.append("long_window must be positive")
        if self.short_window >= self.long_window:
            errors.append(
                f"short_window ({format_duration(self.short_window)}) must be shorter "
                f"than long_window ({format_duration(self.long_window)})"
            )
        if not self.threshold > 0:
            errors.append(f"threshold must be > 0, got {self.threshold}")
        if self.for_duration < timedelta(0):
            errors.append("for must not be negative")
        if not self.severity.strip():
            errors.append("severity cannot be empty")

        return errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity,
            "short_window": format_duration(self.short_window),
            "long_window": format_duration(self.long_window),
            "threshold": self.threshold,
            "for": format_duration(self.for_duration),
        }


# Multi-window multi-burn-rate defaults for a 30 day SLO period.
DEFAULT_TIERS: tuple[BurnRateTier, ...] = (
    BurnRateTier(
        short_window=timedelta(hours=1),
        long_window=timedelta(hours=6),
        threshold=14.4,
        for_duration=timedelta(minutes=5),
        severity="critical",
    ),
    BurnRateTier(
        short_window=timedelta(hours=6),
        long_window=timedelta(hours=24),
        threshold=6.0,
        for_duration=timedelta(minutes=15),
        severity="high",
    ),
    BurnRateTier(
        short_window=timedelta(days=1),
        long_window=timedelta(days=3),
        threshold=1.0,
        for_duration=timedelta(hours=1),
        severity="warning",
    ),
)


@dataclass(frozen=True)
class SLOSpec:
    """
    Service Level Objective with its burn-rate alerting tiers.

    Immutable once loaded; reconfiguring an SLO means replacing the SLOSpec.
    """

    name: str
    target: float  # Target ratio (e.g., 0.999 for 99.9%)
    tiers: tuple[BurnRateTier, ...] = DEFAULT_TIERS
    period: timedelta = timedelta(days=30)
    description: str = ""
    labels: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def error_budget(self) -> float:
        """Tolerated error rate (``1 - target``)."""
        return 1.0 - self.target

    @property
    def windows(self) -> tuple[timedelta, ...]:
        """Sorted union of every window referenced by the tiers."""
        windows = {t.short_window for t in self.tiers} | {t.long_window for t in self.tiers}
        return tuple(sorted(windows))

    @property
    def longest_window(self) -> timedelta:
        return max(self.windows) if self.tiers else timedelta(0)

    def validate(self) -> list[str]:
        """Return the list of invariant violations (empty if valid)."""
        errors = []

        if not self.name.strip():
            errors.append("SLO name cannot be empty")
        if not (0.0 < self.target <= 1.0):
            errors.append(f"Invalid target: {self.target}, must be in (0, 1]")
        if self.period <= timedelta(0):
            errors.append("period must be positive")
        if not self.tiers:
            errors.append("at least one burn-rate tier is required")

        for index, tier in enumerate(self.tiers):
            errors.extend(f"tiers[{index}]: {e}" for e in tier.validate())

        return errors

    def warnings(self) -> list[str]:
        """Return configuration smells that do not prevent evaluation."""
        if self.target >= 1.0:
            return [
                "target of 1.0 leaves no error budget; any error burns at an infinite rate"
            ]
        return []

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "target": self.target,
            "period": format_duration(self.period),
            "description": self.description,
            "labels": dict(self.labels),
            "tiers": [t.to_dict() for t in self.tiers],
        }


@dataclass(frozen=True)
class SLISample:
    """Good/total event counts observed during one bucket interval."""

    timestamp: datetime
    good: int
    total: int

    def __post_init__(self) -> None:
        if self.good < 0 or self.total < 0:
            raise InvalidSampleError(
                "Sample counts must be non-negative",
                {"good": self.good, "total": self.total},
            )
        if self.good > self.total:
            raise InvalidSampleError(
                "Sample good count exceeds total",
                {"good": self.good, "total": self.total},
            )
        object.__setattr__(self, "timestamp", to_utc(self.timestamp))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SLISample:
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
        elif isinstance(timestamp, (int, float)):
            timestamp = datetime.fromtimestamp(timestamp, tz=timezone.utc)
        return cls(
            timestamp=timestamp,
            good=_parse_count(data["good"], "good"),
            total=_parse_count(data["total"], "total"),
        )


def _parse_count(value: Any, name: str) -> int:
    """Accept whole numbers only; 1.7 events is not a count."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise InvalidSampleError(f"Sample {name} must be a whole number", {name: value})


@dataclass(frozen=True)
class WindowAggregate:
    """Summed counts over ``[as_of - window, as_of)``."""

    good: int
    total: int
    window: timedelta
    as_of: datetime
    insufficient_data: bool = False

    @property
    def bad(self) -> int:
        return self.total - self.good


@dataclass(frozen=True)
class BurnRateResult:
    """Outcome of evaluating one tier at one instant."""

    slo_name: str
    tier_index: int
    severity: str
    short_burn: float | None
    long_burn: float | None
    condition_met: bool
    insufficient_data: bool
    evaluated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "slo_name": self.slo_name,
            "tier_index": self.tier_index,
            "severity": self.severity,
            "short_burn": self.short_burn,
            "long_burn": self.long_burn,
            "condition_met": self.condition_met,
            "insufficient_data": self.insufficient_data,
            "evaluated_at": self.evaluated_at.isoformat(),
        }


class AlertPhase(str, Enum):
    """Lifecycle phase of one (SLO, tier) alert."""

    INACTIVE = "inactive"
    PENDING = "pending"
    FIRING = "firing"


@dataclass
class AlertState:
    """
    Debounce state for one (SLO, tier) pair.

    ``pending_since`` marks when the condition first held; ``recover_since``
    marks when a firing alert's condition first stopped holding.
    """

    phase: AlertPhase = AlertPhase.INACTIVE
    pending_since: datetime | None = None
    recover_since: datetime | None = None
    fired_at: datetime | None = None
    last_short_burn: float | None = None
    last_long_burn: float | None = None

    @property
    def recovering(self) -> bool:
        return self.phase == AlertPhase.FIRING and self.recover_since is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "recovering": self.recovering,
            "pending_since": self.pending_since.isoformat() if self.pending_since else None,
            "recover_since": self.recover_since.isoformat() if self.recover_since else None,
            "fired_at": self.fired_at.isoformat() if self.fired_at else None,
        }


@dataclass(frozen=True)
class AlertFired:
    """A tier's condition held for its full confirmation duration."""

    slo_name: str
    tier_severity: str
    tier_index: int
    short_burn: float
    long_burn: float
    fired_at: datetime

    kind = "fired"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "slo_name": self.slo_name,
            "tier_severity": self.tier_severity,
            "tier_index": self.tier_index,
            "short_burn": self.short_burn,
            "long_burn": self.long_burn,
            "fired_at": self.fired_at.isoformat(),
        }


@dataclass(frozen=True)
class AlertResolved:
    """A firing tier stayed healthy, with data, for its confirmation duration."""

    slo_name: str
    tier_severity: str
    tier_index: int
    resolved_at: datetime

    kind = "resolved"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "slo_name": self.slo_name,
            "tier_severity": self.tier_severity,
            "tier_index": self.tier_index,
            "resolved_at": self.resolved_at.isoformat(),
        }


@dataclass(frozen=True)
class DataGap:
    """A firing tier was cleared because its data went missing."""

    slo_name: str
    tier_severity: str
    tier_index: int
    detected_at: datetime

    kind = "data_gap"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "slo_name": self.slo_name,
            "tier_severity": self.tier_severity,
            "tier_index": self.tier_index,
            "detected_at": self.detected_at.isoformat(),
        }


AlertTransition = AlertFired | AlertResolved | DataGap
