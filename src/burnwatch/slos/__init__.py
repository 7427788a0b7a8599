"""
SLO burn-rate alerting.

This module handles SLI window storage, error budget and burn rate
calculation, multi-window tier evaluation and alert debouncing.
"""

from burnwatch.slos.calculator import ErrorBudgetCalculator, budget_consumed, burn_rate, error_rate
from burnwatch.slos.engine import Engine
from burnwatch.slos.evaluator import BurnRateEvaluator
from burnwatch.slos.models import (
    DEFAULT_TIERS,
    AlertFired,
    AlertPhase,
    AlertResolved,
    AlertState,
    AlertTransition,
    BurnRateResult,
    BurnRateTier,
    DataGap,
    SLISample,
    SLOSpec,
    WindowAggregate,
    parse_duration,
)
from burnwatch.slos.notifiers import (
    AlertSink,
    FanoutSink,
    LoggingSink,
    NotificationError,
    PagerDutySink,
    RecordingSink,
    SlackSink,
    build_sink,
)
from burnwatch.slos.state import AlertStateMachine
from burnwatch.slos.store import DuplicatePolicy, SLIWindowStore

__all__ = [
    "AlertFired",
    "AlertPhase",
    "AlertResolved",
    "AlertSink",
    "AlertState",
    "AlertStateMachine",
    "AlertTransition",
    "BurnRateEvaluator",
    "BurnRateResult",
    "BurnRateTier",
    "DEFAULT_TIERS",
    "DataGap",
    "DuplicatePolicy",
    "Engine",
    "ErrorBudgetCalculator",
    "FanoutSink",
    "LoggingSink",
    "NotificationError",
    "PagerDutySink",
    "RecordingSink",
    "SLISample",
    "SLIWindowStore",
    "SLOSpec",
    "SlackSink",
    "WindowAggregate",
    "budget_consumed",
    "build_sink",
    "burn_rate",
    "error_rate",
    "parse_duration",
]
