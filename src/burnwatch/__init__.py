"""
burnwatch - multi-window multi-burn-rate SLO alerting.

Feed pre-aggregated good/total event counts per time bucket into an
``Engine``; it evaluates every configured burn-rate tier on a fixed
cadence and hands debounced fired/resolved transitions to an
``AlertSink``.

Quick start::

    from burnwatch import Engine, SLOSpec, SLISample
    from burnwatch.slos.notifiers import LoggingSink

    engine = Engine(LoggingSink(), [SLOSpec("checkout", target=0.999)])
    engine.ingest("checkout", SLISample(timestamp=now, good=990, total=1000))
    transitions = engine.evaluate(now)
"""

from burnwatch.slos.engine import Engine
from burnwatch.slos.models import BurnRateTier, SLISample, SLOSpec

__all__ = [
    "BurnRateTier",
    "Engine",
    "SLISample",
    "SLOSpec",
]

__version__ = "0.1.0"
