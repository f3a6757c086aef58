"""Observability: structured logging and request metrics."""

from polyglot.observability.logging_config import (
    LogFilter,
    LogFormat,
    LoggingConfig,
    configure_polyglot_logging,
)
from polyglot.observability.metrics import (
    Counter,
    Histogram,
    MetricsRegistry,
    PolyglotMetrics,
)

__all__ = [
    "Counter",
    "Histogram",
    "LogFilter",
    "LogFormat",
    "LoggingConfig",
    "MetricsRegistry",
    "PolyglotMetrics",
    "configure_polyglot_logging",
]
