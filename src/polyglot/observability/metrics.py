"""In-process request metrics with Prometheus text export.

Counters and histograms keep one series per label combination and are safe
to update from several threads. ``PolyglotMetrics`` pre-registers the
series the orchestrator records.
"""

from __future__ import annotations

__all__ = [
    "Counter",
    "Histogram",
    "MetricsRegistry",
    "PolyglotMetrics",
]

import math
import threading
from collections import defaultdict
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

LabelKey = tuple[tuple[str, str], ...]

# Latency buckets (seconds) sized for remote LLM calls
LATENCY_BUCKETS: tuple[float, ...] = (0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf"))


def _labels_key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


def _format_labels(pairs: LabelKey) -> str:
    if not pairs:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in pairs) + "}"


def _format_number(value: float) -> str:
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == int(value):
        return str(int(value))
    return repr(value)


class _Metric:
    kind = "untyped"

    def __init__(self, name: str, description: str, label_names: list[str]) -> None:
        self.name = name
        self.description = description
        self.label_names = label_names
        self._lock = threading.Lock()

    def _header(self) -> list[str]:
        return [f"# HELP {self.name} {self.description}", f"# TYPE {self.name} {self.kind}"]


class Counter(_Metric):
    """Monotonically increasing counter."""

    kind = "counter"

    def __init__(self, name: str, description: str, label_names: list[str]) -> None:
        super().__init__(name, description, label_names)
        self._values: dict[LabelKey, float] = defaultdict(float)

    def inc(self, value: float = 1.0, labels: dict[str, str] | None = None) -> None:
        """Add *value* (must be non-negative) to the series for *labels*."""
        if value < 0:
            msg = "Counter increment must be non-negative"
            raise ValueError(msg)
        with self._lock:
            self._values[_labels_key(labels)] += value

    def get(self, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self._values.get(_labels_key(labels), 0.0)

    def reset(self) -> None:
        with self._lock:
            self._values.clear()

    def export_lines(self) -> list[str]:
        lines = self._header()
        with self._lock:
            for key, value in sorted(self._values.items()):
                lines.append(f"{self.name}{_format_labels(key)} {_format_number(value)}")
        return lines


class Histogram(_Metric):
    """Cumulative histogram; the last bucket is always ``+Inf``."""

    kind = "histogram"

    def __init__(
        self,
        name: str,
        description: str,
        label_names: list[str],
        buckets: tuple[float, ...] = LATENCY_BUCKETS,
    ) -> None:
        super().__init__(name, description, label_names)
        bounds = list(buckets)
        if not bounds or bounds[-1] != float("inf"):
            bounds.append(float("inf"))
        self.buckets: tuple[float, ...] = tuple(bounds)
        # per series: (per-bucket counts, observation count, sum)
        self._series: dict[LabelKey, tuple[list[int], int, float]] = {}

    def observe(self, value: float, labels: dict[str, str] | None = None) -> None:
        key = _labels_key(labels)
        with self._lock:
            counts, count, total = self._series.get(key, ([0] * len(self.buckets), 0, 0.0))
            for i, bound in enumerate(self.buckets):
                if value <= bound:
                    counts[i] += 1
                    break
            self._series[key] = (counts, count + 1, total + value)

    def get_count(self, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            series = self._series.get(_labels_key(labels))
            return series[1] if series else 0

    def get_sum(self, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            series = self._series.get(_labels_key(labels))
            return series[2] if series else 0.0

    def reset(self) -> None:
        with self._lock:
            self._series.clear()

    def export_lines(self) -> list[str]:
        lines = self._header()
        with self._lock:
            for key in sorted(self._series):
                counts, count, total = self._series[key]
                cumulative = 0
                for bound, bucket_count in zip(self.buckets, counts, strict=True):
                    cumulative += bucket_count
                    le = "+Inf" if math.isinf(bound) else repr(float(bound))
                    labels = _format_labels((*key, ("le", le)))
                    lines.append(f"{self.name}_bucket{labels} {cumulative}")
                lines.append(f"{self.name}_count{_format_labels(key)} {count}")
                lines.append(f"{self.name}_sum{_format_labels(key)} {_format_number(total)}")
        return lines


class MetricsRegistry:
    """Named collection of metrics with a single export point."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._metrics: dict[str, Counter | Histogram] = {}

    def counter(self, name: str, description: str = "", labels: list[str] | None = None) -> Counter:
        """Register (or fetch the existing) counter called *name*.

        Raises:
            TypeError: If *name* is already registered as another type.
        """
        return self._register(Counter, name, description, labels or [])

    def histogram(
        self,
        name: str,
        description: str = "",
        labels: list[str] | None = None,
        buckets: tuple[float, ...] = LATENCY_BUCKETS,
    ) -> Histogram:
        """Register (or fetch the existing) histogram called *name*."""
        return self._register(Histogram, name, description, labels or [], buckets=buckets)

    def _register(
        self,
        cls: type[Counter] | type[Histogram],
        name: str,
        description: str,
        label_names: list[str],
        **kwargs: Any,
    ) -> Any:
        with self._lock:
            existing = self._metrics.get(name)
            if existing is not None:
                if not isinstance(existing, cls):
                    msg = (
                        f"Metric {name!r} already registered as "
                        f"{type(existing).__name__}, cannot register as {cls.__name__}"
                    )
                    raise TypeError(msg)
                return existing
            metric = cls(name, description, label_names, **kwargs)
            self._metrics[name] = metric
            return metric

    def get(self, name: str) -> Counter | Histogram | None:
        with self._lock:
            return self._metrics.get(name)

    def export(self) -> str:
        """Render every metric in the Prometheus text exposition format."""
        with self._lock:
            metrics = list(self._metrics.values())
        blocks = ["\n".join(metric.export_lines()) for metric in metrics]
        return "\n".join(blocks) + "\n" if blocks else ""

    def reset(self) -> None:
        with self._lock:
            for metric in self._metrics.values():
                metric.reset()


class PolyglotMetrics:
    """The standard request metrics recorded by ``Polyglot``.

    Example::

        metrics = PolyglotMetrics()
        polyglot = Polyglot(metrics=metrics)
        ...
        print(metrics.registry.export())
    """

    def __init__(self, registry: MetricsRegistry | None = None) -> None:
        self.registry = registry or MetricsRegistry()

        self.requests_total = self.registry.counter(
            "polyglot_requests_total",
            "Completed generate_response calls",
            labels=["provider", "outcome"],
        )
        self.cache_hits_total = self.registry.counter(
            "polyglot_cache_hits_total",
            "Requests answered from the response cache",
            labels=["provider"],
        )
        self.retries_total = self.registry.counter(
            "polyglot_retries_total",
            "Retries after a retryable provider error",
            labels=["provider"],
        )
        self.tokens_total = self.registry.counter(
            "polyglot_tokens_total",
            "Prompt plus completion tokens reported by providers",
            labels=["provider"],
        )
        self.request_duration_seconds = self.registry.histogram(
            "polyglot_request_duration_seconds",
            "Provider dispatch duration in seconds, including middleware",
            labels=["provider"],
        )

        logger.debug("polyglot_metrics_initialized", metric_count=len(self.registry._metrics))
