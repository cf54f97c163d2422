"""
In-process metrics for detection runs and alert dispatch.

Counters and histograms are thread-safe and exported as Prometheus text
(`orgpulse metrics`) or a plain dict.
"""

import threading
from dataclasses import dataclass, field


@dataclass
class Counter:
    """Thread-safe monotonically increasing counter."""

    name: str
    description: str
    _value: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def inc(self, amount: int = 1) -> None:
        with self._lock:
            self._value += amount

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass
class Histogram:
    """Bounded window of observations (last `max_samples`), plus lifetime count/sum."""

    name: str
    description: str
    max_samples: int = 1000
    _values: list[float] = field(default_factory=list)
    _count: int = 0
    _sum: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def observe(self, value: float) -> None:
        with self._lock:
            self._values.append(value)
            self._count += 1
            self._sum += value
            if len(self._values) > self.max_samples:
                self._values = self._values[-self.max_samples :]

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    @property
    def sum(self) -> float:
        with self._lock:
            return self._sum

    @property
    def avg(self) -> float:
        with self._lock:
            return self._sum / self._count if self._count else 0.0

    def quantile(self, q: float) -> float:
        """Quantile over the retained window (nearest rank)."""
        with self._lock:
            if not self._values:
                return 0.0
            ordered = sorted(self._values)
        idx = min(len(ordered) - 1, max(0, int(round(q * (len(ordered) - 1)))))
        return ordered[idx]


class MetricsRegistry:
    """Get-or-create registry keyed by metric name."""

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, description: str = "") -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name, description)
            return self._counters[name]

    def histogram(self, name: str, description: str = "") -> Histogram:
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name, description)
            return self._histograms[name]

    def to_prometheus(self) -> str:
        lines: list[str] = []
        with self._lock:
            counters = sorted(self._counters.items())
            histograms = sorted(self._histograms.items())

        for name, c in counters:
            if c.description:
                lines.append(f"# HELP {name} {c.description}")
            lines.append(f"# TYPE {name} counter")
            lines.append(f"{name} {c.value}")
        for name, h in histograms:
            if h.description:
                lines.append(f"# HELP {name} {h.description}")
            lines.append(f"# TYPE {name} summary")
            lines.append(f'{name}{{quantile="0.5"}} {h.quantile(0.5)}')
            lines.append(f'{name}{{quantile="0.95"}} {h.quantile(0.95)}')
            lines.append(f"{name}_count {h.count}")
            lines.append(f"{name}_sum {h.sum}")

        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict[str, dict[str, float | int | str]]:
        result: dict[str, dict[str, float | int | str]] = {}
        with self._lock:
            counters = dict(self._counters)
            histograms = dict(self._histograms)
        for name, c in counters.items():
            result[name] = {"type": "counter", "value": c.value}
        for name, h in histograms.items():
            result[name] = {
                "type": "histogram",
                "count": h.count,
                "sum": h.sum,
                "avg": h.avg,
                "p95": h.quantile(0.95),
            }
        return result


REGISTRY = MetricsRegistry()


def get_registry() -> MetricsRegistry:
    return REGISTRY


detection_runs = REGISTRY.counter("detection_runs_total", "Detection runs started")
detection_cancelled = REGISTRY.counter("detection_cancelled_total", "Detection runs cancelled")
detector_failures = REGISTRY.counter("detector_failures_total", "Detector families that raised")
entities_analyzed = REGISTRY.counter("entities_analyzed_total", "Entities with a risk assessment")
indicators_emitted = REGISTRY.counter("indicators_emitted_total", "Indicators produced by detectors")
insights_created = REGISTRY.counter("insights_created_total", "Insights inserted")
insights_updated = REGISTRY.counter("insights_updated_total", "Insights refreshed within the recency window")
persistence_failures = REGISTRY.counter("persistence_failures_total", "Insight/alert writes that failed")
read_failures = REGISTRY.counter("read_failures_total", "Entity event queries that failed")
alerts_created = REGISTRY.counter("alerts_created_total", "Alerts created from insights")
notifications_sent = REGISTRY.counter("notifications_sent_total", "Notification sends that succeeded")
notifications_failed = REGISTRY.counter("notifications_failed_total", "Notification sends that failed or timed out")
detection_duration = REGISTRY.histogram("detection_duration_seconds", "Detection run duration")
notification_duration = REGISTRY.histogram("notification_send_seconds", "Single notification send duration")
