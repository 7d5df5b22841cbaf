"""In-process counters rendered in the Prometheus text exposition format."""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

LabelValues = Tuple[str, ...]


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class Counter:
    """Monotonic counter, optionally split by a fixed set of label names."""

    def __init__(self, name: str, label_names: Optional[Iterable[str]] = None):
        self.name = name
        self.label_names: Tuple[str, ...] = tuple(label_names or ())
        self._series: Dict[LabelValues, float] = {}
        self._lock = threading.Lock()

    def _key(self, labels: Optional[Mapping[str, str]]) -> LabelValues:
        labels = labels or {}
        return tuple(str(labels.get(name, "")) for name in self.label_names)

    def inc(self, labels: Optional[Mapping[str, str]] = None, amount: float = 1.0) -> None:
        key = self._key(labels)
        with self._lock:
            self._series[key] = self._series.get(key, 0.0) + float(amount)

    def value(self, labels: Optional[Mapping[str, str]] = None) -> float:
        with self._lock:
            return self._series.get(self._key(labels), 0.0)

    def export(self) -> List[str]:
        with self._lock:
            series = sorted(self._series.items())
        lines = [f"# TYPE {self.name} counter"]
        for values, total in series:
            if self.label_names:
                rendered = ",".join(f'{n}="{_escape(v)}"' for n, v in zip(self.label_names, values))
                lines.append(f"{self.name}{{{rendered}}} {total}")
            else:
                lines.append(f"{self.name} {total}")
        return lines

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


class MetricsRegistry:
    def __init__(self):
        self._counters: Dict[str, Counter] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, label_names: Optional[Iterable[str]] = None) -> Counter:
        """Get or create; the first registration fixes the label names."""
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name, label_names)
            return self._counters[name]

    def export_prometheus(self) -> str:
        with self._lock:
            counters = list(self._counters.values())
        lines: List[str] = []
        for counter in counters:
            lines.extend(counter.export())
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        with self._lock:
            counters = list(self._counters.values())
        for counter in counters:
            counter.reset()


METRICS = MetricsRegistry()

http_requests_total = METRICS.counter("http_requests_total", ["method", "path", "status"])
log_events_appended_total = METRICS.counter("log_events_appended_total", ["status"])
challenges_completed_total = METRICS.counter("challenges_completed_total")
auto_skip_events_total = METRICS.counter("auto_skip_events_total")
auto_skip_failures_total = METRICS.counter("auto_skip_failures_total")


def normalize_path(path: str) -> str:
    """/v1/challenges/12/logs -> /v1/challenges/:id/logs, keeping label cardinality bounded."""
    segments = [s for s in path.split("/") if s]
    return "/" + "/".join(":id" if s.isdigit() else s for s in segments)
