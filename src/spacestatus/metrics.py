"""Counters for the aggregation engine.

Components receive a :class:`MetricsSink` explicitly; nothing here is a
module-level registry. :class:`CounterMetrics` keeps the counts in memory
and renders them in the Prometheus text exposition format for the
observability endpoint.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Protocol

PREFIX = "spaceapi"

REQUESTS = "requests"
STATUS_RENDER = "status_render"
MUTATORS = "mutators"
MUTATOR_DATA_UPDATES = "mutator_data_updates"
MUTATOR_ERRORS = "mutator_errors"
NOTIFICATION_FAILURES = "notification_failures"
PUBLISH_FAILURES = "publish_failures"

DESCRIPTIONS: dict[str, str] = {
    REQUESTS: "SpaceAPI requests",
    STATUS_RENDER: "Number of times the status has been rendered",
    MUTATORS: "Number of registered mutators",
    MUTATOR_DATA_UPDATES: "Number of data updates handled by mutators",
    MUTATOR_ERRORS: "Number of errors encountered by mutators when processing new data",
    NOTIFICATION_FAILURES: "Number of new-data notifications that could not be sent",
    PUBLISH_FAILURES: "Number of failed publishes of the rendered status",
}

_LabelKey = tuple[tuple[str, str], ...]


class MetricsSink(Protocol):
    """Structural counter interface injected into engine components."""

    def increment(
        self,
        name: str,
        *,
        labels: Mapping[str, str] | None = None,
        amount: int = 1,
    ) -> None: ...


class NullMetrics:
    """Sink that discards every increment."""

    def increment(
        self,
        name: str,
        *,
        labels: Mapping[str, str] | None = None,
        amount: int = 1,
    ) -> None:
        return None


def _label_key(labels: Mapping[str, str] | None) -> _LabelKey:
    if not labels:
        return ()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


class CounterMetrics:
    """Thread-safe in-memory counters."""

    def __init__(self, *, prefix: str = PREFIX) -> None:
        self._prefix = prefix
        self._lock = threading.Lock()
        self._counters: dict[str, dict[_LabelKey, int]] = {name: {} for name in DESCRIPTIONS}

    def increment(
        self,
        name: str,
        *,
        labels: Mapping[str, str] | None = None,
        amount: int = 1,
    ) -> None:
        if amount < 0:
            raise ValueError("counters can only increase")
        key = _label_key(labels)
        with self._lock:
            series = self._counters.setdefault(name, {})
            series[key] = series.get(key, 0) + amount

    def get(self, name: str, *, labels: Mapping[str, str] | None = None) -> int:
        with self._lock:
            return self._counters.get(name, {}).get(_label_key(labels), 0)

    def snapshot(self) -> dict[str, dict[_LabelKey, int]]:
        with self._lock:
            return {name: dict(series) for name, series in self._counters.items()}

    def render(self) -> str:
        """Prometheus text exposition of every counter."""
        lines: list[str] = []
        for name, series in sorted(self.snapshot().items()):
            full_name = f"{self._prefix}_{name}_total"
            help_text = DESCRIPTIONS.get(name, name)
            lines.append(f"# HELP {full_name} {help_text}.")
            lines.append(f"# TYPE {full_name} counter")
            if not series:
                if name != REQUESTS:
                    lines.append(f"{full_name} 0")
                continue
            for key, value in sorted(series.items()):
                if key:
                    rendered = ",".join(f'{k}="{_escape_label_value(v)}"' for k, v in key)
                    lines.append(f"{full_name}{{{rendered}}} {value}")
                else:
                    lines.append(f"{full_name} {value}")
        return "\n".join(lines) + "\n"
