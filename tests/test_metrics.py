from __future__ import annotations

import pytest

from spacestatus import metrics as m
from spacestatus.metrics import CounterMetrics


def test_counters_accumulate_per_label_set() -> None:
    metrics = CounterMetrics()
    metrics.increment(m.REQUESTS, labels={"endpoint": "space_api"})
    metrics.increment(m.REQUESTS, labels={"endpoint": "space_api"})
    metrics.increment(m.REQUESTS, labels={"endpoint": "open_badge_simple"})
    metrics.increment(m.STATUS_RENDER, amount=3)

    assert metrics.get(m.REQUESTS, labels={"endpoint": "space_api"}) == 2
    assert metrics.get(m.REQUESTS, labels={"endpoint": "open_badge_simple"}) == 1
    assert metrics.get(m.REQUESTS) == 0
    assert metrics.get(m.STATUS_RENDER) == 3


def test_counters_never_decrease() -> None:
    with pytest.raises(ValueError):
        CounterMetrics().increment(m.MUTATORS, amount=-1)


def test_render_exposition_format() -> None:
    metrics = CounterMetrics()
    metrics.increment(m.MUTATORS, amount=15)
    metrics.increment(m.REQUESTS, labels={"endpoint": "space_api"})
    metrics.increment(m.PUBLISH_FAILURES, labels={"topic": 'a"b'})

    lines = metrics.render().splitlines()

    assert "# HELP spaceapi_mutators_total Number of registered mutators." in lines
    assert "# TYPE spaceapi_mutators_total counter" in lines
    assert "spaceapi_mutators_total 15" in lines
    assert 'spaceapi_requests_total{endpoint="space_api"} 1' in lines
    assert 'spaceapi_publish_failures_total{topic="a\\"b"} 1' in lines
    assert "spaceapi_status_render_total 0" in lines
