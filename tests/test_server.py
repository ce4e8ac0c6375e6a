from __future__ import annotations

from urllib.parse import unquote

import pytest
from aiohttp import test_utils

from spacestatus import metrics as m
from spacestatus.aggregator import StatusAggregator
from spacestatus.bridge import TransportBridge
from spacestatus.metrics import CounterMetrics
from spacestatus.models.status import Location, StatusDocument
from spacestatus.mutators import StateKind
from spacestatus.server import create_api_app, create_observability_app
from spacestatus.shutdown import Shutdown
from spacestatus.tasks import TaskSupervisor
from spacestatus.transport import LoopbackTransport


async def _started_aggregator(
    metrics: CounterMetrics, *, message: str | None = None
) -> tuple[StatusAggregator, TaskSupervisor]:
    shutdown = Shutdown()
    supervisor = TaskSupervisor(shutdown)
    bridge = TransportBridge(
        LoopbackTransport(),
        shutdown=shutdown,
        supervisor=supervisor,
        status_topic="out/status",
        state_topic="out/state",
        metrics=metrics,
    )
    base = StatusDocument(
        space="Test Space",
        logo="https://example.org/logo.png",
        url="https://example.org/",
        location=Location(lat=54.0, lon=-1.0),
    )
    base.ensure_state().message = message
    aggregator = StatusAggregator(base, bridge=bridge, metrics=metrics)
    aggregator.register_state_mutator("state/open", StateKind.OPEN)
    await aggregator.start()
    return aggregator, supervisor


async def _stop(supervisor: TaskSupervisor) -> None:
    supervisor.shutdown.trigger("test")
    await supervisor.join(timeout=1.0)


@pytest.mark.asyncio
async def test_status_endpoint_serves_rendered_document() -> None:
    metrics = CounterMetrics()
    aggregator, supervisor = await _started_aggregator(metrics)

    async with test_utils.TestClient(test_utils.TestServer(create_api_app(aggregator, metrics))) as client:
        resp = await client.get("/")
        assert resp.status == 200
        assert resp.content_type == "application/json"
        body = await resp.json()

    assert body["space"] == "Test Space"
    assert body["api_compatibility"] == ["14"]
    assert body["state"] == {"open": False}
    assert metrics.get(m.REQUESTS, labels={"endpoint": "space_api"}) == 1
    await _stop(supervisor)


@pytest.mark.asyncio
async def test_badge_endpoints_redirect() -> None:
    metrics = CounterMetrics()
    aggregator, supervisor = await _started_aggregator(metrics, message="Back at 7")

    async with test_utils.TestClient(test_utils.TestServer(create_api_app(aggregator, metrics))) as client:
        simple = await client.get("/badge/simple", allow_redirects=False)
        full = await client.get("/badge", allow_redirects=False)

    assert simple.status == 302
    assert unquote(simple.headers["Location"]) == "https://img.shields.io/badge/Test Space-closed-red"
    assert simple.headers["Cache-Control"] == "no-cache"
    assert full.status == 302
    assert unquote(full.headers["Location"]) == "https://img.shields.io/badge/Test Space-closed: Back at 7-red"
    assert metrics.get(m.REQUESTS, labels={"endpoint": "open_badge_simple"}) == 1
    assert metrics.get(m.REQUESTS, labels={"endpoint": "open_badge_full"}) == 1
    await _stop(supervisor)


@pytest.mark.asyncio
async def test_observability_endpoints() -> None:
    metrics = CounterMetrics()
    metrics.increment(m.MUTATORS, amount=2)

    async with test_utils.TestClient(test_utils.TestServer(create_observability_app(metrics))) as client:
        resp = await client.get("/metrics")
        text = await resp.text()
        live = await client.get("/health/live")
        ready = await client.get("/health/ready")

        assert resp.status == 200
        assert resp.content_type == "text/plain"
        assert "spaceapi_mutators_total 2" in text
        assert live.status == 200
        assert await ready.text() == "ok"


@pytest.mark.asyncio
async def test_unknown_path_is_not_found() -> None:
    metrics = CounterMetrics()
    aggregator, supervisor = await _started_aggregator(metrics)

    async with test_utils.TestClient(test_utils.TestServer(create_api_app(aggregator))) as client:
        resp = await client.get("/nope")
        assert resp.status == 404
    await _stop(supervisor)
