"""HTTP endpoints.

Two aiohttp applications:

* the API app: ``GET /`` serves the rendered status document,
  ``GET /badge`` and ``GET /badge/simple`` redirect to a badge image;
* the observability app: ``GET /metrics`` and health probes.

Handlers only read snapshots from the aggregator and never wait on a
render pass.
"""

from __future__ import annotations

import logging

from aiohttp import web

from spacestatus import metrics as m
from spacestatus.aggregator import StatusAggregator
from spacestatus.badge import BadgeStyle
from spacestatus.config import parse_address
from spacestatus.metrics import CounterMetrics, MetricsSink, NullMetrics
from spacestatus.shutdown import Shutdown

_logger = logging.getLogger(__name__)

AGGREGATOR_KEY = web.AppKey("aggregator", StatusAggregator)
METRICS_KEY = web.AppKey("metrics", MetricsSink)  # type: ignore[type-abstract]
COUNTERS_KEY = web.AppKey("counters", CounterMetrics)

ENDPOINT_SPACEAPI = "space_api"
ENDPOINT_BADGE_SIMPLE = "open_badge_simple"
ENDPOINT_BADGE_FULL = "open_badge_full"


def _count_request(request: web.Request, endpoint: str) -> None:
    request.app[METRICS_KEY].increment(m.REQUESTS, labels={"endpoint": endpoint})


async def handle_status(request: web.Request) -> web.Response:
    _count_request(request, ENDPOINT_SPACEAPI)
    status = request.app[AGGREGATOR_KEY].get_status()
    return web.json_response(status.to_wire())


async def _redirect_to_badge(request: web.Request, style: BadgeStyle) -> web.Response:
    badge = request.app[AGGREGATOR_KEY].badge(style)
    _logger.debug("Badge %s -> %s", style, badge.url)
    raise web.HTTPFound(badge.url, headers={"Cache-Control": "no-cache"})


async def handle_badge_simple(request: web.Request) -> web.Response:
    _count_request(request, ENDPOINT_BADGE_SIMPLE)
    return await _redirect_to_badge(request, BadgeStyle.SIMPLE)


async def handle_badge_full(request: web.Request) -> web.Response:
    _count_request(request, ENDPOINT_BADGE_FULL)
    return await _redirect_to_badge(request, BadgeStyle.FULL)


def create_api_app(aggregator: StatusAggregator, metrics: MetricsSink | None = None) -> web.Application:
    app = web.Application()
    app[AGGREGATOR_KEY] = aggregator
    app[METRICS_KEY] = metrics or NullMetrics()
    app.router.add_get("/", handle_status)
    app.router.add_get("/badge/simple", handle_badge_simple)
    app.router.add_get("/badge", handle_badge_full)
    return app


async def handle_metrics(request: web.Request) -> web.Response:
    return web.Response(
        text=request.app[COUNTERS_KEY].render(),
        content_type="text/plain",
        charset="utf-8",
    )


async def handle_health(_request: web.Request) -> web.Response:
    return web.Response(text="ok")


def create_observability_app(metrics: CounterMetrics) -> web.Application:
    app = web.Application()
    app[COUNTERS_KEY] = metrics
    app.router.add_get("/metrics", handle_metrics)
    app.router.add_get("/health/live", handle_health)
    app.router.add_get("/health/ready", handle_health)
    return app


async def serve(app: web.Application, address: str, shutdown: Shutdown, *, name: str = "http") -> None:
    """Serve *app* on ``host:port`` until shutdown is requested."""
    host, port = parse_address(address)
    runner = web.AppRunner(app, handle_signals=False)
    await runner.setup()
    try:
        site = web.TCPSite(runner, host, port)
        await site.start()
        _logger.info("Starting %s server on %s", name, address)
        await shutdown.wait()
    finally:
        _logger.info("Stopping %s server", name)
        await runner.cleanup()
