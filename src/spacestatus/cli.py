"""Command-line entry point: run the status service until interrupted."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from spacestatus.bridge import TransportBridge
from spacestatus.config import SpaceStatusConfig
from spacestatus.exceptions import ConfigError, TransportError
from spacestatus.makerspace import build_status
from spacestatus.metrics import CounterMetrics
from spacestatus.server import create_api_app, create_observability_app, serve
from spacestatus.shutdown import Shutdown
from spacestatus.tasks import TaskSupervisor
from spacestatus.transport import MqttTransport

_logger = logging.getLogger("spacestatus")

EXIT_OK = 0
EXIT_TASK_FAILED = 1
EXIT_CONFIG = 2

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_JOIN_TIMEOUT_S = 5.0


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="spacestatus",
        description="Serve a live space status document kept in sync with MQTT.",
    )
    parser.add_argument("--mqtt-broker", help="MQTT broker address (env MQTT_BROKER)")
    parser.add_argument("--mqtt-password", help="MQTT password (env MQTT_PASSWORD)")
    parser.add_argument("--mqtt-username", help="MQTT user name (env MQTT_USERNAME)")
    parser.add_argument(
        "--api-address",
        help="Address to listen on for the status endpoint (env API_ADDRESS, default 127.0.0.1:8080)",
    )
    parser.add_argument(
        "--observability-address",
        help="Address to listen on for metrics/health endpoints "
        "(env OBSERVABILITY_ADDRESS, default 127.0.0.1:9090)",
    )
    parser.add_argument(
        "--render-timeout",
        type=float,
        help="Seconds of quiet required before re-rendering (env SPACEAPI_RENDER_TIMEOUT)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> SpaceStatusConfig:
    return SpaceStatusConfig.from_env(
        mqtt_broker=args.mqtt_broker,
        mqtt_password=args.mqtt_password,
        mqtt_username=args.mqtt_username,
        api_address=args.api_address,
        observability_address=args.observability_address,
        render_timeout=args.render_timeout,
        log_level="DEBUG" if args.verbose else None,
    ).validate()


async def run(config: SpaceStatusConfig) -> int:
    """Run every component until shutdown; returns the process exit status."""
    shutdown = Shutdown()
    supervisor = TaskSupervisor(shutdown)
    metrics = CounterMetrics()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, shutdown.trigger, f"signal {sig.name}")

    transport = MqttTransport(config)
    try:
        await transport.start()
    except TransportError as exc:
        _logger.error("%s", exc)
        return EXIT_TASK_FAILED

    try:
        bridge = TransportBridge(
            transport,
            shutdown=shutdown,
            supervisor=supervisor,
            status_topic=config.status_topic,
            state_topic=config.state_topic,
            notify_timeout=config.notify_timeout,
            metrics=metrics,
        )
        aggregator = build_status(bridge, config, metrics=metrics)
        await aggregator.start()

        supervisor.spawn(
            serve(create_api_app(aggregator, metrics), config.api_address, shutdown, name="API"),
            name="api-server",
        )
        supervisor.spawn(
            serve(
                create_observability_app(metrics),
                config.observability_address,
                shutdown,
                name="observability",
            ),
            name="observability-server",
        )

        await shutdown.wait()
        _logger.info("Exiting")
        await supervisor.join(timeout=_JOIN_TIMEOUT_S)
    finally:
        shutdown.trigger("exiting")
        await transport.stop()

    if supervisor.failed:
        _logger.error("Stopped after task failure: %s", ", ".join(supervisor.failed))
        return EXIT_TASK_FAILED
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = _config_from_args(args)
    except ConfigError as exc:
        print(f"spacestatus: configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    logging.basicConfig(
        level=config.log_level.upper(),
        format=LOG_FORMAT,
    )
    return asyncio.run(run(config))
