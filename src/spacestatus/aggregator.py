"""Status aggregation engine.

:class:`StatusAggregator` owns three things:

* the base document, fixed once registration is complete;
* the ordered mutator set, appended to only during registration;
* the rendered document, replaced atomically after each render pass that
  produced a different document.

Rendering is debounced. The render loop waits on the notification channel
for at most ``render_timeout`` seconds at a time. A notification marks data
as pending and restarts the wait; a wait that times out while data is
pending triggers a render. A burst of updates therefore produces a single
render once the channel has been quiet for ``render_timeout``. When
``render_max_delay`` is set, pending data is rendered once it has waited
that long even if notifications never stop.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from spacestatus import metrics as m
from spacestatus.badge import Badge, BadgeStyle, badge_for_status
from spacestatus.bridge import TransportBridge
from spacestatus.exceptions import RegistrationError
from spacestatus.metrics import MetricsSink, NullMetrics
from spacestatus.models.status import HumiditySensor, StatusDocument, TemperatureSensor
from spacestatus.mutators import Mutator, SensorKind, StateKind
from spacestatus.shutdown import RaceOutcome

_logger = logging.getLogger(__name__)

DEFAULT_RENDER_TIMEOUT = 2.0


class StatusAggregator:
    """Renders and serves the space status document.

    Parameters
    ----------
    base : StatusDocument
        Document as configured at startup. Copied; the caller's instance is
        never modified.
    bridge : TransportBridge
        Inbound mutator wiring and outbound publication.
    render_timeout : float
        Quiet period in seconds required before pending data is rendered.
    render_max_delay : float or None
        Longest time in seconds pending data may wait under continuous
        traffic. ``None`` disables the bound.
    metrics : MetricsSink or None
        Counter sink.
    clock : callable
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        base: StatusDocument,
        *,
        bridge: TransportBridge,
        render_timeout: float = DEFAULT_RENDER_TIMEOUT,
        render_max_delay: float | None = None,
        metrics: MetricsSink | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if render_timeout <= 0:
            raise ValueError("render_timeout must be positive")
        self._base = base.clone()
        self._bridge = bridge
        self._render_timeout = render_timeout
        self._render_max_delay = render_max_delay
        self._metrics: MetricsSink = metrics or NullMetrics()
        self._clock = clock
        self._mutators: list[Mutator] = []
        self._lock = threading.Lock()
        self._rendered = self._base.clone()
        self._started = False
        self._render_count = 0

    @property
    def base(self) -> StatusDocument:
        """Copy of the base document."""
        return self._base.clone()

    @property
    def mutators(self) -> list[Mutator]:
        return list(self._mutators)

    @property
    def started(self) -> bool:
        return self._started

    @property
    def render_count(self) -> int:
        """Number of render passes run by the render loop or :meth:`render_and_publish`."""
        return self._render_count

    # ------------------------------------------------------------------
    # Registration (startup only)
    # ------------------------------------------------------------------

    def _check_open(self) -> None:
        if self._started:
            raise RegistrationError("Mutators can only be registered before the aggregator starts")

    def _add_mutator(self, mutator: Mutator) -> Mutator:
        self._mutators.append(mutator)
        self._bridge.attach(mutator)
        self._metrics.increment(m.MUTATORS)
        _logger.info("New mutator added: %r", mutator)
        return mutator

    def register_sensor(
        self,
        name: str,
        location: str,
        description: str,
        topic: str,
        kind: SensorKind,
    ) -> Mutator:
        """Add a sensor placeholder to the base document and wire its mutator.

        *name* is stripped once here so the document entry, the duplicate
        check and the mutator all use the same identity.
        """
        self._check_open()
        name = name.strip()
        if not name:
            raise RegistrationError("Sensor name must be non-empty")
        sensors = self._base.ensure_sensors()

        if kind == SensorKind.TEMPERATURE:
            if sensors.find_temperature(name) is not None:
                raise RegistrationError(f"Temperature sensor {name!r} is already registered")
            sensors.temperature.append(
                TemperatureSensor(name=name, location=location, description=description or None)
            )
        elif kind == SensorKind.HUMIDITY:
            if sensors.find_humidity(name) is not None:
                raise RegistrationError(f"Humidity sensor {name!r} is already registered")
            sensors.humidity.append(
                HumiditySensor(name=name, location=location, description=description or None)
            )
        else:
            raise RegistrationError(f"Unsupported sensor kind {kind!r}")

        mutator = self._add_mutator(Mutator(topic, kind.mutator_kind, sensor_name=name))
        _logger.info("Added %s sensor %s at %s", kind, name, location)
        return mutator

    def register_state_mutator(self, topic: str, kind: StateKind) -> Mutator:
        """Wire a mutator for one field of the ``state`` sub-document."""
        self._check_open()
        self._base.ensure_state()
        if any(existing.kind == kind.mutator_kind for existing in self._mutators):
            raise RegistrationError(f"A {kind} state mutator is already registered")
        return self._add_mutator(Mutator(topic, kind.mutator_kind))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> StatusDocument:
        """Apply every mutator, in registration order, to a fresh base copy."""
        document = self._base.clone()
        for mutator in self._mutators:
            mutator.apply(document)
        return document

    async def render_and_publish(self) -> bool:
        """Render, then publish whatever changed. Returns whether the document changed."""
        document = self.render()
        self._render_count += 1
        self._metrics.increment(m.STATUS_RENDER)

        with self._lock:
            previous = self._rendered

        if document == previous:
            _logger.debug("Rendered status unchanged")
            return False

        with self._lock:
            self._rendered = document

        if document.state != previous.state:
            await self._bridge.publish_state(document.state)
        await self._bridge.publish_status(document)
        _logger.info("Rendered new status")
        return True

    async def run(self) -> None:
        """Debounced render loop; returns once shutdown is requested."""
        channel = self._bridge.notifications
        shutdown = self._bridge.shutdown
        pending_since: float | None = None

        while True:
            timeout = self._render_timeout
            if pending_since is not None and self._render_max_delay is not None:
                remaining = self._render_max_delay - (self._clock() - pending_since)
                timeout = max(0.0, min(timeout, remaining))

            outcome, _ = await shutdown.race(channel.receive(), timeout=timeout)

            if outcome == RaceOutcome.SHUTDOWN:
                _logger.info("Render loop stopping")
                return
            if outcome == RaceOutcome.COMPLETED:
                if pending_since is None:
                    pending_since = self._clock()
                continue
            if pending_since is None:
                continue
            if shutdown.requested:
                return

            pending_since = None
            await self.render_and_publish()

    async def start(self) -> None:
        """Close registration, publish the initial document and start the render loop."""
        self._check_open()
        self._started = True
        self._base.ensure_state()

        document = self.render()
        with self._lock:
            self._rendered = document
        _logger.info("Starting status aggregator with %d mutators", len(self._mutators))

        await self._bridge.publish_state(document.state)
        await self._bridge.publish_status(document)

        self._bridge.supervisor.spawn(self.run(), name="render-loop")

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def get_status(self) -> StatusDocument:
        """Deep copy of the latest rendered document. Never renders."""
        with self._lock:
            return self._rendered.clone()

    def badge(self, style: BadgeStyle = BadgeStyle.SIMPLE) -> Badge:
        return badge_for_status(self.get_status(), style)
