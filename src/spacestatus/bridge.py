"""Bridge between the transport and the aggregation engine.

Inbound: one ingestion worker per mutator stores matching payloads and
signals the notification channel. Outbound: JSON publication of the
rendered document and of its ``state`` sub-document.

Topic matching is exact string equality; wildcards are not interpreted.
"""

from __future__ import annotations

import logging

from spacestatus import metrics as m
from spacestatus.exceptions import PayloadParseError, TransportError
from spacestatus.metrics import MetricsSink, NullMetrics
from spacestatus.models.status import State, StatusDocument
from spacestatus.mutators import Mutator
from spacestatus.notification import NotificationChannel
from spacestatus.shutdown import RaceOutcome, Shutdown
from spacestatus.tasks import TaskSupervisor
from spacestatus.transport import MessageStream, Transport, TransportMessage

_logger = logging.getLogger(__name__)


class TransportBridge:
    """Connects mutators to a :class:`~spacestatus.transport.Transport`.

    Parameters
    ----------
    transport : Transport
        Publish/subscribe collaborator.
    shutdown : Shutdown
        Broadcast signal; ingestion workers exit when it fires.
    supervisor : TaskSupervisor
        Owns the ingestion worker tasks.
    status_topic : str
        Topic for the full rendered document.
    state_topic : str
        Topic for the ``state`` sub-document.
    notify_timeout : float
        Seconds to wait for room on a full notification channel.
    channel : NotificationChannel or None
        Shared new-data channel; created when omitted.
    metrics : MetricsSink or None
        Counter sink.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        shutdown: Shutdown,
        supervisor: TaskSupervisor,
        status_topic: str,
        state_topic: str,
        notify_timeout: float = 1.0,
        channel: NotificationChannel | None = None,
        metrics: MetricsSink | None = None,
    ) -> None:
        self._transport = transport
        self._shutdown = shutdown
        self._supervisor = supervisor
        self._status_topic = status_topic
        self._state_topic = state_topic
        self._notify_timeout = notify_timeout
        self._channel = channel or NotificationChannel()
        self._metrics: MetricsSink = metrics or NullMetrics()
        self._attached: list[Mutator] = []

    @property
    def notifications(self) -> NotificationChannel:
        return self._channel

    @property
    def shutdown(self) -> Shutdown:
        return self._shutdown

    @property
    def supervisor(self) -> TaskSupervisor:
        return self._supervisor

    @property
    def status_topic(self) -> str:
        return self._status_topic

    @property
    def state_topic(self) -> str:
        return self._state_topic

    @property
    def attached(self) -> list[Mutator]:
        return list(self._attached)

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def attach(self, mutator: Mutator) -> None:
        """Subscribe to the mutator's topic and start its ingestion worker."""
        self._transport.subscribe(mutator.topic)
        # Open the stream now so nothing published after attach() is missed.
        stream = self._transport.receive()
        self._attached.append(mutator)
        self._supervisor.spawn(
            self._ingest(mutator, stream),
            name=f"ingest:{mutator.kind}:{mutator.topic}",
        )
        _logger.debug("Attached %r", mutator)

    async def _ingest(self, mutator: Mutator, stream: MessageStream) -> None:
        try:
            while True:
                outcome, message = await self._shutdown.race(stream.get())
                if outcome == RaceOutcome.SHUTDOWN:
                    _logger.debug("Ingestion for %s stopping", mutator.topic)
                    return
                if message is not None:
                    await self.handle_message(mutator, message)
        finally:
            stream.close()

    async def handle_message(self, mutator: Mutator, message: TransportMessage) -> bool:
        """Store *message* into *mutator* if the topic matches, then notify.

        Returns whether a new value was stored.
        """
        if message.topic != mutator.topic:
            return False

        try:
            mutator.store(message.payload)
        except PayloadParseError as exc:
            _logger.warning("Failed to parse payload for %r: %s", mutator, exc)
            self._metrics.increment(m.MUTATOR_ERRORS)
            return False
        self._metrics.increment(m.MUTATOR_DATA_UPDATES)

        if not await self._channel.notify(self._notify_timeout):
            _logger.warning("Failed to notify of new data from %s", mutator.topic)
            self._metrics.increment(m.NOTIFICATION_FAILURES)
        return True

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def _publish(self, topic: str, payload: bytes) -> bool:
        try:
            await self._transport.publish(topic, payload, retain=True)
        except (TransportError, OSError) as exc:
            _logger.warning("Failed to publish to %s: %s", topic, exc)
            self._metrics.increment(m.PUBLISH_FAILURES, labels={"topic": topic})
            return False
        return True

    async def publish_state(self, state: State | None) -> bool:
        """Publish the ``state`` sub-document (``{}`` when absent)."""
        payload = state.to_json_bytes() if state is not None else b"{}"
        _logger.info("Publishing state to %s", self._state_topic)
        return await self._publish(self._state_topic, payload)

    async def publish_status(self, document: StatusDocument) -> bool:
        """Publish the full rendered document."""
        _logger.info("Publishing status to %s", self._status_topic)
        return await self._publish(self._status_topic, document.to_json_bytes())
