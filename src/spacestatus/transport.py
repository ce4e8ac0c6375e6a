"""Publish/subscribe transport used by the aggregation engine.

The engine only depends on the structural :class:`Transport` protocol:
``subscribe(topic)``, ``publish(topic, payload)`` and ``receive()``. Two
implementations live here:

* :class:`MqttTransport`, a threaded paho-mqtt client whose callbacks are
  marshalled onto the asyncio loop. Connection loss and reconnection are
  handled entirely here (paho's automatic reconnect plus re-subscription on
  every connect); consumers just stop seeing messages during an outage.
* :class:`LoopbackTransport`, an in-process transport for local runs and
  tests.

Every :meth:`Transport.receive` call returns a new :class:`MessageStream`
that sees every inbound message (broadcast), independently of other
streams.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol, cast

import paho.mqtt.client as mqtt

from spacestatus.config import SpaceStatusConfig, parse_broker
from spacestatus.exceptions import TransportError

_logger = logging.getLogger(__name__)

DEFAULT_STREAM_CAPACITY = 256


@dataclass(frozen=True)
class TransportMessage:
    """One inbound message."""

    topic: str
    payload: bytes


class MessageStream:
    """A receiver's view of inbound traffic.

    Bounded: when the consumer falls behind, the oldest queued message is
    dropped to make room. Only the latest value per topic matters to the
    engine, so dropping old messages never loses the current state.
    """

    def __init__(self, fanout: MessageFanout, capacity: int = DEFAULT_STREAM_CAPACITY) -> None:
        self._fanout = fanout
        self._queue: asyncio.Queue[TransportMessage] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self, message: TransportMessage) -> None:
        if self._closed:
            return
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            _logger.warning("Receiver lagging; dropped oldest message (total dropped %d)", self.dropped)
        self._queue.put_nowait(message)

    async def get(self) -> TransportMessage:
        """Wait for the next inbound message."""
        return await self._queue.get()

    def get_nowait(self) -> TransportMessage | None:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._fanout.remove(self)


class MessageFanout:
    """Broadcasts each inbound message to every open stream.

    Must only be used from the event loop thread.
    """

    def __init__(self, stream_capacity: int = DEFAULT_STREAM_CAPACITY) -> None:
        self._stream_capacity = stream_capacity
        self._streams: list[MessageStream] = []

    def __len__(self) -> int:
        return len(self._streams)

    def open(self) -> MessageStream:
        stream = MessageStream(self, self._stream_capacity)
        self._streams.append(stream)
        return stream

    def remove(self, stream: MessageStream) -> None:
        if stream in self._streams:
            self._streams.remove(stream)

    def dispatch(self, message: TransportMessage) -> None:
        _logger.debug("Inbound message topic=%s bytes=%d", message.topic, len(message.payload))
        for stream in list(self._streams):
            stream._deliver(message)  # noqa: SLF001


class Transport(Protocol):
    """Structural transport interface used by the bridge.

    Keeping this a protocol lets tests pass :class:`LoopbackTransport` (or
    any other double) while production uses :class:`MqttTransport`.
    """

    def subscribe(self, topic: str) -> None: ...

    async def publish(self, topic: str, payload: bytes, *, retain: bool = False) -> None: ...

    def receive(self) -> MessageStream: ...


class LoopbackTransport:
    """In-process transport.

    Published messages are recorded in :attr:`published`. Inbound traffic
    is simulated with :meth:`inject`; like a broker, only subscribed topics
    are delivered to receivers.
    """

    def __init__(self, *, stream_capacity: int = DEFAULT_STREAM_CAPACITY) -> None:
        self._fanout = MessageFanout(stream_capacity)
        self.subscriptions: list[str] = []
        self.published: list[tuple[str, bytes, bool]] = []
        self.fail_publish = False

    def subscribe(self, topic: str) -> None:
        if topic not in self.subscriptions:
            self.subscriptions.append(topic)

    async def publish(self, topic: str, payload: bytes, *, retain: bool = False) -> None:
        if self.fail_publish:
            raise TransportError(f"Publish to {topic} failed (loopback failure injected)", topic=topic)
        self.published.append((topic, payload, retain))

    def receive(self) -> MessageStream:
        return self._fanout.open()

    def inject(self, topic: str, payload: bytes | str) -> bool:
        """Deliver an inbound message; returns ``False`` for unsubscribed topics."""
        if topic not in self.subscriptions:
            return False
        data = payload.encode("utf-8") if isinstance(payload, str) else payload
        self._fanout.dispatch(TransportMessage(topic=topic, payload=data))
        return True

    def published_on(self, topic: str) -> list[bytes]:
        return [payload for published_topic, payload, _retain in self.published if published_topic == topic]


class MqttTransport:
    """Threaded paho-mqtt client that emits inbound messages onto an asyncio loop."""

    def __init__(
        self,
        config: SpaceStatusConfig,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        qos: int = 1,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._loop = loop
        self._qos = qos
        self._logger = logger or _logger
        self._fanout = MessageFanout()
        self._topics: list[str] = []
        self._client: mqtt.Client | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    def subscribe(self, topic: str) -> None:
        """Subscribe now if connected; always re-subscribed on (re)connect."""
        if topic in self._topics:
            return
        self._topics.append(topic)
        client = self._client
        if client is not None and self._connected:
            self._logger.debug("MQTT subscribing topic=%s", topic)
            client.subscribe(topic, qos=self._qos)

    def receive(self) -> MessageStream:
        return self._fanout.open()

    async def publish(self, topic: str, payload: bytes, *, retain: bool = False) -> None:
        client = self._client
        if client is None:
            raise TransportError(f"Publish to {topic} failed: client not started", topic=topic)
        info = client.publish(topic, payload, qos=self._qos, retain=retain)
        if info.rc == mqtt.MQTT_ERR_NO_CONN and self._qos > 0:
            # paho keeps QoS>0 messages queued and sends them after reconnect.
            self._logger.debug("Broker unreachable; queued publish topic=%s", topic)
            return
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(
                f"Publish to {topic} failed: {mqtt.error_string(info.rc)}",
                topic=topic,
            )
        self._logger.debug("Published topic=%s bytes=%d retain=%s", topic, len(payload), retain)

    def _build_client(self, loop: asyncio.AbstractEventLoop) -> mqtt.Client:
        host, port, tls = parse_broker(self._config.mqtt_broker)
        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=self._config.mqtt_client_id,
            protocol=mqtt.MQTTv311,
            clean_session=True,
        )
        client.enable_logger(self._logger)
        client.username_pw_set(self._config.mqtt_username, self._config.mqtt_password)
        if tls:
            client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=5)

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._connected = True
            self._logger.info("MQTT connected to %s:%s", host, port)
            for topic in list(self._topics):
                self._logger.debug("MQTT subscribing topic=%s", topic)
                c.subscribe(topic, qos=self._qos)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            message = TransportMessage(topic=msg.topic, payload=bytes(msg.payload))
            try:
                loop.call_soon_threadsafe(self._fanout.dispatch, message)
            except RuntimeError:
                # Loop already closed during shutdown.
                self._logger.debug("Dropping MQTT message after loop shutdown topic=%s", msg.topic)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            was_connected = self._connected
            self._connected = False
            if was_connected:
                self._logger.warning("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect
        return client

    async def start(self) -> None:
        """Connect to the broker and start the network thread."""
        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        host, port, _tls = parse_broker(self._config.mqtt_broker)
        client = self._build_client(loop)
        self._logger.info("Connecting to MQTT broker %s:%s as %s", host, port, self._config.mqtt_username)
        try:
            await loop.run_in_executor(
                None,
                lambda: client.connect(host, port, keepalive=self._config.mqtt_keepalive),
            )
        except OSError as exc:
            raise TransportError(f"Failed to connect to MQTT broker {host}:{port}: {exc}") from exc
        client.loop_start()
        self._client = client

    async def stop(self) -> None:
        client = self._client
        self._client = None
        if client is None:
            return
        loop = self._loop or asyncio.get_running_loop()
        try:
            client.disconnect()
        finally:
            await loop.run_in_executor(None, client.loop_stop)
            self._connected = False
            self._logger.debug("MQTT network loop stopped")
