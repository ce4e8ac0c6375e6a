from __future__ import annotations

import paho.mqtt.client as mqtt
import pytest

from spacestatus.config import SpaceStatusConfig
from spacestatus.exceptions import TransportError
from spacestatus.transport import LoopbackTransport, MqttTransport, TransportMessage


@pytest.mark.asyncio
async def test_every_receiver_sees_every_message() -> None:
    transport = LoopbackTransport()
    transport.subscribe("t/1")
    first = transport.receive()
    second = transport.receive()

    assert transport.inject("t/1", "21.5") is True

    assert await first.get() == TransportMessage(topic="t/1", payload=b"21.5")
    assert await second.get() == TransportMessage(topic="t/1", payload=b"21.5")


@pytest.mark.asyncio
async def test_unsubscribed_topics_are_not_delivered() -> None:
    transport = LoopbackTransport()
    stream = transport.receive()

    assert transport.inject("t/other", b"1") is False
    assert stream.get_nowait() is None


@pytest.mark.asyncio
async def test_lagging_receiver_drops_oldest() -> None:
    transport = LoopbackTransport(stream_capacity=2)
    transport.subscribe("t/1")
    stream = transport.receive()

    for value in ("1", "2", "3"):
        transport.inject("t/1", value)

    assert stream.dropped == 1
    assert (await stream.get()).payload == b"2"
    assert (await stream.get()).payload == b"3"


@pytest.mark.asyncio
async def test_closed_stream_stops_receiving() -> None:
    transport = LoopbackTransport()
    transport.subscribe("t/1")
    stream = transport.receive()
    stream.close()

    transport.inject("t/1", "1")

    assert stream.closed
    assert stream.get_nowait() is None


@pytest.mark.asyncio
async def test_publish_records_and_can_fail() -> None:
    transport = LoopbackTransport()
    await transport.publish("out/status", b"{}", retain=True)
    assert transport.published == [("out/status", b"{}", True)]
    assert transport.published_on("out/status") == [b"{}"]

    transport.fail_publish = True
    with pytest.raises(TransportError) as excinfo:
        await transport.publish("out/status", b"{}")
    assert excinfo.value.topic == "out/status"


@pytest.mark.asyncio
async def test_mqtt_transport_refuses_publish_before_start() -> None:
    config = SpaceStatusConfig(mqtt_broker="mqtt://broker.invalid", mqtt_password="secret")
    transport = MqttTransport(config)
    transport.subscribe("t/1")
    transport.subscribe("t/1")

    assert transport.is_connected is False
    with pytest.raises(TransportError):
        await transport.publish("out/status", b"{}", retain=True)
    await transport.stop()


class _PublishInfo:
    def __init__(self, rc: int) -> None:
        self.rc = rc


class _DummyClient:
    def __init__(self, rc: int) -> None:
        self.rc = rc
        self.calls: list[tuple[str, bytes, int, bool]] = []

    def publish(self, topic: str, payload: bytes, qos: int = 0, retain: bool = False) -> _PublishInfo:
        self.calls.append((topic, payload, qos, retain))
        return _PublishInfo(self.rc)

    def disconnect(self) -> None:
        return None

    def loop_stop(self) -> None:
        return None


@pytest.mark.asyncio
async def test_mqtt_publish_while_disconnected_is_queued_at_qos1() -> None:
    config = SpaceStatusConfig(mqtt_broker="mqtt://broker.invalid", mqtt_password="secret")
    transport = MqttTransport(config, qos=1)
    client = _DummyClient(mqtt.MQTT_ERR_NO_CONN)
    # Skip the network connect; publish only needs a client object.
    transport._client = client  # type: ignore[assignment]

    await transport.publish("out/status", b"{}", retain=True)

    assert client.calls == [("out/status", b"{}", 1, True)]
    await transport.stop()


@pytest.mark.asyncio
async def test_mqtt_publish_while_disconnected_fails_at_qos0() -> None:
    config = SpaceStatusConfig(mqtt_broker="mqtt://broker.invalid", mqtt_password="secret")
    transport = MqttTransport(config, qos=0)
    transport._client = _DummyClient(mqtt.MQTT_ERR_NO_CONN)  # type: ignore[assignment]

    with pytest.raises(TransportError):
        await transport.publish("out/status", b"{}")
    await transport.stop()
