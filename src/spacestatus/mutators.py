"""Mutators: project transport payloads onto fields of a status document.

A mutator does its work in two steps that run at different cadences:

* :meth:`Mutator.store` runs on message arrival. It parses the payload and
  keeps the latest value; a malformed payload raises
  :class:`~spacestatus.exceptions.PayloadParseError` and leaves the
  previous value in place.
* :meth:`Mutator.apply` runs during a render pass. It writes the stored
  value into a working copy of the document and never raises.

The set of mutator kinds is closed (:class:`MutatorKind`); ``apply``
dispatches over every member.
"""

from __future__ import annotations

import logging
import math
import threading
from enum import StrEnum
from typing import Any

from spacestatus.exceptions import PayloadParseError
from spacestatus.models.status import StatusDocument

_logger = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"1", "true", "yes", "y", "on", "open"})
_FALSE_WORDS = frozenset({"0", "false", "no", "n", "off", "closed"})


class MutatorKind(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    STATE_OPEN = "state_open"
    STATE_MESSAGE = "state_message"
    STATE_MEMBERS_ONLY = "state_members_only"


class SensorKind(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"

    @property
    def mutator_kind(self) -> MutatorKind:
        return MutatorKind(self.value)


class StateKind(StrEnum):
    OPEN = "open"
    MESSAGE = "message"
    MEMBERS_ONLY = "members_only"

    @property
    def mutator_kind(self) -> MutatorKind:
        return MutatorKind(f"state_{self.value}")


def _decode(payload: bytes, topic: str) -> str:
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayloadParseError(
            f"Payload on {topic} is not valid UTF-8",
            topic=topic,
            payload=payload,
        ) from exc


def parse_float(payload: bytes, *, topic: str = "") -> float:
    """Parse a numeric reading; rejects NaN and infinities."""
    text = _decode(payload, topic).strip()
    try:
        value = float(text)
    except ValueError as exc:
        raise PayloadParseError(
            f"Failed to parse {text!r} on {topic} as a number",
            topic=topic,
            payload=payload,
        ) from exc
    if math.isnan(value) or math.isinf(value):
        raise PayloadParseError(
            f"Non-finite reading {text!r} on {topic}",
            topic=topic,
            payload=payload,
        )
    return value


def parse_bool(payload: bytes, *, topic: str = "") -> bool:
    text = _decode(payload, topic).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise PayloadParseError(
        f"Failed to parse {text!r} on {topic} as a boolean",
        topic=topic,
        payload=payload,
    )


def parse_message(payload: bytes, *, topic: str = "") -> str | None:
    """Empty (or whitespace-only) payload means "no message"."""
    text = _decode(payload, topic)
    if not text.strip():
        return None
    return text


class Mutator:
    """Binds one transport topic to one field of the status document.

    Parameters
    ----------
    topic : str
        Exact topic whose payloads feed this mutator.
    kind : MutatorKind
        Which field is updated and how payloads are parsed.
    sensor_name : str or None
        Name of the sensor entry to update. Required for sensor kinds.
    """

    def __init__(self, topic: str, kind: MutatorKind, *, sensor_name: str | None = None) -> None:
        if kind in (MutatorKind.TEMPERATURE, MutatorKind.HUMIDITY) and not sensor_name:
            raise ValueError(f"{kind} mutator requires a sensor name")
        self.topic = topic
        self.kind = kind
        self.sensor_name = sensor_name
        self._lock = threading.Lock()
        self._has_value = False
        self._value: Any = None

    def __repr__(self) -> str:
        target = f" sensor={self.sensor_name!r}" if self.sensor_name else ""
        return f"<Mutator {self.kind} topic={self.topic!r}{target}>"

    @property
    def has_value(self) -> bool:
        """Whether any payload has been stored yet."""
        with self._lock:
            return self._has_value

    @property
    def value(self) -> Any:
        with self._lock:
            return self._value

    def parse(self, payload: bytes) -> Any:
        """Parse *payload* into this mutator's value type without storing it."""
        if self.kind in (MutatorKind.TEMPERATURE, MutatorKind.HUMIDITY):
            return parse_float(payload, topic=self.topic)
        if self.kind in (MutatorKind.STATE_OPEN, MutatorKind.STATE_MEMBERS_ONLY):
            return parse_bool(payload, topic=self.topic)
        if self.kind == MutatorKind.STATE_MESSAGE:
            return parse_message(payload, topic=self.topic)
        raise AssertionError(f"unhandled mutator kind {self.kind}")

    def store(self, payload: bytes) -> None:
        """Parse and keep *payload* as the latest value (last write wins)."""
        value = self.parse(payload)
        with self._lock:
            self._value = value
            self._has_value = True
        _logger.debug("Stored %s value %r from %s", self.kind, value, self.topic)

    def apply(self, document: StatusDocument) -> None:
        """Write the latest value into *document*; no-op before the first value."""
        with self._lock:
            if not self._has_value:
                return
            value = self._value

        if self.kind == MutatorKind.TEMPERATURE:
            sensor = document.ensure_sensors().find_temperature(self.sensor_name or "")
            if sensor is None:
                _logger.warning("Failed to find temperature sensor with name %s", self.sensor_name)
                return
            sensor.value = value
        elif self.kind == MutatorKind.HUMIDITY:
            sensor = document.ensure_sensors().find_humidity(self.sensor_name or "")
            if sensor is None:
                _logger.warning("Failed to find humidity sensor with name %s", self.sensor_name)
                return
            sensor.value = value
        elif self.kind == MutatorKind.STATE_OPEN:
            document.ensure_state().open = value
        elif self.kind == MutatorKind.STATE_MESSAGE:
            document.ensure_state().message = value
        elif self.kind == MutatorKind.STATE_MEMBERS_ONLY:
            document.ensure_state().ext_members_only = value
