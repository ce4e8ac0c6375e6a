"""Data models for the space status document."""

from spacestatus.models._base import StatusBaseModel
from spacestatus.models.status import (
    HUMIDITY_UNIT,
    TEMPERATURE_UNIT,
    Contact,
    HumiditySensor,
    Link,
    Location,
    Sensor,
    Sensors,
    State,
    StatusDocument,
    TemperatureSensor,
)

__all__ = [
    "Contact",
    "HUMIDITY_UNIT",
    "HumiditySensor",
    "Link",
    "Location",
    "Sensor",
    "Sensors",
    "State",
    "StatusBaseModel",
    "StatusDocument",
    "TEMPERATURE_UNIT",
    "TemperatureSensor",
]
