"""Space status document models (SpaceAPI v14 subset)."""

from __future__ import annotations

from pydantic import Field, field_validator

from spacestatus.models._base import StatusBaseModel

TEMPERATURE_UNIT = "°C"
HUMIDITY_UNIT = "%"


class Location(StatusBaseModel):
    address: str | None = None
    lat: float
    lon: float
    timezone: str | None = None


class Contact(StatusBaseModel):
    email: str | None = None
    irc: str | None = None
    ml: str | None = None
    twitter: str | None = None
    mastodon: str | None = None
    matrix: str | None = None
    phone: str | None = None


class Link(StatusBaseModel):
    name: str
    url: str
    description: str | None = None


class State(StatusBaseModel):
    """Open/closed state of the space.

    ``ext_members_only`` is a schema extension field (``ext_`` prefix);
    when true the space is open to members only.
    """

    open: bool | None = None
    message: str | None = None
    ext_members_only: bool | None = None


class Sensor(StatusBaseModel):
    """A named, located numeric reading.

    ``value`` is ``None`` until the first reading has been received.
    """

    name: str
    location: str
    description: str | None = None
    unit: str
    value: float | None = None

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("sensor name must be non-empty")
        return name


class TemperatureSensor(Sensor):
    unit: str = TEMPERATURE_UNIT


class HumiditySensor(Sensor):
    unit: str = HUMIDITY_UNIT


class Sensors(StatusBaseModel):
    temperature: list[TemperatureSensor] = Field(default_factory=list)
    humidity: list[HumiditySensor] = Field(default_factory=list)

    def find_temperature(self, name: str) -> TemperatureSensor | None:
        return next((sensor for sensor in self.temperature if sensor.name == name), None)

    def find_humidity(self, name: str) -> HumiditySensor | None:
        return next((sensor for sensor in self.humidity if sensor.name == name), None)


class StatusDocument(StatusBaseModel):
    """The status document served over HTTP and published on the transport.

    Equality is structural: two documents compare equal iff every field
    compares equal, which is what the render pass uses for change detection.
    """

    api_compatibility: list[str] = Field(default_factory=lambda: ["14"])
    space: str
    logo: str
    url: str
    location: Location
    contact: Contact = Field(default_factory=Contact)
    links: list[Link] = Field(default_factory=list)
    projects: list[str] = Field(default_factory=list)
    state: State | None = None
    sensors: Sensors | None = None

    def ensure_sensors(self) -> Sensors:
        """Return ``sensors``, creating an empty collection when absent."""
        if self.sensors is None:
            self.sensors = Sensors()
        return self.sensors

    def ensure_state(self) -> State:
        """Return ``state``, creating a closed state when absent."""
        if self.state is None:
            self.state = State(open=False)
        return self.state

    def clone(self) -> StatusDocument:
        """Deep copy, safe to mutate independently of ``self``."""
        return self.model_copy(deep=True)
