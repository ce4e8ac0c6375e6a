"""Maker Space (Newcastle/Gateshead) status document and sensor wiring."""

from __future__ import annotations

from spacestatus.aggregator import StatusAggregator
from spacestatus.bridge import TransportBridge
from spacestatus.config import SpaceStatusConfig
from spacestatus.metrics import MetricsSink
from spacestatus.models.status import Contact, Link, Location, State, StatusDocument
from spacestatus.mutators import SensorKind, StateKind

SPACE_NAME = "Maker Space"

STATE_OPEN_TOPIC = "makerspace/status/open"
STATE_MESSAGE_TOPIC = "makerspace/status/message"
STATE_MEMBERS_ONLY_TOPIC = "makerspace/status/members_only"

# (sensor node id, location)
SENSOR_NODES: tuple[tuple[int, str], ...] = (
    (10, "Ground Floor - Main Space"),
    (11, "Basement - Near Workbee CNC"),
    (12, "Basement - Opposite wall to Workbee CNC"),
    (13, "Basement - Near Bandsaw"),
    (14, "Basement - Near Wood Store"),
    (15, "Basement - Inside Old Barrel Drop"),
)


def base_status() -> StatusDocument:
    return StatusDocument(
        space=SPACE_NAME,
        logo="http://makerspace.pbworks.com/w/file/fetch/43988924/makerspace_logo.png",
        url="https://www.makerspace.org.uk/",
        location=Location(
            address="Maker Space, c/o Orbis Community, Ground Floor, 65 High Street, Gateshead, NE8 2AP",
            lat=54.9652,
            lon=-1.60233,
            timezone="Europe/London",
        ),
        contact=Contact(
            matrix="#makerspace-ncl:matrix.org",
            ml="north-east-makers@googlegroups.com",
            twitter="@maker_space",
        ),
        links=[
            Link(name="Maker Space Wiki", url="http://makerspace.pbworks.com"),
            Link(
                name="North East Makers mailing list",
                url="https://groups.google.com/g/north-east-makers",
            ),
        ],
        projects=["https://github.com/MakerSpaceNewcastle"],
        state=State(open=False),
    )


def sensor_topic(node: int, kind: SensorKind) -> str:
    return f"makerspace/sensors/{node}/{kind.value}"


def register_sensors(aggregator: StatusAggregator) -> None:
    """Register every environmental sensor and the open/closed inputs."""
    for node, location in SENSOR_NODES:
        for kind in (SensorKind.TEMPERATURE, SensorKind.HUMIDITY):
            aggregator.register_sensor(
                name=location,
                location=location,
                description=f"Sensor node {node}",
                topic=sensor_topic(node, kind),
                kind=kind,
            )

    aggregator.register_state_mutator(STATE_OPEN_TOPIC, StateKind.OPEN)
    aggregator.register_state_mutator(STATE_MESSAGE_TOPIC, StateKind.MESSAGE)
    aggregator.register_state_mutator(STATE_MEMBERS_ONLY_TOPIC, StateKind.MEMBERS_ONLY)


def build_status(
    bridge: TransportBridge,
    config: SpaceStatusConfig,
    *,
    metrics: MetricsSink | None = None,
) -> StatusAggregator:
    """Create the aggregator for this space with every input registered."""
    aggregator = StatusAggregator(
        base_status(),
        bridge=bridge,
        render_timeout=config.render_timeout,
        render_max_delay=config.render_max_delay,
        metrics=metrics,
    )
    register_sensors(aggregator)
    return aggregator
