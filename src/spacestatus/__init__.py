"""spacestatus - live space status document synchronised between MQTT and HTTP."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("spacestatus")
except PackageNotFoundError:
    __version__ = "0+local"

from spacestatus.aggregator import StatusAggregator
from spacestatus.badge import Badge, BadgeColor, BadgeStyle, badge_for_status, sanitize_badge_text
from spacestatus.bridge import TransportBridge
from spacestatus.config import SpaceStatusConfig
from spacestatus.exceptions import (
    ConfigError,
    PayloadParseError,
    RegistrationError,
    SpaceStatusError,
    StatusNotInitializedError,
    TransportError,
)
from spacestatus.metrics import CounterMetrics, MetricsSink, NullMetrics
from spacestatus.models import (
    HumiditySensor,
    Sensors,
    State,
    StatusDocument,
    TemperatureSensor,
)
from spacestatus.mutators import Mutator, MutatorKind, SensorKind, StateKind
from spacestatus.notification import NotificationChannel
from spacestatus.shutdown import RaceOutcome, Shutdown
from spacestatus.tasks import TaskSupervisor
from spacestatus.transport import LoopbackTransport, MqttTransport, Transport, TransportMessage

__all__ = [
    "__version__",
    "Badge",
    "BadgeColor",
    "BadgeStyle",
    "ConfigError",
    "CounterMetrics",
    "HumiditySensor",
    "LoopbackTransport",
    "MetricsSink",
    "MqttTransport",
    "Mutator",
    "MutatorKind",
    "NotificationChannel",
    "NullMetrics",
    "PayloadParseError",
    "RaceOutcome",
    "RegistrationError",
    "SensorKind",
    "Sensors",
    "Shutdown",
    "SpaceStatusConfig",
    "SpaceStatusError",
    "State",
    "StateKind",
    "StatusAggregator",
    "StatusDocument",
    "StatusNotInitializedError",
    "TaskSupervisor",
    "TemperatureSensor",
    "Transport",
    "TransportBridge",
    "TransportError",
    "TransportMessage",
    "badge_for_status",
    "sanitize_badge_text",
]
