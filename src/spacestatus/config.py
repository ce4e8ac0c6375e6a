"""Process configuration for spacestatus."""

from __future__ import annotations

import dataclasses
import logging
import os
from typing import Any
from urllib.parse import urlsplit

from spacestatus.exceptions import ConfigError

_TLS_SCHEMES = frozenset({"mqtts", "ssl", "tls"})
_PLAIN_SCHEMES = frozenset({"mqtt", "tcp"})


def parse_address(value: str) -> tuple[str, int]:
    """Split a ``host:port`` listen address.

    IPv6 hosts may be bracketed (``[::1]:8080``).
    """
    text = value.strip()
    host, sep, port_text = text.rpartition(":")
    if not sep or not host or not port_text.isdigit():
        raise ConfigError(f"Invalid listen address {value!r} (expected host:port)")
    port = int(port_text)
    if not 0 < port < 65536:
        raise ConfigError(f"Invalid port in listen address {value!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


def parse_broker(value: str) -> tuple[str, int, bool]:
    """Split a broker URL into ``(host, port, tls)``.

    ``mqtt://host`` defaults to port 1883, ``mqtts://host`` to 8883.
    A bare ``host[:port]`` is treated as plain MQTT.
    """
    text = value.strip()
    if not text:
        raise ConfigError("MQTT broker address is empty")
    if "://" not in text:
        text = f"mqtt://{text}"

    parts = urlsplit(text)
    scheme = parts.scheme.lower()
    if scheme in _TLS_SCHEMES:
        tls = True
    elif scheme in _PLAIN_SCHEMES:
        tls = False
    else:
        raise ConfigError(f"Unsupported MQTT broker scheme {parts.scheme!r}")

    if not parts.hostname:
        raise ConfigError(f"MQTT broker address {value!r} has no host")
    try:
        port = parts.port
    except ValueError as exc:
        raise ConfigError(f"Invalid port in MQTT broker address {value!r}") from exc
    return parts.hostname, port or (8883 if tls else 1883), tls


@dataclasses.dataclass(frozen=True)
class SpaceStatusConfig:
    """Process configuration.

    Parameters
    ----------
    mqtt_broker : str
        Broker URL, e.g. ``mqtt://broker.local`` or ``mqtts://broker:8883``.
    mqtt_password : str
        Broker password. Never logged.
    mqtt_username : str
        Broker user name.
    mqtt_client_id : str
        MQTT client identifier.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    api_address : str
        ``host:port`` for the status/badge HTTP endpoints.
    observability_address : str
        ``host:port`` for the metrics/health HTTP endpoints.
    render_timeout : float
        Quiet period in seconds that must pass without new data before the
        document is re-rendered.
    render_max_delay : float or None
        Upper bound in seconds on how long pending data may wait for a
        render while notifications keep arriving. ``None`` disables the
        bound.
    notify_timeout : float
        Seconds an ingestion worker waits on a full notification channel
        before giving up on that notification.
    status_topic : str
        Topic the full rendered document is published on.
    state_topic : str
        Topic the ``state`` sub-document is published on.
    log_level : str
        Root log level name.
    """

    mqtt_broker: str
    mqtt_password: str
    mqtt_username: str = "spaceapi"
    mqtt_client_id: str = "spaceapi-status"
    mqtt_keepalive: int = 5
    api_address: str = "127.0.0.1:8080"
    observability_address: str = "127.0.0.1:9090"
    render_timeout: float = 2.0
    render_max_delay: float | None = None
    notify_timeout: float = 1.0
    status_topic: str = "makerspace/spaceapi/status"
    state_topic: str = "makerspace/spaceapi/state"
    log_level: str = "INFO"

    def validate(self) -> SpaceStatusConfig:
        """Raise :class:`ConfigError` when a field is unusable.

        Returns ``self`` so calls can be chained.
        """
        if not self.mqtt_broker.strip():
            raise ConfigError("MQTT broker address is required")
        if not self.mqtt_password:
            raise ConfigError("MQTT password is required")
        parse_broker(self.mqtt_broker)
        parse_address(self.api_address)
        parse_address(self.observability_address)
        if self.render_timeout <= 0:
            raise ConfigError("render_timeout must be positive")
        if self.render_max_delay is not None and self.render_max_delay < self.render_timeout:
            raise ConfigError("render_max_delay must not be shorter than render_timeout")
        if self.notify_timeout <= 0:
            raise ConfigError("notify_timeout must be positive")
        if self.mqtt_keepalive <= 0:
            raise ConfigError("mqtt_keepalive must be positive")
        if self.status_topic == self.state_topic:
            raise ConfigError("status_topic and state_topic must differ")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigError(f"Unknown log level {self.log_level!r}")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> SpaceStatusConfig:
        """Create configuration from environment variables.

        Reads ``MQTT_BROKER``, ``MQTT_PASSWORD``, ``API_ADDRESS`` and
        ``OBSERVABILITY_ADDRESS`` plus optional ``MQTT_*`` and
        ``SPACEAPI_*`` variables. Explicit keyword arguments whose value is
        not ``None`` override environment values.
        """
        env = os.environ
        overrides = {key: value for key, value in overrides.items() if value is not None}

        _ENV_CONFIG_MAP = {
            "MQTT_BROKER": "mqtt_broker",
            "MQTT_PASSWORD": "mqtt_password",
            "MQTT_USERNAME": "mqtt_username",
            "MQTT_CLIENT_ID": "mqtt_client_id",
            "API_ADDRESS": "api_address",
            "OBSERVABILITY_ADDRESS": "observability_address",
            "SPACEAPI_STATUS_TOPIC": "status_topic",
            "SPACEAPI_STATE_TOPIC": "state_topic",
            "SPACEAPI_LOG_LEVEL": "log_level",
        }
        config_kwargs: dict[str, Any] = {"mqtt_broker": "", "mqtt_password": ""}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            keepalive_env = env.get("MQTT_KEEPALIVE")
            if keepalive_env is not None and "mqtt_keepalive" not in overrides:
                config_kwargs["mqtt_keepalive"] = int(keepalive_env)

            for env_key, field_name in (
                ("SPACEAPI_RENDER_TIMEOUT", "render_timeout"),
                ("SPACEAPI_NOTIFY_TIMEOUT", "notify_timeout"),
            ):
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)

            max_delay_env = env.get("SPACEAPI_RENDER_MAX_DELAY")
            if max_delay_env is not None and "render_max_delay" not in overrides:
                # An empty value or "0" keeps the bound disabled.
                max_delay = float(max_delay_env) if max_delay_env.strip() else 0.0
                config_kwargs["render_max_delay"] = max_delay if max_delay > 0 else None
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric configuration value: {exc}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
