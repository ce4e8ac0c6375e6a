from __future__ import annotations

import pytest

from spacestatus import cli


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("MQTT_BROKER", "MQTT_PASSWORD", "API_ADDRESS", "OBSERVABILITY_ADDRESS", "SPACEAPI_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


def test_missing_configuration_exits_with_config_status(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == cli.EXIT_CONFIG
    assert "configuration error" in capsys.readouterr().err


def test_arguments_override_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MQTT_BROKER", "mqtt://from-env")
    monkeypatch.setenv("MQTT_PASSWORD", "secret")

    args = cli._parse_args(["--mqtt-broker", "mqtts://from-args", "--render-timeout", "3", "-v"])
    config = cli._config_from_args(args)

    assert config.mqtt_broker == "mqtts://from-args"
    assert config.mqtt_password == "secret"
    assert config.render_timeout == 3.0
    assert config.log_level == "DEBUG"


def test_main_configures_logging_format(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MQTT_BROKER", "mqtt://broker")
    monkeypatch.setenv("MQTT_PASSWORD", "secret")
    calls: list[dict] = []

    async def fake_run(config: object) -> int:
        return cli.EXIT_OK

    monkeypatch.setattr(cli.logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    monkeypatch.setattr(cli, "run", fake_run)

    assert cli.main([]) == cli.EXIT_OK
    assert calls == [{"level": "INFO", "format": "%(levelname)s %(name)s: %(message)s"}]
