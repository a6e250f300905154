import pytest

from udplat.core.config import (Config, EchoConfig, ProbeConfig, load_config,
                                validate_echo, validate_probe)
from udplat.core.errors import ConfigurationError


def test_defaults():
    config = Config.default()
    assert config.probe.packet_size == 64
    assert config.probe.count == 100
    assert config.probe.client_port == 0
    assert config.probe.grace_period == 0.5
    assert config.echo.buffer_size == 65535
    assert not config.influxdb.enabled
    assert config.validate()


def test_from_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        '[probe]\n'
        'address = "10.0.0.5"\n'
        'port = 9000\n'
        'count = 0\n'
        'interval = 0.1\n'
        '[logging]\n'
        'level = "DEBUG"\n'
    )
    config = Config.from_file(path)

    assert config.probe.address == "10.0.0.5"
    assert config.probe.port == 9000
    assert config.probe.count == 0
    assert config.probe.interval == 0.1
    assert config.probe.packet_size == 64
    assert config.logging.level == "DEBUG"
    assert config.echo == EchoConfig()


def test_unknown_key_rejected(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[probe]\npacket_sise = 32\n')
    with pytest.raises(ValueError, match="packet_sise"):
        Config.from_file(path)


def test_malformed_file_rejected(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[probe\naddress = ')
    with pytest.raises(ValueError):
        Config.from_file(path)


def test_load_config_without_path():
    assert load_config(None) == Config.default()


@pytest.mark.parametrize("overrides", [
    dict(packet_size=7),
    dict(packet_size=70000),
    dict(interval=0),
    dict(grace_period=-1),
    dict(count=-1),
    dict(port=70000),
    dict(client_port=-1),
    dict(address=""),
])
def test_invalid_probe_settings(overrides):
    with pytest.raises(ConfigurationError):
        validate_probe(ProbeConfig(**overrides))


def test_minimum_packet_size_accepted():
    validate_probe(ProbeConfig(packet_size=8))


def test_invalid_echo_settings():
    with pytest.raises(ConfigurationError):
        validate_echo(EchoConfig(port=-5))
    with pytest.raises(ConfigurationError):
        validate_echo(EchoConfig(buffer_size=0))


def test_configuration_error_is_value_error():
    assert issubclass(ConfigurationError, ValueError)
