"""
Configuration management for udplat.
"""

import ipaddress
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from .errors import ConfigurationError

# Width of the sequence-number prefix carried by every probe
SEQUENCE_SIZE = 8

# Largest UDP payload over IPv4
MAX_DATAGRAM_SIZE = 65507


@dataclass
class ProbeConfig:
    """Latency probe (client) settings."""
    address: str = "127.0.0.1"
    port: int = 7777
    client_port: int = 0
    packet_size: int = 64
    interval: float = 0.02
    count: int = 100
    grace_period: float = 0.5
    csv: str = ""


@dataclass
class EchoConfig:
    """Echo responder (server) settings."""
    bind_address: str = "0.0.0.0"
    port: int = 7777
    buffer_size: int = 65535


@dataclass
class LoggingConfig:
    """Logging configuration settings."""
    level: str = "INFO"
    file: str = ""
    max_size: int = 10
    backup_count: int = 5


@dataclass
class InfluxDBConfig:
    """InfluxDB export settings."""
    enabled: bool = False
    url: str = "http://localhost:8086"
    bucket: str = "udplat"
    organization: str = ""
    token: str = ""
    measurement: str = "udp_latency"


def _section(cls, data: Dict[str, Any], name: str):
    """Build a config section, rejecting keys the section does not define."""
    values = data.get(name, {})
    if not isinstance(values, dict):
        raise ValueError(f"Configuration section [{name}] must be a table")

    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"Unknown keys in [{name}]: {', '.join(sorted(unknown))}")

    return cls(**values)


@dataclass
class Config:
    """Main configuration class."""
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    echo: EchoConfig = field(default_factory=EchoConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    influxdb: InfluxDBConfig = field(default_factory=InfluxDBConfig)

    @classmethod
    def default(cls) -> 'Config':
        return cls()

    @classmethod
    def from_file(cls, config_path: Path) -> 'Config':
        """Load configuration from TOML file."""
        try:
            config_data = toml.load(config_path)
        except (OSError, toml.TomlDecodeError) as e:
            raise ValueError(f"Failed to load configuration: {e}")

        return cls.from_dict(config_data)

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> 'Config':
        """Create configuration from already-parsed TOML data."""
        try:
            return cls(
                probe=_section(ProbeConfig, config_data, 'probe'),
                echo=_section(EchoConfig, config_data, 'echo'),
                logging=_section(LoggingConfig, config_data, 'logging'),
                influxdb=_section(InfluxDBConfig, config_data, 'influxdb'),
            )
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}")

    def validate(self) -> bool:
        """Validate configuration values."""
        validate_probe(self.probe)
        validate_echo(self.echo)
        return True


def _validate_port(port: int, name: str) -> None:
    if port < 0 or port > 65535:
        raise ConfigurationError(f"{name} must be between 0 and 65535")


def validate_probe(probe: ProbeConfig) -> None:
    """Reject probe settings that would make a run impossible."""
    if probe.packet_size < SEQUENCE_SIZE:
        raise ConfigurationError(
            f"Packet size {probe.packet_size} is smaller than the "
            f"{SEQUENCE_SIZE}-byte sequence number"
        )

    if probe.packet_size > MAX_DATAGRAM_SIZE:
        raise ConfigurationError(
            f"Packet size {probe.packet_size} exceeds the maximum UDP payload "
            f"of {MAX_DATAGRAM_SIZE} bytes"
        )

    if probe.interval <= 0 or probe.grace_period <= 0:
        raise ConfigurationError("Interval and grace period must be positive")

    if probe.count < 0:
        raise ConfigurationError("Packet count must not be negative")

    _validate_port(probe.port, "Destination port")
    _validate_port(probe.client_port, "Client port")

    if not probe.address:
        raise ConfigurationError("Destination address is required")


def validate_echo(echo: EchoConfig) -> None:
    """Validate echo responder settings."""
    _validate_port(echo.port, "Echo port")

    if echo.buffer_size <= 0:
        raise ConfigurationError("Echo buffer size must be positive")

    try:
        ipaddress.ip_address(echo.bind_address)
    except ValueError:
        raise ConfigurationError(f"Invalid bind address: {echo.bind_address}")


def load_config(config_path: Optional[Path]) -> Config:
    """Load configuration from file when given, defaults otherwise."""
    if config_path is None:
        return Config.default()
    return Config.from_file(config_path)
