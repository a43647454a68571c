"""Configuration loader"""

import os
from pathlib import Path
from typing import Optional
from dataclasses import dataclass, field

import toml
from dotenv import load_dotenv

from ..errors import ConfigError

# Try to use tomllib (Python 3.11+) for reading, fallback to toml
try:
    import tomllib
    HAS_TOMLLIB = True
except ImportError:
    HAS_TOMLLIB = False


@dataclass
class ServerConfig:
    """gRPC listener configuration"""
    host: str = "[::]"
    port: int = 50051
    grace_period: float = 30.0  # Seconds in-flight calls get to finish on shutdown
    max_workers: int = 10

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class TelemetryConfig:
    """OpenTelemetry pipeline configuration"""
    service_name: str = "logical-service-name"
    exporter: str = "otlp"  # "otlp" or "console"
    otlp_endpoint: Optional[str] = None  # None means the exporter's default address
    insecure: bool = True
    metric_export_interval_millis: Optional[float] = None  # None means the SDK default


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "INFO"
    json_output: bool = False
    log_file: Optional[str] = None


@dataclass
class Config:
    """Main configuration"""
    server: ServerConfig = field(default_factory=ServerConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create Config from dictionary"""
        config = cls()

        if "server" in data:
            config.server = ServerConfig(**data["server"])

        if "telemetry" in data:
            config.telemetry = TelemetryConfig(**data["telemetry"])

        if "logging" in data:
            config.logging = LoggingConfig(**data["logging"])

        return config

    def to_dict(self) -> dict:
        """Convert Config to dictionary"""
        result = {
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "grace_period": self.server.grace_period,
                "max_workers": self.server.max_workers,
            },
            "telemetry": {
                "service_name": self.telemetry.service_name,
                "exporter": self.telemetry.exporter,
                "insecure": self.telemetry.insecure,
            },
            "logging": {
                "level": self.logging.level,
                "json_output": self.logging.json_output,
            },
        }

        # TOML has no null, so unset optionals are left out
        if self.telemetry.otlp_endpoint:
            result["telemetry"]["otlp_endpoint"] = self.telemetry.otlp_endpoint
        if self.telemetry.metric_export_interval_millis is not None:
            result["telemetry"]["metric_export_interval_millis"] = (
                self.telemetry.metric_export_interval_millis
            )
        if self.logging.log_file:
            result["logging"]["log_file"] = self.logging.log_file

        return result


def get_config_path() -> Path:
    """Get path to config file"""
    config_dir = Path.home() / ".helloworld-otel"
    return config_dir / "config.toml"


def _env_number(name: str, default, parse):
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return parse(value)
    except ValueError as e:
        kind = "an integer" if parse is int else "a number"
        raise ConfigError(f"{name} must be {kind}, got {value!r}") from e


def apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides on top of file values"""
    server = config.server
    server.host = os.getenv("GREETER_HOST", server.host)
    server.port = _env_number("GREETER_PORT", server.port, int)
    server.grace_period = _env_number("GREETER_GRACE_PERIOD", server.grace_period, float)
    server.max_workers = _env_number("GREETER_MAX_WORKERS", server.max_workers, int)

    telemetry = config.telemetry
    telemetry.service_name = os.getenv("OTEL_SERVICE_NAME", telemetry.service_name)
    telemetry.exporter = os.getenv("GREETER_TELEMETRY_EXPORTER", telemetry.exporter)
    telemetry.otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", telemetry.otlp_endpoint)

    config.logging.level = os.getenv("LOG_LEVEL", config.logging.level)

    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file, .env and environment"""
    load_dotenv()

    if config_path is None:
        config_path = get_config_path()

    # Expand user directory
    config_path = Path(config_path).expanduser()

    if not config_path.exists():
        return apply_env_overrides(Config())

    # Load from file
    if HAS_TOMLLIB:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    else:
        with open(config_path, "r") as f:
            data = toml.load(f)

    return apply_env_overrides(Config.from_dict(data))


def save_config(config: Config, config_path: Optional[Path] = None) -> Path:
    """Save configuration to file"""
    if config_path is None:
        config_path = get_config_path()

    config_path = Path(config_path).expanduser()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()

    with open(config_path, "w") as f:
        toml.dump(data, f)

    return config_path
