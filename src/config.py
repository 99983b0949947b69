"""Configuration loading and validation module.

This module handles YAML configuration loading and provides a typed
Config dataclass consumed by all other modules. Every field is optional
and falls back to the defaults the log-shipping agent's node layout uses.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Any
import yaml


DEFAULT_PROBE_INTERVAL_SECONDS = 0.1
DEFAULT_CHANNEL_SIZE = 100 * 1000
DEFAULT_RESTART_DELAY_SECONDS = 30.0
DEFAULT_PORT = 1234
DEFAULT_LOG_DIRS = ["/var/log", "/var/log/containers"]
DEFAULT_POSITION_DIR = "/var/log"
DEFAULT_LOG_EXTENSION = ".log"
DEFAULT_POSITION_EXTENSION = ".pos"


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be read."""
    pass


@dataclass
class MonitoringConfig:
    """Sampling and pipeline behavior configuration."""
    probe_interval_seconds: float = DEFAULT_PROBE_INTERVAL_SECONDS
    channel_size: int = DEFAULT_CHANNEL_SIZE
    restart_delay_seconds: float = DEFAULT_RESTART_DELAY_SECONDS


@dataclass
class ExporterConfig:
    """Scrape endpoint configuration."""
    port: int = DEFAULT_PORT
    address: str = ""


@dataclass
class PathsConfig:
    """Filesystem layout configuration."""
    log_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_LOG_DIRS))
    position_dir: str = DEFAULT_POSITION_DIR
    log_extension: str = DEFAULT_LOG_EXTENSION
    position_extension: str = DEFAULT_POSITION_EXTENSION


@dataclass
class Config:
    """Root configuration dataclass."""
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    exporter: ExporterConfig = field(default_factory=ExporterConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)


def _get_nested(data: dict, path: str, default: Any = None) -> Any:
    """Get a nested value from a dictionary using dot notation.

    Every configuration field is optional, so a missing key or a
    non-mapping along the path yields the default.

    Args:
        data: The dictionary to search
        path: Dot-separated path to the value (e.g., "exporter.port")
        default: Value returned when the path is missing

    Returns:
        The value at the path, or default if missing
    """
    keys = path.split(".")
    current = data

    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]

    return current


def _validate_type(value: Any, expected_type: type, field_name: str) -> None:
    """Validate that a value is of the expected type.

    Integers are accepted where a float is expected; booleans are never
    accepted as numbers.

    Args:
        value: The value to validate
        expected_type: The expected type
        field_name: Name of the field for error messages

    Raises:
        ConfigError: If value is not of the expected type
    """
    origin = getattr(expected_type, "__origin__", None)

    if origin is list or expected_type is list:
        if not isinstance(value, list):
            raise ConfigError(
                f"Field '{field_name}' must be a list, got {type(value).__name__}"
            )
    elif expected_type is dict:
        if not isinstance(value, dict):
            raise ConfigError(
                f"Field '{field_name}' must be a mapping, got {type(value).__name__}"
            )
    elif expected_type is int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigError(
                f"Field '{field_name}' must be an integer, got {type(value).__name__}"
            )
    elif expected_type is float:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ConfigError(
                f"Field '{field_name}' must be a number, got {type(value).__name__}"
            )
    elif expected_type is str:
        if not isinstance(value, str):
            raise ConfigError(
                f"Field '{field_name}' must be a string, got {type(value).__name__}"
            )
    else:
        if not isinstance(value, expected_type):
            raise ConfigError(
                f"Field '{field_name}' must be of type {expected_type.__name__}, got {type(value).__name__}"
            )


def _validate_extension(value: str, field_name: str) -> None:
    if not value.startswith(".") or len(value) < 2:
        raise ConfigError(f"{field_name} must start with '.' (e.g. '.log'), got {value!r}")


def parse_config(data: Optional[dict]) -> Config:
    """Build a validated Config from already-parsed YAML data.

    Args:
        data: Parsed YAML mapping, or None for an all-defaults configuration

    Returns:
        Config: Validated configuration object

    Raises:
        ConfigError: If any field has the wrong type or is out of range
    """
    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a YAML dictionary")

    # Monitoring configuration
    monitoring_data = _get_nested(data, "monitoring", default={})
    _validate_type(monitoring_data, dict, "monitoring")

    probe_interval_seconds = _get_nested(
        monitoring_data,
        "probe_interval_seconds",
        default=DEFAULT_PROBE_INTERVAL_SECONDS,
    )
    _validate_type(probe_interval_seconds, float, "monitoring.probe_interval_seconds")

    channel_size = _get_nested(
        monitoring_data, "channel_size", default=DEFAULT_CHANNEL_SIZE
    )
    _validate_type(channel_size, int, "monitoring.channel_size")

    restart_delay_seconds = _get_nested(
        monitoring_data,
        "restart_delay_seconds",
        default=DEFAULT_RESTART_DELAY_SECONDS,
    )
    _validate_type(restart_delay_seconds, float, "monitoring.restart_delay_seconds")

    if probe_interval_seconds <= 0:
        raise ConfigError("monitoring.probe_interval_seconds must be > 0")
    if channel_size < 1:
        raise ConfigError("monitoring.channel_size must be >= 1")
    if restart_delay_seconds < 0:
        raise ConfigError("monitoring.restart_delay_seconds must be >= 0")

    monitoring = MonitoringConfig(
        probe_interval_seconds=float(probe_interval_seconds),
        channel_size=channel_size,
        restart_delay_seconds=float(restart_delay_seconds),
    )

    # Exporter configuration
    exporter_data = _get_nested(data, "exporter", default={})
    _validate_type(exporter_data, dict, "exporter")

    port = _get_nested(exporter_data, "port", default=DEFAULT_PORT)
    _validate_type(port, int, "exporter.port")
    if not 1 <= port <= 65535:
        raise ConfigError("exporter.port must be between 1 and 65535")

    address = _get_nested(exporter_data, "address", default="")
    _validate_type(address, str, "exporter.address")

    exporter = ExporterConfig(port=port, address=address)

    # Paths configuration
    paths_data = _get_nested(data, "paths", default={})
    _validate_type(paths_data, dict, "paths")

    log_dirs = _get_nested(
        paths_data, "log_dirs", default=list(DEFAULT_LOG_DIRS)
    )
    _validate_type(log_dirs, list, "paths.log_dirs")
    for i, log_dir in enumerate(log_dirs):
        _validate_type(log_dir, str, f"paths.log_dirs[{i}]")
    if not log_dirs:
        raise ConfigError("paths.log_dirs must contain at least one directory")

    position_dir = _get_nested(
        paths_data, "position_dir", default=DEFAULT_POSITION_DIR
    )
    _validate_type(position_dir, str, "paths.position_dir")

    log_extension = _get_nested(
        paths_data, "log_extension", default=DEFAULT_LOG_EXTENSION
    )
    _validate_type(log_extension, str, "paths.log_extension")
    _validate_extension(log_extension, "paths.log_extension")

    position_extension = _get_nested(
        paths_data,
        "position_extension",
        default=DEFAULT_POSITION_EXTENSION,
    )
    _validate_type(position_extension, str, "paths.position_extension")
    _validate_extension(position_extension, "paths.position_extension")

    paths = PathsConfig(
        log_dirs=log_dirs,
        position_dir=position_dir,
        log_extension=log_extension,
        position_extension=position_extension,
    )

    return Config(monitoring=monitoring, exporter=exporter, paths=paths)


def load_config(path: str) -> Config:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Config: Validated configuration object

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid
    """
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}")
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    return parse_config(data)
