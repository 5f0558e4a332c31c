"""Configuration for the network state manager.

Configuration can be built programmatically, from ``NETSTATE_*``
environment variables, or from a YAML file.

Example:
    >>> config = NetStateConfig.from_env()
    >>> config.thresholds.low_bytes
    104857600
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from netstate import constants as k
from netstate.dataplan import DataPlanThresholds
from netstate.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() == "true"


def _to_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ConfigurationError(f"Invalid boolean for {name}: {value!r}", field=name)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid integer for {name}: {raw!r}", field=name) from e


@dataclass
class LoggingConfig:
    """Configuration for logging output."""

    level: str = "INFO"
    format: str = "text"  # or "json"
    output_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Create configuration from environment variables."""
        return cls(
            level=os.getenv("NETSTATE_LOG_LEVEL", "INFO").upper(),
            format=os.getenv("NETSTATE_LOG_FORMAT", "text").lower(),
            output_file=os.getenv("NETSTATE_LOG_FILE"),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            format=str(data.get("format", "text")).lower(),
            output_file=data.get("output_file"),
        )


@dataclass
class NetStateConfig:
    """Top-level configuration.

    Attributes:
        thresholds: Data plan warning thresholds.
        logging: Logging output settings.
        enforce_thread_affinity: Reject entity mutation from threads other
            than the one that created the library.
        account_redirect_url: Page used to POST carrier account parameters.
    """

    thresholds: DataPlanThresholds = field(default_factory=DataPlanThresholds)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    enforce_thread_affinity: bool = True
    account_redirect_url: str = k.ACCOUNT_REDIRECT_URL

    @classmethod
    def from_env(cls) -> "NetStateConfig":
        """Create configuration from environment variables.

        Environment Variables:
            NETSTATE_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
            NETSTATE_LOG_FORMAT: text or json (default: text)
            NETSTATE_LOG_FILE: Log file path (optional, defaults to stderr)
            NETSTATE_LOW_DATA_BYTES: Low data threshold in bytes
            NETSTATE_VERY_LOW_DATA_BYTES: Very low data threshold in bytes
            NETSTATE_LOW_DATA_SECS: Low time threshold in seconds
            NETSTATE_VERY_LOW_DATA_SECS: Very low time threshold in seconds
            NETSTATE_ENFORCE_THREAD_AFFINITY: true or false (default: true)
            NETSTATE_ACCOUNT_REDIRECT_URL: Carrier account redirect page

        Raises:
            ConfigurationError: If a numeric variable is not an integer.
        """
        defaults = DataPlanThresholds()
        config = cls(
            thresholds=DataPlanThresholds(
                low_bytes=_env_int("NETSTATE_LOW_DATA_BYTES", defaults.low_bytes),
                very_low_bytes=_env_int("NETSTATE_VERY_LOW_DATA_BYTES", defaults.very_low_bytes),
                low_secs=_env_int("NETSTATE_LOW_DATA_SECS", defaults.low_secs),
                very_low_secs=_env_int("NETSTATE_VERY_LOW_DATA_SECS", defaults.very_low_secs),
            ),
            logging=LoggingConfig.from_env(),
            enforce_thread_affinity=_env_bool("NETSTATE_ENFORCE_THREAD_AFFINITY", True),
            account_redirect_url=os.getenv("NETSTATE_ACCOUNT_REDIRECT_URL", k.ACCOUNT_REDIRECT_URL),
        )
        config.validate()
        return config

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NetStateConfig":
        """Create configuration from a mapping (e.g. parsed YAML).

        Raises:
            ConfigurationError: If a section has the wrong type or value.
        """
        thresholds = data.get("thresholds", {}) or {}
        logging_data = data.get("logging", {}) or {}
        if not isinstance(thresholds, Mapping):
            raise ConfigurationError("'thresholds' must be a dictionary", field="thresholds")
        if not isinstance(logging_data, Mapping):
            raise ConfigurationError("'logging' must be a dictionary", field="logging")
        try:
            parsed_thresholds = DataPlanThresholds.from_dict(thresholds)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid thresholds: {e}", field="thresholds") from e

        config = cls(
            thresholds=parsed_thresholds,
            logging=LoggingConfig.from_dict(logging_data),
            enforce_thread_affinity=_to_bool(data.get("enforce_thread_affinity", True), "enforce_thread_affinity"),
            account_redirect_url=str(data.get("account_redirect_url", k.ACCOUNT_REDIRECT_URL)),
        )
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, file_path: str) -> "NetStateConfig":
        """Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigurationError: If the YAML is invalid or not a dictionary.
        """
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        logger.info("Loading configuration from %s", file_path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", {"file": file_path}) from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a dictionary", {"file": file_path})
        return cls.from_dict(data)

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If a value is out of range.
        """
        t = self.thresholds
        if min(t.low_bytes, t.very_low_bytes, t.low_secs, t.very_low_secs) < 0:
            raise ConfigurationError("Thresholds must not be negative", field="thresholds")
        if t.very_low_bytes > t.low_bytes:
            raise ConfigurationError(
                "very_low_bytes must not exceed low_bytes",
                {"low_bytes": t.low_bytes, "very_low_bytes": t.very_low_bytes},
                field="thresholds",
            )
        if t.very_low_secs > t.low_secs:
            raise ConfigurationError(
                "very_low_secs must not exceed low_secs",
                {"low_secs": t.low_secs, "very_low_secs": t.very_low_secs},
                field="thresholds",
            )
        if self.logging.level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}", field="logging.level")
        if self.logging.format not in LOG_FORMATS:
            raise ConfigurationError(f"Invalid log format: {self.logging.format}", field="logging.format")
