"""Logging setup for the network state manager.

Library modules only call ``logging.getLogger(__name__)``. Applications
(and the CLI) call :class:`LoggerManager` once to attach a handler to the
``netstate`` logger with either structured JSON or plain text output.
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from netstate.config import LoggingConfig

ROOT_LOGGER_NAME = "netstate"

# Attributes every LogRecord carries; anything else came in through ``extra``
_STANDARD_FIELDS = set(logging.makeLogRecord({}).__dict__) | {"message", "taskName"}

# Extra fields that may carry credential material
REDACTED_FIELDS = frozenset({"passphrase", "user_passphrase", "eap_passphrase", "otp", "psk", "pin", "password"})

# Extra fields naming the entity a record is about, in display order
ENTITY_FIELDS = ("device_path", "service_path")


class StructuredFormatter(logging.Formatter):
    """JSON lines formatter.

    Fields passed through ``extra`` are copied into the entry; those named in
    :data:`REDACTED_FIELDS` are replaced by ``"***"``.

    Example output:
        {"timestamp": "2024-01-15T10:30:45.123456+00:00", "level": "INFO",
         "logger": "netstate.library", "message": "Activation started",
         "service_path": "/service/cellular1"}
    """

    def __init__(
        self,
        include_source_location: bool = False,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__()
        self.include_source_location = include_source_location
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self._entry(record), default=_to_json)

    def _entry(self, record: logging.LogRecord) -> Dict[str, Any]:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="microseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_source_location:
            entry["source"] = {"file": record.filename, "function": record.funcName, "line": record.lineno}
        if record.exc_info:
            entry["exception"] = _exception_entry(record.exc_info)

        entry.update(self.extra_fields)
        for key, value in record.__dict__.items():
            if key in _STANDARD_FIELDS or key.startswith("_"):
                continue
            entry[key] = "***" if key in REDACTED_FIELDS else value
        return entry


def _exception_entry(exc_info: Any) -> Dict[str, Any]:
    exc_type, exc_value, exc_tb = exc_info
    return {
        "type": exc_type.__name__ if exc_type else None,
        "message": str(exc_value) if exc_value else None,
        "traceback": traceback.format_exception(exc_type, exc_value, exc_tb) if exc_tb else None,
    }


def _to_json(obj: Any) -> str:
    if isinstance(obj, Enum):
        return str(obj.value)
    return repr(obj)


class TextFormatter(logging.Formatter):
    """One line per record, tagged with the entity it concerns.

    Example:
        2024-01-15T10:30:45.123Z INFO     [netstate.library] [/service/wifi1] Connecting
    """

    def __init__(self, include_source_location: bool = False) -> None:
        super().__init__()
        self.include_source_location = include_source_location

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        parts = [
            created.strftime("%Y-%m-%dT%H:%M:%S.") + f"{created.microsecond // 1000:03d}Z",
            record.levelname.ljust(8),
            f"[{record.name}]",
        ]
        parts.extend(f"[{getattr(record, name)}]" for name in ENTITY_FIELDS if getattr(record, name, None))
        if self.include_source_location:
            parts.append(f"[{record.filename}:{record.lineno}]")
        parts.append(record.getMessage())

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class LoggerManager:
    """Installs the ``netstate`` log handler.

    Example:
        >>> manager = LoggerManager(LoggingConfig(level="DEBUG", format="json"))
        >>> manager.configure()
        >>> manager.get_logger("library").info("ready")
        >>> manager.shutdown()
    """

    def __init__(self, config: LoggingConfig) -> None:
        self.config = config
        self._handler: Optional[logging.Handler] = None

    def _build_handler(self) -> logging.Handler:
        handler: logging.Handler
        if self.config.output_file:
            handler = logging.FileHandler(self.config.output_file)
        else:
            handler = logging.StreamHandler(sys.stderr)
        if self.config.format == "json":
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(TextFormatter())
        return handler

    def configure(self) -> None:
        """Attach the handler to the ``netstate`` logger. Idempotent."""
        if self._handler is not None:
            return
        self._handler = self._build_handler()

        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.setLevel(_level(self.config.level))
        logger.addHandler(self._handler)
        # Records stop at "netstate"; the application's root handlers never see them
        logger.propagate = False

    def shutdown(self) -> None:
        """Remove the handler installed by :meth:`configure`."""
        if self._handler is None:
            return
        logger = logging.getLogger(ROOT_LOGGER_NAME)
        logger.removeHandler(self._handler)
        self._handler.close()
        self._handler = None
        logger.propagate = True

    def get_logger(self, name: str) -> logging.Logger:
        """Logger for a component, prefixed with ``netstate.`` if needed."""
        if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
            name = f"{ROOT_LOGGER_NAME}.{name}"
        return logging.getLogger(name)

    def set_level(self, level: str) -> None:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(_level(level))

    @property
    def is_configured(self) -> bool:
        return self._handler is not None

    @property
    def handler(self) -> Optional[logging.Handler]:
        return self._handler


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO
