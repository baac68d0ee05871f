"""The logging configuration module."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

# LogRecord attributes that are never copied into the JSON payload as extras
_RESERVED_RECORD_FIELDS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "getMessage",
        "custom_dimensions",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Emits one JSON object per record. Custom dimensions attached through a
    ContextualLogger are nested under ``custom_dimensions``, any other extra
    fields are copied to the top level.
    """

    def __init__(self):
        """Initialize the formatter with a module path cache."""
        super().__init__()
        self._module_cache: dict[str, str] = {}

    def _get_module_path(self, record: logging.LogRecord) -> str:
        """Resolve the dotted module path of a record (e.g. 'credibill.platform.scheduler').

        Args:
        ----
            record (logging.LogRecord): The log record

        Returns:
        -------
            str: The dotted module path, or the bare module name as a fallback

        """
        pathname = record.pathname
        if pathname in self._module_cache:
            return self._module_cache[pathname]

        parts = pathname.replace("\\", "/").split("/")
        package_indices = [i for i, part in enumerate(parts) if part == "credibill"]
        if package_indices:
            module_parts = parts[package_indices[-1] :]
            if module_parts[-1].endswith(".py"):
                module_parts[-1] = module_parts[-1][:-3]
            module_path = ".".join(module_parts)
        else:
            module_path = record.module

        self._module_cache[pathname] = module_path
        return module_path

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON.

        Args:
        ----
            record (logging.LogRecord): The log record to format

        Returns:
        -------
            str: JSON-formatted log message

        """
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": self._get_module_path(record),
            "function": record.funcName,
            "line": record.lineno,
        }

        if getattr(record, "custom_dimensions", None):
            log_entry["custom_dimensions"] = record.custom_dimensions

        for key, value in record.__dict__.items():
            if key in _RESERVED_RECORD_FIELDS:
                continue
            try:
                json.dumps(value)
                log_entry[key] = value
            except (TypeError, ValueError):
                log_entry[key] = str(value)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ContextualLogger(logging.LoggerAdapter):
    """A LoggerAdapter that supports both custom dimensions and prefixes."""

    def __init__(
        self,
        logger: logging.Logger,
        prefix: str = "",
        dimensions: Optional[dict] = None,
    ) -> None:
        """Initialize the contextual logger.

        Args:
        ----
            logger (logging.Logger): Base logger instance
            prefix (str): Optional prefix for log messages
            dimensions (Optional[dict]): Custom dimensions for structured logging

        """
        super().__init__(logger, {})
        self.prefix = prefix
        self.dimensions = dimensions or {}

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        """Apply the prefix and merge the dimensions into the record extras."""
        if self.prefix:
            msg = f"{self.prefix}{msg}"

        extra = kwargs.setdefault("extra", {})
        if self.dimensions:
            extra["custom_dimensions"] = {
                **extra.get("custom_dimensions", {}),
                **self.dimensions,
            }

        return msg, kwargs

    def with_prefix(self, prefix: str) -> "ContextualLogger":
        """Create a new logger with an additional prefix while maintaining dimensions."""
        return ContextualLogger(self.logger, prefix, self.dimensions)

    def with_context(self, **dimensions: str | int | float | bool) -> "ContextualLogger":
        """Create a new logger with additional context dimensions.

        Args:
        ----
            dimensions: Keyword arguments to add to dimensions

        Returns:
        -------
            ContextualLogger: New logger instance with updated dimensions

        """
        return ContextualLogger(self.logger, self.prefix, {**self.dimensions, **dimensions})


class LoggerConfigurator:
    """Configures loggers with support for dimensions and prefixes.

    Sweeps and the webhook dispatcher derive per-item loggers from a base
    logger so that every line about one record carries its identifiers:

    ```python
    logger = LoggerConfigurator.configure_logger(__name__, dimensions={"job": "grace_period"})
    logger.with_context(subscription_id=str(sub.id)).warning("App has no grace period")
    ```

    Text output is used when LOCAL_DEVELOPMENT is set, JSON everywhere else.
    """

    @staticmethod
    def configure_logger(
        name: str,
        prefix: str = "",
        dimensions: Optional[dict] = None,
    ) -> ContextualLogger:
        """Configure and return a logger with the given name and initial context.

        Args:
        ----
            name (str): Logger name (typically __name__)
            prefix (str): Initial prefix for log messages
            dimensions (Optional[dict]): Initial custom dimensions

        Returns:
        -------
            ContextualLogger: Configured logger with context support

        """
        logger = logging.getLogger(name)

        # Imported here to avoid a circular import with the settings module
        from credibill.core.config import settings

        logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
        logger.propagate = False

        if getattr(logger, "_credibill_configured", False):
            return ContextualLogger(logger, prefix, dimensions)

        logger.handlers.clear()
        stream_handler = logging.StreamHandler(sys.stdout)
        if settings.LOCAL_DEVELOPMENT:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        else:
            formatter = JSONFormatter()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        logger._credibill_configured = True

        return ContextualLogger(logger, prefix, dimensions)


# Default logger instance
logger = LoggerConfigurator.configure_logger("credibill")
