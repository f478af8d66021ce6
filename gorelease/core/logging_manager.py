from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List, Optional, TextIO

import structlog
from pythonjsonlogger import jsonlogger

from gorelease.utils.exceptions import ConfigurationError


class LoggingManager:
    """Configures console logging for a gorelease run.

    Log records from both ``logging`` and ``structlog`` end up on a single
    console handler, rendered either as human-readable lines (optionally
    colored) or as JSON for CI log collectors.
    """

    # Mapping from string log levels to logging module constants
    LOG_LEVELS = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    FORMATS = ("text", "json")

    def __init__(
            self,
            level: str = "info",
            log_format: str = "text",
            use_color: bool = True,
            stream: Optional[TextIO] = None,
    ) -> None:
        """Initialize the Logging Manager.

        Args:
            level: Minimum level to emit
            log_format: ``text`` or ``json``
            use_color: Whether text output may use ANSI colors
            stream: Output stream, stderr by default

        Raises:
            ConfigurationError: If the level or format is unknown.
        """
        if level.lower() not in self.LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {level}", config_key="log_level")
        if log_format not in self.FORMATS:
            raise ConfigurationError(f"Unknown log format: {log_format}", config_key="log_format")
        self._level = self.LOG_LEVELS[level.lower()]
        self._format = log_format
        self._use_color = use_color
        self._stream = stream or sys.stderr
        self._handlers: List[logging.Handler] = []
        self._initialized = False

    @staticmethod
    def _shared_processors() -> List[Any]:
        return [
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]

    def _create_json_formatter(self) -> logging.Formatter:
        """Create a JSON formatter for log records."""
        return jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
            json_ensure_ascii=False,
        )

    def _create_console_formatter(self) -> logging.Formatter:
        return structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=self._use_color),
            foreign_pre_chain=self._shared_processors(),
        )

    def initialize(self) -> None:
        """Install the console handler and configure structlog."""
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
        root.setLevel(self._level)

        handler = logging.StreamHandler(self._stream)
        handler.setLevel(self._level)
        if self._format == "json":
            handler.setFormatter(self._create_json_formatter())
            renderer: Any = structlog.stdlib.render_to_log_kwargs
        else:
            handler.setFormatter(self._create_console_formatter())
            renderer = structlog.stdlib.ProcessorFormatter.wrap_for_formatter
        root.addHandler(handler)
        self._handlers.append(handler)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *self._shared_processors(),
                structlog.processors.UnicodeDecoder(),
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )
        self._initialized = True

    def get_logger(self, name: str) -> Any:
        """Get a structured logger for a component."""
        return structlog.get_logger(name)

    def shutdown(self) -> None:
        """Flush and remove the handlers installed by ``initialize``."""
        if not self._initialized:
            return
        root = logging.getLogger()
        for handler in self._handlers:
            root.removeHandler(handler)
            try:
                handler.flush()
                handler.close()
            except (OSError, ValueError):
                # Stream already closed
                pass
        self._handlers.clear()
        self._initialized = False

    def status(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "level": logging.getLevelName(self._level),
            "format": self._format,
            "color": self._use_color,
        }
