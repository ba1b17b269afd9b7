"""
Console Backend

Bridges log records into Python's standard logging so console handlers,
formatters and pytest's caplog keep working.
"""

import logging
from typing import Dict

from ..interfaces import LogBackend, LogRecord, LogLevel, LogType
from ..structs import ConsoleBackendConfig

_PY_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL
}


class ConsoleBackend(LogBackend):
    """Console logging backend writing through stdlib loggers."""

    def __init__(self, config: ConsoleBackendConfig, name: str = "console"):
        if not isinstance(config, ConsoleBackendConfig):
            raise TypeError(f"Expected ConsoleBackendConfig, got {type(config)}")

        super().__init__(name, {})
        self.config = config
        self.min_level = LogLevel[config.min_level.upper()]
        self.color_enabled = config.color
        self.include_context = config.include_context
        self.max_message_length = config.max_message_length
        self.enabled = config.enabled

        self._py_loggers: Dict[str, logging.Logger] = {}

        if self.enabled:
            self._ensure_python_logging_configured()

    def should_handle(self, record: LogRecord) -> bool:
        return self.enabled and record.level >= self.min_level

    async def write(self, record: LogRecord) -> None:
        self.write_sync(record)

    def write_sync(self, record: LogRecord) -> None:
        try:
            py_logger = self._get_python_logger(record.logger_name)
            py_logger.log(_PY_LEVELS.get(record.level, logging.INFO), self._format_message(record))
        except Exception as e:
            print(f"ConsoleBackend error: {e}")
            print(f"{record.level.name}: {record.logger_name}: {record.message}")

    async def flush(self) -> None:
        # stdlib handlers flush on their own
        pass

    def _ensure_python_logging_configured(self) -> None:
        root_logger = logging.getLogger()
        if root_logger.handlers:
            return

        console_handler = logging.StreamHandler()
        if self.color_enabled:
            formatter = logging.Formatter('%(asctime)s %(levelname)-8s %(name)-32s %(message)s')
        else:
            formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(name)s - %(message)s')
        console_handler.setFormatter(formatter)

        py_level = _PY_LEVELS.get(self.min_level, logging.INFO)
        console_handler.setLevel(py_level)
        root_logger.setLevel(py_level)
        root_logger.addHandler(console_handler)

    def _get_python_logger(self, name: str) -> logging.Logger:
        if name not in self._py_loggers:
            self._py_loggers[name] = logging.getLogger(name)
        return self._py_loggers[name]

    def _format_message(self, record: LogRecord) -> str:
        if record.log_type == LogType.METRIC:
            tags = ", ".join(f"{k}={v}" for k, v in (record.metric_tags or {}).items())
            message = f"{record.metric_name}={record.metric_value:.4f}"
            return f"[METRIC] {message} | {tags}" if tags else f"[METRIC] {message}"

        message = record.message
        if len(message) > self.max_message_length:
            message = message[:self.max_message_length] + "..."

        if self.include_context and record.context:
            context_parts = []
            for key, value in record.context.items():
                value_str = str(value)
                if len(value_str) > 100:
                    value_str = value_str[:100] + "..."
                context_parts.append(f"{key}={value_str}")
            if context_parts:
                message += f" | {', '.join(context_parts)}"

        correlation_parts = []
        if record.ticker:
            correlation_parts.append(f"ticker={record.ticker}")
        if record.venue:
            correlation_parts.append(f"venue={record.venue}")
        if correlation_parts:
            message += f" | {', '.join(correlation_parts)}"

        if record.log_type != LogType.TEXT:
            message = f"[{record.log_type.name}] {message}"

        return message


class ColorConsoleBackend(ConsoleBackend):
    """Console backend adding ANSI colors by level."""

    COLORS = {
        LogLevel.DEBUG: '\033[36m',
        LogLevel.INFO: '\033[32m',
        LogLevel.WARNING: '\033[33m',
        LogLevel.ERROR: '\033[31m',
        LogLevel.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def _format_message(self, record: LogRecord) -> str:
        message = super()._format_message(record)
        color = self.COLORS.get(record.level)
        if not color:
            return message
        return f"{color}{message}{self.RESET}"
