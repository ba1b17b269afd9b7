"""
Logging interfaces: levels, record layout, backend and router contracts.

Records carry the ticker/venue correlation fields that the matchers,
allocator and monitoring scheduler pass as keyword context.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class LogType(IntEnum):
    """Record kind; the router sends each kind to a different backend set."""
    TEXT = 1
    METRIC = 2    # latencies recorded by LoggingTimer
    AUDIT = 3     # allocation decisions and stability results


@dataclass
class LogRecord:
    """Unformatted record; each backend renders it its own way."""
    timestamp: float
    level: LogLevel
    log_type: LogType
    logger_name: str
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    metric_name: Optional[str] = None
    metric_value: Optional[float] = None
    metric_tags: Optional[Dict[str, Any]] = None

    venue: Optional[str] = None
    ticker: Optional[str] = None


class LogBackend(ABC):
    """Output destination. Disabled after too many consecutive write failures."""

    max_errors = 10

    def __init__(self, name: str, config: Dict[str, Any] = None):
        self.name = name
        self.config = config or {}
        self.enabled = True
        self._error_count = 0

    @abstractmethod
    def should_handle(self, record: LogRecord) -> bool:
        pass

    @abstractmethod
    async def write(self, record: LogRecord) -> None:
        pass

    def write_sync(self, record: LogRecord) -> None:
        """Write without an event loop; backends that cannot do so ignore the record."""

    @abstractmethod
    async def flush(self) -> None:
        pass

    def _handle_error(self, error: Exception) -> None:
        self._error_count += 1
        if self._error_count >= self.max_errors:
            self.enabled = False
            print(f"Backend {self.name} disabled after {self.max_errors} errors: {error}")


class LogRouter(ABC):

    @abstractmethod
    def get_backends(self, record: LogRecord) -> List[LogBackend]:
        pass


class HFTLoggerInterface(ABC):
    """What components see as ``self.logger``."""

    @abstractmethod
    def debug(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def info(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def warning(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def error(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def critical(self, msg: str, **context) -> None:
        pass

    @abstractmethod
    def latency(self, operation: str, duration_ms: float, **tags) -> None:
        pass

    @abstractmethod
    def audit(self, event: str, **context) -> None:
        """Decisions and stability results; routed to the file backend in production."""

    @abstractmethod
    async def flush(self) -> None:
        pass
