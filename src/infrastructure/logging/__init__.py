"""
Logging System

Buffered logging with pluggable console and file backends.

Usage:
    from infrastructure.logging import get_logger

    logger = get_logger('funding_arbitrage.engine')
    logger.info("Tick complete", decisions=2)

    # Correlation fields
    logger.debug("Check armed", ticker="XUSDT", venue="binance")

    # Metrics
    logger.metric("tick_duration_ms", 12.5, snapshots=120)
"""

from .interfaces import (
    LogLevel,
    LogType,
    LogRecord,
    LogBackend,
    LogRouter,
    HFTLoggerInterface
)

from .hft_logger import HFTLogger, LoggingTimer

from .factory import (
    LoggerFactory,
    get_logger,
    configure_logging
)

from .structs import (
    LoggingConfig,
    ConsoleBackendConfig,
    FileBackendConfig,
    PerformanceConfig,
    RouterConfig,
    BackendConfig
)

from .router import SimpleRouter, create_router

from .backends.console import ConsoleBackend, ColorConsoleBackend
from .backends.file import FileBackend

__all__ = [
    'LogLevel',
    'LogType',
    'LogRecord',
    'LogBackend',
    'LogRouter',
    'HFTLoggerInterface',

    'HFTLogger',
    'LoggingTimer',

    'LoggerFactory',
    'get_logger',
    'configure_logging',

    'LoggingConfig',
    'ConsoleBackendConfig',
    'FileBackendConfig',
    'PerformanceConfig',
    'RouterConfig',
    'BackendConfig',

    'SimpleRouter',
    'create_router',

    'ConsoleBackend',
    'ColorConsoleBackend',
    'FileBackend',
]
