"""
Logging Factory

Creates and configures logger instances using struct-based configuration.
Components call get_logger(__name__) and keep the result as self.logger.
"""

import os
from typing import Dict, Optional

from .interfaces import HFTLoggerInterface, LogLevel
from .hft_logger import HFTLogger
from .router import create_router
from .backends.console import ConsoleBackend, ColorConsoleBackend
from .backends.file import FileBackend
from .structs import LoggingConfig, PerformanceConfig, RouterConfig


class LoggerFactory:
    """Simplified logging factory - trust config, fail fast."""

    _cached_loggers: Dict[str, HFTLoggerInterface] = {}
    _default_config: Optional[LoggingConfig] = None

    @classmethod
    def create_logger(cls, name: str, config: Optional[LoggingConfig] = None) -> HFTLoggerInterface:
        """Create logger instance, cached by name."""
        if name in cls._cached_loggers:
            return cls._cached_loggers[name]

        config = config or cls._get_default_config()

        backends = []
        if config.console and config.console.enabled:
            backend_class = ColorConsoleBackend if config.console.color else ConsoleBackend
            backends.append(backend_class(config.console, 'console'))

        if config.file and config.file.enabled:
            backends.append(FileBackend(config.file, 'file'))

        router_config = config.router or RouterConfig(environment=config.environment)
        router = create_router({b.name: b for b in backends}, router_config)

        logger = HFTLogger(
            name=name,
            backends=backends,
            router=router,
            config=config.performance or PerformanceConfig()
        )

        cls._cached_loggers[name] = logger
        return logger

    @classmethod
    def get_default_config(cls) -> LoggingConfig:
        return cls._get_default_config()

    @classmethod
    def configure(cls, config: LoggingConfig) -> None:
        """
        Install a new default configuration.

        Cached loggers are dropped so later get_logger() calls pick up the
        new backends. Module-level loggers created earlier keep their old
        configuration until they are requested again.
        """
        config.validate()
        cls._cached_loggers.clear()
        cls._default_config = config

    @classmethod
    def override_logger(cls, name: str, **overrides) -> bool:
        """
        Override logger configuration at runtime.

        Args:
            name: Logger name to override
            **overrides: Configuration overrides:
                - min_level: Change minimum log level (e.g., "ERROR", "WARNING")
                - enabled: Enable/disable the logger entirely
                - backend_enabled: Dict of backend names to enable/disable

        Returns:
            True if logger was found and modified, False otherwise

        Example:
            LoggerFactory.override_logger("funding_arbitrage.monitoring", min_level="ERROR")
        """
        if name not in cls._cached_loggers:
            return False

        logger = cls._cached_loggers[name]

        if "min_level" in overrides:
            level = overrides["min_level"]
            if isinstance(level, str):
                level = LogLevel[level.upper()]
            for backend in logger.backends:
                if hasattr(backend, 'min_level'):
                    backend.min_level = level

        if "enabled" in overrides:
            for backend in logger.backends:
                backend.enabled = overrides["enabled"]

        if "backend_enabled" in overrides:
            backend_settings = overrides["backend_enabled"]
            for backend in logger.backends:
                if backend.name in backend_settings:
                    backend.enabled = backend_settings[backend.name]

        return True

    @classmethod
    def _get_default_config(cls) -> LoggingConfig:
        if cls._default_config is None:
            environment = os.getenv('ENVIRONMENT', 'dev').lower()
            if environment == 'prod':
                cls._default_config = LoggingConfig.default_production()
            elif environment == 'test':
                cls._default_config = LoggingConfig.default_test()
            else:
                cls._default_config = LoggingConfig.default_development()
        return cls._default_config


def get_logger(name: str) -> HFTLoggerInterface:
    """Get logger instance. Simple, fast."""
    return LoggerFactory.create_logger(name)


def configure_logging(config: LoggingConfig) -> None:
    LoggerFactory.configure(config)
