"""
Message Routing for the logging system.

Fixed routing rules: audit records go to the file backend (and console in
dev/test), warnings and errors go everywhere, everything else goes to the
configured default backends.
"""

import os
from typing import Dict, List

from .interfaces import LogBackend, LogRecord, LogLevel, LogType, LogRouter
from .structs import RouterConfig


class SimpleRouter(LogRouter):
    """Router with predefined routing logic."""

    def __init__(self, backends: Dict[str, LogBackend], config: RouterConfig):
        if not isinstance(config, RouterConfig):
            raise TypeError(f"Expected RouterConfig, got {type(config)}")

        self.backends = backends
        self.config = config
        self.environment = config.environment or os.getenv('ENVIRONMENT', 'dev')
        self.default_backends = config.get_default_backends()
        self.is_dev = self.environment.lower() in ('dev', 'development', 'local', 'test')

    def get_backends(self, record: LogRecord) -> List[LogBackend]:
        if record.log_type == LogType.METRIC:
            # No metrics backend is wired; metrics only show up in dev console
            backend_names = ['console'] if self.is_dev else []
        elif record.log_type == LogType.AUDIT:
            backend_names = ['file', 'console']
        elif record.level >= LogLevel.WARNING:
            backend_names = list(self.backends.keys())
        else:
            backend_names = self.default_backends

        return [
            backend
            for name in backend_names
            if (backend := self.backends.get(name)) and backend.should_handle(record)
        ]


def create_router(backends: Dict[str, LogBackend], config: RouterConfig) -> LogRouter:
    return SimpleRouter(backends, config)
