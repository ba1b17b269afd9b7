"""
Buffered logger.

Records are queued in a ring buffer and drained into backends by a task on
the running event loop, so log calls inside ticks and check callbacks never
wait on I/O. With no loop running (CLI startup, plain unit tests) records are
written synchronously instead.
"""

import asyncio
import logging
import os
import time
from typing import List, Optional
import weakref

from common.ring_buffer import RingBuffer
from .interfaces import HFTLoggerInterface, LogBackend, LogRouter, LogRecord, LogLevel, LogType
from .structs import PerformanceConfig

_PY_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL
}

_PROPAGATING_ENVIRONMENTS = ('dev', 'development', 'local', 'test')


class HFTLogger(HFTLoggerInterface):
    """
    Logger with keyword context and pluggable backends.

    ``ticker`` and ``venue`` keywords become record correlation fields; every
    other keyword lands in ``record.context``. In dev and test environments
    WARNING and above go straight to the stdlib logger of the same name.
    """

    _instances = weakref.WeakSet()

    def __init__(self, name: str, backends: List[LogBackend], router: LogRouter, config: PerformanceConfig):
        if not isinstance(config, PerformanceConfig):
            raise TypeError(f"Expected PerformanceConfig, got {type(config)}")

        self.name = name
        self.backends = backends
        self.router = router
        self.batch_size = config.batch_size
        self.dispatch_interval = config.dispatch_interval

        self._buffer = RingBuffer[LogRecord](config.buffer_size)
        self._dispatch_task: Optional[asyncio.Task] = None
        self._dispatch_loop_ref: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown_event: Optional[asyncio.Event] = None

        self._py_logger = logging.getLogger(name)
        if os.getenv('ENVIRONMENT', 'dev').lower() in _PROPAGATING_ENVIRONMENTS:
            self._py_logger.propagate = True

        HFTLogger._instances.add(self)

    def _ensure_dispatch_task(self) -> bool:
        """Start draining on the running loop; False when there is none."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False

        # asyncio.run() in tests and --once creates a fresh loop each time
        if (self._dispatch_task is None or self._dispatch_task.done()
                or self._dispatch_loop_ref is not loop):
            self._shutdown_event = asyncio.Event()
            self._dispatch_task = loop.create_task(self._dispatch_loop())
            self._dispatch_loop_ref = loop
        return True

    async def _dispatch_loop(self) -> None:
        try:
            while not self._shutdown_event.is_set():
                batch = self._buffer.get_batch(self.batch_size)
                if batch:
                    await self._process_batch(batch)
                else:
                    await asyncio.sleep(self.dispatch_interval)
        except asyncio.CancelledError:
            pass

    async def _process_batch(self, batch: List[LogRecord]) -> None:
        writes = [
            self._write(backend, record)
            for record in batch
            for backend in self.router.get_backends(record)
            if backend.enabled
        ]
        if writes:
            await asyncio.gather(*writes, return_exceptions=True)

    @staticmethod
    async def _write(backend: LogBackend, record: LogRecord) -> None:
        try:
            await backend.write(record)
        except Exception as e:
            backend._handle_error(e)

    def _emit(self, record: LogRecord) -> None:
        if not self._ensure_dispatch_task():
            for backend in self.router.get_backends(record):
                try:
                    backend.write_sync(record)
                except Exception as e:
                    backend._handle_error(e)
        elif not self._buffer.put_nowait(record):
            print(f"HFTLogger buffer full, dropped record: {record.message[:50] or record.metric_name}")

    def _log(self, level: LogLevel, msg: str, log_type: LogType = LogType.TEXT, **context) -> None:
        venue = context.pop('venue', None)
        ticker = context.pop('ticker', None)
        if venue is not None:
            venue = str(venue)

        if level >= LogLevel.WARNING and self._py_logger.propagate:
            fields = [f"{k}={v}" for k, v in context.items()]
            fields += [f"{k}={v}" for k, v in (("ticker", ticker), ("venue", venue)) if v]
            self._py_logger.log(_PY_LEVELS[level], f"{msg} | {', '.join(fields)}" if fields else str(msg))
            return

        self._emit(LogRecord(
            timestamp=time.time(),
            level=level,
            log_type=log_type,
            logger_name=self.name,
            message=msg,
            context=context,
            venue=venue,
            ticker=ticker,
        ))

    def debug(self, msg: str, **context) -> None:
        self._log(LogLevel.DEBUG, msg, **context)

    def info(self, msg: str, **context) -> None:
        self._log(LogLevel.INFO, msg, **context)

    def warning(self, msg: str, **context) -> None:
        self._log(LogLevel.WARNING, msg, **context)

    def error(self, msg: str, **context) -> None:
        self._log(LogLevel.ERROR, msg, **context)

    def critical(self, msg: str, **context) -> None:
        self._log(LogLevel.CRITICAL, msg, **context)

    def audit(self, event: str, **context) -> None:
        self._log(LogLevel.INFO, event, LogType.AUDIT, **context)

    def metric(self, name: str, value: float, **tags) -> None:
        self._emit(LogRecord(
            timestamp=time.time(),
            level=LogLevel.INFO,
            log_type=LogType.METRIC,
            logger_name=self.name,
            message="",
            metric_name=name,
            metric_value=value,
            metric_tags=tags,
        ))

    def latency(self, operation: str, duration_ms: float, **tags) -> None:
        self.metric(f"{operation}_latency_ms", duration_ms, **tags)

    async def flush(self) -> None:
        remaining = self._buffer.get_batch(self._buffer.size())
        if remaining:
            await self._process_batch(remaining)

        for backend in self.backends:
            try:
                await backend.flush()
            except Exception as e:
                print(f"Backend {backend.name} flush error: {e}")

    async def shutdown(self) -> None:
        """Stop the dispatch task and flush what is left in the buffer."""
        if self._shutdown_event:
            self._shutdown_event.set()

        if self._dispatch_task and not self._dispatch_task.done() \
                and self._dispatch_loop_ref is asyncio.get_running_loop():
            try:
                await asyncio.wait_for(self._dispatch_task, timeout=5.0)
            except asyncio.TimeoutError:
                self._dispatch_task.cancel()

        await self.flush()

    @classmethod
    async def shutdown_all(cls) -> None:
        await asyncio.gather(*(logger.shutdown() for logger in list(cls._instances)),
                             return_exceptions=True)


class LoggingTimer:
    """Times a block and records it as ``<operation>_latency_ms``; logs an error if the block raises."""

    def __init__(self, logger: HFTLoggerInterface, operation: str, **tags):
        self.logger = logger
        self.operation = operation
        self.tags = tags
        self.start_time = None
        self.end_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        self.logger.latency(self.operation, self.elapsed_ms, **self.tags)

        if exc_type is not None:
            self.logger.error(f"{self.operation} failed",
                              error_type=exc_type.__name__,
                              **self.tags)

    @property
    def elapsed_ms(self) -> float:
        if self.start_time is None:
            return 0.0
        return ((self.end_time or time.perf_counter()) - self.start_time) * 1000
