"""
File Backend for Persistent Logging

Async file logging with buffering, size-based rotation and text/JSON
formats. Keeps warnings, errors and audit records (allocation decisions,
stability results) for later review.
"""

import asyncio
import time
from datetime import datetime
from pathlib import Path

import aiofiles
import aiofiles.os
import msgspec

from ..interfaces import LogBackend, LogRecord, LogLevel, LogType
from ..structs import FileBackendConfig


class FileBackend(LogBackend):
    """
    File logging backend.

    Accepts only FileBackendConfig struct for configuration.
    """

    def __init__(self, config: FileBackendConfig, name: str = "file"):
        if not isinstance(config, FileBackendConfig):
            raise TypeError(f"Expected FileBackendConfig, got {type(config)}")

        super().__init__(name, {})
        self.config = config

        self.file_path = Path(config.path)
        self.format_type = config.format
        self.min_level = LogLevel[config.min_level.upper()]
        self.include_types = {LogType.TEXT, LogType.AUDIT}
        self.max_file_size = config.max_size_mb * 1024 * 1024
        self.backup_count = config.backup_count
        self.buffer_size = config.buffer_size
        self.flush_interval = config.flush_interval
        self.enabled = config.enabled

        if self.enabled:
            self._ensure_directory()

        self._write_buffer = []
        self._last_flush = time.time()
        self._lock = asyncio.Lock()

    def should_handle(self, record: LogRecord) -> bool:
        if not self.enabled:
            return False
        if record.level < self.min_level:
            return False
        return record.level >= LogLevel.WARNING or record.log_type in self.include_types

    async def write(self, record: LogRecord) -> None:
        if not self.enabled:
            return

        async with self._lock:
            self._write_buffer.append(self._format(record))

            current_time = time.time()
            should_flush = (
                len(self._write_buffer) >= self.buffer_size or
                (current_time - self._last_flush) >= self.flush_interval or
                record.level >= LogLevel.ERROR
            )
            if should_flush:
                await self._flush_buffer()

    def write_sync(self, record: LogRecord) -> None:
        """Blocking append used when no event loop is running."""
        if not self.enabled:
            return
        try:
            with open(self.file_path, 'a', encoding='utf-8') as f:
                f.write(self._format(record) + '\n')
        except OSError as e:
            self._handle_error(e)

    async def flush(self) -> None:
        if not self.enabled:
            return
        async with self._lock:
            await self._flush_buffer()

    async def _flush_buffer(self) -> None:
        if not self._write_buffer:
            return

        try:
            await self._check_rotation()
            async with aiofiles.open(self.file_path, 'a', encoding='utf-8') as f:
                for message in self._write_buffer:
                    await f.write(message + '\n')
            self._write_buffer.clear()
            self._last_flush = time.time()
        except OSError as e:
            self._handle_error(e)

    def _ensure_directory(self) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"FileBackend directory creation error: {e}")

    async def _check_rotation(self) -> None:
        if not self.file_path.exists():
            return
        file_size = await aiofiles.os.path.getsize(self.file_path)
        if file_size >= self.max_file_size:
            self._rotate_file()

    def _rotate_file(self) -> None:
        for i in range(self.backup_count - 1, 0, -1):
            old_file = self.file_path.with_suffix(f'.{i}')
            new_file = self.file_path.with_suffix(f'.{i + 1}')
            if old_file.exists():
                if new_file.exists():
                    new_file.unlink()
                old_file.rename(new_file)

        if self.file_path.exists():
            backup_file = self.file_path.with_suffix('.1')
            if backup_file.exists():
                backup_file.unlink()
            self.file_path.rename(backup_file)

    def _format(self, record: LogRecord) -> str:
        if self.format_type == 'json':
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.timestamp).isoformat()
        message = f"[{timestamp}] {record.level.name} {record.logger_name}: {record.message}"

        if record.context:
            message += " | " + ", ".join(f"{k}={v}" for k, v in record.context.items())

        correlation_parts = []
        if record.ticker:
            correlation_parts.append(f"ticker={record.ticker}")
        if record.venue:
            correlation_parts.append(f"venue={record.venue}")
        if correlation_parts:
            message += f" | {', '.join(correlation_parts)}"

        return message

    def _format_json(self, record: LogRecord) -> str:
        data = {
            'timestamp': record.timestamp,
            'level': record.level.name,
            'type': record.log_type.name,
            'logger': record.logger_name,
            'message': record.message
        }
        if record.context:
            data['context'] = record.context
        if record.ticker:
            data['ticker'] = record.ticker
        if record.venue:
            data['venue'] = record.venue
        if record.log_type == LogType.METRIC:
            data['metric'] = {
                'name': record.metric_name,
                'value': record.metric_value,
                'tags': record.metric_tags
            }

        # enc_hook keeps enums and structs in context serializable
        return msgspec.json.encode(data, enc_hook=str).decode('utf-8')
