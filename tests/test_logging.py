"""
Tests for the HFT logging infrastructure used by every component.
"""

import logging
from unittest.mock import Mock

import pytest

from infrastructure.logging import HFTLogger, LoggerFactory, LoggingTimer, get_logger
from infrastructure.logging.interfaces import LogLevel, LogRecord, LogType
from infrastructure.logging.router import SimpleRouter
from infrastructure.logging.structs import LoggingConfig, RouterConfig


class TestLoggerFactory:

    def test_loggers_are_cached(self):
        assert get_logger("test.cached") is get_logger("test.cached")
        assert isinstance(get_logger("test.cached"), HFTLogger)

    def test_override_min_level(self):
        logger = get_logger("test.override")
        assert LoggerFactory.override_logger("test.override", min_level="ERROR")
        assert all(b.min_level == LogLevel.ERROR for b in logger.backends if hasattr(b, "min_level"))
        assert not LoggerFactory.override_logger("test.never_created", min_level="ERROR")

    def test_config_from_dict(self):
        config = LoggingConfig.from_dict({
            "environment": "prod",
            "file": {"path": "logs/x.log", "format": "json"},
        })
        config.validate()
        assert config.get_enabled_backends() == ["file"]
        assert config.file.format == "json"

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            LoggingConfig.from_dict({"console": {"min_level": "LOUD"}}).validate()


class TestHFTLogger:

    def test_warnings_reach_stdlib_logging(self, caplog):
        logger = get_logger("test.propagation")
        with caplog.at_level(logging.WARNING, logger="test.propagation"):
            logger.warning("Dropping candidate without fee data", ticker="XUSDT", venue="mexc")
        assert "Dropping candidate without fee data" in caplog.text
        assert "venue=mexc" in caplog.text

    def test_sync_dispatch_without_loop(self):
        logger = get_logger("test.sync")
        backend = Mock()
        backend.should_handle.return_value = True
        logger.router = Mock()
        logger.router.get_backends.return_value = [backend]

        logger.info("tick", snapshots=3)

        record = backend.write_sync.call_args[0][0]
        assert record.message == "tick"
        assert record.context == {"snapshots": 3}

    def test_timer_logs_latency(self):
        logger = Mock()
        with LoggingTimer(logger, "analysis_tick", snapshots=2) as timer:
            pass
        assert timer.elapsed_ms >= 0
        logger.latency.assert_called_once()
        assert logger.latency.call_args[0][0] == "analysis_tick"
        logger.error.assert_not_called()

    def test_timer_logs_failure(self):
        logger = Mock()
        with pytest.raises(RuntimeError):
            with LoggingTimer(logger, "spreads_fetch"):
                raise RuntimeError("boom")
        logger.error.assert_called_once()


class TestRouter:

    def _backend(self, name):
        backend = Mock()
        backend.name = name
        backend.should_handle.return_value = True
        return backend

    @staticmethod
    def _record(level=LogLevel.INFO, log_type=LogType.TEXT, message="hello"):
        return LogRecord(timestamp=0.0, level=level, log_type=log_type, logger_name="x", message=message)

    def test_routing(self):
        console, file = self._backend("console"), self._backend("file")
        router = SimpleRouter({"console": console, "file": file},
                              RouterConfig(environment="prod", default_backends=["console"]))

        info = self._record()
        error = self._record(level=LogLevel.ERROR, message="boom")
        audit = self._record(log_type=LogType.AUDIT, message="decision")
        metric = self._record(log_type=LogType.METRIC, message="")

        assert router.get_backends(info) == [console]
        assert set(map(id, router.get_backends(error))) == {id(console), id(file)}
        assert router.get_backends(audit) == [file, console]
        assert router.get_backends(metric) == []
