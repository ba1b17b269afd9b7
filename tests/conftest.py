"""
Pytest configuration and shared fixtures for funding arbitrage tests.

Provides a fixed clock, in-memory snapshot provider and a manually driven
task scheduler so matcher, allocator and monitoring behaviour can be
tested without network access or real timers.
"""

import pytest
import os
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

# Configure test environment
os.environ['ENVIRONMENT'] = 'test'

from infrastructure.logging import get_logger
from infrastructure.logging.factory import LoggerFactory
from infrastructure.logging.structs import (
    LoggingConfig, ConsoleBackendConfig, PerformanceConfig, RouterConfig
)

from tests.helpers import SnapshotFactory, FakeClock, FakeSnapshotProvider, FakeTaskScheduler, RecordingReporter


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging():
    """Set up test-appropriate logging configuration."""
    LoggerFactory._default_config = LoggingConfig(
        environment="test",
        console=ConsoleBackendConfig(enabled=True, min_level="WARNING", color=False),
        performance=PerformanceConfig(buffer_size=10, batch_size=1, dispatch_interval=0.001),
        router=RouterConfig(default_backends=["console"])
    )


@pytest.fixture
def logger():
    """Provide HFT logger for tests."""
    return get_logger("test_funding_arbitrage")


@pytest.fixture
def factory():
    """Provide snapshot/opportunity factory."""
    return SnapshotFactory


@pytest.fixture
def clock():
    """Clock frozen at SnapshotFactory.NOW; advance() moves it."""
    return FakeClock(SnapshotFactory.NOW)


@pytest.fixture
def provider():
    """In-memory snapshot provider with no snapshots."""
    return FakeSnapshotProvider()


@pytest.fixture
def task_scheduler():
    """Deferred scheduler fired manually by the test."""
    return FakeTaskScheduler()


@pytest.fixture
def reporter():
    return RecordingReporter()
