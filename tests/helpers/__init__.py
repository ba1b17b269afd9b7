"""
Helper modules for funding arbitrage tests.

Snapshot and opportunity factories plus in-memory stand-ins for the
provider, deferred scheduler, reporter and clock.
"""

from .snapshot_factory import SnapshotFactory
from .fakes import FakeClock, FakeSnapshotProvider, FakeTaskScheduler, ScheduledCall, RecordingReporter

__all__ = [
    "SnapshotFactory",
    "FakeClock",
    "FakeSnapshotProvider",
    "FakeTaskScheduler",
    "ScheduledCall",
    "RecordingReporter",
]
