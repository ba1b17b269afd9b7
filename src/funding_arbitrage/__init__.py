"""
Cross-venue funding rate arbitrage.

Components, leaf first:
- venues / commission: fee table and commission model
- matchers: rate arbitrage (Strategy 1) and timing arbitrage (Strategy 2)
- allocator: commission-netted choice between the two
- monitoring: one-shot stability checks before payout
- engine: per-tick orchestration, statistics and shutdown
"""

from .structs import (
    VenueId, VenueFee, RateQuote, Snapshot, StrategyKind, OrderPolicy,
    Opportunity, RateArbitrageOpportunity, TimingArbitrageOpportunity,
    CommissionBreakdown, PolicyComparison, CandidateEvaluation,
    AllocationAction, AllocationDecision, CheckState, MonitoredCheck, StabilityResult
)
from .venues import VenueRegistry, DEFAULT_VENUE_FEES, parse_venue
from .commission import CommissionCalculator
from .matchers import RateArbitrageMatcher, TimingArbitrageMatcher, validate_snapshot
from .allocator import StrategyAllocator
from .monitoring import (
    MonitoringScheduler, DeferredTaskScheduler, AsyncioTaskScheduler, CancelToken, CheckDueEvent
)
from .snapshot_parser import parse_snapshot, parse_snapshots
from .provider import SnapshotProvider, SpreadsTableProvider
from .reporting import DecisionReporter, LoggingReporter
from .advisory import UpcomingSpread, find_upcoming_spreads
from .engine import StrategyEngine, StatisticsReport

__all__ = [
    'VenueId', 'VenueFee', 'RateQuote', 'Snapshot', 'StrategyKind', 'OrderPolicy',
    'Opportunity', 'RateArbitrageOpportunity', 'TimingArbitrageOpportunity',
    'CommissionBreakdown', 'PolicyComparison', 'CandidateEvaluation',
    'AllocationAction', 'AllocationDecision', 'CheckState', 'MonitoredCheck', 'StabilityResult',
    'VenueRegistry', 'DEFAULT_VENUE_FEES', 'parse_venue',
    'CommissionCalculator',
    'RateArbitrageMatcher', 'TimingArbitrageMatcher', 'validate_snapshot',
    'StrategyAllocator',
    'MonitoringScheduler', 'DeferredTaskScheduler', 'AsyncioTaskScheduler', 'CancelToken', 'CheckDueEvent',
    'parse_snapshot', 'parse_snapshots',
    'SnapshotProvider', 'SpreadsTableProvider',
    'DecisionReporter', 'LoggingReporter',
    'UpcomingSpread', 'find_upcoming_spreads',
    'StrategyEngine', 'StatisticsReport',
]
