"""
Strategy Engine

Runs one analysis tick at a time:

    fetch snapshots -> scan both matchers -> allocate -> report -> arm checks

and produces periodic statistics. Tick cadence belongs to the caller
(see main.py).
"""

from collections import deque
from typing import Callable, Deque, List, Optional

from msgspec import Struct

from config.structs import AdvisoryConfig, EngineConfig, FundingArbitrageConfig
from infrastructure.exceptions import ProviderError
from infrastructure.logging import get_logger, LoggingTimer
from utils.time_utils import get_current_timestamp
from .advisory import UpcomingSpread, find_upcoming_spreads
from .allocator import StrategyAllocator
from .commission import CommissionCalculator
from .matchers import RateArbitrageMatcher, TimingArbitrageMatcher
from .monitoring import DeferredTaskScheduler, MonitoringScheduler
from .provider import SnapshotProvider, SpreadsTableProvider
from .reporting import DecisionReporter
from .statistics import (
    DecisionStats, MarketSummary, StabilityStats, decision_stats, market_summary
)
from .structs import AllocationDecision, AnyOpportunity, CandidateEvaluation
from .venues import VenueRegistry


class StatisticsReport(Struct, frozen=True):
    market: Optional[MarketSummary]
    rate_opportunities: int
    timing_opportunities: int
    decisions: DecisionStats
    stability: StabilityStats
    active_checks: int
    upcoming: List[UpcomingSpread]


class StrategyEngine:
    """Orchestrates matchers, allocator and monitoring for one tick."""

    def __init__(self, provider: SnapshotProvider,
                 rate_matcher: RateArbitrageMatcher,
                 timing_matcher: TimingArbitrageMatcher,
                 allocator: StrategyAllocator,
                 monitoring: MonitoringScheduler,
                 reporter: Optional[DecisionReporter] = None,
                 config: Optional[EngineConfig] = None,
                 advisory_config: Optional[AdvisoryConfig] = None,
                 clock: Callable[[], int] = get_current_timestamp):
        self.provider = provider
        self.rate_matcher = rate_matcher
        self.timing_matcher = timing_matcher
        self.allocator = allocator
        self.monitoring = monitoring
        self.reporter = reporter
        self.config = config or EngineConfig()
        self.advisory_config = advisory_config or AdvisoryConfig()
        self._clock = clock
        self._decisions: Deque[AllocationDecision] = deque(maxlen=self.config.decision_history_cap)
        self.logger = get_logger(__name__)

    @classmethod
    def from_config(cls, config: FundingArbitrageConfig,
                    provider: Optional[SnapshotProvider] = None,
                    reporter: Optional[DecisionReporter] = None,
                    task_scheduler: Optional[DeferredTaskScheduler] = None,
                    clock: Callable[[], int] = get_current_timestamp) -> "StrategyEngine":
        """Wire the full component graph from configuration."""
        provider = provider or SpreadsTableProvider(config.provider)
        calculator = CommissionCalculator(VenueRegistry.from_overrides(config.venue_fees))

        return cls(
            provider=provider,
            rate_matcher=RateArbitrageMatcher(config.rate_arbitrage, clock),
            timing_matcher=TimingArbitrageMatcher(config.timing_arbitrage, clock),
            allocator=StrategyAllocator(calculator, config.allocator, clock),
            monitoring=MonitoringScheduler(
                provider,
                config.monitoring,
                task_scheduler=task_scheduler,
                clock=clock,
                on_result=reporter.report_stability if reporter else None,
            ),
            reporter=reporter,
            config=config.engine,
            advisory_config=config.advisory,
            clock=clock,
        )

    async def run_tick(self) -> Optional[AllocationDecision]:
        """
        One analysis tick.

        Returns None when no data was available (provider failure or an
        empty snapshot list); nothing else happens in that case.
        """
        try:
            snapshots = await self.provider.fetch_snapshots()
        except ProviderError as e:
            self.logger.error("Analysis tick abandoned, snapshot fetch failed", error=str(e))
            return None

        if not snapshots:
            self.logger.warning("Analysis tick skipped, no snapshots received")
            return None

        with LoggingTimer(self.logger, "analysis_tick", snapshots=len(snapshots)):
            now = self._clock()
            rate_candidates = self.rate_matcher.scan_all(snapshots, now_ms=now)
            timing_candidates = self.timing_matcher.scan_all(snapshots, now_ms=now)
            decision = self.allocator.analyze_and_decide(rate_candidates, timing_candidates)

        self._decisions.append(decision)

        if decision.is_skip:
            self.logger.info("Skipping tick", reason=decision.reason)
        else:
            await self._report(decision)
            for opportunity in decision.chosen_opportunities:
                self._simulate_entry(opportunity, self._evaluation_for(decision, opportunity))
                self.monitoring.arm_opportunity(opportunity)

        self.monitoring.cleanup_history()
        return decision

    async def _report(self, decision: AllocationDecision) -> None:
        if self.reporter is None:
            return
        try:
            await self.reporter.report_decision(decision)
        except Exception as e:
            self.logger.error("Decision reporting failed", action=decision.action.value, error=str(e))

    @staticmethod
    def _evaluation_for(decision: AllocationDecision,
                        opportunity: AnyOpportunity) -> Optional[CandidateEvaluation]:
        for evaluation in decision.evaluations:
            if evaluation.opportunity == opportunity:
                return evaluation
        return None

    def _simulate_entry(self, opportunity: AnyOpportunity,
                        evaluation: Optional[CandidateEvaluation]) -> None:
        """Log the advisory position entry; no orders are placed."""
        self.logger.info("Simulated entry",
                         ticker=opportunity.ticker,
                         strategy=opportunity.strategy_kind.value,
                         venues=f"{opportunity.leg_a.value}/{opportunity.leg_b.value}",
                         divergence_pct=round(opportunity.divergence_metric * 100, 4),
                         minutes_to_payout=round(opportunity.minutes_to_payout, 1))
        if evaluation is not None:
            self.logger.info(CommissionCalculator.describe(evaluation.commission))
            self.logger.info("Expected result",
                             ticker=opportunity.ticker,
                             gross_profit=round(evaluation.gross_profit, 4),
                             net_profit=round(evaluation.net_profit, 4))

    async def report_statistics(self) -> StatisticsReport:
        """Log market, decision and stability summaries."""
        market = None
        rate_count = timing_count = 0
        upcoming: List[UpcomingSpread] = []

        try:
            snapshots = await self.provider.fetch_snapshots()
        except ProviderError as e:
            self.logger.error("Statistics without market data, snapshot fetch failed", error=str(e))
            snapshots = []

        if snapshots:
            now = self._clock()
            market = market_summary(snapshots)
            rate_count = len(self.rate_matcher.scan_all(snapshots, now_ms=now))
            timing_count = len(self.timing_matcher.scan_all(snapshots, now_ms=now))
            upcoming = find_upcoming_spreads(
                snapshots, now,
                min_spread=self.advisory_config.min_spread,
                horizon_minutes=self.advisory_config.horizon_minutes,
                notional=self.allocator.notional,
                flat_commission_rate=self.advisory_config.flat_commission_rate,
            )
            self.logger.info("Market summary",
                             tickers=market.tickers,
                             avg_spread_pct=round(market.avg_spread * 100, 4),
                             max_spread_pct=round(market.max_spread * 100, 4),
                             rate_opportunities=rate_count,
                             timing_opportunities=timing_count)
            self.logger.info("Venue coverage", **market.venue_coverage)
            for item in upcoming[:self.advisory_config.top]:
                self.logger.info("Upcoming spread",
                                 ticker=item.ticker,
                                 long=item.long_venue.value,
                                 short=item.short_venue.value,
                                 spread_pct=round(item.spread * 100, 4),
                                 minutes_to_payout=round(item.minutes_to_payout, 1),
                                 estimated_net=round(item.estimated_net_profit, 4))

        decisions = decision_stats(list(self._decisions))
        stability = self.monitoring.stability_stats()
        active = len(self.monitoring.active_checks())

        self.logger.info("Decision statistics",
                         total=decisions.total,
                         rate_arbitrage=decisions.rate_arbitrage,
                         timing_arbitrage=decisions.timing_arbitrage,
                         both=decisions.both,
                         skipped=decisions.skipped,
                         success_rate_pct=round(decisions.success_rate, 1))
        self.logger.info("Stability statistics",
                         checks=stability.total_checks,
                         stable=stability.stable_count,
                         unstable=stability.unstable_count,
                         stability_rate_pct=round(stability.stability_rate, 1),
                         avg_change_pct=round(stability.avg_change_percent, 2),
                         active_checks=active)

        return StatisticsReport(
            market=market,
            rate_opportunities=rate_count,
            timing_opportunities=timing_count,
            decisions=decisions,
            stability=stability,
            active_checks=active,
            upcoming=upcoming,
        )

    def decision_history(self) -> List[AllocationDecision]:
        return list(self._decisions)

    def clear_decision_history(self) -> None:
        self._decisions.clear()

    async def shutdown(self) -> None:
        """Cancel armed checks and release the provider."""
        cancelled = self.monitoring.cancel_all()
        await self.provider.close()
        self.logger.info("Strategy engine stopped", cancelled_checks=cancelled)
