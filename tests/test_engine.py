"""
Integration tests for the strategy engine tick and statistics cycle.
"""

import pytest

from config.structs import EngineConfig, FundingArbitrageConfig
from funding_arbitrage.engine import StrategyEngine
from funding_arbitrage.structs import AllocationAction, CheckState, StrategyKind, VenueId
from infrastructure.exceptions import ProviderError

from tests.helpers import RecordingReporter


@pytest.fixture
def config():
    return FundingArbitrageConfig(environment="test")


@pytest.fixture
def engine(config, provider, reporter, task_scheduler, clock):
    return StrategyEngine.from_config(config, provider=provider, reporter=reporter,
                                      task_scheduler=task_scheduler, clock=clock)


class TestRunTick:

    @pytest.mark.asyncio
    async def test_provider_failure_abandons_tick(self, engine, provider, reporter, task_scheduler):
        provider.error = ProviderError("timeout", 408)

        assert await engine.run_tick() is None
        assert engine.decision_history() == []
        assert reporter.decisions == []
        assert task_scheduler.calls == []

    @pytest.mark.asyncio
    async def test_empty_snapshot_list(self, engine):
        assert await engine.run_tick() is None
        assert engine.decision_history() == []

    @pytest.mark.asyncio
    async def test_rate_opportunity_is_entered_and_monitored(self, engine, provider, reporter,
                                                            task_scheduler, factory):
        provider.snapshots = [factory.rate_snapshot()]

        decision = await engine.run_tick()

        assert decision.action == AllocationAction.ENTER_RATE_ARBITRAGE
        assert decision.net_profit == pytest.approx(3.65)
        assert reporter.decisions == [decision]
        assert [c.event.venue for c in task_scheduler.calls] == [VenueId.BINANCE, VenueId.BYBIT]
        assert len(engine.monitoring.active_checks()) == 2

    @pytest.mark.asyncio
    async def test_timing_opportunity_monitors_first_leg(self, engine, provider, task_scheduler, factory):
        provider.snapshots = [factory.timing_snapshot()]

        decision = await engine.run_tick()

        assert decision.action == AllocationAction.ENTER_TIMING_ARBITRAGE
        assert len(task_scheduler.calls) == 1
        assert task_scheduler.calls[0].event.venue == VenueId.BINANCE

    @pytest.mark.asyncio
    async def test_both_strategies_on_different_tickers(self, engine, provider, task_scheduler, factory):
        provider.snapshots = [factory.rate_snapshot("XUSDT"), factory.timing_snapshot("YUSDT")]

        decision = await engine.run_tick()

        assert decision.action == AllocationAction.ENTER_BOTH
        assert decision.notional_per_leg == 2000
        assert len(task_scheduler.calls) == 3

    @pytest.mark.asyncio
    async def test_skip_reports_and_arms_nothing(self, engine, provider, reporter, task_scheduler, factory):
        provider.snapshots = [factory.create_snapshot({VenueId.BINANCE: (0.0001, 10), VenueId.OKX: (0.0002, 10)})]

        decision = await engine.run_tick()

        assert decision.is_skip
        assert engine.decision_history() == [decision]
        assert reporter.decisions == []
        assert task_scheduler.calls == []

    @pytest.mark.asyncio
    async def test_reporter_failure_does_not_abort(self, config, provider, task_scheduler, clock, factory):
        engine = StrategyEngine.from_config(config, provider=provider, reporter=RecordingReporter(fail=True),
                                            task_scheduler=task_scheduler, clock=clock)
        provider.snapshots = [factory.rate_snapshot()]

        decision = await engine.run_tick()

        assert not decision.is_skip
        assert len(task_scheduler.calls) == 2

    @pytest.mark.asyncio
    async def test_decision_history_is_capped(self, provider, task_scheduler, clock, factory):
        config = FundingArbitrageConfig(engine=EngineConfig(decision_history_cap=2))
        engine = StrategyEngine.from_config(config, provider=provider, task_scheduler=task_scheduler, clock=clock)
        provider.snapshots = [factory.rate_snapshot()]

        for _ in range(3):
            await engine.run_tick()

        assert len(engine.decision_history()) == 2
        engine.clear_decision_history()
        assert engine.decision_history() == []

    @pytest.mark.asyncio
    async def test_stability_result_reaches_reporter(self, engine, provider, reporter, task_scheduler,
                                                     factory, clock):
        provider.snapshots = [factory.rate_snapshot()]
        await engine.run_tick()

        clock.advance(9)
        provider.snapshots = [factory.create_snapshot({
            VenueId.BINANCE: (-0.0041, 1),
            VenueId.BYBIT: (0.003, 2),
        })]
        await task_scheduler.fire_all()

        by_venue = {r.venue: r for r in reporter.results}
        assert by_venue[VenueId.BINANCE].is_stable
        assert not by_venue[VenueId.BYBIT].is_stable
        assert all(r.strategy_kind == StrategyKind.RATE_ARBITRAGE for r in reporter.results)


class TestStatistics:

    @pytest.mark.asyncio
    async def test_report(self, engine, provider, factory):
        provider.snapshots = [factory.rate_snapshot("XUSDT"), factory.timing_snapshot("YUSDT")]
        await engine.run_tick()

        report = await engine.report_statistics()

        assert report.market.tickers == 2
        assert report.market.venue_coverage["binance"] == 2
        assert report.market.venue_coverage["mexc"] == 0
        assert report.rate_opportunities == 1
        assert report.timing_opportunities == 1
        assert report.decisions.total == 1
        assert report.decisions.both == 1
        assert report.decisions.success_rate == pytest.approx(100.0)
        assert report.active_checks == 3
        assert report.stability.total_checks == 0

    @pytest.mark.asyncio
    async def test_report_without_market_data(self, engine, provider):
        provider.error = ProviderError("down")

        report = await engine.report_statistics()

        assert report.market is None
        assert report.upcoming == []
        assert report.decisions.total == 0


class TestShutdown:

    @pytest.mark.asyncio
    async def test_shutdown_cancels_checks_and_closes_provider(self, engine, provider, factory):
        provider.snapshots = [factory.rate_snapshot()]
        await engine.run_tick()
        check_ids = [c.id for c in engine.monitoring.active_checks()]

        await engine.shutdown()

        assert provider.closed
        assert engine.monitoring.active_checks() == []
        assert all(engine.monitoring.get_check(i).state == CheckState.EXPIRED for i in check_ids)
