"""
Unit tests for the rate and timing arbitrage matchers.
"""

import math

import pytest

from config.structs import RateArbitrageConfig, TimingArbitrageConfig
from funding_arbitrage.matchers import RateArbitrageMatcher, TimingArbitrageMatcher
from funding_arbitrage.structs import RateQuote, Snapshot, StrategyKind, VenueId
from infrastructure.exceptions import ValidationError

from tests.helpers import SnapshotFactory

NOW = SnapshotFactory.NOW


@pytest.fixture
def rate_matcher(clock):
    return RateArbitrageMatcher(RateArbitrageConfig(), clock)


@pytest.fixture
def timing_matcher(clock):
    return TimingArbitrageMatcher(TimingArbitrageConfig(), clock)


class TestRateArbitrageMatcher:

    def test_synchronized_divergence(self, rate_matcher, factory):
        opportunity = rate_matcher.find_best(factory.rate_snapshot())

        assert opportunity is not None
        assert opportunity.strategy_kind == StrategyKind.RATE_ARBITRAGE
        assert opportunity.long_venue == VenueId.BINANCE
        assert opportunity.short_venue == VenueId.BYBIT
        assert opportunity.long_rate == pytest.approx(-0.004)
        assert opportunity.short_rate == pytest.approx(0.001)
        assert opportunity.spread == pytest.approx(0.005)
        assert opportunity.next_payout_time == factory.at(10)
        assert opportunity.minutes_to_payout == pytest.approx(10)

    def test_insertion_order_does_not_matter(self, rate_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BYBIT: (0.001, 11),
            VenueId.BINANCE: (-0.004, 10),
        })
        assert rate_matcher.find_best(snapshot) == rate_matcher.find_best(factory.rate_snapshot())

    def test_long_leg_is_lower_rate(self, rate_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (0.003, 10),
            VenueId.OKX: (-0.001, 10),
        })
        opportunity = rate_matcher.find_best(snapshot)
        assert opportunity.long_venue == VenueId.OKX
        assert opportunity.short_venue == VenueId.BINANCE

    def test_widest_pair_wins(self, rate_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (-0.004, 10),
            VenueId.BYBIT: (0.001, 10),
            VenueId.OKX: (0.003, 10),
        })
        opportunity = rate_matcher.find_best(snapshot)
        assert (opportunity.long_venue, opportunity.short_venue) == (VenueId.BINANCE, VenueId.OKX)
        assert opportunity.spread == pytest.approx(0.007)

    def test_first_pair_wins_ties(self, rate_matcher, factory):
        # binance/bybit and bybit/bitget both diverge by 0.2%
        snapshot = factory.create_snapshot({
            VenueId.BITGET: (0.0, 10),
            VenueId.BYBIT: (0.002, 10),
            VenueId.BINANCE: (0.0, 10),
        })
        opportunity = rate_matcher.find_best(snapshot)
        assert (opportunity.long_venue, opportunity.short_venue) == (VenueId.BINANCE, VenueId.BYBIT)

    @pytest.mark.parametrize("minutes", [2, 16, -1])
    def test_lead_outside_window(self, rate_matcher, factory, minutes):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (-0.004, minutes),
            VenueId.BYBIT: (0.001, minutes),
        })
        assert rate_matcher.find_best(snapshot) is None

    @pytest.mark.parametrize("minutes", [3, 15])
    def test_lead_window_is_inclusive(self, rate_matcher, factory, minutes):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (-0.004, minutes),
            VenueId.BYBIT: (0.001, minutes),
        })
        assert rate_matcher.find_best(snapshot) is not None

    def test_payout_skew_too_large(self, rate_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (-0.004, 10),
            VenueId.BYBIT: (0.001, 16),
        })
        assert rate_matcher.find_best(snapshot) is None

    def test_divergence_too_small(self, rate_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (0.0001, 10),
            VenueId.BYBIT: (0.001, 10),
        })
        assert rate_matcher.find_best(snapshot) is None

    def test_fewer_than_two_venues(self, rate_matcher, factory):
        assert rate_matcher.find_best(factory.create_snapshot({VenueId.BINANCE: (0.01, 10)})) is None
        assert rate_matcher.find_best(factory.create_snapshot({})) is None

    def test_config_override_per_call(self, rate_matcher, factory):
        strict = RateArbitrageConfig(min_rate_divergence=0.01)
        assert rate_matcher.find_best(factory.rate_snapshot(), strict) is None

    def test_explicit_now(self, rate_matcher, factory):
        # 8 minutes later the payout is 2 minutes away, too close
        assert rate_matcher.find_best(factory.rate_snapshot(), now_ms=factory.at(8)) is None

    def test_staggered_snapshot_is_not_rate_arbitrage(self, rate_matcher, factory):
        assert rate_matcher.find_best(factory.timing_snapshot()) is None


class TestTimingArbitrageMatcher:

    def test_staggered_payouts(self, timing_matcher, factory):
        opportunity = timing_matcher.find_best(factory.timing_snapshot())

        assert opportunity is not None
        assert opportunity.strategy_kind == StrategyKind.TIMING_ARBITRAGE
        assert opportunity.first_venue == VenueId.BINANCE
        assert opportunity.second_venue == VenueId.BYBIT
        assert opportunity.first_rate == pytest.approx(0.003)
        assert opportunity.second_rate == pytest.approx(-0.0025)
        assert opportunity.divergence_metric == pytest.approx(0.0055)
        assert opportunity.next_payout_time == factory.at(5)
        assert opportunity.second_payout_time == factory.at(65)
        assert opportunity.payout_skew_minutes == pytest.approx(60)
        assert opportunity.monitored_legs() == [(VenueId.BINANCE, 0.003)]

    def test_first_leg_is_earlier_payout(self, timing_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (0.003, 65),
            VenueId.BYBIT: (-0.0025, 5),
        })
        opportunity = timing_matcher.find_best(snapshot)
        assert opportunity.first_venue == VenueId.BYBIT
        assert opportunity.second_venue == VenueId.BINANCE

    def test_skew_too_small(self, timing_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (0.003, 5),
            VenueId.BYBIT: (-0.0025, 20),
        })
        assert timing_matcher.find_best(snapshot) is None

    def test_each_leg_needs_large_rate(self, timing_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (0.01, 5),
            VenueId.BYBIT: (0.001, 65),
        })
        assert timing_matcher.find_best(snapshot) is None

    def test_lead_measured_to_first_payout(self, timing_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (0.003, 3),
            VenueId.BYBIT: (-0.0025, 65),
        })
        assert timing_matcher.find_best(snapshot) is None

    def test_highest_potential_wins(self, timing_matcher, factory):
        snapshot = factory.create_snapshot({
            VenueId.BINANCE: (0.003, 5),
            VenueId.BYBIT: (-0.0025, 65),
            VenueId.OKX: (0.006, 125),
        })
        opportunity = timing_matcher.find_best(snapshot)
        assert (opportunity.first_venue, opportunity.second_venue) == (VenueId.BINANCE, VenueId.OKX)
        assert opportunity.divergence_metric == pytest.approx(0.009)


class TestSnapshotValidation:

    def test_non_finite_rate(self, rate_matcher):
        quote = RateQuote(VenueId.BINANCE, math.nan, NOW)
        snapshot = Snapshot("XUSDT", {VenueId.BINANCE: quote})
        with pytest.raises(ValidationError) as exc_info:
            rate_matcher.find_best(snapshot)
        assert exc_info.value.field == "funding_rate"

    def test_empty_ticker(self, timing_matcher, factory):
        snapshot = Snapshot("", factory.rate_snapshot().quotes)
        with pytest.raises(ValidationError):
            timing_matcher.find_best(snapshot)

    def test_quote_filed_under_wrong_venue(self, rate_matcher, factory):
        quote = factory.create_quote(VenueId.BYBIT, 0.001, 10)
        with pytest.raises(ValidationError):
            rate_matcher.find_best(Snapshot("XUSDT", {VenueId.BINANCE: quote}))

    def test_scan_all_skips_malformed_ticker(self, rate_matcher, factory):
        bad = Snapshot("BADUSDT", {VenueId.BINANCE: RateQuote(VenueId.BINANCE, math.inf, NOW)})
        wide = factory.create_snapshot({
            VenueId.BITGET: (-0.005, 10),
            VenueId.OKX: (0.004, 10),
        }, ticker="YUSDT")

        found = rate_matcher.scan_all([factory.rate_snapshot(), bad, wide])

        assert [o.ticker for o in found] == ["YUSDT", "XUSDT"]

    def test_scan_all_empty(self, timing_matcher):
        assert timing_matcher.scan_all([]) == []
