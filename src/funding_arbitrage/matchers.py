"""
Opportunity Matchers

Both strategies scan every unordered venue pair of a snapshot and keep the
pair with the largest divergence metric:

- RateArbitrageMatcher (Strategy 1): synchronized payouts, large rate spread.
  Long the lower-rate venue, short the higher-rate venue.
- TimingArbitrageMatcher (Strategy 2): staggered payouts, each leg with a
  large absolute rate. Legs are ordered by payout time.

Pairs are visited in VenueId declaration order (i < j); a later pair replaces
the current best only on a strictly greater metric, so the first pair wins
ties. Matchers are pure: no I/O and no state beyond their configuration.
"""

import math
from abc import ABC, abstractmethod
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

from config.structs import RateArbitrageConfig, TimingArbitrageConfig
from infrastructure.exceptions import ValidationError
from infrastructure.logging import get_logger
from utils.time_utils import get_current_timestamp, minutes_between, minutes_until
from .structs import (
    Opportunity, RateArbitrageOpportunity, TimingArbitrageOpportunity,
    RateQuote, Snapshot, StrategyKind, VenueId
)

O = TypeVar('O', bound=Opportunity)
C = TypeVar('C')


def validate_snapshot(snapshot: Snapshot) -> None:
    """
    Check snapshot shape.

    Raises:
        ValidationError: On a malformed snapshot
    """
    if not isinstance(snapshot, Snapshot):
        raise ValidationError(f"Expected Snapshot, got {type(snapshot).__name__}", "snapshot")
    if not isinstance(snapshot.ticker, str) or not snapshot.ticker:
        raise ValidationError("Snapshot ticker must be a non-empty string", "ticker")
    if not isinstance(snapshot.quotes, dict):
        raise ValidationError(f"{snapshot.ticker}: quotes must be a mapping", "quotes")

    for venue, quote in snapshot.quotes.items():
        if not isinstance(venue, VenueId):
            raise ValidationError(f"{snapshot.ticker}: unknown venue key {venue!r}", "quotes")
        if not isinstance(quote, RateQuote) or quote.venue != venue:
            raise ValidationError(f"{snapshot.ticker}: quote for {venue.value} is malformed", "quotes")
        if not isinstance(quote.funding_rate, (int, float)) or not math.isfinite(quote.funding_rate):
            raise ValidationError(f"{snapshot.ticker}: non-finite rate on {venue.value}", "funding_rate")
        if not isinstance(quote.next_payout_time, int) or quote.next_payout_time <= 0:
            raise ValidationError(f"{snapshot.ticker}: invalid payout time on {venue.value}",
                                  "next_payout_time")


class PairScanMatcher(ABC, Generic[O, C]):
    """Shared pairwise scan; subclasses supply the pair predicate and metric."""

    strategy_kind: StrategyKind

    def __init__(self, config: C, clock: Callable[[], int] = get_current_timestamp):
        self.config = config
        self._clock = clock
        self.logger = get_logger(f"funding_arbitrage.matchers.{self.strategy_kind.value}")

    @abstractmethod
    def _evaluate_pair(self, ticker: str, a: RateQuote, b: RateQuote,
                       config: C, now_ms: int) -> Optional[O]:
        """Return an opportunity if the pair qualifies, else None."""

    def find_best(self, snapshot: Snapshot, config: Optional[C] = None,
                  now_ms: Optional[int] = None) -> Optional[O]:
        """
        Best qualifying pair of one snapshot.

        Raises:
            ValidationError: On a malformed snapshot
        """
        validate_snapshot(snapshot)
        config = config or self.config
        now_ms = self._clock() if now_ms is None else now_ms

        quotes = snapshot.ordered_quotes()
        if len(quotes) < 2:
            return None

        best: Optional[O] = None
        for i in range(len(quotes)):
            for j in range(i + 1, len(quotes)):
                candidate = self._evaluate_pair(snapshot.ticker, quotes[i], quotes[j], config, now_ms)
                if candidate is None:
                    continue
                if best is None or candidate.divergence_metric > best.divergence_metric:
                    best = candidate
        return best

    def scan_all(self, snapshots: Iterable[Snapshot], config: Optional[C] = None,
                 now_ms: Optional[int] = None) -> List[O]:
        """
        Best opportunity per ticker, sorted by descending divergence.

        A malformed snapshot only drops its own ticker.
        """
        now_ms = self._clock() if now_ms is None else now_ms
        found: List[O] = []
        rejected = 0

        for snapshot in snapshots:
            try:
                opportunity = self.find_best(snapshot, config, now_ms)
            except ValidationError as e:
                rejected += 1
                self.logger.warning("Skipping malformed snapshot", error=str(e), field=e.field)
                continue
            if opportunity is not None:
                found.append(opportunity)

        found.sort(key=lambda o: o.divergence_metric, reverse=True)
        self.logger.debug("Scan complete", opportunities=len(found), rejected=rejected)
        return found

    @staticmethod
    def _lead_minutes(a: RateQuote, b: RateQuote, now_ms: int) -> float:
        return minutes_until(min(a.next_payout_time, b.next_payout_time), now_ms)


class RateArbitrageMatcher(PairScanMatcher[RateArbitrageOpportunity, RateArbitrageConfig]):
    """Strategy 1: synchronized payouts with diverging rates."""

    strategy_kind = StrategyKind.RATE_ARBITRAGE

    def __init__(self, config: Optional[RateArbitrageConfig] = None,
                 clock: Callable[[], int] = get_current_timestamp):
        super().__init__(config or RateArbitrageConfig(), clock)

    def _evaluate_pair(self, ticker: str, a: RateQuote, b: RateQuote,
                       config: RateArbitrageConfig, now_ms: int) -> Optional[RateArbitrageOpportunity]:
        if minutes_between(a.next_payout_time, b.next_payout_time) > config.max_payout_skew_minutes:
            return None

        divergence = abs(a.funding_rate - b.funding_rate)
        if divergence < config.min_rate_divergence:
            return None

        lead = self._lead_minutes(a, b, now_ms)
        if not config.min_lead_minutes <= lead <= config.max_lead_minutes:
            return None

        # Lower funding rate pays longs: go long there, short the higher rate
        long_quote, short_quote = (a, b) if a.funding_rate <= b.funding_rate else (b, a)

        return RateArbitrageOpportunity(
            ticker=ticker,
            leg_a=long_quote.venue,
            leg_b=short_quote.venue,
            leg_a_rate=long_quote.funding_rate,
            leg_b_rate=short_quote.funding_rate,
            divergence_metric=divergence,
            next_payout_time=min(a.next_payout_time, b.next_payout_time),
            minutes_to_payout=lead,
        )


class TimingArbitrageMatcher(PairScanMatcher[TimingArbitrageOpportunity, TimingArbitrageConfig]):
    """Strategy 2: staggered payouts, both legs with large absolute rates."""

    strategy_kind = StrategyKind.TIMING_ARBITRAGE

    def __init__(self, config: Optional[TimingArbitrageConfig] = None,
                 clock: Callable[[], int] = get_current_timestamp):
        super().__init__(config or TimingArbitrageConfig(), clock)

    def _evaluate_pair(self, ticker: str, a: RateQuote, b: RateQuote,
                       config: TimingArbitrageConfig, now_ms: int) -> Optional[TimingArbitrageOpportunity]:
        skew = minutes_between(a.next_payout_time, b.next_payout_time)
        if skew < config.min_payout_skew_minutes:
            return None

        if abs(a.funding_rate) < config.min_abs_rate or abs(b.funding_rate) < config.min_abs_rate:
            return None

        lead = self._lead_minutes(a, b, now_ms)
        if not config.min_lead_minutes <= lead <= config.max_lead_minutes:
            return None

        first, second = (a, b) if a.next_payout_time <= b.next_payout_time else (b, a)

        return TimingArbitrageOpportunity(
            ticker=ticker,
            leg_a=first.venue,
            leg_b=second.venue,
            leg_a_rate=first.funding_rate,
            leg_b_rate=second.funding_rate,
            divergence_metric=abs(first.funding_rate) + abs(second.funding_rate),
            next_payout_time=first.next_payout_time,
            minutes_to_payout=lead,
            second_payout_time=second.next_payout_time,
            payout_skew_minutes=skew,
        )
