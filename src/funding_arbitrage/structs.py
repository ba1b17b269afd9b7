"""
Funding arbitrage data model.

All records are msgspec structs. Everything except MonitoredCheck is
frozen; checks are mutated only by the MonitoringScheduler that owns them.
Timestamps are epoch milliseconds, rates are signed fractions
(0.0001 == 0.01%).
"""

from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple, Union

import msgspec
from msgspec import Struct


class VenueId(str, Enum):
    """
    Known trading venues.

    Declaration order is the iteration order of every venue scan and fixes
    the matchers' tie-break.
    """
    BINANCE = "binance"
    BYBIT = "bybit"
    BITGET = "bitget"
    BINGX = "bingx"
    MEXC = "mexc"
    BITMEX = "bitmex"
    OKX = "okx"


class StrategyKind(str, Enum):
    RATE_ARBITRAGE = "rate_arbitrage"
    TIMING_ARBITRAGE = "timing_arbitrage"


class OrderPolicy(str, Enum):
    ALL_TAKER = "all_taker"
    MAKER_ENTRY_TAKER_EXIT = "maker_entry_taker_exit"


class AllocationAction(str, Enum):
    ENTER_RATE_ARBITRAGE = "enter_rate_arbitrage"
    ENTER_TIMING_ARBITRAGE = "enter_timing_arbitrage"
    ENTER_BOTH = "enter_both"
    SKIP = "skip"


class CheckState(str, Enum):
    ARMED = "armed"
    FIRED = "fired"
    EXPIRED = "expired"


class VenueFee(Struct, frozen=True):
    """Maker/taker fee rates of a venue; maker may be negative (rebate)."""
    venue: VenueId
    maker_rate: float
    taker_rate: float


class RateQuote(Struct, frozen=True):
    """Funding rate of one ticker on one venue."""
    venue: VenueId
    funding_rate: float
    next_payout_time: int


class Snapshot(Struct, frozen=True):
    """
    Cross-venue rates of one ticker at one point in time.

    quotes is sparse: venues without an open market or a known rate are
    absent. min_rate/max_rate/spread are the provider's own aggregates and
    are only used by the advisory scan.
    """
    ticker: str
    quotes: Dict[VenueId, RateQuote]
    min_rate: Optional[float] = None
    max_rate: Optional[float] = None
    spread: Optional[float] = None

    def ordered_quotes(self) -> List[RateQuote]:
        """Quotes in VenueId declaration order, independent of insertion order."""
        return [self.quotes[venue] for venue in VenueId if venue in self.quotes]

    def get_quote(self, venue: VenueId) -> Optional[RateQuote]:
        return self.quotes.get(venue)


class Opportunity(Struct, frozen=True, tag_field="strategy_kind"):
    """
    Common shape of both opportunity variants.

    leg_a/leg_b meaning is variant specific; use the named properties of
    the concrete classes outside the allocator.
    """
    ticker: str
    leg_a: VenueId
    leg_b: VenueId
    leg_a_rate: float
    leg_b_rate: float
    divergence_metric: float
    next_payout_time: int
    minutes_to_payout: float

    strategy_kind: ClassVar[StrategyKind]

    def monitored_legs(self) -> List[Tuple[VenueId, float]]:
        """
        (venue, rate) legs that get a pre-payout stability check.

        Each variant overrides this; the base is never instantiated.
        """
        raise NotImplementedError(f"{type(self).__name__} does not define monitored legs")


class RateArbitrageOpportunity(Opportunity, frozen=True, tag="rate_arbitrage"):
    """
    Synchronized payouts with diverging rates.

    leg_a is the long leg (lower rate), leg_b the short leg (higher rate);
    divergence_metric is the spread |rateA - rateB|.
    """
    strategy_kind: ClassVar[StrategyKind] = StrategyKind.RATE_ARBITRAGE

    @property
    def long_venue(self) -> VenueId:
        return self.leg_a

    @property
    def short_venue(self) -> VenueId:
        return self.leg_b

    @property
    def long_rate(self) -> float:
        return self.leg_a_rate

    @property
    def short_rate(self) -> float:
        return self.leg_b_rate

    @property
    def spread(self) -> float:
        return self.divergence_metric

    def monitored_legs(self) -> List[Tuple[VenueId, float]]:
        return [(self.leg_a, self.leg_a_rate), (self.leg_b, self.leg_b_rate)]


class TimingArbitrageOpportunity(Opportunity, frozen=True, tag="timing_arbitrage"):
    """
    Staggered payouts, each leg carrying a large absolute rate.

    leg_a pays first, leg_b second; these are order markers, not trade
    directions. divergence_metric is |rateA| + |rateB|.
    """
    second_payout_time: int
    payout_skew_minutes: float

    strategy_kind: ClassVar[StrategyKind] = StrategyKind.TIMING_ARBITRAGE

    @property
    def first_venue(self) -> VenueId:
        return self.leg_a

    @property
    def second_venue(self) -> VenueId:
        return self.leg_b

    @property
    def first_rate(self) -> float:
        return self.leg_a_rate

    @property
    def second_rate(self) -> float:
        return self.leg_b_rate

    def monitored_legs(self) -> List[Tuple[VenueId, float]]:
        # Only the nearer payout is verified
        return [(self.leg_a, self.leg_a_rate)]


AnyOpportunity = Union[RateArbitrageOpportunity, TimingArbitrageOpportunity]


class CommissionBreakdown(Struct, frozen=True):
    """Fees of opening and closing both legs under one order policy."""
    venue_a: VenueId
    venue_b: VenueId
    notional: float
    entry_fee_leg_a: float
    entry_fee_leg_b: float
    exit_fee_leg_a: float
    exit_fee_leg_b: float
    total: float
    order_policy: OrderPolicy


class PolicyComparison(Struct, frozen=True):
    all_taker: CommissionBreakdown
    maker_entry_taker_exit: CommissionBreakdown
    savings: float


class CandidateEvaluation(Struct, frozen=True):
    """Commission-netted profit of one candidate opportunity."""
    opportunity: AnyOpportunity
    gross_profit: float
    commission: CommissionBreakdown
    net_profit: float


class AllocationDecision(Struct, frozen=True):
    """Outcome of one allocation tick."""
    action: AllocationAction
    chosen_opportunities: Tuple[AnyOpportunity, ...]
    reason: str
    gross_profit: float
    total_commission: float
    net_profit: float
    notional_per_leg: float
    decided_at: int
    evaluations: Tuple[CandidateEvaluation, ...] = ()

    @property
    def is_skip(self) -> bool:
        return self.action == AllocationAction.SKIP


class MonitoredCheck(Struct):
    """One-shot stability check of one leg; owned by MonitoringScheduler."""
    id: str
    ticker: str
    venue: VenueId
    original_rate: float
    next_payout_time: int
    armed_at: int
    fire_at: int
    strategy_kind: StrategyKind
    state: CheckState = CheckState.ARMED


class StabilityResult(Struct, frozen=True):
    """Comparison of a leg's rate at arming time and shortly before payout."""
    check_id: str
    ticker: str
    venue: VenueId
    original_rate: float
    current_rate: float
    change_percent: float
    is_stable: bool
    minutes_before_payout: float
    checked_at: int
    next_payout_time: int
    strategy_kind: StrategyKind


def copy_check(check: MonitoredCheck) -> MonitoredCheck:
    return msgspec.structs.replace(check)
