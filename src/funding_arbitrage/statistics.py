"""
Summaries of decisions, stability results and snapshot coverage.

Pure functions over the records; the engine logs their output.
"""

from typing import Dict, Iterable, Sequence

from msgspec import Struct

from .structs import AllocationAction, AllocationDecision, Snapshot, StabilityResult, VenueId


class DecisionStats(Struct, frozen=True):
    total: int
    rate_arbitrage: int
    timing_arbitrage: int
    both: int
    skipped: int
    total_gross_profit: float
    success_rate: float
    avg_gross_profit: float


class StabilityStats(Struct, frozen=True):
    total_checks: int
    stable_count: int
    unstable_count: int
    stability_rate: float
    avg_change_percent: float


class MarketSummary(Struct, frozen=True):
    tickers: int
    avg_spread: float
    max_spread: float
    venue_coverage: Dict[str, int]


def decision_stats(decisions: Sequence[AllocationDecision]) -> DecisionStats:
    """Counts per action, total gross profit and non-skip share (percent)."""
    counts = {action: 0 for action in AllocationAction}
    total_gross = 0.0
    for decision in decisions:
        counts[decision.action] += 1
        total_gross += decision.gross_profit

    total = len(decisions)
    entered = total - counts[AllocationAction.SKIP]
    return DecisionStats(
        total=total,
        rate_arbitrage=counts[AllocationAction.ENTER_RATE_ARBITRAGE],
        timing_arbitrage=counts[AllocationAction.ENTER_TIMING_ARBITRAGE],
        both=counts[AllocationAction.ENTER_BOTH],
        skipped=counts[AllocationAction.SKIP],
        total_gross_profit=total_gross,
        success_rate=(entered / total * 100) if total else 0.0,
        avg_gross_profit=(total_gross / total) if total else 0.0,
    )


def stability_stats(results: Sequence[StabilityResult]) -> StabilityStats:
    if not results:
        return StabilityStats(0, 0, 0, 0.0, 0.0)

    stable = sum(1 for r in results if r.is_stable)
    total = len(results)
    return StabilityStats(
        total_checks=total,
        stable_count=stable,
        unstable_count=total - stable,
        stability_rate=stable / total * 100,
        avg_change_percent=sum(r.change_percent for r in results) / total,
    )


def venue_coverage(snapshots: Iterable[Snapshot]) -> Dict[str, int]:
    """Number of tickers quoted per venue, in venue order."""
    coverage = {venue.value: 0 for venue in VenueId}
    for snapshot in snapshots:
        for venue in snapshot.quotes:
            coverage[venue.value] += 1
    return coverage


def market_summary(snapshots: Sequence[Snapshot]) -> MarketSummary:
    spreads = [s.spread for s in snapshots if s.spread is not None]
    return MarketSummary(
        tickers=len(snapshots),
        avg_spread=(sum(spreads) / len(spreads)) if spreads else 0.0,
        max_spread=max(spreads) if spreads else 0.0,
        venue_coverage=venue_coverage(snapshots),
    )
