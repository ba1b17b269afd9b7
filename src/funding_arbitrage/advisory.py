"""
Advisory scan of upcoming spreads.

A rough, logging-only view of tickers whose advertised spread is large and
whose payouts are near. It uses the provider's own spread aggregate and a
flat commission estimate instead of the matcher thresholds and venue fee
table, and never feeds the allocator.
"""

from typing import List, Sequence

from msgspec import Struct

from utils.time_utils import minutes_until
from .structs import Snapshot, VenueId


class UpcomingSpread(Struct, frozen=True):
    ticker: str
    long_venue: VenueId
    short_venue: VenueId
    long_rate: float
    short_rate: float
    spread: float
    minutes_to_payout: float
    estimated_net_profit: float


def find_upcoming_spreads(snapshots: Sequence[Snapshot], now_ms: int,
                          min_spread: float = 0.0015,
                          horizon_minutes: float = 60.0,
                          notional: float = 1000.0,
                          flat_commission_rate: float = 0.001) -> List[UpcomingSpread]:
    """
    Tickers with spread >= min_spread and at least two venues paying within
    (0, horizon_minutes], sorted by descending spread.

    Estimated net = spread * notional - flat_commission_rate * notional * 4.
    """
    flat_commission = flat_commission_rate * notional * 4
    upcoming = []

    for snapshot in snapshots:
        if snapshot.spread is None or snapshot.spread < min_spread:
            continue

        quotes = snapshot.ordered_quotes()
        leads = [minutes_until(q.next_payout_time, now_ms) for q in quotes]
        if sum(1 for lead in leads if 0 < lead <= horizon_minutes) < 2:
            continue

        # min/max keep the first quote in venue order on equal rates
        long_quote = min(quotes, key=lambda q: q.funding_rate)
        short_quote = max(quotes, key=lambda q: q.funding_rate)
        if long_quote.venue == short_quote.venue:
            continue

        upcoming.append(UpcomingSpread(
            ticker=snapshot.ticker,
            long_venue=long_quote.venue,
            short_venue=short_quote.venue,
            long_rate=long_quote.funding_rate,
            short_rate=short_quote.funding_rate,
            spread=snapshot.spread,
            minutes_to_payout=minutes_until(
                min(long_quote.next_payout_time, short_quote.next_payout_time), now_ms),
            estimated_net_profit=snapshot.spread * notional - flat_commission,
        ))

    upcoming.sort(key=lambda u: u.spread, reverse=True)
    return upcoming
