"""
Spreads table parsing.

Raw rows of the spreads table service look like:

    {
        "ticker": "XUSDT",
        "binance": {"fundingRate": -0.004, "nextFundingTime": 1718000000000},
        "bybit": null,
        ...
        "minFundingRate": -0.004, "maxFundingRate": 0.001, "spread": 0.005
    }

Venues without data, without a rate or without a payout time are left out
of the resulting Snapshot.
"""

import math
from typing import Any, Iterable, List, Optional

import msgspec
from msgspec import Struct

from infrastructure.exceptions import ValidationError
from infrastructure.logging import get_logger
from .structs import RateQuote, Snapshot, VenueId

logger = get_logger(__name__)


class VenueFundingData(Struct, rename="camel"):
    funding_rate: Optional[float] = None
    next_funding_time: Optional[float] = None


class SpreadsTableRow(Struct, rename="camel"):
    ticker: str
    binance: Optional[VenueFundingData] = None
    bybit: Optional[VenueFundingData] = None
    bitget: Optional[VenueFundingData] = None
    bingx: Optional[VenueFundingData] = None
    mexc: Optional[VenueFundingData] = None
    bitmex: Optional[VenueFundingData] = None
    okx: Optional[VenueFundingData] = None
    min_funding_rate: Optional[float] = None
    max_funding_rate: Optional[float] = None
    spread: Optional[float] = None


def _finite_or_none(value: Optional[float]) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return value


def parse_snapshot(raw: Any) -> Snapshot:
    """
    Convert one raw spreads table row into a Snapshot.

    Raises:
        ValidationError: If the row does not match the expected shape
    """
    try:
        row = msgspec.convert(raw, SpreadsTableRow, strict=False)
    except msgspec.ValidationError as e:
        raise ValidationError(f"Malformed spreads row: {e}", "row") from e

    ticker = row.ticker.strip()
    if not ticker:
        raise ValidationError("Spreads row has an empty ticker", "ticker")

    quotes = {}
    for venue in VenueId:
        data: Optional[VenueFundingData] = getattr(row, venue.value)
        if data is None or data.funding_rate is None or data.next_funding_time is None:
            continue
        if not math.isfinite(data.funding_rate) or not math.isfinite(data.next_funding_time):
            raise ValidationError(f"{ticker}: non-finite value on {venue.value}", venue.value)
        # no scheduled payout on this venue
        if int(data.next_funding_time) <= 0:
            continue
        quotes[venue] = RateQuote(
            venue=venue,
            funding_rate=float(data.funding_rate),
            next_payout_time=int(data.next_funding_time),
        )

    return Snapshot(
        ticker=ticker,
        quotes=quotes,
        min_rate=_finite_or_none(row.min_funding_rate),
        max_rate=_finite_or_none(row.max_funding_rate),
        spread=_finite_or_none(row.spread),
    )


def parse_snapshots(rows: Iterable[Any]) -> List[Snapshot]:
    """Parse all rows; malformed rows are skipped with a warning."""
    snapshots = []
    skipped = 0
    for raw in rows:
        try:
            snapshots.append(parse_snapshot(raw))
        except ValidationError as e:
            skipped += 1
            logger.warning("Skipping malformed spreads row", error=e.message, field=e.field)

    if skipped:
        logger.warning("Spreads table contained malformed rows", skipped=skipped, parsed=len(snapshots))
    return snapshots
