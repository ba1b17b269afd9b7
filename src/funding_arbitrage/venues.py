"""
Venue Registry

Static maker/taker fee table of the known venues. mexc is scanned by the
matchers but has no default fee entry, so it cannot be quoted unless fees
for it are configured.
"""

from typing import Dict, List, Mapping, Optional

from config.structs import VenueFeeConfig
from infrastructure.exceptions import ConfigurationError, UnknownVenueError
from .structs import VenueFee, VenueId

DEFAULT_VENUE_FEES: Dict[VenueId, VenueFee] = {
    VenueId.BINANCE: VenueFee(VenueId.BINANCE, maker_rate=0.0002, taker_rate=0.0004),
    VenueId.BYBIT: VenueFee(VenueId.BYBIT, maker_rate=0.0002, taker_rate=0.00055),
    VenueId.BITGET: VenueFee(VenueId.BITGET, maker_rate=0.0002, taker_rate=0.0006),
    VenueId.BINGX: VenueFee(VenueId.BINGX, maker_rate=0.0002, taker_rate=0.0005),
    VenueId.BITMEX: VenueFee(VenueId.BITMEX, maker_rate=-0.0001, taker_rate=0.00075),
    VenueId.OKX: VenueFee(VenueId.OKX, maker_rate=0.0002, taker_rate=0.0005),
}


def parse_venue(name) -> VenueId:
    """Resolve a venue name (case-insensitive) or VenueId."""
    if isinstance(name, VenueId):
        return name
    try:
        return VenueId(str(name).strip().lower())
    except ValueError:
        raise UnknownVenueError(str(name)) from None


class VenueRegistry:
    """Read-only fee lookup, loaded once at startup."""

    def __init__(self, fees: Optional[Mapping[VenueId, VenueFee]] = None):
        self._fees: Dict[VenueId, VenueFee] = dict(DEFAULT_VENUE_FEES if fees is None else fees)

    @classmethod
    def from_overrides(cls, overrides: Mapping[str, VenueFeeConfig]) -> "VenueRegistry":
        """Default fee table with per-venue overrides from configuration."""
        fees = dict(DEFAULT_VENUE_FEES)
        for name, fee in overrides.items():
            try:
                venue = parse_venue(name)
            except UnknownVenueError:
                raise ConfigurationError(f"Fee override for unknown venue '{name}'", f"venue_fees.{name}") from None
            fees[venue] = VenueFee(venue, maker_rate=fee.maker_rate, taker_rate=fee.taker_rate)
        return cls(fees)

    def get_fee(self, venue: VenueId) -> VenueFee:
        fee = self._fees.get(venue)
        if fee is None:
            raise UnknownVenueError(venue.value if isinstance(venue, VenueId) else str(venue))
        return fee

    def has_fee(self, venue: VenueId) -> bool:
        return venue in self._fees

    def quotable_venues(self) -> List[VenueId]:
        return [venue for venue in VenueId if venue in self._fees]

    @staticmethod
    def known_venues() -> List[VenueId]:
        return list(VenueId)

    def __len__(self) -> int:
        return len(self._fees)
