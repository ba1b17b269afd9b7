"""
Commission Calculator

Fee model of a two-venue position: entry and exit on both legs under one
of two order policies.

    all_taker:               4 x taker
    maker_entry_taker_exit:  2 x maker (entry) + 2 x taker (exit)

Maker rates may be negative (rebates), which lowers or even reverses the
total.
"""

import math
from typing import Optional

from infrastructure.exceptions import ValidationError
from .structs import CommissionBreakdown, OrderPolicy, PolicyComparison, VenueId
from .venues import VenueRegistry


class CommissionCalculator:
    """Quotes commissions against a VenueRegistry."""

    def __init__(self, registry: Optional[VenueRegistry] = None):
        self.registry = registry or VenueRegistry()

    def quote(self, venue_a: VenueId, venue_b: VenueId, notional: float,
              policy: OrderPolicy = OrderPolicy.ALL_TAKER) -> CommissionBreakdown:
        """
        Fee breakdown for opening and closing a position on both venues.

        Raises:
            UnknownVenueError: If either venue has no fee entry
            ValidationError: If notional is negative or not finite
        """
        self._validate_notional(notional)
        fee_a = self.registry.get_fee(venue_a)
        fee_b = self.registry.get_fee(venue_b)

        if policy == OrderPolicy.MAKER_ENTRY_TAKER_EXIT:
            entry_rate_a, entry_rate_b = fee_a.maker_rate, fee_b.maker_rate
        else:
            entry_rate_a, entry_rate_b = fee_a.taker_rate, fee_b.taker_rate

        entry_fee_leg_a = notional * entry_rate_a
        entry_fee_leg_b = notional * entry_rate_b
        exit_fee_leg_a = notional * fee_a.taker_rate
        exit_fee_leg_b = notional * fee_b.taker_rate

        return CommissionBreakdown(
            venue_a=venue_a,
            venue_b=venue_b,
            notional=notional,
            entry_fee_leg_a=entry_fee_leg_a,
            entry_fee_leg_b=entry_fee_leg_b,
            exit_fee_leg_a=exit_fee_leg_a,
            exit_fee_leg_b=exit_fee_leg_b,
            total=entry_fee_leg_a + entry_fee_leg_b + exit_fee_leg_a + exit_fee_leg_b,
            order_policy=OrderPolicy(policy),
        )

    def best_quote(self, venue_a: VenueId, venue_b: VenueId, notional: float) -> CommissionBreakdown:
        """Cheaper of the two policies; all_taker on an exact tie."""
        all_taker = self.quote(venue_a, venue_b, notional, OrderPolicy.ALL_TAKER)
        maker_entry = self.quote(venue_a, venue_b, notional, OrderPolicy.MAKER_ENTRY_TAKER_EXIT)
        return maker_entry if maker_entry.total < all_taker.total else all_taker

    def compare_policies(self, venue_a: VenueId, venue_b: VenueId, notional: float) -> PolicyComparison:
        all_taker = self.quote(venue_a, venue_b, notional, OrderPolicy.ALL_TAKER)
        maker_entry = self.quote(venue_a, venue_b, notional, OrderPolicy.MAKER_ENTRY_TAKER_EXIT)
        return PolicyComparison(
            all_taker=all_taker,
            maker_entry_taker_exit=maker_entry,
            savings=all_taker.total - maker_entry.total,
        )

    @staticmethod
    def expected_profit(divergence_metric: float, notional: float, breakdown: CommissionBreakdown) -> float:
        return divergence_metric * notional - breakdown.total

    @staticmethod
    def describe(breakdown: CommissionBreakdown) -> str:
        """Human readable breakdown for logs."""
        notional = breakdown.notional
        total_pct = (breakdown.total / notional * 100) if notional else 0.0
        return "\n".join([
            f"Commission ({breakdown.order_policy.value}) on ${notional:.2f} per leg:",
            f"  entry {breakdown.venue_a.value}: ${breakdown.entry_fee_leg_a:.4f}",
            f"  entry {breakdown.venue_b.value}: ${breakdown.entry_fee_leg_b:.4f}",
            f"  exit {breakdown.venue_a.value}: ${breakdown.exit_fee_leg_a:.4f}",
            f"  exit {breakdown.venue_b.value}: ${breakdown.exit_fee_leg_b:.4f}",
            f"  total: ${breakdown.total:.4f} ({total_pct:.4f}%)",
        ])

    @staticmethod
    def _validate_notional(notional: float) -> None:
        if not isinstance(notional, (int, float)) or not math.isfinite(notional) or notional < 0:
            raise ValidationError(f"Invalid notional: {notional}", "notional")
