"""
Reporting boundary.

Non-skip AllocationDecisions and every StabilityResult are handed to a
DecisionReporter. LoggingReporter writes them as audit records, which the
logging router sends to the file backend.
"""

from typing import Protocol, runtime_checkable

from infrastructure.logging import get_logger
from .structs import AllocationDecision, StabilityResult


@runtime_checkable
class DecisionReporter(Protocol):
    async def report_decision(self, decision: AllocationDecision) -> None:
        ...

    async def report_stability(self, result: StabilityResult) -> None:
        ...


class LoggingReporter:
    """DecisionReporter writing audit log records."""

    def __init__(self, logger_name: str = "funding_arbitrage.reports"):
        self.logger = get_logger(logger_name)

    async def report_decision(self, decision: AllocationDecision) -> None:
        for opportunity in decision.chosen_opportunities:
            self.logger.audit("decision",
                              action=decision.action.value,
                              ticker=opportunity.ticker,
                              strategy=opportunity.strategy_kind.value,
                              leg_a=opportunity.leg_a.value,
                              leg_b=opportunity.leg_b.value,
                              leg_a_rate=opportunity.leg_a_rate,
                              leg_b_rate=opportunity.leg_b_rate,
                              divergence=opportunity.divergence_metric,
                              minutes_to_payout=round(opportunity.minutes_to_payout, 2),
                              gross_profit=round(decision.gross_profit, 4),
                              commission=round(decision.total_commission, 4),
                              net_profit=round(decision.net_profit, 4),
                              notional_per_leg=decision.notional_per_leg,
                              decided_at=decision.decided_at)

    async def report_stability(self, result: StabilityResult) -> None:
        self.logger.audit("stability",
                          check_id=result.check_id,
                          ticker=result.ticker,
                          venue=result.venue.value,
                          strategy=result.strategy_kind.value,
                          original_rate=result.original_rate,
                          current_rate=result.current_rate,
                          change_percent=round(result.change_percent, 2),
                          stable=result.is_stable,
                          minutes_before_payout=round(result.minutes_before_payout, 2),
                          checked_at=result.checked_at)
