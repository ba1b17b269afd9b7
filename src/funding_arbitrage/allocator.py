"""
Strategy Allocator

Turns the best candidate of each matcher into a single AllocationDecision.

Policy, in order:
1. No candidates                 -> skip
2. Exactly one candidate         -> enter it
3. Different tickers             -> enter_both (notional doubled, figures summed)
4. Same ticker                   -> higher net profit wins, ties go to rate arbitrage

Net profit = divergence_metric * notional - cheaper of the two commission
policies. Greedy, single tick, capital unconstrained.
"""

from typing import Callable, Optional, Sequence

from config.structs import AllocatorConfig
from infrastructure.exceptions import UnknownVenueError
from infrastructure.logging import get_logger
from utils.time_utils import get_current_timestamp
from .commission import CommissionCalculator
from .structs import (
    AllocationAction, AllocationDecision, AnyOpportunity, CandidateEvaluation,
    RateArbitrageOpportunity, TimingArbitrageOpportunity
)


class StrategyAllocator:
    """Commission-netted choice between the two strategies."""

    def __init__(self, calculator: Optional[CommissionCalculator] = None,
                 config: Optional[AllocatorConfig] = None,
                 clock: Callable[[], int] = get_current_timestamp):
        self.calculator = calculator or CommissionCalculator()
        self.config = config or AllocatorConfig()
        self._clock = clock
        self.logger = get_logger(__name__)

    @property
    def notional(self) -> float:
        return self.config.notional_per_leg

    def evaluate(self, opportunity: AnyOpportunity) -> CandidateEvaluation:
        """
        Net profit of one candidate at the configured notional.

        Raises:
            UnknownVenueError: If a leg's venue cannot be quoted
        """
        commission = self.calculator.best_quote(opportunity.leg_a, opportunity.leg_b, self.notional)
        gross = opportunity.divergence_metric * self.notional
        return CandidateEvaluation(
            opportunity=opportunity,
            gross_profit=gross,
            commission=commission,
            net_profit=gross - commission.total,
        )

    def _try_evaluate(self, opportunity: Optional[AnyOpportunity]) -> Optional[CandidateEvaluation]:
        if opportunity is None:
            return None
        try:
            return self.evaluate(opportunity)
        except UnknownVenueError as e:
            self.logger.warning("Dropping candidate without fee data",
                                ticker=opportunity.ticker,
                                strategy=opportunity.strategy_kind.value,
                                venue=e.venue)
            return None

    def decide(self, best_rate: Optional[RateArbitrageOpportunity],
               best_timing: Optional[TimingArbitrageOpportunity]) -> AllocationDecision:
        rate_eval = self._try_evaluate(best_rate)
        timing_eval = self._try_evaluate(best_timing)

        if rate_eval is None and timing_eval is None:
            return self._skip("No viable opportunities in either strategy")

        if timing_eval is None:
            return self._single(AllocationAction.ENTER_RATE_ARBITRAGE, rate_eval,
                                f"Only rate arbitrage available: {rate_eval.opportunity.ticker}, "
                                f"net ${rate_eval.net_profit:.4f}")

        if rate_eval is None:
            return self._single(AllocationAction.ENTER_TIMING_ARBITRAGE, timing_eval,
                                f"Only timing arbitrage available: {timing_eval.opportunity.ticker}, "
                                f"net ${timing_eval.net_profit:.4f}")

        rate_ticker = rate_eval.opportunity.ticker
        timing_ticker = timing_eval.opportunity.ticker

        if rate_ticker != timing_ticker:
            return AllocationDecision(
                action=AllocationAction.ENTER_BOTH,
                chosen_opportunities=(rate_eval.opportunity, timing_eval.opportunity),
                reason=(f"Different tickers: {rate_ticker} (net ${rate_eval.net_profit:.4f}) "
                        f"and {timing_ticker} (net ${timing_eval.net_profit:.4f})"),
                gross_profit=rate_eval.gross_profit + timing_eval.gross_profit,
                total_commission=rate_eval.commission.total + timing_eval.commission.total,
                net_profit=rate_eval.net_profit + timing_eval.net_profit,
                notional_per_leg=self.notional * 2,
                decided_at=self._clock(),
                evaluations=(rate_eval, timing_eval),
            )

        if rate_eval.net_profit >= timing_eval.net_profit:
            return self._single(AllocationAction.ENTER_RATE_ARBITRAGE, rate_eval,
                                f"Rate arbitrage more profitable for {rate_ticker}: "
                                f"net ${rate_eval.net_profit:.4f} vs ${timing_eval.net_profit:.4f}",
                                evaluations=(rate_eval, timing_eval))

        return self._single(AllocationAction.ENTER_TIMING_ARBITRAGE, timing_eval,
                            f"Timing arbitrage more profitable for {timing_ticker}: "
                            f"net ${timing_eval.net_profit:.4f} vs ${rate_eval.net_profit:.4f}",
                            evaluations=(rate_eval, timing_eval))

    def analyze_and_decide(self, rate_candidates: Sequence[RateArbitrageOpportunity],
                           timing_candidates: Sequence[TimingArbitrageOpportunity]) -> AllocationDecision:
        """Log the ranked candidates, then decide on the head of each list."""
        self._log_candidates("Rate arbitrage", rate_candidates)
        self._log_candidates("Timing arbitrage", timing_candidates)

        decision = self.decide(
            rate_candidates[0] if rate_candidates else None,
            timing_candidates[0] if timing_candidates else None,
        )

        self.logger.info("Allocation decision",
                         action=decision.action.value,
                         reason=decision.reason,
                         notional_per_leg=decision.notional_per_leg,
                         gross_profit=round(decision.gross_profit, 4),
                         commission=round(decision.total_commission, 4),
                         net_profit=round(decision.net_profit, 4),
                         chosen=len(decision.chosen_opportunities))
        return decision

    def _log_candidates(self, label: str, candidates: Sequence[AnyOpportunity]) -> None:
        if not candidates:
            self.logger.info(f"{label}: no opportunities found")
            return

        self.logger.info(f"{label}: {len(candidates)} opportunities found")
        for rank, opp in enumerate(candidates[:self.config.log_top_candidates], start=1):
            if isinstance(opp, RateArbitrageOpportunity):
                self.logger.info(
                    f"  {rank}. {opp.ticker}: long {opp.long_venue.value} ({opp.long_rate * 100:.4f}%) / "
                    f"short {opp.short_venue.value} ({opp.short_rate * 100:.4f}%) = "
                    f"{opp.spread * 100:.4f}% spread, payout in {opp.minutes_to_payout:.1f}m")
            else:
                self.logger.info(
                    f"  {rank}. {opp.ticker}: {opp.first_venue.value} (|{abs(opp.first_rate) * 100:.4f}%|) -> "
                    f"{opp.second_venue.value} (|{abs(opp.second_rate) * 100:.4f}%|), "
                    f"potential {opp.divergence_metric * 100:.4f}%, first payout in {opp.minutes_to_payout:.1f}m")

    def _single(self, action: AllocationAction, evaluation: CandidateEvaluation, reason: str,
                evaluations: Optional[tuple] = None) -> AllocationDecision:
        return AllocationDecision(
            action=action,
            chosen_opportunities=(evaluation.opportunity,),
            reason=reason,
            gross_profit=evaluation.gross_profit,
            total_commission=evaluation.commission.total,
            net_profit=evaluation.net_profit,
            notional_per_leg=self.notional,
            decided_at=self._clock(),
            evaluations=evaluations or (evaluation,),
        )

    def _skip(self, reason: str) -> AllocationDecision:
        return AllocationDecision(
            action=AllocationAction.SKIP,
            chosen_opportunities=(),
            reason=reason,
            gross_profit=0.0,
            total_commission=0.0,
            net_profit=0.0,
            notional_per_leg=self.notional,
            decided_at=self._clock(),
        )
