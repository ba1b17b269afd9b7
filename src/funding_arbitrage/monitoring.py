"""
Stability Monitoring Scheduler

Arms one deferred check per monitored leg of an accepted opportunity. The
check fires shortly before payout, re-reads the rate from a fresh snapshot
and classifies it as stable or drifted.

Check lifecycle:

    Armed --fire--> Fired
    Armed --cancel / too late / stale data--> Expired

All check mutations happen on the owning event loop: arm/cancel are plain
synchronous calls and firing runs as a task on the same loop, so no lock is
needed. A check whose fire callback has started can no longer be cancelled.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Awaitable, Callable, Dict, List, Optional, Set

from msgspec import Struct

from config.structs import MonitoringConfig
from infrastructure.exceptions import ProviderError, StaleCheckError
from infrastructure.logging import get_logger
from utils.time_utils import get_current_timestamp, minutes_until, format_timestamp
from .provider import SnapshotProvider
from .statistics import StabilityStats, stability_stats
from .structs import (
    CheckState, MonitoredCheck, Opportunity, Snapshot, StabilityResult,
    StrategyKind, VenueId, copy_check
)


class CheckDueEvent(Struct, frozen=True):
    """Delivered to the scheduler when a check's fire time is reached."""
    check_id: str
    ticker: str
    venue: VenueId
    fire_at: int


CheckCallback = Callable[[CheckDueEvent], Awaitable[None]]
ResultCallback = Callable[[StabilityResult], Awaitable[None]]


class CancelToken:
    """Handle returned by DeferredTaskScheduler.schedule()."""

    __slots__ = ('_cancel_fn', '_cancelled', '_fired')

    def __init__(self, cancel_fn: Callable[[], None]):
        self._cancel_fn = cancel_fn
        self._cancelled = False
        self._fired = False

    def cancel(self) -> bool:
        """Prevent the callback from running. False once it has fired."""
        if self._cancelled or self._fired:
            return False
        self._cancelled = True
        self._cancel_fn()
        return True

    def mark_fired(self) -> None:
        self._fired = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired


class DeferredTaskScheduler(ABC):
    """Runs an async callback once at an absolute epoch-ms time."""

    @abstractmethod
    def schedule(self, fire_at_ms: int, event: CheckDueEvent, callback: CheckCallback) -> CancelToken:
        pass


class AsyncioTaskScheduler(DeferredTaskScheduler):
    """DeferredTaskScheduler on the running asyncio loop (call_later + task)."""

    def __init__(self, clock: Callable[[], int] = get_current_timestamp):
        self._clock = clock
        self._tasks: Set[asyncio.Task] = set()

    def schedule(self, fire_at_ms: int, event: CheckDueEvent, callback: CheckCallback) -> CancelToken:
        loop = asyncio.get_running_loop()
        delay = max(0.0, (fire_at_ms - self._clock()) / 1000.0)
        token: Optional[CancelToken] = None

        def _fire() -> None:
            token.mark_fired()
            task = loop.create_task(callback(event), name=f"stability_check.{event.check_id}")
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        handle = loop.call_later(delay, _fire)
        token = CancelToken(handle.cancel)
        return token

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def wait_idle(self) -> None:
        """Wait for fire callbacks that are already running."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class MonitoringScheduler:
    """
    Owner of all monitored checks and the stability result history.

    Args:
        provider: Source of fresh snapshots at fire time
        config: Lead time, stability threshold and retention settings
        task_scheduler: Deferred execution backend (asyncio by default)
        clock: Epoch-ms clock
        on_result: Optional async callback receiving every StabilityResult
    """

    def __init__(self, provider: SnapshotProvider,
                 config: Optional[MonitoringConfig] = None,
                 task_scheduler: Optional[DeferredTaskScheduler] = None,
                 clock: Callable[[], int] = get_current_timestamp,
                 on_result: Optional[ResultCallback] = None):
        self.provider = provider
        self.config = config or MonitoringConfig()
        self._clock = clock
        self._task_scheduler = task_scheduler or AsyncioTaskScheduler(clock)
        self._on_result = on_result
        self.logger = get_logger(__name__)

        self._active: Dict[str, MonitoredCheck] = {}
        self._tokens: Dict[str, CancelToken] = {}
        self._firing: Set[str] = set()
        self._retired: "OrderedDict[str, MonitoredCheck]" = OrderedDict()
        self._history: List[StabilityResult] = []
        self._seq = 0

    def arm(self, ticker: str, venue: VenueId, original_rate: float,
            next_payout_time: int, strategy_kind: StrategyKind) -> str:
        """
        Arm a one-shot stability check firing lead_ms before payout.

        If the fire time has already passed the check is created Expired and
        nothing is scheduled; the id is still returned.
        """
        now = self._clock()
        self._seq += 1
        check_id = f"{ticker}_{venue.value}_{now}_{self._seq}"
        fire_at = next_payout_time - self.config.lead_ms

        check = MonitoredCheck(
            id=check_id,
            ticker=ticker,
            venue=venue,
            original_rate=original_rate,
            next_payout_time=next_payout_time,
            armed_at=now,
            fire_at=fire_at,
            strategy_kind=strategy_kind,
        )

        if fire_at <= now:
            check.state = CheckState.EXPIRED
            self._retire(check)
            self.logger.warning("Too late to monitor, payout is within the check lead time",
                                check_id=check_id, ticker=ticker, venue=venue.value,
                                minutes_to_payout=round(minutes_until(next_payout_time, now), 2))
            return check_id

        self._active[check_id] = check
        event = CheckDueEvent(check_id=check_id, ticker=ticker, venue=venue, fire_at=fire_at)
        self._tokens[check_id] = self._task_scheduler.schedule(fire_at, event, self._on_check_due)

        self.logger.info("Stability check armed",
                         check_id=check_id, ticker=ticker, venue=venue.value,
                         strategy=strategy_kind.value,
                         original_rate_pct=round(original_rate * 100, 4),
                         fires_in_min=round(minutes_until(fire_at, now), 1),
                         payout_at=format_timestamp(next_payout_time))
        return check_id

    def arm_opportunity(self, opportunity: Opportunity) -> List[str]:
        """Arm a check per monitored leg: both for rate, first for timing arbitrage."""
        return [
            self.arm(opportunity.ticker, venue, rate, opportunity.next_payout_time, opportunity.strategy_kind)
            for venue, rate in opportunity.monitored_legs()
        ]

    def cancel(self, check_id: str) -> bool:
        """Expire an armed check. No-op for fired, expired, firing or unknown checks."""
        check = self._active.get(check_id)
        if check is None or check.state != CheckState.ARMED or check_id in self._firing:
            return False

        token = self._tokens.pop(check_id, None)
        if token is not None and not token.cancel():
            # Timer already went off; the fire callback owns the check now
            return False

        self._expire(check)
        self.logger.info("Stability check cancelled", check_id=check_id)
        return True

    def cancel_all(self) -> int:
        cancelled = sum(1 for check_id in list(self._active) if self.cancel(check_id))
        if cancelled:
            self.logger.info("Cancelled armed stability checks", count=cancelled)
        return cancelled

    async def _on_check_due(self, event: CheckDueEvent) -> None:
        check = self._active.get(event.check_id)
        if check is None or check.state != CheckState.ARMED:
            return

        self._tokens.pop(check.id, None)
        self._firing.add(check.id)
        try:
            result = await self._run_check(check)
        except Exception as e:
            self.logger.error("Stability check failed",
                              check_id=check.id, ticker=check.ticker, venue=check.venue.value,
                              error=str(e), error_type=type(e).__name__)
            if check.state == CheckState.ARMED:
                self._expire(check)
            return
        finally:
            self._firing.discard(check.id)

        if result is not None and self._on_result is not None:
            try:
                await self._on_result(result)
            except Exception as e:
                self.logger.error("Stability result reporting failed", check_id=check.id, error=str(e))

    async def _run_check(self, check: MonitoredCheck) -> Optional[StabilityResult]:
        try:
            snapshots = await self.provider.fetch_snapshots()
        except ProviderError as e:
            self.logger.error("Stability check could not fetch fresh data",
                              check_id=check.id, ticker=check.ticker, venue=check.venue.value,
                              error=str(e))
            self._expire(check)
            return None

        try:
            current_rate = self._locate_rate(snapshots, check)
        except StaleCheckError as e:
            self.logger.error("Stability check discarded", check_id=check.id, error=str(e))
            self._expire(check)
            return None

        result = self._compare(check, current_rate)
        check.state = CheckState.FIRED
        self._active.pop(check.id, None)
        self._retire(check)
        self._record(result)

        self.logger.audit("Stability check result",
                          check_id=check.id, ticker=check.ticker, venue=check.venue.value,
                          original_rate_pct=round(result.original_rate * 100, 4),
                          current_rate_pct=round(result.current_rate * 100, 4),
                          change_percent=round(result.change_percent, 2),
                          stable=result.is_stable,
                          minutes_before_payout=round(result.minutes_before_payout, 1))
        return result

    @staticmethod
    def _locate_rate(snapshots: List[Snapshot], check: MonitoredCheck) -> float:
        for snapshot in snapshots:
            if snapshot.ticker == check.ticker:
                quote = snapshot.get_quote(check.venue)
                if quote is None:
                    break
                return quote.funding_rate
        raise StaleCheckError(check.id, check.ticker, check.venue.value)

    def _compare(self, check: MonitoredCheck, current_rate: float) -> StabilityResult:
        now = self._clock()
        if check.original_rate == 0:
            change_percent = 0.0 if current_rate == 0 else float('inf')
        else:
            change_percent = abs(current_rate - check.original_rate) / abs(check.original_rate) * 100

        return StabilityResult(
            check_id=check.id,
            ticker=check.ticker,
            venue=check.venue,
            original_rate=check.original_rate,
            current_rate=current_rate,
            change_percent=change_percent,
            is_stable=change_percent <= self.config.stability_threshold_percent,
            minutes_before_payout=minutes_until(check.next_payout_time, now),
            checked_at=now,
            next_payout_time=check.next_payout_time,
            strategy_kind=check.strategy_kind,
        )

    def _expire(self, check: MonitoredCheck) -> None:
        check.state = CheckState.EXPIRED
        self._active.pop(check.id, None)
        self._tokens.pop(check.id, None)
        self._retire(check)

    def _retire(self, check: MonitoredCheck) -> None:
        self._retired[check.id] = check
        while len(self._retired) > self.config.retired_retention:
            self._retired.popitem(last=False)

    def _record(self, result: StabilityResult) -> None:
        self._history.append(result)
        self.cleanup_history()

    def cleanup_history(self) -> int:
        """Trim the result history to history_cap; returns the number removed."""
        excess = len(self._history) - self.config.history_cap
        if excess <= 0:
            return 0
        del self._history[:excess]
        return excess

    def get_check(self, check_id: str) -> Optional[MonitoredCheck]:
        """Copy of an active or recently retired check."""
        check = self._active.get(check_id) or self._retired.get(check_id)
        return copy_check(check) if check is not None else None

    def active_checks(self) -> List[MonitoredCheck]:
        return [copy_check(check) for check in self._active.values()]

    def history(self) -> List[StabilityResult]:
        """Stability results, oldest first."""
        return list(self._history)

    def stability_stats(self) -> StabilityStats:
        return stability_stats(self._history)
