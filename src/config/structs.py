from typing import Optional, Dict

import msgspec
from msgspec import Struct

from infrastructure.logging.structs import LoggingConfig

SPREADS_TABLE_URL = "https://funding-spread-be-production.up.railway.app/api/funding/spreadsTable"


class RateArbitrageConfig(Struct, frozen=True):
    """
    Thresholds of the rate-arbitrage matcher (synchronized payouts).

    Attributes:
        min_rate_divergence: Minimum |rateA - rateB| for a pair to qualify
        max_payout_skew_minutes: Maximum distance between the two payout times
        min_lead_minutes: Earliest payout must be at least this far away
        max_lead_minutes: Earliest payout must be at most this far away
    """
    min_rate_divergence: float = 0.0015
    max_payout_skew_minutes: float = 5.0
    min_lead_minutes: float = 3.0
    max_lead_minutes: float = 15.0

    def validate(self) -> None:
        if self.min_rate_divergence < 0:
            raise ValueError("min_rate_divergence cannot be negative")
        if self.max_payout_skew_minutes < 0:
            raise ValueError("max_payout_skew_minutes cannot be negative")
        if self.min_lead_minutes > self.max_lead_minutes:
            raise ValueError("min_lead_minutes must not exceed max_lead_minutes")


class TimingArbitrageConfig(Struct, frozen=True):
    """
    Thresholds of the timing-arbitrage matcher (staggered payouts).

    Attributes:
        min_payout_skew_minutes: Minimum distance between the two payout times
        min_abs_rate: Minimum |rate| required on each leg independently
        min_lead_minutes: Earliest payout must be at least this far away
        max_lead_minutes: Earliest payout must be at most this far away
    """
    min_payout_skew_minutes: float = 30.0
    min_abs_rate: float = 0.002
    min_lead_minutes: float = 4.0
    max_lead_minutes: float = 15.0

    def validate(self) -> None:
        if self.min_payout_skew_minutes < 0:
            raise ValueError("min_payout_skew_minutes cannot be negative")
        if self.min_abs_rate < 0:
            raise ValueError("min_abs_rate cannot be negative")
        if self.min_lead_minutes > self.max_lead_minutes:
            raise ValueError("min_lead_minutes must not exceed max_lead_minutes")


class AllocatorConfig(Struct, frozen=True):
    """
    Allocator settings.

    Attributes:
        notional_per_leg: Position size in USD assumed per leg
        log_top_candidates: Number of ranked candidates logged per strategy
    """
    notional_per_leg: float = 1000.0
    log_top_candidates: int = 3

    def validate(self) -> None:
        if self.notional_per_leg <= 0:
            raise ValueError("notional_per_leg must be positive")
        if self.log_top_candidates < 0:
            raise ValueError("log_top_candidates cannot be negative")


class MonitoringConfig(Struct, frozen=True):
    """
    Stability monitoring settings.

    Attributes:
        stability_threshold_percent: Maximum rate change (percent) still considered stable
        lead_ms: How long before payout the stability check fires
        history_cap: Number of most recent stability results kept
        retired_retention: Number of fired/expired checks kept for lookup
    """
    stability_threshold_percent: float = 10.0
    lead_ms: int = 60_000
    history_cap: int = 50
    retired_retention: int = 200

    def validate(self) -> None:
        if self.stability_threshold_percent < 0:
            raise ValueError("stability_threshold_percent cannot be negative")
        if self.lead_ms < 0:
            raise ValueError("lead_ms cannot be negative")
        if self.history_cap <= 0:
            raise ValueError("history_cap must be positive")
        if self.retired_retention < 0:
            raise ValueError("retired_retention cannot be negative")


class ProviderConfig(Struct, frozen=True):
    """
    Snapshot provider (spreads table service) settings.

    Attributes:
        url: Spreads table endpoint
        request_timeout: HTTP timeout in seconds
        connect_timeout: Connection timeout in seconds
    """
    url: str = SPREADS_TABLE_URL
    request_timeout: float = 10.0
    connect_timeout: float = 5.0

    def validate(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid provider url: {self.url}")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be positive")


class AdvisoryConfig(Struct, frozen=True):
    """Settings of the advisory upcoming-spreads scan (logging only)."""
    min_spread: float = 0.0015
    horizon_minutes: float = 60.0
    flat_commission_rate: float = 0.001
    top: int = 5

    def validate(self) -> None:
        if self.horizon_minutes <= 0:
            raise ValueError("horizon_minutes must be positive")
        if self.flat_commission_rate < 0:
            raise ValueError("flat_commission_rate cannot be negative")


class EngineConfig(Struct, frozen=True):
    """
    Tick orchestration settings.

    Attributes:
        analysis_interval_seconds: Cadence of analysis ticks
        statistics_interval_seconds: Cadence of statistics reports
        decision_history_cap: Number of most recent decisions kept
    """
    analysis_interval_seconds: float = 120.0
    statistics_interval_seconds: float = 600.0
    decision_history_cap: int = 100

    def validate(self) -> None:
        if self.analysis_interval_seconds <= 0:
            raise ValueError("analysis_interval_seconds must be positive")
        if self.statistics_interval_seconds <= 0:
            raise ValueError("statistics_interval_seconds must be positive")
        if self.decision_history_cap <= 0:
            raise ValueError("decision_history_cap must be positive")


class VenueFeeConfig(Struct, frozen=True):
    """Maker/taker fee override for one venue (maker may be negative)."""
    maker_rate: float
    taker_rate: float


class FundingArbitrageConfig(Struct, frozen=True):
    """
    Complete application configuration.

    Every section falls back to its documented defaults when absent from
    config.yaml.
    """
    environment: str = "dev"
    rate_arbitrage: RateArbitrageConfig = msgspec.field(default_factory=RateArbitrageConfig)
    timing_arbitrage: TimingArbitrageConfig = msgspec.field(default_factory=TimingArbitrageConfig)
    allocator: AllocatorConfig = msgspec.field(default_factory=AllocatorConfig)
    monitoring: MonitoringConfig = msgspec.field(default_factory=MonitoringConfig)
    provider: ProviderConfig = msgspec.field(default_factory=ProviderConfig)
    advisory: AdvisoryConfig = msgspec.field(default_factory=AdvisoryConfig)
    engine: EngineConfig = msgspec.field(default_factory=EngineConfig)
    venue_fees: Dict[str, VenueFeeConfig] = msgspec.field(default_factory=dict)
    logging: Optional[LoggingConfig] = None

    def validate(self) -> None:
        if self.environment not in ("dev", "prod", "test"):
            raise ValueError(f"Invalid environment: {self.environment}")
        self.rate_arbitrage.validate()
        self.timing_arbitrage.validate()
        self.allocator.validate()
        self.monitoring.validate()
        self.provider.validate()
        self.advisory.validate()
        self.engine.validate()
        if self.logging:
            self.logging.validate()
