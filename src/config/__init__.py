"""
Configuration package.

YAML + .env configuration loading into msgspec structs.
"""

from .structs import (
    FundingArbitrageConfig,
    RateArbitrageConfig,
    TimingArbitrageConfig,
    AllocatorConfig,
    MonitoringConfig,
    ProviderConfig,
    AdvisoryConfig,
    EngineConfig,
    VenueFeeConfig,
    SPREADS_TABLE_URL,
)
from .config_manager import load_config, parse_config, substitute_env_vars, resolve_config_path

__all__ = [
    'FundingArbitrageConfig',
    'RateArbitrageConfig',
    'TimingArbitrageConfig',
    'AllocatorConfig',
    'MonitoringConfig',
    'ProviderConfig',
    'AdvisoryConfig',
    'EngineConfig',
    'VenueFeeConfig',
    'SPREADS_TABLE_URL',
    'load_config',
    'parse_config',
    'substitute_env_vars',
    'resolve_config_path',
]
