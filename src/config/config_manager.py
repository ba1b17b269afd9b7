"""
Configuration Management Module

YAML-based configuration for the funding arbitrage engine.

Key Features:
- YAML configuration with ${VAR} / ${VAR:default} environment substitution
- .env loading via python-dotenv
- msgspec struct conversion with per-section validation
- Documented defaults for every missing section

Usage:
    from config import load_config

    config = load_config()                    # search default locations
    config = load_config("deploy/config.yaml")

    notional = config.allocator.notional_per_leg
    thresholds = config.rate_arbitrage
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import msgspec
import yaml
from dotenv import load_dotenv

from infrastructure.exceptions import ConfigurationError
from .structs import FundingArbitrageConfig

CONFIG_ENV_VAR = "FUNDING_ARB_CONFIG"
CONFIG_FILE_NAME = "config.yaml"

ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')

# Stdlib logger: the HFT logger factory itself may be configured from this module
logger = logging.getLogger(__name__)


def guess_file_paths(file_name: str) -> List[Path]:
    """
    Returns a list of possible file locations to search.
    """
    return [
        Path(__file__).parent.parent.parent / file_name,  # Project root
        Path.cwd() / file_name,                           # Current working directory
    ]


def load_env_file() -> None:
    """Load the first .env found; existing environment variables win."""
    for env_path in guess_file_paths('.env'):
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
            logger.info(f"Loaded environment variables from: {env_path}")
            return
    logger.debug("No .env file found - using system environment variables only")


def substitute_env_vars(content: str) -> str:
    """
    Substitute environment variables in configuration content.

    Supports syntax:
    - ${VAR_NAME} - Required environment variable
    - ${VAR_NAME:default} - Optional with default value

    Raises:
        ConfigurationError: If a required variable is not set
    """
    def replace_var(match):
        var_expr = match.group(1)

        if ':' in var_expr:
            var_name, default_value = var_expr.split(':', 1)
            env_value = os.getenv(var_name.strip())
            return default_value if env_value is None else env_value

        var_name = var_expr.strip()
        env_value = os.getenv(var_name)
        if env_value is None:
            raise ConfigurationError(f"Required environment variable '{var_name}' is not set", var_name)
        return env_value

    return ENV_VAR_PATTERN.sub(replace_var, content)


def resolve_config_path(path: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """
    Find the configuration file.

    Search order: explicit path, FUNDING_ARB_CONFIG, project root, cwd.
    An explicit or env-provided path that does not exist is an error.
    """
    explicit = path or os.getenv(CONFIG_ENV_VAR)
    if explicit:
        config_path = Path(explicit)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}", CONFIG_ENV_VAR)
        return config_path

    for candidate in guess_file_paths(CONFIG_FILE_NAME):
        if candidate.exists():
            return candidate
    return None


def parse_config(data: Dict[str, Any]) -> FundingArbitrageConfig:
    """Convert a raw mapping into a validated FundingArbitrageConfig."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping, got {type(data).__name__}")

    try:
        config = msgspec.convert(data, FundingArbitrageConfig, strict=False)
    except msgspec.ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    try:
        config.validate()
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    return config


def load_config(path: Optional[Union[str, Path]] = None) -> FundingArbitrageConfig:
    """
    Load configuration from YAML with environment substitution.

    A missing configuration file yields all documented defaults.

    Raises:
        ConfigurationError: On unreadable YAML, unset required variables or invalid values
    """
    load_env_file()

    config_path = resolve_config_path(path)
    if config_path is None:
        logger.info("No config.yaml found - using default configuration")
        return parse_config({})

    try:
        raw_content = config_path.read_text(encoding='utf-8')
        config_data = yaml.safe_load(substitute_env_vars(raw_content))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read {config_path}: {e}") from e

    config = parse_config(config_data or {})
    logger.info(f"Configuration loaded from: {config_path} (environment: {config.environment})")
    return config
