from typing import Optional


class FundingArbitrageError(Exception):
    """Base exception for the funding arbitrage system."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(FundingArbitrageError):
    """Configuration-specific exception for setup errors."""

    def __init__(self, message: str, setting_name: Optional[str] = None):
        self.setting_name = setting_name
        super().__init__(message)

    def __str__(self):
        if self.setting_name:
            return f"{self.message} (setting: {self.setting_name})"
        return self.message
