"""
Domain errors raised by the matchers, commission model, provider boundary
and monitoring scheduler.

Propagation:
- ValidationError: fatal to one matcher invocation (one ticker) only
- UnknownVenueError: fatal to one commission quote only
- ProviderError: abandons the whole analysis tick
- StaleCheckError: discards one fired check, no stability result
"""

from typing import Optional

from .system import FundingArbitrageError


class ValidationError(FundingArbitrageError):
    """Malformed snapshot or invalid input value."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class UnknownVenueError(FundingArbitrageError):
    """Venue has no entry in the venue registry."""

    def __init__(self, venue: str):
        self.venue = venue
        super().__init__(f"Unknown venue: {venue}")


class ProviderError(FundingArbitrageError):
    """Snapshot retrieval from the external data service failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class StaleCheckError(FundingArbitrageError):
    """A fired check's ticker/venue is missing from the fresh snapshot."""

    def __init__(self, check_id: str, ticker: str, venue: str):
        self.check_id = check_id
        self.ticker = ticker
        self.venue = venue
        super().__init__(f"Check {check_id}: {ticker} on {venue} not present in fresh snapshot")
