"""
Exception hierarchy.

FundingArbitrageError
├── ConfigurationError
├── ValidationError
├── UnknownVenueError
├── ProviderError
└── StaleCheckError

RestClientError (transport, wrapped into ProviderError at the provider boundary)
├── RestConnectionError
├── RestTimeoutError
└── RestResponseError
"""

from .system import FundingArbitrageError, ConfigurationError
from .funding import ValidationError, UnknownVenueError, ProviderError, StaleCheckError
from .network import RestClientError, RestConnectionError, RestTimeoutError, RestResponseError

__all__ = [
    'FundingArbitrageError',
    'ConfigurationError',
    'ValidationError',
    'UnknownVenueError',
    'ProviderError',
    'StaleCheckError',
    'RestClientError',
    'RestConnectionError',
    'RestTimeoutError',
    'RestResponseError',
]
