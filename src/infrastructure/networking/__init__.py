"""
Networking Infrastructure

- http: async REST client (aiohttp transport, msgspec JSON)
"""

from .http import HTTPMethod, RestConfig, RestClient

__all__ = [
    "HTTPMethod",
    "RestConfig",
    "RestClient",
]
