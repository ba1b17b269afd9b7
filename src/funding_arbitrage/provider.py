"""
Snapshot provider boundary.

The core only depends on SnapshotProvider; SpreadsTableProvider fetches the
spreads table over HTTP. Failures surface as ProviderError and are never
retried here: the caller decides what a failed tick means.
"""

from typing import List, Optional, Protocol, runtime_checkable

from config.structs import ProviderConfig
from infrastructure.exceptions import ProviderError, RestClientError
from infrastructure.logging import get_logger, LoggingTimer
from infrastructure.networking import RestClient, RestConfig
from .snapshot_parser import parse_snapshots
from .structs import Snapshot


@runtime_checkable
class SnapshotProvider(Protocol):
    async def fetch_snapshots(self) -> List[Snapshot]:
        """Current snapshot of every ticker; raises ProviderError."""
        ...

    async def close(self) -> None:
        ...


class SpreadsTableProvider:
    """Fetches cross-venue funding rates from the spreads table service."""

    def __init__(self, config: Optional[ProviderConfig] = None, rest_client: Optional[RestClient] = None):
        self.config = config or ProviderConfig()
        self.logger = get_logger(__name__)
        self._client = rest_client or RestClient(
            self.config.url,
            RestConfig(
                timeout=self.config.request_timeout,
                connect_timeout=self.config.connect_timeout,
                max_retries=0,
                headers={'User-Agent': 'funding-arbitrage/1.0'},
            )
        )

    async def fetch_snapshots(self) -> List[Snapshot]:
        try:
            with LoggingTimer(self.logger, "spreads_fetch"):
                payload = await self._client.get()
        except RestClientError as e:
            raise ProviderError(f"Failed to fetch spreads table: {e.message}", e.status_code) from e

        if not isinstance(payload, list):
            raise ProviderError(f"Unexpected spreads table payload: {type(payload).__name__}")

        snapshots = parse_snapshots(payload)
        self.logger.info("Spreads table fetched", rows=len(payload), snapshots=len(snapshots))
        return snapshots

    async def close(self) -> None:
        await self._client.close()
