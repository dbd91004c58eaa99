"""Network reachability probe."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

_logger = logging.getLogger(__name__)


class ReachabilityProbe(Protocol):
    """Interface for the "is connected" signal."""

    async def is_connected(self) -> bool:
        """Return True when the remote service is likely reachable."""


@dataclass
class HttpxReachabilityProbe(ReachabilityProbe):
    """Probe connectivity with a lightweight HEAD request."""

    url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 3.0

    @classmethod
    def create(cls, url: str, timeout_seconds: float = 3.0) -> "HttpxReachabilityProbe":
        """Create a probe with a managed httpx session."""
        return cls(
            url=url,
            http_client=httpx.AsyncClient(),
            timeout_seconds=timeout_seconds,
        )

    async def is_connected(self) -> bool:
        """Any HTTP response counts as reachable; transport errors do not."""
        try:
            await self.http_client.head(self.url, timeout=self.timeout_seconds)
        except httpx.HTTPError as exc:
            _logger.info("Reachability probe failed: %s", exc)
            return False
        return True

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
