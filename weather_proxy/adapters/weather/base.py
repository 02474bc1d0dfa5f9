from abc import ABC, abstractmethod
from typing import Any


class AbstractWeatherFetcher(ABC):
    """Interface for clients that fetch the upstream weather payload."""

    @abstractmethod
    async def fetch(self) -> dict[str, Any]:
        """Fetch the forecast from the configured upstream endpoint.

        Returns:
            dict[str, Any]: Parsed upstream JSON object, unmodified.

        Raises:
            UpstreamTransportError: Upstream unreachable or timed out.
            UpstreamHTTPError: Upstream answered with an error status.
            UpstreamPayloadError: Body is not the expected JSON structure.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the fetcher."""
        return None
