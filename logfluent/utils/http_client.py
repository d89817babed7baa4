"""
LogFluent Insight - HTTP Service Client
=======================================

Async HTTP client shared by the Supabase store and the Gemini client.
Propagates the request correlation ID on every outgoing call.

Usage:
    from logfluent.utils.http_client import ServiceClient

    async with ServiceClient("https://project.supabase.co") as client:
        response = await client.get("/rest/v1/logs", params={"id": "eq.123"})
"""

import httpx
from typing import Any, Optional
from dataclasses import dataclass, field

from logfluent.utils.logging import get_logger, get_correlation_id

logger = get_logger(__name__)


@dataclass
class ServiceClientConfig:
    """Configuration for the HTTP service client."""
    timeout_seconds: float = 30.0
    default_headers: dict[str, str] = field(default_factory=dict)


class ServiceClient:
    """
    Async HTTP client bound to one base URL.

    The underlying ``httpx.AsyncClient`` is created on first use and
    reused until ``close()``. A custom transport can be injected, which
    is how tests stub the remote side.
    """

    def __init__(
        self,
        base_url: str,
        config: Optional[ServiceClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the service client.

        Args:
            base_url: Base URL of the target service
            config: Optional configuration overrides
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``)
        """
        self.base_url = base_url.rstrip("/")
        self.config = config or ServiceClientConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.config.timeout_seconds),
                follow_redirects=True,
                transport=self._transport
            )
        return self._client

    def _build_headers(self, extra_headers: Optional[dict] = None) -> dict:
        """Build request headers with correlation ID."""
        headers = {
            "Accept": "application/json",
            "User-Agent": "LogFluent-ServiceClient/1.0",
        }
        headers.update(self.config.default_headers)

        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        if extra_headers:
            headers.update(extra_headers)

        return headers

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Optional[Any] = None,
        content: Optional[bytes] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        """
        Send a request and return the raw response.

        Status codes are not checked here; callers decide what counts
        as failure.
        """
        client = await self._get_client()

        logger.debug(
            f"{method} {self.base_url}{path}",
            extra={"params": params}
        )

        response = await client.request(
            method,
            path,
            params=params,
            json=json,
            content=content,
            headers=self._build_headers(headers)
        )

        logger.debug(
            f"Response: {response.status_code}",
            extra={"path": path, "status": response.status_code}
        )

        return response

    async def get(
        self,
        path: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        """Make a GET request."""
        return await self.request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        data: Optional[Any] = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        """Make a POST request with a JSON body."""
        return await self.request("POST", path, params=params, json=data, headers=headers)

    async def patch(
        self,
        path: str,
        data: Optional[Any] = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None
    ) -> httpx.Response:
        """Make a PATCH request with a JSON body."""
        return await self.request("PATCH", path, params=params, json=data, headers=headers)

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ServiceClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
