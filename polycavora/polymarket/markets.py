"""Market metadata REST client."""

from __future__ import annotations

from types import TracebackType
from typing import Any

import httpx
import structlog

from polycavora.core.config import RetryConfig
from polycavora.core.types import Market
from polycavora.polymarket.exceptions import HttpError, PolyCavoraError
from polycavora.polymarket.retry import with_retry

logger = structlog.stdlib.get_logger()


def _error_message(response: httpx.Response) -> str:
    """Pull a human-readable message out of an error response body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            if body.get(key):
                return str(body[key])
    text = response.text.strip()
    if text:
        return text[:200]
    return response.reason_phrase or f"HTTP {response.status_code}"


class MarketDataClient:
    """Fetches markets from the metadata REST API.

    Every request goes through :func:`with_retry`; network failures surface
    as ``HttpError(status=0)``.

    Usage::

        async with MarketDataClient("https://gamma-api.polymarket.com") as md:
            markets = await md.get_markets()
    """

    def __init__(
        self,
        base_url: str,
        retry: RetryConfig | None = None,
        timeout_secs: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        log: Any = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._retry = retry or RetryConfig()
        self._timeout_secs = timeout_secs
        self._transport = transport
        self._log = log or logger
        self._http: httpx.AsyncClient | None = None

    @property
    def http(self) -> httpx.AsyncClient:
        """The underlying client, created on first use."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout_secs),
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        """Close the httpx async client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> MarketDataClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Single GET attempt, mapping failures onto HttpError."""
        url = f"{self.base_url}{path}"
        try:
            response = await self.http.get(url, params=params)
        except httpx.HTTPError as exc:
            raise HttpError(0, f"Request to {url} failed: {exc}", cause=exc) from exc

        if not response.is_success:
            raise HttpError(response.status_code, _error_message(response))

        try:
            return response.json()
        except ValueError as exc:
            raise PolyCavoraError(
                f"Invalid JSON from {url}", code="PARSE_ERROR", cause=exc
            ) from exc

    async def get_markets(self) -> list[Market]:
        """Fetch all active markets."""

        async def _fetch() -> Any:
            return await self._get_json("/markets", {"active": "true", "closed": "false"})

        body = await with_retry(_fetch, self._retry, self._log)
        if not isinstance(body, list):
            raise PolyCavoraError("Expected a list of markets", code="PARSE_ERROR")
        markets = [Market.from_api(m) for m in body if isinstance(m, dict)]
        self._log.debug("markets_fetched", count=len(markets))
        return markets

    async def get_market(self, market_id: str) -> Market:
        """Fetch a single market by ID."""

        async def _fetch() -> Any:
            return await self._get_json(f"/markets/{market_id}")

        body = await with_retry(_fetch, self._retry, self._log)
        if not isinstance(body, dict):
            raise PolyCavoraError(
                f"Expected a market object for {market_id}", code="PARSE_ERROR"
            )
        return Market.from_api(body)
