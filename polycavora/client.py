"""The POLYCAVORA SDK façade: market data, live orderbooks, trading and relayer."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from types import TracebackType
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from polycavora.core.config import RelayerConfig, SDKConfig, TradingConfig, get_settings
from polycavora.core.logging import make_sdk_logger
from polycavora.core.types import Market
from polycavora.polymarket.exceptions import ConfigurationError
from polycavora.polymarket.markets import MarketDataClient
from polycavora.polymarket.relayer import RelayerClient, create_relayer_client
from polycavora.polymarket.trading import TradingClient, create_trading_client
from polycavora.polymarket.ws import (
    ErrorHook,
    LifecycleHook,
    OrderbookCallback,
    OrderbookSubscription,
    subscribe_orderbook,
)

C = TypeVar("C")
_instance_ids = itertools.count(1)
_EXAMPLE = "{cls}(chain_id=137, backend=BackendAuth(private_key='0x...'))"


class FeatureNamespace(Generic[C]):
    """Gate for an optional feature: ``init()`` fails fast without its config."""

    def __init__(
        self,
        option: str,
        config: BaseModel | None,
        factory: Callable[[Any], C],
        example: str,
        hint: str = "",
    ) -> None:
        self._option = option
        self._config = config
        self._factory = factory
        self._example = example
        self._hint = hint

    @property
    def configured(self) -> bool:
        return self._config is not None

    def init(self) -> C:
        """Return a new client bound to the configuration.

        Raises:
            ConfigurationError: the SDK was built without this option.
        """
        if self._config is None:
            message = (
                f"{self._option.capitalize()} is not configured. Pass '{self._option}' "
                f"to PolyCavoraSDK, e.g. PolyCavoraSDK({self._option}={self._example})"
            )
            if self._hint:
                message = f"{message}. {self._hint}"
            raise ConfigurationError(message)
        return self._factory(self._config)


class PolyCavoraSDK:
    """Main entry point for Polymarket data, streaming, trading and relayer.

    Data and streaming need no credentials. Trading and the relayer are
    opt-in through their config sections and reached via
    ``sdk.trading.init()`` / ``sdk.relayer.init()``.

    Usage::

        async with PolyCavoraSDK(debug=True) as sdk:
            markets = await sdk.get_markets()
            off = sdk.on_orderbook(token_id, print)
            ...
            off()
    """

    def __init__(
        self,
        config: SDKConfig | None = None,
        *,
        meta_base_url: str | None = None,
        ws_base_url: str | None = None,
        debug: bool | None = None,
        trading: TradingConfig | dict[str, Any] | None = None,
        relayer: RelayerConfig | dict[str, Any] | None = None,
    ) -> None:
        base = config or get_settings()
        overrides: dict[str, Any] = {}
        if meta_base_url is not None:
            overrides["meta_base_url"] = meta_base_url
        if ws_base_url is not None:
            overrides["ws_base_url"] = ws_base_url
        if debug is not None:
            overrides["debug"] = debug
        if trading is not None:
            overrides["trading"] = TradingConfig.model_validate(trading)
        if relayer is not None:
            overrides["relayer"] = RelayerConfig.model_validate(relayer)
        self.config = base.model_copy(update=overrides)

        self.meta_base_url = self.config.meta_base_url
        self.ws_base_url = self.config.ws_base_url
        self.log = make_sdk_logger(self.config.debug, sdk_id=next(_instance_ids))

        self._markets = MarketDataClient(
            self.meta_base_url,
            retry=self.config.retry,
            timeout_secs=self.config.http.timeout_secs,
            log=self.log,
        )
        self._subscriptions: list[OrderbookSubscription] = []

        self.trading: FeatureNamespace[TradingClient] = FeatureNamespace(
            "trading",
            self.config.trading,
            lambda cfg: create_trading_client(cfg, log=self.log),
            example=_EXAMPLE.format(cls="TradingConfig"),
        )
        self.relayer: FeatureNamespace[RelayerClient] = FeatureNamespace(
            "relayer",
            self.config.relayer,
            lambda cfg: create_relayer_client(cfg, log=self.log),
            example=_EXAMPLE.format(cls="RelayerConfig"),
            hint="The relayer is for gasless transactions; most users want 'trading'",
        )

        self.log.info(
            "sdk_init",
            meta_base_url=self.meta_base_url,
            ws_base_url=self.ws_base_url,
            trading_enabled=self.trading.configured,
            relayer_enabled=self.relayer.configured,
        )

    # ── Market Data ──────────────────────────────────────────────

    async def get_markets(self) -> list[Market]:
        """Fetch all active markets.

        Raises:
            HttpError: the request failed, after retries for transient errors.
        """
        return await self._markets.get_markets()

    async def get_market(self, market_id: str) -> Market:
        """Fetch a single market by its ID.

        Raises:
            HttpError: the request failed, after retries for transient errors.
        """
        return await self._markets.get_market(market_id)

    # ── Live Orderbook ───────────────────────────────────────────

    def on_orderbook(
        self,
        market_id: str,
        callback: OrderbookCallback,
        on_open: LifecycleHook | None = None,
        on_error: ErrorHook | None = None,
        on_close: LifecycleHook | None = None,
    ) -> OrderbookSubscription:
        """Subscribe to live orderbook updates for a market.

        Returns the subscription; call it to unsubscribe. Errors are
        reported through ``on_error``, never raised. Dropped connections
        are not re-established.
        """
        self._subscriptions = [s for s in self._subscriptions if s.active]
        sub = subscribe_orderbook(
            self.ws_base_url,
            market_id,
            callback,
            on_open=on_open,
            on_error=on_error,
            on_close=on_close,
            ping_interval=self.config.stream.ping_interval_secs,
            log=self.log,
        )
        self._subscriptions.append(sub)
        self.log.debug("ws_subscribed", market_id=market_id)
        return sub

    # ── Lifecycle ────────────────────────────────────────────────

    async def close(self) -> None:
        """Unsubscribe every live orderbook and close the HTTP client."""
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub.unsubscribe()
        for sub in subs:
            await sub.wait_closed()
        await self._markets.close()
        self.log.debug("sdk_closed")

    async def __aenter__(self) -> PolyCavoraSDK:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
