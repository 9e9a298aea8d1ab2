"""Async pass-through to the synchronous py-clob-client SDK."""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Any

import structlog
from py_clob_client.client import ClobClient
from py_clob_client.clob_types import (
    ApiCreds,
    OpenOrderParams,
    OrderArgs,
    PartialCreateOrderOptions,
)

from polycavora.core.config import TradingConfig
from polycavora.core.types import CancelResponse, OrderResponse, PlaceOrderParams
from polycavora.polymarket.builder import (
    ClobWalletSigner,
    WalletOrderBuilder,
    to_sdk_builder_config,
)

logger = structlog.stdlib.get_logger()


def _parse_order_response(raw: Any) -> OrderResponse:
    """Parse SDK post_order response into an OrderResponse."""
    if isinstance(raw, dict):
        order_id = str(raw.get("orderID", raw.get("id", "")))
        return OrderResponse(
            order_id=order_id,
            success=raw.get("success", bool(order_id)),
            status=raw.get("status") or "",
            error_msg=raw.get("errorMsg") or "",
            raw=raw,
        )
    if isinstance(raw, str):
        return OrderResponse(order_id=raw, success=True, raw={"response": raw})
    return OrderResponse(raw={"response": raw})


def _parse_cancel_response(raw: Any) -> CancelResponse:
    """Parse SDK cancel/cancel_orders response into a CancelResponse."""
    if not isinstance(raw, dict):
        return CancelResponse(raw={"response": raw})
    return CancelResponse(
        canceled=[str(oid) for oid in raw.get("canceled") or []],
        not_canceled={str(k): str(v) for k, v in (raw.get("not_canceled") or {}).items()},
        raw=raw,
    )


class TradingClient:
    """Order management bound to one TradingConfig.

    The vendor client is built on first use (or by :meth:`connect`), in
    private-key mode or by binding an external wallet signer. Vendor errors
    propagate unchanged.

    Usage::

        async with sdk.trading.init() as trading:
            resp = await trading.place_order(params)
    """

    def __init__(self, config: TradingConfig, log: Any = None) -> None:
        self._config = config
        self._log = log or logger
        self._sdk: ClobClient | None = None
        self._connect_lock = asyncio.Lock()

    @property
    def config(self) -> TradingConfig:
        return self._config

    @property
    def connected(self) -> bool:
        return self._sdk is not None

    def _build_sdk(self) -> ClobClient:
        cfg = self._config
        kwargs: dict[str, Any] = {"chain_id": cfg.chain_id}
        if cfg.builder is not None:
            kwargs["builder_config"] = to_sdk_builder_config(cfg.builder)

        if cfg.backend is not None:
            sdk = ClobClient(cfg.host, key=cfg.backend.private_key.get_secret_value(), **kwargs)
        else:
            wallet = cfg.wallet
            assert wallet is not None
            sdk = ClobClient(
                cfg.host,
                signature_type=wallet.signature_type,
                funder=wallet.funder,
                **kwargs,
            )
            signer = ClobWalletSigner(wallet.signer, cfg.chain_id)
            sdk.signer = signer
            sdk.builder = WalletOrderBuilder(
                signer, sig_type=wallet.signature_type, funder=wallet.funder
            )
            # Auth level is derived from the signer, recompute it after binding
            sdk.mode = sdk._get_client_mode()

        if cfg.api_credentials is not None:
            creds = cfg.api_credentials
            sdk.set_api_creds(
                ApiCreds(
                    api_key=creds.api_key,
                    api_secret=creds.api_secret.get_secret_value(),
                    api_passphrase=creds.api_passphrase.get_secret_value(),
                )
            )
        else:
            sdk.set_api_creds(sdk.create_or_derive_api_creds())
        return sdk

    async def connect(self) -> None:
        """Initialize the underlying SDK client."""
        async with self._connect_lock:
            if self._sdk is not None:
                return
            self._sdk = await asyncio.to_thread(self._build_sdk)
            self._log.info(
                "trading_client_connected",
                host=self._config.host,
                chain_id=self._config.chain_id,
                mode="backend" if self._config.backend is not None else "wallet",
                builder=self._config.builder is not None,
            )

    async def close(self) -> None:
        self._sdk = None

    async def __aenter__(self) -> TradingClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _ensure_sdk(self) -> ClobClient:
        if self._sdk is None:
            await self.connect()
        assert self._sdk is not None
        return self._sdk

    # ── Order Management ─────────────────────────────────────────

    async def place_order(self, params: PlaceOrderParams) -> OrderResponse:
        """Sign and post a limit order."""
        sdk = await self._ensure_sdk()
        order_args = OrderArgs(
            token_id=params.token_id,
            price=float(params.price),
            size=float(params.size),
            side=params.side.value,
            expiration=params.expiration or 0,
        )
        options = None
        if params.tick_size is not None or params.neg_risk is not None:
            options = PartialCreateOrderOptions(
                tick_size=params.tick_size, neg_risk=params.neg_risk
            )

        signed = await asyncio.to_thread(sdk.create_order, order_args, options)
        raw = await asyncio.to_thread(sdk.post_order, signed, params.order_type.value)
        resp = _parse_order_response(raw)
        self._log.debug(
            "order_placed",
            token_id=params.token_id,
            side=params.side,
            order_id=resp.order_id,
            success=resp.success,
        )
        return resp

    async def cancel_order(self, order_id: str) -> CancelResponse:
        """Cancel a single order by ID."""
        sdk = await self._ensure_sdk()
        raw = await asyncio.to_thread(sdk.cancel, order_id)
        return _parse_cancel_response(raw)

    async def cancel_orders(self, order_ids: list[str]) -> CancelResponse:
        """Cancel several orders in one request."""
        sdk = await self._ensure_sdk()
        raw = await asyncio.to_thread(sdk.cancel_orders, order_ids)
        return _parse_cancel_response(raw)

    # ── Order Queries ────────────────────────────────────────────

    async def get_open_orders(
        self, market: str | None = None, asset_id: str | None = None
    ) -> list[dict[str, Any]]:
        """Fetch open orders, optionally filtered by market or token."""
        sdk = await self._ensure_sdk()
        params = OpenOrderParams(market=market, asset_id=asset_id)
        raw: Any = await asyncio.to_thread(sdk.get_orders, params)
        if isinstance(raw, list):
            return list(raw)
        if isinstance(raw, dict):
            return list(raw.get("data", []))
        return []

    async def get_order(self, order_id: str) -> dict[str, Any]:
        """Fetch one order by ID."""
        sdk = await self._ensure_sdk()
        raw: Any = await asyncio.to_thread(sdk.get_order, order_id)
        return raw if isinstance(raw, dict) else {"response": raw}


def create_trading_client(config: TradingConfig, log: Any = None) -> TradingClient:
    """Build a new, not yet connected, trading client."""
    return TradingClient(config, log=log)
