"""Tests for the trading pass-through.

Tests mock the vendor SDK to verify:
- Backend (private key) and wallet (external signer) construction
- Wallet signing through the real vendor client, HTTP patched
- API credential handling (explicit vs derived)
- Builder attribution forwarding
- Order placement/cancellation/query conversions
- Vendor errors propagate unchanged
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from eth_account import Account
from hexbytes import HexBytes

from polycavora.core.config import (
    ApiCredentials,
    BackendAuth,
    BuilderConfig,
    TradingConfig,
    WalletAuth,
)
from polycavora.core.types import OrderType, PlaceOrderParams, Side
from polycavora.polymarket.builder import ClobWalletSigner, WalletOrderBuilder
from polycavora.polymarket.trading import (
    TradingClient,
    _parse_cancel_response,
    _parse_order_response,
    create_trading_client,
)


_WALLET_KEY = "0x" + "44" * 32


class _ExternalWallet:
    """Browser-style wallet: signs raw hashes without exposing its key."""

    def __init__(self) -> None:
        self._account = Account.from_key(_WALLET_KEY)
        self.signatures: list[str] = []

    def address(self) -> str:
        return self._account.address

    def sign(self, message_hash: str) -> str:
        signed = self._account.unsafe_sign_hash(HexBytes(message_hash))
        signature = "0x" + bytes(signed.signature).hex()
        self.signatures.append(signature)
        return signature


class _ClobHttp:
    """Stands in for py-clob-client's HTTP helpers."""

    def __init__(self) -> None:
        self.gets: list[str] = []
        self.posts: list[tuple[str, dict[str, Any], Any]] = []

    def get(self, endpoint: str, headers: Any = None, data: Any = None) -> Any:
        self.gets.append(endpoint)
        path = endpoint.split("?")[0]
        if path.endswith("/tick-size"):
            return {"minimum_tick_size": 0.01}
        if path.endswith("/neg-risk"):
            return {"neg_risk": False}
        if path.endswith("/fee-rate"):
            return {"base_fee": 0}
        raise AssertionError(f"unexpected GET {endpoint}")

    def post(self, endpoint: str, headers: Any = None, data: Any = None) -> Any:
        self.posts.append((endpoint, headers or {}, data))
        if endpoint.endswith("/auth/api-key"):
            return {"apiKey": "derived-key", "secret": "c2VjcmV0", "passphrase": "pp"}
        return {"orderID": "0xorder", "success": True, "status": "live"}


@pytest.fixture()
def clob_http():  # type: ignore[no-untyped-def]
    http = _ClobHttp()
    with (
        patch("py_clob_client.client.get", side_effect=http.get),
        patch("py_clob_client.client.post", side_effect=http.post),
    ):
        yield http


def _backend_config(**overrides: object) -> TradingConfig:
    return TradingConfig(
        backend=BackendAuth(private_key="0xkey"),  # type: ignore[arg-type]
        **overrides,  # type: ignore[arg-type]
    )


@pytest.fixture()
def mock_sdk() -> MagicMock:
    """Create a mock ClobClient SDK."""
    sdk = MagicMock()
    sdk.create_or_derive_api_creds.return_value = "derived-creds"
    sdk.create_order.return_value = {"signed": True}
    sdk.post_order.return_value = {"orderID": "order-123", "success": True, "status": "live"}
    sdk.cancel.return_value = {"canceled": ["order-1"], "not_canceled": {}}
    sdk.cancel_orders.return_value = {
        "canceled": ["order-1"],
        "not_canceled": {"order-2": "already filled"},
    }
    sdk.get_orders.return_value = [{"id": "order-1"}]
    sdk.get_order.return_value = {"id": "order-1", "status": "LIVE"}
    return sdk


@pytest.fixture()
def clob_cls(mock_sdk: MagicMock):  # type: ignore[no-untyped-def]
    with patch("polycavora.polymarket.trading.ClobClient", return_value=mock_sdk) as cls:
        yield cls


# ── Construction ─────────────────────────────────────────────────


class TestConnect:
    async def test_backend_mode(self, clob_cls: MagicMock, mock_sdk: MagicMock) -> None:
        client = TradingClient(_backend_config(chain_id=80002))
        await client.connect()

        clob_cls.assert_called_once_with(
            "https://clob.polymarket.com", key="0xkey", chain_id=80002
        )
        mock_sdk.create_or_derive_api_creds.assert_called_once()
        mock_sdk.set_api_creds.assert_called_once_with("derived-creds")
        assert client.connected

    async def test_explicit_api_credentials(
        self, clob_cls: MagicMock, mock_sdk: MagicMock
    ) -> None:
        creds = ApiCredentials(
            api_key="k",
            api_secret="s",  # type: ignore[arg-type]
            api_passphrase="p",  # type: ignore[arg-type]
        )
        await TradingClient(_backend_config(api_credentials=creds)).connect()

        mock_sdk.create_or_derive_api_creds.assert_not_called()
        sent = mock_sdk.set_api_creds.call_args.args[0]
        assert sent.api_key == "k"
        assert sent.api_secret == "s"
        assert sent.api_passphrase == "p"

    async def test_builder_config_forwarded(self, clob_cls: MagicMock) -> None:
        builder = BuilderConfig(
            api_key="bk",
            api_secret="bs",  # type: ignore[arg-type]
            api_passphrase="bp",  # type: ignore[arg-type]
        )
        with patch(
            "polycavora.polymarket.trading.to_sdk_builder_config",
            return_value="vendor-builder",
        ) as convert:
            await TradingClient(_backend_config(builder=builder)).connect()

        convert.assert_called_once_with(builder)
        assert clob_cls.call_args.kwargs["builder_config"] == "vendor-builder"

    async def test_wallet_mode_binds_signer(
        self, clob_cls: MagicMock, mock_sdk: MagicMock
    ) -> None:
        signer = MagicMock()
        cfg = TradingConfig(
            wallet=WalletAuth(signer=signer, signature_type=2, funder="0xfund"),
            chain_id=80002,
        )
        await TradingClient(cfg).connect()

        assert "key" not in clob_cls.call_args.kwargs
        assert clob_cls.call_args.kwargs["signature_type"] == 2
        assert clob_cls.call_args.kwargs["funder"] == "0xfund"
        assert isinstance(mock_sdk.signer, ClobWalletSigner)
        assert mock_sdk.signer.wallet is signer
        assert mock_sdk.signer.get_chain_id() == 80002
        assert isinstance(mock_sdk.builder, WalletOrderBuilder)
        assert mock_sdk.builder.signer is mock_sdk.signer
        assert mock_sdk.builder.sig_type == 2
        assert mock_sdk.builder.funder == "0xfund"
        assert mock_sdk.mode == mock_sdk._get_client_mode.return_value

    async def test_connect_is_idempotent(self, clob_cls: MagicMock) -> None:
        client = TradingClient(_backend_config())
        await client.connect()
        await client.connect()
        assert clob_cls.call_count == 1

    async def test_lazy_connect_on_first_call(self, clob_cls: MagicMock) -> None:
        client = TradingClient(_backend_config())
        assert not client.connected
        await client.get_open_orders()
        assert client.connected

    async def test_context_manager_closes(self, clob_cls: MagicMock) -> None:
        async with create_trading_client(_backend_config()) as client:
            assert client.connected
        assert not client.connected

    def test_factory_returns_fresh_clients(self) -> None:
        cfg = _backend_config()
        assert create_trading_client(cfg) is not create_trading_client(cfg)

# ── Wallet signing through the vendor client ─────────────────────


class TestWalletVendorSigning:
    """Runs py-clob-client for real with only its HTTP helpers patched."""

    async def test_place_order_signed_by_wallet(self, clob_http: _ClobHttp) -> None:
        wallet = _ExternalWallet()
        cfg = TradingConfig(
            wallet=WalletAuth(signer=wallet),
            api_credentials=ApiCredentials(
                api_key="k",
                api_secret="c2VjcmV0",  # type: ignore[arg-type]
                api_passphrase="p",  # type: ignore[arg-type]
            ),
        )
        resp = await TradingClient(cfg).place_order(
            PlaceOrderParams(
                token_id="1234",
                side=Side.BUY,
                price=Decimal("0.5"),
                size=Decimal("10"),
                tick_size="0.01",
                neg_risk=True,
            )
        )

        assert resp.order_id == "0xorder"
        assert resp.success is True
        endpoint, headers, body = clob_http.posts[-1]
        assert endpoint.endswith("/order")
        assert headers["POLY_ADDRESS"] == wallet.address()
        order = json.loads(body)["order"]
        assert order["signer"] == wallet.address()
        assert order["maker"] == wallet.address()
        assert order["tokenId"] == "1234"
        assert order["side"] == "BUY"
        assert order["signature"] == wallet.signatures[-1]

    async def test_connect_derives_credentials_with_wallet(
        self, clob_http: _ClobHttp
    ) -> None:
        wallet = _ExternalWallet()
        client = TradingClient(TradingConfig(wallet=WalletAuth(signer=wallet)))
        await client.connect()

        endpoint, headers, _ = clob_http.posts[0]
        assert endpoint.endswith("/auth/api-key")
        assert headers["POLY_ADDRESS"] == wallet.address()
        assert headers["POLY_SIGNATURE"] == wallet.signatures[0]
        assert client._sdk is not None
        assert client._sdk.creds.api_key == "derived-key"

    async def test_backend_key_still_signs(self, clob_http: _ClobHttp) -> None:
        cfg = TradingConfig(
            backend=BackendAuth(private_key=_WALLET_KEY),  # type: ignore[arg-type]
        )
        await TradingClient(cfg).place_order(
            PlaceOrderParams(
                token_id="1234", side=Side.SELL, price=Decimal("0.4"), size=Decimal("5")
            )
        )

        _, _, body = clob_http.posts[-1]
        order = json.loads(body)["order"]
        assert order["signer"] == Account.from_key(_WALLET_KEY).address
        assert order["side"] == "SELL"
        assert any("/neg-risk" in url for url in clob_http.gets)



# ── Orders ───────────────────────────────────────────────────────


class TestPlaceOrder:
    async def test_place_limit_order(self, clob_cls: MagicMock, mock_sdk: MagicMock) -> None:
        client = TradingClient(_backend_config())
        resp = await client.place_order(
            PlaceOrderParams(
                token_id="tok1",
                side=Side.BUY,
                price=Decimal("0.55"),
                size=Decimal("10"),
            )
        )

        assert resp.order_id == "order-123"
        assert resp.success is True
        assert resp.status == "live"
        args, options = mock_sdk.create_order.call_args.args
        assert args.token_id == "tok1"
        assert args.price == 0.55
        assert args.size == 10.0
        assert args.side == "BUY"
        assert options is None
        mock_sdk.post_order.assert_called_once_with({"signed": True}, "GTC")

    async def test_order_type_and_options(
        self, clob_cls: MagicMock, mock_sdk: MagicMock
    ) -> None:
        client = TradingClient(_backend_config())
        await client.place_order(
            PlaceOrderParams(
                token_id="tok1",
                side=Side.SELL,
                price=Decimal("0.40"),
                size=Decimal("5"),
                order_type=OrderType.FOK,
                tick_size="0.01",
                neg_risk=True,
            )
        )

        _, options = mock_sdk.create_order.call_args.args
        assert options.tick_size == "0.01"
        assert options.neg_risk is True
        assert mock_sdk.post_order.call_args.args[1] == "FOK"

    async def test_vendor_error_propagates(
        self, clob_cls: MagicMock, mock_sdk: MagicMock
    ) -> None:
        error = ValueError("invalid tick size")
        mock_sdk.create_order.side_effect = error
        client = TradingClient(_backend_config())
        with pytest.raises(ValueError) as exc_info:
            await client.place_order(
                PlaceOrderParams(
                    token_id="tok1", side=Side.BUY, price=Decimal("0.5"), size=Decimal("1")
                )
            )
        assert exc_info.value is error
        mock_sdk.post_order.assert_not_called()


class TestCancel:
    async def test_cancel_order(self, clob_cls: MagicMock, mock_sdk: MagicMock) -> None:
        resp = await TradingClient(_backend_config()).cancel_order("order-1")
        mock_sdk.cancel.assert_called_once_with("order-1")
        assert resp.canceled == ["order-1"]
        assert resp.success is True

    async def test_cancel_orders(self, clob_cls: MagicMock, mock_sdk: MagicMock) -> None:
        resp = await TradingClient(_backend_config()).cancel_orders(["order-1", "order-2"])
        mock_sdk.cancel_orders.assert_called_once_with(["order-1", "order-2"])
        assert resp.not_canceled == {"order-2": "already filled"}
        assert resp.success is False


class TestQueries:
    async def test_get_open_orders_filters(
        self, clob_cls: MagicMock, mock_sdk: MagicMock
    ) -> None:
        orders = await TradingClient(_backend_config()).get_open_orders(
            market="0xabc", asset_id="tok1"
        )
        params = mock_sdk.get_orders.call_args.args[0]
        assert params.market == "0xabc"
        assert params.asset_id == "tok1"
        assert orders == [{"id": "order-1"}]

    async def test_get_open_orders_paged_shape(
        self, clob_cls: MagicMock, mock_sdk: MagicMock
    ) -> None:
        mock_sdk.get_orders.return_value = {"data": [{"id": "a"}, {"id": "b"}]}
        orders = await TradingClient(_backend_config()).get_open_orders()
        assert [o["id"] for o in orders] == ["a", "b"]

    async def test_get_order(self, clob_cls: MagicMock, mock_sdk: MagicMock) -> None:
        order = await TradingClient(_backend_config()).get_order("order-1")
        mock_sdk.get_order.assert_called_once_with("order-1")
        assert order["status"] == "LIVE"


class TestResponseParsing:
    def test_order_response_from_string(self) -> None:
        resp = _parse_order_response("order-9")
        assert resp.order_id == "order-9"
        assert resp.success is True

    def test_order_response_error(self) -> None:
        resp = _parse_order_response({"success": False, "errorMsg": "not enough balance"})
        assert resp.success is False
        assert resp.order_id == ""
        assert resp.error_msg == "not enough balance"

    def test_cancel_response_unexpected_shape(self) -> None:
        resp = _parse_cancel_response(None)
        assert resp.canceled == []
        assert resp.raw == {"response": None}
