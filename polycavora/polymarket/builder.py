"""Translation of SDK auth/attribution config into vendor objects."""

from __future__ import annotations

from typing import Any

from py_builder_signing_sdk.config import BuilderApiKeyCreds
from py_builder_signing_sdk.config import BuilderConfig as SdkBuilderConfig
from py_clob_client.clob_types import CreateOrderOptions, OrderArgs
from py_clob_client.config import get_contract_config
from py_clob_client.order_builder.builder import ROUNDING_CONFIG, OrderBuilder
from py_order_utils.builders import OrderBuilder as UtilsOrderBuilder
from py_order_utils.model import OrderData, SignedOrder

from polycavora.core.config import BuilderConfig


def to_sdk_builder_config(cfg: BuilderConfig) -> SdkBuilderConfig:
    """Builder attribution credentials in the shape the vendor clients accept."""
    return SdkBuilderConfig(
        local_builder_creds=BuilderApiKeyCreds(
            key=cfg.api_key,
            secret=cfg.api_secret.get_secret_value(),
            passphrase=cfg.api_passphrase.get_secret_value(),
        )
    )


def signer_address(signer: Any) -> str:
    """Address of a vendor-style signer (``address()`` method or attribute)."""
    address = signer.address
    return str(address() if callable(address) else address)


class ClobWalletSigner:
    """Presents an external wallet as the signer py-clob-client expects.

    The CLOB client reads ``address()``, ``get_chain_id()`` and
    ``sign(message_hash)``; the chain id comes from the trading config
    since wallets do not carry one.
    """

    def __init__(self, wallet: Any, chain_id: int) -> None:
        self.wallet = wallet
        self.chain_id = chain_id

    def address(self) -> str:
        return signer_address(self.wallet)

    def get_chain_id(self) -> int:
        return self.chain_id

    def sign(self, message_hash: str) -> str:
        return str(self.wallet.sign(message_hash))


class WalletOrderBuilder(OrderBuilder):
    """OrderBuilder that signs through a :class:`ClobWalletSigner`.

    The vendor builder wraps ``signer.private_key`` in its own key signer
    before hashing the order; here the struct hash goes to the wallet.
    """

    signer: ClobWalletSigner

    def create_order(self, order_args: OrderArgs, options: CreateOrderOptions) -> SignedOrder:
        side, maker_amount, taker_amount = self.get_order_amounts(
            order_args.side,
            order_args.size,
            order_args.price,
            ROUNDING_CONFIG[options.tick_size],
        )
        data = OrderData(
            maker=self.funder,
            taker=order_args.taker,
            tokenId=order_args.token_id,
            makerAmount=str(maker_amount),
            takerAmount=str(taker_amount),
            side=side,
            feeRateBps=str(order_args.fee_rate_bps),
            nonce=str(order_args.nonce),
            signer=self.signer.address(),
            expiration=str(order_args.expiration),
            signatureType=self.sig_type,
        )
        chain_id = self.signer.get_chain_id()
        contract = get_contract_config(chain_id, options.neg_risk)
        # py-order-utils only calls address() and sign() on its signer
        return UtilsOrderBuilder(contract.exchange, chain_id, self.signer).build_signed_order(data)
