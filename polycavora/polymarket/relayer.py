"""Async pass-through to the Polymarket builder relayer client (gasless transactions)."""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Any

import structlog
from py_builder_relayer_client.client import RelayClient
from py_builder_relayer_client.models import RelayerTxType

from polycavora.core.config import RelayerConfig
from polycavora.polymarket.builder import signer_address, to_sdk_builder_config
from polycavora.polymarket.exceptions import RelayerTimeoutError

logger = structlog.stdlib.get_logger()

TERMINAL_STATES = frozenset({
    "STATE_MINED",
    "STATE_CONFIRMED",
    "STATE_FAILED",
    "STATE_INVALID",
})


def _transaction_state(txn: Any) -> str:
    if isinstance(txn, dict):
        return str(txn.get("state") or "")
    return str(getattr(txn, "state", "") or "")


def _first_transaction(raw: Any) -> Any:
    """The relayer answers single-transaction lookups with a list."""
    if isinstance(raw, list):
        return raw[0] if raw else None
    return raw


class RelayerClient:
    """Gasless transaction submission bound to one RelayerConfig.

    Every method except :meth:`wait_for_transaction` forwards straight to
    a vendor ``RelayClient`` in a worker thread. The vendor client picks
    the wallet type at construction, so one is kept per
    :class:`RelayerTxType`: proxy execution uses the PROXY client and
    everything else the SAFE one.
    """

    POLL_INTERVAL = 2.0  # seconds
    WAIT_TIMEOUT = 120.0  # seconds

    def __init__(self, config: RelayerConfig, log: Any = None) -> None:
        self._config = config
        self._log = log or logger
        self._sdks: dict[RelayerTxType, RelayClient] = {}
        self._connect_lock = asyncio.Lock()

    @property
    def config(self) -> RelayerConfig:
        return self._config

    @property
    def connected(self) -> bool:
        return bool(self._sdks)

    def _build_sdk(self, tx_type: RelayerTxType) -> RelayClient:
        cfg = self._config
        builder_config = to_sdk_builder_config(cfg.builder) if cfg.builder else None
        if cfg.backend is not None:
            return RelayClient(
                cfg.relayer_url,
                cfg.chain_id,
                cfg.backend.private_key.get_secret_value(),
                builder_config,
                relay_tx_type=tx_type,
            )
        assert cfg.wallet is not None
        sdk = RelayClient(
            cfg.relayer_url, cfg.chain_id, None, builder_config, relay_tx_type=tx_type
        )
        sdk.signer = cfg.wallet.signer
        return sdk

    async def connect(self, tx_type: RelayerTxType = RelayerTxType.SAFE) -> None:
        """Initialize the vendor relayer client for ``tx_type``."""
        async with self._connect_lock:
            if tx_type in self._sdks:
                return
            self._sdks[tx_type] = await asyncio.to_thread(self._build_sdk, tx_type)
            self._log.info(
                "relayer_client_connected",
                relayer_url=self._config.relayer_url,
                chain_id=self._config.chain_id,
                tx_type=tx_type.value,
            )

    async def close(self) -> None:
        self._sdks.clear()

    async def __aenter__(self) -> RelayerClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def _ensure_sdk(self, tx_type: RelayerTxType = RelayerTxType.SAFE) -> RelayClient:
        if tx_type not in self._sdks:
            await self.connect(tx_type)
        return self._sdks[tx_type]

    # ── Execution ────────────────────────────────────────────────

    async def execute_proxy_transactions(
        self, transactions: list[Any], metadata: str = ""
    ) -> Any:
        """Submit a batch through the signer's proxy wallet."""
        sdk = await self._ensure_sdk(RelayerTxType.PROXY)
        self._log.debug("relayer_execute", wallet="proxy", count=len(transactions))
        return await asyncio.to_thread(sdk.execute, transactions, metadata)

    async def execute_safe_transactions(
        self, transactions: list[Any], metadata: str = ""
    ) -> Any:
        """Submit a batch through the signer's Safe wallet."""
        sdk = await self._ensure_sdk()
        self._log.debug("relayer_execute", wallet="safe", count=len(transactions))
        return await asyncio.to_thread(sdk.execute, transactions, metadata)

    async def deploy_safe(self) -> Any:
        """Deploy the signer's Safe wallet."""
        sdk = await self._ensure_sdk()
        return await asyncio.to_thread(sdk.deploy)

    async def wait_for_transaction(
        self,
        transaction_id: str,
        poll_interval: float | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Poll until the transaction reaches a terminal state.

        Returns the final transaction record. Raises RelayerTimeoutError if
        no terminal state is seen within ``timeout`` seconds.
        """
        interval = self.POLL_INTERVAL if poll_interval is None else poll_interval
        limit = self.WAIT_TIMEOUT if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + limit

        while True:
            txn = await self.get_transaction(transaction_id)
            state = _transaction_state(txn)
            if state in TERMINAL_STATES:
                self._log.debug(
                    "relayer_transaction_final",
                    transaction_id=transaction_id,
                    state=state,
                )
                return txn

            remaining = deadline - loop.time()
            if remaining <= 0:
                self._log.warning(
                    "relayer_transaction_timeout",
                    transaction_id=transaction_id,
                    state=state,
                    timeout=limit,
                )
                raise RelayerTimeoutError(transaction_id, limit)
            await asyncio.sleep(min(interval, remaining))

    # ── Queries ──────────────────────────────────────────────────

    async def get_transaction(self, transaction_id: str) -> Any:
        """Fetch one transaction record (``None`` if unknown)."""
        sdk = await self._ensure_sdk()
        raw = await asyncio.to_thread(sdk.get_transaction, transaction_id)
        return _first_transaction(raw)

    async def get_transactions(self) -> Any:
        """Fetch the signer's recent transactions."""
        sdk = await self._ensure_sdk()
        return await asyncio.to_thread(sdk.get_transactions)

    async def get_relayer_address(
        self, signer: str | None = None, signer_type: str = "SAFE"
    ) -> str:
        """Address of the relayer that will submit the signer's next transaction."""
        sdk = await self._ensure_sdk()
        address = signer or signer_address(sdk.signer)
        payload = await asyncio.to_thread(sdk.get_relay_payload, address, signer_type)
        if isinstance(payload, dict):
            return str(payload.get("address", ""))
        return str(getattr(payload, "address", ""))

    async def get_nonce(self, signer: str | None = None, signer_type: str = "SAFE") -> Any:
        """Current relayer nonce for the signer."""
        sdk = await self._ensure_sdk()
        address = signer or signer_address(sdk.signer)
        return await asyncio.to_thread(sdk.get_nonce, address, signer_type)


def create_relayer_client(config: RelayerConfig, log: Any = None) -> RelayerClient:
    """Build a new, not yet connected, relayer client."""
    return RelayerClient(config, log=log)
