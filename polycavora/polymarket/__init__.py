"""Polymarket REST, WebSocket, trading and relayer clients."""

from polycavora.polymarket.exceptions import (
    ConfigurationError,
    HttpError,
    PolyCavoraError,
    RelayerTimeoutError,
    StreamError,
)
from polycavora.polymarket.markets import MarketDataClient
from polycavora.polymarket.relayer import RelayerClient, create_relayer_client
from polycavora.polymarket.retry import with_retry
from polycavora.polymarket.trading import TradingClient, create_trading_client
from polycavora.polymarket.ws import OrderbookSubscription, subscribe_orderbook

__all__ = [
    "ConfigurationError",
    "HttpError",
    "MarketDataClient",
    "OrderbookSubscription",
    "PolyCavoraError",
    "RelayerClient",
    "RelayerTimeoutError",
    "StreamError",
    "TradingClient",
    "create_relayer_client",
    "create_trading_client",
    "subscribe_orderbook",
    "with_retry",
]
