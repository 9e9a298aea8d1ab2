"""Core module: settings, domain types and logging."""

from polycavora.core.config import (
    ApiCredentials,
    BackendAuth,
    BuilderConfig,
    RelayerConfig,
    SDKConfig,
    TradingConfig,
    WalletAuth,
    get_settings,
    load_settings,
    reset_settings,
)
from polycavora.core.logging import make_sdk_logger, setup_logging
from polycavora.core.types import (
    CancelResponse,
    ConnectionState,
    Market,
    OrderbookDelta,
    OrderbookSnapshot,
    OrderbookUpdate,
    OrderResponse,
    OrderType,
    PlaceOrderParams,
    PriceChange,
    PriceLevel,
    Side,
)

__all__ = [
    "ApiCredentials",
    "BackendAuth",
    "BuilderConfig",
    "CancelResponse",
    "ConnectionState",
    "Market",
    "OrderResponse",
    "OrderType",
    "OrderbookDelta",
    "OrderbookSnapshot",
    "OrderbookUpdate",
    "PlaceOrderParams",
    "PriceChange",
    "PriceLevel",
    "RelayerConfig",
    "SDKConfig",
    "Side",
    "TradingConfig",
    "WalletAuth",
    "get_settings",
    "load_settings",
    "make_sdk_logger",
    "reset_settings",
    "setup_logging",
]
