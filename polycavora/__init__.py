"""POLYCAVORA: a Polymarket client SDK."""

from polycavora.client import FeatureNamespace, PolyCavoraSDK
from polycavora.core.config import (
    ApiCredentials,
    BackendAuth,
    BuilderConfig,
    RelayerConfig,
    SDKConfig,
    TradingConfig,
    WalletAuth,
)
from polycavora.core.types import (
    Market,
    OrderbookDelta,
    OrderbookSnapshot,
    OrderbookUpdate,
    PlaceOrderParams,
    Side,
)
from polycavora.polymarket.exceptions import (
    ConfigurationError,
    HttpError,
    PolyCavoraError,
    RelayerTimeoutError,
    StreamError,
)

__version__ = "0.1.0"

__all__ = [
    "ApiCredentials",
    "BackendAuth",
    "BuilderConfig",
    "ConfigurationError",
    "FeatureNamespace",
    "HttpError",
    "Market",
    "OrderbookDelta",
    "OrderbookSnapshot",
    "OrderbookUpdate",
    "PlaceOrderParams",
    "PolyCavoraError",
    "PolyCavoraSDK",
    "RelayerConfig",
    "RelayerTimeoutError",
    "SDKConfig",
    "Side",
    "StreamError",
    "TradingConfig",
    "WalletAuth",
]
