"""Domain types for Polymarket interactions: all prices/sizes use Decimal."""

from __future__ import annotations

import json
from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Side(StrEnum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"


class OrderType(StrEnum):
    """Order type."""

    GTC = "GTC"  # Good till cancelled
    FOK = "FOK"  # Fill or kill
    GTD = "GTD"  # Good till date
    FAK = "FAK"  # Fill and kill


class ConnectionState(StrEnum):
    """Lifecycle of a single orderbook WebSocket connection."""

    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


# ── Markets ──────────────────────────────────────────────────────


def _string_list(value: Any) -> list[str]:
    # The REST API ships some list fields as JSON-encoded strings.
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return [value] if value else []
    if isinstance(value, list):
        return [str(v) for v in value]
    return []


def _decimal_or_none(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except ArithmeticError:
        return None


def _bool_or(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class Market(BaseModel):
    """Prediction-market instrument metadata as returned by the REST API."""

    model_config = ConfigDict(frozen=True)

    id: str
    question: str = ""
    slug: str = ""
    condition_id: str = ""
    description: str = ""
    outcomes: list[str] = Field(default_factory=list)
    outcome_prices: list[Decimal] = Field(default_factory=list)
    clob_token_ids: list[str] = Field(default_factory=list)
    active: bool = True
    closed: bool = False
    end_date: str = ""
    volume: Decimal | None = None
    liquidity: Decimal | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> Market:
        """Build a Market from a REST payload.

        ``null`` fields are coalesced to defaults.
        """
        prices = [_decimal_or_none(p) for p in _string_list(raw.get("outcomePrices"))]
        return cls(
            id=str(raw.get("id") or ""),
            question=raw.get("question") or "",
            slug=raw.get("slug") or "",
            condition_id=raw.get("conditionId") or raw.get("condition_id") or "",
            description=raw.get("description") or "",
            outcomes=_string_list(raw.get("outcomes")),
            outcome_prices=[p for p in prices if p is not None],
            clob_token_ids=_string_list(raw.get("clobTokenIds")),
            active=_bool_or(raw.get("active"), True),
            closed=_bool_or(raw.get("closed"), False),
            end_date=raw.get("endDate") or raw.get("end_date_iso") or "",
            volume=_decimal_or_none(raw.get("volume")),
            liquidity=_decimal_or_none(raw.get("liquidity")),
            raw=raw,
        )


# ── Orderbook updates ────────────────────────────────────────────


class PriceLevel(BaseModel):
    """A single price level in the order book."""

    price: Decimal
    size: Decimal


class PriceChange(BaseModel):
    """An incremental change to one level of the book."""

    price: Decimal
    size: Decimal
    side: Side


class OrderbookData(BaseModel):
    """Full book contents carried by a snapshot."""

    bids: list[PriceLevel] = Field(default_factory=list)
    asks: list[PriceLevel] = Field(default_factory=list)


class OrderbookSnapshot(BaseModel):
    """Full current state of the book."""

    type: Literal["snapshot"] = "snapshot"
    market_id: str
    data: OrderbookData = Field(default_factory=OrderbookData)
    timestamp: float = 0.0

    @property
    def best_bid(self) -> Decimal | None:
        return self.data.bids[0].price if self.data.bids else None

    @property
    def best_ask(self) -> Decimal | None:
        return self.data.asks[0].price if self.data.asks else None


class OrderbookDelta(BaseModel):
    """Changes to the book since the previous update."""

    type: Literal["delta"] = "delta"
    market_id: str
    data: list[PriceChange] = Field(default_factory=list)
    timestamp: float = 0.0
    raw: dict[str, Any] = Field(default_factory=dict)


OrderbookUpdate = Annotated[
    OrderbookSnapshot | OrderbookDelta,
    Field(discriminator="type"),
]


# ── Orders ───────────────────────────────────────────────────────


class PlaceOrderParams(BaseModel):
    """Input type for placing a limit order."""

    token_id: str
    side: Side
    price: Decimal
    size: Decimal
    order_type: OrderType = OrderType.GTC
    expiration: int | None = None
    tick_size: str | None = None
    neg_risk: bool | None = None


class OrderResponse(BaseModel):
    """Response from placing an order."""

    order_id: str = ""
    success: bool = False
    status: str = ""
    error_msg: str = ""
    raw: dict[str, Any] = Field(default_factory=dict)


class CancelResponse(BaseModel):
    """Response from cancelling orders."""

    canceled: list[str] = Field(default_factory=list)
    not_canceled: dict[str, str] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return bool(self.canceled) and not self.not_canceled
