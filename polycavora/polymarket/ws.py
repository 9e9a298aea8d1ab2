"""WebSocket subscription for Polymarket order book updates."""

from __future__ import annotations

import asyncio
import inspect
import json
import time
from collections.abc import Awaitable, Callable
from decimal import Decimal
from typing import Any

import structlog
import websockets
from websockets.asyncio.client import ClientConnection

from polycavora.core.types import (
    ConnectionState,
    OrderbookData,
    OrderbookDelta,
    OrderbookSnapshot,
    OrderbookUpdate,
    PriceChange,
    PriceLevel,
    Side,
)
from polycavora.polymarket.exceptions import StreamError

logger = structlog.stdlib.get_logger()

# Type aliases for the subscriber callback and lifecycle hooks
OrderbookCallback = Callable[[OrderbookUpdate], Awaitable[None] | None]
ErrorHook = Callable[[BaseException], Awaitable[None] | None]
LifecycleHook = Callable[[], Awaitable[None] | None]


def _parse_levels(raw: Any) -> list[PriceLevel]:
    return [
        PriceLevel(price=Decimal(str(lvl["price"])), size=Decimal(str(lvl["size"])))
        for lvl in raw or []
    ]


def _parse_snapshot(market_id: str, payload: dict[str, Any]) -> OrderbookSnapshot:
    """Build a snapshot from ``{"bids": [...], "asks": [...]}``."""
    bids = _parse_levels(payload.get("bids"))
    asks = _parse_levels(payload.get("asks"))
    # Bids descending by price, asks ascending
    bids.sort(key=lambda x: x.price, reverse=True)
    asks.sort(key=lambda x: x.price)
    return OrderbookSnapshot(
        market_id=market_id,
        data=OrderbookData(bids=bids, asks=asks),
        timestamp=time.time(),
    )


def _parse_delta(market_id: str, event: dict[str, Any]) -> OrderbookDelta:
    """Build a delta from the ``{"price", "size", "side"}`` changes an event carries.

    Raises ValueError when no change can be extracted.
    """
    changes = _delta_changes(event)
    if not changes:
        raise ValueError("delta carries no price changes")
    parsed = [
        PriceChange(
            price=Decimal(str(c["price"])),
            size=Decimal(str(c["size"])),
            side=Side(str(c["side"]).upper()),
        )
        for c in changes
    ]
    return OrderbookDelta(market_id=market_id, data=parsed, timestamp=time.time(), raw=event)


def _delta_changes(event: dict[str, Any]) -> list[dict[str, Any]]:
    data = event.get("data", event)
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []
    if "changes" in data or "price_changes" in data:
        return list(data.get("changes") or data.get("price_changes") or [])
    if "price" in data and "size" in data:
        # A single change sent without a wrapping list
        return [data]
    if "bids" in data or "asks" in data:
        return [
            *({**lvl, "side": Side.BUY.value} for lvl in data.get("bids") or []),
            *({**lvl, "side": Side.SELL.value} for lvl in data.get("asks") or []),
        ]
    return []


def parse_event(market_id: str, event: dict[str, Any]) -> OrderbookUpdate | None:
    """Classify one inbound event as a snapshot, a delta, or neither.

    Accepts the tagged form (``type`` of ``snapshot``/``delta`` with a
    ``data`` payload) as well as the CLOB market channel's native
    ``book`` / ``price_change`` events. Raises ValueError (or KeyError)
    for a snapshot or delta whose payload cannot be read.
    """
    kind = event.get("type") or event.get("event_type")
    if kind in ("snapshot", "book"):
        payload = event.get("data")
        if not isinstance(payload, dict):
            payload = event
        return _parse_snapshot(market_id, payload)
    if kind in ("delta", "price_change"):
        return _parse_delta(market_id, event)
    return None


class OrderbookSubscription:
    """Manages a single WebSocket subscription for one market's order book.

    Connects to the WS endpoint, subscribes to the market, and dispatches
    typed snapshot/delta updates to a callback in arrival order. Calling
    the subscription (or :meth:`unsubscribe`) closes it.

    There is no auto-reconnect: a dropped connection is reported through
    ``on_error``/``on_close`` and the caller decides whether to resubscribe.
    """

    PING_INTERVAL = 10.0  # seconds

    def __init__(
        self,
        ws_url: str,
        market_id: str,
        callback: OrderbookCallback,
        on_open: LifecycleHook | None = None,
        on_error: ErrorHook | None = None,
        on_close: LifecycleHook | None = None,
        ping_interval: float | None = None,
        log: Any = None,
    ) -> None:
        self.ws_url = ws_url
        self.market_id = market_id
        self.callback = callback
        self._on_open = on_open
        self._on_error = on_error
        self._on_close = on_close
        self._ping_interval = self.PING_INTERVAL if ping_interval is None else ping_interval
        self._log = (log or logger).bind(market_id=market_id)
        self._ws: ClientConnection | None = None
        self._task: asyncio.Task[None] | None = None
        self._state = ConnectionState.CONNECTING
        self._unsubscribed = False
        self._close_fired = False
        self._close_task: asyncio.Future[Any] | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def active(self) -> bool:
        """Whether updates can still be delivered."""
        return not self._unsubscribed and self._state in (
            ConnectionState.CONNECTING,
            ConnectionState.OPEN,
        )

    def start(self) -> None:
        """Start the connection in a background task on the running loop."""
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(self._on_task_done)

    def unsubscribe(self) -> None:
        """Close the connection. Idempotent and safe before the socket opens.

        Once this returns the update callback is never invoked again.
        """
        if self._unsubscribed:
            return
        self._unsubscribed = True
        if self._state is not ConnectionState.CLOSED:
            self._state = ConnectionState.CLOSING
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._log.debug("ws_unsubscribed")

    __call__ = unsubscribe

    async def wait_closed(self) -> None:
        """Wait until the connection task has finished."""
        if self._task is not None:
            await asyncio.wait([self._task])
            # Let the done-callback run before returning
            await asyncio.sleep(0)
        if self._close_task is not None:
            await asyncio.wait([self._close_task])

    async def _run(self) -> None:
        """Connect, subscribe, and process messages until closed."""
        try:
            await self._connect_and_listen()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._unsubscribed:
                return
            error = exc if isinstance(exc, StreamError) else StreamError(str(exc), cause=exc)
            self._log.warning("ws_error", error=str(exc))
            await self._call_hook(self._on_error, error)

    async def _connect_and_listen(self) -> None:
        """Establish connection, subscribe, and process messages."""
        try:
            self._ws = await websockets.connect(self.ws_url)
        except Exception as exc:
            raise StreamError(f"Failed to connect to {self.ws_url}", cause=exc) from exc

        try:
            if self._unsubscribed:
                return
            subscribe_msg = json.dumps({
                "assets_ids": [self.market_id],
                "type": "market",
            })
            await self._ws.send(subscribe_msg)

            self._state = ConnectionState.OPEN
            self._log.debug("ws_open", url=self.ws_url)
            await self._call_hook(self._on_open)

            ping_task = asyncio.create_task(self._ping_loop())
            try:
                async for raw_msg in self._ws:
                    if self._unsubscribed:
                        break
                    await self._handle_message(raw_msg)
            finally:
                ping_task.cancel()
                try:
                    await ping_task
                except asyncio.CancelledError:
                    pass
        finally:
            if self._state is ConnectionState.OPEN:
                self._state = ConnectionState.CLOSING
            if self._ws is not None:
                await self._ws.close()
                self._ws = None

    async def _ping_loop(self) -> None:
        """Send PING frames at regular intervals to keep the connection alive."""
        if self._ping_interval <= 0:
            return
        while not self._unsubscribed and self._ws is not None:
            try:
                await asyncio.sleep(self._ping_interval)
                if self._ws is not None:
                    await self._ws.ping()
            except asyncio.CancelledError:
                break
            except Exception:
                break

    async def _handle_message(self, raw: str | bytes) -> None:
        """Parse and dispatch a WebSocket message."""
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            # The server answers keepalives with a bare "PONG"
            self._log.debug("ws_non_json_frame", raw=str(raw)[:200])
            return

        if not isinstance(data, list):
            data = [data]

        for event in data:
            if self._unsubscribed:
                return
            if not isinstance(event, dict):
                continue
            try:
                update = parse_event(self.market_id, event)
            except (KeyError, TypeError, ValueError, ArithmeticError):
                self._log.warning("ws_malformed_event", event=str(event)[:200])
                continue
            if update is None:
                self._log.debug("ws_event_ignored", event_type=event.get("event_type"))
                continue
            try:
                result = self.callback(update)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self._log.exception("ws_callback_error", update_type=update.type)

    async def _call_hook(self, hook: Callable[..., Any] | None, *args: Any) -> None:
        if hook is None:
            return
        try:
            result = hook(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            self._log.exception("ws_hook_error")

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._state = ConnectionState.CLOSED
        if self._close_fired:
            return
        self._close_fired = True
        self._log.debug("ws_closed", unsubscribed=self._unsubscribed)
        if self._on_close is None:
            return
        try:
            result = self._on_close()
            if inspect.isawaitable(result):
                self._close_task = asyncio.ensure_future(result)
                self._close_task.add_done_callback(self._on_close_hook_done)
        except Exception:
            self._log.exception("ws_hook_error")

    def _on_close_hook_done(self, future: asyncio.Future[Any]) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            self._log.error("ws_hook_error", error=str(exc), exc_info=exc)


def subscribe_orderbook(
    ws_url: str,
    market_id: str,
    callback: OrderbookCallback,
    on_open: LifecycleHook | None = None,
    on_error: ErrorHook | None = None,
    on_close: LifecycleHook | None = None,
    ping_interval: float | None = None,
    log: Any = None,
) -> OrderbookSubscription:
    """Open a subscription and return it; call the result to unsubscribe.

    Must be called from a running event loop.
    """
    sub = OrderbookSubscription(
        ws_url=ws_url,
        market_id=market_id,
        callback=callback,
        on_open=on_open,
        on_error=on_error,
        on_close=on_close,
        ping_interval=ping_interval,
        log=log,
    )
    sub.start()
    return sub
