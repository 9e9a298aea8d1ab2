#!/usr/bin/env python3
"""Stream live orderbook updates for one market.

Usage::

    python scripts/live_orderbook.py <token_id>
    python scripts/live_orderbook.py <token_id> --duration 60

The market can also come from the POLYCAVORA_MARKET_ID environment variable.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys

from polycavora import OrderbookUpdate, PolyCavoraSDK
from polycavora.core.config import load_settings
from polycavora.core.logging import setup_logging


def _print_update(update: OrderbookUpdate) -> None:
    if update.type == "snapshot":
        print(f"Best bid/ask: {update.best_bid} / {update.best_ask}")
    else:
        changes = ", ".join(f"{c.side} {c.size}@{c.price}" for c in update.data)
        print(f"Delta: {changes}")


async def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level="DEBUG" if args.debug else "WARNING", fmt="console")
    closed = asyncio.Event()

    def _on_error(exc: BaseException) -> None:
        print(f"WS error: {exc}", file=sys.stderr)

    def _on_close() -> None:
        print("WS closed", file=sys.stderr)
        closed.set()

    async with PolyCavoraSDK(settings, debug=args.debug) as sdk:
        off = sdk.on_orderbook(
            args.market_id,
            _print_update,
            on_open=lambda: print("WS open", file=sys.stderr),
            on_error=_on_error,
            on_close=_on_close,
        )
        try:
            await asyncio.wait_for(closed.wait(), timeout=args.duration)
        except TimeoutError:
            pass
        off()
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Stream a Polymarket orderbook.")
    parser.add_argument(
        "market_id",
        nargs="?",
        default=os.environ.get("POLYCAVORA_MARKET_ID"),
        help="CLOB token ID to subscribe to",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=15.0,
        help="Seconds to stream before unsubscribing (default: 15)",
    )
    parser.add_argument("--config", default=None, help="Path to settings YAML")
    parser.add_argument("--debug", action="store_true", help="Enable SDK debug logging")
    args = parser.parse_args()
    if not args.market_id:
        parser.error("market_id is required (or set POLYCAVORA_MARKET_ID)")

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
