#!/usr/bin/env python3
"""List active Polymarket markets.

Usage::

    # Table of the first 25 active markets
    python scripts/list_markets.py

    # One market by ID
    python scripts/list_markets.py --id 12345

    # Custom config file, JSON output
    python scripts/list_markets.py --config config/settings.yaml --json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from decimal import Decimal

from polycavora import HttpError, Market, PolyCavoraSDK
from polycavora.core.config import load_settings
from polycavora.core.logging import setup_logging


def _decimal_default(obj: object) -> str:
    if isinstance(obj, Decimal):
        return str(obj)
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def _render_table(markets: list[Market], top: int) -> str:
    """Render markets as an ASCII table."""
    lines: list[str] = []
    header = f"{'ID':>8}  {'Prices':<14}  {'Volume':>12}  Question"
    lines.append(header)
    lines.append("-" * len(header))

    for m in markets[:top]:
        prices = "/".join(str(p) for p in m.outcome_prices)[:14]
        volume = f"{m.volume:.0f}" if m.volume is not None else "-"
        lines.append(f"{m.id[:8]:>8}  {prices:<14}  {volume:>12}  {m.question[:60]}")

    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level="WARNING")

    async with PolyCavoraSDK(settings) as sdk:
        try:
            if args.id:
                markets = [await sdk.get_market(args.id)]
            else:
                markets = await sdk.get_markets()
        except HttpError as exc:
            print(f"Request failed ({exc.status}): {exc.message}", file=sys.stderr)
            return 1

    if args.json:
        rows = [m.model_dump(exclude={"raw"}) for m in markets]
        print(json.dumps(rows, indent=2, default=_decimal_default))
    else:
        print(_render_table(markets, args.top))
        print(f"\nShowing {min(args.top, len(markets))} of {len(markets)}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="List Polymarket markets.")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument("--id", default=None, help="Fetch a single market by ID")
    parser.add_argument(
        "--top",
        type=int,
        default=25,
        help="Number of rows to display (default: 25)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output raw JSON instead of table",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
