#!/usr/bin/env python3
"""Simple CLI for trying the quote engine locally"""

import argparse
import asyncio
from decimal import Decimal, InvalidOperation

from .core.swap.errors import SwapError
from .core.swap.models import Quote
from .core.swap.pricing import get_price_oracle
from .core.swap.quoting import get_quote_service
from .core.swap.tokens import get_decimals, to_base_units, to_ui_amount
from .logging_config import setup_logging


def print_quote(quote: Quote) -> None:
    """Pretty print a normalized quote"""
    out_ui = to_ui_amount(quote.output_amount, quote.output_asset)
    min_ui = to_ui_amount(quote.minimum_output_amount, quote.output_asset)
    in_ui = to_ui_amount(quote.input_amount, quote.input_asset)

    marker = "✅" if quote.executable else "⚠️ "
    print(f"\n{marker} Quote via {quote.provider_id.value}")
    print("=" * 50)
    print(f"In:          {in_ui} ({quote.input_asset})")
    print(f"Out:         {out_ui} ({quote.output_asset})")
    print(f"Minimum out: {min_ui} @ {quote.slippage_bps} bps slippage")
    print(f"Price impact: {quote.price_impact_percent}%")

    info = quote.price_info
    if info.effective_rate is not None:
        print(f"Rate:        {info.effective_rate:.6f}")
    if info.input_price_usd is not None and info.output_price_usd is not None:
        print(f"Prices:      ${info.input_price_usd} -> ${info.output_price_usd}")

    if quote.route:
        print(f"Route:       {len(quote.route)} hop(s)")
    if not quote.executable:
        print("\nEstimate only: DEX APIs were unreachable, this quote cannot be executed.")


async def cli_quote(input_asset: str, output_asset: str, amount: str, slippage_bps: int, raw: bool) -> None:
    try:
        value = Decimal(amount)
    except InvalidOperation:
        print(f"❌ Not a number: {amount}")
        return
    base_units = int(value) if raw else to_base_units(value, input_asset)

    print(f"🔍 Quoting {base_units} base units ({get_decimals(input_asset)} decimals)...")
    try:
        quote = await get_quote_service().get_quote(input_asset, output_asset, base_units, slippage_bps)
    except SwapError as exc:
        print(f"❌ {exc.message} [{exc.code}]")
        return
    print_quote(quote)


async def cli_price(asset: str) -> None:
    price = await get_price_oracle().get_usd_price(asset)
    if price is None:
        print(f"❌ No price available for {asset}")
        return
    print(f"💵 {asset}: ${price}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gaia swap CLI")
    subparsers = parser.add_subparsers(dest="command")

    quote_parser = subparsers.add_parser("quote", help="Get a swap quote")
    quote_parser.add_argument("input_asset", help="Input token mint")
    quote_parser.add_argument("output_asset", help="Output token mint")
    quote_parser.add_argument("amount", help="Amount in whole units (see --raw)")
    quote_parser.add_argument("--slippage-bps", type=int, default=50, help="Slippage tolerance in bps (default: 50)")
    quote_parser.add_argument("--raw", action="store_true", help="Treat amount as smallest units")

    price_parser = subparsers.add_parser("price", help="Get a token's USD price")
    price_parser.add_argument("asset", help="Token mint")

    return parser


async def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "quote":
        await cli_quote(args.input_asset, args.output_asset, args.amount, args.slippage_bps, args.raw)
    elif args.command == "price":
        await cli_price(args.asset)
    else:
        parser.print_help()


def run() -> None:
    setup_logging("WARNING")
    asyncio.run(main())


if __name__ == "__main__":
    run()
