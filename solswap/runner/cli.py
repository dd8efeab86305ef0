"""Command-line entry point."""

import argparse
import asyncio
import sys

import structlog

from ..config.logging import setup_logging
from ..config.settings import PROFILES, AppSettings, load_settings
from ..core.errors import SolswapError
from ..core.types import QuoteStatus, QuoteView
from ..core.units import round_display
from ..exec.submission import short_signature
from .session import SwapSession

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="solswap", description="Solana token swaps")
    parser.add_argument("--config", default=None, help="Configuration file path")
    parser.add_argument(
        "--profile", default="mainnet", choices=PROFILES, help="Configuration profile"
    )
    parser.add_argument("--log-level", default=None, help="Override the log level")

    sub = parser.add_subparsers(dest="command", required=True)

    tokens = sub.add_parser("tokens", help="List selectable tokens")
    tokens.add_argument("--query", default="", help="Filter by symbol, name or mint")

    lookup = sub.add_parser("lookup", help="Look up token metadata by mint")
    lookup.add_argument("addresses", nargs="+", metavar="ADDRESS")
    lookup.add_argument("--add", action="store_true", help="Save as custom tokens")

    for name, help_text in (("quote", "Quote a swap"), ("swap", "Quote and submit a swap")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--from", dest="from_token", default="SOL", help="Symbol or mint")
        cmd.add_argument("--to", dest="to_token", default="USDC", help="Symbol or mint")
        cmd.add_argument("--amount", required=True, help="Amount in display units")
        if name == "swap":
            cmd.add_argument("--signer", default=None, help="Wallet address")

    wallet = sub.add_parser("wallet", help="Show a wallet overview")
    wallet.add_argument("address")

    sub.add_parser("watchlist", help="Show balances of favorite wallets")

    favorite = sub.add_parser("favorite", help="Add or remove a favorite wallet")
    favorite.add_argument("address")
    favorite.add_argument("--remove", action="store_true")

    network = sub.add_parser("network", help="Show or toggle mainnet/devnet")
    network.add_argument("--toggle", action="store_true")

    return parser


def _settings_from_args(args: argparse.Namespace) -> AppSettings:
    if args.config:
        return load_settings(args.profile, args.config)
    return AppSettings(profile=args.profile, is_devnet=args.profile == "devnet")


def format_view(view: QuoteView) -> str:
    pair = f"{view.input_token.symbol} -> {view.output_token.symbol}"
    if view.status is QuoteStatus.IDLE:
        return f"{pair}: enter an amount"
    if view.status is QuoteStatus.FAILED:
        return f"{pair}: {view.request.last_error}"
    if view.status is not QuoteStatus.READY or view.quote is None:
        return f"{pair}: {view.status.value}"

    lines = [
        f"{view.amount_text} {view.input_token.symbol} -> "
        f"{round_display(view.output_amount_display or '0')} {view.output_token.symbol}",
        f"  rate: 1 {view.input_token.symbol} = "
        f"{round_display(view.exchange_rate or '0')} {view.output_token.symbol}",
        f"  minimum received: {round_display(view.minimum_received_display or '0')} "
        f"{view.output_token.symbol}",
        f"  price impact: {view.price_impact_percent:.4f}%",
        f"  route hops: {view.route_hop_count}",
        f"  slippage: {view.quote.slippage_tolerance_bps} bps",
    ]
    for side, detached in (
        ("input", view.input_token_detached),
        ("output", view.output_token_detached),
    ):
        if detached:
            lines.append(f"  warning: {side} token is no longer in the catalog")
    return "\n".join(lines)


async def _dispatch(session: SwapSession, args: argparse.Namespace) -> int:
    command = args.command

    if command == "tokens":
        for token in session.tokens(args.query):
            print(f"{token.symbol:<10} {token.decimals:>3}  {token.mint}  {token.display_name}")
        return 0

    if command == "lookup":
        if args.add:
            found = await session.add_custom_tokens(args.addresses)
        elif len(args.addresses) == 1:
            found = [await session.lookup.lookup_one(args.addresses[0])]
        else:
            found = await session.lookup.lookup_batch(args.addresses)
        for token in found:
            print(f"{token.symbol:<10} {token.decimals:>3}  {token.mint}  {token.display_name}")
        if not found:
            print("No tokens found")
        return 0

    if command in ("quote", "swap"):
        view = await session.quote(args.from_token, args.to_token, args.amount)
        print(format_view(view))
        if view.status is not QuoteStatus.READY:
            return 1
        if command == "swap":
            signature = await session.swap(args.signer)
            print(f"Swap submitted: {short_signature(signature)}")
            print(signature)
        return 0

    if command == "wallet":
        overview = await session.explorer.overview(args.address)
        print(f"{overview.address}")
        print(f"  SOL: {overview.sol:.9f}")
        for balance in overview.tokens:
            print(f"  {balance.mint}: {balance.ui_amount}")
        for sig in overview.signatures:
            status = "ok" if sig.ok else "failed"
            print(f"  {short_signature(sig.signature)} {status} {sig.block_time or '-'}")
        return 0

    if command == "watchlist":
        items = await session.explorer.watchlist()
        if not items:
            print("No favorites")
        for item in items:
            balance = "unavailable" if item.balance is None else f"{item.balance:.9f} SOL"
            print(f"{item.address}  {balance}")
        return 0

    if command == "favorite":
        if args.remove:
            await session.state.remove_favorite(args.address)
            print(f"Removed {args.address}")
        else:
            await session.state.add_favorite(args.address)
            print(f"Added {args.address}")
        return 0

    if command == "network":
        snapshot = session.state.snapshot
        if args.toggle:
            snapshot = await session.state.toggle_network()
        print("devnet" if snapshot.is_devnet else "mainnet")
        return 0

    raise ValueError(f"Unknown command: {command}")


async def main(argv: list[str] | None = None) -> int:
    """Main entry point for the swap CLI."""
    args = build_parser().parse_args(argv)

    try:
        settings = _settings_from_args(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_level or settings.log_level)
    logger.debug("Settings loaded", profile=args.profile, config=args.config)

    async with SwapSession(settings) as session:
        try:
            return await _dispatch(session, args)
        except SolswapError as e:
            logger.error("Command failed", command=args.command, error=str(e))
            print(f"Error: {e}", file=sys.stderr)
            return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nStopped by user.")
        sys.exit(130)


if __name__ == "__main__":
    run()
