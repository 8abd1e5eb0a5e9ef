from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from cartpricing.app import quote_cart
from cartpricing.config import EngineConfig, configure_logging, get_engine_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from cartpricing.app import QuoteResult

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Price booking cart items")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log engine activity at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    quote = subparsers.add_parser("quote", help="Price a cart document and print its totals")
    quote.add_argument("cart", type=Path, help="Path to a cart + catalogue JSON document")
    quote.add_argument(
        "--debounce-ms",
        type=float,
        default=None,
        help="Quiet period before a fetch cycle starts (defaults to config)",
    )
    quote.add_argument(
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Log engine activity at DEBUG level",
    )
    return parser.parse_args(list(argv))


def _engine_config(args: argparse.Namespace) -> EngineConfig:
    config = get_engine_config()
    if args.debounce_ms is None:
        return config
    if args.debounce_ms < 0:
        raise ValueError("Debounce must be non-negative")
    return EngineConfig(
        debounce_seconds=args.debounce_ms / 1000,
        autosave_debounce_seconds=config.autosave_debounce_seconds,
        fetch_timeout_seconds=config.fetch_timeout_seconds,
    )


def _format_totals(result: QuoteResult) -> str:
    totals = result.totals
    lines = [f"Cart item {result.tree.cart.id}"]
    for label, component in (
        ("Accommodation", totals.accommodation),
        ("Add-ons", totals.addons),
        ("Menu", totals.menu),
    ):
        lines.append(
            f"  {label:<14} {component.cost:>14} - {component.discount:>12} = {component.net:>14}"
        )
    for line in totals.addon_lines:
        name = line.addon_id if line.child_id is None else f"{line.addon_id}/{line.child_id}"
        lines.append(f"    {name:<24} {line.cost:>14}")
    for key, reason in result.rejected_vouchers.items():
        lines.append(f"  voucher rejected for {key}: {reason}")
    lines.append(f"  {'Grand total':<14} {totals.grand_total:>46}")
    return "\n".join(lines)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        engine_config = _engine_config(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "quote":
            result = quote_cart(parsed_args.cart, engine_config=engine_config)
            print(_format_totals(result))  # noqa: T201
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except Exception:
        log.exception("Fatal error while pricing")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
