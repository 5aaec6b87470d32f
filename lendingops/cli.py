"""Command-line interface for the lending pool operations console."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import load_config, resolve_network
from .errors import ConfigurationError, LendingOpsError, MissingConfigurationError
from .logging_setup import configure_logging
from .models import FailureCategory, OperationKind, OperationOutcome
from .protocols.aave_v2.error_codes import HINTS, classify
from .services import Console

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="lending-ops",
        description="Operator console for Aave-V2-style lending pools",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--network",
        default=None,
        help="Target network (default: $NETWORK or localhost)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("status", help="Reserve configuration and eligibility for TOKEN_ADDRESS")
    sub.add_parser("paused", help="Check whether the lending pool is paused")
    sub.add_parser("reserves", help="List every reserve with its status")

    balances = sub.add_parser("balances", help="Wallet and deposited balances per reserve")
    balances.add_argument("--user", default=None, help="Account to inspect (default: signer)")
    balances.add_argument(
        "--nonzero", action="store_true", help="Only show reserves with a balance"
    )

    health = sub.add_parser("health", help="Account health snapshot")
    health.add_argument("--user", default=None, help="Account to inspect (default: signer)")

    for kind in OperationKind:
        op = sub.add_parser(kind.value, help=f"{kind.value.capitalize()} TOKEN_ADDRESS")
        op.add_argument(
            "amount",
            nargs="?",
            default=None,
            help=(
                f"Amount in whole tokens (default: TOKEN_{kind.value.upper()}_AMOUNT)"
                + ("; 0 or 'max' for the full amount" if kind.accepts_full_amount else "")
            ),
        )

    return parser


def report_error(error: Exception) -> None:
    """Print a failure with its classification and the original message."""
    if isinstance(error, (MissingConfigurationError, ConfigurationError)):
        print(f"Error [{FailureCategory.MISSING_CONFIGURATION.value}]: {error}", file=sys.stderr)
        return
    classified = classify(str(error))
    print(f"Error [{classified.kind.value}]: {classified.hint}", file=sys.stderr)
    print(f"Original error: {error}", file=sys.stderr)


def report_outcome(outcome: OperationOutcome) -> None:
    if outcome.succeeded:
        print(f"{outcome.request.kind.value} confirmed: {outcome.action_tx}")
        return
    failure = outcome.failure
    print(f"Error {failure.describe()}", file=sys.stderr)
    if failure.kind is not None:
        print(f"Hint: {HINTS[failure.kind]}", file=sys.stderr)
    if failure.category == FailureCategory.UNCONFIRMED:
        print("The transaction may still be mined; check it before retrying.", file=sys.stderr)
    elif failure.category == FailureCategory.READ_FAILURE:
        print("Nothing was rejected on chain; check the RPC endpoints and retry.", file=sys.stderr)


async def _run(args: argparse.Namespace) -> int:
    """Execute the selected command and return the exit status."""
    configure_logging(args.log_level)
    try:
        config = load_config(args.config)
        profile = resolve_network(override=args.network)
        console = Console(config, profile)

        if args.command == "status":
            status = await console.status()
            return EXIT_OK if status.usable else EXIT_FAILURE
        if args.command == "paused":
            paused = await console.paused()
            return EXIT_FAILURE if paused is None else EXIT_OK
        if args.command == "reserves":
            await console.reserves()
            return EXIT_OK
        if args.command == "balances":
            ok = await console.balances(args.user, only_nonzero=args.nonzero)
            return EXIT_OK if ok else EXIT_FAILURE
        if args.command == "health":
            await console.health(args.user)
            return EXIT_OK

        outcome = await console.operate(OperationKind(args.command), args.amount)
        report_outcome(outcome)
        return EXIT_OK if outcome.succeeded else EXIT_FAILURE
    except (LendingOpsError, FileNotFoundError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        report_error(e)
        return EXIT_FAILURE


def main(argv: list[str] | None = None) -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_FAILURE)

    sys.exit(asyncio.run(_run(args)))
