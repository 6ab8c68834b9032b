"""Main entry point for the wrapped alpha bridge CLI."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from bridge import BridgeApp
from config import BridgeSettings
from core.errors import BridgeError, TransferAborted
from core.types import TransferDraft, TransferStatus
from prompting import ConsolePrompter

logger = logging.getLogger(__name__)


def setup_logging(level: str = "WARNING") -> None:
    """Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler("alpha-bridge.log"),
        ],
    )


def _report(args: argparse.Namespace, outcome) -> int:
    if getattr(args, "json", False) and outcome is not None:
        print(json.dumps(outcome.to_dict(), indent=2))
    return _outcome_code(outcome)


def _outcome_code(outcome) -> int:
    # An unconfirmed delivery is not a failure; the message may still land
    if outcome is not None and getattr(outcome, "status", None) is TransferStatus.FAILED_ERROR:
        return 1
    return 0


async def _account(app: BridgeApp, args: argparse.Namespace) -> int:
    await app.account(args.network)
    return 0


async def _bridge(app: BridgeApp, args: argparse.Namespace) -> int:
    draft = TransferDraft(
        netuid=args.netuid,
        from_chain=args.from_chain,
        to_chain=args.to_chain,
        amount=args.amount,
        destination=args.to,
    )
    return _report(args, await app.bridge(draft))


async def _wrap(app: BridgeApp, args: argparse.Namespace) -> int:
    await app.wrap(args.netuid, args.amount)
    return 0


async def _unwrap(app: BridgeApp, args: argparse.Namespace) -> int:
    await app.unwrap(args.netuid, args.amount)
    return 0


async def _history(app: BridgeApp, args: argparse.Namespace) -> int:
    await app.transfer_history(args.limit)
    return 0


async def _status(app: BridgeApp, args: argparse.Namespace) -> int:
    return _report(args, await app.status(args.tx_hash))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="alpha-bridge", description="Wrapped alpha token bridge")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    account = subparsers.add_parser("account", aliases=["a"], help="Show balances")
    account.add_argument("--network", default=None)
    account.set_defaults(func=_account)

    bridge = subparsers.add_parser("bridge", aliases=["b"], help="Bridge wrapped tokens")
    bridge.add_argument("--netuid", default=None)
    bridge.add_argument("--from-chain", dest="from_chain", default=None)
    bridge.add_argument("--to-chain", dest="to_chain", default=None)
    bridge.add_argument("--amount", default=None, help='Amount or "all"')
    bridge.add_argument("--to", default=None, help="Destination address")
    bridge.add_argument("--confirm-fee", action="store_true", help="Ask before paying the native fee")
    bridge.add_argument("--json", action="store_true", help="Print the final outcome as JSON")
    bridge.set_defaults(func=_bridge)

    wrap = subparsers.add_parser("wrap", aliases=["w"], help="Convert TAO to wrapped tokens")
    wrap.add_argument("--netuid", default=None)
    wrap.add_argument("--amount", default=None)
    wrap.set_defaults(func=_wrap)

    unwrap = subparsers.add_parser("unwrap", aliases=["u"], help="Convert wrapped tokens to TAO")
    unwrap.add_argument("--netuid", default=None)
    unwrap.add_argument("--amount", default=None)
    unwrap.set_defaults(func=_unwrap)

    history = subparsers.add_parser("history", help="List recent transfers")
    history.add_argument("--limit", type=int, default=10)
    history.set_defaults(func=_history)

    status = subparsers.add_parser("status", help="Check delivery of an earlier transfer")
    status.add_argument("tx_hash")
    status.add_argument("--json", action="store_true", help="Print the final outcome as JSON")
    status.set_defaults(func=_status)

    return parser


async def async_main(args: argparse.Namespace, settings: BridgeSettings) -> int:
    """Async main function.

    Returns:
        Exit code
    """
    app = BridgeApp(
        settings,
        prompter=ConsolePrompter(),
        confirm_fee=getattr(args, "confirm_fee", False),
    )
    try:
        await app.start()
        return await args.func(app, args)
    except TransferAborted as e:
        logger.info(f"Aborted: {e}")
        print(e)
        return 0
    except BridgeError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await app.stop()


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, configure logging and run one command."""
    args = build_parser().parse_args(argv)

    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    try:
        settings = BridgeSettings.from_env()
    except BridgeError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_level or settings.log_level)

    try:
        return asyncio.run(async_main(args, settings))
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        return 130


def main() -> None:
    """Main entry point."""
    sys.exit(run())


if __name__ == "__main__":
    main()
