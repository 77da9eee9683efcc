"""Command-line interface for the Vesu leverage engine."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .chains.starknet.submitter import StarknetSubmitter
from .config import load_config
from .logging_setup import configure_logging
from .models import OperationResult
from .services import LeverService


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="vesu-lever",
        description="Open, re-target and unwind Vesu borrow and multiply positions",
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
        "--dry-run",
        action="store_true",
        help="Compose the call batch without submitting it",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("collateral", help="Collateral token symbol, e.g. ETH")
    common.add_argument("debt", help="Debt token symbol, e.g. USDC")
    common.add_argument("--pool", default=None, help="Pool id (default: from config)")

    slippage = argparse.ArgumentParser(add_help=False)
    slippage.add_argument(
        "--slippage-bps",
        type=int,
        default=None,
        help="Swap slippage tolerance in basis points (default: from config)",
    )

    sub = parser.add_subparsers(dest="command")

    borrow = sub.add_parser("borrow", parents=[common], help="Deposit collateral and borrow")
    borrow.add_argument("amount", help="Collateral amount to deposit")
    borrow.add_argument("--target-ltv", required=True, help="Target LTV in percent")

    multiply = sub.add_parser(
        "multiply", parents=[common, slippage], help="Open or increase a multiply position"
    )
    multiply.add_argument("amount", help="Collateral margin to deposit")
    multiply.add_argument("--target-ltv", required=True, help="Target LTV in percent")

    update = sub.add_parser(
        "update", parents=[common, slippage], help="Re-target a multiply position's LTV"
    )
    update.add_argument("--target-ltv", required=True, help="Target LTV in percent")

    decrease = sub.add_parser(
        "decrease",
        aliases=["close"],
        parents=[common, slippage],
        help="Withdraw margin from, or fully close, a multiply position",
    )
    decrease.add_argument(
        "amount", nargs="?", default=None, help="Margin to withdraw (omit or 0 to close)"
    )

    repay = sub.add_parser("repay", parents=[common], help="Repay borrowed debt")
    repay.add_argument(
        "amount", nargs="?", default=None, help="Debt to repay (omit or 0 to repay all)"
    )

    return parser


def format_result(result: OperationResult) -> str:
    payload = {
        "status": result.status,
        "operation": result.operation,
        "transaction_hash": result.transaction_hash,
        "collateral": result.collateral_symbol,
        "debt": result.debt_symbol,
        "amounts": result.amounts,
        "warnings": list(result.warnings),
    }
    if result.batch is not None:
        payload["calls"] = [
            {"to": c.target, "entrypoint": c.entrypoint, "calldata": [hex(x) for x in c.calldata]}
            for c in result.batch.calls
        ]
    if not result.ok:
        payload.update(error=result.error, error_type=result.error_type, step=result.step)
    return json.dumps(payload, indent=2)


async def _run(args: argparse.Namespace) -> OperationResult:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    service = LeverService.from_config(config)
    submitter = StarknetSubmitter(config.starknet, config.account)

    if args.command == "borrow":
        return await service.open_borrow(
            submitter, args.collateral, args.debt, args.amount, args.target_ltv,
            pool_id=args.pool, dry_run=args.dry_run,
        )
    if args.command == "multiply":
        return await service.open_multiply(
            submitter, args.collateral, args.debt, args.amount, args.target_ltv,
            pool_id=args.pool, slippage_bps=args.slippage_bps, dry_run=args.dry_run,
        )
    if args.command == "update":
        return await service.update_multiply(
            submitter, args.collateral, args.debt, args.target_ltv,
            pool_id=args.pool, slippage_bps=args.slippage_bps, dry_run=args.dry_run,
        )
    if args.command in ("decrease", "close"):
        amount = None if args.command == "close" else args.amount
        return await service.decrease_multiply(
            submitter, args.collateral, args.debt, amount,
            pool_id=args.pool, slippage_bps=args.slippage_bps, dry_run=args.dry_run,
        )
    if args.command == "repay":
        return await service.repay_borrow(
            submitter, args.collateral, args.debt, args.amount,
            pool_id=args.pool, dry_run=args.dry_run,
        )
    raise ValueError(f"Unknown command {args.command!r}")


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    result = asyncio.run(_run(args))
    print(format_result(result))
    if not result.ok:
        sys.exit(1)
