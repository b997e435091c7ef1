"""Command-line entry.

Usage:
    python -m balance_ledger.cli balance <user_id>
    python -m balance_ledger.cli transact --key K --user U --amount A --type credit|debit
"""

import argparse
import asyncio
import sys

from balance_ledger.core.config import get_settings
from balance_ledger.core.exceptions import LedgerError
from balance_ledger.core.logging import configure_logging
from balance_ledger.db.init import init_store
from balance_ledger.schemas.transaction import TransactionInput
from balance_ledger.services.transactions import create_transact_fn
from balance_ledger.services.users import create_user_balance_fn


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="balance_ledger")
    sub = parser.add_subparsers(dest="command", required=True)

    balance = sub.add_parser("balance", help="print a user's balance")
    balance.add_argument("user_id")

    transact = sub.add_parser("transact", help="apply a credit or debit")
    transact.add_argument("--key", required=True, help="idempotency key")
    transact.add_argument("--user", required=True, help="user id")
    transact.add_argument("--amount", required=True, help="positive decimal amount")
    transact.add_argument("--type", required=True, help="credit or debit")
    return parser


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    store = await init_store(settings)
    try:
        if args.command == "balance":
            get_user_balance = create_user_balance_fn(store, settings)
            balance = await get_user_balance(args.user_id)
            print(f"User {args.user_id}'s balance is {balance}")
        else:
            transact = create_transact_fn(store, settings)
            await transact(
                TransactionInput(
                    idempotency_key=args.key,
                    user_id=args.user,
                    amount=args.amount,
                    type=args.type,
                )
            )
            print(f"Transaction {args.key} applied")
        return 0
    except LedgerError as e:
        print(f"{e.code}: {e.message}", file=sys.stderr)
        return 1
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    configure_logging(debug=settings.debug)
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
