"""Seed the users collection. Usage: python -m balance_ledger.db.seed"""

import asyncio
import random
from decimal import ROUND_DOWN, Decimal

from balance_ledger.core.config import get_settings
from balance_ledger.core.logging import configure_logging, get_logger
from balance_ledger.schemas.user import UserRecord
from balance_ledger.store.base import LedgerStore

log = get_logger(__name__)


def make_users(size: int, currency: str, rng: random.Random | None = None) -> list[UserRecord]:
    """Users "1".."size"; about half get a random balance below 10000."""
    rng = rng or random.Random()
    users = []
    for i in range(size):
        balance = None
        if rng.random() > 0.5:
            balance = Decimal(rng.random() * 10_000).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
        users.append(UserRecord(user_id=str(i + 1), balance=balance, currency=currency))
    return users


async def seed(store: LedgerStore, size: int, currency: str, rng: random.Random | None = None) -> int:
    users = make_users(size, currency, rng)
    written = await store.put_users(users)
    log.info("users_seeded", count=written, funded=sum(1 for u in users if u.balance is not None))
    return written


async def main() -> None:
    from balance_ledger.db.init import init_store

    settings = get_settings()
    configure_logging(debug=settings.debug)
    store = await init_store(settings)
    try:
        await seed(store, settings.user_seed_size, settings.default_currency)
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
