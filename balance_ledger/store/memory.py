import asyncio
from typing import Iterable

from balance_ledger.schemas.transaction import TransactionRecord
from balance_ledger.schemas.user import UserRecord
from balance_ledger.store.base import (
    CONDITIONAL_CHECK_FAILED,
    BalanceCredit,
    BalanceDebit,
    CancellationReason,
    LedgerInsert,
    LedgerStore,
    TransactionCanceled,
    WriteItem,
)


class InMemoryLedgerStore(LedgerStore):
    """Process-local store. Every guard is evaluated before any write is applied."""

    def __init__(self) -> None:
        self.users: dict[str, UserRecord] = {}
        self.transactions: dict[str, TransactionRecord] = {}
        self._lock = asyncio.Lock()

    async def get_user(self, user_id: str) -> UserRecord | None:
        user = self.users.get(user_id)
        return user.model_copy() if user else None

    async def get_transaction(self, idempotency_key: str) -> TransactionRecord | None:
        record = self.transactions.get(idempotency_key)
        return record.model_copy() if record else None

    async def transact_write(self, items: list[WriteItem]) -> None:
        async with self._lock:
            reasons = [self._check(item) for item in items]
            if any(r.failed for r in reasons):
                raise TransactionCanceled(reasons)
            for item in items:
                self._apply(item)

    async def put_users(self, users: Iterable[UserRecord]) -> int:
        count = 0
        async with self._lock:
            for user in users:
                self.users[user.user_id] = user.model_copy()
                count += 1
        return count

    def _check(self, item: WriteItem) -> CancellationReason:
        if isinstance(item, BalanceDebit):
            user = self.users.get(item.user_id)
            if user is None or user.balance is None or user.balance < item.amount:
                item_state = {"user_id": item.user_id}
                if user is not None and user.balance is not None:
                    item_state["balance"] = user.balance
                return CancellationReason(CONDITIONAL_CHECK_FAILED, item_state)
        elif isinstance(item, LedgerInsert):
            existing = self.transactions.get(item.record.idempotency_key)
            if existing is not None:
                return CancellationReason(CONDITIONAL_CHECK_FAILED, existing.model_dump())
        return CancellationReason()

    def _apply(self, item: WriteItem) -> None:
        if isinstance(item, BalanceCredit):
            user = self.users.get(item.user_id) or UserRecord(user_id=item.user_id)
            user.balance = (user.balance or 0) + item.amount
            self.users[item.user_id] = user
        elif isinstance(item, BalanceDebit):
            user = self.users[item.user_id]
            user.balance = user.balance - item.amount
        elif isinstance(item, LedgerInsert):
            self.transactions[item.record.idempotency_key] = item.record.model_copy()
