from typing import Any, Iterable

from bson.decimal128 import Decimal128
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession
from pymongo import ReplaceOne
from pymongo.errors import DuplicateKeyError

from balance_ledger.core.logging import get_logger
from balance_ledger.models.transaction import TransactionDocument
from balance_ledger.models.user import UserDocument
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

log = get_logger(__name__)


class _GuardFailed(Exception):
    def __init__(self, index: int, item: dict[str, Any] | None = None):
        self.index = index
        self.item = item
        super().__init__(f"guard failed at item {index}")


class MongoLedgerStore(LedgerStore):
    """MongoDB backend. Requires init_beanie to have run for the document models.

    transact_write runs inside a client session transaction, so the server must be
    a replica set or sharded cluster.
    """

    def __init__(self, client: AsyncIOMotorClient):
        self._client = client

    def _users(self) -> Any:
        return UserDocument.get_motor_collection()

    def _transactions(self) -> Any:
        return TransactionDocument.get_motor_collection()

    async def get_user(self, user_id: str) -> UserRecord | None:
        doc = await UserDocument.find_one(UserDocument.user_id == user_id)
        if not doc:
            return None
        return UserRecord(user_id=doc.user_id, balance=doc.balance, currency=doc.currency)

    async def get_transaction(self, idempotency_key: str) -> TransactionRecord | None:
        doc = await TransactionDocument.find_one(TransactionDocument.idempotency_key == idempotency_key)
        if not doc:
            return None
        return TransactionRecord(
            idempotency_key=doc.idempotency_key,
            user_id=doc.user_id,
            amount=doc.amount,
            type=doc.type,
            timestamp=doc.timestamp,
        )

    async def transact_write(self, items: list[WriteItem]) -> None:
        try:
            async with await self._client.start_session() as session:
                async with session.start_transaction():
                    for index, item in enumerate(items):
                        await self._write(index, item, session)
        except _GuardFailed as e:
            reasons = [CancellationReason() for _ in items]
            reasons[e.index] = CancellationReason(CONDITIONAL_CHECK_FAILED, e.item)
            raise TransactionCanceled(reasons) from e

    async def _write(self, index: int, item: WriteItem, session: AsyncIOMotorClientSession) -> None:
        users = self._users()
        if isinstance(item, BalanceCredit):
            await users.update_one(
                {"user_id": item.user_id},
                {"$inc": {"balance": Decimal128(item.amount)}},
                upsert=True,
                session=session,
            )
        elif isinstance(item, BalanceDebit):
            amount = Decimal128(item.amount)
            result = await users.update_one(
                {"user_id": item.user_id, "balance": {"$exists": True, "$gte": amount}},
                {"$inc": {"balance": Decimal128(-item.amount)}},
                session=session,
            )
            if result.matched_count == 0:
                raise _GuardFailed(index, {"user_id": item.user_id})
        elif isinstance(item, LedgerInsert):
            record = item.record
            try:
                await self._transactions().insert_one(
                    {
                        "idempotency_key": record.idempotency_key,
                        "user_id": record.user_id,
                        "amount": Decimal128(record.amount),
                        "type": record.type.value,
                        "timestamp": record.timestamp,
                    },
                    session=session,
                )
            except DuplicateKeyError as e:
                key_value = (e.details or {}).get("keyValue") or {}
                raise _GuardFailed(index, dict(key_value)) from e
        else:
            raise TypeError(f"Unsupported write item: {item!r}")

    async def put_users(self, users: Iterable[UserRecord]) -> int:
        ops = []
        for user in users:
            fields: dict[str, Any] = {"user_id": user.user_id}
            if user.balance is not None:
                fields["balance"] = Decimal128(user.balance)
            if user.currency is not None:
                fields["currency"] = user.currency
            # Whole-record replace: an unfunded seed clears any earlier balance
            ops.append(ReplaceOne({"user_id": user.user_id}, fields, upsert=True))
        if not ops:
            return 0
        result = await self._users().bulk_write(ops, ordered=False)
        log.info("users_upserted", upserted=result.upserted_count, modified=result.modified_count)
        return len(ops)

    async def close(self) -> None:
        self._client.close()
