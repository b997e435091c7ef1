"""MongoLedgerStore against fake motor collections and session."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from bson.decimal128 import Decimal128
from pymongo import ReplaceOne
from pymongo.errors import DuplicateKeyError, OperationFailure

from balance_ledger.core.exceptions import ErrorKind, LedgerError
from balance_ledger.schemas.transaction import TransactionInput, TransactionRecord, TransactionType
from balance_ledger.schemas.user import UserRecord
from balance_ledger.services.transactions import TransactService
from balance_ledger.store.base import (
    CONDITIONAL_CHECK_FAILED,
    BalanceCredit,
    BalanceDebit,
    CancellationReason,
    LedgerInsert,
    TransactionCanceled,
)
from balance_ledger.store.mongo import MongoLedgerStore


class FakeCollection:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.error: Exception | None = None
        self.matched_count = 1

    async def update_one(self, filter, update, upsert=False, session=None):
        self.calls.append(("update_one", filter, update, upsert, session))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(matched_count=self.matched_count)

    async def insert_one(self, document, session=None):
        self.calls.append(("insert_one", document, session))
        if self.error is not None:
            raise self.error
        return SimpleNamespace(inserted_id="id")

    async def bulk_write(self, ops, ordered=True):
        self.calls.append(("bulk_write", ops, ordered))
        return SimpleNamespace(upserted_count=len(ops), modified_count=0)


class FakeTransaction:
    def __init__(self, session: "FakeSession") -> None:
        self._session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self._session.outcome = "aborted" if exc_type else "committed"
        return False


class FakeSession:
    def __init__(self) -> None:
        self.outcome: str | None = None

    def start_transaction(self) -> FakeTransaction:
        return FakeTransaction(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeClient:
    def __init__(self) -> None:
        self.session = FakeSession()
        self.closed = False

    async def start_session(self) -> FakeSession:
        return self.session

    def close(self) -> None:
        self.closed = True


class FakeMongoStore(MongoLedgerStore):
    """Collections swapped for fakes; ledger reads served from a dict."""

    def __init__(self) -> None:
        super().__init__(FakeClient())
        self.users = FakeCollection()
        self.transactions = FakeCollection()
        self.records: dict[str, TransactionRecord] = {}

    def _users(self):
        return self.users

    def _transactions(self):
        return self.transactions

    async def get_transaction(self, idempotency_key):
        return self.records.get(idempotency_key)


def _record(key: str = "k", tx_type: TransactionType = TransactionType.DEBIT) -> TransactionRecord:
    return TransactionRecord(idempotency_key=key, user_id="u", amount=Decimal("7"), type=tx_type)


@pytest.fixture
def mongo_store() -> FakeMongoStore:
    return FakeMongoStore()


async def test_credit_and_insert_commit(mongo_store):
    record = _record(tx_type=TransactionType.CREDIT)
    await mongo_store.transact_write([BalanceCredit(user_id="u", amount=Decimal("10")), LedgerInsert(record)])

    [(_, filter, update, upsert, session)] = mongo_store.users.calls
    assert filter == {"user_id": "u"}
    assert update == {"$inc": {"balance": Decimal128("10")}}
    assert upsert is True
    assert session is mongo_store._client.session

    [(_, document, _)] = mongo_store.transactions.calls
    assert document["idempotency_key"] == "k"
    assert document["amount"] == Decimal128("7")
    assert document["type"] == "credit"
    assert mongo_store._client.session.outcome == "committed"


async def test_debit_guarded_by_existing_sufficient_balance(mongo_store):
    await mongo_store.transact_write([BalanceDebit(user_id="u", amount=Decimal("7")), LedgerInsert(_record())])

    [(_, filter, update, upsert, _)] = mongo_store.users.calls
    assert filter == {"user_id": "u", "balance": {"$exists": True, "$gte": Decimal128("7")}}
    assert update == {"$inc": {"balance": Decimal128("-7")}}
    assert upsert is False


async def test_debit_matching_nothing_fails_first_guard(mongo_store):
    mongo_store.users.matched_count = 0

    with pytest.raises(TransactionCanceled) as e:
        await mongo_store.transact_write([BalanceDebit(user_id="u", amount=Decimal("7")), LedgerInsert(_record())])

    assert e.value.reasons == [
        CancellationReason(CONDITIONAL_CHECK_FAILED, {"user_id": "u"}),
        CancellationReason(),
    ]
    assert mongo_store.transactions.calls == []
    assert mongo_store._client.session.outcome == "aborted"


async def test_duplicate_key_fails_second_guard_with_key_value(mongo_store):
    mongo_store.transactions.error = DuplicateKeyError(
        "E11000 duplicate key error", 11000, {"keyValue": {"idempotency_key": "k"}}
    )

    with pytest.raises(TransactionCanceled) as e:
        await mongo_store.transact_write([BalanceCredit(user_id="u", amount=Decimal("7")), LedgerInsert(_record())])

    assert e.value.reasons == [
        CancellationReason(),
        CancellationReason(CONDITIONAL_CHECK_FAILED, {"idempotency_key": "k"}),
    ]
    assert mongo_store._client.session.outcome == "aborted"


async def test_other_write_errors_pass_through(mongo_store):
    failure = OperationFailure("WriteConflict", 112)
    mongo_store.users.error = failure

    with pytest.raises(OperationFailure) as e:
        await mongo_store.transact_write([BalanceCredit(user_id="u", amount=Decimal("7")), LedgerInsert(_record())])

    assert e.value is failure
    assert mongo_store._client.session.outcome == "aborted"


async def test_insufficient_balance_through_service(mongo_store):
    mongo_store.users.matched_count = 0
    request = TransactionInput(idempotency_key="k", user_id="u", amount="7", type="debit")

    with pytest.raises(LedgerError) as e:
        await TransactService(mongo_store).transact(request)
    assert e.value.kind is ErrorKind.INSUFFICIENT_BALANCE


async def test_duplicate_key_replay_through_service(mongo_store):
    mongo_store.transactions.error = DuplicateKeyError(
        "E11000 duplicate key error", 11000, {"keyValue": {"idempotency_key": "k"}}
    )
    mongo_store.records["k"] = _record()
    request = TransactionInput(idempotency_key="k", user_id="u", amount="7", type="debit")

    await TransactService(mongo_store).transact(request)


async def test_put_users_replaces_whole_records(mongo_store):
    written = await mongo_store.put_users(
        [
            UserRecord(user_id="3", balance=Decimal("42.00"), currency="USD"),
            UserRecord(user_id="4", currency="USD"),
        ]
    )

    assert written == 2
    [(_, ops, ordered)] = mongo_store.users.calls
    assert ordered is False
    assert ops == [
        ReplaceOne({"user_id": "3"}, {"user_id": "3", "balance": Decimal128("42.00"), "currency": "USD"}, upsert=True),
        ReplaceOne({"user_id": "4"}, {"user_id": "4", "currency": "USD"}, upsert=True),
    ]


async def test_put_users_with_nothing_to_write(mongo_store):
    assert await mongo_store.put_users([]) == 0
    assert mongo_store.users.calls == []


async def test_close_closes_client(mongo_store):
    await mongo_store.close()
    assert mongo_store._client.closed is True
