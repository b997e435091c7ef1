import os
from decimal import Decimal
from typing import Generator, Iterable

import pytest
from fastapi.testclient import TestClient

# In-memory store for the whole suite
os.environ["STORE_BACKEND"] = "memory"
os.environ.setdefault("DEFAULT_BALANCE", "100")
os.environ.setdefault("DEFAULT_CURRENCY", "USD")

from balance_ledger.core.config import Settings  # noqa: E402
from balance_ledger.schemas.transaction import TransactionRecord  # noqa: E402
from balance_ledger.schemas.user import UserRecord  # noqa: E402
from balance_ledger.store.base import LedgerStore, WriteItem  # noqa: E402
from balance_ledger.store.memory import InMemoryLedgerStore  # noqa: E402


class ScriptedStore(LedgerStore):
    """Records every call; transact_write raises ``error`` when set."""

    def __init__(self) -> None:
        self.users: dict[str, UserRecord] = {}
        self.transactions: dict[str, TransactionRecord] = {}
        self.error: Exception | None = None
        self.calls: list[tuple[str, object]] = []
        self.writes: list[list[WriteItem]] = []

    async def get_user(self, user_id: str) -> UserRecord | None:
        self.calls.append(("get_user", user_id))
        return self.users.get(user_id)

    async def get_transaction(self, idempotency_key: str) -> TransactionRecord | None:
        self.calls.append(("get_transaction", idempotency_key))
        return self.transactions.get(idempotency_key)

    async def transact_write(self, items: list[WriteItem]) -> None:
        self.calls.append(("transact_write", items))
        self.writes.append(items)
        if self.error is not None:
            raise self.error

    async def put_users(self, users: Iterable[UserRecord]) -> int:
        users = list(users)
        for user in users:
            self.users[user.user_id] = user
        return len(users)


@pytest.fixture
def settings() -> Settings:
    return Settings(store_backend="memory", default_balance=Decimal("100"), default_currency="USD")


@pytest.fixture
def scripted_store() -> ScriptedStore:
    return ScriptedStore()


@pytest.fixture
def memory_store() -> InMemoryLedgerStore:
    store = InMemoryLedgerStore()
    store.users["1"] = UserRecord(user_id="1", currency="USD")
    store.users["9"] = UserRecord(user_id="9", balance=Decimal("5"), currency="USD")
    store.users["11"] = UserRecord(user_id="11")
    return store


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    from balance_ledger.main import app
    with TestClient(app) as c:
        store = c.app.state.store
        store.users["1"] = UserRecord(user_id="1", currency="USD")
        store.users["9"] = UserRecord(user_id="9", balance=Decimal("5"), currency="USD")
        store.users["11"] = UserRecord(user_id="11")
        yield c
