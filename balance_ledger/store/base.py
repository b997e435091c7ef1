"""Store collaborator: keyed users and transactions with an atomic multi-item write."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from balance_ledger.schemas.transaction import TransactionRecord
from balance_ledger.schemas.user import UserRecord

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailed"
NO_FAILURE = "None"


@dataclass(frozen=True)
class BalanceCredit:
    """Set balance to (balance or 0) + amount. Creates the user record when missing."""

    user_id: str
    amount: Decimal


@dataclass(frozen=True)
class BalanceDebit:
    """Subtract amount; guarded by balance present and balance >= amount."""

    user_id: str
    amount: Decimal


@dataclass(frozen=True)
class LedgerInsert:
    """Insert a ledger record; guarded by no record existing for its idempotency key."""

    record: TransactionRecord


WriteItem = BalanceCredit | BalanceDebit | LedgerInsert


@dataclass(frozen=True)
class CancellationReason:
    code: str = NO_FAILURE
    item: dict[str, Any] | None = None

    @property
    def failed(self) -> bool:
        return self.code == CONDITIONAL_CHECK_FAILED

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "item": {k: str(v) for k, v in (self.item or {}).items()}}


class TransactionCanceled(Exception):
    """Atomic write rejected; one reason per submitted item, in submission order."""

    def __init__(self, reasons: list[CancellationReason], message: str = "Transaction cancelled"):
        self.reasons = reasons
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        codes = ", ".join(r.code for r in self.reasons)
        return f"{self.message} [{codes}]"


class LedgerStore(ABC):
    @abstractmethod
    async def get_user(self, user_id: str) -> UserRecord | None:
        """Point read of a user; None when absent."""
        ...

    @abstractmethod
    async def get_transaction(self, idempotency_key: str) -> TransactionRecord | None:
        """Point read of a ledger record; None when absent."""
        ...

    @abstractmethod
    async def transact_write(self, items: list[WriteItem]) -> None:
        """Apply all items or none. Raises TransactionCanceled when a guard fails."""
        ...

    @abstractmethod
    async def put_users(self, users: Iterable[UserRecord]) -> int:
        """Upsert users by user_id; return how many were written."""
        ...

    async def close(self) -> None:
        return None
