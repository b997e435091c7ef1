"""Balance Reader: point lookups of users and formatted balances."""

from typing import Protocol

from balance_ledger.core.config import Settings
from balance_ledger.core.exceptions import ErrorKind, LedgerError
from balance_ledger.core.logging import get_logger
from balance_ledger.schemas.user import UserRecord
from balance_ledger.store.base import LedgerStore

log = get_logger(__name__)


class UserBalanceFunction(Protocol):
    async def __call__(self, user_id: str) -> str: ...


class UserService:
    def __init__(self, store: LedgerStore, settings: Settings):
        self._store = store
        self._default_balance = settings.default_balance
        self._default_currency = settings.default_currency

    async def get_user_item(self, user_id: str) -> UserRecord | None:
        return await self._store.get_user(user_id)

    async def get_user_balance(self, user_id: str) -> str:
        """Return "<amount> <currency>" for the user.

        A user without a balance gets the configured default; nothing is written back.
        """
        if not user_id:
            raise LedgerError(ErrorKind.INVALID_USER_ID)

        user = await self.get_user_item(user_id)
        if user is None:
            raise LedgerError(
                ErrorKind.USER_NOT_FOUND,
                f"User with ID {user_id} not found",
                details={"user_id": user_id},
            )

        if user.balance is None:
            log.warning("balance_missing_using_default", user_id=user_id)
            return f"{self._default_balance} {self._default_currency}"

        return f"{user.balance} {user.currency or self._default_currency}"


def create_user_balance_fn(store: LedgerStore, settings: Settings) -> UserBalanceFunction:
    service = UserService(store, settings)

    async def get_user_balance(user_id: str) -> str:
        return await service.get_user_balance(user_id)

    return get_user_balance
