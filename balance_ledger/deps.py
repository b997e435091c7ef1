"""Shared FastAPI dependencies."""

from fastapi import Depends, Request

from balance_ledger.core.config import Settings, get_settings
from balance_ledger.services.transactions import TransactionFunction, TransactService, create_transact_fn
from balance_ledger.services.users import UserBalanceFunction, create_user_balance_fn
from balance_ledger.store.base import LedgerStore


def get_store(request: Request) -> LedgerStore:
    """Dependency: the process-wide store opened at startup."""
    return request.app.state.store


def get_user_balance_fn(
    store: LedgerStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> UserBalanceFunction:
    return create_user_balance_fn(store, settings)


def get_transact_fn(
    store: LedgerStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TransactionFunction:
    return create_transact_fn(store, settings)


def get_transact_service(store: LedgerStore = Depends(get_store)) -> TransactService:
    return TransactService(store)
