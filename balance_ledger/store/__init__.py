from balance_ledger.store.base import (
    BalanceCredit,
    BalanceDebit,
    CancellationReason,
    LedgerInsert,
    LedgerStore,
    TransactionCanceled,
    WriteItem,
)

__all__ = [
    "BalanceCredit",
    "BalanceDebit",
    "CancellationReason",
    "LedgerInsert",
    "LedgerStore",
    "TransactionCanceled",
    "WriteItem",
]
