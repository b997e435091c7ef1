from balance_ledger.schemas.transaction import (
    TransactionInput,
    TransactionRecord,
    TransactionType,
)
from balance_ledger.schemas.user import UserRecord

__all__ = [
    "TransactionInput",
    "TransactionRecord",
    "TransactionType",
    "UserRecord",
]
