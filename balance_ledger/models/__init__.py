from balance_ledger.models.transaction import TransactionDocument
from balance_ledger.models.user import UserDocument

__all__ = [
    "UserDocument",
    "TransactionDocument",
]
