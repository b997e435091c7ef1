from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field

from balance_ledger.models.user import StoredDecimal
from balance_ledger.schemas.transaction import TransactionType


class TransactionDocument(Document):
    """Append-only ledger; the unique idempotency_key index is the insert guard."""

    idempotency_key: Indexed(str, unique=True)
    user_id: str
    amount: StoredDecimal
    type: TransactionType
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "transactions"
        indexes = [
            [("user_id", 1), ("timestamp", -1)],
        ]
