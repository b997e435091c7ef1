from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionRecord(BaseModel):
    """Immutable ledger entry, one per idempotency key."""

    idempotency_key: str
    user_id: str
    amount: Decimal  # magnitude; direction comes from type
    type: TransactionType
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class TransactionInput(BaseModel):
    """Caller request. Fields stay loose here; TransactService.validate checks them in order."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    idempotency_key: str = ""
    user_id: str = ""
    amount: str | None = None  # decimal as string
    type: TransactionType | str | None = None
