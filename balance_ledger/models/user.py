from decimal import Decimal
from typing import Annotated, Any

from beanie import Document, Indexed
from bson.decimal128 import Decimal128
from pydantic import BeforeValidator


def _to_decimal(v: Any) -> Any:
    return v.to_decimal() if isinstance(v, Decimal128) else v


# Balances are stored as Decimal128
StoredDecimal = Annotated[Decimal, BeforeValidator(_to_decimal)]


class UserDocument(Document):
    user_id: Indexed(str, unique=True)
    balance: StoredDecimal | None = None  # absent until the first credit
    currency: str | None = None

    class Settings:
        name = "users"
