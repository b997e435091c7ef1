from decimal import Decimal

from pydantic import BaseModel


class UserRecord(BaseModel):
    """User as seen by the services; ``balance`` is None until the first credit."""

    user_id: str
    balance: Decimal | None = None
    currency: str | None = None
