from fastapi import APIRouter, Depends

from balance_ledger.deps import get_user_balance_fn
from balance_ledger.services.users import UserBalanceFunction

router = APIRouter()


@router.get("/{user_id}/balance")
async def user_balance(user_id: str, get_user_balance: UserBalanceFunction = Depends(get_user_balance_fn)):
    """Return the user's balance formatted as "<amount> <currency>"."""
    balance = await get_user_balance(user_id)
    return {"user_id": user_id, "balance": balance}
