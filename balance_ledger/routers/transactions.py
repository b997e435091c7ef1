from fastapi import APIRouter, Depends, Header

from balance_ledger.core.exceptions import NotFoundError
from balance_ledger.deps import get_transact_fn, get_transact_service
from balance_ledger.schemas.transaction import TransactionInput
from balance_ledger.services.transactions import TransactionFunction, TransactService

router = APIRouter()


@router.post("")
async def create_transaction(
    body: TransactionInput,
    transact: TransactionFunction = Depends(get_transact_fn),
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
):
    """Apply a credit or debit once per idempotency key. Replays return the same response."""
    if idempotency_key and not body.idempotency_key:
        body = body.model_copy(update={"idempotency_key": idempotency_key})
    await transact(body)
    return {"status": "ok"}


@router.get("/{idempotency_key}")
async def get_transaction(idempotency_key: str, service: TransactService = Depends(get_transact_service)):
    record = await service.check_existing_transaction(idempotency_key)
    if record is None:
        raise NotFoundError("Transaction not found", details={"idempotency_key": idempotency_key})
    return {
        "idempotency_key": record.idempotency_key,
        "user_id": record.user_id,
        "amount": format(record.amount, "f"),
        "type": record.type.value,
        "timestamp": record.timestamp.isoformat(),
    }
