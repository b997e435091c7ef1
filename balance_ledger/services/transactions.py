"""Ledger Transactor and the orchestrated transact operation.

A transaction is one atomic store write of two items: the balance update on the
user and the insert of the ledger record keyed by the idempotency key. When the
store cancels the write, the reasons decide the outcome:

- debit whose balance guard failed: InsufficientBalance
- ledger guard failed on our own key and the record is now readable: replay, success
- anything else reported by the cancellation: TransactionFailed with the reasons attached

Other store errors propagate untouched.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from balance_ledger.core.config import Settings
from balance_ledger.core.exceptions import ErrorKind, LedgerError
from balance_ledger.core.logging import get_logger
from balance_ledger.schemas.transaction import TransactionInput, TransactionRecord, TransactionType
from balance_ledger.services.users import UserService
from balance_ledger.store.base import (
    BalanceCredit,
    BalanceDebit,
    LedgerInsert,
    LedgerStore,
    TransactionCanceled,
)

log = get_logger(__name__)


class TransactionFunction(Protocol):
    async def __call__(self, request: TransactionInput) -> None: ...


def parse_amount(raw: Any) -> Decimal:
    """Positive, finite decimal from its string form."""
    text = "" if raw is None else str(raw).strip()
    if not text:
        raise LedgerError(ErrorKind.INVALID_AMOUNT)
    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise LedgerError(ErrorKind.INVALID_AMOUNT, details={"amount": text}) from e
    if not amount.is_finite() or amount <= 0:
        raise LedgerError(ErrorKind.INVALID_AMOUNT, details={"amount": text})
    if amount.as_tuple().exponent > 0:
        # "1e2" is stored and shown as 100
        try:
            amount = amount.quantize(Decimal(1))
        except InvalidOperation as e:
            raise LedgerError(ErrorKind.INVALID_AMOUNT, details={"amount": text}) from e
    return amount


def parse_type(raw: Any) -> TransactionType:
    if isinstance(raw, TransactionType):
        return raw
    if isinstance(raw, str):
        try:
            return TransactionType(raw.strip().lower())
        except ValueError:
            pass
    raise LedgerError(ErrorKind.INVALID_TRANSACTION_TYPE, details={"type": "" if raw is None else str(raw)})


class TransactService:
    """Applies transactions. Does not check that the user exists; see create_transact_fn."""

    def __init__(self, store: LedgerStore):
        self._store = store

    async def check_existing_transaction(self, idempotency_key: str) -> TransactionRecord | None:
        return await self._store.get_transaction(idempotency_key)

    def validate(self, request: TransactionInput) -> None:
        # Order matters: first failing check wins.
        if not request.user_id:
            raise LedgerError(ErrorKind.USER_NOT_FOUND, "Missing required user_id field")
        if not request.idempotency_key:
            raise LedgerError(ErrorKind.INVALID_IDEMPOTENCY_KEY)
        parse_amount(request.amount)
        parse_type(request.type)

    async def transact(self, request: TransactionInput) -> None:
        amount = parse_amount(request.amount)
        tx_type = parse_type(request.type)
        is_credit = tx_type is TransactionType.CREDIT

        if is_credit:
            balance_update = BalanceCredit(user_id=request.user_id, amount=amount)
        else:
            balance_update = BalanceDebit(user_id=request.user_id, amount=amount)
        record = TransactionRecord(
            idempotency_key=request.idempotency_key,
            user_id=request.user_id,
            amount=amount,
            type=tx_type,
            timestamp=datetime.utcnow(),
        )

        try:
            await self._store.transact_write([balance_update, LedgerInsert(record)])
        except TransactionCanceled as e:
            await self._resolve_cancellation(request, amount, is_credit, e)
            return

        log.info(
            "transaction_applied",
            idempotency_key=request.idempotency_key,
            user_id=request.user_id,
            amount=str(amount),
            type=tx_type.value,
        )

    async def _resolve_cancellation(
        self,
        request: TransactionInput,
        amount: Decimal,
        is_credit: bool,
        exc: TransactionCanceled,
    ) -> None:
        reasons = exc.reasons
        log.warning(
            "transaction_cancelled",
            idempotency_key=request.idempotency_key,
            user_id=request.user_id,
            reasons=[r.code for r in reasons],
        )

        if not is_credit and reasons and reasons[0].failed:
            log.info("insufficient_balance", user_id=request.user_id, amount=str(amount))
            raise LedgerError(
                ErrorKind.INSUFFICIENT_BALANCE,
                details={"user_id": request.user_id, "amount": str(amount)},
            ) from exc

        key_conflict = any(
            r.failed and (r.item or {}).get("idempotency_key") == request.idempotency_key
            for r in reasons
        )
        if key_conflict:
            # Another caller with the same key committed between our pre-check and the write.
            existing = await self.check_existing_transaction(request.idempotency_key)
            if existing is not None:
                log.info(
                    "transaction_replayed",
                    idempotency_key=request.idempotency_key,
                    kind=ErrorKind.DUPLICATE_TRANSACTION.value,
                    stage="post_conflict",
                )
                return

        raise LedgerError(
            ErrorKind.TRANSACTION_FAILED,
            f"Transaction failed: {exc}",
            details={
                "idempotency_key": request.idempotency_key,
                "reasons": [r.as_dict() for r in reasons],
            },
        ) from exc


def create_transact_fn(store: LedgerStore, settings: Settings) -> TransactionFunction:
    """Bind the store into the externally documented transact operation."""
    user_service = UserService(store, settings)
    transact_service = TransactService(store)

    async def transact(request: TransactionInput) -> None:
        transact_service.validate(request)

        user = await user_service.get_user_item(request.user_id)
        if user is None:
            raise LedgerError(
                ErrorKind.USER_NOT_FOUND,
                f"User with ID {request.user_id} not found",
                details={"user_id": request.user_id},
            )

        existing = await transact_service.check_existing_transaction(request.idempotency_key)
        if existing is not None:
            log.info(
                "transaction_replayed",
                idempotency_key=request.idempotency_key,
                kind=ErrorKind.DUPLICATE_TRANSACTION.value,
                stage="pre_check",
            )
            return

        await transact_service.transact(request)

    return transact
