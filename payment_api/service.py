"""Request-independent payment operations.

The service validates input, enforces the processed state machine and raises
:mod:`payment_api.exceptions` errors; it never builds HTTP responses itself.
"""
from datetime import datetime, timezone
from typing import Callable, List
from uuid import uuid4

import structlog

from payment_api.exceptions import (
    IdentityGenerationError,
    PaymentAlreadyProcessedError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payment_api.models import Payment, PaymentState
from payment_api.repository import PaymentRepository
from payment_api.schemas import PaymentCreate

logger = structlog.get_logger(__name__)


def utc_now_seconds() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def new_uid() -> str:
    return str(uuid4())


def validate_payment_create(payment_data: PaymentCreate) -> None:
    """Raise on the first broken rule: origin, then target, then amount."""
    if not payment_data.account_origin:
        raise PaymentValidationError("account origin is mandatory")
    if not payment_data.account_target:
        raise PaymentValidationError("account target is mandatory")
    # NaN compares false and fails here
    if not payment_data.amount > 0:
        raise PaymentValidationError("amount must be a positive number")


class PaymentService:

    def __init__(
        self,
        repository: PaymentRepository,
        clock: Callable[[], datetime] = utc_now_seconds,
        uid_factory: Callable[[], str] = new_uid,
    ) -> None:
        self.repository = repository
        self.clock = clock
        self.uid_factory = uid_factory

    async def list_payments(self) -> List[Payment]:
        return await self.repository.list_all()

    async def get_payment(self, uid: str) -> Payment:
        payment = await self.repository.find_by_uid(uid)
        if payment is None:
            raise PaymentNotFoundError(uid)
        return payment

    async def create_payment(self, payment_data: PaymentCreate) -> Payment:
        try:
            validate_payment_create(payment_data)
        except PaymentValidationError as e:
            logger.info("payment_rejected", reason=e.message)
            raise

        payment = Payment(
            uid=self._generate_uid(),
            account_origin=payment_data.account_origin,
            account_target=payment_data.account_target,
            amount=payment_data.amount,
            date=payment_data.date,
            processed=False,
            processed_date=None,
        )
        payment = await self.repository.insert(payment)
        logger.info("payment_created", uid=payment.uid, amount=payment.amount)
        return payment

    async def mark_processed(self, uid: str) -> Payment:
        payment = await self._get_unprocessed(uid)

        # Conditional update; a concurrent caller may have won since the read
        processed = await self.repository.mark_processed(payment.uid, self.clock())
        if processed is None:
            logger.warning("payment_process_conflict", uid=uid)
            raise PaymentAlreadyProcessedError(uid)

        logger.info("payment_processed", uid=uid, processed_date=processed.processed_date.isoformat())
        return processed

    async def delete_payment(self, uid: str) -> None:
        payment = await self._get_unprocessed(uid)
        await self.repository.remove(payment)
        logger.info("payment_deleted", uid=uid)

    async def _get_unprocessed(self, uid: str) -> Payment:
        payment = await self.get_payment(uid)
        if payment.state is PaymentState.PROCESSED:
            logger.warning("payment_already_processed", uid=uid)
            raise PaymentAlreadyProcessedError(uid)
        return payment

    def _generate_uid(self) -> str:
        try:
            uid = self.uid_factory()
        except Exception as e:
            raise IdentityGenerationError(f"could not generate payment uid: {e}") from e
        if not uid:
            raise IdentityGenerationError("could not generate payment uid: empty identifier")
        return uid
