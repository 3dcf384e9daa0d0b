"""Persistence of payment records.

The repository owns no business rules. It reports "no such payment" as
``None`` and every other failure as :class:`StorageError`.
"""
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payment_api.exceptions import StorageError
from payment_api.models import Payment

logger = structlog.get_logger(__name__)


class PaymentRepository(ABC):

    @abstractmethod
    async def list_all(self) -> List[Payment]:
        """Return every payment in storage order."""

    @abstractmethod
    async def find_by_uid(self, uid: str) -> Optional[Payment]:
        """Return the payment with ``uid`` or None when there is none."""

    @abstractmethod
    async def insert(self, payment: Payment) -> Payment:
        """Persist a new payment; uid uniqueness is enforced here."""

    @abstractmethod
    async def replace(self, payment: Payment) -> Payment:
        """Persist changes made to an existing payment."""

    @abstractmethod
    async def remove(self, payment: Payment) -> None:
        """Delete an existing payment."""

    @abstractmethod
    async def mark_processed(self, uid: str, processed_at: datetime) -> Optional[Payment]:
        """Flag the payment as processed only if it is still unprocessed.

        Returns the updated payment, or None when no unprocessed payment
        with ``uid`` exists at the time of the update.
        """


class SqlAlchemyPaymentRepository(PaymentRepository):

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def _storage_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.error("payment_storage_failed", operation=operation, error=str(e))
            # Statement and parameters stay in the log, never in the message
            reason = type(getattr(e, "orig", None) or e).__name__
            raise StorageError(f"{operation} failed ({reason})") from e

    async def list_all(self) -> List[Payment]:
        async with self._storage_errors("list payments"):
            result = await self._session.execute(select(Payment).order_by(Payment.id))
            return list(result.scalars().all())

    async def find_by_uid(self, uid: str) -> Optional[Payment]:
        async with self._storage_errors("find payment"):
            result = await self._session.execute(
                select(Payment)
                .where(Payment.uid == uid)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def insert(self, payment: Payment) -> Payment:
        async with self._storage_errors("insert payment"):
            self._session.add(payment)
            await self._session.commit()
            await self._session.refresh(payment)
            return payment

    async def replace(self, payment: Payment) -> Payment:
        async with self._storage_errors("update payment"):
            payment = await self._session.merge(payment)
            await self._session.commit()
            await self._session.refresh(payment)
            return payment

    async def remove(self, payment: Payment) -> None:
        async with self._storage_errors("delete payment"):
            await self._session.delete(payment)
            await self._session.commit()

    async def mark_processed(self, uid: str, processed_at: datetime) -> Optional[Payment]:
        async with self._storage_errors("mark payment processed"):
            result = await self._session.execute(
                update(Payment)
                .where(Payment.uid == uid, Payment.processed.is_(False))
                .values(processed=True, processed_date=processed_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            await self._session.commit()
        return await self.find_by_uid(uid)
