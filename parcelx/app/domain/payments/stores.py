"""
Parcel and payment ledger persistence.

Thin wrappers over an AsyncSession exposing only the operations the
payment flow and the parcel routes need. Database errors are translated
into StoreUnavailableError after rolling back the session.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import case, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from parcelx.app.core.exceptions import StoreUnavailableError
from parcelx.app.domain.payments.identifiers import ParcelLookup
from parcelx.app.models.parcel import Parcel
from parcelx.app.models.payment import Payment

logger = logging.getLogger("parcelx.store")

# Dialects with a native INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Store:
    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(
                "Store operation failed",
                extra={"operation": operation, "error": str(e)},
                exc_info=True,
            )
            await self.db.rollback()
            raise StoreUnavailableError(operation) from e

    async def commit(self) -> None:
        async with self._guard("commit"):
            await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()


class ParcelStore(_Store):
    """Parcel persistence. Every lookup goes through a ParcelLookup."""

    @staticmethod
    def _match(lookup: ParcelLookup, model=Parcel):
        """Select at most one parcel for ``lookup``, preferring a canonical id hit."""
        query = select(model).where(lookup.where(model))
        if lookup.canonical is not None:
            # A canonical id may also appear as some other parcel's legacy id
            query = query.order_by(case((model.id == lookup.canonical, 0), else_=1))
        return query.limit(1)

    async def find_one(self, lookup: ParcelLookup) -> Optional[Parcel]:
        async with self._guard("parcel.find_one"):
            result = await self.db.execute(
                self._match(lookup).execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def update_one(self, lookup: ParcelLookup, **fields: Any) -> int:
        """Apply ``fields`` to the one parcel matching ``lookup``; returns the matched count."""
        target = aliased(Parcel)
        target_id = self._match(lookup, target).with_only_columns(target.id).scalar_subquery()
        async with self._guard("parcel.update_one"):
            result = await self.db.execute(
                update(Parcel)
                .where(Parcel.id == target_id)
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    async def insert(self, parcel: Parcel) -> Parcel:
        async with self._guard("parcel.insert"):
            self.db.add(parcel)
            await self.db.commit()
            await self.db.refresh(parcel)
            return parcel

    async def find_many(self, email: Optional[str] = None) -> List[Parcel]:
        """Newest first, optionally restricted to one creator."""
        query = select(Parcel).order_by(Parcel.created_at.desc(), Parcel.id.desc())
        if email:
            query = query.where(Parcel.created_by_email == email)
        async with self._guard("parcel.list"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def delete_one(self, lookup: ParcelLookup) -> int:
        async with self._guard("parcel.delete_one"):
            parcel = await self.find_one(lookup)
            if parcel is None:
                return 0
            await self.db.delete(parcel)
            await self.db.commit()
            return 1


class LedgerStore(_Store):
    """Payment ledger persistence, keyed by payment intent id."""

    async def find_one(self, payment_intent_id: str) -> Optional[Payment]:
        async with self._guard("ledger.find_one"):
            result = await self.db.execute(
                select(Payment)
                .where(Payment.payment_intent_id == payment_intent_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def list_for_parcel(self, parcel_id: str) -> List[Payment]:
        async with self._guard("ledger.list_for_parcel"):
            result = await self.db.execute(
                select(Payment)
                .where(Payment.parcel_id == parcel_id)
                .order_by(Payment.created_at.asc(), Payment.id.asc())
            )
            return list(result.scalars().all())

    async def upsert_one(
        self,
        payment_intent_id: str,
        set_on_insert: Dict[str, Any],
        always_set: Dict[str, Any],
    ) -> None:
        """
        Insert the ledger row for ``payment_intent_id`` or refresh it in place.

        Issued as a single INSERT ... ON CONFLICT (payment_intent_id) DO UPDATE
        so that concurrent confirmations for the same intent cannot both insert.
        On conflict only the ``always_set`` columns are overwritten; the
        ``set_on_insert`` columns keep the values from the first insert.
        """
        overlap = set(set_on_insert) & set(always_set)
        if overlap:
            raise ValueError(f"Fields cannot be both set-on-insert and always-set: {sorted(overlap)}")

        insert = _UPSERT_INSERTS.get(self.db.get_bind().dialect.name)
        if insert is None:
            raise NotImplementedError(
                f"Upsert not supported for dialect {self.db.get_bind().dialect.name!r}"
            )

        stmt = insert(Payment).values(
            payment_intent_id=payment_intent_id,
            **set_on_insert,
            **always_set,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[Payment.payment_intent_id],
            set_={name: stmt.excluded[name] for name in always_set},
        )

        async with self._guard("ledger.upsert_one"):
            await self.db.execute(stmt)
