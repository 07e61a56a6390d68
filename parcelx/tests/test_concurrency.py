"""
Concurrency Tests.

Validates that racing confirmations for the same payment intent converge
on one ledger row. Each confirmation gets its own connection, so this runs
against a file-backed SQLite database rather than the shared in-memory one.
"""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from conftest import create_parcel
from parcelx.app.db.session import Base
from parcelx.app.domain.payments.reconciliation import PayerInfo, ReconciliationEngine
from parcelx.app.domain.payments.stores import LedgerStore, ParcelStore
from parcelx.app.domain.payments.verifier import PaymentVerifier
from parcelx.app.models.parcel import Parcel
from parcelx.app.models.parcel_enums import PaymentStatus
from parcelx.app.models.payment import Payment


@pytest.fixture
async def file_session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 15},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


async def _confirm(session_factory, gateway, parcel_id, payment_intent_id, payer):
    async with session_factory() as session:
        engine = ReconciliationEngine(
            parcels=ParcelStore(session),
            ledger=LedgerStore(session),
            verifier=PaymentVerifier(gateway),
        )
        parcel = await engine.confirm(
            parcel_id=parcel_id,
            payment_intent_id=payment_intent_id,
            payer=payer,
        )
        return parcel.payment_status


@pytest.mark.asyncio
async def test_concurrent_confirmations_share_one_ledger_row(file_session_factory, fake_gateway):
    """Two simultaneous confirmations of pi_race produce one ledger row and a paid parcel."""
    async with file_session_factory() as session:
        parcel = await create_parcel(session)
    fake_gateway.add_intent("pi_race", amount=2500, currency="usd")

    results = await asyncio.gather(
        _confirm(file_session_factory, fake_gateway, parcel.id, "pi_race", PayerInfo(name="First")),
        _confirm(file_session_factory, fake_gateway, parcel.id, "pi_race", PayerInfo(name="Second")),
    )

    assert results == [PaymentStatus.PAID, PaymentStatus.PAID]

    async with file_session_factory() as session:
        rows = (await session.execute(select(Payment))).scalars().all()
        assert len(rows) == 1
        assert rows[0].payment_intent_id == "pi_race"
        assert rows[0].amount == 2500
        assert rows[0].currency == "usd"
        assert rows[0].payer_name in ("First", "Second")

        status = await session.execute(select(Parcel.payment_status).where(Parcel.id == parcel.id))
        assert status.scalar_one() == PaymentStatus.PAID


@pytest.mark.asyncio
async def test_many_concurrent_confirmations(file_session_factory, fake_gateway):
    async with file_session_factory() as session:
        parcel = await create_parcel(session)
    fake_gateway.add_intent("pi_burst")

    await asyncio.gather(*[
        _confirm(file_session_factory, fake_gateway, parcel.id, "pi_burst", None)
        for _ in range(8)
    ])

    async with file_session_factory() as session:
        count = await session.execute(select(func.count(Payment.id)))
        assert count.scalar() == 1


@pytest.mark.asyncio
async def test_unique_constraint_rejects_plain_duplicate_insert(db_session):
    """Backstop: a writer bypassing the upsert cannot create a second row."""
    for name in ("first", "second"):
        db_session.add(Payment(
            payment_intent_id="pi_dup",
            parcel_id="P1",
            payer_name=name,
            status="succeeded",
            amount=100,
            currency="usd",
        ))
        if name == "first":
            await db_session.commit()

    with pytest.raises(IntegrityError):
        await db_session.commit()
