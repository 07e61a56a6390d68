"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from parcelx.app.main import app
from parcelx.app.db.session import get_db, Base
from parcelx.app.core.dependencies import get_payment_gateway
from parcelx.app.core.exceptions import GatewayUnreachableError, PaymentNotSucceededError
from parcelx.app.domain.payments.identifiers import new_object_id
from parcelx.app.domain.payments.verifier import PaymentIntentResult
from parcelx.app.models.parcel import Parcel
from parcelx.app.models.parcel_enums import PaymentStatus

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Payment gateway double
class FakeGateway:
    """In-memory stand-in for Stripe keyed by payment intent id."""

    def __init__(self):
        self.intents = {}
        self.calls = []
        self.error = None

    def add_intent(self, payment_intent_id, status="succeeded", amount=1500, currency="usd", metadata=None):
        self.intents[payment_intent_id] = PaymentIntentResult(
            id=payment_intent_id,
            status=status,
            amount=amount,
            currency=currency,
            metadata=metadata or {},
        )
        return self.intents[payment_intent_id]

    async def retrieve(self, payment_intent_id):
        self.calls.append(payment_intent_id)
        if self.error is not None:
            raise self.error
        if payment_intent_id not in self.intents:
            raise PaymentNotSucceededError(
                payment_intent_id,
                message=f"Payment {payment_intent_id} could not be verified",
            )
        return self.intents[payment_intent_id]

    def go_offline(self):
        self.error = GatewayUnreachableError("Could not reach payment gateway. Please retry.")


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture(autouse=True)
def apply_overrides(fake_gateway):
    """Route every request through the test database and the fake gateway."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: fake_gateway
    yield

    app.dependency_overrides = {}

@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


async def create_parcel(session, parcel_id=None, legacy_id=None, email="sender@test.com", **details):
    """Insert an unpaid parcel directly."""
    parcel = Parcel(
        id=parcel_id or new_object_id(),
        legacy_id=legacy_id,
        created_by_email=email,
        payment_status=PaymentStatus.UNPAID,
        details=details,
    )
    session.add(parcel)
    await session.commit()
    await session.refresh(parcel)
    return parcel


@pytest.fixture
async def unpaid_parcel(db_session):
    """A canonical-id parcel awaiting payment."""
    return await create_parcel(db_session, title="Books", weight=2)


@pytest.fixture
async def legacy_parcel(db_session):
    """A parcel migrated from the old store, known by its legacy string id."""
    return await create_parcel(db_session, legacy_id="P1", title="Laptop")
