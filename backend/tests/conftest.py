# tests/conftest.py
"""
Shared fixtures.

API tests run the ASGI app against a fresh in-memory SQLite database per
test; get_db is overridden to hand out sessions bound to that engine.
"""

import os

# Point settings at SQLite before the application modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from datetime import timedelta
from uuid import uuid4

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from cre_api.database import Base, get_db
from cre_api.main import app
from cre_api.auth import create_access_token
from cre_api.models import User, MasterProperty, Transaction
from cre_api.services.normalization import normalization_service as ns


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with every table created."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Session for seeding data and asserting on it directly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client driving the app with get_db bound to the test engine."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ============================================================================
# USERS & AUTH
# ============================================================================

async def _create_user(session, role: str, is_active: bool = True, **extra) -> User:
    user = User(
        id=uuid4(),
        email=f"{role}-{uuid4().hex[:8]}@example.com",
        full_name=f"Test {role.title()}",
        role=role,
        is_active=is_active,
        **extra,
    )
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def broker_user(db_session):
    return await _create_user(
        db_session,
        "broker",
        company_name="Summit Commercial",
        company_phone="+15125550100",
    )


@pytest_asyncio.fixture
async def other_broker(db_session):
    return await _create_user(db_session, "broker")


@pytest_asyncio.fixture
async def member_user(db_session):
    return await _create_user(db_session, "member")


@pytest_asyncio.fixture
async def tenant_user(db_session):
    return await _create_user(db_session, "tenant")


@pytest_asyncio.fixture
async def owner_user(db_session):
    return await _create_user(db_session, "owner")


@pytest_asyncio.fixture
async def inactive_user(db_session):
    return await _create_user(db_session, "broker", is_active=False)


def auth_headers_for(user: User, expires_delta: timedelta = None) -> dict:
    token = create_access_token({"sub": str(user.id)}, expires_delta=expires_delta)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def broker_headers(broker_user):
    return auth_headers_for(broker_user)


@pytest.fixture
def other_broker_headers(other_broker):
    return auth_headers_for(other_broker)


@pytest.fixture
def member_headers(member_user):
    return auth_headers_for(member_user)


@pytest.fixture
def tenant_headers(tenant_user):
    return auth_headers_for(tenant_user)


@pytest.fixture
def owner_headers(owner_user):
    return auth_headers_for(owner_user)


# ============================================================================
# SAMPLE DATA
# ============================================================================

async def create_property(session, created_by=None, **fields) -> MasterProperty:
    """Insert a master property with a computed dedup key."""
    fields.setdefault("city", "Austin")
    fields.setdefault("state", "TX")
    prop = MasterProperty(
        address_normalized=ns.normalize_address(fields["address"]),
        created_by=created_by,
        **fields,
    )
    session.add(prop)
    await session.commit()
    return prop


async def create_transaction(session, prop, **fields) -> Transaction:
    fields.setdefault("transaction_type", "sale")
    txn = Transaction(property_id=prop.id, **fields)
    session.add(txn)
    await session.commit()
    return txn


@pytest_asyncio.fixture
async def sample_properties(db_session, broker_user):
    """Three Austin properties and one in Dallas with mixed types."""
    warehouse = await create_property(
        db_session, broker_user.id,
        address="100 Industrial Blvd", property_type="industrial",
        building_size=50000, year_built=1998, owner_name="Acme Holdings LLC",
    )
    flex = await create_property(
        db_session, broker_user.id,
        address="250 Commerce Dr", property_type="industrial",
        building_size=12000, year_built=2015, owner_name="Blue River Partners",
    )
    office = await create_property(
        db_session, broker_user.id,
        address="900 Congress Ave", property_type="office",
        building_size=80000, year_built=1985, owner_name="Capitol Office Trust",
    )
    dallas = await create_property(
        db_session, broker_user.id,
        address="1 Elm St", city="Dallas", property_type="retail",
        building_size=8000, year_built=2001,
    )
    return {"warehouse": warehouse, "flex": flex, "office": office, "dallas": dallas}


@pytest.fixture
def crexi_rows():
    """Rows shaped like a Crexi export."""
    return [
        {
            "Address": "123 Main Street",
            "City": "Austin",
            "State": "Texas",
            "Property Type": "Warehouse/Distribution",
            "Building SqFt": "45,000",
            "Year Built": "1999",
            "Sold Price": "$4,500,000",
            "Sale Date": "03/15/2023",
            "Closing Cap Rate": "6.25%",
        },
        {
            "Address": "55 Oak Lane",
            "City": "Austin",
            "State": "TX",
            "Property Type": "Office",
            "Building SqFt": "12000",
            "Year Built": "",
            "Sold Price": "",
            "Sale Date": "",
            "Closing Cap Rate": "",
        },
    ]


@pytest.fixture
def crexi_mapping():
    return {
        "Address": "address",
        "City": "city",
        "State": "state",
        "Property Type": "property_type",
        "Building SqFt": "building_size",
        "Year Built": "year_built",
        "Sold Price": "sale_price",
        "Sale Date": "transaction_date",
        "Closing Cap Rate": "cap_rate",
    }


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: unit tests")
    config.addinivalue_line("markers", "integration: integration tests")
