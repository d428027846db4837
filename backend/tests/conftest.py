"""Shared test fixtures."""

import os
from datetime import date, timedelta

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./treasury-test.db"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from treasury.core.database import get_db, get_session_factory  # noqa: E402
from treasury.main import app  # noqa: E402
from treasury.models import Base, Client, Transaction, TransactionType  # noqa: E402
from treasury.services.analytics_config import AnalyticsConfig  # noqa: E402

TODAY = date.today()
HISTORY_DAYS = 60


@pytest.fixture
def config() -> AnalyticsConfig:
    return AnalyticsConfig()


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'treasury.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def acme(session_factory) -> Client:
    """Manufacturing client with 60 days of revenue, payroll and weekly rent."""
    async with session_factory() as session:
        client = Client(name="Acme Manufacturing", industry="manufacturing", business_segment="medium")
        session.add(client)
        await session.flush()

        balance = 100_000.0
        for offset in range(HISTORY_DAYS - 1, -1, -1):
            day = TODAY - timedelta(days=offset)
            entries = [
                (1500, TransactionType.CREDIT, "Revenue", "Customer A"),
                (-600, TransactionType.ACH, "Payroll", "Payroll Co"),
            ]
            if offset % 7 == 0:
                entries.append((-2000, TransactionType.WIRE, "Facilities", "Landlord LLC"))
            for amount, tx_type, category, counterparty in entries:
                balance += amount
                session.add(Transaction(
                    client_id=client.id,
                    date=day,
                    amount=amount,
                    type=tx_type,
                    category=category,
                    counterparty=counterparty,
                    balance_after=balance,
                ))
        await session.commit()
        return client


@pytest.fixture
async def empty_client(session_factory) -> Client:
    async with session_factory() as session:
        client = Client(name="Dormant Holdings")
        session.add(client)
        await session.commit()
        return client


@pytest.fixture
async def client(session_factory):
    """Async test client for the FastAPI app, bound to the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
