"""Pytest fixtures for testing."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from cellar.api.dependencies import get_transaction_types
from cellar.database import get_session, init_db
from cellar.domain.lookup import TransactionTypeCache, TransactionTypeDef
from cellar.domain.models import Batch, Tank
from cellar.domain.services.batch_service import BatchService
from cellar.domain.services.tank_service import TankService
from cellar.main import app
from cellar.seed import seed_reference_data


@pytest.fixture(name="session")
def session_fixture():
    """Create a fresh, seeded in-memory SQLite database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)

    with Session(engine) as session:
        seed_reference_data(session)
        yield session

    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="transaction_types")
def transaction_types_fixture(session: Session) -> TransactionTypeCache:
    """Lookup cache loaded from the seeded catalog."""
    return TransactionTypeCache.load(session)


@pytest.fixture(name="types")
def types_fixture(transaction_types: TransactionTypeCache) -> dict[str, TransactionTypeDef]:
    """Seeded transaction types keyed by name."""
    return {t.name: t for t in transaction_types}


@pytest.fixture(name="make_tank")
def make_tank_fixture(session: Session):
    """Factory registering a tank through the service."""

    def _make_tank(label: str = "FV-1", capacity: str = "100") -> Tank:
        return TankService(session).create_tank(label, Decimal(capacity))

    return _make_tank


@pytest.fixture(name="start_batch")
def start_batch_fixture(session: Session, transaction_types: TransactionTypeCache):
    """Factory starting a batch with a Transfer In opening transaction."""

    def _start_batch(tank: Tank, quantity: str = "50", name: str = "Left Turn IPA") -> Batch:
        return BatchService(session, transaction_types).start_batch(
            tank_id=tank.id,
            name=name,
            transaction_type_id=None,
            initial_quantity=Decimal(quantity),
        )

    return _start_batch


@pytest.fixture(name="client")
def client_fixture(session: Session, transaction_types: TransactionTypeCache):
    """Create test client with overridden database session and lookup cache."""

    def get_session_override():
        return session

    def get_transaction_types_override():
        return transaction_types

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_transaction_types] = get_transaction_types_override
    client = TestClient(app)

    yield client

    app.dependency_overrides.clear()
