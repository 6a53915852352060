"""
Shared fixtures: an in-memory SQLite database per test, the store / state /
service objects built on it, and a FastAPI TestClient wired to the same
database.
"""

import os

# Must be set before clinic.core.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic.core.database import get_db
from clinic.main import app
from clinic.models import Base, Gender, InventoryCategory
from clinic.schemas.inventory import InventoryItemCreate
from clinic.schemas.patient import PatientCreate
from clinic.services import patient_service
from clinic.services.billing_service import BillingService
from clinic.services.clinic_state import ClinicState
from clinic.services.clinic_store import ClinicStore
from clinic.services.inventory_service import InventoryLedger
from clinic.services.treatment_service import TreatmentManager


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return ClinicStore(db)


@pytest.fixture
def state(store):
    return ClinicState.load(store)


@pytest.fixture
def ledger(state, store):
    return InventoryLedger(state, store)


@pytest.fixture
def treatments(state, store):
    return TreatmentManager(state, store)


@pytest.fixture
def billing(state, store):
    return BillingService(state, store)


@pytest.fixture
def make_item(ledger):
    """Create an item through the ledger (opening stock becomes a transaction)."""

    def _make(**overrides):
        fields = {
            "name": "Paracetamol 500mg",
            "category": InventoryCategory.MEDICATION,
            "unit": "tablet",
            "unit_cost": Decimal("0.50"),
            "current_stock": 100,
            "reorder_level": 10,
            "reorder_quantity": 100,
        }
        fields.update(overrides)
        return ledger.create_item(InventoryItemCreate(**fields), created_by="tester")

    return _make


@pytest.fixture
def make_bare_item(state, store):
    """Create an item with stock but no ledger history, written straight to the store."""

    def _make(current_stock=100, **overrides):
        fields = {
            "name": "Gauze",
            "category": InventoryCategory.SUPPLY,
            "unit": "pack",
            "unit_cost": Decimal("1.00"),
            "reorder_level": 5,
            "reorder_quantity": 50,
        }
        fields.update(overrides)
        item = store.create_item(current_stock=current_stock, **fields)
        state.apply_item(item)
        return item

    return _make


@pytest.fixture
def make_patient(state, store):
    def _make(**overrides):
        fields = {
            "name": "Chanda Banda",
            "age": 34,
            "gender": Gender.FEMALE,
            "residence": "Lusaka",
        }
        fields.update(overrides)
        return patient_service.create_patient(
            state, store, payload=PatientCreate(**fields), created_by="tester"
        )

    return _make


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
