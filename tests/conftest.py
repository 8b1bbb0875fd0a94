import os
import tempfile

os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["STORAGE"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="pharmacy-uploads-")

from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.deps import get_notification_service, get_redis, get_storage
from app.core.security import hash_password
from app.db.base import Base
from app.db.enums import PrescriptionStatus, UserRole
from app.db.sessions import get_async_session
from app.main import app
from app.models.medication import Medication
from app.models.pharmacy import Pharmacy
from app.models.prescription import Prescription
from app.models.user import User
from app.services.notification.notification_service import NotificationService

PASSWORD = "Str0ng!Pass"

PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


# DATABASE SETUP (SQLite in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingAsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
)


# PYTEST CORE FIXTURES
@pytest.fixture(scope="session")
def test_app():
    return app


@pytest.fixture(scope="function", autouse=True)
async def setup_db():
    """Create and drop tables per test."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One session shared by the test and every request it makes.
    Objects are expired by a rollback; refresh them before reading.
    """
    async with TestingAsyncSessionLocal() as session:
        yield session


# MOCKS
@pytest.fixture
def mock_redis():
    redis = AsyncMock()
    _storage = {}

    async def set_val(key, val, ex=None):
        _storage[key] = val

    async def get_val(key):
        return _storage.get(key)

    async def delete_val(key):
        _storage.pop(key, None)

    redis.set = AsyncMock(side_effect=set_val)
    redis.get = AsyncMock(side_effect=get_val)
    redis.delete = AsyncMock(side_effect=delete_val)
    redis.ping = AsyncMock(return_value=True)
    redis.store = _storage
    return redis


class MockStorage:
    def __init__(self):
        self.files = {}

    async def upload(self, key: str, file_bytes: bytes, content_type: str) -> str:
        self.files[key] = file_bytes
        return key

    async def read(self, key: str) -> bytes:
        if key not in self.files:
            raise FileNotFoundError(key)
        return self.files[key]

    async def exists(self, key: str) -> bool:
        return key in self.files

    def generate_url(self, key: str, expires_in: int = 300) -> str:
        return f"https://mock-storage/{key}"


@pytest.fixture
def mock_storage():
    return MockStorage()


@pytest.fixture
def mock_notification():
    return AsyncMock(spec=NotificationService)


# DEPENDENCY OVERRIDES
@pytest.fixture(autouse=True)
def override_dependencies(test_app, db_session, mock_storage, mock_redis, mock_notification):

    async def _get_test_session():
        yield db_session

    test_app.dependency_overrides[get_async_session] = _get_test_session
    test_app.dependency_overrides[get_storage] = lambda: mock_storage
    test_app.dependency_overrides[get_redis] = lambda: mock_redis
    test_app.dependency_overrides[get_notification_service] = lambda: mock_notification

    yield

    test_app.dependency_overrides.clear()


# HTTP CLIENT
@pytest.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://localhost",
    ) as ac:
        yield ac


# DATA FIXTURES
@pytest.fixture
async def pharmacy(db_session):
    pharmacy = Pharmacy(
        name="Central Pharmacy",
        address="12 Marina Road",
        contact_phone="+2348000000001",
        contact_email="central@example.com",
    )
    db_session.add(pharmacy)
    await db_session.commit()
    await db_session.refresh(pharmacy)
    return pharmacy


@pytest.fixture
async def other_pharmacy(db_session):
    pharmacy = Pharmacy(name="Lakeside Pharmacy", address="4 Lake Street")
    db_session.add(pharmacy)
    await db_session.commit()
    await db_session.refresh(pharmacy)
    return pharmacy


@pytest.fixture
async def otc_medication(db_session, pharmacy):
    medication = Medication(
        name="Paracetamol 500mg",
        description="Pain and fever relief",
        category="Pain Relief",
        dosage="500mg",
        price=Decimal("10.00"),
        stock_quantity=50,
        online_stock=50,
        in_person_stock=0,
        requires_prescription=False,
        pharmacy_id=pharmacy.id,
    )
    db_session.add(medication)
    await db_session.commit()
    await db_session.refresh(medication)
    return medication


@pytest.fixture
async def rx_medication(db_session, pharmacy):
    medication = Medication(
        name="Amoxicillin 500mg",
        description="Antibiotic",
        category="Antibiotics",
        dosage="500mg",
        price=Decimal("25.50"),
        stock_quantity=20,
        online_stock=15,
        in_person_stock=5,
        requires_prescription=True,
        pharmacy_id=pharmacy.id,
    )
    db_session.add(medication)
    await db_session.commit()
    await db_session.refresh(medication)
    return medication


async def _create_user(db_session, **fields) -> User:
    user = User(
        hashed_password=hash_password(PASSWORD),
        is_active=True,
        is_email_verified=True,
        **fields,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def _login(client, email: str) -> dict:
    response = await client.post(
        "/api/auth/login",
        json={"email": email, "password": PASSWORD},
    )
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
async def test_admin(db_session, pharmacy):
    return await _create_user(
        db_session,
        full_name="Admin User",
        email="admin@example.com",
        role=UserRole.ADMIN,
        pharmacy_id=pharmacy.id,
    )


@pytest.fixture
async def admin_token(client, test_admin):
    return await _login(client, "admin@example.com")


@pytest.fixture
async def test_pharmacist(db_session, pharmacy):
    return await _create_user(
        db_session,
        full_name="Test Pharmacist",
        email="pharmacist@example.com",
        role=UserRole.PHARMACIST,
        pharmacy_id=pharmacy.id,
    )


@pytest.fixture
async def pharmacist_token(client, test_pharmacist):
    return await _login(client, "pharmacist@example.com")


@pytest.fixture
async def test_customer(db_session):
    return await _create_user(
        db_session,
        full_name="Ada Customer",
        email="ada@example.com",
        phone_number="+2348012345678",
        role=UserRole.CUSTOMER,
    )


@pytest.fixture
async def customer_token(client, test_customer):
    return await _login(client, "ada@example.com")


@pytest.fixture
async def approved_prescription(db_session, test_customer, test_admin, rx_medication, mock_storage):
    key = "prescriptions/approved.pdf"
    await mock_storage.upload(key, PDF_BYTES, "application/pdf")

    prescription = Prescription(
        user_id=test_customer.id,
        medication_id=rx_medication.id,
        file_path=key,
        filename="approved.pdf",
        content_type="application/pdf",
        status=PrescriptionStatus.APPROVED,
        pharmacist_id=test_admin.id,
    )
    db_session.add(prescription)
    await db_session.commit()
    await db_session.refresh(prescription)
    return prescription


