import os

# Must be set before config is imported
os.environ["DATABASE_URL"] = ""
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ.setdefault("ENVIRONMENT", "test")

import time
import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config import get_db
from main import app
from models import Base, Admin, Vendor, Listing

BASE_TIME = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    """Fixed timestamps so ordering assertions are deterministic"""
    return BASE_TIME + timedelta(minutes=minutes)


def make_token(user_id: str, email: str = "student@jabu.edu.ng", expires_in: int = 3600) -> str:
    now = int(time.time())
    return jwt.encode(
        {"sub": user_id, "email": email, "iat": now, "exp": now + expires_in},
        "test-secret",
        algorithm="HS256",
    )


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session_factory(engine):
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def other_user_id():
    return str(uuid.uuid4())


@pytest.fixture
async def admin_id(db):
    admin_user = uuid.uuid4()
    db.add(Admin(user_id=admin_user))
    await db.commit()
    return str(admin_user)


@pytest.fixture
async def vendor(db, user_id):
    vendor = Vendor(
        user_id=uuid.UUID(user_id),
        name="Mama Tee Kitchen",
        whatsapp="+234 803 123 4567",
        phone="0803-123-4567",
        location="Main Gate",
        vendor_type="food",
        verification_status="verified",
        created_at=at(0),
        updated_at=at(0),
    )
    db.add(vendor)
    await db.commit()
    return vendor


def make_listing(vendor: Vendor, minutes: int, **overrides) -> Listing:
    values = {
        "vendor_id": vendor.id,
        "title": f"Listing {minutes}",
        "listing_type": "product",
        "category": "Phones",
        "status": "active",
        "created_at": at(minutes),
        "updated_at": at(minutes),
    }
    values.update(overrides)
    return Listing(**values)
