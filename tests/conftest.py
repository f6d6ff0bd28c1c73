"""
Pytest configuration and fixtures for the API tests.

Each test gets a fresh SQLite database file, an httpx client bound to the
ASGI app, and fake payment gateway, mailer and storage collaborators.
"""
import os
import tempfile

# Settings are read at import time
_UPLOAD_DIR = tempfile.mkdtemp(prefix="uploads-")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RAZORPAY_KEY_ID"] = "rzp_test_key"
os.environ["RAZORPAY_KEY_SECRET"] = "rzp_test_secret"
os.environ["RATE_LIMIT_PER_MINUTE"] = "0"
os.environ["SMTP_USER"] = ""
os.environ["B2_APPLICATION_KEY_ID"] = ""
os.environ["B2_APPLICATION_KEY"] = ""
os.environ["LOCAL_UPLOAD_DIR"] = _UPLOAD_DIR

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.main import app
from app.core.db import Base, get_db
from app.core.security import create_access_token, get_password_hash
from app.modules.auth.models import User, UserRole
from app.modules.blogs.models import Blog
from app.modules.catalog.models import AccessType, Category
from app.modules.media.storage import B2Storage, get_storage
from app.modules.notifications.mail import get_mailer
from app.modules.payments.gateway import compute_signature, get_gateway, get_gateway_factory
from app.modules.resources.models import Resource
from app.modules.subscriptions.models import SubscriptionPlan

API = "/api/v1"
PASSWORD = "secret123"


class FakeGateway:
    """Records orders instead of calling Razorpay."""

    def __init__(self, key_id: str = "rzp_test_key", key_secret: str = "rzp_test_secret"):
        self.key_id = key_id
        self.key_secret = key_secret
        self.orders = []

    async def create_order(self, amount, currency, receipt, notes=None):
        order = {"id": f"order_{len(self.orders) + 1}", "amount": amount, "currency": currency, "receipt": receipt, "notes": notes or {}}
        self.orders.append(order)
        return order

    def verify_signature(self, order_id, payment_id, signature):
        from app.modules.payments.gateway import verify_signature
        return verify_signature(order_id, payment_id, signature, self.key_secret)

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(order_id, payment_id, self.key_secret)


class FakeMailer:
    configured = True

    def __init__(self):
        self.sent = []

    def send(self, to_email, subject, body):
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return True


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def storage():
    return B2Storage()


@pytest.fixture
async def client(session_factory, gateway, mailer, storage):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_gateway_factory] = lambda: (lambda: gateway)
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# Data helpers

async def make_user(db, email="reader@example.com", role=UserRole.USER, verified=True, banned=False, name="Reader"):
    user = User(
        email=email,
        name=name,
        hashed_password=get_password_hash(PASSWORD),
        role=role,
        email_verified=verified,
        banned=banned,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_blog(db, slug="a-blog", access_type=AccessType.FREE, price=None, published=True, **kwargs):
    fields = {
        "title": slug.replace("-", " ").title(),
        "slug": slug,
        "content": "Full content " * 100,
        "access_type": access_type,
        "price": price,
        "published": published,
        "keywords": [],
        "published_at": datetime.now(timezone.utc) if published else None,
    }
    fields.update(kwargs)
    blog = Blog(**fields)
    db.add(blog)
    await db.commit()
    await db.refresh(blog)
    return blog


async def make_resource(db, slug="a-resource", access_type=AccessType.FREE, price=None, published=True, **kwargs):
    fields = {
        "title": slug.replace("-", " ").title(),
        "slug": slug,
        "description": "Useful resource " * 30,
        "content": "Resource body",
        "code_blocks": [{"language": "python", "code": "print('hi')"}],
        "access_type": access_type,
        "price": price,
        "published": published,
        "keywords": [],
        "published_at": datetime.now(timezone.utc) if published else None,
    }
    fields.update(kwargs)
    resource = Resource(**fields)
    db.add(resource)
    await db.commit()
    await db.refresh(resource)
    return resource


async def make_plan(db, name="Monthly", price=199.0, duration=1, active=True):
    plan = SubscriptionPlan(name=name, price=price, duration=duration, features=["All posts"], active=active)
    db.add(plan)
    await db.commit()
    await db.refresh(plan)
    return plan


async def make_category(db, name="Python", slug="python"):
    category = Category(name=name, slug=slug)
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject=user.id)}"}


@pytest.fixture
async def user(db):
    return await make_user(db)


@pytest.fixture
async def admin(db):
    return await make_user(db, email="admin@example.com", role=UserRole.ADMIN, name="Admin")


@pytest.fixture
def user_headers(user):
    return auth_headers(user)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


def days_from_now(days: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


def random_id() -> str:
    return str(uuid.uuid4())
