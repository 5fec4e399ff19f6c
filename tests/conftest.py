"""Shared test fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.auth.jwt import create_access_token, reset_keys
from otakuloot.config import get_settings
from otakuloot.database import close_db, get_engine, init_db
from otakuloot.db import models  # noqa: F401
from otakuloot.db.base import Base
from otakuloot.db.models import Product, ProductVariant, User
from otakuloot.main import create_app
from otakuloot.users.service import create_user


def _write_test_keys() -> tuple[str, str]:
    """Generate an RSA key pair in a temp directory."""
    tmpdir = tempfile.mkdtemp(prefix="otakuloot_test_keys_")
    private_path = os.path.join(tmpdir, "jwt_private.pem")
    public_path = os.path.join(tmpdir, "jwt_public.pem")

    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    with open(private_path, "wb") as f:
        f.write(key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ))
    with open(public_path, "wb") as f:
        f.write(key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ))
    return private_path, public_path


@pytest.fixture(scope="session", autouse=True)
def _test_settings():
    """Point settings at generated keys, disable Redis, console logs."""
    private_path, public_path = _write_test_keys()
    os.environ["OTAKULOOT_JWT_PRIVATE_KEY_PATH"] = private_path
    os.environ["OTAKULOOT_JWT_PUBLIC_KEY_PATH"] = public_path
    os.environ["OTAKULOOT_REDIS_URL"] = ""
    os.environ["OTAKULOOT_LOG_FORMAT"] = "console"
    get_settings.cache_clear()
    reset_keys()
    yield
    get_settings.cache_clear()
    reset_keys()


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database with the full schema."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'otakuloot.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for service calls and assertions."""
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def other_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Second, independent session for concurrent-writer scenarios."""
    async with AsyncSession(get_engine(), expire_on_commit=False) as session:
        yield session


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> User:
    user = await create_user(db_session, "player@example.com", "Player One")
    await db_session.commit()
    return user


async def make_product(db: AsyncSession, slug: str, price: str) -> Product:
    product = Product(slug=slug, title=slug.replace("-", " ").title(), price=Decimal(price))
    db.add(product)
    await db.flush()
    return product


@pytest_asyncio.fixture
async def products(db_session: AsyncSession) -> dict[str, Product]:
    """A small catalog: two cheap items, one legendary, one with a variant."""
    catalog = {
        "katana": await make_product(db_session, "katana-keychain", "10.00"),
        "headband": await make_product(db_session, "leaf-headband", "5.00"),
        "cloak": await make_product(db_session, "legendary-cloak", "5000.00"),
        "hoodie": await make_product(db_session, "straw-hat-hoodie", "45.50"),
    }
    db_session.add(ProductVariant(product_id=catalog["hoodie"].id, size="M", color="red", stock_quantity=3))
    await db_session.commit()
    return catalog


@pytest_asyncio.fixture
async def client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the test database."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, user: User) -> AsyncClient:
    """Client carrying a bearer token for ``user``."""
    client.headers["Authorization"] = f"Bearer {create_access_token(user.id, user.email)}"
    return client
