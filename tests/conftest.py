import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

import fakeredis
import pytest
from httpx import ASGITransport, AsyncClient

from storefront import auth, cache, models
from storefront.assets import get_asset_store
from storefront.database import Base, build_engine, build_sessionmaker, get_db
from storefront.main import app

PASSWORD = "secret123"


class FakeAssetStore:
    def __init__(self):
        self.uploaded = []
        self.destroyed = []

    async def upload(self, image):
        self.uploaded.append(image)
        n = len(self.uploaded)
        return {
            "asset_id": f"asset-{n}",
            "public_id": f"shopping/image-{n}",
            "url": f"http://img.test/{n}.jpg",
            "secure_url": f"https://img.test/{n}.jpg",
        }

    async def destroy(self, public_id):
        self.destroyed.append(public_id)
        return {"result": "not found"}


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def fake_cache(monkeypatch):
    # the app talks to the async client; tests inspect the same keyspace synchronously
    server = fakeredis.FakeServer()
    monkeypatch.setattr(cache, "_client", fakeredis.FakeAsyncRedis(server=server, decode_responses=True))
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def asset_store():
    return FakeAssetStore()


@pytest.fixture
async def client(session_factory, asset_store):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_asset_store] = lambda: asset_store
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(db, email, name, role="USER", enabled=True, password=PASSWORD):
    user = models.User(
        email=email,
        name=name,
        password=auth.get_password_hash(password),
        role=role,
        enabled=enabled,
    )
    db.add(user)
    await db.commit()
    return user


async def make_product(db, title="Mochi", price=10.0, quantity=5, category_id=None):
    product = models.Product(
        title=title, description=f"{title} description", price=price, quantity=quantity, category_id=category_id
    )
    db.add(product)
    await db.commit()
    return product


def bearer(user):
    token = auth.create_access_token({"id": user.id, "email": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def user(db):
    return await make_user(db, "john@example.com", "John Doe")


@pytest.fixture
async def admin(db):
    return await make_user(db, "admin@example.com", "admin", role="ADMIN")


@pytest.fixture
def user_headers(user):
    return bearer(user)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
async def category(db):
    category = models.Category(name="Cake")
    db.add(category)
    await db.commit()
    return category
