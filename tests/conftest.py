import os

import jwt
import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

TEST_SECRET = "test-secret-key-long-enough-for-hs256-signing"

# app.config refuses to load with the default secret outside development
os.environ.setdefault("JWT_SECRET", TEST_SECRET)

from app import config
from app.database import init_db
from app.dependencies.auth import CurrentUser
from app.models.user import Role, User
from app.services.session_service import expiry_scheduler


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET", TEST_SECRET)
    monkeypatch.setattr(config, "JWT_ALGORITHM", "HS256")


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    await init_db(client)
    yield client[config.DATABASE_NAME]
    await expiry_scheduler.shutdown()


@pytest.fixture
async def client(db):
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def make_token(user_id, role, secret=TEST_SECRET, **claims):
    payload = {"sub": str(user_id), "role": role, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_header(user_id, role):
    return {"Authorization": f"Bearer {make_token(user_id, role)}"}


@pytest.fixture
def faculty():
    return CurrentUser(id=ObjectId(), role=Role.faculty)


@pytest.fixture
def other_faculty():
    return CurrentUser(id=ObjectId(), role=Role.faculty)


@pytest.fixture
def student():
    return CurrentUser(id=ObjectId(), role=Role.student)


async def add_user(user_id, name, email, role=Role.student):
    user = User(id=user_id, name=name, email=email, role=role)
    await user.insert()
    return user
