"""
Shared pytest fixtures.

The application is pointed at an in-memory SQLite database before any app
module is imported. Each test gets a fresh schema.
"""

import os
import sys
from datetime import date, datetime
from decimal import Decimal

import pytest
import pytz

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["TIMEZONE"] = "Asia/Ho_Chi_Minh"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base, enable_sqlite_savepoints, get_db
from app.main import app
from app.modules.categories.models import Category, normalize_name
from app.modules.savings.services import create_goal
from app.modules.users.services import register_user
from app.modules.wallets.services import create_wallet


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(test_engine)
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def owner(db):
    """A registered user; returns its id."""
    user = register_user(db, "alice", "secret123")
    db.commit()
    return user.id


@pytest.fixture
def other_owner(db):
    user = register_user(db, "bob", "secret123")
    db.commit()
    return user.id


def make_category(db, owner_id, name, type_):
    category = Category(owner_id=owner_id, name=name, name_key=normalize_name(name), type=type_, is_active=True)
    db.add(category)
    db.flush()
    return category


def make_wallet(db, owner_id, name="Cash", balance="0", type_="cash"):
    return create_wallet(db, owner_id, name=name, type_=type_, initial_balance=Decimal(balance))


def make_goal(db, owner_id, target="50000", name="Laptop", deadline=None):
    return create_goal(db, owner_id, name=name, target_amount=Decimal(target), deadline=deadline)


@pytest.fixture
def client(session_factory):
    """TestClient whose requests each get their own session on the test database."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    response = client.post("/api/v1/auth/register", json={"username": "carol", "password": "secret123"})
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def at(year, month, day, hour=12):
    return datetime(year, month, day, hour, 0, 0)


def d(year, month, day):
    return date(year, month, day)


def local_at(year, month, day, hour=0, minute=0, second=0):
    """Aware datetime on the Asia/Ho_Chi_Minh (UTC+7) wall clock."""
    return pytz.timezone("Asia/Ho_Chi_Minh").localize(datetime(year, month, day, hour, minute, second))
