# tests/conftest.py
import os
from decimal import Decimal

# must be set before anything imports scrapyard.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["LIFECYCLE_STRICT"] = "0"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import scrapyard.models  # noqa: E402,F401
from scrapyard.db import Base, SessionLocal, engine  # noqa: E402
from scrapyard.main import app  # noqa: E402
from scrapyard.models.inventory import InventoryLot  # noqa: E402
from scrapyard.models.user import User  # noqa: E402
from scrapyard.routers import auth  # noqa: E402
from scrapyard.utils.security import hash_password  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    auth.throttle.clear()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(username="yard", role="yard_staff", is_active=True):
        user = User(
            username=username,
            email=f"{username}@example.com",
            name=username.title(),
            role=role,
            is_active=is_active,
            password_hash=hash_password(PASSWORD),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def make_lot(db):
    counter = {"n": 0}

    def _make(stage="collection", status="available", **kw):
        counter["n"] += 1
        lot = InventoryLot(
            item_id=kw.pop("item_id", f"INV-{counter['n']:04d}"),
            metal_type=kw.pop("metal_type", "Copper"),
            grade=kw.pop("grade", "Berry"),
            quantity=kw.pop("quantity", Decimal("2.5")),
            unit=kw.pop("unit", "tons"),
            lifecycle_stage=stage,
            status=status,
            **kw,
        )
        db.add(lot)
        db.commit()
        db.refresh(lot)
        return lot
    return _make


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def login(client, make_user):
    """Log the test client in as a fresh user with the given role."""
    def _login(role="yard_staff", username=None):
        u = make_user(username=username or role.replace("_", ""), role=role)
        r = client.post("/api/auth/login", json={"username": u.username, "password": PASSWORD})
        assert r.status_code == 200, r.text
        return u
    return _login
