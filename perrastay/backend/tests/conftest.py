# backend/tests/conftest.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.auth import Principal
from app.clock import FrozenClock
from app.config import Settings
from app.db import Base, make_engine, make_session_factory
from app.main import create_app
from app.models import Account, Listing
from app.services.auth_service import hash_password
from app.services.mailer import RecordingMailer

NOW = datetime(2026, 3, 1, 12, 0, 0)
PASSWORD = "Sup3r-secret!"


@pytest.fixture
def cfg() -> Settings:
    # cheap hashing keeps the suite fast
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        pbkdf2_iterations=1_000,
        email_backend="log",
        csrf_secret="test-csrf-secret",
        jwt_secret="test-jwt-secret-with-enough-length-0123456789",
    )


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(engine)
    try:
        yield make_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def app(cfg, session_factory, clock, mailer):
    return create_app(cfg, session_factory=session_factory, clock=clock, mailer=mailer)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def make_account(db, *, email: str, is_host: bool = False, verified: bool = True, password: str = PASSWORD) -> Account:
    a = Account(
        email=email,
        first_name="Test",
        last_name="User",
        password_hash=hash_password(password, iterations=1_000),
        is_host=is_host,
        email_verified=verified,
        created_at=NOW,
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


def make_listing(db, host: Account, *, deposit: str = "500.00") -> Listing:
    row = Listing(
        host_id=host.id,
        title="Casa con jardin",
        location="Guadalajara",
        monthly_price=Decimal("1200.00"),
        deposit_amount=Decimal(deposit),
        created_at=NOW,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def principal_for(a: Account) -> Principal:
    return Principal(account_id=int(a.id), email=a.email, role=a.role)


@pytest.fixture
def host(db) -> Account:
    return make_account(db, email="host@example.com", is_host=True)


@pytest.fixture
def guest(db) -> Account:
    return make_account(db, email="guest@example.com")


@pytest.fixture
def listing(db, host) -> Listing:
    return make_listing(db, host)


@pytest.fixture
def file_session_factory(tmp_path):
    # separate connections per session, so two sessions can interleave
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)
    try:
        yield make_session_factory(engine)
    finally:
        engine.dispose()
