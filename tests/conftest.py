"""
Shared fixtures: environment defaults, file-backed SQLite per test, factories,
and a TestClient with the database and external collaborators overridden.
"""
import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("IDENTITY_JWT_SECRET", "test-identity-secret-0123456789abcdef0123")
os.environ.setdefault("TOKEN_SALT", "test-salt")
os.environ.setdefault("APP_BASE_URL", "https://groupshare.test")
os.environ.setdefault("PAYMENT_PROVIDER", "simulated")
os.environ.setdefault("PAYMENT_WEBHOOK_SECRET", "")

import time
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import jwt
import pytest
from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import groupshare.models  # noqa: F401
from groupshare.db.base import Base
from groupshare.models import AccessInstructions, Group, Offer, UserProfile
from groupshare.services.payments.simulated import SimulatedPaymentProcessor
from groupshare.services.purchases.service import PurchaseWorkflow


def allow_all(user_id: str) -> bool:
    return True


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'groupshare.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make_user(name: str = "User", external_id: str | None = None) -> UserProfile:
        profile = UserProfile(
            external_auth_id=external_id or f"ext_{uuid4().hex[:12]}",
            display_name=name,
            email=f"{name.lower()}@example.com",
        )
        db.add(profile)
        db.commit()
        return profile

    return _make_user


@pytest.fixture
def make_offer(db):
    def _make_offer(
        owner: UserProfile,
        slots_total: int = 1,
        slots_available: int | None = None,
        price: str = "19.99",
        status: str = "active",
        instructions: str = "login: family@example.com / password: s3cret",
    ) -> Offer:
        group = Group(owner_id=owner.id, name=f"{owner.display_name}'s group")
        db.add(group)
        db.flush()
        offer = Offer(
            group_id=group.id,
            platform_id="netflix",
            status=status,
            slots_total=slots_total,
            slots_available=slots_total if slots_available is None else slots_available,
            price_per_slot=Decimal(price),
            currency="PLN",
        )
        db.add(offer)
        db.flush()
        db.add(AccessInstructions(group_sub_id=offer.id, instructions=instructions))
        db.commit()
        return offer

    return _make_offer


@pytest.fixture
def processor():
    return SimulatedPaymentProcessor()


@pytest.fixture
def workflow(db, processor):
    return PurchaseWorkflow(db, processor, rate_limiter=allow_all)


def make_session_token(subject: str, expires_in: int = 3600, **claims) -> str:
    now = int(time.time())
    payload = {"sub": subject, "iat": now, "exp": now + expires_in, **claims}
    return jwt.encode(payload, os.environ["IDENTITY_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def auth_headers():
    def _auth_headers(subject: str, **claims) -> dict:
        return {"Authorization": f"Bearer {make_session_token(subject, **claims)}"}

    return _auth_headers


@pytest.fixture
def idempotency_store():
    store = MagicMock()
    store.check_and_set.return_value = True
    return store


@pytest.fixture
def client(session_factory, idempotency_store):
    from fastapi.testclient import TestClient

    from groupshare.api.deps import get_idempotency, get_workflow
    from groupshare.db.session import get_db
    from groupshare.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def override_get_workflow(db=Depends(get_db)):
        return PurchaseWorkflow(db, SimulatedPaymentProcessor(), rate_limiter=allow_all)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_workflow] = override_get_workflow
    app.dependency_overrides[get_idempotency] = lambda: idempotency_store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def session_token():
    return make_session_token
