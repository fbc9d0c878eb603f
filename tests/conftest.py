import os

# The engine in pos_service.infrastructure.db is built at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RUN_MIGRATIONS", "false")

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from pos_service.api.deps import get_notifier
from pos_service.application.notifications import PaidOrderNotifier
from pos_service.application.service import OrderService
from pos_service.domain.models import Category, MenuItem
from pos_service.domain.restaurant import RestaurantSettings
from pos_service.infrastructure.db import build_engine, build_session_factory, get_db, init_models


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier(PaidOrderNotifier):
    def __init__(self):
        self.calls = []

    def notify_paid(self, customer_name, customer_phone, amount):
        self.calls.append((customer_name, customer_phone, amount))


class FailingNotifier(PaidOrderNotifier):
    def notify_paid(self, customer_name, customer_phone, amount):
        raise ConnectionError("customers service unreachable")


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_models(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def menu(db):
    """Two categories and four dishes; returns menu item ids by name."""
    mains = Category(name="Mains")
    drinks = Category(name="Drinks")
    items = [
        MenuItem(name="Paneer Tikka", price=Decimal("19.99"), category=mains),
        MenuItem(name="Dal Makhani", price=Decimal("12.50"), category=mains),
        MenuItem(name="Butter Naan", price=Decimal("3.00"), category=mains),
        MenuItem(name="Mango Lassi", price=Decimal("4.25"), category=drinks),
    ]
    db.add_all([mains, drinks, *items])
    db.commit()
    return {item.name: item.id for item in items}


@pytest.fixture
def settings():
    return RestaurantSettings(restaurant_name="Spice Route", table_count=12)


@pytest.fixture
def clock():
    # 12:00 in Asia/Kolkata
    return FixedClock(datetime(2025, 3, 14, 6, 30))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return FailingNotifier()


@pytest.fixture
def service(db, menu, settings, notifier, clock):
    return OrderService(db, settings, notifier=notifier, clock=clock)


@pytest.fixture
def client(session_factory, menu, notifier):
    from pos_service.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
