import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from delivery_bot.core.database import Base
import delivery_bot.models  # noqa: F401
from delivery_bot.models.menu_item import MenuItem
from delivery_bot.models.store_settings import StoreSettings
from delivery_bot.models.tenant import Tenant

from tests.fixtures_data import DEMO_MENU, DEMO_RANGES


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def seed_tenant(db, tenant_id=1, name="Pizzaria Teste", menu=DEMO_MENU, ranges=DEMO_RANGES):
    db.add(Tenant(id=tenant_id, name=name))
    db.add(
        StoreSettings(
            tenant_id=tenant_id,
            name=name,
            latitude=-23.550520,
            longitude=-46.633308,
            delivery_ranges_json=json.dumps(ranges),
        )
    )
    for item_name, category, price_cents in menu:
        db.add(MenuItem(tenant_id=tenant_id, name=item_name, category=category, price_cents=price_cents))
    db.commit()


@pytest.fixture
def seeded_db(db):
    seed_tenant(db)
    return db


@pytest.fixture
def client(monkeypatch, session_factory):
    from fastapi.testclient import TestClient

    import delivery_bot.main as main_module
    from delivery_bot.core.database import get_db

    monkeypatch.setattr(main_module, "_startup_tasks", lambda: None)

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    main_module.app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(main_module.app)
    finally:
        main_module.app.dependency_overrides.clear()
