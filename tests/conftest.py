from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import salerecords.persistence.pg as pg
from helpers import make_lookups
from salerecords.clients.lookups import Lookups
from salerecords.core.config import get_settings
from salerecords.events.publisher import InMemoryEventPublisher, PublishDispatcher, SaleRecordPublishers
from salerecords.persistence.models import Base


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("db") / "test.sqlite"


@pytest.fixture(scope="session", autouse=True)
def configure_test_engine(test_db_path: Path):
    settings = get_settings()
    settings.broker_backend = "memory"
    settings.publish_max_workers = 2

    engine = create_engine(
        f"sqlite+pysqlite:///{test_db_path}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    TestSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

    pg.engine = engine
    pg.SessionLocal = TestSessionLocal

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def lookups() -> Lookups:
    return make_lookups()


@pytest.fixture()
def publishers():
    with SaleRecordPublishers(
        sale_records=InMemoryEventPublisher("sale-record"),
        failures=InMemoryEventPublisher("sale-record-fail"),
        dispatcher=PublishDispatcher(max_workers=2, max_pending=100),
    ) as bundle:
        yield bundle


@pytest.fixture()
def session(configure_test_engine):
    with pg.session_scope() as s:
        yield s


@pytest.fixture()
def client(configure_test_engine, lookups):
    from salerecords.main import app

    with TestClient(app) as c:
        app.state.lookups = lookups
        yield c


@pytest.fixture()
def auth_headers():
    settings = get_settings()
    return {
        "service": {"X-API-Key": settings.service_api_key},
        "operator": {"X-API-Key": settings.operator_api_key},
    }
