import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure backend/ is importable even when pytest runs from repo root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# The application must run in test/sqlite mode *before* any app module is imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENCRYPTION_KEY", "test-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from dashboard_api.db.base import Base, load_models  # noqa: E402
from dashboard_api.db.session import ENGINE, SessionLocal, get_db  # noqa: E402
from dashboard_api.deps import (  # noqa: E402
    get_job_queue,
    get_ukg_client_factory,
    get_warehouse,
)
from dashboard_api.main import app  # noqa: E402

from _fakes import FakeJobQueue, FakeUKGFactory, FakeWarehouse  # noqa: E402

load_models()
Base.metadata.create_all(bind=ENGINE)


@pytest.fixture(scope="function")
def reset_db():
    Base.metadata.drop_all(bind=ENGINE)
    Base.metadata.create_all(bind=ENGINE)
    yield


@pytest.fixture(scope="function")
def db(reset_db):
    session = SessionLocal()

    def _override_get_db():
        yield session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture(scope="function")
def session(db):
    yield db


@pytest.fixture(scope="function")
def warehouse():
    fake = FakeWarehouse()
    app.dependency_overrides[get_warehouse] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_warehouse, None)


@pytest.fixture(scope="function")
def ukg():
    factory = FakeUKGFactory()
    app.dependency_overrides[get_ukg_client_factory] = lambda: factory
    yield factory
    app.dependency_overrides.pop(get_ukg_client_factory, None)


@pytest.fixture(scope="function")
def job_queue():
    fake = FakeJobQueue()
    app.dependency_overrides[get_job_queue] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_job_queue, None)


@pytest.fixture(scope="function")
def client(db, warehouse, ukg, job_queue):
    with TestClient(app) as c:
        yield c
