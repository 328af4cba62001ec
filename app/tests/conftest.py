import os

# Must be set before anything imports app.core.config / app.db.session
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["DEBUG_ENDPOINTS_ENABLED"] = "true"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import app.models  # noqa

from app.core.config import Settings
from app.db.base import Base
from app.services.reconciliation_service import build_reconciliation_service
from app.tests.factories import RecordingDocuments, RecordingEmitter

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        scheduler_enabled=False,
        debug_endpoints_enabled=True,
    )


@pytest.fixture
def emitter():
    return RecordingEmitter()


@pytest.fixture
def documents():
    return RecordingDocuments()


@pytest.fixture
def service(settings, documents, emitter):
    return build_reconciliation_service(settings, documents=documents, emitter=emitter)


@pytest.fixture
def lifecycle(service):
    return service.lifecycle


@pytest.fixture
def contracts(service):
    return service.contracts


@pytest.fixture
def client(db, service):
    from fastapi.testclient import TestClient

    from app.db.session import get_db
    from app.main import create_app
    from app.services.scheduler import ReconciliationScheduler

    app = create_app()
    app.state.reconciliation = service
    app.state.scheduler = ReconciliationScheduler(
        service, session_factory=lambda: db, interval_seconds=60
    )

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c
