"""Shared fixtures: an isolated in-memory database per test."""
import os

# Must be set before labdesk.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEMO_DATA", "false")

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from labdesk.models.base import Base  # noqa: E402
import labdesk.models  # noqa: F401, E402  registers every mapper
from labdesk.models.patient import PatientRank  # noqa: E402
from labdesk.services import schema_registry  # noqa: E402
from labdesk.services.patients import register_patient  # noqa: E402


@pytest.fixture()
def session_factory():
    """Provide an isolated in-memory SQLite database for each test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    test_engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def blood_count(db):
    """'Blood Count' (Chemistry) with a required numeric 'Hemoglobin' field."""
    lab_test = schema_registry.create_test(db, "Blood Count", "Complete blood count", "Chemistry")
    schema_registry.add_field(db, lab_test.id, "Hemoglobin", "number", required=True, unit="g/dL")
    return lab_test


@pytest.fixture()
def army_patient(db):
    return register_patient(db, name="J. Doe", unique_id="A-100", rank=PatientRank.ARMY, age=35, sex="Male", ward="W1")


@pytest.fixture()
def client(session_factory):
    from fastapi.testclient import TestClient
    from labdesk.main import app
    from labdesk.models.base import get_db

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
