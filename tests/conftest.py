from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from backend.attachments import ResumeStore
from backend.config import Settings
from backend.database import Base, make_engine, make_session_factory
from backend.main import create_app
from backend.storage import JobApplicationStore

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"


class FakeClock:
    """Advances by a fixed step on every reading."""

    def __init__(self, start=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


def job_fields(**overrides):
    fields = {
        "companyName": "Acme",
        "jobRole": "Engineer",
        "dateApplied": "2024-01-05",
        "source": "linkedin",
        "status": "applied",
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = make_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def store(db, clock):
    return JobApplicationStore(db, clock=clock)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def resumes(upload_dir):
    return ResumeStore(upload_dir, max_bytes=10 * 1024 * 1024)


@pytest.fixture
def settings(upload_dir):
    return Settings(database_url="sqlite://", upload_dir=upload_dir)


@pytest.fixture
def app(settings, clock):
    return create_app(settings, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def stored_files(directory):
    return sorted(p.name for p in directory.iterdir()) if directory.exists() else []
