import os
import tempfile
import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set DATA_DIR before importing app modules
_tmpdir = tempfile.mkdtemp()
os.environ["DATA_DIR"] = _tmpdir
os.environ.pop("DATABASE_URL", None)

from creditquest.database import Base, get_db, make_engine
from creditquest.main import app


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory SQLite database for each test."""
    engine = make_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    return engine


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI test client with overridden DB dependency."""
    def override_get_db():
        session = sessionmaker(bind=db_engine)()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sample_profile():
    return {
        "principal": 10000.0,
        "interestRate": 5.0,
        "monthlyPayment": 200.0,
        "startDate": "2024-01-01",
    }


@pytest.fixture
def created_profile(client, sample_profile):
    """Set up a loan profile and return the response data."""
    res = client.put("/api/profile", json=sample_profile)
    assert res.status_code == 200
    return res.json()
