import os

# Must be set before urlshortener.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from urlshortener import crud, database, models
from urlshortener.main import app


@pytest.fixture
def engine():
    # In-memory SQLite shared by every session of one test
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    crud.init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[database.get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def fetch(session_factory):
    """Read a record through a fresh session so no identity-map state leaks in."""
    def _fetch(short_code):
        with session_factory() as session:
            return session.execute(
                select(models.URL).where(models.URL.short_code == short_code)
            ).scalar_one_or_none()
    return _fetch
