import os

# Keep the module-level engine off the working directory; tests use their own database file
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from vidshare.config import get_settings
from vidshare.database import Base, get_db
from vidshare.services.processor import PassthroughProcessor, get_processor


@pytest.fixture(autouse=True)
def settings(tmp_path, monkeypatch):
    """Fresh settings per test: temporary upload root, 5 MB ceiling, sweeper off."""
    monkeypatch.setenv("UPLOAD_ROOT", str(tmp_path / "uploads"))
    monkeypatch.setenv("MAX_UPLOAD_MB", "5")
    monkeypatch.setenv("RETENTION_ENABLED", "false")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def processor():
    return PassthroughProcessor()


@pytest.fixture
def client(settings, session_factory, processor):
    from vidshare.main import create_app

    app = create_app()

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_processor] = lambda: processor
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
