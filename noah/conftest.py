"""Pytest configuration and fixtures for Noah backend tests.

Environment variables are set before the application is imported so
settings load in test mode: mock providers, no MCP child processes and
no analytics database unless a test provides one.
"""

import os

import pytest


def pytest_configure(config):
    """Configure test environment before any tests run.

    Key test settings:
    - ENVIRONMENT=test
    - ALLOWED_HOSTS includes testserver for TestClient
    - PROVIDER_MODE=mock so no test ever reaches a real LLM
    - MCP_*_ENABLED=false so no npx child process is spawned
    """
    config.addinivalue_line("markers", "security: Security-related tests")

    os.environ.setdefault("ENVIRONMENT", "test")

    allowed_hosts = os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1")
    if "testserver" not in allowed_hosts:
        os.environ["ALLOWED_HOSTS"] = f"{allowed_hosts},testserver"

    os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")
    os.environ.setdefault("PROVIDER_MODE", "mock")
    os.environ.setdefault("MCP_FILESYSTEM_ENABLED", "false")
    os.environ.setdefault("MCP_MEMORY_ENABLED", "false")
    os.environ.setdefault("RAG_ENABLED", "false")
    os.environ.setdefault("PERPLEXITY_API_KEY", "")


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Process-wide caches must not leak between tests."""
    from noah.artifacts.service import session_artifacts
    from noah.config import get_settings
    from noah.filesystem.service import get_filesystem_service
    from noah.memory.service import get_memory_service

    get_settings.cache_clear()
    get_filesystem_service.cache_clear()
    get_memory_service.cache_clear()
    session_artifacts.clear()
    yield
    get_settings.cache_clear()
    get_filesystem_service.cache_clear()
    get_memory_service.cache_clear()
    session_artifacts.clear()


@pytest.fixture
def db_engine(tmp_path, monkeypatch):
    """Fresh SQLite analytics database with all tables created."""
    from noah.config import get_settings
    from noah.db import Base, dispose_engine
    from noah.db.database import get_engine

    db_path = tmp_path / "noah_test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    get_settings.cache_clear()
    dispose_engine()
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield engine
    dispose_engine()


@pytest.fixture
def db_session(db_engine):
    from sqlalchemy.orm import sessionmaker

    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def app(db_engine):
    """Fresh application bound to the test database."""
    from noah.main import create_app

    return create_app()


@pytest.fixture
def client(app):
    """TestClient with the lifespan running (mock providers, MCP disabled)."""
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client
