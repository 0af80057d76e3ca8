"""Pytest configuration and fixtures."""

import json
import os

# Keep the app's own engine off the working directory's database file.
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.models.review import Review  # noqa: F401


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="client")
def client_fixture(db_session: Session):
    """Create a test client with overridden DB dependency."""
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(name="invoke")
def invoke_fixture(db_session: Session):
    """Call the function adapter with a proxy-style event against the test DB."""
    from app import serverless

    serverless._session_factory = lambda: db_session

    def _invoke(method: str, path: str, query: dict | None = None, body=None, headers: dict | None = None) -> dict:
        event = {
            "httpMethod": method,
            "path": f"/functions/api{path}",
            "queryStringParameters": query,
            "headers": headers or {},
            "body": body if body is None or isinstance(body, str) else json.dumps(body),
            "isBase64Encoded": False,
        }
        return serverless.handler(event, None)

    yield _invoke
    serverless._session_factory = None
