import os
import tempfile
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

os.environ["ENVIRONMENT"] = "development"
os.environ.setdefault("DATABASE_URL", "sqlite:///./storefront-test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-storefront-tests-only")
os.environ.setdefault("EMAILS_ENABLED", "true")
os.environ.setdefault("TAX_RATE", "0.05")

import app.models  # noqa: F401
import app.utils.email as email_utils
from app.db.base_class import Base
from app.db.session import get_db
from app.main import app


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    db_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_file.close()

    engine = create_engine(
        f"sqlite:///{db_file.name}",
        connect_args={"check_same_thread": False},
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        os.unlink(db_file.name)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.state.limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch) -> list:
    """Capture queued emails instead of publishing to the broker."""
    sent = []

    def fake_send_email_async(task_name, *args):
        sent.append((task_name, args))
        return f"task-{len(sent)}"

    monkeypatch.setattr(email_utils, "send_email_async", fake_send_email_async)
    return sent
