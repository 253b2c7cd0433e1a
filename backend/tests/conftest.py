import os
import shutil
import tempfile

# Settings are read at import time, so point them at throwaway locations
# before anything from app is imported
_TMP_DIR = tempfile.mkdtemp(prefix="freelancer-tests-")
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["ORPHAN_CLEANUP_ENABLED"] = "false"
os.environ["FRONTEND_URL"] = "http://frontend.test"

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_notifier
from app.core.database import Base, SessionLocal, engine, init_db
from app.main import app
from app.services.email_service import NotificationResult
from app.services.user_directory import UserDirectory
from app.storage.local_storage import storage


class RecordingNotifier:
    """Stand-in mailer that records calls and can be told to fail"""

    def __init__(self):
        self.sent = []
        self.fail_with = None
        self.raise_error = None

    async def send_registration_notice(self, to_email, name):
        return self._record(("registration", to_email, name))

    async def send_verification_notice(self, to_email, name, token):
        return self._record(("verification", to_email, name, token))

    def _record(self, call):
        if self.raise_error is not None:
            raise self.raise_error
        self.sent.append(call)
        if self.fail_with:
            return NotificationResult(success=False, error=self.fail_with)
        return NotificationResult(success=True, message_id=f"<{len(self.sent)}@test>")


@pytest.fixture(autouse=True)
def clean_state():
    """Fresh schema and an empty upload directory for every test"""
    Base.metadata.drop_all(bind=engine)
    init_db()
    shutil.rmtree(storage.upload_dir, ignore_errors=True)
    storage.upload_dir.mkdir(parents=True, exist_ok=True)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def directory(db):
    return UserDirectory(db)


@pytest.fixture
def media():
    return storage


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def client(notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)


def pytest_sessionfinish(session, exitstatus):
    engine.dispose()
    shutil.rmtree(_TMP_DIR, ignore_errors=True)
