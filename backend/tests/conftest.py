import os

# Settings are read at import time; point everything at in-memory SQLite before gtms is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LOCALE"] = "en"

import time
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import gtms.models  # noqa: F401
from gtms.api.deps import get_config, get_notifier
from gtms.config import NotificationConfig
from gtms.db.base import Base
from gtms.db.session import get_db
from gtms.main import app
from gtms.services.dispatcher import DeliveryDispatcher
from gtms.services.notification_factory import NotificationFactory
from gtms.services.notifier import Notifier
from gtms.services.push import PushDeliveryError

PATIENT_ID = "patient-1"


class FakePushSender:
    """Records every send; endpoints listed in failures raise PushDeliveryError with that status."""

    def __init__(self):
        self.calls = []
        self.failures: dict[str, int | None] = {}
        self.delay_seconds = 0.0

    def __call__(self, subscription_info, payload, config):
        self.calls.append((subscription_info["endpoint"], payload))
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        endpoint = subscription_info["endpoint"]
        if endpoint in self.failures:
            raise PushDeliveryError(f"push to {endpoint} failed", status_code=self.failures[endpoint])


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def config():
    return NotificationConfig(
        vapid_private_key="test-private-key",
        vapid_public_key="test-public-key",
        push_timeout_seconds=0.5,
    )


@pytest.fixture
def sender():
    return FakePushSender()


@pytest.fixture
def dispatcher(config, sender):
    return DeliveryDispatcher(config, sender=sender)


@pytest.fixture
def factory(config):
    return NotificationFactory(config)


@pytest.fixture
def notifier(factory, dispatcher):
    return Notifier(factory, dispatcher)


def make_token(user_id=PATIENT_ID, role="patient", expires_in=timedelta(hours=1)):
    claims = {"userId": user_id, "role": role, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(claims, "test-secret", algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def client(db, config, notifier):
    def _db():
        yield db

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()
