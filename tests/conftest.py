import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

# Loggers open their files at import time
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="unionvote-logs-"))
os.environ.setdefault("SENTRY_ENABLED", "false")

from unionvote.config.settings import VotingConfigs  # noqa: E402
from unionvote.connections.database import Database  # noqa: E402
from unionvote.integrations.base import SMSTransport  # noqa: E402
from unionvote.repository.sql_repository import SQLVotingRepository  # noqa: E402
from unionvote.services.ballot_service import BallotService  # noqa: E402
from unionvote.services.otp_service import OTPService  # noqa: E402
from unionvote.services.session_service import SessionManager  # noqa: E402
from unionvote.services.session_slot import FileSessionSlot  # noqa: E402

MEMBER_PHONE = "09121234567"
ADMIN_PHONE = "09132323123"
FIXED_CODE = 4821


class FakeClock:
    def __init__(self, start: datetime = datetime(2026, 10, 18, 10, 0, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


class SequenceRandom:
    """randint stand-in returning the given values in order, repeating the last."""

    def __init__(self, *values: int):
        self.values = list(values) or [FIXED_CODE]

    def randint(self, low: int, high: int) -> int:
        value = self.values.pop(0) if len(self.values) > 1 else self.values[0]
        assert low <= value <= high
        return value


class RecordingTransport(SMSTransport):
    def __init__(self):
        self.messages = []
        self.fail = False
        self.error = None

    async def send_text(self, to_phone_number: str, body: str) -> bool:
        if self.error is not None:
            raise self.error
        if self.fail:
            return False
        self.messages.append((to_phone_number, body))
        return True


@pytest.fixture
def configs(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'unionvote.db'}")
    monkeypatch.setenv("DB_AUTO_CREATE", "true")
    monkeypatch.setenv("STORE_BACKEND", "database")
    monkeypatch.setenv("SESSION_BACKEND", "file")
    monkeypatch.setenv("SESSION_DIR", str(tmp_path / "sessions"))
    monkeypatch.setenv("SMS_ENABLED", "false")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("ADMIN_PHONE_NUMBER", ADMIN_PHONE)
    return VotingConfigs()


@pytest.fixture
def database(configs):
    db = Database(configs.DATABASE_URL, auto_create=True)
    yield db
    db.dispose()


@pytest.fixture
def repository(database):
    return SQLVotingRepository(database)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def otp_service(repository, transport, configs, clock):
    return OTPService(repository, transport, configs=configs, rng=SequenceRandom(FIXED_CODE), clock=clock)


@pytest.fixture
def session_slot(configs):
    return FileSessionSlot(configs.SESSION_DIR, configs.SESSION_SLOT_NAME, configs.SESSION_TTL_SECONDS)


@pytest.fixture
def session_manager(repository, session_slot, configs):
    return SessionManager(repository, session_slot, configs=configs)


@pytest.fixture
def ballot_service(repository, session_manager, clock):
    return BallotService(repository, session_manager, clock=clock)
