"""
Test configuration for pytest
"""

import pytest
import os
import uuid
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session
from typing import Generator

# Test environment variables
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOG_JSON"] = "false"
os.environ["ANALYTICS_TIMEZONE"] = "UTC"
os.environ["QUEUE_LOCK_TIMEOUT_SECONDS"] = "5"

import queueline.models  # noqa: E402,F401  registers tables
from queueline.core.events import EventBus  # noqa: E402
from queueline.core.locks import QueueLockRegistry  # noqa: E402
from queueline.models.queue import Queue  # noqa: E402
from queueline.services.queue_engine import QueueEngine  # noqa: E402
from queueline.services.queue_manager import QueueManager  # noqa: E402


# Create test engine using in-memory SQLite for unit tests
test_engine = create_engine(
    "sqlite:///:memory:",
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


class FakeClock:
    """Deterministic UTC clock that tests move by hand"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a clean database session for each test"""
    # Create all tables
    SQLModel.metadata.create_all(test_engine)

    # Create session
    with Session(test_engine) as session:
        yield session

    # Cleanup
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 10, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def bus() -> EventBus:
    """Private event bus so subscriptions never leak between tests"""
    return EventBus()


@pytest.fixture
def locks() -> QueueLockRegistry:
    return QueueLockRegistry(timeout=2.0)


@pytest.fixture
def owner_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def manager(db: Session, clock: FakeClock) -> QueueManager:
    return QueueManager(db, clock=clock)


@pytest.fixture
def engine(db: Session, clock: FakeClock, locks: QueueLockRegistry, bus: EventBus) -> QueueEngine:
    return QueueEngine(db, clock=clock, locks=locks, bus=bus)


@pytest.fixture
def test_queue(manager: QueueManager, owner_id: uuid.UUID) -> Queue:
    """Create an active queue for the test owner"""
    return manager.create_queue(owner_id, "Front Desk", "Walk-in customers")
