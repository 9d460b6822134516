import sys
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from hoa_ledger.api.dependencies import get_current_actor, get_storage, get_store  # noqa: E402
from hoa_ledger.config import Base  # noqa: E402
from hoa_ledger.main import app  # noqa: E402
# Import the models module so the kv_store table registers with Base metadata.
from hoa_ledger.models import models as _all_models  # noqa: E402,F401
from hoa_ledger.models.ledger import Actor, Member, Role  # noqa: E402
from hoa_ledger.services.members import register_member  # noqa: E402
from hoa_ledger.services.storage import StorageService  # noqa: E402
from hoa_ledger.services.store import LedgerStore, build_ledger_store  # noqa: E402

MONTHLY_FEE = 30000


class FrozenClock:
    """A settable stand-in for the store's wall clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, year: int, month: int, day: int = 15) -> None:
        self.now = datetime(year, month, day, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def session_factory(tmp_path) -> Generator[Callable[[], Session], None, None]:
    """Provide a fresh SQLite database for each test."""
    db_path = tmp_path / "ledger.db"
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    try:
        yield SessionLocal
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def store(session_factory, clock) -> LedgerStore:
    return build_ledger_store(session_factory, monthly_fee=MONTHLY_FEE, clock=clock)


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin", display_name="admin", role=Role.ADMIN)


def actor_for(member: Member) -> Actor:
    return Actor(id=member.id, display_name=member.name, role=Role.MEMBER, member_id=member.id)


@pytest.fixture
def create_member(store: LedgerStore, clock: FrozenClock, admin: Actor) -> Callable[..., Member]:
    counter = {"value": 0}

    def _create(
        name: str = "Resident",
        apartment: Optional[str] = None,
        joined: Optional[tuple] = None,
    ) -> Member:
        counter["value"] += 1
        previous = clock.now
        if joined:
            clock.set(*joined)
        try:
            return register_member(
                store,
                admin,
                name=f"{name} {counter['value']}",
                apartment=apartment or f"B-{counter['value']:03d}",
            )
        finally:
            clock.now = previous

    return _create


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(tmp_path / "uploads", max_bytes=5 * 1024 * 1024)


@pytest.fixture
def client(store: LedgerStore, storage: StorageService) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_storage] = lambda: storage
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        test_client.close()
        app.dependency_overrides.clear()


def login_as(actor: Actor) -> None:
    app.dependency_overrides[get_current_actor] = lambda: actor
