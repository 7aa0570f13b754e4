"""
Shared fixtures: a temporary SQLite database, a conference store and record
builders.
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from seaptc.conference.models import ConferenceClass, Configuration, Lunch, Participant
from seaptc.database import create_engine, create_session_factory, init_db
from seaptc.services.conference_store import ConferenceStore

STAFF_ID = "staff@example.org"
ADMIN_ID = "admin@example.org"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'seaptc-test.db'}"


@pytest_asyncio.fixture
async def engine(database_url):
    engine = create_engine(database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def store(session_factory, clock) -> AsyncGenerator[ConferenceStore, None]:
    yield ConferenceStore(session_factory, clock=clock)


def make_class(number: int, start: int, end: int, **kwargs) -> ConferenceClass:
    kwargs.setdefault("title", f"Class {number}")
    return ConferenceClass(number=number, start=start, end=end, **kwargs)


def make_participant(first: str, last: str, **kwargs) -> Participant:
    kwargs.setdefault("registration_number", "R100")
    return Participant(first_name=first, last_name=last, **kwargs)


def make_configuration(**kwargs) -> Configuration:
    kwargs.setdefault("year", 2024)
    kwargs.setdefault("month", 3)
    kwargs.setdefault("day", 9)
    kwargs.setdefault("cookie_key", "k")
    kwargs.setdefault("staff_ids", (STAFF_ID,))
    kwargs.setdefault("admin_ids", (ADMIN_ID,))
    kwargs.setdefault("lunches", (Lunch(name="A", seating=1, location="Gym"),))
    return Configuration(**kwargs)
