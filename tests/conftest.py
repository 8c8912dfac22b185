from __future__ import annotations

import pytest

from qvote.clock import ManualClock
from qvote.config import EngineSettings
from qvote.engine import VotingEngine
from qvote.events import EventLog

from .helpers import ADMIN, ALICE


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=1_000)


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(
        admin=ADMIN,
        max_proposals_per_session=10,
        max_vote_batch=5,
        proposal_page_limit=4,
        revote_charge="full",
    )


@pytest.fixture
def event_log() -> EventLog:
    return EventLog(origin="test-node")


@pytest.fixture
def engine(settings: EngineSettings, clock: ManualClock, event_log: EventLog) -> VotingEngine:
    return VotingEngine(settings=settings, clock=clock, event_sink=event_log)


@pytest.fixture
def session_id(engine: VotingEngine) -> int:
    """Session with budget 100, one hour long, two proposals; alice registered."""
    engine.register(ALICE, "alice@example.com")
    return engine.create_session(
        ADMIN,
        "Budget",
        "Yearly budget round",
        100,
        3600,
        [("P1", "First"), ("P2", "Second")],
    )
