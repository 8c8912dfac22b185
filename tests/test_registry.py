"""Tests for one-time voter registration."""

from __future__ import annotations

import pytest

from qvote.errors import AlreadyRegistered, Unauthorized
from qvote.engine import VotingEngine
from qvote.events import EventLog
from qvote.registry import VoterRegistry

from .helpers import ALICE


def test_register_once() -> None:
    registry = VoterRegistry()
    assert registry.is_registered(ALICE) is False

    voter = registry.register(ALICE, "alice@example.com")

    assert voter.registered is True
    assert registry.is_registered(ALICE) is True
    assert registry.get(ALICE).email == "alice@example.com"


def test_reregistration_fails_without_mutation() -> None:
    """A second registration is rejected and keeps the original record."""
    registry = VoterRegistry()
    registry.register(ALICE, "first@example.com")

    with pytest.raises(AlreadyRegistered):
        registry.register(ALICE, "second@example.com")

    assert registry.get(ALICE).email == "first@example.com"
    assert len(registry) == 1


def test_already_registered_is_an_authorization_error() -> None:
    assert issubclass(AlreadyRegistered, Unauthorized)
    assert AlreadyRegistered().status_code == 403


def test_engine_register_emits_event(engine: VotingEngine, event_log: EventLog) -> None:
    engine.register(ALICE, "alice@example.com")
    with pytest.raises(AlreadyRegistered):
        engine.register(ALICE)

    events = event_log.since(0)
    assert len(events) == 1
    assert events[0].event.kind == "VoterRegistered"
    assert events[0].event.identity == ALICE


def test_get_voter_unknown_identity(engine: VotingEngine) -> None:
    """Unknown identities are reported as unregistered, not as errors."""
    view = engine.get_voter("0xnobody")
    assert view.registered is False
    assert view.email == ""

    engine.register(ALICE, "alice@example.com")
    view = engine.get_voter(ALICE)
    assert view.registered is True
    assert view.email == "alice@example.com"
