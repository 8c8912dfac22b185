"""Tests for the event log and best-effort forwarding to sinks."""

from __future__ import annotations

import asyncio
import json

import httpx

from qvote.events import EventForwarder, EventLog, SessionCreated, VoterRegistered


def _log_with(n: int) -> EventLog:
    log = EventLog(origin="n1")
    log.publish([VoterRegistered(identity=f"v{i}", email="") for i in range(n)])
    return log


def test_event_log_sequences() -> None:
    log = _log_with(3)
    log.publish([SessionCreated(session_id=1, creator="admin", name="S")])

    assert log.last_seq == 4
    assert [e.seq for e in log.since(0)] == [1, 2, 3, 4]
    assert [e.seq for e in log.since(2)] == [3, 4]
    assert [e.seq for e in log.since(0, limit=2)] == [1, 2]
    assert log.since(4) == []
    assert log.since(3)[0].event.kind == "SessionCreated"


def test_forwarder_delivers_and_advances_cursor() -> None:
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append((str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"ok": True})

    log = _log_with(3)
    fwd = EventForwarder(log, ["http://sink1"], batch_size=2)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            first = await fwd.forward_once(client)
            second = await fwd.forward_once(client)
            third = await fwd.forward_once(client)
            return first, second, third

    assert asyncio.run(run()) == (2, 1, 0)
    assert [url for url, _ in received] == ["http://sink1/events", "http://sink1/events"]
    assert [e["seq"] for e in received[0][1]] == [1, 2]
    assert received[1][1][0]["event"]["identity"] == "v2"
    assert fwd.cursors["http://sink1"] == 3


def test_forwarder_retries_failed_sink() -> None:
    """A sink that errors keeps its cursor; a healthy one is not held back."""
    down = {"flag": True}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "bad" and down["flag"]:
            return httpx.Response(503)
        return httpx.Response(200)

    log = _log_with(2)
    fwd = EventForwarder(log, ["http://good", "http://bad"])

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            first = await fwd.forward_once(client)
            down["flag"] = False
            second = await fwd.forward_once(client)
            return first, second

    assert asyncio.run(run()) == (2, 2)
    assert fwd.cursors == {"http://good": 2, "http://bad": 2}


def test_forwarder_without_sinks() -> None:
    log = _log_with(1)
    fwd = EventForwarder(log, [])

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
            return await fwd.forward_once(client)

    assert asyncio.run(run()) == 0
    assert len(log) == 1


def test_event_log_trim_keeps_numbering() -> None:
    log = _log_with(4)

    assert log.trim(2) == 2
    assert (log.first_seq, log.last_seq, len(log)) == (3, 4, 2)
    assert [e.seq for e in log.since(0)] == [3, 4]
    assert [e.seq for e in log.since(3)] == [4]

    log.publish([SessionCreated(session_id=1, creator="admin", name="S")])
    assert log.last_seq == 5
    assert [e.seq for e in log.since(4)] == [5]

    assert log.trim(1) == 0
    assert log.trim(99) == 3
    assert (log.first_seq, log.last_seq, len(log)) == (6, 5, 0)


def test_forwarder_trims_only_what_every_sink_accepted() -> None:
    down = {"flag": True}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "bad" and down["flag"]:
            return httpx.Response(503)
        return httpx.Response(200)

    log = _log_with(3)
    fwd = EventForwarder(log, ["http://good", "http://bad"])

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await fwd.forward_once(client)
            kept = len(log)
            down["flag"] = False
            await fwd.forward_once(client)
            return kept

    assert asyncio.run(run()) == 3
    assert len(log) == 0
    assert log.last_seq == 3
