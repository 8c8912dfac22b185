# state-change notifications + forwarding to external sinks
import asyncio
import logging
import threading
import time
from typing import Annotated, List, Literal, Optional, Union

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class SessionCreated(BaseModel):
    kind: Literal["SessionCreated"] = "SessionCreated"
    session_id: int
    creator: str
    name: str


class VoterRegistered(BaseModel):
    kind: Literal["VoterRegistered"] = "VoterRegistered"
    identity: str
    email: str


class ProposalCreated(BaseModel):
    kind: Literal["ProposalCreated"] = "ProposalCreated"
    session_id: int
    proposal_id: int
    creator: str
    title: str


class VoteCast(BaseModel):
    kind: Literal["VoteCast"] = "VoteCast"
    session_id: int
    voter: str
    proposal_ids: List[int]
    weights: List[int]
    total_cost: int


Event = Annotated[
    Union[SessionCreated, VoterRegistered, ProposalCreated, VoteCast],
    Field(discriminator="kind"),
]


class EventEnvelope(BaseModel):
    seq: int
    origin: str
    ts: float
    event: Event


class EventLog:
    """
    Sequence-numbered log of committed notifications.

    Sequence numbers start at 1; readers poll with the last seq they saw.
    Entries stay in memory until ``trim`` drops them; the forwarder trims
    what every sink has accepted, so a node without sinks keeps them all.
    """

    def __init__(self, origin: str):
        self.origin = origin
        self._entries: List[EventEnvelope] = []
        self._base = 0  # seq of the last trimmed entry
        self._lock = threading.Lock()

    def publish(self, events) -> List[EventEnvelope]:
        with self._lock:
            out = []
            for ev in events:
                env = EventEnvelope(
                    seq=self._base + len(self._entries) + 1,
                    origin=self.origin,
                    ts=time.time(),
                    event=ev,
                )
                self._entries.append(env)
                out.append(env)
            return out

    def since(self, seq: int = 0, limit: Optional[int] = None) -> List[EventEnvelope]:
        with self._lock:
            entries = self._entries[max(seq - self._base, 0):]
            if limit is not None:
                entries = entries[:max(limit, 0)]
            return list(entries)

    def trim(self, upto: int) -> int:
        """
        Drop entries with seq <= upto; returns how many were dropped.
        """
        with self._lock:
            drop = min(max(upto - self._base, 0), len(self._entries))
            del self._entries[:drop]
            self._base += drop
            return drop

    @property
    def first_seq(self) -> int:
        with self._lock:
            return self._base + 1

    @property
    def last_seq(self) -> int:
        with self._lock:
            return self._base + len(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class EventForwarder:
    """
    Best-effort delivery of the event log to external sinks.

    Each sink gets its own cursor, advanced only after it accepted a batch,
    so an unreachable sink catches up once it is back.
    """

    def __init__(self, log: EventLog, sinks: List[str], batch_size: int = 100):
        self.log = log
        self.sinks = list(sinks)
        self.batch_size = batch_size
        self.cursors = {sink: 0 for sink in self.sinks}

    async def _push(self, client: httpx.AsyncClient, sink: str) -> int:
        pending = self.log.since(self.cursors[sink], limit=self.batch_size)
        if not pending:
            return 0
        resp = await client.post(
            f"{sink}/events",
            json=[env.model_dump(mode="json") for env in pending],
        )
        resp.raise_for_status()
        self.cursors[sink] = pending[-1].seq
        return len(pending)

    async def forward_once(self, client: httpx.AsyncClient) -> int:
        """
        Push pending events to every sink; returns how many were delivered.
        """
        if not self.sinks:
            return 0

        tasks = [self._push(client, sink) for sink in self.sinks]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        delivered = 0
        for sink, res in zip(self.sinks, results):
            if isinstance(res, Exception):
                logger.warning("event sink %s unreachable: %s", sink, res)
            else:
                delivered += res
                if res:
                    logger.debug("forwarded %d events to %s", res, sink)

        dropped = self.log.trim(min(self.cursors.values()))
        if dropped:
            logger.debug("trimmed %d events delivered to every sink", dropped)
        return delivered


async def forward_loop(forwarder: EventForwarder, interval: float) -> None:
    """
    Loop in background: periodically drain the event log to the sinks.
    """
    if not forwarder.sinks:
        return

    async with httpx.AsyncClient(timeout=1.5) as client:
        while True:
            await forwarder.forward_once(client)
            await asyncio.sleep(interval)
