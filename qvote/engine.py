"""
Quadratic voting engine.

One ``VotingEngine`` owns the registry, the sessions and the vote ledger.
Every public method runs under a single lock, so calls are applied one at a
time in arrival order. Mutating calls validate everything first and only then
write, so a raised error always means "nothing happened".
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from .clock import MonotonicClock
from .config import MAX_CREDIT_BUDGET, EngineSettings
from .cost import U64_MAX, quadratic_cost, saturating_add, saturating_sub
from .errors import (
    InsufficientCredits,
    InvalidSessionParameters,
    InvalidSnapshot,
    InvalidVoteCount,
    ProposalNotFound,
    SessionNotActive,
    Unauthorized,
    VoterNotRegistered,
)
from .events import ProposalCreated, SessionCreated, VoteCast, VoterRegistered
from .ledger import VoteLedger
from .models import (
    Proposal,
    SessionView,
    StateSnapshot,
    VoteReceipt,
    VoterView,
)
from .registry import VoterRegistry
from .sessions import SessionStore

logger = logging.getLogger(__name__)


class VotingEngine:
    def __init__(self, settings: Optional[EngineSettings] = None, clock=None, event_sink=None):
        self.settings = settings or EngineSettings()
        self.clock = clock or MonotonicClock()
        self.event_sink = event_sink
        self.registry = VoterRegistry()
        self.sessions = SessionStore(
            max_proposals_per_session=self.settings.max_proposals_per_session,
            proposal_page_limit=self.settings.proposal_page_limit,
        )
        self.ledger = VoteLedger()
        self._lock = threading.Lock()

    @property
    def admin(self) -> str:
        return self.settings.admin

    def _emit(self, events) -> None:
        if self.event_sink is not None and events:
            self.event_sink.publish(events)

    def _session_view(self, session, now: int) -> SessionView:
        return SessionView(**session.model_dump(), votable=session.is_votable(now))

    # ----------- registration -----------

    def register(self, identity: str, email: str = "") -> VoterView:
        with self._lock:
            voter = self.registry.register(identity, email)
            self._emit([VoterRegistered(identity=identity, email=email)])
            return VoterView(**voter.model_dump())

    def get_voter(self, identity: str) -> VoterView:
        with self._lock:
            voter = self.registry.get(identity)
            if voter is None:
                return VoterView(identity=identity, email="", registered=False)
            return VoterView(**voter.model_dump())

    # ----------- sessions -----------

    def create_session(
        self,
        caller: str,
        name: str,
        description: str,
        credit_budget: int,
        duration: int,
        initial_proposals: Sequence[Tuple[str, str]],
    ) -> int:
        with self._lock:
            if caller != self.admin:
                logger.warning("rejected create_session from non-admin %s", caller)
                raise Unauthorized(f"{caller!r} is not the administrator")
            if not 0 <= credit_budget <= MAX_CREDIT_BUDGET:
                raise InvalidSessionParameters(
                    f"credit budget must be within 0..{MAX_CREDIT_BUDGET}, got {credit_budget}"
                )
            if not 0 <= duration <= U64_MAX:
                raise InvalidSessionParameters(f"duration must be an unsigned 64-bit integer, got {duration}")

            session, created = self.sessions.create(
                name=name,
                description=description,
                credit_budget=credit_budget,
                duration=duration,
                creator=caller,
                now=self.clock.now(),
                proposals=list(initial_proposals),
            )

            events = [SessionCreated(session_id=session.id, creator=caller, name=name)]
            events += self._proposal_events(created, caller)
            self._emit(events)
            return session.id

    def add_proposals(
        self,
        caller: str,
        session_id: int,
        proposals: Sequence[Tuple[str, str]],
    ) -> List[int]:
        with self._lock:
            if caller != self.admin:
                logger.warning("rejected add_proposals from non-admin %s", caller)
                raise Unauthorized(f"{caller!r} is not the administrator")

            created = self.sessions.add_proposals(session_id, list(proposals))
            self._emit(self._proposal_events(created, caller))
            return [p.id for p in created]

    @staticmethod
    def _proposal_events(created: List[Proposal], creator: str) -> List[ProposalCreated]:
        return [
            ProposalCreated(
                session_id=p.session_id,
                proposal_id=p.id,
                creator=creator,
                title=p.title,
            )
            for p in created
        ]

    def get_session(self, session_id: int) -> SessionView:
        with self._lock:
            return self._session_view(self.sessions.get(session_id), self.clock.now())

    def list_sessions(self) -> List[SessionView]:
        with self._lock:
            now = self.clock.now()
            return [self._session_view(s, now) for s in self.sessions.list_sessions()]

    def get_proposal(self, session_id: int, proposal_id: int) -> Proposal:
        with self._lock:
            return self.sessions.get_proposal(session_id, proposal_id).model_copy()

    def get_session_proposals(self, session_id: int) -> List[Proposal]:
        with self._lock:
            return [p.model_copy() for p in self.sessions.list_proposals(session_id)]

    def is_session_active(self, session_id: int) -> bool:
        with self._lock:
            if not self.sessions.exists(session_id):
                return False
            return self.sessions.get(session_id).is_votable(self.clock.now())

    # ----------- voting -----------

    def vote(
        self,
        session_id: int,
        voter: str,
        proposal_ids: Sequence[int],
        weights: Sequence[int],
    ) -> VoteReceipt:
        """
        Cast or replace a voter's weights on one or more proposals.

        The whole batch is validated and priced before anything is written.
        A weight replaces the voter's previous weight on that proposal, and
        the proposal tally moves by the difference.
        """
        proposal_ids = list(proposal_ids)
        weights = list(weights)

        with self._lock:
            if not proposal_ids or len(proposal_ids) != len(weights):
                raise InvalidVoteCount(
                    f"got {len(proposal_ids)} proposal ids and {len(weights)} weights"
                )
            if len(proposal_ids) > self.settings.max_vote_batch:
                raise InvalidVoteCount(
                    f"batch of {len(proposal_ids)} exceeds limit of {self.settings.max_vote_batch}"
                )
            if any(w < 0 or w > U64_MAX for w in weights):
                raise InvalidVoteCount("weights must be unsigned 64-bit integers")

            session = self.sessions.get(session_id)
            if not self.registry.is_registered(voter):
                raise VoterNotRegistered(f"voter {voter!r} is not registered")

            now = self.clock.now()
            if not session.is_votable(now):
                raise SessionNotActive(f"session {session_id} is not active")

            balance = self.ledger.balance(session_id, voter)
            if balance is None:
                balance = session.credit_budget

            charge, refund = self._price(session_id, voter, proposal_ids, weights)
            if balance < charge:
                logger.warning(
                    "voter %s needs %d credits in session %d, has %d",
                    voter, charge, session_id, balance,
                )
                raise InsufficientCredits(f"vote costs {charge} credits, {balance} available")

            # stage every update before writing any of them
            staged_tallies: Dict[int, int] = {}
            staged_weights: Dict[int, int] = {}
            for pid, weight in zip(proposal_ids, weights):
                if not self.sessions.has_proposal(session_id, pid):
                    raise ProposalNotFound(f"proposal {pid} not found in session {session_id}")
                tally = staged_tallies.get(pid)
                if tally is None:
                    tally = self.sessions.get_proposal(session_id, pid).vote_tally
                previous = staged_weights.get(pid)
                if previous is None:
                    previous = self.ledger.weight(session_id, voter, pid)
                staged_tallies[pid] = saturating_add(saturating_sub(tally, previous), weight)
                staged_weights[pid] = weight

            # commit
            for pid, tally in staged_tallies.items():
                self.sessions.set_tally(session_id, pid, tally)
            for pid, weight in staged_weights.items():
                self.ledger.set_weight(session_id, voter, pid, weight)

            remaining = saturating_sub(balance, charge)
            if refund:
                remaining = min(saturating_add(remaining, refund), session.credit_budget)
            self.ledger.set_balance(session_id, voter, remaining)

            logger.info(
                "voter %s cast %d weights in session %d for %d credits (%d left)",
                voter, len(weights), session_id, charge, remaining,
            )
            self._emit([
                VoteCast(
                    session_id=session_id,
                    voter=voter,
                    proposal_ids=proposal_ids,
                    weights=weights,
                    total_cost=charge,
                )
            ])
            return VoteReceipt(
                session_id=session_id,
                voter=voter,
                proposal_ids=proposal_ids,
                weights=weights,
                total_cost=charge,
                remaining_credits=remaining,
            )

    def _price(self, session_id: int, voter: str, proposal_ids: List[int], weights: List[int]) -> Tuple[int, int]:
        """
        Return (charge, refund) for a batch.

        "full" charges the quadratic cost of every submitted weight.
        "delta" charges only the cost increase over the voter's current
        weights on the same proposals, refunding when the cost goes down.
        """
        if self.settings.revote_charge == "full":
            return quadratic_cost(weights), 0

        final = dict(zip(proposal_ids, weights))
        new_cost = quadratic_cost(final.values())
        old_cost = quadratic_cost(self.ledger.weight(session_id, voter, pid) for pid in final)
        if new_cost >= old_cost:
            return new_cost - old_cost, 0
        return 0, old_cost - new_cost

    # ----------- ledger reads -----------

    def get_voter_session_credits(self, session_id: int, voter: str) -> int:
        with self._lock:
            session = self.sessions.get(session_id)
            balance = self.ledger.balance(session_id, voter)
            return session.credit_budget if balance is None else balance

    def get_vote(self, session_id: int, voter: str, proposal_id: int) -> int:
        with self._lock:
            self.sessions.get(session_id)
            return self.ledger.weight(session_id, voter, proposal_id)

    # ----------- snapshot -----------

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            counter, sessions, proposals = self.sessions.export()
            balances, weights = self.ledger.export()
            return StateSnapshot(
                session_counter=counter,
                voters=self.registry.export(),
                sessions=sessions,
                proposals=proposals,
                balances=balances,
                weights=weights,
            )

    def restore(self, caller: str, snap: StateSnapshot) -> None:
        """
        Replace the whole state with ``snap``. Admin only; no events are emitted.
        """
        with self._lock:
            if caller != self.admin:
                logger.warning("rejected restore from non-admin %s", caller)
                raise Unauthorized(f"{caller!r} is not the administrator")
            self._load(snap)

    def _load(self, snap: StateSnapshot) -> None:
        check_snapshot(snap)
        self.registry.load(snap.voters)
        self.sessions.load(snap.session_counter, snap.sessions, snap.proposals)
        self.ledger.load(snap.balances, snap.weights)
        logger.info(
            "restored state: %d voters, %d sessions",
            len(self.registry), len(self.sessions),
        )

    @classmethod
    def from_snapshot(cls, snap: StateSnapshot, **kwargs) -> "VotingEngine":
        engine = cls(**kwargs)
        with engine._lock:
            engine._load(snap)
        return engine


def check_snapshot(snap: StateSnapshot) -> None:
    """
    Reject a snapshot that the vote protocol could never have produced.

    Proposal ids must be exactly 1..proposal_count per session, ledger
    entries must point at stored sessions and proposals, balances must lie
    within the session budget, and every tally must equal the sum of the
    weights recorded for it.
    """
    sessions = {}
    for s in snap.sessions:
        if s.id in sessions:
            raise InvalidSnapshot(f"session {s.id} appears twice")
        sessions[s.id] = s

    proposal_ids: Dict[int, set] = {sid: set() for sid in sessions}
    tallies: Dict[Tuple[int, int], int] = {}
    for p in snap.proposals:
        if p.session_id not in sessions:
            raise InvalidSnapshot(f"proposal {p.id} references unknown session {p.session_id}")
        if p.id in proposal_ids[p.session_id]:
            raise InvalidSnapshot(f"proposal {p.id} appears twice in session {p.session_id}")
        proposal_ids[p.session_id].add(p.id)
        tallies[(p.session_id, p.id)] = p.vote_tally

    for sid, s in sessions.items():
        if proposal_ids[sid] != set(range(1, s.proposal_count + 1)):
            raise InvalidSnapshot(
                f"session {sid} proposal ids do not match proposal_count {s.proposal_count}"
            )

    seen_balances = set()
    for b in snap.balances:
        session = sessions.get(b.session_id)
        if session is None:
            raise InvalidSnapshot(f"balance of {b.voter} references unknown session {b.session_id}")
        if (b.session_id, b.voter) in seen_balances:
            raise InvalidSnapshot(f"balance of {b.voter} in session {b.session_id} appears twice")
        seen_balances.add((b.session_id, b.voter))
        if not 0 <= b.remaining <= session.credit_budget:
            raise InvalidSnapshot(
                f"balance {b.remaining} of {b.voter} outside 0..{session.credit_budget}"
            )

    sums: Dict[Tuple[int, int], int] = {key: 0 for key in tallies}
    seen_weights = set()
    for w in snap.weights:
        key = (w.session_id, w.proposal_id)
        if key not in tallies:
            raise InvalidSnapshot(
                f"weight of {w.voter} references unknown proposal {w.proposal_id} in session {w.session_id}"
            )
        if (w.session_id, w.voter, w.proposal_id) in seen_weights:
            raise InvalidSnapshot(f"weight of {w.voter} on proposal {w.proposal_id} appears twice")
        seen_weights.add((w.session_id, w.voter, w.proposal_id))
        if not 0 <= w.weight <= U64_MAX:
            raise InvalidSnapshot(f"weight {w.weight} of {w.voter} is out of range")
        sums[key] = saturating_add(sums[key], w.weight)

    for key, tally in tallies.items():
        if tally != sums[key]:
            raise InvalidSnapshot(
                f"tally {tally} of proposal {key[1]} in session {key[0]} does not match recorded weights {sums[key]}"
            )
