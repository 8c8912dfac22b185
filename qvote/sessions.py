"""
Voting sessions and the proposals they own.

Proposals live in one map keyed by (session_id, proposal_id). Ids are dense
and start at 1 inside each session; ``Session.proposal_count`` is the
high-water mark. Only the engine mutates tallies, through ``set_tally``.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from .cost import saturating_add
from .errors import CapacityExceeded, InvalidProposalCount, ProposalNotFound, SessionNotFound
from .models import Proposal, Session

logger = logging.getLogger(__name__)

ProposalKey = Tuple[int, int]


class SessionStore:
    def __init__(self, max_proposals_per_session: int, proposal_page_limit: int):
        self.max_proposals_per_session = max_proposals_per_session
        self.proposal_page_limit = proposal_page_limit
        self.session_counter = 0
        self._sessions: Dict[int, Session] = {}
        self._proposals: Dict[ProposalKey, Proposal] = {}

    # ----------- validation -----------

    def check_proposal_batch(self, current_count: int, batch: Sequence) -> None:
        """
        Reject an empty batch, or one that would push a session past capacity.
        """
        if not batch:
            raise InvalidProposalCount("at least one proposal is required")
        if current_count + len(batch) > self.max_proposals_per_session:
            raise CapacityExceeded(
                f"session holds at most {self.max_proposals_per_session} proposals "
                f"({current_count} present, {len(batch)} requested)"
            )

    # ----------- writes -----------

    def create(
        self,
        name: str,
        description: str,
        credit_budget: int,
        duration: int,
        creator: str,
        now: int,
        proposals: Sequence[Tuple[str, str]],
    ) -> Tuple[Session, List[Proposal]]:
        self.check_proposal_batch(0, proposals)

        session_id = self.session_counter + 1
        session = Session(
            id=session_id,
            name=name,
            description=description,
            start_time=now,
            end_time=saturating_add(now, duration),
            credit_budget=credit_budget,
            active=True,
            creator=creator,
        )
        self.session_counter = session_id
        self._sessions[session_id] = session
        created = self._append(session, proposals)
        logger.info(
            "session %d %r created by %s with %d proposals",
            session_id, name, creator, len(created),
        )
        return session, created

    def add_proposals(self, session_id: int, proposals: Sequence[Tuple[str, str]]) -> List[Proposal]:
        session = self.get(session_id)
        self.check_proposal_batch(session.proposal_count, proposals)
        created = self._append(session, proposals)
        logger.info("added %d proposals to session %d", len(created), session_id)
        return created

    def _append(self, session: Session, proposals: Sequence[Tuple[str, str]]) -> List[Proposal]:
        created = []
        for title, description in proposals:
            proposal_id = session.proposal_count + 1
            proposal = Proposal(
                session_id=session.id,
                id=proposal_id,
                title=title,
                description=description,
            )
            self._proposals[(session.id, proposal_id)] = proposal
            session.proposal_count = proposal_id
            created.append(proposal)
        return created

    def set_tally(self, session_id: int, proposal_id: int, tally: int) -> None:
        self._proposals[(session_id, proposal_id)].vote_tally = tally

    # ----------- reads -----------

    def exists(self, session_id: int) -> bool:
        return session_id in self._sessions

    def get(self, session_id: int) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(f"session {session_id} not found")
        return session

    def get_proposal(self, session_id: int, proposal_id: int) -> Proposal:
        self.get(session_id)
        proposal = self._proposals.get((session_id, proposal_id))
        if proposal is None:
            raise ProposalNotFound(f"proposal {proposal_id} not found in session {session_id}")
        return proposal

    def has_proposal(self, session_id: int, proposal_id: int) -> bool:
        return (session_id, proposal_id) in self._proposals

    def list_proposals(self, session_id: int) -> List[Proposal]:
        """
        Proposals ordered by id, capped at ``proposal_page_limit`` entries.
        """
        session = self.get(session_id)
        limit = min(session.proposal_count, self.proposal_page_limit)
        out = []
        for pid in range(1, limit + 1):
            proposal = self._proposals.get((session_id, pid))
            if proposal is not None:
                out.append(proposal)
        return out

    def list_sessions(self) -> List[Session]:
        ids = sorted(self._sessions)[: self.proposal_page_limit]
        return [self._sessions[i] for i in ids]

    # ----------- snapshot -----------

    def export(self) -> Tuple[int, List[Session], List[Proposal]]:
        sessions = [s.model_copy() for s in self._sessions.values()]
        proposals = [p.model_copy() for p in self._proposals.values()]
        return self.session_counter, sessions, proposals

    def load(self, session_counter: int, sessions: List[Session], proposals: List[Proposal]) -> None:
        self._sessions = {s.id: s.model_copy() for s in sessions}
        self._proposals = {(p.session_id, p.id): p.model_copy() for p in proposals}
        self.session_counter = max([session_counter] + list(self._sessions))

    def __len__(self) -> int:
        return len(self._sessions)
