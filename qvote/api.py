# client-facing endpoints
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from .config import NODE_ID
from .engine import VotingEngine
from .events import EventEnvelope, EventLog
from .models import (
    Proposal,
    ProposalsIn,
    RegisterIn,
    SessionCreateIn,
    SessionView,
    VoteIn,
    VoteReceipt,
    VoterView,
)
from .state import get_engine, get_event_log

router = APIRouter()


def caller_id(x_caller_id: Optional[str] = Header(None)) -> str:
    """
    Identity of the caller, as asserted by the fronting identity layer.
    """
    if not x_caller_id:
        raise HTTPException(status_code=401, detail="Missing X-Caller-Id header")
    return x_caller_id


# ----------- voters -----------

@router.post("/voters")
def register(body: RegisterIn, caller: str = Depends(caller_id), engine: VotingEngine = Depends(get_engine)):
    voter = engine.register(caller, body.email)
    return {"ok": True, "node": NODE_ID, "voter": voter.model_dump()}


@router.get("/voters/{identity}")
def get_voter(identity: str, engine: VotingEngine = Depends(get_engine)) -> VoterView:
    return engine.get_voter(identity)


# ----------- sessions -----------

@router.post("/sessions")
def create_session(
    body: SessionCreateIn,
    caller: str = Depends(caller_id),
    engine: VotingEngine = Depends(get_engine),
):
    session_id = engine.create_session(
        caller,
        body.name,
        body.description,
        body.credit_budget,
        body.duration,
        [(p.title, p.description) for p in body.proposals],
    )
    return {"ok": True, "node": NODE_ID, "session_id": session_id}


@router.get("/sessions")
def list_sessions(engine: VotingEngine = Depends(get_engine)) -> List[SessionView]:
    return engine.list_sessions()


@router.get("/sessions/{session_id}")
def get_session(session_id: int, engine: VotingEngine = Depends(get_engine)) -> SessionView:
    return engine.get_session(session_id)


@router.get("/sessions/{session_id}/active")
def is_session_active(session_id: int, engine: VotingEngine = Depends(get_engine)):
    return {"session_id": session_id, "active": engine.is_session_active(session_id)}


@router.post("/sessions/{session_id}/proposals")
def add_proposals(
    session_id: int,
    body: ProposalsIn,
    caller: str = Depends(caller_id),
    engine: VotingEngine = Depends(get_engine),
):
    ids = engine.add_proposals(caller, session_id, [(p.title, p.description) for p in body.proposals])
    return {"ok": True, "node": NODE_ID, "proposal_ids": ids}


@router.get("/sessions/{session_id}/proposals")
def get_session_proposals(session_id: int, engine: VotingEngine = Depends(get_engine)) -> List[Proposal]:
    return engine.get_session_proposals(session_id)


@router.get("/sessions/{session_id}/proposals/{proposal_id}")
def get_proposal(session_id: int, proposal_id: int, engine: VotingEngine = Depends(get_engine)) -> Proposal:
    return engine.get_proposal(session_id, proposal_id)


# ----------- votes + ledger -----------

@router.post("/sessions/{session_id}/votes")
def vote(
    session_id: int,
    body: VoteIn,
    caller: str = Depends(caller_id),
    engine: VotingEngine = Depends(get_engine),
) -> VoteReceipt:
    return engine.vote(session_id, caller, body.proposal_ids, body.weights)


@router.get("/sessions/{session_id}/voters/{identity}/credits")
def get_voter_session_credits(session_id: int, identity: str, engine: VotingEngine = Depends(get_engine)):
    credits = engine.get_voter_session_credits(session_id, identity)
    return {"session_id": session_id, "voter": identity, "credits": credits}


@router.get("/sessions/{session_id}/voters/{identity}/votes/{proposal_id}")
def get_vote(session_id: int, identity: str, proposal_id: int, engine: VotingEngine = Depends(get_engine)):
    weight = engine.get_vote(session_id, identity, proposal_id)
    return {"session_id": session_id, "voter": identity, "proposal_id": proposal_id, "weight": weight}


# ----------- events -----------

@router.get("/events")
def read_events(
    since: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    log: EventLog = Depends(get_event_log),
) -> List[EventEnvelope]:
    return log.since(since, limit=limit)
