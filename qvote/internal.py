# node-to-host endpoints: snapshot export/restore
from fastapi import APIRouter, Depends

from .api import caller_id
from .config import NODE_ID
from .engine import VotingEngine
from .models import StateSnapshot
from .state import get_engine

router = APIRouter(prefix="/internal")


@router.get("/state")
def internal_state(engine: VotingEngine = Depends(get_engine)) -> StateSnapshot:
    return engine.snapshot()


@router.post("/state")
def internal_restore(
    snap: StateSnapshot,
    caller: str = Depends(caller_id),
    engine: VotingEngine = Depends(get_engine),
):
    """
    Replace this node's state with a snapshot taken from the host's store.
    """
    engine.restore(caller, snap)
    return {"ok": True, "node": NODE_ID, "sessions": len(snap.sessions), "voters": len(snap.voters)}
