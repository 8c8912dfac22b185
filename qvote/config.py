# env vars + constants
import os
from dataclasses import dataclass

NODE_ID = os.getenv("NODE_ID", "nodeX")
PORT = int(os.getenv("PORT", "8000"))

ADMIN_ID = os.getenv("QV_ADMIN", "admin")
MAX_PROPOSALS_PER_SESSION = int(os.getenv("QV_MAX_PROPOSALS_PER_SESSION", "255"))
MAX_VOTE_BATCH = int(os.getenv("QV_MAX_VOTE_BATCH", "255"))
PROPOSAL_PAGE_LIMIT = int(os.getenv("QV_PROPOSAL_PAGE_LIMIT", "100"))
REVOTE_CHARGE = os.getenv("QV_REVOTE_CHARGE", "full")

EVENT_SINKS = [s.strip() for s in os.getenv("EVENT_SINKS", "").split(",") if s.strip()]
EVENT_FORWARD_INTERVAL = float(os.getenv("EVENT_FORWARD_INTERVAL", "1.0"))

LOG_LEVEL = os.getenv("QV_LOG_LEVEL", "INFO")

REVOTE_CHARGE_MODES = ("full", "delta")
MAX_CREDIT_BUDGET = 255


@dataclass(frozen=True)
class EngineSettings:
    admin: str = ADMIN_ID
    max_proposals_per_session: int = MAX_PROPOSALS_PER_SESSION
    max_vote_batch: int = MAX_VOTE_BATCH
    proposal_page_limit: int = PROPOSAL_PAGE_LIMIT
    revote_charge: str = REVOTE_CHARGE

    def __post_init__(self):
        if self.revote_charge not in REVOTE_CHARGE_MODES:
            raise ValueError(
                f"revote_charge must be one of {REVOTE_CHARGE_MODES}, got {self.revote_charge!r}"
            )
