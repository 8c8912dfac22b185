from typing import Annotated, List

from pydantic import BaseModel, Field

from .config import MAX_CREDIT_BUDGET
from .cost import U64_MAX

U64 = Annotated[int, Field(ge=0, le=U64_MAX)]
CreditBudget = Annotated[int, Field(ge=0, le=MAX_CREDIT_BUDGET)]


# ----------- requests -----------

class RegisterIn(BaseModel):
    email: str = Field("", examples=["voter@example.com"])


class ProposalIn(BaseModel):
    title: str = Field(..., examples=["Fund the bike lanes"])
    description: str = Field("", examples=["Allocate next year's surplus"])


class SessionCreateIn(BaseModel):
    name: str = Field(..., examples=["Budget 2027"])
    description: str = ""
    credit_budget: CreditBudget = Field(..., examples=[100])
    duration: U64 = Field(..., examples=[3600])
    proposals: List[ProposalIn] = Field(default_factory=list)


class ProposalsIn(BaseModel):
    proposals: List[ProposalIn]


class VoteIn(BaseModel):
    proposal_ids: List[U64] = Field(..., examples=[[1, 2]])
    weights: List[U64] = Field(..., examples=[[2, 1]])


# ----------- records -----------

class Voter(BaseModel):
    identity: str
    email: str = ""
    registered: bool = True


class Proposal(BaseModel):
    session_id: int
    id: int
    title: str
    description: str
    vote_tally: int = 0


class Session(BaseModel):
    id: int
    name: str
    description: str
    start_time: int
    end_time: int
    credit_budget: int
    active: bool
    creator: str
    proposal_count: int = 0

    def is_votable(self, now: int) -> bool:
        return self.active and now < self.end_time


# ----------- views -----------

class SessionView(Session):
    votable: bool


class VoterView(BaseModel):
    identity: str
    email: str
    registered: bool


class VoteReceipt(BaseModel):
    session_id: int
    voter: str
    proposal_ids: List[int]
    weights: List[int]
    total_cost: int
    remaining_credits: int


# ----------- snapshot -----------

class BalanceEntry(BaseModel):
    session_id: int
    voter: str
    remaining: int


class WeightEntry(BaseModel):
    session_id: int
    voter: str
    proposal_id: int
    weight: int


class StateSnapshot(BaseModel):
    """
    Full engine state, flattened to lists so composite keys survive JSON.
    """
    session_counter: int = 0
    voters: List[Voter] = Field(default_factory=list)
    sessions: List[Session] = Field(default_factory=list)
    proposals: List[Proposal] = Field(default_factory=list)
    balances: List[BalanceEntry] = Field(default_factory=list)
    weights: List[WeightEntry] = Field(default_factory=list)
