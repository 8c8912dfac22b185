# per-session credit balances and per-proposal vote weights
from typing import Dict, List, Optional, Tuple

from .models import BalanceEntry, WeightEntry

BalanceKey = Tuple[int, str]
WeightKey = Tuple[int, str, int]


class VoteLedger:
    """
    balances[(session_id, voter)] = remaining credits
    weights[(session_id, voter, proposal_id)] = current weight

    A missing balance means the voter has not voted in that session yet.
    """

    def __init__(self):
        self._balances: Dict[BalanceKey, int] = {}
        self._weights: Dict[WeightKey, int] = {}

    def balance(self, session_id: int, voter: str) -> Optional[int]:
        return self._balances.get((session_id, voter))

    def set_balance(self, session_id: int, voter: str, remaining: int) -> None:
        self._balances[(session_id, voter)] = remaining

    def weight(self, session_id: int, voter: str, proposal_id: int) -> int:
        return self._weights.get((session_id, voter, proposal_id), 0)

    def set_weight(self, session_id: int, voter: str, proposal_id: int, weight: int) -> None:
        self._weights[(session_id, voter, proposal_id)] = weight

    def export(self) -> Tuple[List[BalanceEntry], List[WeightEntry]]:
        balances = [
            BalanceEntry(session_id=sid, voter=v, remaining=r)
            for (sid, v), r in self._balances.items()
        ]
        weights = [
            WeightEntry(session_id=sid, voter=v, proposal_id=pid, weight=w)
            for (sid, v, pid), w in self._weights.items()
        ]
        return balances, weights

    def load(self, balances: List[BalanceEntry], weights: List[WeightEntry]) -> None:
        self._balances = {(b.session_id, b.voter): b.remaining for b in balances}
        self._weights = {(w.session_id, w.voter, w.proposal_id): w.weight for w in weights}
