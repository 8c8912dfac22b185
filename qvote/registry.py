# one-time voter registration
import logging
from typing import Dict, List, Optional

from .errors import AlreadyRegistered
from .models import Voter

logger = logging.getLogger(__name__)


class VoterRegistry:
    def __init__(self):
        self._voters: Dict[str, Voter] = {}

    def is_registered(self, identity: str) -> bool:
        voter = self._voters.get(identity)
        return voter is not None and voter.registered

    def get(self, identity: str) -> Optional[Voter]:
        return self._voters.get(identity)

    def register(self, identity: str, email: str = "") -> Voter:
        """
        Register an identity. A second attempt fails without touching the record.
        """
        if self.is_registered(identity):
            raise AlreadyRegistered(f"voter {identity!r} is already registered")

        voter = Voter(identity=identity, email=email, registered=True)
        self._voters[identity] = voter
        logger.info("registered voter %s", identity)
        return voter

    def export(self) -> List[Voter]:
        return [v.model_copy() for v in self._voters.values()]

    def load(self, voters: List[Voter]) -> None:
        self._voters = {v.identity: v.model_copy() for v in voters}

    def __len__(self) -> int:
        return len(self._voters)
