"""Quadratic voting node."""

from .engine import VotingEngine
from .errors import QuadraticVotingError

__all__ = ["VotingEngine", "QuadraticVotingError"]
