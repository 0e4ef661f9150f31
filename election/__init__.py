"""
Election core

- ElectionStore: candidates and voter roll, the only write path
- VotingSession: explicit voting state machine
- TallyEngine: stable ranking and elected subset
"""

from election.models import Candidate, Voter, canonical_email
from election.store import ElectionStore
from election.tally import RankedCandidate, TallyEngine, TallyResult
from election.voting import (
    AdminAuthenticated,
    AlreadyVoted,
    Anonymous,
    BallotOpen,
    SessionRegistry,
    Submitted,
    VotingSession,
)

__all__ = [
    "Candidate",
    "Voter",
    "canonical_email",
    "ElectionStore",
    "RankedCandidate",
    "TallyEngine",
    "TallyResult",
    "AdminAuthenticated",
    "AlreadyVoted",
    "Anonymous",
    "BallotOpen",
    "SessionRegistry",
    "Submitted",
    "VotingSession",
]
