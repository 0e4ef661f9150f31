"""
Tally Engine - read-only ranking over the current candidate set

Ranking is a stable sort by votes descending: candidates with equal votes keep
their stored order. The first `seats` entries are the elected subset.
"""

from dataclasses import dataclass, asdict
from typing import List, Sequence

from election.models import Candidate


@dataclass(frozen=True)
class RankedCandidate:
    position: int  # 1-based, sequential even across ties
    candidate_id: str
    name: str
    votes: int
    share_of_max: float  # 0-100, relative to the leader
    elected: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TallyResult:
    ranking: List[RankedCandidate]
    seats: int
    leader_votes: int  # highest count, not the ballot cap
    total_votes: int

    @property
    def elected(self) -> List[RankedCandidate]:
        return [r for r in self.ranking if r.elected]

    def to_dict(self) -> dict:
        return {
            "ranking": [r.to_dict() for r in self.ranking],
            "elected": [r.to_dict() for r in self.elected],
            "seats": self.seats,
            "leader_votes": self.leader_votes,
            "total_votes": self.total_votes,
        }


def leader_votes(candidates: Sequence[Candidate]) -> int:
    """Highest vote count, 0 for an empty list"""
    return max((c.votes for c in candidates), default=0)


def share_of_max(votes: int, maximum: int) -> float:
    """Percentage of the leader's count; a zero maximum is 0% for everyone"""
    if maximum <= 0:
        return 0.0
    return round(votes / maximum * 100, 1)


class TallyEngine:
    """Derives ranked results; never mutates the store"""

    def __init__(self, seats: int):
        if seats <= 0:
            raise ValueError("seats must be positive")
        self.seats = seats

    def rank(self, candidates: Sequence[Candidate]) -> List[RankedCandidate]:
        # sorted() is stable, so ties keep stored order
        ordered = sorted(candidates, key=lambda c: c.votes, reverse=True)
        top = leader_votes(ordered)
        return [
            RankedCandidate(
                position=index + 1,
                candidate_id=c.id,
                name=c.name,
                votes=c.votes,
                share_of_max=share_of_max(c.votes, top),
                elected=index < self.seats,
            )
            for index, c in enumerate(ordered)
        ]

    def elected(self, candidates: Sequence[Candidate]) -> List[RankedCandidate]:
        return self.rank(candidates)[: self.seats]

    def results(self, candidates: Sequence[Candidate]) -> TallyResult:
        return TallyResult(
            ranking=self.rank(candidates),
            seats=self.seats,
            leader_votes=leader_votes(candidates),
            total_votes=sum(c.votes for c in candidates),
        )
