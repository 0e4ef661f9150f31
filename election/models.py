"""
Election Models

Candidate and Voter records owned by the ElectionStore. Serialised field names
match the persisted browser format ({"id", "name", "votes"} and
{"email", "hasVoted"}) so existing exports load unchanged.
"""

import uuid
from dataclasses import dataclass, asdict
from typing import Any, Dict

from exceptions import ValidationError


def canonical_email(email: str) -> str:
    """Trim and lower-case an email; voter identity is case-insensitive"""
    return (email or "").strip().lower()


def new_candidate_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Candidate:
    """Someone voters may select; carries the vote counter"""

    id: str
    name: str
    votes: int = 0

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Candidate name cannot be empty", field="name", value=self.name)
        if self.votes < 0:
            raise ValidationError("Vote count cannot be negative", field="votes", value=self.votes)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Candidate":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            votes=int(data.get("votes", 0)),
        )


@dataclass
class Voter:
    """Entry in the voter roll, identified by canonical email"""

    email: str
    has_voted: bool = False

    def __post_init__(self):
        self.email = canonical_email(self.email)
        if not self.email:
            raise ValidationError("Voter email cannot be empty", field="email")

    def to_dict(self) -> dict:
        return {"email": self.email, "hasVoted": self.has_voted}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Voter":
        """Build from a stored record; the voted flag must be a real boolean"""
        has_voted = data.get("hasVoted", data.get("has_voted", False))
        if not isinstance(has_voted, bool):
            raise ValidationError("hasVoted must be true or false", field="hasVoted", value=has_voted)
        return cls(email=str(data["email"]), has_voted=has_voted)
