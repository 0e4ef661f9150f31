"""
Election Store - single source of truth for candidates and the voter roll

Holds candidates (in creation order, keyed by id) and voters (in registration
order, keyed by canonical email). Every mutation is written through to the
storage collaborator before it becomes visible in memory, so a failed write
never leaves a half-applied change behind.

Invariants:
- Voter emails are unique under case-insensitive comparison
- A candidate's votes equal the accepted ballots naming it since the last reset
- A voter with has_voted=True contributed exactly one ballot since the last reset
"""

import re
from typing import Dict, Iterable, List, Optional, Union

from config import get_logger
from database.base import CANDIDATES_KEY, VOTERS_KEY, Storage
from election.models import Candidate, Voter, canonical_email, new_candidate_id
from exceptions import AlreadyVotedError, NotRegisteredError, ValidationError

logger = get_logger(__name__).bind(component="store")


class ElectionStore:
    """Durable candidate and voter records with the only write path to them"""

    def __init__(self, storage: Storage):
        self.storage = storage
        self._candidates: Dict[str, Candidate] = {}
        self._voters: Dict[str, Voter] = {}
        self._load()

    def _load(self):
        """Load persisted lists; a missing key is an empty election"""
        for raw in self.storage.get(CANDIDATES_KEY, []) or []:
            try:
                candidate = Candidate.from_dict(raw)
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning("skipping malformed candidate record", error=str(e))
                continue
            self._candidates[candidate.id] = candidate

        for raw in self.storage.get(VOTERS_KEY, []) or []:
            try:
                voter = Voter.from_dict(raw)
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning("skipping malformed voter record", error=str(e))
                continue
            if voter.email in self._voters:
                logger.warning("skipping duplicate stored voter", email=voter.email)
                continue
            self._voters[voter.email] = voter

        logger.info(
            "election loaded",
            candidates=len(self._candidates),
            voters=len(self._voters),
        )

    # ========== Persistence helpers ==========

    @staticmethod
    def _serialize_candidates(candidates: Iterable[Candidate]) -> list:
        return [c.to_dict() for c in candidates]

    @staticmethod
    def _serialize_voters(voters: Iterable[Voter]) -> list:
        return [v.to_dict() for v in voters]

    def _commit(self, candidates: Optional[Dict[str, Candidate]] = None, voters: Optional[Dict[str, Voter]] = None):
        """Persist the staged state, then swap it in"""
        payload = {}
        if candidates is not None:
            payload[CANDIDATES_KEY] = self._serialize_candidates(candidates.values())
        if voters is not None:
            payload[VOTERS_KEY] = self._serialize_voters(voters.values())

        self.storage.set_many(payload)

        if candidates is not None:
            self._candidates = candidates
        if voters is not None:
            self._voters = voters

    def _copy_candidates(self) -> Dict[str, Candidate]:
        return {cid: Candidate(c.id, c.name, c.votes) for cid, c in self._candidates.items()}

    def _copy_voters(self) -> Dict[str, Voter]:
        return {email: Voter(v.email, v.has_voted) for email, v in self._voters.items()}

    # ========== Candidate Operations ==========

    def add_candidate(self, name: str) -> Candidate:
        """Register a candidate with zero votes

        Raises:
            ValidationError: If name is empty after trimming
        """
        clean = (name or "").strip()
        if not clean:
            raise ValidationError("Candidate name cannot be empty", field="name", value=name)

        candidate = Candidate(id=new_candidate_id(), name=clean, votes=0)
        staged = self._copy_candidates()
        staged[candidate.id] = candidate
        self._commit(candidates=staged)

        logger.info("candidate added", candidate_id=candidate.id, name=candidate.name)
        return Candidate(candidate.id, candidate.name, candidate.votes)

    def remove_candidate(self, candidate_id: str) -> bool:
        """Delete a candidate permanently; unknown ids are a no-op"""
        if candidate_id not in self._candidates:
            logger.debug("remove of unknown candidate ignored", candidate_id=candidate_id)
            return False

        staged = self._copy_candidates()
        removed = staged.pop(candidate_id)
        self._commit(candidates=staged)

        logger.info("candidate removed", candidate_id=candidate_id, name=removed.name, votes=removed.votes)
        return True

    def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        candidate = self._candidates.get(candidate_id)
        if candidate is None:
            return None
        return Candidate(candidate.id, candidate.name, candidate.votes)

    def has_candidate(self, candidate_id: str) -> bool:
        return candidate_id in self._candidates

    def candidates(self) -> List[Candidate]:
        """Candidates in stored (creation) order"""
        return [Candidate(c.id, c.name, c.votes) for c in self._candidates.values()]

    # ========== Voter Operations ==========

    def add_voters(self, emails: Union[str, Iterable[str]]) -> int:
        """Bulk-register voters, silently skipping duplicates

        Args:
            emails: Iterable of addresses, or one newline-separated block

        Returns:
            Number of voters actually added
        """
        if isinstance(emails, str):
            emails = re.split(r"\r?\n", emails)

        staged = self._copy_voters()
        added = 0
        skipped = 0
        for entry in emails:
            email = canonical_email(entry)
            if not email:
                continue
            if email in staged:
                skipped += 1
                logger.debug("duplicate ignored", email=email)
                continue
            staged[email] = Voter(email=email, has_voted=False)
            added += 1

        if added:
            self._commit(voters=staged)

        logger.info("voters added", added=added, duplicates_ignored=skipped, total=len(self._voters))
        return added

    def get_voter(self, email: str) -> Optional[Voter]:
        voter = self._voters.get(canonical_email(email))
        if voter is None:
            return None
        return Voter(voter.email, voter.has_voted)

    def voters(self) -> List[Voter]:
        return [Voter(v.email, v.has_voted) for v in self._voters.values()]

    # ========== Election Lifecycle ==========

    def record_ballot(self, email: str, candidate_ids: Iterable[str]) -> List[str]:
        """Apply an accepted ballot atomically

        Increments each selected candidate once and marks the voter as voted,
        persisting both lists in one storage write. Ids of candidates that no
        longer exist are ignored.

        Returns:
            Candidate ids that were actually counted

        Raises:
            NotRegisteredError: If the voter is not on the roll
            AlreadyVotedError: If the voter already has an accepted ballot
            ValidationError: If no candidate ids are given, or none still exist
            DatabaseError: If persistence fails (nothing is applied)
        """
        key = canonical_email(email)
        voter = self._voters.get(key)
        if voter is None:
            raise NotRegisteredError(key)
        if voter.has_voted:
            raise AlreadyVotedError(key)

        unique_ids = list(dict.fromkeys(candidate_ids))
        if not unique_ids:
            raise ValidationError("A ballot needs at least one candidate", field="selection", value=0)

        staged_candidates = self._copy_candidates()
        counted = []
        for candidate_id in unique_ids:
            candidate = staged_candidates.get(candidate_id)
            if candidate is None:
                logger.warning("ignoring selection of removed candidate", candidate_id=candidate_id)
                continue
            candidate.votes += 1
            counted.append(candidate_id)

        if not counted:
            # An accepted ballot counts at least one existing candidate
            raise ValidationError(
                "None of the selected candidates exist anymore", field="selection", value=len(unique_ids)
            )

        staged_voters = self._copy_voters()
        staged_voters[key].has_voted = True

        self._commit(candidates=staged_candidates, voters=staged_voters)

        logger.info("ballot recorded", selections=len(unique_ids), counted=len(counted))
        return counted

    def reset_election(self):
        """Zero every tally and clear every has_voted flag in one step"""
        staged_candidates = self._copy_candidates()
        for candidate in staged_candidates.values():
            candidate.votes = 0

        staged_voters = self._copy_voters()
        for voter in staged_voters.values():
            voter.has_voted = False

        self._commit(candidates=staged_candidates, voters=staged_voters)
        logger.info("election reset", candidates=len(staged_candidates), voters=len(staged_voters))

    def stats(self) -> dict:
        """Voter roll and participation counters for the admin dashboard"""
        total = len(self._voters)
        voted = sum(1 for v in self._voters.values() if v.has_voted)
        return {
            "candidates": len(self._candidates),
            "voters": total,
            "voted": voted,
            "pending": total - voted,
            "turnout": round(voted / total * 100, 1) if total else 0.0,
        }
