"""
Voting State Machine - explicit session states and one transition per action

States:
- Anonymous: nobody signed in
- BallotOpen: registered voter signed in, composing a ballot (starts empty)
- AlreadyVoted: read-only terminal view for voters with an accepted ballot
- Submitted: ballot accepted, terminal for this session
- AdminAuthenticated: admin gate passed

Transitions:
    Anonymous --login--> BallotOpen | AlreadyVoted
    BallotOpen --toggle_candidate--> BallotOpen
    BallotOpen --submit--> Submitted
    any --admin_login--> AdminAuthenticated
    any --logout--> Anonymous

Failed transitions raise and leave the state untouched.
"""

import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple, Union

from config import get_logger
from election.models import canonical_email
from election.store import ElectionStore
from exceptions import (
    AdminAuthError,
    AlreadyVotedError,
    EmptySelectionError,
    InvalidTransitionError,
    NotRegisteredError,
    SessionNotFoundError,
)

logger = get_logger(__name__).bind(component="voting")


@dataclass(frozen=True)
class Anonymous:
    name = "anonymous"


@dataclass(frozen=True)
class BallotOpen:
    """Authenticated voter with an open ballot; selection keeps click order"""

    email: str
    selection: Tuple[str, ...] = ()
    name = "ballot_open"


@dataclass(frozen=True)
class AlreadyVoted:
    email: str
    name = "already_voted"


@dataclass(frozen=True)
class Submitted:
    email: str
    counted: Tuple[str, ...] = ()
    name = "submitted"


@dataclass(frozen=True)
class AdminAuthenticated:
    name = "admin"


SessionState = Union[Anonymous, BallotOpen, AlreadyVoted, Submitted, AdminAuthenticated]


class VotingSession:
    """One browser session's walk through the voting workflow"""

    def __init__(self, store: ElectionStore, max_votes: int, admin_password: str = ""):
        if max_votes <= 0:
            raise ValueError("max_votes must be positive")
        self.store = store
        self.max_votes = max_votes
        self._admin_password = admin_password
        self.state: SessionState = Anonymous()

    # ========== Voter transitions ==========

    def login(self, email: str) -> SessionState:
        """Look the voter up by canonical email

        Raises:
            NotRegisteredError: Email not on the roll (state unchanged)
        """
        key = canonical_email(email)
        voter = self.store.get_voter(key)
        if voter is None:
            logger.info("login rejected", reason="not_registered")
            raise NotRegisteredError(key)

        if voter.has_voted:
            self.state = AlreadyVoted(email=voter.email)
            logger.info("login of voter who already voted")
        else:
            self.state = BallotOpen(email=voter.email)
            logger.info("voter authenticated")
        return self.state

    def toggle_candidate(self, candidate_id: str) -> bool:
        """Select or deselect a candidate

        Deselecting is always allowed. Selecting past max_votes is a silent
        no-op; so is selecting a candidate that is not in the store. Ids of
        candidates removed since they were picked are dropped first, so they
        never hold a slot.

        Returns:
            True if the requested candidate was selected or deselected
        """
        state = self._require_ballot("toggle a candidate")

        if candidate_id in state.selection:
            self.state = BallotOpen(
                email=state.email,
                selection=tuple(cid for cid in state.selection if cid != candidate_id),
            )
            return True

        state = self._prune_selection(state)

        if len(state.selection) >= self.max_votes:
            logger.debug("selection cap reached", max_votes=self.max_votes)
            return False

        if not self.store.has_candidate(candidate_id):
            logger.debug("ignoring unknown candidate", candidate_id=candidate_id)
            return False

        self.state = BallotOpen(email=state.email, selection=state.selection + (candidate_id,))
        return True

    def submit(self) -> Submitted:
        """Cast the ballot: count every selection and lock the voter out

        Raises:
            EmptySelectionError: No existing candidate selected (nothing changes)
            AlreadyVotedError: Voter's ballot was accepted elsewhere meanwhile
            DatabaseError: Persistence failed (nothing changes)
        """
        state = self._prune_selection(self._require_ballot("submit"))
        if not state.selection:
            raise EmptySelectionError()

        try:
            counted = self.store.record_ballot(state.email, state.selection)
        except AlreadyVotedError:
            self.state = AlreadyVoted(email=state.email)
            raise

        self.state = Submitted(email=state.email, counted=tuple(counted))
        logger.info("ballot submitted", selections=len(state.selection), counted=len(counted))
        return self.state

    # ========== Admin and session transitions ==========

    def admin_login(self, password: str) -> AdminAuthenticated:
        """Pass the shared-secret admin gate

        Placeholder-strength check; not a security boundary.
        """
        if not self._admin_password or not secrets.compare_digest(
            (password or "").encode(), self._admin_password.encode()
        ):
            logger.info("admin login rejected")
            raise AdminAuthError()

        self.state = AdminAuthenticated()
        logger.info("admin authenticated")
        return self.state

    def logout(self) -> Anonymous:
        self.state = Anonymous()
        return self.state

    # ========== Read helpers ==========

    @property
    def selection(self) -> Tuple[str, ...]:
        """Selected ids that still name a candidate in the store"""
        if isinstance(self.state, BallotOpen):
            return tuple(cid for cid in self.state.selection if self.store.has_candidate(cid))
        return ()

    @property
    def remaining_choices(self) -> int:
        return self.max_votes - len(self.selection)

    def view(self) -> dict:
        """JSON-friendly description of the current state"""
        state = self.state
        data = {"state": state.name}
        if isinstance(state, BallotOpen):
            data.update(
                email=state.email,
                selection=list(self.selection),
                max_votes=self.max_votes,
                remaining=self.remaining_choices,
                can_submit=bool(self.selection),
            )
        elif isinstance(state, (AlreadyVoted, Submitted)):
            data["email"] = state.email
        return data

    def _require_ballot(self, action: str) -> BallotOpen:
        if not isinstance(self.state, BallotOpen):
            raise InvalidTransitionError(action, self.state.name)
        return self.state

    def _prune_selection(self, state: BallotOpen) -> BallotOpen:
        """Drop ids of candidates removed since they were selected"""
        live = tuple(cid for cid in state.selection if self.store.has_candidate(cid))
        if live != state.selection:
            logger.info("dropped removed candidates from selection", dropped=len(state.selection) - len(live))
            self.state = BallotOpen(email=state.email, selection=live)
        return self.state


class SessionRegistry:
    """Opaque token -> VotingSession, for the HTTP layer

    Sessions untouched for ttl_seconds are dropped the next time a session
    is opened or looked up.
    """

    def __init__(
        self,
        store: ElectionStore,
        max_votes: int,
        admin_password: str = "",
        ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.store = store
        self.max_votes = max_votes
        self.admin_password = admin_password
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._sessions: Dict[str, VotingSession] = {}
        self._touched: Dict[str, float] = {}

    def _evict_idle(self, now: float):
        expired = [token for token, touched in self._touched.items() if now - touched > self.ttl_seconds]
        for token in expired:
            self._sessions.pop(token, None)
            self._touched.pop(token, None)
        if expired:
            logger.info("evicted idle sessions", evicted=len(expired), remaining=len(self._sessions))

    def open(self) -> Tuple[str, VotingSession]:
        now = self.clock()
        self._evict_idle(now)
        token = secrets.token_urlsafe(24)
        session = VotingSession(self.store, self.max_votes, self.admin_password)
        self._sessions[token] = session
        self._touched[token] = now
        return token, session

    def get(self, token: str) -> VotingSession:
        now = self.clock()
        self._evict_idle(now)
        session = self._sessions.get(token)
        if session is None:
            raise SessionNotFoundError(token)
        self._touched[token] = now
        return session

    def discard(self, token: str) -> bool:
        self._touched.pop(token, None)
        return self._sessions.pop(token, None) is not None

    def items(self) -> List[Tuple[str, VotingSession]]:
        return list(self._sessions.items())

    def __len__(self) -> int:
        return len(self._sessions)
