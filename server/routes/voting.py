"""
Voting API routes

A voter signs in by email, receives a session id, toggles candidates on the
ballot and submits once. The session id in the path is the only handle on
the ballot; it is discarded once the ballot is accepted.
"""

from fastapi import APIRouter, Depends, HTTPException

from config import get_logger
from election.store import ElectionStore
from election.voting import AlreadyVoted, BallotOpen, SessionRegistry, VotingSession
from exceptions import CouncilVoteError, DatabaseError, NotRegisteredError
from server.dependencies import get_sessions, get_store
from server.metrics import metrics
from server.models.requests import ToggleRequest, VoterLoginRequest
from server.utils.responses import list_response, raise_http_error, success_response

logger = get_logger(__name__)


router = APIRouter(prefix="/api/vote")


def _session(session_id: str, sessions: SessionRegistry) -> VotingSession:
    try:
        return sessions.get(session_id)
    except CouncilVoteError as e:
        raise_http_error(e)


@router.post("/login")
async def voter_login(
    request: VoterLoginRequest,
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Unauthenticated email lookup against the voter roll

    Voters who already voted get the read-only already_voted view and no
    ballot session.
    """
    token, session = sessions.open()
    try:
        state = session.login(request.email)
    except NotRegisteredError as e:
        sessions.discard(token)
        metrics.logins.labels(outcome="not_registered").inc()
        raise_http_error(e)

    metrics.logins.labels(outcome=state.name).inc()

    if isinstance(state, AlreadyVoted):
        sessions.discard(token)
        return success_response(session.view())

    return success_response({"session_id": token, **session.view()})


@router.get("/{session_id}")
async def get_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    session = _session(session_id, sessions)
    return success_response(session.view())


@router.get("/{session_id}/candidates")
async def ballot_candidates(
    session_id: str,
    store: ElectionStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Candidates as the ballot shows them: selected and disabled flags"""
    session = _session(session_id, sessions)
    if not isinstance(session.state, BallotOpen):
        raise HTTPException(status_code=409, detail="No open ballot for this session")

    selected = set(session.selection)
    full = len(selected) >= session.max_votes
    candidates = [
        {
            "id": c.id,
            "name": c.name,
            "selected": c.id in selected,
            "disabled": full and c.id not in selected,
        }
        for c in store.candidates()
    ]
    return list_response(
        candidates,
        key="candidates",
        selected=len(selected),
        max_votes=session.max_votes,
    )


@router.post("/{session_id}/toggle")
async def toggle_candidate(
    session_id: str,
    request: ToggleRequest,
    sessions: SessionRegistry = Depends(get_sessions),
):
    session = _session(session_id, sessions)
    try:
        changed = session.toggle_candidate(request.candidate_id)
    except CouncilVoteError as e:
        raise_http_error(e)
    return success_response({"changed": changed, **session.view()})


@router.post("/{session_id}/submit")
async def submit_ballot(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    """Cast the ballot. Counts and the voter flag are applied together or not at all."""
    session = _session(session_id, sessions)
    selections = len(session.selection)
    try:
        session.submit()
    except DatabaseError as e:
        logger.exception("ballot could not be recorded")
        metrics.record_error(component="api", error=e)
        raise HTTPException(status_code=500, detail="Your vote could not be recorded, please try again")
    except CouncilVoteError as e:
        raise_http_error(e)

    metrics.record_ballot(selections)
    sessions.discard(session_id)
    return success_response({
        "message": "Thank you! Your vote has been cast.",
        **session.view(),
    })


@router.delete("/{session_id}")
async def abandon_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)):
    """Discard the ballot without voting"""
    session = _session(session_id, sessions)
    session.logout()
    sessions.discard(session_id)
    return success_response(session.view())
