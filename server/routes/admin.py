"""
Admin API routes

Candidate and voter-roll management plus election reset. Every route except
/login requires the bearer token returned by /login.
"""

from fastapi import APIRouter, Depends, HTTPException

from config import get_logger
from election.store import ElectionStore
from election.voting import SessionRegistry, VotingSession
from exceptions import AdminAuthError, CouncilVoteError
from server.dependencies import get_sessions, get_store, verify_admin_session
from server.metrics import metrics
from server.models.requests import AdminLoginRequest, CandidateCreateRequest, VotersAddRequest
from server.utils.responses import list_response, raise_http_error, success_response

logger = get_logger(__name__)


router = APIRouter(prefix="/api/admin")


@router.post("/login")
async def admin_login(
    request: AdminLoginRequest,
    sessions: SessionRegistry = Depends(get_sessions),
):
    """Pass the shared-secret gate and receive an admin session token"""
    token, session = sessions.open()
    try:
        session.admin_login(request.password)
    except AdminAuthError as e:
        sessions.discard(token)
        raise_http_error(e)

    return success_response({"token": token, **session.view()})


@router.post("/logout")
async def admin_logout(
    sessions: SessionRegistry = Depends(get_sessions),
    admin: VotingSession = Depends(verify_admin_session),
):
    admin.logout()
    for token, session in sessions.items():
        if session is admin:
            sessions.discard(token)
    return success_response({"state": "anonymous"})


@router.get("/candidates")
async def list_candidates(
    store: ElectionStore = Depends(get_store),
    admin: VotingSession = Depends(verify_admin_session),
):
    """Candidates in stored order, with current tallies"""
    return list_response([c.to_dict() for c in store.candidates()], key="candidates")


@router.post("/candidates", status_code=201)
async def add_candidate(
    request: CandidateCreateRequest,
    store: ElectionStore = Depends(get_store),
    admin: VotingSession = Depends(verify_admin_session),
):
    try:
        candidate = store.add_candidate(request.name)
    except CouncilVoteError as e:
        raise_http_error(e)
    return success_response({"candidate": candidate.to_dict()})


@router.delete("/candidates/{candidate_id}")
async def remove_candidate(
    candidate_id: str,
    store: ElectionStore = Depends(get_store),
    admin: VotingSession = Depends(verify_admin_session),
):
    """Permanent removal; unknown ids succeed with removed=False"""
    try:
        removed = store.remove_candidate(candidate_id)
    except CouncilVoteError as e:
        raise_http_error(e)
    return success_response({"removed": removed, "candidate_id": candidate_id})


@router.get("/voters")
async def list_voters(
    store: ElectionStore = Depends(get_store),
    admin: VotingSession = Depends(verify_admin_session),
):
    return list_response([v.to_dict() for v in store.voters()], key="voters")


@router.post("/voters")
async def add_voters(
    request: VotersAddRequest,
    store: ElectionStore = Depends(get_store),
    admin: VotingSession = Depends(verify_admin_session),
):
    """Bulk-add voters; duplicates are skipped and only the added count reported"""
    try:
        added = store.add_voters(request.entries())
    except CouncilVoteError as e:
        raise_http_error(e)
    return success_response({"added": added, "stats": store.stats()})


@router.get("/stats")
async def get_stats(
    store: ElectionStore = Depends(get_store),
    admin: VotingSession = Depends(verify_admin_session),
):
    return success_response({"stats": store.stats()})


@router.post("/reset")
async def reset_election(
    store: ElectionStore = Depends(get_store),
    admin: VotingSession = Depends(verify_admin_session),
):
    """Zero all tallies and re-enable every voter. Irreversible."""
    try:
        store.reset_election()
    except CouncilVoteError as e:
        logger.exception("election reset failed")
        metrics.record_error(component="api", error=e)
        raise HTTPException(status_code=500, detail="Failed to reset election")

    metrics.election_resets.inc()
    return success_response({
        "message": "Election reset: all votes and voter statuses have been cleared.",
        "stats": store.stats(),
    })
