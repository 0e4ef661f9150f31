"""
Results API routes (admin only)
"""

from fastapi import APIRouter, Depends

from analysis.narrator import ResultsNarrator
from config import get_logger
from election.store import ElectionStore
from election.tally import TallyEngine
from election.voting import VotingSession
from server.dependencies import get_narrator, get_store, get_tally, verify_admin_session
from server.utils.responses import success_response

logger = get_logger(__name__)


router = APIRouter(prefix="/api/results")


@router.get("")
async def get_results(
    store: ElectionStore = Depends(get_store),
    tally: TallyEngine = Depends(get_tally),
    admin: VotingSession = Depends(verify_admin_session),
):
    """Full ranking, elected subset and percentage of the leader"""
    result = tally.results(store.candidates())
    return success_response(result.to_dict(), stats=store.stats())


@router.post("/summary")
async def generate_summary(
    store: ElectionStore = Depends(get_store),
    tally: TallyEngine = Depends(get_tally),
    narrator: ResultsNarrator = Depends(get_narrator),
    admin: VotingSession = Depends(verify_admin_session),
):
    """Announcement text for the current tally

    Always 200: when the generator is down the fallback text comes back with
    available=False and the tally is returned alongside it unchanged.
    """
    result = tally.results(store.candidates())
    narrative = await narrator.narrate(result)
    return success_response({"summary": narrative.to_dict(), "results": result.to_dict()})


@router.get("/summary")
async def latest_summary(
    narrator: ResultsNarrator = Depends(get_narrator),
    admin: VotingSession = Depends(verify_admin_session),
):
    latest = narrator.latest
    return success_response({
        "summary": latest.to_dict() if latest else None,
        "enabled": narrator.enabled,
    })
