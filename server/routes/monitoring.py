"""
Monitoring and health check API routes
"""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from analysis.narrator import ResultsNarrator
from config import config, get_logger
from election.store import ElectionStore
from election.voting import SessionRegistry
from server.dependencies import get_narrator, get_sessions, get_store
from server.metrics import get_metrics_text

logger = get_logger(__name__)

VERSION = "1.0.0"

router = APIRouter()


@router.get("/")
async def root():
    """API status and info"""
    return {
        "service": "councilvote API",
        "status": "running",
        "version": VERSION,
        "description": f"Council election for {config.ORGANIZATION}",
        "endpoints": {
            "voter_login": "POST /api/vote/login - Sign in with a registered email",
            "ballot": "GET /api/vote/{session_id}/candidates - Ballot with selection state",
            "toggle": "POST /api/vote/{session_id}/toggle - Select or deselect a candidate",
            "submit": "POST /api/vote/{session_id}/submit - Cast the ballot",
            "health": "GET /api/health - Health check with detailed status",
            "metrics": "GET /metrics - Prometheus metrics",
            "admin": {
                "login": "POST /api/admin/login - Pass the admin gate",
                "candidates": "GET|POST /api/admin/candidates - Manage candidates",
                "voters": "GET|POST /api/admin/voters - Manage the voter roll",
                "reset": "POST /api/admin/reset - Clear all votes",
                "results": "GET /api/results - Ranking and elected subset",
                "summary": "POST /api/results/summary - Generate the announcement",
            },
        },
        "max_votes": config.MAX_VOTES,
        "elected_seats": config.ELECTED_SEATS,
    }


@router.get("/api/health")
async def health_check(
    store: ElectionStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
    narrator: ResultsNarrator = Depends(get_narrator),
):
    """Health check endpoint"""
    health_status: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": VERSION,
        "checks": {},
    }

    try:
        stats = store.stats()
        health_status["checks"]["storage"] = {
            "status": "healthy",
            "backend": config.STORAGE,
            "candidates": stats["candidates"],
            "voters": stats["voters"],
            "voted": stats["voted"],
        }
    except Exception as e:
        logger.error("health check storage failure", error=str(e))
        health_status["checks"]["storage"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "unhealthy"

    health_status["checks"]["summary_generator"] = {
        "status": "available" if narrator.enabled else "disabled",
        "has_api_key": bool(config.get_api_key()),
    }

    health_status["checks"]["sessions"] = {"open": len(sessions)}

    health_status["checks"]["configuration"] = {
        "status": "degraded" if config.uses_default_admin_password() else "healthy",
        "is_development": config.is_development(),
        "default_admin_password": config.uses_default_admin_password(),
    }

    return health_status


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics endpoint

    Returns metrics in Prometheus text format for scraping.
    """
    try:
        return Response(content=get_metrics_text(), media_type="text/plain")
    except Exception as e:
        logger.error("prometheus metrics endpoint failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to generate metrics")
