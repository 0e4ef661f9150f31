"""FastAPI Dependencies

Centralized dependency injection for reuse across all route modules.
Everything lives on app.state, created once in the lifespan handler.
"""

from fastapi import Header, HTTPException, Request, status

from analysis.narrator import ResultsNarrator
from election.store import ElectionStore
from election.tally import TallyEngine
from election.voting import AdminAuthenticated, SessionRegistry, VotingSession
from exceptions import SessionNotFoundError


def get_store(request: Request) -> ElectionStore:
    """Dependency to get the shared election store from app state

    Usage in routes:
        @router.get("/endpoint")
        async def endpoint(store: ElectionStore = Depends(get_store)):
            return store.stats()
    """
    return request.app.state.store


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_tally(request: Request) -> TallyEngine:
    return request.app.state.tally


def get_narrator(request: Request) -> ResultsNarrator:
    return request.app.state.narrator


async def verify_admin_session(request: Request, authorization: str = Header(None)) -> VotingSession:
    """Require a bearer token naming a session that passed the admin gate

    Raises:
        HTTPException 401 if the header is missing, malformed or unknown
        HTTPException 403 if the session is not an admin session
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Authorization header required"
        )

    try:
        scheme, token = authorization.split(" ")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authorization header format"
        )

    if scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication scheme"
        )

    sessions: SessionRegistry = request.app.state.sessions
    try:
        session = sessions.get(token)
    except SessionNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin session expired or unknown"
        )

    if not isinstance(session.state, AdminAuthenticated):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

    return session
