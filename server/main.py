"""
councilvote API Server

FastAPI application for the council election: voter ballots, admin
management, results and the optional announcement generator.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from analysis.llm.summarizer import GeminiSummarizer
from analysis.narrator import ResultsNarrator
from config import config, get_logger
from database.base import Storage
from database.db import ElectionDatabase
from database.memory import MemoryStorage
from election.store import ElectionStore
from election.tally import TallyEngine
from election.voting import SessionRegistry
from exceptions import ConfigurationError
from server.middleware.logging import log_requests
from server.middleware.metrics import metrics_middleware
from server.middleware.request_id import RequestIDMiddleware
from server.routes import admin, monitoring, results, voting

logger = get_logger(__name__)


def _build_storage() -> Storage:
    if config.STORAGE == "memory":
        logger.info("using in-memory storage, data will not survive a restart")
        return MemoryStorage()
    if config.STORAGE == "sqlite":
        config.ensure_data_dir()
        return ElectionDatabase(config.DB_PATH)
    raise ConfigurationError(
        f"Unknown storage backend: {config.STORAGE}", config_key="COUNCILVOTE_STORAGE"
    )


def _build_summarizer():
    if not config.get_api_key():
        return None
    try:
        return GeminiSummarizer(api_key=config.get_api_key())
    except ValueError as e:
        logger.warning("summary generator disabled", error=str(e))
        return None


def create_app(storage: Storage = None, summarizer: GeminiSummarizer = None) -> FastAPI:
    """Build the application

    Args:
        storage: Persistence backend (defaults to the configured one)
        summarizer: Announcement generator (defaults to Gemini when a key is set)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open storage and election state; close storage on shutdown"""
        backend = storage if storage is not None else _build_storage()
        generator = summarizer if summarizer is not None else _build_summarizer()

        store = ElectionStore(backend)
        app.state.storage = backend
        app.state.store = store
        app.state.sessions = SessionRegistry(
            store, config.MAX_VOTES, config.ADMIN_PASSWORD, ttl_seconds=config.SESSION_TTL_SECONDS
        )
        app.state.tally = TallyEngine(config.ELECTED_SEATS)
        app.state.narrator = ResultsNarrator(generator, config.SUMMARY_TIMEOUT_SECONDS)
        logger.info("election state loaded", **store.stats())

        yield

        try:
            backend.close()
            logger.info("closed storage")
        except Exception as e:
            # Don't crash on shutdown
            logger.error("error closing storage", error=str(e), exc_info=True)

    app = FastAPI(title="councilvote API", description="Council election", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )

    # Request ID middleware (must be early in stack for tracing)
    app.add_middleware(RequestIDMiddleware)

    # Last registered runs first: metrics -> logging
    @app.middleware("http")
    async def log_requests_middleware(request, call_next):
        return await log_requests(request, call_next)

    @app.middleware("http")
    async def metrics_middleware_wrapper(request, call_next):
        return await metrics_middleware(request, call_next)

    app.include_router(monitoring.router)  # Root, health and metrics
    app.include_router(voting.router)      # Voter login and ballots
    app.include_router(admin.router)       # Candidates, voters, reset
    app.include_router(results.router)     # Ranking and announcement

    return app


app = create_app()


def main():
    import uvicorn

    if not config.get_api_key():
        logger.warning("WARNING: No Gemini API key configured. Results summaries will be disabled.")
        logger.warning("Set GEMINI_API_KEY or LLM_API_KEY to enable announcements.")

    if config.uses_default_admin_password():
        logger.warning("WARNING: Admin password is the default. Set COUNCILVOTE_ADMIN_PASSWORD.")

    logger.info("Starting councilvote API server...")
    logger.info("configuration", config_summary=config.summary())

    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        access_log=False,  # Custom middleware logs requests
    )


if __name__ == "__main__":
    main()
