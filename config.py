import os
import logging
import sys
from typing import Optional

import structlog

logger = logging.getLogger("councilvote")


def get_logger(name: str = "councilvote"):
    """Get a structured logger instance

    Usage:
        logger = get_logger(__name__)
        logger = logger.bind(component="store")
        logger.info("ballot recorded", selections=3)

    Args:
        name: Logger name (typically __name__ or module path)

    Returns:
        Structured logger instance with context binding support
    """
    return structlog.get_logger(name)


class Config:
    """Configuration management for councilvote"""

    def __init__(self):
        # Storage configuration
        default_data_dir = os.path.join(os.getcwd(), "data")
        self.DB_DIR = os.getenv("COUNCILVOTE_DB_DIR", default_data_dir)
        self.DB_PATH = os.getenv(
            "COUNCILVOTE_DB_PATH", f"{self.DB_DIR}/councilvote.db"
        )
        self.STORAGE = os.getenv("COUNCILVOTE_STORAGE", "sqlite").lower()

        # Election rules
        self.MAX_VOTES = int(os.getenv("COUNCILVOTE_MAX_VOTES", "9"))
        self.ELECTED_SEATS = int(os.getenv("COUNCILVOTE_ELECTED_SEATS", "9"))
        self.ORGANIZATION = os.getenv(
            "COUNCILVOTE_ORGANIZATION", "Conservatorio Superior de Música de Aragón"
        )

        # Admin gate (shared secret, not a security boundary)
        self.ADMIN_PASSWORD = os.getenv("COUNCILVOTE_ADMIN_PASSWORD", "admin")

        # Ballot and admin sessions idle longer than this are dropped
        self.SESSION_TTL_SECONDS = float(
            os.getenv("COUNCILVOTE_SESSION_TTL_SECONDS", "1800")
        )

        # External APIs
        self.GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
        self.LLM_API_KEY = os.getenv("LLM_API_KEY")  # Fallback
        self.GEMINI_MODEL = os.getenv("COUNCILVOTE_GEMINI_MODEL", "gemini-2.5-pro")
        self.SUMMARY_TIMEOUT_SECONDS = float(
            os.getenv("COUNCILVOTE_SUMMARY_TIMEOUT_SECONDS", "60")
        )

        # API configuration
        self.API_HOST = os.getenv("COUNCILVOTE_HOST", "0.0.0.0")
        self.API_PORT = int(os.getenv("COUNCILVOTE_PORT", "8000"))
        self.DEBUG = os.getenv("COUNCILVOTE_DEBUG", "false").lower() == "true"

        # CORS settings
        self.ALLOWED_ORIGINS = self._parse_origins(
            os.getenv(
                "COUNCILVOTE_ALLOWED_ORIGINS",
                "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173",
            )
        )

        # Logging
        self.LOG_LEVEL = os.getenv("COUNCILVOTE_LOG_LEVEL", "INFO").upper()

        # Validate configuration
        self._validate()

    def _parse_origins(self, origins_str: str) -> list:
        """Parse comma-separated origins string"""
        if not origins_str:
            return []
        return [origin.strip() for origin in origins_str.split(",") if origin.strip()]

    def _validate(self):
        """Validate configuration values"""
        if self.MAX_VOTES <= 0:
            raise ValueError("COUNCILVOTE_MAX_VOTES must be positive")

        if self.ELECTED_SEATS <= 0:
            raise ValueError("COUNCILVOTE_ELECTED_SEATS must be positive")

        if self.STORAGE not in ("sqlite", "memory"):
            raise ValueError("COUNCILVOTE_STORAGE must be 'sqlite' or 'memory'")

        if self.SUMMARY_TIMEOUT_SECONDS <= 0:
            raise ValueError("COUNCILVOTE_SUMMARY_TIMEOUT_SECONDS must be positive")

        if self.SESSION_TTL_SECONDS <= 0:
            raise ValueError("COUNCILVOTE_SESSION_TTL_SECONDS must be positive")

        if self.API_PORT <= 0 or self.API_PORT > 65535:
            raise ValueError("COUNCILVOTE_PORT must be between 1 and 65535")

        if not self.ADMIN_PASSWORD:
            raise ValueError("COUNCILVOTE_ADMIN_PASSWORD cannot be empty")

        if not self.get_api_key():
            logger.warning("No Gemini API key configured - results summaries will be disabled")

    def get_api_key(self) -> Optional[str]:
        """Get the API key for the summary generator"""
        return self.GEMINI_API_KEY or self.LLM_API_KEY

    def ensure_data_dir(self) -> str:
        """Lazily create data directory if it doesn't exist

        Returns:
            Path to the data directory
        """
        if not os.path.exists(self.DB_DIR):
            logger.info("creating data directory %s", self.DB_DIR)
            os.makedirs(self.DB_DIR, exist_ok=True)
        return self.DB_DIR

    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.DEBUG or "localhost" in str(self.ALLOWED_ORIGINS)

    def uses_default_admin_password(self) -> bool:
        return self.ADMIN_PASSWORD == "admin"

    def summary(self) -> dict:
        """Get a summary of current configuration (excluding secrets)"""
        return {
            "db_path": self.DB_PATH if self.STORAGE == "sqlite" else None,
            "storage": self.STORAGE,
            "max_votes": self.MAX_VOTES,
            "elected_seats": self.ELECTED_SEATS,
            "organization": self.ORGANIZATION,
            "gemini_model": self.GEMINI_MODEL,
            "summary_timeout_seconds": self.SUMMARY_TIMEOUT_SECONDS,
            "session_ttl_seconds": self.SESSION_TTL_SECONDS,
            "api_host": self.API_HOST,
            "api_port": self.API_PORT,
            "debug": self.DEBUG,
            "allowed_origins_count": len(self.ALLOWED_ORIGINS),
            "log_level": self.LOG_LEVEL,
            "has_api_key": bool(self.get_api_key()),
            "default_admin_password": self.uses_default_admin_password(),
            "is_development": self.is_development(),
        }


def configure_structlog(is_development: bool = False, log_level: str = "INFO"):
    """Configure structlog for structured logging

    Args:
        is_development: If True, use human-readable console output. If False, use JSON.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # No timestamp processor - the process supervisor provides timestamps
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    if is_development:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )


# Global configuration instance
config = Config()

configure_structlog(
    is_development=config.is_development(),
    log_level=config.LOG_LEVEL
)
