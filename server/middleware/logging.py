"""
Request/response logging middleware
"""

import time
from fastapi import Request

from config import get_logger
from server.middleware.metrics import _normalize_endpoint

logger = get_logger(__name__)


async def log_requests(request: Request, call_next):
    """Log one line per request; session tokens never reach the log"""
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    path_info = f"{request.method} {_normalize_endpoint(request.url.path)}"

    try:
        response = await call_next(request)
        duration = time.time() - start_time
        logger.info(f"{path_info} → {response.status_code} ({duration:.3f}s)")
        return response

    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"{path_info} → ERROR ({duration:.3f}s): {str(e)}")
        raise
