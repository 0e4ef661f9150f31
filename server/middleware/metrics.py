"""
Prometheus metrics middleware for API requests

Instruments all API requests with:
- Request count (by endpoint, method, status_code)
- Request duration (by endpoint, method)

Session tokens and candidate ids are collapsed so label cardinality stays flat.
"""

import time
from fastapi import Request

from server.metrics import metrics


async def metrics_middleware(request: Request, call_next):
    """Record Prometheus metrics for all API requests"""
    start_time = time.time()
    endpoint = _normalize_endpoint(request.url.path)
    method = request.method

    try:
        response = await call_next(request)
    except Exception:
        metrics.api_requests.labels(endpoint=endpoint, method=method, status_code=500).inc()
        metrics.api_request_duration.labels(endpoint=endpoint, method=method).observe(
            time.time() - start_time
        )
        raise

    metrics.api_requests.labels(
        endpoint=endpoint,
        method=method,
        status_code=response.status_code
    ).inc()
    metrics.api_request_duration.labels(endpoint=endpoint, method=method).observe(
        time.time() - start_time
    )
    return response


def _normalize_endpoint(path: str) -> str:
    """Normalize endpoint path for metrics cardinality control

    Converts:
        /api/vote/Xy12abc/toggle -> /api/vote/:session_id/toggle
        /api/admin/candidates/6f1c...-... -> /api/admin/candidates/:candidate_id
    """
    parts = [part for part in path.split('/') if part]
    normalized_parts = []

    for i, part in enumerate(parts):
        prev_part = parts[i - 1] if i > 0 else None
        if prev_part == 'vote' and part != 'login':
            normalized_parts.append(':session_id')
        elif prev_part == 'candidates':
            normalized_parts.append(':candidate_id')
        else:
            normalized_parts.append(part)

    return '/' + '/'.join(normalized_parts)
