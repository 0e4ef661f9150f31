"""Standardized API response helpers.

Ensures consistent response structure across all endpoints.
All successful responses include {"success": True, ...}
"""

from typing import NoReturn, Optional

from fastapi import HTTPException

from exceptions import (
    AdminAuthError,
    AlreadyVotedError,
    CouncilVoteError,
    InvalidTransitionError,
    NotRegisteredError,
    SessionNotFoundError,
    ValidationError,
)


def success_response(data: dict, **extras) -> dict:
    """Standard success response wrapper.

    Usage:
        return success_response({"candidate": candidate.to_dict()})

    Returns:
        {"success": True, **data, **extras}
    """
    return {"success": True, **data, **extras}


def list_response(
    items: list,
    key: str = "items",
    total: Optional[int] = None,
    **extras
) -> dict:
    """Standard list response with total count.

    Usage:
        return list_response(candidates, key="candidates")

    Returns:
        {"success": True, key: items, "total": N, **extras}
    """
    return {
        "success": True,
        key: items,
        "total": total if total is not None else len(items),
        **extras
    }


def raise_http_error(error: CouncilVoteError) -> NoReturn:
    """Translate a domain error into the matching HTTPException

    Messages are user-facing; context stays in the logs.
    """
    message = error.args[0] if error.args else str(error)

    if isinstance(error, ValidationError):
        raise HTTPException(status_code=400, detail=message) from error
    if isinstance(error, (NotRegisteredError, SessionNotFoundError)):
        raise HTTPException(status_code=404, detail=message) from error
    if isinstance(error, (InvalidTransitionError, AlreadyVotedError)):
        raise HTTPException(status_code=409, detail=message) from error
    if isinstance(error, AdminAuthError):
        raise HTTPException(status_code=401, detail=message) from error
    raise HTTPException(status_code=500, detail="Internal server error") from error
