"""Request dependencies shared by the API routes."""
from __future__ import annotations

from fastapi import Header, HTTPException


def current_user_id(x_user_id: int | None = Header(default=None)) -> int:
    """Caller identity, set by the authenticating gateway in front of this service."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def error_detail(e: Exception) -> str:
    # KeyError wraps its message in quotes when str()'d
    if isinstance(e, KeyError) and e.args:
        return str(e.args[0])
    return str(e)
