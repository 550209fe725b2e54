"""Audit log route."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request

from ..deps import current_user_id

router = APIRouter()


@router.get("/logs")
async def list_logs(
    request: Request,
    context: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    user_id: int = Depends(current_user_id),
):
    """The caller's own audit rows, newest first."""
    store = request.app.state.store
    entries = store.list_logs(context=context, limit=limit, user_id=user_id)
    return [entry.model_dump(mode="json") for entry in entries]
