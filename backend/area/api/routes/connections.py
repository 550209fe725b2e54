"""Linked provider accounts (tokens) of the calling user."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field

from ...core.catalog import get_service, get_service_by_name
from ...core.models import ConnectionView
from ..deps import current_user_id

router = APIRouter()


class ConnectBody(BaseModel):
    token: str = Field(min_length=1)
    refresh_token: str | None = None


def _service_or_404(name: str):
    service = get_service_by_name(name)
    if service is None:
        raise HTTPException(status_code=404, detail=f"Service not found: {name}")
    return service


def _view(connection) -> dict:
    service = get_service(connection.service_id)
    return ConnectionView(
        service_id=connection.service_id,
        service_name=service.name if service else str(connection.service_id),
        created_at=connection.created_at,
        updated_at=connection.updated_at,
    ).model_dump(mode="json")


@router.get("/connections")
async def list_connections(request: Request, user_id: int = Depends(current_user_id)):
    store = request.app.state.store
    return [_view(c) for c in store.list_user_services(user_id)]


@router.put("/connections/{service}")
async def connect(service: str, body: ConnectBody, request: Request, user_id: int = Depends(current_user_id)):
    svc = _service_or_404(service)
    store = request.app.state.store
    connection = store.save_user_service(user_id, svc.id, body.token, body.refresh_token)
    store.add_log("info", f"User {user_id} connected {svc.name}", "Connections",
                  {"userId": user_id, "serviceId": svc.id}, user_id=user_id)
    return _view(connection)


@router.delete("/connections/{service}", status_code=204)
async def disconnect(service: str, request: Request, user_id: int = Depends(current_user_id)):
    svc = _service_or_404(service)
    store = request.app.state.store
    try:
        store.delete_user_service(user_id, svc.id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"{svc.name} is not connected")
    store.add_log("info", f"User {user_id} disconnected {svc.name}", "Connections",
                  {"userId": user_id, "serviceId": svc.id}, user_id=user_id)
    return Response(status_code=204)
