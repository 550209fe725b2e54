"""Service catalog routes."""
from __future__ import annotations

import time

from fastapi import APIRouter, HTTPException, Request

from ...core.catalog import ACTIONS, REACTIONS, SERVICES, get_service_by_name, service_view

router = APIRouter()
about_router = APIRouter()


@router.get("/services")
async def list_services():
    return [service_view(s) for s in SERVICES]


@router.get("/services/{name}")
async def get_service(name: str):
    service = get_service_by_name(name)
    if service is None:
        raise HTTPException(status_code=404, detail=f"Service not found: {name}")
    return service_view(service)


@about_router.get("/about.json")
async def about(request: Request):
    host = request.client.host if request.client else None
    return {
        "client": {"host": host},
        "server": {
            "current_time": int(time.time()),
            "services": [
                {
                    "name": s.name,
                    "actions": [
                        {"name": a.name, "description": a.description}
                        for a in ACTIONS if a.service_id == s.id
                    ],
                    "reactions": [
                        {"name": r.name, "description": r.description}
                        for r in REACTIONS if r.service_id == s.id
                    ],
                }
                for s in SERVICES
            ],
        },
    }
