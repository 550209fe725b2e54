"""Workflow CRUD routes."""
from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, Response

from ...core.catalog import get_action, get_reaction
from ...core.errors import AreaError, MissingHandlerError, ProvisioningError
from ...core.models import WorkflowCreate
from ..deps import current_user_id, error_detail

router = APIRouter()
log = logging.getLogger("area.api.workflows")

CONTEXT = "POST /workflow"


def _owned(request: Request, workflow_id: int, user_id: int):
    try:
        workflow = request.app.state.manager.get(workflow_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=error_detail(e))
    if workflow.user_id != user_id:
        raise HTTPException(status_code=404, detail=f"Workflow not found: {workflow_id}")
    return workflow


@router.post("/workflows", status_code=201)
async def create_workflow(body: WorkflowCreate, request: Request, user_id: int = Depends(current_user_id)):
    store = request.app.state.store
    manager = request.app.state.manager

    if get_action(body.action.id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown action id: {body.action.id}")
    if get_reaction(body.reaction.id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown reaction id: {body.reaction.id}")

    try:
        workflow = await manager.create(
            user_id=user_id,
            action=body.action,
            reaction=body.reaction,
            name=body.name,
            description=body.description,
        )
    except MissingHandlerError as e:
        log.error("Create failed  user=%d error=%s", user_id, e)
        store.add_log("error", f"Workflow creation failed: {e}", CONTEXT, {"userId": user_id}, user_id=user_id)
        raise HTTPException(status_code=500, detail=str(e))
    except (ProvisioningError, ValueError) as e:
        store.add_log("error", f"Workflow creation failed: {e}", CONTEXT,
                      {"userId": user_id, "actionId": body.action.id, "reactionId": body.reaction.id},
                      user_id=user_id)
        raise HTTPException(status_code=400, detail=str(e))

    store.add_log("info", f'Workflow "{workflow.name}" created', CONTEXT,
                  {"workflowId": workflow.id, "userId": user_id}, user_id=user_id)
    return workflow.model_dump(mode="json")


@router.get("/workflows")
async def list_workflows(request: Request, user_id: int = Depends(current_user_id)):
    manager = request.app.state.manager
    return [w.model_dump(mode="json") for w in manager.list_for_user(user_id)]


@router.get("/workflows/{workflow_id}")
async def get_workflow(workflow_id: int, request: Request, user_id: int = Depends(current_user_id)):
    return _owned(request, workflow_id, user_id).model_dump(mode="json")


@router.delete("/workflows/{workflow_id}", status_code=204)
async def delete_workflow(workflow_id: int, request: Request, user_id: int = Depends(current_user_id)):
    store = request.app.state.store
    _owned(request, workflow_id, user_id)
    try:
        await request.app.state.manager.delete(workflow_id)
    except MissingHandlerError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except KeyError as e:
        raise HTTPException(status_code=404, detail=error_detail(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (AreaError, httpx.HTTPError) as e:
        # Row is kept when teardown fails
        log.error("Delete failed  workflow=%d user=%d error=%s", workflow_id, user_id, e)
        store.add_log("error", f"Workflow deletion failed: {e}", CONTEXT,
                      {"workflowId": workflow_id, "userId": user_id}, user_id=user_id)
        raise HTTPException(status_code=502, detail=str(e))

    store.add_log("info", f"Workflow {workflow_id} deleted", CONTEXT,
                  {"workflowId": workflow_id, "userId": user_id}, user_id=user_id)
    return Response(status_code=204)
