"""Inbound provider webhooks."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter()
log = logging.getLogger("area.webhook")

CONTEXT = "GitHub Webhook"


@router.post("/webhook/github/{workflow_id}")
async def github_webhook(workflow_id: int, request: Request):
    store = request.app.state.store
    dispatcher = request.app.state.dispatcher

    event = request.headers.get("x-github-event", "unknown")
    body_bytes = await request.body()
    try:
        payload = json.loads(body_bytes) if body_bytes else None
    except ValueError:
        payload = body_bytes.decode("utf-8", errors="replace")

    log.info("GitHub event received  workflow=%d event=%s", workflow_id, event)
    workflow = store.get_workflow(workflow_id)
    store.add_log("info", f"GitHub webhook received: {event} for workflow {workflow_id}", CONTEXT,
                  {"workflowId": workflow_id, "event": event, "payload": payload},
                  user_id=workflow.user_id if workflow else None)

    if workflow is None:
        log.warning("Webhook for unknown workflow  workflow=%d", workflow_id)
        return JSONResponse(status_code=404, content={"error": "workflow not found"})

    dispatcher.dispatch_background(workflow, CONTEXT)
    return {"success": True}
