"""
Workflow lifecycle manager.

Keeps each workflow's trigger provisioning (a real GitHub hook, or just
validated polling configuration) in lockstep with the workflow row:
create() rolls the row back when provisioning fails, delete() tears the
trigger down before the row goes away.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import MissingHandlerError, ProvisioningError

if TYPE_CHECKING:
    from .models import StepRef, Workflow
    from .registry import DispatchRegistry
    from .store import Store

log = logging.getLogger("area.workflow")


class WorkflowManager:
    """Create / delete workflows through their action handlers."""

    def __init__(self, registry: "DispatchRegistry", store: "Store") -> None:
        self._registry = registry
        self._store = store

    async def create(
        self,
        user_id: int,
        action: "StepRef",
        reaction: "StepRef",
        name: str,
        description: str | None = None,
    ) -> "Workflow":
        handler = self._registry.action(action.id)
        if handler is None:
            raise MissingHandlerError("action", action.id)

        workflow = self._store.create_workflow(
            user_id=user_id,
            name=name,
            description=description,
            action_id=action.id,
            action_data=action.data,
            reaction_id=reaction.id,
            reaction_data=reaction.data,
        )
        log.info("Workflow inserted  id=%d user=%d action=%d reaction=%d",
                 workflow.id, user_id, action.id, reaction.id)

        try:
            await handler.create(workflow.id, list(action.data))
        except Exception as e:
            log.warning("Provisioning failed  workflow=%d action=%d error=%s",
                        workflow.id, action.id, e)
            try:
                await handler.delete(workflow.id, list(action.data))
            except Exception as cleanup_error:
                log.warning("Compensating delete failed  workflow=%d error=%s",
                            workflow.id, cleanup_error)
            self._store.delete_workflow(workflow.id)
            raise ProvisioningError(action.id, e) from e

        created = self._store.get_workflow(workflow.id)
        log.info("Workflow created  id=%d", workflow.id)
        return created if created is not None else workflow

    async def delete(self, workflow_id: int) -> None:
        workflow = self._store.get_workflow(workflow_id)
        if workflow is None:
            raise KeyError(f"Workflow not found: {workflow_id}")

        handler = self._registry.action(workflow.action_id)
        if handler is None:
            raise MissingHandlerError("action", workflow.action_id)

        # Handler runs first so it can still read the workflow.
        await handler.delete(workflow.id, list(workflow.action_data))
        self._store.delete_workflow(workflow.id)
        log.info("Workflow deleted  id=%d action=%d", workflow.id, workflow.action_id)

    def get(self, workflow_id: int) -> "Workflow":
        workflow = self._store.get_workflow(workflow_id)
        if workflow is None:
            raise KeyError(f"Workflow not found: {workflow_id}")
        return workflow

    def list_for_user(self, user_id: int) -> "list[Workflow]":
        return self._store.list_workflows(user_id=user_id)
