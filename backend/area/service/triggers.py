"""
Reaction dispatch.

Both polling workers and the inbound webhook route end here: look the
workflow's reaction up in the registry and execute it with the given data.
A registry miss is logged, audited and skipped; reaction failures propagate
to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.models import Workflow
    from ..core.registry import DispatchRegistry
    from ..core.store import Store

log = logging.getLogger("area.trigger")


class TriggerDispatcher:
    """Runs a workflow's reaction; owns the webhook background tasks."""

    def __init__(self, registry: "DispatchRegistry", store: "Store") -> None:
        self._registry = registry
        self._store = store
        self._pending: set[asyncio.Task] = set()

    async def dispatch(self, workflow: "Workflow", data: list[str], context: str) -> bool:
        """
        Execute the reaction bound to `workflow` with `data`.
        Returns False (without raising) when no handler is registered.
        """
        handler = self._registry.reaction(workflow.reaction_id)
        if handler is None:
            log.error("No reaction handler  workflow=%d reaction=%d", workflow.id, workflow.reaction_id)
            self._store.add_log(
                "error",
                f"No reaction handler registered for reaction {workflow.reaction_id}",
                context,
                {"workflowId": workflow.id, "reactionId": workflow.reaction_id},
                user_id=workflow.user_id,
            )
            return False

        log.info("Dispatching  workflow=%d reaction=%d user=%d",
                 workflow.id, workflow.reaction_id, workflow.user_id)
        await handler.execute(workflow.user_id, data)
        return True

    def dispatch_background(self, workflow: "Workflow", context: str) -> asyncio.Task:
        """Fire-and-forget dispatch with the workflow's own reaction_data."""
        task = asyncio.get_running_loop().create_task(self._run_background(workflow, context))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run_background(self, workflow: "Workflow", context: str) -> None:
        try:
            await self.dispatch(workflow, list(workflow.reaction_data), context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error("Reaction failed  workflow=%d error=%s", workflow.id, e, exc_info=True)
            try:
                self._store.add_log(
                    "error",
                    f"Reaction failed for workflow {workflow.id}: {e}",
                    context,
                    {"workflowId": workflow.id, "reactionId": workflow.reaction_id},
                    user_id=workflow.user_id,
                )
            except Exception:
                log.exception("Audit write failed  workflow=%d", workflow.id)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def cancel_pending(self, timeout: float = 5.0) -> None:
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks, timeout=timeout)
            log.info("Cancelled pending dispatches  count=%d", len(tasks))
