"""
Polling workers.

Each worker is an independent asyncio loop: one cycle at start, then sleep
`interval` seconds after the cycle completes, so a worker never overlaps
with itself. Workflows are processed one after another; a failure in one
workflow is logged and audited and the cycle moves on.

CursorPollingWorker drives the Spotify, Reddit and Slack actions: it asks
its PollSource for the most recent item and compares its id against the
workflow's cursor.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..core.models import Workflow
    from ..core.store import Store
    from ..integrations.base import PollSource
    from .triggers import TriggerDispatcher


class PollingWorker(ABC):
    """Self-rescheduling loop over the workflows of some action ids."""

    name: str
    label: str

    def __init__(
        self,
        store: "Store",
        dispatcher: "TriggerDispatcher",
        interval: float,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self.interval = interval
        self._task: asyncio.Task | None = None
        self.log = logging.getLogger(f"area.worker.{self.name}")

    @property
    def context(self) -> str:
        """Audit log context, e.g. "Reddit Worker"."""
        return f"{self.label} Worker"

    @property
    @abstractmethod
    def action_ids(self) -> list[int]: ...

    @abstractmethod
    async def process(self, workflow: "Workflow", now: datetime) -> None:
        """Check one workflow and dispatch its reaction if it fired."""
        ...

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def _audit_error(self, message: str, metadata: dict | None = None, user_id: int | None = None) -> None:
        # The audit store may be the thing that is failing
        try:
            self._store.add_log("error", message, self.context, metadata, user_id=user_id)
        except Exception:
            self.log.exception("Audit write failed  message=%s", message)

    async def run_cycle(self, now: datetime | None = None) -> None:
        try:
            workflows = self._store.list_workflows(action_ids=self.action_ids)
        except Exception as e:
            self.log.error("Listing workflows failed  error=%s", e, exc_info=True)
            self._audit_error(f"{self.context} error: {e}")
            return

        if not workflows:
            return
        self.log.debug("Checking workflows  count=%d", len(workflows))
        now = now or self._now()
        for workflow in workflows:
            try:
                await self.process(workflow, now)
            except Exception as e:
                self.log.error("Workflow check failed  workflow=%d error=%s", workflow.id, e, exc_info=True)
                self._audit_error(
                    f"{self.context} error for workflow {workflow.id}: {e}",
                    {"workflowId": workflow.id, "error": str(e)},
                    user_id=workflow.user_id,
                )

    async def run_forever(self) -> None:
        self.log.info("Worker started  interval=%ss", self.interval)
        while True:
            try:
                await self.run_cycle()
            except Exception:
                self.log.exception("Cycle failed, retrying next interval")
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self.run_forever(), name=f"worker-{self.name}")

    async def stop(self, timeout: float = 5.0) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await asyncio.wait_for(task, timeout=timeout)
        except asyncio.CancelledError:
            pass
        except asyncio.TimeoutError:
            self.log.warning("Worker did not stop within %ss", timeout)
        self.log.info("Worker stopped")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, interval={self.interval})"


class CursorPollingWorker(PollingWorker):
    """Fires when the provider's most recent item differs from the cursor."""

    def __init__(
        self,
        source: "PollSource",
        store: "Store",
        dispatcher: "TriggerDispatcher",
        interval: float,
    ) -> None:
        self.source = source
        self.name = source.name
        self.label = source.name.capitalize()
        super().__init__(store, dispatcher, interval)

    @property
    def action_ids(self) -> list[int]:
        return [int(self.source.action_id)]

    async def process(self, workflow: "Workflow", now: datetime) -> None:
        connection = self._store.get_user_service(workflow.user_id, self.source.service_id)
        if connection is None or not connection.token:
            self.log.warning("No token, skipping  workflow=%d user=%d", workflow.id, workflow.user_id)
            return

        item = await self.source.fetch_latest(connection.token, workflow)
        if item is None or item.id == workflow.cursor:
            return

        # Something posted long before the workflow existed is not an event.
        if workflow.cursor is None and now - item.created_at > self.source.grace:
            self._store.update_cursor(workflow.id, item.id)
            self.log.info("Cursor primed  workflow=%d item=%s", workflow.id, item.id)
            return

        # At-most-once: the cursor moves before the reaction runs.
        self._store.update_cursor(workflow.id, item.id)
        self.log.info("New item  workflow=%d item=%s", workflow.id, item.id)
        dispatched = await self._dispatcher.dispatch(
            workflow, [*workflow.reaction_data, *item.details], self.context
        )
        if dispatched:
            self._store.add_log(
                "info",
                f"{self.label} workflow {workflow.id} triggered: new item {item.id}",
                self.context,
                {
                    "workflowId": workflow.id,
                    "reactionId": workflow.reaction_id,
                    **item.metadata,
                },
                user_id=workflow.user_id,
            )


class WorkerManager:
    """Starts and stops every background worker together."""

    def __init__(self) -> None:
        self._workers: list[PollingWorker] = []

    def register(self, worker: PollingWorker) -> None:
        self._workers.append(worker)

    @property
    def workers(self) -> list[PollingWorker]:
        return list(self._workers)

    def start_all(self) -> None:
        for worker in self._workers:
            worker.start()
        logging.getLogger("area.worker").info("Workers started  count=%d", len(self._workers))

    async def stop_all(self) -> None:
        for worker in self._workers:
            await worker.stop()
