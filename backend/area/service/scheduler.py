"""
Timer worker.

Runs on an APScheduler AsyncIOScheduler aligned to the start of every
wall-clock minute. max_instances=1 keeps cycles from overlapping and
coalesce=True collapses runs missed while the loop was busy into one.

The cursor holds the key of the last firing (the minute, or the day for
one-shot future dates), so a workflow never fires twice for the same slot.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..core.catalog import ActionsId
from ..integrations.timer import TIMER_CHECKS, should_trigger
from .polling import PollingWorker

if TYPE_CHECKING:
    from ..core.models import Workflow
    from ..core.store import Store
    from .triggers import TriggerDispatcher


def fire_key(workflow: "Workflow", now: datetime) -> str:
    if workflow.action_id == ActionsId.timer_future_date:
        return now.strftime("%Y-%m-%d")
    return now.strftime("%Y-%m-%dT%H:%M")


class TimerWorker(PollingWorker):
    name = "timer"
    label = "Timer"

    def __init__(self, store: "Store", dispatcher: "TriggerDispatcher", interval: float = 60) -> None:
        super().__init__(store, dispatcher, interval)
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def action_ids(self) -> list[int]:
        return [int(i) for i in TIMER_CHECKS]

    def _now(self) -> datetime:
        # Daily and annual schedules are expressed in server local time.
        return datetime.now()

    async def process(self, workflow: "Workflow", now: datetime) -> None:
        key = fire_key(workflow, now)
        if workflow.cursor == key or not should_trigger(workflow, now):
            return

        self._store.update_cursor(workflow.id, key)
        self.log.info("Timer fired  workflow=%d slot=%s", workflow.id, key)
        dispatched = await self._dispatcher.dispatch(workflow, list(workflow.reaction_data), self.context)
        if dispatched:
            self._store.add_log(
                "info",
                f'Timer workflow "{workflow.name}" (ID: {workflow.id}) triggered',
                self.context,
                {
                    "workflowId": workflow.id,
                    "actionId": workflow.action_id,
                    "reactionId": workflow.reaction_id,
                },
                user_id=workflow.user_id,
            )

    def start(self) -> None:
        if self._scheduler is not None:
            return
        if self.interval == 60:
            trigger = CronTrigger(second=0)
        else:
            trigger = IntervalTrigger(seconds=self.interval)
        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.run_cycle,
            trigger=trigger,
            id="timer-worker",
            name="timer-worker",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=30,
            next_run_time=datetime.now(),
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        self.log.info("Timer scheduler started  trigger=%s", trigger)

    async def stop(self, timeout: float = 5.0) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        scheduler.shutdown(wait=False)
        self.log.info("Timer scheduler stopped")
