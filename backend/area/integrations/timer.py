"""
Timer actions.

No external resource is provisioned: create() validates the parameters,
delete() only records the removal. The timer worker evaluates the
should_trigger_* predicates against wall-clock time every minute.

action_data layouts:
  timer_daily        ["HH:MM"]                     every day at that minute
  timer_date         ["DD/MM"]                     every year, at midnight that day
  timer_future_date  ["daysAhead", "createdAtISO"] once, on created_at.date() + daysAhead
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable

from ..core.catalog import ActionsId, ServicesId
from .base import ProviderActionHandler

if TYPE_CHECKING:
    from ..core.models import Workflow
    from ..core.registry import DispatchRegistry
    from ..core.store import Store

log = logging.getLogger("area.timer")

TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DATE_RE = re.compile(r"^(0[1-9]|[12]\d|3[01])/(0[1-9]|1[0-2])$")
MAX_DAYS_AHEAD = 365


# ── Predicates ────────────────────────────────────────────────────────────────


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


def _local(moment: datetime, now: datetime) -> datetime:
    """Express `moment` in the same frame as `now` so calendar dates compare."""
    if moment.tzinfo is None:
        return moment
    if now.tzinfo is not None:
        return moment.astimezone(now.tzinfo)
    return moment.astimezone().replace(tzinfo=None)


def should_trigger_daily(data: list[str], now: datetime | None = None) -> bool:
    if len(data) < 1:
        return False
    now = now or datetime.now()
    return now.strftime("%H:%M") == data[0]


def should_trigger_date(data: list[str], now: datetime | None = None) -> bool:
    """Fires only during the midnight minute of the given day."""
    if len(data) < 1:
        return False
    now = now or datetime.now()
    return now.strftime("%d/%m") == data[0] and now.hour == 0 and now.minute == 0


def should_trigger_future_date(data: list[str], now: datetime | None = None) -> bool:
    if len(data) < 2:
        return False
    now = now or datetime.now()
    try:
        days_ahead = int(data[0])
        created_at = _parse_iso(data[1])
    except ValueError:
        return False
    target = _local(created_at, now).date() + timedelta(days=days_ahead)
    return target == now.date()


TIMER_CHECKS: dict[int, Callable[[list[str], datetime | None], bool]] = {
    ActionsId.timer_daily: should_trigger_daily,
    ActionsId.timer_date: should_trigger_date,
    ActionsId.timer_future_date: should_trigger_future_date,
}


def should_trigger(workflow: "Workflow", now: datetime | None = None) -> bool:
    check = TIMER_CHECKS.get(workflow.action_id)
    if check is None:
        return False
    return check(workflow.action_data, now)


# ── Action handlers ───────────────────────────────────────────────────────────


class _TimerAction(ProviderActionHandler):
    service_id = ServicesId.timer
    context = "Timer Webhook"
    label: str

    async def delete(self, workflow_id: int, data: list[str]) -> None:
        log.info("%s trigger removed  workflow=%d", self.label, workflow_id)
        self._audit(f"{self.label} action removed for workflow {workflow_id}", workflowId=workflow_id)


class TimerDailyAction(_TimerAction):
    action_id = ActionsId.timer_daily
    label = "Timer Daily"

    async def create(self, workflow_id: int, data: list[str]) -> None:
        if len(data) != 1:
            raise ValueError("Timer Daily requires exactly 1 parameter: time in HH:MM format")
        if not TIME_RE.match(data[0]):
            raise ValueError("Invalid time format. Expected HH:MM (00:00 to 23:59)")
        self._workflow(workflow_id)
        log.info("Timer Daily configured  workflow=%d at=%s", workflow_id, data[0])
        self._audit(f"Timer Daily configured for workflow {workflow_id} ({data[0]})",
                    workflowId=workflow_id, time=data[0])


class TimerDateAction(_TimerAction):
    action_id = ActionsId.timer_date
    label = "Timer Date"

    async def create(self, workflow_id: int, data: list[str]) -> None:
        if len(data) != 1:
            raise ValueError("Timer Date requires exactly 1 parameter: date in DD/MM format")
        if not DATE_RE.match(data[0]):
            raise ValueError("Invalid date format. Expected DD/MM (01/01 to 31/12)")
        self._workflow(workflow_id)
        log.info("Timer Date configured  workflow=%d on=%s", workflow_id, data[0])
        self._audit(f"Timer Date configured for workflow {workflow_id} ({data[0]})",
                    workflowId=workflow_id, date=data[0])


class TimerFutureDateAction(_TimerAction):
    action_id = ActionsId.timer_future_date
    label = "Timer Future Date"

    async def create(self, workflow_id: int, data: list[str]) -> None:
        if len(data) < 1 or len(data) > 2:
            raise ValueError(
                "Timer Future Date requires 1 or 2 parameters: days ahead and optional creation date"
            )
        try:
            days_ahead = int(data[0])
        except ValueError:
            days_ahead = 0
        if not 1 <= days_ahead <= MAX_DAYS_AHEAD:
            raise ValueError(f"Days ahead must be a number between 1 and {MAX_DAYS_AHEAD}")

        self._workflow(workflow_id)
        if len(data) == 2:
            try:
                created_at = _parse_iso(data[1])
            except ValueError:
                raise ValueError("Invalid creation date format. Expected ISO date string") from None
        else:
            # Anchor the schedule: the worker counts days from this instant.
            created_at = datetime.now(timezone.utc)
            self._store.update_action_data(workflow_id, [data[0], created_at.isoformat()])

        target = created_at.date() + timedelta(days=days_ahead)
        log.info("Timer Future Date configured  workflow=%d target=%s (%s)",
                 workflow_id, target.isoformat(), target.strftime("%A"))
        self._audit(f"Timer Future Date configured for workflow {workflow_id} ({target.isoformat()})",
                    workflowId=workflow_id, target=target.isoformat())


def register(registry: "DispatchRegistry", store: "Store") -> None:
    registry.register_action(TimerDailyAction(store))
    registry.register_action(TimerDateAction(store))
    registry.register_action(TimerFutureDateAction(store))
