"""Tests for timer predicates and timer action handlers."""

from datetime import datetime, timezone

import pytest

from area.core.catalog import ActionsId
from area.integrations.timer import (
    TimerDailyAction, TimerDateAction, TimerFutureDateAction,
    should_trigger, should_trigger_daily, should_trigger_date, should_trigger_future_date,
)

from conftest import make_workflow, utc


# ── Predicates ────────────────────────────────────────────────────────────────


def test_daily_matches_exact_minute():
    assert should_trigger_daily(["09:30"], utc(2025, 3, 1, 9, 30))
    assert not should_trigger_daily(["09:30"], utc(2025, 3, 1, 9, 31))
    assert not should_trigger_daily(["09:30"], utc(2025, 3, 1, 21, 30))


@pytest.mark.parametrize("pattern", ["9:30", "09:3", "24:00"])
def test_daily_never_matches_malformed(pattern):
    for hour in range(24):
        assert not should_trigger_daily([pattern], utc(2025, 3, 1, hour, 30))
        assert not should_trigger_daily([pattern], utc(2025, 3, 1, hour, 3))


def test_daily_without_params():
    assert not should_trigger_daily([], utc(2025, 3, 1, 9, 30))


def test_annual_date_only_at_midnight():
    assert should_trigger_date(["25/12"], utc(2025, 12, 25, 0, 0))
    assert not should_trigger_date(["25/12"], utc(2025, 12, 25, 0, 1))
    assert not should_trigger_date(["25/12"], utc(2025, 12, 24, 0, 0))
    assert not should_trigger_date([], utc(2025, 12, 25, 0, 0))


def test_future_date_fires_on_target_day_only():
    data = ["3", "2025-01-01T12:00:00Z"]
    assert should_trigger_future_date(data, utc(2025, 1, 4, 0, 0))
    assert should_trigger_future_date(data, utc(2025, 1, 4, 23, 59))
    assert not should_trigger_future_date(data, utc(2025, 1, 3, 23, 59))
    assert not should_trigger_future_date(data, utc(2025, 1, 5, 0, 0))


@pytest.mark.parametrize("data", [["3"], ["x", "2025-01-01T12:00:00Z"], ["3", "not a date"]])
def test_future_date_malformed_is_false(data):
    assert not should_trigger_future_date(data, utc(2025, 1, 4, 12, 0))


def test_should_trigger_routes_by_action(memory_store):
    wf = make_workflow(memory_store, action_id=ActionsId.timer_daily, action_data=["09:30"])
    assert should_trigger(wf, utc(2025, 3, 1, 9, 30))
    other = make_workflow(memory_store, action_id=ActionsId.github_push, action_data=["09:30"])
    assert not should_trigger(other, utc(2025, 3, 1, 9, 30))


# ── Handlers ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_daily_handler_validates(memory_store):
    wf = make_workflow(memory_store, action_id=ActionsId.timer_daily)
    action = TimerDailyAction(memory_store)
    await action.create(wf.id, ["23:59"])
    for bad in (["24:00"], ["9:30"], [], ["09:30", "10:30"]):
        with pytest.raises(ValueError):
            await action.create(wf.id, bad)
    assert memory_store.list_logs(context="Timer Webhook")


@pytest.mark.asyncio
async def test_date_handler_validates(memory_store):
    wf = make_workflow(memory_store, action_id=ActionsId.timer_date)
    action = TimerDateAction(memory_store)
    await action.create(wf.id, ["31/12"])
    for bad in (["32/01"], ["01/13"], ["1/1"]):
        with pytest.raises(ValueError):
            await action.create(wf.id, bad)


@pytest.mark.asyncio
async def test_future_date_handler_anchors_schedule(memory_store):
    wf = make_workflow(memory_store, action_id=ActionsId.timer_future_date, action_data=["3"])
    before = datetime.now(timezone.utc)
    await TimerFutureDateAction(memory_store).create(wf.id, ["3"])

    data = memory_store.get_workflow(wf.id).action_data
    assert data[0] == "3"
    anchored = datetime.fromisoformat(data[1])
    assert anchored >= before


@pytest.mark.asyncio
async def test_future_date_handler_keeps_given_anchor(memory_store):
    wf = make_workflow(memory_store, action_id=ActionsId.timer_future_date,
                       action_data=["3", "2025-01-01T12:00:00Z"])
    await TimerFutureDateAction(memory_store).create(wf.id, ["3", "2025-01-01T12:00:00Z"])
    assert memory_store.get_workflow(wf.id).action_data == ["3", "2025-01-01T12:00:00Z"]


@pytest.mark.asyncio
@pytest.mark.parametrize("data", [["0"], ["366"], ["abc"], [], ["3", "nope"], ["1", "2", "3"]])
async def test_future_date_handler_rejects(memory_store, data):
    wf = make_workflow(memory_store, action_id=ActionsId.timer_future_date)
    with pytest.raises(ValueError):
        await TimerFutureDateAction(memory_store).create(wf.id, data)


@pytest.mark.asyncio
async def test_timer_delete_only_audits(memory_store):
    wf = make_workflow(memory_store, action_id=ActionsId.timer_daily, action_data=["09:30"])
    await TimerDailyAction(memory_store).delete(wf.id, ["09:30"])
    assert memory_store.get_workflow(wf.id) is not None
    assert "removed" in memory_store.list_logs()[0].message
