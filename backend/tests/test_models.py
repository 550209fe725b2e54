"""Tests for core data models and the catalog."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from area.core.catalog import (
    ACTIONS, REACTIONS, SERVICES, ActionsId, ReactionsId, ServicesId,
    get_action, get_reaction, get_service_by_name, service_view,
)
from area.core.errors import MissingHandlerError, ProviderError, ProvisioningError
from area.core.models import PolledItem, Workflow, WorkflowCreate


def make_workflow(**kwargs) -> Workflow:
    now = datetime.now(timezone.utc)
    defaults = dict(
        id=1,
        user_id=7,
        name="Push to Discord",
        action_id=ActionsId.github_push,
        reaction_id=ReactionsId.discord_message,
        created_at=now,
        updated_at=now,
    )
    defaults.update(kwargs)
    return Workflow(**defaults)


def test_workflow_defaults():
    wf = make_workflow()
    assert wf.action_data == []
    assert wf.reaction_data == []
    assert wf.cursor is None
    assert wf.description is None


def test_workflow_json_roundtrip():
    wf = make_workflow(action_data=["octo", "repo"], cursor="abc")
    again = Workflow.model_validate_json(wf.model_dump_json())
    assert again == wf


def test_workflow_create_requires_name():
    with pytest.raises(ValidationError):
        WorkflowCreate(name="", action={"id": 1, "data": []}, reaction={"id": 1, "data": []})


def test_workflow_create_parses_step_refs():
    body = WorkflowCreate.model_validate({
        "name": "wf",
        "action": {"id": 2, "data": ["09:30"]},
        "reaction": {"id": 1, "data": ["123", "hi"]},
    })
    assert body.action.id == 2
    assert body.reaction.data == ["123", "hi"]


def test_polled_item_defaults():
    item = PolledItem(id="x", created_at=datetime.now(timezone.utc))
    assert item.details == []
    assert item.metadata == {}


def test_catalog_ids_are_stable():
    assert ServicesId.github == 1
    assert ServicesId.timer == 6
    assert ActionsId.slack_new_message == 7
    assert ReactionsId.discord_create_role == 10
    assert len(ACTIONS) == 7
    assert len(REACTIONS) == 10
    assert len(SERVICES) == 6


def test_catalog_lookups():
    assert get_action(ActionsId.reddit_new_post).service_id == ServicesId.reddit
    assert get_reaction(ReactionsId.discord_dm).service_id == ServicesId.discord
    assert get_action(999) is None
    assert get_service_by_name(" GitHub ").id == ServicesId.github
    assert get_service_by_name("myspace") is None


def test_service_view_groups_actions_and_reactions():
    view = service_view(get_service_by_name("discord"))
    assert view["actions"] == []
    assert len(view["reactions"]) == 10
    timer = service_view(get_service_by_name("timer"))
    assert {a["id"] for a in timer["actions"]} == {2, 3, 4}


def test_error_messages():
    err = ProviderError("GitHub", 422, '{"message":"Validation Failed"}')
    assert err.status == 422
    assert "422" in str(err)

    wrapped = ProvisioningError(1, ValueError("boom"))
    assert str(wrapped) == "Failed to create webhook for action 1: boom"
    assert isinstance(wrapped.cause, ValueError)

    assert isinstance(MissingHandlerError("action", 42), LookupError)
