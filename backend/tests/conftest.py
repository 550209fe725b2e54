"""
Shared pytest fixtures for Area tests.
"""

from datetime import datetime, timezone

import httpx
import pytest


@pytest.fixture
def tmp_config(tmp_path):
    """A Config instance using tmp_path as base_dir."""
    from area.config import Config
    return Config(base_dir=tmp_path)


@pytest.fixture
def memory_store():
    from area.core.store import MemoryStore
    return MemoryStore()


class RecordingReaction:
    """ReactionHandler stand-in that remembers every call."""

    def __init__(self, reaction_id: int = 1, fail: Exception | None = None) -> None:
        self.reaction_id = reaction_id
        self.fail = fail
        self.calls: list[tuple[int, list[str]]] = []

    async def execute(self, user_id: int, data: list[str]) -> None:
        self.calls.append((user_id, list(data)))
        if self.fail is not None:
            raise self.fail


class RecordingAction:
    """ActionHandler stand-in; optionally fails on create/delete."""

    def __init__(self, action_id: int, fail_create: Exception | None = None,
                 fail_delete: Exception | None = None) -> None:
        self.action_id = action_id
        self.fail_create = fail_create
        self.fail_delete = fail_delete
        self.created: list[int] = []
        self.deleted: list[int] = []

    async def create(self, workflow_id: int, data: list[str]) -> None:
        self.created.append(workflow_id)
        if self.fail_create is not None:
            raise self.fail_create

    async def delete(self, workflow_id: int, data: list[str]) -> None:
        self.deleted.append(workflow_id)
        if self.fail_delete is not None:
            raise self.fail_delete


@pytest.fixture
def recording_reaction():
    return RecordingReaction()


@pytest.fixture
def registry(recording_reaction):
    """Registry holding only the recording reaction (id 1)."""
    from area.core.registry import DispatchRegistry
    registry = DispatchRegistry()
    registry.register_reaction(recording_reaction)
    return registry


@pytest.fixture
def dispatcher(registry, memory_store):
    from area.service.triggers import TriggerDispatcher
    return TriggerDispatcher(registry, memory_store)


def mock_client(handler) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by `handler(request) -> Response`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_workflow(store, user_id=1, action_id=1, action_data=None, reaction_id=1, reaction_data=None,
                  name="test workflow"):
    return store.create_workflow(
        user_id=user_id,
        name=name,
        action_id=action_id,
        action_data=action_data if action_data is not None else [],
        reaction_id=reaction_id,
        reaction_data=reaction_data if reaction_data is not None else [],
    )
