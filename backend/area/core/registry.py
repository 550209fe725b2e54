"""
Handler interfaces and the dispatch registry.

Every integration implements ActionHandler (provision / tear down a trigger)
and/or ReactionHandler (perform one side effect). The registry maps the
stable catalog ids to handler instances; it is built once at startup by
area.integrations.build_registry() and injected where it is needed.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

log = logging.getLogger("area.registry")


class ActionHandler(ABC):
    action_id: ClassVar[int]

    @abstractmethod
    async def create(self, workflow_id: int, data: list[str]) -> None:
        """Provision the trigger for a freshly inserted workflow. Raise to reject it."""
        ...

    @abstractmethod
    async def delete(self, workflow_id: int, data: list[str]) -> None:
        """Release whatever create() provisioned. Called before the row is removed."""
        ...


class ReactionHandler(ABC):
    reaction_id: ClassVar[int]

    @abstractmethod
    async def execute(self, user_id: int, data: list[str]) -> None:
        """Perform the side effect. Raise on provider failure."""
        ...


class DispatchRegistry:
    """Id -> handler lookup for actions and reactions."""

    def __init__(self) -> None:
        self._actions: dict[int, ActionHandler] = {}
        self._reactions: dict[int, ReactionHandler] = {}

    def register_action(self, handler: ActionHandler) -> None:
        action_id = int(handler.action_id)
        if action_id in self._actions:
            raise ValueError(f"Action handler already registered for id {action_id}")
        self._actions[action_id] = handler
        log.debug("Registered action  id=%d handler=%s", action_id, type(handler).__name__)

    def register_reaction(self, handler: ReactionHandler) -> None:
        reaction_id = int(handler.reaction_id)
        if reaction_id in self._reactions:
            raise ValueError(f"Reaction handler already registered for id {reaction_id}")
        self._reactions[reaction_id] = handler
        log.debug("Registered reaction  id=%d handler=%s", reaction_id, type(handler).__name__)

    def action(self, action_id: int) -> ActionHandler | None:
        return self._actions.get(action_id)

    def reaction(self, reaction_id: int) -> ReactionHandler | None:
        return self._reactions.get(reaction_id)

    @property
    def action_ids(self) -> list[int]:
        return sorted(self._actions)

    @property
    def reaction_ids(self) -> list[int]:
        return sorted(self._reactions)

    def __repr__(self) -> str:
        return f"DispatchRegistry(actions={self.action_ids}, reactions={self.reaction_ids})"
