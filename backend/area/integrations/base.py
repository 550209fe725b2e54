"""
Shared pieces for provider integrations.

PollSource: what a cursor-based polling worker needs from a provider
(fetch the single most recent item for one workflow).
ProviderActionHandler: ActionHandler base with store access, token lookup
and audit helpers.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import TYPE_CHECKING, Any, ClassVar

from ..core.errors import ProviderError
from ..core.registry import ActionHandler

if TYPE_CHECKING:
    import httpx

    from ..core.models import PolledItem, UserService, Workflow
    from ..core.store import Store

log = logging.getLogger("area.integrations")


def raise_for_provider(provider: str, response: "httpx.Response") -> None:
    """Raise ProviderError carrying the provider's body on any non-2xx answer."""
    if response.is_success:
        return
    raise ProviderError(provider, response.status_code, response.text)


class PollSource(ABC):
    """Provider side of a cursor-based polling worker."""

    name: ClassVar[str]                # worker / log context name, e.g. "reddit"
    service_id: ClassVar[int]
    action_id: ClassVar[int]
    grace: ClassVar[timedelta]         # cold-start window

    def __init__(self, client: "httpx.AsyncClient") -> None:
        self._client = client

    @abstractmethod
    async def fetch_latest(self, token: str, workflow: "Workflow") -> "PolledItem | None":
        """Return the most recent item for this workflow, or None if there is none."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class ProviderActionHandler(ActionHandler):
    """ActionHandler with the lookups every provider-backed action repeats."""

    service_id: ClassVar[int]
    context: ClassVar[str]             # audit log context, e.g. "Reddit Webhook"

    def __init__(self, store: "Store") -> None:
        self._store = store

    def _workflow(self, workflow_id: int) -> "Workflow":
        workflow = self._store.get_workflow(workflow_id)
        if workflow is None:
            raise KeyError(f"Workflow {workflow_id} not found")
        return workflow

    def _connection(self, workflow: "Workflow", label: str) -> "UserService":
        connection = self._store.get_user_service(workflow.user_id, self.service_id)
        if connection is None:
            raise ValueError(f"User has not connected {label} account. Please connect {label} first.")
        if not connection.token:
            raise ValueError(f"{label} token not found. Please reconnect your {label} account.")
        return connection

    def _audit(self, message: str, **metadata: Any) -> None:
        workflow = self._store.get_workflow(metadata["workflowId"]) if "workflowId" in metadata else None
        self._store.add_log(
            "info",
            message,
            self.context,
            {**metadata, "actionId": int(self.action_id)},
            user_id=workflow.user_id if workflow else None,
        )
