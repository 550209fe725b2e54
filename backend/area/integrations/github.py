"""
GitHub Push action.

The only action backed by a real external webhook: create() registers a
repository hook pointing at our /webhook/github/{workflow_id} route,
delete() removes it again. GitHub-side state drifts independently of ours
(hooks removed by hand, repos deleted, tokens revoked), so teardown treats
"already gone" and "no longer accessible" as success.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..core.catalog import ActionsId, ServicesId
from ..core.errors import ProviderError
from .base import ProviderActionHandler, raise_for_provider

if TYPE_CHECKING:
    import httpx

    from ..config import Config
    from ..core.registry import DispatchRegistry
    from ..core.store import Store

log = logging.getLogger("area.github")

GITHUB_API = "https://api.github.com"


def callback_url(workflow_url: str, workflow_id: int) -> str:
    return f"{workflow_url}/webhook/github/{workflow_id}"


class GitHubPushAction(ProviderActionHandler):
    action_id = ActionsId.github_push
    service_id = ServicesId.github
    context = "GitHub Webhook"

    def __init__(self, store: "Store", client: "httpx.AsyncClient", workflow_url: str) -> None:
        super().__init__(store)
        self._client = client
        self._workflow_url = workflow_url

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
        }

    def _resolve(self, workflow_id: int, data: list[str]) -> tuple[str, str, str]:
        if len(data) != 2:
            raise ValueError("GitHub Push requires exactly 2 parameters: repository owner and name")
        workflow = self._workflow(workflow_id)
        connection = self._connection(workflow, "GitHub")
        return data[0], data[1], connection.token

    async def create(self, workflow_id: int, data: list[str]) -> None:
        owner, repo, token = self._resolve(workflow_id, data)
        url = callback_url(self._workflow_url, workflow_id)
        log.info("Creating hook  workflow=%d repo=%s/%s", workflow_id, owner, repo)

        res = await self._client.post(
            f"{GITHUB_API}/repos/{owner}/{repo}/hooks",
            headers=self._headers(token),
            json={
                "name": "web",
                "active": True,
                "events": ["push"],
                "config": {
                    "url": url,
                    "content_type": "json",
                    "insecure_ssl": "0",
                },
            },
        )
        raise_for_provider("GitHub", res)
        hook: dict[str, Any] = res.json()
        self._audit(
            f"GitHub push hook created for workflow {workflow_id} ({owner}/{repo})",
            workflowId=workflow_id, hookId=hook.get("id"), callbackUrl=url,
        )

    async def delete(self, workflow_id: int, data: list[str]) -> None:
        if len(data) != 2:
            raise ValueError("GitHub Push requires exactly 2 parameters: repository owner and name")
        owner, repo = data
        workflow = self._workflow(workflow_id)
        connection = self._store.get_user_service(workflow.user_id, self.service_id)
        if connection is None or not connection.token:
            log.warning("No GitHub token left, skipping hook deletion  workflow=%d", workflow_id)
            return
        token = connection.token
        url = callback_url(self._workflow_url, workflow_id)
        hooks_url = f"{GITHUB_API}/repos/{owner}/{repo}/hooks"

        res = await self._client.get(hooks_url, headers=self._headers(token))
        if res.status_code in (403, 404):
            log.info("Repository gone or inaccessible (%d), skipping hook deletion  workflow=%d",
                     res.status_code, workflow_id)
            return
        raise_for_provider("GitHub", res)

        hook = next(
            (h for h in res.json() if (h.get("config") or {}).get("url") == url),
            None,
        )
        if hook is None:
            log.info("Hook not found, may have been deleted manually  workflow=%d", workflow_id)
            return

        res = await self._client.delete(f"{hooks_url}/{hook['id']}", headers=self._headers(token))
        if res.status_code == 404:
            log.info("Hook already deleted  workflow=%d hook=%s", workflow_id, hook["id"])
            return
        try:
            raise_for_provider("GitHub", res)
        except ProviderError:
            log.error("Hook deletion failed  workflow=%d hook=%s status=%d",
                      workflow_id, hook["id"], res.status_code)
            raise
        self._audit(
            f"GitHub push hook removed for workflow {workflow_id} ({owner}/{repo})",
            workflowId=workflow_id, hookId=hook["id"],
        )


def register(
    registry: "DispatchRegistry",
    store: "Store",
    client: "httpx.AsyncClient",
    config: "Config",
) -> None:
    registry.register_action(GitHubPushAction(store, client, config.workflow_url))
