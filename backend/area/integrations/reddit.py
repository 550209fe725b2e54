"""
Reddit New Post action.

create() validates the subreddit name and that the owner has linked
Reddit, then probes /about so obviously wrong subreddits are rejected up
front. The probe is best effort: anything other than a definite 404/403
is logged and the workflow is accepted; the worker will surface it.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import httpx

from ..core.catalog import ActionsId, ServicesId
from ..core.errors import ProviderError
from ..core.models import PolledItem
from .base import PollSource, ProviderActionHandler

if TYPE_CHECKING:
    from ..core.models import Workflow
    from ..core.registry import DispatchRegistry
    from ..core.store import Store

log = logging.getLogger("area.reddit")

REDDIT_API = "https://oauth.reddit.com"
SUBREDDIT_RE = re.compile(r"^[a-z0-9_]+$")


def normalize_subreddit(value: str) -> str:
    subreddit = (value or "").strip().lower()
    if not subreddit:
        raise ValueError("Subreddit name is required")
    if not SUBREDDIT_RE.match(subreddit):
        raise ValueError("Invalid subreddit name. Use only letters, numbers and underscores (no r/ prefix)")
    return subreddit


class RedditNewPostAction(ProviderActionHandler):
    action_id = ActionsId.reddit_new_post
    service_id = ServicesId.reddit
    context = "Reddit Webhook"

    def __init__(self, store: "Store", client: httpx.AsyncClient, user_agent: str) -> None:
        super().__init__(store)
        self._client = client
        self._user_agent = user_agent

    async def create(self, workflow_id: int, data: list[str]) -> None:
        workflow = self._workflow(workflow_id)
        connection = self._connection(workflow, "Reddit")
        subreddit = normalize_subreddit(data[0] if data else "")

        try:
            res = await self._client.get(
                f"{REDDIT_API}/r/{subreddit}/about",
                headers={
                    "Authorization": f"Bearer {connection.token}",
                    "User-Agent": self._user_agent,
                },
            )
        except httpx.HTTPError as e:
            log.warning("Subreddit probe failed  subreddit=%s error=%s", subreddit, e)
        else:
            if res.status_code == 404:
                raise ValueError(f"Subreddit r/{subreddit} does not exist")
            if res.status_code == 403:
                raise ValueError(f"Subreddit r/{subreddit} is private or banned")
            if not res.is_success:
                log.warning("Subreddit probe returned %d  subreddit=%s", res.status_code, subreddit)

        log.info("Reddit New Post configured  workflow=%d subreddit=r/%s", workflow_id, subreddit)
        self._audit(f"Reddit New Post action configured for workflow {workflow_id} (r/{subreddit})",
                    workflowId=workflow_id, userId=workflow.user_id, subreddit=subreddit)

    async def delete(self, workflow_id: int, data: list[str]) -> None:
        self._audit(f"Reddit New Post action removed for workflow {workflow_id}",
                    workflowId=workflow_id, subreddit=data[0] if data else None)


class RedditNewPosts(PollSource):
    name = "reddit"
    service_id = ServicesId.reddit
    action_id = ActionsId.reddit_new_post
    grace = timedelta(minutes=5)

    def __init__(self, client: httpx.AsyncClient, user_agent: str) -> None:
        super().__init__(client)
        self._user_agent = user_agent

    async def fetch_latest(self, token: str, workflow: "Workflow") -> PolledItem | None:
        if not workflow.action_data or not workflow.action_data[0]:
            raise ValueError(f"Workflow {workflow.id} has no subreddit configured")
        subreddit = workflow.action_data[0].strip().lower()

        res = await self._client.get(
            f"{REDDIT_API}/r/{subreddit}/new",
            params={"limit": 1},
            headers={
                "Authorization": f"Bearer {token}",
                "User-Agent": self._user_agent,
            },
        )
        if res.status_code == 401:
            raise ProviderError("Reddit", 401, "Reddit token expired or invalid")
        if res.status_code == 404:
            raise ProviderError("Reddit", 404, f"Subreddit r/{subreddit} not found")
        if res.status_code == 403:
            raise ProviderError("Reddit", 403, f"Subreddit r/{subreddit} is private or banned")
        if not res.is_success:
            raise ProviderError("Reddit", res.status_code, res.text)

        children = (res.json().get("data") or {}).get("children") or []
        if not children:
            return None
        post = children[0]["data"]
        url = f"https://reddit.com{post['permalink']}"
        return PolledItem(
            id=post["id"],
            created_at=datetime.fromtimestamp(float(post["created_utc"]), tz=timezone.utc),
            details=[
                f"Title: {post['title']}",
                f"Author: u/{post['author']}",
                f"Subreddit: r/{post['subreddit']}",
                f"URL: {url}",
                f"Score: {post.get('score', 0)}",
                f"Comments: {post.get('num_comments', 0)}",
            ],
            metadata={
                "subreddit": subreddit,
                "postId": post["id"],
                "postTitle": post["title"],
                "postAuthor": post["author"],
                "postUrl": url,
            },
        )


def register(registry: "DispatchRegistry", store: "Store", client: httpx.AsyncClient, user_agent: str) -> None:
    registry.register_action(RedditNewPostAction(store, client, user_agent))
