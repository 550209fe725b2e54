"""
Slack New Message action.

Slack Web API methods answer 200 with {"ok": false, "error": ...} on
failure, so every call checks the `ok` flag as well as the HTTP status.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import httpx

from ..core.catalog import ActionsId, ServicesId
from ..core.errors import ProviderError
from ..core.models import PolledItem
from .base import PollSource, ProviderActionHandler

if TYPE_CHECKING:
    from ..core.models import Workflow
    from ..core.registry import DispatchRegistry
    from ..core.store import Store

log = logging.getLogger("area.slack")

SLACK_API = "https://slack.com/api"
CHANNEL_RE = re.compile(r"^[CG][A-Z0-9]{8,}$")


async def _call(client: httpx.AsyncClient, token: str, method: str, payload: dict[str, Any]) -> dict[str, Any]:
    res = await client.post(
        f"{SLACK_API}/{method}",
        headers={"Authorization": f"Bearer {token}"},
        json=payload,
    )
    if not res.is_success:
        raise ProviderError("Slack", res.status_code, f"Slack API HTTP error: {res.status_code}")
    return res.json()


class SlackNewMessageAction(ProviderActionHandler):
    action_id = ActionsId.slack_new_message
    service_id = ServicesId.slack
    context = "Slack Webhook"

    def __init__(self, store: "Store", client: httpx.AsyncClient) -> None:
        super().__init__(store)
        self._client = client

    async def create(self, workflow_id: int, data: list[str]) -> None:
        workflow = self._workflow(workflow_id)
        connection = self._connection(workflow, "Slack")

        channel_id = (data[0] if data else "").strip()
        if not channel_id:
            raise ValueError("Slack channel ID is required")
        if not CHANNEL_RE.match(channel_id):
            raise ValueError(
                "Invalid Slack channel ID format. Should start with C or G followed by alphanumeric characters"
            )

        try:
            body = await _call(self._client, connection.token, "conversations.info", {"channel": channel_id})
        except (httpx.HTTPError, ProviderError) as e:
            log.warning("Channel probe failed  channel=%s error=%s", channel_id, e)
        else:
            error = body.get("error")
            if error == "channel_not_found":
                raise ValueError(f"Slack channel {channel_id} does not exist")
            if error == "not_in_channel":
                raise ValueError(
                    f"Bot is not a member of channel {channel_id}. Please invite the bot to this channel first."
                )
            if not body.get("ok"):
                log.warning("Channel probe returned error=%s  channel=%s", error, channel_id)

        log.info("Slack New Message configured  workflow=%d channel=%s", workflow_id, channel_id)
        self._audit(f"Slack New Message action configured for workflow {workflow_id} (channel: {channel_id})",
                    workflowId=workflow_id, userId=workflow.user_id, channelId=channel_id)

    async def delete(self, workflow_id: int, data: list[str]) -> None:
        self._audit(f"Slack New Message action removed for workflow {workflow_id}",
                    workflowId=workflow_id, channelId=data[0] if data else None)


class SlackChannelHistory(PollSource):
    name = "slack"
    service_id = ServicesId.slack
    action_id = ActionsId.slack_new_message
    grace = timedelta(minutes=2)

    async def _user_info(self, token: str, user_id: str) -> tuple[str, str]:
        """(handle, real name) for a Slack user; falls back to the raw id."""
        try:
            body = await _call(self._client, token, "users.info", {"user": user_id})
        except (httpx.HTTPError, ProviderError) as e:
            log.warning("users.info failed  user=%s error=%s", user_id, e)
            return user_id, "Unknown User"
        if not body.get("ok"):
            return user_id, "Unknown User"
        user = body.get("user") or {}
        name = user.get("name") or user_id
        return name, user.get("real_name") or name

    async def fetch_latest(self, token: str, workflow: "Workflow") -> PolledItem | None:
        if not workflow.action_data or not workflow.action_data[0]:
            raise ValueError(f"Workflow {workflow.id} has no channel ID configured")
        channel_id = workflow.action_data[0].strip()

        body = await _call(self._client, token, "conversations.history", {"channel": channel_id, "limit": 1})
        if not body.get("ok"):
            error = body.get("error")
            if error == "not_in_channel":
                raise ProviderError("Slack", 200, "Bot is not a member of this channel")
            if error == "channel_not_found":
                raise ProviderError("Slack", 200, "Channel not found")
            raise ProviderError("Slack", 200, f"Slack API error: {error}")

        # Bot posts (including our own reactions) and system messages are not events.
        messages = [
            m for m in body.get("messages") or []
            if m.get("type") == "message" and not m.get("bot_id") and m.get("user")
        ]
        if not messages:
            return None
        message = messages[0]
        ts = message["ts"]
        handle, real_name = await self._user_info(token, message["user"])
        text = message.get("text", "")
        return PolledItem(
            id=ts,
            created_at=datetime.fromtimestamp(float(ts), tz=timezone.utc),
            details=[
                f"Message: {text}",
                f"User: {real_name} (@{handle})",
                f"Channel: {channel_id}",
                f"Timestamp: {ts}",
            ],
            metadata={
                "channelId": channel_id,
                "messageTs": ts,
                "messageText": text[:100],
                "messageUser": handle,
            },
        )


def register(registry: "DispatchRegistry", store: "Store", client: httpx.AsyncClient) -> None:
    registry.register_action(SlackNewMessageAction(store, client))
