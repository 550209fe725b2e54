"""
Discord reactions.

All ten reactions act as the application's bot (DISCORD_BOT_TOKEN), not as
the workflow owner. Parameters are positional; polling workers append
enrichment strings after the configured ones, which only matter where they
land in an optional slot.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar
from urllib.parse import quote

from ..core.catalog import ReactionsId
from ..core.registry import ReactionHandler
from .base import raise_for_provider

if TYPE_CHECKING:
    import httpx

    from ..core.registry import DispatchRegistry
    from ..core.store import Store

log = logging.getLogger("area.discord")

DISCORD_API = "https://discord.com/api/v10"
CONTEXT = "Discord Reaction"


def _int(value: str, default: int = 0, base: int = 10) -> int:
    try:
        return int(value, base)
    except (TypeError, ValueError):
        return default


class DiscordReaction(ReactionHandler):
    """One bot API call (or two, for DMs) followed by an audit row."""

    min_args: ClassVar[int] = 2
    usage: ClassVar[str]

    def __init__(self, store: "Store", client: "httpx.AsyncClient", bot_token: str) -> None:
        self._store = store
        self._client = client
        self._bot_token = bot_token

    async def _request(self, method: str, path: str, *,
                       json: dict[str, Any] | None = None,
                       headers: dict[str, str] | None = None) -> "httpx.Response":
        res = await self._client.request(
            method,
            f"{DISCORD_API}{path}",
            json=json,
            headers={"Authorization": f"Bot {self._bot_token}", **(headers or {})},
        )
        raise_for_provider("Discord", res)
        return res

    async def execute(self, user_id: int, data: list[str]) -> None:
        if len(data) < self.min_args:
            raise ValueError(f"data isn't valid - need {self.usage}")
        log.info("Executing %s  user=%d", type(self).__name__, user_id)
        message, metadata = await self._run(data)
        self._store.add_log("info", message, CONTEXT, metadata, user_id=user_id)

    @abstractmethod
    async def _run(self, data: list[str]) -> tuple[str, dict[str, Any]]:
        """Perform the call(s); return the audit message and metadata."""
        ...


class SendMessage(DiscordReaction):
    reaction_id = ReactionsId.discord_message
    usage = "channelId and message"

    async def _run(self, data):
        channel_id, message = data[0], data[1]
        await self._request("POST", f"/channels/{channel_id}/messages", json={"content": message})
        return f"Discord message sent to channel {channel_id}", {"channelId": channel_id, "message": message}


class SendDM(DiscordReaction):
    reaction_id = ReactionsId.discord_dm
    usage = "discordUserId and message"

    async def _run(self, data):
        discord_user_id, message = data[0], data[1]
        # A DM channel has to be opened before anything can be posted to it.
        res = await self._request("POST", "/users/@me/channels", json={"recipient_id": discord_user_id})
        dm_channel = res.json()
        await self._request("POST", f"/channels/{dm_channel['id']}/messages", json={"content": message})
        return f"Discord DM sent to user {discord_user_id}", {"discordUserId": discord_user_id, "message": message}


class CreateChannel(DiscordReaction):
    reaction_id = ReactionsId.discord_create_channel
    usage = "guildId and channelName"

    async def _run(self, data):
        guild_id, channel_name = data[0], data[1]
        channel_type = _int(data[2]) if len(data) > 2 else 0
        res = await self._request("POST", f"/guilds/{guild_id}/channels",
                                  json={"name": channel_name, "type": channel_type})
        return (f'Discord channel "{channel_name}" created in guild {guild_id}',
                {"guildId": guild_id, "channelName": channel_name, "channelId": res.json().get("id")})


class AddRole(DiscordReaction):
    reaction_id = ReactionsId.discord_add_role
    min_args = 3
    usage = "guildId, discordUserId and roleId"

    async def _run(self, data):
        guild_id, discord_user_id, role_id = data[0], data[1], data[2]
        await self._request("PUT", f"/guilds/{guild_id}/members/{discord_user_id}/roles/{role_id}")
        return (f"Discord role added to user in guild {guild_id}",
                {"guildId": guild_id, "discordUserId": discord_user_id, "roleId": role_id})


class DeleteMessage(DiscordReaction):
    reaction_id = ReactionsId.discord_delete_message
    usage = "channelId and messageId"

    async def _run(self, data):
        channel_id, message_id = data[0], data[1]
        await self._request("DELETE", f"/channels/{channel_id}/messages/{message_id}")
        return f"Discord message deleted in channel {channel_id}", {"channelId": channel_id, "messageId": message_id}


class EditMessage(DiscordReaction):
    reaction_id = ReactionsId.discord_edit_message
    min_args = 3
    usage = "channelId, messageId and newContent"

    async def _run(self, data):
        channel_id, message_id, content = data[0], data[1], data[2]
        await self._request("PATCH", f"/channels/{channel_id}/messages/{message_id}", json={"content": content})
        return (f"Discord message edited in channel {channel_id}",
                {"channelId": channel_id, "messageId": message_id, "newContent": content})


class AddReaction(DiscordReaction):
    reaction_id = ReactionsId.discord_add_reaction
    min_args = 3
    usage = "channelId, messageId and emoji"

    async def _run(self, data):
        channel_id, message_id, emoji = data[0], data[1], data[2]
        await self._request(
            "PUT", f"/channels/{channel_id}/messages/{message_id}/reactions/{quote(emoji, safe='')}/@me"
        )
        return (f"Discord reaction added to message in channel {channel_id}",
                {"channelId": channel_id, "messageId": message_id, "emoji": emoji})


class KickMember(DiscordReaction):
    reaction_id = ReactionsId.discord_kick_member
    usage = "guildId and discordUserId"

    async def _run(self, data):
        guild_id, discord_user_id = data[0], data[1]
        reason = data[2] if len(data) > 2 else "No reason provided"
        await self._request("DELETE", f"/guilds/{guild_id}/members/{discord_user_id}",
                            headers={"X-Audit-Log-Reason": quote(reason)})
        return (f"Discord member kicked from guild {guild_id}",
                {"guildId": guild_id, "discordUserId": discord_user_id, "reason": reason})


class BanMember(DiscordReaction):
    reaction_id = ReactionsId.discord_ban_member
    usage = "guildId and discordUserId"

    async def _run(self, data):
        guild_id, discord_user_id = data[0], data[1]
        reason = data[2] if len(data) > 2 else "No reason provided"
        delete_days = _int(data[3]) if len(data) > 3 else 0
        await self._request("PUT", f"/guilds/{guild_id}/bans/{discord_user_id}",
                            json={"delete_message_days": delete_days},
                            headers={"X-Audit-Log-Reason": quote(reason)})
        return (f"Discord member banned from guild {guild_id}",
                {"guildId": guild_id, "discordUserId": discord_user_id, "reason": reason})


class CreateRole(DiscordReaction):
    reaction_id = ReactionsId.discord_create_role
    usage = "guildId and roleName"

    async def _run(self, data):
        guild_id, role_name = data[0], data[1]
        color_hex = data[2] if len(data) > 2 else "0"
        permissions = data[3] if len(data) > 3 else "0"
        color = 0 if color_hex == "0" else _int(color_hex.lstrip("#"), base=16)
        res = await self._request("POST", f"/guilds/{guild_id}/roles", json={
            "name": role_name,
            "color": color,
            "permissions": permissions,
            "hoist": False,
            "mentionable": True,
        })
        return (f'Discord role "{role_name}" created in guild {guild_id}',
                {"guildId": guild_id, "roleName": role_name, "roleId": res.json().get("id")})


REACTIONS: list[type[DiscordReaction]] = [
    SendMessage, SendDM, CreateChannel, AddRole, DeleteMessage,
    EditMessage, AddReaction, KickMember, BanMember, CreateRole,
]


def register(registry: "DispatchRegistry", store: "Store", client: "httpx.AsyncClient", bot_token: str) -> None:
    if not bot_token:
        log.warning("DISCORD_BOT_TOKEN is not set, Discord reactions will fail")
    for cls in REACTIONS:
        registry.register_reaction(cls(store, client, bot_token))
