"""
Static service catalog.

Ids are stable: workflows persist them, and the dispatch registry is keyed
by them. Never renumber.
"""

from __future__ import annotations

from enum import IntEnum

from .models import Action, Reaction, Service


class ServicesId(IntEnum):
    github = 1
    discord = 2
    reddit = 3
    slack = 4
    spotify = 5
    timer = 6


class ActionsId(IntEnum):
    github_push = 1
    timer_daily = 2
    timer_date = 3
    timer_future_date = 4
    spotify_track_saved = 5
    reddit_new_post = 6
    slack_new_message = 7


class ReactionsId(IntEnum):
    discord_message = 1
    discord_dm = 2
    discord_create_channel = 3
    discord_add_role = 4
    discord_delete_message = 5
    discord_edit_message = 6
    discord_add_reaction = 7
    discord_kick_member = 8
    discord_ban_member = 9
    discord_create_role = 10


SERVICES: list[Service] = [Service(id=s.value, name=s.name) for s in ServicesId]

ACTIONS: list[Action] = [
    Action(
        id=ActionsId.github_push, service_id=ServicesId.github,
        name="GitHub Push",
        description="Triggered when code is pushed to a repository",
        data=["repositoryOwner", "repositoryName"],
    ),
    Action(
        id=ActionsId.timer_daily, service_id=ServicesId.timer,
        name="Timer Daily",
        description="Triggers every day at a specific time (HH:MM format)",
        data=["time"],
    ),
    Action(
        id=ActionsId.timer_date, service_id=ServicesId.timer,
        name="Timer Annual Date",
        description="Triggers every year on a specific date (DD/MM format)",
        data=["date"],
    ),
    Action(
        id=ActionsId.timer_future_date, service_id=ServicesId.timer,
        name="Timer Future Date",
        description="Triggers once after X days",
        data=["daysAhead"],
    ),
    Action(
        id=ActionsId.spotify_track_saved, service_id=ServicesId.spotify,
        name="Spotify Track Saved",
        description="Triggers when you save/like a new track on Spotify",
        data=[],
    ),
    Action(
        id=ActionsId.reddit_new_post, service_id=ServicesId.reddit,
        name="Reddit New Post",
        description="Triggers when a new post is created in a specific subreddit",
        data=["subreddit"],
    ),
    Action(
        id=ActionsId.slack_new_message, service_id=ServicesId.slack,
        name="Slack New Message",
        description="Triggers when a new message is posted in a Slack channel",
        data=["channelId"],
    ),
]

REACTIONS: list[Reaction] = [
    Reaction(
        id=ReactionsId.discord_message, service_id=ServicesId.discord,
        name="Send Discord Message",
        description="Send a message to a Discord channel",
        data=["channelId", "message"],
    ),
    Reaction(
        id=ReactionsId.discord_dm, service_id=ServicesId.discord,
        name="Send Discord DM",
        description="Send a direct message to a Discord user",
        data=["discordUserId", "message"],
    ),
    Reaction(
        id=ReactionsId.discord_create_channel, service_id=ServicesId.discord,
        name="Create Discord Channel",
        description="Create a new channel in a Discord server",
        data=["guildId", "channelName", "channelType"],
    ),
    Reaction(
        id=ReactionsId.discord_add_role, service_id=ServicesId.discord,
        name="Add Discord Role",
        description="Add a role to a Discord member",
        data=["guildId", "discordUserId", "roleId"],
    ),
    Reaction(
        id=ReactionsId.discord_delete_message, service_id=ServicesId.discord,
        name="Delete Discord Message",
        description="Delete a message from a Discord channel",
        data=["channelId", "messageId"],
    ),
    Reaction(
        id=ReactionsId.discord_edit_message, service_id=ServicesId.discord,
        name="Edit Discord Message",
        description="Edit an existing Discord message",
        data=["channelId", "messageId", "newContent"],
    ),
    Reaction(
        id=ReactionsId.discord_add_reaction, service_id=ServicesId.discord,
        name="Add Discord Reaction",
        description="Add an emoji reaction to a Discord message",
        data=["channelId", "messageId", "emoji"],
    ),
    Reaction(
        id=ReactionsId.discord_kick_member, service_id=ServicesId.discord,
        name="Kick Discord Member",
        description="Kick a member from a Discord server",
        data=["guildId", "discordUserId", "reason"],
    ),
    Reaction(
        id=ReactionsId.discord_ban_member, service_id=ServicesId.discord,
        name="Ban Discord Member",
        description="Ban a member from a Discord server",
        data=["guildId", "discordUserId", "reason", "deleteMessageDays"],
    ),
    Reaction(
        id=ReactionsId.discord_create_role, service_id=ServicesId.discord,
        name="Create Discord Role",
        description="Create a new role in a Discord server",
        data=["guildId", "roleName", "colorHex", "permissions"],
    ),
]

_ACTIONS_BY_ID = {a.id: a for a in ACTIONS}
_REACTIONS_BY_ID = {r.id: r for r in REACTIONS}
_SERVICES_BY_NAME = {s.name: s for s in SERVICES}


def get_action(action_id: int) -> Action | None:
    return _ACTIONS_BY_ID.get(action_id)


def get_reaction(reaction_id: int) -> Reaction | None:
    return _REACTIONS_BY_ID.get(reaction_id)


def get_service_by_name(name: str) -> Service | None:
    return _SERVICES_BY_NAME.get(name.strip().lower())


def get_service(service_id: int) -> Service | None:
    for service in SERVICES:
        if service.id == service_id:
            return service
    return None


def service_view(service: Service) -> dict:
    """Catalog entry with its actions and reactions, as served by /api/services."""
    return {
        "id": service.id,
        "name": service.name,
        "actions": [
            a.model_dump(include={"id", "name", "description", "data"})
            for a in ACTIONS if a.service_id == service.id
        ],
        "reactions": [
            r.model_dump(include={"id", "name", "description", "data"})
            for r in REACTIONS if r.service_id == service.id
        ],
    }
