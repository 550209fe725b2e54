"""
Provider integrations.

build_registry() wires every action and reaction handler into one
DispatchRegistry at startup; build_poll_sources() returns the provider
sides of the cursor-based polling workers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from ..config import Config
    from ..core.registry import DispatchRegistry
    from ..core.store import Store
    from .base import PollSource


def build_registry(config: "Config", store: "Store", client: "httpx.AsyncClient") -> "DispatchRegistry":
    """Return a registry holding every action and reaction handler."""
    from ..core.registry import DispatchRegistry
    from . import discord, github, reddit, slack, spotify, timer

    registry = DispatchRegistry()
    github.register(registry, store, client, config)
    timer.register(registry, store)
    spotify.register(registry, store)
    reddit.register(registry, store, client, config.reddit_user_agent)
    slack.register(registry, store, client)
    discord.register(registry, store, client, config.discord_bot_token)
    return registry


def build_poll_sources(config: "Config", client: "httpx.AsyncClient") -> "list[PollSource]":
    """Return the poll sources for Spotify, Reddit and Slack."""
    from .reddit import RedditNewPosts
    from .slack import SlackChannelHistory
    from .spotify import SpotifySavedTracks

    return [
        SpotifySavedTracks(client),
        RedditNewPosts(client, config.reddit_user_agent),
        SlackChannelHistory(client),
    ]
