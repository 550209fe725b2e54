"""
Spotify Track Saved action.

Spotify cannot push events to us, so create() only checks that the owner
has linked Spotify; the polling worker watches the most recently saved
track through SpotifySavedTracks.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from ..core.catalog import ActionsId, ServicesId
from ..core.errors import ProviderError
from ..core.models import PolledItem
from .base import PollSource, ProviderActionHandler, raise_for_provider

if TYPE_CHECKING:
    from ..core.models import Workflow
    from ..core.registry import DispatchRegistry
    from ..core.store import Store

log = logging.getLogger("area.spotify")

SPOTIFY_API = "https://api.spotify.com/v1"


class SpotifyTrackSavedAction(ProviderActionHandler):
    action_id = ActionsId.spotify_track_saved
    service_id = ServicesId.spotify
    context = "Spotify Webhook"

    async def create(self, workflow_id: int, data: list[str]) -> None:
        workflow = self._workflow(workflow_id)
        self._connection(workflow, "Spotify")
        log.info("Spotify Track Saved configured  workflow=%d user=%d", workflow_id, workflow.user_id)
        self._audit(f"Spotify Track Saved action configured for workflow {workflow_id}",
                    workflowId=workflow_id, userId=workflow.user_id)

    async def delete(self, workflow_id: int, data: list[str]) -> None:
        self._audit(f"Spotify Track Saved action removed for workflow {workflow_id}",
                    workflowId=workflow_id)


class SpotifySavedTracks(PollSource):
    name = "spotify"
    service_id = ServicesId.spotify
    action_id = ActionsId.spotify_track_saved
    grace = timedelta(minutes=5)

    async def fetch_latest(self, token: str, workflow: "Workflow") -> PolledItem | None:
        res = await self._client.get(
            f"{SPOTIFY_API}/me/tracks",
            params={"limit": 1},
            headers={"Authorization": f"Bearer {token}"},
        )
        if res.status_code == 401:
            raise ProviderError("Spotify", 401, "Spotify token expired or invalid")
        raise_for_provider("Spotify", res)

        items = res.json().get("items") or []
        if not items:
            return None
        item = items[0]
        track = item["track"]
        artists = ", ".join(a["name"] for a in track.get("artists", []))
        album = (track.get("album") or {}).get("name", "")
        return PolledItem(
            id=track["id"],
            created_at=datetime.fromisoformat(item["added_at"].replace("Z", "+00:00")),
            details=[
                f"Track: {track['name']}",
                f"Artist: {artists}",
                f"Album: {album}",
            ],
            metadata={
                "trackId": track["id"],
                "trackName": track["name"],
                "artistName": artists,
                "albumName": album,
            },
        )


def register(registry: "DispatchRegistry", store: "Store") -> None:
    registry.register_action(SpotifyTrackSavedAction(store))
