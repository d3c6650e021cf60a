"""Content item and routing context models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ContentType = Literal["movie", "show"]
InstanceType = Literal["radarr", "sonarr"]


def instance_type_for(content_type: ContentType) -> InstanceType:
    """Movies go to Radarr instances, shows to Sonarr instances."""

    return "radarr" if content_type == "movie" else "sonarr"


class ContentItem(BaseModel):
    """Immutable snapshot of a watchlist item being routed."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Display title")
    type: ContentType = Field(description="Content type")
    guids: list[str] = Field(default_factory=list, description="External identifiers, e.g. 'tmdb:603'")

    genres: list[str] = Field(default_factory=list, description="Genre names")
    year: int | None = Field(default=None, description="Release year")
    original_language: str | None = Field(default=None, description="Original language name or code")
    certification: str | None = Field(default=None, description="Content rating, e.g. 'PG-13'")
    seasons: list[int] = Field(default_factory=list, description="Season numbers (shows only)")

    @property
    def content_key(self) -> str:
        """First GUID, or type/title/year for items without external ids."""

        if self.guids:
            return self.guids[0]
        year = "" if self.year is None else str(self.year)
        return f"{self.type}/{self.title.strip().casefold()}/{year}"


class RoutingContext(BaseModel):
    """Ambient facts passed alongside a ContentItem to every evaluator."""

    model_config = ConfigDict(frozen=True)

    content_type: ContentType
    user_id: int | None = None
    user_name: str | None = None
    item_key: str | None = Field(default=None, description="Watchlist key of the item for this user")

    syncing: bool = False
    sync_target_instance_id: int | None = None
    forced_instance_id: int | None = None
    require_approval: bool = Field(default=False, description="Caller-supplied manual approval flag")
