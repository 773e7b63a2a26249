"""Follow / unfollow and watch-tracking operations on the user's library."""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..dates import utcnow
from ..models import FollowedShowRecord, Show, ShowStatus
from .catalog import CatalogClient
from .store import AlreadyFollowingError, SQLShowStore, ShowNotFoundError, StoreError

logger = logging.getLogger(__name__)


class SeasonNotFoundError(StoreError):
    def __init__(self, show_id: int, season_number: int):
        super().__init__(f"Show {show_id} has no season {season_number}")


class EpisodeNotFoundError(StoreError):
    def __init__(self, show_id: int, season_number: int, episode_number: int):
        super().__init__(
            f"Show {show_id} has no episode S{season_number:02d}E{episode_number:02d}"
        )


class NextStep(str, Enum):
    """What follows after a season is marked watched."""

    # Ended or cancelled, nothing more coming
    SHOW_COMPLETE = "show_complete"
    # The next season already exists in the catalog
    NEXT_SEASON_ADDED = "next_season_added"
    # Show continues but the catalog has no next season yet
    NEXT_SEASON_PLACEHOLDER = "next_season_placeholder"


@dataclass
class MarkWatchedResult:
    step: NextStep
    season_number: Optional[int] = None

    def to_dict(self) -> dict:
        return {"result": self.step.value, "season_number": self.season_number}


class LibraryService:
    """User-facing operations on followed shows."""

    def __init__(self, store: SQLShowStore, catalog: CatalogClient):
        self.store = store
        self.catalog = catalog

    async def follow(self, show_id: int) -> FollowedShowRecord:
        """Fetch a show from the catalog and start following it.

        Raises AlreadyFollowingError before any network call if followed.
        """
        if self.store.is_following(show_id):
            raise AlreadyFollowingError(show_id)
        show = await self.catalog.fetch_show_details(show_id)
        return self.store.follow(show)

    def unfollow(self, show_id: int) -> None:
        if not self.store.unfollow(show_id):
            raise ShowNotFoundError(show_id)

    def followed_shows(self) -> list[Show]:
        """Cached snapshots of every followed show that has one."""
        return [record.show for record in self.store.list_followed() if record.show is not None]

    def get_show(self, show_id: int) -> FollowedShowRecord:
        record = self.store.get_followed(show_id)
        if record is None or record.show is None:
            raise ShowNotFoundError(show_id)
        return record

    def mark_season_watched(
        self, show_id: int, season_number: int, watched_at: Optional[datetime] = None
    ) -> MarkWatchedResult:
        """Mark a season watched and report what comes next for the show."""
        watched_at = watched_at or utcnow()

        def mark(show: Show) -> Show:
            season = show.get_season(season_number)
            if season is None:
                raise SeasonNotFoundError(show_id, season_number)
            season.watched_date = watched_at
            return show

        record = self.store.update_snapshot(show_id, mark)
        logger.info(f"Marked '{record.show.name}' season {season_number} watched")

        return self._next_step(record.show, season_number)

    def mark_episode_watched(
        self,
        show_id: int,
        season_number: int,
        episode_number: int,
        watched: bool = True,
        watched_at: Optional[datetime] = None,
    ) -> FollowedShowRecord:
        """Mark or unmark a single episode as watched."""
        watched_date = (watched_at or utcnow()) if watched else None

        def mark(show: Show) -> Show:
            season = show.get_season(season_number)
            if season is None:
                raise SeasonNotFoundError(show_id, season_number)
            episode = season.get_episode(episode_number)
            if episode is None:
                raise EpisodeNotFoundError(show_id, season_number, episode_number)
            episode.watched_date = watched_date
            return show

        return self.store.update_snapshot(show_id, mark)

    def _next_step(self, show: Show, watched_season_number: int) -> MarkWatchedResult:
        if show.status in (ShowStatus.ENDED, ShowStatus.CANCELLED):
            return MarkWatchedResult(NextStep.SHOW_COMPLETE)

        next_number = watched_season_number + 1
        if show.get_season(next_number) is not None:
            return MarkWatchedResult(NextStep.NEXT_SEASON_ADDED, next_number)
        return MarkWatchedResult(NextStep.NEXT_SEASON_PLACEHOLDER, next_number)
