"""Season value type and its air-date derived figures."""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ..dates import days_until, parse_air_date, today
from .episode import Episode, EpisodeType


def has_typed_episodes(episodes: list[Episode]) -> bool:
    """True once the catalog has started tagging episode types for a season."""
    return any(ep.episode_type is not EpisodeType.STANDARD for ep in episodes)


def resolve_finale(episodes: list[Episode]) -> Optional[Episode]:
    """Pick the season finale from an episode list.

    The catalog tags finales inconsistently:

    - last episode tagged as finale: that is the finale;
    - some episodes carry type tags but the last one is not a finale: the
      finale is not known yet;
    - no type tags at all (older data): the last episode is the finale.

    "Last" is the highest episode number, not the list position.
    """
    if not episodes:
        return None
    last = max(episodes, key=lambda ep: ep.episode_number)
    if last.episode_type.is_finale:
        return last
    if has_typed_episodes(episodes):
        return None
    return last


class Season(BaseModel):
    """A season of a TV show. Season 0 holds specials."""

    id: int
    season_number: int
    name: str = ""
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    air_date: Optional[date] = None
    episode_count: int = 0
    episodes: list[Episode] = []
    watched_date: Optional[datetime] = None

    @field_validator("air_date", mode="before")
    @classmethod
    def _lenient_air_date(cls, value):
        return parse_air_date(value)

    def __repr__(self) -> str:
        return f"<Season(id={self.id}, season_number={self.season_number}, episodes={len(self.episodes)})>"

    @property
    def is_special(self) -> bool:
        return self.season_number == 0

    @property
    def last_episode(self) -> Optional[Episode]:
        if not self.episodes:
            return None
        return max(self.episodes, key=lambda ep: ep.episode_number)

    @property
    def finale(self) -> Optional[Episode]:
        return resolve_finale(self.episodes)

    @property
    def finale_date(self) -> Optional[date]:
        finale = self.finale
        return finale.air_date if finale else None

    @property
    def has_confirmed_finale(self) -> bool:
        return self.finale is not None

    def get_episode(self, episode_number: int) -> Optional[Episode]:
        for ep in self.episodes:
            if ep.episode_number == episode_number:
                return ep
        return None

    def aired_episode_count(self, now: Optional[datetime] = None) -> int:
        return sum(1 for ep in self.episodes if ep.has_aired(now))

    def watched_episode_count(self) -> int:
        return sum(1 for ep in self.episodes if ep.is_watched)

    def is_complete(self, now: Optional[datetime] = None) -> bool:
        """Whether the season has episodes and all of them have aired."""
        if not self.episodes:
            return False
        return all(ep.has_aired(now) for ep in self.episodes)

    def has_started(self, now: Optional[datetime] = None) -> bool:
        if self.air_date is None:
            return False
        return self.air_date <= today(now)

    def is_airing(self, now: Optional[datetime] = None) -> bool:
        return self.has_started(now) and not self.is_complete(now)

    def is_watched(self, now: Optional[datetime] = None) -> bool:
        """Watched explicitly, or every aired episode has been watched."""
        if self.watched_date is not None:
            return True
        aired = [ep for ep in self.episodes if ep.has_aired(now)]
        return bool(aired) and all(ep.is_watched for ep in aired)

    def is_binge_ready(self, now: Optional[datetime] = None) -> bool:
        return self.is_complete(now) and not self.is_watched(now)

    def days_until_finale(self, now: Optional[datetime] = None) -> Optional[int]:
        """Days until the finale airs; 0 when it airs today, None if unknown or past."""
        finale_date = self.finale_date
        if finale_date is None:
            return None
        days = days_until(finale_date, now)
        if days < 0:
            return None
        return days

    def days_until_premiere(self, now: Optional[datetime] = None) -> Optional[int]:
        """Days until the premiere (None if already started or no date)."""
        if self.air_date is None or self.has_started(now):
            return None
        return days_until(self.air_date, now)

    def episodes_until_finale(self, now: Optional[datetime] = None) -> Optional[int]:
        """Episodes left to air up to and including the finale."""
        if self.is_complete(now):
            return None
        finale = self.finale
        if finale is None:
            return None
        last_aired = max(
            (ep.episode_number for ep in self.episodes if ep.has_aired(now)),
            default=0,
        )
        remaining = finale.episode_number - last_aired
        return remaining if remaining > 0 else None
