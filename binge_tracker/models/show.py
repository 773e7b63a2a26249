"""Show value type for followed TV series."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from ..dates import parse_air_date
from .season import Season


class ShowStatus(str, Enum):
    """TMDB show status values."""

    RETURNING = "Returning Series"
    ENDED = "Ended"
    CANCELLED = "Canceled"
    IN_PRODUCTION = "In Production"
    PLANNED = "Planned"
    PILOT = "Pilot"

    @classmethod
    def parse(cls, value) -> "ShowStatus":
        """Unknown status strings degrade to planned."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.PLANNED


class Genre(BaseModel):
    id: int
    name: str


class Network(BaseModel):
    id: int
    name: str
    logo_path: Optional[str] = None


class Show(BaseModel):
    """A TV show with its seasons and episodes."""

    id: int
    name: str
    overview: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    first_air_date: Optional[date] = None
    status: ShowStatus = ShowStatus.PLANNED
    genres: list[Genre] = []
    networks: list[Network] = []
    seasons: list[Season] = []
    number_of_seasons: int = 0
    number_of_episodes: int = 0
    in_production: bool = False

    @field_validator("first_air_date", mode="before")
    @classmethod
    def _lenient_first_air_date(cls, value):
        return parse_air_date(value)

    @field_validator("status", mode="before")
    @classmethod
    def _lenient_status(cls, value):
        return ShowStatus.parse(value)

    def __repr__(self) -> str:
        return f"<Show(id={self.id}, name='{self.name}', status='{self.status.value}')>"

    @property
    def regular_seasons(self) -> list[Season]:
        """Seasons excluding specials, ordered by season number."""
        return sorted(
            (s for s in self.seasons if not s.is_special),
            key=lambda s: s.season_number,
        )

    def get_season(self, season_number: int) -> Optional[Season]:
        for season in self.seasons:
            if season.season_number == season_number:
                return season
        return None

    def current_season(self, now: Optional[datetime] = None) -> Optional[Season]:
        """The season that matters right now.

        Priority: an airing season, then the earliest season that has not
        started, then the latest complete season.
        """
        regular = self.regular_seasons
        for season in regular:
            if season.is_airing(now):
                return season
        for season in regular:
            if not season.has_started(now):
                return season
        for season in reversed(regular):
            if season.is_complete(now):
                return season
        return None

    def upcoming_season(self, now: Optional[datetime] = None) -> Optional[Season]:
        """The next season to air, if any."""
        for season in self.regular_seasons:
            if not season.has_started(now):
                return season
        return None

    def days_until_finale(self, now: Optional[datetime] = None) -> Optional[int]:
        season = self.current_season(now)
        return season.days_until_finale(now) if season else None

    def episodes_until_finale(self, now: Optional[datetime] = None) -> Optional[int]:
        season = self.current_season(now)
        return season.episodes_until_finale(now) if season else None

    def days_until_premiere(self, now: Optional[datetime] = None) -> Optional[int]:
        upcoming = self.upcoming_season(now)
        if upcoming is not None:
            days = upcoming.days_until_premiere(now)
            if days is not None:
                return days
        season = self.current_season(now)
        return season.days_until_premiere(now) if season else None
