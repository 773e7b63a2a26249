"""Episode value type."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from ..dates import days_until, parse_air_date, today


class EpisodeType(str, Enum):
    """Episode type tags as published by the catalog."""

    STANDARD = "standard"
    FINALE = "finale"
    MID_SEASON = "mid_season"

    @classmethod
    def parse(cls, value) -> "EpisodeType":
        """Unknown or missing tags degrade to standard."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.STANDARD

    @property
    def is_finale(self) -> bool:
        return self is EpisodeType.FINALE


class Episode(BaseModel):
    """A single episode of a TV show."""

    id: int
    episode_number: int
    season_number: int
    name: str = ""
    overview: Optional[str] = None
    air_date: Optional[date] = None
    still_path: Optional[str] = None
    runtime: Optional[int] = None
    episode_type: EpisodeType = EpisodeType.STANDARD
    watched_date: Optional[datetime] = None

    @field_validator("air_date", mode="before")
    @classmethod
    def _lenient_air_date(cls, value):
        return parse_air_date(value)

    @field_validator("episode_type", mode="before")
    @classmethod
    def _lenient_episode_type(cls, value):
        return EpisodeType.parse(value)

    def __repr__(self) -> str:
        return f"<Episode(id={self.id}, {self.episode_code})>"

    @property
    def episode_code(self) -> str:
        """Get episode code like S01E01."""
        return f"S{self.season_number:02d}E{self.episode_number:02d}"

    @property
    def is_watched(self) -> bool:
        return self.watched_date is not None

    def has_aired(self, now: Optional[datetime] = None) -> bool:
        """Check if episode has aired based on air date."""
        if self.air_date is None:
            return False
        return self.air_date <= today(now)

    def days_until_air(self, now: Optional[datetime] = None) -> Optional[int]:
        """Days until this episode airs (None if already aired or no date)."""
        if self.air_date is None or self.has_aired(now):
            return None
        return days_until(self.air_date, now)
