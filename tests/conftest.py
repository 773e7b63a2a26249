"""Shared pytest fixtures for the binge-tracker test suite.

Provides:
- a fixed "now" and builders for episodes, seasons and shows
- an in-memory SQLite store
- a fake catalog client with per-show failures
"""
import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from binge_tracker.database import init_database
from binge_tracker.models import Episode, EpisodeType, Season, Show, ShowStatus
from binge_tracker.services.catalog import CatalogError
from binge_tracker.services.store import SQLShowStore

NOW = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


def days(offset: int, base: date = TODAY) -> date:
    return base + timedelta(days=offset)


def make_episode(
    number: int,
    air_date: Optional[date],
    season_number: int = 1,
    episode_type: EpisodeType = EpisodeType.STANDARD,
    watched_date: Optional[datetime] = None,
) -> Episode:
    return Episode(
        id=season_number * 1000 + number,
        episode_number=number,
        season_number=season_number,
        name=f"Episode {number}",
        air_date=air_date,
        episode_type=episode_type,
        watched_date=watched_date,
    )


def make_season(
    number: int,
    air_date: Optional[date],
    episode_dates: Optional[list] = None,
    finale_tagged: bool = False,
) -> Season:
    episode_dates = episode_dates or []
    episodes = [
        make_episode(i + 1, d, season_number=number)
        for i, d in enumerate(episode_dates)
    ]
    if finale_tagged and episodes:
        episodes[-1] = episodes[-1].model_copy(update={"episode_type": EpisodeType.FINALE})
    return Season(
        id=number * 10,
        season_number=number,
        name=f"Season {number}",
        air_date=air_date,
        episode_count=len(episodes),
        episodes=episodes,
    )


def make_show(
    show_id: int = 1,
    name: str = "Show",
    status: ShowStatus = ShowStatus.RETURNING,
    seasons: Optional[list] = None,
    in_production: bool = False,
) -> Show:
    seasons = seasons or []
    return Show(
        id=show_id,
        name=name,
        status=status,
        seasons=seasons,
        number_of_seasons=len(seasons),
        number_of_episodes=sum(len(s.episodes) for s in seasons),
        in_production=in_production,
    )


def complete_show(show_id: int = 1, name: str = "Complete", **kwargs) -> Show:
    """One season that finished airing last month."""
    season = make_season(1, days(-40), [days(-40), days(-33), days(-26)])
    return make_show(show_id, name, seasons=[season], **kwargs)


class FakeCatalog:
    """In-memory catalog client. Ids in `failing` raise CatalogError."""

    def __init__(self, shows: Optional[dict] = None, failing: Optional[set] = None, delay: float = 0):
        self.shows = dict(shows or {})
        self.failing = set(failing or ())
        self.delay = delay
        self.calls: list[int] = []
        self.closed = False

    async def fetch_show_details(self, show_id: int) -> Show:
        self.calls.append(show_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        if show_id in self.failing or show_id not in self.shows:
            raise CatalogError(f"show {show_id} unavailable", status_code=500)
        return self.shows[show_id]

    async def fetch_season_details(self, show_id: int, season_number: int) -> Season:
        show = await self.fetch_show_details(show_id)
        season = show.get_season(season_number)
        if season is None:
            raise CatalogError(f"season {season_number} unavailable", status_code=404)
        return season

    async def close(self):
        self.closed = True


@pytest.fixture
def session_maker():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_database(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def store(session_maker):
    return SQLShowStore(session_maker)
