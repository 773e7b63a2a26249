"""TMDB API client service."""

import asyncio
import logging
from typing import Optional
from datetime import datetime, timezone

import httpx
from pydantic import ValidationError

from ..config import settings
from ..dates import utcnow
from ..models import Episode, Genre, Network, Season, Show
from .catalog import CatalogError

logger = logging.getLogger(__name__)


def map_episode(data: dict) -> Episode:
    """Map a TMDB episode payload to an Episode."""
    return Episode(
        id=data["id"],
        episode_number=data["episode_number"],
        season_number=data["season_number"],
        name=data.get("name") or f"Episode {data['episode_number']}",
        overview=data.get("overview"),
        air_date=data.get("air_date"),
        still_path=data.get("still_path"),
        runtime=data.get("runtime"),
        episode_type=data.get("episode_type"),
    )


def map_season_summary(data: dict) -> Season:
    """Map the season summary embedded in show details (no episodes)."""
    return Season(
        id=data["id"],
        season_number=data["season_number"],
        name=data.get("name") or "",
        overview=data.get("overview"),
        poster_path=data.get("poster_path"),
        air_date=data.get("air_date"),
        episode_count=data.get("episode_count") or 0,
        episodes=[],
    )


def map_season_details(data: dict) -> Season:
    """Map a full season payload including its episodes."""
    episodes = [map_episode(ep) for ep in data.get("episodes", [])]
    return Season(
        id=data["id"],
        season_number=data["season_number"],
        name=data.get("name") or "",
        overview=data.get("overview"),
        poster_path=data.get("poster_path"),
        air_date=data.get("air_date"),
        episode_count=len(episodes),
        episodes=episodes,
    )


def map_show(data: dict, seasons: list[Season]) -> Show:
    """Map TMDB show details plus already-fetched seasons to a Show."""
    return Show(
        id=data["id"],
        name=data.get("name") or "",
        overview=data.get("overview"),
        poster_path=data.get("poster_path"),
        backdrop_path=data.get("backdrop_path"),
        first_air_date=data.get("first_air_date"),
        status=data.get("status"),
        genres=[Genre(id=g["id"], name=g["name"]) for g in data.get("genres", []) if g.get("name")],
        networks=[
            Network(id=n["id"], name=n["name"], logo_path=n.get("logo_path"))
            for n in data.get("networks", []) if n.get("name")
        ],
        seasons=seasons,
        number_of_seasons=data.get("number_of_seasons") or 0,
        number_of_episodes=data.get("number_of_episodes") or 0,
        in_production=bool(data.get("in_production", False)),
    )


class TMDBService:
    """Service for interacting with The Movie Database API."""

    def __init__(self, api_key: str = "", base_url: str = "", timeout: float = None):
        self.api_key = api_key or settings.tmdb_api_key
        self.base_url = base_url or settings.tmdb_base_url
        self.timeout = timeout or settings.http_timeout_seconds
        # The scheduler thread and request handlers run separate loops
        self._clients: dict[asyncio.AbstractEventLoop, httpx.AsyncClient] = {}
        self._rate_limit_remaining = 40
        self._rate_limit_reset: Optional[datetime] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client bound to the running event loop."""
        loop = asyncio.get_running_loop()
        client = self._clients.get(loop)
        if client is None or client.is_closed:
            client = httpx.AsyncClient(timeout=self.timeout)
            self._clients[loop] = client
        return client

    async def close(self):
        """Close the HTTP client bound to the running event loop."""
        client = self._clients.pop(asyncio.get_running_loop(), None)
        if client is not None and not client.is_closed:
            await client.aclose()

    async def _request(self, endpoint: str, params: dict = None) -> dict:
        """Make a request to TMDB API with rate limiting."""
        if not self.api_key:
            raise CatalogError("TMDB API key not configured")

        # Rate limiting
        if self._rate_limit_remaining <= 1 and self._rate_limit_reset:
            wait_time = (self._rate_limit_reset - utcnow()).total_seconds()
            if wait_time > 0:
                await asyncio.sleep(wait_time)

        client = await self._get_client()
        params = dict(params or {})
        params["api_key"] = self.api_key

        try:
            response = await client.get(f"{self.base_url}{endpoint}", params=params)
        except httpx.HTTPError as e:
            raise CatalogError(f"Request to {endpoint} failed: {e}") from e

        # Update rate limit info
        if "X-RateLimit-Remaining" in response.headers:
            self._rate_limit_remaining = int(response.headers["X-RateLimit-Remaining"])
        if "X-RateLimit-Reset" in response.headers:
            self._rate_limit_reset = datetime.fromtimestamp(
                int(response.headers["X-RateLimit-Reset"]), timezone.utc
            ).replace(tzinfo=None)

        if response.is_error:
            raise CatalogError(
                f"TMDB returned {response.status_code} for {endpoint}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise CatalogError(f"Invalid JSON from {endpoint}: {e}") from e

    async def get_show(self, tmdb_id: int) -> dict:
        """Get raw details about a TV show."""
        return await self._request(f"/tv/{tmdb_id}")

    async def get_season(self, tmdb_id: int, season_number: int) -> dict:
        """Get raw details for a specific season."""
        return await self._request(f"/tv/{tmdb_id}/season/{season_number}")

    async def fetch_season_details(self, show_id: int, season_number: int) -> Season:
        """Fetch a season with its episodes."""
        data = await self.get_season(show_id, season_number)
        try:
            return map_season_details(data)
        except (KeyError, TypeError, ValidationError) as e:
            raise CatalogError(f"Unreadable season {season_number} of show {show_id}: {e}") from e

    async def fetch_show_details(self, show_id: int) -> Show:
        """Fetch a show with full episode data for every regular season.

        A season whose details cannot be fetched falls back to the summary
        embedded in the show payload (no episodes).
        """
        data = await self.get_show(show_id)

        seasons: list[Season] = []
        try:
            summaries = [
                s for s in data.get("seasons", []) if s.get("season_number", 0) > 0
            ]
            for summary in summaries:
                try:
                    season = await self.fetch_season_details(show_id, summary["season_number"])
                except CatalogError as e:
                    logger.warning(
                        f"Season {summary['season_number']} of show {show_id} unavailable, "
                        f"using summary: {e}"
                    )
                    season = map_season_summary(summary)
                seasons.append(season)

            return map_show(data, seasons)
        except (KeyError, TypeError, ValidationError) as e:
            raise CatalogError(f"Unreadable show {show_id}: {e}") from e

