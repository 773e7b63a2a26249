"""API endpoints for followed show management and refresh."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from pydantic import BaseModel

from ..models import Season, Show
from ..services.catalog import CatalogClient, CatalogError
from ..services.library import EpisodeNotFoundError, LibraryService, SeasonNotFoundError
from ..services.lifecycle import derive_state
from ..services.refresh import RefreshOrchestrator
from ..services.store import AlreadyFollowingError, SQLShowStore, ShowNotFoundError, StoreError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shows", tags=["shows"])


class FollowRequest(BaseModel):
    """Request model for following a show."""

    tmdb_id: int


class EpisodeWatchedRequest(BaseModel):
    watched: bool = True


def get_store(request: Request) -> SQLShowStore:
    return request.app.state.store


def get_catalog(request: Request) -> CatalogClient:
    return request.app.state.catalog


def get_orchestrator(request: Request) -> RefreshOrchestrator:
    return request.app.state.orchestrator


def get_library(
    store: SQLShowStore = Depends(get_store),
    catalog: CatalogClient = Depends(get_catalog),
) -> LibraryService:
    return LibraryService(store, catalog)


def season_projection(show: Show, season: Season, now: Optional[datetime] = None) -> dict:
    """Derived per-season figures for display."""
    return {
        "season_number": season.season_number,
        "name": season.name,
        "air_date": season.air_date.isoformat() if season.air_date else None,
        "episode_count": season.episode_count,
        "lifecycle_state": derive_state(show, season, now).value,
        "has_started": season.has_started(now),
        "is_airing": season.is_airing(now),
        "is_complete": season.is_complete(now),
        "is_watched": season.is_watched(now),
        "is_binge_ready": season.is_binge_ready(now),
        "has_confirmed_finale": season.has_confirmed_finale,
        "finale_date": season.finale_date.isoformat() if season.finale_date else None,
        "days_until_finale": season.days_until_finale(now),
        "days_until_premiere": season.days_until_premiere(now),
        "episodes_until_finale": season.episodes_until_finale(now),
        "aired_episode_count": season.aired_episode_count(now),
        "watched_episode_count": season.watched_episode_count(),
    }


def show_projection(show: Show, now: Optional[datetime] = None) -> dict:
    """Show summary with its derived lifecycle state and countdown figures."""
    current = show.current_season(now)
    upcoming = show.upcoming_season(now)
    return {
        "id": show.id,
        "name": show.name,
        "overview": show.overview,
        "poster_path": show.poster_path,
        "backdrop_path": show.backdrop_path,
        "status": show.status.value,
        "in_production": show.in_production,
        "lifecycle_state": derive_state(show, now=now).value,
        "current_season": current.season_number if current else None,
        "upcoming_season": upcoming.season_number if upcoming else None,
        "days_until_finale": show.days_until_finale(now),
        "episodes_until_finale": show.episodes_until_finale(now),
        "days_until_premiere": show.days_until_premiere(now),
    }


@router.get("")
async def list_shows(library: LibraryService = Depends(get_library)):
    """List followed shows with their derived state."""
    try:
        records = library.store.list_followed()
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Failed to load shows: {e}")

    results = []
    for record in records:
        item = {
            "tmdb_id": record.show_id,
            "followed_at": record.followed_at.isoformat(),
            "last_refreshed_at": record.last_refreshed_at.isoformat() if record.last_refreshed_at else None,
            "needs_refresh": record.needs_refresh(),
            "lifecycle_state": record.lifecycle_state.value,
        }
        if record.show is not None:
            item.update(show_projection(record.show))
        results.append(item)
    return results


@router.post("")
async def follow_show(data: FollowRequest, library: LibraryService = Depends(get_library)):
    """Follow a show by TMDB id, fetching its full data."""
    try:
        record = await library.follow(data.tmdb_id)
    except AlreadyFollowingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CatalogError as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch show from TMDB: {e}")
    return show_projection(record.show)


@router.post("/refresh-all")
async def refresh_all_shows(
    background_tasks: BackgroundTasks,
    force: bool = False,
    orchestrator: RefreshOrchestrator = Depends(get_orchestrator),
):
    """Refresh catalog data for stale shows (all shows with force=true)."""
    if orchestrator.is_running:
        raise HTTPException(status_code=400, detail="Refresh already in progress")

    background_tasks.add_task(orchestrator.refresh_all, fetch_from_api=True, force_refresh=force)
    return {"message": "Refresh started", "status": "running", "force": force}


@router.post("/refresh-states")
async def refresh_states(orchestrator: RefreshOrchestrator = Depends(get_orchestrator)):
    """Recompute lifecycle states from the current date (no API calls)."""
    report = await orchestrator.on_app_foreground()
    return report.to_dict()


@router.get("/refresh-all/status")
async def get_refresh_status(
    request: Request, orchestrator: RefreshOrchestrator = Depends(get_orchestrator)
):
    """Get the status of the refresh-all operation."""
    status = dict(orchestrator.status)
    scheduler = getattr(request.app.state, "scheduler", None)
    next_run = scheduler.next_run_at if scheduler is not None else None
    status["next_scheduled_at"] = next_run.isoformat() if next_run else None
    return status


@router.get("/{show_id}")
async def get_show(show_id: int, library: LibraryService = Depends(get_library)):
    """Get a followed show with per-season projections."""
    try:
        record = library.get_show(show_id)
    except ShowNotFoundError:
        raise HTTPException(status_code=404, detail="Show not found")

    show = record.show
    result = show_projection(show)
    result["followed_at"] = record.followed_at.isoformat()
    result["last_refreshed_at"] = record.last_refreshed_at.isoformat() if record.last_refreshed_at else None
    result["seasons"] = [season_projection(show, s) for s in show.regular_seasons]
    return result


@router.delete("/{show_id}")
async def unfollow_show(show_id: int, library: LibraryService = Depends(get_library)):
    """Stop following a show."""
    try:
        library.unfollow(show_id)
    except ShowNotFoundError:
        raise HTTPException(status_code=404, detail="Show not found")
    return {"message": "Show unfollowed"}


@router.post("/{show_id}/refresh")
async def refresh_show(
    show_id: int, orchestrator: RefreshOrchestrator = Depends(get_orchestrator)
):
    """Refresh one show from TMDB now."""
    try:
        record = await orchestrator.refresh_one(show_id)
    except ShowNotFoundError:
        raise HTTPException(status_code=404, detail="Show not found")
    except CatalogError as e:
        raise HTTPException(status_code=502, detail=f"Failed to refresh from TMDB: {e}")
    return show_projection(record.show)


@router.post("/{show_id}/seasons/{season_number}/watched")
async def mark_season_watched(
    show_id: int, season_number: int, library: LibraryService = Depends(get_library)
):
    """Mark a season watched and report what comes next."""
    try:
        result = library.mark_season_watched(show_id, season_number)
    except ShowNotFoundError:
        raise HTTPException(status_code=404, detail="Show not found")
    except SeasonNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return result.to_dict()


@router.put("/{show_id}/seasons/{season_number}/episodes/{episode_number}/watched")
async def mark_episode_watched(
    show_id: int,
    season_number: int,
    episode_number: int,
    data: EpisodeWatchedRequest,
    library: LibraryService = Depends(get_library),
):
    """Mark or unmark an episode as watched."""
    try:
        record = library.mark_episode_watched(show_id, season_number, episode_number, data.watched)
    except ShowNotFoundError:
        raise HTTPException(status_code=404, detail="Show not found")
    except (SeasonNotFoundError, EpisodeNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))

    season = record.show.get_season(season_number)
    return season_projection(record.show, season)
