"""API endpoints for the timeline and binge-ready views."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.library import LibraryService
from ..services.timeline import (
    CountdownDisplayMode,
    TimelineCategory,
    TimelineEntry,
    TimelineService,
)
from .settings import get_display_mode, get_include_airing
from .shows import get_library, season_projection, show_projection

router = APIRouter(prefix="/api", tags=["timeline"])


def get_timeline_service() -> TimelineService:
    return TimelineService()


def entry_to_dict(entry: TimelineEntry, mode: CountdownDisplayMode) -> dict:
    """Serialize a timeline entry; `mode` only affects presentation."""
    result = show_projection(entry.show)
    result["category"] = entry.category.value
    result["countdown"] = entry.countdown.to_dict() if entry.countdown else None
    result["display_mode"] = mode.value
    if mode is CountdownDisplayMode.EPISODES and entry.category is TimelineCategory.AIRING_NOW:
        result["countdown_value"] = result["episodes_until_finale"]
    else:
        result["countdown_value"] = entry.countdown.days if entry.countdown else None
    return result


@router.get("/timeline")
async def get_timeline(
    mode: Optional[str] = None,
    library: LibraryService = Depends(get_library),
    timeline: TimelineService = Depends(get_timeline_service),
    db: Session = Depends(get_db),
):
    """Followed shows grouped by category, in display order, empty groups dropped."""
    display_mode = CountdownDisplayMode.parse(mode) if mode else get_display_mode(db)
    grouped = timeline.group_by_category(library.followed_shows())
    return [
        {
            "category": category.value,
            "label": category.label,
            "display_order": category.display_order,
            "entries": [entry_to_dict(entry, display_mode) for entry in entries],
        }
        for category, entries in timeline.sorted_categories(grouped)
    ]


@router.get("/timeline/full")
async def get_full_timeline(
    mode: Optional[str] = None,
    library: LibraryService = Depends(get_library),
    timeline: TimelineService = Depends(get_timeline_service),
    db: Session = Depends(get_db),
):
    """Ending soon, premiering soon and anticipated sections of the full timeline."""
    display_mode = CountdownDisplayMode.parse(mode) if mode else get_display_mode(db)
    sections = timeline.full_timeline(library.followed_shows())
    return {
        name: [entry_to_dict(entry, display_mode) for entry in entries]
        for name, entries in sections.items()
    }


@router.get("/binge-ready")
async def get_binge_ready_seasons(
    include_airing: Optional[bool] = None,
    library: LibraryService = Depends(get_library),
    timeline: TimelineService = Depends(get_timeline_service),
    db: Session = Depends(get_db),
):
    """Seasons ready to binge, most recent finale first."""
    if include_airing is None:
        include_airing = get_include_airing(db)
    ready = timeline.binge_ready_seasons(library.followed_shows(), include_airing=include_airing)
    return [
        {
            "show_id": item.show.id,
            "show_name": item.show.name,
            "poster_path": item.season.poster_path or item.show.poster_path,
            **season_projection(item.show, item.season),
        }
        for item in ready
    ]
