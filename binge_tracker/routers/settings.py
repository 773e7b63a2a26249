"""API endpoints for application settings."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..config import MIN_REFRESH_INTERVAL_MINUTES, settings
from ..database import get_db
from ..models import AppSettings
from ..services.timeline import CountdownDisplayMode

router = APIRouter(prefix="/api", tags=["settings"])


class SettingsUpdate(BaseModel):
    """Request model for updating settings."""

    tmdb_api_key: Optional[str] = None
    countdown_display_mode: Optional[str] = None
    show_airing_seasons_in_binge_ready: Optional[bool] = None
    refresh_interval_minutes: Optional[int] = None


def get_setting(db: Session, key: str, default: str = "") -> str:
    """Get a setting value from the database."""
    setting = db.query(AppSettings).filter(AppSettings.key == key).first()
    return setting.value if setting else default


def set_setting(db: Session, key: str, value: str) -> None:
    """Set a setting value in the database."""
    setting = db.query(AppSettings).filter(AppSettings.key == key).first()
    if setting:
        setting.value = value
    else:
        setting = AppSettings(key=key, value=value)
        db.add(setting)
    db.commit()


def get_display_mode(db: Session) -> CountdownDisplayMode:
    return CountdownDisplayMode.parse(get_setting(db, "countdown_display_mode", "days"))


def get_include_airing(db: Session) -> bool:
    return get_setting(db, "show_airing_seasons_in_binge_ready", "false") == "true"


def get_tmdb_api_key(db: Session) -> str:
    """Stored key wins over the environment."""
    return get_setting(db, "tmdb_api_key", "") or settings.tmdb_api_key


def get_refresh_interval(db: Session) -> int:
    return int(get_setting(db, "refresh_interval_minutes", str(settings.refresh_interval_minutes)))


@router.get("/settings")
async def get_settings(db: Session = Depends(get_db)):
    """Get application settings."""
    tmdb_key = get_tmdb_api_key(db)
    return {
        "tmdb_api_key": "***" if tmdb_key else "",
        "tmdb_api_key_set": bool(tmdb_key),
        "countdown_display_mode": get_display_mode(db).value,
        "show_airing_seasons_in_binge_ready": get_include_airing(db),
        "refresh_interval_minutes": get_refresh_interval(db),
        "stale_after_hours": settings.stale_after_hours,
        "timezone": settings.timezone,
    }


@router.put("/settings")
async def update_settings(
    data: SettingsUpdate, request: Request, db: Session = Depends(get_db)
):
    """Update application settings."""
    if data.tmdb_api_key is not None:
        set_setting(db, "tmdb_api_key", data.tmdb_api_key)
        catalog = getattr(request.app.state, "catalog", None)
        if catalog is not None:
            catalog.api_key = data.tmdb_api_key or settings.tmdb_api_key

    if data.countdown_display_mode is not None:
        if data.countdown_display_mode not in {m.value for m in CountdownDisplayMode}:
            raise HTTPException(status_code=400, detail="countdown_display_mode must be 'days' or 'episodes'")
        set_setting(db, "countdown_display_mode", data.countdown_display_mode)

    if data.show_airing_seasons_in_binge_ready is not None:
        set_setting(
            db,
            "show_airing_seasons_in_binge_ready",
            "true" if data.show_airing_seasons_in_binge_ready else "false",
        )

    if data.refresh_interval_minutes is not None:
        if data.refresh_interval_minutes < MIN_REFRESH_INTERVAL_MINUTES:
            raise HTTPException(
                status_code=400,
                detail=f"refresh_interval_minutes must be at least {MIN_REFRESH_INTERVAL_MINUTES}",
            )
        set_setting(db, "refresh_interval_minutes", str(data.refresh_interval_minutes))
        scheduler = getattr(request.app.state, "scheduler", None)
        if scheduler is not None:
            scheduler.set_interval(data.refresh_interval_minutes)

    return await get_settings(db)
