"""Lifecycle state derivation.

State is always computed from show status and air dates; users never set it.
"""

from datetime import datetime
from typing import Optional

from ..models import Season, Show, ShowLifecycleState, ShowStatus


def derive_season_state(
    show: Show, season: Season, now: Optional[datetime] = None
) -> ShowLifecycleState:
    """Derive the lifecycle state of one season of a show."""
    # Cancelled shows are binge-ready whatever the season looks like
    if show.status is ShowStatus.CANCELLED:
        return ShowLifecycleState.CANCELLED
    if not season.has_started(now):
        return ShowLifecycleState.ANTICIPATED
    if season.is_complete(now):
        return ShowLifecycleState.COMPLETED
    return ShowLifecycleState.AIRING


def derive_state(
    show: Show, season: Optional[Season] = None, now: Optional[datetime] = None
) -> ShowLifecycleState:
    """Derive the lifecycle state of a show, or of one of its seasons."""
    if season is not None:
        return derive_season_state(show, season, now)

    if show.status is ShowStatus.CANCELLED:
        return ShowLifecycleState.CANCELLED
    if show.status is ShowStatus.ENDED:
        return ShowLifecycleState.COMPLETED

    current = show.current_season(now)
    if current is None:
        return ShowLifecycleState.ANTICIPATED
    return derive_season_state(show, current, now)


def is_binge_ready(show: Show, now: Optional[datetime] = None) -> bool:
    """A show is binge-ready once completed or cancelled."""
    return derive_state(show, now=now) in (
        ShowLifecycleState.COMPLETED,
        ShowLifecycleState.CANCELLED,
    )
