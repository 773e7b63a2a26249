"""Domain and database models for binge-tracker."""

from .episode import Episode, EpisodeType
from .season import Season, resolve_finale
from .show import Show, ShowStatus, Genre, Network
from .lifecycle import ShowLifecycleState
from .followed_show import FollowedShow, FollowedShowRecord
from .settings import AppSettings

__all__ = [
    "Episode", "EpisodeType", "Season", "resolve_finale", "Show", "ShowStatus",
    "Genre", "Network", "ShowLifecycleState", "FollowedShow", "FollowedShowRecord",
    "AppSettings",
]
