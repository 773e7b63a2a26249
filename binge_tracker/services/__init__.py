"""Services for binge-tracker."""

from .catalog import CatalogClient, CatalogError
from .lifecycle import derive_state, is_binge_ready
from .timeline import TimelineService, TimelineCategory
from .store import SQLShowStore, ShowStore, StoreError, ShowNotFoundError, AlreadyFollowingError
from .tmdb import TMDBService
from .refresh import RefreshOrchestrator, RefreshReport
from .library import LibraryService
from .scheduler import RefreshScheduler

__all__ = [
    "CatalogClient", "CatalogError", "derive_state", "is_binge_ready", "TimelineService",
    "TimelineCategory", "SQLShowStore", "ShowStore", "StoreError", "ShowNotFoundError",
    "AlreadyFollowingError", "TMDBService", "RefreshOrchestrator", "RefreshReport",
    "LibraryService", "RefreshScheduler",
]
