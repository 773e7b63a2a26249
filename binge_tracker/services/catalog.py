"""Catalog client capability consumed by refresh and follow operations."""

from typing import Protocol

from ..models import Season, Show


class CatalogError(Exception):
    """A catalog request failed (network, HTTP status, or unreadable payload)."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class CatalogClient(Protocol):
    """Source of show, season and episode data."""

    async def fetch_show_details(self, show_id: int) -> Show:
        ...

    async def fetch_season_details(self, show_id: int, season_number: int) -> Season:
        ...

    async def close(self) -> None:
        """Release connections opened on the running event loop."""
        ...
