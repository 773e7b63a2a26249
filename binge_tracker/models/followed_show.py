"""Followed show model: a show the user follows plus its cached catalog snapshot."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import String, Integer, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base
from ..dates import utcnow
from .lifecycle import ShowLifecycleState
from .show import Show

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(hours=24)


@dataclass
class FollowedShowRecord:
    """Detached view of a followed show handed out by the store."""

    show_id: int
    followed_at: datetime
    last_refreshed_at: Optional[datetime]
    lifecycle_state: ShowLifecycleState
    show: Optional[Show]

    def needs_refresh(
        self,
        now: Optional[datetime] = None,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
    ) -> bool:
        """Cached data is stale when never refreshed or older than `stale_after`."""
        if self.last_refreshed_at is None:
            return True
        now = now or utcnow()
        return now - self.last_refreshed_at > stale_after


class FollowedShow(Base):
    """Followed show row. The full show is cached as JSON in `snapshot`."""

    __tablename__ = "followed_shows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tmdb_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)

    # Denormalized for listing without decoding the snapshot
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(50), default="Planned")
    lifecycle_state: Mapped[str] = mapped_column(
        String(20), default=ShowLifecycleState.ANTICIPATED.value, nullable=False
    )

    snapshot: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps (naive UTC)
    followed_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    last_refreshed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<FollowedShow(id={self.id}, name='{self.name}', tmdb_id={self.tmdb_id})>"

    def to_show(self) -> Optional[Show]:
        """Decode the cached snapshot; an unreadable snapshot counts as missing."""
        if not self.snapshot:
            return None
        try:
            return Show.model_validate_json(self.snapshot)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable snapshot for show {self.tmdb_id}: {e}")
            return None

    def set_snapshot(self, show: Show, lifecycle_state: ShowLifecycleState) -> None:
        self.snapshot = show.model_dump_json()
        self.name = show.name
        self.status = show.status.value
        self.lifecycle_state = lifecycle_state.value

    def to_record(self) -> FollowedShowRecord:
        return FollowedShowRecord(
            show_id=self.tmdb_id,
            followed_at=self.followed_at,
            last_refreshed_at=self.last_refreshed_at,
            lifecycle_state=ShowLifecycleState.parse(self.lifecycle_state),
            show=self.to_show(),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "tmdb_id": self.tmdb_id,
            "name": self.name,
            "status": self.status,
            "lifecycle_state": ShowLifecycleState.parse(self.lifecycle_state).value,
            "followed_at": self.followed_at.isoformat() if self.followed_at else None,
            "last_refreshed_at": self.last_refreshed_at.isoformat() if self.last_refreshed_at else None,
        }
