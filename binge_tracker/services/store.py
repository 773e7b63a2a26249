"""Followed-show storage.

`SQLShowStore` keeps one `FollowedShow` row per followed show. Every write is a
read-modify-write done in its own session under a process-wide lock, so the
scheduler thread and request handlers never interleave updates to a record,
and a snapshot is either fully replaced or left untouched.
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..dates import utcnow
from ..models import FollowedShow, FollowedShowRecord, Show, ShowLifecycleState
from .lifecycle import derive_state

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Reading from or writing to the store failed."""


class ShowNotFoundError(StoreError):
    """The show is not followed."""

    def __init__(self, show_id: int):
        super().__init__(f"Show {show_id} is not followed")
        self.show_id = show_id


class AlreadyFollowingError(StoreError):
    """The show is already followed."""

    def __init__(self, show_id: int):
        super().__init__(f"Show {show_id} is already followed")
        self.show_id = show_id


def merge_watch_state(cached: Optional[Show], fresh: Show) -> Show:
    """Carry the user's watch marks from the cached snapshot onto fresh catalog data."""
    if cached is None:
        return fresh

    season_marks = {}
    episode_marks = {}
    for season in cached.seasons:
        if season.watched_date is not None:
            season_marks[season.season_number] = season.watched_date
        for ep in season.episodes:
            if ep.watched_date is not None:
                episode_marks[(season.season_number, ep.episode_number)] = ep.watched_date

    if not season_marks and not episode_marks:
        return fresh

    merged = fresh.model_copy(deep=True)
    for season in merged.seasons:
        if season.watched_date is None:
            season.watched_date = season_marks.get(season.season_number)
        for ep in season.episodes:
            if ep.watched_date is None:
                ep.watched_date = episode_marks.get((season.season_number, ep.episode_number))
    return merged


class ShowStore(Protocol):
    """Persistence capability used by the refresh orchestrator."""

    def list_followed(self) -> list[FollowedShowRecord]:
        ...

    def get_followed(self, show_id: int) -> Optional[FollowedShowRecord]:
        ...

    def replace_cached_snapshot(
        self, show_id: int, show: Show, refreshed_at: Optional[datetime] = None
    ) -> FollowedShowRecord:
        ...

    def update_lifecycle_states(self, changes: dict[int, ShowLifecycleState]) -> int:
        ...

    def is_following(self, show_id: int) -> bool:
        ...


class SQLShowStore:
    """SQLAlchemy-backed followed show store."""

    def __init__(self, session_maker):
        self._session_maker = session_maker
        self._write_lock = threading.Lock()

    @contextmanager
    def _session(self):
        db: Session = self._session_maker()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(str(e)) from e
        finally:
            db.close()

    def _get_row(self, db: Session, show_id: int) -> Optional[FollowedShow]:
        return db.query(FollowedShow).filter(FollowedShow.tmdb_id == show_id).first()

    # ── Reads ───────────────────────────────────────────────────────

    def list_followed(self) -> list[FollowedShowRecord]:
        """All followed shows, most recently followed first."""
        with self._session() as db:
            rows = db.query(FollowedShow).order_by(FollowedShow.followed_at.desc()).all()
            return [row.to_record() for row in rows]

    def get_followed(self, show_id: int) -> Optional[FollowedShowRecord]:
        with self._session() as db:
            row = self._get_row(db, show_id)
            return row.to_record() if row else None

    def is_following(self, show_id: int) -> bool:
        with self._session() as db:
            return self._get_row(db, show_id) is not None

    def count(self) -> int:
        with self._session() as db:
            return db.query(FollowedShow).count()

    # ── Writes ──────────────────────────────────────────────────────

    def follow(self, show: Show, followed_at: Optional[datetime] = None) -> FollowedShowRecord:
        """Follow a show and cache its data in one transaction."""
        now = followed_at or utcnow()
        with self._write_lock, self._session() as db:
            if self._get_row(db, show.id) is not None:
                raise AlreadyFollowingError(show.id)

            row = FollowedShow(tmdb_id=show.id, name=show.name, followed_at=now)
            row.set_snapshot(show, derive_state(show))
            row.last_refreshed_at = now
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise AlreadyFollowingError(show.id) from e
            logger.info(f"Followed '{show.name}' ({show.id})")
            return row.to_record()

    def unfollow(self, show_id: int) -> bool:
        """Stop following a show. Returns False if it was not followed."""
        with self._write_lock, self._session() as db:
            row = self._get_row(db, show_id)
            if row is None:
                return False
            name = row.name
            db.delete(row)
            db.commit()
            logger.info(f"Unfollowed '{name}' ({show_id})")
            return True

    def replace_cached_snapshot(
        self, show_id: int, show: Show, refreshed_at: Optional[datetime] = None
    ) -> FollowedShowRecord:
        """Replace the cached show and stamp the refresh time, atomically.

        Watch marks are merged from the snapshot as stored at write time, so a
        mark made while `show` was being fetched is kept.
        """
        with self._write_lock, self._session() as db:
            row = self._get_row(db, show_id)
            if row is None:
                raise ShowNotFoundError(show_id)
            merged = merge_watch_state(row.to_show(), show)
            row.set_snapshot(merged, derive_state(merged))
            row.last_refreshed_at = refreshed_at or utcnow()
            db.commit()
            return row.to_record()

    def update_snapshot(
        self, show_id: int, update: Callable[[Show], Show]
    ) -> FollowedShowRecord:
        """Apply a local edit (watch marks) to the cached show under the write lock.

        `update` receives the stored snapshot and returns the show to save. It
        must not call back into the store. The refresh time is left alone.
        """
        with self._write_lock, self._session() as db:
            row = self._get_row(db, show_id)
            current = row.to_show() if row is not None else None
            if current is None:
                raise ShowNotFoundError(show_id)
            show = update(current)
            row.set_snapshot(show, derive_state(show))
            db.commit()
            return row.to_record()

    def update_lifecycle_states(self, changes: dict[int, ShowLifecycleState]) -> int:
        """Write several lifecycle tags in one transaction. Returns rows updated."""
        if not changes:
            return 0
        with self._write_lock, self._session() as db:
            rows = db.query(FollowedShow).filter(FollowedShow.tmdb_id.in_(list(changes))).all()
            for row in rows:
                row.lifecycle_state = changes[row.tmdb_id].value
            db.commit()
            return len(rows)
