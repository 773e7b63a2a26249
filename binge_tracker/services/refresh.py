"""Refresh orchestration for followed shows.

A pass recomputes every cached lifecycle tag from the current date (no
network), then optionally fetches fresh catalog data for stale shows. Each
fetch is its own task: a failing show is logged and skipped, the rest of the
batch carries on.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from ..config import settings
from ..dates import to_utc_naive, utcnow
from ..models import FollowedShowRecord, ShowLifecycleState
from .catalog import CatalogClient
from .lifecycle import derive_state
from .store import ShowNotFoundError, ShowStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class RefreshReport:
    """Outcome of one refresh pass."""

    checked: int = 0
    state_changes: dict[int, ShowLifecycleState] = field(default_factory=dict)
    refreshed: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)
    skipped: int = 0
    cancelled: bool = False
    already_running: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "checked": self.checked,
            "state_changes": {str(k): v.value for k, v in self.state_changes.items()},
            "refreshed": list(self.refreshed),
            "failed": {str(k): v for k, v in self.failed.items()},
            "skipped": self.skipped,
            "cancelled": self.cancelled,
            "already_running": self.already_running,
            "error": self.error,
        }


class RefreshOrchestrator:
    """Keeps cached followed shows and their lifecycle tags up to date."""

    def __init__(
        self,
        store: ShowStore,
        catalog: CatalogClient,
        stale_after: timedelta = None,
        concurrency: int = None,
    ):
        self.store = store
        self.catalog = catalog
        self.stale_after = stale_after or timedelta(hours=settings.stale_after_hours)
        self.concurrency = max(1, concurrency or settings.refresh_concurrency)
        # One pass at a time across the app loop and the scheduler thread
        self._pass_lock = threading.Lock()
        self.status = {
            "running": False,
            "current": 0,
            "total": 0,
            "completed": [],
            "errors": [],
            "last_finished_at": None,
        }

    @property
    def is_running(self) -> bool:
        return self.status["running"]

    # ── Batch refresh ───────────────────────────────────────────────

    async def refresh_all(
        self,
        fetch_from_api: bool = False,
        force_refresh: bool = False,
        cancel_event=None,
        now: Optional[datetime] = None,
    ) -> RefreshReport:
        """Refresh every followed show. Never raises for per-show or load failures.

        `cancel_event` is anything with ``is_set()`` (threading or asyncio
        Event); once set, no new catalog fetch is started. When another pass
        is in progress this one is skipped and reported as `already_running`.
        """
        report = RefreshReport()
        if not self._pass_lock.acquire(blocking=False):
            logger.info("Refresh pass skipped, another pass is in progress")
            report.already_running = True
            return report

        self.status.update(running=True, current=0, total=0, completed=[], errors=[])

        try:
            try:
                records = self.store.list_followed()
            except StoreError as e:
                logger.error(f"Refresh aborted, could not load followed shows: {e}")
                report.error = str(e)
                self.status["errors"].append(f"Fatal error: {e}")
                return report

            report.checked = len(records)
            checked_at = to_utc_naive(now)

            for record in records:
                self._recompute_state(record, report, now)

            if fetch_from_api:
                due = [
                    r for r in records
                    if force_refresh or r.needs_refresh(stale_after=self.stale_after, now=checked_at)
                ]
                report.skipped += len(records) - len(due)
                self.status["total"] = len(due)
                await self._fetch_all(due, report, cancel_event)

            # Snapshots replaced this pass already carry a fresh tag
            pending = {
                show_id: state for show_id, state in report.state_changes.items()
                if show_id not in report.refreshed
            }
            if pending:
                try:
                    self.store.update_lifecycle_states(pending)
                except StoreError as e:
                    logger.error(f"Could not save {len(pending)} lifecycle state changes: {e}")
                    report.error = str(e)

            logger.info(
                f"Refresh pass: {report.checked} checked, {len(report.state_changes)} state changes, "
                f"{len(report.refreshed)} refreshed, {len(report.failed)} failed"
                + (" (cancelled)" if report.cancelled else "")
            )
            return report
        finally:
            self.status["running"] = False
            self.status["last_finished_at"] = utcnow().isoformat()
            self._pass_lock.release()

    async def refresh_states_only(self) -> RefreshReport:
        """Recompute lifecycle tags only (no API calls). Cheap, for app foreground."""
        return await self.refresh_all(fetch_from_api=False)

    async def refresh_with_api_data(self, cancel_event=None) -> RefreshReport:
        """Recompute tags and fetch fresh data for stale shows."""
        return await self.refresh_all(fetch_from_api=True, cancel_event=cancel_event)

    async def force_refresh_all(self, cancel_event=None) -> RefreshReport:
        """Recompute tags and fetch fresh data for every followed show."""
        return await self.refresh_all(
            fetch_from_api=True, force_refresh=True, cancel_event=cancel_event
        )

    async def on_app_launch(self) -> RefreshReport:
        return await self.force_refresh_all()

    async def on_app_foreground(self) -> RefreshReport:
        return await self.refresh_states_only()

    # ── Single show ─────────────────────────────────────────────────

    async def refresh_one(self, show_id: int) -> FollowedShowRecord:
        """Fetch one show unconditionally. Errors propagate to the caller."""
        record = self.store.get_followed(show_id)
        if record is None:
            raise ShowNotFoundError(show_id)

        show = await self.catalog.fetch_show_details(show_id)
        updated = self.store.replace_cached_snapshot(show_id, show)
        logger.info(f"Refreshed '{show.name}' ({show_id}): {updated.lifecycle_state.value}")
        return updated

    # ── Private helpers ─────────────────────────────────────────────

    def _recompute_state(
        self, record: FollowedShowRecord, report: RefreshReport, now: Optional[datetime]
    ) -> None:
        if record.show is None:
            return
        state = derive_state(record.show, now=now)
        if state is not record.lifecycle_state:
            logger.info(
                f"'{record.show.name}' ({record.show_id}): "
                f"{record.lifecycle_state.value} -> {state.value}"
            )
            report.state_changes[record.show_id] = state

    async def _fetch_all(
        self, records: list[FollowedShowRecord], report: RefreshReport, cancel_event
    ) -> None:
        semaphore = asyncio.Semaphore(self.concurrency)

        async def refresh_item(record: FollowedShowRecord):
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    report.cancelled = True
                    report.skipped += 1
                    return
                await self._refresh_item(record, report)
                self.status["current"] += 1

        await asyncio.gather(*(refresh_item(record) for record in records))

    async def _refresh_item(self, record: FollowedShowRecord, report: RefreshReport) -> None:
        show_id = record.show_id
        try:
            show = await self.catalog.fetch_show_details(show_id)
            # One store write per show, after its fetch completes
            self.store.replace_cached_snapshot(show_id, show)
        except Exception as e:
            logger.error(f"Failed to refresh show {show_id}: {e}")
            report.failed[show_id] = str(e)
            self.status["errors"].append(f"{show_id}: {e}")
            return

        report.refreshed.append(show_id)
        self.status["completed"].append(show.name)
