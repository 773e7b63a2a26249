"""Tests for the refresh orchestrator."""
import asyncio
import threading
from datetime import datetime, timedelta
from unittest.mock import MagicMock

import pytest

from binge_tracker.models import ShowLifecycleState
from binge_tracker.services.catalog import CatalogError
from binge_tracker.services.library import LibraryService
from binge_tracker.services.refresh import RefreshOrchestrator
from binge_tracker.services.store import ShowNotFoundError, StoreError, merge_watch_state

from conftest import NOW, FakeCatalog, complete_show, days, make_season, make_show

LONG_AGO = datetime(2020, 1, 1)


def orchestrator_for(store, catalog, **kwargs):
    return RefreshOrchestrator(store, catalog, stale_after=timedelta(hours=24), **kwargs)


@pytest.mark.asyncio
async def test_failing_show_does_not_abort_the_batch(store):
    for show_id in (1, 2, 3):
        store.follow(complete_show(show_id, f"Show {show_id}"), followed_at=LONG_AGO)
    catalog = FakeCatalog(
        shows={i: complete_show(i, f"Show {i} v2") for i in (1, 2, 3)},
        failing={2},
    )

    report = await orchestrator_for(store, catalog).refresh_with_api_data()

    assert sorted(report.refreshed) == [1, 3]
    assert list(report.failed) == [2]
    assert store.get_followed(1).last_refreshed_at > LONG_AGO
    assert store.get_followed(3).show.name == "Show 3 v2"
    assert store.get_followed(2).last_refreshed_at == LONG_AGO
    assert store.get_followed(2).show.name == "Show 2"


@pytest.mark.asyncio
async def test_fresh_shows_are_skipped_unless_forced(store):
    store.follow(complete_show(1))
    store.follow(complete_show(2), followed_at=LONG_AGO)
    catalog = FakeCatalog(shows={1: complete_show(1), 2: complete_show(2)})
    orchestrator = orchestrator_for(store, catalog)

    report = await orchestrator.refresh_with_api_data()
    assert catalog.calls == [2]
    assert report.skipped == 1

    catalog.calls.clear()
    await orchestrator.force_refresh_all()
    assert sorted(catalog.calls) == [1, 2]


@pytest.mark.asyncio
async def test_states_only_makes_no_catalog_calls(store):
    store.follow(complete_show(1), followed_at=LONG_AGO)
    catalog = FakeCatalog(shows={1: complete_show(1)})

    report = await orchestrator_for(store, catalog).refresh_states_only()

    assert catalog.calls == []
    assert report.refreshed == []
    assert report.checked == 1


@pytest.mark.asyncio
async def test_lifecycle_tags_are_recomputed_and_saved(store):
    airing = make_show(1, "Airing", seasons=[make_season(1, days(-7), [days(-7), days(3)])])
    store.follow(airing)
    store.update_lifecycle_states({1: ShowLifecycleState.ANTICIPATED})
    orchestrator = orchestrator_for(store, FakeCatalog())

    report = await orchestrator.refresh_all(now=NOW)
    assert report.state_changes == {1: ShowLifecycleState.AIRING}
    assert store.get_followed(1).lifecycle_state is ShowLifecycleState.AIRING

    # Four days later the finale has aired
    report = await orchestrator.refresh_all(now=NOW + timedelta(days=4))
    assert report.state_changes == {1: ShowLifecycleState.COMPLETED}
    assert store.get_followed(1).lifecycle_state is ShowLifecycleState.COMPLETED

    report = await orchestrator.refresh_all(now=NOW + timedelta(days=4))
    assert report.state_changes == {}


@pytest.mark.asyncio
async def test_refreshed_snapshot_keeps_its_own_tag(store):
    store.follow(complete_show(1), followed_at=LONG_AGO)
    store.update_lifecycle_states({1: ShowLifecycleState.AIRING})
    catalog = FakeCatalog(shows={1: complete_show(1)})
    store_spy = MagicMock(wraps=store)

    report = await orchestrator_for(store_spy, catalog).refresh_with_api_data()

    assert report.refreshed == [1]
    assert 1 in report.state_changes
    store_spy.update_lifecycle_states.assert_not_called()
    assert store.get_followed(1).lifecycle_state is ShowLifecycleState.COMPLETED


@pytest.mark.asyncio
async def test_cancelled_before_start_fetches_nothing(store):
    store.follow(complete_show(1), followed_at=LONG_AGO)
    store.follow(complete_show(2), followed_at=LONG_AGO)
    catalog = FakeCatalog(shows={1: complete_show(1), 2: complete_show(2)})
    cancel = threading.Event()
    cancel.set()

    report = await orchestrator_for(store, catalog).refresh_with_api_data(cancel_event=cancel)

    assert catalog.calls == []
    assert report.cancelled
    assert report.skipped == 2
    assert store.get_followed(1).last_refreshed_at == LONG_AGO


@pytest.mark.asyncio
async def test_cancel_mid_batch_leaves_records_whole(store):
    for show_id in (1, 2, 3):
        store.follow(complete_show(show_id), followed_at=LONG_AGO)
    catalog = FakeCatalog(shows={i: complete_show(i, f"v2 {i}") for i in (1, 2, 3)}, delay=0.05)
    cancel = asyncio.Event()
    orchestrator = orchestrator_for(store, catalog, concurrency=1)

    async def cancel_soon():
        await asyncio.sleep(0.02)
        cancel.set()

    report, _ = await asyncio.gather(
        orchestrator.refresh_with_api_data(cancel_event=cancel), cancel_soon()
    )

    assert report.cancelled
    assert len(catalog.calls) == 1
    for record in store.list_followed():
        refreshed = record.show_id in report.refreshed
        assert (record.last_refreshed_at > LONG_AGO) is refreshed
        assert record.show.name.startswith("v2") is refreshed


@pytest.mark.asyncio
async def test_load_failure_is_reported_not_raised():
    store = MagicMock()
    store.list_followed.side_effect = StoreError("database is locked")
    orchestrator = orchestrator_for(store, FakeCatalog())

    report = await orchestrator.refresh_with_api_data()

    assert report.error == "database is locked"
    assert not orchestrator.is_running


@pytest.mark.asyncio
async def test_refresh_one_propagates_errors(store):
    store.follow(complete_show(1))
    orchestrator = orchestrator_for(store, FakeCatalog(failing={1}))

    with pytest.raises(CatalogError):
        await orchestrator.refresh_one(1)
    with pytest.raises(ShowNotFoundError):
        await orchestrator.refresh_one(42)


@pytest.mark.asyncio
async def test_watch_marks_survive_a_refresh(store):
    store.follow(complete_show(1), followed_at=LONG_AGO)
    LibraryService(store, FakeCatalog()).mark_episode_watched(
        1, 1, 1, watched_at=datetime(2025, 3, 1, 21, 0)
    )
    orchestrator = orchestrator_for(store, FakeCatalog(shows={1: complete_show(1, "Renamed")}))

    record = await orchestrator.refresh_one(1)

    assert record.show.name == "Renamed"
    assert record.show.seasons[0].episodes[0].watched_date == datetime(2025, 3, 1, 21, 0)


def test_merge_watch_state_does_not_touch_fresh_input():
    cached = complete_show(1)
    cached.seasons[0].watched_date = datetime(2025, 3, 1)
    fresh = complete_show(1)

    merged = merge_watch_state(cached, fresh)

    assert merged.seasons[0].watched_date == datetime(2025, 3, 1)
    assert fresh.seasons[0].watched_date is None
    assert merge_watch_state(None, fresh) is fresh


class MarkingCatalog(FakeCatalog):
    """Marks an episode watched while the show's fetch is in flight."""

    def __init__(self, library, **kwargs):
        super().__init__(**kwargs)
        self.library = library

    async def fetch_show_details(self, show_id):
        self.library.mark_episode_watched(show_id, 1, 1, watched_at=datetime(2025, 3, 15, 22, 0))
        return await super().fetch_show_details(show_id)


@pytest.mark.asyncio
async def test_mark_made_during_a_fetch_is_kept(store):
    store.follow(complete_show(1), followed_at=LONG_AGO)
    library = LibraryService(store, FakeCatalog())
    catalog = MarkingCatalog(library, shows={1: complete_show(1, "Renamed")})

    report = await orchestrator_for(store, catalog).refresh_with_api_data()

    assert report.refreshed == [1]
    show = store.get_followed(1).show
    assert show.name == "Renamed"
    assert show.seasons[0].episodes[0].watched_date == datetime(2025, 3, 15, 22, 0)


@pytest.mark.asyncio
async def test_overlapping_pass_is_skipped(store):
    store.follow(complete_show(1), followed_at=LONG_AGO)
    catalog = FakeCatalog(shows={1: complete_show(1)}, delay=0.05)
    orchestrator = orchestrator_for(store, catalog)

    first, second = await asyncio.gather(
        orchestrator.force_refresh_all(), orchestrator.refresh_states_only()
    )

    assert first.refreshed == [1]
    assert not first.already_running
    assert second.already_running
    assert second.checked == 0
    assert catalog.calls == [1]
    assert not orchestrator.is_running

    # The lock is released once the first pass ends
    third = await orchestrator.refresh_states_only()
    assert not third.already_running
    assert third.checked == 1


@pytest.mark.asyncio
async def test_staleness_uses_the_pinned_instant(store):
    # Six hours before NOW, long ago by the wall clock
    store.follow(complete_show(1), followed_at=datetime(2025, 3, 15, 6, 0))
    catalog = FakeCatalog(shows={1: complete_show(1)})
    orchestrator = orchestrator_for(store, catalog)

    report = await orchestrator.refresh_all(fetch_from_api=True, now=NOW)
    assert catalog.calls == []
    assert report.skipped == 1

    await orchestrator.refresh_all(fetch_from_api=True, now=NOW + timedelta(days=1))
    assert catalog.calls == [1]
