"""Unit tests for the episode, season and show value types."""
from datetime import datetime, timedelta

from binge_tracker.models import Episode, EpisodeType, Show, ShowStatus

from conftest import NOW, days, make_episode, make_season, make_show


class TestEpisode:
    def test_aired_today_counts_as_aired(self):
        assert make_episode(1, days(0)).has_aired(NOW)

    def test_future_and_undated_have_not_aired(self):
        assert not make_episode(1, days(1)).has_aired(NOW)
        assert not make_episode(1, None).has_aired(NOW)

    def test_days_until_air(self):
        assert make_episode(1, days(3)).days_until_air(NOW) == 3
        assert make_episode(1, days(-3)).days_until_air(NOW) is None

    def test_unknown_episode_type_degrades_to_standard(self):
        ep = Episode(id=1, episode_number=1, season_number=1, episode_type="double_feature")
        assert ep.episode_type is EpisodeType.STANDARD

    def test_malformed_air_date_is_treated_as_missing(self):
        ep = Episode(id=1, episode_number=1, season_number=1, air_date="not-a-date")
        assert ep.air_date is None
        assert not ep.has_aired(NOW)

    def test_episode_code(self):
        assert make_episode(7, None, season_number=2).episode_code == "S02E07"


class TestFinaleResolution:
    def test_untyped_season_uses_last_episode(self):
        season = make_season(1, days(-10), [days(-10), days(-3), days(4)])
        assert season.finale.episode_number == 3
        assert season.has_confirmed_finale

    def test_tagged_finale_is_used(self):
        season = make_season(1, days(-10), [days(-10), days(-3), days(4)], finale_tagged=True)
        assert season.finale.episode_number == 3
        assert season.finale_date == days(4)

    def test_partially_typed_season_has_unknown_finale(self):
        season = make_season(1, days(-10), [days(-10), days(-3), days(4)])
        season.episodes[1].episode_type = EpisodeType.MID_SEASON
        assert season.finale is None
        assert not season.has_confirmed_finale
        assert season.days_until_finale(NOW) is None
        assert season.episodes_until_finale(NOW) is None

    def test_last_episode_is_highest_number_not_position(self):
        season = make_season(1, days(-10), [days(-10), days(-3)])
        season.episodes.insert(0, make_episode(3, days(11)))
        assert season.last_episode.episode_number == 3
        assert season.finale.air_date == days(11)


class TestSeason:
    def test_empty_season_is_never_complete_or_binge_ready(self):
        season = make_season(1, days(-10), [])
        assert not season.is_complete(NOW)
        assert not season.is_binge_ready(NOW)

    def test_all_aired_is_complete(self):
        season = make_season(1, days(-1), [days(-1)] * 5)
        assert season.is_complete(NOW)
        assert season.has_started(NOW)
        assert not season.is_airing(NOW)
        assert season.is_binge_ready(NOW)

    def test_one_undated_episode_keeps_season_incomplete(self):
        season = make_season(1, days(-10), [days(-10), None])
        assert not season.is_complete(NOW)
        assert season.is_airing(NOW)

    def test_days_until_finale_includes_today(self):
        season = make_season(1, days(-7), [days(-7), days(0)])
        assert season.days_until_finale(NOW) == 0

    def test_days_until_finale_none_once_past(self):
        season = make_season(1, days(-7), [days(-7), days(-1)])
        assert season.days_until_finale(NOW) is None

    def test_days_until_premiere(self):
        assert make_season(2, days(30)).days_until_premiere(NOW) == 30
        assert make_season(2, days(-1)).days_until_premiere(NOW) is None
        assert make_season(2, None).days_until_premiere(NOW) is None

    def test_episodes_until_finale(self):
        season = make_season(1, days(-7), [days(-7 - i) for i in range(5)] + [days(i + 1) for i in range(5)])
        assert season.episodes_until_finale(NOW) == 5
        assert make_season(1, days(-3), [days(-3)]).episodes_until_finale(NOW) is None

    def test_watched_when_all_aired_episodes_watched(self):
        season = make_season(1, days(-10), [days(-10), days(-3), days(5)])
        for ep in season.episodes[:2]:
            ep.watched_date = NOW.replace(tzinfo=None)
        assert season.is_watched(NOW)
        assert season.watched_episode_count() == 2

    def test_watched_season_is_not_binge_ready(self):
        season = make_season(1, days(-10), [days(-10), days(-3)])
        season.watched_date = datetime(2025, 3, 1)
        assert season.is_complete(NOW)
        assert not season.is_binge_ready(NOW)


class TestShow:
    def test_unknown_status_degrades_to_planned(self):
        show = Show(id=1, name="X", status="Rebooted Somehow")
        assert show.status is ShowStatus.PLANNED

    def test_current_season_prefers_airing(self):
        show = make_show(seasons=[
            make_season(1, days(-400), [days(-400)]),
            make_season(2, days(-7), [days(-7), days(7)]),
            make_season(3, days(200)),
        ])
        assert show.current_season(NOW).season_number == 2

    def test_current_season_falls_back_to_earliest_upcoming(self):
        show = make_show(seasons=[
            make_season(1, days(-400), [days(-400)]),
            make_season(3, days(400)),
            make_season(2, days(30)),
        ])
        assert show.current_season(NOW).season_number == 2
        assert show.upcoming_season(NOW).season_number == 2

    def test_current_season_falls_back_to_latest_complete(self):
        show = make_show(seasons=[
            make_season(1, days(-400), [days(-400)]),
            make_season(2, days(-100), [days(-100)]),
        ])
        assert show.current_season(NOW).season_number == 2
        assert show.upcoming_season(NOW) is None

    def test_specials_are_ignored(self):
        show = make_show(seasons=[make_season(0, days(-7), [days(-7), days(7)])])
        assert show.current_season(NOW) is None

    def test_snapshot_json_keeps_watch_marks(self):
        show = make_show(seasons=[make_season(1, days(-10), [days(-10)])])
        show.seasons[0].episodes[0].watched_date = datetime(2025, 3, 1, 20, 0)
        restored = Show.model_validate_json(show.model_dump_json())
        assert restored.seasons[0].episodes[0].is_watched
        assert restored.seasons[0].episodes[0].air_date == days(-10)

    def test_days_until_premiere_uses_upcoming_season(self):
        show = make_show(seasons=[
            make_season(1, days(-400), [days(-400)]),
            make_season(2, days(30)),
        ])
        assert show.days_until_premiere(NOW) == 30
        assert show.days_until_premiere(NOW + timedelta(days=1)) == 29
