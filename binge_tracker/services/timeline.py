"""Timeline grouping service: buckets followed shows into display categories."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional

from ..models import Season, Show, ShowLifecycleState
from .lifecycle import derive_state


class TimelineCategory(str, Enum):
    """Timeline categories for displaying shows."""

    BINGE_READY = "binge_ready"
    AIRING_NOW = "airing_now"
    PREMIERING_SOON = "premiering_soon"
    ANTICIPATED = "anticipated"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @property
    def display_order(self) -> int:
        """Lower sorts first."""
        return _CATEGORY_ORDER[self]


_CATEGORY_LABELS = {
    TimelineCategory.BINGE_READY: "Binge Ready",
    TimelineCategory.AIRING_NOW: "Airing Now",
    TimelineCategory.PREMIERING_SOON: "Premiering Soon",
    TimelineCategory.ANTICIPATED: "Anticipated",
}

_CATEGORY_ORDER = {
    TimelineCategory.BINGE_READY: 0,
    TimelineCategory.AIRING_NOW: 1,
    TimelineCategory.PREMIERING_SOON: 2,
    TimelineCategory.ANTICIPATED: 3,
}


class CountdownType(str, Enum):
    TO_FINALE = "to_finale"
    TO_PREMIERE = "to_premiere"


class CountdownDisplayMode(str, Enum):
    """How the UI presents an airing countdown (days or episodes left)."""

    DAYS = "days"
    EPISODES = "episodes"

    @classmethod
    def parse(cls, value) -> "CountdownDisplayMode":
        try:
            return cls(value)
        except ValueError:
            return cls.DAYS


@dataclass(frozen=True)
class CountdownInfo:
    """Countdown towards a finale or a premiere."""

    type: CountdownType
    days: int
    target_date: date

    @property
    def description(self) -> str:
        unit = "day" if self.days == 1 else "days"
        if self.type is CountdownType.TO_FINALE:
            return f"Finale in {self.days} {unit}"
        return f"Premieres in {self.days} {unit}"

    @property
    def short_description(self) -> str:
        return f"{self.days}d"

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "days": self.days,
            "target_date": self.target_date.isoformat(),
            "description": self.description,
            "short_description": self.short_description,
        }


@dataclass(frozen=True)
class TimelineEntry:
    """A show placed in a timeline category."""

    show: Show
    category: TimelineCategory
    countdown: Optional[CountdownInfo] = None

    @property
    def id(self) -> int:
        return self.show.id


@dataclass(frozen=True)
class BingeReadySeason:
    """A season ready to watch start to finish, with its show."""

    show: Show
    season: Season


def _by_name(entry: TimelineEntry) -> str:
    return entry.show.name


def _by_countdown_then_name(entry: TimelineEntry) -> tuple:
    # Entries without a countdown sort after every dated one, then by name
    if entry.countdown is None:
        return (1, 0, entry.show.name)
    return (0, entry.countdown.days, entry.show.name)


class TimelineService:
    """Service for grouping and sorting shows by timeline category.

    Every method is pure over its input; `now` pins the instant used for all
    air-date comparisons and defaults to the current time.
    """

    def categorize(self, show: Show, now: Optional[datetime] = None) -> TimelineCategory:
        """Determine which timeline category a show belongs to."""
        state = derive_state(show, now=now)

        if state is ShowLifecycleState.CANCELLED:
            return TimelineCategory.BINGE_READY

        if state is ShowLifecycleState.COMPLETED:
            # Renewed but the next season has no data yet: more is coming
            if show.in_production:
                return TimelineCategory.ANTICIPATED
            return TimelineCategory.BINGE_READY

        if state is ShowLifecycleState.AIRING:
            return TimelineCategory.AIRING_NOW

        if show.days_until_premiere(now) is not None:
            return TimelineCategory.PREMIERING_SOON
        return TimelineCategory.ANTICIPATED

    def create_entry(self, show: Show, now: Optional[datetime] = None) -> TimelineEntry:
        """Create a timeline entry with countdown info for a show."""
        category = self.categorize(show, now)
        countdown = self._calculate_countdown(show, category, now)
        return TimelineEntry(show=show, category=category, countdown=countdown)

    def group_by_category(
        self, shows: list[Show], now: Optional[datetime] = None
    ) -> dict[TimelineCategory, list[TimelineEntry]]:
        """Group shows by category. Every category is present, possibly empty."""
        grouped: dict[TimelineCategory, list[TimelineEntry]] = {
            category: [] for category in TimelineCategory
        }

        for show in shows:
            entry = self.create_entry(show, now)
            grouped[entry.category].append(entry)

        for category in TimelineCategory:
            grouped[category] = self.sort_entries(grouped[category], category)

        return grouped

    def sorted_categories(
        self, grouped: dict[TimelineCategory, list[TimelineEntry]]
    ) -> list[tuple[TimelineCategory, list[TimelineEntry]]]:
        """Non-empty categories in display order with their entries."""
        return [
            (category, grouped[category])
            for category in sorted(TimelineCategory, key=lambda c: c.display_order)
            if grouped.get(category)
        ]

    def sort_entries(
        self, entries: list[TimelineEntry], category: TimelineCategory
    ) -> list[TimelineEntry]:
        if category in (TimelineCategory.AIRING_NOW, TimelineCategory.PREMIERING_SOON):
            return sorted(entries, key=_by_countdown_then_name)
        return sorted(entries, key=_by_name)

    def dated_first(
        self, entries: list[TimelineEntry], now: Optional[datetime] = None
    ) -> list[TimelineEntry]:
        """Entries whose next season has a premiere date first, then by name."""

        def key(entry: TimelineEntry):
            upcoming = entry.show.upcoming_season(now)
            has_date = upcoming is not None and upcoming.air_date is not None
            return (not has_date, entry.show.name)

        return sorted(entries, key=key)

    def full_timeline(
        self, shows: list[Show], now: Optional[datetime] = None
    ) -> dict[str, list[TimelineEntry]]:
        """Sections of the full timeline view.

        Ending soon holds airing shows with a known finale, soonest first;
        anticipated puts shows with a premiere date ahead of the TBD ones.
        """
        grouped = self.group_by_category(shows, now)
        ending_soon = [
            entry for entry in grouped[TimelineCategory.AIRING_NOW]
            if entry.countdown is not None
        ]
        ending_soon.sort(key=lambda entry: entry.countdown.days)
        return {
            "ending_soon": ending_soon,
            "premiering_soon": grouped[TimelineCategory.PREMIERING_SOON],
            "anticipated": self.dated_first(grouped[TimelineCategory.ANTICIPATED], now),
        }

    def binge_ready_seasons(
        self,
        shows: list[Show],
        include_airing: bool = False,
        now: Optional[datetime] = None,
    ) -> list[BingeReadySeason]:
        """Seasons ready to binge across shows, most recent finale first."""
        ready = []
        for show in shows:
            for season in show.regular_seasons:
                if season.is_binge_ready(now) or (include_airing and season.is_airing(now)):
                    ready.append(BingeReadySeason(show=show, season=season))

        dated = [item for item in ready if item.season.finale_date is not None]
        undated = [item for item in ready if item.season.finale_date is None]
        dated.sort(key=lambda item: item.season.finale_date, reverse=True)
        return dated + undated

    # ── Private helpers ─────────────────────────────────────────────

    def _calculate_countdown(
        self, show: Show, category: TimelineCategory, now: Optional[datetime]
    ) -> Optional[CountdownInfo]:
        if category is TimelineCategory.AIRING_NOW:
            days = show.days_until_finale(now)
            current = show.current_season(now)
            finale_date = current.finale_date if current else None
            if days is None or finale_date is None:
                return None
            return CountdownInfo(CountdownType.TO_FINALE, max(0, days), finale_date)

        if category is TimelineCategory.PREMIERING_SOON:
            days = show.days_until_premiere(now)
            upcoming = show.upcoming_season(now)
            current = show.current_season(now)
            premiere_date = upcoming.air_date if upcoming else None
            if premiere_date is None and current is not None:
                premiere_date = current.air_date
            if days is None or premiere_date is None:
                return None
            return CountdownInfo(CountdownType.TO_PREMIERE, max(0, days), premiere_date)

        return None
