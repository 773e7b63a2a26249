"""Lifecycle state of a show or season."""

from enum import Enum


class ShowLifecycleState(str, Enum):
    """Derived from air dates and show status, never set by the user."""

    # Announced, not started yet
    ANTICIPATED = "anticipated"
    # Started, at least one episode still to air
    AIRING = "airing"
    # Every episode has aired (or the show ended)
    COMPLETED = "completed"
    # Cancelled upstream, ready to binge regardless of completion
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value) -> "ShowLifecycleState":
        """Unknown persisted tags degrade to anticipated."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.ANTICIPATED
