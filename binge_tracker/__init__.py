"""binge-tracker: followed TV shows, their lifecycle state and countdowns."""

__version__ = "0.1.0"
