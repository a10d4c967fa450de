"""Klei lobby tracker: harvests, enriches and serves DST lobby snapshots."""

__version__ = "0.1.0"
