"""Reconciliation of scraped locations with canonical stations."""

from .station_matcher import (
    COORDINATE_THRESHOLD_KM,
    StationMatcher,
    coordinate_confidence,
    match_results,
)
from .station_store import InMemoryStationStore, StationStore

__all__ = [
    "COORDINATE_THRESHOLD_KM",
    "InMemoryStationStore",
    "StationMatcher",
    "StationStore",
    "coordinate_confidence",
    "match_results",
]
