"""Cascading matcher from scraped locations to canonical stations.

Strategies run in a fixed order and each one either returns a conclusive
``MatchResult`` or ``None`` to defer to the next. An ambiguous step always
defers; it never picks arbitrarily among several candidates.
"""

import logging
from collections.abc import Callable, Iterable

from ..core.models import (
    Coordinates,
    LocationInfo,
    MatchResult,
    MatchType,
    NearbyStation,
    ScrapeResult,
)
from ..utils.japanese_text import station_name_key
from .station_store import StationStore

logger = logging.getLogger(__name__)

COORDINATE_THRESHOLD_KM = 0.5

EXACT_CONFIDENCE = 1.0
DISAMBIGUATED_CONFIDENCE = 0.95
FUZZY_CONFIDENCE = 0.7
MIN_COORDINATE_CONFIDENCE = 0.5

Strategy = Callable[[LocationInfo, str], MatchResult | None]


def coordinate_confidence(distance_km: float) -> float:
    """Linear decay from 1.0 at the station to 0.5 at the threshold."""
    return max(MIN_COORDINATE_CONFIDENCE, 1 - distance_km / COORDINATE_THRESHOLD_KM)


class StationMatcher:
    """Resolves a scraped location to a canonical station with a confidence."""

    def __init__(self, store: StationStore):
        self.store = store
        self.strategies: list[Strategy] = [
            self._match_exact_name,
            self._match_coordinates,
            self._match_fuzzy_name,
        ]

    def match(self, location: LocationInfo) -> MatchResult:
        """Match a location; an unmatched location is a valid result, not an error."""
        key = station_name_key(location.name)

        for strategy in self.strategies:
            result = strategy(location, key)
            if result is not None:
                logger.debug(f"Matched {location.name} -> {result}")
                return result

        logger.debug(f"No station match for {location.name}")
        return MatchResult.no_match()

    def _match_exact_name(self, location: LocationInfo, key: str) -> MatchResult | None:
        if not key:
            return None

        hits = self.store.find_by_name(key)
        if len(hits) == 1:
            return MatchResult(
                station_id=hits[0].id,
                match_type=MatchType.EXACT_NAME,
                confidence=EXACT_CONFIDENCE,
                matched_name=hits[0].name,
            )

        if len(hits) > 1 and location.coordinates is not None:
            hit_ids = {station.id for station in hits}
            for nearby in self._nearby(location.coordinates):
                if nearby.station.id in hit_ids:
                    return MatchResult(
                        station_id=nearby.station.id,
                        match_type=MatchType.EXACT_NAME,
                        confidence=DISAMBIGUATED_CONFIDENCE,
                        matched_name=nearby.station.name,
                    )

        return None

    def _match_coordinates(self, location: LocationInfo, key: str) -> MatchResult | None:
        if location.coordinates is None:
            return None

        nearby = self._nearby(location.coordinates)
        if not nearby:
            return None

        closest = nearby[0]
        return MatchResult(
            station_id=closest.station.id,
            match_type=MatchType.COORDINATES,
            confidence=coordinate_confidence(closest.distance_km),
            matched_name=closest.station.name,
        )

    def _match_fuzzy_name(self, location: LocationInfo, key: str) -> MatchResult | None:
        if not key:
            return None

        hits = self.store.find_by_name_containing(key)
        if len(hits) != 1:
            return None

        return MatchResult(
            station_id=hits[0].id,
            match_type=MatchType.FUZZY_NAME,
            confidence=FUZZY_CONFIDENCE,
            matched_name=hits[0].name,
        )

    def _nearby(self, coordinates: Coordinates) -> list[NearbyStation]:
        return self.store.find_nearby(
            coordinates.lat,
            coordinates.lon,
            COORDINATE_THRESHOLD_KM * 1000,
        )


def match_results(
    matcher: StationMatcher, results: Iterable[ScrapeResult]
) -> list[tuple[ScrapeResult, MatchResult]]:
    """Pair each scraped page with its station match."""
    return [(result, matcher.match(result.page.location)) for result in results]
