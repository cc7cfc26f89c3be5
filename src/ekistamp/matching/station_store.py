"""Canonical station lookups used by the matcher."""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from ..core.models import CanonicalStation, NearbyStation
from ..utils.geo import haversine_m
from ..utils.japanese_text import convert_to_hiragana, fold_kana

logger = logging.getLogger(__name__)


class StationStore(Protocol):
    """Query capability over the canonical station dataset."""

    def find_by_name(self, key: str) -> list[CanonicalStation]:
        """Stations whose name equals the key."""
        ...

    def find_by_name_containing(self, key: str) -> list[CanonicalStation]:
        """Stations whose name or kana name contains the key."""
        ...

    def find_nearby(self, lat: float, lon: float, radius_m: float) -> list[NearbyStation]:
        """Stations within ``radius_m`` metres, nearest first."""
        ...


class InMemoryStationStore:
    """Station store backed by a list loaded into memory."""

    def __init__(self, stations: Iterable[CanonicalStation], fill_kana: bool = True):
        """Initialize the store and build its search index.

        Args:
            stations: Canonical stations
            fill_kana: Derive a hiragana reading for stations without one
        """
        self.stations = [
            self._with_kana(station) if fill_kana else station for station in stations
        ]
        self._build_search_index()

    @staticmethod
    def _with_kana(station: CanonicalStation) -> CanonicalStation:
        if station.name_kana:
            return station
        return station.model_copy(update={"name_kana": convert_to_hiragana(station.name)})

    def _build_search_index(self) -> None:
        """Index stations by exact name and by folded name/kana terms."""
        self.name_index: dict[str, list[CanonicalStation]] = {}
        self.search_terms: list[tuple[CanonicalStation, list[str]]] = []

        for station in self.stations:
            self.name_index.setdefault(station.name, []).append(station)

            terms = [fold_kana(station.name)]
            if station.name_kana:
                terms.append(fold_kana(station.name_kana))
            self.search_terms.append((station, terms))

    @classmethod
    def from_json(cls, path: str | Path, fill_kana: bool = True) -> "InMemoryStationStore":
        """Load a JSON array of stations.

        Args:
            path: JSON file path
            fill_kana: Derive missing kana readings

        Returns:
            Populated store
        """
        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        stations = [CanonicalStation.model_validate(item) for item in data]
        logger.info(f"Loaded {len(stations)} stations from {path}")
        return cls(stations, fill_kana=fill_kana)

    def find_by_name(self, key: str) -> list[CanonicalStation]:
        return list(self.name_index.get(key, []))

    def find_by_name_containing(self, key: str) -> list[CanonicalStation]:
        needle = fold_kana(key)
        if not needle:
            return []
        return [
            station
            for station, terms in self.search_terms
            if any(needle in term for term in terms)
        ]

    def find_nearby(self, lat: float, lon: float, radius_m: float) -> list[NearbyStation]:
        nearby = []
        for station in self.stations:
            if station.coordinates is None:
                continue
            distance = haversine_m(lat, lon, station.coordinates.lat, station.coordinates.lon)
            if distance <= radius_m:
                nearby.append(NearbyStation(station=station, distance_m=distance))

        nearby.sort(key=lambda item: (item.distance_m, item.station.id))
        return nearby

    def __len__(self) -> int:
        return len(self.stations)
