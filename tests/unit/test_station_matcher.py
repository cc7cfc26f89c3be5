"""Unit tests for station matching."""

import json

import pytest

from ekistamp.core.models import (
    CanonicalStation,
    Coordinates,
    LocationInfo,
    MatchType,
    NearbyStation,
    ScrapedPage,
    ScrapeResult,
)
from ekistamp.matching import (
    InMemoryStationStore,
    StationMatcher,
    coordinate_confidence,
    match_results,
)

PAGE_URL = "https://stamp.funakiya.com/test.html"

# Roughly 0.2 km of latitude
LAT_200M = 0.2 / 111.195


def station(id, name, kana=None, lat=None, lon=None):
    coordinates = Coordinates(lat=lat, lon=lon) if lat is not None else None
    return CanonicalStation(id=id, name=name, name_kana=kana, coordinates=coordinates)


def location(name, lat=None, lon=None):
    coordinates = Coordinates(lat=lat, lon=lon) if lat is not None else None
    return LocationInfo(name=name, coordinates=coordinates, page_url=PAGE_URL)


class FixedDistanceStore:
    """Store that reports one station at a fixed distance."""

    def __init__(self, target, distance_m):
        self.target = target
        self.distance_m = distance_m

    def find_by_name(self, key):
        return []

    def find_by_name_containing(self, key):
        return []

    def find_nearby(self, lat, lon, radius_m):
        if self.distance_m > radius_m:
            return []
        return [NearbyStation(station=self.target, distance_m=self.distance_m)]


@pytest.fixture
def stations():
    """Small canonical dataset."""
    return [
        station(1, "東京", "とうきょう", 35.681236, 139.767125),
        station(2, "神田", "かんだ", 35.691690, 139.770883),
        station(3, "大手町", "おおてまち", 35.0, 139.0),
        station(4, "大手町", "おおてまち", 36.0, 140.0),
        station(5, "品川", "しながわ", 35.628471, 139.738760),
        station(6, "東京テレポート", "とうきょうてれぽーと", 35.627, 139.778),
    ]


@pytest.fixture
def matcher(stations):
    return StationMatcher(InMemoryStationStore(stations, fill_kana=False))


class TestStationMatcher:
    """Test the matching cascade."""

    def test_unique_exact_name(self, matcher):
        result = matcher.match(location("JR東京駅"))

        assert result.station_id == 1
        assert result.match_type == MatchType.EXACT_NAME
        assert result.confidence == 1.0
        assert result.matched_name == "東京"

    def test_exact_name_beats_coordinates(self, matcher):
        """Test an unambiguous name wins over a coordinate on another station."""
        result = matcher.match(location("東京駅", 35.691690, 139.770883))

        assert result.station_id == 1
        assert result.match_type == MatchType.EXACT_NAME
        assert result.confidence == 1.0

    def test_duplicate_names_disambiguated_by_coordinates(self, matcher):
        """Test the nearer of two same-name stations wins with 0.95."""
        result = matcher.match(location("大手町駅", 35.0 + LAT_200M, 139.0))

        assert result.station_id == 3
        assert result.match_type == MatchType.EXACT_NAME
        assert result.confidence == 0.95

    def test_duplicate_names_without_coordinates_defer(self, matcher):
        """Test ambiguity never picks arbitrarily."""
        result = matcher.match(location("大手町"))

        assert result.station_id is None
        assert result.match_type == MatchType.NONE
        assert result.confidence == 0.0

    def test_coordinates_at_station(self, matcher):
        result = matcher.match(location("未知の場所", 35.628471, 139.738760))

        assert result.station_id == 5
        assert result.match_type == MatchType.COORDINATES
        assert result.confidence == pytest.approx(1.0)

    def test_coordinates_out_of_range_fall_through(self, matcher):
        result = matcher.match(location("未知の場所", 40.0, 141.0))

        assert result.match_type == MatchType.NONE

    def test_fuzzy_single_hit(self, matcher):
        result = matcher.match(location("テレポート駅"))

        assert result.station_id == 6
        assert result.match_type == MatchType.FUZZY_NAME
        assert result.confidence == 0.7

    def test_fuzzy_matches_kana(self, matcher):
        """Test substring matching against the kana name, katakana folded."""
        result = matcher.match(location("シナガワ"))

        assert result.station_id == 5
        assert result.match_type == MatchType.FUZZY_NAME

    def test_fuzzy_ambiguous_defers(self, matcher):
        """Test several substring hits give no match."""
        result = matcher.match(location("京"))

        assert result.match_type == MatchType.NONE

    def test_no_match(self, matcher):
        result = matcher.match(location("存在しない駅"))

        assert result.station_id is None
        assert result.match_type == MatchType.NONE
        assert result.confidence == 0.0

    def test_strategies_are_ordered(self, matcher):
        assert [s.__name__ for s in matcher.strategies] == [
            "_match_exact_name",
            "_match_coordinates",
            "_match_fuzzy_name",
        ]


class TestCoordinateConfidence:
    """Test coordinate confidence arithmetic."""

    @pytest.mark.parametrize(
        "distance_m,expected",
        [(0, 1.0), (100, 0.8), (250, 0.5), (400, 0.5), (500, 0.5)],
    )
    def test_boundaries(self, distance_m, expected):
        """Test linear decay floored at 0.5 up to the 0.5 km threshold."""
        target = station(9, "渋谷")
        matcher = StationMatcher(FixedDistanceStore(target, distance_m))

        result = matcher.match(location("どこか", 35.0, 139.0))

        assert result.match_type == MatchType.COORDINATES
        assert result.station_id == 9
        assert result.confidence == pytest.approx(expected)

    def test_beyond_threshold(self):
        matcher = StationMatcher(FixedDistanceStore(station(9, "渋谷"), 501))

        assert matcher.match(location("どこか", 35.0, 139.0)).match_type == MatchType.NONE

    def test_coordinate_confidence(self):
        assert coordinate_confidence(0.0) == 1.0
        assert coordinate_confidence(0.5) == 0.5
        assert coordinate_confidence(0.4) == 0.5


class TestInMemoryStationStore:
    """Test the in-memory station store."""

    def test_find_by_name(self, stations):
        store = InMemoryStationStore(stations, fill_kana=False)

        assert [s.id for s in store.find_by_name("大手町")] == [3, 4]
        assert store.find_by_name("渋谷") == []

    def test_find_by_name_containing_is_case_insensitive(self):
        store = InMemoryStationStore(
            [station(1, "Tokyo Teleport", "とうきょうてれぽーと")], fill_kana=False
        )

        assert [s.id for s in store.find_by_name_containing("teleport")] == [1]
        assert [s.id for s in store.find_by_name_containing("テレポート")] == [1]
        assert store.find_by_name_containing("") == []

    def test_find_nearby_sorted(self, stations):
        store = InMemoryStationStore(stations, fill_kana=False)

        nearby = store.find_nearby(35.681236, 139.767125, 2000)

        assert [n.station.id for n in nearby] == [1, 2]
        assert nearby[0].distance_m == pytest.approx(0.0)
        assert 1000 < nearby[1].distance_m < 1500

    def test_fills_missing_kana(self):
        store = InMemoryStationStore([station(1, "新宿")])

        assert store.stations[0].name_kana == "しんじゅく"
        assert [s.id for s in store.find_by_name_containing("しんじゅく")] == [1]

    def test_from_json(self, tmp_path):
        path = tmp_path / "stations.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "id": 1,
                        "name": "東京",
                        "name_kana": "とうきょう",
                        "coordinates": {"lat": 35.681236, "lon": 139.767125},
                        "prefecture_id": 13,
                    }
                ],
                ensure_ascii=False,
            ),
            encoding="utf-8",
        )

        store = InMemoryStationStore.from_json(path)

        assert len(store) == 1
        assert store.stations[0].prefecture_id == 13


def test_match_results(matcher):
    """Test results are paired with their matches in order."""
    results = [
        ScrapeResult(page=ScrapedPage(location=location("東京駅"))),
        ScrapeResult(page=ScrapedPage(location=location("存在しない駅"))),
    ]

    pairs = match_results(matcher, results)

    assert [match.match_type for _result, match in pairs] == [
        MatchType.EXACT_NAME,
        MatchType.NONE,
    ]
    assert pairs[0][0] is results[0]
