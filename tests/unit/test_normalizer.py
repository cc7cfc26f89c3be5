"""Unit tests for stamp field normalization."""

import pytest

from ekistamp.core.models import NormalizedStamp, ScrapedStamp, StampShape, StampStatus
from ekistamp.core.normalizer import (
    COLOR_TABLE,
    classify_shape,
    extract_size_cm,
    normalize_stamp,
    normalize_stamps,
    translate_color,
)


class TestClassifyShape:
    """Test shape classification."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("直径6cmの円形", StampShape.CIRCLE),
            ("丸形 5cm", StampShape.CIRCLE),
            ("縦5cm×横5cmの四角形", StampShape.SQUARE),
            ("長方形", StampShape.SQUARE),
            ("六角形", StampShape.HEXAGON),
            ("五角形のスタンプ", StampShape.PENTAGON),
            ("Round, 6cm", StampShape.CIRCLE),
            ("ＳＱＵＡＲＥ", StampShape.SQUARE),
        ],
    )
    def test_known_shapes(self, text, expected):
        assert classify_shape(text) == expected

    def test_hexagon_is_not_square(self):
        """Test 六角形 is not read as the 角形 it contains."""
        assert classify_shape("六角形 7cm") == StampShape.HEXAGON

    def test_unknown_or_missing(self):
        assert classify_shape("縦5cm×横5cm") == StampShape.OTHER
        assert classify_shape("") == StampShape.OTHER
        assert classify_shape(None) == StampShape.OTHER


class TestExtractSizeCm:
    """Test size extraction."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("縦5cm×横5cm", "5x5cm"),
            ("縦 6.5 cm 横 4 cm", "6.5x4cm"),
            ("縦５ｃｍ×横４ｃｍ", "5x4cm"),
            ("直径6cm", "6cm"),
            ("径 5.5cm", "5.5cm"),
            ("6cmの丸形", "6cm"),
            ("約7cm", "7cm"),
            ("縦8cm", "8cm"),
        ],
    )
    def test_sizes(self, text, expected):
        assert extract_size_cm(text) == expected

    def test_no_size(self):
        assert extract_size_cm("大きめ") is None
        assert extract_size_cm("") is None
        assert extract_size_cm(None) is None


class TestTranslateColor:
    """Test ink colour translation."""

    @pytest.mark.parametrize("token,english", COLOR_TABLE)
    def test_every_lexicon_entry(self, token, english):
        """Test each lexicon token translates as a colour word."""
        assert translate_color(f"{token}色") == english

    def test_first_entry_wins(self):
        assert translate_color("赤と青") == "red"

    def test_unknown_passes_through(self):
        assert translate_color("セピア") == "セピア"

    def test_empty(self):
        assert translate_color("") is None
        assert translate_color("   ") is None
        assert translate_color(None) is None


class TestNormalizeStamp:
    """Test whole-record normalization."""

    def setup_method(self):
        """Set up test fixtures."""
        self.stamp = ScrapedStamp(
            title="東京駅スタンプ",
            size="縦5cm×横5cm",
            color="赤",
            status=StampStatus.LIMITED,
            available_from="2020年4月1日",
        )

    def test_keeps_scraped_fields(self):
        normalized = normalize_stamp(self.stamp)

        assert isinstance(normalized, NormalizedStamp)
        assert normalized.title == "東京駅スタンプ"
        assert normalized.size == "縦5cm×横5cm"
        assert normalized.color == "赤"
        assert normalized.status == StampStatus.LIMITED
        assert normalized.available_from == "2020年4月1日"

    def test_derived_fields(self):
        normalized = normalize_stamp(self.stamp)

        assert normalized.shape == StampShape.OTHER
        assert normalized.size_cm == "5x5cm"
        assert normalized.color_en == "red"

    def test_idempotent(self):
        """Test normalizing an already normalized stamp changes nothing."""
        once = normalize_stamp(self.stamp)
        assert normalize_stamp(once) == once

    def test_missing_fields(self):
        normalized = normalize_stamp(ScrapedStamp(title="無名"))

        assert normalized.shape == StampShape.OTHER
        assert normalized.size_cm is None
        assert normalized.color_en is None

    def test_normalize_stamps(self):
        assert len(normalize_stamps([self.stamp, ScrapedStamp(title="無名")])) == 2
        assert normalize_stamps([]) == []
