"""Utility modules for ekistamp."""

from .geo import haversine_m
from .japanese_text import (
    JapaneseTextConverter,
    convert_to_hiragana,
    fold_kana,
    get_converter,
    normalize_width,
    station_name_key,
)

__all__ = [
    "JapaneseTextConverter",
    "convert_to_hiragana",
    "fold_kana",
    "get_converter",
    "haversine_m",
    "normalize_width",
    "station_name_key",
]
