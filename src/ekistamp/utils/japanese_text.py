"""Japanese text processing utilities."""

import re
import threading
from typing import Any

import jaconv
import pykakasi

# Operator prefixes that never appear in canonical station names
_NAME_PREFIX_RE = re.compile(r"^(?:JR|国鉄|私鉄)\s*")
_NAME_SUFFIX_RE = re.compile(r"駅$")
_NAME_QUALIFIER_RE = re.compile(r"\s*[（(][^（()）]*[）)]$")


class JapaneseTextConverter:
    """Converts kanji and katakana to a hiragana reading."""

    def __init__(self) -> None:
        """Initialize the converter with lazy pykakasi initialization."""
        self._kks: Any = None
        self._lock = threading.Lock()

    def _get_kakasi(self) -> Any:
        """Get pykakasi converter with thread-safe lazy initialization."""
        if self._kks is None:
            with self._lock:
                if self._kks is None:  # Double-check locking pattern
                    self._kks = pykakasi.kakasi()
        return self._kks

    def to_hiragana(self, text: str) -> str:
        """Convert text to hiragana."""
        # First convert katakana to hiragana
        hiragana = jaconv.kata2hira(text)

        # Then convert kanji to hiragana using pykakasi
        result = self._get_kakasi().convert(hiragana)
        return "".join([item["hira"] for item in result])


# Thread-safe singleton implementation
_converter: JapaneseTextConverter | None = None
_converter_lock = threading.Lock()


def get_converter() -> JapaneseTextConverter:
    """Get a thread-safe singleton instance of the Japanese text converter."""
    global _converter
    if _converter is None:
        with _converter_lock:
            if _converter is None:  # Double-check locking pattern
                _converter = JapaneseTextConverter()
    return _converter


def convert_to_hiragana(text: str) -> str:
    """Convert text to hiragana."""
    return get_converter().to_hiragana(text)


def normalize_width(text: str) -> str:
    """Convert full-width digits and ASCII to half width, keeping kana intact."""
    return jaconv.z2h(text, kana=False, ascii=True, digit=True)


def fold_kana(text: str) -> str:
    """Fold text for case- and kana-insensitive comparison."""
    return jaconv.kata2hira(normalize_width(text)).casefold()


def station_name_key(name: str) -> str:
    """Reduce a scraped location name to a canonical station name.

    Strips operator prefixes (JR, 国鉄, 私鉄), the trailing 駅 and a trailing
    parenthetical qualifier such as （北海道）.

    Examples:
        >>> station_name_key("JR東京駅")
        '東京'
        >>> station_name_key("大手町（東京都）")
        '大手町'
    """
    key = name.strip()
    key = _NAME_PREFIX_RE.sub("", key)
    key = _NAME_QUALIFIER_RE.sub("", key)
    key = _NAME_SUFFIX_RE.sub("", key)
    return key.strip()
