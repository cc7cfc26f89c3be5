"""Normalization of free-text stamp fields into canonical values.

Every function here is pure and total: unrecognised or missing input maps to
``StampShape.OTHER`` or ``None``, never to an exception. Classification is
driven by ordered lookup tables; the first token found in the text wins.
"""

import re
from collections.abc import Iterable

from ..utils.japanese_text import normalize_width
from .models import NormalizedStamp, ScrapedStamp, StampShape

# Polygon words come first so that 六角形 is not read as 角形
SHAPE_TABLE: tuple[tuple[str, StampShape], ...] = (
    ("六角形", StampShape.HEXAGON),
    ("五角形", StampShape.PENTAGON),
    ("円形", StampShape.CIRCLE),
    ("丸形", StampShape.CIRCLE),
    ("四角形", StampShape.SQUARE),
    ("正方形", StampShape.SQUARE),
    ("長方形", StampShape.SQUARE),
    ("角形", StampShape.SQUARE),
    ("四角", StampShape.SQUARE),
    ("円", StampShape.CIRCLE),
    ("丸", StampShape.CIRCLE),
    ("hexagon", StampShape.HEXAGON),
    ("pentagon", StampShape.PENTAGON),
    ("circle", StampShape.CIRCLE),
    ("round", StampShape.CIRCLE),
    ("square", StampShape.SQUARE),
    ("rectangle", StampShape.SQUARE),
)

COLOR_TABLE: tuple[tuple[str, str], ...] = (
    ("赤", "red"),
    ("紅", "red"),
    ("朱", "vermillion"),
    ("橙", "orange"),
    ("オレンジ", "orange"),
    ("黄", "yellow"),
    ("緑", "green"),
    ("水色", "light blue"),
    ("青", "blue"),
    ("紺", "navy"),
    ("紫", "purple"),
    ("ピンク", "pink"),
    ("桃", "pink"),
    ("茶", "brown"),
    ("黒", "black"),
    ("灰", "gray"),
    ("グレー", "gray"),
    ("白", "white"),
    ("金", "gold"),
    ("銀", "silver"),
)

_NUMBER = r"(\d+(?:\.\d+)?)"
_HEIGHT_RE = re.compile(rf"縦\s*{_NUMBER}\s*cm", re.IGNORECASE)
_WIDTH_RE = re.compile(rf"横\s*{_NUMBER}\s*cm", re.IGNORECASE)
_DIAMETER_RES = (
    re.compile(rf"(?:直径|径)\s*{_NUMBER}\s*cm", re.IGNORECASE),
    re.compile(rf"{_NUMBER}\s*cm.*[円丸]", re.IGNORECASE),
)
_ANY_CM_RE = re.compile(rf"{_NUMBER}\s*cm", re.IGNORECASE)


def classify_shape(size_text: str | None) -> StampShape:
    """Classify the stamp outline from its size description."""
    if not size_text:
        return StampShape.OTHER

    text = normalize_width(size_text).casefold()
    for token, shape in SHAPE_TABLE:
        if token in text:
            return shape

    return StampShape.OTHER


def extract_size_cm(size_text: str | None) -> str | None:
    """Extract a compact size such as ``"5x5cm"`` or ``"6cm"``.

    Prefers a height/width pair, then a diameter, then any ``<n>cm`` token.
    """
    if not size_text:
        return None

    text = normalize_width(size_text)

    height = _HEIGHT_RE.search(text)
    width = _WIDTH_RE.search(text)
    if height and width:
        return f"{height.group(1)}x{width.group(1)}cm"

    for pattern in _DIAMETER_RES:
        diameter = pattern.search(text)
        if diameter:
            return f"{diameter.group(1)}cm"

    any_size = _ANY_CM_RE.search(text)
    if any_size:
        return f"{any_size.group(1)}cm"

    return None


def translate_color(color_text: str | None) -> str | None:
    """Translate a Japanese ink colour to English.

    Text that matches no lexicon entry is returned unchanged.
    """
    if not color_text or not color_text.strip():
        return None

    for token, english in COLOR_TABLE:
        if token in color_text:
            return english

    return color_text


def normalize_stamp(stamp: ScrapedStamp) -> NormalizedStamp:
    """Derive normalized fields, keeping the scraped text alongside them."""
    scraped = stamp.model_dump(include=set(ScrapedStamp.model_fields))
    return NormalizedStamp(
        **scraped,
        shape=classify_shape(stamp.size),
        size_cm=extract_size_cm(stamp.size),
        color_en=translate_color(stamp.color),
    )


def normalize_stamps(stamps: Iterable[ScrapedStamp]) -> list[NormalizedStamp]:
    """Normalize every stamp of a page."""
    return [normalize_stamp(stamp) for stamp in stamps]
