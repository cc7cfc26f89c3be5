"""HTML extraction for stamp catalog index and detail pages.

Both entry points are pure functions of the markup: no I/O, and missing
fields come back as None rather than raising.
"""

import copy
import logging
import math
import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..core.config import BASE_URL
from ..core.exceptions import ExtractionError
from ..core.models import (
    Coordinates,
    LocationInfo,
    ScrapedPage,
    ScrapedStamp,
    StampStatus,
)

logger = logging.getLogger(__name__)

TITLE_SUFFIX = "のスタンプ"

# Disclosure heading markers, checked in order
STATUS_MARKERS: tuple[tuple[str, StampStatus], ...] = (
    ("廃止", StampStatus.DISCONTINUED),
    ("期間限定", StampStatus.LIMITED),
)

# Localized labels for "label：value" fields
NAME_EN_LABELS = ("EN", "英語名")
ADDRESS_LABELS = ("所在地", "住所")
GEO_LABELS = ("Geo URI", "緯度経度")
LOCATION_NOTE_LABELS = ("設置場所",)
SIZE_LABELS = ("サイズ", "大きさ")
COLOR_LABELS = ("色", "インク色")
PERIOD_LABELS = ("設置期間",)
STAMPED_DATE_LABELS = ("スタンプを押した日",)
STAMP_LABELS = (
    LOCATION_NOTE_LABELS + SIZE_LABELS + COLOR_LABELS + PERIOD_LABELS + STAMPED_DATE_LABELS
)

BLOCK_TAGS = ["p", "div", "li", "dt", "dd", "tr", "h1", "h2", "h3", "h4", "h5", "h6"]

_KANA_RE = re.compile(r"駅名称\s*[：:].+[（(](.+?)[）)]")
_POSTAL_RE = re.compile(r"^〒?\s*(\d{3}-?\d{4})\s*")
_COORD_RE = re.compile(r"(?:geo:)?\s*(-?[\d.]+)\s*,\s*(-?[\d.]+)")
_COMPANY_RE = re.compile(r"(.+?)のスタンプ")
_CM_LINE_RE = re.compile(r"\d\s*(?:cm|ｃｍ)", re.IGNORECASE)

# Range separators, most specific first
_RANGE_SEPARATORS = (
    re.compile(r"[～〜~]"),
    re.compile(r"\s+-\s+"),
    re.compile(r"[－—–]"),
)


def extract_links(markup: str, base_url: str = BASE_URL) -> list[str]:
    """Collect detail page links from an index page.

    Anchors in the article list are used when the page has one, otherwise
    every anchor on the page.

    Args:
        markup: Index page HTML
        base_url: Absolute prefix that crawlable pages start with

    Returns:
        Unique page URLs in document order
    """
    soup = BeautifulSoup(markup, "html.parser")
    anchors = soup.select("ul.allArticleList > li > a[href]") or soup.find_all(
        "a", href=True
    )

    urls: list[str] = []
    seen: set[str] = set()
    for anchor in anchors:
        href = str(anchor.get("href", "")).strip()
        if href.startswith(base_url) and href.endswith(".html") and href not in seen:
            seen.add(href)
            urls.append(href)

    return urls


def parse_detail(markup: str, page_url: str) -> ScrapedPage:
    """Parse a stamp detail page.

    A page without a stamp title is not a detail page (an index, a moved
    page or an error page served with 200). It is rejected rather than
    recorded as an empty location, so the crawl job for it fails and is
    retried under the attempt limit instead of completing.

    Args:
        markup: Detail page HTML
        page_url: URL the markup was fetched from

    Returns:
        The location and every stamp record found on the page

    Raises:
        ExtractionError: If the page has no stamp title
    """
    soup = BeautifulSoup(markup, "html.parser")

    title_el = soup.select_one(".articleHeader h2")
    title = title_el.get_text().strip() if title_el else ""
    name = title.removesuffix(TITLE_SUFFIX).strip()
    if not name:
        raise ExtractionError(f"No stamp page title found at {page_url}")

    body = soup.select_one(".articleBody")
    info_text = _block_text(body) if body else ""

    location = LocationInfo(
        name=name,
        name_kana=_extract_kana(info_text),
        name_en=_labeled_value(info_text, NAME_EN_LABELS),
        **_split_postal_code(_labeled_value(info_text, ADDRESS_LABELS)),
        coordinates=parse_coordinates(_labeled_value(info_text, GEO_LABELS)),
        company_name=_extract_company(soup),
        line_name=None,
        page_url=page_url,
    )

    stamps: list[ScrapedStamp] = []
    for section in soup.find_all("details"):
        summary = section.find("summary")
        status = stamp_status(summary.get_text() if summary else "")
        stamps.extend(_extract_stamps_from_section(section, status, page_url))

    return ScrapedPage(location=location, stamps=stamps)


def stamp_status(heading: str) -> StampStatus:
    """Map a disclosure section heading to a stamp status."""
    for marker, status in STATUS_MARKERS:
        if marker in heading:
            return status
    return StampStatus.AVAILABLE


def parse_coordinates(value: str | None) -> Coordinates | None:
    """Parse a ``lat,lon`` token; None unless both parts are finite numbers."""
    if not value:
        return None
    match = _COORD_RE.search(value)
    if not match:
        return None
    try:
        lat = float(match.group(1))
        lon = float(match.group(2))
    except ValueError:
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    return Coordinates(lat=lat, lon=lon)


def parse_availability(text: str | None) -> tuple[str | None, str | None]:
    """Split a labeled availability period into (from, until)."""
    value = _labeled_value(text or "", PERIOD_LABELS)
    if not value:
        return None, None

    parts = [value]
    for separator in _RANGE_SEPARATORS:
        if separator.search(value):
            parts = separator.split(value, maxsplit=1)
            break
    else:
        # A lone ASCII hyphen separates a range; more than one is a date format
        if value.count("-") == 1:
            parts = value.split("-", 1)

    available_from = parts[0].strip() or None
    available_until = parts[1].strip() or None if len(parts) > 1 else None
    return available_from, available_until


def _extract_stamps_from_section(
    section: Tag, status: StampStatus, page_url: str
) -> list[ScrapedStamp]:
    """Build one stamp record per h5 heading inside a disclosure section."""
    stamps: list[ScrapedStamp] = []

    for heading in section.find_all("h5"):
        title = heading.get_text().strip()
        if not title:
            continue

        try:
            stamps.append(_build_stamp(heading, title, status, page_url))
        except Exception as e:
            # Degrade record by record
            logger.warning(f"Skipping stamp '{title}' on {page_url}: {e}")
            continue

    return stamps


def _build_stamp(
    heading: Tag, title: str, status: StampStatus, page_url: str
) -> ScrapedStamp:
    """Collect the text blocks following a heading into a stamp record."""
    content_parts: list[str] = []
    image_url: str | None = None

    for sibling in heading.next_siblings:
        if not isinstance(sibling, Tag):
            continue
        if sibling.name in ("h5", "hr"):
            break
        if sibling.name == "p":
            content_parts.append(_block_text(sibling))
        if image_url is None:
            img = sibling if sibling.name == "img" else sibling.find("img")
            if isinstance(img, Tag) and img.get("src"):
                image_url = urljoin(page_url, str(img["src"]).strip())

    full_text = "\n".join(content_parts)
    available_from, available_until = parse_availability(full_text)
    size = _labeled_value(full_text, SIZE_LABELS) or _first_line_matching(
        full_text, _CM_LINE_RE
    )

    return ScrapedStamp(
        title=title,
        description=_unlabeled_text(full_text, size),
        location_note=_labeled_value(full_text, LOCATION_NOTE_LABELS),
        size=size,
        color=_labeled_value(full_text, COLOR_LABELS),
        image_url=image_url,
        status=status,
        available_from=available_from,
        available_until=available_until,
        stamped_date=_labeled_value(full_text, STAMPED_DATE_LABELS),
    )


def _block_text(element: Tag) -> str:
    """Text of an element with line breaks at <br> and block boundaries."""
    element = copy.copy(element)
    for br in element.find_all("br"):
        br.replace_with("\n")
    for block in element.find_all(BLOCK_TAGS):
        block.append("\n")
    return element.get_text()


def _label_pattern(label: str) -> re.Pattern[str]:
    # ASCII labels such as "EN" must not match inside longer words
    return re.compile(rf"(?<![A-Za-z]){re.escape(label)}\s*[：:]\s*(.+)")


def _labeled_value(text: str, labels: tuple[str, ...]) -> str | None:
    """Value of the first ``label：value`` line for any of the labels."""
    for label in labels:
        match = _label_pattern(label).search(text)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return None


def _first_line_matching(text: str, pattern: re.Pattern[str]) -> str | None:
    for line in text.splitlines():
        if pattern.search(line):
            return line.strip()
    return None


def _unlabeled_text(text: str, size: str | None) -> str | None:
    """Lines that carry no known label, used as the stamp description."""
    lines = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line == size:
            continue
        if any(_label_pattern(label).search(line) for label in STAMP_LABELS):
            continue
        lines.append(line)
    return "\n".join(lines) or None


def _extract_kana(info_text: str) -> str | None:
    match = _KANA_RE.search(info_text)
    return match.group(1).strip() or None if match else None


def _split_postal_code(address: str | None) -> dict[str, str | None]:
    """Strip a leading postal code token from an address."""
    if not address:
        return {"address": None, "postal_code": None}
    match = _POSTAL_RE.match(address)
    if not match:
        return {"address": address, "postal_code": None}
    return {
        "address": address[match.end() :].strip() or None,
        "postal_code": match.group(1),
    }


def _extract_company(soup: BeautifulSoup) -> str | None:
    date_el = soup.select_one(".articleHeader .date")
    if not date_el:
        return None
    match = _COMPANY_RE.search(date_el.get_text())
    return match.group(1).strip() or None if match else None
