"""Data models for the stamp catalog scraper."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class JobStatus(str, Enum):
    """Lifecycle state of a crawl job."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class StampStatus(str, Enum):
    """Availability of a stamp, taken from its disclosure section heading."""

    AVAILABLE = "available"  # 設置中
    DISCONTINUED = "discontinued"  # 廃止
    LIMITED = "limited"  # 期間限定


class StampShape(str, Enum):
    """Canonical stamp outline."""

    CIRCLE = "circle"
    SQUARE = "square"
    HEXAGON = "hexagon"
    PENTAGON = "pentagon"
    OTHER = "other"


class MatchType(str, Enum):
    """Strategy that produced a station match."""

    EXACT_NAME = "exact_name"
    FUZZY_NAME = "fuzzy_name"
    COORDINATES = "coordinates"
    NONE = "none"


class Coordinates(BaseModel):
    """A WGS84 latitude/longitude pair."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., description="Latitude in degrees")
    lon: float = Field(..., description="Longitude in degrees")


class LocationInfo(BaseModel):
    """Location described on a stamp detail page."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Location name with the page suffix removed")
    name_kana: str | None = Field(None, description="Reading of the name in kana")
    name_en: str | None = Field(None, description="English name")
    address: str | None = Field(None, description="Address without postal code")
    postal_code: str | None = Field(None, description="Postal code (e.g. 100-0005)")
    coordinates: Coordinates | None = Field(None, description="Geo URI coordinates")
    company_name: str | None = Field(None, description="Railway company of the page")
    line_name: str | None = Field(None, description="Railway line of the page")
    page_url: str = Field(..., description="URL the page was scraped from")

    def __str__(self) -> str:
        return self.name


class ScrapedStamp(BaseModel):
    """A stamp record exactly as it was read from the page."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Sub-heading of the stamp record")
    description: str | None = Field(None, description="Free-text description")
    location_note: str | None = Field(None, description="Where the stamp is kept")
    size: str | None = Field(None, description="Raw size text")
    color: str | None = Field(None, description="Raw ink colour text")
    image_url: str | None = Field(None, description="Image reference")
    status: StampStatus = Field(StampStatus.AVAILABLE, description="Stamp status")
    available_from: str | None = Field(None, description="Start of availability")
    available_until: str | None = Field(None, description="End of availability")
    stamped_date: str | None = Field(None, description="Date the author stamped it")

    def __str__(self) -> str:
        return self.title


class NormalizedStamp(ScrapedStamp):
    """A scraped stamp with machine-usable fields derived from its raw text."""

    shape: StampShape = Field(StampShape.OTHER, description="Classified shape")
    size_cm: str | None = Field(None, description="Size such as '5x5cm' or '6cm'")
    color_en: str | None = Field(None, description="Colour in English")


class ScrapedPage(BaseModel):
    """One detail page: a location and the stamps found there."""

    model_config = ConfigDict(frozen=True)

    location: LocationInfo
    stamps: list[ScrapedStamp] = Field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.location.name} ({len(self.stamps)} stamps)"


class ScrapeResult(BaseModel):
    """Payload stored on a completed crawl job."""

    page: ScrapedPage
    stamps: list[NormalizedStamp] = Field(default_factory=list)


class CanonicalStation(BaseModel):
    """A station from the canonical dataset."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Station group id")
    name: str = Field(..., description="Station name in Japanese")
    name_kana: str | None = Field(None, description="Reading of the station name")
    coordinates: Coordinates | None = Field(None, description="Station location")
    prefecture_id: int | None = Field(None, description="JIS X 0401 code (1-47)")

    def __str__(self) -> str:
        return self.name


class NearbyStation(BaseModel):
    """A canonical station together with its distance from a query point."""

    station: CanonicalStation
    distance_m: float = Field(..., ge=0, description="Great-circle distance")

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000


class MatchResult(BaseModel):
    """Outcome of matching a scraped location to a canonical station."""

    station_id: int | None = Field(None, description="Matched station id")
    match_type: MatchType = Field(MatchType.NONE, description="Winning strategy")
    confidence: float = Field(0.0, ge=0.0, le=1.0, description="Match certainty")
    matched_name: str | None = Field(None, description="Name of the matched station")

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(station_id=None, match_type=MatchType.NONE, confidence=0.0)

    def __str__(self) -> str:
        if self.station_id is None:
            return "no match"
        return f"{self.matched_name} [{self.match_type.value} {self.confidence:.2f}]"
