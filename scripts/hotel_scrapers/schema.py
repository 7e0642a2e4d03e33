"""
Unified Scraper Output Schema

Defines the canonical search input and output records shared by all
vendor scrapers. Everything here is plain data: scrapers build these,
the storage layer serializes them with to_dict().
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timedelta
from typing import Any, Optional


DATE_FORMATS = {
    "iso": "%Y-%m-%d",
    "dotted": "%d.%m.%Y",
    "compact": "%Y%m%d",
    "dotted_iso": "%Y.%m.%d",
}


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD or DD.MM.YYYY string into a date."""
    value = (value or "").strip()
    for fmt in ("%Y-%m-%d", "%d.%m.%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date '{value}'. Expected YYYY-MM-DD or DD.MM.YYYY")


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 on a non-leap year
        return day.replace(year=day.year - years, day=28)


@dataclass
class SearchParams:
    """Stay dates and occupancy for a single scrape invocation."""

    check_in: str = ""   # YYYY-MM-DD
    check_out: str = ""  # YYYY-MM-DD
    adults: int = 2
    children: int = 0
    child_ages: list[int] = field(default_factory=list)
    child_birthdates: list[str] = field(default_factory=list)  # YYYY-MM-DD

    def __post_init__(self):
        if self.check_in:
            self.check_in = parse_date(self.check_in).isoformat()
        if self.check_out:
            self.check_out = parse_date(self.check_out).isoformat()
        self.child_ages = [int(a) for a in self.child_ages or []]

    def validate(self) -> None:
        """Raise ValueError if the parameters cannot describe a stay."""
        if not self.check_in or not self.check_out:
            raise ValueError("check_in and check_out are required")
        if parse_date(self.check_out) <= parse_date(self.check_in):
            raise ValueError(f"check_out {self.check_out} must be after check_in {self.check_in}")
        if self.adults < 1:
            raise ValueError(f"adults must be at least 1, got {self.adults}")
        if self.children < 0:
            raise ValueError(f"children cannot be negative, got {self.children}")

    @property
    def effective_child_ages(self) -> list[int]:
        """Child ages to encode. Always empty when there are no children."""
        if self.children <= 0:
            return []
        return self.child_ages[: self.children]

    @property
    def effective_child_birthdates(self) -> list[str]:
        """Birthdates for vendors that encode children that way."""
        if self.children <= 0:
            return []
        if self.child_birthdates:
            return self.child_birthdates[: self.children]
        check_in = parse_date(self.check_in)
        return [_years_before(check_in, age).isoformat() for age in self.effective_child_ages]

    @property
    def nights(self) -> int:
        return (parse_date(self.check_out) - parse_date(self.check_in)).days

    def format_dates(self, style: str = "iso") -> tuple[str, str]:
        """Render (check_in, check_out) in one of DATE_FORMATS."""
        fmt = DATE_FORMATS[style]
        return (
            parse_date(self.check_in).strftime(fmt),
            parse_date(self.check_out).strftime(fmt),
        )

    def occupancy_suffix(self) -> str:
        """Filename fragment like '-2ad-1chld-8'."""
        suffix = f"-{self.adults}ad"
        ages = self.effective_child_ages
        if ages:
            suffix += f"-{self.children}chld-" + "-".join(str(a) for a in ages)
        return suffix

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> SearchParams:
        return cls(
            check_in=data.get("check_in", data.get("checkInDate", "")),
            check_out=data.get("check_out", data.get("checkOutDate", "")),
            adults=int(data.get("adults", 2)),
            children=int(data.get("children", 0) or 0),
            child_ages=list(data.get("child_ages", data.get("childAges", [])) or []),
            child_birthdates=list(data.get("child_birthdates", data.get("childBirthdates", [])) or []),
        )


@dataclass
class PriceInfo:
    """Price of one room offer."""

    amount: Optional[float] = None
    currency: str = "TRY"
    original_amount: Optional[float] = None
    discount_percentage: Optional[int] = None
    per_night: Optional[float] = None
    raw_text: str = ""

    @property
    def is_populated(self) -> bool:
        return self.amount is not None


@dataclass
class DailyPrice:
    """Price for a single night of the stay."""

    date: str = ""
    day_name: str = ""
    amount: Optional[float] = None
    original_amount: Optional[float] = None


@dataclass
class PeriodPrice:
    """One row of a seasonal price table."""

    period: str = ""
    room_type: str = ""
    board_type: str = ""
    double_price: Optional[float] = None
    single_price: Optional[float] = None
    extra_bed_price: Optional[float] = None
    children_pricing: list[dict] = field(default_factory=list)
    minimum_nights: str = ""
    discount_rate: str = ""


@dataclass
class RoomRecord:
    """A single room/offer as shown by a vendor."""

    name: str = ""
    price: PriceInfo = field(default_factory=PriceInfo)
    board_type: str = ""
    capacity: str = ""
    bed_type: str = ""
    room_size: str = ""
    view: str = ""
    cancellation_policy: str = ""
    is_refundable: Optional[bool] = None
    available: bool = True
    attributes: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    daily_prices: list[DailyPrice] = field(default_factory=list)
    period_prices: list[PeriodPrice] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> RoomRecord:
        price = data.get("price") or {}
        return cls(
            name=data.get("name", ""),
            price=PriceInfo(**{k: v for k, v in price.items() if k in PriceInfo.__dataclass_fields__}),
            board_type=data.get("board_type", ""),
            capacity=data.get("capacity", ""),
            bed_type=data.get("bed_type", ""),
            room_size=data.get("room_size", ""),
            view=data.get("view", ""),
            cancellation_policy=data.get("cancellation_policy", ""),
            is_refundable=data.get("is_refundable"),
            available=data.get("available", True),
            attributes=data.get("attributes", []),
            images=data.get("images", []),
            daily_prices=[DailyPrice(**d) for d in data.get("daily_prices", [])],
            period_prices=[PeriodPrice(**p) for p in data.get("period_prices", [])],
            extra=data.get("extra", {}),
        )


@dataclass
class ScrapeResult:
    """
    Output of one hotel scrape for one vendor.

    Written once to a timestamped JSON file; never updated in place.
    """

    vendor: str = ""
    hotel_id: str = ""
    hotel_name: str = ""
    url: str = ""
    search_params: SearchParams = field(default_factory=SearchParams)
    rooms: list[RoomRecord] = field(default_factory=list)
    scraped_at: str = ""
    success: bool = True
    error: Optional[str] = None
    warnings: list[str] = field(default_factory=list)
    debug_artifacts: list[str] = field(default_factory=list)

    @property
    def room_count(self) -> int:
        return len(self.rooms)

    def fail(self, message: str) -> None:
        self.success = False
        self.error = message

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ScrapeResult:
        return cls(
            vendor=data.get("vendor", ""),
            hotel_id=data.get("hotel_id", ""),
            hotel_name=data.get("hotel_name", ""),
            url=data.get("url", ""),
            search_params=SearchParams.from_dict(data.get("search_params", {})),
            rooms=[RoomRecord.from_dict(r) for r in data.get("rooms", [])],
            scraped_at=data.get("scraped_at", ""),
            success=data.get("success", True),
            error=data.get("error"),
            warnings=data.get("warnings", []),
            debug_artifacts=data.get("debug_artifacts", []),
        )


@dataclass
class HotelOutcome:
    """Per-hotel line in a session summary."""

    hotel_id: str = ""
    success: bool = False
    room_count: int = 0
    file_path: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SessionSummary:
    """Aggregated outcome of one orchestrated batch."""

    timestamp: str = ""
    vendor: str = ""
    scrape_parameters: dict[str, Any] = field(default_factory=dict)
    hotels: list[HotelOutcome] = field(default_factory=list)

    @property
    def total_hotels(self) -> int:
        return len(self.hotels)

    @property
    def successful_scrapes(self) -> int:
        return sum(1 for h in self.hotels if h.success)

    @property
    def failed_scrapes(self) -> int:
        return self.total_hotels - self.successful_scrapes

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "vendor": self.vendor,
            "scrape_parameters": self.scrape_parameters,
            "total_hotels": self.total_hotels,
            "successful_scrapes": self.successful_scrapes,
            "failed_scrapes": self.failed_scrapes,
            "hotels": [asdict(h) for h in self.hotels],
        }

    @classmethod
    def from_dict(cls, data: dict) -> SessionSummary:
        return cls(
            timestamp=data.get("timestamp", ""),
            vendor=data.get("vendor", ""),
            scrape_parameters=data.get("scrape_parameters", {}),
            hotels=[
                HotelOutcome(**{k: v for k, v in h.items() if k in HotelOutcome.__dataclass_fields__})
                for h in data.get("hotels", [])
            ],
        )


# ---------------------------------------------------------------------------
# Room set summaries
# ---------------------------------------------------------------------------

def available_rooms(rooms: list[RoomRecord]) -> list[RoomRecord]:
    return [r for r in rooms if r.available]


def lowest_price_room(rooms: list[RoomRecord]) -> Optional[RoomRecord]:
    """Cheapest available room with a known price, or None."""
    priced = [r for r in available_rooms(rooms) if r.price.amount is not None]
    if not priced:
        return None
    return min(priced, key=lambda r: r.price.amount)


def price_summary(rooms: list[RoomRecord]) -> dict:
    """Counts and min/max/average price over the available rooms."""
    available = available_rooms(rooms)
    amounts = [r.price.amount for r in available if r.price.amount is not None]
    return {
        "total_rooms": len(rooms),
        "available_rooms": len(available),
        "price_range": {
            "min": min(amounts) if amounts else None,
            "max": max(amounts) if amounts else None,
        },
        "average_price": round(sum(amounts) / len(amounts), 2) if amounts else None,
    }


def validate_result(result: ScrapeResult) -> list[str]:
    """
    Validate a ScrapeResult and return a list of warnings.

    Does not raise: scraping is inherently lossy, so we report
    what's missing rather than failing hard.
    """
    warnings = []

    if not result.vendor:
        warnings.append("Missing vendor")
    if not result.hotel_id:
        warnings.append("Missing hotel_id")
    if not result.scraped_at:
        warnings.append("Missing scraped_at timestamp")
    if result.success and not result.rooms:
        warnings.append("Marked successful but no rooms extracted")

    unpriced = [r.name for r in result.rooms if not r.price.is_populated]
    if unpriced:
        warnings.append(f"{len(unpriced)} room(s) without price: {', '.join(unpriced[:5])}")

    for room in result.rooms:
        p = room.price
        if p.amount is not None and p.amount <= 0:
            warnings.append(f"Non-positive price for {room.name}: {p.amount}")
        if p.original_amount is not None and p.amount is not None and p.original_amount < p.amount:
            warnings.append(f"Original price below current price for {room.name}")

    return warnings
