"""
Hotel Scrapers Package

Browser-based room and price scrapers for Turkish hotel booking sites.
Each vendor has its own module in hotel_scrapers/vendors/.
"""

from .schema import (
    DailyPrice, HotelOutcome, PeriodPrice, PriceInfo, RoomRecord, ScrapeResult, SearchParams, SessionSummary,
)
from .base import BaseScraper, BrowserSession, navigate_with_retry
from .errors import (
    BrowserLaunchError, CaptchaError, DiscoveryError, ExtractionError, NavigationError, ScraperError,
)
from .registry import detect_vendor, get_available_vendors, get_scraper
from .service import run_vendor, scrape_vendor_and_save
from .storage import ScrapeStorage

__all__ = [
    "SearchParams",
    "PriceInfo",
    "DailyPrice",
    "PeriodPrice",
    "RoomRecord",
    "ScrapeResult",
    "HotelOutcome",
    "SessionSummary",
    "BaseScraper",
    "BrowserSession",
    "navigate_with_retry",
    "ScraperError",
    "BrowserLaunchError",
    "NavigationError",
    "CaptchaError",
    "DiscoveryError",
    "ExtractionError",
    "detect_vendor",
    "get_scraper",
    "get_available_vendors",
    "scrape_vendor_and_save",
    "run_vendor",
    "ScrapeStorage",
]
