"""
Vendor Scraper Registry

Maps vendor IDs and hotel URLs to the appropriate scraper class.
"""

from __future__ import annotations

import re
from typing import Optional

from .base import BaseScraper


# URL pattern → vendor_id mapping
_URL_PATTERNS: list[tuple[str, str]] = [
    (r"etstur\.com", "etstur"),
    (r"obilet\.com", "obilet"),
    (r"hotels\.com", "hotelscom"),
    (r"setur\.com\.tr", "setur"),
    (r"jollytur\.com", "jollytur"),
    (r"touristica\.com\.tr", "touristica"),
    (r"tatilsepeti\.com", "tatilsepeti"),
    (r"tatilbudur\.com", "tatilbudur"),
    (r"enuygun\.com", "enuygun"),
]

_VENDORS = [
    "etstur", "obilet", "hotelscom", "setur", "jollytur",
    "touristica", "tatilsepeti", "tatilbudur", "enuygun",
]


def detect_vendor(url: str) -> Optional[str]:
    """
    Detect vendor_id from a URL.

    Returns vendor_id string or None if URL doesn't match any known vendor.
    """
    for pattern, vendor_id in _URL_PATTERNS:
        if re.search(pattern, url):
            return vendor_id
    return None


def get_scraper(vendor_id: str, **options) -> BaseScraper:
    """
    Create a new scraper for the given vendor_id.

    Scrapers own a browser session, so every call returns a fresh
    instance. Options are passed to the scraper's constructor.

    Raises ValueError if no scraper is registered for the vendor_id.
    """
    if vendor_id == "etstur":
        from .vendors.etstur import EtsturScraper
        return EtsturScraper(**options)
    elif vendor_id == "obilet":
        from .vendors.obilet import ObiletScraper
        return ObiletScraper(**options)
    elif vendor_id == "hotelscom":
        from .vendors.hotelscom import HotelsComScraper
        return HotelsComScraper(**options)
    elif vendor_id == "setur":
        from .vendors.setur import SeturScraper
        return SeturScraper(**options)
    elif vendor_id == "jollytur":
        from .vendors.jollytur import JollyTurScraper
        return JollyTurScraper(**options)
    elif vendor_id == "touristica":
        from .vendors.touristica import TouristicaScraper
        return TouristicaScraper(**options)
    elif vendor_id == "tatilsepeti":
        from .vendors.tatilsepeti import TatilsepetiScraper
        return TatilsepetiScraper(**options)
    elif vendor_id == "tatilbudur":
        from .vendors.tatilbudur import TatilBudurScraper
        return TatilBudurScraper(**options)
    elif vendor_id == "enuygun":
        from .vendors.enuygun import EnuygunScraper
        return EnuygunScraper(**options)
    else:
        raise ValueError(
            f"No scraper registered for vendor '{vendor_id}'. "
            f"Available: {', '.join(_VENDORS)}"
        )


def get_available_vendors() -> list[str]:
    """Return list of all available vendor IDs."""
    return list(_VENDORS)
