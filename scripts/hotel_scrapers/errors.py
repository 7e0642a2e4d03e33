"""
Scraper Errors

Exception hierarchy used across vendors. Only BrowserLaunchError is
fatal for a batch; everything else is recorded per hotel.
"""

from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base class for scraper failures."""

    def __init__(self, message: str, vendor: str = "", url: Optional[str] = None):
        super().__init__(message)
        self.vendor = vendor
        self.url = url

    def __str__(self) -> str:
        msg = super().__str__()
        if self.vendor:
            msg = f"[{self.vendor}] {msg}"
        return msg


class BrowserLaunchError(ScraperError):
    """The browser process could not be started."""


class NavigationError(ScraperError):
    """A page never loaded or an expected element never appeared."""


class CaptchaError(ScraperError):
    """An anti-bot challenge did not clear in time."""


class DiscoveryError(ScraperError):
    """A vendor-internal hotel ID could not be found for a name."""


class ExtractionError(ScraperError):
    """The page loaded but the room data could not be read."""
