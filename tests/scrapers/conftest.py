"""
Shared fixtures for scraper tests.

Browser-facing code runs against the fakes in fakes.py, so no test
launches Chromium.
"""

import os
import sys

import pytest

# Add scripts/ to path so we can import hotel_scrapers package
_scripts_dir = os.path.join(os.path.dirname(__file__), "..", "..", "scripts")
if _scripts_dir not in sys.path:
    sys.path.insert(0, _scripts_dir)

from hotel_scrapers import config  # noqa: E402
from hotel_scrapers.schema import SearchParams  # noqa: E402
from hotel_scrapers.storage import ScrapeStorage  # noqa: E402


@pytest.fixture(autouse=True)
def no_selector_overrides(monkeypatch, tmp_path):
    """Scrapers see only their built-in SELECTORS."""
    monkeypatch.setenv("SCRAPER_SELECTORS_FILE", str(tmp_path / "no-overrides.json"))
    config.reset_selector_overrides()
    yield
    config.reset_selector_overrides()


@pytest.fixture
def storage(tmp_path):
    return ScrapeStorage(tmp_path / "scrapedData")


@pytest.fixture
def params():
    return SearchParams(check_in="2025-08-07", check_out="2025-08-13", adults=2, children=1, child_ages=[8])


@pytest.fixture
def adults_only():
    return SearchParams(check_in="2025-08-07", check_out="2025-08-13", adults=2)
