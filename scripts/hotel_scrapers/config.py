"""
Scraper Configuration

Environment-backed settings plus per-vendor selector overrides loaded
from data/vendor-selectors.json.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path


PROJECT_ROOT = Path(__file__).parent.parent.parent

SCRAPED_DATA_ROOT: str = os.getenv("SCRAPED_DATA_ROOT", "scrapedData")
DEBUG_DIR: str = os.getenv("SCRAPER_DEBUG_DIR", os.path.join(SCRAPED_DATA_ROOT, "debug"))
HEADLESS: bool = os.getenv("SCRAPER_HEADLESS", "true").lower() != "false"
LOG_LEVEL: str = os.getenv("SCRAPER_LOG_LEVEL", "INFO")
NAV_TIMEOUT_MS: int = int(os.getenv("SCRAPER_NAV_TIMEOUT_MS", "60000"))

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Attach one stream handler to the package logger."""
    logger = logging.getLogger("hotel_scrapers")
    logger.setLevel((level or LOG_LEVEL).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


# ---------------------------------------------------------------------------
# Selector overrides
# ---------------------------------------------------------------------------

_selector_overrides_cache: dict | None = None


def load_selector_overrides() -> dict:
    """Load vendor selector overrides from vendor-selectors.json."""
    global _selector_overrides_cache
    if _selector_overrides_cache is not None:
        return _selector_overrides_cache

    path = Path(os.getenv("SCRAPER_SELECTORS_FILE", PROJECT_ROOT / "data" / "vendor-selectors.json"))
    if path.exists():
        with open(path, encoding="utf-8") as f:
            _selector_overrides_cache = json.load(f).get("vendors", {})
    else:
        _selector_overrides_cache = {}
    return _selector_overrides_cache


def reset_selector_overrides() -> None:
    global _selector_overrides_cache
    _selector_overrides_cache = None


def get_selectors(vendor: str, defaults: dict) -> dict:
    """Vendor defaults with any configured overrides applied on top."""
    merged = copy.deepcopy(defaults)
    overrides = load_selector_overrides().get(vendor, {})
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key].update(value)
        else:
            merged[key] = value
    return merged
