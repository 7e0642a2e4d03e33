"""
Scrape-and-save orchestration

Runs one vendor scraper over a list of hotel identifiers with a single
browser, saves each result, and writes a session summary at the end.
"""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError

from .base import BaseScraper, now_iso
from .errors import ScraperError
from .registry import get_scraper
from .schema import HotelOutcome, SearchParams, SessionSummary
from .storage import ScrapeStorage

logger = logging.getLogger(__name__)


async def scrape_one(
    scraper: BaseScraper,
    identifier: str,
    params: SearchParams,
    storage: ScrapeStorage,
) -> HotelOutcome:
    """Scrape and save one hotel. Errors are reported in the outcome."""
    try:
        result = await scraper.scrape(identifier, params)
        path = storage.save_result(result, scraper.file_suffix(params))
    except ScraperError as e:
        logger.error("[%s] %s failed: %s", scraper.vendor_id, identifier, e)
        return HotelOutcome(hotel_id=identifier, success=False, error=str(e))
    except PlaywrightError as e:
        logger.error("[%s] %s browser error: %s", scraper.vendor_id, identifier, e)
        return HotelOutcome(hotel_id=identifier, success=False, error=str(e))
    except Exception as e:
        logger.exception("[%s] %s unexpected error", scraper.vendor_id, identifier)
        return HotelOutcome(hotel_id=identifier, success=False, error=str(e) or type(e).__name__)

    if result.success:
        logger.info("[%s] %s: %d rooms -> %s", scraper.vendor_id, identifier, result.room_count, path)
    else:
        logger.warning("[%s] %s: %s", scraper.vendor_id, identifier, result.error)
    return HotelOutcome(
        hotel_id=identifier,
        success=result.success,
        room_count=result.room_count,
        file_path=str(path),
        error=result.error,
    )


async def scrape_vendor_and_save(
    scraper: BaseScraper,
    identifiers: list[str],
    params: SearchParams,
    storage: Optional[ScrapeStorage] = None,
    request: Optional[dict] = None,
) -> SessionSummary:
    """
    Scrape every identifier in order with one browser session.

    A failing hotel is recorded and the loop moves on. The session summary
    is written once the loop finishes, whatever the outcomes. A browser
    that cannot be launched raises BrowserLaunchError and nothing is saved.
    """
    storage = storage or ScrapeStorage()
    outcomes: list[HotelOutcome] = []
    try:
        await scraper.initialize()
        for index, identifier in enumerate(identifiers, 1):
            logger.info("[%s] (%d/%d) %s", scraper.vendor_id, index, len(identifiers), identifier)
            outcomes.append(await scrape_one(scraper, identifier, params, storage))

        parameters = {"hotel_identifiers": list(identifiers), **params.to_dict()}
        if request:
            parameters["request"] = request
        summary = SessionSummary(
            timestamp=now_iso(),
            vendor=scraper.vendor_id,
            scrape_parameters=parameters,
            hotels=outcomes,
        )
        storage.save_session_summary(summary)
        logger.info(
            "[%s] session done: %d/%d succeeded",
            scraper.vendor_id, summary.successful_scrapes, summary.total_hotels,
        )
        return summary
    finally:
        await scraper.close()


async def run_vendor(
    vendor_id: str,
    identifiers: list[str],
    params: SearchParams,
    storage: Optional[ScrapeStorage] = None,
    **options,
) -> SessionSummary:
    """
    Validate the search, build the vendor's scraper and run the batch.

    Hotel mappings are kept under the same root as the results.
    """
    params.validate()
    if not identifiers:
        raise ValueError("At least one hotel identifier is required")
    storage = storage or ScrapeStorage()
    options.setdefault("data_root", str(storage.root))
    scraper = get_scraper(vendor_id, **options)
    return await scrape_vendor_and_save(scraper, identifiers, params, storage)
