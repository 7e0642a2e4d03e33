"""
Hotels.com Scraper (tr.hotels.com)

Hotels.com is the most bot-sensitive vendor: the session runs with the
stealth profile and heavy resources blocked, every page load is checked
for a CAPTCHA, and hotel IDs are discovered through the search form with
human-paced typing and clicks.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from playwright.async_api import Error as PlaywrightError

from .. import config
from ..base import (
    BaseScraper, all_texts, build_price, extract_each, first_text, human_click, human_delay,
    human_type, navigate_with_retry, slugify, wait_for_any, wait_for_captcha_clear,
)
from ..errors import DiscoveryError, NavigationError
from ..mapping import MAPPING_FILENAME, HotelMapping
from ..schema import RoomRecord, SearchParams

logger = logging.getLogger(__name__)

BASE_URL = "https://tr.hotels.com"

SELECTORS = {
    "captcha": [
        '[data-testid="captcha"]',
        ".captcha",
        "#captcha",
        '[class*="captcha"]',
        '[id*="captcha"]',
        'iframe[src*="captcha"]',
        'iframe[src*="recaptcha"]',
        ".g-recaptcha",
        "#cf-challenge-stage",
        ".cf-challenge-form",
    ],
    "search_input": [
        '[data-stid="search-location"]',
        "#destination_form_field",
        '[data-testid="destination-input"]',
        'input[placeholder*="destination"]',
        'input[placeholder*="hotel"]',
    ],
    "suggestion": [
        '[data-stid="destination_form_field-result-item-button"]',
        '[data-testid="suggestion-item"]',
        ".suggestion-item",
        '[role="option"]',
    ],
    "search_button": [
        "#search_button",
        '[data-testid="search-button"]',
        'button[type="submit"]',
        ".search-button",
    ],
    "search_result": [
        ".uitk-spacing.uitk-spacing-margin-blockstart-three",
        '[data-testid="property-card"]',
        ".hotel-result",
        ".property-listing",
    ],
    "hotel_name": ["h1"],
    "offer_cards": '[data-stid^="property-offer-"]',
    "offer": {
        "name": "h3.uitk-heading-6",
        "price": ".uitk-text.uitk-type-500.uitk-type-medium.uitk-text-emphasis-theme",
        "original_price": "del",
        "per_night": ".uitk-text.uitk-type-end.uitk-type-300",
        "features": ".uitk-typelist-item",
        "cancellation": ".uitk-radio-button-label-content span",
    },
    "popups": [],
}

_ID_PATTERN = re.compile(r"/ho(\d+)")
_CAPACITY_PATTERN = re.compile(r"(\d+)\s*kişilik", re.IGNORECASE)


def build_url(hotel_name: str, hotel_id: str, params: SearchParams) -> str:
    """
    Build a Hotels.com hotel URL.

    Guests are encoded as rm1=a{adults}%3Ac{age}... (child ages only
    when there are children).
    """
    check_in, check_out = params.format_dates("iso")
    guests = f"a{params.adults}"
    ages = params.effective_child_ages
    if ages:
        guests += "%3A" + "%3A".join(f"c{age}" for age in ages)
    return f"{BASE_URL}/ho{hotel_id}/{slugify(hotel_name)}/?chkin={check_in}&chkout={check_out}&rm1={guests}"


class HotelsComScraper(BaseScraper):
    vendor_id = "hotelscom"
    SELECTORS = SELECTORS
    stealth = True
    block_resources = True

    def __init__(self, *args, mapping: HotelMapping | None = None, data_root: str | None = None,
                 captcha_attempts: int = 120, **kwargs):
        super().__init__(*args, **kwargs)
        root = Path(data_root or config.SCRAPED_DATA_ROOT)
        if mapping is None:
            mapping = HotelMapping(root / self.vendor_id / MAPPING_FILENAME, vendor=self.vendor_id)
        self.mapping = mapping
        self.captcha_attempts = captcha_attempts

    def file_suffix(self, params: SearchParams) -> str:
        return params.occupancy_suffix()

    async def check_captcha(self, page) -> None:
        await wait_for_captcha_clear(
            page, self.selectors["captcha"], attempts=self.captcha_attempts, vendor=self.vendor_id,
        )

    async def _click_first(self, page, selectors: list[str], timeout: int = 5000) -> bool:
        found = await wait_for_any(page, selectors, timeout=timeout)
        if found is None:
            return False
        await human_click(page, found)
        return True

    async def discover_hotel_id(self, hotel_name: str) -> Optional[str]:
        page = self.session.page
        if not await navigate_with_retry(page, f"{BASE_URL}/"):
            raise NavigationError("Could not open Hotels.com", vendor=self.vendor_id, url=BASE_URL)
        await human_delay(3000, 5000)
        await self.check_captcha(page)

        sel = self.selectors
        search_input = await wait_for_any(page, sel["search_input"], timeout=5000)
        if search_input is None:
            raise DiscoveryError("Could not find search input field", vendor=self.vendor_id, url=page.url)
        await human_click(page, search_input)
        await human_type(page, search_input, hotel_name)
        await human_delay(2000, 4000)

        if not await self._click_first(page, sel["suggestion"]):
            logger.info("[hotelscom] no suggestions, pressing Enter")
            await page.keyboard.press("Enter")
        await human_delay(1000, 2000)

        if not await self._click_first(page, sel["search_button"]):
            await page.keyboard.press("Enter")
        await human_delay(3000, 6000)
        await self.check_captcha(page)

        if not await self._click_first(page, sel["search_result"], timeout=10000):
            raise DiscoveryError("No search results found", vendor=self.vendor_id, url=page.url)
        await human_delay(3000, 6000)

        return parse_hotel_id(page.url)

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        hotel_id = await self.mapping.resolve(identifier, self.discover_hotel_id)
        return build_url(identifier, hotel_id, params)

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        await super().open_hotel(page, url, params)
        await self.check_captcha(page)

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        try:
            cards = await page.query_selector_all(self.selectors["offer_cards"])
        except PlaywrightError:
            return []
        fields = self.selectors["offer"]

        async def read(card) -> dict:
            return {
                "name": await first_text(card, fields["name"]),
                "price": await first_text(card, fields["price"]),
                "original_price": await first_text(card, fields["original_price"]),
                "per_night": await first_text(card, fields["per_night"]),
                "features": await all_texts(card, fields["features"]),
                "cancellation": await first_text(card, fields["cancellation"]),
            }

        return await extract_each(cards, read, parse_offer_card, self.vendor_id)


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def parse_hotel_id(url: str) -> Optional[str]:
    m = _ID_PATTERN.search(url or "")
    return m.group(1) if m else None


def parse_offer_card(raw: dict) -> RoomRecord:
    """
    Map one offer card's texts to a RoomRecord.

    The typelist mixes capacity ("2 kişilik"), bed ("1 çift kişilik
    yatak") and board ("Kahvaltı dâhil") lines; all are kept as attributes.
    """
    name = (raw.get("name") or "").strip()
    if not name:
        raise ValueError("offer card without name")

    capacity = bed_type = board_type = ""
    features = raw.get("features") or []
    for text in features:
        lowered = text.lower()
        m = _CAPACITY_PATTERN.search(text)
        if m and not capacity:
            capacity = m.group(1)
        if "yatak" in lowered:
            bed_type = text
        if "dâhil" in lowered or "dahil" in lowered or "inclusive" in lowered:
            board_type = text

    cancellation = raw.get("cancellation", "")
    return RoomRecord(
        name=name,
        price=build_price(raw.get("price", ""), raw.get("original_price", ""), raw.get("per_night", "")),
        board_type=board_type,
        capacity=capacity,
        bed_type=bed_type,
        cancellation_policy=cancellation,
        is_refundable="geri ödemeli" in cancellation.lower(),
        attributes=list(features),
    )
