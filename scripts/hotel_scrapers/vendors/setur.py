"""
Setur Scraper (setur.com.tr)

Children are passed as birthdates in the room parameter. Room cards are
swiper slides with generated class names, so extraction falls back to a
generic card scan when the slides are not found.
"""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError

from ..base import BaseScraper, extract_each, build_price, read_fields, wait_for_any
from ..schema import RoomRecord, SearchParams

logger = logging.getLogger(__name__)

BASE_URL = "https://www.setur.com.tr"

SELECTORS = {
    "room_wait": [
        ".swiper-wrapper",
        '[data-testid="room-card"]',
        ".room-card",
        ".hotel-room",
        ".sc-1d09eb94-1",
        ".sc-5ca8c7ad-9",
        ".room-type",
        ".room-item",
    ],
    "slides": ".swiper-wrapper .swiper-slide",
    "slide": {
        "name": [".sc-1d09eb94-1", '[class*="room-name"]', '[class*="title"]'],
        "price": [".sc-5ca8c7ad-9", '[class*="price"]', '[class*="cost"]'],
    },
    "cards": '[data-testid="room-card"], .room-card, .hotel-room, .room-item',
    "card": {
        "name": ['[class*="name"]', '[class*="title"]', "h2", "h3", "h4"],
        "price": ['[class*="price"]', '[class*="cost"]', '[class*="amount"]'],
    },
    "hotel_name": ["h1"],
    "popups": [],
}

MIN_CARD_NAME_LENGTH = 4


def build_url(slug: str, params: SearchParams) -> str:
    """
    Build a Setur hotel URL.

    Format: /{slug}?in=YYYY-MM-DD&out=YYYY-MM-DD&room={adults}[_{birthdate}...]
    """
    check_in, check_out = params.format_dates("iso")
    room = str(params.adults)
    birthdates = params.effective_child_birthdates
    if birthdates:
        room += "_" + "_".join(birthdates)
    return f"{BASE_URL}/{slug.strip('/')}?in={check_in}&out={check_out}&room={room}"


class SeturScraper(BaseScraper):
    vendor_id = "setur"
    SELECTORS = SELECTORS
    stealth = True

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        return build_url(identifier, params)

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        await super().open_hotel(page, url, params)
        await page.mouse.wheel(0, 300)
        await page.wait_for_timeout(3000)

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        if await wait_for_any(page, self.selectors["room_wait"], timeout=self.room_wait_timeout) is None:
            logger.warning("[setur] no room elements appeared")
            return []

        rooms = await self._read_cards(page, self.selectors["slides"], self.selectors["slide"], parse_slide)
        if not rooms:
            logger.info("[setur] no swiper slides, trying generic cards")
            rooms = await self._read_cards(page, self.selectors["cards"], self.selectors["card"], parse_card)
        return dedupe_by_name(rooms)

    async def _read_cards(self, page, selector: str, fields: dict, parser) -> list[RoomRecord]:
        try:
            elements = await page.query_selector_all(selector)
        except PlaywrightError as e:
            logger.debug("[setur] %s failed: %s", selector, e)
            return []
        return await extract_each(elements, lambda el: read_fields(el, fields), parser, self.vendor_id)


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def parse_slide(raw: dict) -> RoomRecord:
    name = (raw.get("name") or "").strip()
    if not name:
        raise ValueError("slide without room name")
    return RoomRecord(name=name, price=build_price(raw.get("price", "")))


def parse_card(raw: dict) -> RoomRecord:
    """Generic cards pick up headings too; very short names are noise."""
    name = (raw.get("name") or "").strip()
    if len(name) < MIN_CARD_NAME_LENGTH:
        raise ValueError(f"card name too short: {name!r}")
    return RoomRecord(name=name, price=build_price(raw.get("price", "")))


def dedupe_by_name(rooms: list[RoomRecord]) -> list[RoomRecord]:
    """Keep the first room for each name, preserving order."""
    seen = set()
    unique = []
    for room in rooms:
        if room.name in seen:
            continue
        seen.add(room.name)
        unique.append(room)
    return unique
