"""
Obilet Scraper (obilet.com)

Hotel detail URLs need Obilet's numeric hotel ID, which is discovered
once through the site search and cached in hotel_mapping.json. Rooms
come from the offers JSON the detail page fetches, with a DOM fallback.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError

from .. import config
from ..base import (
    BaseScraper, ResponseCollector, build_price, extract_each, navigate_with_retry,
    parse_rooms, read_fields, reload_quietly, slugify,
)
from ..errors import NavigationError
from ..mapping import MAPPING_FILENAME, HotelMapping
from ..schema import PriceInfo, RoomRecord, SearchParams

logger = logging.getLogger(__name__)

BASE_URL = "https://www.obilet.com"
SEARCH_URL = f"{BASE_URL}/otel"

SELECTORS = {
    "search_input": "#origin-input",
    "suggestion": '.item[data-value]:not([data-value="-1"])',
    "search_button": "#search-button",
    "hotel_name": ["h1"],
    "dom_rooms": ".room-item, .hotel-room, [data-room]",
    "dom_room_fields": {
        "name": [".room-name", ".room-title"],
        "price": [".price", ".room-price"],
    },
    "popups": [],
}

_ID_PATTERNS = [
    re.compile(r"/oteller/[^-]+-(\d+)_"),
    re.compile(r"-(\d+)_"),
]


def build_url(hotel_name: str, hotel_id: str, params: SearchParams) -> str:
    """
    Build an Obilet hotel detail URL.

    Format: /otel-detay/{slug}-{id}/{YYYYMMDD}-{YYYYMMDD}/{adults}ad[-{n}chld-{ages}]
    """
    check_in, check_out = params.format_dates("compact")
    guests = f"{params.adults}ad"
    ages = params.effective_child_ages
    if ages:
        guests += f"-{params.children}chld-" + "-".join(str(a) for a in ages)
    return f"{BASE_URL}/otel-detay/{slugify(hotel_name)}-{hotel_id}/{check_in}-{check_out}/{guests}"


def is_offer_response(url: str, headers: dict) -> bool:
    lowered = url.lower()
    looks_like_offers = (".json" in lowered and ("ad" in lowered or "chld" in lowered)) or "getoffersv2json" in lowered
    return looks_like_offers and "application/json" in (headers.get("content-type") or "")


class ObiletScraper(BaseScraper):
    vendor_id = "obilet"
    SELECTORS = SELECTORS

    def __init__(self, *args, mapping: HotelMapping | None = None, data_root: str | None = None,
                 capture_timeout: float = 8.0, **kwargs):
        super().__init__(*args, **kwargs)
        root = Path(data_root or config.SCRAPED_DATA_ROOT)
        if mapping is None:
            mapping = HotelMapping(root / self.vendor_id / MAPPING_FILENAME, vendor=self.vendor_id)
        self.mapping = mapping
        self.capture_timeout = capture_timeout
        self._collector: Optional[ResponseCollector] = None

    def file_suffix(self, params: SearchParams) -> str:
        return params.occupancy_suffix()

    async def discover_hotel_id(self, hotel_name: str) -> Optional[str]:
        """Search the hotel on obilet.com and read its ID from the results URL."""
        page = self.session.page
        if not await navigate_with_retry(page, SEARCH_URL):
            raise NavigationError("Could not open hotel search", vendor=self.vendor_id, url=SEARCH_URL)
        await page.wait_for_timeout(2000)

        sel = self.selectors
        await page.wait_for_selector(sel["search_input"])
        await page.click(sel["search_input"])
        await page.type(sel["search_input"], hotel_name)
        await page.wait_for_timeout(1000)

        await page.wait_for_selector(sel["suggestion"], timeout=5000)
        await page.click(sel["suggestion"])
        await page.wait_for_timeout(1000)

        await page.wait_for_selector(sel["search_button"])
        await page.click(sel["search_button"])
        await page.wait_for_timeout(6000)

        return parse_hotel_id(page.url)

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        hotel_id = await self.mapping.resolve(identifier, self.discover_hotel_id)
        return build_url(identifier, hotel_id, params)

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        self._collector = ResponseCollector(is_offer_response)
        self._collector.attach(page)
        await super().open_hotel(page, url, params)

    async def finish_hotel(self, page) -> None:
        # The page is shared across hotels
        if self._collector is not None:
            self._collector.detach(page)
            self._collector = None

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        raw_rooms = await self._collector.wait_for(find_room_list, timeout=self.capture_timeout)
        if raw_rooms is None:
            logger.info("[obilet] no offers captured, reloading once")
            await reload_quietly(page, self.vendor_id)
            raw_rooms = await self._collector.wait_for(find_room_list, timeout=self.capture_timeout)

        if raw_rooms is not None:
            return parse_rooms(raw_rooms, parse_api_room, self.vendor_id)

        logger.info("[obilet] falling back to DOM extraction")
        try:
            cards = await page.query_selector_all(self.selectors["dom_rooms"])
        except PlaywrightError:
            return []
        fields = self.selectors["dom_room_fields"]
        return await extract_each(cards, lambda card: read_fields(card, fields), parse_dom_room, self.vendor_id)


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def parse_hotel_id(url: str) -> Optional[str]:
    for pattern in _ID_PATTERNS:
        m = pattern.search(url or "")
        if m:
            return m.group(1)
    return None


def find_room_list(data: Any) -> Optional[list]:
    """Rooms from either {data: {rooms}} or {rooms} shaped bodies."""
    if not isinstance(data, dict):
        return None
    inner = data.get("data")
    if isinstance(inner, dict) and isinstance(inner.get("rooms"), list):
        return inner["rooms"]
    if isinstance(data.get("rooms"), list):
        return data["rooms"]
    return None


def _label(item: Any) -> str:
    if isinstance(item, dict):
        return str(item.get("name") or item.get("title") or item.get("value") or "")
    return str(item)


def parse_api_room(room: dict) -> RoomRecord:
    name = (room.get("name") or room.get("displayName") or "").strip()
    if not name:
        raise ValueError("room without name")

    offers = room.get("offers") or []
    offer = offers[0] if offers else {}
    price = offer.get("price") or {}
    amount = price.get("amount")
    size = room.get("roomSize")

    return RoomRecord(
        name=name,
        price=PriceInfo(
            amount=float(amount) if amount is not None else None,
            currency=price.get("currency") or "TRY",
        ),
        board_type=(offer.get("boardItem") or {}).get("name", ""),
        room_size=f"{size} {room.get('roomSizeUnit') or 'm2'}" if size else "",
        is_refundable=bool(offer.get("isRefundable")),
        attributes=[a for a in (_label(x) for x in room.get("attributes") or []) if a],
        images=[m.get("url", "") if isinstance(m, dict) else str(m) for m in room.get("mediaFiles") or []],
        extra={"display_name": room.get("displayName", ""), "offers": offers},
    )


def parse_dom_room(raw: dict) -> RoomRecord:
    if not raw.get("name"):
        raise ValueError("room card without name")
    return RoomRecord(name=raw["name"], price=build_price(raw.get("price", "")))
