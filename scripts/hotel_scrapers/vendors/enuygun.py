"""
Enuygun Scraper (enuygun.com)

Enuygun has no stable hotel URL scheme, so every hotel goes through the
search form: autosuggest, date picker, guest steppers, submit. The
submit normally lands on the hotel detail page directly.
"""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError

from ..base import (
    BaseScraper, all_texts, build_price, counter_steps, extract_each, first_text, slugify, wait_for_any,
)
from ..errors import NavigationError
from ..schema import RoomRecord, SearchParams, parse_date

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.enuygun.com/otel/"

SELECTORS = {
    "hotel_name": ["h1"],
    "popups": [],
    "hotel_input": '[data-testid="endesign-hotel-autosuggestion-input"]',
    "suggestion": '[data-testid*="hotel-"][data-testid*="-highlight-wrapper"]',
    "date_button": ['[data-testid="hotel-mobile-date-picker-button"]', '[data-testid*="date"]'],
    "date_panel": ['[data-testid="hotel-datepicker-popover-panel"]', ".hotel-datepicker-popover-panel"],
    "start_date_header": '[data-testid="hotel-range-header-start-date-text"]',
    "day_buttons": ['button[data-day="{day}"][data-testid="datepicker-active-day"]', 'button[data-day="{day}"]'],
    "guest_button": ['[data-testid="hotel-popover-button"]', '[data-testid*="guest"]'],
    "guest_panel": '[data-testid="hotel-popover-panel"]',
    "counter_value": '[data-testid="hotel-{kind}-counter-count"]',
    "counter_increase": '[data-testid="hotel-{kind}-counter-plus-button"]',
    "counter_decrease": '[data-testid="hotel-{kind}-counter-minus-button"]',
    "guest_submit": '[data-testid="hotel-guest-submit-button"]',
    "search_button": ['[data-testid="hotel-submit-search-button"]'],
    "result_link": '[data-testid*="{slug}"]',
    "detail_search": '[data-testid="detail-search-button"]',
    "rooms_container": "#rooms-container",
    "rooms": '[data-testid="room-card-wrapper"]',
    "room": {
        "name": '[data-testid="room-name"]',
        "features": ".sc-dcdcb90f-26",
        "size": ".sc-dcdcb90f-24 span",
        "discount_label": '[data-testid="offer-discount-label"]',
        "original_price": '[data-testid="offer-discount-price"]',
        "price": '[data-testid="offer-price"]',
        "concept": '[data-testid="offer-concept-description"]',
        "room_class": '[data-testid="offer-info-room-class"]',
    },
}


def build_url(hotel_name: str, params: SearchParams) -> str:
    """Enuygun searches start from the hotel landing page for every hotel."""
    return SEARCH_URL


class EnuygunScraper(BaseScraper):
    vendor_id = "enuygun"
    SELECTORS = SELECTORS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._hotel_name = ""

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        self._hotel_name = identifier
        return build_url(identifier, params)

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        await super().open_hotel(page, url, params)
        await self.search(page, self._hotel_name, params)

    async def search(self, page, hotel_name: str, params: SearchParams) -> None:
        sel = self.selectors
        await page.wait_for_selector(sel["hotel_input"], timeout=10000)
        await page.click(sel["hotel_input"])
        await page.fill(sel["hotel_input"], "")
        await page.type(sel["hotel_input"], hotel_name, delay=100)
        await page.wait_for_timeout(1000)
        suggestion = await page.query_selector(sel["suggestion"])
        if suggestion is not None:
            await suggestion.click()
        else:
            logger.info("[enuygun] no suggestion for %r", hotel_name)

        await self.select_dates(page, params)
        await self.select_guests(page, params)

        button = await wait_for_any(page, sel["search_button"], timeout=2000)
        if button is None:
            raise NavigationError("Could not find search button", vendor=self.vendor_id, url=page.url)
        await page.click(button)
        await page.wait_for_load_state("networkidle", timeout=30000)
        await page.wait_for_timeout(3000)
        await self.open_hotel_from_results(page, hotel_name)

    async def _click_visible_day(self, page, day: int) -> None:
        for template in self.selectors["day_buttons"]:
            for button in await page.query_selector_all(template.format(day=day)):
                if await button.is_visible():
                    await button.click()
                    return
        raise NavigationError(f"Could not select day {day} in date picker", vendor=self.vendor_id, url=page.url)

    async def select_dates(self, page, params: SearchParams) -> None:
        sel = self.selectors
        opener = await wait_for_any(page, sel["date_button"], timeout=2000)
        if opener is None:
            raise NavigationError("Could not find date picker button", vendor=self.vendor_id, url=page.url)
        await page.click(opener)
        if await wait_for_any(page, sel["date_panel"], timeout=5000) is None:
            raise NavigationError("Could not find date picker panel", vendor=self.vendor_id, url=page.url)
        await page.wait_for_timeout(1000)

        check_in, check_out = parse_date(params.check_in), parse_date(params.check_out)
        # The picker may already show the check-in day as the range start
        header = await first_text(page, sel["start_date_header"])
        if str(check_in.day) not in header.split():
            await self._click_visible_day(page, check_in.day)
            await page.wait_for_timeout(1000)
        await self._click_visible_day(page, check_out.day)
        await page.keyboard.press("Escape")

    async def set_counter(self, page, kind: str, target: int) -> None:
        text = await first_text(page, self.selectors["counter_value"].format(kind=kind))
        current = int(text) if text.isdigit() else 0
        direction, presses = counter_steps(current, target)
        button = self.selectors[f"counter_{direction}"].format(kind=kind)
        for _ in range(presses):
            await page.click(button)
            await page.wait_for_timeout(200)

    async def select_guests(self, page, params: SearchParams) -> None:
        sel = self.selectors
        opener = await wait_for_any(page, sel["guest_button"], timeout=2000)
        if opener is None:
            raise NavigationError("Could not find guest count button", vendor=self.vendor_id, url=page.url)
        await page.click(opener)
        await page.wait_for_selector(sel["guest_panel"], timeout=10000)
        await self.set_counter(page, "adult", params.adults)
        await self.set_counter(page, "child", params.children)
        await page.click(sel["guest_submit"])

    async def open_hotel_from_results(self, page, hotel_name: str) -> None:
        """Click through from a results list when the search did not land on the hotel."""
        title = (await page.title() or "").lower()
        if hotel_name.lower() in title:
            return
        link = await page.query_selector(self.selectors["result_link"].format(slug=slugify(hotel_name)))
        if link is None:
            return
        await link.click()
        await page.wait_for_load_state("networkidle", timeout=30000)

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        sel = self.selectors
        detail_search = await page.query_selector(sel["detail_search"])
        if detail_search is not None:
            await detail_search.click()
            await page.wait_for_timeout(3000)
        try:
            await page.wait_for_selector(sel["rooms_container"], timeout=10000)
        except PlaywrightError:
            logger.warning("[enuygun] rooms container did not appear")
            return []

        fields = sel["room"]

        async def read(card) -> dict:
            return {
                "name": await first_text(card, fields["name"]),
                "features": await all_texts(card, fields["features"]),
                "size": await first_text(card, fields["size"]),
                "discount_label": await first_text(card, fields["discount_label"]),
                "original_price": await first_text(card, fields["original_price"]),
                "price": await first_text(card, fields["price"]),
                "concept": await first_text(card, fields["concept"]),
                "room_class": await first_text(card, fields["room_class"]),
            }

        cards = await page.query_selector_all(sel["rooms"])
        return await extract_each(cards, read, parse_room_card, self.vendor_id)


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def parse_room_card(raw: dict) -> RoomRecord:
    name = (raw.get("name") or "").strip()
    if not name:
        raise ValueError("room card without name")
    room_class = raw.get("room_class", "")
    return RoomRecord(
        name=name,
        price=build_price(raw.get("price", ""), raw.get("original_price", "")),
        board_type=raw.get("concept", ""),
        room_size=raw.get("size", ""),
        cancellation_policy=room_class,
        is_refundable=False if "iptal edilemez" in room_class.replace("İ", "i").lower() else None,
        attributes=list(raw.get("features") or []),
        extra={"discount_label": raw.get("discount_label", ""), "room_class": room_class},
    )
