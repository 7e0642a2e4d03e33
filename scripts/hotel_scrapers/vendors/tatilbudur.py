"""
TatilBudur Scraper (tatilbudur.com)

Like Touristica, the hotel page is opened without search parameters and
the stay is entered through the date-range picker and guest dropdown.
Form failures propagate so the hotel is reported as failed.
"""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError

from ..base import BaseScraper, all_texts, build_price, counter_steps, extract_each, first_text, slugify
from ..schema import RoomRecord, SearchParams, parse_date

logger = logging.getLogger(__name__)

BASE_URL = "https://www.tatilbudur.com"

SELECTORS = {
    "hotel_name": ["h1", ".hotel-name", "title"],
    "title_suffixes": [" | TatilBudur", " - TatilBudur"],
    "popups": [
        ".modal-content .close-button",
        ".close-button",
        '[data-dismiss="modal"]',
    ],
    "date_range": ".hotel-search-daterange",
    "date_picker": ".daterangepicker",
    "day_cell": 'td[data-day="{day}"][data-month="{month}"][data-year="{year}"]:not(.disabled)',
    "apply_dates": ".applyBtn",
    "apply_dates_enabled": ".applyBtn:not([disabled])",
    "person_input": "#quickPersonCount",
    "person_dropdown": ".c-finder__dropdown",
    "counter": ".c-finder__dropdown-count--{kind}",
    "counter_value": ".c-finder__dropdown-count-input",
    "counter_increase": ".c-finder__dropdown-count-increase",
    "counter_decrease": ".c-finder__dropdown-count-decrease",
    "child_age_selects": ".c-finder__dropdown select",
    "apply_guests": ".apply-hotel-customer-btn",
    "search_button": ".findRoom",
    "rooms": ".room-type-new",
    "room": {
        "name": ".room-type-title",
        "size": ".features-check-list li span.free",
        "features": ".features-check-list li span:not(.free)",
        "concept": ".meal-type-desc",
        "price": ".sell-price",
        "original_price": ".upPrice",
        "points": ".c-card__tb-club",
    },
}


def build_url(hotel: str) -> str:
    """TatilBudur hotel URL. Dates and guests are entered on the page."""
    return f"{BASE_URL}/{slugify(hotel)}"


class TatilBudurScraper(BaseScraper):
    vendor_id = "tatilbudur"
    SELECTORS = SELECTORS

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        return build_url(identifier)

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        await super().open_hotel(page, url, params)
        await self.dismiss_obstacles(page)
        await self.select_dates(page, params)
        await self.select_guests(page, params)
        await page.wait_for_selector(self.selectors["search_button"], timeout=10000)
        await page.click(self.selectors["search_button"])
        await page.wait_for_timeout(3000)

    async def select_dates(self, page, params: SearchParams) -> None:
        sel = self.selectors
        await page.wait_for_selector(sel["date_range"], timeout=10000)
        await page.click(sel["date_range"])
        await page.wait_for_selector(sel["date_picker"], timeout=10000)

        for value in (params.check_in, params.check_out):
            day = parse_date(value)
            cell = sel["day_cell"].format(day=day.day, month=day.month, year=day.year)
            await page.wait_for_selector(cell, timeout=5000)
            await page.click(cell)
            await page.wait_for_timeout(500)

        await page.wait_for_selector(sel["apply_dates_enabled"], timeout=10000)
        await page.click(sel["apply_dates"])
        await page.wait_for_timeout(2000)

    async def _counter_value(self, page, kind: str) -> int:
        text = await first_text(page, f'{self.selectors["counter"].format(kind=kind)} {self.selectors["counter_value"]}')
        return int(text) if text.isdigit() else 0

    async def set_counter(self, page, kind: str, target: int) -> None:
        counter = self.selectors["counter"].format(kind=kind)
        direction, presses = counter_steps(await self._counter_value(page, kind), target)
        button = f'{counter} {self.selectors[f"counter_{direction}"]}'
        for _ in range(presses):
            await page.click(button)
            await page.wait_for_timeout(500)

    async def select_guests(self, page, params: SearchParams) -> None:
        sel = self.selectors
        await page.wait_for_selector(sel["person_input"], timeout=10000)
        await page.click(sel["person_input"])
        await page.wait_for_selector(sel["person_dropdown"], timeout=10000)

        await self.set_counter(page, "adult", params.adults)
        await self.set_counter(page, "children", params.children)

        ages = params.effective_child_ages
        if ages:
            await page.wait_for_timeout(1000)
            selects = await page.query_selector_all(sel["child_age_selects"])
            for select, age in zip(selects, ages):
                try:
                    await select.select_option(str(age))
                except PlaywrightError as e:
                    logger.warning("[tatilbudur] could not set child age %s: %s", age, e)

        await page.click(sel["apply_guests"])
        await page.wait_for_timeout(2000)

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        try:
            await page.wait_for_selector(self.selectors["rooms"], timeout=self.room_wait_timeout)
        except PlaywrightError:
            logger.warning("[tatilbudur] no room cards appeared")
            return []
        fields = self.selectors["room"]

        async def read(card) -> dict:
            return {
                "name": await first_text(card, fields["name"]),
                "size": await first_text(card, fields["size"]),
                "features": await all_texts(card, fields["features"]),
                "concept": await first_text(card, fields["concept"]),
                "price": await first_text(card, fields["price"]),
                "original_price": await first_text(card, fields["original_price"]),
                "points": await first_text(card, fields["points"]),
            }

        cards = await page.query_selector_all(self.selectors["rooms"])
        return await extract_each(cards, read, parse_room_card, self.vendor_id)


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def parse_room_card(raw: dict) -> RoomRecord:
    name = (raw.get("name") or "").strip()
    if not name:
        raise ValueError("room card without name")
    return RoomRecord(
        name=name,
        price=build_price(raw.get("price", ""), raw.get("original_price", "")),
        board_type=raw.get("concept", ""),
        room_size=raw.get("size", ""),
        attributes=list(raw.get("features") or []),
        extra={"loyalty_points": raw.get("points", "")},
    )
