"""
Touristica Scraper (touristica.com.tr)

The hotel URL carries no search parameters, so dates and guests are
entered through the page's own search box. Rooms come from the
"ODALAR VE FİYATLAR" tab; the "FİYAT LİSTESİ" tab adds per-period price
tables for each room type.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..base import BaseScraper, all_texts, build_price, dismiss_blocking_ui, extract_each, first_text, parse_amount
from ..schema import PeriodPrice, RoomRecord, SearchParams, parse_date

logger = logging.getLogger(__name__)

BASE_URL = "https://www.touristica.com.tr"

SELECTORS = {
    "hotel_name": ["h1", ".hotel-name", ".hotel-title"],
    "title_suffixes": [" - Touristica", " | Touristica"],
    "popups": [
        ".modal .close",
        ".popup .close",
        ".overlay .close",
        '[data-dismiss="modal"]',
        ".btn-close",
        ".close-button",
        ".modal-header .close",
        ".fancybox-close",
        ".lightbox-close",
    ],
    "search_box": ".search-box",
    "date_wrapper": ".check-in-out-date-wrapper",
    "date_picker": ".daterangepicker",
    "day_cells": ".daterangepicker .drp-calendar.{side} tbody td:not(.off):not(.disabled)",
    "apply": ".daterangepicker .applyBtn",
    "check_in_input": "#txtCheckInDate",
    "check_out_input": "#txtCheckOutDate",
    "person_input": ".person-count-input",
    "person_box": ".person-selector-box",
    "person_close": ".person-selector-box .mobile-button a",
    "adult_select": "#ddlAdultCount",
    "child_select": "#ddlChildCount",
    "child_age_selects": ["#ddlFirstChildAge", "#ddlSecondChildAge"],
    "search_button": ".search-button",
    "tabs_container": ".nav-tabs-container",
    "tabs": ".nav-tabs li a",
    "rooms_tab": "ODALAR VE FİYATLAR",
    "price_list_tab": "FİYAT LİSTESİ",
    "rooms": ".availability-item.v2.r1.from-rapid",
    "room": {
        "name": ".accommodation-type",
        "board": ".hotel-pension-type",
        "price": ".price-wrapper .price",
        "old_price": ".price-wrapper .old-price",
        "discounts": ".hotel-discount-v2",
        "capacity": ".room-capacity-text",
    },
    "room_type_tabs": ".nav-tabs.small.scrollable li a",
    "price_table": ".price-list-table",
    "price_rows": ".price-list-table tbody tr",
}

MAX_CHILD_AGES = 2

# Sets a form control's value and fires change so the site's own handlers run
_SET_VALUE_JS = """([selector, value]) => {
    const el = document.querySelector(selector);
    if (!el) return false;
    el.value = value;
    el.dispatchEvent(new Event('change', { bubbles: true }));
    return true;
}"""


def build_url(slug: str) -> str:
    """Touristica hotel URL. Dates and guests are entered on the page."""
    return f"{BASE_URL}/{slug.strip('/')}"


def calendar_side(day: date, today: date | None = None) -> str:
    """The picker shows the current month on the left and the next on the right."""
    today = today or date.today()
    return "left" if (day.year, day.month) == (today.year, today.month) else "right"


class TouristicaScraper(BaseScraper):
    vendor_id = "touristica"
    SELECTORS = SELECTORS

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        return build_url(identifier)

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        await super().open_hotel(page, url, params)
        await dismiss_blocking_ui(page, self.selectors["popups"], press_escape=False, neutral_point=None)
        await self.fill_search_form(page, params)

    async def _set_value(self, page, selector: str, value) -> bool:
        return await page.evaluate(_SET_VALUE_JS, [selector, str(value)])

    async def _click_day(self, page, day: date) -> bool:
        selector = self.selectors["day_cells"].format(side=calendar_side(day))
        for cell in await page.query_selector_all(selector):
            if (await cell.inner_text() or "").strip() == str(day.day):
                await cell.click()
                await page.wait_for_timeout(1000)
                return True
        return False

    async def select_dates(self, page, params: SearchParams) -> None:
        sel = self.selectors
        check_in, check_out = parse_date(params.check_in), parse_date(params.check_out)
        picked = False
        try:
            await page.click(sel["date_wrapper"])
            await page.wait_for_selector(sel["date_picker"], timeout=5000)
            picked = await self._click_day(page, check_in) and await self._click_day(page, check_out)
            if picked:
                await page.click(sel["apply"])
                await page.wait_for_timeout(2000)
        except PlaywrightError as e:
            logger.info("[touristica] date picker failed: %s", e)
            picked = False

        if not picked:
            logger.info("[touristica] setting date inputs directly")
            dotted_in, dotted_out = params.format_dates("dotted")
            await self._set_value(page, sel["check_in_input"], dotted_in)
            await self._set_value(page, sel["check_out_input"], dotted_out)

    async def select_guests(self, page, params: SearchParams) -> None:
        sel = self.selectors
        try:
            await page.click(sel["person_input"])
            await page.wait_for_selector(sel["person_box"], timeout=5000)
        except PlaywrightError as e:
            logger.debug("[touristica] person selector did not open: %s", e)

        await self._set_value(page, sel["adult_select"], params.adults)
        await self._set_value(page, sel["child_select"], params.children)
        for selector, age in zip(sel["child_age_selects"], params.effective_child_ages[:MAX_CHILD_AGES]):
            await self._set_value(page, selector, age)

        close = await page.query_selector(sel["person_close"])
        if close is not None:
            await close.click()
        await page.wait_for_timeout(1000)

    async def fill_search_form(self, page, params: SearchParams) -> None:
        sel = self.selectors
        await page.wait_for_selector(sel["search_box"], timeout=10000)
        await page.wait_for_timeout(2000)
        await self.select_dates(page, params)
        await self.select_guests(page, params)
        await page.wait_for_timeout(2000)
        await page.click(sel["search_button"])
        await page.wait_for_timeout(5000)
        try:
            await page.wait_for_selector(sel["tabs_container"], timeout=10000)
        except PlaywrightTimeoutError:
            logger.warning("[touristica] result tabs did not appear after search")
        await dismiss_blocking_ui(page, sel["popups"], press_escape=False, neutral_point=None)

    async def click_tab(self, page, selector: str, text: str) -> bool:
        for tab in await page.query_selector_all(selector):
            if (await tab.inner_text() or "").strip() == text:
                await tab.click()
                await page.wait_for_timeout(3000)
                return True
        logger.warning("[touristica] tab %r not found", text)
        return False

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        sel = self.selectors
        rooms: list[RoomRecord] = []
        if await self.click_tab(page, sel["tabs"], sel["rooms_tab"]):
            fields = sel["room"]

            async def read(item) -> dict:
                return {
                    "name": await first_text(item, fields["name"]),
                    "board": await first_text(item, fields["board"]),
                    "price": await first_text(item, fields["price"]),
                    "old_price": await first_text(item, fields["old_price"]),
                    "discounts": await all_texts(item, fields["discounts"]),
                    "capacity": await first_text(item, fields["capacity"]),
                }

            items = await page.query_selector_all(sel["rooms"])
            rooms = await extract_each(items, read, parse_availability_item, self.vendor_id)

        price_lists = await self.read_price_lists(page)
        return merge_price_lists(rooms, price_lists)

    async def read_price_lists(self, page) -> dict[str, list[PeriodPrice]]:
        """Period tables per room type from the price list tab."""
        sel = self.selectors
        if not await self.click_tab(page, sel["tabs"], sel["price_list_tab"]):
            return {}

        tables: dict[str, list[PeriodPrice]] = {}
        tab_count = len(await page.query_selector_all(sel["room_type_tabs"]))
        for index in range(tab_count):
            # Tabs are re-queried because the table re-render detaches them
            tabs = await page.query_selector_all(sel["room_type_tabs"])
            if index >= len(tabs):
                break
            room_type = (await tabs[index].inner_text() or "").strip() or f"Room Type {index + 1}"
            try:
                await tabs[index].click()
                await page.wait_for_timeout(3000)
                await page.wait_for_selector(sel["price_table"], timeout=10000)
                rows = [await self.read_price_row(row) for row in await page.query_selector_all(sel["price_rows"])]
            except PlaywrightError as e:
                logger.debug("[touristica] price table for %r failed: %s", room_type, e)
                continue
            periods = [p for p in (parse_price_row(r, room_type) for r in rows) if p]
            if periods:
                tables[room_type] = periods
        return tables

    async def read_price_row(self, row) -> dict:
        cells = await row.query_selector_all("td")
        texts = [(await c.inner_text() or "").strip() for c in cells]
        prices = {}
        for key, index in (("double", 3), ("single", 4), ("extra_bed", 5)):
            if index < len(cells):
                prices[key] = await first_text(cells[index], ".price")
                prices[f"{key}_old"] = await first_text(cells[index], ".old-price")
        link = None
        if len(cells) > 7:
            anchor = await cells[7].query_selector("a")
            link = await anchor.get_attribute("href") if anchor else None
        return {"cells": texts, "prices": prices, "installment_link": link}


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def parse_availability_item(raw: dict) -> RoomRecord:
    name = (raw.get("name") or "").strip()
    if not name:
        raise ValueError("availability item without room name")
    discounts = raw.get("discounts") or []
    return RoomRecord(
        name=name,
        price=build_price(raw.get("price", ""), raw.get("old_price", "")),
        board_type=raw.get("board", ""),
        capacity=raw.get("capacity", ""),
        attributes=list(discounts),
        extra={"discounts": list(discounts)},
    )


def parse_price_row(raw: dict, room_type: str = "") -> Optional[PeriodPrice]:
    """
    One price-list row: period cell (period / week days / minimum nights),
    discount, board, then double, single and extra-bed prices.

    Rows with fewer than 8 cells are headers or notes and yield None.
    """
    cells = raw.get("cells") or []
    if len(cells) < 8:
        return None
    lines = [line.strip() for line in cells[0].split("\n") if line.strip()]
    prices = raw.get("prices") or {}

    def amount(key: str) -> Optional[float]:
        return parse_amount(prices.get(key) or "")

    return PeriodPrice(
        period=lines[0] if lines else "",
        room_type=room_type,
        board_type=cells[2],
        double_price=amount("double"),
        single_price=amount("single"),
        extra_bed_price=amount("extra_bed"),
        children_pricing=[{"policy": cells[6]}] if cells[6] else [],
        minimum_nights=lines[2] if len(lines) >= 3 else "",
        discount_rate=cells[1],
    )


def merge_price_lists(rooms: list[RoomRecord], tables: dict[str, list[PeriodPrice]]) -> list[RoomRecord]:
    """
    Attach period tables to rooms of the same name.

    Room types that only appear in the price list are added as rooms
    without a current price.
    """
    by_name = {room.name.casefold(): room for room in rooms}
    merged = list(rooms)
    for room_type, periods in tables.items():
        room = by_name.get(room_type.casefold())
        if room is None:
            room = RoomRecord(name=room_type, extra={"source": "price_list"})
            by_name[room_type.casefold()] = room
            merged.append(room)
        room.period_prices.extend(periods)
    return merged
