"""
Tatilsepeti Scraper (tatilsepeti.com)

Room cards are read straight from the hotel page. In detailed mode each
room's "all prices" modal is opened as well, one at a time, to collect
the per-period price table including child pricing.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..base import BaseScraper, all_texts, build_price, first_text, parse_amount, slugify
from ..schema import PeriodPrice, RoomRecord, SearchParams

logger = logging.getLogger(__name__)

BASE_URL = "https://www.tatilsepeti.com"

SELECTORS = {
    "hotel_name": ["h1", ".hotel-name", "title"],
    "title_suffixes": [" | Tatilsepeti", " - Tatilsepeti"],
    "popups": [
        ".modal-content .close",
        ".modal-content .close-button",
        'button[data-dismiss="modal"]',
        '.close[aria-label="Close"]',
    ],
    "room_list": "#dev-roomList",
    "cards": ".Hotel__Details--Card",
    "card": {
        "header": ".Header--Title, .Section--Title",
        "name": [".Header--Title", ".Section--Title"],
        "size": ['[data-id="roomSquareMeter"]', '.roomDetailInfo span[data-a*="m2"]'],
        "size_title": '.roomDetailInfo[data-original-title*="m2"]',
        "features": ".roomDetailInfo span",
        "concept": [".Details--Title", ".Card__Section--Amenities h3", ".amenities h3"],
        "total_price": ".Prices--Total",
        "price": ".Prices--Price",
        "discount": ".Prices--Discount",
        "capacity": [".Header--Description span", ".Section--Description span",
                     ".Header--Description", ".Section--Description"],
        "error": ".rightSideError, .hotelDetailYellowError, .mobilShowError",
    },
    "all_prices_button": ".Section--AllPrices",
    "modal": ".modal-content",
    "modal_title": ".modal-content .modal-title",
    "modal_alert": ".modal-content .alert",
    "modal_rows": ".all-price-table tbody tr",
    "modal_close": [
        'button.close.allPricesModalClose[data-dismiss="modal"]',
        ".allPricesModalClose",
        ".modal-content .close",
        'button[data-dismiss="modal"]',
        '.close[aria-label="Close"]',
        ".modal-header .close",
    ],
}

_IN_MODAL_JS = "el => el.closest('.modal-content, .modal-dialog, .modal') !== null"
_IS_SHOWN_JS = """el => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);
    return rect.width > 0 && rect.height > 0 && style.visibility !== 'hidden' && style.display !== 'none';
}"""


def build_url(hotel: str, params: SearchParams) -> str:
    """
    Build a Tatilsepeti hotel URL.

    Format: /{slug}?ara=oda:{adults}[-{age}...];tarih:DD.MM.YYYY,DD.MM.YYYY
    """
    check_in, check_out = params.format_dates("dotted")
    room = str(params.adults)
    ages = params.effective_child_ages
    if ages:
        room += "-" + "-".join(str(a) for a in ages)
    return f"{BASE_URL}/{slugify(hotel)}?ara=oda:{room};tarih:{check_in},{check_out}"


class TatilsepetiScraper(BaseScraper):
    """
    Options:
        detailed: also open every room's "all prices" modal (slower)
    """

    vendor_id = "tatilsepeti"
    SELECTORS = SELECTORS

    def __init__(self, *args, detailed: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.detailed = detailed

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        return build_url(identifier, params)

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        try:
            await page.wait_for_selector(self.selectors["room_list"], timeout=self.room_wait_timeout)
        except PlaywrightTimeoutError:
            logger.warning("[tatilsepeti] room list did not appear")
            return []

        cards = await page.query_selector_all(self.selectors["cards"])
        rooms, priced = [], []
        for index, card in enumerate(cards):
            try:
                room = parse_room_card(await self.read_card(card))
                button = await card.query_selector(self.selectors["all_prices_button"]) if self.detailed else None
            except (PlaywrightError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.debug("[tatilsepeti] skipping room %d: %s", index, e)
                continue
            rooms.append(room)
            if button is not None:
                priced.append((room, button))

        if priced:
            await self.read_all_price_modals(page, priced)
        return rooms

    async def read_card(self, card) -> dict:
        sel = self.selectors["card"]
        if await card.evaluate(_IN_MODAL_JS):
            raise ValueError("card inside a modal")
        if await card.get_attribute("data-card-type") is None:
            raise ValueError("card without data-card-type")
        if await card.query_selector(sel["header"]) is None:
            raise ValueError("card without title")

        size = await first_text(card, sel["size"])
        if not size:
            titled = await card.query_selector(sel["size_title"])
            if titled is not None:
                size = await titled.get_attribute("data-original-title") or ""

        return {
            "name": await first_text(card, sel["name"]),
            "size": size,
            "features": await all_texts(card, sel["features"]),
            "concept": await first_text(card, sel["concept"]),
            "total_price": await first_text(card, sel["total_price"]),
            "price": await first_text(card, sel["price"]),
            "discount": await first_text(card, sel["discount"]),
            "capacity": await first_text(card, sel["capacity"]),
            "has_error": await card.query_selector(sel["error"]) is not None,
        }

    # -----------------------------------------------------------------------
    # Detailed mode
    # -----------------------------------------------------------------------

    async def read_all_price_modals(self, page, priced: list[tuple[RoomRecord, Any]]) -> int:
        """
        Open each room's price modal in turn and attach its table to that room.

        Buttons come from the room's own card. Strictly sequential: a
        modal is always closed before the next button is clicked.
        Returns the number of tables read.
        """
        read = 0
        for room, button in priced:
            try:
                await self.ensure_modal_closed(page)
                await button.scroll_into_view_if_needed()
                await page.wait_for_timeout(1000)
                if not await button.evaluate(_IS_SHOWN_JS):
                    continue
                await button.click()
                await page.wait_for_timeout(3000)
                await page.wait_for_selector(self.selectors["modal"], timeout=5000)
                attach_period_table(room, {
                    "title": await first_text(page, self.selectors["modal_title"]),
                    "alert": await first_text(page, self.selectors["modal_alert"]),
                    "rows": await self.read_modal_rows(page),
                })
                read += 1
            except PlaywrightError as e:
                logger.warning("[tatilsepeti] price modal for %r failed: %s", room.name, e)
            finally:
                await self.close_modal(page)
        return read

    async def read_modal_rows(self, page) -> list[dict]:
        rows = []
        for row in await page.query_selector_all(self.selectors["modal_rows"]):
            cells = await row.query_selector_all(":scope > td")
            texts = [(await c.inner_text() or "").strip() for c in cells]
            prices = []
            for index in (2, 3, 4):
                if index < len(cells):
                    prices.append(await first_text(cells[index], ".price") or texts[index])
                else:
                    prices.append("")
            children = []
            if len(cells) > 5:
                for child_row in await cells[5].query_selector_all("table tbody tr"):
                    children.append([(await c.inner_text() or "").strip()
                                     for c in await child_row.query_selector_all("td")])
            rows.append({"cells": texts, "prices": prices, "children": children})
        return rows

    async def ensure_modal_closed(self, page) -> None:
        if await page.query_selector(self.selectors["modal"]) is not None:
            await self.close_modal(page)

    async def close_modal(self, page) -> None:
        """Click the first close control found, falling back to Escape."""
        try:
            await page.wait_for_timeout(500)
            closed = False
            for selector in self.selectors["modal_close"]:
                button = await page.query_selector(selector)
                if button is None:
                    continue
                try:
                    await button.click()
                    closed = True
                    break
                except PlaywrightError:
                    continue
            if not closed:
                await page.keyboard.press("Escape")
            await page.wait_for_timeout(1500)
            if await page.query_selector(self.selectors["modal"]) is not None:
                await page.keyboard.press("Escape")
                await page.wait_for_timeout(1000)
        except PlaywrightError as e:
            logger.debug("[tatilsepeti] closing modal failed: %s", e)


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def parse_room_card(raw: dict) -> RoomRecord:
    name = (raw.get("name") or "").strip()
    if not name:
        raise ValueError("room card without name")
    # .Prices--Total is the undiscounted price, .Prices--Price the one to pay
    current = raw.get("price") or raw.get("total_price") or ""
    price = build_price(current, raw.get("total_price", "") if raw.get("price") else "")
    if price.discount_percentage is None and raw.get("discount"):
        digits = "".join(ch for ch in raw["discount"] if ch.isdigit())
        price.discount_percentage = int(digits) if digits else None

    features = [f for f in raw.get("features") or [] if f and f != raw.get("size")]
    return RoomRecord(
        name=name,
        price=price,
        board_type=raw.get("concept", ""),
        capacity=raw.get("capacity", ""),
        room_size=raw.get("size", ""),
        available=not raw.get("has_error", False),
        attributes=features,
    )


def parse_modal_row(raw: dict) -> Optional[PeriodPrice]:
    """Rows need at least period, type and two price cells; others yield None."""
    cells = raw.get("cells") or []
    if len(cells) < 4:
        return None
    double, single, extra_bed = (list(raw.get("prices") or []) + ["", "", ""])[:3]
    children = [
        {"child_number": c[0], "child_age": c[1], "child_price": c[2]}
        for c in raw.get("children") or []
        if len(c) >= 3
    ]
    return PeriodPrice(
        period=cells[0],
        room_type=cells[1],
        double_price=parse_amount(double),
        single_price=parse_amount(single),
        extra_bed_price=parse_amount(extra_bed),
        children_pricing=children,
    )


def attach_period_table(room: RoomRecord, table: dict) -> None:
    """Add one modal's period rows to its room; unparseable rows are dropped."""
    room.period_prices.extend(p for p in (parse_modal_row(r) for r in table.get("rows") or []) if p)
    room.extra["price_modal"] = {"title": table.get("title", ""), "alert": table.get("alert", "")}
