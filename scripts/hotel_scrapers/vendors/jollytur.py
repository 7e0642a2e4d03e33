"""
JollyTur Scraper (jollytur.com)

Room cards carry the richest data of all vendors: concept, badges,
amenities, images, campaigns and a per-night price breakdown. Only part
of the room list is rendered at first; the "DİĞER ODALAR" button loads
the rest.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..base import BaseScraper, all_texts, build_price, dismiss_blocking_ui, extract_each, first_text, parse_amount
from ..schema import DailyPrice, RoomRecord, SearchParams, parse_date

logger = logging.getLogger(__name__)

BASE_URL = "https://www.jollytur.com"

SELECTORS = {
    "content": ".product-tab-content",
    "hotel_name": ["h1.hotel-title", ".hotel-name", "h1", ".product-title"],
    "popups": [
        ".modal .close",
        ".modal .btn-close",
        ".modal .close-button",
        ".modal-close",
        ".popup-close",
        ".close-button",
        ".btn-close",
        '[data-dismiss="modal"]',
        ".popup .close",
        ".overlay .close",
        ".modal-header .close",
        '[title="Kapat"]',
        '[title="Close"]',
        '[aria-label="Close"]',
        '[aria-label="Kapat"]',
        ".close-icon",
        ".close-btn",
    ],
    "load_more": ".other-product-card.other-button",
    "load_more_text": "DİĞER ODALAR",
    "rooms": ".product-info-box.simple.v2",
    "room": {
        "title": ".room-title",
        "concept": ".room-concept",
        "min_stay": ".room-type-info span",
        "old_price": ".old-price",
        "current_price": ".current-price",
        "discount": ".discount-percent",
        "badges": ".room-badges .badge",
        "description": ".option-text",
        "amenities": ".option-tag.card-option span",
        "paid_icon": "i.icon-tl",
        "images": ".card_slider-nav img",
        "campaigns": ".campaign-tag .badge span",
        "cancellation": ".cancelPolicy-badge span",
        "child_policy": ".two-free-kid",
        "daily": ".night-count-box .list",
        "daily_day": ".top .day",
        "daily_date": ".top .date",
        "daily_old": ".bottom .old-price",
        "daily_current": ".bottom .current-price",
    },
}

MAX_LOAD_MORE = 5
UNAVAILABLE_CLASSES = {"request", "off-sale"}

_BADGE_FIELDS = {
    "icon-alan": "room_size",
    "icon-room-count": "bed_type",
    "icon-view": "view",
    "icon-no-smoking": "smoking_policy",
}


def build_url(slug: str, params: SearchParams) -> str:
    """
    Build a JollyTur hotel URL.

    Format: /{slug}?Rooms={adults}[-{age}...]&StartDate=YYYY.MM.DD&EndDate=YYYY.MM.DD
    """
    check_in, check_out = params.format_dates("dotted_iso")
    rooms = str(params.adults)
    ages = params.effective_child_ages
    if ages:
        rooms += "-" + "-".join(str(a) for a in ages)
    return f"{BASE_URL}/{slug.strip('/')}?Rooms={rooms}&StartDate={check_in}&EndDate={check_out}"


class JollyTurScraper(BaseScraper):
    vendor_id = "jollytur"
    SELECTORS = SELECTORS

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        await super().open_hotel(page, url, params)
        try:
            await page.wait_for_selector(self.selectors["content"], timeout=10000)
        except PlaywrightTimeoutError:
            logger.warning("[jollytur] product tabs did not appear")

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        return build_url(identifier, params)

    async def _has_more_rooms(self, page) -> bool:
        button = await page.query_selector(self.selectors["load_more"])
        if button is None or not await button.is_visible():
            return False
        text = await button.inner_text() or ""
        return self.selectors["load_more_text"] in text and "(0)" not in text

    async def load_all_rooms(self, page) -> int:
        """Click "load more" until the room count stops growing. Returns clicks made."""
        clicks = 0
        while clicks < MAX_LOAD_MORE:
            try:
                if not await self._has_more_rooms(page):
                    break
                before = len(await page.query_selector_all(self.selectors["rooms"]))
                await page.click(self.selectors["load_more"])
                await page.wait_for_timeout(2000)
                await dismiss_blocking_ui(page, self.selectors["popups"])
                clicks += 1
                after = len(await page.query_selector_all(self.selectors["rooms"]))
            except PlaywrightError as e:
                logger.debug("[jollytur] load more failed: %s", e)
                break
            logger.info("[jollytur] loaded more rooms: %d -> %d", before, after)
            if after <= before:
                break
        return clicks

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        await self.load_all_rooms(page)
        cards = await page.query_selector_all(self.selectors["rooms"])
        return await extract_each(cards, self.read_card, parse_room_card, self.vendor_id)

    async def read_card(self, card) -> dict:
        sel = self.selectors["room"]

        badges = []
        for badge in await card.query_selector_all(sel["badges"]):
            icon = await badge.query_selector("i")
            badges.append({
                "icon": (await icon.get_attribute("class") or "") if icon else "",
                "text": (await badge.inner_text() or "").strip(),
            })

        amenities = []
        for item in await card.query_selector_all(sel["amenities"]):
            text = (await item.inner_text() or "").strip()
            if text:
                amenities.append({"name": text, "is_paid": await item.query_selector(sel["paid_icon"]) is not None})

        images = []
        for img in await card.query_selector_all(sel["images"]):
            src = await img.get_attribute("src")
            if src:
                images.append(src)

        daily = []
        for row in await card.query_selector_all(sel["daily"]):
            daily.append({
                "day": await first_text(row, sel["daily_day"]),
                "date": await first_text(row, sel["daily_date"]),
                "old_price": await first_text(row, sel["daily_old"]),
                "current_price": await first_text(row, sel["daily_current"]),
            })

        return {
            "room_id": await card.get_attribute("data-roomid") or "",
            "room_type": await card.get_attribute("data-roomtype") or "",
            "classes": (await card.get_attribute("class") or "").split(),
            "title": await first_text(card, sel["title"]),
            "concept": await first_text(card, sel["concept"]),
            "min_stay": await first_text(card, sel["min_stay"]),
            "old_price": await first_text(card, sel["old_price"]),
            "current_price": await first_text(card, sel["current_price"]),
            "discount": await first_text(card, sel["discount"]),
            "badges": badges,
            "description": await first_text(card, sel["description"]),
            "amenities": amenities,
            "images": images,
            "campaigns": await all_texts(card, sel["campaigns"]),
            "cancellation": await first_text(card, sel["cancellation"]),
            "child_policy": await first_text(card, sel["child_policy"]),
            "daily": daily,
        }


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def full_size_image(url: str) -> str:
    return url.replace("-150.jpg", "-1024.jpg")


def classify_badges(badges: list[dict]) -> dict[str, str]:
    """Map badge icons to room fields; size badges are normalized to 'N m2'."""
    details = {}
    for badge in badges:
        for icon, field_name in _BADGE_FIELDS.items():
            if icon in (badge.get("icon") or ""):
                text = (badge.get("text") or "").strip()
                if field_name == "room_size":
                    m = re.search(r"\d+", text)
                    text = f"{m.group(0)} m2" if m else ""
                details.setdefault(field_name, text)
                break
    return details


def parse_daily_price(raw: dict) -> Optional[DailyPrice]:
    """'31.07.2025 - Perşembe' style rows; None when incomplete."""
    date_text = (raw.get("date") or "").strip()
    if not raw.get("day") or not raw.get("current_price") or " - " not in date_text:
        return None
    day_part, _, day_name = date_text.partition(" - ")
    try:
        day = parse_date(day_part).isoformat()
    except ValueError:
        return None
    return DailyPrice(
        date=day,
        day_name=re.sub(r"</?b>", "", day_name).strip(),
        amount=parse_amount(raw["current_price"]),
        original_amount=parse_amount(raw.get("old_price", "")),
    )


def parse_room_card(raw: dict) -> RoomRecord:
    name = (raw.get("title") or raw.get("room_type") or "").strip()
    if not name:
        raise ValueError("room card without title")

    price = build_price(raw.get("current_price", ""), raw.get("old_price", ""))
    if price.discount_percentage is None and raw.get("discount"):
        m = re.search(r"\d+", raw["discount"])
        if m:
            price.discount_percentage = int(m.group(0))

    details = classify_badges(raw.get("badges") or [])
    amenities = raw.get("amenities") or []
    cancellation = raw.get("cancellation", "")
    daily = [d for d in (parse_daily_price(r) for r in raw.get("daily") or []) if d]

    return RoomRecord(
        name=name,
        price=price,
        board_type=re.sub(r"^[^A-Za-zÇĞİÖŞÜçğıöşü]*", "", raw.get("concept") or ""),
        bed_type=details.get("bed_type", ""),
        room_size=details.get("room_size", ""),
        view=details.get("view", ""),
        cancellation_policy=cancellation,
        available=not UNAVAILABLE_CLASSES.intersection(raw.get("classes") or []),
        attributes=[a["name"] for a in amenities],
        images=[full_size_image(src) for src in raw.get("images") or []],
        daily_prices=daily,
        extra={
            "room_id": raw.get("room_id", ""),
            "room_type": raw.get("room_type", ""),
            "min_stay": raw.get("min_stay", ""),
            "smoking_policy": details.get("smoking_policy", ""),
            "description": raw.get("description", ""),
            "paid_amenities": [a["name"] for a in amenities if a.get("is_paid")],
            "badges": raw.get("badges") or [],
            "thumbnails": raw.get("images") or [],
            "campaigns": raw.get("campaigns") or [],
            "child_policy": raw.get("child_policy", ""),
        },
    )
