"""
Etstur Scraper (etstur.com)

Reads room data from the hotel page's own room API responses instead of
the DOM. Each hotel gets a fresh page so captured responses never leak
between hotels.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlencode

from ..base import BaseScraper, ResponseCollector, accept_cookies, navigate_with_retry, parse_rooms, reload_quietly
from ..errors import NavigationError
from ..schema import PriceInfo, RoomRecord, SearchParams

logger = logging.getLogger(__name__)

BASE_URL = "https://www.etstur.com"

SELECTORS = {
    "cookie_accept": ["#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll"],
    "hotel_name": ["h1"],
    "popups": [],
}


def build_url(relative_url: str, params: SearchParams) -> str:
    """
    Build an Etstur hotel URL.

    Args:
        relative_url: Hotel path (e.g., "/Alba-Resort-Hotel")
        params: Search parameters; child fields are only added when
            there are children
    """
    check_in, check_out = params.format_dates("dotted")
    query = {
        "check_in": check_in,
        "check_out": check_out,
        "adult_1": str(params.adults),
    }
    ages = params.effective_child_ages
    if params.children > 0:
        query["child_1"] = str(params.children)
        for i, age in enumerate(ages, start=1):
            query[f"childage_1_{i}"] = str(age)
    path = relative_url if relative_url.startswith("/") else f"/{relative_url}"
    return f"{BASE_URL}{path}?{urlencode(query)}"


def is_room_response(url: str, headers: dict) -> bool:
    lowered = url.lower()
    return "/api/" in lowered and any(k in lowered for k in ("room", "hotel", "detail"))


class EtsturScraper(BaseScraper):
    vendor_id = "etstur"
    SELECTORS = SELECTORS
    page_per_hotel = True

    def __init__(self, *args, capture_timeout: float = 8.0, **kwargs):
        super().__init__(*args, **kwargs)
        self.capture_timeout = capture_timeout
        self._collector: Optional[ResponseCollector] = None

    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        return build_url(identifier, params)

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        self._collector = ResponseCollector(is_room_response)
        self._collector.attach(page)
        if not await navigate_with_retry(page, url):
            raise NavigationError(f"Failed to navigate to {url} after retries", vendor=self.vendor_id, url=url)
        await accept_cookies(page, self.selectors["cookie_accept"])

    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        payload = await self._collector.wait_for(find_room_payload, timeout=self.capture_timeout)
        if payload is None:
            logger.info("[etstur] no room data captured, reloading once")
            await reload_quietly(page, self.vendor_id)
            payload = await self._collector.wait_for(find_room_payload, timeout=self.capture_timeout)
        if payload is None:
            return []
        return parse_rooms(payload["result"]["rooms"], parse_room, self.vendor_id)


# ---------------------------------------------------------------------------
# Pure parsing functions
# ---------------------------------------------------------------------------

def find_room_payload(data: Any) -> Optional[dict]:
    """Return the response body if it looks like a room list ({result: {rooms: [...]}})."""
    if isinstance(data, dict) and isinstance(data.get("result"), dict):
        if isinstance(data["result"].get("rooms"), list):
            return data
    return None


def _money(value: Any) -> tuple[Optional[float], Optional[str]]:
    if isinstance(value, dict):
        amount = value.get("amount")
        return (float(amount) if amount is not None else None), value.get("currency")
    if isinstance(value, (int, float)):
        return float(value), None
    return None, None


def _is_available(board: dict) -> bool:
    return (board.get("availability") or {}).get("type") == "AVAILABLE"


def parse_room(room: dict) -> RoomRecord:
    """Map one API room object to a RoomRecord."""
    name = (room.get("roomName") or "").strip()
    if not name:
        raise ValueError("room without roomName")

    sub_boards = room.get("subBoards") or []
    night_count = room.get("nightCount") or 0
    per_night, currency = _money(room.get("nightlyMinPrice"))
    amount = per_night * night_count if per_night is not None and night_count else per_night

    available_boards = [b for b in sub_boards if isinstance(b, dict) and _is_available(b)]
    board = available_boards[0] if available_boards else (sub_boards[0] if sub_boards else {})
    if not isinstance(board, dict):
        board = {}
    board_type = board.get("name") or board.get("boardName") or ""

    capacity = room.get("roomCapacity")
    return RoomRecord(
        name=name,
        price=PriceInfo(amount=amount, currency=currency or "TRY", per_night=per_night),
        board_type=board_type,
        capacity=str(capacity) if capacity else "",
        bed_type=", ".join(str(b.get("name", b)) if isinstance(b, dict) else str(b) for b in room.get("bedTypes") or []),
        room_size=str(room.get("roomSize") or ""),
        available=bool(available_boards),
        attributes=[str(f.get("name", f)) if isinstance(f, dict) else str(f) for f in room.get("facilities") or []],
        images=[i.get("url", "") if isinstance(i, dict) else str(i) for i in room.get("images") or []],
        extra={
            "room_id": room.get("roomId"),
            "description": room.get("description"),
            "max_adult_capacity": room.get("maxAdultCapacity"),
            "max_child_capacity": room.get("maxChildCapacity"),
            "night_count": night_count,
            "badges": room.get("badges") or [],
            "sub_boards": sub_boards,
            "accept_child": bool(room.get("acceptChild")),
            "secret_room": bool(room.get("secretRoom")),
        },
    )
