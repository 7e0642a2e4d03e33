"""
Tests for hotel_scrapers.base: price parsing, page helpers and the
shared scrape lifecycle, driven by fake pages.
"""

import pytest
from playwright.async_api import Error as PlaywrightError

from hotel_scrapers.base import (
    BaseScraper, ResponseCollector, build_price, counter_steps, detect_currency, discount_percentage,
    dismiss_blocking_ui, extract_each, first_text, is_call_to_action, navigate_with_retry, now_iso,
    parse_amount, parse_rooms, slugify, wait_for_any, wait_for_captcha_clear,
)
from hotel_scrapers.errors import CaptchaError, NavigationError
from hotel_scrapers.schema import RoomRecord

from fakes import FakeElement, FakePage, FakeResponse, FakeSession


class TestTextHelpers:
    def test_slugify(self):
        assert slugify("  Rixos Premium Belek ") == "rixos-premium-belek"
        assert slugify("Hotel -- & Spa") == "hotel-spa"

    def test_now_iso_is_utc_millis(self):
        stamp = now_iso()
        assert stamp.endswith("Z")
        assert len(stamp.split(".")[1]) == 4  # 3 digits + Z

    def test_counter_steps(self):
        assert counter_steps(2, 2) == ("increase", 0)
        assert counter_steps(1, 3) == ("increase", 2)
        assert counter_steps(2, 0) == ("decrease", 2)


class TestParseAmount:
    def test_turkish_format(self):
        assert parse_amount("12.345,50 TL") == 12345.5

    def test_turkish_thousands_only(self):
        assert parse_amount("12.345 TL") == 12345.0
        assert parse_amount("1.234.567 ₺") == 1234567.0

    def test_english_format(self):
        assert parse_amount("$1,234.50") == 1234.5
        assert parse_amount("1,234") == 1234.0

    def test_decimal_comma(self):
        assert parse_amount("99,9") == 99.9

    def test_no_digits(self):
        assert parse_amount("Fiyat sorunuz") is None
        assert parse_amount("") is None
        assert parse_amount(None) is None


class TestCurrency:
    def test_symbols_and_codes(self):
        assert detect_currency("12.345 ₺") == "TRY"
        assert detect_currency("12.345TL") == "TRY"
        assert detect_currency("€ 250") == "EUR"
        assert detect_currency("USD 99") == "USD"
        assert detect_currency("£10") == "GBP"

    def test_default_when_unmarked(self):
        assert detect_currency("12.345") == "TRY"
        assert detect_currency("12.345", default="EUR") == "EUR"

    def test_code_inside_word_ignored(self):
        assert detect_currency("ATLAS 500") == "TRY"
        assert detect_currency("ATLAS 500", default="EUR") == "EUR"


class TestDiscount:
    def test_rounds_half_up(self):
        assert discount_percentage(200, 150) == 25
        assert discount_percentage(1000, 875) == 13  # 12.5 -> 13

    def test_none_when_not_a_discount(self):
        assert discount_percentage(None, 100) is None
        assert discount_percentage(100, None) is None
        assert discount_percentage(100, 120) is None
        assert discount_percentage(0, 0) is None

    def test_build_price(self):
        price = build_price("15.000 TL", "20.000 TL", "2.500 TL")
        assert price.amount == 15000
        assert price.original_amount == 20000
        assert price.discount_percentage == 25
        assert price.per_night == 2500
        assert price.currency == "TRY"
        assert price.raw_text == "15.000 TL"

    def test_build_price_same_original_dropped(self):
        price = build_price("1.000 TL", "1.000 TL")
        assert price.original_amount is None
        assert price.discount_percentage is None

    def test_build_price_missing(self):
        price = build_price("")
        assert price.amount is None
        assert not price.is_populated


def _named(raw):
    if not raw.get("name"):
        raise ValueError("no name")
    return RoomRecord(name=raw["name"])


class TestRoomExtraction:
    def test_parse_rooms_skips_malformed(self):
        rooms = parse_rooms([{"name": "A"}, {}, None, {"name": "B"}], _named, "test")
        assert [r.name for r in rooms] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_extract_each_skips_browser_errors(self):
        async def reader(el):
            if el.text == "broken":
                raise PlaywrightError("detached")
            return {"name": el.text}

        elements = [FakeElement("A"), FakeElement("broken"), FakeElement(""), FakeElement("B")]
        rooms = await extract_each(elements, reader, _named, "test")
        assert [r.name for r in rooms] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_first_text_skips_empty_matches(self):
        page = FakePage(children={".a": [FakeElement("  ")], ".b": [FakeElement(" Deniz Manzaralı ")]})
        assert await first_text(page, [".missing", ".a", ".b"]) == "Deniz Manzaralı"
        assert await first_text(page, ".missing") == ""


class TestNavigation:
    @pytest.mark.asyncio
    async def test_success(self):
        page = FakePage()
        assert await navigate_with_retry(page, "https://example.test/")
        assert page.visited == ["https://example.test/"]

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        page = FakePage(goto_error=PlaywrightError("net::ERR_CONNECTION_RESET"))
        assert not await navigate_with_retry(page, "https://example.test/", max_retries=2, backoff_base=0)

    @pytest.mark.asyncio
    async def test_wait_for_any_returns_first_present(self):
        page = FakePage(children={".second": [FakeElement()]})
        assert await wait_for_any(page, [".first", ".second"], timeout=10) == ".second"
        assert await wait_for_any(page, [".none"], timeout=10) is None


class TestResponseCollector:
    @pytest.mark.asyncio
    async def test_collects_matching_json_only(self):
        collector = ResponseCollector(lambda url, headers: "/api/" in url)
        await collector.on_response(FakeResponse("https://x.test/api/rooms", {"rooms": [1]}))
        await collector.on_response(FakeResponse("https://x.test/static/app.js", {"rooms": [2]}))
        await collector.on_response(FakeResponse("https://x.test/api/bad", ValueError("not json")))
        assert collector.payloads == [("https://x.test/api/rooms", {"rooms": [1]})]

    @pytest.mark.asyncio
    async def test_first_matching_payload_wins(self):
        collector = ResponseCollector(lambda url, headers: True)
        await collector.on_response(FakeResponse("https://x.test/1", {"other": True}))
        await collector.on_response(FakeResponse("https://x.test/2", {"rooms": ["first"]}))
        await collector.on_response(FakeResponse("https://x.test/3", {"rooms": ["second"]}))
        assert collector.pick(lambda d: d.get("rooms")) == ["first"]

    @pytest.mark.asyncio
    async def test_wait_for_times_out(self):
        collector = ResponseCollector(lambda url, headers: True)
        assert await collector.wait_for(lambda d: d, timeout=0.02, interval=0.01) is None

    def test_attach_and_detach(self):
        page = FakePage()
        collector = ResponseCollector(lambda url, headers: True)
        collector.attach(page)
        assert page.listeners["response"] == [collector.on_response]
        collector.detach(page)
        assert page.listeners["response"] == []


class TestObstacles:
    def test_call_to_action(self):
        assert is_call_to_action("Hemen Üye Ol")
        assert is_call_to_action("Subscribe now")
        assert not is_call_to_action("Kapat")

    @pytest.mark.asyncio
    async def test_dismiss_skips_links_and_marketing(self):
        close = FakeElement("×")
        link = FakeElement("Kapat", attrs={"href": "/kampanya"})
        signup = FakeElement("Üye Ol")
        hidden = FakeElement("×", visible=False)
        page = FakePage(children={".close": [hidden, link, signup, close]})

        clicked = await dismiss_blocking_ui(page, [".close"])

        assert clicked == 1
        assert close.clicks == 1
        assert link.clicks == signup.clicks == hidden.clicks == 0
        page.keyboard.press.assert_awaited_with("Escape")
        page.mouse.click.assert_awaited_with(10, 10)

    @pytest.mark.asyncio
    async def test_dismiss_never_raises(self):
        page = FakePage()
        page.keyboard.press.side_effect = PlaywrightError("page closed")
        assert await dismiss_blocking_ui(page, [".close"]) == 0

    @pytest.mark.asyncio
    async def test_dismiss_respects_max_clicks(self):
        buttons = [FakeElement("×") for _ in range(4)]
        page = FakePage(children={".close": buttons})
        assert await dismiss_blocking_ui(page, ".close", max_clicks=2, press_escape=False, neutral_point=None) == 2

    @pytest.mark.asyncio
    async def test_no_captcha(self):
        assert await wait_for_captcha_clear(FakePage(), [".captcha"]) is False

    @pytest.mark.asyncio
    async def test_captcha_that_never_clears(self):
        page = FakePage(children={".captcha": [FakeElement()]})
        with pytest.raises(CaptchaError, match="did not clear"):
            await wait_for_captcha_clear(page, [".captcha"], attempts=2, interval=0, vendor="hotelscom")


class _StubScraper(BaseScraper):
    vendor_id = "stub"
    SELECTORS = {"hotel_name": ["h1"], "title_suffixes": [" | Stub"], "popups": []}

    def __init__(self, rooms, **kwargs):
        super().__init__(**kwargs)
        self.rooms = rooms

    async def target_url(self, page, identifier, params):
        return f"https://stub.test/{identifier}"

    async def extract_rooms(self, page, params):
        return list(self.rooms)


class TestBaseScraper:
    @pytest.mark.asyncio
    async def test_scrape_fills_result(self, params):
        page = FakePage(children={"h1": [FakeElement("Test Hotel | Stub")]})
        scraper = _StubScraper([RoomRecord(name="A")], session=FakeSession(page))

        result = await scraper.scrape("test-hotel", params)

        assert result.success
        assert result.vendor == "stub"
        assert result.hotel_name == "Test Hotel"
        assert result.url == "https://stub.test/test-hotel"
        assert result.room_count == 1
        assert result.scraped_at.endswith("Z")

    @pytest.mark.asyncio
    async def test_no_rooms_marks_failure_and_saves_artifacts(self, params, tmp_path):
        scraper = _StubScraper([], session=FakeSession(FakePage()), debug_dir=str(tmp_path))

        result = await scraper.scrape("empty-hotel", params)

        assert not result.success
        assert result.error == "No rooms found"
        assert result.hotel_name == "empty-hotel"
        assert len(result.debug_artifacts) == 2
        assert (tmp_path / "stub").is_dir()

    @pytest.mark.asyncio
    async def test_navigation_failure_raises(self, params, monkeypatch):
        async def fail(page, url, **kwargs):
            return False

        monkeypatch.setattr("hotel_scrapers.base.navigate_with_retry", fail)
        scraper = _StubScraper([RoomRecord(name="A")], session=FakeSession(FakePage()))
        with pytest.raises(NavigationError, match="Failed to navigate"):
            await scraper.scrape("test-hotel", params)
