"""
Tests for hotel_scrapers.schema: search parameters, records and validation.
"""

import pytest

from hotel_scrapers.schema import (
    HotelOutcome, PriceInfo, RoomRecord, ScrapeResult, SearchParams, SessionSummary,
    DailyPrice, PeriodPrice, available_rooms, lowest_price_room, parse_date, price_summary,
    validate_result,
)


def _room(name, amount=None, available=True):
    return RoomRecord(name=name, price=PriceInfo(amount=amount), available=available)


class TestSearchParams:
    def test_dotted_dates_normalized(self):
        p = SearchParams(check_in="07.08.2025", check_out="13.08.2025")
        assert p.check_in == "2025-08-07"
        assert p.check_out == "2025-08-13"

    def test_bad_date_raises(self):
        with pytest.raises(ValueError, match="Unrecognized date"):
            parse_date("08/07/2025")

    def test_nights(self, params):
        assert params.nights == 6

    def test_format_dates(self, params):
        assert params.format_dates("iso") == ("2025-08-07", "2025-08-13")
        assert params.format_dates("dotted") == ("07.08.2025", "13.08.2025")
        assert params.format_dates("compact") == ("20250807", "20250813")
        assert params.format_dates("dotted_iso") == ("2025.08.07", "2025.08.13")

    def test_ages_ignored_without_children(self):
        p = SearchParams(check_in="2025-08-07", check_out="2025-08-13", children=0, child_ages=[5, 7])
        assert p.effective_child_ages == []
        assert p.effective_child_birthdates == []

    def test_ages_truncated_to_child_count(self):
        p = SearchParams(check_in="2025-08-07", check_out="2025-08-13", children=1, child_ages=[5, 7])
        assert p.effective_child_ages == [5]

    def test_birthdates_derived_from_ages(self, params):
        assert params.effective_child_birthdates == ["2017-08-07"]

    def test_explicit_birthdates_win(self):
        p = SearchParams(
            check_in="2025-08-07", check_out="2025-08-13",
            children=1, child_ages=[8], child_birthdates=["2017-01-15"],
        )
        assert p.effective_child_birthdates == ["2017-01-15"]

    def test_occupancy_suffix(self, params, adults_only):
        assert params.occupancy_suffix() == "-2ad-1chld-8"
        assert adults_only.occupancy_suffix() == "-2ad"

    def test_validate_rejects_reversed_dates(self):
        p = SearchParams(check_in="2025-08-13", check_out="2025-08-07")
        with pytest.raises(ValueError, match="must be after"):
            p.validate()

    def test_validate_rejects_same_day(self):
        p = SearchParams(check_in="2025-08-07", check_out="2025-08-07")
        with pytest.raises(ValueError):
            p.validate()

    def test_validate_rejects_zero_adults(self):
        p = SearchParams(check_in="2025-08-07", check_out="2025-08-13", adults=0)
        with pytest.raises(ValueError, match="adults"):
            p.validate()

    def test_validate_requires_dates(self):
        with pytest.raises(ValueError, match="required"):
            SearchParams().validate()

    def test_from_dict_accepts_camel_case(self):
        p = SearchParams.from_dict({
            "checkInDate": "2025-08-07", "checkOutDate": "2025-08-13",
            "adults": "3", "children": 2, "childAges": [4, 9],
        })
        assert p.check_in == "2025-08-07"
        assert p.adults == 3
        assert p.effective_child_ages == [4, 9]


class TestScrapeResult:
    def test_fail_sets_error(self):
        result = ScrapeResult(vendor="setur", hotel_id="x")
        result.fail("No rooms found")
        assert not result.success
        assert result.error == "No rooms found"

    def test_dict_round_trip_keeps_nested_records(self, params):
        room = RoomRecord(
            name="Aile Odası",
            price=PriceInfo(amount=12345.5, original_amount=15000.0, discount_percentage=18),
            daily_prices=[DailyPrice(date="2025-08-07", day_name="Perşembe", amount=2000.0)],
            period_prices=[PeriodPrice(period="01.08 - 31.08", double_price=4000.0)],
            extra={"room_id": "R1"},
        )
        result = ScrapeResult(vendor="jollytur", hotel_id="test-hotel", search_params=params, rooms=[room])
        restored = ScrapeResult.from_dict(result.to_dict())
        assert restored.search_params == params
        assert restored.rooms[0].price.amount == 12345.5
        assert restored.rooms[0].daily_prices[0].day_name == "Perşembe"
        assert restored.rooms[0].period_prices[0].double_price == 4000.0
        assert restored.rooms[0].extra == {"room_id": "R1"}


class TestSessionSummary:
    def test_totals_derived_from_outcomes(self):
        summary = SessionSummary(vendor="obilet", hotels=[
            HotelOutcome(hotel_id="a", success=True, room_count=3, file_path="a.json"),
            HotelOutcome(hotel_id="b", success=False, error="boom"),
            HotelOutcome(hotel_id="c", success=True, room_count=1, file_path="c.json"),
        ])
        d = summary.to_dict()
        assert d["total_hotels"] == 3
        assert d["successful_scrapes"] == 2
        assert d["failed_scrapes"] == 1
        assert d["hotels"][1]["error"] == "boom"

    def test_from_dict_ignores_unknown_outcome_keys(self):
        summary = SessionSummary.from_dict({
            "vendor": "obilet",
            "hotels": [{"hotel_id": "a", "success": True, "legacy": 1}],
        })
        assert summary.hotels[0].hotel_id == "a"
        assert summary.successful_scrapes == 1


class TestRoomSummaries:
    def test_available_rooms(self):
        rooms = [_room("A", 100), _room("B", 50, available=False)]
        assert [r.name for r in available_rooms(rooms)] == ["A"]

    def test_lowest_price_skips_unpriced_and_unavailable(self):
        rooms = [_room("A", 300), _room("B"), _room("C", 50, available=False), _room("D", 200)]
        assert lowest_price_room(rooms).name == "D"

    def test_lowest_price_none_when_nothing_priced(self):
        assert lowest_price_room([_room("A")]) is None

    def test_price_summary(self):
        rooms = [_room("A", 100), _room("B", 200), _room("C"), _room("D", 900, available=False)]
        summary = price_summary(rooms)
        assert summary["total_rooms"] == 4
        assert summary["available_rooms"] == 3
        assert summary["price_range"] == {"min": 100, "max": 200}
        assert summary["average_price"] == 150

    def test_price_summary_empty(self):
        assert price_summary([])["average_price"] is None


class TestValidateResult:
    def test_clean_result_has_no_warnings(self):
        result = ScrapeResult(
            vendor="setur", hotel_id="h", scraped_at="2025-08-01T00:00:00.000Z",
            rooms=[_room("A", 100)],
        )
        assert validate_result(result) == []

    def test_reports_unpriced_rooms(self):
        result = ScrapeResult(vendor="setur", hotel_id="h", scraped_at="t", rooms=[_room("A"), _room("B", 10)])
        warnings = validate_result(result)
        assert any("1 room(s) without price" in w for w in warnings)

    def test_reports_missing_fields(self):
        warnings = validate_result(ScrapeResult())
        assert "Missing vendor" in warnings
        assert "Missing hotel_id" in warnings
        assert "Marked successful but no rooms extracted" in warnings

    def test_reports_original_below_current(self):
        room = RoomRecord(name="A", price=PriceInfo(amount=100, original_amount=80))
        result = ScrapeResult(vendor="v", hotel_id="h", scraped_at="t", rooms=[room])
        assert any("Original price below" in w for w in validate_result(result))
