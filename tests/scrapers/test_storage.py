"""
Tests for hotel_scrapers.storage: file naming, listing, reading and cleanup.
"""

import json
import re
from datetime import date

import pytest

from hotel_scrapers.schema import HotelOutcome, RoomRecord, ScrapeResult, SessionSummary
from hotel_scrapers.storage import SESSION_MARKER, file_slug, file_timestamp


def _touch(storage, vendor, name, data=None):
    path = storage.root / vendor / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data or {"name": name}), encoding="utf-8")
    return path


class TestNaming:
    def test_file_timestamp_replaces_separators(self):
        assert file_timestamp("2025-08-07T10:11:12.345Z") == "2025-08-07T10-11-12-345Z"

    def test_file_timestamp_defaults_to_now(self):
        assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z$", file_timestamp())

    def test_file_slug(self):
        assert file_slug("Rixos Premium Belek") == "rixos_premium_belek"
        assert file_slug("/Alba-Resort") == "_alba_resort"
        assert file_slug("") == "unknown_hotel"


class TestSave:
    def test_save_result(self, storage, params):
        result = ScrapeResult(vendor="obilet", hotel_id="Rixos", hotel_name="Rixos Premium", search_params=params,
                              rooms=[RoomRecord(name="Suit Oda")])
        path = storage.save_result(result, "-2ad-1chld-8")

        assert path.parent == storage.root / "obilet"
        assert path.name.endswith("_rixos_premium-2ad-1chld-8.json")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["rooms"][0]["name"] == "Suit Oda"
        assert data["search_params"]["child_ages"] == [8]

    def test_save_keeps_turkish_text_readable(self, storage):
        path = storage.save_result(ScrapeResult(vendor="setur", hotel_id="h", rooms=[RoomRecord(name="Aile Odası")]))
        assert "Aile Odası" in path.read_text(encoding="utf-8")

    def test_save_session_summary(self, storage):
        summary = SessionSummary(
            timestamp="2025-08-07T10:11:12.345Z", vendor="setur",
            hotels=[HotelOutcome(hotel_id="h", success=True, room_count=2)],
        )
        path = storage.save_session_summary(summary)
        assert path.name == f"2025-08-07T10-11-12-345Z_setur_{SESSION_MARKER}.json"
        assert json.loads(path.read_text(encoding="utf-8"))["successful_scrapes"] == 1


class TestListing:
    def test_list_files_newest_first_without_mapping(self, storage):
        _touch(storage, "obilet", "2025-08-01T10-00-00-000Z_a.json")
        _touch(storage, "obilet", "2025-08-03T10-00-00-000Z_b.json")
        _touch(storage, "obilet", "hotel_mapping.json")
        _touch(storage, "setur", "2025-08-02T10-00-00-000Z_c.json")

        assert storage.list_files() == [
            "obilet/2025-08-03T10-00-00-000Z_b.json",
            "setur/2025-08-02T10-00-00-000Z_c.json",
            "obilet/2025-08-01T10-00-00-000Z_a.json",
        ]
        assert storage.list_files("setur") == ["setur/2025-08-02T10-00-00-000Z_c.json"]
        assert storage.list_files("nobody") == []

    def test_list_files_missing_root(self, tmp_path):
        from hotel_scrapers.storage import ScrapeStorage
        assert ScrapeStorage(tmp_path / "absent").list_files() == []

    def test_read_file(self, storage):
        _touch(storage, "obilet", "x.json", {"vendor": "obilet"})
        assert storage.read_file("obilet/x.json") == {"vendor": "obilet"}

    def test_read_file_missing(self, storage):
        with pytest.raises(FileNotFoundError):
            storage.read_file("obilet/nope.json")

    def test_read_file_rejects_traversal(self, storage, tmp_path):
        (tmp_path / "secret.json").write_text("{}", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid file name"):
            storage.read_file("../secret.json")

    def test_latest_session(self, storage):
        _touch(storage, "setur", f"2025-08-01T10-00-00-000Z_setur_{SESSION_MARKER}.json", {"n": 1})
        _touch(storage, "setur", f"2025-08-02T10-00-00-000Z_setur_{SESSION_MARKER}.json", {"n": 2})
        _touch(storage, "setur", "2025-08-03T10-00-00-000Z_hotel.json", {"n": 3})
        assert storage.latest_session() == {"n": 2}
        assert storage.latest_session("obilet") is None

    def test_sessions_by_date(self, storage):
        _touch(storage, "setur", f"2025-08-01T10-00-00-000Z_setur_{SESSION_MARKER}.json", {"n": 1})
        _touch(storage, "obilet", f"2025-08-01T12-00-00-000Z_obilet_{SESSION_MARKER}.json", {"n": 2})
        _touch(storage, "obilet", f"2025-08-02T12-00-00-000Z_obilet_{SESSION_MARKER}.json", {"n": 3})

        assert storage.sessions_by_date("2025-08-01") == [{"n": 2}, {"n": 1}]
        assert storage.sessions_by_date("2025-08-01", "setur") == [{"n": 1}]


class TestCleanup:
    def test_removes_only_old_dated_files(self, storage):
        old = _touch(storage, "setur", "2025-06-01T10-00-00-000Z_old.json")
        recent = _touch(storage, "setur", "2025-07-20T10-00-00-000Z_recent.json")
        undated = _touch(storage, "setur", "notes.json")
        mapping = _touch(storage, "obilet", "hotel_mapping.json")

        removed = storage.cleanup_old_files(days_to_keep=30, today=date(2025, 8, 1))

        assert removed == ["setur/2025-06-01T10-00-00-000Z_old.json"]
        assert not old.exists()
        assert recent.exists()
        assert undated.exists()
        assert mapping.exists()
