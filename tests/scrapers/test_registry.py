"""
Tests for hotel_scrapers.registry: URL detection and scraper lookup.
"""

import pytest

from hotel_scrapers.base import BaseScraper
from hotel_scrapers.registry import detect_vendor, get_available_vendors, get_scraper

from fakes import FakeSession


ALL_VENDORS = [
    "etstur", "obilet", "hotelscom", "setur", "jollytur",
    "touristica", "tatilsepeti", "tatilbudur", "enuygun",
]


class TestDetectVendor:
    @pytest.mark.parametrize("url,expected", [
        ("https://www.etstur.com/Rixos-Premium-Belek?check_in=07.08.2025", "etstur"),
        ("https://www.obilet.com/oteller/hotel/12345", "obilet"),
        ("https://tr.hotels.com/ho123456/", "hotelscom"),
        ("https://www.setur.com.tr/rixos-premium-belek", "setur"),
        ("https://www.jollytur.com/rixos-premium-belek", "jollytur"),
        ("https://www.touristica.com.tr/otel/rixos", "touristica"),
        ("https://www.tatilsepeti.com/rixos-premium-belek", "tatilsepeti"),
        ("https://www.tatilbudur.com/rixos-premium-belek", "tatilbudur"),
        ("https://www.enuygun.com/otel/rixos-premium-belek-12345/", "enuygun"),
    ])
    def test_known_domains(self, url, expected):
        assert detect_vendor(url) == expected

    def test_unknown_domain(self):
        assert detect_vendor("https://www.booking.com/hotel/tr/rixos.html") is None


class TestGetScraper:
    def test_available_vendors(self):
        assert get_available_vendors() == ALL_VENDORS

    def test_available_vendors_is_a_copy(self):
        get_available_vendors().append("booking")
        assert "booking" not in get_available_vendors()

    @pytest.mark.parametrize("vendor", ALL_VENDORS)
    def test_every_vendor_builds(self, vendor):
        scraper = get_scraper(vendor, session=FakeSession())
        assert isinstance(scraper, BaseScraper)
        assert scraper.vendor_id == vendor

    def test_fresh_instance_per_call(self):
        first = get_scraper("setur", session=FakeSession())
        second = get_scraper("setur", session=FakeSession())
        assert first is not second
        assert first.session is not second.session

    def test_options_reach_the_scraper(self):
        scraper = get_scraper("jollytur", session=FakeSession(), debug_dir="/tmp/debug")
        assert scraper.debug_dir == "/tmp/debug"

    def test_unknown_vendor(self):
        with pytest.raises(ValueError, match="No scraper registered for vendor 'booking'"):
            get_scraper("booking")
