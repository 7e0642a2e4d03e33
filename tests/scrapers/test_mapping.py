"""
Tests for hotel_scrapers.mapping: cached name -> hotel ID resolution.
"""

import json
from unittest.mock import AsyncMock

import pytest

from hotel_scrapers.errors import DiscoveryError
from hotel_scrapers.mapping import HotelMapping, ResolveState


@pytest.fixture
def mapping_path(tmp_path):
    return tmp_path / "obilet" / "hotel_mapping.json"


class TestHotelMapping:
    def test_loads_existing_file(self, mapping_path):
        mapping_path.parent.mkdir(parents=True)
        mapping_path.write_text(json.dumps({"Rixos Premium Belek": 12345}), encoding="utf-8")

        mapping = HotelMapping(mapping_path, vendor="obilet")

        assert mapping.get("Rixos Premium Belek") == "12345"
        assert "Rixos Premium Belek" in mapping
        assert len(mapping) == 1

    def test_missing_file_is_empty(self, mapping_path):
        mapping = HotelMapping(mapping_path)
        assert len(mapping) == 0
        assert mapping.get("x") is None
        assert mapping.state_of("x") == ResolveState.UNRESOLVED

    def test_set_rewrites_whole_file(self, mapping_path):
        mapping = HotelMapping(mapping_path)
        mapping.set("A Otel", "1")
        mapping.set("B Otel", 2)
        assert json.loads(mapping_path.read_text(encoding="utf-8")) == {"A Otel": "1", "B Otel": "2"}

    @pytest.mark.asyncio
    async def test_cache_hit_skips_discovery(self, mapping_path):
        mapping = HotelMapping(mapping_path)
        mapping.set("Rixos Premium Belek", "12345")
        discover = AsyncMock(return_value="99999")

        assert await mapping.resolve("Rixos Premium Belek", discover) == "12345"
        discover.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_miss_discovers_and_persists(self, mapping_path):
        mapping = HotelMapping(mapping_path, vendor="obilet")
        discover = AsyncMock(return_value="12345")

        assert await mapping.resolve("Rixos Premium Belek", discover) == "12345"

        discover.assert_awaited_once_with("Rixos Premium Belek")
        assert mapping.state_of("Rixos Premium Belek") == ResolveState.RESOLVED
        assert HotelMapping(mapping_path).get("Rixos Premium Belek") == "12345"

    @pytest.mark.asyncio
    async def test_state_is_discovering_while_searching(self, mapping_path):
        mapping = HotelMapping(mapping_path)
        seen = []

        async def discover(name):
            seen.append(mapping.state_of(name))
            return "7"

        await mapping.resolve("Otel", discover)
        assert seen == [ResolveState.DISCOVERING]

    @pytest.mark.asyncio
    async def test_nothing_found_raises(self, mapping_path):
        mapping = HotelMapping(mapping_path, vendor="hotelscom")

        with pytest.raises(DiscoveryError, match="Could not discover hotel ID"):
            await mapping.resolve("Bilinmeyen Otel", AsyncMock(return_value=None))

        assert mapping.state_of("Bilinmeyen Otel") == ResolveState.UNRESOLVED
        assert not mapping_path.exists()

    @pytest.mark.asyncio
    async def test_discovery_errors_propagate(self, mapping_path):
        mapping = HotelMapping(mapping_path)
        with pytest.raises(RuntimeError):
            await mapping.resolve("Otel", AsyncMock(side_effect=RuntimeError("search page changed")))
        assert mapping.state_of("Otel") == ResolveState.UNRESOLVED
