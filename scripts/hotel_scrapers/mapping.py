"""
Hotel ID Mapping

Persistent name -> vendor-internal ID cache for vendors whose detail
URLs need a numeric hotel ID. Entries are trusted without revalidation.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from .errors import DiscoveryError

logger = logging.getLogger(__name__)

MAPPING_FILENAME = "hotel_mapping.json"


class ResolveState(str, Enum):
    UNRESOLVED = "unresolved"
    DISCOVERING = "discovering"
    RESOLVED = "resolved"


class HotelMapping:
    """
    JSON-backed hotel name -> ID map.

    Read once on construction; rewritten in full on every new entry.
    Not safe for concurrent writers (last writer wins).
    """

    def __init__(self, path: str | Path, vendor: str = ""):
        self.path = Path(path)
        self.vendor = vendor
        self._ids: dict[str, str] = {}
        self._states: dict[str, ResolveState] = {}
        if self.path.exists():
            with open(self.path, encoding="utf-8") as f:
                self._ids = {k: str(v) for k, v in json.load(f).items()}
            logger.info("[%s] loaded %d hotel mapping(s)", vendor, len(self._ids))

    def __contains__(self, name: str) -> bool:
        return name in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def get(self, name: str) -> Optional[str]:
        return self._ids.get(name)

    def set(self, name: str, hotel_id: str) -> None:
        self._ids[name] = str(hotel_id)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._ids, f, ensure_ascii=False, indent=2)

    def state_of(self, name: str) -> ResolveState:
        if name in self._ids:
            return ResolveState.RESOLVED
        return self._states.get(name, ResolveState.UNRESOLVED)

    async def resolve(self, name: str, discover: Callable[[str], Awaitable[Optional[str]]]) -> str:
        """
        Return the cached ID for name, discovering and persisting it on a miss.

        Raises DiscoveryError if discovery finds nothing; there is no
        alternate strategy.
        """
        cached = self.get(name)
        if cached:
            return cached

        self._states[name] = ResolveState.DISCOVERING
        logger.info("[%s] discovering hotel ID for %r", self.vendor, name)
        try:
            hotel_id = await discover(name)
        finally:
            self._states.pop(name, None)

        if not hotel_id:
            raise DiscoveryError(f"Could not discover hotel ID for '{name}'", vendor=self.vendor)

        self.set(name, hotel_id)
        logger.info("[%s] mapped %r -> %s", self.vendor, name, hotel_id)
        return str(hotel_id)
