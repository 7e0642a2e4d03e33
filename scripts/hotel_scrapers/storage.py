"""
Scraped Data Storage

Writes ScrapeResults and SessionSummaries as pretty-printed JSON under
{root}/{vendor}/ and provides the file listing / cleanup operations.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

from . import config
from .base import now_iso
from .schema import ScrapeResult, SessionSummary

logger = logging.getLogger(__name__)

SESSION_MARKER = "scraping_session_summary"
_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})")


def file_timestamp(iso: str | None = None) -> str:
    """ISO timestamp with ':' and '.' replaced by '-' for filenames."""
    return re.sub(r"[:.]", "-", iso or now_iso())


def file_slug(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", name or "").lower() or "unknown_hotel"


class ScrapeStorage:
    """File-based store for scrape results and session summaries."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root or config.SCRAPED_DATA_ROOT)

    def vendor_dir(self, vendor: str) -> Path:
        path = self.root / vendor
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _write(self, path: Path, data: dict) -> Path:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        logger.info("Saved %s", path)
        return path

    def save_result(self, result: ScrapeResult, suffix: str = "") -> Path:
        """Write one result as {timestamp}_{slug}{suffix}.json."""
        name = result.hotel_name or result.hotel_id
        filename = f"{file_timestamp()}_{file_slug(name)}{suffix}.json"
        return self._write(self.vendor_dir(result.vendor) / filename, result.to_dict())

    def save_session_summary(self, summary: SessionSummary) -> Path:
        filename = f"{file_timestamp(summary.timestamp)}_{summary.vendor}_{SESSION_MARKER}.json"
        return self._write(self.vendor_dir(summary.vendor) / filename, summary.to_dict())

    # -----------------------------------------------------------------------
    # Listing and reading
    # -----------------------------------------------------------------------

    def _vendor_dirs(self, vendor: str | None) -> list[Path]:
        if vendor:
            path = self.root / vendor
            return [path] if path.is_dir() else []
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.iterdir() if p.is_dir())

    def list_files(self, vendor: str | None = None) -> list[str]:
        """
        All result/summary files as 'vendor/filename', newest first.

        Mapping files are not scrape output and are left out.
        """
        names = []
        for directory in self._vendor_dirs(vendor):
            for path in directory.glob("*.json"):
                if path.name == "hotel_mapping.json":
                    continue
                names.append(f"{directory.name}/{path.name}")
        return sorted(names, key=lambda n: n.split("/", 1)[1], reverse=True)

    def _resolve(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if self.root.resolve() not in path.parents:
            raise ValueError(f"Invalid file name: {name}")
        if not path.is_file():
            raise FileNotFoundError(f"No scraped file named {name}")
        return path

    def read_file(self, name: str) -> dict:
        """Read a file returned by list_files()."""
        with open(self._resolve(name), encoding="utf-8") as f:
            return json.load(f)

    def latest_session(self, vendor: str | None = None) -> Optional[dict]:
        sessions = [n for n in self.list_files(vendor) if SESSION_MARKER in n]
        if not sessions:
            return None
        return self.read_file(sessions[0])

    def sessions_by_date(self, day: str, vendor: str | None = None) -> list[dict]:
        """Session summaries whose filename starts with YYYY-MM-DD."""
        return [
            self.read_file(n)
            for n in self.list_files(vendor)
            if SESSION_MARKER in n and n.split("/", 1)[1].startswith(day)
        ]

    def cleanup_old_files(self, days_to_keep: int = 30, today: date | None = None) -> list[str]:
        """
        Delete files whose filename date is older than days_to_keep.

        Files without a leading date are kept. Returns the removed names.
        """
        cutoff = (today or datetime.now().date()) - timedelta(days=days_to_keep)
        removed = []
        for name in self.list_files():
            m = _DATE_PREFIX.match(name.split("/", 1)[1])
            if not m:
                continue
            file_date = datetime.strptime(m.group(1), "%Y-%m-%d").date()
            if file_date < cutoff:
                (self.root / name).unlink()
                removed.append(name)
        if removed:
            logger.info("Removed %d file(s) older than %s", len(removed), cutoff)
        return removed
