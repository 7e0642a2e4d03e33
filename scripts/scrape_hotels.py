#!/usr/bin/env python3
"""
Hotel Scraper - Scrape room prices for a list of hotels on one vendor

Usage:
    python scripts/scrape_hotels.py scrape --vendor jollytur --hotels rixos-premium-belek \\
        --check-in 2025-08-07 --check-out 2025-08-13 --adults 2 --children 1 --child-ages 8
    python scripts/scrape_hotels.py scrape --vendor obilet --hotels "Rixos Premium Belek,Maxx Royal Belek" ...
    python scripts/scrape_hotels.py files --vendor jollytur
    python scripts/scrape_hotels.py files --read jollytur/2025-08-01T10-00-00-000Z_rixos.json
    python scripts/scrape_hotels.py latest --vendor obilet
    python scripts/scrape_hotels.py sessions --date 2025-08-01
    python scripts/scrape_hotels.py cleanup --days 30

Commands:
    scrape      Scrape hotels and save one file per hotel plus a session summary
    files       List saved files, or print one with --read
    latest      Print the most recent session summary
    sessions    Print the session summaries of one day
    cleanup     Delete files older than --days
"""

import argparse
import asyncio
import json
import sys
import time

from hotel_scrapers import ScrapeStorage, SearchParams, get_available_vendors, run_vendor
from hotel_scrapers.config import setup_logging
from hotel_scrapers.errors import BrowserLaunchError


def parse_identifiers(raw: str) -> list[str]:
    return [h.strip() for h in raw.split(",") if h.strip()]


def parse_ages(raw: str | None) -> list[int]:
    if not raw:
        return []
    return [int(a) for a in raw.split(",") if a.strip()]


def print_json(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


async def run_scrape(args) -> int:
    params = SearchParams(
        check_in=args.check_in,
        check_out=args.check_out,
        adults=args.adults,
        children=args.children,
        child_ages=parse_ages(args.child_ages),
    )
    identifiers = parse_identifiers(args.hotels)
    options = {}
    if args.headed:
        options["headless"] = False
    if args.detailed:
        options["detailed"] = True

    print("\n" + "=" * 60)
    print(f"🏨 Hotel Scraper - {args.vendor}")
    print("=" * 60)
    print(f"\nHotels: {', '.join(identifiers)}")
    print(f"Stay: {params.check_in} → {params.check_out} ({params.adults} adults, {params.children} children)")
    storage = ScrapeStorage(args.output_dir)
    print(f"Output: {storage.root / args.vendor}/")

    start_time = time.monotonic()
    try:
        summary = await run_vendor(
            args.vendor, identifiers, params, storage=storage, **options,
        )
    except BrowserLaunchError as e:
        print(f"\n❌ {e}")
        print("  Run: playwright install chromium")
        return 1
    elapsed = time.monotonic() - start_time

    print("\n" + "=" * 60)
    print("📊 Results Summary")
    print("=" * 60)
    for outcome in summary.hotels:
        if outcome.success:
            print(f"  ✅ {outcome.hotel_id}: {outcome.room_count} rooms")
        elif outcome.file_path:
            print(f"  ⚠️ {outcome.hotel_id}: {outcome.error}")
        else:
            print(f"  ❌ {outcome.hotel_id}: {outcome.error}")

    print(f"\nTotal: {summary.successful_scrapes}/{summary.total_hotels} hotels scraped")
    print(f"Time: {elapsed:.1f}s")
    return 0 if summary.successful_scrapes else 1


def run_files(args) -> int:
    storage = ScrapeStorage(args.output_dir)
    if args.read:
        try:
            print_json(storage.read_file(args.read))
        except (FileNotFoundError, ValueError) as e:
            print(f"❌ {e}")
            return 1
        return 0
    files = storage.list_files(args.vendor)
    for name in files:
        print(f"  {name}")
    print(f"\n{len(files)} file(s)")
    return 0


def run_latest(args) -> int:
    session = ScrapeStorage(args.output_dir).latest_session(args.vendor)
    if session is None:
        print("No session summaries found")
        return 1
    print_json(session)
    return 0


def run_sessions(args) -> int:
    sessions = ScrapeStorage(args.output_dir).sessions_by_date(args.date, args.vendor)
    print_json(sessions)
    print(f"\n{len(sessions)} session(s) on {args.date}")
    return 0


def run_cleanup(args) -> int:
    removed = ScrapeStorage(args.output_dir).cleanup_old_files(args.days)
    for name in removed:
        print(f"  🗑️ {name}")
    print(f"\nRemoved {len(removed)} file(s) older than {args.days} days")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scrape hotel rooms and prices from Turkish booking sites")
    parser.add_argument("--output-dir", default=None, help="Scraped data root (default: $SCRAPED_DATA_ROOT or scrapedData)")
    parser.add_argument("--log-level", default=None, help="Logging level (default: $SCRAPER_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    scrape = sub.add_parser("scrape", help="Scrape hotels on one vendor")
    scrape.add_argument("--vendor", required=True, choices=get_available_vendors())
    scrape.add_argument("--hotels", required=True, help="Comma-separated hotel names, slugs or paths")
    scrape.add_argument("--check-in", required=True, help="Check-in date YYYY-MM-DD")
    scrape.add_argument("--check-out", required=True, help="Check-out date YYYY-MM-DD")
    scrape.add_argument("--adults", type=int, default=2, help="Adults (default: 2)")
    scrape.add_argument("--children", type=int, default=0, help="Children (default: 0)")
    scrape.add_argument("--child-ages", help="Comma-separated child ages")
    scrape.add_argument("--headed", action="store_true", help="Show the browser window")
    scrape.add_argument("--detailed", action="store_true", help="Also read per-period price tables (tatilsepeti)")

    files = sub.add_parser("files", help="List or read saved files")
    files.add_argument("--vendor", help="Only this vendor")
    files.add_argument("--read", help="Print one file, as 'vendor/filename'")

    latest = sub.add_parser("latest", help="Print the latest session summary")
    latest.add_argument("--vendor", help="Only this vendor")

    sessions = sub.add_parser("sessions", help="Print session summaries of one day")
    sessions.add_argument("--date", required=True, help="Day YYYY-MM-DD")
    sessions.add_argument("--vendor", help="Only this vendor")

    cleanup = sub.add_parser("cleanup", help="Delete old files")
    cleanup.add_argument("--days", type=int, default=30, help="Days to keep (default: 30)")
    return parser


def main():
    args = build_parser().parse_args()
    setup_logging(args.log_level)

    if args.command == "scrape":
        try:
            code = asyncio.run(run_scrape(args))
        except ValueError as e:
            print(f"❌ {e}")
            code = 2
    elif args.command == "files":
        code = run_files(args)
    elif args.command == "latest":
        code = run_latest(args)
    elif args.command == "sessions":
        code = run_sessions(args)
    else:
        code = run_cleanup(args)
    sys.exit(code)


if __name__ == "__main__":
    main()
