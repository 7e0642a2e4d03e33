#!/usr/bin/env python3
"""
Scraper Doctor - Health check for all hotel vendor scrapers

Verifies:
1. Chromium launches through Playwright
2. Selector overrides (data/vendor-selectors.json) load
3. Each vendor homepage is reachable and not blocked
4. Reports any issues found

Usage:
    python scripts/scraper_doctor.py
    python scripts/scraper_doctor.py --vendors etstur,jollytur
"""

import argparse
import asyncio
import json
import sys
import time

from playwright.async_api import Error as PlaywrightError

from hotel_scrapers import BrowserSession, get_available_vendors
from hotel_scrapers.config import load_selector_overrides
from hotel_scrapers.errors import BrowserLaunchError

# Homepages with a selector every working page shows
HOMEPAGES = {
    "etstur": {"url": "https://www.etstur.com/", "expected_selector": "a[href]"},
    "obilet": {"url": "https://www.obilet.com/otel", "expected_selector": "#origin-input"},
    "hotelscom": {"url": "https://tr.hotels.com/", "expected_selector": "a[href]"},
    "setur": {"url": "https://www.setur.com.tr/", "expected_selector": "a[href]"},
    "jollytur": {"url": "https://www.jollytur.com/", "expected_selector": "a[href]"},
    "touristica": {"url": "https://www.touristica.com.tr/", "expected_selector": "a[href]"},
    "tatilsepeti": {"url": "https://www.tatilsepeti.com/", "expected_selector": "a[href]"},
    "tatilbudur": {"url": "https://www.tatilbudur.com/", "expected_selector": "a[href]"},
    "enuygun": {
        "url": "https://www.enuygun.com/otel/",
        "expected_selector": '[data-testid="endesign-hotel-autosuggestion-input"]',
    },
}

BLOCK_MARKERS = ("captcha", "access denied", "robot", "erişim engellendi")


def print_status(name: str, status: str, message: str = ""):
    """Print formatted status line."""
    icons = {
        "ok": "✅",
        "warn": "⚠️",
        "fail": "❌",
        "skip": "⏭️",
    }
    icon = icons.get(status, "•")
    msg = f" - {message}" if message else ""
    print(f"  {icon} {name}{msg}")


async def check_vendor(vendor: str, config: dict, session: BrowserSession) -> dict:
    """Load one vendor homepage in a fresh page."""
    result = {
        "vendor": vendor,
        "status": "unknown",
        "message": "",
        "response_time_ms": 0,
    }
    page = await session.new_page()
    try:
        start_time = time.monotonic()
        response = await page.goto(config["url"], timeout=30000, wait_until="domcontentloaded")
        await page.wait_for_timeout(3000)
        result["response_time_ms"] = int((time.monotonic() - start_time) * 1000)

        if response and response.status >= 400:
            result["status"] = "fail"
            result["message"] = f"HTTP {response.status}"
            return result

        title = (await page.title() or "").lower()
        if any(marker in title for marker in BLOCK_MARKERS):
            result["status"] = "warn"
            result["message"] = f"Looks blocked: {title[:60]}"
        elif await page.query_selector(config["expected_selector"]) is not None:
            result["status"] = "ok"
            result["message"] = f"{result['response_time_ms']}ms"
        else:
            result["status"] = "warn"
            result["message"] = f"Page loaded but selector '{config['expected_selector']}' not found"
    except PlaywrightError as e:
        result["status"] = "fail"
        result["message"] = str(e)[:100]
    finally:
        await page.close()
    return result


async def run_doctor(vendors: list[str]) -> int:
    """Run all health checks and return the exit code."""
    print("\n" + "=" * 60)
    print("🩺 Scraper Doctor - Health Check")
    print("=" * 60 + "\n")

    # 1. Playwright and Chromium
    print("1. Browser Launch")
    session = BrowserSession(headless=True)
    try:
        await session.initialize()
    except BrowserLaunchError as e:
        print_status("chromium", "fail", str(e))
        print("\n  Run: playwright install chromium")
        return 1
    print_status("chromium", "ok", "Browser launches successfully")

    try:
        # 2. Selector overrides
        print("\n2. Selector Overrides")
        try:
            overrides = load_selector_overrides()
            print_status("vendor-selectors.json", "ok", f"{len(overrides)} vendor(s) overridden")
        except (OSError, json.JSONDecodeError) as e:
            print_status("vendor-selectors.json", "fail", str(e))

        # 3. Vendor homepages
        print("\n3. Vendor Connectivity")
        checks = []
        for vendor in vendors:
            result = await check_vendor(vendor, HOMEPAGES[vendor], session)
            checks.append(result)
            print_status(vendor, result["status"], result["message"])
    finally:
        await session.close()

    # 4. Summary
    print("\n" + "=" * 60)
    ok_count = sum(1 for r in checks if r["status"] == "ok")
    warn_count = sum(1 for r in checks if r["status"] == "warn")
    fail_count = sum(1 for r in checks if r["status"] == "fail")
    print(f"Summary: {ok_count}/{len(checks)} OK, {warn_count} warnings, {fail_count} failures")

    if fail_count > 0:
        print("\n⚠️  Some vendors are not reachable. Check the errors above.")
        return 1
    if warn_count > 0:
        print("\n⚠️  Some vendors have warnings. They may still work.")
    else:
        print("\n✅ All vendors are reachable!")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Health check for hotel scrapers")
    parser.add_argument("--vendors", help="Comma-separated vendor list (default: all)")
    args = parser.parse_args()

    vendors = [v.strip() for v in args.vendors.split(",")] if args.vendors else get_available_vendors()
    unknown = [v for v in vendors if v not in HOMEPAGES]
    if unknown:
        print(f"❌ Unknown vendor(s): {', '.join(unknown)}")
        sys.exit(2)
    sys.exit(asyncio.run(run_doctor(vendors)))


if __name__ == "__main__":
    main()
