"""
Base Scraper

Shared browser session, page helpers, price parsing, and the abstract
base class every vendor scraper builds on.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from . import config
from .errors import BrowserLaunchError, CaptchaError, NavigationError
from .schema import PriceInfo, RoomRecord, ScrapeResult, SearchParams, validate_result

logger = logging.getLogger(__name__)


def now_iso() -> str:
    """UTC timestamp like 2025-08-07T10:11:12.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def slugify(name: str) -> str:
    """URL slug: lowercase, ASCII alphanumerics and single dashes."""
    slug = name.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


# ---------------------------------------------------------------------------
# Price parsing
# ---------------------------------------------------------------------------

# Codes may be glued to the number ("12.345TL")
_CURRENCY_PATTERNS: list[tuple[str, str]] = [
    (r"₺", "TRY"),
    (r"(?<![A-Za-z])TL(?![A-Za-z])", "TRY"),
    (r"(?<![A-Za-z])TRY(?![A-Za-z])", "TRY"),
    (r"€", "EUR"),
    (r"(?<![A-Za-z])EUR(?![A-Za-z])", "EUR"),
    (r"\$", "USD"),
    (r"(?<![A-Za-z])USD(?![A-Za-z])", "USD"),
    (r"£", "GBP"),
    (r"(?<![A-Za-z])GBP(?![A-Za-z])", "GBP"),
]


def detect_currency(text: str, default: str = "TRY") -> str:
    for pattern, code in _CURRENCY_PATTERNS:
        if re.search(pattern, text or ""):
            return code
    return default


def _all_groups_are_thousands(number: str, sep: str) -> bool:
    groups = number.split(sep)
    return all(len(g) == 3 for g in groups[1:]) and 1 <= len(groups[0]) <= 3


def parse_amount(text: str) -> Optional[float]:
    """
    Parse a locale-formatted amount.

    Turkish formatting uses '.' for thousands and ',' for decimals
    ("12.345,50 TL"); English formatting is handled too ("1,234.50").
    Returns None when the text has no digits.
    """
    if not text:
        return None
    m = re.search(r"\d[\d.,]*", text)
    if not m:
        return None
    number = m.group(0).rstrip(".,")

    if "," in number and "." in number:
        if number.rfind(",") > number.rfind("."):
            number = number.replace(".", "").replace(",", ".")
        else:
            number = number.replace(",", "")
    elif "," in number:
        if _all_groups_are_thousands(number, ","):
            number = number.replace(",", "")
        else:
            head, _, tail = number.rpartition(",")
            number = head.replace(",", "") + "." + tail
    elif "." in number:
        if _all_groups_are_thousands(number, "."):
            number = number.replace(".", "")
        else:
            head, _, tail = number.rpartition(".")
            number = head.replace(".", "") + "." + tail

    try:
        return float(number)
    except ValueError:
        return None


def parse_price(text: str, default_currency: str = "TRY") -> tuple[Optional[float], str]:
    """Return (amount, currency code) from a price string."""
    return parse_amount(text), detect_currency(text, default_currency)


def discount_percentage(original: Optional[float], current: Optional[float]) -> Optional[int]:
    """
    Percentage saved from original to current, rounded half up.

    None unless both are positive and current does not exceed original.
    """
    if original is None or current is None:
        return None
    if original <= 0 or current <= 0 or current > original:
        return None
    return int((original - current) / original * 100 + 0.5)


def build_price(
    text: str,
    original_text: str = "",
    per_night_text: str = "",
    default_currency: str = "TRY",
) -> PriceInfo:
    """Build a PriceInfo from raw current / original / per-night strings."""
    amount, currency = parse_price(text, default_currency)
    original = parse_amount(original_text)
    if original is not None and amount is not None and original == amount:
        original = None
    return PriceInfo(
        amount=amount,
        currency=currency,
        original_amount=original,
        discount_percentage=discount_percentage(original, amount),
        per_night=parse_amount(per_night_text),
        raw_text=text.strip() if text else "",
    )


def parse_rooms(raw_rooms: list, parser: Callable[[Any], RoomRecord], vendor: str = "") -> list[RoomRecord]:
    """
    Apply a pure room parser to each raw entry, skipping malformed ones.

    A malformed entry (one the parser rejects with ValueError, or that
    is not shaped as expected) is skipped; sibling entries are still
    returned.
    """
    rooms = []
    for index, raw in enumerate(raw_rooms or []):
        try:
            rooms.append(parser(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.debug("[%s] skipping room %d: %s", vendor, index, e)
    return rooms


# ---------------------------------------------------------------------------
# Browser session
# ---------------------------------------------------------------------------

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--window-size=1920,1080",
]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

USER_AGENT_POOL = [
    DEFAULT_USER_AGENT,
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
]

STEALTH_HEADERS = {
    "Accept-Language": "tr-TR,tr;q=0.9,en-US;q=0.8,en;q=0.7",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Upgrade-Insecure-Requests": "1",
}

STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
window.chrome = { runtime: {}, loadTimes: function() {}, csi: function() {}, app: {} };
const originalQuery = window.navigator.permissions.query;
window.navigator.permissions.query = (parameters) => (
  parameters.name === 'notifications'
    ? Promise.resolve({ state: Notification.permission })
    : originalQuery(parameters)
);
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
Object.defineProperty(navigator, 'languages', { get: () => ['tr-TR', 'tr', 'en-US', 'en'] });
"""

BLOCKED_RESOURCE_TYPES = {"image", "stylesheet", "font", "media"}


async def _block_heavy_resources(route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class BrowserSession:
    """
    One browser process with one context and a primary page.

    close() is idempotent and safe after a failed initialize().
    """

    def __init__(
        self,
        headless: bool | None = None,
        user_agent: str | None = None,
        stealth: bool = False,
        block_resources: bool = False,
        viewport: dict | None = None,
        playwright_factory: Callable = async_playwright,
    ):
        self.headless = config.HEADLESS if headless is None else headless
        self.stealth = stealth
        self.block_resources = block_resources
        if user_agent:
            self.user_agent = user_agent
        elif stealth:
            self.user_agent = random.choice(USER_AGENT_POOL)
        else:
            self.user_agent = DEFAULT_USER_AGENT
        if viewport:
            self.viewport = viewport
        elif stealth:
            self.viewport = {
                "width": 1920 + random.randint(0, 100),
                "height": 1080 + random.randint(0, 100),
            }
        else:
            self.viewport = {"width": 1920, "height": 1080}
        self._playwright_factory = playwright_factory
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    @property
    def page(self):
        if self._page is None:
            raise RuntimeError("Browser session not initialized")
        return self._page

    async def initialize(self) -> None:
        if self._browser is not None:
            return
        try:
            self._playwright = await self._playwright_factory().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless, args=LAUNCH_ARGS,
            )
            context_options: dict[str, Any] = {
                "viewport": self.viewport,
                "user_agent": self.user_agent,
                "locale": "tr-TR",
            }
            if self.stealth:
                context_options["extra_http_headers"] = STEALTH_HEADERS
            self._context = await self._browser.new_context(**context_options)
            if self.stealth:
                await self._context.add_init_script(STEALTH_INIT_SCRIPT)
            if self.block_resources:
                await self._context.route("**/*", _block_heavy_resources)
            self._page = await self._context.new_page()
        except Exception as e:
            await self.close()
            raise BrowserLaunchError(f"Failed to launch browser: {e}") from e
        logger.info("Browser started (headless=%s, stealth=%s)", self.headless, self.stealth)

    async def new_page(self):
        if self._context is None:
            raise RuntimeError("Browser session not initialized")
        return await self._context.new_page()

    async def close(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = self._context = self._page = self._playwright = None
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.warning("Error while closing browser: %s", e)
            logger.info("Browser closed")
        if playwright is not None:
            await playwright.stop()

    async def __aenter__(self) -> BrowserSession:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Page helpers
# ---------------------------------------------------------------------------

async def navigate_with_retry(
    page,
    url: str,
    max_retries: int = 3,
    backoff_base: float = 2.0,
    timeout: int | None = None,
) -> bool:
    """
    Navigate to a URL with exponential backoff retry.

    Tries networkidle first, falls back to domcontentloaded, then retries.
    Returns True if navigation succeeded, False if all retries exhausted.
    """
    timeout = timeout or config.NAV_TIMEOUT_MS
    strategies = ["networkidle", "domcontentloaded"]

    for attempt in range(max_retries):
        for strategy in strategies:
            try:
                await page.goto(url, wait_until=strategy, timeout=timeout)
                return True
            except PlaywrightError as e:
                if strategy == "networkidle":
                    continue
                elif attempt < max_retries - 1:
                    wait_time = backoff_base ** (attempt + 1)
                    logger.warning("Retry %d/%d after %.0fs: %s", attempt + 1, max_retries, wait_time, e)
                    await asyncio.sleep(wait_time)
                    break
                else:
                    logger.error("All %d retries failed for %s: %s", max_retries, url, e)
                    return False

    return False


async def reload_quietly(page, vendor: str = "") -> bool:
    """Reload and wait for networkidle; a page that never settles is not an error."""
    try:
        await page.reload(wait_until="networkidle")
        return True
    except PlaywrightError as e:
        logger.warning("[%s] reload did not settle: %s", vendor, e)
        return False


async def human_delay(min_ms: int = 500, max_ms: int = 1500) -> None:
    await asyncio.sleep(random.uniform(min_ms, max_ms) / 1000)


async def human_type(page, selector: str, text: str, min_ms: int = 50, max_ms: int = 150) -> None:
    """Click a field, clear it, and type text one key at a time."""
    await page.click(selector)
    await page.fill(selector, "")
    for ch in text:
        await page.keyboard.type(ch)
        await human_delay(min_ms, max_ms)


async def human_click(page, selector: str) -> None:
    await page.hover(selector)
    await human_delay(100, 400)
    await page.click(selector)


async def wait_for_any(page, selectors: list[str], timeout: int = 15000) -> Optional[str]:
    """Wait for each selector in turn; return the first that appears, else None."""
    for selector in selectors:
        try:
            await page.wait_for_selector(selector, timeout=timeout)
            logger.debug("Found %s", selector)
            return selector
        except PlaywrightTimeoutError:
            continue
    return None


def counter_steps(current: int, target: int) -> tuple[str, int]:
    """Which stepper button ("increase"/"decrease") to press, and how many times."""
    if target >= current:
        return "increase", target - current
    return "decrease", current - target


def _as_list(selectors) -> list[str]:
    if isinstance(selectors, str):
        return [selectors]
    return list(selectors or [])


async def first_text(root, selectors) -> str:
    """Text of the first non-empty match among selectors, or ''."""
    for selector in _as_list(selectors):
        el = await root.query_selector(selector)
        if el is None:
            continue
        text = (await el.inner_text() or "").strip()
        if text:
            return text
    return ""


async def all_texts(root, selector: str) -> list[str]:
    texts = []
    for el in await root.query_selector_all(selector):
        text = (await el.inner_text() or "").strip()
        if text:
            texts.append(text)
    return texts


async def read_fields(root, fields: dict) -> dict[str, str]:
    """Read {field: selector(s)} into {field: text}."""
    return {name: await first_text(root, selectors) for name, selectors in fields.items()}


async def extract_each(
    elements: list,
    reader: Callable[[Any], Awaitable[Any]],
    parser: Callable[[Any], RoomRecord],
    vendor: str = "",
) -> list[RoomRecord]:
    """
    Read each element into raw data and parse it, skipping failures.

    A browser error while reading one card or a parse error on its data
    drops that card only.
    """
    rooms = []
    for index, element in enumerate(elements):
        try:
            raw = await reader(element)
            rooms.append(parser(raw))
        except (PlaywrightError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.debug("[%s] skipping room %d: %s", vendor, index, e)
    return rooms


# ---------------------------------------------------------------------------
# Network interception
# ---------------------------------------------------------------------------

class ResponseCollector:
    """
    Collects JSON bodies of page responses whose URL/headers match.

    Payloads are kept in arrival order; pickers take the first one whose
    shape they accept.
    """

    def __init__(self, matcher: Callable[[str, dict], bool]):
        self.matcher = matcher
        self.payloads: list[tuple[str, Any]] = []

    def attach(self, page) -> None:
        page.on("response", self.on_response)

    def detach(self, page) -> None:
        page.remove_listener("response", self.on_response)

    async def on_response(self, response) -> None:
        if not self.matcher(response.url, response.headers or {}):
            return
        try:
            data = await response.json()
        except (PlaywrightError, ValueError):
            return
        self.payloads.append((response.url, data))
        logger.debug("Captured response %s", response.url)

    def pick(self, picker: Callable[[Any], Any]) -> Any:
        for url, data in self.payloads:
            found = picker(data)
            if found is not None:
                logger.info("Using room data from %s", url)
                return found
        return None

    async def wait_for(self, picker: Callable[[Any], Any], timeout: float = 8.0, interval: float = 0.5) -> Any:
        """Poll pick() until it returns something or timeout seconds pass."""
        waited = 0.0
        while True:
            found = self.pick(picker)
            if found is not None or waited >= timeout:
                return found
            await asyncio.sleep(interval)
            waited += interval


# ---------------------------------------------------------------------------
# Obstacle handling
# ---------------------------------------------------------------------------

MARKETING_TEXTS = (
    "join", "sign up", "üye ol", "kayıt ol", "kayit ol", "abone ol", "subscribe",
)

def is_call_to_action(text: str) -> bool:
    """True if visible text reads like a marketing prompt rather than a close control."""
    lowered = (text or "").strip().lower()
    return any(word in lowered for word in MARKETING_TEXTS)


async def accept_cookies(page, selectors, timeout: int = 5000) -> bool:
    """Click the first cookie-consent button that shows up. Never raises."""
    for selector in _as_list(selectors):
        try:
            await page.wait_for_selector(selector, timeout=timeout)
            await page.click(selector)
            logger.info("Accepted cookies via %s", selector)
            return True
        except PlaywrightError:
            continue
    return False


async def dismiss_blocking_ui(
    page,
    selectors,
    max_clicks: int = 5,
    press_escape: bool = True,
    neutral_point: tuple[int, int] | None = (10, 10),
) -> int:
    """
    Best-effort dismissal of modals and overlays. Never raises.

    Tries each candidate selector in order, skipping elements that look
    like links or marketing calls to action; then presses Escape and
    clicks a neutral coordinate. Returns the number of clicks made.
    """
    clicked = 0
    for selector in _as_list(selectors):
        if clicked >= max_clicks:
            break
        try:
            elements = await page.query_selector_all(selector)
        except PlaywrightError as e:
            logger.debug("Popup selector %s failed: %s", selector, e)
            continue
        for el in elements:
            if clicked >= max_clicks:
                break
            try:
                if not await el.is_visible():
                    continue
                if await el.get_attribute("href"):
                    continue
                text = await el.inner_text()
                if is_call_to_action(text):
                    logger.debug("Skipping call to action: %r", text[:40])
                    continue
                await el.click()
                clicked += 1
                logger.info("Closed popup via %s", selector)
                await page.wait_for_timeout(500)
            except PlaywrightError as e:
                logger.debug("Could not click %s: %s", selector, e)

    try:
        if press_escape:
            await page.keyboard.press("Escape")
        if neutral_point:
            await page.mouse.click(*neutral_point)
    except PlaywrightError as e:
        logger.debug("Escape/neutral click failed: %s", e)
    return clicked


async def _captcha_present(page, selectors: list[str]) -> bool:
    for selector in selectors:
        try:
            if await page.query_selector(selector):
                return True
        except PlaywrightError:
            continue
    return False


async def wait_for_captcha_clear(
    page,
    selectors,
    attempts: int = 120,
    interval: float = 1.0,
    vendor: str = "",
) -> bool:
    """
    Block while a CAPTCHA is on screen.

    Returns False if none was shown, True once it clears, and raises
    CaptchaError if it is still present after all attempts.
    """
    selectors = _as_list(selectors)
    if not await _captcha_present(page, selectors):
        return False

    logger.warning("[%s] CAPTCHA detected, waiting up to %ds for it to clear", vendor, int(attempts * interval))
    for _ in range(attempts):
        await asyncio.sleep(interval)
        if not await _captcha_present(page, selectors):
            logger.info("[%s] CAPTCHA cleared", vendor)
            return True

    raise CaptchaError("CAPTCHA did not clear in time", vendor=vendor, url=getattr(page, "url", None))


async def save_debug_artifacts(page, vendor: str, tag: str, debug_dir: str | None = None) -> list[str]:
    """Write a full-page screenshot and HTML dump. Returns the paths written."""
    directory = Path(debug_dir or config.DEBUG_DIR) / vendor
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    base = directory / f"{stamp}_{re.sub(r'[^a-zA-Z0-9]+', '_', tag).strip('_').lower() or 'page'}"
    paths = []
    try:
        directory.mkdir(parents=True, exist_ok=True)
        await page.screenshot(path=f"{base}.png", full_page=True)
        paths.append(f"{base}.png")
        html = await page.content()
        with open(f"{base}.html", "w", encoding="utf-8") as f:
            f.write(html)
        paths.append(f"{base}.html")
    except (PlaywrightError, OSError) as e:
        logger.warning("[%s] could not save debug artifacts: %s", vendor, e)
    return paths


# ---------------------------------------------------------------------------
# Abstract base scraper
# ---------------------------------------------------------------------------

class BaseScraper(ABC):
    """
    Abstract base class for vendor scrapers.

    Subclasses must implement:
    - vendor_id: vendor identifier (e.g., "jollytur")
    - target_url(): URL for one hotel (may run ID discovery first)
    - extract_rooms(): read the loaded page into RoomRecords

    and may override open_hotel() for vendors that need in-page form
    filling, and dismiss_obstacles() for vendor-specific popups.
    """

    vendor_id: str = ""
    SELECTORS: dict = {}
    stealth: bool = False
    block_resources: bool = False
    page_per_hotel: bool = False
    room_wait_timeout: int = 15000

    def __init__(
        self,
        headless: bool | None = None,
        session: BrowserSession | None = None,
        debug_dir: str | None = None,
        **options,
    ):
        self.session = session or BrowserSession(
            headless=headless,
            stealth=self.stealth,
            block_resources=self.block_resources,
        )
        self.selectors = config.get_selectors(self.vendor_id, self.SELECTORS)
        self.debug_dir = debug_dir
        self.options = options

    async def initialize(self) -> None:
        await self.session.initialize()

    async def close(self) -> None:
        await self.session.close()

    @abstractmethod
    async def target_url(self, page, identifier: str, params: SearchParams) -> str:
        """URL of the hotel page for these search parameters."""
        ...

    @abstractmethod
    async def extract_rooms(self, page, params: SearchParams) -> list[RoomRecord]:
        """Read rooms from the loaded page. Empty list if none appear."""
        ...

    async def open_hotel(self, page, url: str, params: SearchParams) -> None:
        if not await navigate_with_retry(page, url):
            raise NavigationError(f"Failed to navigate to {url} after retries", vendor=self.vendor_id, url=url)
        await page.wait_for_timeout(3000)

    async def dismiss_obstacles(self, page) -> None:
        await dismiss_blocking_ui(page, self.selectors.get("popups", []))

    async def read_hotel_name(self, page) -> str:
        name = await first_text(page, self.selectors.get("hotel_name", ["h1"]))
        for suffix in self.selectors.get("title_suffixes", []):
            name = name.replace(suffix, "")
        return name.strip()

    async def finish_hotel(self, page) -> None:
        """Per-hotel cleanup. Runs after every scrape, including failed ones."""

    def file_suffix(self, params: SearchParams) -> str:
        """Extra fragment for the saved result filename."""
        return ""

    async def scrape(self, identifier: str, params: SearchParams) -> ScrapeResult:
        """
        Full scrape of one hotel: resolve URL, load, clear obstacles, extract.

        Navigation, discovery, and CAPTCHA failures propagate; a page
        that loads without rooms yields an unsuccessful result.
        """
        result = ScrapeResult(
            vendor=self.vendor_id,
            hotel_id=identifier,
            hotel_name=identifier,
            search_params=params,
            scraped_at=now_iso(),
        )
        page = await self.session.new_page() if self.page_per_hotel else self.session.page
        try:
            result.url = await self.target_url(page, identifier, params)
            logger.info("[%s] scraping %s", self.vendor_id, result.url)

            await self.open_hotel(page, result.url, params)
            await self.dismiss_obstacles(page)

            result.hotel_name = await self.read_hotel_name(page) or identifier
            result.rooms = await self.extract_rooms(page, params)

            if not result.rooms:
                result.fail("No rooms found")
                result.debug_artifacts = await save_debug_artifacts(
                    page, self.vendor_id, identifier, self.debug_dir,
                )
            result.warnings.extend(validate_result(result))
            logger.info("[%s] %s: %d rooms", self.vendor_id, identifier, result.room_count)
        finally:
            await self.finish_hotel(page)
            if self.page_per_hotel:
                await page.close()
        return result
