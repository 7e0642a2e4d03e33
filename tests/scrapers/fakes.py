"""
In-memory stand-ins for Playwright pages, elements and sessions.

A fake node is built from a {selector: [children]} map; unknown
selectors match nothing.
"""

from unittest.mock import AsyncMock

from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeElement:
    def __init__(self, text="", attrs=None, children=None, visible=True, evaluate_result=None, on_click=None):
        self.text = text
        self.attrs = attrs or {}
        self.children = children or {}
        self.visible = visible
        self.evaluate_result = evaluate_result
        self.on_click = on_click
        self.clicks = 0

    async def query_selector(self, selector):
        found = self.children.get(selector) or []
        return found[0] if found else None

    async def query_selector_all(self, selector):
        return list(self.children.get(selector) or [])

    async def inner_text(self):
        return self.text

    async def get_attribute(self, name):
        return self.attrs.get(name)

    async def is_visible(self):
        return self.visible

    async def click(self, **kwargs):
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()

    async def evaluate(self, script, arg=None):
        return self.evaluate_result

    async def scroll_into_view_if_needed(self):
        pass

    async def select_option(self, value):
        self.attrs["value"] = value


class FakePage(FakeElement):
    """
    Page double recording navigation, clicks and listeners.

    responses are fed to "response" listeners on goto(), reload_responses
    on reload(); reload_error is raised after they are delivered, like a
    reload that never reaches networkidle. Clicking a selector in
    click_targets changes the URL.
    """

    def __init__(self, children=None, url="about:blank", title="", goto_error=None,
                 responses=None, reload_responses=None, click_targets=None, reload_error=None):
        super().__init__(children=children)
        self.responses = responses or []
        self.reload_responses = reload_responses or []
        self.click_targets = click_targets or {}
        self.url = url
        self._title = title
        self.goto_error = goto_error
        self.reload_error = reload_error
        self.visited = []
        self.clicked = []
        self.typed = []
        self.listeners = {}
        self.reloads = 0
        self.closed = False
        self.keyboard = AsyncMock()
        self.mouse = AsyncMock()

    async def goto(self, url, wait_until=None, timeout=None):
        if self.goto_error is not None:
            raise self.goto_error
        self.visited.append(url)
        self.url = url
        await self._emit(self.responses)

    async def _emit(self, responses):
        for response in responses:
            for handler in list(self.listeners.get("response", [])):
                await handler(response)

    async def title(self):
        return self._title

    async def wait_for_selector(self, selector, timeout=None, **kwargs):
        found = await self.query_selector(selector)
        if found is None:
            raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")
        return found

    async def wait_for_timeout(self, ms):
        pass

    async def wait_for_load_state(self, state=None, timeout=None):
        pass

    async def reload(self, wait_until=None):
        self.reloads += 1
        await self._emit(self.reload_responses)
        if self.reload_error is not None:
            raise self.reload_error

    async def click(self, selector=None, **kwargs):
        self.clicked.append(selector)
        if selector in self.click_targets:
            self.url = self.click_targets[selector]

    async def hover(self, selector):
        pass

    async def fill(self, selector, value):
        self.typed.append((selector, value))

    async def type(self, selector, text, delay=None):
        self.typed.append((selector, text))

    def on(self, event, handler):
        self.listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event, handler):
        self.listeners.get(event, []).remove(handler)

    async def screenshot(self, path=None, full_page=False):
        with open(path, "wb") as f:
            f.write(b"")

    async def content(self):
        return "<html><body></body></html>"

    async def close(self):
        self.closed = True


class FakeSession:
    """BrowserSession double handing out a fixed page."""

    def __init__(self, page=None, launch_error=None):
        self._page = page or FakePage()
        self.launch_error = launch_error
        self.initialized = 0
        self.closed = 0
        self.pages = []

    @property
    def is_open(self):
        return self.initialized > self.closed

    @property
    def page(self):
        return self._page

    async def initialize(self):
        if self.launch_error is not None:
            raise self.launch_error
        self.initialized += 1

    async def new_page(self):
        self.pages.append(self._page)
        return self._page

    async def close(self):
        self.closed += 1


class FakeResponse:
    def __init__(self, url, body, content_type="application/json"):
        self.url = url
        self.headers = {"content-type": content_type}
        self._body = body

    async def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body
