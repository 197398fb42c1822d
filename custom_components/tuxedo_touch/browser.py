"""Playwright backed page used to drive the Tuxedo web portal.

The portal only works from a real browser: pages build their content with
JavaScript and commands need tokens that are issued per session. This module
keeps Playwright behind a small surface so the session manager can be tested
with a fake.
"""

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .exceptions import TransportError

_LOGGER = logging.getLogger(__name__)

# Runs inside the page so the request carries the portal session cookies
_FETCH_TEXT_SCRIPT = """
async (url) => {
    const response = await fetch(url);
    if (!response.ok) {
        throw new Error(`HTTP ${response.status}`);
    }
    return await response.text();
}
"""


class PlaywrightPortalBrowser:
    """One headless Chromium with a single context and a single page."""

    def __init__(self, headless=True):
        self._headless = headless
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    async def start(self):
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(headless=self._headless)
            # The panel uses a self-signed certificate
            self._context = await self._browser.new_context(ignore_https_errors=True)
            self._page = await self._context.new_page()
        except PlaywrightError as e:
            await self.close()
            raise TransportError(f"Could not start the portal browser: {e.message}") from e
        _LOGGER.debug("Portal browser started")
        return self

    @property
    def url(self) -> str:
        return self._page.url

    async def goto(self, url):
        try:
            await self._page.goto(url)
        except PlaywrightTimeoutError as e:
            raise TimeoutError(f"Timed out loading {url}") from e
        except PlaywrightError as e:
            raise TransportError(f"Could not load {url}: {e.message}") from e

    async def content(self) -> str:
        return await self._page.content()

    async def fill(self, selector, value):
        await self._page.fill(selector, value)

    async def click(self, selector):
        await self._page.click(selector)

    async def wait_for_url(self, url, timeout):
        """Wait until the page is on url. timeout is in seconds."""
        try:
            await self._page.wait_for_url(url, timeout=timeout * 1000)
        except PlaywrightTimeoutError as e:
            raise TimeoutError(f"Page did not reach {url}") from e

    async def wait_for_function(self, expression, timeout=None):
        kwargs = {} if timeout is None else {"timeout": timeout * 1000}
        try:
            await self._page.wait_for_function(expression, **kwargs)
        except PlaywrightTimeoutError as e:
            raise TimeoutError("Page condition was never met") from e
        except PlaywrightError as e:
            raise TransportError(f"Page condition could not be evaluated: {e.message}") from e

    async def reload(self):
        try:
            await self._page.reload()
        except PlaywrightTimeoutError as e:
            raise TimeoutError("Timed out reloading the page") from e
        except PlaywrightError as e:
            raise TransportError(f"Could not reload the page: {e.message}") from e

    async def fetch_text(self, url) -> str:
        """GET url from inside the page and return the response body."""
        try:
            return await self._page.evaluate(_FETCH_TEXT_SCRIPT, url)
        except PlaywrightError as e:
            raise TransportError(f"In-page fetch of {url} failed: {e.message}") from e

    async def cookies(self) -> list[dict]:
        return await self._context.cookies()

    async def add_cookies(self, cookies):
        await self._context.add_cookies(cookies)

    async def close(self):
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
        self._context = None
        self._page = None
        _LOGGER.debug("Portal browser closed")


async def launch_portal_browser():
    """Default browser factory for PortalSessionManager."""
    browser = PlaywrightPortalBrowser()
    return await browser.start()
