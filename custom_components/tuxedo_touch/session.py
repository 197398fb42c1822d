"""Login state machine and keep-alive for the Tuxedo web portal."""

import asyncio
import contextlib
import json
import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path

from .browser import launch_portal_browser
from .const import (
    LOGIN_PASSWORD_SELECTOR,
    LOGIN_SUBMIT_SELECTOR,
    LOGIN_TIMEOUT,
    LOGIN_USERNAME_SELECTOR,
    PORTAL_LOGIN_URL,
    PORTAL_PROTECTED_URL,
    SESSION_CHECK_INTERVAL,
)
from .exceptions import LoginTimeoutError, TuxedoError

_LOGGER = logging.getLogger(__name__)


class SessionState(StrEnum):
    LOGGED_OUT = "logged_out"
    LOGGING_IN = "logging_in"
    LOGGED_IN = "logged_in"


class PortalSessionManager:
    """Owns the single browser session used to talk to the portal.

    Login, the periodic liveness check and every page operation run under one
    asyncio.Lock, so only one login sequence can be in flight and scraper
    operations never interleave their navigations.
    """

    def __init__(
        self,
        config,
        cookie_path,
        browser_factory=launch_portal_browser,
        check_interval=SESSION_CHECK_INTERVAL,
        login_timeout=LOGIN_TIMEOUT,
    ):
        self._config = config
        self._cookie_path = Path(cookie_path)
        self._browser_factory = browser_factory
        self._check_interval = check_interval
        self._login_timeout = login_timeout

        self._browser = None
        self._state = SessionState.LOGGED_OUT
        self._last_verified: datetime | None = None
        self._lock = asyncio.Lock()
        self._liveness_task: asyncio.Task | None = None

        self.login_url = self.get_full_path(PORTAL_LOGIN_URL)
        self.protected_url = self.get_full_path(PORTAL_PROTECTED_URL)

    def get_full_path(self, path: str) -> str:
        return f"{self._config.base_url}/{path}"

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def last_verified(self) -> datetime | None:
        return self._last_verified

    @property
    def is_initialized(self) -> bool:
        """True once init() has started a browser. page() logs in again as needed."""
        return self._browser is not None

    @property
    def is_ready(self) -> bool:
        return self._browser is not None and self._state == SessionState.LOGGED_IN

    async def init(self):
        """Start the browser, restore cookies, log in and start the keep-alive."""
        if self._browser is not None:
            return

        self._browser = await self._browser_factory()
        cookies = await asyncio.get_running_loop().run_in_executor(None, self._read_cookies)
        if cookies:
            _LOGGER.debug("Restoring %d portal cookies", len(cookies))
            await self._browser.add_cookies(cookies)

        async with self._lock:
            await self._ensure_logged_in()

        self._liveness_task = asyncio.create_task(self._liveness_loop())

    async def ensure_logged_in(self):
        async with self._lock:
            await self._ensure_logged_in()

    async def goto(self, url, force=False):
        """Navigate the page to url. Caller must hold page().

        Navigation is skipped when the page is already there unless force is set.
        """
        if not force and self._browser.url == url:
            return
        await self._browser.goto(url)

    async def goto_protected(self):
        """Navigate to the protected page, logging in again if bounced. Caller must hold page()."""
        await self.goto(self.protected_url)
        if self._browser.url != self.protected_url:
            _LOGGER.info("Portal redirected away from the device list, logging in again")
            self._state = SessionState.LOGGED_OUT
            await self._ensure_logged_in()

    @asynccontextmanager
    async def page(self):
        """Exclusive access to a logged-in page."""
        async with self._lock:
            if self._browser is None:
                raise TuxedoError("Portal session is not initialised")
            if self._state != SessionState.LOGGED_IN:
                await self._ensure_logged_in()
            yield self._browser

    async def check_session(self):
        """Reload the protected page and log in again if we were bounced."""
        async with self._lock:
            if self._browser is None:
                return
            _LOGGER.debug("Checking portal session")
            await self.goto(self.protected_url, force=True)
            if self._browser.url != self.protected_url:
                _LOGGER.info("Portal session expired, logging in again")
                self._state = SessionState.LOGGED_OUT
                await self._ensure_logged_in()
            else:
                self._state = SessionState.LOGGED_IN
                self._last_verified = datetime.now(UTC)
                _LOGGER.debug("Portal session is still active")

    async def close(self):
        if self._liveness_task is not None:
            self._liveness_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._liveness_task
            self._liveness_task = None

        browser, self._browser = self._browser, None
        if browser is not None:
            await browser.close()
        self._state = SessionState.LOGGED_OUT

    async def _ensure_logged_in(self):
        # A stale page may still show the protected URL after the session died
        await self.goto(self.protected_url, force=True)
        if self._browser.url == self.protected_url:
            _LOGGER.debug("Already logged in to the portal")
            self._state = SessionState.LOGGED_IN
            self._last_verified = datetime.now(UTC)
            return

        _LOGGER.info("Logging in to the portal at %s", self._config.host)
        self._state = SessionState.LOGGING_IN
        try:
            await self.goto(self.login_url)
            await self._browser.fill(LOGIN_USERNAME_SELECTOR, self._config.username)
            await self._browser.fill(LOGIN_PASSWORD_SELECTOR, self._config.password)
            await self._browser.click(LOGIN_SUBMIT_SELECTOR)
            await self._browser.wait_for_url(self.protected_url, self._login_timeout)
        except TimeoutError as e:
            self._state = SessionState.LOGGED_OUT
            raise LoginTimeoutError(
                f"Portal did not accept the login within {self._login_timeout}s"
            ) from e
        except Exception:
            self._state = SessionState.LOGGED_OUT
            raise

        cookies = await self._browser.cookies()
        await asyncio.get_running_loop().run_in_executor(None, self._write_cookies, cookies)
        self._state = SessionState.LOGGED_IN
        self._last_verified = datetime.now(UTC)
        _LOGGER.info("Logged in to the portal")

    async def _liveness_loop(self):
        while True:
            await asyncio.sleep(self._check_interval)
            try:
                await self.check_session()
            except Exception as e:  # keep polling after a failed check
                _LOGGER.error("Portal session check failed: %s", e)

    def _read_cookies(self):
        if not self._cookie_path.exists():
            return None
        try:
            cookies = json.loads(self._cookie_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            _LOGGER.warning("Ignoring unreadable cookie file %s: %s", self._cookie_path, e)
            return None
        if not isinstance(cookies, list):
            _LOGGER.warning("Ignoring cookie file %s: not a list", self._cookie_path)
            return None
        return cookies

    def _write_cookies(self, cookies):
        self._cookie_path.parent.mkdir(parents=True, exist_ok=True)
        self._cookie_path.write_text(json.dumps(cookies), encoding="utf-8")
