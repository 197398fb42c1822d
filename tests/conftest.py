"""Fixtures for Tuxedo Touch integration tests."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qsl, urlparse

import pytest
import pytest_asyncio

PRIVATE_KEY = "00112233445566778899aabbccddeeff" * 2 + "0f1e2d3c4b5a69788796a5b4c3d2e1f0"
KEY_HEX = PRIVATE_KEY[:64]
IV_HEX = PRIVATE_KEY[64:]
DEVICE_MAC = "00:11:22:33:44:55"
HOST = "192.168.1.10"
USERNAME = "admin"
PASSWORD = "secret"

SESSION_ID = "SESSION42"
TOKEN_KEY = "TOKEN99"

DEVICE_LIST_HTML = f"""
<html><body>
<div id="infoDiv" style="display: none"></div>
<input type="hidden" id="hidSession" value="{SESSION_ID}">
<div class="deviceCard">
  <div class="deviceNameText">Kitchen</div>
  <div class="row"><div class="cell">
    <div class="onoffBtnContainer"><a id="deviceOff7">Off</a></div>
  </div></div>
  <span class="cell_switch_bulb_on"></span>
</div>
<div class="deviceCard">
  <div class="deviceNameText">Porch</div>
  <div class="row"><div class="cell">
    <div class="onoffBtnContainer"><a id="deviceOff9">Off</a></div>
  </div></div>
  <span class="cell_switch_bulb_off"></span>
</div>
<div class="deviceCard">
  <div class="deviceNameText">Living Room</div>
  <div class="row"><div class="cell">
    <div class="onoffDimmerBtnContainer"><a id="deviceOff8">Off</a></div>
  </div></div>
  <input class="dimmerPercentage" value="40">
</div>
<div class="deviceCard">
  <div class="deviceNameText">Garage Door</div>
  <div class="row"><div class="cell">
    <div class="onoffBtnContainer"><a id="deviceOff5">Open</a></div>
  </div></div>
</div>
<div class="deviceCard">
  <div class="row"><div class="cell">
    <div class="onoffBtnContainer"><a id="deviceOff11">Off</a></div>
  </div></div>
</div>
</body></html>
"""

EVENT_HANDLER_HTML = f'<html><body><input type="hidden" id="hiddenKey" value="{TOKEN_KEY}"></body></html>'


class FakePortalBrowser:
    """In-memory stand-in for PlaywrightPortalBrowser.

    Navigating to the protected page while logged out lands on the login
    page. Submitting the right credentials logs in and redirects. Cookies
    restored through add_cookies count as a valid session.
    """

    def __init__(self, base_url=f"https://{HOST}", username=USERNAME, password=PASSWORD):
        self.base_url = base_url
        self.protected_url = f"{base_url}/zwavedevicelist.html"
        self.login_url = f"{base_url}/authenticated/index.html?url=zwavedevicelist.html"
        self.username = username
        self.password = password

        self.url = "about:blank"
        self.logged_in = False
        self.device_list_html = DEVICE_LIST_HTML
        self.event_handler_html = EVENT_HANDLER_HTML
        self.filled = {}
        self.navigations = []
        self.fetched = []
        self.added_cookies = []
        self.login_count = 0
        self.reload_count = 0
        self.wait_count = 0
        self.close_count = 0

    async def goto(self, url):
        self.navigations.append(url)
        if url == self.protected_url and not self.logged_in:
            self.url = self.login_url
        else:
            self.url = url

    async def content(self):
        if self.url == self.protected_url:
            return self.device_list_html
        return "<html><body><form></form></body></html>"

    async def fill(self, selector, value):
        self.filled[selector] = value

    async def click(self, selector):
        await asyncio.sleep(0)
        if (
            selector == "#login_confirm"
            and self.filled.get("#j_username") == self.username
            and self.filled.get("#j_password") == self.password
        ):
            self.login_count += 1
            self.logged_in = True
            self.url = self.protected_url

    async def wait_for_url(self, url, timeout):
        if self.url != url:
            raise TimeoutError(f"Page did not reach {url}")

    async def wait_for_function(self, expression, timeout=None):
        self.wait_count += 1

    async def reload(self):
        self.reload_count += 1

    async def fetch_text(self, url):
        self.fetched.append(url)
        if url.startswith(f"{self.base_url}/eventhandler.html"):
            return self.event_handler_html
        return "OK"

    async def cookies(self):
        return [{"name": "JSESSIONID", "value": "abc123", "domain": HOST, "path": "/"}]

    async def add_cookies(self, cookies):
        self.added_cookies.extend(cookies)
        if cookies:
            self.logged_in = True

    async def close(self):
        self.close_count += 1


def command_params(url):
    """Query parameters of a handlerequest.html URL as a dict."""
    return dict(parse_qsl(urlparse(url).query))


@pytest.fixture
def panel_config():
    from custom_components.tuxedo_touch.api import PanelConfig

    return PanelConfig(
        host=HOST,
        device_mac=DEVICE_MAC,
        private_key=PRIVATE_KEY,
        code="1234",
        username=USERNAME,
        password=PASSWORD,
    )


@pytest.fixture
def fake_browser():
    return FakePortalBrowser()


@pytest.fixture
def browser_factory(fake_browser):
    return AsyncMock(return_value=fake_browser)


@pytest.fixture
def cookie_path(tmp_path):
    return tmp_path / ".storage" / "tuxedo_touch_cookies.json"


@pytest_asyncio.fixture
async def portal_session(panel_config, cookie_path, browser_factory):
    """An initialised PortalSessionManager on a FakePortalBrowser."""
    from custom_components.tuxedo_touch.session import PortalSessionManager

    session = PortalSessionManager(panel_config, cookie_path, browser_factory=browser_factory)
    await session.init()
    yield session
    await session.close()


@pytest.fixture
def mock_api():
    """Create a mock TuxedoApiClient."""
    api = MagicMock()
    api.config.device_mac = DEVICE_MAC
    api.get_security_status = AsyncMock()
    api.arm = AsyncMock(return_value={"Result": "Success"})
    api.disarm = AsyncMock(return_value={"Result": "Success"})
    api.get_garage_doors = AsyncMock(return_value=[])
    api.get_garage_door_status = AsyncMock()
    api.set_garage_door_status = AsyncMock(return_value={"Result": "Success"})
    return api


@pytest.fixture
def mock_scraper():
    """Create a mock DeviceStateScraper."""
    scraper = MagicMock()
    scraper.list_lights = AsyncMock(return_value=[])
    scraper.get_light_state = AsyncMock()
    scraper.set_light_state = AsyncMock(return_value="https://panel/handlerequest.html")
    scraper.set_light_percentage = AsyncMock(return_value="https://panel/handlerequest.html")
    return scraper


@pytest.fixture
def mock_hass():
    """Create a mock Home Assistant instance."""
    hass = MagicMock()
    hass.data = {}
    hass.async_create_task = MagicMock(side_effect=lambda x: x)
    return hass
