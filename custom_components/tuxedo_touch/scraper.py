"""Portal-only device discovery, state reading and commands.

Z-Wave lights are not exposed by the encrypted API. They are read from the
portal's device list page and switched through `handlerequest.html`, which
requires a session id and a token key that the portal issues per session.
"""

import asyncio
import logging
import random
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import urlencode

from bs4 import BeautifulSoup

from .const import COMMAND_SETTLE_DELAY, PORTAL_COMMAND_URL, PORTAL_EVENT_HANDLER_URL
from .exceptions import ProtocolError, StateIndeterminateError, TransportError

_LOGGER = logging.getLogger(__name__)


class LightKind(StrEnum):
    BINARY = "binary"
    DIMMER = "dimmer"


class LightPower(StrEnum):
    ON = "on"
    OFF = "off"


@dataclass(frozen=True)
class DeviceInventoryEntry:
    name: str
    node_id: int
    kind: LightKind


@dataclass(frozen=True)
class LightState:
    power: LightPower
    percentage: int | None = None


@dataclass(frozen=True)
class CommandToken:
    session_id: str
    token_key: str


# Device list markup
BUTTON_CONTAINER_CLASSES = {
    LightKind.BINARY: "onoffBtnContainer",
    LightKind.DIMMER: "onoffDimmerBtnContainer",
}
CARD_DEPTH_FROM_CONTAINER = 3
CARD_DEPTH_FROM_ANCHOR = 4
NAME_SELECTOR = ".deviceNameText"
ANCHOR_PREFIX = "deviceOff"
ANCHOR_SELECTOR = f'[id^="{ANCHOR_PREFIX}"]'
NON_LIGHT_ANCHOR_TEXT = ("Open",)
DIMMER_PERCENTAGE_SELECTOR = ".dimmerPercentage"
LIGHT_ON_ICON_SELECTOR = ".cell_switch_bulb_on"
LIGHT_OFF_ICON_SELECTOR = ".cell_switch_bulb_off"
SESSION_ID_SELECTOR = "#hidSession"
TOKEN_KEY_SELECTOR = "#hiddenKey"

# The device list fills in asynchronously and hides #infoDiv when done
PAGE_READY_SCRIPT = """
() => {
    const element = document.querySelector("#infoDiv");
    return element && getComputedStyle(element).display === "none";
}
"""

# Portal command codes
CMD_SWITCH = "109"
CMD_DIM = "111"
UCODE_ON = "255"
UCODE_OFF = "0"
UCODE_DIM = "1"


def _soup(markup):
    return BeautifulSoup(markup, "html.parser")


def _ancestor(tag, depth):
    for _ in range(depth):
        if tag is None:
            return None
        tag = tag.parent
    return tag


@contextmanager
def _page_timeouts(action):
    try:
        yield
    except TimeoutError as e:
        raise TransportError(f"Timed out {action}") from e


def _value_of(markup, selector):
    element = _soup(markup).select_one(selector)
    if element is None:
        return None
    return element.get("value") or None


def parse_lights(markup) -> list[DeviceInventoryEntry]:
    """Return every light card on the device list page."""
    soup = _soup(markup)
    lights = []
    for kind, container_class in BUTTON_CONTAINER_CLASSES.items():
        for container in soup.select(f".{container_class}"):
            card = _ancestor(container, CARD_DEPTH_FROM_CONTAINER)
            if card is None:
                _LOGGER.error("Button container without a device card")
                continue

            name_element = card.select_one(NAME_SELECTOR)
            anchor = card.select_one(ANCHOR_SELECTOR)

            # Garage doors share the card layout but their anchor reads "Open"
            if anchor is not None and anchor.get_text(strip=True) in NON_LIGHT_ANCHOR_TEXT:
                continue

            if name_element is None or anchor is None:
                _LOGGER.error("Could not find name or identifying anchor")
                continue

            try:
                node_id = int(anchor["id"][len(ANCHOR_PREFIX):])
            except ValueError:
                _LOGGER.error("Unexpected anchor id %s", anchor["id"])
                continue

            lights.append(
                DeviceInventoryEntry(
                    name=name_element.get_text(strip=True), node_id=node_id, kind=kind
                )
            )
    return lights


def parse_light_state(markup, node_id) -> LightState | None:
    """Read one light's state from the device list page.

    Returns None when the page has no card for node_id. Raises
    StateIndeterminateError when the card carries no state marker.
    """
    anchor = _soup(markup).find(id=f"{ANCHOR_PREFIX}{node_id}")
    card = _ancestor(anchor, CARD_DEPTH_FROM_ANCHOR)
    if card is None:
        return None

    dimmer = card.select_one(DIMMER_PERCENTAGE_SELECTOR)
    raw_percentage = dimmer.get("value") if dimmer is not None else None
    if raw_percentage:
        try:
            percentage = int(raw_percentage)
        except ValueError as e:
            raise StateIndeterminateError(
                f"Light {node_id} has a non-numeric dimmer value {raw_percentage!r}"
            ) from e
        if percentage == 0:
            return LightState(LightPower.OFF, 0)
        return LightState(LightPower.ON, percentage)

    if card.select_one(LIGHT_ON_ICON_SELECTOR) is not None:
        return LightState(LightPower.ON)
    if card.select_one(LIGHT_OFF_ICON_SELECTOR) is not None:
        return LightState(LightPower.OFF)

    raise StateIndeterminateError(f"Could not determine state of light {node_id}")


def parse_session_id(markup) -> str | None:
    return _value_of(markup, SESSION_ID_SELECTOR)


def parse_token_key(markup) -> str | None:
    return _value_of(markup, TOKEN_KEY_SELECTOR)


class DeviceStateScraper:
    """Reads and drives portal-only lights through a PortalSessionManager."""

    def __init__(self, session, settle_delay=COMMAND_SETTLE_DELAY):
        self._session = session
        self._settle_delay = settle_delay

    async def list_lights(self) -> list[DeviceInventoryEntry]:
        if not self._session.is_initialized:
            _LOGGER.debug("Portal session not started, no lights listed")
            return []
        async with self._session.page() as page:
            markup = await self._load_device_list(page)
        lights = parse_lights(markup)
        for light in lights:
            _LOGGER.info("Found light: %s with node ID %s", light.name, light.node_id)
        return lights

    async def get_light_state(self, node_id) -> LightState | None:
        if not self._session.is_initialized:
            return None
        async with self._session.page() as page:
            markup = await self._load_device_list(page)
        return parse_light_state(markup, node_id)

    async def set_light_state(self, node_id, power, kind):
        """Switch a light on or off. Dimmers are driven to 100 or 0 percent.

        Returns the command URL sent, or None when the session has not been started.
        """
        power = LightPower(power)
        if LightKind(kind) == LightKind.DIMMER:
            return await self.set_light_percentage(node_id, 100 if power == LightPower.ON else 0)

        return await self._command(
            node_id,
            cmd=CMD_SWITCH,
            ucode=UCODE_ON if power == LightPower.ON else UCODE_OFF,
            filters="0",
        )

    async def set_light_percentage(self, node_id, percentage):
        percentage = max(0, min(100, int(round(percentage))))
        return await self._command(node_id, cmd=CMD_DIM, ucode=UCODE_DIM, filters=str(percentage))

    async def _command(self, node_id, cmd, ucode, filters):
        if not self._session.is_initialized:
            _LOGGER.warning("Portal session not started, dropping command for node %s", node_id)
            return None

        async with self._session.page() as page:
            token = await self._fetch_token(page)
            params = {
                "cmd": cmd,
                "Type": cmd,
                "pID": str(node_id),
                "uCode": ucode,
                "sessionid": token.session_id,
                "filters": filters,
                "index": "0",
                "tarTemp": "0",
                "tokenkey": token.token_key,
                "sid": str(random.random()),
            }
            url = self._session.get_full_path(f"{PORTAL_COMMAND_URL}?{urlencode(params)}")
            _LOGGER.debug("Sending command %s to node %s (filters=%s)", cmd, node_id, filters)
            await page.fetch_text(url)
            await self._refresh(page)
        return url

    async def _load_device_list(self, page) -> str:
        with _page_timeouts("loading the device list"):
            await self._session.goto_protected()
            await page.wait_for_function(PAGE_READY_SCRIPT)
        return await page.content()

    async def _fetch_token(self, page) -> CommandToken:
        session_id = parse_session_id(await self._load_device_list(page))
        event_handler = await page.fetch_text(self._session.get_full_path(PORTAL_EVENT_HANDLER_URL))
        token_key = parse_token_key(event_handler)
        if not session_id or not token_key:
            raise ProtocolError("Could not read the command token from the portal")
        return CommandToken(session_id=session_id, token_key=token_key)

    async def _refresh(self, page):
        with _page_timeouts("refreshing the device list"):
            await self._session.goto(self._session.protected_url)
            await asyncio.sleep(self._settle_delay)
            await page.reload()
