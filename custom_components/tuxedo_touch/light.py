"""Light entities for the Tuxedo Touch integration.

Z-Wave lights are only reachable through the web portal, so these entities
go through the DeviceStateScraper rather than the encrypted API.
"""

import logging
from datetime import timedelta

from homeassistant.components.light import ATTR_BRIGHTNESS, LightEntity
from homeassistant.components.light.const import ColorMode
from homeassistant.exceptions import HomeAssistantError, PlatformNotReady

from .const import DOMAIN
from .exceptions import TuxedoError
from .helpers import OptimisticStateCache, build_unique_id
from .scraper import LightKind, LightPower, LightState

_LOGGER = logging.getLogger(__name__)

# Every poll reloads the portal page, keep it infrequent
SCAN_INTERVAL = timedelta(seconds=60)
PARALLEL_UPDATES = 1


def brightness_to_percentage(brightness):
    return max(0, min(100, round(brightness * 100 / 255)))


def percentage_to_brightness(percentage):
    return max(0, min(255, round(percentage * 255 / 100)))


async def async_setup_entry(hass, config_entry, async_add_entities):
    """Set up a light for every switch or dimmer card on the portal."""
    data = hass.data[DOMAIN][config_entry.entry_id]
    scraper = data["scraper"]
    try:
        lights = await scraper.list_lights()
    except TuxedoError as e:
        raise PlatformNotReady(f"Could not list lights: {e}") from e

    _LOGGER.debug("Found %d lights", len(lights))
    async_add_entities(
        [TuxedoLight(scraper, light, data["config"].device_mac, data.get("device_info")) for light in lights],
        update_before_add=True,
    )


class TuxedoLight(LightEntity):
    """A portal-only Z-Wave switch or dimmer."""

    def __init__(self, scraper, light, device_mac, device_info=None, pending=None):
        self.scraper = scraper
        self._light = light
        self._device_mac = device_mac
        self._device_info = device_info
        self._pending = pending if pending is not None else OptimisticStateCache()
        self._state = None
        self._available = True

        if light.kind == LightKind.DIMMER:
            self._attr_color_mode = ColorMode.BRIGHTNESS
            self._attr_supported_color_modes = {ColorMode.BRIGHTNESS}
        else:
            self._attr_color_mode = ColorMode.ONOFF
            self._attr_supported_color_modes = {ColorMode.ONOFF}

    @property
    def unique_id(self):
        return build_unique_id(self._device_mac, "light", self._light.node_id)

    @property
    def name(self):
        return self._light.name

    @property
    def device_info(self):
        return self._device_info

    @property
    def available(self):
        return self._available

    def _current(self):
        return self._pending.get(self._light.node_id) or self._state

    @property
    def is_on(self):
        state = self._current()
        if state is None:
            return None
        return state.power == LightPower.ON

    @property
    def brightness(self):
        state = self._current()
        if self._light.kind != LightKind.DIMMER or state is None or state.percentage is None:
            return None
        return percentage_to_brightness(state.percentage)

    async def async_turn_on(self, **kwargs):
        if self._light.kind == LightKind.DIMMER and ATTR_BRIGHTNESS in kwargs:
            percentage = brightness_to_percentage(kwargs[ATTR_BRIGHTNESS])
            target = LightState(LightPower.ON if percentage else LightPower.OFF, percentage)
            await self._send(target, self.scraper.set_light_percentage, self._light.node_id, percentage)
            return

        percentage = 100 if self._light.kind == LightKind.DIMMER else None
        await self._send(
            LightState(LightPower.ON, percentage),
            self.scraper.set_light_state,
            self._light.node_id,
            LightPower.ON,
            self._light.kind,
        )

    async def async_turn_off(self, **kwargs):
        percentage = 0 if self._light.kind == LightKind.DIMMER else None
        await self._send(
            LightState(LightPower.OFF, percentage),
            self.scraper.set_light_state,
            self._light.node_id,
            LightPower.OFF,
            self._light.kind,
        )

    async def _send(self, target, command, *args):
        try:
            sent = await command(*args)
        except TuxedoError as e:
            _LOGGER.error("Error switching light %s: %s", self._light.name, e)
            raise HomeAssistantError(
                translation_domain=DOMAIN,
                translation_key="light_failed",
                translation_placeholders={"name": self._light.name},
            ) from e
        if sent is None:
            raise HomeAssistantError(
                translation_domain=DOMAIN,
                translation_key="portal_not_ready",
            )
        self._pending.set(self._light.node_id, target)
        self.async_write_ha_state()

    async def async_update(self):
        try:
            state = await self.scraper.get_light_state(self._light.node_id)
        except TuxedoError as e:
            if self._available:
                _LOGGER.error("Could not read light %s: %s", self._light.name, e)
            self._available = False
            return

        if state is None:
            _LOGGER.debug("No state for light %s", self._light.name)
            self._available = False
            return

        self._state = state
        self._available = True
        pending = self._pending.get(self._light.node_id)
        if pending is not None and pending.power == state.power:
            self._pending.clear(self._light.node_id)
