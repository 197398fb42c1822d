import logging
from datetime import timedelta

from homeassistant.components.cover import CoverDeviceClass, CoverEntity, CoverEntityFeature
from homeassistant.exceptions import HomeAssistantError, PlatformNotReady

from .const import DOMAIN, DoorState
from .exceptions import TuxedoError
from .helpers import OptimisticStateCache, build_unique_id

_LOGGER = logging.getLogger(__name__)

SCAN_INTERVAL = timedelta(seconds=30)


async def async_setup_entry(hass, config_entry, async_add_entities):
    """Create a cover for every Z-Wave garage door the panel knows about."""
    data = hass.data[DOMAIN][config_entry.entry_id]
    api = data["api"]
    try:
        doors = await api.get_garage_doors()
    except TuxedoError as e:
        raise PlatformNotReady(f"Could not list garage doors: {e}") from e

    async_add_entities(
        [TuxedoGarageDoor(api, door, data.get("device_info")) for door in doors],
        update_before_add=True,
    )


class TuxedoGarageDoor(CoverEntity):
    """
    A Z-Wave garage door controller paired with the panel.

    :param api: TuxedoApiClient
    :param door: GarageDoorEntry from the device list
    """

    _attr_device_class = CoverDeviceClass.GARAGE
    _attr_supported_features = CoverEntityFeature.OPEN | CoverEntityFeature.CLOSE

    def __init__(self, api, door, device_info=None, pending=None):
        self.api = api
        self._door = door
        self._device_info = device_info
        self._pending = pending if pending is not None else OptimisticStateCache()
        self._door_state = None
        self._available = True

    @property
    def unique_id(self):
        return build_unique_id(self.api.config.device_mac, "garage_door", self._door.node_id)

    @property
    def name(self):
        return self._door.name

    @property
    def device_info(self):
        return self._device_info

    @property
    def available(self):
        return self._available

    @property
    def is_closed(self):
        if self._door_state is None:
            return None
        return self._door_state == DoorState.CLOSED

    @property
    def is_opening(self):
        return self._pending.get(self._door.node_id) == DoorState.OPEN and self._door_state != DoorState.OPEN

    @property
    def is_closing(self):
        return (
            self._pending.get(self._door.node_id) == DoorState.CLOSED
            and self._door_state != DoorState.CLOSED
        )

    async def async_open_cover(self, **kwargs):
        await self._send(DoorState.OPEN)

    async def async_close_cover(self, **kwargs):
        await self._send(DoorState.CLOSED)

    async def _send(self, target):
        try:
            await self.api.set_garage_door_status(self._door.node_id, target)
        except TuxedoError as e:
            _LOGGER.error("Error moving garage door %s: %s", self._door.name, e)
            raise HomeAssistantError(
                translation_domain=DOMAIN,
                translation_key="garage_door_failed",
                translation_placeholders={"name": self._door.name},
            ) from e
        self._pending.set(self._door.node_id, target)
        self.async_write_ha_state()

    async def async_update(self):
        try:
            state = await self.api.get_garage_door_status(self._door.node_id)
        except TuxedoError as e:
            if self._available:
                _LOGGER.error("Could not read garage door %s: %s", self._door.name, e)
            self._available = False
            return

        self._door_state = state
        self._available = True
        if self._pending.get(self._door.node_id) == state:
            self._pending.clear(self._door.node_id)
