"""Alarm control panel entity for the Tuxedo Touch integration.

State is polled through GetSecurityStatus on the encrypted API. Commands use
the arming code stored in the config entry, so Home Assistant does not ask
for one.
"""

import logging
from datetime import timedelta

from homeassistant.components.alarm_control_panel import AlarmControlPanelEntity
from homeassistant.components.alarm_control_panel.const import (
    AlarmControlPanelEntityFeature,
    AlarmControlPanelState,
)
from homeassistant.exceptions import HomeAssistantError

from .const import DOMAIN, ArmMode
from .exceptions import TuxedoError
from .helpers import OptimisticStateCache, build_unique_id
from .security import CurrentState, TargetState, current_state_for, target_state_for

_LOGGER = logging.getLogger(__name__)

SCAN_INTERVAL = timedelta(seconds=30)

_PENDING_KEY = "security"

CURRENT_TO_HA_STATE = {
    CurrentState.STAY_ARM: AlarmControlPanelState.ARMED_HOME,
    CurrentState.AWAY_ARM: AlarmControlPanelState.ARMED_AWAY,
    CurrentState.NIGHT_ARM: AlarmControlPanelState.ARMED_NIGHT,
    CurrentState.DISARMED: AlarmControlPanelState.DISARMED,
    CurrentState.ALARM_TRIGGERED: AlarmControlPanelState.TRIGGERED,
}

TARGET_TO_HA_STATE = {
    TargetState.STAY_ARM: AlarmControlPanelState.ARMED_HOME,
    TargetState.AWAY_ARM: AlarmControlPanelState.ARMED_AWAY,
    TargetState.NIGHT_ARM: AlarmControlPanelState.ARMED_NIGHT,
    TargetState.DISARM: AlarmControlPanelState.DISARMED,
}


async def async_setup_entry(hass, config_entry, async_add_entities):
    data = hass.data[DOMAIN][config_entry.entry_id]
    async_add_entities(
        [TuxedoAlarmControlPanel(data["api"], data.get("device_info"))],
        update_before_add=True,
    )


class TuxedoAlarmControlPanel(AlarmControlPanelEntity):
    """The panel's security partition."""

    _attr_has_entity_name = True
    _attr_translation_key = "alarm_control_panel"
    _attr_code_arm_required = False
    _attr_supported_features = (
        AlarmControlPanelEntityFeature.ARM_HOME
        | AlarmControlPanelEntityFeature.ARM_AWAY
        | AlarmControlPanelEntityFeature.ARM_NIGHT
    )

    def __init__(self, api, device_info=None, pending=None):
        self.api = api
        self._device_info = device_info
        self._pending = pending if pending is not None else OptimisticStateCache()
        self._status = None
        self._state = None
        self._target_state = None
        self._available = True

    @property
    def unique_id(self):
        return build_unique_id(self.api.config.device_mac, "alarm_control_panel")

    @property
    def device_info(self):
        return self._device_info

    @property
    def available(self):
        return self._available

    @property
    def alarm_state(self):
        """Return the reported state, or ARMING/DISARMING while a command settles."""
        pending = self._pending.get(_PENDING_KEY)
        if pending is not None and TARGET_TO_HA_STATE[pending] != self._state:
            if pending == TargetState.DISARM:
                return AlarmControlPanelState.DISARMING
            return AlarmControlPanelState.ARMING
        return self._state

    @property
    def extra_state_attributes(self):
        return {
            "panel_status": str(self._status) if self._status is not None else None,
            "target_state": str(self._target_state) if self._target_state is not None else None,
        }

    async def async_update(self):
        try:
            status = await self.api.get_security_status()
        except TuxedoError as e:
            if self._available:
                _LOGGER.error("Could not read security status: %s", e)
            self._available = False
            return

        self._status = status
        self._state = CURRENT_TO_HA_STATE[current_state_for(status)]
        self._target_state = target_state_for(status)
        self._available = True
        _LOGGER.debug("Security status %s -> %s", status, self._state)

        if self._pending.get(_PENDING_KEY) == self._target_state:
            self._pending.clear(_PENDING_KEY)

    async def async_alarm_disarm(self, code: str | None = None) -> None:
        await self._send(TargetState.DISARM, "disarm_failed", self.api.disarm)

    async def async_alarm_arm_home(self, code: str | None = None) -> None:
        await self._send(TargetState.STAY_ARM, "arm_home_failed", self.api.arm, ArmMode.STAY)

    async def async_alarm_arm_away(self, code: str | None = None) -> None:
        await self._send(TargetState.AWAY_ARM, "arm_away_failed", self.api.arm, ArmMode.AWAY)

    async def async_alarm_arm_night(self, code: str | None = None) -> None:
        await self._send(TargetState.NIGHT_ARM, "arm_night_failed", self.api.arm, ArmMode.NIGHT)

    async def _send(self, target, translation_key, command, *args):
        try:
            _LOGGER.debug("Requesting security state %s", target)
            await command(*args)
        except TuxedoError as e:
            _LOGGER.error("Error requesting security state %s: %s", target, e)
            raise HomeAssistantError(
                translation_domain=DOMAIN,
                translation_key=translation_key,
            ) from e

        self._pending.set(_PENDING_KEY, target)
        self.async_write_ha_state()
