import ipaddress

import voluptuous as vol
from homeassistant import config_entries
import homeassistant.helpers.config_validation as cv

from .const import (
    CONF_CODE,
    CONF_DEVICE_MAC,
    CONF_HOST,
    CONF_PASSWORD,
    CONF_PLATFORMS,
    CONF_PORT,
    CONF_PRIVATE_KEY,
    CONF_USERNAME,
    DEFAULT_PLATFORMS,
    DOMAIN,
    MODEL,
)
from .crypto import split_private_key
from .exceptions import MalformedKeyError

PLATFORMS_OPTIONS = DEFAULT_PLATFORMS

# Validation form schema
DATA_SCHEMA = vol.Schema({
    vol.Required(CONF_HOST): str,
    vol.Optional(CONF_PORT): int,
    vol.Required(CONF_DEVICE_MAC): str,
    vol.Required(CONF_PRIVATE_KEY): str,
    vol.Required(CONF_CODE): str,
    vol.Optional(CONF_USERNAME, default=""): str,
    vol.Optional(CONF_PASSWORD, default=""): str,
    vol.Required(CONF_PLATFORMS, default=PLATFORMS_OPTIONS): cv.multi_select(PLATFORMS_OPTIONS),
})


def validate_input(user_input):
    """Return a dict of form errors, empty when the input is usable."""
    errors = {}

    try:
        ipaddress.ip_address(user_input.get(CONF_HOST))
    except ValueError:
        errors[CONF_HOST] = "invalid_host"

    try:
        split_private_key(user_input.get(CONF_PRIVATE_KEY))
    except MalformedKeyError:
        errors[CONF_PRIVATE_KEY] = "invalid_private_key"

    if not str(user_input.get(CONF_CODE, "")).isdigit():
        errors[CONF_CODE] = "invalid_code"

    if bool(user_input.get(CONF_USERNAME)) != bool(user_input.get(CONF_PASSWORD)):
        errors["base"] = "incomplete_credentials"

    return errors


class TuxedoConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Config flow for a Tuxedo Touch panel.

    The panel identity and shared secret come from the panel's API
    registration page. Portal credentials are only needed for lights.
    """

    VERSION = 1

    async def async_step_user(self, user_input=None):
        errors = {}
        if user_input is not None:
            user_input[CONF_PRIVATE_KEY] = user_input[CONF_PRIVATE_KEY].strip()
            errors = validate_input(user_input)
            if not errors:
                await self.async_set_unique_id(user_input[CONF_DEVICE_MAC].lower())
                self._abort_if_unique_id_configured()
                return self.async_create_entry(
                    title=f"{MODEL} @ {user_input[CONF_HOST]}", data=user_input
                )

        return self.async_show_form(
            step_id="user",
            data_schema=DATA_SCHEMA,
            errors=errors,
        )
