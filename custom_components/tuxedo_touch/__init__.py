import logging

from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.device_registry import DeviceInfo

from .api import PanelConfig, TuxedoApiClient
from .const import (
    CONF_PLATFORMS,
    COOKIE_FILE_NAME,
    DEFAULT_PLATFORMS,
    DOMAIN,
    MANUFACTURER,
    MODEL,
)
from .exceptions import TuxedoError
from .scraper import DeviceStateScraper
from .session import PortalSessionManager

_LOGGER = logging.getLogger(__name__)


def _platforms_for(entry, config):
    platforms = list(entry.data.get(CONF_PLATFORMS, DEFAULT_PLATFORMS))
    if "light" in platforms and not config.has_portal_credentials:
        _LOGGER.warning("No portal credentials configured, lights will not be set up")
        platforms.remove("light")
    return platforms


async def async_setup_entry(hass, entry):
    """Set up the Tuxedo Touch integration from a config entry.

    The encrypted API client is always created. The browser session for the
    web portal is only started when lights are enabled, since it is only
    needed for them and launching Chromium is expensive.
    """
    config = PanelConfig.from_entry_data(entry.data)
    platforms = _platforms_for(entry, config)

    api = TuxedoApiClient(config, async_get_clientsession(hass, verify_ssl=False))

    session = None
    scraper = None
    if "light" in platforms:
        session = PortalSessionManager(config, hass.config.path(COOKIE_FILE_NAME))
        try:
            await session.init()
        except (TuxedoError, OSError) as e:
            await session.close()
            raise ConfigEntryNotReady(f"Could not log in to the Tuxedo portal: {e}") from e
        scraper = DeviceStateScraper(session)

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "config": config,
        "api": api,
        "session": session,
        "scraper": scraper,
        "platforms": platforms,
        "device_info": DeviceInfo(
            identifiers={(DOMAIN, config.device_mac)},
            name=f"{MODEL} ({config.host})",
            manufacturer=MANUFACTURER,
            model=MODEL,
        ),
    }

    _LOGGER.debug("Forwarding entry setup for platforms: %s", platforms)
    await hass.config_entries.async_forward_entry_setups(entry, platforms)
    return True


async def async_unload_entry(hass, entry):
    """Unload platforms and close the portal session."""
    data = hass.data[DOMAIN][entry.entry_id]
    unload_ok = await hass.config_entries.async_unload_platforms(entry, data["platforms"])
    if unload_ok:
        if data["session"] is not None:
            await data["session"].close()
        hass.data[DOMAIN].pop(entry.entry_id)
    return unload_ok
