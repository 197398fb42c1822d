"""Diagnostics support for the Tuxedo Touch integration."""

from __future__ import annotations

from typing import Any

from homeassistant.components.diagnostics import async_redact_data
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers import entity_registry as er

from .const import CONF_CODE, CONF_PASSWORD, CONF_PRIVATE_KEY, CONF_USERNAME, DOMAIN

TO_REDACT = {CONF_CODE, CONF_PASSWORD, CONF_PRIVATE_KEY, CONF_USERNAME}


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    data = hass.data[DOMAIN][entry.entry_id]

    return {
        "config_entry": async_redact_data(dict(entry.data), TO_REDACT),
        "platforms": data["platforms"],
        "portal_session": _get_session_status(data["session"]),
        "entities": _collect_entity_counts(hass, entry),
    }


def _get_session_status(session) -> dict[str, Any]:
    if session is None:
        return {"enabled": False}
    last_verified = session.last_verified
    return {
        "enabled": True,
        "state": str(session.state),
        "is_ready": session.is_ready,
        "last_verified": last_verified.isoformat() if last_verified else None,
    }


def _collect_entity_counts(hass: HomeAssistant, entry: ConfigEntry) -> dict[str, Any]:
    """Count registered entities per platform."""
    entity_registry = er.async_get(hass)

    by_platform: dict[str, int] = {}
    for entity_entry in er.async_entries_for_config_entry(entity_registry, entry.entry_id):
        by_platform[entity_entry.domain] = by_platform.get(entity_entry.domain, 0) + 1

    return {
        "total_count": sum(by_platform.values()),
        "by_platform": by_platform,
    }
