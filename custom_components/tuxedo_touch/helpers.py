"""Shared helpers for the Tuxedo Touch integration."""

import time

from .const import OPTIMISTIC_STATE_TTL


def build_unique_id(base: str, *parts: str | int) -> str:
    """Build a consistent unique_id for any entity.

    Examples:
        build_unique_id(mac, "alarm_control_panel") → "{mac}_alarm_control_panel"
        build_unique_id(mac, "light", 7)            → "{mac}_light_7"
    """
    return "_".join([base] + [str(p) for p in parts])


class OptimisticStateCache:
    """Remembers the state last requested for each device for a short while.

    The panel takes a few seconds to reflect a command, so a poll right after
    it would flip the entity back. Entries expire after ttl seconds.
    """

    def __init__(self, ttl=OPTIMISTIC_STATE_TTL, clock=time.monotonic):
        self._ttl = ttl
        self._clock = clock
        self._entries = {}

    def set(self, key, value):
        self._entries[key] = (value, self._clock())

    def get(self, key):
        """Return the pending value for key, or None once it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stamp = entry
        if self._clock() - stamp >= self._ttl:
            del self._entries[key]
            return None
        return value

    def clear(self, key):
        self._entries.pop(key, None)

    def __contains__(self, key):
        return self.get(key) is not None
