"""Diagnostics support for the Roomba Platform integration.

The output is meant to be attached to bug reports, so credentials are
redacted.
"""
from __future__ import annotations

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import DATA_DEVICE, DATA_HUB, DOMAIN

SENSITIVE_KEY_FRAGMENTS = (
    "password",
    "secret",
    "token",
)


def _is_sensitive_key(key: str) -> bool:
    k = key.lower().replace("_", "")
    return any(frag in k for frag in SENSITIVE_KEY_FRAGMENTS)


def _redact(obj: Any) -> Any:
    """Recursively redact sensitive values."""
    if isinstance(obj, dict):
        return {
            k: "***" if isinstance(k, str) and _is_sensitive_key(k) else _redact(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [_redact(v) for v in obj]
    return obj


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    data = hass.data.get(DOMAIN, {}).get(entry.entry_id) or {}
    device = data.get(DATA_DEVICE)
    hub = data.get(DATA_HUB)

    diag: dict[str, Any] = {
        "entry": {
            "title": entry.title,
            "data": dict(entry.data),
            "options": dict(entry.options),
        },
    }

    if device is not None:
        diag["device"] = {
            "address": device.session.address,
            "connected": device.is_connected(),
            "last_error": device.session.last_error,
            "poll_failures": device.poll_failures,
            "pending_command": device.has_pending_command,
            "rooms": [room.name for room in device.rooms],
        }
        if device.initialized:
            diag["snapshot"] = device.snapshot().as_dict()

    if hub is not None and hub.poller is not None:
        diag["poller"] = {
            "state": hub.poller.state.value,
            "interval_seconds": hub.poller.interval,
        }

    return _redact(diag)
