"""Constants for the Roomba Platform integration."""
from __future__ import annotations

from homeassistant.const import Platform

from .roomba_core.const import (  # noqa: F401
    CONF_BLID,
    CONF_DEVICES,
    CONF_HIDE_BATTERY,
    CONF_HIDE_BIN,
    CONF_HIDE_DOCK,
    CONF_HIDE_FIND,
    CONF_HIDE_MOTION,
    CONF_HIDE_PAUSE,
    CONF_HIDE_RETURN,
    CONF_HIDE_START,
    CONF_HIDE_TARGET,
    CONF_HOST,
    CONF_MAPS,
    CONF_NAME,
    CONF_PASSWORD,
    CONF_POLLING_INTERVAL,
    DEFAULT_POLLING_INTERVAL,
    MANUFACTURER,
    VISIBILITY_KEYS,
)

DOMAIN = "roomba_platform"

PLATFORMS: list[Platform] = [
    Platform.BINARY_SENSOR,
    Platform.SENSOR,
    Platform.SWITCH,
    Platform.SELECT,
]

# hass.data keys
DATA_HUB = "hub"
DATA_DEVICE = "device"
DATA_COORDINATOR = "coordinator"

# Options flow: rooms are edited as JSON text and stored as CONF_MAPS.
CONF_ROOMS_JSON = "rooms_json"
