"""Roomba Platform integration for Home Assistant."""
from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol

from homeassistant.config_entries import SOURCE_IMPORT, ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers.typing import ConfigType

from .const import (
    CONF_DEVICES,
    CONF_MAPS,
    CONF_POLLING_INTERVAL,
    DATA_COORDINATOR,
    DATA_DEVICE,
    DATA_HUB,
    DEFAULT_POLLING_INTERVAL,
    DOMAIN,
    PLATFORMS,
    VISIBILITY_KEYS,
)
from .coordinator import RoombaDataUpdateCoordinator
from .roomba_core import (
    ConfigurationError,
    MalformedTelemetryError,
    RoombaConnectionError,
    RoombaHub,
    parse_device_config,
)
from .roomba_core.config import PLATFORM_SCHEMA

_LOGGER = logging.getLogger(__name__)

CONFIG_SCHEMA = vol.Schema({vol.Optional(DOMAIN): PLATFORM_SCHEMA}, extra=vol.ALLOW_EXTRA)


def entry_settings(entry: ConfigEntry) -> dict[str, Any]:
    """Merge entry data with its options; options win."""
    settings = dict(entry.data)
    for key in (CONF_POLLING_INTERVAL, CONF_MAPS, *VISIBILITY_KEYS):
        if key in entry.options:
            settings[key] = entry.options[key]
    return settings


async def async_setup(hass: HomeAssistant, config: ConfigType) -> bool:
    """Import robots configured in YAML into config entries."""
    hass.data.setdefault(DOMAIN, {})
    if DOMAIN not in config:
        return True

    platform = config[DOMAIN]
    for device in platform[CONF_DEVICES]:
        hass.async_create_task(
            hass.config_entries.flow.async_init(
                DOMAIN,
                context={"source": SOURCE_IMPORT},
                data={
                    **device,
                    CONF_POLLING_INTERVAL: platform[CONF_POLLING_INTERVAL],
                },
            )
        )
    return True


async def _options_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry so new options reach the engine."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up one robot from a config entry."""
    hass.data.setdefault(DOMAIN, {})
    settings = entry_settings(entry)

    try:
        device_config = parse_device_config(settings)
    except ConfigurationError as err:
        _LOGGER.error("Invalid configuration for %s: %s", entry.title, err)
        return False

    hub = RoombaHub(
        polling_interval=settings.get(CONF_POLLING_INTERVAL, DEFAULT_POLLING_INTERVAL)
    )
    try:
        device = await hub.async_add_device(device_config)
    except (RoombaConnectionError, MalformedTelemetryError) as err:
        await hub.async_stop()
        raise ConfigEntryNotReady(str(err)) from err

    coordinator = RoombaDataUpdateCoordinator(hass, device, entry)
    await coordinator.async_start()
    hub.start_polling()

    hass.data[DOMAIN][entry.entry_id] = {
        DATA_HUB: hub,
        DATA_DEVICE: device,
        DATA_COORDINATOR: coordinator,
    }

    entry.async_on_unload(entry.add_update_listener(_options_update_listener))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    if unload_ok := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        data = hass.data[DOMAIN].pop(entry.entry_id)
        coordinator: RoombaDataUpdateCoordinator = data[DATA_COORDINATOR]
        await coordinator.async_stop()
        hub: RoombaHub = data[DATA_HUB]
        await hub.async_stop()

    return unload_ok
