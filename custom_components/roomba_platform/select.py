"""Select platform for Roomba Platform integration.

The target select is the media-style play/pause/stop control. It reports the
last requested target until the next poll confirms or replaces it.
"""
from __future__ import annotations

from homeassistant.components.select import SelectEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import CONF_HIDE_TARGET, DATA_COORDINATOR, DOMAIN
from .coordinator import RoombaDataUpdateCoordinator
from .entity import RoombaControlEntity
from .roomba_core import TargetState


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the Roomba target select based on a config entry."""
    coordinator: RoombaDataUpdateCoordinator = hass.data[DOMAIN][entry.entry_id][
        DATA_COORDINATOR
    ]
    if coordinator.device.config.is_visible(CONF_HIDE_TARGET):
        async_add_entities([RoombaTargetSelect(coordinator)])


class RoombaTargetSelect(RoombaControlEntity, SelectEntity):
    """Select for the play/pause/stop target."""

    _attr_name = "Target"
    _attr_icon = "mdi:robot-vacuum"
    _attr_options = [target.value for target in TargetState]

    def __init__(self, coordinator: RoombaDataUpdateCoordinator) -> None:
        super().__init__(coordinator, "target")

    @property
    def current_option(self) -> str | None:
        if self.snapshot is None:
            return None
        return self.snapshot.target.value

    async def async_select_option(self, option: str) -> None:
        try:
            target = TargetState(option)
        except ValueError as err:
            raise HomeAssistantError(f"Invalid target: {option}") from err
        device = self.coordinator.device
        await self._async_run(lambda: device.async_set_target(target))
