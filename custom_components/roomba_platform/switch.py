"""Switch platform for Roomba Platform integration.

Each switch write goes through the engine's command sequencer. A write that
would not change the switch is ignored; a failed command reverts the switch.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from homeassistant.components.switch import SwitchEntity, SwitchEntityDescription
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.util import slugify

from .const import (
    CONF_HIDE_FIND,
    CONF_HIDE_PAUSE,
    CONF_HIDE_RETURN,
    CONF_HIDE_START,
    DATA_COORDINATOR,
    DOMAIN,
)
from .coordinator import RoombaDataUpdateCoordinator
from .entity import RoombaControlEntity
from .roomba_core import (
    CommandResult,
    DeviceSnapshot,
    RoombaDevice,
    RoomDefinition,
    TargetState,
)

Operation = Callable[[RoombaDevice], Awaitable[CommandResult]]


def _toggle_run(device: RoombaDevice) -> Awaitable[CommandResult]:
    return device.async_toggle_run()


def _target(target: TargetState) -> Operation:
    def operation(device: RoombaDevice) -> Awaitable[CommandResult]:
        return device.async_set_target(target)

    return operation


@dataclass(frozen=True, kw_only=True)
class RoombaSwitchEntityDescription(SwitchEntityDescription):
    """Describes Roomba switch entity."""

    is_on_fn: Callable[[DeviceSnapshot], bool]
    turn_on_fn: Operation
    turn_off_fn: Operation
    visibility_key: str


SWITCH_DESCRIPTIONS: tuple[RoombaSwitchEntityDescription, ...] = (
    RoombaSwitchEntityDescription(
        key="start",
        name="Start",
        icon="mdi:play",
        is_on_fn=lambda snapshot: snapshot.started,
        turn_on_fn=_target(TargetState.PLAY),
        turn_off_fn=_toggle_run,
        visibility_key=CONF_HIDE_START,
    ),
    RoombaSwitchEntityDescription(
        key="pause",
        name="Pause",
        icon="mdi:pause",
        is_on_fn=lambda snapshot: snapshot.paused,
        turn_on_fn=_target(TargetState.PAUSE),
        turn_off_fn=_target(TargetState.PLAY),
        visibility_key=CONF_HIDE_PAUSE,
    ),
    RoombaSwitchEntityDescription(
        key="return",
        name="Return to dock",
        icon="mdi:home-import-outline",
        is_on_fn=lambda snapshot: snapshot.returning,
        turn_on_fn=lambda device: device.async_return_to_dock(),
        turn_off_fn=_target(TargetState.PAUSE),
        visibility_key=CONF_HIDE_RETURN,
    ),
    RoombaSwitchEntityDescription(
        key="find",
        name="Find",
        icon="mdi:map-marker-question",
        is_on_fn=lambda snapshot: snapshot.locating,
        turn_on_fn=lambda device: device.async_locate(),
        turn_off_fn=lambda device: device.async_locate(),
        visibility_key=CONF_HIDE_FIND,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Roomba switches based on a config entry."""
    coordinator: RoombaDataUpdateCoordinator = hass.data[DOMAIN][entry.entry_id][
        DATA_COORDINATOR
    ]
    config = coordinator.device.config

    entities: list[SwitchEntity] = [
        RoombaSwitch(coordinator, description)
        for description in SWITCH_DESCRIPTIONS
        if config.is_visible(description.visibility_key)
    ]
    entities.extend(RoombaRoomSwitch(coordinator, room) for room in config.rooms)
    async_add_entities(entities)


class RoombaSwitch(RoombaControlEntity, SwitchEntity):
    """Representation of a Roomba control switch."""

    entity_description: RoombaSwitchEntityDescription

    def __init__(
        self,
        coordinator: RoombaDataUpdateCoordinator,
        description: RoombaSwitchEntityDescription,
    ) -> None:
        super().__init__(coordinator, description.key)
        self.entity_description = description

    @property
    def is_on(self) -> bool | None:
        if self.snapshot is None:
            return None
        return self.entity_description.is_on_fn(self.snapshot)

    async def async_turn_on(self, **kwargs: Any) -> None:
        if self.is_on:
            return
        device = self.coordinator.device
        await self._async_run(lambda: self.entity_description.turn_on_fn(device))

    async def async_turn_off(self, **kwargs: Any) -> None:
        if not self.is_on:
            return
        device = self.coordinator.device
        await self._async_run(lambda: self.entity_description.turn_off_fn(device))


class RoombaRoomSwitch(RoombaControlEntity, SwitchEntity):
    """Cleans one configured room while on."""

    _attr_icon = "mdi:floor-plan"

    def __init__(
        self, coordinator: RoombaDataUpdateCoordinator, room: RoomDefinition
    ) -> None:
        super().__init__(coordinator, f"room_{slugify(room.name)}")
        self._room = room
        self._attr_name = room.name

    @property
    def is_on(self) -> bool | None:
        if self.snapshot is None:
            return None
        return self.snapshot.rooms.get(self._room.name, False)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        return {
            "pmap_id": self._room.map_id,
            "region_ids": list(self._room.region_ids),
        }

    async def _async_toggle(self) -> None:
        device = self.coordinator.device
        await self._async_run(lambda: device.async_clean_region(self._room))

    async def async_turn_on(self, **kwargs: Any) -> None:
        if not self.is_on:
            await self._async_toggle()

    async def async_turn_off(self, **kwargs: Any) -> None:
        if self.is_on:
            await self._async_toggle()
