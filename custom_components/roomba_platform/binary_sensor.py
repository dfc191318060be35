"""Binary sensor platform for Roomba Platform integration."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from homeassistant.components.binary_sensor import (
    BinarySensorDeviceClass,
    BinarySensorEntity,
    BinarySensorEntityDescription,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    CONF_HIDE_BATTERY,
    CONF_HIDE_BIN,
    CONF_HIDE_DOCK,
    CONF_HIDE_MOTION,
    DATA_COORDINATOR,
    DOMAIN,
)
from .coordinator import RoombaDataUpdateCoordinator
from .entity import RoombaEntity
from .roomba_core import DeviceSnapshot


@dataclass(frozen=True, kw_only=True)
class RoombaBinarySensorEntityDescription(BinarySensorEntityDescription):
    """Describes Roomba binary sensor entity."""

    value_fn: Callable[[DeviceSnapshot], bool]
    visibility_key: str | None = None


BINARY_SENSOR_DESCRIPTIONS: tuple[RoombaBinarySensorEntityDescription, ...] = (
    RoombaBinarySensorEntityDescription(
        key="charging",
        name="Charging",
        device_class=BinarySensorDeviceClass.BATTERY_CHARGING,
        value_fn=lambda snapshot: snapshot.charging,
        visibility_key=CONF_HIDE_BATTERY,
    ),
    RoombaBinarySensorEntityDescription(
        key="low_battery",
        name="Low battery",
        device_class=BinarySensorDeviceClass.BATTERY,
        value_fn=lambda snapshot: snapshot.low_battery,
        visibility_key=CONF_HIDE_BATTERY,
    ),
    # Contact sensor semantics: on means away from the dock.
    RoombaBinarySensorEntityDescription(
        key="dock",
        name="Dock",
        icon="mdi:home-import-outline",
        device_class=BinarySensorDeviceClass.OPENING,
        value_fn=lambda snapshot: snapshot.docked,
        visibility_key=CONF_HIDE_DOCK,
    ),
    RoombaBinarySensorEntityDescription(
        key="motion",
        name="Motion",
        device_class=BinarySensorDeviceClass.MOTION,
        value_fn=lambda snapshot: snapshot.in_motion,
        visibility_key=CONF_HIDE_MOTION,
    ),
    RoombaBinarySensorEntityDescription(
        key="stuck",
        name="Stuck",
        device_class=BinarySensorDeviceClass.PROBLEM,
        value_fn=lambda snapshot: snapshot.stuck,
        visibility_key=CONF_HIDE_MOTION,
    ),
    RoombaBinarySensorEntityDescription(
        key="bin_full",
        name="Bin full",
        icon="mdi:delete-alert",
        device_class=BinarySensorDeviceClass.PROBLEM,
        value_fn=lambda snapshot: snapshot.bin_full,
        visibility_key=CONF_HIDE_BIN,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Roomba binary sensors based on a config entry."""
    coordinator: RoombaDataUpdateCoordinator = hass.data[DOMAIN][entry.entry_id][
        DATA_COORDINATOR
    ]
    config = coordinator.device.config

    async_add_entities(
        RoombaBinarySensor(coordinator, description)
        for description in BINARY_SENSOR_DESCRIPTIONS
        if description.visibility_key is None
        or config.is_visible(description.visibility_key)
    )


class RoombaBinarySensor(RoombaEntity, BinarySensorEntity):
    """Representation of a Roomba binary sensor."""

    entity_description: RoombaBinarySensorEntityDescription

    def __init__(
        self,
        coordinator: RoombaDataUpdateCoordinator,
        description: RoombaBinarySensorEntityDescription,
    ) -> None:
        super().__init__(coordinator, description.key)
        self.entity_description = description

    @property
    def is_on(self) -> bool | None:
        if self.snapshot is None:
            return None
        return self.entity_description.value_fn(self.snapshot)
