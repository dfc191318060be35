"""Sensor platform for Roomba Platform integration."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import PERCENTAGE, EntityCategory
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import CONF_HIDE_BATTERY, DATA_COORDINATOR, DOMAIN
from .coordinator import RoombaDataUpdateCoordinator
from .entity import RoombaEntity
from .roomba_core import DeviceSnapshot


@dataclass(frozen=True, kw_only=True)
class RoombaSensorEntityDescription(SensorEntityDescription):
    """Describes Roomba sensor entity."""

    value_fn: Callable[[DeviceSnapshot], int | str | None]
    visibility_key: str | None = None


SENSOR_DESCRIPTIONS: tuple[RoombaSensorEntityDescription, ...] = (
    RoombaSensorEntityDescription(
        key="battery",
        name="Battery",
        native_unit_of_measurement=PERCENTAGE,
        device_class=SensorDeviceClass.BATTERY,
        state_class=SensorStateClass.MEASUREMENT,
        value_fn=lambda snapshot: snapshot.battery_level,
        visibility_key=CONF_HIDE_BATTERY,
    ),
    RoombaSensorEntityDescription(
        key="phase",
        name="Phase",
        icon="mdi:robot-vacuum",
        entity_category=EntityCategory.DIAGNOSTIC,
        value_fn=lambda snapshot: snapshot.status.phase.value,
    ),
)


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Roomba sensors based on a config entry."""
    coordinator: RoombaDataUpdateCoordinator = hass.data[DOMAIN][entry.entry_id][
        DATA_COORDINATOR
    ]
    config = coordinator.device.config

    async_add_entities(
        RoombaSensor(coordinator, description)
        for description in SENSOR_DESCRIPTIONS
        if description.visibility_key is None
        or config.is_visible(description.visibility_key)
    )


class RoombaSensor(RoombaEntity, SensorEntity):
    """Representation of a Roomba sensor."""

    entity_description: RoombaSensorEntityDescription

    def __init__(
        self,
        coordinator: RoombaDataUpdateCoordinator,
        description: RoombaSensorEntityDescription,
    ) -> None:
        super().__init__(coordinator, description.key)
        self.entity_description = description

    @property
    def native_value(self) -> int | str | None:
        if self.snapshot is None:
            return None
        return self.entity_description.value_fn(self.snapshot)
