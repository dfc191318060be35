"""Base entity for the Roomba Platform integration."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
import logging

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, MANUFACTURER
from .coordinator import RoombaDataUpdateCoordinator
from .roomba_core import CommandResult, ConfigurationError, DeviceSnapshot, Outcome

_LOGGER = logging.getLogger(__name__)


class RoombaEntity(CoordinatorEntity[RoombaDataUpdateCoordinator]):
    """An entity backed by one robot's snapshot."""

    _attr_has_entity_name = True

    def __init__(self, coordinator: RoombaDataUpdateCoordinator, key: str) -> None:
        super().__init__(coordinator)
        device = coordinator.device
        info = device.info
        self._attr_unique_id = f"{device.device_id}_{key}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, device.device_id)},
            name=info.name,
            manufacturer=MANUFACTURER,
            model=info.model,
            serial_number=info.serial,
        )

    @property
    def snapshot(self) -> DeviceSnapshot | None:
        return self.coordinator.data

    @property
    def available(self) -> bool:
        """Unavailable once polling stopped for this robot."""
        return super().available and self.snapshot is not None and self.snapshot.polling


class RoombaControlEntity(RoombaEntity):
    """An entity whose writes go through the command sequencer."""

    async def _async_run(
        self, operation: Callable[[], Awaitable[CommandResult]]
    ) -> CommandResult:
        """Run a device operation and reconcile the written value with its result."""
        try:
            result = await operation()
        except ConfigurationError as err:
            self.async_write_ha_state()
            raise HomeAssistantError(str(err)) from err

        if result.outcome is Outcome.FAILED:
            # The snapshot is unchanged, so this puts the old value back.
            self.async_write_ha_state()
            raise HomeAssistantError(
                f"{self.coordinator.device.name}: {result.intent.value} failed"
                f" ({result.reason or 'no response'})"
            )
        if result.outcome is Outcome.REFUSED:
            _LOGGER.warning(
                "%s: %s refused: %s",
                self.coordinator.device.name,
                result.intent.value,
                result.reason,
            )
            self.async_write_ha_state()
        elif result.outcome is Outcome.NOOP:
            self.async_write_ha_state()
        return result
