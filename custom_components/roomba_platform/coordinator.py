"""Data update coordinator for the Roomba Platform integration."""
from __future__ import annotations

from collections.abc import Callable
import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from .const import DOMAIN
from .roomba_core import DeviceSnapshot, RoombaDevice, RoombaError

_LOGGER = logging.getLogger(__name__)


class RoombaDataUpdateCoordinator(DataUpdateCoordinator[DeviceSnapshot]):
    """Push snapshots from the engine to the entities.

    The engine runs its own reconciliation poller, so this coordinator never
    polls; it only listens for snapshots.
    """

    def __init__(
        self, hass: HomeAssistant, device: RoombaDevice, entry: ConfigEntry
    ) -> None:
        super().__init__(
            hass,
            _LOGGER,
            name=f"{DOMAIN}_{device.device_id}",
            config_entry=entry,
        )
        self.device = device
        self._unsubscribe: Callable[[], None] | None = None

    async def async_start(self) -> None:
        """Subscribe to device snapshots and seed the current one."""
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = self.device.async_add_listener(self._handle_snapshot)
        self.async_set_updated_data(self.device.snapshot())

    async def async_stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @callback
    def _handle_snapshot(self, snapshot: DeviceSnapshot) -> None:
        _LOGGER.debug(
            "Snapshot for %s: %s, battery %s%%",
            snapshot.info.name,
            snapshot.status.phase.value,
            snapshot.battery_level,
        )
        self.async_set_updated_data(snapshot)

    async def _async_update_data(self) -> DeviceSnapshot:
        try:
            return self.device.snapshot()
        except RoombaError as err:
            raise UpdateFailed(str(err)) from err
