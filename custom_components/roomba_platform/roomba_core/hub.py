"""Hub managing every configured robot."""
from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any

from .config import DeviceConfig, parse_device_config, parse_platform_config
from .const import (
    COOLDOWN_DELAY,
    DEFAULT_ERROR_BUDGET,
    DEFAULT_POLLING_INTERVAL,
    DEFAULT_TIMEOUT,
)
from .device import RoombaDevice
from .errors import ConfigurationError, MalformedTelemetryError, RoombaConnectionError
from .poller import ReconciliationPoller

_LOGGER = logging.getLogger(__name__)


class RoombaHub:
    """Builds robots from configuration and owns the reconciliation poller."""

    def __init__(
        self,
        *,
        polling_interval: float = DEFAULT_POLLING_INTERVAL,
        error_budget: int = DEFAULT_ERROR_BUDGET,
        timeout: float = DEFAULT_TIMEOUT,
        cooldown: float = COOLDOWN_DELAY,
        device_factory: Callable[[DeviceConfig], RoombaDevice] | None = None,
    ) -> None:
        self.polling_interval = polling_interval
        self._error_budget = error_budget
        self._timeout = timeout
        self._cooldown = cooldown
        self._device_factory = device_factory or self._default_device_factory
        self._devices: dict[str, RoombaDevice] = {}
        self._poller: ReconciliationPoller | None = None

    def _default_device_factory(self, config: DeviceConfig) -> RoombaDevice:
        return RoombaDevice(config, timeout=self._timeout, cooldown=self._cooldown)

    @property
    def devices(self) -> list[RoombaDevice]:
        return list(self._devices.values())

    @property
    def poller(self) -> ReconciliationPoller | None:
        return self._poller

    def get_device(self, device_id: str) -> RoombaDevice | None:
        return self._devices.get(device_id)

    async def async_setup(self, raw_config: Mapping[str, Any]) -> list[RoombaDevice]:
        """Set up every device in a platform configuration, then start polling.

        A device with bad configuration or that cannot be reached is logged
        and skipped; the others are still set up. Raises ConfigurationError
        only when the platform configuration itself is invalid.
        """
        platform = parse_platform_config(dict(raw_config))
        self.polling_interval = platform.polling_interval
        for raw_device in platform.devices:
            try:
                config = parse_device_config(raw_device)
            except ConfigurationError as err:
                _LOGGER.error("%s", err)
                continue
            try:
                await self.async_add_device(config)
            except ConfigurationError as err:
                _LOGGER.error("%s", err)
            except (RoombaConnectionError, MalformedTelemetryError) as err:
                _LOGGER.error("Failed to set up robot %s: %s", config.device_id, err)
        self.start_polling()
        return self.devices

    async def async_add_device(self, config: DeviceConfig) -> RoombaDevice:
        """Create and initialize one robot.

        Raises ConfigurationError for a duplicate blid, RoombaConnectionError or
        MalformedTelemetryError if the initial sync fails.
        """
        if config.device_id in self._devices:
            raise ConfigurationError(f"Robot {config.device_id} is configured twice")
        if self._poller is not None:
            raise ConfigurationError("Cannot add robots once polling has started")
        device = self._device_factory(config)
        await device.async_init()
        self._devices[device.device_id] = device
        return device

    def start_polling(self) -> ReconciliationPoller:
        if self._poller is None:
            self._poller = ReconciliationPoller(
                self._devices.values(),
                interval=self.polling_interval,
                error_budget=self._error_budget,
            )
            self._poller.start()
        return self._poller

    async def async_stop(self) -> None:
        """Stop polling, cancel pending commands and disconnect every robot."""
        if self._poller is not None:
            await self._poller.async_stop()
        for device in self._devices.values():
            await device.async_shutdown()
