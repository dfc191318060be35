"""Reconciliation poller."""
from __future__ import annotations

import asyncio
from collections.abc import Iterable
import contextlib
import logging

from .const import DEFAULT_ERROR_BUDGET, DEFAULT_POLLING_INTERVAL, PollerState
from .device import RoombaDevice

_LOGGER = logging.getLogger(__name__)


class ReconciliationPoller:
    """Periodically replaces each robot's local state with a fresh poll.

    Failures are counted per robot. A robot that reaches the error budget is
    no longer polled; once no robot is left the poller stops for good.
    """

    def __init__(
        self,
        devices: Iterable[RoombaDevice],
        *,
        interval: float = DEFAULT_POLLING_INTERVAL,
        error_budget: int = DEFAULT_ERROR_BUDGET,
    ) -> None:
        self._devices = list(devices)
        self._interval = interval or DEFAULT_POLLING_INTERVAL
        self._error_budget = error_budget
        self._halted: set[str] = set()
        self._state = PollerState.IDLE
        self._task: asyncio.Task[None] | None = None

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def active_devices(self) -> list[RoombaDevice]:
        return [
            device for device in self._devices if device.device_id not in self._halted
        ]

    def is_halted(self, device_id: str) -> bool:
        return device_id in self._halted

    def start(self) -> None:
        """Schedule ticks. Call once every robot has finished its initial sync."""
        if self._state is not PollerState.IDLE:
            return
        if not self._devices:
            _LOGGER.warning("No robots to poll")
            self._state = PollerState.STOPPED
            return
        self._state = PollerState.RUNNING
        _LOGGER.debug(
            "Polling %d robots every %s seconds", len(self._devices), self._interval
        )
        self._task = asyncio.create_task(self._async_run())

    async def _async_run(self) -> None:
        while self._state is PollerState.RUNNING:
            await asyncio.sleep(self._interval)
            if self._state is not PollerState.RUNNING:
                break
            try:
                await self.async_tick()
            except Exception:
                _LOGGER.exception("Unexpected error during poll")

    async def async_tick(self) -> None:
        """Poll every active robot once."""
        devices = self.active_devices
        results = await asyncio.gather(
            *(device.async_sync() for device in devices), return_exceptions=True
        )
        for device, result in zip(devices, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failures = device.record_poll_failure()
                _LOGGER.error(
                    "Unexpected error polling %s (%d in a row)",
                    device.name,
                    failures,
                    exc_info=result,
                )
            elif result:
                continue
            if device.poll_failures < self._error_budget:
                continue
            _LOGGER.critical(
                "%s failed %d polls in a row, polling stopped until restart",
                device.name,
                device.poll_failures,
            )
            self._halted.add(device.device_id)
            device.set_polling(False)

        if not self.active_devices:
            _LOGGER.critical("Every robot exceeded its error budget, poller stopped")
            self._state = PollerState.STOPPED

    async def async_stop(self) -> None:
        self._state = PollerState.STOPPED
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
