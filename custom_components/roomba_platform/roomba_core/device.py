"""One managed robot: session, state machine and command sequencer."""
from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging

from .config import DeviceConfig
from .const import (
    COOLDOWN_DELAY,
    DEFAULT_TIMEOUT,
    FIELDS_INIT,
    FIELDS_STATUS,
    TargetState,
)
from .errors import (
    ConfigurationError,
    MalformedTelemetryError,
    RoombaConnectionError,
    RoombaError,
)
from .models import CommandResult, DeviceInfo, DeviceSnapshot, RoomDefinition
from .sequencer import CommandSequencer
from .session import RoombaSession
from .state import PhaseStateMachine
from .telemetry import normalize, parse_device_info

_LOGGER = logging.getLogger(__name__)

SnapshotListener = Callable[[DeviceSnapshot], None]


class RoombaDevice:
    """Engine for one robot.

    Every state mutation (poll apply, command send with its optimistic
    update, delayed secondary command) runs under ``self.lock``. Listeners
    receive a fresh ``DeviceSnapshot`` after each change.
    """

    def __init__(
        self,
        config: DeviceConfig,
        *,
        session: RoombaSession | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        cooldown: float = COOLDOWN_DELAY,
    ) -> None:
        self.config = config
        self.session = session or RoombaSession(config.identity, timeout=timeout)
        self.lock = asyncio.Lock()
        self.polling = False
        self._cooldown = cooldown
        self._info: DeviceInfo | None = None
        self._machine: PhaseStateMachine | None = None
        self._sequencer: CommandSequencer | None = None
        self._listeners: list[SnapshotListener] = []

    @property
    def device_id(self) -> str:
        """Stable identifier, usable as a persistence key."""
        return self.config.device_id

    @property
    def name(self) -> str:
        if self._info is not None:
            return self._info.name
        return self.config.name or self.device_id

    @property
    def info(self) -> DeviceInfo:
        if self._info is None:
            return DeviceInfo(name=self.name)
        return self._info

    @property
    def initialized(self) -> bool:
        return self._machine is not None

    @property
    def machine(self) -> PhaseStateMachine:
        if self._machine is None:
            raise RoombaError(f"Robot {self.device_id} is not initialized")
        return self._machine

    @property
    def rooms(self) -> tuple[RoomDefinition, ...]:
        return self.config.rooms

    @property
    def poll_failures(self) -> int:
        return self._machine.poll_failures if self._machine is not None else 0

    @property
    def has_pending_command(self) -> bool:
        return self._sequencer is not None and self._sequencer.has_pending_followup

    def is_connected(self) -> bool:
        return self.session.is_connected()

    async def async_init(self) -> DeviceInfo:
        """Connect and load the initial state.

        Raises RoombaConnectionError if the robot cannot be reached or sends
        nothing, MalformedTelemetryError if its first payload is unusable.
        """
        await self.session.async_connect()
        raw = await self.session.async_fetch_status(FIELDS_INIT)
        if raw is None:
            await self.session.async_disconnect()
            raise RoombaConnectionError(
                f"No initial state received from robot {self.device_id}"
                f" ({self.session.last_error})"
            )
        try:
            status = normalize(raw)
        except MalformedTelemetryError:
            await self.session.async_disconnect()
            raise

        self._info = parse_device_info(raw, self.device_id, self.config.name)
        self._machine = PhaseStateMachine(
            status,
            rooms=self.config.rooms,
            log_room_commands=self.config.log_room_commands,
            name=self._info.name,
        )
        self._sequencer = CommandSequencer(
            self.session,
            self._machine,
            self.lock,
            cooldown=self._cooldown,
            on_change=self._notify,
        )
        self.polling = True
        _LOGGER.info(
            "Initialized %s (model %s, serial %s): %s, battery %s%%",
            self._info.name,
            self._info.model,
            self._info.serial,
            status.phase.value,
            status.battery_percent,
        )
        self._notify()
        return self._info

    async def async_sync(self) -> bool:
        """Poll the robot once and reconcile the local state with it.

        Returns False on a soft failure (no data, timeout, malformed payload);
        the consecutive failure count is then available as ``poll_failures``.
        """
        machine = self.machine
        async with self.lock:
            raw = await self.session.async_fetch_status(FIELDS_STATUS)
            if raw is None:
                failures = machine.record_poll_failure()
                _LOGGER.debug(
                    "Poll of %s failed (%s), %d in a row",
                    self.name,
                    self.session.last_error,
                    failures,
                )
                return False
            try:
                status = normalize(raw)
            except MalformedTelemetryError as err:
                failures = machine.record_poll_failure()
                _LOGGER.warning(
                    "Malformed state from %s (%d in a row): %s", self.name, failures, err
                )
                return False
            _LOGGER.debug("Polled %s: %s", self.name, raw)
            machine.apply_poll(status)
        self._notify()
        return True

    def record_poll_failure(self) -> int:
        """Count a poll that ended in an unexpected error."""
        return self.machine.record_poll_failure()

    def set_polling(self, polling: bool) -> None:
        if self.polling != polling:
            self.polling = polling
            self._notify()

    # Control operations

    def _sequencer_or_raise(self) -> CommandSequencer:
        if self._sequencer is None:
            raise RoombaError(f"Robot {self.device_id} is not initialized")
        return self._sequencer

    async def async_toggle_run(self) -> CommandResult:
        return await self._sequencer_or_raise().async_toggle_run()

    async def async_return_to_dock(self) -> CommandResult:
        return await self._sequencer_or_raise().async_return_to_dock()

    async def async_locate(self) -> CommandResult:
        return await self._sequencer_or_raise().async_locate()

    async def async_clean_region(self, room: RoomDefinition | str) -> CommandResult:
        """Toggle cleaning of a room, given its definition or configured name."""
        if isinstance(room, str):
            room = self.get_room(room)
        return await self._sequencer_or_raise().async_clean_region(room)

    async def async_set_target(self, target: TargetState | str) -> CommandResult:
        return await self._sequencer_or_raise().async_set_target(target)

    def get_room(self, name: str) -> RoomDefinition:
        for room in self.config.rooms:
            if room.name == name:
                return room
        raise ConfigurationError(f"Robot {self.name} has no room named {name}")

    # Observation

    def snapshot(self) -> DeviceSnapshot:
        return self.machine.snapshot(
            self.device_id,
            self.info,
            connected=self.is_connected(),
            polling=self.polling,
        )

    def async_add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a snapshot listener and return a callable that removes it."""
        self._listeners.append(listener)

        def remove_listener() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove_listener

    def _notify(self) -> None:
        if self._machine is None or not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # pylint: disable=broad-except
                _LOGGER.exception("Error in snapshot listener for %s", self.name)

    async def async_shutdown(self) -> None:
        """Cancel any pending secondary command and disconnect."""
        self.polling = False
        if self._sequencer is not None:
            await self._sequencer.async_cancel_pending()
        await self.session.async_disconnect()
