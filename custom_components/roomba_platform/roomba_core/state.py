"""Phase state machine.

Holds the canonical status of one robot together with the engine-local
context (resume context, requested target, mission region cache) and derives
every predicate the accessory layer exposes. Nothing in here performs I/O.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging

from .const import (
    DOCKED_PHASES,
    LOW_BATTERY_PCT,
    MOTION_PHASES,
    Command,
    Phase,
    TargetState,
)
from .models import (
    DeviceInfo,
    DeviceSnapshot,
    DeviceStatus,
    Region,
    ResumeContext,
    RoomDefinition,
)

_LOGGER = logging.getLogger(__name__)


# Pure predicates over a single status


def is_charging(status: DeviceStatus) -> bool:
    return status.phase is Phase.CHARGING


def is_docked(status: DeviceStatus) -> bool:
    """Dock contact state: True while the robot is away from its dock."""
    return status.phase not in DOCKED_PHASES


def is_in_motion(status: DeviceStatus) -> bool:
    return status.phase in MOTION_PHASES


def is_paused(status: DeviceStatus) -> bool:
    return status.phase is Phase.STUCK or (
        status.last_command is Command.PAUSE and status.phase is Phase.STOPPED
    )


def is_returning(status: DeviceStatus) -> bool:
    return status.phase is Phase.RETURNING


def is_running(status: DeviceStatus) -> bool:
    return status.phase is Phase.RUNNING


def is_stuck(status: DeviceStatus) -> bool:
    return status.phase is Phase.STUCK


def is_locating(status: DeviceStatus) -> bool:
    return status.last_command is Command.FIND


def is_low_battery(status: DeviceStatus) -> bool:
    return status.battery_percent <= LOW_BATTERY_PCT


def is_started(status: DeviceStatus, region: Region | None = None) -> bool:
    """Running a whole-home mission, i.e. no region is being cleaned."""
    return status.phase is Phase.RUNNING and region is None


def is_region_active(
    status: DeviceStatus, room: RoomDefinition, region: Region | None
) -> bool:
    """Return True if ``region`` (the effective region) is exactly ``room``.

    Fails closed when the phase is not RUNNING or no region is known.
    """
    if status.phase is not Phase.RUNNING or region is None:
        return False
    return room.region.matches(region)


def media_state(status: DeviceStatus) -> TargetState:
    if is_in_motion(status):
        return TargetState.PLAY
    if is_paused(status):
        return TargetState.PAUSE
    return TargetState.STOP


@dataclass(frozen=True)
class Prediction:
    """Status and resume context expected after a command succeeds."""

    status: DeviceStatus
    resume_context: ResumeContext | None = None


@dataclass
class EngineState:
    """Mutable per-device state. Only the PhaseStateMachine writes to it."""

    status: DeviceStatus
    target_intent: TargetState | None = None
    saved_resume_context: ResumeContext | None = None
    # mission id -> region, holding at most one mission
    mission_region_cache: dict[str, Region] = field(default_factory=dict)
    poll_failures: int = 0


class PhaseStateMachine:
    """Canonical status plus optimistic overrides for one robot."""

    def __init__(
        self,
        status: DeviceStatus,
        *,
        rooms: tuple[RoomDefinition, ...] = (),
        log_room_commands: bool = False,
        name: str = "",
    ) -> None:
        self._state = EngineState(status=status)
        self._rooms = rooms
        self._log_room_commands = log_room_commands
        self._name = name
        self._remember_region(status)

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def status(self) -> DeviceStatus:
        return self._state.status

    @property
    def rooms(self) -> tuple[RoomDefinition, ...]:
        return self._rooms

    @property
    def resume_context(self) -> ResumeContext | None:
        return self._state.saved_resume_context

    @property
    def poll_failures(self) -> int:
        return self._state.poll_failures

    # Derivations

    def effective_region(self) -> Region | None:
        """Live region, falling back to the region cached for the current mission."""
        status = self.status
        if status.phase is not Phase.RUNNING:
            return None
        if status.active_region is not None:
            return status.active_region
        if status.mission_id is None:
            return None
        return self._state.mission_region_cache.get(status.mission_id)

    def charging(self) -> bool:
        return is_charging(self.status)

    def docked(self) -> bool:
        return is_docked(self.status)

    def in_motion(self) -> bool:
        return is_in_motion(self.status)

    def paused(self) -> bool:
        return is_paused(self.status)

    def returning(self) -> bool:
        return is_returning(self.status)

    def running(self) -> bool:
        return is_running(self.status)

    def started(self) -> bool:
        return is_started(self.status, self.effective_region())

    def stuck(self) -> bool:
        return is_stuck(self.status)

    def locating(self) -> bool:
        return is_locating(self.status)

    def low_battery(self) -> bool:
        return is_low_battery(self.status)

    def region_active(self, room: RoomDefinition) -> bool:
        value = is_region_active(self.status, room, self.effective_region())
        _LOGGER.debug("%s room %s active: %s", self._name, room.name, value)
        return value

    def media_state(self) -> TargetState:
        return media_state(self.status)

    def target(self) -> TargetState:
        """Last requested target, or the derived media state if none is pending."""
        return self._state.target_intent or self.media_state()

    def snapshot(
        self,
        device_id: str,
        info: DeviceInfo,
        *,
        connected: bool,
        polling: bool,
    ) -> DeviceSnapshot:
        """Freeze every predicate into a snapshot for the accessory layer."""
        status = self.status
        region = self.effective_region()
        return DeviceSnapshot(
            device_id=device_id,
            info=info,
            status=status,
            connected=connected,
            polling=polling,
            charging=is_charging(status),
            docked=is_docked(status),
            in_motion=is_in_motion(status),
            paused=is_paused(status),
            returning=is_returning(status),
            running=is_running(status),
            started=is_started(status, region),
            stuck=is_stuck(status),
            locating=is_locating(status),
            low_battery=is_low_battery(status),
            media_state=media_state(status),
            target=self.target(),
            rooms={
                room.name: is_region_active(status, room, region)
                for room in self._rooms
            },
        )

    # Transitions

    def _remember_region(self, status: DeviceStatus) -> None:
        if (
            status.phase is Phase.RUNNING
            and status.mission_id is not None
            and status.active_region is not None
        ):
            cache = self._state.mission_region_cache
            cache.clear()
            cache[status.mission_id] = status.active_region

    def apply_poll(self, status: DeviceStatus) -> None:
        """Replace the status with an authoritative poll result."""
        state = self._state
        state.status = status
        state.poll_failures = 0
        state.target_intent = None
        if status.last_command is not Command.PAUSE:
            state.saved_resume_context = None
        self._remember_region(status)
        if self._log_room_commands and status.active_region is not None:
            _LOGGER.info(
                "Last room command data for %s - pmap_id: %s, region_ids: %s",
                self._name,
                status.active_region.map_id,
                list(status.active_region.region_ids),
            )

    def record_poll_failure(self) -> int:
        """Count a failed poll and return the consecutive failure count."""
        self._state.poll_failures += 1
        return self._state.poll_failures

    def predict(self, command: Command, room: RoomDefinition | None = None) -> Prediction:
        """Return the state expected once ``command`` has been accepted."""
        status = self.status
        context = self._state.saved_resume_context

        if command is Command.START:
            return Prediction(
                replace(
                    status,
                    phase=Phase.RUNNING,
                    last_command=Command.START,
                    active_region=None,
                    mission_id=None,
                )
            )
        if command is Command.RESUME:
            if context is not None and context.returning:
                phase, region = Phase.RETURNING, None
            else:
                phase = Phase.RUNNING
                region = context.region if context is not None else None
            return Prediction(
                replace(
                    status,
                    phase=phase,
                    last_command=Command.RESUME,
                    active_region=region,
                )
            )
        if command is Command.PAUSE:
            if status.phase is Phase.RETURNING:
                context = ResumeContext.was_returning()
            elif status.phase is Phase.RUNNING:
                region = self.effective_region()
                context = ResumeContext.was_cleaning(region) if region else None
            return Prediction(
                replace(
                    status,
                    phase=Phase.STOPPED,
                    last_command=Command.PAUSE,
                    active_region=None,
                ),
                context,
            )
        if command is Command.STOP:
            return Prediction(
                replace(
                    status,
                    phase=Phase.STOPPED,
                    last_command=Command.STOP,
                    active_region=None,
                )
            )
        if command is Command.DOCK:
            return Prediction(
                replace(
                    status,
                    phase=Phase.RETURNING,
                    last_command=Command.DOCK,
                    active_region=None,
                )
            )
        if command is Command.FIND:
            return Prediction(replace(status, last_command=Command.FIND), context)
        if command is Command.CLEAN_REGION:
            if room is None:
                raise ValueError("A room is required to predict a clean-region command")
            return Prediction(
                replace(
                    status,
                    phase=Phase.RUNNING,
                    last_command=Command.START,
                    active_region=room.region,
                    mission_id=None,
                )
            )
        raise ValueError(f"No prediction for command {command}")

    def predict_find_cancel(self) -> Prediction:
        """State after a second FIND switched the locate sound off."""
        return Prediction(
            replace(self.status, last_command=None),
            self._state.saved_resume_context,
        )

    def apply_prediction(
        self, prediction: Prediction, target: TargetState | None = None
    ) -> None:
        """Apply an optimistic update. The next poll always supersedes it."""
        state = self._state
        state.status = prediction.status
        state.saved_resume_context = prediction.resume_context
        state.target_intent = target
