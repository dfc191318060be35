"""Command sequencer.

Turns control intents into robot commands. Each operation is planned from
the current state by a pure function, then executed the same way: send the
primary command, apply the predicted state only if the send succeeded, and
schedule the secondary command when the firmware needs a cool-down between
the two.
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
import contextlib
from dataclasses import dataclass
import logging
from typing import Any

from .const import (
    COOLDOWN_DELAY,
    DOCKED_PHASES,
    Command,
    Intent,
    Outcome,
    Phase,
    TargetState,
)
from .errors import InvalidCommandError
from .models import CommandResult, RoomDefinition
from .session import RoombaSession
from .state import PhaseStateMachine, Prediction, is_paused

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandPlan:
    """What an intent resolves to in the current state."""

    intent: Intent
    outcome: Outcome
    command: Command | None = None
    args: Mapping[str, Any] | None = None
    prediction: Prediction | None = None
    target: TargetState | None = None
    followup: Command | None = None
    reason: str | None = None


def _send(
    intent: Intent,
    machine: PhaseStateMachine,
    command: Command,
    *,
    room: RoomDefinition | None = None,
    followup: Command | None = None,
    target: TargetState | None = None,
) -> CommandPlan:
    return CommandPlan(
        intent=intent,
        outcome=Outcome.SENT,
        command=command,
        args=room.command_args() if command is Command.CLEAN_REGION and room else None,
        prediction=machine.predict(command, room),
        target=target,
        followup=followup,
    )


def _refuse(intent: Intent, reason: str) -> CommandPlan:
    return CommandPlan(intent=intent, outcome=Outcome.REFUSED, reason=reason)


def _noop(intent: Intent, reason: str) -> CommandPlan:
    return CommandPlan(intent=intent, outcome=Outcome.NOOP, reason=reason)


def toggle_command(machine: PhaseStateMachine) -> Command | None:
    """Return the command that inverts motion, or None while evacuating."""
    status = machine.status
    if status.phase is Phase.EVACUATING:
        return None
    if status.phase is Phase.CHARGING:
        return Command.START
    if status.phase in (Phase.RETURNING, Phase.RUNNING):
        return Command.PAUSE
    # STOPPED or STUCK
    return Command.RESUME if is_paused(status) else Command.START


def plan_toggle_run(machine: PhaseStateMachine) -> CommandPlan:
    command = toggle_command(machine)
    if command is None:
        return _refuse(
            Intent.TOGGLE_RUN,
            f"Cannot send command while current phase is {Phase.EVACUATING.value}",
        )
    return _send(Intent.TOGGLE_RUN, machine, command)


def plan_return_to_dock(machine: PhaseStateMachine) -> CommandPlan:
    phase = machine.status.phase
    if phase in DOCKED_PHASES:
        return _noop(Intent.RETURN_TO_DOCK, "already docked")
    if phase is Phase.RETURNING:
        return _noop(Intent.RETURN_TO_DOCK, "already returning")
    if phase is Phase.STOPPED:
        return _send(Intent.RETURN_TO_DOCK, machine, Command.DOCK)
    # Must be stopped before it accepts a dock command.
    return _send(Intent.RETURN_TO_DOCK, machine, Command.PAUSE, followup=Command.DOCK)


def plan_locate(machine: PhaseStateMachine) -> CommandPlan:
    status = machine.status
    if status.phase is Phase.EVACUATING:
        return _refuse(
            Intent.LOCATE,
            f"Cannot send command while current phase is {Phase.EVACUATING.value}",
        )
    if status.last_command is Command.FIND:
        # A second find switches the sound off; the pause afterwards moves
        # lastCommand off FIND so the next request starts locating again.
        return CommandPlan(
            intent=Intent.LOCATE,
            outcome=Outcome.SENT,
            command=Command.FIND,
            prediction=machine.predict_find_cancel(),
            followup=Command.PAUSE,
        )
    if machine.in_motion():
        return _send(Intent.LOCATE, machine, Command.PAUSE, followup=Command.FIND)
    return _send(Intent.LOCATE, machine, Command.FIND)


def plan_clean_region(machine: PhaseStateMachine, room: RoomDefinition) -> CommandPlan:
    """Plan the room switch toggle. Raises ConfigurationError for a bad room."""
    room.validate()
    if machine.region_active(room):
        return _send(Intent.CLEAN_REGION, machine, Command.PAUSE)
    return _send(Intent.CLEAN_REGION, machine, Command.CLEAN_REGION, room=room)


def plan_target(machine: PhaseStateMachine, target: TargetState | str) -> CommandPlan:
    try:
        target = TargetState(target)
    except ValueError as err:
        raise InvalidCommandError(f"Invalid target state: {target}") from err
    if target is TargetState.PLAY:
        command = (
            Command.RESUME
            if machine.status.last_command is Command.PAUSE
            else Command.START
        )
    elif target is TargetState.PAUSE:
        if machine.status.phase in DOCKED_PHASES:
            return _noop(Intent.SET_TARGET, "already docked")
        command = Command.PAUSE
    else:
        command = Command.STOP
    return _send(Intent.SET_TARGET, machine, command, target=target)


class CommandSequencer:
    """Executes command plans for one robot.

    All methods take the device lock, so commands never overlap with a poll
    or with each other. A pending secondary command is cancelled by any
    command sent after it.
    """

    def __init__(
        self,
        session: RoombaSession,
        machine: PhaseStateMachine,
        lock: asyncio.Lock,
        *,
        cooldown: float = COOLDOWN_DELAY,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._session = session
        self._machine = machine
        self._lock = lock
        self._cooldown = cooldown
        self._on_change = on_change
        self._followup_task: asyncio.Task[None] | None = None

    @property
    def has_pending_followup(self) -> bool:
        return self._followup_task is not None and not self._followup_task.done()

    async def async_toggle_run(self) -> CommandResult:
        async with self._lock:
            return await self._execute(plan_toggle_run(self._machine))

    async def async_return_to_dock(self) -> CommandResult:
        async with self._lock:
            return await self._execute(plan_return_to_dock(self._machine))

    async def async_locate(self) -> CommandResult:
        async with self._lock:
            return await self._execute(plan_locate(self._machine))

    async def async_clean_region(self, room: RoomDefinition) -> CommandResult:
        async with self._lock:
            return await self._execute(plan_clean_region(self._machine, room))

    async def async_set_target(self, target: TargetState | str) -> CommandResult:
        async with self._lock:
            return await self._execute(plan_target(self._machine, target))

    async def _execute(self, plan: CommandPlan) -> CommandResult:
        if plan.outcome is Outcome.REFUSED:
            _LOGGER.warning("%s refused: %s", plan.intent.value, plan.reason)
            return CommandResult(plan.intent, Outcome.REFUSED, reason=plan.reason)
        if plan.outcome is Outcome.NOOP:
            _LOGGER.info("%s ignored: %s", plan.intent.value, plan.reason)
            return CommandResult(plan.intent, Outcome.NOOP, reason=plan.reason)

        if plan.command is None or plan.prediction is None:
            raise InvalidCommandError(
                f"{plan.intent.value} plan has no command to send"
            )
        self._cancel_followup()
        if not await self._session.async_send_command(plan.command, plan.args):
            return CommandResult(
                plan.intent,
                Outcome.FAILED,
                command=plan.command,
                reason=self._session.last_error,
            )

        self._machine.apply_prediction(plan.prediction, plan.target)
        if plan.followup is not None:
            self._followup_task = asyncio.create_task(
                self._async_send_followup(plan.followup)
            )
        if self._on_change is not None:
            self._on_change()
        return CommandResult(
            plan.intent,
            Outcome.SENT,
            command=plan.command,
            predicted_status=plan.prediction.status,
        )

    async def _async_send_followup(self, command: Command) -> None:
        """Send the secondary command after the cool-down.

        Its result is not applied locally; the next poll reports it.
        """
        await asyncio.sleep(self._cooldown)
        async with self._lock:
            sent = await self._session.async_send_command(command)
        if sent:
            _LOGGER.debug("Delayed %s command sent to %s", command.value, self._session.blid)
        else:
            _LOGGER.warning(
                "Delayed %s command to %s failed", command.value, self._session.blid
            )

    def _cancel_followup(self) -> None:
        task, self._followup_task = self._followup_task, None
        if task is not None and not task.done():
            _LOGGER.debug("Cancelling pending secondary command for %s", self._session.blid)
            task.cancel()

    async def async_cancel_pending(self) -> None:
        """Cancel and wait for a pending secondary command."""
        task, self._followup_task = self._followup_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
