import asyncio

import pytest

from conftest import FakeSession
from roomba_core.const import Command, Intent, Outcome, Phase, TargetState
from roomba_core.errors import ConfigurationError, InvalidCommandError
from roomba_core.models import DeviceStatus, RoomDefinition
from roomba_core.sequencer import CommandPlan, CommandSequencer
from roomba_core.state import PhaseStateMachine

COOLDOWN = 0.02
KITCHEN = RoomDefinition("Kitchen", "map1", ("11", "12"))


def build(phase, *, last_command=None, region=None, mission=None):
    machine = PhaseStateMachine(
        DeviceStatus(
            phase=phase,
            battery_percent=80,
            bin_full=False,
            last_command=last_command,
            active_region=region,
            mission_id=mission,
        ),
        rooms=(KITCHEN,),
    )
    session = FakeSession()
    session.connected = True
    changes = []
    sequencer = CommandSequencer(
        session,
        machine,
        asyncio.Lock(),
        cooldown=COOLDOWN,
        on_change=lambda: changes.append(machine.status),
    )
    return sequencer, machine, session, changes


async def wait_for_followup(sequencer):
    for _ in range(50):
        if not sequencer.has_pending_followup:
            return
        await asyncio.sleep(COOLDOWN)


@pytest.mark.asyncio
async def test_toggle_from_charging_starts():
    sequencer, machine, session, changes = build(Phase.CHARGING, last_command=Command.DOCK)

    result = await sequencer.async_toggle_run()

    assert result.outcome is Outcome.SENT
    assert result.command is Command.START
    assert result.predicted_status.phase is Phase.RUNNING
    assert machine.status.phase is Phase.RUNNING
    assert session.commands == [Command.START]
    assert len(changes) == 1


@pytest.mark.asyncio
async def test_toggle_resumes_when_paused():
    sequencer, machine, session, _ = build(Phase.STOPPED, last_command=Command.PAUSE)

    result = await sequencer.async_toggle_run()

    assert result.command is Command.RESUME


@pytest.mark.asyncio
async def test_toggle_refused_while_evacuating():
    sequencer, machine, session, changes = build(Phase.EVACUATING)

    result = await sequencer.async_toggle_run()

    assert result.outcome is Outcome.REFUSED
    assert result.refused
    assert not result.accepted
    assert session.sent == []
    assert changes == []


@pytest.mark.asyncio
async def test_failed_send_leaves_state_untouched():
    sequencer, machine, session, changes = build(Phase.RUNNING, last_command=Command.START)
    session.failing.add(Command.PAUSE)
    before = machine.status

    result = await sequencer.async_toggle_run()

    assert result.outcome is Outcome.FAILED
    assert result.reason == "timeout"
    assert machine.status is before
    assert machine.resume_context is None
    assert changes == []


@pytest.mark.asyncio
async def test_return_to_dock_while_running():
    sequencer, machine, session, _ = build(Phase.RUNNING, last_command=Command.START)

    result = await sequencer.async_return_to_dock()

    assert result.outcome is Outcome.SENT
    assert result.command is Command.PAUSE
    assert machine.status.phase is Phase.STOPPED
    assert session.commands == [Command.PAUSE]
    assert sequencer.has_pending_followup

    await wait_for_followup(sequencer)

    assert session.commands == [Command.PAUSE, Command.DOCK]
    # The delayed command is only confirmed by the next poll.
    assert machine.status.phase is Phase.STOPPED


@pytest.mark.asyncio
async def test_return_to_dock_from_stopped_docks_directly():
    sequencer, machine, session, _ = build(Phase.STOPPED, last_command=Command.STOP)

    result = await sequencer.async_return_to_dock()

    assert result.command is Command.DOCK
    assert machine.status.phase is Phase.RETURNING
    assert not sequencer.has_pending_followup


@pytest.mark.asyncio
@pytest.mark.parametrize("phase", [Phase.CHARGING, Phase.EVACUATING, Phase.RETURNING])
async def test_return_to_dock_noop(phase):
    sequencer, machine, session, _ = build(phase)

    result = await sequencer.async_return_to_dock()

    assert result.outcome is Outcome.NOOP
    assert result.accepted
    assert session.sent == []


@pytest.mark.asyncio
async def test_failed_pause_does_not_schedule_dock():
    sequencer, machine, session, _ = build(Phase.RUNNING, last_command=Command.START)
    session.failing.add(Command.PAUSE)

    result = await sequencer.async_return_to_dock()

    assert result.outcome is Outcome.FAILED
    assert not sequencer.has_pending_followup
    assert machine.status.phase is Phase.RUNNING


@pytest.mark.asyncio
async def test_superseding_command_cancels_pending_dock():
    sequencer, machine, session, _ = build(Phase.RUNNING, last_command=Command.START)
    await sequencer.async_return_to_dock()

    await sequencer.async_toggle_run()
    await asyncio.sleep(COOLDOWN * 3)

    assert session.commands == [Command.PAUSE, Command.RESUME]
    assert Command.DOCK not in session.commands


@pytest.mark.asyncio
async def test_locate_when_idle():
    sequencer, machine, session, _ = build(Phase.CHARGING, last_command=Command.DOCK)

    result = await sequencer.async_locate()

    assert result.command is Command.FIND
    assert machine.locating()


@pytest.mark.asyncio
async def test_locate_while_moving_pauses_first():
    sequencer, machine, session, _ = build(Phase.RUNNING, last_command=Command.START)

    result = await sequencer.async_locate()
    await wait_for_followup(sequencer)

    assert result.command is Command.PAUSE
    assert session.commands == [Command.PAUSE, Command.FIND]


@pytest.mark.asyncio
async def test_second_locate_cancels_and_neutralizes():
    sequencer, machine, session, _ = build(Phase.STOPPED, last_command=Command.FIND)

    result = await sequencer.async_locate()

    assert result.command is Command.FIND
    assert not machine.locating()

    await wait_for_followup(sequencer)

    assert session.commands == [Command.FIND, Command.PAUSE]


@pytest.mark.asyncio
async def test_locate_refused_while_evacuating():
    sequencer, machine, session, _ = build(Phase.EVACUATING)

    result = await sequencer.async_locate()

    assert result.outcome is Outcome.REFUSED
    assert result.intent is Intent.LOCATE
    assert session.sent == []


@pytest.mark.asyncio
async def test_clean_region_sends_room_command():
    sequencer, machine, session, _ = build(Phase.CHARGING, mission="4")

    result = await sequencer.async_clean_region(KITCHEN)

    assert result.command is Command.CLEAN_REGION
    assert session.sent == [
        (
            Command.CLEAN_REGION,
            {
                "pmap_id": "map1",
                "regions": [
                    {"region_id": "11", "type": "rid"},
                    {"region_id": "12", "type": "rid"},
                ],
                "ordered": 1,
            },
        )
    ]
    assert machine.region_active(KITCHEN)
    assert machine.status.mission_id is None
    assert machine.resume_context is None


@pytest.mark.asyncio
async def test_clean_region_when_active_pauses():
    sequencer, machine, session, _ = build(
        Phase.RUNNING, last_command=Command.START, region=KITCHEN.region
    )

    result = await sequencer.async_clean_region(KITCHEN)

    assert result.command is Command.PAUSE
    assert session.commands == [Command.PAUSE]
    assert not machine.region_active(KITCHEN)


@pytest.mark.asyncio
async def test_invalid_room_fails_before_network():
    sequencer, machine, session, _ = build(Phase.CHARGING)

    with pytest.raises(ConfigurationError):
        await sequencer.async_clean_region(RoomDefinition("Den", "map1", ()))
    with pytest.raises(ConfigurationError):
        await sequencer.async_clean_region(RoomDefinition("Den", "", ("1",)))

    assert session.sent == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "target,last_command,expected",
    [
        (TargetState.PLAY, Command.PAUSE, Command.RESUME),
        (TargetState.PLAY, Command.STOP, Command.START),
        ("pause", Command.START, Command.PAUSE),
        (TargetState.STOP, Command.START, Command.STOP),
    ],
)
async def test_set_target(target, last_command, expected):
    sequencer, machine, session, _ = build(Phase.STOPPED, last_command=last_command)

    result = await sequencer.async_set_target(target)

    assert result.command is expected
    assert machine.target() is TargetState(target)


@pytest.mark.asyncio
async def test_failed_target_is_not_remembered():
    sequencer, machine, session, _ = build(Phase.CHARGING, last_command=Command.DOCK)
    session.failing.add(Command.START)

    await sequencer.async_set_target(TargetState.PLAY)

    assert machine.target() is TargetState.STOP


@pytest.mark.asyncio
async def test_invalid_target():
    sequencer, *_ = build(Phase.CHARGING)

    with pytest.raises(InvalidCommandError):
        await sequencer.async_set_target("rewind")


@pytest.mark.asyncio
async def test_cancel_pending():
    sequencer, machine, session, _ = build(Phase.RUNNING, last_command=Command.START)
    await sequencer.async_return_to_dock()

    await sequencer.async_cancel_pending()
    await asyncio.sleep(COOLDOWN * 2)

    assert session.commands == [Command.PAUSE]
    assert not sequencer.has_pending_followup


@pytest.mark.asyncio
@pytest.mark.parametrize("phase", [Phase.CHARGING, Phase.EVACUATING])
async def test_pause_target_while_docked_is_noop(phase):
    sequencer, machine, session, changes = build(phase, last_command=Command.DOCK)

    result = await sequencer.async_set_target(TargetState.PAUSE)

    assert result.outcome is Outcome.NOOP
    assert session.sent == []
    assert machine.status.phase is phase
    assert machine.target() is TargetState.STOP
    assert changes == []


@pytest.mark.asyncio
async def test_plan_without_command_is_rejected():
    sequencer, machine, session, _ = build(Phase.RUNNING, last_command=Command.START)

    with pytest.raises(InvalidCommandError):
        await sequencer._execute(CommandPlan(Intent.LOCATE, Outcome.SENT))
    assert session.sent == []
    assert machine.status.phase is Phase.RUNNING
