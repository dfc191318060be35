"""Constants for the Roomba engine."""
from __future__ import annotations

from enum import Enum

MANUFACTURER = "iRobot"

# Timeouts and delays (seconds)
DEFAULT_TIMEOUT = 3.0
DEFAULT_LOOKUP_TIMEOUT = 3.0
CONNECT_TIMEOUT = 10.0
# The firmware rejects a dock/find request sent right after a pause.
COOLDOWN_DELAY = 3.0
# Interval between checks of the streamed state while waiting for fields.
STATE_WAIT_STEP = 0.1

# Polling
DEFAULT_POLLING_INTERVAL = 5.0
MIN_POLLING_INTERVAL = 1.0
DEFAULT_ERROR_BUDGET = 60

LOW_BATTERY_PCT = 20

# roombapy client settings
CONTINUOUS_CONNECTION = True
RECONNECT_DELAY = 1

# Room command payload
REGION_TYPE_TAG = "rid"
REGION_ORDERED = 1


class Phase(str, Enum):
    """Operating phase as reported in cleanMissionStatus.phase."""

    CHARGING = "charge"
    EVACUATING = "evac"
    RETURNING = "hmUsrDock"
    RUNNING = "run"
    STOPPED = "stop"
    STUCK = "stuck"


# Docking phases some firmwares report instead of hmUsrDock.
PHASE_ALIASES: dict[str, Phase] = {
    "hmMidMsn": Phase.RETURNING,
    "hmPostMsn": Phase.RETURNING,
}

DOCKED_PHASES = frozenset({Phase.CHARGING, Phase.EVACUATING})
MOTION_PHASES = frozenset({Phase.RETURNING, Phase.RUNNING})


class Command(str, Enum):
    """Commands accepted by the robot."""

    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    DOCK = "dock"
    FIND = "find"
    CLEAN_REGION = "clean_region"

    @property
    def wire_name(self) -> str:
        """Return the command name sent over MQTT."""
        if self is Command.CLEAN_REGION:
            return Command.START.value
        return self.value


# Commands whose arguments are mandatory; every other command takes none.
COMMANDS_WITH_ARGS = frozenset({Command.CLEAN_REGION})

# lastCommand.command values we track; anything else normalizes to None.
REPORTED_COMMANDS: dict[str, Command] = {
    cmd.value: cmd for cmd in Command if cmd is not Command.CLEAN_REGION
}


class TargetState(str, Enum):
    """Media-style target for the unified play/pause/stop control."""

    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"


class Intent(str, Enum):
    """High-level control surfaces handled by the sequencer."""

    TOGGLE_RUN = "toggle_run"
    RETURN_TO_DOCK = "return_to_dock"
    LOCATE = "locate"
    CLEAN_REGION = "clean_region"
    SET_TARGET = "set_target"


class Outcome(str, Enum):
    """Result of a sequencer operation."""

    SENT = "sent"
    NOOP = "noop"
    REFUSED = "refused"
    FAILED = "failed"


class PollerState(str, Enum):
    """Lifecycle of the reconciliation poller."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


# Fields requested from the robot
FIELDS_STATUS = (
    "batPct",
    "bin",
    "cleanMissionStatus",
    "lastCommand",
)
FIELDS_INIT = (
    "hwPartsRev",
    "sku",
    "name",
) + FIELDS_STATUS

# Configuration keys
CONF_DEVICES = "devices"
CONF_POLLING_INTERVAL = "polling_interval"
CONF_BLID = "blid"
CONF_PASSWORD = "password"
CONF_HOST = "host"
CONF_NAME = "name"
CONF_LOG_ROOM_COMMANDS = "log_room_commands"
CONF_MAPS = "maps"
CONF_PMAP_ID = "pmap_id"
CONF_ROOMS = "rooms"
CONF_REGION_IDS = "region_ids"

CONF_HIDE_BATTERY = "hide_battery"
CONF_HIDE_BIN = "hide_bin"
CONF_HIDE_DOCK = "hide_dock"
CONF_HIDE_MOTION = "hide_motion"
CONF_HIDE_PAUSE = "hide_pause"
CONF_HIDE_RETURN = "hide_return"
CONF_HIDE_START = "hide_start"
CONF_HIDE_FIND = "hide_find"
CONF_HIDE_TARGET = "hide_target"

VISIBILITY_KEYS = (
    CONF_HIDE_BATTERY,
    CONF_HIDE_BIN,
    CONF_HIDE_DOCK,
    CONF_HIDE_MOTION,
    CONF_HIDE_PAUSE,
    CONF_HIDE_RETURN,
    CONF_HIDE_START,
    CONF_HIDE_FIND,
    CONF_HIDE_TARGET,
)
