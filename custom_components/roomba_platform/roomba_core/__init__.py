"""Local control engine for iRobot Roomba vacuums."""
from __future__ import annotations

from .config import DeviceConfig, PlatformConfig, parse_device_config, parse_platform_config
from .const import Command, Intent, Outcome, Phase, PollerState, TargetState
from .device import RoombaDevice
from .errors import (
    ConfigurationError,
    InvalidCommandError,
    MalformedTelemetryError,
    RoombaConnectionError,
    RoombaError,
)
from .hub import RoombaHub
from .models import (
    CommandResult,
    DeviceIdentity,
    DeviceInfo,
    DeviceSnapshot,
    DeviceStatus,
    Region,
    RoomDefinition,
)
from .poller import ReconciliationPoller
from .session import RoombaSession

__all__ = [
    "Command",
    "CommandResult",
    "ConfigurationError",
    "DeviceConfig",
    "DeviceIdentity",
    "DeviceInfo",
    "DeviceSnapshot",
    "DeviceStatus",
    "Intent",
    "InvalidCommandError",
    "MalformedTelemetryError",
    "Outcome",
    "Phase",
    "PlatformConfig",
    "PollerState",
    "ReconciliationPoller",
    "Region",
    "RoomDefinition",
    "RoombaConnectionError",
    "RoombaDevice",
    "RoombaError",
    "RoombaHub",
    "RoombaSession",
    "TargetState",
    "parse_device_config",
    "parse_platform_config",
]
