"""Data model for the Roomba engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .const import (
    REGION_ORDERED,
    REGION_TYPE_TAG,
    Command,
    Intent,
    Outcome,
    Phase,
    TargetState,
)
from .errors import ConfigurationError


@dataclass(frozen=True)
class DeviceIdentity:
    """Credentials of one robot. Created from configuration, never mutated."""

    blid: str
    password: str = field(repr=False)
    host: str | None = None

    def __post_init__(self) -> None:
        if not self.blid:
            raise ConfigurationError("No blid provided")
        if not self.password:
            raise ConfigurationError(f"No password provided for blid {self.blid}")


@dataclass(frozen=True)
class Region:
    """A map id plus the region ids cleaned on it.

    ``region_ids`` keeps the configured order for the command payload but is
    compared as a set.
    """

    map_id: str
    region_ids: tuple[str, ...]

    def matches(self, other: Region | None) -> bool:
        """Return True if ``other`` covers exactly the same regions on the same map."""
        if other is None or other.map_id != self.map_id:
            return False
        wanted = set(self.region_ids)
        return (
            all(region_id in wanted for region_id in other.region_ids)
            and len(set(other.region_ids)) == len(wanted)
        )


@dataclass(frozen=True)
class RoomDefinition:
    """A named room switch, loaded from configuration."""

    name: str
    map_id: str
    region_ids: tuple[str, ...]

    def validate(self) -> None:
        """Raise ConfigurationError unless the definition can be sent to the robot."""
        if not self.name:
            raise ConfigurationError("Room is missing a name")
        if not self.map_id:
            raise ConfigurationError(f"Room {self.name} is missing a map id")
        if not self.region_ids:
            raise ConfigurationError(f"Room {self.name} has no region ids")
        if any(not str(region_id).strip() for region_id in self.region_ids):
            raise ConfigurationError(f"Room {self.name} has an empty region id")

    @property
    def region(self) -> Region:
        return Region(self.map_id, self.region_ids)

    def command_args(self) -> dict[str, Any]:
        """Build the params of the clean-region command."""
        return {
            "pmap_id": self.map_id,
            "regions": [
                {"region_id": str(region_id), "type": REGION_TYPE_TAG}
                for region_id in self.region_ids
            ],
            "ordered": REGION_ORDERED,
        }


@dataclass(frozen=True)
class DeviceStatus:
    """Canonical robot status, produced by the telemetry normalizer."""

    phase: Phase
    battery_percent: int
    bin_full: bool
    last_command: Command | None = None
    active_region: Region | None = None
    mission_id: str | None = None


@dataclass(frozen=True)
class DeviceInfo:
    """Static robot details shown by the accessory layer."""

    name: str
    model: str | None = None
    serial: str | None = None


@dataclass(frozen=True)
class ResumeContext:
    """What an un-pause should bring back."""

    returning: bool = False
    region: Region | None = None

    @classmethod
    def was_returning(cls) -> ResumeContext:
        return cls(returning=True)

    @classmethod
    def was_cleaning(cls, region: Region) -> ResumeContext:
        return cls(region=region)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a control operation."""

    intent: Intent
    outcome: Outcome
    command: Command | None = None
    predicted_status: DeviceStatus | None = None
    reason: str | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome in (Outcome.SENT, Outcome.NOOP)

    @property
    def refused(self) -> bool:
        return self.outcome is Outcome.REFUSED


@dataclass(frozen=True)
class DeviceSnapshot:
    """Everything the accessory layer reads for one robot."""

    device_id: str
    info: DeviceInfo
    status: DeviceStatus
    connected: bool
    polling: bool
    charging: bool
    docked: bool
    in_motion: bool
    paused: bool
    returning: bool
    running: bool
    started: bool
    stuck: bool
    locating: bool
    low_battery: bool
    media_state: TargetState
    target: TargetState
    rooms: dict[str, bool] = field(default_factory=dict)

    @property
    def battery_level(self) -> int:
        return self.status.battery_percent

    @property
    def bin_full(self) -> bool:
        return self.status.bin_full

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly representation for diagnostics."""
        status = self.status
        region = status.active_region
        return {
            "device_id": self.device_id,
            "name": self.info.name,
            "model": self.info.model,
            "serial": self.info.serial,
            "connected": self.connected,
            "polling": self.polling,
            "phase": status.phase.value,
            "battery_percent": status.battery_percent,
            "bin_full": status.bin_full,
            "last_command": status.last_command.value if status.last_command else None,
            "active_region": (
                {"map_id": region.map_id, "region_ids": list(region.region_ids)}
                if region
                else None
            ),
            "mission_id": status.mission_id,
            "charging": self.charging,
            "docked": self.docked,
            "in_motion": self.in_motion,
            "paused": self.paused,
            "returning": self.returning,
            "started": self.started,
            "stuck": self.stuck,
            "locating": self.locating,
            "low_battery": self.low_battery,
            "media_state": self.media_state.value,
            "target": self.target.value,
            "rooms": dict(self.rooms),
        }
