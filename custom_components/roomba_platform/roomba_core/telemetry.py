"""Normalize raw robot state into canonical records."""
from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from .const import PHASE_ALIASES, REPORTED_COMMANDS, Command, Phase
from .errors import MalformedTelemetryError
from .models import DeviceInfo, DeviceStatus, Region

_LOGGER = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("batPct", "bin", "cleanMissionStatus", "lastCommand")


def _require_mapping(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if not isinstance(value, Mapping):
        raise MalformedTelemetryError(f"Field {key} is missing or not an object")
    return value


def _normalize_id(value: Any) -> str | None:
    """Return region/map ids as strings; the robot mixes ints and strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def normalize_phase(value: Any) -> Phase:
    if isinstance(value, str):
        if value in PHASE_ALIASES:
            return PHASE_ALIASES[value]
        try:
            return Phase(value)
        except ValueError:
            pass
    raise MalformedTelemetryError(f"Unrecognized phase: {value!r}")


def normalize_battery(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise MalformedTelemetryError(f"Invalid battery level: {value!r}")
    try:
        level = int(float(value))
    except (ValueError, OverflowError) as err:
        raise MalformedTelemetryError(f"Invalid battery level: {value!r}") from err
    return max(0, min(100, level))


def normalize_command(value: Any) -> Command | None:
    if value is None:
        return None
    command = REPORTED_COMMANDS.get(str(value))
    if command is None:
        _LOGGER.debug("Ignoring unknown last command %r", value)
    return command


def extract_region(last_command: Mapping[str, Any]) -> Region | None:
    """Build the region block from lastCommand, or None if it has none."""
    regions = last_command.get("regions")
    if not isinstance(regions, list):
        return None
    map_id = _normalize_id(last_command.get("pmap_id"))
    if map_id is None:
        return None
    region_ids: list[str] = []
    for region in regions:
        if isinstance(region, Mapping):
            region_id = _normalize_id(region.get("region_id"))
        else:
            region_id = _normalize_id(region)
        if region_id is None:
            raise MalformedTelemetryError(f"Malformed region entry: {region!r}")
        if region_id not in region_ids:
            region_ids.append(region_id)
    if not region_ids:
        return None
    return Region(map_id=map_id, region_ids=tuple(region_ids))


def normalize(raw: Mapping[str, Any] | None) -> DeviceStatus:
    """Convert a raw status payload into a DeviceStatus.

    Raises MalformedTelemetryError when a required field is missing or has the
    wrong shape. A missing region block means no active region.
    """
    if not isinstance(raw, Mapping):
        raise MalformedTelemetryError(f"Status payload is not an object: {raw!r}")
    missing = [name for name in _REQUIRED_FIELDS if name not in raw]
    if missing:
        raise MalformedTelemetryError(f"Status payload missing fields: {missing}")

    mission = _require_mapping(raw, "cleanMissionStatus")
    bin_state = _require_mapping(raw, "bin")
    last_command = _require_mapping(raw, "lastCommand")

    phase = normalize_phase(mission.get("phase"))
    if "full" not in bin_state:
        raise MalformedTelemetryError("Field bin.full is missing")

    region = extract_region(last_command)
    return DeviceStatus(
        phase=phase,
        battery_percent=normalize_battery(raw.get("batPct")),
        bin_full=bool(bin_state.get("full")),
        last_command=normalize_command(last_command.get("command")),
        # Only a running mission has an active region.
        active_region=region if phase is Phase.RUNNING else None,
        mission_id=_normalize_id(mission.get("nMssn")),
    )


def parse_device_info(
    raw: Mapping[str, Any], blid: str, configured_name: str | None = None
) -> DeviceInfo:
    """Read name, model and serial from the initial status payload."""
    parts = raw.get("hwPartsRev")
    serial = parts.get("navSerialNo") if isinstance(parts, Mapping) else None
    name = configured_name or raw.get("name") or blid
    return DeviceInfo(
        name=str(name),
        model=str(raw["sku"]) if raw.get("sku") else None,
        serial=str(serial) if serial else None,
    )
