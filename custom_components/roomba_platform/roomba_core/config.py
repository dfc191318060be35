"""Configuration schemas for the Roomba engine.

The platform schema only checks the outer structure so that a malformed
device entry fails that device alone; each device is then validated on its
own by :func:`parse_device_config`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any

import voluptuous as vol

from .const import (
    CONF_BLID,
    CONF_DEVICES,
    CONF_HOST,
    CONF_LOG_ROOM_COMMANDS,
    CONF_MAPS,
    CONF_NAME,
    CONF_PASSWORD,
    CONF_PMAP_ID,
    CONF_POLLING_INTERVAL,
    CONF_REGION_IDS,
    CONF_ROOMS,
    DEFAULT_POLLING_INTERVAL,
    MIN_POLLING_INTERVAL,
    VISIBILITY_KEYS,
)
from .errors import ConfigurationError
from .models import DeviceIdentity, RoomDefinition

_LOGGER = logging.getLogger(__name__)


def _non_empty_str(value: Any) -> str:
    """Coerce ids that may be configured as numbers into stripped strings."""
    if value is None or isinstance(value, (bool, dict, list)):
        raise vol.Invalid("expected a string or number")
    text = str(value).strip()
    if not text:
        raise vol.Invalid("must not be empty")
    return text


ROOM_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_NAME): _non_empty_str,
        vol.Required(CONF_REGION_IDS): vol.All(
            [_non_empty_str], vol.Length(min=1)
        ),
    }
)

MAP_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_PMAP_ID): _non_empty_str,
        vol.Optional(CONF_ROOMS, default=list): [ROOM_SCHEMA],
    }
)

DEVICE_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_BLID): _non_empty_str,
        vol.Required(CONF_PASSWORD): _non_empty_str,
        vol.Optional(CONF_HOST): vol.Any(None, _non_empty_str),
        vol.Optional(CONF_NAME): vol.Any(None, _non_empty_str),
        vol.Optional(CONF_LOG_ROOM_COMMANDS, default=False): bool,
        vol.Optional(CONF_MAPS, default=list): [MAP_SCHEMA],
        **{vol.Optional(key, default=False): bool for key in VISIBILITY_KEYS},
    },
    extra=vol.REMOVE_EXTRA,
)

POLLING_INTERVAL_SCHEMA = vol.All(
    vol.Coerce(float), vol.Range(min=MIN_POLLING_INTERVAL)
)

PLATFORM_SCHEMA = vol.Schema(
    {
        vol.Optional(
            CONF_POLLING_INTERVAL, default=DEFAULT_POLLING_INTERVAL
        ): POLLING_INTERVAL_SCHEMA,
        vol.Required(CONF_DEVICES): [dict],
    },
    extra=vol.ALLOW_EXTRA,
)


@dataclass(frozen=True)
class DeviceConfig:
    """Validated configuration of one robot."""

    identity: DeviceIdentity
    name: str | None = None
    log_room_commands: bool = False
    rooms: tuple[RoomDefinition, ...] = ()
    hidden: frozenset[str] = field(default_factory=frozenset)

    @property
    def device_id(self) -> str:
        return self.identity.blid

    def is_visible(self, key: str) -> bool:
        """Return False if the accessory toggled by ``key`` is hidden."""
        return key not in self.hidden


@dataclass(frozen=True)
class PlatformConfig:
    polling_interval: float
    devices: tuple[dict[str, Any], ...]


def _format_invalid(err: vol.Invalid) -> str:
    path = ".".join(str(part) for part in err.path)
    return f"{err.msg} at {path}" if path else str(err.msg)


def parse_platform_config(raw: dict[str, Any] | None) -> PlatformConfig:
    """Validate the outer platform configuration."""
    if not raw:
        raise ConfigurationError("Config not provided, please update your settings")
    try:
        data = PLATFORM_SCHEMA(raw)
    except vol.Invalid as err:
        raise ConfigurationError(
            f"Invalid platform configuration: {_format_invalid(err)}"
        ) from err
    return PlatformConfig(
        polling_interval=data[CONF_POLLING_INTERVAL],
        devices=tuple(data[CONF_DEVICES]),
    )


def parse_rooms(maps: list[dict[str, Any]]) -> tuple[RoomDefinition, ...]:
    """Flatten validated map entries into room definitions."""
    rooms: list[RoomDefinition] = []
    seen: set[str] = set()
    for map_conf in maps:
        map_id = map_conf[CONF_PMAP_ID]
        for room_conf in map_conf.get(CONF_ROOMS, []):
            name = room_conf[CONF_NAME]
            if name in seen:
                raise ConfigurationError(f"Duplicate room name {name}")
            seen.add(name)
            # Ordered de-duplication; comparison against telemetry is set based.
            region_ids = tuple(dict.fromkeys(room_conf[CONF_REGION_IDS]))
            room = RoomDefinition(name=name, map_id=map_id, region_ids=region_ids)
            room.validate()
            rooms.append(room)
    return tuple(rooms)


def parse_device_config(raw: dict[str, Any]) -> DeviceConfig:
    """Validate one device entry, raising ConfigurationError on any problem."""
    try:
        data = DEVICE_SCHEMA(raw)
    except vol.Invalid as err:
        blid = raw.get(CONF_BLID) if isinstance(raw, dict) else None
        raise ConfigurationError(
            f"Invalid configuration for device {blid or '<unknown>'}: "
            f"{_format_invalid(err)}"
        ) from err

    identity = DeviceIdentity(
        blid=data[CONF_BLID],
        password=data[CONF_PASSWORD],
        host=data.get(CONF_HOST),
    )
    rooms = parse_rooms(data[CONF_MAPS])
    hidden = frozenset(key for key in VISIBILITY_KEYS if data[key])
    _LOGGER.debug(
        "Parsed config for %s: %d rooms, hidden=%s",
        identity.blid,
        len(rooms),
        sorted(hidden),
    )
    return DeviceConfig(
        identity=identity,
        name=data.get(CONF_NAME),
        log_room_commands=data[CONF_LOG_ROOM_COMMANDS],
        rooms=rooms,
        hidden=hidden,
    )
