from __future__ import annotations

from collections import deque
import time
from typing import Any

import pytest

from roomba_core.config import DeviceConfig, parse_device_config
from roomba_core.const import Command
from roomba_core.session import ERROR_NO_DATA, ERROR_TIMEOUT, validate_command

BLID = "3145C50411E24560"
PASSWORD = ":1:1486937829:gOuYiq1G1Ow0wQkG"


def make_raw(
    phase: str = "charge",
    *,
    battery: Any = 100,
    bin_full: bool = False,
    command: str | None = "dock",
    pmap_id: Any = None,
    regions: list[Any] | None = None,
    mission: Any = 1,
    **extra: Any,
) -> dict[str, Any]:
    last_command: dict[str, Any] = {"command": command}
    if pmap_id is not None:
        last_command["pmap_id"] = pmap_id
    if regions is not None:
        last_command["regions"] = [
            {"region_id": region_id, "type": "rid"} for region_id in regions
        ]
    raw = {
        "batPct": battery,
        "bin": {"present": True, "full": bin_full},
        "cleanMissionStatus": {"phase": phase, "nMssn": mission, "cycle": "none"},
        "lastCommand": last_command,
    }
    raw.update(extra)
    return raw


def make_init_raw(phase: str = "charge", **kwargs: Any) -> dict[str, Any]:
    return make_raw(
        phase,
        hwPartsRev={"navSerialNo": "AXB1234567"},
        sku="R960020",
        name="Rosie",
        **kwargs,
    )


def make_config(**overrides: Any) -> DeviceConfig:
    raw: dict[str, Any] = {"blid": BLID, "password": PASSWORD, "host": "192.168.1.20"}
    raw.update(overrides)
    return parse_device_config(raw)


KITCHEN_MAPS = [
    {
        "pmap_id": "ZtBhXs8gS5GqzYzHqZW2GQ",
        "rooms": [
            {"name": "Kitchen", "region_ids": ["11", "12"]},
            {"name": "Hall", "region_ids": ["7"]},
        ],
    }
]


class FakeRoomba:
    """Stands in for roombapy.Roomba: blocking calls, merged reported state."""

    def __init__(
        self,
        reported: dict[str, Any] | None = None,
        *,
        connect_error: Exception | None = None,
        send_error: Exception | None = None,
        send_delay: float = 0.0,
        connect_delay: float = 0.0,
    ) -> None:
        self.master_state = {"state": {"reported": reported or {}}}
        self.roomba_connected = False
        self.connect_error = connect_error
        self.send_error = send_error
        self.send_delay = send_delay
        self.connect_delay = connect_delay
        self.sent: list[tuple[str, Any]] = []
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.factory_kwargs: dict[str, Any] = {}

    def connect(self) -> bool:
        self.connect_calls += 1
        if self.connect_delay:
            time.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        self.roomba_connected = True
        return True

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.roomba_connected = False

    def send_command(self, command: str, params: Any = None) -> None:
        if self.send_delay:
            time.sleep(self.send_delay)
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((command, params))


class FakeSession:
    """An already connected session with scripted poll responses."""

    def __init__(self, *responses: dict[str, Any] | None, blid: str = BLID) -> None:
        self.blid = blid
        self.address = "192.168.1.20"
        self.last_error: str | None = None
        self.responses: deque[dict[str, Any] | None] = deque(responses)
        self.sent: list[tuple[Command, Any]] = []
        self.failing: set[Command] = set()
        self.connected = False
        self.connect_error: Exception | None = None
        self.disconnect_calls = 0

    def queue(self, *responses: dict[str, Any] | None) -> None:
        self.responses.extend(responses)

    async def async_connect(self) -> FakeSession:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True
        return self

    def is_connected(self) -> bool:
        return self.connected

    async def async_fetch_status(self, fields: Any) -> dict[str, Any] | None:
        response = self.responses.popleft() if self.responses else None
        self.last_error = None if response is not None else ERROR_NO_DATA
        return response

    async def async_send_command(self, command: Command, args: Any = None) -> bool:
        validate_command(command, args)
        self.sent.append((command, args))
        if command in self.failing:
            self.last_error = ERROR_TIMEOUT
            return False
        self.last_error = None
        return True

    async def async_disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    @property
    def commands(self) -> list[Command]:
        return [command for command, _ in self.sent]


@pytest.fixture
def fake_roomba() -> FakeRoomba:
    return FakeRoomba(make_init_raw())


@pytest.fixture
def roomba_factory(fake_roomba: FakeRoomba):
    def factory(**kwargs: Any) -> FakeRoomba:
        fake_roomba.factory_kwargs = kwargs
        return fake_roomba

    return factory
