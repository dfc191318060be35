"""Local MQTT session with one robot.

Wraps a blocking ``roombapy`` client. Every call runs in the default executor
and is bounded by a deadline; timeouts and transport errors are logged and
turned into ``None``/``False`` results. Only a mismatched command/argument
combination is raised, since that is a bug in the caller.
"""
from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
import copy
import logging
from typing import Any

from roombapy import RoombaFactory
from roombapy.discovery import RoombaDiscovery

from .const import (
    COMMANDS_WITH_ARGS,
    CONNECT_TIMEOUT,
    CONTINUOUS_CONNECTION,
    DEFAULT_LOOKUP_TIMEOUT,
    DEFAULT_TIMEOUT,
    RECONNECT_DELAY,
    STATE_WAIT_STEP,
    Command,
)
from .errors import InvalidCommandError, RoombaConnectionError
from .models import DeviceIdentity

_LOGGER = logging.getLogger(__name__)

# Reasons recorded in RoombaSession.last_error
ERROR_NOT_CONNECTED = "not_connected"
ERROR_TIMEOUT = "timeout"
ERROR_TRANSPORT = "transport"
ERROR_NO_DATA = "no_data"


def validate_command(command: Any, args: Mapping[str, Any] | None = None) -> None:
    """Raise InvalidCommandError unless ``command`` and ``args`` belong together."""
    if not isinstance(command, Command):
        raise InvalidCommandError(f"Invalid command: {command}")
    if command in COMMANDS_WITH_ARGS:
        if not isinstance(args, Mapping):
            raise InvalidCommandError(f"Command {command.value} requires arguments")
        if not args.get("pmap_id"):
            raise InvalidCommandError(f"Command {command.value} requires a pmap_id")
        regions = args.get("regions")
        if not isinstance(regions, list) or not regions:
            raise InvalidCommandError(f"Command {command.value} requires regions")
        for region in regions:
            if not isinstance(region, Mapping) or not region.get("region_id"):
                raise InvalidCommandError(
                    f"Command {command.value} has a malformed region: {region!r}"
                )
    elif args is not None:
        raise InvalidCommandError(f"Command {command.value} does not take arguments")


def _default_discover() -> list[Any]:
    return list(RoombaDiscovery().get_all())


class RoombaSession:
    """Authenticated connection to one robot."""

    def __init__(
        self,
        identity: DeviceIdentity,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        lookup_timeout: float = DEFAULT_LOOKUP_TIMEOUT,
        connect_timeout: float = CONNECT_TIMEOUT,
        roomba_factory: Callable[..., Any] | None = None,
        discover: Callable[[], Iterable[Any]] | None = None,
    ) -> None:
        self.identity = identity
        self.address: str | None = identity.host
        self.last_error: str | None = None
        self._timeout = timeout
        self._lookup_timeout = lookup_timeout
        self._connect_timeout = connect_timeout
        self._roomba_factory = roomba_factory or RoombaFactory.create_roomba
        self._discover = discover or _default_discover
        self._roomba: Any = None

    @property
    def blid(self) -> str:
        return self.identity.blid

    async def _run_blocking(
        self, func: Callable[..., Any], *args: Any, timeout: float | None = None
    ) -> Any:
        """Run a blocking client call in the executor, bounded by a deadline.

        The deadline applies even if the underlying call completes later.
        """
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, func, *args),
            self._timeout if timeout is None else timeout,
        )

    async def async_resolve_address(self) -> str | None:
        """Look up the robot's IP address if none is configured.

        A failed lookup is not fatal: the session continues without an address.
        """
        if self.address:
            return self.address
        _LOGGER.info("No IP specified for %s, attempting IP lookup...", self.blid)
        try:
            robots = await self._run_blocking(
                self._discover, timeout=self._lookup_timeout
            )
        except asyncio.TimeoutError:
            _LOGGER.warning("Timed out looking up IP for %s", self.blid)
            return None
        except Exception as err:
            _LOGGER.warning("Failed to look up IP for %s: %s", self.blid, err)
            return None

        robots = list(robots or [])
        match = next(
            (robot for robot in robots if getattr(robot, "blid", None) == self.blid),
            None,
        )
        if match is None and len(robots) == 1:
            match = robots[0]
        address = getattr(match, "ip", None) if match is not None else None
        if address:
            _LOGGER.info("Found robot %s at IP address %s", self.blid, address)
            self.address = address
        else:
            _LOGGER.warning("No robot found for %s during IP lookup", self.blid)
        return self.address

    async def async_connect(self) -> RoombaSession:
        """Open the MQTT channel. Raises RoombaConnectionError on failure."""
        await self.async_resolve_address()
        if not self.address:
            _LOGGER.warning(
                "Connecting to %s without an address; the client may not find it",
                self.blid,
            )
        try:
            roomba = self._roomba_factory(
                address=self.address,
                blid=self.identity.blid,
                password=self.identity.password,
                continuous=CONTINUOUS_CONNECTION,
                delay=RECONNECT_DELAY,
            )
            if hasattr(roomba, "register_on_disconnect_callback"):
                roomba.register_on_disconnect_callback(self._on_disconnect)
            await self._async_open(roomba)
        except asyncio.TimeoutError as err:
            raise RoombaConnectionError(
                f"Timed out connecting to robot {self.blid}"
            ) from err
        except Exception as err:
            raise RoombaConnectionError(
                f"Error connecting to robot {self.blid}: {err}"
            ) from err

        self._roomba = roomba
        _LOGGER.info("Connected to robot %s at %s", self.blid, self.address)
        return self

    async def _async_open(self, roomba: Any) -> None:
        """Call the client's connect and wait for its on-connect callback."""
        await self._run_blocking(roomba.connect, timeout=self._connect_timeout)
        await asyncio.wait_for(
            self._wait_until_connected(roomba), self._connect_timeout
        )

    async def _wait_until_connected(self, roomba: Any) -> None:
        while not roomba.roomba_connected:
            await asyncio.sleep(STATE_WAIT_STEP)

    def _on_disconnect(self, *args: Any) -> None:
        # Called from the client's network thread.
        _LOGGER.info("Robot %s disconnected", self.blid)

    def is_connected(self) -> bool:
        """Return whether the MQTT channel is up.

        The client keeps this flag current in both directions, including when
        it reconnects by itself after a drop.
        """
        if self._roomba is None:
            return False
        return bool(self._roomba.roomba_connected)

    async def _async_ensure_connected(self) -> bool:
        """Reopen a dropped channel. Returns False if it is still down."""
        if self._roomba is None:
            return False
        if self.is_connected():
            return True
        _LOGGER.info("Robot %s not connected, attempting to reconnect", self.blid)
        try:
            await self._async_open(self._roomba)
        except asyncio.TimeoutError:
            _LOGGER.warning("Timed out reconnecting to robot %s", self.blid)
            return False
        except Exception as err:
            _LOGGER.warning("Error reconnecting to robot %s: %s", self.blid, err)
            return False
        _LOGGER.info("Reconnected to robot %s", self.blid)
        return True

    def _reported(self) -> Mapping[str, Any]:
        state = getattr(self._roomba, "master_state", None) or {}
        return (state.get("state") or {}).get("reported") or {}

    async def _wait_for_fields(self, fields: tuple[str, ...]) -> dict[str, Any]:
        """Wait until every field has been streamed by the robot."""
        while True:
            reported = self._reported()
            if all(name in reported for name in fields):
                return {name: copy.deepcopy(reported[name]) for name in fields}
            await asyncio.sleep(STATE_WAIT_STEP)

    async def async_fetch_status(self, fields: Iterable[str]) -> dict[str, Any] | None:
        """Return the requested status fields, or None if nothing usable arrived."""
        if not await self._async_ensure_connected():
            _LOGGER.debug("Robot %s not connected, try again later", self.blid)
            self.last_error = ERROR_NOT_CONNECTED
            return None
        wanted = tuple(fields)
        _LOGGER.debug("Syncing state for robot %s...", self.blid)
        try:
            state = await asyncio.wait_for(self._wait_for_fields(wanted), self._timeout)
        except asyncio.TimeoutError:
            _LOGGER.warning("Timed out syncing state for robot %s", self.blid)
            self.last_error = ERROR_TIMEOUT
            return None
        except Exception as err:
            _LOGGER.warning("Error syncing state for robot %s: %s", self.blid, err)
            self.last_error = ERROR_TRANSPORT
            return None

        if not state or all(value is None for value in state.values()):
            _LOGGER.warning("Empty state received for robot %s", self.blid)
            self.last_error = ERROR_NO_DATA
            return None
        self.last_error = None
        return state

    async def async_send_command(
        self, command: Command, args: Mapping[str, Any] | None = None
    ) -> bool:
        """Send a command, returning False on timeout or transport failure."""
        validate_command(command, args)
        if not await self._async_ensure_connected():
            _LOGGER.warning(
                "Robot %s not connected, %s command not sent", self.blid, command.value
            )
            self.last_error = ERROR_NOT_CONNECTED
            return False
        params = dict(args) if args is not None else None
        _LOGGER.info("Sending %s command to robot %s", command.value, self.blid)
        try:
            await self._run_blocking(
                self._roomba.send_command, command.wire_name, params
            )
        except asyncio.TimeoutError:
            _LOGGER.warning(
                "Timed out sending %s command to robot %s", command.value, self.blid
            )
            self.last_error = ERROR_TIMEOUT
            return False
        except Exception as err:
            _LOGGER.warning(
                "Error sending %s command to robot %s: %s", command.value, self.blid, err
            )
            self.last_error = ERROR_TRANSPORT
            return False
        self.last_error = None
        return True

    async def async_disconnect(self) -> None:
        """Close the channel. Safe to call more than once."""
        roomba, self._roomba = self._roomba, None
        if roomba is None:
            return
        try:
            await self._run_blocking(roomba.disconnect)
        except asyncio.TimeoutError:
            _LOGGER.warning("Timed out disconnecting from robot %s", self.blid)
        except Exception as err:
            _LOGGER.warning("Error disconnecting from robot %s: %s", self.blid, err)
        else:
            _LOGGER.info("Disconnected from robot %s", self.blid)
