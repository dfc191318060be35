"""Exceptions raised by the Roomba engine.

Only defects in the caller (bad configuration, mismatched command arguments)
and a failed initial connection are raised. Timeouts and transport drops are
reported as ``None``/``False`` results by the session.
"""
from __future__ import annotations


class RoombaError(Exception):
    """Base class for engine errors."""


class ConfigurationError(RoombaError, ValueError):
    """Missing credentials or a malformed room/map definition."""


class InvalidCommandError(RoombaError, ValueError):
    """A command outside the supported set, or arguments that do not match it."""


class MalformedTelemetryError(RoombaError):
    """A status payload that is missing required fields or has the wrong shape."""


class RoombaConnectionError(RoombaError, ConnectionError):
    """The MQTT channel to the robot could not be opened."""
