"""Config flow for Roomba Platform integration."""
from __future__ import annotations

import json
import logging
from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import HomeAssistant, callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.exceptions import HomeAssistantError

from .const import (
    CONF_BLID,
    CONF_HOST,
    CONF_MAPS,
    CONF_NAME,
    CONF_PASSWORD,
    CONF_POLLING_INTERVAL,
    CONF_ROOMS_JSON,
    DEFAULT_POLLING_INTERVAL,
    DOMAIN,
    VISIBILITY_KEYS,
)
from .roomba_core import (
    ConfigurationError,
    RoombaConnectionError,
    RoombaSession,
    parse_device_config,
)
from .roomba_core.config import MAP_SCHEMA, POLLING_INTERVAL_SCHEMA
from .roomba_core.const import FIELDS_INIT
from .roomba_core.telemetry import parse_device_info

_LOGGER = logging.getLogger(__name__)

STEP_USER_DATA_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_BLID): str,
        vol.Required(CONF_PASSWORD): str,
        vol.Optional(CONF_HOST): str,
        vol.Optional(CONF_NAME): str,
    }
)


async def validate_input(hass: HomeAssistant, data: dict[str, Any]) -> dict[str, Any]:
    """Validate the user input allows us to connect."""
    try:
        config = parse_device_config(data)
    except ConfigurationError as err:
        raise InvalidConfig from err

    session = RoombaSession(config.identity)
    try:
        await session.async_connect()
        raw = await session.async_fetch_status(FIELDS_INIT)
    except RoombaConnectionError as err:
        _LOGGER.error("Connection validation failed: %s", err)
        raise CannotConnect from err
    finally:
        await session.async_disconnect()

    if raw is None:
        raise CannotConnect
    info = parse_device_info(raw, config.device_id, config.name)
    return {"title": info.name}


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Roomba Platform."""

    VERSION = 1

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Handle the initial step."""
        errors: dict[str, str] = {}

        if user_input is not None:
            await self.async_set_unique_id(str(user_input[CONF_BLID]).strip())
            self._abort_if_unique_id_configured()
            try:
                info = await validate_input(self.hass, user_input)
            except InvalidConfig:
                errors["base"] = "invalid_config"
            except CannotConnect:
                errors["base"] = "cannot_connect"
            except Exception:  # pylint: disable=broad-except
                _LOGGER.exception("Unexpected exception")
                errors["base"] = "unknown"
            else:
                return self.async_create_entry(title=info["title"], data=user_input)

        return self.async_show_form(
            step_id="user",
            data_schema=STEP_USER_DATA_SCHEMA,
            errors=errors,
        )

    async def async_step_import(self, import_data: dict[str, Any]) -> FlowResult:
        """Import a robot configured in YAML.

        The robot is not contacted here; setup retries until it is reachable.
        """
        try:
            config = parse_device_config(import_data)
        except ConfigurationError as err:
            _LOGGER.error("Not importing robot from YAML: %s", err)
            return self.async_abort(reason="invalid_config")

        await self.async_set_unique_id(config.device_id)
        self._abort_if_unique_id_configured(updates=import_data)
        return self.async_create_entry(
            title=config.name or config.device_id, data=import_data
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: config_entries.ConfigEntry):
        return OptionsFlowHandler(config_entry)


def _rooms_to_json(maps: list[dict[str, Any]]) -> str:
    return json.dumps(maps or [])


def _rooms_from_json(text: str) -> list[dict[str, Any]]:
    """Parse and validate the rooms JSON. Raises InvalidRooms."""
    try:
        maps = json.loads(text or "[]")
        maps = vol.Schema([MAP_SCHEMA])(maps)
    except (ValueError, vol.Invalid) as err:
        raise InvalidRooms from err
    return maps


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handle options for the integration."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._config_entry = config_entry

    async def async_step_init(self, user_input: dict[str, Any] | None = None) -> FlowResult:
        """Manage polling, visibility and rooms."""
        errors: dict[str, str] = {}
        current = {**self._config_entry.data, **self._config_entry.options}

        if user_input is not None:
            options = {
                key: value for key, value in user_input.items() if key != CONF_ROOMS_JSON
            }
            try:
                options[CONF_MAPS] = _rooms_from_json(user_input.get(CONF_ROOMS_JSON, ""))
                parse_device_config({**self._config_entry.data, **options})
            except (InvalidRooms, ConfigurationError):
                errors[CONF_ROOMS_JSON] = "invalid_rooms"
            else:
                return self.async_create_entry(title="", data=options)

        schema = vol.Schema(
            {
                vol.Optional(
                    CONF_POLLING_INTERVAL,
                    default=current.get(CONF_POLLING_INTERVAL, DEFAULT_POLLING_INTERVAL),
                ): POLLING_INTERVAL_SCHEMA,
                **{
                    vol.Optional(key, default=bool(current.get(key, False))): bool
                    for key in VISIBILITY_KEYS
                },
                vol.Optional(
                    CONF_ROOMS_JSON,
                    default=_rooms_to_json(current.get(CONF_MAPS, [])),
                ): str,
            }
        )

        return self.async_show_form(step_id="init", data_schema=schema, errors=errors)


class CannotConnect(HomeAssistantError):
    """Error to indicate we cannot connect."""


class InvalidConfig(HomeAssistantError):
    """Error to indicate the robot settings are invalid."""


class InvalidRooms(HomeAssistantError):
    """Error to indicate the rooms JSON is invalid."""
