import pytest

from conftest import BLID, KITCHEN_MAPS, PASSWORD, make_config
from roomba_core.config import parse_device_config, parse_platform_config
from roomba_core.const import CONF_HIDE_BIN, CONF_HIDE_FIND, DEFAULT_POLLING_INTERVAL
from roomba_core.errors import ConfigurationError
from roomba_core.models import DeviceIdentity


def test_minimal_device_config():
    config = parse_device_config({"blid": BLID, "password": PASSWORD})

    assert config.device_id == BLID
    assert config.identity.host is None
    assert config.rooms == ()
    assert config.log_room_commands is False
    assert config.is_visible(CONF_HIDE_BIN)


def test_password_not_in_repr():
    config = make_config()

    assert PASSWORD not in repr(config.identity)


def test_rooms_are_flattened():
    config = make_config(maps=KITCHEN_MAPS)

    assert [room.name for room in config.rooms] == ["Kitchen", "Hall"]
    kitchen = config.rooms[0]
    assert kitchen.map_id == "ZtBhXs8gS5GqzYzHqZW2GQ"
    assert kitchen.region_ids == ("11", "12")


def test_numeric_region_ids_become_strings():
    config = make_config(maps=[{"pmap_id": 5, "rooms": [{"name": "Den", "region_ids": [3, 3, 4]}]}])

    room = config.rooms[0]
    assert room.map_id == "5"
    assert room.region_ids == ("3", "4")


def test_hidden_accessories():
    config = make_config(hide_find=True)

    assert not config.is_visible(CONF_HIDE_FIND)
    assert config.is_visible(CONF_HIDE_BIN)


def test_unknown_keys_are_dropped():
    config = make_config(polling_interval=10, something_else="x")

    assert config.device_id == BLID


@pytest.mark.parametrize(
    "raw",
    [
        {"password": PASSWORD},
        {"blid": BLID},
        {"blid": "", "password": PASSWORD},
        {"blid": BLID, "password": "   "},
        {"blid": BLID, "password": PASSWORD, "maps": [{"rooms": []}]},
        {
            "blid": BLID,
            "password": PASSWORD,
            "maps": [{"pmap_id": "m", "rooms": [{"name": "Den", "region_ids": []}]}],
        },
        {
            "blid": BLID,
            "password": PASSWORD,
            "maps": [{"pmap_id": "m", "rooms": [{"name": "Den", "region_ids": [""]}]}],
        },
        {"blid": BLID, "password": PASSWORD, "hide_bin": "maybe"},
    ],
)
def test_invalid_device_config(raw):
    with pytest.raises(ConfigurationError):
        parse_device_config(raw)


def test_duplicate_room_names():
    maps = [
        {"pmap_id": "a", "rooms": [{"name": "Den", "region_ids": ["1"]}]},
        {"pmap_id": "b", "rooms": [{"name": "Den", "region_ids": ["2"]}]},
    ]

    with pytest.raises(ConfigurationError, match="Duplicate room"):
        make_config(maps=maps)


def test_identity_requires_credentials():
    with pytest.raises(ConfigurationError):
        DeviceIdentity(blid=BLID, password="")


def test_platform_config_defaults():
    platform = parse_platform_config({"devices": [{"blid": BLID}]})

    assert platform.polling_interval == DEFAULT_POLLING_INTERVAL
    assert platform.devices == ({"blid": BLID},)


def test_platform_config_interval():
    platform = parse_platform_config({"polling_interval": "12", "devices": []})

    assert platform.polling_interval == 12.0


@pytest.mark.parametrize(
    "raw", [None, {}, {"devices": "nope"}, {"devices": [], "polling_interval": 0}]
)
def test_invalid_platform_config(raw):
    with pytest.raises(ConfigurationError):
        parse_platform_config(raw)
