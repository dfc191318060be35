import pytest

from conftest import BLID, make_init_raw, make_raw
from roomba_core.const import Command, Phase
from roomba_core.errors import MalformedTelemetryError
from roomba_core.models import Region
from roomba_core.telemetry import (
    extract_region,
    normalize,
    normalize_battery,
    normalize_phase,
    parse_device_info,
)


def test_normalize_docked_robot():
    status = normalize(make_raw("charge", battery=87, bin_full=True, command="dock"))

    assert status.phase is Phase.CHARGING
    assert status.battery_percent == 87
    assert status.bin_full is True
    assert status.last_command is Command.DOCK
    assert status.active_region is None
    assert status.mission_id == "1"


def test_normalize_region_mission():
    raw = make_raw("run", command="start", pmap_id="map1", regions=[11, "12"], mission=42)

    status = normalize(raw)

    assert status.phase is Phase.RUNNING
    assert status.active_region == Region("map1", ("11", "12"))
    assert status.mission_id == "42"


def test_region_dropped_when_not_running():
    raw = make_raw("stop", command="pause", pmap_id="map1", regions=["11"])

    assert normalize(raw).active_region is None


@pytest.mark.parametrize("phase", ["hmMidMsn", "hmPostMsn", "hmUsrDock"])
def test_docking_phases_are_returning(phase):
    assert normalize_phase(phase) is Phase.RETURNING


@pytest.mark.parametrize("phase", ["", "charging", None, 3])
def test_unknown_phase_is_malformed(phase):
    with pytest.raises(MalformedTelemetryError):
        normalize_phase(phase)


@pytest.mark.parametrize(
    "value,expected", [(50, 50), ("75", 75), (101, 100), (-3, 0), (99.6, 99)]
)
def test_battery_is_clamped(value, expected):
    assert normalize_battery(value) == expected


@pytest.mark.parametrize(
    "value", [None, True, "full", {}, "inf", "-inf", "nan", float("inf")]
)
def test_invalid_battery(value):
    with pytest.raises(MalformedTelemetryError):
        normalize_battery(value)


def test_infinite_battery_is_malformed_telemetry():
    with pytest.raises(MalformedTelemetryError):
        normalize(make_raw("run", command="start", battery="inf"))


@pytest.mark.parametrize("field", ["batPct", "bin", "cleanMissionStatus", "lastCommand"])
def test_missing_required_field(field):
    raw = make_raw()
    del raw[field]

    with pytest.raises(MalformedTelemetryError):
        normalize(raw)


def test_missing_bin_full_is_malformed():
    raw = make_raw()
    raw["bin"] = {"present": True}

    with pytest.raises(MalformedTelemetryError):
        normalize(raw)


def test_non_mapping_payload_is_malformed():
    with pytest.raises(MalformedTelemetryError):
        normalize(None)
    with pytest.raises(MalformedTelemetryError):
        normalize([])


def test_unknown_last_command_is_none():
    status = normalize(make_raw("run", command="train"))

    assert status.last_command is None


def test_clean_region_command_is_reported_as_start():
    status = normalize(make_raw("run", command="start"))

    assert status.last_command is Command.START


def test_extract_region_dedupes_and_normalizes_ids():
    region = extract_region(
        {"pmap_id": 7, "regions": [{"region_id": 3}, {"region_id": "3"}, {"region_id": 4.0}]}
    )

    assert region == Region("7", ("3", "4"))


def test_extract_region_without_block():
    assert extract_region({"command": "start"}) is None
    assert extract_region({"command": "start", "regions": []}) is None
    assert extract_region({"regions": [{"region_id": "1"}]}) is None


def test_extract_region_rejects_malformed_entry():
    with pytest.raises(MalformedTelemetryError):
        extract_region({"pmap_id": "m", "regions": [{"type": "rid"}]})


def test_parse_device_info():
    info = parse_device_info(make_init_raw(), BLID)

    assert info.name == "Rosie"
    assert info.model == "R960020"
    assert info.serial == "AXB1234567"


def test_parse_device_info_prefers_configured_name():
    info = parse_device_info(make_init_raw(), BLID, "Downstairs")

    assert info.name == "Downstairs"


def test_parse_device_info_falls_back_to_blid():
    info = parse_device_info(make_raw(), BLID)

    assert info.name == BLID
    assert info.model is None
    assert info.serial is None
