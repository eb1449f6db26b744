import os

import pytest

from hudstats.gamepad import Gamepad, battery_level, gamepad_info, scan_gamepads


def _make(root, name, **files):
    path = root / name
    path.mkdir()
    for filename, content in files.items():
        (path / filename).write_text(content + "\n")
    return str(path)


def test_battery_level_ranges():
    assert battery_level(0) == "Low"
    assert battery_level(25) == "Low"
    assert battery_level(26) == "Normal"
    assert battery_level(50) == "High"
    assert battery_level(75) == "Full"
    assert battery_level(100) == "Full"


def test_battery_level_out_of_range():
    assert battery_level(101) is None
    assert battery_level(-1) is None


def test_scan_finds_only_controllers(tmp_path):
    _make(tmp_path, "BAT0")
    _make(tmp_path, "sony_controller_battery_aa")
    _make(tmp_path, "gip0")
    found = scan_gamepads(str(tmp_path))
    assert [os.path.basename(p) for p in found] == ["gip0", "sony_controller_battery_aa"]


def test_scan_missing_directory_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        scan_gamepads(str(tmp_path / "absent"))


def test_single_controller_named_without_number(tmp_path):
    path = _make(tmp_path, "sony_controller_battery_aa", capacity="60", status="Discharging")
    pads = gamepad_info([path])
    assert pads == [Gamepad(name="DS4 PAD", battery="High", battery_percent="60",
                            report_percent=True, is_charging=False)]


def test_several_controllers_numbered_and_sorted(tmp_path):
    a = _make(tmp_path, "gip0", capacity="10")
    b = _make(tmp_path, "xpadneo1", capacity="90")
    pads = gamepad_info([a, b])
    assert [p.name for p in pads] == ["XBOX PAD-1", "XBOX PAD-2"]
    assert [p.battery for p in pads] == ["Low", "Full"]


def test_capacity_level_used_without_capacity(tmp_path):
    path = _make(tmp_path, "hid-e4aa", capacity_level="Critical", status="Charging")
    (pad,) = gamepad_info([path])
    assert pad.name == "8BITDO PAD"
    assert pad.battery == "Critical"
    assert pad.report_percent is False
    assert pad.is_charging is True


def test_full_status_counts_as_charging(tmp_path):
    path = _make(tmp_path, "ps-controller-battery-aa", capacity="100", status="Full")
    (pad,) = gamepad_info(scan_gamepads(str(tmp_path)))
    assert pad.name == "DS5 PAD"
    assert pad.is_charging is True
    assert pad.battery_percent == "100"
    assert path.endswith("ps-controller-battery-aa")


def test_bad_capacity_raises(tmp_path):
    path = _make(tmp_path, "nintendo_switch_controller_aa", capacity="n/a")
    with pytest.raises(ValueError):
        gamepad_info([path])


def test_empty_input_gives_no_pads():
    assert gamepad_info([]) == []