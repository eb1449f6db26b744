import math

import pytest

from hudstats.battery import BatteryStats


def _battery(root, name, **files):
    d = root / name
    d.mkdir()
    for key, value in files.items():
        (d / key).write_text(value + "\n")
    return d


def _stats(root):
    stats = BatteryStats(power_supply_dir=str(root))
    stats.find_batteries()
    return stats


def test_find_batteries_picks_bat_entries(tmp_path):
    _battery(tmp_path, "BAT0")
    _battery(tmp_path, "BAT1")
    _battery(tmp_path, "AC")
    _battery(tmp_path, "hidpp_battery_0")
    stats = _stats(tmp_path)
    assert stats.batt_count == 2
    assert stats.batt_check is True
    assert all("BAT" in p for p in stats.batt_paths)


def test_missing_directory_has_no_batteries(tmp_path):
    stats = BatteryStats(power_supply_dir=str(tmp_path / "none"))
    stats.update()
    assert stats.batt_count == 0
    assert stats.current_watt == 0.0
    assert stats.current_percent == 0.0


def test_power_from_current_and_voltage(tmp_path):
    _battery(tmp_path, "BAT0", status="Discharging",
             current_now="1000000", voltage_now="12000000")
    stats = _stats(tmp_path)
    assert stats.get_power() == pytest.approx(12.0)
    assert stats.current_status == "Discharging"
    assert stats.state[0] == "Discharging"


@pytest.mark.parametrize("status", ["Charging", "Unknown", "Full"])
def test_power_is_zero_when_not_draining(tmp_path, status):
    _battery(tmp_path, "BAT0", status=status,
             current_now="1000000", voltage_now="12000000")
    stats = _stats(tmp_path)
    assert stats.get_power() == 0.0


def test_power_from_power_now(tmp_path):
    _battery(tmp_path, "BAT0", status="Discharging", power_now="7500000")
    stats = _stats(tmp_path)
    assert stats.get_power() == pytest.approx(7.5)


def test_percent_full_charge(tmp_path):
    _battery(tmp_path, "BAT0", charge_now="3000000", charge_full="3000000")
    stats = _stats(tmp_path)
    assert stats.get_percent() == pytest.approx(100.0)


def test_percent_from_energy(tmp_path):
    _battery(tmp_path, "BAT0", energy_now="40000000", energy_full="40000000")
    stats = _stats(tmp_path)
    assert stats.get_percent() == pytest.approx(100.0)


def test_percent_from_capacity(tmp_path):
    _battery(tmp_path, "BAT0", capacity="75")
    stats = _stats(tmp_path)
    assert stats.get_percent() == pytest.approx(75.0)


def test_percent_without_data_is_nan(tmp_path):
    _battery(tmp_path, "BAT0")
    stats = _stats(tmp_path)
    assert stats.batt_count == 1
    percent = stats.get_percent()
    assert math.isnan(percent) is True


def test_time_remaining_from_current(tmp_path):
    _battery(tmp_path, "BAT0", current_now="2000000", charge_now="4000000")
    stats = _stats(tmp_path)
    assert stats.get_time_remaining() == pytest.approx(2.0)


def test_time_remaining_with_power_now_uses_unit_current(tmp_path):
    _battery(tmp_path, "BAT0", power_now="9000000", charge_now="5")
    stats = _stats(tmp_path)
    assert stats.get_time_remaining() == pytest.approx(5.0)
    assert list(stats.current_now_vec) == [1.0]


def test_current_history_is_bounded(tmp_path):
    _battery(tmp_path, "BAT0", current_now="1000000", charge_now="1000000")
    stats = _stats(tmp_path)
    for _ in range(30):
        stats.get_time_remaining()
    assert len(stats.current_now_vec) == 25


def test_update_fills_all_values(tmp_path):
    _battery(tmp_path, "BAT0", status="Discharging", current_now="1000000",
             voltage_now="12000000", charge_now="2000000", charge_full="2000000")
    stats = BatteryStats(power_supply_dir=str(tmp_path))
    stats.update()
    assert stats.batt_count == 1
    assert stats.current_watt == pytest.approx(12.0)
    assert stats.current_percent == pytest.approx(100.0)
    assert stats.remaining_time == pytest.approx(2.0)