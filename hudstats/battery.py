"""Laptop battery charge, power draw and remaining time from sysfs."""

from __future__ import annotations

import logging
import math
import os
from collections import deque

_log = logging.getLogger(__name__)

MAX_BATTERIES = 2
_CURRENT_HISTORY = 25
_NOT_DRAINING = ("Charging", "Unknown", "Full")


def _first_line(path: str) -> str | None:
    """First line of a file, or None if it cannot be read or is empty."""
    try:
        with open(path, encoding="utf-8", errors="replace", newline="") as fh:
            text = fh.readline()
    except OSError:
        return None
    if not text:
        return None
    return text.split("\n", 1)[0]


def _div(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a)
    return a / b


class BatteryStats:
    """Aggregates up to two batteries found under a power-supply directory."""

    def __init__(self, power_supply_dir: str = "/sys/class/power_supply"):
        self.power_supply_dir = power_supply_dir
        self.batt_paths: list[str] = []
        self.batt_check = False
        self.current_watt = 0.0
        self.current_percent = 0.0
        self.remaining_time = 0.0
        self.current_status = ""
        self.state = [""] * MAX_BATTERIES
        self.current_now_vec: deque[float] = deque(maxlen=_CURRENT_HISTORY)

    @property
    def batt_count(self) -> int:
        return len(self.batt_paths)

    def find_batteries(self) -> None:
        """Look for entries whose name contains "BAT"."""
        try:
            names = sorted(os.listdir(self.power_supply_dir))
        except OSError:
            names = []
        self.batt_paths = [
            os.path.join(self.power_supply_dir, name) for name in names if "BAT" in name
        ][:MAX_BATTERIES]
        self.batt_check = True

    def update(self) -> None:
        """Refresh power, percentage and remaining time."""
        if not self.batt_check:
            self.find_batteries()
            if self.batt_count == 0:
                _log.error("No battery found")
        if self.batt_count > 0:
            self.current_watt = self.get_power()
            self.current_percent = self.get_percent()
            self.remaining_time = self.get_time_remaining()

    def get_percent(self) -> float:
        """Charge level in percent over all batteries."""
        charge_n = 0.0
        charge_f = 0.0
        for path in self.batt_paths:
            charge_now = os.path.join(path, "charge_now")
            energy_now = os.path.join(path, "energy_now")
            if os.path.exists(charge_now):
                now_path, full_path = charge_now, os.path.join(path, "charge_full")
            elif os.path.exists(energy_now):
                now_path, full_path = energy_now, os.path.join(path, "energy_full")
            else:
                # Only a percentage is available: average over the batteries.
                line = _first_line(os.path.join(path, "capacity"))
                if line is not None:
                    charge_n += float(line) / 100
                    charge_f = float(self.batt_count)
                continue
            line = _first_line(now_path)
            if line is not None:
                charge_n += float(line) / 1000000
            line = _first_line(full_path)
            if line is not None:
                charge_f += float(line) / 1000000
        return _div(charge_n, charge_f) * 100

    def get_power(self) -> float:
        """Power drawn in watts; zero while charging, full or unknown."""
        current = 0.0
        voltage = 0.0
        for i, path in enumerate(self.batt_paths):
            line = _first_line(os.path.join(path, "status"))
            if line is not None:
                self.current_status = line
                self.state[i] = line
            if self.state[i] in _NOT_DRAINING:
                return 0.0

            current_now = os.path.join(path, "current_now")
            if os.path.exists(current_now):
                line = _first_line(current_now)
                if line is not None:
                    current += float(line) / 1000000
                line = _first_line(os.path.join(path, "voltage_now"))
                if line is not None:
                    voltage += float(line) / 1000000
            else:
                line = _first_line(os.path.join(path, "power_now"))
                if line is not None:
                    current += float(line) / 1000000
                    voltage = 1.0
        return current * voltage

    def get_time_remaining(self) -> float:
        """Hours left, from remaining charge and the recent average current."""
        charge = 0.0
        for path in self.batt_paths:
            current_now = os.path.join(path, "current_now")
            power_now = os.path.join(path, "power_now")
            charge_now = os.path.join(path, "charge_now")
            if os.path.exists(current_now):
                line = _first_line(current_now)
                if line is not None:
                    self.current_now_vec.append(float(line))
            elif os.path.exists(power_now):
                # Both the power and the voltage figure are taken from power_now.
                line = _first_line(power_now)
                value = float(line) if line is not None else 0.0
                self.current_now_vec.append(_div(value, value))
            if os.path.exists(charge_now):
                line = _first_line(charge_now)
                if line is not None:
                    charge += float(line)

        current = _div(sum(self.current_now_vec), float(len(self.current_now_vec)))
        return _div(charge, current)