"""Battery state of game controllers exposed under the power-supply class."""

from __future__ import annotations

import os
import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")

# Display name of each controller family and the name fragments that identify it.
_KINDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("XBOX PAD", ("gip", "xpadneo")),
    ("DS4 PAD", ("sony_controller",)),
    ("DS5 PAD", ("ps-controller",)),
    ("SWITCH PAD", ("nintendo_switch_controller",)),
    ("8BITDO PAD", ("hid-e4",)),
)


@dataclass
class Gamepad:
    """One controller as shown in the overlay."""

    name: str = ""
    battery: str = ""
    battery_percent: str = ""
    report_percent: bool = False
    is_charging: bool = False


def _first_line(path: str) -> str | None:
    try:
        with open(path, encoding="utf-8", errors="replace", newline="") as fh:
            text = fh.readline()
    except OSError:
        return None
    if not text:
        return None
    return text.split("\n", 1)[0]


def _parse_int(text: str) -> int:
    match = _INT_PREFIX.match(text)
    if match is None:
        raise ValueError(f"not a battery percentage: {text!r}")
    return int(match.group(1))


def scan_gamepads(power_supply_dir: str = "/sys/class/power_supply") -> list[str]:
    """Paths of controller entries, one per matching name fragment."""
    paths = []
    for name in sorted(os.listdir(power_supply_dir)):
        path = os.path.join(power_supply_dir, name)
        for _, fragments in _KINDS:
            for fragment in fragments:
                if fragment in name:
                    paths.append(path)
    return paths


def battery_level(percent: int) -> str | None:
    """Coarse battery level for a percentage; None outside 0..100."""
    if 0 <= percent <= 25:
        return "Low"
    if 26 <= percent <= 49:
        return "Normal"
    if 50 <= percent <= 74:
        return "High"
    if 75 <= percent <= 100:
        return "Full"
    return None


def _matches(name: str, fragments: Iterable[str]) -> bool:
    return any(fragment in name for fragment in fragments)


def gamepad_info(paths: Iterable[str]) -> list[Gamepad]:
    """Read name, charge and charging state of each controller, sorted by name."""
    paths = list(paths)
    names = [os.path.basename(path) for path in paths]
    totals = Counter(
        label for name in names for label, fragments in _KINDS if _matches(name, fragments)
    )
    seen: Counter[str] = Counter()
    pads = []

    for path, name in zip(paths, names):
        pad = Gamepad()
        for label, fragments in _KINDS:
            if not _matches(name, fragments):
                continue
            if totals[label] == 1:
                pad.name = label
            else:
                pad.name = f"{label}-{seen[label] + 1}"
            seen[label] += 1

        status = _first_line(os.path.join(path, "status"))
        if status in ("Charging", "Full"):
            pad.is_charging = True

        capacity = os.path.join(path, "capacity")
        if os.path.exists(capacity):
            line = _first_line(capacity)
            if line is not None:
                pad.battery_percent = line
                pad.report_percent = True
                level = battery_level(_parse_int(line))
                if level is not None:
                    pad.battery = level
        else:
            line = _first_line(os.path.join(path, "capacity_level"))
            if line is not None:
                pad.battery = line
        pads.append(pad)

    pads.sort(key=lambda pad: pad.name)
    return pads