# hudstats

`hudstats` collects some of the statistics a performance HUD shows. It reads
them straight from the Linux kernel's `/proc` and `/sys` interfaces. It also
packs and unpacks the binary messages that the HUD's overlay application
receives through a message queue.

The package uses only the standard library.

## Modules

| Module | What it does |
| --- | --- |
| `hudstats.cpu` | Per-core and total CPU load from `/proc/stat` (`CPUStats`, `CPUData`, `parse_stat_line`), and core clocks from cpufreq (`CPUStats.update_core_mhz`). |
| `hudstats.battery` | Laptop battery power draw, charge percentage and hours remaining (`BatteryStats`). It uses at most two batteries whose names contain `BAT`. |
| `hudstats.amdgpu` | Decodes the amdgpu `gpu_metrics` binary table, versions 1 (desktop GPU) and 2 (APU): `check_metrics`, `parse_metrics`, `read_instant_metrics`, `aggregate_samples`. `AmdgpuPoller` samples the table in a background thread and keeps an aggregate of each round. |
| `hudstats.gamepad` | Battery state of connected Xbox, DualShock 4, DualSense, Switch and 8BitDo controllers (`scan_gamepads`, `gamepad_info`, `battery_level`, `Gamepad`). |
| `hudstats.ipc_messages` | The frame-time message (`MangoappMsg.unpack`) and the control request (`CtrlMsg.pack` / `CtrlMsg.unpack`). `build_ctrl_message` turns a `[set|toggle] attribute [value]` argument list into a request and raises `UsageError` when the list is invalid. |

## Examples

CPU load:

```python
import time
from hudstats.cpu import CPUStats

stats = CPUStats()
stats.init()
time.sleep(0.5)
stats.update_cpu_data()
print(stats.total.percent, [core.percent for core in stats.cpu_data])
```

Battery:

```python
from hudstats.battery import BatteryStats

battery = BatteryStats()
battery.update()
print(battery.current_percent, battery.current_watt, battery.remaining_time)
```

amdgpu metrics:

```python
from hudstats.amdgpu import AmdgpuPoller, check_metrics

path = "/sys/class/drm/card0/device/gpu_metrics"
if check_metrics(path):
    poller = AmdgpuPoller(path, cpu_count=16)
    poller.start()
    print(poller.latest().gpu_load_percent)
    poller.stop()
```

Gamepads:

```python
from hudstats.gamepad import gamepad_info, scan_gamepads

for pad in gamepad_info(scan_gamepads()):
    print(pad.name, pad.battery, pad.is_charging)
```

Control requests:

```python
from hudstats.ipc_messages import CtrlMsg, build_ctrl_message

msg = build_ctrl_message(["set", "no_display", "true"])
payload = msg.pack()
assert CtrlMsg.unpack(payload) == msg
```

The functions that parse data need no real hardware. These are
`parse_stat_line`, `parse_metrics`, `aggregate_samples`, `battery_level`,
`MangoappMsg.unpack` and `build_ctrl_message`. The readers take their procfs and
sysfs paths as arguments (`CPUStats(proc_stat=..., sysfs_cpu=...)`,
`BatteryStats(power_supply_dir=...)`, `scan_gamepads(power_supply_dir)`), so you
can point them at a directory tree that you build yourself.

## What it does not do

- It does not draw a HUD or an overlay. It only gathers the figures.
- It does not read CPU temperature or CPU power from hwmon or powercap.
- It does not read or parse configuration files.
- It has no control socket and no process blacklist.
- It has no command-line tool, and it does not send or receive messages on a
  message queue. `ipc_messages` only builds and decodes the bytes. Sending them
  is left to the caller.