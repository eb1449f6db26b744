"""Per-core and total CPU load from the kernel's /proc/stat counters."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass

_log = logging.getLogger(__name__)

_U64 = (1 << 64) - 1
_CPU_NAME = re.compile(r"cpu(\d*)")
_CPU_ID_PREFIX = re.compile(r"cpu(\d{1,4})")

StatValues = tuple[int, int, int, int, int, int, int, int, int, int]


def _wrap_subtract(a: int, b: int) -> int:
    return a - b if a > b else 0


@dataclass
class CPUData:
    """Counters, deltas since the previous sample and derived figures for one CPU."""

    cpu_id: int = 0

    total_time: int = 0
    user_time: int = 0
    system_time: int = 0
    system_all_time: int = 0
    idle_all_time: int = 0
    idle_time: int = 0
    nice_time: int = 0
    io_wait_time: int = 0
    irq_time: int = 0
    soft_irq_time: int = 0
    steal_time: int = 0
    guest_time: int = 0

    total_period: int = 0
    user_period: int = 0
    system_period: int = 0
    system_all_period: int = 0
    idle_all_period: int = 0
    idle_period: int = 0
    nice_period: int = 0
    io_wait_period: int = 0
    irq_period: int = 0
    soft_irq_period: int = 0
    steal_period: int = 0
    guest_period: int = 0

    percent: float = 0.0
    mhz: int = 0
    temp: int = 0
    cpu_mhz: int = 0
    power: float = 0.0

    def update(self, usertime, nicetime, systemtime, idletime, io_wait,
               irq, soft_irq, steal, guest, guestnice) -> None:
        """Take a new counter sample and recompute periods and load percent."""
        # Guest time is already counted in user time.
        usertime = (usertime - guest) & _U64
        nicetime = (nicetime - guestnice) & _U64
        idlealltime = idletime + io_wait
        systemalltime = systemtime + irq + soft_irq
        virtalltime = guest + guestnice
        totaltime = (usertime + nicetime + systemalltime + idlealltime
                     + steal + virtalltime) & _U64

        self.user_period = _wrap_subtract(usertime, self.user_time)
        self.nice_period = _wrap_subtract(nicetime, self.nice_time)
        self.system_period = _wrap_subtract(systemtime, self.system_time)
        self.system_all_period = _wrap_subtract(systemalltime, self.system_all_time)
        self.idle_all_period = _wrap_subtract(idlealltime, self.idle_all_time)
        self.idle_period = _wrap_subtract(idletime, self.idle_time)
        self.io_wait_period = _wrap_subtract(io_wait, self.io_wait_time)
        self.irq_period = _wrap_subtract(irq, self.irq_time)
        self.soft_irq_period = _wrap_subtract(soft_irq, self.soft_irq_time)
        self.steal_period = _wrap_subtract(steal, self.steal_time)
        self.guest_period = _wrap_subtract(virtalltime, self.guest_time)
        self.total_period = _wrap_subtract(totaltime, self.total_time)

        self.user_time = usertime
        self.nice_time = nicetime
        self.system_time = systemtime
        self.system_all_time = systemalltime
        self.idle_all_time = idlealltime
        self.idle_time = idletime
        self.io_wait_time = io_wait
        self.irq_time = irq
        self.soft_irq_time = soft_irq
        self.steal_time = steal
        self.guest_time = virtalltime
        self.total_time = totaltime

        if self.total_period == 0:
            return
        total = float(self.total_period)
        busy = (
            self.nice_period * 100.0 / total
            + self.user_period * 100.0 / total
            + self.system_all_period * 100.0 / total
            + (self.steal_period + self.guest_period) * 100.0 / total
        )
        self.percent = min(max(busy, 0.0), 100.0)


def parse_stat_line(line: str) -> tuple[int | None, StatValues] | None:
    """Parse a ``cpu`` or ``cpuN`` line of /proc/stat.

    Returns ``(cpu_id, values)`` with ``cpu_id`` None for the aggregate line,
    or None when the line is not a CPU line with ten counters.
    """
    fields = line.split()
    if not fields:
        return None
    match = _CPU_NAME.fullmatch(fields[0])
    if match is None or len(fields) < 11:
        return None
    try:
        values = tuple(int(v) for v in fields[1:11])
    except ValueError:
        return None
    if any(v < 0 for v in values):
        return None
    digits = match.group(1)
    return (int(digits) if digits else None), values  # type: ignore[return-value]


class CPUStats:
    """Tracks load of every core and of the whole machine."""

    def __init__(self, proc_stat: str = "/proc/stat",
                 sysfs_cpu: str = "/sys/devices/system/cpu"):
        self.proc_stat = proc_stat
        self.sysfs_cpu = sysfs_cpu
        self.cpu_type = "CPU"
        self.boottime = 0
        self._cpu_data: list[CPUData] = []
        self.total = CPUData()
        self._cpu_period = 0.0
        self._updated = False
        self._inited = False

    @property
    def cpu_data(self) -> list[CPUData]:
        """Per-core data in the order the kernel lists the cores."""
        return self._cpu_data

    @property
    def cpu_period(self) -> float:
        return self._cpu_period

    @property
    def updated(self) -> bool:
        return self._updated

    def _read_lines(self) -> list[str] | None:
        try:
            with open(self.proc_stat, encoding="utf-8", errors="replace") as fh:
                return fh.read().splitlines()
        except OSError:
            _log.error("Failed to open %s", self.proc_stat)
            return None

    def init(self) -> bool:
        """Discover the cores listed in /proc/stat and take a first sample."""
        if self._inited:
            return True
        self._cpu_data = []
        lines = self._read_lines()
        if lines is None:
            return False

        first = True
        for line in lines:
            if line.startswith("cpu"):
                if first:
                    first = False
                    continue
                match = _CPU_ID_PREFIX.match(line)
                self._cpu_data.append(CPUData(
                    cpu_id=int(match.group(1)) if match else 0,
                    total_time=1,
                    total_period=1,
                ))
            elif line.startswith("btime "):
                parts = line.split()
                try:
                    self.boottime = int(parts[1])
                except (IndexError, ValueError):
                    pass
                break
        else:
            _log.debug("Failed to read all of %s", self.proc_stat)
            return False

        self._inited = True
        return self.update_cpu_data()

    def reinit(self) -> bool:
        """Forget the known cores and initialise again."""
        self._inited = False
        return self.init()

    def update_cpu_data(self) -> bool:
        """Take a new sample of every core and of the total."""
        if not self._inited:
            return False
        lines = self._read_lines()
        if lines is None:
            return False

        ret = False
        count = 0
        for line in lines:
            parsed = parse_stat_line(line)
            if parsed is None:
                break
            cpu_id, values = parsed
            if cpu_id is None:
                if ret:
                    break
                self.total.update(*values)
                ret = True
                continue
            if not ret:
                _log.debug("Failed to parse 'cpu' line:%s", line)
                return False
            if count >= len(self._cpu_data) or self._cpu_data[count].cpu_id != cpu_id:
                _log.debug("Cpu id '%d' is out of bounds or wrong index, reiniting", cpu_id)
                return self.reinit()
            self._cpu_data[count].update(*values)
            count += 1

        del self._cpu_data[count:]
        if self._cpu_data:
            self._cpu_period = self._cpu_data[0].total_period / len(self._cpu_data)
        else:
            self._cpu_period = 0.0
        self._updated = True
        return ret

    def update_core_mhz(self) -> bool:
        """Read the current clock of each core; the total keeps the highest."""
        for cpu in self._cpu_data:
            path = os.path.join(self.sysfs_cpu, f"cpu{cpu.cpu_id}", "cpufreq",
                                "scaling_cur_freq")
            try:
                with open(path, encoding="utf-8", errors="replace") as fh:
                    text = fh.read()
            except OSError:
                continue
            fields = text.split()
            try:
                khz = int(fields[0]) if fields else 0
            except ValueError:
                khz = 0
            cpu.mhz = int(khz / 1000)

        self.total.cpu_mhz = max((cpu.mhz for cpu in self._cpu_data if cpu.mhz > 0), default=0)
        return True