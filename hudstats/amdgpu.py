"""Reading and averaging the amdgpu ``gpu_metrics`` table."""

from __future__ import annotations

import dataclasses
import logging
import struct
import threading
from collections.abc import Sequence
from dataclasses import dataclass

_log = logging.getLogger(__name__)

METRICS_UPDATE_PERIOD_MS = 500
METRICS_POLLING_PERIOD_MS = 5
METRICS_SAMPLE_COUNT = METRICS_UPDATE_PERIOD_MS // METRICS_POLLING_PERIOD_MS

_HEADER = struct.Struct("<HBB")
V1_3_SIZE = 120
V2_2_SIZE = 128
_SUPPORTED_SIZES = (96, 104, V1_3_SIZE, V2_2_SIZE)
_MAX_SIZE = max(V1_3_SIZE, V2_2_SIZE)

# Field offsets within gpu_metrics v1.3 (desktop GPUs).
_V1_TEMPERATURE_EDGE = 4
_V1_AVERAGE_GFX_ACTIVITY = 16
_V1_AVERAGE_SOCKET_POWER = 22
_V1_AVERAGE_GFXCLK = 40
_V1_CURRENT_UCLK = 58
_V1_INDEP_THROTTLE = 112

# Field offsets within gpu_metrics v2.2 (APUs).
_V2_TEMPERATURE_GFX = 4
_V2_TEMPERATURE_SOC = 6
_V2_TEMPERATURE_CORE = 8
_V2_CORE_COUNT = 8
_V2_AVERAGE_GFX_ACTIVITY = 28
_V2_AVERAGE_CPU_POWER = 42
_V2_AVERAGE_GFX_POWER = 46
_V2_CURRENT_GFXCLK = 76
_V2_CURRENT_UCLK = 80
_V2_INDEP_THROTTLE = 120


@dataclass(frozen=True)
class MetricsHeader:
    """Common header of every gpu_metrics table."""

    structure_size: int
    format_revision: int
    content_revision: int

    @classmethod
    def unpack(cls, data: bytes) -> MetricsHeader:
        if len(data) < _HEADER.size:
            raise ValueError("gpu_metrics header is truncated")
        return cls(*_HEADER.unpack_from(data))


@dataclass
class AmdgpuMetrics:
    """Values taken from one or more metrics samples."""

    gpu_load_percent: int = 0
    average_gfx_power_w: float = 0.0
    average_cpu_power_w: float = 0.0
    current_gfxclk_mhz: int = 0
    current_uclk_mhz: int = 0
    soc_temp_c: int = 0
    gpu_temp_c: int = 0
    apu_cpu_temp_c: int = 0
    is_power_throttled: bool = False
    is_current_throttled: bool = False
    is_temp_throttled: bool = False
    is_other_throttled: bool = False
    device_type: str = ""


def check_metrics(path: str) -> bool:
    """Whether ``path`` holds a gpu_metrics table of a supported version."""
    try:
        with open(path, "rb") as fh:
            data = fh.read(_HEADER.size)
    except OSError:
        return False
    if len(data) < _HEADER.size:
        _log.debug("Failed to read the metrics header of '%s'", path)
        return False

    header = MetricsHeader.unpack(data)
    if header.structure_size == 80:
        # v1.0 is not naturally aligned.
        return False
    if header.structure_size in _SUPPORTED_SIZES and header.format_revision in (1, 2):
        return True
    _log.warning("Unsupported gpu_metrics version: %d.%d",
                 header.format_revision, header.content_revision)
    return False


def _u16(data: bytes, offset: int) -> int:
    return struct.unpack_from("<H", data, offset)[0]


def _u64(data: bytes, offset: int) -> int:
    return struct.unpack_from("<Q", data, offset)[0]


def parse_metrics(data: bytes, cpu_count: int = 0) -> AmdgpuMetrics:
    """Decode a gpu_metrics table; ``cpu_count`` counts logical CPUs."""
    data = bytes(data[:_MAX_SIZE]).ljust(_MAX_SIZE, b"\0")
    header = MetricsHeader.unpack(data)
    metrics = AmdgpuMetrics()
    throttle = 0

    if header.format_revision == 1:
        metrics.device_type = "GPU"
        metrics.gpu_load_percent = _u16(data, _V1_AVERAGE_GFX_ACTIVITY)
        metrics.average_gfx_power_w = float(_u16(data, _V1_AVERAGE_SOCKET_POWER))
        metrics.current_gfxclk_mhz = _u16(data, _V1_AVERAGE_GFXCLK)
        metrics.current_uclk_mhz = _u16(data, _V1_CURRENT_UCLK)
        metrics.gpu_temp_c = _u16(data, _V1_TEMPERATURE_EDGE)
        throttle = _u64(data, _V1_INDEP_THROTTLE)
    elif header.format_revision == 2:
        metrics.device_type = "APU"
        metrics.gpu_load_percent = _u16(data, _V2_AVERAGE_GFX_ACTIVITY)
        metrics.average_gfx_power_w = _u16(data, _V2_AVERAGE_GFX_POWER) / 1000.0
        metrics.average_cpu_power_w = _u16(data, _V2_AVERAGE_CPU_POWER) / 1000.0
        metrics.current_gfxclk_mhz = _u16(data, _V2_CURRENT_GFXCLK)
        metrics.current_uclk_mhz = _u16(data, _V2_CURRENT_UCLK)
        metrics.soc_temp_c = _u16(data, _V2_TEMPERATURE_SOC) // 100
        metrics.gpu_temp_c = _u16(data, _V2_TEMPERATURE_GFX) // 100
        cores = struct.unpack_from(f"<{_V2_CORE_COUNT}H", data, _V2_TEMPERATURE_CORE)
        physical = min(cpu_count // 2, _V2_CORE_COUNT)
        metrics.apu_cpu_temp_c = max(cores[:physical], default=0) // 100
        throttle = _u64(data, _V2_INDEP_THROTTLE)

    metrics.is_power_throttled = (throttle & 0xFF) != 0
    metrics.is_current_throttled = ((throttle >> 16) & 0xFF) != 0
    metrics.is_temp_throttled = ((throttle >> 32) & 0xFFFF) != 0
    metrics.is_other_throttled = ((throttle >> 56) & 0xFF) != 0
    return metrics


def read_instant_metrics(path: str, cpu_count: int = 0) -> AmdgpuMetrics | None:
    """Read and decode the metrics file; None if it cannot be read."""
    try:
        with open(path, "rb") as fh:
            data = fh.read(_MAX_SIZE)
    except OSError:
        _log.debug("Failed to read amdgpu metrics file '%s'", path)
        return None
    if len(data) < _HEADER.size:
        _log.debug("Failed to read amdgpu metrics file '%s'", path)
        return None
    return parse_metrics(data, cpu_count)


def aggregate_samples(samples: Sequence[AmdgpuMetrics]) -> AmdgpuMetrics:
    """Average loads, power and clocks; keep the peak temperatures and flags."""
    if not samples:
        raise ValueError("no samples to aggregate")
    count = len(samples)
    return AmdgpuMetrics(
        gpu_load_percent=sum(s.gpu_load_percent for s in samples) // count,
        average_gfx_power_w=sum(s.average_gfx_power_w for s in samples) / count,
        average_cpu_power_w=sum(s.average_cpu_power_w for s in samples) / count,
        current_gfxclk_mhz=sum(s.current_gfxclk_mhz for s in samples) // count,
        current_uclk_mhz=sum(s.current_uclk_mhz for s in samples) // count,
        soc_temp_c=max(s.soc_temp_c for s in samples),
        gpu_temp_c=max(s.gpu_temp_c for s in samples),
        apu_cpu_temp_c=max(s.apu_cpu_temp_c for s in samples),
        is_power_throttled=any(s.is_power_throttled for s in samples),
        is_current_throttled=any(s.is_current_throttled for s in samples),
        is_temp_throttled=any(s.is_temp_throttled for s in samples),
        is_other_throttled=any(s.is_other_throttled for s in samples),
        device_type=samples[-1].device_type,
    )


class AmdgpuPoller:
    """Samples the metrics file in the background and keeps an aggregate.

    ``sample_count`` and ``poll_interval`` may be changed before ``start``.
    """

    def __init__(self, path: str, cpu_count: int = 0):
        self.path = path
        self.cpu_count = cpu_count
        self.sample_count = METRICS_SAMPLE_COUNT
        self.poll_interval = METRICS_POLLING_PERIOD_MS / 1000
        self._latest = AmdgpuMetrics()
        self._samples: list[AmdgpuMetrics] = []
        # Some GPUs report load in hundredths of a percent.
        self._load_needs_dividing = False
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def _fix_load(self, metrics: AmdgpuMetrics) -> None:
        if self._load_needs_dividing or metrics.gpu_load_percent > 100:
            self._load_needs_dividing = True
            metrics.gpu_load_percent //= 100

    def _ensure_samples(self) -> None:
        if self.sample_count < 1:
            raise ValueError("sample_count must be positive")
        if len(self._samples) != self.sample_count:
            self._samples = [AmdgpuMetrics() for _ in range(self.sample_count)]

    def poll_once(self) -> AmdgpuMetrics:
        """Take one full round of samples and publish their aggregate."""
        self._ensure_samples()
        for i in range(self.sample_count):
            sample = read_instant_metrics(self.path, self.cpu_count)
            if sample is not None:
                self._fix_load(sample)
                self._samples[i] = sample
            if self._stop.wait(self.poll_interval):
                break
        result = aggregate_samples(self._samples)
        with self._lock:
            self._latest = result
        return dataclasses.replace(result)

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll_once()

    def start(self) -> None:
        """Take a first reading right away and start sampling in a thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._ensure_samples()
        first = read_instant_metrics(self.path, self.cpu_count)
        if first is not None:
            if first.gpu_load_percent > 100:
                self._load_needs_dividing = True
                first.gpu_load_percent //= 100
            with self._lock:
                self._latest = first
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="amdgpu-metrics",
                                        daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the sampling thread and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def latest(self) -> AmdgpuMetrics:
        """A copy of the most recent aggregate."""
        with self._lock:
            return dataclasses.replace(self._latest)