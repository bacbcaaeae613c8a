"""Live host statistics: CPU, memory, load, disks and the busiest processes."""

from __future__ import annotations

import re
import subprocess
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from netwatch.sysinfo import SystemInfo, collect_system_info

PROC_STAT_PATH = Path("/proc/stat")
MEMINFO_PATH = Path("/proc/meminfo")
LOADAVG_PATH = Path("/proc/loadavg")

MACOS_PAGE_SIZE = 4096
TOP_PROCESS_COUNT = 5
BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")

_SIZE_MULTIPLIERS = {
    "K": 1024.0,
    "M": 1024.0**2,
    "G": 1024.0**3,
    "T": 1024.0**4,
}

_UINT = re.compile(r"\+?[0-9]+")
_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class CpuStats:
    """Cumulative CPU time counters, in clock ticks."""

    user: int = 0
    nice: int = 0
    system: int = 0
    idle: int = 0
    iowait: int = 0
    irq: int = 0
    softirq: int = 0
    steal: int = 0

    def total(self) -> int:
        """Sum of all counters."""
        return (
            self.user
            + self.nice
            + self.system
            + self.idle
            + self.iowait
            + self.irq
            + self.softirq
            + self.steal
        )


_IDLE_CPU = CpuStats(idle=1000)


@dataclass(frozen=True)
class DiskUsage:
    """Space on one mounted filesystem, in bytes."""

    total: int
    used: int
    available: int
    usage_percent: float
    filesystem: str


@dataclass(frozen=True)
class ProcessInfo:
    """One row of the process table."""

    pid: int
    name: str
    cpu_percent: float
    memory_percent: float
    memory_rss: int
    memory_vms: int
    command: str
    user: str
    state: str


@dataclass(frozen=True)
class SystemStats:
    """A snapshot of the host's load."""

    cpu_usage_percent: float
    memory_usage_percent: float
    memory_used: int
    memory_available: int
    load_average: tuple[float, float, float]
    disk_usage: dict[str, DiskUsage] = field(default_factory=dict)
    top_processes: list[ProcessInfo] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _uint(text: str, limit: int = _U64_MAX) -> int | None:
    if not _UINT.fullmatch(text):
        return None
    value = int(text)
    return value if value <= limit else None


def _float(text: str) -> float | None:
    if not text or "_" in text or text != text.strip():
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _float_or_zero(text: str) -> float:
    value = _float(text)
    return 0.0 if value is None else value


def _as_u64(value: float) -> int:
    if value != value or value <= 0:
        return 0
    if value >= 2.0**64:
        return _U64_MAX
    return int(value)


def _run(*args: str) -> str:
    """Stdout of a command; raises OSError if it cannot be started."""
    result = subprocess.run(list(args), capture_output=True, check=False)
    return result.stdout.decode("utf-8", errors="replace")


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise OSError(f"{path} is not valid UTF-8") from exc


def _is_linux() -> bool:
    return sys.platform.startswith("linux")


def _is_macos() -> bool:
    return sys.platform == "darwin"


def parse_cpu_stats(text: str) -> CpuStats | None:
    """CPU counters from the first line of /proc/stat, or None if it is not there."""
    lines = _lines(text)
    if not lines or not lines[0].startswith("cpu "):
        return None
    parts = lines[0].split()
    if len(parts) < 8:
        return None
    values = [_uint(part) or 0 for part in parts[1:8]]
    steal = _uint(parts[8]) or 0 if len(parts) > 8 else 0
    return CpuStats(*values, steal=steal)


def cpu_usage_between(previous: CpuStats | None, current: CpuStats) -> float:
    """Busy percentage between two readings; 0.0 without a usable earlier one."""
    if previous is None:
        return 0.0
    total_diff = current.total() - previous.total()
    if total_diff <= 0:
        return 0.0
    idle_diff = current.idle - previous.idle
    usage = (total_diff - idle_diff) / total_diff * 100.0
    return min(max(usage, 0.0), 100.0)


def parse_memory_stats(text: str) -> tuple[float, int, int]:
    """(usage percent, used bytes, available bytes) from /proc/meminfo contents."""
    total = available = 0
    for line in _lines(text):
        if line.startswith("MemTotal:"):
            parts = line.split()
            if len(parts) >= 2:
                total = (_uint(parts[1]) or 0) * 1024
        elif line.startswith("MemAvailable:"):
            parts = line.split()
            if len(parts) >= 2:
                available = (_uint(parts[1]) or 0) * 1024
    used = max(total - available, 0)
    percent = used / total * 100.0 if total > 0 else 0.0
    return percent, used, available


def _extract_pages(line: str) -> int:
    for token in line.split():
        if all(c in "0123456789" for c in token):
            return _uint(token) or 0
    return 0


def parse_vm_stat(text: str, total_memory: int) -> tuple[float, int, int]:
    """(usage percent, used bytes, available bytes) from vm_stat output."""
    free = active = inactive = wired = compressed = 0
    for line in _lines(text):
        if "Pages free:" in line:
            free = _extract_pages(line)
        elif "Pages active:" in line:
            active = _extract_pages(line)
        elif "Pages inactive:" in line:
            inactive = _extract_pages(line)
        elif "Pages wired down:" in line:
            wired = _extract_pages(line)
        elif "Pages stored in compressor:" in line:
            compressed = _extract_pages(line)
    used = (active + inactive + wired + compressed) * MACOS_PAGE_SIZE
    available = free * MACOS_PAGE_SIZE
    percent = used / total_memory * 100.0 if total_memory > 0 else 0.0
    return percent, used, available


def parse_load_average(text: str) -> tuple[float, float, float]:
    """1, 5 and 15 minute load averages from /proc/loadavg or uptime output."""
    parts = text.split()
    if len(parts) >= 3:
        one, five, fifteen = (_float_or_zero(part) for part in parts[:3])
        return one, five, fifteen

    start = text.find("load average")
    if start >= 0:
        rest = text[start:]
        colon = rest.find(":")
        if colon >= 0 and colon + 1 < len(rest):
            numbers = rest[colon + 1 :].split(",")
            if len(numbers) >= 3:
                one, five, fifteen = (_float_or_zero(n.strip()) for n in numbers[:3])
                return one, five, fifteen
    return 0.0, 0.0, 0.0


def parse_size(size_str: str) -> int:
    """Bytes from a human readable size such as '1.5G'; 0 if it cannot be read."""
    size_str = size_str.strip()
    if not size_str or size_str == "-":
        return 0
    if size_str[-1].isalpha() and len(size_str) > 1:
        number_part, suffix = size_str[:-1], size_str[-1]
    else:
        number_part, suffix = size_str, ""
    number = _float_or_zero(number_part)
    return _as_u64(number * _SIZE_MULTIPLIERS.get(suffix.upper(), 1.0))


def parse_df_output(text: str) -> dict[str, DiskUsage]:
    """Disk usage keyed by mount point from 'df -h' output."""
    usage: dict[str, DiskUsage] = {}
    for line in _lines(text)[1:]:
        parts = line.split()
        if len(parts) < 6:
            continue
        usage[parts[5]] = DiskUsage(
            total=parse_size(parts[1]),
            used=parse_size(parts[2]),
            available=parse_size(parts[3]),
            usage_percent=_float_or_zero(parts[4].rstrip("%")),
            filesystem=parts[0],
        )
    return usage


def parse_ps_output(text: str) -> list[ProcessInfo]:
    """The busiest processes, by CPU share, from 'ps aux' output."""
    processes = []
    for line in _lines(text)[1:]:
        parts = line.split()
        if len(parts) < 11:
            continue
        processes.append(
            ProcessInfo(
                pid=_uint(parts[1], _U32_MAX) or 0,
                name=parts[10].split("/")[-1],
                cpu_percent=_float_or_zero(parts[2]),
                memory_percent=_float_or_zero(parts[3]),
                memory_rss=(_uint(parts[5]) or 0) * 1024,
                memory_vms=(_uint(parts[4]) or 0) * 1024,
                command=" ".join(parts[10:]),
                user=parts[0],
                state=parts[7],
            )
        )
    processes.sort(key=lambda p: p.cpu_percent, reverse=True)
    return processes[:TOP_PROCESS_COUNT]


def format_bytes(num_bytes: int) -> str:
    """A byte count in the largest fitting unit, with up to two decimals."""
    size = float(num_bytes)
    unit = 0
    while size >= 1024.0 and unit < len(BYTE_UNITS) - 1:
        size /= 1024.0
        unit += 1
    if size >= 100.0:
        return f"{size:.0f} {BYTE_UNITS[unit]}"
    if size >= 10.0:
        return f"{size:.1f} {BYTE_UNITS[unit]}"
    return f"{size:.2f} {BYTE_UNITS[unit]}"


def format_uptime(seconds: float | timedelta) -> str:
    """A duration as days, hours and minutes, leaving out leading zeros."""
    if isinstance(seconds, timedelta):
        seconds = seconds.total_seconds()
    total = max(int(seconds), 0)
    days = total // 86400
    hours = total % 86400 // 3600
    minutes = total % 3600 // 60
    if days > 0:
        return f"{days}d {hours}h {minutes}m"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


class SystemMonitor:
    """Takes snapshots of the host's load, falling back to zeros where data is missing."""

    def __init__(self, system_info: SystemInfo | None = None) -> None:
        self._info = system_info if system_info is not None else collect_system_info()
        self._last_cpu: CpuStats | None = None
        self.last_update = datetime.now(timezone.utc)

    def system_info(self) -> SystemInfo:
        """The static facts gathered when the monitor was created."""
        return self._info

    def get_current_stats(self) -> SystemStats:
        """A fresh snapshot of CPU, memory, load, disks and processes."""
        now = datetime.now(timezone.utc)
        cpu_usage = self._cpu_usage()
        memory_percent, memory_used, memory_available = self._memory_stats()
        stats = SystemStats(
            cpu_usage_percent=cpu_usage,
            memory_usage_percent=memory_percent,
            memory_used=memory_used,
            memory_available=memory_available,
            load_average=self._load_average(),
            disk_usage=self._disk_usage(),
            top_processes=self._top_processes(),
            timestamp=now,
        )
        self.last_update = now
        return stats

    def _read_cpu_stats(self) -> CpuStats:
        if _is_linux():
            parsed = parse_cpu_stats(_read(PROC_STAT_PATH))
            if parsed is not None:
                return parsed
        return _IDLE_CPU

    def _cpu_usage(self) -> float:
        try:
            current = self._read_cpu_stats()
        except OSError:
            return 0.0
        usage = cpu_usage_between(self._last_cpu, current)
        self._last_cpu = current
        return usage

    def _memory_stats(self) -> tuple[float, int, int]:
        try:
            if _is_linux():
                return parse_memory_stats(_read(MEMINFO_PATH))
            if _is_macos():
                return parse_vm_stat(_run("vm_stat"), self._info.total_memory)
        except OSError:
            pass
        return 0.0, 0, 0

    def _load_average(self) -> tuple[float, float, float]:
        if not (_is_linux() or _is_macos()):
            return 0.0, 0.0, 0.0
        try:
            content = _read(LOADAVG_PATH)
        except OSError:
            try:
                content = _run("uptime")
            except OSError:
                return 0.0, 0.0, 0.0
        return parse_load_average(content)

    def _disk_usage(self) -> dict[str, DiskUsage]:
        try:
            return parse_df_output(_run("df", "-h"))
        except OSError:
            return {}

    def _top_processes(self) -> list[ProcessInfo]:
        try:
            try:
                output = _run("ps", "aux", "--sort=-pcpu")
            except OSError:
                output = _run("ps", "aux")
        except OSError:
            return []
        return parse_ps_output(output)