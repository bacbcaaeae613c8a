"""Static facts about the host: name, operating system, CPU, memory and boot time."""

from __future__ import annotations

import re
import subprocess
import sys
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

OS_RELEASE_PATH = Path("/etc/os-release")
CPUINFO_PATH = Path("/proc/cpuinfo")
MEMINFO_PATH = Path("/proc/meminfo")
PROC_STAT_PATH = Path("/proc/stat")

UNKNOWN_CPU = "Unknown CPU"
FALLBACK_UPTIME = timedelta(hours=1)

_UINT = re.compile(r"\+?[0-9]+")
_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class SystemInfo:
    """Facts about the host that do not change while it runs."""

    hostname: str
    os_name: str
    os_version: str
    kernel_version: str
    architecture: str
    cpu_model: str
    cpu_cores: int
    cpu_threads: int
    total_memory: int
    boot_time: datetime
    uptime: timedelta


def _parse_uint(text: str, limit: int = _U64_MAX) -> int | None:
    if not _UINT.fullmatch(text):
        return None
    value = int(text)
    return value if value <= limit else None


def _strip_repeated_prefix(text: str, prefix: str) -> str:
    while text.startswith(prefix):
        text = text[len(prefix) :]
    return text


def _is_linux() -> bool:
    return sys.platform.startswith("linux")


def _is_macos() -> bool:
    return sys.platform == "darwin"


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None


def _command_output(*args: str) -> str:
    """Stdout of a command, trimmed; raises OSError if it cannot be started."""
    result = subprocess.run(list(args), capture_output=True, check=False)
    return result.stdout.decode("utf-8", errors="replace").strip()


def parse_os_release(text: str) -> tuple[str, str]:
    """(name, version) from the contents of an os-release file."""
    name, version = "Linux", "Unknown"
    for line in text.splitlines():
        if line.startswith("PRETTY_NAME="):
            name = _strip_repeated_prefix(line, "PRETTY_NAME=").strip('"')
        elif line.startswith("VERSION="):
            version = _strip_repeated_prefix(line, "VERSION=").strip('"')
    return name, version


def parse_cpuinfo(text: str) -> tuple[str, int, int]:
    """(model, cores, threads) from the contents of /proc/cpuinfo."""
    model = UNKNOWN_CPU
    threads = 0
    core_ids: set[int] = set()
    for line in text.splitlines():
        if line.startswith("model name"):
            parts = line.split(":")
            if len(parts) > 1:
                model = parts[1].strip()
        elif line.startswith("processor"):
            threads += 1
        elif line.startswith("core id"):
            parts = line.split(":")
            if len(parts) > 1:
                core_id = _parse_uint(parts[1].strip(), _U32_MAX)
                if core_id is not None:
                    core_ids.add(core_id)
    cores = len(core_ids) or threads
    return model, cores, threads


def parse_mem_total(text: str) -> int:
    """Total memory in bytes from /proc/meminfo contents; 0 if absent."""
    for line in text.splitlines():
        if line.startswith("MemTotal:"):
            parts = line.split()
            if len(parts) >= 2:
                kilobytes = _parse_uint(parts[1])
                if kilobytes is not None:
                    return kilobytes * 1024
    return 0


def parse_boot_time(text: str) -> int | None:
    """Boot time in seconds since the epoch from /proc/stat contents."""
    for line in text.splitlines():
        if line.startswith("btime "):
            parts = line.split()
            if len(parts) >= 2:
                seconds = _parse_uint(parts[1])
                if seconds is not None:
                    return seconds
    return None


def parse_macos_boot_time(text: str) -> int | None:
    """Boot time in seconds from output like '{ sec = 1234567890, usec = 0 }'."""
    start = text.find("sec = ")
    if start < 0:
        return None
    rest = text[start + len("sec = ") :]
    end = rest.find(",")
    if end < 0:
        return None
    return _parse_uint(rest[:end])


def _os_info() -> tuple[str, str]:
    if _is_macos():
        return _command_output("sw_vers", "-productName"), _command_output(
            "sw_vers", "-productVersion"
        )
    if _is_linux():
        text = _read_text(OS_RELEASE_PATH)
        return parse_os_release(text) if text is not None else ("Linux", "Unknown")
    return "Unknown OS", "Unknown"


def _cpu_info() -> tuple[str, int, int]:
    if _is_macos():
        model = _command_output("sysctl", "-n", "machdep.cpu.brand_string")
        cores = _parse_uint(_command_output("sysctl", "-n", "hw.physicalcpu"), _U32_MAX)
        threads = _parse_uint(_command_output("sysctl", "-n", "hw.logicalcpu"), _U32_MAX)
        return model, 1 if cores is None else cores, 1 if threads is None else threads
    if _is_linux():
        text = _read_text(CPUINFO_PATH)
        if text is not None:
            return parse_cpuinfo(text)
    return UNKNOWN_CPU, 1, 1


def _total_memory() -> int:
    if _is_macos():
        value = _parse_uint(_command_output("sysctl", "-n", "hw.memsize"))
        return 0 if value is None else value
    if _is_linux():
        text = _read_text(MEMINFO_PATH)
        if text is not None:
            return parse_mem_total(text)
    return 0


def _boot_time(now: datetime) -> datetime:
    seconds: int | None = None
    if _is_macos():
        seconds = parse_macos_boot_time(_command_output("sysctl", "-n", "kern.boottime"))
    elif _is_linux():
        text = _read_text(PROC_STAT_PATH)
        if text is not None:
            seconds = parse_boot_time(text)
    if seconds is None:
        return now - FALLBACK_UPTIME
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def collect_system_info() -> SystemInfo:
    """Gather the host's static facts; raises OSError if a needed command is missing."""
    hostname = _command_output("hostname")
    os_name, os_version = _os_info()
    kernel_version = _command_output("uname", "-r")
    architecture = _command_output("uname", "-m")
    cpu_model, cpu_cores, cpu_threads = _cpu_info()
    total_memory = _total_memory()
    now = datetime.now(timezone.utc)
    boot_time = _boot_time(now)
    uptime = max(now - boot_time, timedelta(0))
    return SystemInfo(
        hostname=hostname,
        os_name=os_name,
        os_version=os_version,
        kernel_version=kernel_version,
        architecture=architecture,
        cpu_model=cpu_model,
        cpu_cores=cpu_cores,
        cpu_threads=cpu_threads,
        total_memory=total_memory,
        boot_time=boot_time,
        uptime=uptime,
    )