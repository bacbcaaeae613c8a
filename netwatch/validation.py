"""Validation and sanitising of user supplied values."""

from __future__ import annotations

import unicodedata
from pathlib import PurePosixPath

from netwatch.security import ConfigError, InvalidInput, ParseError, record_security_event

MAX_INTERFACE_NAME_LEN = 16
MAX_PATH_LEN = 4096
MAX_REFRESH_INTERVAL = 60_000
MIN_REFRESH_INTERVAL = 100
MAX_BANDWIDTH = 1_000_000_000
MAX_CONFIG_STRING_LEN = 1024

SENSITIVE_DIRS = (
    "/etc",
    "/boot",
    "/proc",
    "/sys",
    "/dev",
    "/root",
    "/usr/bin",
    "/usr/sbin",
    "/bin",
    "/sbin",
)

DANGEROUS_PATTERNS = ("$(", "`", "${", "&&", "||", ";", "|", ">", "<", "&")
SUSPICIOUS_NAME_PARTS = ("proc", "sys", "dev")


def _is_control(char: str) -> bool:
    return unicodedata.category(char) == "Cc"


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8", "surrogatepass"))


def _reject_interface(name: str, message: str) -> ParseError:
    record_security_event(
        InvalidInput(input_type="interface_name", attempted_value=name, source="validation")
    )
    return ParseError(message)


def validate_interface_name(name: str) -> None:
    """Raise ParseError unless name is a plausible, harmless interface name."""
    if not name:
        raise _reject_interface(name, "Interface name cannot be empty")
    if _byte_len(name) > MAX_INTERFACE_NAME_LEN:
        raise _reject_interface(
            name, f"Interface name too long (max {MAX_INTERFACE_NAME_LEN} characters)"
        )
    if ".." in name or "/" in name or "\\" in name:
        raise _reject_interface(name, "Invalid characters in interface name")
    if any(_is_control(c) for c in name):
        raise _reject_interface(name, "Control characters not allowed in interface name")
    if not all(c.isalnum() or c in "-_." for c in name):
        raise _reject_interface(name, "Invalid characters in interface name")
    lowered = name.lower()
    if any(part in lowered for part in SUSPICIOUS_NAME_PARTS):
        raise _reject_interface(name, "Suspicious interface name pattern")


def _extension(path: str) -> str | None:
    name = PurePosixPath(path).name
    if name in ("", ".."):
        return None
    dot = name.rfind(".")
    if dot <= 0:
        return None
    return name[dot + 1 :]


def validate_file_path(path: str, expected_extension: str | None = None) -> None:
    """Raise ConfigError for unsafe paths or a wrong file extension."""
    if not path:
        raise ConfigError("File path cannot be empty")
    if _byte_len(path) > MAX_PATH_LEN:
        raise ConfigError(f"File path too long (max {MAX_PATH_LEN} characters)")
    if any(_is_control(c) for c in path):
        raise ConfigError("Control characters not allowed in file path")
    if ".." in path:
        record_security_event(
            InvalidInput(input_type="file_path", attempted_value=path, source="validation")
        )
        raise ConfigError("Path traversal detected")
    if path.startswith(SENSITIVE_DIRS):
        raise ConfigError("Access to sensitive directory denied")

    if expected_extension is not None:
        extension = _extension(path)
        if extension is None:
            raise ConfigError(f"Missing file extension, expected: {expected_extension}")
        if extension.lower() != expected_extension.lower():
            raise ConfigError(f"Invalid file extension, expected: {expected_extension}")


def validate_refresh_interval(interval_ms: int) -> None:
    """Raise ConfigError unless the interval lies within the allowed bounds."""
    if interval_ms < MIN_REFRESH_INTERVAL:
        raise ConfigError(f"Refresh interval too small (minimum {MIN_REFRESH_INTERVAL} ms)")
    if interval_ms > MAX_REFRESH_INTERVAL:
        raise ConfigError(f"Refresh interval too large (maximum {MAX_REFRESH_INTERVAL} ms)")


def validate_bandwidth(bandwidth_kbps: int) -> None:
    """Raise ConfigError for bandwidths above 1 Tbps."""
    if bandwidth_kbps > MAX_BANDWIDTH:
        raise ConfigError(f"Bandwidth value too large (maximum {MAX_BANDWIDTH} kbps)")


def validate_config_string(value: str, field_name: str) -> None:
    """Raise ConfigError for over-long values or ones that look like injection."""
    if _byte_len(value) > MAX_CONFIG_STRING_LEN:
        raise ConfigError(f"Configuration value too long for field: {field_name}")
    if any(_is_control(c) and c not in "\n\t" for c in value):
        raise ConfigError(f"Invalid characters in configuration field: {field_name}")
    if any(pattern in value for pattern in DANGEROUS_PATTERNS):
        raise ConfigError(f"Suspicious pattern detected in field: {field_name}")


def sanitize_user_input(text: str, max_length: int) -> str:
    """Drop control characters, truncate, and escape shell-sensitive characters."""
    kept = "".join(c for c in text if not _is_control(c) or c in "\n\t")[:max_length]
    for char in ("$", "`", '"', "'"):
        kept = kept.replace(char, "\\" + char)
    return kept