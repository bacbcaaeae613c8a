import pytest

from netwatch.security import (
    ConfigError,
    NetwatchError,
    ParseError,
    get_security_statistics,
    init_security_monitor,
)
from netwatch.validation import (
    sanitize_user_input,
    validate_bandwidth,
    validate_config_string,
    validate_file_path,
    validate_interface_name,
    validate_refresh_interval,
)


@pytest.mark.parametrize("name", ["eth0", "wlan0", "en0", "lo", "br-docker0"])
def test_valid_interface_names(name):
    assert validate_interface_name(name) is None


@pytest.mark.parametrize(
    "name",
    [
        "",
        "../../../etc/passwd",
        "interface_with_very_long_name_that_exceeds_the_maximum_allowed_length",
        "interface with spaces",
        "interface\x00null",
        "interface\nwith\nnewlines",
        "/proc/net/dev",
        "proc",
        "sys",
    ],
)
def test_invalid_interface_names(name):
    with pytest.raises(ParseError):
        validate_interface_name(name)


@pytest.mark.parametrize(
    "name,message",
    [
        ("../etc/passwd", "Invalid characters in interface name"),
        ("eth0; rm -rf /", "Invalid characters in interface name"),
        ("eth\npwd", "Control characters not allowed"),
        ("proc", "Suspicious interface name pattern"),
        ("sys", "Suspicious interface name pattern"),
        ("dev", "Suspicious interface name pattern"),
        ("", "Interface name cannot be empty"),
        ("a" * 17, "Interface name too long (max 16 characters)"),
    ],
)
def test_interface_name_messages(name, message):
    with pytest.raises(ParseError, match=None) as info:
        validate_interface_name(name)
    assert message in str(info.value)


def test_interface_rejection_is_recorded():
    init_security_monitor()
    before = get_security_statistics().event_types.get("invalid_input_interface_name", 0)
    with pytest.raises(ParseError):
        validate_interface_name("bad name")
    after = get_security_statistics().event_types.get("invalid_input_interface_name", 0)
    assert after == before + 1


@pytest.mark.parametrize(
    "path,ext",
    [
        ("/tmp/netwatch.log", "log"),
        ("/home/user/config.toml", "toml"),
        ("./local.log", "log"),
        ("/tmp/NETWATCH.LOG", "log"),
        ("/tmp/any_file", None),
    ],
)
def test_valid_file_paths(path, ext):
    assert validate_file_path(path, ext) is None


@pytest.mark.parametrize(
    "path,ext",
    [
        ("", None),
        ("../../../etc/passwd", None),
        ("/etc/shadow", None),
        ("/proc/version", None),
        ("file\x00with\x00nulls", None),
        ("/tmp/file.txt", "log"),
    ],
)
def test_invalid_file_paths(path, ext):
    with pytest.raises(ConfigError):
        validate_file_path(path, ext)


@pytest.mark.parametrize(
    "path,ext,message",
    [
        ("../../../etc/shadow", None, "Path traversal detected"),
        ("/tmp/netwatch.txt", "log", "Invalid file extension, expected: log"),
        ("/tmp/netwatch", "log", "Missing file extension, expected: log"),
        ("/tmp/.hidden", "log", "Missing file extension, expected: log"),
        ("/etc/shadow", None, "Access to sensitive directory denied"),
        ("/x/" + "a" * 5000, None, "File path too long (max 4096 characters)"),
    ],
)
def test_file_path_messages(path, ext, message):
    with pytest.raises(ConfigError) as info:
        validate_file_path(path, ext)
    assert message in str(info.value)


@pytest.mark.parametrize("interval", [100, 500, 1000, 30000, 60000])
def test_valid_refresh_intervals(interval):
    assert validate_refresh_interval(interval) is None


def test_refresh_interval_too_small():
    with pytest.raises(ConfigError, match="Refresh interval too small"):
        validate_refresh_interval(50)


def test_refresh_interval_too_large():
    with pytest.raises(ConfigError, match="Refresh interval too large"):
        validate_refresh_interval(120000)


@pytest.mark.parametrize("value", [1000, 1000000, 100000000, 1_000_000_000])
def test_valid_bandwidth(value):
    assert validate_bandwidth(value) is None


@pytest.mark.parametrize("value", [2**64 - 1, 2_000_000_000, 9999999999])
def test_invalid_bandwidth(value):
    with pytest.raises(ConfigError, match="Bandwidth value too large"):
        validate_bandwidth(value)


@pytest.mark.parametrize(
    "value", ["normal_value", "value-with-hyphens", "value_with_underscores", "a\tb\nc"]
)
def test_valid_config_strings(value):
    assert validate_config_string(value, "test_field") is None


@pytest.mark.parametrize(
    "value",
    [
        "value$(echo hack)",
        "value`whoami`",
        "value && rm -rf /",
        "value\x00null",
        "x" * 2000,
    ],
)
def test_invalid_config_strings(value):
    with pytest.raises(ConfigError) as info:
        validate_config_string(value, "test_field")
    assert "test_field" in str(info.value)


def test_errors_share_base_class():
    with pytest.raises(NetwatchError):
        validate_bandwidth(2_000_000_000)


@pytest.mark.parametrize(
    "text,limit,expected",
    [
        ("normal input", 100, "normal input"),
        ("input$(echo)", 100, "input\\$(echo)"),
        ("input`whoami`", 100, "input\\`whoami\\`"),
        ('input"quoted"', 100, 'input\\"quoted\\"'),
        ("it's", 100, "it\\'s"),
        ("very long input that exceeds limit", 10, "very long "),
        ("input\x00null", 100, "inputnull"),
        ("line\nnext\tcol", 100, "line\nnext\tcol"),
    ],
)
def test_sanitize_user_input(text, limit, expected):
    assert sanitize_user_input(text, limit) == expected