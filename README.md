# netwatch

Building blocks for watching network traffic and the host it runs on. The package has no
dependencies outside the standard library.

## Modules

### `netwatch.stats`

`NetworkStats` is one reading of an interface's counters. Its `timestamp` is a number of
seconds, and its byte, packet, error and drop counters default to 0. Feed readings to a
`StatsCalculator(window_size)`. The window size is given in seconds or as a `timedelta`.

The calculator offers these methods:

- `current_speed()`, `average_speed()`, `min_speed()` and `max_speed()` return
  `(incoming, outgoing)` rates in bytes per second.
- `total_bytes()` and `total_packets()` return the counters of the last sample.
- `graph_data_in()` and `graph_data_out()` return up to 120 `(age in seconds, rate)` points.
  Each new sample adds a point and ages the older ones by 0.5 s. Points older than 60 s are
  dropped.
- `sample_count()` returns the number of samples still inside the window.
- `reset()` clears the samples and the rates. It keeps the totals.

`calculate_diff(current, previous)` gives the difference between two counter readings. When
a counter has gone down, it treats that as a 32-bit or 64-bit wrap-around.

### `netwatch.validation`

Each check raises an exception on bad input and returns `None` otherwise:

- `validate_interface_name(name)` raises `ParseError` for these names:
  - an empty name
  - a name longer than 16 bytes
  - path or control characters
  - anything other than letters, digits, `-`, `_` and `.`
  - names containing `proc`, `sys` or `dev`
- `validate_file_path(path, expected_extension=None)` raises `ConfigError` for these paths:
  - an empty path or an over-long one
  - control characters
  - `..`
  - paths under `/etc`, `/proc`, `/sys`, `/dev` and other system directories
  - a missing or wrong extension
- `validate_refresh_interval(interval_ms)` accepts values from 100 to 60000.
- `validate_bandwidth(bandwidth_kbps)` accepts values up to 1,000,000,000.
- `validate_config_string(value, field_name)` rejects these values:
  - values over 1024 bytes
  - control characters other than newline and tab
  - shell patterns such as `$(`, `` ` ``, `&&`, `;` and `|`

`sanitize_user_input(text, max_length)` does three things, in this order:

1. It drops control characters, keeping newline and tab.
2. It truncates the text to `max_length` characters.
3. It escapes `$`, `` ` ``, `"` and `'` with a backslash.

When a shared security monitor exists, rejected interface names and path-traversal attempts
are recorded on it as `InvalidInput` events.

### `netwatch.security`

The exception hierarchy is `NetwatchError`, with `SecurityError`, `ConfigError` and
`ParseError` below it.

The event classes are `InvalidInput`, `SuspiciousFileAccess`, `RateLimitExceeded`,
`ConfigTampering` and `ResourceExhaustion`, all subclasses of `SecurityEvent`. The last three
kinds are critical. Recording a critical event prints a `SECURITY ALERT` line to stderr.

`SecurityMonitor(clock=time.monotonic)` keeps the latest 1000 events, or 500 in high
performance mode. It offers these methods:

- `record_event(event)` records one event.
- `check_rate_limit(source, max_per_minute)` counts an attempt from `source`. It raises
  `SecurityError` once the source goes over its limit within a minute.
- `statistics()` returns a `SecurityStatistics`.
- `check_anomalies()` returns `EventBurst` when more than 10 events arrived in the last
  minute. It returns `RepeatedInvalidInput` for a source with more than 3 invalid inputs in
  that minute.
- `set_high_performance_mode(enabled)` makes the bookkeeping cheaper. Non-critical events are
  throttled, statistics are approximate and anomaly checks are skipped.

A process-wide monitor is created with `init_security_monitor()`. These functions use it, and
do nothing until it exists:

- `record_security_event`
- `check_security_rate_limit`
- `get_security_statistics`
- `check_security_anomalies`
- `enable_high_performance_security`

### `netwatch.sysinfo`

`collect_system_info()` returns a `SystemInfo` with these fields:

- hostname
- OS name and version
- kernel version and architecture
- CPU model, core and thread counts
- total memory
- boot time and uptime

On Linux it reads `/etc/os-release`, `/proc/cpuinfo`, `/proc/meminfo` and `/proc/stat`. It
runs `hostname` and `uname`, and on macOS also `sw_vers` and `sysctl`. The parsers are
available on their own: `parse_os_release`, `parse_cpuinfo`, `parse_mem_total`,
`parse_boot_time` and `parse_macos_boot_time`.

### `netwatch.sysmon`

`SystemMonitor(system_info=None)` collects the `SystemInfo` itself unless one is given. Its
`get_current_stats()` returns a `SystemStats` with these fields:

- CPU usage, measured against the previous call
- memory usage
- the load averages
- disk usage per mount point, from `df -h`
- the five busiest processes, from `ps aux`

Data that cannot be read comes back as zeros or empty collections.

The parsers are available on their own: `parse_cpu_stats`, `cpu_usage_between`,
`parse_memory_stats`, `parse_vm_stat`, `parse_load_average`, `parse_size`, `parse_df_output`
and `parse_ps_output`. There are also two formatters:

- `format_bytes(1536)` gives `"1.50 KB"`.
- `format_uptime(seconds)` gives text such as `"1d 2h 3m"`.

## Install

```
pip install .
```

Running the tests needs the `test` extra:

```
pip install ".[test]"
pytest
```

## Example

```python
import time

from netwatch.stats import NetworkStats, StatsCalculator
from netwatch.validation import validate_interface_name

validate_interface_name("eth0")

calc = StatsCalculator(window_size=60.0)
start = time.time()
calc.add_sample(NetworkStats(timestamp=start, bytes_in=1000, bytes_out=500))
calc.add_sample(NetworkStats(timestamp=start + 1.0, bytes_in=2000, bytes_out=1000))
print(calc.current_speed())  # (1000, 500)
```

## What this package does not do

- It provides no command-line program and no terminal display.
- It does not read interface counters by itself. The caller builds the `NetworkStats`
  samples and passes them to `StatsCalculator`.