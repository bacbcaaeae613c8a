"""Security event monitoring, rate limiting and anomaly detection."""

from __future__ import annotations

import sys
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, ClassVar

DEFAULT_MAX_EVENTS = 1000
HIGH_PERFORMANCE_MAX_EVENTS = 500
NON_CRITICAL_PER_SECOND = 100
HARD_LIMIT_PER_SECOND = 500
CLEANUP_INTERVAL = 300.0
RATE_LIMIT_RETENTION = 120.0
RATE_LIMIT_WINDOW = 60.0
ANOMALY_WINDOW = 60.0
BURST_THRESHOLD = 10
REPEATED_INPUT_THRESHOLD = 3


class NetwatchError(Exception):
    """Base class for errors raised by netwatch."""


class SecurityError(NetwatchError):
    """A security policy was violated."""


class ConfigError(NetwatchError):
    """A configuration value was rejected."""


class ParseError(NetwatchError):
    """An input value could not be accepted."""


class SecurityEvent:
    """Base class of all monitored security events."""

    critical: ClassVar[bool] = False

    @property
    def key(self) -> str:
        """The name under which events of this kind are counted."""
        raise NotImplementedError


@dataclass(frozen=True)
class InvalidInput(SecurityEvent):
    """An invalid input attempt (injection, traversal and the like)."""

    input_type: str
    attempted_value: str
    source: str

    @property
    def key(self) -> str:
        return f"invalid_input_{self.input_type}"


@dataclass(frozen=True)
class SuspiciousFileAccess(SecurityEvent):
    """A suspicious file access pattern."""

    path: str
    access_type: str
    critical: ClassVar[bool] = True

    @property
    def key(self) -> str:
        return "suspicious_file_access"


@dataclass(frozen=True)
class RateLimitExceeded(SecurityEvent):
    """A source went over its rate limit."""

    source: str
    attempt_count: int

    @property
    def key(self) -> str:
        return "rate_limit_exceeded"


@dataclass(frozen=True)
class ConfigTampering(SecurityEvent):
    """A configuration value was changed suspiciously."""

    config_field: str
    old_value: str
    new_value: str
    critical: ClassVar[bool] = True

    @property
    def key(self) -> str:
        return "config_tampering"


@dataclass(frozen=True)
class ResourceExhaustion(SecurityEvent):
    """A resource was pushed beyond its limit."""

    resource_type: str
    usage_amount: int
    limit: int
    critical: ClassVar[bool] = True

    @property
    def key(self) -> str:
        return "resource_exhaustion"


class SecurityAnomaly:
    """Base class of anomalies found by the monitor."""


@dataclass(frozen=True)
class EventBurst(SecurityAnomaly):
    """Many security events within a short time."""

    event_count: int
    time_window: timedelta


@dataclass(frozen=True)
class RepeatedInvalidInput(SecurityAnomaly):
    """Repeated invalid input from one source."""

    source: str
    attempt_count: int


@dataclass(frozen=True)
class UnusualAccessPattern(SecurityAnomaly):
    """An unusual access pattern."""

    pattern_description: str
    confidence: float


@dataclass
class SecurityStatistics:
    """A summary of the recorded security events."""

    total_events: int
    events_last_hour: int
    events_last_day: int
    critical_events: int
    event_types: dict[str, int] = field(default_factory=dict)


class SecurityMonitor:
    """Records security events and analyses them."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        now = clock()
        self._max_events = DEFAULT_MAX_EVENTS
        self._events: deque[tuple[float, SecurityEvent]] = deque(maxlen=self._max_events)
        self._event_counts: Counter[str] = Counter()
        self._rate_limits: dict[str, list] = {}
        self._last_cleanup = now
        self._high_performance = False
        self._events_this_second = 0
        self._current_second = int(now)

    @property
    def max_events(self) -> int:
        """How many events are kept before the oldest are dropped."""
        return self._max_events

    @property
    def high_performance_mode(self) -> bool:
        return self._high_performance

    def set_high_performance_mode(self, enabled: bool) -> None:
        """Switch to cheaper bookkeeping for heavy traffic."""
        self._high_performance = enabled
        if enabled:
            self._max_events = HIGH_PERFORMANCE_MAX_EVENTS
            self._events = deque(self._events, maxlen=self._max_events)

    def record_event(self, event: SecurityEvent) -> None:
        """Record one security event."""
        now = self._clock()
        second = int(now)
        if second != self._current_second:
            self._current_second = second
            self._events_this_second = 0

        if self._high_performance:
            self._events_this_second += 1
            if self._events_this_second > NON_CRITICAL_PER_SECOND and not event.critical:
                return
            if self._events_this_second > HARD_LIMIT_PER_SECOND:
                return

        self._events.append((now, event))

        if not self._high_performance or event.critical:
            self._event_counts[event.key] += 1

        if event.critical:
            print(f"SECURITY ALERT: {event!r}", file=sys.stderr)

        if now - self._last_cleanup > CLEANUP_INTERVAL:
            self._cleanup(now)

    def _cleanup(self, now: float) -> None:
        self._last_cleanup = now
        if self._high_performance and len(self._event_counts) > 100:
            for key in [k for k, count in self._event_counts.items() if count < 5]:
                del self._event_counts[key]
        cutoff = now - RATE_LIMIT_RETENTION
        self._rate_limits = {
            key: entry for key, entry in self._rate_limits.items() if entry[0] > cutoff
        }

    def check_rate_limit(self, source: str, max_per_minute: int) -> None:
        """Count an attempt from source; raise SecurityError over the limit."""
        now = self._clock()
        key = f"rate_limit_{source}"
        entry = self._rate_limits.get(key)
        if entry is None:
            self._rate_limits[key] = [now, 1]
            return
        if now - entry[0] > RATE_LIMIT_WINDOW:
            entry[0] = now
            entry[1] = 1
            return
        entry[1] += 1
        if entry[1] > max_per_minute:
            raise SecurityError(f"Rate limit exceeded for source: {source}")

    def statistics(self) -> SecurityStatistics:
        """Summarise the recorded events."""
        total = len(self._events)
        if self._high_performance:
            return SecurityStatistics(
                total_events=total,
                events_last_hour=min(total, 100),
                events_last_day=total,
                critical_events=0,
                event_types={},
            )

        now = self._clock()
        last_hour = now - 3600.0
        last_day = now - 86400.0
        hour = day = critical = 0
        for stamp, event in self._events:
            if stamp > last_day:
                day += 1
                if stamp > last_hour:
                    hour += 1
            if event.critical:
                critical += 1

        return SecurityStatistics(
            total_events=total,
            events_last_hour=hour,
            events_last_day=day,
            critical_events=critical,
            event_types=dict(self._event_counts),
        )

    def check_anomalies(self) -> list[SecurityAnomaly]:
        """Look for bursts of events and repeated invalid input."""
        if self._high_performance:
            return []

        cutoff = self._clock() - ANOMALY_WINDOW
        recent = [event for stamp, event in self._events if stamp > cutoff]
        sources = Counter(e.source for e in recent if isinstance(e, InvalidInput))

        anomalies: list[SecurityAnomaly] = []
        if len(recent) > BURST_THRESHOLD:
            anomalies.append(
                EventBurst(event_count=len(recent), time_window=timedelta(seconds=ANOMALY_WINDOW))
            )
        anomalies.extend(
            RepeatedInvalidInput(source=source, attempt_count=count)
            for source, count in sources.items()
            if count > REPEATED_INPUT_THRESHOLD
        )
        return anomalies


_monitor: SecurityMonitor | None = None


def init_security_monitor() -> None:
    """Create the shared monitor if it does not exist yet."""
    global _monitor
    if _monitor is None:
        _monitor = SecurityMonitor()


def enable_high_performance_security(enabled: bool) -> None:
    """Switch the shared monitor's high performance mode."""
    if _monitor is not None:
        _monitor.set_high_performance_mode(enabled)


def record_security_event(event: SecurityEvent) -> None:
    """Record an event on the shared monitor, if there is one."""
    if _monitor is not None:
        _monitor.record_event(event)


def check_security_rate_limit(source: str, max_per_minute: int) -> None:
    """Apply the shared monitor's rate limit; a no-op without a monitor."""
    if _monitor is not None:
        _monitor.check_rate_limit(source, max_per_minute)


def get_security_statistics() -> SecurityStatistics | None:
    """Statistics of the shared monitor, or None without one."""
    return _monitor.statistics() if _monitor is not None else None


def check_security_anomalies() -> list[SecurityAnomaly]:
    """Anomalies found by the shared monitor; empty without one."""
    return _monitor.check_anomalies() if _monitor is not None else []