from datetime import timedelta

import pytest

from netwatch import security
from netwatch.security import (
    ConfigTampering,
    EventBurst,
    InvalidInput,
    NetwatchError,
    RateLimitExceeded,
    RepeatedInvalidInput,
    ResourceExhaustion,
    SecurityError,
    SecurityMonitor,
    SuspiciousFileAccess,
)


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def invalid(source="cli", value="x", input_type="test"):
    return InvalidInput(input_type=input_type, attempted_value=value, source=source)


def tampering():
    return ConfigTampering(
        config_field="log_file",
        old_value="/tmp/netwatch.log",
        new_value="/etc/passwd",
    )


def test_security_event_recording():
    monitor = SecurityMonitor()
    monitor.record_event(
        InvalidInput(
            input_type="interface_name",
            attempted_value="../etc/passwd",
            source="cli",
        )
    )
    stats = monitor.statistics()
    assert stats.total_events == 1
    assert stats.event_types.get("invalid_input_interface_name") == 1


def test_rate_limiting():
    monitor = SecurityMonitor()
    for _ in range(5):
        monitor.check_rate_limit("test_source", 5)
    with pytest.raises(SecurityError, match="Rate limit exceeded for source: test_source"):
        monitor.check_rate_limit("test_source", 5)


def test_rate_limit_error_is_netwatch_error():
    monitor = SecurityMonitor()
    monitor.check_rate_limit("src", 0)
    with pytest.raises(NetwatchError):
        monitor.check_rate_limit("src", 0)


def test_rate_limit_resets_after_a_minute():
    clock = FakeClock()
    monitor = SecurityMonitor(clock=clock)
    for _ in range(3):
        monitor.check_rate_limit("s", 3)
    clock.advance(61)
    for _ in range(3):
        monitor.check_rate_limit("s", 3)
    with pytest.raises(SecurityError):
        monitor.check_rate_limit("s", 3)


def test_rate_limits_are_per_source():
    monitor = SecurityMonitor()
    monitor.check_rate_limit("a", 1)
    monitor.check_rate_limit("b", 1)
    with pytest.raises(SecurityError, match="source: a"):
        monitor.check_rate_limit("a", 1)


def test_anomaly_detection():
    monitor = SecurityMonitor()
    for i in range(15):
        monitor.record_event(invalid(source="attacker", value=f"attack_{i}"))
    anomalies = monitor.check_anomalies()
    assert EventBurst(event_count=15, time_window=timedelta(seconds=60)) in anomalies
    assert RepeatedInvalidInput(source="attacker", attempt_count=15) in anomalies


def test_no_anomalies_for_few_events():
    monitor = SecurityMonitor()
    for _ in range(3):
        monitor.record_event(invalid())
    assert monitor.check_anomalies() == []


def test_old_events_do_not_count_as_anomalies():
    clock = FakeClock()
    monitor = SecurityMonitor(clock=clock)
    for _ in range(15):
        monitor.record_event(invalid())
    clock.advance(61)
    assert monitor.check_anomalies() == []


def test_critical_event_detection(capsys):
    monitor = SecurityMonitor()
    monitor.record_event(tampering())
    stats = monitor.statistics()
    assert stats.critical_events == 1
    assert stats.event_types == {"config_tampering": 1}
    assert "SECURITY ALERT" in capsys.readouterr().err


def test_non_critical_event_prints_nothing(capsys):
    monitor = SecurityMonitor()
    monitor.record_event(RateLimitExceeded(source="cli", attempt_count=7))
    assert capsys.readouterr().err == ""
    assert monitor.statistics().event_types == {"rate_limit_exceeded": 1}


@pytest.mark.parametrize(
    "event, key, critical",
    [
        (invalid(input_type="file_path"), "invalid_input_file_path", False),
        (SuspiciousFileAccess(path="/etc", access_type="read"), "suspicious_file_access", True),
        (RateLimitExceeded(source="x", attempt_count=1), "rate_limit_exceeded", False),
        (tampering(), "config_tampering", True),
        (ResourceExhaustion(resource_type="mem", usage_amount=10, limit=5), "resource_exhaustion", True),
    ],
)
def test_event_keys_and_criticality(event, key, critical):
    assert event.key == key
    assert event.critical is critical


def test_time_windows_in_statistics():
    clock = FakeClock()
    monitor = SecurityMonitor(clock=clock)
    monitor.record_event(invalid())
    clock.advance(3601)
    monitor.record_event(invalid())
    stats = monitor.statistics()
    assert stats.total_events == 2
    assert stats.events_last_hour == 1
    assert stats.events_last_day == 2
    assert stats.event_types == {"invalid_input_test": 2}


def test_event_buffer_keeps_last_thousand():
    monitor = SecurityMonitor()
    for i in range(1005):
        monitor.record_event(invalid(value=str(i)))
    stats = monitor.statistics()
    assert stats.total_events == 1000
    assert stats.event_types["invalid_input_test"] == 1005


def test_high_performance_mode_throttles_non_critical():
    clock = FakeClock()
    monitor = SecurityMonitor(clock=clock)
    monitor.set_high_performance_mode(True)
    assert monitor.max_events == 500
    for _ in range(150):
        monitor.record_event(invalid())
    stats = monitor.statistics()
    assert stats.total_events == 100
    assert stats.events_last_hour == 100
    assert stats.critical_events == 0
    assert stats.event_types == {}


def test_high_performance_counter_resets_each_second():
    clock = FakeClock()
    monitor = SecurityMonitor(clock=clock)
    monitor.set_high_performance_mode(True)
    for _ in range(150):
        monitor.record_event(invalid())
    clock.advance(1)
    for _ in range(50):
        monitor.record_event(invalid())
    assert monitor.statistics().total_events == 150


def test_high_performance_mode_skips_anomalies():
    monitor = SecurityMonitor()
    monitor.set_high_performance_mode(True)
    for _ in range(20):
        monitor.record_event(invalid())
    assert monitor.check_anomalies() == []


def test_high_performance_mode_counts_only_critical(capsys):
    monitor = SecurityMonitor()
    monitor.set_high_performance_mode(True)
    monitor.record_event(invalid())
    monitor.record_event(tampering())
    monitor.set_high_performance_mode(False)
    assert monitor.statistics().event_types == {"config_tampering": 1}


@pytest.fixture
def fresh_global(monkeypatch):
    monkeypatch.setattr(security, "_monitor", None)


def test_global_functions_without_monitor(fresh_global):
    security.record_security_event(invalid())
    security.check_security_rate_limit("x", 0)
    security.check_security_rate_limit("x", 0)
    assert security.get_security_statistics() is None
    assert security.check_security_anomalies() == []


def test_global_monitor(fresh_global):
    security.init_security_monitor()
    for _ in range(12):
        security.record_security_event(invalid(source="bad"))
    stats = security.get_security_statistics()
    assert stats.total_events == 12
    anomalies = security.check_security_anomalies()
    assert RepeatedInvalidInput(source="bad", attempt_count=12) in anomalies
    security.check_security_rate_limit("g", 1)
    with pytest.raises(SecurityError):
        security.check_security_rate_limit("g", 1)


def test_init_is_idempotent(fresh_global):
    security.init_security_monitor()
    security.record_security_event(invalid())
    security.init_security_monitor()
    assert security.get_security_statistics().total_events == 1


def test_global_high_performance(fresh_global):
    security.init_security_monitor()
    security.enable_high_performance_security(True)
    for _ in range(20):
        security.record_security_event(invalid())
    assert security.check_security_anomalies() == []
    assert security.get_security_statistics().event_types == {}