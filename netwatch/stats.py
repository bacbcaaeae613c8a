"""Traffic rate statistics computed from successive counter samples."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import timedelta

U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1
_U64_MOD = 2**64

GRAPH_STEP = 0.5
GRAPH_MAX_AGE = 60.0
GRAPH_MAX_POINTS = 120


@dataclass(frozen=True)
class NetworkStats:
    """One reading of an interface's counters; timestamp is in seconds."""

    timestamp: float
    bytes_in: int = 0
    bytes_out: int = 0
    packets_in: int = 0
    packets_out: int = 0
    errors_in: int = 0
    errors_out: int = 0
    drops_in: int = 0
    drops_out: int = 0


def calculate_diff(current: int, previous: int) -> int:
    """Difference between two counter readings, allowing for wrap-around.

    A decrease is taken as a 32-bit wrap when that gives a plausible value,
    otherwise as a 64-bit wrap.
    """
    if current >= previous:
        return current - previous
    diff_32 = (U32_MAX - previous + current + 1) % _U64_MOD
    diff_64 = (U64_MAX - previous + current + 1) % _U64_MOD
    return diff_32 if diff_32 < diff_64 // 1000 else diff_64


def _seconds(value: float | timedelta) -> float:
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


class StatsCalculator:
    """Keeps a window of samples and derives current, average, min and max rates."""

    def __init__(self, window_size: float | timedelta) -> None:
        self._window = _seconds(window_size)
        self._history: deque[NetworkStats] = deque()
        self._graph_in: deque[tuple[float, float]] = deque()
        self._graph_out: deque[tuple[float, float]] = deque()
        self._total_bytes = (0, 0)
        self._total_packets = (0, 0)
        self._clear_rates()

    def _clear_rates(self) -> None:
        self._current = (0, 0)
        self._average = (0, 0)
        self._min = (0, 0)
        self._max = (0, 0)
        self._first_sample = True

    def add_sample(self, stats: NetworkStats) -> None:
        """Take in a new reading and update every derived value."""
        self._total_bytes = (stats.bytes_in, stats.bytes_out)
        self._total_packets = (stats.packets_in, stats.packets_out)

        if self._history:
            previous = self._history[-1]
            elapsed = max(0.0, stats.timestamp - previous.timestamp)
            if elapsed > 0.0:
                self._current = (
                    int(calculate_diff(stats.bytes_in, previous.bytes_in) / elapsed),
                    int(calculate_diff(stats.bytes_out, previous.bytes_out) / elapsed),
                )
                if not self._first_sample:
                    self._update_min_max()
                self._add_graph_point()

        self._history.append(stats)
        self._trim_old_samples()
        self._calculate_averages()
        self._first_sample = False

    def _update_min_max(self) -> None:
        current_in, current_out = self._current
        min_in, min_out = self._min
        max_in, max_out = self._max
        if current_in < min_in or min_in == 0:
            min_in = current_in
        if current_out < min_out or min_out == 0:
            min_out = current_out
        self._min = (min_in, min_out)
        self._max = (max(max_in, current_in), max(max_out, current_out))

    def _add_graph_point(self) -> None:
        for graph, value in ((self._graph_in, self._current[0]), (self._graph_out, self._current[1])):
            aged = [(age + GRAPH_STEP, v) for age, v in graph if age + GRAPH_STEP <= GRAPH_MAX_AGE]
            aged.append((0.0, float(value)))
            graph.clear()
            graph.extend(aged[-GRAPH_MAX_POINTS:])

    def _trim_old_samples(self) -> None:
        cutoff = self._history[-1].timestamp - self._window
        while self._history and self._history[0].timestamp < cutoff:
            self._history.popleft()

    def _calculate_averages(self) -> None:
        if len(self._history) < 2:
            return
        first, last = self._history[0], self._history[-1]
        span = max(0.0, last.timestamp - first.timestamp)
        if span > 0.0:
            self._average = (
                int(calculate_diff(last.bytes_in, first.bytes_in) / span),
                int(calculate_diff(last.bytes_out, first.bytes_out) / span),
            )

    def current_speed(self) -> tuple[int, int]:
        """Latest (incoming, outgoing) rate in bytes per second."""
        return self._current

    def average_speed(self) -> tuple[int, int]:
        """Average (incoming, outgoing) rate over the window."""
        return self._average

    def min_speed(self) -> tuple[int, int]:
        """Lowest (incoming, outgoing) rate seen."""
        return self._min

    def max_speed(self) -> tuple[int, int]:
        """Highest (incoming, outgoing) rate seen."""
        return self._max

    def total_bytes(self) -> tuple[int, int]:
        """Byte counters of the last sample."""
        return self._total_bytes

    def total_packets(self) -> tuple[int, int]:
        """Packet counters of the last sample."""
        return self._total_packets

    def graph_data_in(self) -> list[tuple[float, float]]:
        """(age in seconds, rate) points for incoming traffic, oldest first."""
        return list(self._graph_in)

    def graph_data_out(self) -> list[tuple[float, float]]:
        """(age in seconds, rate) points for outgoing traffic, oldest first."""
        return list(self._graph_out)

    def sample_count(self) -> int:
        """Number of samples inside the window."""
        return len(self._history)

    def reset(self) -> None:
        """Forget the samples and derived rates; the totals are kept."""
        self._history.clear()
        self._graph_in.clear()
        self._graph_out.clear()
        self._clear_rates()