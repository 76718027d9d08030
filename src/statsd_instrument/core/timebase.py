"""Centralized time utilities for metric timing."""

from __future__ import annotations

import time


def perf_ns() -> int:
    """High-resolution monotonic clock in nanoseconds for durations."""
    return time.perf_counter_ns()


def elapsed_ms(start_ns: int, end_ns: int | None = None) -> float:
    """Fractional milliseconds between two ``perf_ns`` readings."""
    if end_ns is None:
        end_ns = perf_ns()
    return (end_ns - start_ns) / 1_000_000
