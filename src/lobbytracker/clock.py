"""Snapshot timestamps are epoch milliseconds throughout."""

import time


def now_millis() -> int:
    return time.time_ns() // 1_000_000
