"""Stage timing for the build pipeline.

Measures how long each pipeline stage spends waiting on the catalog, the
LLM and the document store, so a slow build can be attributed.

Example:
    from astrobot.timing import timer, get_timings

    with timer("llm_select_cpu_motherboard"):
        picks = prompter.select_group(entries, context)

    log_interaction("performance", get_timings())
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from flask import g, has_request_context

__all__ = ["timer", "get_timings", "reset_timings", "TimingTracker"]

# Operations whose name starts with this prefix count as LLM time
LLM_PREFIX = "llm_"


@dataclass
class OperationStats:
    count: int = 0
    total: float = 0.0
    fastest: float = float("inf")
    slowest: float = 0.0

    def add(self, duration: float) -> None:
        self.count += 1
        self.total += duration
        self.fastest = min(self.fastest, duration)
        self.slowest = max(self.slowest, duration)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "total_seconds": round(self.total, 3),
            "avg_seconds": round(self.total / self.count, 3) if self.count else 0,
            "min_seconds": round(self.fastest, 3) if self.count else 0,
            "max_seconds": round(self.slowest, 3),
        }


class TimingTracker:
    """Collects durations per named operation."""

    def __init__(self) -> None:
        self.stats: Dict[str, OperationStats] = {}

    @contextmanager
    def measure(self, operation: str) -> Iterator[None]:
        """Context manager for timing an operation."""
        started = time.perf_counter()
        try:
            yield
        finally:
            self.stats.setdefault(operation, OperationStats()).add(time.perf_counter() - started)

    def get_all(self) -> Dict[str, Any]:
        """All timings plus an LLM-vs-app ``__summary__``."""
        result: Dict[str, Any] = {op: stats.to_dict() for op, stats in self.stats.items()}
        if not self.stats:
            return result

        llm_time = sum(s.total for op, s in self.stats.items() if op.startswith(LLM_PREFIX))
        total_time = sum(s.total for s in self.stats.values())
        app_time = total_time - llm_time
        result["__summary__"] = {
            "total_seconds": round(total_time, 3),
            "llm_seconds": round(llm_time, 3),
            "llm_percent": round(llm_time / total_time * 100, 1) if total_time > 0 else 0,
            "app_seconds": round(app_time, 3),
            "app_percent": round(app_time / total_time * 100, 1) if total_time > 0 else 0,
        }
        return result

    def reset(self) -> None:
        self.stats.clear()


# Tracker used outside a Flask request (CLI, tests)
_tracker: Optional[TimingTracker] = None


def _get_tracker() -> TimingTracker:
    """Request-scoped tracker in Flask, module tracker otherwise."""
    if has_request_context():
        if "timing_tracker" not in g:
            g.timing_tracker = TimingTracker()
        return g.timing_tracker

    global _tracker
    if _tracker is None:
        _tracker = TimingTracker()
    return _tracker


@contextmanager
def timer(operation: str) -> Iterator[None]:
    """Time ``operation`` on the current tracker."""
    with _get_tracker().measure(operation):
        yield


def get_timings() -> Dict[str, Any]:
    return _get_tracker().get_all()


def reset_timings() -> None:
    """Start a fresh set of timings for a new build request."""
    _get_tracker().reset()
