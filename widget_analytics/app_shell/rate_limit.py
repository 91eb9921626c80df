"""
Per-widget event admission.

Fixed window per widget: the first request (or the first after the window
has expired) starts a fresh window at count 0. A request for n events is
admitted only if the whole n fits; otherwise nothing is counted.

State is process-local. Deployments with several workers should put an
external counter with TTL behind the same admit/refund interface.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from threading import Lock
from typing import Protocol

from widget_analytics.rules.models import RateLimitRules


class ClockPort(Protocol):
    """Protocol for time operations (enables testing with deterministic time)."""

    def now_utc(self) -> datetime:
        """Return current UTC time."""
        ...


class SystemClock:
    """Production clock using the system time."""

    def now_utc(self) -> datetime:
        return datetime.now(UTC)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    limit: int


@dataclass
class _Window:
    count: int
    reset_at: datetime


class WidgetRateLimiter:
    def __init__(
        self,
        rules: RateLimitRules,
        time_port: ClockPort | None = None,
    ):
        self.limit = rules.max_events
        self.window = timedelta(seconds=rules.window_seconds)
        self._time = time_port if time_port is not None else SystemClock()
        self._windows: dict[str, _Window] = {}
        self._locks: dict[str, Lock] = {}
        self._registry_lock = Lock()

    def _lock_for(self, widget_id: str) -> Lock:
        with self._registry_lock:
            lock = self._locks.get(widget_id)
            if lock is None:
                lock = self._locks[widget_id] = Lock()
            return lock

    def _current(self, widget_id: str, now: datetime) -> _Window:
        win = self._windows.get(widget_id)
        if win is None or now > win.reset_at:
            win = self._windows[widget_id] = _Window(count=0, reset_at=now + self.window)
        return win

    def admit(self, widget_id: str, n: int = 1) -> RateLimitDecision:
        """
        Admit n events for a widget.

        Returns the decision and the remaining budget in the current window.
        A refused request leaves the count untouched and reports 0 remaining.
        """
        with self._lock_for(widget_id):
            win = self._current(widget_id, self._time.now_utc())
            if win.count + n > self.limit:
                return RateLimitDecision(allowed=False, remaining=0, limit=self.limit)
            win.count += n
            return RateLimitDecision(
                allowed=True, remaining=self.limit - win.count, limit=self.limit
            )

    def refund(self, widget_id: str, n: int) -> None:
        """Give back n previously admitted events (never below zero)."""
        with self._lock_for(widget_id):
            win = self._windows.get(widget_id)
            if win is not None:
                win.count = max(0, win.count - n)

    def reset(self) -> None:
        """Forget every window."""
        with self._registry_lock:
            self._windows.clear()
            self._locks.clear()
