"""Pacing helpers for sequential message delivery."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

Sleeper = Callable[[float], None]


@dataclass(frozen=True)
class DelayPolicy:
    """Fixed pause inserted between consecutive sends."""

    delay_ms: int = 0

    @classmethod
    def from_milliseconds(cls, value: Any) -> "DelayPolicy":
        """Build a policy from user input, treating negatives and junk as zero."""

        try:
            delay = int(float(value or 0))
        except (TypeError, ValueError, OverflowError):
            delay = 0
        return cls(delay_ms=max(0, delay))

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000.0


class Pacer:
    """Sleeps between consecutive sends, never after the last one."""

    def __init__(self, policy: Optional[DelayPolicy] = None, sleeper: Optional[Sleeper] = None) -> None:
        self._policy = policy or DelayPolicy()
        self._sleeper = sleeper or time.sleep

    @property
    def policy(self) -> DelayPolicy:
        return self._policy

    def pause_after(self, index: int, total: int) -> None:
        if self._policy.delay_ms <= 0 or index >= total - 1:
            return
        self._sleeper(self._policy.delay_seconds)


__all__ = ["DelayPolicy", "Pacer", "Sleeper"]
