from __future__ import annotations

from dataclasses import dataclass

__all__ = ["Countdown"]


@dataclass
class Countdown:
    """One-second resolution countdown for the band on stage.

    Reaching zero only stops the clock; advancing to the next band is always a
    separate, explicit action.
    """

    seconds_left: int = 0
    running: bool = False

    @property
    def expired(self) -> bool:
        return self.seconds_left == 0

    def reset(self, duration_minutes: float | None) -> None:
        self.running = False
        self.seconds_left = max(0, int((duration_minutes or 0) * 60))

    def set_seconds(self, seconds: int) -> None:
        self.seconds_left = max(0, int(seconds))
        if self.seconds_left == 0:
            self.running = False

    def start(self) -> bool:
        if self.seconds_left <= 0:
            return False
        self.running = True
        return True

    def pause(self) -> None:
        self.running = False

    def adjust(self, delta_seconds: int) -> None:
        self.set_seconds(self.seconds_left + int(delta_seconds))

    def tick(self, seconds: int = 1) -> bool:
        """Advance the clock; returns True when this tick reached zero."""

        if not self.running:
            return False
        self.seconds_left = max(0, self.seconds_left - max(0, int(seconds)))
        if self.seconds_left == 0:
            self.running = False
            return True
        return False
