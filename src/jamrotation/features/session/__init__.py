"""Session feature: band queue, countdown, session store and schemas."""

from .queue import BandQueue
from .schemas import (
    BandPayload,
    MembershipPayload,
    MusicianPayload,
    SessionSnapshot,
    SessionView,
    TimerPayload,
)
from .service import SessionConfig, SessionState, SessionStore, background_workers
from .timer import Countdown
from .workers import PeriodicWorker

__all__ = [
    "BandPayload",
    "BandQueue",
    "Countdown",
    "MembershipPayload",
    "MusicianPayload",
    "PeriodicWorker",
    "SessionConfig",
    "SessionSnapshot",
    "SessionState",
    "SessionStore",
    "SessionView",
    "TimerPayload",
    "background_workers",
]
