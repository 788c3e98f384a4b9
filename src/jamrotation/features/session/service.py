from __future__ import annotations

import json
import logging
import math
import random
import secrets
import threading
import uuid
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import ValidationError

from ...core import feature_flags
from ...core.errors import (
    MIN_ACTIVE_MUSICIANS,
    CoreRoleUnfillableError,
    DuplicateUsernameError,
    InsufficientRosterError,
    UnknownEntityError,
)
from ...core.models import DEFAULT_DURATION_MINUTES, Band, Instrument, Membership, Musician, MusicianStatus
from ...core.stats import SessionStats, summarize_session
from ...data.store import KeyValueStore
from ...lineup.assembler import diagnose_roster, generate_next_band
from ...lineup.naming import get_unique_band_name
from .queue import BandQueue
from .schemas import BandPayload, MusicianPayload, SessionSnapshot, SessionView, TimerPayload
from .timer import Countdown
from .workers import PeriodicWorker

__all__ = [
    "BACKUP_HISTORY_KEY",
    "BACKUP_LAST_KEY",
    "SessionConfig",
    "SessionState",
    "SessionStore",
    "background_workers",
]

logger = logging.getLogger(__name__)

MUSICIANS_KEY = "musicians"
QUEUE_KEY = "queue"
HISTORY_KEY = "history"
TIMER_KEY = "timer"
BACKUP_LAST_KEY = "backup_last"
BACKUP_HISTORY_KEY = "backup_history"

Subscriber = Callable[[SessionView], None]


class SessionState(str, Enum):
    IDLE = "IDLE"
    ON_STAGE = "ON_STAGE"


@dataclass(frozen=True)
class SessionConfig:
    """Configuration for a live session."""

    seed: int | None = None
    backup_limit: int = 12


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Owns the roster, band queue, history and countdown of one jam session.

    Every public operation runs behind a single lock so that the single-role
    and single-head invariants hold even when the countdown ticker or the
    autosave worker touch the store from their own threads.  Subscribers
    receive a fresh :class:`SessionView` after each mutation.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        *,
        rng: random.Random | None = None,
        name_pool: Iterable[str] | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.config = config or SessionConfig()
        seed = self.config.seed if self.config.seed is not None else secrets.SystemRandom().getrandbits(32)
        self.rng = rng or random.Random(seed)
        self._name_pool = list(name_pool) if name_pool is not None else None
        self._clock = clock
        self._lock = threading.RLock()
        self._musicians: dict[str, Musician] = {}
        self._queue = BandQueue()
        self._history: list[Band] = []
        self._timer = Countdown()
        self._subscribers: list[Subscriber] = []

    # ------------------------------------------------------------------ views
    @property
    def state(self) -> SessionState:
        with self._lock:
            return SessionState.ON_STAGE if self._queue else SessionState.IDLE

    @property
    def musicians(self) -> list[Musician]:
        with self._lock:
            return list(self._musicians.values())

    @property
    def queue(self) -> list[Band]:
        with self._lock:
            return self._queue.snapshot()

    @property
    def history(self) -> list[Band]:
        with self._lock:
            return list(self._history)

    @property
    def on_stage(self) -> Band | None:
        with self._lock:
            return self._queue.head()

    @property
    def timer(self) -> TimerPayload:
        with self._lock:
            return TimerPayload(seconds_left=self._timer.seconds_left, running=self._timer.running)

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return not self._musicians and not self._queue and not self._history

    def musician(self, musician_id: str) -> Musician:
        with self._lock:
            return self._require_musician(musician_id)

    def view(self) -> SessionView:
        with self._lock:
            return self._view_locked()

    def stats(self) -> SessionStats:
        with self._lock:
            return summarize_session(list(self._musicians.values()), self._queue.snapshot(), self._history)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    # ----------------------------------------------------------------- roster
    def register(self, musician: Musician) -> Musician:
        with self._mutation("register"):
            if musician.id in self._musicians:
                raise ValueError(f"musician '{musician.id}' already registered")
            self._ensure_username_free(musician.username)
            self._musicians[musician.id] = musician
        logger.info("musician registered", extra={"musician_id": musician.id})
        return musician

    def update_musician(self, musician_id: str, **changes: Any) -> Musician:
        with self._mutation("update_musician"):
            current = self._require_musician(musician_id)
            changes.pop("id", None)
            username = changes.get("username")
            if username is not None and username.lower() != current.username.lower():
                self._ensure_username_free(username, ignore_id=musician_id)
            updated = replace(current, **changes)
            self._musicians[musician_id] = updated
        return updated

    def toggle_status(self, musician_id: str) -> Musician:
        with self._mutation("toggle_status"):
            current = self._require_musician(musician_id)
            status = MusicianStatus.PAUSED if current.is_active else MusicianStatus.ACTIVE
            updated = replace(current, status=status)
            self._musicians[musician_id] = updated
        return updated

    def delete_musician(self, musician_id: str) -> Musician:
        with self._mutation("delete_musician"):
            return self._musicians.pop(self._require_musician(musician_id).id)

    # ------------------------------------------------------------------ bands
    def generate_band(self, fixed_size: int = 0) -> Band:
        with self._mutation("generate_band"):
            roster = list(self._musicians.values())
            active = sum(1 for musician in roster if musician.is_active)
            if active < MIN_ACTIVE_MUSICIANS:
                logger.warning("generation refused", extra={"active": active})
                raise InsufficientRosterError(active)
            band = generate_next_band(
                roster,
                self._queue.snapshot(),
                self._history,
                fixed_size,
                rng=self.rng,
                name_pool=self._name_pool,
            )
            if band is None:
                missing = diagnose_roster(roster)
                logger.warning("generation failed", extra={"missing": missing})
                raise CoreRoleUnfillableError(
                    missing, detailed=feature_flags.is_enabled(feature_flags.ROLE_DIAGNOSTICS)
                )
            self._enqueue(band)
        logger.info("band generated", extra={"band_id": band.id, "members": len(band.members)})
        return band

    def add_manual_band(self) -> Band:
        with self._mutation("add_manual_band"):
            band = Band(
                id=f"manual-{uuid.uuid4().hex[:12]}",
                name=get_unique_band_name(self._used_names(), rng=self.rng, pool=self._name_pool),
                is_manual=True,
                duration_minutes=DEFAULT_DURATION_MINUTES,
            )
            self._enqueue(band)
        return band

    def advance(self, played_games: Iterable[str] = ()) -> Band | None:
        """Archive the band on stage and promote the next one.

        Returns the archived band, or ``None`` when nothing was on stage.
        """

        with self._mutation("advance"):
            if not self._queue:
                return None
            finished = self._queue.advance()
            archived = finished.archived(
                end_time=self._clock().isoformat(timespec="milliseconds"),
                played_games=list(played_games),
            )
            self._history.append(archived)
            head = self._queue.head()
            self._timer.reset(head.duration_minutes if head else 0)
        logger.info(
            "band archived",
            extra={"band_id": archived.id, "games": archived.played_games, "next": head.id if head else None},
        )
        return archived

    def add_member(self, band_id: str, musician_id: str, role: Instrument | str) -> bool:
        """Add a musician to a queued band; returns False if already a member."""

        with self._mutation("add_member"):
            band = self._queue.find(band_id)
            musician = self._require_musician(musician_id)
            if band.has_member(musician_id):
                return False
            band.members.append(Membership(musician=musician, role=Instrument.parse(role)))
        return True

    def remove_member(self, band_id: str, musician_id: str) -> bool:
        with self._mutation("remove_member"):
            band = self._queue.find(band_id)
            kept = [member for member in band.members if member.musician_id != musician_id]
            removed = len(kept) != len(band.members)
            band.members[:] = kept
        return removed

    def rename_band(self, band_id: str, name: str) -> Band:
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("band name cannot be empty")
        with self._mutation("rename_band"):
            band = self._queue.find(band_id)
            band.name = cleaned
        return band

    def shuffle_band_name(self, band_id: str) -> str:
        with self._mutation("shuffle_band_name"):
            band = self._queue.find(band_id)
            band.name = get_unique_band_name(self._used_names(), rng=self.rng, pool=self._name_pool)
        return band.name

    def set_duration(self, band_id: str, minutes: float) -> Band:
        if not math.isfinite(minutes) or minutes < 0:
            raise ValueError("duration must be a non-negative number of minutes")
        seconds = int(minutes * 60)
        with self._mutation("set_duration"):
            band = self._queue.find(band_id)
            band.duration_minutes = minutes
            if self._queue.is_on_stage(band_id) and not self._timer.running:
                self._timer.set_seconds(seconds)
        return band

    def move_band(self, from_index: int, to_index: int) -> None:
        with self._mutation("move_band"):
            previous_head = self._queue.head()
            self._queue.move(from_index, to_index)
            self._sync_timer_with_head(previous_head)

    def delete_band(self, band_id: str) -> Band:
        with self._mutation("delete_band"):
            previous_head = self._queue.head()
            removed = self._queue.remove(band_id)
            self._sync_timer_with_head(previous_head)
        return removed

    # ------------------------------------------------------------------ timer
    def start_timer(self) -> bool:
        with self._mutation("start_timer"):
            return self._timer.start()

    def pause_timer(self) -> None:
        with self._mutation("pause_timer"):
            self._timer.pause()

    def reset_timer(self) -> None:
        with self._mutation("reset_timer"):
            head = self._queue.head()
            self._timer.reset(head.duration_minutes if head else 0)

    def adjust_timer(self, delta_seconds: int) -> None:
        with self._mutation("adjust_timer"):
            self._timer.adjust(delta_seconds)

    def set_timer(self, seconds: int) -> None:
        with self._mutation("set_timer"):
            self._timer.set_seconds(seconds)

    def tick(self, seconds: int = 1) -> bool:
        with self._lock:
            if not self._timer.running:
                return False
        with self._mutation("tick"):
            reached_zero = self._timer.tick(seconds)
        if reached_zero:
            logger.info("countdown expired")
        return reached_zero

    # ------------------------------------------------------------ persistence
    def to_snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                musicians=[MusicianPayload.from_domain(m) for m in self._musicians.values()],
                queue=[BandPayload.from_domain(band) for band in self._queue],
                history=[BandPayload.from_domain(band) for band in self._history],
                timer_seconds=self._timer.seconds_left,
                exported_at=self._clock().isoformat(timespec="seconds"),
            )

    def export_json(self) -> str:
        return json.dumps(self.to_snapshot().to_dict(), ensure_ascii=False, indent=2)

    def import_json(self, text: str) -> None:
        """Replace the whole session with an exported backup."""

        try:
            raw = json.loads(text)
        except ValueError as exc:
            raise ValueError("backup is not valid JSON") from exc
        if not isinstance(raw, dict) or not isinstance(raw.get("musicians", raw.get("users")), list):
            raise ValueError("backup does not contain a musicians list")
        try:
            snapshot = SessionSnapshot.model_validate(raw)
        except ValidationError as exc:
            raise ValueError(f"invalid backup: {exc.error_count()} validation errors") from exc
        self.apply_snapshot(snapshot)

    def apply_snapshot(self, snapshot: SessionSnapshot) -> None:
        musicians = [payload.to_domain() for payload in snapshot.musicians]
        queue = [payload.to_domain() for payload in snapshot.queue]
        history = [payload.to_domain() for payload in snapshot.history]
        with self._mutation("apply_snapshot"):
            self._musicians = {musician.id: musician for musician in musicians}
            self._queue = BandQueue(queue)
            self._history = history
            head = self._queue.head()
            self._timer.reset(head.duration_minutes if head else 0)
            if snapshot.timer_seconds is not None and head is not None:
                self._timer.set_seconds(snapshot.timer_seconds)

    def persist(self, store: KeyValueStore) -> bool:
        payload = self.to_snapshot().to_dict()
        results = [store.save(key, payload.get(key, [])) for key in (MUSICIANS_KEY, QUEUE_KEY, HISTORY_KEY)]
        results.append(store.save(TIMER_KEY, {"timerSeconds": payload.get("timerSeconds", 0)}))
        return all(results)

    def load_from(self, store: KeyValueStore) -> bool:
        """Hydrate from ``store``; unreadable entries are logged and skipped."""

        raw: dict[str, Any] = {}
        for key in (MUSICIANS_KEY, QUEUE_KEY, HISTORY_KEY):
            value = store.load(key)
            if isinstance(value, list):
                raw[key] = value
        if not raw:
            return False
        timer = store.load(TIMER_KEY)
        if isinstance(timer, dict) and isinstance(timer.get("timerSeconds"), int):
            raw["timerSeconds"] = timer["timerSeconds"]
        try:
            snapshot = SessionSnapshot.model_validate(raw)
            self.apply_snapshot(snapshot)
        except (ValidationError, ValueError):
            logger.exception("Stored session is unreadable; starting empty")
            return False
        return True

    def snapshot_backup(self, store: KeyValueStore) -> bool:
        """Write the rolling durability snapshot."""

        payload = self.to_snapshot().to_dict()
        saved = store.save(BACKUP_LAST_KEY, payload)
        backups = store.load(BACKUP_HISTORY_KEY)
        if not isinstance(backups, list):
            backups = []
        backups.append(payload)
        del backups[: max(0, len(backups) - self.config.backup_limit)]
        return store.save(BACKUP_HISTORY_KEY, backups) and saved

    def restore_backup(self, store: KeyValueStore) -> bool:
        """Restore the last snapshot, only when the current session is empty."""

        if not self.is_empty:
            return False
        raw = store.load(BACKUP_LAST_KEY)
        if not isinstance(raw, dict) or not (raw.get("musicians") or raw.get("users")):
            return False
        try:
            snapshot = SessionSnapshot.model_validate(raw)
            self.apply_snapshot(snapshot)
        except (ValidationError, ValueError):
            logger.exception("Failed to load autosave snapshot")
            return False
        logger.info("session restored from autosave", extra={"exported_at": snapshot.exported_at})
        return True

    # ---------------------------------------------------------------- helpers
    @contextmanager
    def _mutation(self, event: str) -> Iterator[None]:
        with self._lock:
            yield
            view = self._view_locked() if self._subscribers else None
            subscribers = list(self._subscribers)
        logger.debug("session mutation", extra={"event": event})
        for callback in subscribers:
            try:
                callback(view)  # type: ignore[arg-type]
            except Exception:
                logger.exception("session subscriber failed", extra={"event": event})

    def _view_locked(self) -> SessionView:
        head = self._queue.head()
        return SessionView(
            state=(SessionState.ON_STAGE if head else SessionState.IDLE).value,
            on_stage=BandPayload.from_domain(head) if head else None,
            queue=[BandPayload.from_domain(band) for band in self._queue],
            history=[BandPayload.from_domain(band) for band in self._history],
            musicians=[MusicianPayload.from_domain(m) for m in self._musicians.values()],
            timer=TimerPayload(seconds_left=self._timer.seconds_left, running=self._timer.running),
        )

    def _require_musician(self, musician_id: str) -> Musician:
        musician = self._musicians.get(musician_id)
        if musician is None:
            raise UnknownEntityError("musician", musician_id)
        return musician

    def _ensure_username_free(self, username: str, *, ignore_id: str | None = None) -> None:
        wanted = username.strip().lower()
        for musician in self._musicians.values():
            if musician.id != ignore_id and musician.username.strip().lower() == wanted:
                raise DuplicateUsernameError(username)

    def _used_names(self) -> set[str]:
        return {band.name for band in self._queue} | {band.name for band in self._history}

    def _enqueue(self, band: Band) -> None:
        was_idle = not self._queue
        self._queue.append(band)
        if was_idle:
            self._timer.reset(band.duration_minutes)

    def _sync_timer_with_head(self, previous_head: Band | None) -> None:
        head = self._queue.head()
        if head is previous_head:
            return
        self._timer.reset(head.duration_minutes if head else 0)


def background_workers(
    session: SessionStore,
    store: KeyValueStore,
    *,
    autosave_seconds: float,
    tick_seconds: float = 1.0,
) -> list[PeriodicWorker]:
    """Countdown ticker and autosave workers for a live session (not started)."""

    return [
        PeriodicWorker("countdown", tick_seconds, session.tick),
        PeriodicWorker("autosave", autosave_seconds, lambda: session.snapshot_backup(store)),
    ]
