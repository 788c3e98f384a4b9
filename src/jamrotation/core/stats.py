from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

from .models import DEFAULT_DURATION_MINUTES, Band, Instrument, Musician

__all__ = ["MusicianStats", "SessionStats", "summarize_session"]

TOP_MUSICIANS = 5


@dataclass(frozen=True)
class MusicianStats:
    musician_id: str
    name: str
    appearances: int
    minutes_played: float
    instruments_played: tuple[Instrument, ...]


@dataclass(frozen=True)
class SessionStats:
    total_jams: int
    archived_jams: int
    per_musician: tuple[MusicianStats, ...]
    role_totals: tuple[tuple[Instrument, int], ...]
    top_musicians: tuple[MusicianStats, ...]
    marathon: MusicianStats | None
    all_rounder: MusicianStats | None


def _duration(band: Band) -> float:
    return float(band.duration_minutes or DEFAULT_DURATION_MINUTES)


def summarize_session(
    musicians: Sequence[Musician],
    queue: Sequence[Band],
    history: Sequence[Band],
) -> SessionStats:
    """Aggregate the organizer's "hall of fame" figures.

    Both archived and queued bands count, the same population the band
    generator uses for fairness.  Musicians that have been deleted from the
    roster still appear under the name of their last membership snapshot.
    """

    bands = [*history, *queue]
    appearances: Counter[str] = Counter()
    minutes: dict[str, float] = defaultdict(float)
    played: dict[str, list[Instrument]] = defaultdict(list)
    names: dict[str, str] = {}
    role_totals: Counter[Instrument] = Counter()

    for band in bands:
        for member in band.members:
            mid = member.musician_id
            appearances[mid] += 1
            minutes[mid] += _duration(band)
            if member.role not in played[mid]:
                played[mid].append(member.role)
            names[mid] = member.musician.display_name
            role_totals[member.role] += 1

    for musician in musicians:
        names[musician.id] = musician.display_name

    per_musician = tuple(
        MusicianStats(
            musician_id=mid,
            name=names.get(mid, mid),
            appearances=appearances[mid],
            minutes_played=minutes[mid],
            instruments_played=tuple(played[mid]),
        )
        for mid in appearances
    )

    ranked = sorted(per_musician, key=lambda entry: entry.appearances, reverse=True)
    marathon = max(per_musician, key=lambda entry: entry.minutes_played, default=None)
    all_rounder = max(per_musician, key=lambda entry: len(entry.instruments_played), default=None)

    return SessionStats(
        total_jams=len(bands),
        archived_jams=len(history),
        per_musician=per_musician,
        role_totals=tuple(role_totals.most_common()),
        top_musicians=tuple(ranked[:TOP_MUSICIANS]),
        marathon=marathon,
        all_rounder=all_rounder,
    )
