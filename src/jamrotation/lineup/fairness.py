"""Play-count and pairing aggregates over a collection of bands.

Both the archived history and the bands still waiting in the queue count
towards fairness, so callers usually pass ``history + queue``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from itertools import combinations

from ..core.models import Band, Instrument

__all__ = [
    "compute_pair_history",
    "compute_play_counts",
    "last_played_role",
    "pair_key",
    "pair_score",
]


def pair_key(first_id: str, second_id: str) -> tuple[str, str]:
    """Order-independent key for a pair of musicians."""

    return (first_id, second_id) if first_id <= second_id else (second_id, first_id)


def compute_play_counts(bands: Iterable[Band]) -> Counter[str]:
    counts: Counter[str] = Counter()
    for band in bands:
        counts.update(band.member_ids())
    return counts


def compute_pair_history(bands: Iterable[Band]) -> Counter[tuple[str, str]]:
    history: Counter[tuple[str, str]] = Counter()
    for band in bands:
        for first, second in combinations(band.member_ids(), 2):
            history[pair_key(first, second)] += 1
    return history


def pair_score(
    candidate_id: str,
    lineup_ids: Iterable[str],
    pair_history: Mapping[tuple[str, str], int],
) -> int:
    """How often ``candidate_id`` has already shared a band with the lineup."""

    return sum(pair_history.get(pair_key(candidate_id, other), 0) for other in lineup_ids)


def last_played_role(musician_id: str, bands: Sequence[Band]) -> Instrument | None:
    for band in reversed(bands):
        for member in band.members:
            if member.musician_id == musician_id:
                return member.role
    return None
