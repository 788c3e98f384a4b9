"""Automatic band generation.

A band is assembled in two phases.  The core phase fills drums, bass and one
harmonic instrument (guitar or keys); without all three no band is produced.
The remainder phase tops the lineup up to a target size, preferring musicians
who have played the least and, among equals, those who have shared the stage
least with the lineup built so far.

Musicians from the most recent band (the cooldown set) stay eligible but are
always tried after everybody else, so back-to-back repeats only happen when
the roster leaves no alternative.
"""

from __future__ import annotations

import logging
import random
import uuid
from collections import defaultdict
from collections.abc import Callable, Iterator, Mapping, Sequence
from itertools import chain

from ..core.errors import MIN_ACTIVE_MUSICIANS
from ..core.models import (
    CORE_ROLES,
    DEFAULT_DURATION_MINUTES,
    HARMONIC_ROLES,
    MULTI_SLOT_ROLES,
    Band,
    Instrument,
    Membership,
    Musician,
)
from .fairness import compute_pair_history, compute_play_counts, last_played_role, pair_score
from .naming import get_unique_band_name
from .rotation import next_role

__all__ = [
    "MAX_RANDOM_SIZE",
    "MIN_RANDOM_SIZE",
    "diagnose_roster",
    "generate_next_band",
    "priority_shuffle",
]

logger = logging.getLogger(__name__)

MIN_RANDOM_SIZE = 3
MAX_RANDOM_SIZE = 6

_ROLE_LABELS = {
    Instrument.DRUMS: "drummer",
    Instrument.BASS: "bassist",
}
_HARMONIC_LABEL = "harmonic player (guitar or keys)"


def priority_shuffle(
    musicians: Sequence[Musician],
    play_counts: Mapping[str, int],
    rng: random.Random,
) -> list[Musician]:
    """Order musicians by play count, shuffling within each count group."""

    grouped: dict[int, list[Musician]] = defaultdict(list)
    for musician in musicians:
        grouped[play_counts.get(musician.id, 0)].append(musician)
    ordered: list[Musician] = []
    for count in sorted(grouped):
        group = list(grouped[count])
        rng.shuffle(group)
        ordered.extend(group)
    return ordered


class _LineupBuilder:
    """Mutable state for one band under construction."""

    def __init__(
        self,
        available: Sequence[Musician],
        cooldown: Sequence[Musician],
        past_bands: Sequence[Band],
        rng: random.Random,
    ) -> None:
        self.available = list(available)
        self.cooldown = list(cooldown)
        self.past_bands = past_bands
        self.rng = rng
        self.members: list[Membership] = []
        self.selected: set[str] = set()
        self.occupied: set[Instrument] = set()

    def __len__(self) -> int:
        return len(self.members)

    def unselected(self) -> Iterator[Musician]:
        for musician in chain(self.available, self.cooldown):
            if musician.id not in self.selected:
                yield musician

    def _first(self, accept: Callable[[Musician], bool]) -> Musician | None:
        return next((musician for musician in self.unselected() if accept(musician)), None)

    def admit(self, musician: Musician, role: Instrument) -> None:
        self.members.append(Membership(musician=musician, role=role))
        self.selected.add(musician.id)
        if role not in MULTI_SLOT_ROLES:
            self.occupied.add(role)

    def role_for(self, musician: Musician) -> Instrument | None:
        last_role = last_played_role(musician.id, self.past_bands)
        return next_role(musician, self.occupied, last_role, self.rng)

    def pick_role(self, role: Instrument) -> bool:
        if role in self.occupied:
            return False
        candidate = self._first(lambda musician: musician.plays(role))
        if candidate is None:
            return False
        self.admit(candidate, role)
        return True

    def pick_harmonic(self) -> bool:
        open_roles = [role for role in (Instrument.GUITAR, Instrument.KEYS) if role not in self.occupied]
        if not open_roles:
            return False
        candidate = self._first(lambda musician: any(musician.plays(role) for role in open_roles))
        if candidate is None:
            return False
        playable = [role for role in open_roles if candidate.plays(role)]
        if len(playable) > 1:
            role = self.role_for(candidate)
            if role not in HARMONIC_ROLES:
                role = Instrument.GUITAR
        else:
            role = playable[0]
        self.admit(candidate, role)
        return True

    def fill_core(self) -> list[str]:
        """Fill the mandatory roles; returns labels of the roles left empty."""

        missing: list[str] = []
        for role in CORE_ROLES:
            if not self.pick_role(role):
                missing.append(_ROLE_LABELS[role])
        if not self.pick_harmonic():
            missing.append(_HARMONIC_LABEL)
        return missing


def generate_next_band(
    musicians: Sequence[Musician],
    queue: Sequence[Band],
    history: Sequence[Band],
    fixed_size: int = 0,
    *,
    rng: random.Random | None = None,
    name_pool: Sequence[str] | None = None,
) -> Band | None:
    """Build the next band from the active roster, or ``None`` when impossible."""

    rand = rng or random.Random()
    active = [musician for musician in musicians if musician.is_active]
    if len(active) < MIN_ACTIVE_MUSICIANS:
        logger.debug("not enough active musicians", extra={"active": len(active)})
        return None

    past_bands = [*history, *queue]
    play_counts = compute_play_counts(past_bands)
    pair_history = compute_pair_history(past_bands)

    last_band = queue[-1] if queue else (history[-1] if history else None)
    cooldown_ids = set(last_band.member_ids()) if last_band else set()

    available = priority_shuffle([m for m in active if m.id not in cooldown_ids], play_counts, rand)
    cooldown = priority_shuffle([m for m in active if m.id in cooldown_ids], play_counts, rand)
    builder = _LineupBuilder(available, cooldown, past_bands, rand)

    missing = builder.fill_core()
    if missing:
        logger.debug("core roles unfillable", extra={"missing": missing})
        return None

    target = fixed_size if fixed_size > 0 else rand.randint(MIN_RANDOM_SIZE, MAX_RANDOM_SIZE)
    lineup_ids = list(builder.selected)
    pool = sorted(
        builder.unselected(),
        key=lambda m: (
            m.id in cooldown_ids,
            play_counts.get(m.id, 0),
            pair_score(m.id, lineup_ids, pair_history),
        ),
    )
    for candidate in pool:
        if len(builder) >= target:
            break
        role = builder.role_for(candidate)
        if role is not None:
            builder.admit(candidate, role)

    used_names = {band.name for band in past_bands}
    band = Band(
        id=f"band-auto-{uuid.uuid4().hex[:12]}",
        name=get_unique_band_name(used_names, rng=rand, pool=name_pool),
        members=builder.members,
        is_manual=False,
        duration_minutes=DEFAULT_DURATION_MINUTES,
    )
    logger.debug(
        "generated band",
        extra={"band_id": band.id, "size": len(band.members), "target": target, "cooldown": len(cooldown_ids)},
    )
    return band


def diagnose_roster(musicians: Sequence[Musician]) -> list[str]:
    """Explain why no band can be formed from the active roster.

    Runs the core phase over the active musicians in roster order and lists
    the constraints left unmet; an empty list means a band is possible.
    """

    active = [musician for musician in musicians if musician.is_active]
    if len(active) < MIN_ACTIVE_MUSICIANS:
        return [f"at least {MIN_ACTIVE_MUSICIANS} active musicians"]
    builder = _LineupBuilder(active, (), (), random.Random(0))
    return builder.fill_core()
