"""Instrument rotation for multi-instrumentalists.

A musician who last played instrument X is steered towards the capability
listed right after X in their own instrument list, wrapping around so X itself
is tried last.  This keeps multi-instrumentalists moving across their
instruments instead of always landing on the first one they registered.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Collection

from ..core.models import Instrument, Musician

__all__ = ["next_role", "rotation_order"]

logger = logging.getLogger(__name__)


def rotation_order(instruments: tuple[Instrument, ...], last_role: Instrument) -> list[Instrument]:
    """Full instrument list re-started right after ``last_role``."""

    if last_role not in instruments:
        return list(instruments)
    start = instruments.index(last_role) + 1
    return list(instruments[start:] + instruments[:start])


def next_role(
    musician: Musician,
    occupied: Collection[Instrument],
    last_role: Instrument | None,
    rng: random.Random | None = None,
) -> Instrument | None:
    """Pick the role ``musician`` should fill given the roles already taken.

    Returns ``None`` when every instrument the musician plays is occupied.
    """

    valid = [inst for inst in musician.instruments if inst not in occupied]
    if not valid:
        return None
    if len(valid) == 1:
        return valid[0]
    if last_role is None:
        return (rng or random).choice(valid)

    for candidate in rotation_order(musician.instruments, last_role):
        if candidate not in occupied:
            return candidate
    # Unreachable while ``valid`` is non-empty; kept as the documented fallback.
    logger.debug("rotation fell back to first valid role", extra={"musician_id": musician.id})
    return valid[0]
