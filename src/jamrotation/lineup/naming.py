from __future__ import annotations

import logging
import random
import time
from collections.abc import Collection, Sequence

from ..data.catalog import get_catalog

__all__ = ["MAX_SUFFIX_ATTEMPTS", "get_unique_band_name"]

logger = logging.getLogger(__name__)

MAX_SUFFIX_ATTEMPTS = 20


def get_unique_band_name(
    forbidden: Collection[str],
    *,
    rng: random.Random | None = None,
    pool: Sequence[str] | None = None,
) -> str:
    """Pick a display name that does not collide with ``forbidden``.

    Unused names from the pool are preferred.  Once the pool is exhausted the
    allocator tries numbered variants (``"<name> <n>"``) and finally a
    timestamp-suffixed name, which is always unique.
    """

    rand = rng or random
    names = list(pool) if pool is not None else list(get_catalog().band_names)

    available = [name for name in names if name not in forbidden]
    if available:
        return rand.choice(available)

    if names:
        for _ in range(MAX_SUFFIX_ATTEMPTS):
            candidate = f"{rand.choice(names)} {rand.randint(2, 101)}"
            if candidate not in forbidden:
                return candidate

    logger.warning("band name pool exhausted; using timestamp name", extra={"forbidden": len(forbidden)})
    base = f"Band {int(time.time() * 1000)}"
    candidate = base
    counter = 2
    while candidate in forbidden:
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
