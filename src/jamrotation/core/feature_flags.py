"""Opt-in switches for organizer-facing behaviour.

When the active roster cannot form a band, the organizer normally sees a
generic "no band possible" message.  Listing the exact missing roles
(``assembler.role_diagnostics``) names the shortfall on the projector, which
some organizers prefer to keep off screen, so it is off unless requested.

Flags come from ``JAMSESSION_FEATURES`` (comma-separated, case-insensitive)
and can be forced on or off for a block of code::

    with feature_flags.override(enable={feature_flags.ROLE_DIAGNOSTICS}):
        session.generate_band()
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Final

ENV_VAR: Final = "JAMSESSION_FEATURES"

ROLE_DIAGNOSTICS: Final = "assembler.role_diagnostics"


@dataclass(frozen=True)
class _Layer:
    enable: frozenset[str] = field(default_factory=frozenset)
    disable: frozenset[str] = field(default_factory=frozenset)


_layers: list[_Layer] = []


def _names(flags: Iterable[str] | None) -> frozenset[str]:
    return frozenset(flag.strip().lower() for flag in flags or () if flag.strip())


def enabled_flags() -> set[str]:
    """Flags from the environment, with every active override layer applied in order."""

    active = set(_names(os.getenv(ENV_VAR, "").split(",")))
    for layer in _layers:
        active |= layer.enable
        active -= layer.disable
    return active


def is_enabled(flag: str) -> bool:
    return flag.strip().lower() in enabled_flags()


@contextmanager
def override(*, enable: Iterable[str] | None = None, disable: Iterable[str] | None = None):
    layer = _Layer(enable=_names(enable), disable=_names(disable))
    _layers.append(layer)
    try:
        yield
    finally:
        _layers.pop()


def set_env_flags(flags: Iterable[str]) -> None:
    os.environ[ENV_VAR] = ",".join(sorted(_names(flags)))
