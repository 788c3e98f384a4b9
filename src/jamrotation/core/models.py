from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum

__all__ = [
    "CORE_ROLES",
    "DEFAULT_DURATION_MINUTES",
    "HARMONIC_ROLES",
    "MULTI_SLOT_ROLES",
    "Band",
    "Instrument",
    "Membership",
    "Musician",
    "MusicianStatus",
]

DEFAULT_DURATION_MINUTES = 6


class Instrument(str, Enum):
    VOICE = "VOICE"
    GUITAR = "GUITAR"
    BASS = "BASS"
    DRUMS = "DRUMS"
    KEYS = "KEYS"
    OTHER = "OTHER"

    @classmethod
    def parse(cls, raw: str | Instrument) -> Instrument:
        """Accept canonical names as well as the legacy Italian labels."""

        if isinstance(raw, Instrument):
            return raw
        token = str(raw).strip().upper()
        token = _LEGACY_LABELS.get(token, token)
        try:
            return cls(token)
        except ValueError as exc:
            raise ValueError(f"unknown instrument '{raw}'") from exc


_LEGACY_LABELS = {
    "VOCE": "VOICE",
    "CHITARRA": "GUITAR",
    "BASSO": "BASS",
    "BATTERIA": "DRUMS",
    "TASTIERA": "KEYS",
    "ALTRO": "OTHER",
}

# Roles that never block another musician from taking the same slot.
MULTI_SLOT_ROLES = frozenset({Instrument.VOICE, Instrument.OTHER})
HARMONIC_ROLES = frozenset({Instrument.GUITAR, Instrument.KEYS})
CORE_ROLES = (Instrument.DRUMS, Instrument.BASS)


class MusicianStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"


@dataclass(frozen=True)
class Musician:
    """A registered participant.

    Instances are immutable: profile edits create a new ``Musician`` so band
    memberships keep the snapshot taken when they were assigned.  The order of
    ``instruments`` matters, it drives the role rotation.
    """

    id: str
    first_name: str
    last_name: str
    username: str
    instruments: tuple[Instrument, ...]
    status: MusicianStatus = MusicianStatus.ACTIVE
    custom_instrument: str | None = None
    created_at: float = field(default_factory=time.time)
    email: str | None = None
    phone_number: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    x: str | None = None
    avatar_seed: str | None = None

    def __post_init__(self) -> None:
        ordered: list[Instrument] = []
        for raw in self.instruments:
            inst = Instrument.parse(raw)
            if inst not in ordered:
                ordered.append(inst)
        if not ordered:
            raise ValueError(f"musician '{self.id}' must play at least one instrument")
        object.__setattr__(self, "instruments", tuple(ordered))
        object.__setattr__(self, "status", MusicianStatus(self.status))

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username

    @property
    def is_active(self) -> bool:
        return self.status is MusicianStatus.ACTIVE

    def plays(self, instrument: Instrument) -> bool:
        return instrument in self.instruments

    def role_label(self, role: Instrument) -> str:
        if role is Instrument.OTHER and self.custom_instrument:
            return self.custom_instrument
        return role.value


@dataclass(frozen=True)
class Membership:
    """A musician snapshot filling one role inside one band."""

    musician: Musician
    role: Instrument

    def __post_init__(self) -> None:
        role = Instrument.parse(self.role)
        object.__setattr__(self, "role", role)
        if role not in self.musician.instruments:
            raise ValueError(f"musician '{self.musician.id}' cannot play {role.value}")

    @property
    def musician_id(self) -> str:
        return self.musician.id


@dataclass
class Band:
    id: str
    name: str
    members: list[Membership] = field(default_factory=list)
    is_manual: bool = False
    duration_minutes: float = DEFAULT_DURATION_MINUTES
    end_time: str | None = None
    played_games: list[str] = field(default_factory=list)

    def member_ids(self) -> list[str]:
        return [member.musician_id for member in self.members]

    def has_member(self, musician_id: str) -> bool:
        return any(member.musician_id == musician_id for member in self.members)

    def roles(self) -> list[Instrument]:
        return [member.role for member in self.members]

    def archived(self, end_time: str, played_games: list[str] | tuple[str, ...] = ()) -> Band:
        return replace(self, members=list(self.members), end_time=end_time, played_games=list(played_games))
