from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ...core.models import DEFAULT_DURATION_MINUTES, Band, Instrument, Membership, Musician, MusicianStatus

__all__ = [
    "BandPayload",
    "MembershipPayload",
    "MusicianPayload",
    "SessionSnapshot",
    "SessionView",
    "TimerPayload",
]


class _APIModel(BaseModel):
    # Persisted documents use camelCase keys; snake_case is accepted on input.
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MusicianPayload(_APIModel):
    id: str
    first_name: str = ""
    last_name: str = ""
    username: str = ""
    instruments: list[Instrument]
    status: MusicianStatus = MusicianStatus.ACTIVE
    custom_instrument: str | None = None
    created_at: float = 0.0
    email: str | None = None
    phone_number: str | None = None
    instagram: str | None = None
    facebook: str | None = None
    x: str | None = None
    avatar_seed: str | None = None

    @field_validator("instruments", mode="before")
    @classmethod
    def _legacy_instruments(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [Instrument.parse(item) for item in value]
        return value

    @classmethod
    def from_domain(cls, musician: Musician) -> MusicianPayload:
        return cls(
            id=musician.id,
            first_name=musician.first_name,
            last_name=musician.last_name,
            username=musician.username,
            instruments=list(musician.instruments),
            status=musician.status,
            custom_instrument=musician.custom_instrument,
            created_at=musician.created_at,
            email=musician.email,
            phone_number=musician.phone_number,
            instagram=musician.instagram,
            facebook=musician.facebook,
            x=musician.x,
            avatar_seed=musician.avatar_seed,
        )

    def to_domain(self) -> Musician:
        return Musician(
            id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            username=self.username,
            instruments=tuple(self.instruments),
            status=self.status,
            custom_instrument=self.custom_instrument,
            created_at=self.created_at,
            email=self.email,
            phone_number=self.phone_number,
            instagram=self.instagram,
            facebook=self.facebook,
            x=self.x,
            avatar_seed=self.avatar_seed,
        )


class MembershipPayload(MusicianPayload):
    """Musician snapshot flattened together with the role held in the band."""

    assigned_role: Instrument | None = None

    @field_validator("assigned_role", mode="before")
    @classmethod
    def _legacy_role(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        return Instrument.parse(value)

    @classmethod
    def from_membership(cls, membership: Membership) -> MembershipPayload:
        base = MusicianPayload.from_domain(membership.musician).model_dump()
        return cls(**base, assigned_role=membership.role)

    def to_membership(self) -> Membership:
        musician = self.to_domain()
        role = self.assigned_role
        if role is None or role not in musician.instruments:
            role = musician.instruments[0]
        return Membership(musician=musician, role=role)


class BandPayload(_APIModel):
    id: str
    name: str
    members: list[MembershipPayload] = Field(default_factory=list)
    is_manual: bool = False
    duration_minutes: float = DEFAULT_DURATION_MINUTES
    end_time: str | None = None
    played_games: list[str] | None = None

    @classmethod
    def from_domain(cls, band: Band) -> BandPayload:
        return cls(
            id=band.id,
            name=band.name,
            members=[MembershipPayload.from_membership(member) for member in band.members],
            is_manual=band.is_manual,
            duration_minutes=band.duration_minutes,
            end_time=band.end_time,
            played_games=list(band.played_games) if band.end_time else None,
        )

    def to_domain(self) -> Band:
        return Band(
            id=self.id,
            name=self.name,
            members=[member.to_membership() for member in self.members],
            is_manual=self.is_manual,
            duration_minutes=self.duration_minutes,
            end_time=self.end_time,
            played_games=list(self.played_games or []),
        )


class TimerPayload(_APIModel):
    seconds_left: int
    running: bool


class SessionView(_APIModel):
    """Read-only view handed to presentation subscribers."""

    state: str
    on_stage: BandPayload | None = None
    queue: list[BandPayload]
    history: list[BandPayload]
    musicians: list[MusicianPayload]
    timer: TimerPayload


class SessionSnapshot(_APIModel):
    musicians: list[MusicianPayload] = Field(default_factory=list)
    queue: list[BandPayload] = Field(default_factory=list)
    history: list[BandPayload] = Field(default_factory=list)
    timer_seconds: int | None = None
    exported_at: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_keys(cls, data: Any) -> Any:
        # Older exports used users/bands/pastBands.
        if not isinstance(data, dict):
            return data
        cleaned = dict(data)
        for legacy, current in (("users", "musicians"), ("bands", "queue"), ("pastBands", "history")):
            if legacy in cleaned and current not in cleaned:
                cleaned[current] = cleaned.pop(legacy)
        if "exportDate" in cleaned and "exportedAt" not in cleaned:
            cleaned["exportedAt"] = cleaned.pop("exportDate")
        return cleaned
