from __future__ import annotations

from collections.abc import Sequence

__all__ = [
    "CoreRoleUnfillableError",
    "DuplicateUsernameError",
    "InsufficientRosterError",
    "InvalidPinError",
    "JamSessionError",
    "UnknownEntityError",
]

MIN_ACTIVE_MUSICIANS = 3


class JamSessionError(Exception):
    """Base class for recoverable session errors surfaced to the organizer."""


class InsufficientRosterError(JamSessionError, ValueError):
    def __init__(self, active: int) -> None:
        super().__init__(
            f"cannot generate a band: at least {MIN_ACTIVE_MUSICIANS} active musicians are needed ({active} active)"
        )
        self.active = active


class CoreRoleUnfillableError(JamSessionError, ValueError):
    """Raised when the active roster cannot cover drums, bass and a harmonic player."""

    def __init__(self, missing: Sequence[str] = (), *, detailed: bool = False) -> None:
        self.missing = tuple(missing)
        if detailed and self.missing:
            message = "no band possible: missing " + ", ".join(self.missing)
        else:
            message = "no band possible with the current active musicians; check drummers and bassists"
        super().__init__(message)


class DuplicateUsernameError(JamSessionError, ValueError):
    def __init__(self, username: str) -> None:
        super().__init__(f"username '{username}' is already taken")
        self.username = username


class UnknownEntityError(JamSessionError, KeyError):
    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} '{entity_id}' not found")
        self.kind = kind
        self.entity_id = entity_id

    def __str__(self) -> str:
        return str(self.args[0])


class InvalidPinError(JamSessionError, PermissionError):
    def __init__(self) -> None:
        super().__init__("invalid organizer PIN")
