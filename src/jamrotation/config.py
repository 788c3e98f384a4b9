"""Environment-driven settings for the organizer tools.

``JAMSESSION_DATA_DIR``        directory holding the JSON store (``~/.jamsession``)
``JAMSESSION_ADMIN_PIN``       shared organizer PIN (``admin123``)
``JAMSESSION_AUTOSAVE_SECONDS`` interval between durability snapshots (300)
``JAMSESSION_BACKUP_LIMIT``    autosave snapshots retained (12, about an hour)
``JAMSESSION_SEED``            optional integer seed for reproducible sessions

Feature flags live in ``JAMSESSION_FEATURES``, see :mod:`jamrotation.core.feature_flags`.
"""

from __future__ import annotations

import logging
import os
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .core.errors import InvalidPinError

__all__ = ["Settings", "require_pin", "verify_pin"]

logger = logging.getLogger(__name__)

DEFAULT_PIN = "admin123"
DEFAULT_AUTOSAVE_SECONDS = 300.0
DEFAULT_BACKUP_LIMIT = 12


def _env_int(env: Mapping[str, str], key: str) -> int | None:
    raw = env.get(key, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", key, raw)
        return None


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", key, raw)
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    admin_pin: str = DEFAULT_PIN
    autosave_seconds: float = DEFAULT_AUTOSAVE_SECONDS
    backup_limit: int = DEFAULT_BACKUP_LIMIT
    seed: int | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        data_dir = env.get("JAMSESSION_DATA_DIR", "").strip()
        backup_limit = _env_int(env, "JAMSESSION_BACKUP_LIMIT")
        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else Path.home() / ".jamsession",
            admin_pin=env.get("JAMSESSION_ADMIN_PIN", "") or DEFAULT_PIN,
            autosave_seconds=_env_float(env, "JAMSESSION_AUTOSAVE_SECONDS", DEFAULT_AUTOSAVE_SECONDS),
            backup_limit=max(1, backup_limit) if backup_limit is not None else DEFAULT_BACKUP_LIMIT,
            seed=_env_int(env, "JAMSESSION_SEED"),
        )


def verify_pin(pin: str | None, settings: Settings) -> bool:
    if not pin:
        return False
    return secrets.compare_digest(pin.encode("utf-8"), settings.admin_pin.encode("utf-8"))


def require_pin(pin: str | None, settings: Settings) -> None:
    if not verify_pin(pin, settings):
        raise InvalidPinError()
