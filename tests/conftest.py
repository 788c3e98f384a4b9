from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure "src" is on sys.path for imports in tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from jamrotation.core.models import Band, Membership, Musician, MusicianStatus  # noqa: E402


def _musician(musician_id: str, *instruments, status: MusicianStatus = MusicianStatus.ACTIVE, **extra) -> Musician:
    fields = {"first_name": musician_id.title(), "last_name": "Test", "username": musician_id}
    fields.update(extra)
    return Musician(id=musician_id, instruments=tuple(instruments), status=status, **fields)


def _band(band_id: str, *members: tuple[Musician, object], name: str | None = None) -> Band:
    return Band(
        id=band_id,
        name=name or f"Band {band_id}",
        members=[Membership(musician=musician, role=role) for musician, role in members],
    )


@pytest.fixture
def make_musician():
    return _musician


@pytest.fixture
def make_band():
    return _band
