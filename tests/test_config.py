from __future__ import annotations

from pathlib import Path

import pytest

from jamrotation.config import Settings, require_pin, verify_pin
from jamrotation.core.errors import InvalidPinError


def test_defaults_without_environment() -> None:
    settings = Settings.from_env({})

    assert settings.data_dir == Path.home() / ".jamsession"
    assert settings.admin_pin == "admin123"
    assert settings.autosave_seconds == 300
    assert settings.backup_limit == 12
    assert settings.seed is None


def test_environment_overrides(tmp_path) -> None:
    settings = Settings.from_env(
        {
            "JAMSESSION_DATA_DIR": str(tmp_path),
            "JAMSESSION_ADMIN_PIN": "s3cret",
            "JAMSESSION_AUTOSAVE_SECONDS": "30",
            "JAMSESSION_BACKUP_LIMIT": "4",
            "JAMSESSION_SEED": "42",
        }
    )

    assert settings.data_dir == tmp_path
    assert settings.admin_pin == "s3cret"
    assert settings.autosave_seconds == 30
    assert settings.backup_limit == 4
    assert settings.seed == 42


def test_bad_values_fall_back_to_defaults(caplog) -> None:
    settings = Settings.from_env(
        {"JAMSESSION_AUTOSAVE_SECONDS": "soon", "JAMSESSION_BACKUP_LIMIT": "0", "JAMSESSION_SEED": "x"}
    )

    assert settings.autosave_seconds == 300
    assert settings.backup_limit == 1
    assert settings.seed is None
    assert "JAMSESSION_SEED" in caplog.text


def test_pin_check(tmp_path) -> None:
    settings = Settings(data_dir=tmp_path, admin_pin="1234")

    assert verify_pin("1234", settings)
    assert not verify_pin("12345", settings)
    assert not verify_pin(None, settings)
    require_pin("1234", settings)
    with pytest.raises(InvalidPinError):
        require_pin("", settings)
