from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

__all__ = ["Catalog", "CatalogConfig", "Game", "get_catalog"]

_DEFAULT_RESOURCE = Path(__file__).with_name("catalog.json")


@dataclass(slots=True)
class CatalogConfig:
    """Location of the bundled band-name pool and mini-game list."""

    resource: Path


@dataclass(frozen=True, slots=True)
class Game:
    id: str
    title: str
    description: str


class Catalog:
    """Read-only access to the static band names and on-stage mini-games."""

    def __init__(self, config: CatalogConfig | None = None) -> None:
        resource = config.resource if config else _DEFAULT_RESOURCE
        self._config = CatalogConfig(resource=resource)
        payload = self._load_resource(resource)
        self._band_names = tuple(_unique_names(payload.get("band_names", [])))
        self._games = tuple(_decode_games(payload.get("games", [])))

    @staticmethod
    def _load_resource(path: Path) -> dict[str, Any]:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError("Invalid catalog payload")
        return data

    @property
    def band_names(self) -> tuple[str, ...]:
        return self._band_names

    @property
    def games(self) -> tuple[Game, ...]:
        return self._games

    def game(self, game_id: str) -> Game | None:
        for game in self._games:
            if game.id == game_id:
                return game
        return None


def _unique_names(raw: list[Any]) -> list[str]:
    names: list[str] = []
    for entry in raw:
        name = str(entry).strip()
        if name and name not in names:
            names.append(name)
    return names


def _decode_games(raw: list[Any]) -> list[Game]:
    games: list[Game] = []
    for entry in raw:
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        games.append(
            Game(
                id=str(entry["id"]),
                title=str(entry.get("title", entry["id"])),
                description=str(entry.get("description", "")),
            )
        )
    return games


_CATALOG: Optional[Catalog] = None
_CATALOG_STAMP: Optional[float] = None


def get_catalog() -> Catalog:
    """Return the default catalog, reloading when the resource changes on disk."""

    global _CATALOG, _CATALOG_STAMP
    stamp = _DEFAULT_RESOURCE.stat().st_mtime
    if _CATALOG is None or _CATALOG_STAMP != stamp:
        _CATALOG = Catalog(CatalogConfig(resource=_DEFAULT_RESOURCE))
        _CATALOG_STAMP = stamp
    return _CATALOG
