from __future__ import annotations

from collections.abc import Iterable, Iterator

from ...core.errors import UnknownEntityError
from ...core.models import Band

__all__ = ["BandQueue"]


class BandQueue:
    """Bands waiting to play; the head is the band on stage."""

    def __init__(self, bands: Iterable[Band] | None = None) -> None:
        self._bands: list[Band] = list(bands or ())

    def __len__(self) -> int:
        return len(self._bands)

    def __iter__(self) -> Iterator[Band]:
        return iter(self._bands)

    def __bool__(self) -> bool:
        return bool(self._bands)

    def head(self) -> Band | None:
        return self._bands[0] if self._bands else None

    def is_on_stage(self, band_id: str) -> bool:
        head = self.head()
        return head is not None and head.id == band_id

    def advance(self) -> Band:
        """Remove and return the head; raises ``IndexError`` when empty."""

        if not self._bands:
            raise IndexError("advance on an empty queue")
        return self._bands.pop(0)

    def append(self, band: Band) -> None:
        self._bands.append(band)

    def find(self, band_id: str) -> Band:
        for band in self._bands:
            if band.id == band_id:
                return band
        raise UnknownEntityError("band", band_id)

    def index_of(self, band_id: str) -> int:
        for index, band in enumerate(self._bands):
            if band.id == band_id:
                return index
        raise UnknownEntityError("band", band_id)

    def remove(self, band_id: str) -> Band:
        return self._bands.pop(self.index_of(band_id))

    def move(self, from_index: int, to_index: int) -> None:
        size = len(self._bands)
        if not (0 <= from_index < size) or not (0 <= to_index < size):
            raise IndexError("queue position out of range")
        if from_index == to_index:
            return
        band = self._bands.pop(from_index)
        self._bands.insert(to_index, band)

    def snapshot(self) -> list[Band]:
        return list(self._bands)
