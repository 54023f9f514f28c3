"""Index-based exchange rates between static and elastic collateral units."""
from __future__ import annotations

from typing import Protocol


class IndexSource(Protocol):
    @property
    def index(self) -> int: ...

    @property
    def scale(self) -> int: ...


class IndexExchangeRate:
    """elastic = static * index // scale, static = elastic * scale // index."""

    def __init__(self, source: IndexSource) -> None:
        self._source = source

    def static_to_elastic(self, amount: int) -> int:
        return amount * self._source.index // self._source.scale

    def elastic_to_static(self, amount: int) -> int:
        return amount * self._source.scale // self._source.index
