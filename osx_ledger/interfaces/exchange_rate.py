"""Exchange-rate protocol — static (wrapped) ⇄ elastic (rebasing) collateral units."""
from typing import Protocol


class ExchangeRateAdapter(Protocol):
    """Pure, deterministic conversion between collateral units."""

    def static_to_elastic(self, amount: int) -> int: ...

    def elastic_to_static(self, amount: int) -> int: ...
