"""Block source protocol — the ledger's notion of "now"."""
from typing import Protocol


class BlockSource(Protocol):
    def block_number(self) -> int: ...
