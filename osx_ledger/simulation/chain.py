"""Manually advanced block and time source."""
from __future__ import annotations


class ManualChain:
    """Block height and timestamp that only move when told to."""

    def __init__(self, block: int = 0, timestamp: int = 0, block_time: int = 12) -> None:
        self.block = block
        self.timestamp = timestamp
        self.block_time = block_time

    def block_number(self) -> int:
        return self.block

    def advance(self, blocks: int = 1) -> None:
        if blocks < 0:
            raise ValueError("Cannot move the chain backwards")
        self.block += blocks
        self.timestamp += blocks * self.block_time
