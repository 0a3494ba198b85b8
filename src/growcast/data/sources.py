"""Interfaces for the collaborators that supply raw measurement batches."""

from dataclasses import dataclass, field
from typing import Protocol

SECONDS_PER_DAY = 86400


@dataclass
class DailyBatch:
    """Pre-aggregated daily records plus whatever metadata upstream attached."""

    records: list = field(default_factory=list)
    metadata: dict | None = None


class WindowSource(Protocol):
    """Returns raw records for an arbitrary ``[start_seconds, end_seconds)`` window.

    Seconds are counted from the subject's tracking start.
    """

    async def get_batch(self, start_seconds: int, end_seconds: int) -> list: ...


class DailySource(Protocol):
    """Returns every daily record upstream has already averaged."""

    async def get_daily_batch(self) -> DailyBatch: ...
