"""The trading day's completed bars, in arrival order."""

from __future__ import annotations
import logging
from typing import Iterator, List, Optional, Tuple

from gap_and_go.core.types import Bar

logger = logging.getLogger("gap_and_go.strategies.bars")


class BarBuffer:
    """Append-only list of the day's bars. Out-of-order or repeated bars are dropped."""

    def __init__(self) -> None:
        self._bars: List[Bar] = []

    def append(self, bar: Bar) -> bool:
        last = self.last
        if last is not None and bar.open_time_utc <= last.open_time_utc:
            logger.debug("Dropping bar %s: not after last bar %s", bar.open_time_utc, last.open_time_utc)
            return False
        self._bars.append(bar)
        return True

    def clear(self) -> None:
        self._bars.clear()

    @property
    def last(self) -> Optional[Bar]:
        return self._bars[-1] if self._bars else None

    def windows(self, size: int = 3) -> Iterator[Tuple[Bar, ...]]:
        """Sliding windows of `size` consecutive entries, oldest first."""
        for i in range(len(self._bars) - size + 1):
            yield tuple(self._bars[i:i + size])

    def __len__(self) -> int:
        return len(self._bars)

    def __iter__(self) -> Iterator[Bar]:
        return iter(self._bars)

    def __getitem__(self, index: int) -> Bar:
        return self._bars[index]
