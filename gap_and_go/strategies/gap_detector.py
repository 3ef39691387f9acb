"""Daily gap classification against the session EMA."""

from __future__ import annotations
import logging
import math
from typing import Optional

from gap_and_go.core.types import GapType

logger = logging.getLogger("gap_and_go.strategies.gap")


def identify_gap(first_bar_high: float, first_bar_low: float, ema_value: Optional[float]) -> Optional[GapType]:
    """
    UP if the bar trades entirely above the EMA, DOWN if entirely below, NONE otherwise.
    Returns None when the EMA is undefined (warm-up); the caller retries on the next bar.
    """
    if ema_value is None or math.isnan(ema_value):
        return None
    if first_bar_low > ema_value:
        return GapType.UP
    if first_bar_high < ema_value:
        return GapType.DOWN
    return GapType.NONE


class GapDetector:
    """Resolves the day's gap once, on the first bar with a defined EMA."""

    def __init__(self) -> None:
        self.gap = GapType.NONE
        self.resolved = False

    def reset(self) -> None:
        self.gap = GapType.NONE
        self.resolved = False

    def update(self, bar_high: float, bar_low: float, ema_value: Optional[float]) -> bool:
        """Try to resolve the gap. Returns True once resolved; later calls are no-ops."""
        if self.resolved:
            return True
        gap = identify_gap(bar_high, bar_low, ema_value)
        if gap is None:
            logger.debug("EMA undefined, gap detection deferred")
            return False
        self.gap = gap
        self.resolved = True
        logger.info("Gap resolved: %s (high=%.5f low=%.5f ema=%.5f)", gap.value, bar_high, bar_low, ema_value)
        return True
