"""
Three-bar continuation pattern in the direction of the day's gap.

Bullish (gap UP): three up bars, each closing above the previous bar's high
with a higher low, and with bodies large enough relative to their range.
Bearish (gap DOWN) is the mirror image.
"""

from __future__ import annotations
import logging
from datetime import timedelta
from typing import Callable, Iterable, Iterator, Optional, Set

from gap_and_go.core.types import Bar, GapType, PatternSetup, PatternSignature, SignalSide

logger = logging.getLogger("gap_and_go.strategies.pattern")

EPSILON = 1e-10

# Body ratio thresholds: bar 2 needs STRONG, or WEAK with its extreme past bar 1's midpoint;
# bar 3 needs VERY_STRONG, or STRONG with its extreme past bar 1's far side.
WEAK_BODY = 0.3
STRONG_BODY = 0.5
VERY_STRONG_BODY = 0.7

ENTRY_OFFSET_PIPS = 2
STOP_OFFSET_PIPS = 1


def body_ratio(bar: Bar) -> float:
    """|close - open| / range; 1.0 for zero-range bars."""
    rng = bar.high - bar.low
    if rng < EPSILON:
        return 1.0
    return abs(bar.close - bar.open) / rng


def is_bullish_pattern(b1: Bar, b2: Bar, b3: Bar) -> bool:
    if not b1.is_bullish:
        return False
    r2 = body_ratio(b2)
    if not (b2.is_bullish and b2.close > b1.high and b2.low > b1.low):
        return False
    if not (r2 >= STRONG_BODY or (r2 >= WEAK_BODY and b2.low > b1.midpoint)):
        return False
    r3 = body_ratio(b3)
    if not (b3.is_bullish and b3.close > b2.high and b3.low > b2.low):
        return False
    return r3 >= VERY_STRONG_BODY or (r3 >= STRONG_BODY and b3.low > b1.high)


def is_bearish_pattern(b1: Bar, b2: Bar, b3: Bar) -> bool:
    if not b1.is_bearish:
        return False
    r2 = body_ratio(b2)
    if not (b2.is_bearish and b2.close < b1.low and b2.high < b1.high):
        return False
    if not (r2 >= STRONG_BODY or (r2 >= WEAK_BODY and b2.high < b1.midpoint)):
        return False
    r3 = body_ratio(b3)
    if not (b3.is_bearish and b3.close < b2.low and b3.high < b2.high):
        return False
    return r3 >= VERY_STRONG_BODY or (r3 >= STRONG_BODY and b3.high < b1.low)


class PatternMatcher:
    """
    Scans bar triples for the continuation pattern. Each window is evaluated at
    most once per day: its signature is remembered after evaluation.
    """

    def __init__(self, pip_size: float, interval: timedelta):
        self.pip_size = pip_size
        self.interval = interval
        self.processed: Set[PatternSignature] = set()

    def reset(self) -> None:
        self.processed.clear()

    def is_adjacent(self, b1: Bar, b2: Bar, b3: Bar) -> bool:
        return (
            b2.open_time_utc - b1.open_time_utc == self.interval
            and b3.open_time_utc - b2.open_time_utc == self.interval
        )

    def evaluate(self, b1: Bar, b2: Bar, b3: Bar, gap: GapType) -> Optional[PatternSetup]:
        """Pattern check for one triple; None if the triple does not qualify."""
        signature = PatternSignature.from_bars(b1, b2, b3)
        if gap is GapType.UP and is_bullish_pattern(b1, b2, b3):
            return PatternSetup(
                side=SignalSide.LONG,
                entry_price=b3.high + ENTRY_OFFSET_PIPS * self.pip_size,
                stop_loss=b2.low - STOP_OFFSET_PIPS * self.pip_size,
                take_profit=b3.high + (b3.high - b1.low),
                signature=signature,
                confirming_bar=b3,
            )
        if gap is GapType.DOWN and is_bearish_pattern(b1, b2, b3):
            return PatternSetup(
                side=SignalSide.SHORT,
                entry_price=b3.low - ENTRY_OFFSET_PIPS * self.pip_size,
                stop_loss=b2.high + STOP_OFFSET_PIPS * self.pip_size,
                take_profit=b3.low - (b1.high - b3.low),
                signature=signature,
                confirming_bar=b3,
            )
        return None

    def scan(
        self,
        windows: Iterable[tuple],
        gap: GapType,
        can_continue: Callable[[], bool] = lambda: True,
    ) -> Iterator[PatternSetup]:
        """
        Lazily yield setups over sliding windows. can_continue is consulted before
        each window so the caller can stop once no further trade is allowed.
        """
        if gap is GapType.NONE:
            return
        for b1, b2, b3 in windows:
            if not can_continue():
                return
            if not self.is_adjacent(b1, b2, b3):
                continue
            signature = PatternSignature.from_bars(b1, b2, b3)
            if signature in self.processed:
                continue
            setup = self.evaluate(b1, b2, b3, gap)
            self.processed.add(signature)
            if setup is not None:
                logger.info(
                    "%s pattern confirmed at %s: entry=%.5f stop=%.5f target=%.5f",
                    "Bullish" if setup.is_long else "Bearish", b3.open_time_local,
                    setup.entry_price, setup.stop_loss, setup.take_profit,
                )
                yield setup
