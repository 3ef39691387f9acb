"""Unit tests for strategies.pattern_matcher."""

from datetime import timedelta

import pytest
from conftest import make_bar
from gap_and_go.core.types import GapType, SignalSide
from gap_and_go.strategies.bar_buffer import BarBuffer
from gap_and_go.strategies.pattern_matcher import PatternMatcher, body_ratio

FIVE_MIN = timedelta(minutes=5)


def _matcher():
    return PatternMatcher(pip_size=1.0, interval=FIVE_MIN)


def _bearish_triple():
    return (
        make_bar(9, 35, 99.0, 99.0, 97.5, 98.0),
        make_bar(9, 40, 98.0, 98.0, 94.0, 95.0),
        make_bar(9, 45, 95.0, 95.0, 91.0, 92.0),
    )


def test_body_ratio_zero_range():
    assert body_ratio(make_bar(9, 30, 100.0, 100.0, 100.0, 100.0)) == 1.0


def test_body_ratio():
    assert body_ratio(make_bar(9, 30, 101.0, 104.0, 100.0, 103.0)) == pytest.approx(0.5)


def test_bullish_pattern_levels(bullish_day):
    _, b1, b2, b3 = bullish_day
    setup = _matcher().evaluate(b1, b2, b3, GapType.UP)
    assert setup is not None
    assert setup.side is SignalSide.LONG
    assert setup.entry_price == pytest.approx(111.0)
    assert setup.stop_loss == pytest.approx(101.0)
    assert setup.take_profit == pytest.approx(117.0)
    assert setup.confirming_bar is b3


def test_bullish_pattern_requires_gap_up(bullish_day):
    _, b1, b2, b3 = bullish_day
    assert _matcher().evaluate(b1, b2, b3, GapType.DOWN) is None
    assert _matcher().evaluate(b1, b2, b3, GapType.NONE) is None


def test_bearish_pattern_levels():
    b1, b2, b3 = _bearish_triple()
    setup = _matcher().evaluate(b1, b2, b3, GapType.DOWN)
    assert setup is not None
    assert setup.side is SignalSide.SHORT
    assert setup.entry_price == pytest.approx(89.0)
    assert setup.stop_loss == pytest.approx(99.0)
    assert setup.take_profit == pytest.approx(91.0 - (99.0 - 91.0))


def test_weak_second_bar_needs_low_above_midpoint():
    b1 = make_bar(9, 35, 100.0, 102.0, 100.0, 101.0)  # midpoint 101
    # body 1 of range 3 -> 0.33, low 100.5 below midpoint
    b2 = make_bar(9, 40, 102.0, 103.5, 100.5, 103.0)
    b3 = make_bar(9, 45, 103.0, 107.0, 102.0, 106.5)
    assert _matcher().evaluate(b1, b2, b3, GapType.UP) is None
    # same body ratio with the low above the midpoint qualifies
    b2 = make_bar(9, 40, 102.0, 104.5, 101.5, 103.0)
    b3 = make_bar(9, 45, 103.0, 107.5, 102.0, 107.0)
    assert _matcher().evaluate(b1, b2, b3, GapType.UP) is not None


def test_medium_third_bar_needs_low_above_first_high():
    b1 = make_bar(9, 35, 100.0, 102.0, 100.0, 101.5)
    b2 = make_bar(9, 40, 101.5, 104.0, 101.0, 103.5)
    # ratio 0.6: low 101.5 not above b1.high -> rejected
    b3 = make_bar(9, 45, 102.5, 106.5, 101.5, 105.5)
    assert _matcher().evaluate(b1, b2, b3, GapType.UP) is None
    # ratio 0.6 with low above b1.high -> accepted
    b3 = make_bar(9, 45, 103.5, 107.5, 102.5, 106.5)
    assert _matcher().evaluate(b1, b2, b3, GapType.UP) is not None


def test_scan_never_reevaluates_a_window(bullish_day):
    buffer = BarBuffer()
    for bar in bullish_day:
        buffer.append(bar)
    matcher = _matcher()
    first = list(matcher.scan(buffer.windows(3), GapType.UP))
    second = list(matcher.scan(buffer.windows(3), GapType.UP))
    assert len(first) == 1
    assert second == []
    assert len(matcher.processed) == 2


def test_scan_skips_non_adjacent_windows(bullish_day):
    first_bar, b1, b2, b3 = bullish_day
    late_b3 = make_bar(9, 50, b3.open, b3.high, b3.low, b3.close)
    buffer = BarBuffer()
    for bar in (b1, b2, late_b3):
        buffer.append(bar)
    matcher = _matcher()
    assert list(matcher.scan(buffer.windows(3), GapType.UP)) == []
    assert matcher.processed == set()


def test_scan_stops_when_trading_not_allowed(bullish_day):
    buffer = BarBuffer()
    for bar in bullish_day:
        buffer.append(bar)
    matcher = _matcher()
    assert list(matcher.scan(buffer.windows(3), GapType.UP, can_continue=lambda: False)) == []
    assert matcher.processed == set()


def test_bar_buffer_drops_stale_bars(bullish_day):
    buffer = BarBuffer()
    assert buffer.append(bullish_day[1]) is True
    assert buffer.append(bullish_day[0]) is False
    assert buffer.append(bullish_day[1]) is False
    assert len(buffer) == 1
