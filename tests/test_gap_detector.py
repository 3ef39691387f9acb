"""Unit tests for strategies.gap_detector."""

import math

from gap_and_go.core.types import GapType
from gap_and_go.strategies.gap_detector import GapDetector, identify_gap


def test_identify_gap():
    assert identify_gap(103.0, 101.0, 100.0) is GapType.UP
    assert identify_gap(99.0, 97.0, 100.0) is GapType.DOWN
    assert identify_gap(101.0, 99.0, 100.0) is GapType.NONE
    # touching the EMA is not a gap
    assert identify_gap(102.0, 100.0, 100.0) is GapType.NONE


def test_identify_gap_undefined_ema():
    assert identify_gap(103.0, 101.0, None) is None
    assert identify_gap(103.0, 101.0, math.nan) is None


def test_detector_defers_until_ema_defined():
    d = GapDetector()
    assert d.update(103.0, 101.0, math.nan) is False
    assert d.resolved is False
    assert d.gap is GapType.NONE
    assert d.update(103.0, 101.0, 100.0) is True
    assert d.gap is GapType.UP


def test_detector_resolves_once_per_day():
    d = GapDetector()
    d.update(103.0, 101.0, 100.0)
    d.update(99.0, 97.0, 100.0)
    assert d.gap is GapType.UP
    d.reset()
    assert d.resolved is False
    d.update(99.0, 97.0, 100.0)
    assert d.gap is GapType.DOWN
