"""Strategies: bar buffer, gap detection, pattern matching and the session controller."""

from gap_and_go.strategies.bar_buffer import BarBuffer
from gap_and_go.strategies.gap_detector import GapDetector, identify_gap
from gap_and_go.strategies.pattern_matcher import PatternMatcher, body_ratio
from gap_and_go.strategies.session_controller import SessionController

__all__ = ["BarBuffer", "GapDetector", "identify_gap", "PatternMatcher", "body_ratio", "SessionController"]
