"""Unit tests for risk.performance_guard."""

from datetime import datetime

from gap_and_go.core.types import TradeRecord, YearPhase
from gap_and_go.risk.performance_guard import PerformanceGuard


def _records(year, pnls, closed=True):
    return [
        TradeRecord(id=f"T{i}", entry_time_local=datetime(year, 1, 10 + i, 10, 0), is_long=True,
                    original_entry_price=100.0, is_closed=closed, net_profit=p)
        for i, p in enumerate(pnls)
    ]


def _guard(**kwargs):
    params = dict(enabled=True, min_profit_factor=0.8, min_average_trade=0.0)
    params.update(kwargs)
    return PerformanceGuard(**params)


def test_no_check_before_checkpoint():
    guard = _guard()
    assert guard.check_and_maybe_suspend(datetime(2024, 3, 31, 9, 30), _records(2024, [-10, -10])) is False
    assert guard.phase is YearPhase.MONITORING


def test_suspends_when_both_metrics_breached():
    guard = _guard()
    # PF = 5 / 30 < 0.8, average = -8.33 < 0
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 1, 9, 30), _records(2024, [5, -10, -20])) is True
    assert guard.suspended
    assert guard.last_metrics.total_trades == 3


def test_single_breached_metric_does_not_suspend():
    # average below 0 but PF 0.9 >= 0.8
    guard = _guard(min_profit_factor=0.8, min_average_trade=0.0)
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 2, 9, 30), _records(2024, [9, -10])) is False
    assert guard.phase is YearPhase.CHECKED
    # PF below 1.0 but average above -5
    guard = _guard(min_profit_factor=1.0, min_average_trade=-5.0)
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 2, 9, 30), _records(2024, [9, -10])) is False


def test_checked_once_per_year():
    guard = _guard()
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 1, 9, 30), _records(2024, [10, -5])) is False
    # later losses do not trigger a second evaluation this year
    assert guard.check_and_maybe_suspend(datetime(2024, 6, 1, 9, 30), _records(2024, [10, -50, -50])) is False


def test_suspension_persists_until_next_year():
    guard = _guard()
    guard.check_and_maybe_suspend(datetime(2024, 4, 1, 9, 30), _records(2024, [-10]))
    assert guard.check_and_maybe_suspend(datetime(2024, 12, 31, 9, 30), _records(2024, [100, 100])) is True
    assert guard.check_and_maybe_suspend(datetime(2025, 1, 2, 9, 30), []) is False
    assert guard.phase is YearPhase.MONITORING


def test_only_current_year_records_count():
    guard = _guard()
    records = _records(2023, [-100, -100]) + _records(2024, [50, -10])
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 1, 9, 30), records) is False
    assert guard.last_metrics.total_trades == 2


def test_no_losses_counts_as_excellent():
    guard = _guard(min_average_trade=100.0)
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 1, 9, 30), _records(2024, [1, 2])) is False


def test_deferred_without_trades():
    guard = _guard()
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 1, 9, 30), []) is False
    assert guard.phase is YearPhase.MONITORING


def test_disabled_never_suspends():
    guard = _guard(enabled=False)
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 1, 9, 30), _records(2024, [-10, -10])) is False


def test_open_records_use_unrealized_profit():
    guard = _guard()
    records = _records(2024, [-30], closed=False)
    assert guard.check_and_maybe_suspend(datetime(2024, 4, 1, 9, 30), records) is True
