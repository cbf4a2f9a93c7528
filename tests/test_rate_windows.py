# tests/test_rate_windows.py
import pytest

from dialer.rate_windows import BadCallMismatchTracker
from utils.dialer_params import RateGateParams
from utils.window_sums import PeriodWindowSums


def _tracker(periods=2, d=10.0, types=2):
    tr = BadCallMismatchTracker(
        RateGateParams(num_checked_periods=periods, checked_period=d), types
    )
    tr.start(0.0)
    return tr


def test_current_period_is_excluded():
    tr = _tracker()
    tr.notify_inbound(1.0, bad=True)
    tr.notify_inbound(2.0, bad=False)
    # still inside period 0 → nothing completed yet
    assert tr.bad_call_rate(5.0) == 0.0
    # period 1: period 0 is complete
    assert tr.bad_call_rate(12.0) == pytest.approx(0.5)


def test_window_covers_last_completed_periods_only():
    tr = _tracker(periods=2)
    tr.add_inbound(1.0, total=4, bad=4)      # period 0
    tr.add_inbound(11.0, total=4, bad=0)     # period 1
    tr.add_inbound(21.0, total=4, bad=0)     # period 2
    # at t=25 (period 2) the window is periods 0 and 1
    assert tr.bad_call_rate(25.0) == pytest.approx(0.5)
    # at t=35 (period 3) the window is periods 1 and 2
    assert tr.bad_call_rate(35.0) == pytest.approx(0.0)


def test_mismatch_rate_per_type():
    tr = _tracker()
    tr.add_outbound(1.0, 0, total=10, mismatched=2)
    tr.add_outbound(2.0, 1, total=5, mismatched=5)
    assert tr.mismatch_rate(11.0, 0) == pytest.approx(0.2)
    assert tr.mismatch_rate(11.0, 1) == pytest.approx(1.0)
    assert tr.mismatch_rates(11.0) == pytest.approx({0: 0.2, 1: 1.0})


def test_empty_denominator_is_zero():
    tr = _tracker()
    assert tr.bad_call_rate(100.0) == 0.0
    assert tr.mismatch_rate(100.0, 1) == 0.0


def test_events_before_start_are_ignored():
    tr = BadCallMismatchTracker(RateGateParams(checked_period=10.0))
    tr.notify_inbound(1.0, bad=True)              # not started
    tr.start(5.0)
    tr.notify_inbound(4.0, bad=True)              # before start time
    tr.notify_inbound(6.0, bad=False)
    assert tr.bad_call_rate(16.0) == 0.0


def test_start_clears_previous_run():
    tr = _tracker()
    tr.add_inbound(1.0, total=2, bad=2)
    tr.start(0.0)
    assert tr.bad_call_rate(15.0) == 0.0


def test_bad_greater_than_total_rejected():
    with pytest.raises(ValueError):
        _tracker().add_inbound(1.0, total=1, bad=2)


def test_unknown_call_type_rejected():
    with pytest.raises(IndexError):
        _tracker(types=1).mismatch_rate(1.0, 3)


# PeriodWindowSums
def test_window_sums_slide_and_forget():
    s = PeriodWindowSums(num_types=1, num_periods=2)
    s.add(0, 0, 1.0)
    s.add(0, 1, 2.0)
    s.add(0, 2, 3.0)
    assert s.first_period == 1
    assert s.measure(0, 0) == 0.0
    assert s.total(0, 0, 3) == pytest.approx(5.0)
    with pytest.raises(IndexError):
        s.add(0, 0, 1.0)


def test_window_sums_large_jump_restarts():
    s = PeriodWindowSums(num_types=2, num_periods=3)
    s.add(1, 0, 5.0)
    s.add(1, 10, 1.0)
    assert s.last_period == 10
    assert s.total(None, 0, 11) == pytest.approx(1.0)
