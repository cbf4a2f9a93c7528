# tests/test_agents_move.py
import logging
import math

import pytest

from dialer.agents_move import AgentsMoveController, service_level_sample
from utils.dialer_params import AgentsMoveParams
from utils.exceptions import ConfigurationError


def _ctl(periods=1, d=60.0):
    return AgentsMoveController(
        AgentsMoveParams(sl_low=0.8, sl_high=0.9, num_checked_periods=periods, checked_period=d)
    )


@pytest.mark.parametrize(
    "sl, flags",
    [(0.75, (True, False)), (0.95, (False, True)), (0.85, (False, False))],
)
def test_flags_from_any_prior_state(sl, flags):
    for prior in (0.5, 0.85, 1.0):
        ctl = _ctl()
        ctl.update(prior)
        assert ctl.update(sl) == flags
        assert ctl.routing_flags() == flags


def test_bounds_are_strict():
    ctl = _ctl()
    assert ctl.update(0.8) == (False, False)
    assert ctl.update(0.9) == (False, False)


def test_window_mean_over_last_periods():
    ctl = _ctl(periods=2)
    ctl.update(1.0)
    ctl.update(0.5)          # mean 0.75
    assert ctl.outbound_to_inbound
    ctl.update(1.0)          # window (0.5, 1.0) → mean 0.75
    assert ctl.window_mean == pytest.approx(0.75)
    ctl.update(1.0)          # window (1.0, 1.0)
    assert ctl.inbound_to_outbound and not ctl.outbound_to_inbound


def test_service_level_sample():
    assert service_level_sample(8, 9, 1, 0) == pytest.approx(0.8)
    assert service_level_sample(0, 0, 0, 0) == 1.0


def test_record_counts_uses_sample():
    ctl = _ctl()
    assert ctl.record_counts(good=7, served=10) == (True, False)


def test_reset_clears_window_and_flags():
    ctl = _ctl()
    ctl.update(0.1)
    ctl.reset()
    assert ctl.routing_flags() == (False, False)
    assert math.isnan(ctl.window_mean)


def test_observe_closes_periods_and_fills_gaps():
    ctl = _ctl(periods=2, d=10.0)
    ctl.observe(1.0, good=1, served=4)       # period 0: SL 0.25
    assert ctl.routing_flags() == (False, False)      # nothing closed yet
    ctl.observe(12.0, good=5, served=5)      # closes period 0
    assert ctl.outbound_to_inbound
    ctl.observe(45.0)                        # closes 1 (SL 1.0), empty 2 and 3
    assert ctl.window_mean == pytest.approx(1.0)
    assert ctl.inbound_to_outbound


def test_out_of_range_sample_rejected():
    with pytest.raises(ValueError):
        _ctl().update(1.2)


def test_s1_above_s2_rejected():
    with pytest.raises(ConfigurationError):
        AgentsMoveParams(sl_low=0.9, sl_high=0.8)


def test_flag_changes_are_logged(caplog):
    ctl = _ctl()
    with caplog.at_level(logging.INFO):
        ctl.update(0.5)
        ctl.update(0.5)
    assert sum("outbound_to_inbound=True" in r.getMessage() for r in caplog.records) == 1
