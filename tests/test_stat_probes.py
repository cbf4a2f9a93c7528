# tests/test_stat_probes.py
import math

import pytest
from scipy import stats

from utils.stat_probes import RatioTally, Tally


def test_tally_student_interval():
    t = Tally("x")
    for v in (1.0, 2.0, 3.0, 4.0):
        t.add(v)
    center, half = t.confidence_interval_student(0.95)
    expected = stats.t.ppf(0.975, 3) * t.std() / 2.0
    assert center == pytest.approx(2.5)
    assert half == pytest.approx(expected)


def test_tally_needs_two_observations():
    t = Tally()
    assert math.isnan(t.mean())
    t.add(1.0)
    assert t.confidence_interval_student(0.9) == (1.0, math.inf)


def test_tally_rejects_non_finite():
    with pytest.raises(ValueError):
        Tally().add(float("nan"))


@pytest.mark.parametrize("level", [0.0, 1.0, -0.5, 1.5])
def test_level_outside_unit_interval(level):
    t = Tally()
    t.add(1.0)
    t.add(2.0)
    with pytest.raises(ValueError):
        t.confidence_interval_student(level)


def test_ratio_point_estimate_is_ratio_of_means():
    r = RatioTally()
    r.add(1.0, 2.0)
    r.add(3.0, 2.0)
    assert r.mean() == pytest.approx(1.0)


def test_ratio_delta_interval_constant_denominator():
    r = RatioTally()
    xs = [8.0, 9.0, 7.0, 8.0]
    for x in xs:
        r.add(x, 10.0)
    center, half = r.confidence_interval_delta(0.95)
    # with a constant denominator the delta method reduces to s_x / (ȳ √n)
    s_x = stats.tstd(xs)
    assert center == pytest.approx(0.8)
    assert half == pytest.approx(stats.norm.ppf(0.975) * s_x / 10.0 / 2.0)


def test_ratio_zero_denominator_mean():
    r = RatioTally()
    r.add(1.0, 0.0)
    r.add(2.0, 0.0)
    center, half = r.confidence_interval_delta(0.95)
    assert math.isnan(center) and half == math.inf
