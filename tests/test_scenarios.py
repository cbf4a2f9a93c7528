# tests/test_scenarios.py
from pathlib import Path
from textwrap import dedent

import pytest

from dialer.policies import DialerPolicyType
from scenarios import get_scenario, load_scenarios
from utils.exceptions import ConfigurationError
from utils.pm_types import PerformanceMeasureType

REPO_YAML = Path(__file__).resolve().parents[1] / "scenarios.yaml"


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "scenarios.yaml"
    p.write_text(dedent(text))
    return p


def test_repository_yaml_loads():
    scns = load_scenarios(REPO_YAML)
    assert {s.policy.policy_type for s in scns} == set(DialerPolicyType)
    am = get_scenario(REPO_YAML, "agents-move")
    assert am.agents_move is not None
    assert am.agents_move.outbound_groups == {1: (0,)}
    assert am.stopping.measure is PerformanceMeasureType.SERVICE_LEVEL


def test_defaults_merge_and_row_override(tmp_path):
    cfg = _write(tmp_path, """
        defaults:
          dialer: {min_free_total: 2, kappa: 1.0}
          rates: {max_bad_call_rate: 0.1, num_checked_periods: 4}
        scenarios:
          - id: a
            policy: dialxfree
            dialer: {kappa: 1.5, unknown_knob: 7}
            rates: {mismatch_threshold: 0.02}
    """)
    (scn,) = load_scenarios(cfg)
    params = scn.policy.params
    assert scn.policy.policy_type is DialerPolicyType.DIALXFREE
    assert scn.policy.kappa == 1.5
    assert params.min_free_total == 2
    assert params.rates.max_bad_call_rate == 0.1
    assert params.rates.num_checked_periods == 4
    assert params.rates.mismatch_threshold == 0.02
    assert scn.agents_move is None and scn.stopping is None


def test_unknown_policy_rejected(tmp_path):
    cfg = _write(tmp_path, """
        scenarios:
          - id: a
            policy: DIAL_ALL
    """)
    with pytest.raises(ConfigurationError):
        load_scenarios(cfg)


def test_invalid_stopping_beta_rejected(tmp_path):
    cfg = _write(tmp_path, """
        scenarios:
          - id: a
            policy: DIALONE
            stopping: {measure: service_level, beta: 1.5}
    """)
    with pytest.raises(ConfigurationError):
        load_scenarios(cfg)


def test_sl_thresholds_order_rejected(tmp_path):
    cfg = _write(tmp_path, """
        scenarios:
          - id: a
            policy: AGENTSMOVE
            agents_move: {sl_low: 0.95, sl_high: 0.9}
    """)
    with pytest.raises(ConfigurationError):
        load_scenarios(cfg)


def test_duplicate_ids_rejected(tmp_path):
    cfg = _write(tmp_path, """
        scenarios:
          - {id: a, policy: DIALONE}
          - {id: a, policy: DIAL2XFREE}
    """)
    with pytest.raises(ConfigurationError):
        load_scenarios(cfg)


def test_missing_scenario_id(tmp_path):
    cfg = _write(tmp_path, """
        scenarios:
          - {id: a, policy: DIALONE}
    """)
    with pytest.raises(ConfigurationError):
        get_scenario(cfg, "b")


def test_inherited_kappa_skips_fixed_literal_policies(tmp_path):
    cfg = _write(tmp_path, """
        defaults:
          dialer: {kappa: 1.5, c: 1}
        scenarios:
          - {id: free, policy: DIALXFREE}
          - {id: one, policy: DIALONE}
          - {id: twice, policy: DIAL2XFREE}
    """)
    scns = {s.id: s for s in load_scenarios(cfg)}
    assert (scns["free"].policy.kappa, scns["free"].policy.c) == (1.5, 1)
    assert (scns["one"].policy.kappa, scns["one"].policy.c) == (0.0, 1)
    assert (scns["twice"].policy.kappa, scns["twice"].policy.c) == (2.0, 0)


def test_row_kappa_on_fixed_literal_policy_rejected(tmp_path):
    cfg = _write(tmp_path, """
        scenarios:
          - id: one
            policy: DIALONE
            dialer: {kappa: 2.0}
    """)
    with pytest.raises(ConfigurationError):
        load_scenarios(cfg)
