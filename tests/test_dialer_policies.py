# tests/test_dialer_policies.py
import pytest

from dialer.policies import (
    DialerDecisionContext,
    DialerPolicy,
    DialerPolicyType,
    round_half_up,
)
from utils.dialer_params import AgentsMoveParams, DialerParams, RateGateParams
from utils.exceptions import ConfigurationError


def _ctx(free_total=10, free=4, **kw):
    return DialerDecisionContext(free_total=free_total, free_for_type={0: free}, **kw)


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(2.49) == 2
    assert round_half_up(0.0) == 0


@pytest.mark.parametrize(
    "ptype, free, expected",
    [
        (DialerPolicyType.DIALXFREE, 4, 4),
        (DialerPolicyType.DIALONE, 5, 1),
        (DialerPolicyType.DIAL1XFREE, 4, 5),
        (DialerPolicyType.DIAL2XFREE, 4, 8),
    ],
)
def test_fixed_literal_policies(ptype, free, expected):
    pol = DialerPolicy(ptype)
    assert pol.decide(_ctx(free=free), 0) == expected


def test_configured_kappa_and_c():
    pol = DialerPolicy(DialerPolicyType.DIALXFREE, DialerParams(kappa=1.5, c=2))
    # round(1.5 * 3) + 2 = round(4.5) + 2 = 7
    assert pol.decide(_ctx(free=3), 0) == 7


def test_free_agent_condition_fails_gives_zero():
    pol = DialerPolicy(DialerPolicyType.DIAL2XFREE,
                       DialerParams(min_free_total=5, min_free_target=1))
    assert pol.decide(_ctx(free_total=4, free=4), 0) == 0
    assert pol.decide(_ctx(free_total=5, free=0), 0) == 0


def test_zero_free_with_satisfied_condition_dials_c():
    pol = DialerPolicy(DialerPolicyType.DIALONE, DialerParams(min_free_target=0))
    assert pol.decide(_ctx(free=0), 0) == 1


def test_negative_thresholds_always_pass():
    pol = DialerPolicy(DialerPolicyType.DIAL1XFREE,
                       DialerParams(min_free_total=-1, min_free_target=-1))
    assert pol.decide(_ctx(free_total=0, free=0), 0) == 1


def test_context_thresholds_override_params():
    pol = DialerPolicy(DialerPolicyType.DIALXFREE)
    ctx = _ctx(free_total=3, free=3, thresholds={0: (4, 1)})
    assert pol.decide(ctx, 0) == 0


def test_per_type_threshold_overrides():
    params = DialerParams(min_free_target_by_type={1: 5})
    pol = DialerPolicy(DialerPolicyType.DIALXFREE, params)
    ctx = DialerDecisionContext(free_total=10, free_for_type={0: 3, 1: 3})
    assert pol.decide(ctx, 0) == 3
    assert pol.decide(ctx, 1) == 0


def test_fixed_policy_rejects_kappa_override():
    with pytest.raises(ConfigurationError):
        DialerPolicy(DialerPolicyType.DIALONE, DialerParams(kappa=2.0))


def test_unknown_policy_name():
    with pytest.raises(ConfigurationError):
        DialerPolicy("DIAL_EVERYONE")


def test_policy_name_is_coerced():
    assert DialerPolicy("dialone").policy_type is DialerPolicyType.DIALONE


@pytest.mark.parametrize("kw", [{"kappa": -0.1}, {"c": -1}])
def test_negative_kappa_or_c_rejected(kw):
    with pytest.raises(ConfigurationError):
        DialerParams(**kw)


# rate-gated
def _gated(max_bad=0.1, thr=0.05):
    return DialerPolicy(
        DialerPolicyType.DIALFREE_BADCALLMISMATCHRATES,
        DialerParams(rates=RateGateParams(max_bad_call_rate=max_bad, mismatch_threshold=thr)),
    )


def test_rate_gated_low_mismatch_doubles():
    assert _gated().decide(_ctx(free=4, mismatch_rate={0: 0.01}), 0) == 8


def test_rate_gated_mismatch_at_threshold_is_single():
    assert _gated().decide(_ctx(free=4, mismatch_rate={0: 0.05}), 0) == 4


def test_rate_gated_bad_call_rate_blocks():
    pol = _gated()
    assert pol.decide(_ctx(free=4, bad_call_rate=0.1), 0) == 0
    assert pol.decide(_ctx(free=4, bad_call_rate=0.09, mismatch_rate={0: 0.5}), 0) == 4


def test_rate_gated_condition_unsatisfied_ignores_rates():
    assert _gated().decide(_ctx(free=0, mismatch_rate={0: 0.0}), 0) == 0


# agents move
def test_agents_move_splits_group_calls_across_types():
    am = AgentsMoveParams(outbound_groups={0: (0, 1), 1: (0,)})
    pol = DialerPolicy(DialerPolicyType.AGENTSMOVE, agents_move=am)
    ctx = DialerDecisionContext(free_total=8, free_for_type={}, free_by_group={0: 5, 1: 3})
    # group 0: 5 // 2 = 2 for each type; group 1: 3 for type 0
    assert pol.decide(ctx, 0) == 5
    assert pol.decide(ctx, 1) == 2
    assert pol.decide(ctx, 2) == 0


def test_agents_move_idle_group_contributes_nothing():
    am = AgentsMoveParams(outbound_groups={0: (0,)})
    pol = DialerPolicy(DialerPolicyType.AGENTSMOVE, DialerParams(c=1), agents_move=am)
    ctx = DialerDecisionContext(free_total=0, free_for_type={}, free_by_group={0: 0})
    assert pol.decide(ctx, 0) == 0


def test_agents_move_context_groups_take_precedence():
    pol = DialerPolicy(DialerPolicyType.AGENTSMOVE)
    ctx = DialerDecisionContext(free_total=2, free_for_type={},
                                free_by_group={3: 2}, group_types={3: (0,)})
    assert pol.decide(ctx, 0) == 2


# pending actions
def test_pending_actions_subtracted_and_floored():
    pol = DialerPolicy(DialerPolicyType.DIAL2XFREE)
    assert pol.decide(_ctx(free=4, pending_actions={0: 3}), 0) == 5
    assert pol.decide(_ctx(free=4, pending_actions={0: 20}), 0) == 0


def test_pending_actions_ignored_when_disabled():
    pol = DialerPolicy(DialerPolicyType.DIAL2XFREE, DialerParams(use_pending_actions=False))
    assert pol.decide(_ctx(free=4, pending_actions={0: 3}), 0) == 8


def test_decide_all():
    pol = DialerPolicy(DialerPolicyType.DIALXFREE)
    ctx = DialerDecisionContext(free_total=5, free_for_type={0: 2, 1: 3})
    assert pol.decide_all(ctx, [0, 1]) == {0: 2, 1: 3}


def test_rate_gated_subtracts_pending_before_doubling():
    # (4 − 1) doubled, not 2·4 − 1
    ctx = _ctx(free=4, mismatch_rate={0: 0.0}, pending_actions={0: 1})
    assert _gated().decide(ctx, 0) == 6


def test_rate_gated_pending_covering_base_count_gives_zero():
    ctx = _ctx(free=4, mismatch_rate={0: 0.0}, pending_actions={0: 4})
    assert _gated().decide(ctx, 0) == 0


def test_rate_gated_pending_ignored_when_disabled():
    pol = DialerPolicy(
        DialerPolicyType.DIALFREE_BADCALLMISMATCHRATES,
        DialerParams(use_pending_actions=False,
                     rates=RateGateParams(max_bad_call_rate=0.1, mismatch_threshold=0.05)),
    )
    assert pol.decide(_ctx(free=4, mismatch_rate={0: 0.0}, pending_actions={0: 1}), 0) == 8
