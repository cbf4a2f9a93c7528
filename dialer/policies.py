# dialer/policies.py
# ────────────────────────────────────────────────────────────────────────────
# Outbound dialing policies.
#
# Five of the six policies share one parametrized rule
#
#       n_k = round(κ · N_df,k(t)) + c     if  N_tf(t) ≥ s_t,k  and  N_df,k(t) ≥ s_d,k
#           = 0                            otherwise
#
# with round(x) = ⌊x + ½⌋.  The policy → (κ, c, rule) mapping lives in one
# table (_POLICY_TABLE); evaluation rules live in another (_RULES).
#
#   DIALXFREE                      (κ, c) from configuration, default (1, 0)
#   DIALONE                        (0, 1)
#   DIAL1XFREE                     (1, 1)
#   DIAL2XFREE                     (2, 0)
#   DIALFREE_BADCALLMISMATCHRATES  (κ, c) from configuration, rate-gated
#   AGENTSMOVE                     per managed outbound group
#
# Call types are indices of *outbound* contact types (0 … K_o − 1).
# ────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Final, Iterable, Mapping, Tuple

from utils.dialer_params import AgentsMoveParams, DialerParams
from utils.exceptions import ConfigurationError

__all__ = [
    "DialerPolicyType",
    "DialerDecisionContext",
    "DialerPolicy",
    "round_half_up",
    "free_agent_condition",
]


class DialerPolicyType(str, Enum):
    DIALXFREE                     = "DIALXFREE"
    DIALONE                       = "DIALONE"
    DIAL1XFREE                    = "DIAL1XFREE"
    DIAL2XFREE                    = "DIAL2XFREE"
    DIALFREE_BADCALLMISMATCHRATES = "DIALFREE_BADCALLMISMATCHRATES"
    AGENTSMOVE                    = "AGENTSMOVE"

    @property
    def title(self) -> str:
        return _POLICY_TABLE[self].title

    @property
    def configurable(self) -> bool:
        """True when (κ, c) may come from configuration."""
        return _POLICY_TABLE[self].configurable


class _Rule(str, Enum):
    THRESHOLD   = "threshold"
    RATE_GATED  = "rate_gated"
    AGENTS_MOVE = "agents_move"


@dataclass(slots=True, frozen=True)
class _PolicySpec:
    title:        str
    kappa:        float
    c:            int
    rule:         _Rule
    configurable: bool    # (κ, c) may be overridden by DialerParams


_POLICY_TABLE: Final[Dict[DialerPolicyType, _PolicySpec]] = {
    DialerPolicyType.DIALXFREE:  _PolicySpec("Dial κ times the free agents", 1.0, 0,
                                             _Rule.THRESHOLD, True),
    DialerPolicyType.DIALONE:    _PolicySpec("Dial one call", 0.0, 1,
                                             _Rule.THRESHOLD, False),
    DialerPolicyType.DIAL1XFREE: _PolicySpec("Dial the free agents plus one", 1.0, 1,
                                             _Rule.THRESHOLD, False),
    DialerPolicyType.DIAL2XFREE: _PolicySpec("Dial twice the free agents", 2.0, 0,
                                             _Rule.THRESHOLD, False),
    DialerPolicyType.DIALFREE_BADCALLMISMATCHRATES:
                                 _PolicySpec("Dial the free agents, gated by bad-call "
                                             "and mismatch rates", 1.0, 0,
                                             _Rule.RATE_GATED, True),
    DialerPolicyType.AGENTSMOVE: _PolicySpec("Agents move", 1.0, 0,
                                             _Rule.AGENTS_MOVE, True),
}


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves upwards (2.5 → 3)."""
    return int(math.floor(x + 0.5))


@dataclass(slots=True, frozen=True)
class DialerDecisionContext:
    """Snapshot of the contact center at one decision epoch."""
    free_total:     int                                        # N_tf(t)
    free_for_type:  Mapping[int, int]                          # {k → N_df,k(t)}
    time:           float = 0.0

    # {k → (s_t,k(t), s_d,k(t))}; missing types fall back to DialerParams
    thresholds:     Mapping[int, Tuple[int, int]] = field(default_factory=dict)

    # windowed rates (rate-gated policy)
    bad_call_rate:  float = 0.0
    mismatch_rate:  Mapping[int, float] = field(default_factory=dict)

    # AGENTSMOVE inputs
    free_by_group:  Mapping[int, int] = field(default_factory=dict)
    group_types:    Mapping[int, Tuple[int, ...]] = field(default_factory=dict)

    # dial actions scheduled but not yet resolved  {k → a_k}
    pending_actions: Mapping[int, int] = field(default_factory=dict)

    def free_for(self, call_type: int) -> int:
        return int(self.free_for_type.get(call_type, 0))


def free_agent_condition(ctx: DialerDecisionContext, s_total: int, s_target: int,
                         call_type: int) -> bool:
    """N_tf ≥ s_t and N_df,k ≥ s_d; negative thresholds always pass."""
    return ctx.free_total >= s_total and ctx.free_for(call_type) >= s_target


@dataclass(slots=True, frozen=True)
class DialerPolicy:
    """
    A dialer policy bound to its parameters.

    ``decide(ctx, k)`` is a pure function of the context and the
    (immutable) parameters; windowed state lives in the rate tracker and
    the agents-move controller, both owned by the caller.
    """
    policy_type: DialerPolicyType
    params:      DialerParams = field(default_factory=DialerParams)
    agents_move: AgentsMoveParams | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.policy_type, DialerPolicyType):
            try:
                object.__setattr__(self, "policy_type",
                                   DialerPolicyType(str(self.policy_type).upper()))
            except ValueError as exc:
                raise ConfigurationError(
                    f"unknown dialer policy {self.policy_type!r}"
                ) from exc
        spec = _POLICY_TABLE[self.policy_type]
        overridden = self.params.kappa is not None or self.params.c is not None
        if overridden and not spec.configurable:
            raise ConfigurationError(
                f"{self.policy_type.value} has fixed (κ, c) = ({spec.kappa:g}, {spec.c})"
            )

    @property
    def kappa(self) -> float:
        k = self.params.kappa
        return _POLICY_TABLE[self.policy_type].kappa if k is None else float(k)

    @property
    def c(self) -> int:
        c = self.params.c
        return _POLICY_TABLE[self.policy_type].c if c is None else int(c)

    def thresholds(self, ctx: DialerDecisionContext, call_type: int) -> Tuple[int, int]:
        if call_type in ctx.thresholds:
            return ctx.thresholds[call_type]
        return self.params.thresholds(call_type)

    def decide(self, ctx: DialerDecisionContext, call_type: int) -> int:
        """Number of outbound calls of type *call_type* to place now (≥ 0)."""
        rule = _POLICY_TABLE[self.policy_type].rule
        n = _RULES[rule](self, ctx, call_type)
        if rule not in _PENDING_INSIDE_RULE:
            n -= self.pending(ctx, call_type)
        n = max(n, 0)
        logging.debug("%s t=%.3f k=%d N_tf=%d N_df=%d → %d",
                      self.policy_type.value, ctx.time, call_type,
                      ctx.free_total, ctx.free_for(call_type), n)
        return n

    def pending(self, ctx: DialerDecisionContext, call_type: int) -> int:
        """Dial actions still in flight for *call_type*, or 0 when disabled."""
        if not self.params.use_pending_actions:
            return 0
        return int(ctx.pending_actions.get(call_type, 0))

    def decide_all(self, ctx: DialerDecisionContext,
                   call_types: Iterable[int]) -> Dict[int, int]:
        return {k: self.decide(ctx, k) for k in call_types}


# evaluation rules
def _threshold_rule(pol: DialerPolicy, ctx: DialerDecisionContext, k: int) -> int:
    s_total, s_target = pol.thresholds(ctx, k)
    if not free_agent_condition(ctx, s_total, s_target, k):
        return 0
    return round_half_up(pol.kappa * ctx.free_for(k)) + pol.c


def _rate_gated_rule(pol: DialerPolicy, ctx: DialerDecisionContext, k: int) -> int:
    s_total, s_target = pol.thresholds(ctx, k)
    if not free_agent_condition(ctx, s_total, s_target, k):
        return 0
    gate = pol.params.rates
    if ctx.bad_call_rate >= gate.max_bad_call_rate:
        return 0
    # pending actions reduce the base count before it is doubled
    d = round_half_up(pol.kappa * ctx.free_for(k)) + pol.c - pol.pending(ctx, k)
    if d <= 0:
        return 0
    if ctx.mismatch_rate.get(k, 0.0) < gate.mismatch_threshold:
        return 2 * d
    return d


def _agents_move_rule(pol: DialerPolicy, ctx: DialerDecisionContext, k: int) -> int:
    """
    Sum over managed outbound groups i serving k of
    (round(κ·N_f,i) + c) // K_i, where K_i is the number of outbound types
    group i serves.  Groups with no free agent contribute nothing.
    """
    groups: Mapping[int, Tuple[int, ...]] = ctx.group_types or (
        pol.agents_move.outbound_groups if pol.agents_move is not None else {}
    )
    total = 0
    for gid, types in groups.items():
        if k not in types:
            continue
        nf = int(ctx.free_by_group.get(gid, 0))
        if nf == 0:
            continue
        ng = round_half_up(pol.kappa * nf) + pol.c
        total += ng // len(types)
    return total


_RULES: Final[Dict[_Rule, Callable[[DialerPolicy, DialerDecisionContext, int], int]]] = {
    _Rule.THRESHOLD:   _threshold_rule,
    _Rule.RATE_GATED:  _rate_gated_rule,
    _Rule.AGENTS_MOVE: _agents_move_rule,
}

# rules that apply the pending-action correction themselves
_PENDING_INSIDE_RULE: Final = frozenset({_Rule.RATE_GATED})
