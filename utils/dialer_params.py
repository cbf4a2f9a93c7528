# utils/dialer_params.py
"""
DialerParams / RateGateParams / AgentsMoveParams

Containers for every scalar that governs outbound dialing:

    • κ, c              – multiplicative / additive constants of the
                          parametrized rule  n = round(κ·N_df) + c
    • s_t, s_d          – minimum free agents in the test / target sets
    • rate gate         – bad-call and mismatch thresholds, window P_D × d_D
    • agents move       – service-level thresholds s1 ≤ s2 and the outbound
                          groups managed by the AGENTSMOVE policy

The dataclasses are *frozen* so a scenario stays immutable after
construction; invalid values are rejected in ``__post_init__``.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Tuple

from utils.exceptions import ConfigurationError


@dataclass(slots=True, frozen=True)
class RateGateParams:
    max_bad_call_rate:     float = 1.0    # dial nothing once reached
    mismatch_threshold:    float = 0.0    # below ⇒ double the dial count
    num_checked_periods:   int   = 1      # P_D
    checked_period:        float = 60.0   # d_D (simulated time units)

    def __post_init__(self) -> None:
        if not (0.0 <= self.max_bad_call_rate <= 1.0):
            raise ConfigurationError("max_bad_call_rate must be in [0,1]")
        if not (0.0 <= self.mismatch_threshold <= 1.0):
            raise ConfigurationError("mismatch_threshold must be in [0,1]")
        if self.num_checked_periods <= 0:
            raise ConfigurationError("num_checked_periods must be > 0")
        if self.checked_period <= 0:
            raise ConfigurationError("checked_period must be > 0")


@dataclass(slots=True, frozen=True)
class DialerParams:
    # parametrized rule; None ⇒ use the policy's own literal
    kappa:            float | None = None
    c:                int   | None = None

    # free-agent thresholds; negative ⇒ condition always holds
    min_free_total:   int = 0     # s_t  (test set, all groups)
    min_free_target:  int = 1     # s_d  (target set, able to serve type k)

    # per-type overrides  {call_type → threshold}
    min_free_total_by_type:  Dict[int, int] = field(default_factory=dict)
    min_free_target_by_type: Dict[int, int] = field(default_factory=dict)

    # subtract dial actions still in flight (0 pending ⇒ no effect)
    use_pending_actions: bool = True

    rates: RateGateParams = field(default_factory=RateGateParams)

    def __post_init__(self) -> None:
        if self.kappa is not None and self.kappa < 0:
            raise ConfigurationError("kappa must be ≥ 0")
        if self.c is not None and self.c < 0:
            raise ConfigurationError("c must be ≥ 0")

    def thresholds(self, call_type: int) -> Tuple[int, int]:
        """(s_t,k, s_d,k) for *call_type*, per-type overrides first."""
        return (
            self.min_free_total_by_type.get(call_type, self.min_free_total),
            self.min_free_target_by_type.get(call_type, self.min_free_target),
        )


@dataclass(slots=True, frozen=True)
class AgentsMoveParams:
    sl_low:               float = 0.8      # s1 : below ⇒ outbound → inbound
    sl_high:              float = 0.9      # s2 : above ⇒ inbound → outbound
    num_checked_periods:  int   = 1        # P_D
    checked_period:       float = 60.0     # d_D
    awt:                  float = 20.0     # acceptable waiting time

    # outbound groups managed by the policy  {group id → served outbound types}
    outbound_groups: Dict[int, Tuple[int, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.sl_low > self.sl_high:
            raise ConfigurationError(
                f"sl_low (s1={self.sl_low}) must not exceed sl_high (s2={self.sl_high})"
            )
        if self.num_checked_periods <= 0:
            raise ConfigurationError("num_checked_periods must be > 0")
        if self.checked_period <= 0:
            raise ConfigurationError("checked_period must be > 0")
        if self.awt < 0:
            raise ConfigurationError("awt must be ≥ 0")
