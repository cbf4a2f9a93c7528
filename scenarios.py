# scenarios.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import yaml

from dialer.policies import DialerPolicy, DialerPolicyType
from utils.dialer_params import AgentsMoveParams, DialerParams, RateGateParams
from utils.exceptions import ConfigurationError
from utils.stopping_params import StoppingParams

__all__ = ["DialerScenario", "load_scenarios", "get_scenario"]


# data-class consumed by epoch_runner & sim_runner
@dataclass(frozen=True, slots=True)
class DialerScenario:
    id: str

    policy:        DialerPolicy
    agents_move:   AgentsMoveParams | None = None
    stopping:      StoppingParams | None = None
    num_out_types: int = 1

    test_label: str = ""
    hypothesis: str = ""
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.num_out_types <= 0:
            raise ConfigurationError(f"{self.id}: num_out_types must be > 0")
        if self.policy.policy_type is DialerPolicyType.AGENTSMOVE and self.agents_move is None:
            raise ConfigurationError(f"{self.id}: AGENTSMOVE needs an agents_move block")


# public API
def load_scenarios(yaml_path: str | Path = "scenarios.yaml") -> List[DialerScenario]:
    """
    Parse `scenarios.yaml` and return a fully-typed list of DialerScenario.
    Each row's blocks are merged over the global `defaults:` block; keys a
    parameter class does not know are dropped.
    """
    data: Dict[str, Any] = yaml.safe_load(Path(yaml_path).read_text()) or {}
    if "scenarios" not in data:
        raise ConfigurationError(f"{yaml_path}: no 'scenarios' list")
    defaults = data.get("defaults") or {}
    out = [_build_scenario(row, defaults) for row in data["scenarios"]]

    ids = [s.id for s in out]
    dupes = {i for i in ids if ids.count(i) > 1}
    if dupes:
        raise ConfigurationError(f"duplicate scenario ids: {sorted(dupes)}")
    return out


def get_scenario(yaml_path: str | Path, scenario_id: str) -> DialerScenario:
    for scn in load_scenarios(yaml_path):
        if scn.id == scenario_id:
            return scn
    raise ConfigurationError(f"scenario {scenario_id!r} not found in {yaml_path}")


# ── internal helpers ──────────────────────────────────────────────────
def _subset_kwargs(cls, cfg_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Return the sub-mapping whose keys match dataclass *cls* fields."""
    allowed = set(cls.__dataclass_fields__)           # type: ignore[attr-defined]
    return {k: v for k, v in cfg_dict.items() if k in allowed}


def _merged(defaults: Dict[str, Any], row: Dict[str, Any], key: str) -> Dict[str, Any]:
    return {**(defaults.get(key) or {}), **(row.get(key) or {})}


def _int_keys(mapping: Dict[Any, Any]) -> Dict[int, Any]:
    return {int(k): v for k, v in (mapping or {}).items()}


def _build_dialer_params(defaults: Dict[str, Any], row: Dict[str, Any],
                         policy_type: DialerPolicyType) -> DialerParams:
    cfg = _merged(defaults, row, "dialer")
    if not policy_type.configurable:
        # inherited (κ, c) do not apply to fixed-literal policies; per-row ones still fail
        row_cfg = row.get("dialer") or {}
        for key in ("kappa", "c"):
            if key not in row_cfg:
                cfg.pop(key, None)
    rates = RateGateParams(**_subset_kwargs(RateGateParams, _merged(defaults, row, "rates")))
    cfg["min_free_total_by_type"] = _int_keys(cfg.get("min_free_total_by_type"))
    cfg["min_free_target_by_type"] = _int_keys(cfg.get("min_free_target_by_type"))
    cfg["rates"] = rates
    return DialerParams(**_subset_kwargs(DialerParams, cfg))


def _build_agents_move(defaults: Dict[str, Any], row: Dict[str, Any],
                       policy_type: DialerPolicyType) -> AgentsMoveParams | None:
    if "agents_move" not in row and policy_type is not DialerPolicyType.AGENTSMOVE:
        return None
    cfg = _merged(defaults, row, "agents_move")
    cfg["outbound_groups"] = {
        gid: tuple(int(k) for k in types)
        for gid, types in _int_keys(cfg.get("outbound_groups")).items()
    }
    return AgentsMoveParams(**_subset_kwargs(AgentsMoveParams, cfg))


def _build_stopping(defaults: Dict[str, Any], row: Dict[str, Any]) -> StoppingParams | None:
    cfg = _merged(defaults, row, "stopping")
    if "measure" not in cfg:
        return None
    return StoppingParams(**_subset_kwargs(StoppingParams, cfg))


# ── main builder ───────────────────────────────────────────────────────
def _build_scenario(row: Dict[str, Any], defaults: Dict[str, Any]) -> DialerScenario:
    if "id" not in row:
        raise ConfigurationError(f"scenario row without 'id': {row}")
    policy_name = row.get("policy", defaults.get("policy"))
    if policy_name is None:
        raise ConfigurationError(f"{row['id']}: no dialer policy given")

    try:
        policy_type = DialerPolicyType(str(policy_name).upper())
    except ValueError as exc:
        raise ConfigurationError(f"{row['id']}: unknown dialer policy {policy_name!r}") from exc

    agents_move = _build_agents_move(defaults, row, policy_type)
    policy = DialerPolicy(policy_type, _build_dialer_params(defaults, row, policy_type), agents_move)

    return DialerScenario(
        id=str(row["id"]),
        policy=policy,
        agents_move=agents_move,
        stopping=_build_stopping(defaults, row),
        num_out_types=int(row.get("num_out_types", defaults.get("num_out_types", 1))),
        test_label=row.get("test_label", ""),
        hypothesis=row.get("hypothesis", ""),
        tags=tuple(row.get("tags", ())),
    )


"""
How the YAML is read

defaults:           blocks shared by every scenario
  dialer:           DialerParams      (kappa, c, min_free_total, min_free_target,
                                       *_by_type overrides, use_pending_actions)
  rates:            RateGateParams    (max_bad_call_rate, mismatch_threshold,
                                       num_checked_periods, checked_period)
  agents_move:      AgentsMoveParams  (sl_low, sl_high, num_checked_periods,
                                       checked_period, awt, outbound_groups)
  stopping:         StoppingParams    (measure, beta, delta, max_reps, row, column)
  num_out_types:    number of outbound contact types

scenarios:          one row per scenario; `id` and `policy` are required,
                    every block above may be overridden per row.

kappa / c in the defaults dialer block apply only to policies that take a
configured (κ, c): DIALXFREE, DIALFREE_BADCALLMISMATCHRATES and AGENTSMOVE.
DIALONE, DIAL1XFREE and DIAL2XFREE ignore the inherited values and reject
kappa / c given in their own row.

An agents_move block is built only for AGENTSMOVE scenarios or rows that
carry one explicitly; a stopping block only when a target measure is named.
Validation happens in the dataclasses themselves, so a bad value surfaces
as ConfigurationError with the offending field in the message.
"""
