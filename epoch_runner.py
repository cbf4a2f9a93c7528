# epoch_runner.py
# Replay layer: drives the decision evaluators from exported epoch traces.
#
# Key responsibilities
# 1.  Replay one replication's epoch trace through a *fresh* rate tracker,
#     agents-move controller and dialer policy.  Per row the event counts
#     reach the tracker / controller first, so the decision at t sees every
#     outcome reported up to t.
# 2.  Fan independent replications out over joblib workers; nothing is
#     shared across replications.
# 3.  Replay per-replication observations of a target measure through the
#     sequential stopping rule and report where it would have stopped.
#
# The runner never simulates anything itself: traces come from an external
# engine and are checked against validator.TRACE_SCHEMA on entry.
# --------------------------------------------------------------------------

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, List

import pandas as pd
from joblib import Parallel, delayed
from tqdm import tqdm

import validator
from dialer.agents_move import AgentsMoveController
from dialer.policies import DialerDecisionContext
from dialer.rate_windows import BadCallMismatchTracker
from scenarios import DialerScenario
from stat_grid import ProbeMatrix, StatisticsGrid
from stopping import SearchStoppingCondition
from utils.exceptions import ConfigurationError
from utils.pm_types import ModelDimensions, PerformanceMeasureType

__all__ = ["replay_epochs", "run_replications", "replay_stopping"]

_GROUP_COL = re.compile(r"^free_g(\d+)$")

DECISION_COLS = [
    "scenario_id", "policy", "rep", "t", "call_type", "n_dials",
    "bad_call_rate", "mismatch_rate", "window_sl",
    "outbound_to_inbound", "inbound_to_outbound",
]


def _count(rec: Dict[str, Any], key: str) -> int:
    v = rec.get(key, 0)
    if v is None or (isinstance(v, float) and math.isnan(v)):
        return 0
    return int(v)


# 1 single replication
def replay_epochs(trace: pd.DataFrame, scenario: DialerScenario) -> pd.DataFrame:
    """
    Replay one replication of *trace* under *scenario*.

    Returns one row per trace row, in time order, with the dial count and
    the windowed rates and flags the decision was based on.
    """
    trace = validator.TRACE_SCHEMA.validate(trace, lazy=True)
    reps = trace["rep"].unique()
    if len(reps) > 1:
        raise ValueError(f"replay_epochs expects one replication; got reps {sorted(reps)}")
    if len(trace) and int(trace["call_type"].max()) >= scenario.num_out_types:
        raise ConfigurationError(
            f"{scenario.id}: trace uses call type {int(trace['call_type'].max())} "
            f"but the scenario declares {scenario.num_out_types} outbound type(s)"
        )

    policy = scenario.policy
    tracker = BadCallMismatchTracker(policy.params.rates, scenario.num_out_types)
    tracker.start(0.0)
    controller = (AgentsMoveController(scenario.agents_move)
                  if scenario.agents_move is not None else None)
    group_cols = {}
    for col in trace.columns:
        m = _GROUP_COL.match(col)
        if m:
            group_cols[int(m.group(1))] = col

    rows: List[Dict[str, Any]] = []
    ordered = trace.sort_values("t", kind="stable")
    for rec in ordered.to_dict("records"):
        t, k = float(rec["t"]), int(rec["call_type"])

        tracker.add_inbound(t, _count(rec, "inbound_total"), _count(rec, "inbound_bad"))
        tracker.add_outbound(t, k, _count(rec, "outbound_total"),
                             _count(rec, "outbound_mismatch"))
        if controller is not None:
            controller.observe(
                t,
                good=_count(rec, "sl_good"),
                served=_count(rec, "sl_served"),
                abandoned_after_awt=_count(rec, "sl_abandoned_after_awt"),
                blocked=_count(rec, "sl_blocked"),
            )

        mismatch = tracker.mismatch_rates(t)
        ctx = DialerDecisionContext(
            free_total=int(rec["free_total"]),
            free_for_type={k: int(rec["free_for_type"])},
            time=t,
            bad_call_rate=tracker.bad_call_rate(t),
            mismatch_rate=mismatch,
            free_by_group={gid: _count(rec, col) for gid, col in group_cols.items()},
            pending_actions={k: _count(rec, "pending")},
        )
        flags = controller.routing_flags() if controller is not None else (False, False)
        rows.append({
            "scenario_id":  scenario.id,
            "policy":       policy.policy_type.value,
            "rep":          int(rec["rep"]),
            "t":            t,
            "call_type":    k,
            "n_dials":      policy.decide(ctx, k),
            "bad_call_rate": ctx.bad_call_rate,
            "mismatch_rate": mismatch[k],
            "window_sl":    controller.window_mean if controller is not None else math.nan,
            "outbound_to_inbound": flags[0],
            "inbound_to_outbound": flags[1],
        })

    tracker.stop()
    df = pd.DataFrame(rows, columns=DECISION_COLS)
    return validator.DECISION_SCHEMA.validate(df, lazy=True)


# 2 many replications
def run_replications(
    trace: pd.DataFrame,
    scenario: DialerScenario,
    *,
    jobs: int = 1,
) -> pd.DataFrame:
    """
    Split *trace* by ``rep`` and replay every replication independently.
    ``jobs=1`` runs in-process; anything else dispatches to joblib/loky.
    """
    parts = [grp for _, grp in trace.groupby("rep", sort=True)]
    if not parts:
        logging.warning("run_replications: empty trace for %s", scenario.id)
        return pd.DataFrame(columns=DECISION_COLS)

    if jobs == 1:
        dfs = [replay_epochs(p, scenario)
               for p in tqdm(parts, desc=f"{scenario.id} reps")]
    else:
        dfs = Parallel(n_jobs=jobs, backend="loky")(
            delayed(replay_epochs)(p, scenario)
            for p in tqdm(parts, desc=f"{scenario.id} reps")
        )
    out = pd.concat(dfs, ignore_index=True)
    logging.info("%s: replayed %d replication(s), %d decisions",
                 scenario.id, len(parts), len(out))
    return out


# 3 stopping replay
class _ReplayProgress:
    """SimProgress over a grid filled one replication at a time."""

    def __init__(self, grid: StatisticsGrid) -> None:
        self.grid = grid
        self.steps = 0

    def completed_steps(self) -> int:
        return self.steps

    def statistics_grid(self, pm: PerformanceMeasureType) -> ProbeMatrix:
        return self.grid.matrix(pm)


def replay_stopping(observations: pd.DataFrame, scenario: DialerScenario) -> int:
    """
    Feed per-replication observations of the scenario's stopping target to
    the stopping rule, one at a time, and return the number of
    replications after which it says stop (all of them if it never does).
    """
    if scenario.stopping is None:
        raise ConfigurationError(f"{scenario.id}: no stopping block configured")
    obs = validator.OBSERVATION_SCHEMA.validate(observations, lazy=True)
    obs = obs.sort_values("rep", kind="stable")

    params = scenario.stopping
    grid = StatisticsGrid(ModelDimensions(num_out_types=scenario.num_out_types))
    condition = SearchStoppingCondition(params)
    row, col = condition.target_cell(grid.register(params.measure))
    progress = _ReplayProgress(grid)
    has_den = "denominator" in obs.columns
    for rec in obs.to_dict("records"):
        den = rec["denominator"] if has_den else None
        if den is not None and isinstance(den, float) and math.isnan(den):
            den = None
        grid.add(params.measure, row, col, float(rec["value"]), den)
        progress.steps += 1
        if condition.check(progress, 1) == 0:
            logging.info("%s: stopping rule satisfied after %d replication(s)",
                         scenario.id, progress.steps)
            return progress.steps

    logging.warning("%s: stopping rule never satisfied over %d replication(s)",
                    scenario.id, progress.steps)
    return progress.steps
