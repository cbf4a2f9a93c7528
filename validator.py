from __future__ import annotations

import pandera.pandas as pa
from pandera.pandas import Column, Check


def _not_more_than(part: str, *whole: str):
    """
    Frame-level check: *part* never exceeds the sum of the *whole* columns.
    Absent columns count as 0; without *part* or any *whole* column it passes.
    """
    def _check(df):
        present = [c for c in whole if c in df.columns]
        if part not in df.columns or not present:
            return True
        return df[part] <= df[present].sum(axis=1)
    return _check


# Epoch trace fed to epoch_runner.  One row per decision epoch; every count
# column holds the events observed since the previous row of the same rep.
TRACE_SCHEMA = pa.DataFrameSchema(
    {
        "rep":           Column(int,   Check.ge(0)),
        "t":             Column(float, Check.ge(0)),
        "call_type":     Column(int,   Check.ge(0)),

        # agent availability at the epoch
        "free_total":    Column(int,   Check.ge(0)),            # N_tf(t)
        "free_for_type": Column(int,   Check.ge(0)),            # N_df,k(t)
        "pending":       Column(int,   Check.ge(0), required=False),

        # inbound outcomes (bad = waited ≥ AWT or abandoned after AWT)
        "inbound_total":     Column(int, Check.ge(0), required=False),
        "inbound_bad":       Column(int, Check.ge(0), required=False),
        # outbound outcomes of type call_type (mismatch = had to queue)
        "outbound_total":    Column(int, Check.ge(0), required=False),
        "outbound_mismatch": Column(int, Check.ge(0), required=False),

        # service-level counts for the agents-move controller
        "sl_good":               Column(int, Check.ge(0), required=False),
        "sl_served":             Column(int, Check.ge(0), required=False),
        "sl_abandoned_after_awt": Column(int, Check.ge(0), required=False),
        "sl_blocked":            Column(int, Check.ge(0), required=False),

        # free agents per managed outbound group  (free_g0, free_g1, …)
        r"^free_g\d+$":  Column(int, Check.ge(0), regex=True, required=False),
    },
    checks=[
        pa.Check(_not_more_than("inbound_bad", "inbound_total"),
                 error="inbound_bad exceeds inbound_total"),
        pa.Check(_not_more_than("outbound_mismatch", "outbound_total"),
                 error="outbound_mismatch exceeds outbound_total"),
        pa.Check(_not_more_than("sl_good", "sl_served", "sl_abandoned_after_awt", "sl_blocked"),
                 error="sl_good exceeds sl_served + sl_abandoned_after_awt + sl_blocked"),
    ],
    coerce=True,
    strict=False,
)

# Output of epoch_runner.replay_epochs / run_replications
DECISION_SCHEMA = pa.DataFrameSchema(
    {
        "scenario_id":   Column(str,   nullable=False),
        "policy":        Column(str,   nullable=False),
        "rep":           Column(int,   Check.ge(0)),
        "t":             Column(float, Check.ge(0)),
        "call_type":     Column(int,   Check.ge(0)),
        "n_dials":       Column(int,   Check.ge(0)),

        "bad_call_rate": Column(float, Check.in_range(0, 1), nullable=True),
        "mismatch_rate": Column(float, Check.in_range(0, 1), nullable=True),
        "window_sl":     Column(float, Check.in_range(0, 1), nullable=True),

        "outbound_to_inbound": Column(bool),
        "inbound_to_outbound": Column(bool),
    },
    checks=pa.Check(
        lambda df: ~(df["outbound_to_inbound"] & df["inbound_to_outbound"]),
        error="both agents-move flags set at once",
    ),
    coerce=True,
    strict=False,
    index=pa.Index(int),
)

# Per-replication observations of the stopping target (replay_stopping)
OBSERVATION_SCHEMA = pa.DataFrameSchema(
    {
        "rep":         Column(int,   Check.ge(0)),
        "value":       Column(float),
        "denominator": Column(float, nullable=True, required=False),
    },
    coerce=True,
    strict=False,
)

# StatisticsGrid.to_frame()
GRID_SCHEMA = pa.DataFrameSchema(
    {
        "pm":      Column(str),
        "set":     Column(int, Check.ge(0)),
        "row":     Column(int, Check.ge(0)),
        "column":  Column(int, Check.ge(0)),
        "num_obs": Column(int, Check.ge(0)),
        "mean":    Column(float, nullable=True),
        "std":     Column(float, Check.ge(0), nullable=True),
    },
    coerce=True,
    strict=True,
)

"""
What the schemas guard

TRACE_SCHEMA is the contract for epoch traces exported by a simulation
engine.  Counts are increments since the previous row of the same
replication, so the replay never double-counts an event even when several
call types are decided at the same simulated time.  Optional columns may be
absent: a trace for the plain threshold policies needs only the five
availability columns.

DECISION_SCHEMA checks what the replay produces: non-negative dial counts,
rates inside [0,1], and never both agents-move flags at once.

OBSERVATION_SCHEMA and GRID_SCHEMA cover the stopping replay input and the
grid summary export.

Call SCHEMA.validate(df, lazy=True) to collect every violation in one pass.
"""
