# sim_runner.py
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List

import pandas as pd

import curation
from epoch_runner import replay_stopping, run_replications
from scenarios import DialerScenario, load_scenarios


# helpers                                                                     #
def _select(scenarios: List[DialerScenario], wanted: List[str] | None) -> List[DialerScenario]:
    if not wanted:
        return scenarios
    known = {s.id for s in scenarios}
    missing = [w for w in wanted if w not in known]
    if missing:
        raise RuntimeError(f"unknown scenario id(s): {', '.join(missing)}")
    return [s for s in scenarios if s.id in wanted]


def _tag(df: pd.DataFrame, scn: DialerScenario) -> pd.DataFrame:
    df["test_label"] = scn.test_label
    df["hypothesis"] = scn.hypothesis
    return df


# CLI                                                                         #
def main(argv: List[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="Replay epoch traces through the dialer policies.")
    p.add_argument("--config", default="scenarios.yaml",
                   help="Path to YAML with scenario definitions")
    p.add_argument("--scenario", action="append", default=None,
                   help="Scenario id to run (repeatable; default: all)")
    p.add_argument("--trace", required=True,
                   help="Epoch trace (parquet or CSV)")
    p.add_argument("--observations", default=None,
                   help="Per-replication observations for the stopping replay")
    p.add_argument("--out", default="outputs/decisions.parquet",
                   help="Destination Parquet file")
    p.add_argument("--jobs", type=int, default=1,
                   help="Parallel workers (-1 = all cores, 1 = sequential)")
    p.add_argument("--log-level", default=os.environ.get("LOGLEVEL", "INFO"),
                   help="DEBUG, INFO, WARNING, …")

    args = p.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(message)s")

    scenarios = _select(load_scenarios(args.config), args.scenario)
    scenarios.sort(key=lambda scn: scn.id)           # deterministic job order
    if not scenarios:
        print("[sim_runner] nothing to run; config lists no scenarios.")
        return

    trace = curation.read_trace(args.trace)
    obs = pd.read_csv(args.observations) if args.observations else None

    dfs = []
    for scn in scenarios:
        dfs.append(_tag(run_replications(trace, scn, jobs=args.jobs), scn))
        if obs is not None and scn.stopping is not None:
            n = replay_stopping(obs, scn)
            print(f"[sim_runner] {scn.id}: stopping rule → {n} replication(s)")

    final_df = curation.tidy_dataframe(pd.concat(dfs, ignore_index=True))
    curation.write_parquet(final_df, args.out)
    print(f"[sim_runner] wrote {len(final_df):,} rows -> {args.out}")


if __name__ == "__main__":                # entry-point
    try:
        main()
    except (RuntimeError, ValueError) as err:
        print(f"ERROR: {err}", file=sys.stderr)
        sys.exit(1)

"""
1. What the script does, step by step

Parse CLI arguments

--config   path to the YAML file that lists scenarios (default scenarios.yaml).
--scenario restrict the run to one or more scenario ids.
--trace    epoch trace exported by the simulation engine (parquet or CSV).
--observations  optional CSV (rep, value[, denominator]) replayed through
           each scenario's stopping rule.
--out      where to save the decisions (default outputs/decisions.parquet).
--jobs     worker processes; -1 uses all cores, 1 stays in-process.
--log-level  logging threshold (default: $LOGLEVEL or INFO).

2. Load and filter scenarios from scenarios.py; bad values surface as
ConfigurationError (a ValueError) before anything runs.

3. Replay. For every scenario the trace is split by replication and each
replication runs through a fresh tracker / controller / policy.

4. Write artefacts. Decisions from every scenario are concatenated, tidied by
curation.tidy_dataframe and written to parquet via pyarrow.

5. Exit codes. Configuration or trace errors print to stderr and exit 1.

6. How to run it

python -m sim_runner --trace traces/run1.parquet
python -m sim_runner --trace traces/run1.csv --scenario rate-gated --jobs -1 \
                     --observations traces/sl_by_rep.csv
"""
