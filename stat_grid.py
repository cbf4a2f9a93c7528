# stat_grid.py
# ────────────────────────────────────────────────────────────────────────────
# Statistics grid: one accumulator per (performance measure, row, column),
# with an optional third axis of observation sets (macro-replications,
# strata, …).
#
#   • register()   – bind a measure; allocates rows × columns × sets probes
#   • add()        – engine-side: push one observation into a cell
#   • matrix()     – read-only view used by the decision evaluators
#   • number_obs() / get_obs() – raw observation access
#   • to_frame()   – long-format summary, checked against GRID_SCHEMA
#
# Error contract: a measure that was never registered raises
# NotSupportedError; a registered measure queried with a bad row, column or
# set raises OutOfRangeError.  Support is always checked first.
# ────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterator, List, Tuple

import numpy as np
import pandas as pd

import validator
from utils.exceptions import NotSupportedError, OutOfRangeError
from utils.pm_types import ModelDimensions, PerformanceMeasureType
from utils.stat_probes import Probe, RatioTally, Tally

__all__ = ["ProbeMatrix", "StatisticsGrid"]

ProbeFactory = Callable[[str], Probe]


def _default_factory(pm: PerformanceMeasureType) -> ProbeFactory:
    return RatioTally if pm.estimation.uses_ratio_estimator else Tally


class ProbeMatrix:
    """Fixed-shape block of accumulators of a single kind."""

    def __init__(
        self,
        pm: PerformanceMeasureType,
        rows: int,
        columns: int,
        num_sets: int = 1,
        factory: ProbeFactory | None = None,
    ) -> None:
        if min(rows, columns, num_sets) <= 0:
            raise ValueError("rows, columns and num_sets must be > 0")
        factory = factory or _default_factory(pm)
        self.pm = pm
        self._shape = (num_sets, rows, columns)
        self._probes: List[Probe] = [
            factory(f"{pm.value}[{s},{r},{c}]")
            for s in range(num_sets) for r in range(rows) for c in range(columns)
        ]
        self.kind = type(self._probes[0])

    @property
    def rows(self) -> int:
        return self._shape[1]

    @property
    def columns(self) -> int:
        return self._shape[2]

    @property
    def num_sets(self) -> int:
        return self._shape[0]

    def _index(self, row: int, column: int, obs_set: int) -> int:
        n_sets, n_rows, n_cols = self._shape
        if not (0 <= row < n_rows):
            raise OutOfRangeError(f"{self.pm.value}: row {row} outside [0, {n_rows})")
        if not (0 <= column < n_cols):
            raise OutOfRangeError(f"{self.pm.value}: column {column} outside [0, {n_cols})")
        if not (0 <= obs_set < n_sets):
            raise OutOfRangeError(f"{self.pm.value}: set {obs_set} outside [0, {n_sets})")
        return (obs_set * n_rows + row) * n_cols + column

    def get(self, row: int, column: int, obs_set: int = 0) -> Probe:
        return self._probes[self._index(row, column, obs_set)]

    def grand_total(self, obs_set: int = 0) -> Probe:
        """Last row / last column: the aggregate over every row and column."""
        return self.get(self.rows - 1, self.columns - 1, obs_set)

    def init(self) -> None:
        for p in self._probes:
            p.init()

    def __iter__(self) -> Iterator[Tuple[int, int, int, Probe]]:
        n_sets, n_rows, n_cols = self._shape
        for s in range(n_sets):
            for r in range(n_rows):
                for c in range(n_cols):
                    yield s, r, c, self._probes[(s * n_rows + r) * n_cols + c]


class StatisticsGrid:
    """
    Queryable collection of ProbeMatrix objects, one per supported measure.

    Populated by the simulation engine, read by the decision evaluators.
    Row and column counts come from the measure's catalog entry and
    *dims*, so bounds are always those of the model being simulated.
    """

    def __init__(self, dims: ModelDimensions, num_sets: int = 1) -> None:
        if num_sets <= 0:
            raise ValueError("num_sets must be > 0")
        self.dims = dims
        self.num_sets = num_sets
        self._matrices: Dict[PerformanceMeasureType, ProbeMatrix] = {}

    # registration
    def register(
        self,
        pm: PerformanceMeasureType | str,
        factory: ProbeFactory | None = None,
    ) -> ProbeMatrix:
        pm = PerformanceMeasureType(pm)
        if pm in self._matrices:
            raise ValueError(f"{pm.value} is already registered")
        mat = ProbeMatrix(
            pm,
            rows=pm.num_rows(self.dims),
            columns=pm.num_columns(self.dims),
            num_sets=self.num_sets,
            factory=factory,
        )
        self._matrices[pm] = mat
        logging.debug("StatisticsGrid: registered %s (%d×%d×%d, %s)",
                      pm.value, mat.rows, mat.columns, mat.num_sets, mat.kind.__name__)
        return mat

    def supported_measures(self) -> List[PerformanceMeasureType]:
        return list(self._matrices)

    def __contains__(self, pm: object) -> bool:
        try:
            return PerformanceMeasureType(pm) in self._matrices
        except ValueError:
            return False

    def init(self) -> None:
        """Clear every accumulator; registrations are kept."""
        for mat in self._matrices.values():
            mat.init()

    # queries
    def matrix(self, pm: PerformanceMeasureType | str) -> ProbeMatrix:
        try:
            key = PerformanceMeasureType(pm)
        except ValueError as exc:
            raise NotSupportedError(f"unknown performance measure {pm!r}") from exc
        try:
            return self._matrices[key]
        except KeyError:
            raise NotSupportedError(f"no statistics for {key.value}") from None

    def probe(self, pm, row: int, column: int, obs_set: int = 0) -> Probe:
        return self.matrix(pm).get(row, column, obs_set)

    def num_observation_sets(self, pm, row: int, column: int) -> int:
        mat = self.matrix(pm)
        mat.get(row, column)                    # bounds check
        return mat.num_sets

    def number_obs(self, pm, row: int, column: int, obs_set: int = 0) -> int:
        return self.probe(pm, row, column, obs_set).num_obs

    def get_obs(self, pm, row: int, column: int, obs_set: int = 0) -> np.ndarray:
        """
        Observations of one cell.  For ratio measures these are the
        per-observation ratios x_i / y_i.
        """
        return self.probe(pm, row, column, obs_set).observations()

    # engine side
    def add(
        self,
        pm,
        row: int,
        column: int,
        value: float,
        denominator: float | None = None,
        obs_set: int = 0,
    ) -> None:
        probe = self.probe(pm, row, column, obs_set)
        if isinstance(probe, RatioTally):
            if denominator is None:
                raise ValueError(f"{probe.name}: ratio accumulator needs a denominator")
            probe.add(value, denominator)
        else:
            if denominator is not None:
                raise ValueError(f"{probe.name}: simple accumulator takes no denominator")
            probe.add(value)

    # export
    def to_frame(self) -> pd.DataFrame:
        """Long-format summary (pm, set, row, column, num_obs, mean, std)."""
        rows: List[Dict[str, object]] = []
        for pm, mat in self._matrices.items():
            for s, r, c, probe in mat:
                obs = probe.observations()
                finite = obs[np.isfinite(obs)]
                rows.append({
                    "pm":      pm.value,
                    "set":     s,
                    "row":     r,
                    "column":  c,
                    "num_obs": probe.num_obs,
                    "mean":    probe.mean(),
                    "std":     float(np.std(finite, ddof=1)) if finite.size > 1 else np.nan,
                })
        df = pd.DataFrame(
            rows, columns=["pm", "set", "row", "column", "num_obs", "mean", "std"]
        )
        return validator.GRID_SCHEMA.validate(df, lazy=True)
