# stopping.py
# ────────────────────────────────────────────────────────────────────────────
# Sequential stopping rule for a search over simulation lengths.
#
#   check(progress, default_new_reps) → 0  stop
#                                     → 1  run one more batch / replication
#
# Keeps simulating while the threshold δ lies inside the β-level confidence
# interval of the target measure, i.e. while the simulation cannot yet tell
# on which side of δ the measure lies.
# ────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import dataclasses
import logging
from typing import Protocol, runtime_checkable

from stat_grid import ProbeMatrix
from utils.exceptions import InvalidProbeError
from utils.pm_types import PerformanceMeasureType
from utils.stat_probes import Probe, RatioTally, Tally
from utils.stopping_params import StoppingParams

__all__ = ["SimProgress", "SearchStoppingCondition", "run_sequential"]


@runtime_checkable
class SimProgress(Protocol):
    def completed_steps(self) -> int: ...
    def statistics_grid(self, pm: PerformanceMeasureType) -> ProbeMatrix: ...


class SearchStoppingCondition:
    """
    Stopping rule bound to an immutable StoppingParams.

    The setters rebuild the parameter bundle with ``dataclasses.replace`` so
    every change goes through the same validation as construction.
    """

    def __init__(self, params: StoppingParams) -> None:
        self.params = params

    # validated setters
    @property
    def beta(self) -> float:
        return self.params.beta

    @beta.setter
    def beta(self, value: float) -> None:
        self.params = dataclasses.replace(self.params, beta=value)

    @property
    def delta(self) -> float:
        return self.params.delta

    @delta.setter
    def delta(self, value: float) -> None:
        self.params = dataclasses.replace(self.params, delta=value)

    @property
    def max_reps(self) -> int:
        return self.params.max_reps

    @max_reps.setter
    def max_reps(self, value: int) -> None:
        self.params = dataclasses.replace(self.params, max_reps=value)

    def set_target(self, measure: PerformanceMeasureType | str,
                   row: int = -1, column: int = -1) -> None:
        self.params = dataclasses.replace(self.params, measure=measure, row=row, column=column)

    # evaluation
    def target_cell(self, mat: ProbeMatrix) -> tuple[int, int]:
        """Configured (row, column) in *mat*; negative indices count from the end."""
        row, col = self.params.row, self.params.column
        if row < 0:
            row += mat.rows
        if col < 0:
            col += mat.columns
        return row, col

    def target_probe(self, progress: SimProgress) -> Probe:
        mat = progress.statistics_grid(self.params.measure)
        return mat.get(*self.target_cell(mat))

    def interval(self, probe: Probe) -> tuple[float, float]:
        if isinstance(probe, Tally):
            return probe.confidence_interval_student(self.params.beta)
        if isinstance(probe, RatioTally):
            return probe.confidence_interval_delta(self.params.beta)
        raise InvalidProbeError(
            f"cannot build a confidence interval from {type(probe).__name__}"
        )

    def check(self, progress: SimProgress, default_new_reps: int) -> int:
        if default_new_reps == 0:
            return 0
        done = progress.completed_steps()
        if done >= self.params.max_reps:
            logging.info("Stopping: max_reps=%d reached", self.params.max_reps)
            return 0

        center, half = self.interval(self.target_probe(progress))
        lo, hi = center - half, center + half
        if self.params.delta < lo or self.params.delta > hi:
            logging.info("Stopping after %d steps: δ=%g outside [%.6g, %.6g]",
                         done, self.params.delta, lo, hi)
            return 0
        logging.debug("Continuing after %d steps: δ=%g inside [%.6g, %.6g]",
                      done, self.params.delta, lo, hi)
        return 1


def run_sequential(sim, condition: SearchStoppingCondition, initial_steps: int) -> int:
    """
    Drive *sim* until *condition* says stop.

    *sim* implements SimProgress plus ``simulate_steps(n)``; it may offer
    ``required_new_steps()`` as its own suggestion for the next batch.
    Returns the total number of steps simulated.
    """
    if initial_steps < 0:
        raise ValueError("initial_steps must be ≥ 0")
    total = 0
    if initial_steps:
        sim.simulate_steps(initial_steps)
        total += initial_steps

    suggest = getattr(sim, "required_new_steps", None)
    while True:
        default = int(suggest()) if callable(suggest) else 1
        n = condition.check(sim, default)
        if n <= 0:
            return total
        sim.simulate_steps(n)
        total += n
