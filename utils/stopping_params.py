# utils/stopping_params.py
"""
StoppingParams

Knobs of the sequential stopping rule:

    • beta      – confidence level of the interval, in (0,1)
    • delta     – threshold the estimated measure is compared against
    • measure   – target performance measure (type + row + column);
                  row = column = -1 selects the grand-total cell
    • max_reps  – hard cap on completed batches / replications
"""

from __future__ import annotations
from dataclasses import dataclass

from utils.exceptions import ConfigurationError
from utils.pm_types import PerformanceMeasureType


@dataclass(slots=True, frozen=True)
class StoppingParams:
    measure:  PerformanceMeasureType | None = None
    beta:     float = 0.95
    delta:    float = 0.0
    max_reps: int   = 2**31 - 1
    row:      int   = -1
    column:   int   = -1

    def __post_init__(self) -> None:
        if self.measure is None:
            raise ConfigurationError("a target performance measure is required")
        if not isinstance(self.measure, PerformanceMeasureType):
            try:
                object.__setattr__(self, "measure", PerformanceMeasureType(self.measure))
            except ValueError as exc:
                raise ConfigurationError(f"unknown performance measure {self.measure!r}") from exc
        if not (0.0 < self.beta < 1.0):
            raise ConfigurationError("beta must be in (0, 1)")
        if self.max_reps < 0:
            raise ConfigurationError("max_reps must be ≥ 0")
