# utils/window_sums.py
# ────────────────────────────────────────────────────────────────────────────
# Per-type event counters over a sliding window of fixed-length periods.
#
# Periods are addressed by their *real* index p = ⌊(t − t₀) / d⌋.  Only the
# most recent `num_periods` periods are stored; adding to a later period
# slides the window right and forgets the oldest ones.  Adding to a period
# that already left the window is an error.
#
# Storage is a collections.deque(maxlen=num_periods) of numpy rows, so a
# slide costs O(shift) and never copies the whole window.
# ────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import logging
from collections import deque
from typing import Deque

import numpy as np

__all__ = ["PeriodWindowSums"]


class PeriodWindowSums:
    """Sliding window of per-period, per-type sums."""

    def __init__(self, num_types: int, num_periods: int) -> None:
        if num_types <= 0:
            raise ValueError("num_types must be > 0")
        if num_periods <= 0:
            raise ValueError("num_periods must be > 0")
        self._num_types = num_types
        self._slots: Deque[np.ndarray] = deque(maxlen=num_periods)
        self._last = -1                      # real index of the newest slot

    @property
    def num_types(self) -> int:
        return self._num_types

    @property
    def num_periods(self) -> int:
        return self._slots.maxlen  # type: ignore[return-value]

    @property
    def first_period(self) -> int:
        """Real index of the oldest stored period (0 while empty)."""
        return max(self._last - len(self._slots) + 1, 0)

    @property
    def last_period(self) -> int:
        return self._last

    def init(self) -> None:
        self._slots.clear()
        self._last = -1

    def _advance_to(self, period: int) -> None:
        gap = period - self._last
        if gap > self.num_periods:
            # everything stored is forgotten; restart just before the window
            self._slots.clear()
            self._last = period - self.num_periods
            logging.debug("PeriodWindowSums: window jumped to period %d", period)
        while self._last < period:
            self._slots.append(np.zeros(self._num_types, dtype=float))
            self._last += 1

    def add(self, type_idx: int, period: int, x: float = 1.0) -> None:
        if not (0 <= type_idx < self._num_types):
            raise IndexError(f"type index {type_idx} outside [0, {self._num_types})")
        if period < 0:
            raise IndexError("period must be ≥ 0")
        if self._slots and period < self.first_period:
            raise IndexError(
                f"period {period} already left the window (first={self.first_period})"
            )
        self._advance_to(period)
        self._slots[period - self.first_period][type_idx] += x

    def measure(self, type_idx: int, period: int) -> float:
        """Sum stored for *type_idx* in real period *period* (0 if not stored)."""
        if not (0 <= type_idx < self._num_types):
            raise IndexError(f"type index {type_idx} outside [0, {self._num_types})")
        if not self._slots or not (self.first_period <= period <= self._last):
            return 0.0
        return float(self._slots[period - self.first_period][type_idx])

    def total(self, type_idx: int | None, start: int, stop: int) -> float:
        """
        Sum over real periods ``start ≤ p < stop`` still in the window.

        ``type_idx=None`` sums over every type.
        """
        lo = max(start, self.first_period)
        hi = min(stop, self._last + 1)
        if not self._slots or lo >= hi:
            return 0.0
        acc = 0.0
        for p in range(lo, hi):
            row = self._slots[p - self.first_period]
            acc += float(row.sum() if type_idx is None else row[type_idx])
        return acc
