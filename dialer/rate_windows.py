# dialer/rate_windows.py
# ────────────────────────────────────────────────────────────────────────────
# Windowed bad-call and mismatch rates for the rate-gated dialer.
#
#   bad-call rate   = inbound contacts that waited ≥ AWT (or abandoned after
#                     AWT)  /  inbound contacts
#   mismatch rate_k = outbound calls of type k that had to queue  /
#                     outbound calls of type k
#
# Events are binned by period p = ⌊(t − t_start) / d_D⌋.  P_D + 1 slots are
# kept; a rate at time t uses the P_D completed periods before the current
# one, so a half-filled period never moves the gate.  Empty denominator → 0.
# ────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import logging
import math
from typing import Dict

from utils.dialer_params import RateGateParams
from utils.window_sums import PeriodWindowSums

__all__ = ["BadCallMismatchTracker"]


class BadCallMismatchTracker:
    """Per-replication collector; create one per independent run."""

    def __init__(self, params: RateGateParams, num_out_types: int = 1) -> None:
        if num_out_types <= 0:
            raise ValueError("num_out_types must be > 0")
        self.params = params
        self.num_out_types = num_out_types
        slots = params.num_checked_periods + 1
        self._inbound_bad = PeriodWindowSums(1, slots)
        self._inbound_all = PeriodWindowSums(1, slots)
        self._mismatch = PeriodWindowSums(num_out_types, slots)
        self._outbound_all = PeriodWindowSums(num_out_types, slots)
        self._started = False
        self._start_time = 0.0

    # lifecycle
    def start(self, t: float = 0.0) -> None:
        self.init()
        self._started = True
        self._start_time = float(t)
        logging.debug("BadCallMismatchTracker: started at t=%.3f", t)

    def stop(self) -> None:
        self._started = False

    def init(self) -> None:
        for sums in (self._inbound_bad, self._inbound_all,
                     self._mismatch, self._outbound_all):
            sums.init()

    @property
    def started(self) -> bool:
        return self._started

    def period(self, t: float) -> int:
        return int(math.floor((t - self._start_time) / self.params.checked_period))

    # event intake
    def add_inbound(self, t: float, total: int, bad: int = 0) -> None:
        """Count *total* inbound contacts at time *t*, *bad* of them late."""
        if bad > total:
            raise ValueError(f"bad ({bad}) exceeds total ({total})")
        p = self._accepting(t)
        if p is None:
            return
        self._inbound_all.add(0, p, total)
        self._inbound_bad.add(0, p, bad)

    def add_outbound(self, t: float, call_type: int, total: int, mismatched: int = 0) -> None:
        """Count *total* outbound calls of *call_type*, *mismatched* of them queued."""
        if mismatched > total:
            raise ValueError(f"mismatched ({mismatched}) exceeds total ({total})")
        p = self._accepting(t)
        if p is None:
            return
        self._outbound_all.add(call_type, p, total)
        self._mismatch.add(call_type, p, mismatched)

    def notify_inbound(self, t: float, bad: bool) -> None:
        self.add_inbound(t, 1, int(bad))

    def notify_outbound(self, t: float, call_type: int, mismatched: bool) -> None:
        self.add_outbound(t, call_type, 1, int(mismatched))

    def _accepting(self, t: float) -> int | None:
        if not self._started or t < self._start_time:
            return None
        return self.period(t)

    # rates
    def _window(self, t: float) -> tuple[int, int]:
        cur = self.period(t)
        return cur - self.params.num_checked_periods, cur

    def bad_call_rate(self, t: float) -> float:
        if not self._started:
            return 0.0
        lo, hi = self._window(t)
        den = self._inbound_all.total(0, lo, hi)
        return 0.0 if den == 0 else self._inbound_bad.total(0, lo, hi) / den

    def mismatch_rate(self, t: float, call_type: int) -> float:
        if not (0 <= call_type < self.num_out_types):
            raise IndexError(f"call type {call_type} outside [0, {self.num_out_types})")
        if not self._started:
            return 0.0
        lo, hi = self._window(t)
        den = self._outbound_all.total(call_type, lo, hi)
        return 0.0 if den == 0 else self._mismatch.total(call_type, lo, hi) / den

    def mismatch_rates(self, t: float) -> Dict[int, float]:
        return {k: self.mismatch_rate(t, k) for k in range(self.num_out_types)}
