# dialer/agents_move.py
"""
AgentsMoveController

Once per checked period the controller

    1. appends the period's global service level to a window of the last
       P_D samples,
    2. averages the window, and
    3. sets the routing flags

           SL < s1   →  outbound agents may take inbound calls
           SL > s2   →  inbound agents may take outbound calls
           otherwise →  neither

Flags are recomputed from the window every period, so they never latch;
the window itself is what delays a reaction.
"""
from __future__ import annotations

import logging
import math
from collections import deque
from typing import Deque, Tuple

import numpy as np

from utils.dialer_params import AgentsMoveParams

__all__ = ["AgentsMoveController", "service_level_sample"]


def service_level_sample(good: float, served: float,
                         abandoned_after_awt: float, blocked: float) -> float:
    """
    good / (served + abandoned_after_awt + blocked)

    A period with nothing in the denominator counts as a perfect period
    (1.0): no contact was turned away or kept waiting.
    """
    den = served + abandoned_after_awt + blocked
    if den <= 0:
        return 1.0
    return float(good) / float(den)


class AgentsMoveController:

    def __init__(self, params: AgentsMoveParams) -> None:
        self.params = params
        self._window: Deque[float] = deque(maxlen=params.num_checked_periods)
        self._out_to_in = False
        self._in_to_out = False

        # period bookkeeping for observe()/advance()
        self._period: int | None = None
        self._acc = np.zeros(4, dtype=float)   # good, served, aban>AWT, blocked

    # flags
    @property
    def outbound_to_inbound(self) -> bool:
        return self._out_to_in

    @property
    def inbound_to_outbound(self) -> bool:
        return self._in_to_out

    def routing_flags(self) -> Tuple[bool, bool]:
        return self._out_to_in, self._in_to_out

    @property
    def window_mean(self) -> float:
        return float(np.mean(self._window)) if self._window else math.nan

    # updates
    def update(self, sl: float) -> Tuple[bool, bool]:
        """Push one period's service level and re-evaluate the flags."""
        if not (0.0 <= sl <= 1.0):
            raise ValueError(f"service level must be in [0,1]; got {sl}")
        self._window.append(float(sl))
        mean = self.window_mean
        if mean < self.params.sl_low:
            flags = (True, False)
        elif mean > self.params.sl_high:
            flags = (False, True)
        else:
            flags = (False, False)

        if flags != self.routing_flags():
            logging.info("AgentsMove: SL=%.3f → outbound_to_inbound=%s inbound_to_outbound=%s",
                         mean, flags[0], flags[1])
        self._out_to_in, self._in_to_out = flags
        return flags

    def record_counts(self, good: float, served: float,
                      abandoned_after_awt: float = 0, blocked: float = 0) -> Tuple[bool, bool]:
        return self.update(service_level_sample(good, served, abandoned_after_awt, blocked))

    # time-driven intake
    def period(self, t: float) -> int:
        return int(math.floor(t / self.params.checked_period))

    def advance(self, t: float) -> None:
        """Close every checked period that ended at or before *t*."""
        p = self.period(t)
        if self._period is None:
            self._period = p
            return
        gap = p - self._period
        if gap <= 0:
            return
        self.record_counts(*self._acc)
        self._acc[:] = 0.0
        # empty periods count as SL = 1; only the last P_D of them matter
        for _ in range(min(gap - 1, self.params.num_checked_periods)):
            self.update(1.0)
        self._period = p

    def observe(self, t: float, good: float = 0, served: float = 0,
                abandoned_after_awt: float = 0, blocked: float = 0) -> None:
        """Attribute counts observed at *t* to the checked period containing *t*."""
        self.advance(t)
        self._acc += (good, served, abandoned_after_awt, blocked)

    def reset(self) -> None:
        self._window.clear()
        self._out_to_in = self._in_to_out = False
        self._period = None
        self._acc[:] = 0.0
