# utils/stat_probes.py
# ────────────────────────────────────────────────────────────────────────────
# Statistical accumulators ("probes") backing the confidence intervals.
#
#   Tally       – scalar observations; Student-t interval
#   RatioTally  – paired (x, y) observations estimating r = E[X] / E[Y];
#                 delta-method interval
#
#   Delta method for r̂ = X̄ / Ȳ :
#       σ̂²  = ( s_xx − 2·r̂·s_xy + r̂²·s_yy ) / Ȳ²
#       h   = z_{(1+β)/2} · √( σ̂² / n )
#
# Both return (center, half_width); with fewer than two observations the
# half-width is +inf so that a stopping rule never acts on a degenerate CI.
# ────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import math
from typing import List, Tuple, Union

import numpy as np
from scipy import stats

__all__ = ["Tally", "RatioTally", "Probe"]


def _check_level(level: float) -> None:
    if not (0.0 < level < 1.0):
        raise ValueError(f"confidence level must be in (0,1); got {level}")


def _check_finite(*values: float) -> None:
    if not all(np.isfinite(v) for v in values):
        raise ValueError(f"observations must be finite; got {values}")


class Tally:
    """Simple accumulator of scalar observations."""

    __slots__ = ("name", "_obs")

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._obs: List[float] = []

    def init(self) -> None:
        self._obs.clear()

    def add(self, x: float) -> None:
        _check_finite(x)
        self._obs.append(float(x))

    @property
    def num_obs(self) -> int:
        return len(self._obs)

    def observations(self) -> np.ndarray:
        return np.asarray(self._obs, dtype=float)

    def mean(self) -> float:
        return float(np.mean(self._obs)) if self._obs else float("nan")

    def variance(self) -> float:
        """Unbiased sample variance (ddof = 1); NaN below two observations."""
        if len(self._obs) < 2:
            return float("nan")
        return float(np.var(self._obs, ddof=1))

    def std(self) -> float:
        return math.sqrt(self.variance()) if len(self._obs) >= 2 else float("nan")

    def confidence_interval_student(self, level: float) -> Tuple[float, float]:
        """
        Two-sided Student-t interval at confidence *level*.

        Returns
        -------
        (center, half_width) : tuple[float, float]
            Bounds are ``center ± half_width``.
        """
        _check_level(level)
        n = self.num_obs
        center = self.mean()
        if n < 2:
            return center, math.inf
        q = float(stats.t.ppf(0.5 + level / 2.0, df=n - 1))
        return center, q * self.std() / math.sqrt(n)

    def __repr__(self) -> str:
        return f"Tally(name={self.name!r}, n={self.num_obs}, mean={self.mean():.6g})"


class RatioTally:
    """Accumulator of paired observations for a ratio of expectations."""

    __slots__ = ("name", "_x", "_y")

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._x: List[float] = []
        self._y: List[float] = []

    def init(self) -> None:
        self._x.clear()
        self._y.clear()

    def add(self, x: float, y: float) -> None:
        _check_finite(x, y)
        self._x.append(float(x))
        self._y.append(float(y))

    @property
    def num_obs(self) -> int:
        return len(self._x)

    def numerators(self) -> np.ndarray:
        return np.asarray(self._x, dtype=float)

    def denominators(self) -> np.ndarray:
        return np.asarray(self._y, dtype=float)

    def observations(self) -> np.ndarray:
        """Per-observation ratios x_i / y_i (NaN where y_i = 0)."""
        x, y = self.numerators(), self.denominators()
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.where(y != 0.0, x / np.where(y != 0.0, y, 1.0), np.nan)

    def mean(self) -> float:
        """Point estimate X̄ / Ȳ."""
        if not self._x:
            return float("nan")
        y_bar = float(np.mean(self._y))
        if y_bar == 0.0:
            return float("nan")
        return float(np.mean(self._x)) / y_bar

    def confidence_interval_delta(self, level: float) -> Tuple[float, float]:
        """
        Delta-method interval for E[X]/E[Y] at confidence *level*.

        The asymptotic normal quantile is used.  A zero denominator mean
        gives ``(nan, inf)``.
        """
        _check_level(level)
        n = self.num_obs
        r = self.mean()
        if n < 2 or not np.isfinite(r):
            return r, math.inf

        x, y = self.numerators(), self.denominators()
        cov = np.cov(x, y, ddof=1)
        s_xx, s_xy, s_yy = cov[0, 0], cov[0, 1], cov[1, 1]
        y_bar = float(np.mean(y))

        var = (s_xx - 2.0 * r * s_xy + r * r * s_yy) / (y_bar * y_bar)
        z = float(stats.norm.ppf(0.5 + level / 2.0))
        return r, z * math.sqrt(max(float(var), 0.0) / n)

    def __repr__(self) -> str:
        return f"RatioTally(name={self.name!r}, n={self.num_obs}, ratio={self.mean():.6g})"


Probe = Union[Tally, RatioTally]
