# utils/pm_types.py
# ────────────────────────────────────────────────────────────────────────────
# Catalog of measurable quantities for the contact-center model.
#
#   • EstimationType        – how a measure is estimated (drives the CI method)
#   • RowType / ColumnType  – what the rows / columns of a measure index
#   • ModelDimensions       – base sizes (types, groups, periods, …)
#   • PerformanceMeasureType + _CATALOG – closed enum and its metadata table
#
# Row / column counts follow one rule: n items give n rows when n ≤ 1,
# otherwise n + segments + 1, the trailing row being the aggregate.  The
# last row and the last column of any measure are thus the grand total.
# ────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Final

__all__ = [
    "EstimationType",
    "RowType",
    "ColumnType",
    "ModelDimensions",
    "MeasureInfo",
    "PerformanceMeasureType",
    "measure_info",
]


class EstimationType(str, Enum):
    """Estimation category of a performance measure."""
    RAW_STATISTIC            = "raw_statistic"             # one obs / replication
    EXPECTATION              = "expectation"               # simple average
    FUNCTION_OF_EXPECTATIONS = "function_of_expectations"  # ratio of two averages
    EXPECTATION_OF_FUNCTION  = "expectation_of_function"   # average of a ratio

    @property
    def uses_ratio_estimator(self) -> bool:
        """True when a ratio-of-means accumulator (delta method) is required."""
        return self is EstimationType.FUNCTION_OF_EXPECTATIONS


@dataclass(slots=True, frozen=True)
class ModelDimensions:
    num_in_types:       int = 1
    num_out_types:      int = 0
    num_groups:         int = 1
    num_queues:         int = 1
    num_main_periods:   int = 1
    num_awt_matrices:   int = 1     # matrices of acceptable waiting times

    # user-defined segments (regroupings) of each dimension
    num_in_segments:     int = 0
    num_out_segments:    int = 0
    num_group_segments:  int = 0
    num_period_segments: int = 0

    def __post_init__(self) -> None:
        for name in self.__slots__:
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be ≥ 0")

    @property
    def num_types(self) -> int:
        return self.num_in_types + self.num_out_types

    @property
    def num_segments(self) -> int:
        return self.num_in_segments + self.num_out_segments


def _with_aggregate(n: int, segments: int) -> int:
    return n if n <= 1 else n + segments + 1


class RowType(str, Enum):
    CONTACT_TYPE             = "contact_type"
    INBOUND_TYPE             = "inbound_type"
    INBOUND_TYPE_AWT         = "inbound_type_awt"
    OUTBOUND_TYPE            = "outbound_type"
    AGENT_GROUP              = "agent_group"
    WAITING_QUEUE            = "waiting_queue"
    CONTACT_TYPE_AGENT_GROUP = "contact_type_agent_group"

    def count(self, dims: ModelDimensions) -> int:
        """Number of rows of this kind for a model of dimensions *dims*."""
        if self is RowType.CONTACT_TYPE:
            return _with_aggregate(dims.num_types, dims.num_segments)
        if self is RowType.INBOUND_TYPE:
            return _with_aggregate(dims.num_in_types, dims.num_in_segments)
        if self is RowType.INBOUND_TYPE_AWT:
            return dims.num_awt_matrices * RowType.INBOUND_TYPE.count(dims)
        if self is RowType.OUTBOUND_TYPE:
            return _with_aggregate(dims.num_out_types, dims.num_out_segments)
        if self is RowType.AGENT_GROUP:
            return _with_aggregate(dims.num_groups, dims.num_group_segments)
        if self is RowType.WAITING_QUEUE:
            return _with_aggregate(dims.num_queues, 0)
        # CONTACT_TYPE_AGENT_GROUP
        return RowType.CONTACT_TYPE.count(dims) * RowType.AGENT_GROUP.count(dims)


class ColumnType(str, Enum):
    MAIN_PERIOD   = "main_period"
    AGENT_GROUP   = "agent_group"
    SINGLE_COLUMN = "single_column"

    def count(self, dims: ModelDimensions) -> int:
        if self is ColumnType.MAIN_PERIOD:
            return _with_aggregate(dims.num_main_periods, dims.num_period_segments)
        if self is ColumnType.AGENT_GROUP:
            return RowType.AGENT_GROUP.count(dims)
        return 1


@dataclass(slots=True, frozen=True)
class MeasureInfo:
    """Static metadata attached to one PerformanceMeasureType."""
    title:      str
    estimation: EstimationType
    rows:       RowType
    columns:    ColumnType
    is_ratio:   bool = False     # value naturally lies in [0,1]
    is_time:    bool = False     # expressed in simulated time units


class PerformanceMeasureType(str, Enum):
    ABANDONMENT_RATIO        = "abandonment_ratio"
    ABANDONMENT_RATIO_REP    = "abandonment_ratio_rep"
    AVG_BUSY_AGENTS          = "avg_busy_agents"
    AVG_QUEUE_SIZE           = "avg_queue_size"
    AVG_WORKING_AGENTS       = "avg_working_agents"
    BLOCK_RATIO              = "block_ratio"
    BUSY_AGENTS_END_SIM      = "busy_agents_end_sim"
    DELAY_RATIO              = "delay_ratio"
    EXCESS_TIME              = "excess_time"
    MAX_QUEUE_SIZE           = "max_queue_size"
    MAX_WAITING_TIME         = "max_waiting_time"
    OCCUPANCY                = "occupancy"
    OCCUPANCY_REP            = "occupancy_rep"
    QUEUE_SIZE_END_SIM       = "queue_size_end_sim"
    RATE_OF_ABANDONMENT      = "rate_of_abandonment"
    RATE_OF_ARRIVALS         = "rate_of_arrivals"
    RATE_OF_BLOCKING         = "rate_of_blocking"
    RATE_OF_IN_TARGET_SL     = "rate_of_in_target_sl"
    RATE_OF_SERVICES         = "rate_of_services"
    RATE_OF_TRIED_OUTBOUND   = "rate_of_tried_outbound"
    RATE_OF_WRONG_PARTY      = "rate_of_wrong_party_connect"
    SERVED_RATES             = "served_rates"
    SERVICE_LEVEL            = "service_level"
    SERVICE_LEVEL_REP        = "service_level_rep"
    SPEED_OF_ANSWER          = "speed_of_answer"
    WAITING_TIME             = "waiting_time"

    @property
    def info(self) -> MeasureInfo:
        return _CATALOG[self]

    @property
    def estimation(self) -> EstimationType:
        return _CATALOG[self].estimation

    def num_rows(self, dims: ModelDimensions) -> int:
        return _CATALOG[self].rows.count(dims)

    def num_columns(self, dims: ModelDimensions) -> int:
        return _CATALOG[self].columns.count(dims)


_E  = EstimationType
_R  = RowType
_C  = ColumnType
_PM = PerformanceMeasureType

_CATALOG: Final[Dict[PerformanceMeasureType, MeasureInfo]] = {
    _PM.ABANDONMENT_RATIO:      MeasureInfo("Abandonment ratio", _E.FUNCTION_OF_EXPECTATIONS,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD, is_ratio=True),
    _PM.ABANDONMENT_RATIO_REP:  MeasureInfo("Abandonment ratio (per replication)",
                                            _E.EXPECTATION_OF_FUNCTION,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD, is_ratio=True),
    _PM.AVG_BUSY_AGENTS:        MeasureInfo("Average busy agents", _E.EXPECTATION,
                                            _R.AGENT_GROUP, _C.MAIN_PERIOD),
    _PM.AVG_QUEUE_SIZE:         MeasureInfo("Average queue size", _E.EXPECTATION,
                                            _R.WAITING_QUEUE, _C.MAIN_PERIOD),
    _PM.AVG_WORKING_AGENTS:     MeasureInfo("Average working agents", _E.EXPECTATION,
                                            _R.AGENT_GROUP, _C.MAIN_PERIOD),
    _PM.BLOCK_RATIO:            MeasureInfo("Blocking ratio", _E.FUNCTION_OF_EXPECTATIONS,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD, is_ratio=True),
    _PM.BUSY_AGENTS_END_SIM:    MeasureInfo("Busy agents at end of simulation",
                                            _E.RAW_STATISTIC,
                                            _R.AGENT_GROUP, _C.SINGLE_COLUMN),
    _PM.DELAY_RATIO:            MeasureInfo("Delay ratio", _E.FUNCTION_OF_EXPECTATIONS,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD, is_ratio=True),
    _PM.EXCESS_TIME:            MeasureInfo("Excess time", _E.FUNCTION_OF_EXPECTATIONS,
                                            _R.INBOUND_TYPE_AWT, _C.MAIN_PERIOD, is_time=True),
    _PM.MAX_QUEUE_SIZE:         MeasureInfo("Maximal queue size", _E.EXPECTATION,
                                            _R.WAITING_QUEUE, _C.MAIN_PERIOD),
    _PM.MAX_WAITING_TIME:       MeasureInfo("Maximal waiting time", _E.EXPECTATION,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD, is_time=True),
    _PM.OCCUPANCY:              MeasureInfo("Agents' occupancy ratio", _E.FUNCTION_OF_EXPECTATIONS,
                                            _R.AGENT_GROUP, _C.MAIN_PERIOD, is_ratio=True),
    _PM.OCCUPANCY_REP:          MeasureInfo("Agents' occupancy ratio (per replication)",
                                            _E.EXPECTATION_OF_FUNCTION,
                                            _R.AGENT_GROUP, _C.MAIN_PERIOD, is_ratio=True),
    _PM.QUEUE_SIZE_END_SIM:     MeasureInfo("Queue size at end of simulation",
                                            _E.RAW_STATISTIC,
                                            _R.WAITING_QUEUE, _C.SINGLE_COLUMN),
    _PM.RATE_OF_ABANDONMENT:    MeasureInfo("Rate of abandonment", _E.EXPECTATION,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD),
    _PM.RATE_OF_ARRIVALS:       MeasureInfo("Rate of arrivals", _E.EXPECTATION,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD),
    _PM.RATE_OF_BLOCKING:       MeasureInfo("Rate of blocking", _E.EXPECTATION,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD),
    _PM.RATE_OF_IN_TARGET_SL:   MeasureInfo("Rate of contacts in target", _E.EXPECTATION,
                                            _R.INBOUND_TYPE_AWT, _C.MAIN_PERIOD),
    _PM.RATE_OF_SERVICES:       MeasureInfo("Rate of services", _E.EXPECTATION,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD),
    _PM.RATE_OF_TRIED_OUTBOUND: MeasureInfo("Rate of tried outbound calls", _E.EXPECTATION,
                                            _R.OUTBOUND_TYPE, _C.MAIN_PERIOD),
    _PM.RATE_OF_WRONG_PARTY:    MeasureInfo("Rate of wrong party connects", _E.EXPECTATION,
                                            _R.OUTBOUND_TYPE, _C.MAIN_PERIOD),
    _PM.SERVED_RATES:           MeasureInfo("Served rates", _E.EXPECTATION,
                                            _R.CONTACT_TYPE, _C.AGENT_GROUP),
    _PM.SERVICE_LEVEL:          MeasureInfo("Service level", _E.FUNCTION_OF_EXPECTATIONS,
                                            _R.INBOUND_TYPE_AWT, _C.MAIN_PERIOD, is_ratio=True),
    _PM.SERVICE_LEVEL_REP:      MeasureInfo("Service level (per replication)",
                                            _E.EXPECTATION_OF_FUNCTION,
                                            _R.INBOUND_TYPE_AWT, _C.MAIN_PERIOD, is_ratio=True),
    _PM.SPEED_OF_ANSWER:        MeasureInfo("Speed of answer", _E.FUNCTION_OF_EXPECTATIONS,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD, is_time=True),
    _PM.WAITING_TIME:           MeasureInfo("Waiting time", _E.FUNCTION_OF_EXPECTATIONS,
                                            _R.CONTACT_TYPE, _C.MAIN_PERIOD, is_time=True),
}


def measure_info(pm: PerformanceMeasureType | str) -> MeasureInfo:
    """
    Look up catalog metadata by enum member or by its string value
    (``"service_level"``).  Unknown names raise ``ValueError``.
    """
    return _CATALOG[PerformanceMeasureType(pm)]
