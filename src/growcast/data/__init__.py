"""Data modules - daily series, measurement sources, aggregation."""

from growcast.data.series import (
    Measurement,
    ReferenceCalibrationPoint,
    TimeSeries,
    to_finite_float,
)
from growcast.data.sources import DailyBatch, DailySource, WindowSource
from growcast.data.aggregator import aggregate_daily_series, day_windows
from growcast.data.daily import DailyDataset, read_daily_batch

__all__ = [
    "Measurement",
    "ReferenceCalibrationPoint",
    "TimeSeries",
    "to_finite_float",
    "DailyBatch",
    "DailySource",
    "WindowSource",
    "aggregate_daily_series",
    "day_windows",
    "DailyDataset",
    "read_daily_batch",
]
