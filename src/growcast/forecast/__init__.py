"""Forecasting models and the prediction facade.

This module provides:
- OLS trend line (linear.py)
- Environment-driven saturation growth curves (saturation.py)
- Damped seasonal forecaster (seasonal.py)
- Per-subject forecasting paths with per-metric isolation (facade.py)
"""

from growcast.forecast.results import (
    FitResult,
    ForecastDiagnostics,
    ForecastResult,
    MetricOutcome,
    ModelKind,
    SubjectForecast,
)
from growcast.forecast.linear import LinearTrendFitter
from growcast.forecast.saturation import SaturationGrowthFitter
from growcast.forecast.seasonal import SeasonalForecaster
from growcast.forecast.facade import PredictionFacade, build_facade

__all__ = [
    "FitResult",
    "ForecastDiagnostics",
    "ForecastResult",
    "MetricOutcome",
    "ModelKind",
    "SubjectForecast",
    "LinearTrendFitter",
    "SaturationGrowthFitter",
    "SeasonalForecaster",
    "PredictionFacade",
    "build_facade",
]
