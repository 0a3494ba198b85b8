"""
Simplified seasonal ARIMA-style forecaster.

This is not a maximum-likelihood SARIMA. It reproduces a fixed set of
heuristics so that forecasts are deterministic and stay near the data:

1. Diagnose: autocorrelation at the seasonal lag gives the seasonal strength;
   weak seasonality (< 0.3) marks the series as stationary.
2. Transform: regular and seasonal differencing are applied for the
   diagnostics only; forecasts are built from the original series.
3. Decompose: moving-average trend, OLS slope over the most recent points,
   per-phase seasonal offsets.
4. Forecast: trend + seasonal + AR + MA terms, each damped with the horizon,
   then clamped into a slowly widening band around the last observation.

The band and damping constants were tuned empirically on trout and lettuce
histories; recalibrate them before using the forecaster on other subjects.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

from growcast.core.errors import DegenerateInputError, InsufficientDataError
from growcast.forecast.linear import LinearTrendFitter
from growcast.forecast.results import ForecastDiagnostics

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

MIN_POINTS = 10  # absolute minimum; production callers require 14
MAX_STEPS = 1000
DEFAULT_PERIOD = 7  # weekly

STATIONARITY_THRESHOLD = 0.3  # seasonal strength below this = stationary

# Model orders
AR_ORDER = 1  # p
DIFFERENCING = 1  # d
MA_ORDER = 1  # q
SEASONAL_DIFFERENCING = 1  # D

TREND_WINDOW = 7  # moving-average window cap (also limited to n/3)
SLOPE_POINTS = 10  # recent points used for the trend slope

DAMPING_HORIZON = 200.0  # damping = exp(-step / 200)
AR_WEIGHT = 0.1
AR_DECAY = 0.1
AR_SCALE = 0.1
MA_SCALE = 0.05

# Clamp band relative to the last value: [max(0.8, 1 - 0.0005·i), min(2.5, 1 + 0.001·i)]
BAND_FLOOR = 0.8
BAND_CEILING = 2.5
BAND_LOWER_RATE = 0.0005
BAND_UPPER_RATE = 0.001

CONFIDENCE_MIN = 0.5
CONFIDENCE_MAX = 0.95


# -----------------------------------------------------------------------------
# Series Helpers
# -----------------------------------------------------------------------------


def difference(series: list[float], order: int = 1) -> list[float]:
    result = list(series)
    for _ in range(order):
        result = [result[j] - result[j - 1] for j in range(1, len(result))]
        if not result:
            break
    return result


def seasonal_difference(series: list[float], period: int, order: int = 1) -> list[float]:
    result = list(series)
    for _ in range(order):
        result = [result[j] - result[j - period] for j in range(period, len(result))]
        if not result:
            break
    return result


def moving_average(series: list[float], window: int) -> list[float]:
    """Trailing moving average; the window is clamped to ``[1, len(series)]``."""
    window = max(1, min(window, len(series)))
    return [sum(series[i - window + 1 : i + 1]) / window for i in range(window - 1, len(series))]


def autocorrelation(series: list[float], lag: int) -> float:
    n = len(series)
    if n <= lag:
        return 0.0
    mean = sum(series) / n
    denominator = sum((v - mean) ** 2 for v in series)
    if denominator == 0:
        return 0.0
    numerator = sum((series[i] - mean) * (series[i + lag] - mean) for i in range(n - lag))
    return numerator / denominator


def variance(series: list[float]) -> float:
    mean = sum(series) / len(series)
    return sum((v - mean) ** 2 for v in series) / len(series)


def band_limits(last_value: float, step: int) -> tuple[float, float]:
    """Lower and upper clamp for the forecast ``step`` days ahead."""
    lower = last_value * max(BAND_FLOOR, 1 - step * BAND_LOWER_RATE)
    upper = last_value * min(BAND_CEILING, 1 + step * BAND_UPPER_RATE)
    return lower, upper


# -----------------------------------------------------------------------------
# Forecaster
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class SeasonalForecast:
    predictions: tuple[float, ...]
    confidence: float
    diagnostics: ForecastDiagnostics


class SeasonalForecaster:
    """Damped trend/seasonal/AR/MA forecaster over one daily series.

    Holds no state between ``predict`` calls beyond the input values.
    """

    def __init__(self, values: Iterable[float], seasonal_period: int = DEFAULT_PERIOD):
        self.data = [float(v) for v in values if v is not None and math.isfinite(v) and v > 0]
        self.seasonal_period = max(1, int(seasonal_period))

    def detect_seasonality(self) -> tuple[bool, float]:
        """Return ``(is_stationary, seasonal_strength)``.

        A series shorter than two full periods can't be diagnosed and is
        reported as non-stationary with zero strength.
        """
        if len(self.data) < self.seasonal_period * 2:
            return False, 0.0
        strength = abs(autocorrelation(self.data, self.seasonal_period))
        return strength < STATIONARITY_THRESHOLD, strength

    def transform(self, is_stationary: bool, seasonal_strength: float) -> tuple[list[float], int, int]:
        """Apply the differencing the diagnostics call for.

        Returns:
            Tuple of (transformed series, regular differences, seasonal differences)
        """
        working = list(self.data)
        regular = 0
        seasonal = 0
        if not is_stationary and len(working) > 1:
            working = difference(working, DIFFERENCING)
            regular = DIFFERENCING
        if seasonal_strength > STATIONARITY_THRESHOLD and len(working) > self.seasonal_period:
            working = seasonal_difference(working, self.seasonal_period, SEASONAL_DIFFERENCING)
            seasonal = SEASONAL_DIFFERENCING
        return working, regular, seasonal

    def seasonal_component(self) -> list[float]:
        """Mean deviation from the overall mean for each phase of the period."""
        sums = [0.0] * self.seasonal_period
        counts = [0] * self.seasonal_period
        for i, value in enumerate(self.data):
            sums[i % self.seasonal_period] += value
            counts[i % self.seasonal_period] += 1

        overall_mean = sum(self.data) / len(self.data)
        return [s / c - overall_mean if c else 0.0 for s, c in zip(sums, counts)]

    def trend_slope(self) -> float:
        """OLS slope over the most recent points, against their position."""
        recent = self.data[-SLOPE_POINTS:]
        try:
            fit = LinearTrendFitter.fit(list(range(len(recent))), recent)
        except DegenerateInputError:
            return 0.0
        return fit.parameters[0]

    def ar_component(self) -> float:
        lags = self.data[-AR_ORDER:]
        total = 0.0
        for lag, value in enumerate(reversed(lags)):
            total += AR_WEIGHT * math.exp(-lag * AR_DECAY) * value
        return total * AR_SCALE

    def ma_component(self) -> float:
        window = self.data[-min(MA_ORDER, len(self.data)) :]
        return (sum(window) / len(window) - self.data[-1]) * MA_SCALE

    def confidence(self) -> float:
        last_value = self.data[-1]
        raw = 1 - variance(self.data) / (last_value * last_value + 1)
        return max(CONFIDENCE_MIN, min(CONFIDENCE_MAX, raw))

    def predict(self, steps: int) -> SeasonalForecast:
        """
        Forecast ``steps`` days past the end of the series.

        Args:
            steps: Horizon in days (1-1000)

        Returns:
            SeasonalForecast with exactly ``steps`` predictions, each within
            the clamp band around the last observed value

        Raises:
            InsufficientDataError: Fewer than 10 valid points
            ValueError: ``steps`` outside 1-1000
        """
        n = len(self.data)
        if n < MIN_POINTS:
            raise InsufficientDataError(n, MIN_POINTS, "points for a seasonal forecast")
        if not 1 <= steps <= MAX_STEPS:
            raise ValueError(f"steps must be between 1 and {MAX_STEPS}, got {steps}")

        is_stationary, strength = self.detect_seasonality()
        _, regular, seasonal_diffs = self.transform(is_stationary, strength)
        log.debug(
            "seasonal diagnostics: strength=%.3f stationary=%s d=%d D=%d",
            strength,
            is_stationary,
            regular,
            seasonal_diffs,
        )

        trend = moving_average(self.data, min(TREND_WINDOW, n // 3))
        last_value = self.data[-1]
        last_trend = trend[-1] if trend else last_value
        slope = self.trend_slope()
        seasonal = self.seasonal_component()
        ar = self.ar_component()
        ma = self.ma_component()

        predictions = []
        for i in range(1, steps + 1):
            damping = math.exp(-i / DAMPING_HORIZON)
            phase = (n + i - 1) % self.seasonal_period

            prediction = (
                last_trend + slope * i * damping + seasonal[phase] * strength + ar * damping + ma * damping
            )
            if not math.isfinite(prediction):
                prediction = last_value

            lower, upper = band_limits(last_value, i)
            predictions.append(min(max(prediction, lower), upper))

        confidence = self.confidence()
        log.info("seasonal forecast: %d steps, confidence %.1f%%", steps, confidence * 100)

        return SeasonalForecast(
            predictions=tuple(predictions),
            confidence=confidence,
            diagnostics=ForecastDiagnostics(
                points_used=n,
                seasonal_period=self.seasonal_period,
                seasonal_strength=strength,
                is_stationary=is_stationary,
                regular_differences=regular,
                seasonal_differences=seasonal_diffs,
            ),
        )
