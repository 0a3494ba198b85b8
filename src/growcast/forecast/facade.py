"""
Prediction facade - the entry point the display layer calls.

Three forecasting paths, each answering for every metric a subject tracks:

- regression: the trailing month is aggregated from day-windowed requests
  and an OLS trend is extrapolated over day indices.
- growth: the full daily history feeds both the OLS trend and the
  environment-driven saturation curve.
- seasonal: the full daily history feeds the damped seasonal forecaster.

Metrics are isolated from one another. A metric that lacks data, fails to
fit, or times out is reported with its error message while the other
metrics of the same subject still get their forecasts. Invalid horizons are
caller errors and raise immediately.
"""

import asyncio
import logging
import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from growcast.core.client import HttpDailySource, HttpWindowSource
from growcast.core.config import Settings, settings
from growcast.core.errors import GrowcastError
from growcast.data.aggregator import aggregate_daily_series
from growcast.data.daily import DailyDataset, read_daily_batch
from growcast.data.series import TimeSeries
from growcast.data.sources import DailySource, WindowSource
from growcast.data.synthetic import SyntheticDailySource, SyntheticWindowSource
from growcast.forecast.linear import LinearTrendFitter
from growcast.forecast.results import (
    ForecastDiagnostics,
    ForecastResult,
    MetricOutcome,
    ModelKind,
    SubjectForecast,
)
from growcast.forecast.saturation import SaturationGrowthFitter
from growcast.forecast.seasonal import SeasonalForecaster
from growcast.subjects import Metric, Subject, SubjectProfile, get_profile

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants
# -----------------------------------------------------------------------------

MAX_HORIZON_DAYS = 1000

# Minimum valid days per path
REGRESSION_MIN_POINTS = 5
GROWTH_MIN_POINTS = 10
SEASONAL_MIN_POINTS = 14

LONG_HORIZON_DAYS = 100  # beyond this, trend and curve predictions are capped


@dataclass(frozen=True)
class HorizonCap:
    """Largest believable multiple of the current size after ``horizon`` days."""

    rate: float  # per day
    ceiling: float | None = None

    def limit(self, current: float, horizon_days: int) -> float:
        factor = 1 + horizon_days * self.rate
        if self.ceiling is not None:
            factor = min(self.ceiling, factor)
        return current * factor


HORIZON_CAPS: dict[Metric, HorizonCap] = {
    Metric.LENGTH: HorizonCap(rate=0.001),
    Metric.HEIGHT: HorizonCap(rate=0.002, ceiling=3.0),
    Metric.LEAF_AREA: HorizonCap(rate=0.003, ceiling=5.0),
}

WindowSourceFactory = Callable[[Subject], WindowSource]
DailySourceFactory = Callable[[Subject], DailySource]


def validate_horizon(horizon_days: int) -> int:
    """
    Check a forecast horizon.

    Raises:
        ValueError: If the horizon is not an integer between 1 and 1000
    """
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int):
        raise ValueError(f"Horizon must be a whole number of days, got {horizon_days!r}")
    if not 1 <= horizon_days <= MAX_HORIZON_DAYS:
        raise ValueError(f"Horizon must be between 1 and {MAX_HORIZON_DAYS} days, got {horizon_days}")
    return horizon_days


def build_result(
    profile: SubjectProfile,
    metric: Metric,
    model: ModelKind,
    series: TimeSeries,
    raw_predictions: Iterable[float],
    confidence: float,
    diagnostics: ForecastDiagnostics,
    horizon_days: int,
    cap_long_horizon: bool = True,
) -> ForecastResult:
    """
    Apply the shared output rules to one model's raw daily predictions.

    Non-finite predictions fall back to the current value and long horizons
    are capped per metric. Daily predictions otherwise keep the model's shape
    (dips included); only the headline prediction is held at or above the
    current value.
    """
    current = series.last
    limit = math.inf
    if cap_long_horizon and horizon_days > LONG_HORIZON_DAYS:
        limit = HORIZON_CAPS[metric].limit(current.value, horizon_days)

    daily = []
    for raw in raw_predictions:
        value = raw if math.isfinite(raw) else current.value
        daily.append(min(value, limit))

    predicted = max(daily[-1], current.value)
    return ForecastResult(
        subject=profile.subject.value,
        metric=metric.value,
        model=model,
        horizon_days=horizon_days,
        current_day=current.day_index,
        current_value=current.value,
        predicted_value=predicted,
        expected_growth=max(0.0, predicted - current.value),
        daily_predictions=tuple(daily),
        confidence=max(0.0, min(1.0, confidence)),
        diagnostics=diagnostics,
    )


def _future_days(series: TimeSeries, horizon_days: int) -> range:
    last_day = series.last.day_index
    return range(last_day + 1, last_day + horizon_days + 1)


def _failed_outcome(profile: SubjectProfile, metric: Metric, error: BaseException) -> MetricOutcome:
    """Record an isolated failure; anything that is not a data or timeout problem propagates."""
    if not isinstance(error, (GrowcastError, TimeoutError)):
        raise error
    log.warning("%s %s forecast unavailable: %s", profile.subject.value, metric.value, error)
    return MetricOutcome(
        metric=metric.value,
        error=str(error) or type(error).__name__,
        error_type=type(error).__name__,
    )


# =============================================================================
# Facade
# =============================================================================


class PredictionFacade:
    """Fetches measurements and runs the forecasting models for each subject."""

    def __init__(
        self,
        window_source_factory: WindowSourceFactory | None = None,
        daily_source_factory: DailySourceFactory | None = None,
        seed: int | None = None,
        config: Settings | None = None,
    ):
        self.config = config or settings
        self.window_source_factory = window_source_factory or (
            lambda subject: HttpWindowSource(
                subject,
                timeout=self.config.window_timeout_seconds,
                base_url=self.config.api_base_url,
            )
        )
        self.daily_source_factory = daily_source_factory or (
            lambda subject: HttpDailySource(
                subject,
                timeout=self.config.daily_timeout_seconds,
                base_url=self.config.api_base_url,
            )
        )
        # Root of every fit's random stream; None draws fresh entropy once per facade
        self.seed_sequence = np.random.SeedSequence(seed if seed is not None else self.config.random_seed)

    def fit_rng(self, subject: Subject, metric: Metric) -> np.random.Generator:
        """Generator for one fit, keyed by subject and metric.

        Draws never depend on how many fits the facade has already served, so
        a given seed and history always give the same curve.
        """
        key = (list(Subject).index(subject), list(Metric).index(metric))
        return np.random.default_rng(np.random.SeedSequence(self.seed_sequence.entropy, spawn_key=key))

    # -------------------------------------------------------------------------
    # Models
    # -------------------------------------------------------------------------

    def _linear(self, profile: SubjectProfile, metric: Metric, series: TimeSeries, horizon_days: int) -> ForecastResult:
        fit = LinearTrendFitter.fit(series.day_indices, series.values)
        predictions = [LinearTrendFitter.predict(fit.parameters, day) for day in _future_days(series, horizon_days)]
        return build_result(
            profile,
            metric,
            ModelKind.LINEAR,
            series,
            predictions,
            confidence=fit.r_squared,
            diagnostics=ForecastDiagnostics(
                points_used=len(series),
                r_squared=fit.r_squared,
                fit_error=fit.error,
                parameters=fit.parameters,
            ),
            horizon_days=horizon_days,
        )

    def _saturation(
        self,
        profile: SubjectProfile,
        metric: Metric,
        series: TimeSeries,
        horizon_days: int,
        environment: dict[str, float],
    ) -> ForecastResult:
        fitter = SaturationGrowthFitter(
            profile,
            metric,
            rng=self.fit_rng(profile.subject, metric),
            min_points=GROWTH_MIN_POINTS,
        )
        fit = fitter.fit(series)
        predictions = [fitter.predict(fit.parameters, day, environment) for day in _future_days(series, horizon_days)]
        return build_result(
            profile,
            metric,
            ModelKind.SATURATION,
            series,
            predictions,
            confidence=fit.r_squared,
            diagnostics=ForecastDiagnostics(
                points_used=len(series),
                r_squared=fit.r_squared,
                fit_error=fit.error,
                parameters=fit.parameters,
            ),
            horizon_days=horizon_days,
        )

    def _seasonal(
        self, profile: SubjectProfile, metric: Metric, series: TimeSeries, horizon_days: int
    ) -> ForecastResult:
        forecast = SeasonalForecaster(series.values, self.config.seasonal_period).predict(horizon_days)
        # The forecaster clamps into its own band around the last value
        return build_result(
            profile,
            metric,
            ModelKind.SEASONAL,
            series,
            forecast.predictions,
            confidence=forecast.confidence,
            diagnostics=forecast.diagnostics,
            horizon_days=horizon_days,
            cap_long_horizon=False,
        )

    def _run_models(
        self,
        profile: SubjectProfile,
        metric: Metric,
        series: TimeSeries,
        horizon_days: int,
        models: Sequence[ModelKind],
        min_points: int,
        environment: dict[str, float],
    ) -> MetricOutcome:
        try:
            series.require(min_points)
            forecasts = {}
            for model in models:
                if model is ModelKind.LINEAR:
                    forecasts[model] = self._linear(profile, metric, series, horizon_days)
                elif model is ModelKind.SATURATION:
                    forecasts[model] = self._saturation(profile, metric, series, horizon_days, environment)
                else:
                    forecasts[model] = self._seasonal(profile, metric, series, horizon_days)
        except (GrowcastError, TimeoutError) as e:
            return _failed_outcome(profile, metric, e)
        return MetricOutcome(metric=metric.value, forecasts=forecasts)

    # -------------------------------------------------------------------------
    # Data acquisition
    # -------------------------------------------------------------------------

    async def _windowed_series(self, profile: SubjectProfile) -> list[TimeSeries | BaseException]:
        source = self.window_source_factory(profile.subject)
        return await asyncio.gather(
            *[
                aggregate_daily_series(
                    source,
                    profile,
                    metric,
                    days=self.config.trailing_days,
                    timeout=self.config.window_timeout_seconds,
                    max_parallel=self.config.max_parallel_requests,
                )
                for metric in profile.metrics
            ],
            return_exceptions=True,
        )

    async def _daily_dataset(self, profile: SubjectProfile) -> DailyDataset:
        source = self.daily_source_factory(profile.subject)
        batch = await asyncio.wait_for(source.get_daily_batch(), timeout=self.config.daily_timeout_seconds)
        return read_daily_batch(batch, profile)

    async def _daily_path(
        self,
        subject: Subject | str,
        horizon_days: int,
        models: Sequence[ModelKind],
        min_points: int,
    ) -> SubjectForecast:
        horizon_days = validate_horizon(horizon_days)
        profile = get_profile(subject)

        try:
            dataset = await self._daily_dataset(profile)
        except (GrowcastError, TimeoutError) as e:
            outcomes = {metric.value: _failed_outcome(profile, metric, e) for metric in profile.metrics}
            return SubjectForecast(
                subject=profile.subject.value,
                horizon_days=horizon_days,
                outcomes=outcomes,
                environment=profile.neutral_covariates,
            )

        outcomes = {
            metric.value: self._run_models(
                profile,
                metric,
                dataset.series[metric],
                horizon_days,
                models,
                min_points,
                dataset.latest_covariates,
            )
            for metric in profile.metrics
        }
        return SubjectForecast(
            subject=profile.subject.value,
            horizon_days=horizon_days,
            outcomes=outcomes,
            environment=dict(dataset.latest_covariates),
            estimated_age_days=dataset.latest_day,
            records_used=dataset.records_received,
            metadata=dataset.metadata,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def regression_forecast(self, subject: Subject | str, horizon_days: int) -> SubjectForecast:
        """
        Linear trend forecast over the trailing month of windowed data.

        Args:
            subject: Subject to forecast ("trout" or "lettuce")
            horizon_days: Days past the last observation (1-1000)

        Returns:
            SubjectForecast with one linear forecast (or an error) per metric

        Raises:
            ValueError: If the horizon is out of range
        """
        horizon_days = validate_horizon(horizon_days)
        profile = get_profile(subject)
        log.info("regression forecast: %s, %d days", profile.subject.value, horizon_days)

        acquired = await self._windowed_series(profile)

        outcomes: dict[str, MetricOutcome] = {}
        usable: list[TimeSeries] = []
        for metric, series in zip(profile.metrics, acquired):
            if isinstance(series, BaseException):
                outcomes[metric.value] = _failed_outcome(profile, metric, series)
                continue
            if len(series):
                usable.append(series)
            outcomes[metric.value] = self._run_models(
                profile,
                metric,
                series,
                horizon_days,
                (ModelKind.LINEAR,),
                REGRESSION_MIN_POINTS,
                profile.neutral_covariates,
            )

        latest = max((s.last for s in usable), key=lambda m: m.day_index, default=None)
        environment = profile.neutral_covariates
        if latest is not None:
            environment.update(latest.covariates)

        return SubjectForecast(
            subject=profile.subject.value,
            horizon_days=horizon_days,
            outcomes=outcomes,
            environment=environment,
            estimated_age_days=latest.day_index if latest is not None else None,
            records_used=sum(len(s) for s in usable),
        )

    async def growth_forecast(self, subject: Subject | str, horizon_days: int) -> SubjectForecast:
        """
        Linear and saturation-curve forecasts over the full daily history.

        The saturation curve is evaluated with the most recent environment
        readings held constant over the horizon.

        Raises:
            ValueError: If the horizon is out of range
        """
        log.info("growth forecast: %s, %s days", subject, horizon_days)
        return await self._daily_path(
            subject,
            horizon_days,
            (ModelKind.LINEAR, ModelKind.SATURATION),
            GROWTH_MIN_POINTS,
        )

    async def seasonal_forecast(self, subject: Subject | str, horizon_days: int) -> SubjectForecast:
        """Seasonal forecast over the full daily history (at least 14 days per metric)."""
        log.info("seasonal forecast: %s, %s days", subject, horizon_days)
        return await self._daily_path(subject, horizon_days, (ModelKind.SEASONAL,), SEASONAL_MIN_POINTS)


def build_facade(config: Settings | None = None, seed: int | None = None) -> PredictionFacade:
    """Facade wired to the sensor API, or to synthetic sources when ``use_mock_data`` is set."""
    config = config or settings
    if config.use_mock_data:
        log.info("using synthetic measurement sources")
        return PredictionFacade(
            window_source_factory=lambda subject: SyntheticWindowSource(subject, seed=config.random_seed),
            daily_source_factory=lambda subject: SyntheticDailySource(subject, seed=config.random_seed),
            seed=seed,
            config=config,
        )
    return PredictionFacade(seed=seed, config=config)
