"""Tests for the environment-driven saturation growth model."""

import math

import numpy as np
import pytest

from growcast.core.errors import InsufficientDataError
from growcast.data.series import Measurement, TimeSeries
from growcast.forecast.saturation import (
    ASYMPTOTE_MIN,
    GROWTH_PROFILES,
    ITERATIONS_PER_RESTART,
    ORIGIN_MAX,
    ORIGIN_MIN,
    REFERENCE_WEIGHT,
    RESTART_SPREAD,
    RESTARTS,
    SATURATED_FRACTION,
    CovariateEffect,
    SaturationGrowthFitter,
    growth_curve,
    growth_rate,
    _trial_error,
    optimize_growth_curve,
)
from growcast.subjects import LETTUCE, TROUT, Metric

TROUT_ENVIRONMENT = {"temperature": 15.0, "conductivity": 550.0, "ph": 7.5, "oxygen": 8.0}
LENGTH = GROWTH_PROFILES[Metric.LENGTH]


class RecordingGenerator:
    """Stands in for a numpy Generator: fixed draws, every call recorded."""

    def __init__(self, factor=1.5):
        self.factor = factor
        self.uniform_calls = []
        self.random_calls = 0

    def uniform(self, low, high):
        self.uniform_calls.append((low, high))
        return self.factor

    def random(self):
        self.random_calls += 1
        return 0.5  # zero step, so every trial sits at the current point


def trout_series(days=20):
    """Trout length following a saturation curve with mild temperature swings."""
    return TimeSeries(
        Measurement(
            day_index=day,
            value=60.0 * (1 - math.exp(-0.04 * (day + 3))),
            covariates={"temperature": 14.0 + (day % 3)},
        )
        for day in range(days)
    )


class TestCovariateEffect:
    """Tests for the normalized effect ramp."""

    def test_zero_below_low(self):
        assert CovariateEffect("temperature", 10.0, 10.0).effect(5.0) == 0.0

    def test_linear_above_low(self):
        assert CovariateEffect("temperature", 10.0, 10.0).effect(15.0) == 0.5


class TestGrowthRate:
    """Tests for the environment-weighted rate."""

    def test_clamped_to_band(self):
        huge = (60.0, 0.0, 10.0, 10.0, 10.0, 10.0, 10.0)
        tiny = (60.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)
        assert growth_rate(huge, TROUT_ENVIRONMENT, LENGTH) == LENGTH.k_max
        assert growth_rate(tiny, TROUT_ENVIRONMENT, LENGTH) == LENGTH.k_min

    def test_negative_coefficients_count_by_magnitude(self):
        positive = (60.0, 0.0, 0.03, 0.006, 0.002, 0.00008, 0.008)
        negative = (60.0, 0.0, -0.03, -0.006, -0.002, -0.00008, -0.008)
        assert growth_rate(positive, TROUT_ENVIRONMENT, LENGTH) == growth_rate(negative, TROUT_ENVIRONMENT, LENGTH)

    def test_warmer_water_grows_faster(self):
        params = LENGTH.initial_parameters(30.0)
        cold = growth_rate(params, dict(TROUT_ENVIRONMENT, temperature=10.0), LENGTH)
        warm = growth_rate(params, dict(TROUT_ENVIRONMENT, temperature=18.0), LENGTH)
        assert warm > cold


class TestGrowthCurve:
    """Tests for curve evaluation and guards."""

    def test_bounded_by_floor_and_asymptote(self):
        params = LENGTH.initial_parameters(30.0)
        for t in (-10, 0, 5, 50, 200, 1000):
            value = growth_curve(t, params, TROUT_ENVIRONMENT, LENGTH)
            assert LENGTH.floor <= value <= params[0]

    def test_far_future_saturates(self):
        params = LENGTH.initial_parameters(30.0)
        value = growth_curve(100_000, params, TROUT_ENVIRONMENT, LENGTH)
        assert value == pytest.approx(params[0] * SATURATED_FRACTION)

    def test_far_past_is_floor(self):
        params = LENGTH.initial_parameters(30.0)
        assert growth_curve(-100_000, params, TROUT_ENVIRONMENT, LENGTH) == LENGTH.floor

    def test_increasing_over_time(self):
        params = LENGTH.initial_parameters(30.0)
        values = [growth_curve(t, params, TROUT_ENVIRONMENT, LENGTH) for t in range(0, 100, 10)]
        assert values == sorted(values)


class TestInitialParameters:
    """Tests for the search starting point."""

    def test_trout_uses_reference_sizes(self):
        fitter = SaturationGrowthFitter(TROUT, Metric.LENGTH, rng=np.random.default_rng(0))
        params = fitter.initial_parameters(TimeSeries.from_values([10.0, 12.0]))
        # max(1.4 × 12, 1.2 × 52.5, 65)
        assert params[0] == 65.0
        assert params[1] == -3.0
        assert len(params) == 2 + 1 + 4

    def test_lettuce_scales_with_observations(self):
        fitter = SaturationGrowthFitter(LETTUCE, Metric.HEIGHT, rng=np.random.default_rng(0))
        params = fitter.initial_parameters(TimeSeries.from_values([10.0, 40.0]))
        assert params[0] == pytest.approx(60.0)


class TestOptimizeGrowthCurve:
    """Tests for the randomized local search."""

    def test_improves_on_initial_guess(self, rng):
        observations = [(float(t), 20.0 + 2.0 * t, {}) for t in range(1, 15)]

        def curve(t, params, covariates):
            return params[0] + params[1] * t

        initial = (30.0, 5.0)
        initial_error = sum((v - curve(t, initial, c)) ** 2 for t, v, c in observations) / len(observations)

        fit = optimize_growth_curve(observations, curve, initial, rng)

        assert fit.error < initial_error

    def test_respects_parameter_clamps(self, rng):
        fit = SaturationGrowthFitter(TROUT, Metric.LENGTH, rng=rng).fit(trout_series())
        assert fit.parameters[0] >= ASYMPTOTE_MIN
        assert ORIGIN_MIN <= fit.parameters[1] <= ORIGIN_MAX

    def test_restarts_scale_the_initial_guess(self):
        seen = []

        def curve(t, params, covariates):
            seen.append(tuple(params))
            return params[0]

        generator = RecordingGenerator(factor=1.5)
        optimize_growth_curve([(1.0, 25.0, {})], curve, (20.0, 2.0), generator)

        assert generator.uniform_calls == [RESTART_SPREAD] * ((RESTARTS - 1) * 2)
        assert generator.random_calls == RESTARTS * ITERATIONS_PER_RESTART * 2
        assert set(seen) == {(20.0, 2.0), (30.0, 3.0)}

    def test_non_finite_trials_are_skipped(self, rng):
        """Trials whose curve blows up at any point never become the best fit."""
        observations = [(float(t), 60.0, {}) for t in range(6)]

        def curve(t, params, covariates):
            if params[0] > 40.0 and t == 3.0:
                return math.nan
            return params[0]

        fit = optimize_growth_curve(observations, curve, (38.0, 0.0), rng)

        assert fit.parameters[0] <= 40.0
        assert math.isfinite(fit.error)


class TestTrialError:
    """Tests for scoring a single trial."""

    @staticmethod
    def constant(t, params, covariates):
        return params[0]

    def test_reference_points_weigh_more(self):
        error = _trial_error((10.0,), self.constant, [(0.0, 10.0, {})], [(30.0, 12.0)], {})
        assert REFERENCE_WEIGHT == 3.0
        assert error == pytest.approx((0.0 + 3.0 * 4.0) / 2)

    def test_observed_residuals_count_once(self):
        error = _trial_error((10.0,), self.constant, [(0.0, 12.0, {})], [], {})
        assert error == pytest.approx(4.0)

    def test_non_finite_prediction_rejects_trial(self):
        error = _trial_error((math.inf,), self.constant, [(0.0, 12.0, {})], [], {})
        assert error is None

    def test_nothing_scored(self):
        assert _trial_error((10.0,), self.constant, [(0.0, 0.0, {})], [], {}) is None


class TestSaturationGrowthFitter:
    """Tests for fitting and predicting with the saturation model."""

    def test_same_seed_same_fit(self):
        series = trout_series()
        first = SaturationGrowthFitter(TROUT, Metric.LENGTH, rng=np.random.default_rng(7)).fit(series)
        second = SaturationGrowthFitter(TROUT, Metric.LENGTH, rng=np.random.default_rng(7)).fit(series)
        assert first == second

    def test_fit_quality(self, rng):
        fit = SaturationGrowthFitter(TROUT, Metric.LENGTH, rng=rng).fit(trout_series())
        assert 0.0 <= fit.r_squared <= 1.0
        assert math.isfinite(fit.error)

    def test_too_few_points(self, rng):
        with pytest.raises(InsufficientDataError) as exc_info:
            SaturationGrowthFitter(TROUT, Metric.LENGTH, rng=rng).fit(trout_series(days=9))
        assert exc_info.value.count == 9
        assert exc_info.value.minimum == 10

    def test_predictions_are_finite_and_bounded(self, rng):
        fitter = SaturationGrowthFitter(LETTUCE, Metric.LEAF_AREA, rng=rng)
        series = TimeSeries.from_values([40.0 + 6.0 * d for d in range(15)])
        fit = fitter.fit(series)

        for day in range(15, 400, 25):
            value = fitter.predict(fit.parameters, day, {"temperature": 24.0})
            assert math.isfinite(value)
            assert GROWTH_PROFILES[Metric.LEAF_AREA].floor <= value <= fit.parameters[0]

    def test_fitted_values_bounded_at_observed_days(self, rng):
        fitter = SaturationGrowthFitter(TROUT, Metric.LENGTH, rng=rng)
        series = trout_series()
        fit = fitter.fit(series)

        for m in series:
            value = fitter.predict(fit.parameters, m.day_index, m.covariates)
            assert math.isfinite(value)
            assert LENGTH.floor <= value <= fit.parameters[0]

    def test_missing_covariates_use_neutral_profile(self, rng):
        fitter = SaturationGrowthFitter(TROUT, Metric.LENGTH, rng=rng)
        params = LENGTH.initial_parameters(30.0)
        assert fitter.predict(params, 30) == growth_curve(30, params, TROUT_ENVIRONMENT, LENGTH)
