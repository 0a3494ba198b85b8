"""Tests for the OLS trend line."""

import pytest

from growcast.core.errors import DegenerateInputError
from growcast.forecast.linear import LinearTrendFitter, r_squared


class TestLinearTrendFitter:
    """Tests for fitting and extrapolating a trend line."""

    def test_exact_line_is_recovered(self):
        """20 daily points growing 0.5/day from 10."""
        x = list(range(20))
        y = [10 + 0.5 * d for d in x]

        fit = LinearTrendFitter.fit(x, y)

        slope, intercept = fit.parameters
        assert slope == pytest.approx(0.5)
        assert intercept == pytest.approx(10.0)
        assert fit.r_squared == pytest.approx(1.0)
        assert fit.error == pytest.approx(0.0, abs=1e-12)

    def test_extrapolates_over_day_indices(self):
        x = list(range(20))
        fit = LinearTrendFitter.fit(x, [10 + 0.5 * d for d in x])

        # Last day is 19; five days ahead is day 24
        assert LinearTrendFitter.predict(fit.parameters, 19 + 5) == pytest.approx(22.0)

    def test_constant_values_have_zero_r_squared(self):
        fit = LinearTrendFitter.fit([0, 1, 2, 3], [5.0, 5.0, 5.0, 5.0])
        assert fit.parameters[0] == pytest.approx(0.0)
        assert fit.r_squared == 0.0

    def test_noisy_data_r_squared_in_range(self):
        fit = LinearTrendFitter.fit([0, 1, 2, 3, 4, 5], [1.0, 3.0, 2.0, 5.0, 4.0, 6.0])
        assert 0.0 < fit.r_squared < 1.0

    def test_constant_x_is_degenerate(self):
        with pytest.raises(DegenerateInputError):
            LinearTrendFitter.fit([3, 3, 3], [1.0, 2.0, 3.0])

    def test_single_point_is_degenerate(self):
        with pytest.raises(DegenerateInputError):
            LinearTrendFitter.fit([0], [1.0])

    def test_mismatched_lengths(self):
        with pytest.raises(DegenerateInputError):
            LinearTrendFitter.fit([0, 1, 2], [1.0, 2.0])


class TestRSquared:
    """Tests for the clamped coefficient of determination."""

    def test_worse_than_mean_clamps_to_zero(self):
        assert r_squared([1.0, 2.0, 3.0], [3.0, 2.0, 1.0]) == 0.0

    def test_empty(self):
        assert r_squared([], []) == 0.0
