"""Ordinary least-squares trend line."""

from collections.abc import Sequence

from growcast.core.errors import DegenerateInputError
from growcast.forecast.results import FitResult, ModelParameters

# |n·Σx² − (Σx)²| below this means x carries no spread
DEGENERATE_TOLERANCE = 1e-10


def r_squared(observed: Sequence[float], predicted: Sequence[float]) -> float:
    """Coefficient of determination, clamped to [0, 1] (0 for constant input)."""
    n = len(observed)
    if n == 0:
        return 0.0
    mean = sum(observed) / n
    ss_tot = sum((y - mean) ** 2 for y in observed)
    if ss_tot <= 0:
        return 0.0
    ss_res = sum((y - p) ** 2 for y, p in zip(observed, predicted))
    return max(0.0, min(1.0, 1 - ss_res / ss_tot))


class LinearTrendFitter:
    """Fits ``y = slope·x + intercept``; parameters are ``(slope, intercept)``."""

    @staticmethod
    def fit(x: Sequence[float], y: Sequence[float]) -> FitResult:
        """
        Fit an OLS line.

        Args:
            x: Day indices (or any abscissa)
            y: Observed values

        Returns:
            FitResult with parameters (slope, intercept), R² and mean squared error

        Raises:
            DegenerateInputError: On mismatched lengths, fewer than 2 points,
                or x with no spread
        """
        if len(x) != len(y):
            raise DegenerateInputError(f"x and y differ in length ({len(x)} vs {len(y)})")
        n = len(x)
        if n < 2:
            raise DegenerateInputError(f"At least 2 points required for a trend line, got {n}")

        sum_x = sum(x)
        sum_y = sum(y)
        sum_xy = sum(xi * yi for xi, yi in zip(x, y))
        sum_xx = sum(xi * xi for xi in x)

        denominator = n * sum_xx - sum_x * sum_x
        if abs(denominator) < DEGENERATE_TOLERANCE:
            raise DegenerateInputError("x values are constant; regression is undefined")

        slope = (n * sum_xy - sum_x * sum_y) / denominator
        intercept = (sum_y - slope * sum_x) / n

        predicted = [slope * xi + intercept for xi in x]
        mse = sum((yi - pi) ** 2 for yi, pi in zip(y, predicted)) / n

        return FitResult(
            parameters=(slope, intercept),
            r_squared=r_squared(y, predicted),
            error=mse,
        )

    @staticmethod
    def predict(params: ModelParameters, x_future: float) -> float:
        slope, intercept = params
        return slope * x_future + intercept
