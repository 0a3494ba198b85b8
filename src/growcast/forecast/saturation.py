"""
Environment-driven saturation growth curves.

Size approaches an asymptote following

    value(t) = A · (1 − exp(−k · (t − t0)))

which is the Von Bertalanffy form for fish length and an exponential
saturation for plant height and leaf area. The rate ``k`` is not a constant:
it is a weighted sum of normalized environmental effects

    k = |β0|·w + Σ |βi| · max(0, (covariate_i − low_i) / span_i)

clamped into a per-metric plausible band so curves can neither explode nor
freeze.

Parameters ``[A, t0, β0..βk]`` are estimated with a multi-restart randomized
local search. The loss surface has kinks (absolute values, clamps), so no
gradient is used. For trout, literature length-at-age points pull the fit
towards biologically plausible curves when on-farm history is short.

References:
-----------
[1] von Bertalanffy, L. (1938). "A quantitative theory of organic growth"
    Human Biology 10:181-213

[2] Dumas, A., France, J. & Bureau, D. (2010). "Modelling growth and body
    composition in fish nutrition: where have we been and where are we going?"
    Aquaculture Research 41:161-181
"""

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from growcast.core.config import settings
from growcast.data.series import TimeSeries
from growcast.forecast.results import FitResult, ModelParameters
from growcast.subjects import Metric, SubjectProfile

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Search Configuration
# -----------------------------------------------------------------------------

RESTARTS = 5
ITERATIONS_PER_RESTART = 150
STEP_SCALE = 0.08  # per-parameter step, relative to |param|, cooled linearly to 0
RESTART_SPREAD = (0.3, 1.7)  # restarts scale each initial parameter by U[0.3, 1.7]
ZERO_PARAM_SCALE = 0.1  # step base for a parameter sitting at exactly 0

ASYMPTOTE_MIN = 15.0  # cm / cm² - smallest believable adult size
ORIGIN_MIN = -15.0  # days
ORIGIN_MAX = 15.0  # days

REFERENCE_WEIGHT = 3.0  # literature points count 3x against observed ones

EXPONENT_LIMIT = 50.0  # beyond this exp() is treated as saturated / not started
SATURATED_FRACTION = 0.999

MIN_POINTS = 10


# -----------------------------------------------------------------------------
# Growth Profiles
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CovariateEffect:
    """Linear ramp from ``low`` upward, in units of ``span``; zero below ``low``."""

    name: str
    low: float
    span: float

    def effect(self, value: float) -> float:
        return max(0.0, (value - self.low) / self.span)


@dataclass(frozen=True)
class GrowthProfile:
    """Curve shape, guard rails and starting point for one metric."""

    metric: Metric
    effects: tuple[CovariateEffect, ...]
    k_min: float
    k_max: float
    floor: float  # smallest value the curve reports
    asymptote_factor: float  # initial A = factor × largest observation...
    asymptote_minimum: float  # ...but never below this
    origin_guess: float
    rate_guesses: tuple[float, ...]  # β0 then one per effect
    base_rate_weight: float = 1.0
    reference_asymptote_factor: float = 1.2  # × largest literature value

    def initial_parameters(self, observed_max: float, reference_max: float = 0.0) -> ModelParameters:
        asymptote = max(
            observed_max * self.asymptote_factor,
            reference_max * self.reference_asymptote_factor,
            self.asymptote_minimum,
        )
        return (asymptote, self.origin_guess, *self.rate_guesses)


GROWTH_PROFILES: dict[Metric, GrowthProfile] = {
    # Rainbow trout: optimal water 10-20°C, O₂ > 6 mg/L, 200-700 µS/cm, pH 6.5-8.5
    Metric.LENGTH: GrowthProfile(
        metric=Metric.LENGTH,
        effects=(
            CovariateEffect("temperature", 10.0, 10.0),
            CovariateEffect("oxygen", 0.0, 10.0),
            CovariateEffect("conductivity", 200.0, 500.0),
            CovariateEffect("ph", 6.5, 2.0),
        ),
        k_min=0.002,
        k_max=0.15,
        floor=0.5,
        asymptote_factor=1.4,
        asymptote_minimum=65.0,
        origin_guess=-3.0,
        rate_guesses=(0.03, 0.006, 0.002, 0.00008, 0.008),
    ),
    # Lettuce height: optimal 15-30°C, 40-80 % RH, pH 5.5-8.0
    Metric.HEIGHT: GrowthProfile(
        metric=Metric.HEIGHT,
        effects=(
            CovariateEffect("temperature", 15.0, 15.0),
            CovariateEffect("humidity", 40.0, 40.0),
            CovariateEffect("ph", 5.5, 2.5),
        ),
        k_min=0.005,
        k_max=0.25,
        floor=0.2,
        asymptote_factor=1.5,
        asymptote_minimum=30.0,
        origin_guess=-2.0,
        rate_guesses=(0.06, 0.004, 0.002, 0.012),
    ),
    # Leaf area expands faster than height early on
    Metric.LEAF_AREA: GrowthProfile(
        metric=Metric.LEAF_AREA,
        effects=(
            CovariateEffect("temperature", 15.0, 15.0),
            CovariateEffect("humidity", 40.0, 40.0),
            CovariateEffect("ph", 5.5, 2.5),
        ),
        k_min=0.008,
        k_max=0.35,
        floor=0.5,
        asymptote_factor=1.6,
        asymptote_minimum=250.0,
        origin_guess=-2.0,
        rate_guesses=(0.08, 0.006, 0.003, 0.015),
        base_rate_weight=1.3,
    ),
}


# -----------------------------------------------------------------------------
# Curve
# -----------------------------------------------------------------------------


def growth_rate(params: ModelParameters, covariates: Mapping[str, float], profile: GrowthProfile) -> float:
    """Environment-weighted growth rate k, clamped into the profile's band."""
    rates = params[2:]
    k = abs(rates[0]) * profile.base_rate_weight
    for beta, effect in zip(rates[1:], profile.effects):
        k += abs(beta) * effect.effect(covariates.get(effect.name, 0.0))
    return max(profile.k_min, min(profile.k_max, k))


def growth_curve(
    t: float,
    params: ModelParameters,
    covariates: Mapping[str, float],
    profile: GrowthProfile,
) -> float:
    """
    Evaluate the saturation curve at day ``t``.

    Returns:
        Value in ``[profile.floor, A]``
    """
    asymptote, origin = params[0], params[1]
    k = growth_rate(params, covariates, profile)
    exponent = -k * (t - origin)

    if exponent < -EXPONENT_LIMIT:
        return asymptote * SATURATED_FRACTION
    if exponent > EXPONENT_LIMIT:
        return profile.floor

    value = asymptote * (1 - math.exp(exponent))
    return max(profile.floor, min(asymptote, value))


# -----------------------------------------------------------------------------
# Search
# -----------------------------------------------------------------------------

Curve = Callable[[float, ModelParameters, Mapping[str, float]], float]
Observation = tuple[float, float, Mapping[str, float]]  # (t, observed value, covariates)


def _trial_error(
    trial: ModelParameters,
    curve: Curve,
    observations: Sequence[Observation],
    references: Sequence[tuple[float, float]],
    reference_covariates: Mapping[str, float],
) -> float | None:
    """Weighted mean squared error of a trial, or None if it can't be scored."""
    total = 0.0
    count = 0

    for t, observed, covariates in observations:
        predicted = curve(t, trial, covariates)
        if not math.isfinite(predicted):
            return None
        if predicted > 0 and observed > 0:
            total += (observed - predicted) ** 2
            count += 1

    for t, expected in references:
        predicted = curve(t, trial, reference_covariates)
        if not math.isfinite(predicted):
            return None
        if predicted > 0:
            total += REFERENCE_WEIGHT * (expected - predicted) ** 2
            count += 1

    if count == 0:
        return None
    return total / count


def _observed_r_squared(params: ModelParameters, curve: Curve, observations: Sequence[Observation]) -> float:
    valid = [(t, v, c) for t, v, c in observations if v > 0]
    if not valid:
        return 0.0
    mean = sum(v for _, v, _ in valid) / len(valid)

    ss_tot = 0.0
    ss_res = 0.0
    for t, observed, covariates in valid:
        predicted = curve(t, params, covariates)
        if math.isfinite(predicted) and predicted > 0:
            ss_tot += (observed - mean) ** 2
            ss_res += (observed - predicted) ** 2

    if ss_tot <= 0:
        return 0.0
    return max(0.0, min(1.0, 1 - ss_res / ss_tot))


def optimize_growth_curve(
    observations: Sequence[Observation],
    curve: Curve,
    initial: ModelParameters,
    rng: np.random.Generator,
    references: Sequence[tuple[float, float]] = (),
    reference_covariates: Mapping[str, float] | None = None,
) -> FitResult:
    """
    Multi-restart randomized local search over curve parameters.

    Restart 0 starts from ``initial``; later restarts scale each initial
    parameter by a uniform factor. Every iteration perturbs all parameters
    with signed uniform noise whose size cools linearly to zero. The walk
    only moves when a trial beats the best error seen so far, across all
    restarts.

    Args:
        observations: (t, observed value, covariates) triples
        curve: ``curve(t, params, covariates) -> value``
        initial: Starting parameters ``[A, t0, β0, ...]``
        rng: Random source; identical seeds give identical fits
        references: Optional (t, expected value) literature anchors
        reference_covariates: Covariates used to evaluate the anchors

    Returns:
        FitResult whose R² is computed against observed points only
    """
    reference_covariates = reference_covariates or {}
    best = tuple(float(p) for p in initial)
    best_error = math.inf

    for restart in range(RESTARTS):
        if restart == 0:
            current = list(best)
        else:
            current = [p * float(rng.uniform(*RESTART_SPREAD)) for p in initial]

        for iteration in range(ITERATIONS_PER_RESTART):
            step = STEP_SCALE * (1 - iteration / ITERATIONS_PER_RESTART)
            trial = [p + (float(rng.random()) - 0.5) * step * abs(p or ZERO_PARAM_SCALE) for p in current]

            trial[0] = max(trial[0], ASYMPTOTE_MIN)
            trial[1] = min(max(trial[1], ORIGIN_MIN), ORIGIN_MAX)

            error = _trial_error(tuple(trial), curve, observations, references, reference_covariates)
            if error is not None and error < best_error:
                best_error = error
                best = tuple(trial)
                current = trial

        log.debug("restart %d/%d best error %.4f", restart + 1, RESTARTS, best_error)

    r2 = _observed_r_squared(best, curve, observations)
    log.info("growth curve search complete: R²=%.3f error=%.4f", r2, best_error)
    return FitResult(parameters=best, r_squared=r2, error=best_error)


# -----------------------------------------------------------------------------
# Fitter
# -----------------------------------------------------------------------------


class SaturationGrowthFitter:
    """Fits and evaluates the saturation curve for one subject metric."""

    def __init__(
        self,
        subject: SubjectProfile,
        metric: Metric,
        rng: np.random.Generator | None = None,
        min_points: int = MIN_POINTS,
    ):
        self.subject = subject
        self.profile = GROWTH_PROFILES[metric]
        self.rng = rng if rng is not None else np.random.default_rng(settings.random_seed)
        self.min_points = min_points

    def _covariates(self, covariates: Mapping[str, float] | None) -> dict[str, float]:
        merged = self.subject.neutral_covariates
        if covariates:
            merged.update(covariates)
        return merged

    def curve(self, t: float, params: ModelParameters, covariates: Mapping[str, float] | None = None) -> float:
        return growth_curve(t, params, self._covariates(covariates), self.profile)

    def initial_parameters(self, series: TimeSeries) -> ModelParameters:
        reference_max = max((p.value for p in self.subject.reference_points), default=0.0)
        return self.profile.initial_parameters(max(series.values), reference_max)

    def fit(self, series: TimeSeries, initial: ModelParameters | None = None) -> FitResult:
        """
        Fit the curve to a daily series.

        Raises:
            InsufficientDataError: If the series has fewer than ``min_points`` points
        """
        series.require(self.min_points)
        if initial is None:
            initial = self.initial_parameters(series)

        observations = [(m.day_index, m.value, self._covariates(m.covariates)) for m in series]
        references = [(p.age_in_days, p.value) for p in self.subject.reference_points]

        log.info(
            "fitting %s %s saturation curve on %d points (%d reference points)",
            self.subject.subject.value,
            self.profile.metric.value,
            len(observations),
            len(references),
        )
        return optimize_growth_curve(
            observations,
            lambda t, params, covariates: growth_curve(t, params, covariates, self.profile),
            initial,
            self.rng,
            references=references,
            reference_covariates=self.subject.neutral_covariates,
        )

    def predict(self, params: ModelParameters, day: float, covariates: Mapping[str, float] | None = None) -> float:
        return self.curve(day, params, covariates)
