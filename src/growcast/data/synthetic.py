"""
Synthetic measurement sources for demos and offline development.

Records follow the nominal saturation curve of each metric with small
multiplicative noise, and carry covariates that wander around the subject's
neutral environment with a weekly cycle. Field names match what the sensor
API sends, so the same resolution tables and aggregation code apply.

Every day is generated from its own seed derived from ``(seed, day)``, so a
window returns the same records regardless of the order concurrent requests
complete in.
"""

import math

import numpy as np

from growcast.core.config import settings
from growcast.data.sources import SECONDS_PER_DAY, DailyBatch
from growcast.forecast.saturation import GROWTH_PROFILES, growth_curve
from growcast.subjects import METRIC_RULES, PLAUSIBLE_MAX, Subject, SubjectProfile, get_profile

DEFAULT_SEED = 7
DEFAULT_DAYS = 60  # history served by the daily source
READINGS_PER_WINDOW = 4
VALUE_NOISE = 0.02  # relative standard deviation of each size reading
WEEKLY_SWING = 0.05  # relative amplitude of the weekly covariate cycle
COVARIATE_NOISE = 0.01


class _SyntheticRecords:
    def __init__(self, subject: Subject | str, seed: int | None = None):
        self.profile: SubjectProfile = get_profile(subject)
        if seed is None:
            seed = settings.random_seed if settings.random_seed is not None else DEFAULT_SEED
        self.seed = seed
        reference_max = max((p.value for p in self.profile.reference_points), default=0.0)
        self.parameters = {
            metric: GROWTH_PROFILES[metric].initial_parameters(0.0, reference_max) for metric in self.profile.metrics
        }

    def _covariates(self, day: float, rng: np.random.Generator) -> dict[str, float]:
        cycle = 1 + WEEKLY_SWING * math.sin(2 * math.pi * day / 7)
        return {
            name: value * cycle * (1 + float(rng.normal(0.0, COVARIATE_NOISE)))
            for name, value in self.profile.neutral_covariates.items()
        }

    def record(self, day: float, rng: np.random.Generator) -> dict:
        covariates = self._covariates(day, rng)
        record = {}
        for metric in self.profile.metrics:
            nominal = growth_curve(day, self.parameters[metric], covariates, GROWTH_PROFILES[metric])
            value = nominal * (1 + float(rng.normal(0.0, VALUE_NOISE)))
            value = min(max(value, GROWTH_PROFILES[metric].floor), PLAUSIBLE_MAX[metric] * 0.99)
            record[METRIC_RULES[metric].keys[0]] = round(value, 3)
        for rule in self.profile.covariate_rules:
            record[rule.keys[0]] = round(covariates[rule.name], 3)
        return record

    def rng_for_day(self, day: int) -> np.random.Generator:
        return np.random.default_rng([self.seed, day])


class SyntheticWindowSource(_SyntheticRecords):
    """Raw readings spread across each requested window."""

    def __init__(self, subject: Subject | str, seed: int | None = None, readings_per_window: int = READINGS_PER_WINDOW):
        super().__init__(subject, seed)
        self.readings_per_window = readings_per_window

    async def get_batch(self, start_seconds: int, end_seconds: int) -> list:
        day = max(0, start_seconds) // SECONDS_PER_DAY
        rng = self.rng_for_day(day)
        span_days = max(0, end_seconds - start_seconds) / SECONDS_PER_DAY
        return [
            self.record(start_seconds / SECONDS_PER_DAY + span_days * i / self.readings_per_window, rng)
            for i in range(self.readings_per_window)
        ]


class SyntheticDailySource(_SyntheticRecords):
    """Daily-averaged records for days ``0..days-1``."""

    def __init__(self, subject: Subject | str, seed: int | None = None, days: int = DEFAULT_DAYS):
        super().__init__(subject, seed)
        self.days = days

    async def get_daily_batch(self) -> DailyBatch:
        records = []
        for day in range(self.days):
            record = self.record(day, self.rng_for_day(day))
            record["tiempoDias"] = day
            records.append(record)
        return DailyBatch(
            records=records,
            metadata={"source": "synthetic", "seed": self.seed, "days": self.days},
        )
