"""Daily time series of size measurements.

A series is indexed by *day index*: whole days elapsed since the subject's
tracking start. Gaps are allowed (days without valid data are skipped, never
zero-filled), so the indices are kept as observed rather than renumbered.
"""

import math
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from growcast.core.errors import InsufficientDataError

DAYS_PER_MONTH = 30  # literature ages are given in months


def to_finite_float(value: object) -> float | None:
    """Parse a loosely-typed upstream value into a finite float.

    Returns None for missing, empty, boolean, non-numeric, NaN, or infinite values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value in ("", "null", "undefined"):
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass(frozen=True)
class Measurement:
    """One day's averaged size reading plus the environment it was taken in."""

    day_index: int
    value: float
    covariates: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the covariate mapping so a measurement can't change after creation
        object.__setattr__(self, "covariates", MappingProxyType(dict(self.covariates)))


@dataclass(frozen=True)
class ReferenceCalibrationPoint:
    """Literature growth anchor (age in days, expected size)."""

    age_in_days: int
    value: float

    @classmethod
    def from_months(cls, months: float, value: float) -> "ReferenceCalibrationPoint":
        return cls(age_in_days=int(round(months * DAYS_PER_MONTH)), value=value)


class TimeSeries:
    """Ordered measurements with strictly increasing day indices.

    All values must be finite and positive; anything else is rejected at
    construction time with ValueError.
    """

    def __init__(self, measurements: Iterable[Measurement] = ()):
        points = tuple(measurements)
        previous: int | None = None
        for m in points:
            if m.day_index < 0:
                raise ValueError(f"Negative day index {m.day_index}")
            if previous is not None and m.day_index <= previous:
                raise ValueError(f"Day indices must strictly increase ({previous} then {m.day_index})")
            if not math.isfinite(m.value) or m.value <= 0:
                raise ValueError(f"Invalid value {m.value!r} on day {m.day_index}")
            previous = m.day_index
        self._points = points

    @classmethod
    def from_values(
        cls,
        values: Iterable[float],
        day_indices: Iterable[int] | None = None,
    ) -> "TimeSeries":
        """Build a series from bare values (day indices default to 0..n-1)."""
        values = list(values)
        days = list(day_indices) if day_indices is not None else list(range(len(values)))
        if len(days) != len(values):
            raise ValueError("values and day_indices must have the same length")
        return cls(Measurement(day_index=d, value=v) for d, v in zip(days, values))

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self._points)

    def __getitem__(self, index: int) -> Measurement:
        return self._points[index]

    def __repr__(self) -> str:
        return f"TimeSeries(points={len(self)})"

    @property
    def day_indices(self) -> list[int]:
        return [m.day_index for m in self._points]

    @property
    def values(self) -> list[float]:
        return [m.value for m in self._points]

    @property
    def last(self) -> Measurement:
        if not self._points:
            raise InsufficientDataError(0, 1, "measurements")
        return self._points[-1]

    def require(self, minimum: int, what: str = "days with valid data") -> "TimeSeries":
        """Return self, or raise InsufficientDataError if shorter than ``minimum``."""
        if len(self) < minimum:
            raise InsufficientDataError(len(self), minimum, what)
        return self
