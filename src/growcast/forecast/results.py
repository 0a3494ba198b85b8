"""Result types handed back to the display layer."""

from dataclasses import asdict, dataclass, field
from enum import Enum

from growcast.data.series import DAYS_PER_MONTH

ModelParameters = tuple[float, ...]


class ModelKind(Enum):
    LINEAR = "linear"
    SATURATION = "saturation"
    SEASONAL = "seasonal"


@dataclass(frozen=True)
class FitResult:
    """Fitted parameters with goodness of fit."""

    parameters: ModelParameters
    r_squared: float  # 0-1
    error: float  # mean squared error of the fit, >= 0


@dataclass(frozen=True)
class ForecastDiagnostics:
    """Model-specific details; fields that don't apply to a model stay None."""

    points_used: int
    seasonal_period: int | None = None
    seasonal_strength: float | None = None
    is_stationary: bool | None = None
    regular_differences: int | None = None
    seasonal_differences: int | None = None
    r_squared: float | None = None
    fit_error: float | None = None
    parameters: ModelParameters = ()


@dataclass(frozen=True)
class ForecastResult:
    """One model's forecast for one metric."""

    subject: str
    metric: str
    model: ModelKind
    horizon_days: int
    current_day: int
    current_value: float
    predicted_value: float
    expected_growth: float
    daily_predictions: tuple[float, ...]
    confidence: float
    diagnostics: ForecastDiagnostics

    def __post_init__(self):
        if self.horizon_days <= 0:
            raise ValueError("horizon_days must be positive")
        if len(self.daily_predictions) != self.horizon_days:
            raise ValueError(
                f"Expected {self.horizon_days} daily predictions, got {len(self.daily_predictions)}"
            )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["model"] = self.model.value
        data["daily_predictions"] = list(self.daily_predictions)
        data["diagnostics"]["parameters"] = list(self.diagnostics.parameters)
        return data


@dataclass
class MetricOutcome:
    """Forecasts for one metric, or the error that prevented them."""

    metric: str
    forecasts: dict[ModelKind, ForecastResult] = field(default_factory=dict)
    error: str | None = None
    error_type: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "forecasts": {kind.value: f.to_dict() for kind, f in self.forecasts.items()},
            "error": self.error,
            "error_type": self.error_type,
        }


@dataclass
class SubjectForecast:
    """Bundle of per-metric outcomes for one subject and horizon."""

    subject: str
    horizon_days: int
    outcomes: dict[str, MetricOutcome]
    environment: dict[str, float] = field(default_factory=dict)
    estimated_age_days: int | None = None
    records_used: int = 0
    metadata: dict | None = None

    @property
    def estimated_age_months(self) -> float | None:
        if self.estimated_age_days is None:
            return None
        return self.estimated_age_days / DAYS_PER_MONTH

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "horizon_days": self.horizon_days,
            "outcomes": {name: o.to_dict() for name, o in self.outcomes.items()},
            "environment": dict(self.environment),
            "estimated_age_days": self.estimated_age_days,
            "estimated_age_months": self.estimated_age_months,
            "records_used": self.records_used,
            "metadata": self.metadata,
        }
