"""
Tracked subjects and how their sensor records are read.

Two subjects share the aquaponic system:
- Trout (aquatic animal): body length, with water temperature,
  conductivity, pH and dissolved oxygen as covariates.
- Lettuce (plant): height and leaf area, with air temperature,
  relative humidity and pH as covariates.

Upstream records are loosely typed key-value maps whose field names vary
between endpoints. Each subject carries one resolution table: an ordered list
of candidate keys per field, tried in sequence until one yields a finite
number. Absent covariates fall back to documented defaults.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from growcast.core.errors import UpstreamFormatError
from growcast.data.series import ReferenceCalibrationPoint, to_finite_float


class Subject(Enum):
    TROUT = "trout"
    LETTUCE = "lettuce"


class Metric(Enum):
    LENGTH = "length"  # cm
    HEIGHT = "height"  # cm
    LEAF_AREA = "leaf_area"  # cm²


# -----------------------------------------------------------------------------
# Field Resolution
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldRule:
    """Ordered candidate keys for one logical field, plus its fallback."""

    name: str
    keys: tuple[str, ...]
    default: float | None = None

    def resolve(self, record: Mapping) -> float | None:
        for key in self.keys:
            value = to_finite_float(record.get(key))
            if value is not None:
                return value
        return self.default


DAY_RULE = FieldRule("day", ("tiempoDias", "dia", "day"))

METRIC_RULES: dict[Metric, FieldRule] = {
    Metric.LENGTH: FieldRule("length", ("longitudCm", "longitud", "length", "value")),
    # Lettuce records carry two metrics, so a generic "value" key would be ambiguous
    Metric.HEIGHT: FieldRule("height", ("alturaCm", "altura", "height")),
    Metric.LEAF_AREA: FieldRule("leaf_area", ("areaFoliarCm2", "areaFoliar", "area")),
}

# Readings at or above these are sensor glitches, not growth
PLAUSIBLE_MAX: dict[Metric, float] = {
    Metric.LENGTH: 100.0,
    Metric.HEIGHT: 200.0,
    Metric.LEAF_AREA: 2000.0,
}


@dataclass(frozen=True)
class SubjectProfile:
    """Everything needed to turn one subject's raw records into measurements."""

    subject: Subject
    resource: str  # API path segment
    metrics: tuple[Metric, ...]
    covariate_rules: tuple[FieldRule, ...]
    reference_points: tuple[ReferenceCalibrationPoint, ...] = ()

    @property
    def neutral_covariates(self) -> dict[str, float]:
        """Default covariate profile, used where no reading is available."""
        return {rule.name: rule.default for rule in self.covariate_rules}

    def resolve_metric(self, record: object, metric: Metric) -> float:
        """Extract the metric value from a record.

        Bare numbers are taken as the value itself, but only for subjects
        tracking a single metric.

        Raises:
            UpstreamFormatError: If the record matches no resolution rule
        """
        if isinstance(record, (int, float)) and not isinstance(record, bool):
            if len(self.metrics) > 1:
                raise UpstreamFormatError(f"Bare number is ambiguous for {self.subject.value}")
            return float(record)
        if not isinstance(record, Mapping):
            raise UpstreamFormatError(f"Unsupported record type {type(record).__name__}")
        value = METRIC_RULES[metric].resolve(record)
        if value is None:
            raise UpstreamFormatError(f"No {metric.value} field in record keys {sorted(record)}")
        return value

    def resolve_covariates(self, record: object) -> dict[str, float]:
        if not isinstance(record, Mapping):
            return self.neutral_covariates
        return {rule.name: rule.resolve(record) for rule in self.covariate_rules}

    def is_plausible(self, metric: Metric, value: float) -> bool:
        return 0 < value < PLAUSIBLE_MAX[metric]


def resolve_day_index(record: Mapping, fallback: int) -> int:
    """Day index of a daily record, falling back to its position in the payload."""
    value = DAY_RULE.resolve(record)
    if value is None or value < 0:
        return fallback
    return int(value)


# -----------------------------------------------------------------------------
# Subject Definitions
# -----------------------------------------------------------------------------

# Rainbow trout length by age (months), hatchery literature averages
TROUT_REFERENCE_LENGTHS = (
    ReferenceCalibrationPoint.from_months(0, 2.5),
    ReferenceCalibrationPoint.from_months(1, 5.0),
    ReferenceCalibrationPoint.from_months(2, 8.0),
    ReferenceCalibrationPoint.from_months(3, 12.0),
    ReferenceCalibrationPoint.from_months(4, 20.0),
    ReferenceCalibrationPoint.from_months(5, 32.5),  # 30-35
    ReferenceCalibrationPoint.from_months(6, 40.0),  # 38-42
    ReferenceCalibrationPoint.from_months(7, 46.5),  # 45-48
    ReferenceCalibrationPoint.from_months(8, 52.5),  # 50-55
)

TROUT = SubjectProfile(
    subject=Subject.TROUT,
    resource="truchas",
    metrics=(Metric.LENGTH,),
    covariate_rules=(
        FieldRule("temperature", ("temperaturaC", "temperatura", "temp"), 15.0),
        FieldRule("conductivity", ("conductividadUsCm", "conductividad"), 550.0),
        FieldRule("ph", ("pH", "ph"), 7.5),
        FieldRule("oxygen", ("oxigeno", "oxigenoMgL"), 8.0),  # mg/L, rarely reported
    ),
    reference_points=TROUT_REFERENCE_LENGTHS,
)

LETTUCE = SubjectProfile(
    subject=Subject.LETTUCE,
    resource="lechugas",
    metrics=(Metric.HEIGHT, Metric.LEAF_AREA),
    covariate_rules=(
        FieldRule("temperature", ("temperaturaC", "temperatura", "temp"), 22.0),
        FieldRule("humidity", ("humedadPorcentaje", "humedad", "humidity"), 65.0),
        FieldRule("ph", ("pH", "ph"), 6.5),
    ),
)

PROFILES: dict[Subject, SubjectProfile] = {
    Subject.TROUT: TROUT,
    Subject.LETTUCE: LETTUCE,
}


def get_profile(subject: Subject | str) -> SubjectProfile:
    """Look up a subject profile by enum or value ("trout", "lettuce")."""
    return PROFILES[Subject(subject)]
