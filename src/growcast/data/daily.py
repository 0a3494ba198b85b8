"""
Reader for the pre-aggregated daily endpoint.

Upstream has already averaged each day, so a record carries a day index, the
subject's metrics and its covariates. Records are resolved with the subject's
field table; malformed records are dropped one at a time and each metric gets
its own series, so a bad leaf-area reading never removes a valid height.
"""

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from statistics import fmean

from growcast.core.errors import UpstreamFormatError
from growcast.data.series import Measurement, TimeSeries
from growcast.data.sources import DailyBatch
from growcast.subjects import Metric, SubjectProfile, resolve_day_index

log = logging.getLogger(__name__)


@dataclass
class DailyDataset:
    """Per-metric series built from one daily batch."""

    profile: SubjectProfile
    series: dict[Metric, TimeSeries]
    records_received: int
    latest_covariates: dict[str, float] = field(default_factory=dict)
    latest_day: int | None = None
    metadata: dict | None = None


def _merge_day(day_index: int, readings: list[tuple[float, dict[str, float]]]) -> Measurement:
    """Collapse repeated records for the same day into their mean."""
    value = fmean(v for v, _ in readings)
    names = readings[0][1].keys()
    covariates = {name: fmean(c[name] for _, c in readings) for name in names}
    return Measurement(day_index=day_index, value=value, covariates=covariates)


def build_series(records: list, profile: SubjectProfile, metric: Metric) -> TimeSeries:
    """Resolve one metric out of a list of daily records."""
    by_day: dict[int, list[tuple[float, dict[str, float]]]] = defaultdict(list)

    for position, record in enumerate(records):
        if not isinstance(record, Mapping):
            log.debug("record %d: dropping non-object record", position)
            continue
        try:
            value = profile.resolve_metric(record, metric)
        except UpstreamFormatError as e:
            log.debug("record %d: %s", position, e)
            continue
        if not profile.is_plausible(metric, value):
            log.debug("record %d: %s=%s outside plausible range", position, metric.value, value)
            continue
        day_index = resolve_day_index(record, fallback=position)
        by_day[day_index].append((value, profile.resolve_covariates(record)))

    return TimeSeries(_merge_day(day, by_day[day]) for day in sorted(by_day))


def read_daily_batch(batch: DailyBatch, profile: SubjectProfile) -> DailyDataset:
    """Turn a raw daily batch into one series per tracked metric."""
    series = {metric: build_series(batch.records, profile, metric) for metric in profile.metrics}

    latest_covariates: dict[str, float] = {}
    latest_day: int | None = None
    for position, record in enumerate(batch.records):
        if not isinstance(record, Mapping):
            continue
        day_index = resolve_day_index(record, fallback=position)
        if latest_day is None or day_index >= latest_day:
            latest_day = day_index
            latest_covariates = profile.resolve_covariates(record)

    for metric, s in series.items():
        log.info(
            "daily %s %s: %d valid days out of %d records",
            profile.subject.value,
            metric.value,
            len(s),
            len(batch.records),
        )

    return DailyDataset(
        profile=profile,
        series=series,
        records_received=len(batch.records),
        latest_covariates=latest_covariates or profile.neutral_covariates,
        latest_day=latest_day,
        metadata=batch.metadata,
    )
