"""
Day-windowed aggregation of raw sensor records into a daily series.

The trailing span is split into one-day windows which are requested
concurrently (bounded by a semaphore, each with its own timeout). A window
that fails, times out, or holds no valid readings is skipped rather than
zero-filled, so the resulting series keeps the real day indices and may
contain gaps.
"""

import asyncio
import logging
from statistics import fmean

from growcast.core.config import settings
from growcast.core.errors import UpstreamFormatError
from growcast.data.series import Measurement, TimeSeries
from growcast.data.sources import SECONDS_PER_DAY, WindowSource
from growcast.subjects import Metric, SubjectProfile

log = logging.getLogger(__name__)


def day_windows(days: int, end_seconds: int | None = None) -> list[tuple[int, int]]:
    """Split the trailing ``days`` before ``end_seconds`` into one-day windows.

    Windows are ordered oldest first. ``end_seconds`` defaults to
    ``days * 86400`` (windows counted from the tracking start). Windows that
    would begin before the tracking start are dropped.
    """
    if days <= 0:
        return []
    if end_seconds is None:
        end_seconds = days * SECONDS_PER_DAY

    windows = []
    for offset in range(days, 0, -1):
        start = end_seconds - offset * SECONDS_PER_DAY
        if start < 0:
            continue
        windows.append((start, start + SECONDS_PER_DAY))
    return windows


def summarize_window(
    records: list,
    day_index: int,
    profile: SubjectProfile,
    metric: Metric,
) -> Measurement | None:
    """Average one window's valid readings into a Measurement (None if none survive)."""
    values: list[float] = []
    covariates: dict[str, list[float]] = {rule.name: [] for rule in profile.covariate_rules}

    for record in records:
        try:
            value = profile.resolve_metric(record, metric)
        except UpstreamFormatError as e:
            log.debug("day %d: dropping record: %s", day_index, e)
            continue
        if not profile.is_plausible(metric, value):
            continue
        values.append(value)
        for name, reading in profile.resolve_covariates(record).items():
            covariates[name].append(reading)

    if not values:
        return None

    return Measurement(
        day_index=day_index,
        value=fmean(values),
        covariates={name: fmean(readings) for name, readings in covariates.items()},
    )


async def aggregate_daily_series(
    source: WindowSource,
    profile: SubjectProfile,
    metric: Metric,
    days: int | None = None,
    end_seconds: int | None = None,
    timeout: float | None = None,
    max_parallel: int | None = None,
) -> TimeSeries:
    """
    Build a daily series for one metric from day-windowed requests.

    Args:
        source: Anything with ``async get_batch(start_seconds, end_seconds)``
        profile: Subject whose field-resolution table applies
        metric: Metric to extract from each record
        days: Number of trailing days (default from settings)
        end_seconds: End of the trailing span, in seconds since tracking start
        timeout: Per-window budget in seconds
        max_parallel: Maximum concurrent window requests

    Returns:
        TimeSeries with at most ``days`` points. Callers enforce their own
        minimum length with ``TimeSeries.require``.
    """
    days = settings.trailing_days if days is None else days
    timeout = settings.window_timeout_seconds if timeout is None else timeout
    max_parallel = max(1, int(max_parallel or settings.max_parallel_requests))
    sem = asyncio.Semaphore(max_parallel)

    windows = day_windows(days, end_seconds)

    async def _fetch(start: int, end: int) -> list:
        async with sem:
            return await asyncio.wait_for(source.get_batch(start, end), timeout=timeout)

    raw = await asyncio.gather(*[_fetch(start, end) for start, end in windows], return_exceptions=True)

    measurements: list[Measurement] = []
    for (start, _), batch in zip(windows, raw):
        day_index = start // SECONDS_PER_DAY
        if isinstance(batch, TimeoutError):
            log.warning("day %d: window request timed out after %.1fs", day_index, timeout)
            continue
        if isinstance(batch, Exception):
            log.warning("day %d: window request failed: %s", day_index, batch)
            continue
        if isinstance(batch, BaseException):
            # Cancellation and interpreter exits are not window failures
            raise batch
        if not isinstance(batch, list) or not batch:
            log.debug("day %d: no records", day_index)
            continue

        measurement = summarize_window(batch, day_index, profile, metric)
        if measurement is None:
            log.debug("day %d: no valid %s readings", day_index, metric.value)
            continue
        measurements.append(measurement)

    log.info(
        "aggregated %s %s: %d/%d days with valid data",
        profile.subject.value,
        metric.value,
        len(measurements),
        len(windows),
    )
    return TimeSeries(measurements)
