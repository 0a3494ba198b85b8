"""Sensor API client - HTTP implementations of the measurement sources."""

import logging

import httpx

from growcast.core.config import settings
from growcast.core.errors import GrowcastError, UpstreamAPIError, UpstreamFormatError
from growcast.data.sources import DailyBatch
from growcast.subjects import Subject, SubjectProfile, get_profile

log = logging.getLogger(__name__)

# =============================================================================
# Endpoints
# =============================================================================

RANGE_PATH = "/api/{resource}/range"
DAILY_PATH = "/api/graphics/{resource}/diario-ultimo"
LATEST_PATH = "/api/{resource}/latest"


# =============================================================================
# Client Functions
# =============================================================================


def build_url(path: str, base_url: str | None = None) -> str:
    return (base_url or settings.api_base_url).rstrip("/") + path


async def get_json(
    path: str,
    params: dict | None = None,
    timeout: float | None = None,
    base_url: str | None = None,
) -> object:
    """GET a JSON document from the sensor API.

    A single attempt is made; callers decide how to degrade on failure.

    Args:
        path: Path below the configured base URL
        params: Optional query parameters
        timeout: Request budget in seconds (defaults to the daily budget)
        base_url: Sensor API root (defaults to ``settings.api_base_url``)

    Returns:
        Parsed JSON body

    Raises:
        TimeoutError: If the request exceeds its budget
        UpstreamAPIError: On HTTP error status or transport failure
        UpstreamFormatError: If the body is not JSON
    """
    url = build_url(path, base_url)
    if timeout is None:
        timeout = settings.daily_timeout_seconds

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
            response.raise_for_status()
    except httpx.TimeoutException as e:
        raise TimeoutError(f"Request to {url} timed out after {timeout}s") from e
    except httpx.HTTPStatusError as e:
        raise UpstreamAPIError(f"HTTP {e.response.status_code} from {url}") from e
    except httpx.TransportError as e:
        raise UpstreamAPIError(f"Connection to {url} failed: {e}") from e

    try:
        return response.json()
    except ValueError as e:
        raise UpstreamFormatError(f"Response from {url} is not JSON") from e


def _unwrap_records(payload: object) -> tuple[list, dict | None]:
    """Accept either ``{"datos": [...], "metadata": {...}}`` or a bare list."""
    if isinstance(payload, list):
        return payload, None
    if isinstance(payload, dict) and isinstance(payload.get("datos"), list):
        metadata = payload.get("metadata")
        return payload["datos"], metadata if isinstance(metadata, dict) else None
    raise UpstreamFormatError(f"Unexpected payload shape: {type(payload).__name__}")


class HttpWindowSource:
    """Raw records for one subject over a time window (``/range`` endpoint)."""

    def __init__(self, subject: Subject | str, timeout: float | None = None, base_url: str | None = None):
        self.profile: SubjectProfile = get_profile(subject)
        self.timeout = timeout if timeout is not None else settings.window_timeout_seconds
        self.base_url = base_url

    async def get_batch(self, start_seconds: int, end_seconds: int) -> list:
        payload = await get_json(
            RANGE_PATH.format(resource=self.profile.resource),
            params={"startSeconds": start_seconds, "endSeconds": end_seconds},
            timeout=self.timeout,
            base_url=self.base_url,
        )
        records, _ = _unwrap_records(payload)
        return records


class HttpDailySource:
    """All daily-averaged records for one subject (``diario-ultimo`` endpoint)."""

    def __init__(self, subject: Subject | str, timeout: float | None = None, base_url: str | None = None):
        self.profile: SubjectProfile = get_profile(subject)
        self.timeout = timeout if timeout is not None else settings.daily_timeout_seconds
        self.base_url = base_url

    async def get_daily_batch(self) -> DailyBatch:
        payload = await get_json(
            DAILY_PATH.format(resource=self.profile.resource),
            timeout=self.timeout,
            base_url=self.base_url,
        )
        records, metadata = _unwrap_records(payload)
        log.debug("daily batch subject=%s records=%d", self.profile.subject.value, len(records))
        return DailyBatch(records=records, metadata=metadata)


async def check_connection(subject: Subject | str = Subject.TROUT, base_url: str | None = None) -> bool:
    """Ping the subject's ``/latest`` endpoint; True if it answers successfully."""
    profile = get_profile(subject)
    try:
        await get_json(
            LATEST_PATH.format(resource=profile.resource),
            timeout=settings.connection_timeout_seconds,
            base_url=base_url,
        )
    except (GrowcastError, TimeoutError) as e:
        log.warning("connection check failed for %s: %s", build_url("", base_url), e)
        return False
    return True
