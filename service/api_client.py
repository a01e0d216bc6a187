"""
API Client for the SkAI GNSS interference API.

Talks to the authenticating proxy (or anything exposing the same /db-api/v1
paths); no credentials live here. One attempt per call, no retries.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urljoin

import requests

from core.errors import NetworkError, RequestError
from core.models import LoadMetadata

logger = logging.getLogger(__name__)

JAMMING_AGG_ENDPOINT = "/db-api/v1/jamming/agg"
JAMMING_COVERAGE_ENDPOINT = "/db-api/v1/jamming/coverage"
SPOOFING_AGG_ENDPOINT = "/db-api/v1/spoofing/agg/geojson"
SPOOFING_H3_ENDPOINT = "/db-api/v1/spoofing/h3_geojson"

PERIOD_START_HEADER = "x-period-start"
PERIOD_END_HEADER = "x-period-end"


@dataclass(frozen=True)
class ApiResponse:
    data: Dict[str, Any]
    metadata: LoadMetadata


def serialize_param(value: Any) -> str:
    """Query-string form of a parameter value (booleans as true/false)."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(serialize_param(v) for v in value)
    return str(value)


def build_query(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Drop None values, serialize the rest; insertion order is kept."""
    return {
        key: serialize_param(value)
        for key, value in (params or {}).items()
        if value is not None
    }


class ApiClient:
    """Thin GET client with one parameter-mapping wrapper per endpoint."""

    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None):
        self.base_url = base_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def build_url(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        url = urljoin(self.base_url, endpoint)
        query = build_query(params)
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """
        Issue a GET and decode the JSON body.

        Raises:
            RequestError: non-2xx status
            NetworkError: the request never got a response
        """
        url = self.build_url(endpoint, params)
        logger.debug(f"GET {url}")

        try:
            response = self.session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"API request error: {e}")
            raise NetworkError(str(e), url=url) from e

        if not 200 <= response.status_code < 300:
            logger.error(f"API request failed: {response.status_code} {response.reason} ({url})")
            raise RequestError(response.status_code, response.reason or "", url=url)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Invalid JSON from {url}: {e}")
            raise RequestError(response.status_code, "Invalid JSON body", url=url) from e

        if not isinstance(data, dict):
            logger.error(f"Unexpected response body from {url}: {type(data).__name__}")
            raise RequestError(response.status_code, "Invalid response body", url=url)

        metadata = LoadMetadata(
            period_start=response.headers.get(PERIOD_START_HEADER),
            period_end=response.headers.get(PERIOD_END_HEADER),
            status=response.status_code,
            url=url,
        )
        return ApiResponse(data=data, metadata=metadata)

    # ========================================================================
    # Endpoint wrappers
    # ========================================================================

    def get_jamming_data(
        self,
        lookback_hours: int = 6,
        altitudes: str = "FL100-FL450",
        altitude_summed: bool = False,
        hours_summed: bool = True,
        n_obs_min: int = 5,
        grouped: bool = False,
        full_output: bool = False,
        max_ratio_bad: float = 0.05,
        max_n_bad: int = 3,
    ) -> ApiResponse:
        """Aggregated jamming hexagons."""
        return self.get(JAMMING_AGG_ENDPOINT, {
            "lookback_hours": lookback_hours,
            "altitudes": altitudes,
            "altitude_summed": altitude_summed,
            "hours_summed": hours_summed,
            "n_obs_min": n_obs_min,
            "grouped": grouped,
            "full_output": full_output,
            "max_ratio_bad": max_ratio_bad,
            "max_n_bad": max_n_bad,
        })

    def get_jamming_coverage(
        self,
        lookback_hours: int = 24,
        altitudes: str = "FL100-FL450",
        altitude_summed: bool = False,
        show_no_coverage: bool = False,
        n_obs_min: int = 5,
        grouped: bool = False,
    ) -> ApiResponse:
        """Coverage cells. The API calls the observation threshold `min_count`."""
        return self.get(JAMMING_COVERAGE_ENDPOINT, {
            "lookback_hours": lookback_hours,
            "altitudes": altitudes,
            "altitude_summed": altitude_summed,
            "show_no_coverage": show_no_coverage,
            "min_count": n_obs_min,
            "grouped": grouped,
        })

    def get_spoofing_data(self, lookback_hours: int = 6,
                          lookback_minutes: Optional[int] = None) -> ApiResponse:
        """Spoofing events as GeoJSON; the API takes minutes."""
        if lookback_minutes is None:
            lookback_minutes = lookback_hours * 60
        return self.get(SPOOFING_AGG_ENDPOINT, {"lookback_minutes": lookback_minutes})

    def get_spoofing_h3_data(
        self,
        lookback_minutes: int = 1440,
        resolution: int = 3,
        coordinates_source: str = "interpolated",
        max_time_diff_before_sec: Optional[int] = None,
        max_time_diff_after_sec: Optional[int] = None,
    ) -> ApiResponse:
        """Spoofing density aggregated on H3 cells."""
        return self.get(SPOOFING_H3_ENDPOINT, {
            "lookback_minutes": lookback_minutes,
            "resolution": resolution,
            "coordinates_source": coordinates_source,
            "max_time_diff_before_sec": max_time_diff_before_sec,
            "max_time_diff_after_sec": max_time_diff_after_sec,
        })
