"""
Spoofing layer: event-level tracks/points and the H3 density grid.

In combined mode both sources are fetched concurrently and rendered together,
but the stats always describe the selected source alone.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.models import (
    SPOOFING_AGG,
    SPOOFING_H3,
    LayerStats,
    LoadResult,
    feature_collection,
    features_of,
    parse_properties,
)
from core.settings import QuerySettings
from service.api_client import ApiClient, ApiResponse

logger = logging.getLogger(__name__)

HIGH_COUNT_THRESHOLD = 10


def filter_by_segment(features: Sequence[Dict[str, Any]], segments: Iterable[str]) -> List[Dict[str, Any]]:
    """Keep event features whose `segment` is selected; no selection keeps all."""
    wanted = set(segments)
    if not wanted:
        return list(features)
    return [f for f in features if (f.get("properties") or {}).get("segment") in wanted]


def calculate_event_stats(geojson: Optional[Dict[str, Any]]) -> LayerStats:
    features = features_of(geojson)
    flights = set()
    aircraft = set()
    for feature in features:
        props = parse_properties(SPOOFING_AGG, feature.get("properties"))
        if props.flight_id:
            flights.add(props.flight_id)
        if props.icao24:
            aircraft.add(props.icao24)

    return LayerStats(
        total_cells=len(features),
        unique_aircraft=len(aircraft),
        # the panel's "high" row shows unique flights for events
        high_severity_cells=len(flights),
        unique_flights=len(flights),
    )


def calculate_grid_stats(geojson: Optional[Dict[str, Any]]) -> LayerStats:
    features = features_of(geojson)
    total_affected = 0
    high_count = 0
    for feature in features:
        count = parse_properties(SPOOFING_H3, feature.get("properties")).count or 0
        total_affected += count
        if count >= HIGH_COUNT_THRESHOLD:
            high_count += 1

    return LayerStats(
        total_cells=len(features),
        unique_aircraft=total_affected,
        high_severity_cells=high_count,
        total_affected=total_affected,
        high_count_cells=high_count,
    )


def calculate_stats(geojson: Optional[Dict[str, Any]], mode: str) -> LayerStats:
    if mode == SPOOFING_H3:
        return calculate_grid_stats(geojson)
    return calculate_event_stats(geojson)


class SpoofingLayer:
    """Loads spoofing/agg, spoofing/h3, or both."""

    def __init__(self, api_client: ApiClient):
        self.api_client = api_client

    def _fetch_events(self, settings: QuerySettings) -> ApiResponse:
        response = self.api_client.get_spoofing_data(lookback_hours=settings.lookback_hours)
        features = filter_by_segment(features_of(response.data), settings.spoofing_segments)
        data = {**(response.data or {}), **feature_collection(features)}
        return ApiResponse(data=data, metadata=response.metadata)

    def _fetch_grid(self, settings: QuerySettings) -> ApiResponse:
        return self.api_client.get_spoofing_h3_data(
            lookback_minutes=settings.lookback_hours * 60,
            resolution=settings.resolution,
            coordinates_source=settings.coordinates_source,
            max_time_diff_before_sec=settings.max_time_diff_before_sec,
            max_time_diff_after_sec=settings.max_time_diff_after_sec,
        )

    def _fetch(self, source: str, settings: QuerySettings) -> ApiResponse:
        if source == SPOOFING_H3:
            return self._fetch_grid(settings)
        if source == SPOOFING_AGG:
            return self._fetch_events(settings)
        raise ValueError(f"Not a spoofing data source: {source}")

    def load(self, settings: QuerySettings) -> LoadResult:
        selected = settings.data_source
        if not settings.show_both_spoofing_layers:
            response = self._fetch(selected, settings)
            stats = calculate_stats(response.data, selected)
            logger.info(f"Loaded {selected}: {stats.total_cells} features")
            return LoadResult(
                data=response.data,
                metadata=response.metadata,
                stats=stats,
                data_source=selected,
            )

        other = SPOOFING_AGG if selected == SPOOFING_H3 else SPOOFING_H3
        # Both requests run at once; .result() re-raises, so one failure fails the load
        with ThreadPoolExecutor(max_workers=2) as executor:
            primary_future = executor.submit(self._fetch, selected, settings)
            secondary_future = executor.submit(self._fetch, other, settings)
            primary = primary_future.result()
            secondary = secondary_future.result()

        combined = feature_collection(features_of(primary.data) + features_of(secondary.data))
        stats = calculate_stats(primary.data, selected)
        logger.info(
            f"Loaded {selected} + {other}: {len(combined['features'])} features "
            f"({stats.total_cells} from {selected})"
        )
        return LoadResult(
            data=combined,
            metadata=primary.metadata,
            stats=stats,
            data_source=selected,
        )
