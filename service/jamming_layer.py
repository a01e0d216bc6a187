"""
Jamming layer: fetch aggregated/coverage cells, filter by severity, optionally
merge same-severity cells, and compute panel stats.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from shapely.errors import ShapelyError
from shapely.geometry import mapping, shape
from shapely.ops import unary_union

from core.errors import GeometryOperationError
from core.models import (
    JAMMING_AGG,
    JAMMING_COVERAGE,
    LayerStats,
    LoadResult,
    feature_collection,
    features_of,
    parse_properties,
)
from core.settings import QuerySettings
from core.severity import (
    HIGH_SEVERITY_THRESHOLD,
    BucketTable,
    get_bucket_table,
    ratio_or_zero,
)
from service.api_client import ApiClient

logger = logging.getLogger(__name__)

# Bookkeeping properties added to merged features
SEVERITY_BUCKET_PROP = "severity_bucket"
UNIONED_COUNT_PROP = "unioned_count"
UNIONED_FLAG_PROP = "unioned"


# ============================================================================
# Pure transformations
# ============================================================================

def filter_by_severity(
    features: Sequence[Dict[str, Any]],
    levels: Iterable[str],
    table: BucketTable,
) -> List[Dict[str, Any]]:
    """
    Keep features whose ratio_bad (missing = 0) falls in one of the requested
    buckets. No levels means no filtering.
    """
    buckets = [table.get(name) for name in levels]
    if not buckets:
        return list(features)

    kept = []
    for feature in features:
        ratio = ratio_or_zero((feature.get("properties") or {}).get("ratio_bad"))
        if any(table.contains(b, ratio) for b in buckets):
            kept.append(feature)
    return kept


def _merge_group(bucket_name: str, group: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Union the geometries of a same-bucket group into one synthetic feature."""
    try:
        geometry = unary_union([shape(f["geometry"]) for f in group])
    except (ShapelyError, ValueError, TypeError, KeyError, AttributeError) as e:
        raise GeometryOperationError(bucket_name, str(e)) from e

    if geometry.is_empty:
        raise GeometryOperationError(bucket_name, "union produced an empty geometry")

    ratios = [ratio_or_zero((f.get("properties") or {}).get("ratio_bad")) for f in group]
    properties = dict(group[0].get("properties") or {})
    properties["ratio_bad"] = sum(ratios) / len(ratios)
    properties[SEVERITY_BUCKET_PROP] = bucket_name
    properties[UNIONED_COUNT_PROP] = len(group)
    properties[UNIONED_FLAG_PROP] = True

    return {
        "type": "Feature",
        "geometry": mapping(geometry),
        "properties": properties,
    }


def union_by_severity(
    features: Sequence[Dict[str, Any]],
    table: BucketTable,
) -> List[Dict[str, Any]]:
    """
    Merge features that share a severity bucket.

    Singleton groups pass through untouched. A merged feature takes the
    position of its group's first member. If a bucket's union fails, that
    bucket's original features stay in place and the other buckets still
    merge.
    """
    names = [
        table.bucket_for((f.get("properties") or {}).get("ratio_bad")).name
        for f in features
    ]
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for name, feature in zip(names, features):
        groups.setdefault(name, []).append(feature)

    merged: Dict[str, Dict[str, Any]] = {}
    for name, group in groups.items():
        if len(group) < 2:
            continue
        try:
            merged[name] = _merge_group(name, group)
        except GeometryOperationError as e:
            logger.warning(f"{e}; keeping {len(group)} unmerged features")

    result: List[Dict[str, Any]] = []
    for name, feature in zip(names, features):
        if name not in merged:
            result.append(feature)
        elif feature is groups[name][0]:
            result.append(merged[name])
    return result


def calculate_stats(geojson: Optional[Dict[str, Any]], mode: str = JAMMING_AGG) -> LayerStats:
    features = features_of(geojson)
    if mode == JAMMING_COVERAGE:
        return LayerStats(total_cells=len(features))

    total_aircraft = 0
    high = 0
    for feature in features:
        props = parse_properties(JAMMING_AGG, feature.get("properties"))
        if props.n_unique_ac:
            total_aircraft += props.n_unique_ac
        if ratio_or_zero(props.ratio_bad) >= HIGH_SEVERITY_THRESHOLD:
            high += 1

    return LayerStats(
        total_cells=len(features),
        unique_aircraft=total_aircraft,
        high_severity_cells=high,
    )


# ============================================================================
# Loader
# ============================================================================

class JammingLayer:
    """Loads jamming/agg or jamming/coverage data for a settings value."""

    def __init__(self, api_client: ApiClient):
        self.api_client = api_client

    def fetch(self, settings: QuerySettings):
        if settings.data_source == JAMMING_COVERAGE:
            return self.api_client.get_jamming_coverage(
                lookback_hours=settings.lookback_hours,
                altitudes=settings.altitudes,
                altitude_summed=settings.altitude_summed,
                show_no_coverage=settings.show_no_coverage,
                n_obs_min=settings.n_obs_min,
                grouped=settings.grouped,
            )
        if settings.data_source == JAMMING_AGG:
            return self.api_client.get_jamming_data(
                lookback_hours=settings.lookback_hours,
                altitudes=settings.altitudes,
                altitude_summed=settings.altitude_summed,
                hours_summed=settings.hours_summed,
                n_obs_min=settings.n_obs_min,
                grouped=settings.grouped,
                full_output=settings.full_output,
                max_ratio_bad=settings.max_ratio_bad,
                max_n_bad=settings.max_n_bad,
            )
        raise ValueError(f"Not a jamming data source: {settings.data_source}")

    def load(self, settings: QuerySettings) -> LoadResult:
        """
        Fetch, then (agg only) filter and optionally union.

        Errors from the client propagate; nothing is cached here.
        """
        response = self.fetch(settings)
        data = response.data

        if settings.data_source == JAMMING_AGG:
            table = get_bucket_table(settings.severity_scheme)
            features = filter_by_severity(
                features_of(data), settings.jamming_severity_levels, table
            )
            if settings.union_by_severity:
                features = union_by_severity(features, table)
            data = {**(data or {}), **feature_collection(features)}

        stats = calculate_stats(data, settings.data_source)
        logger.info(
            f"Loaded {settings.data_source}: {stats.total_cells} features "
            f"(high severity: {stats.high_severity_cells})"
        )
        return LoadResult(
            data=data,
            metadata=response.metadata,
            stats=stats,
            data_source=settings.data_source,
        )
