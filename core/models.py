"""
Data model for interference layers.

Features travel as plain GeoJSON dicts (that is what the map source consumes);
the typed property models below are used wherever code reads properties.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

# JSON numbers; integral values stay int
Number = Union[int, float]

# Data sources selectable in the UI
JAMMING_AGG = "jamming/agg"
JAMMING_COVERAGE = "jamming/coverage"
SPOOFING_AGG = "spoofing/agg"
SPOOFING_H3 = "spoofing/h3"

DATA_SOURCES = (JAMMING_AGG, JAMMING_COVERAGE, SPOOFING_AGG, SPOOFING_H3)

SPOOFING_SEGMENTS = ("during", "before-during", "during-after", "before-during-after")


# ============================================================================
# Typed feature properties (unknown fields are kept as extras, numeric ids
# and labels are read as strings)
# ============================================================================

class JammingAggProperties(BaseModel):
    """Aggregated jamming hexagon (or group of hexagons when grouped=true)"""
    h3_index: Optional[str] = None
    h3_indices: Optional[List[str]] = None
    altitude: Optional[str] = None
    n_unique_ac: Optional[Number] = None
    n_good: Optional[Number] = None
    n_bad: Optional[Number] = None
    ratio_bad: Optional[float] = None

    class Config:
        extra = "allow"
        coerce_numbers_to_str = True


class CoverageProperties(BaseModel):
    h3_index: Optional[str] = None
    altitude: Optional[str] = None
    coverage: Optional[Union[str, bool]] = None
    count: Optional[Number] = None

    class Config:
        extra = "allow"
        coerce_numbers_to_str = True

    @property
    def has_coverage(self) -> bool:
        return self.coverage not in (None, False, "none")


class SpoofingEventProperties(BaseModel):
    """One spoofing event; LineString for multi-segment tracks, Point for 'during' only"""
    flight_id: Optional[str] = None
    icao24: Optional[str] = None
    segment: Optional[str] = None
    timestamp_during_min: Optional[str] = None
    timestamp_during_max: Optional[str] = None
    altitude_during: Optional[float] = None
    track_during: Optional[float] = None

    class Config:
        extra = "allow"
        coerce_numbers_to_str = True


class SpoofingGridProperties(BaseModel):
    h3_index: Optional[str] = None
    count: Optional[Number] = None

    class Config:
        extra = "allow"
        coerce_numbers_to_str = True


FeatureProperties = Union[
    JammingAggProperties, CoverageProperties, SpoofingEventProperties, SpoofingGridProperties
]

_PROPERTY_MODELS = {
    JAMMING_AGG: JammingAggProperties,
    JAMMING_COVERAGE: CoverageProperties,
    SPOOFING_AGG: SpoofingEventProperties,
    SPOOFING_H3: SpoofingGridProperties,
}


def parse_properties(data_source: str, properties: Optional[Dict[str, Any]]) -> FeatureProperties:
    """Typed view of a feature's properties for the given data source."""
    try:
        model = _PROPERTY_MODELS[data_source]
    except KeyError:
        raise ValueError(f"Unknown data source: {data_source}")
    return model(**(properties or {}))


# ============================================================================
# GeoJSON helpers
# ============================================================================

def empty_collection() -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}


def feature_collection(features: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def features_of(geojson: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Features of a collection; tolerant of None / missing key."""
    if not geojson:
        return []
    return geojson.get("features") or []


# ============================================================================
# Load results
# ============================================================================

@dataclass(frozen=True)
class LoadMetadata:
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    status: Optional[int] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class LayerStats:
    """
    Counts shown in the stats panel. Meaning depends on the data source:

    jamming/agg       total cells, sum of n_unique_ac, cells with ratio_bad >= 0.3
    jamming/coverage  coverage areas, 0, 0
    spoofing/agg      total events, unique icao24, unique flight_id
    spoofing/h3       H3 cells, sum of count, cells with count >= 10
    """
    total_cells: int = 0
    unique_aircraft: int = 0
    high_severity_cells: int = 0
    unique_flights: Optional[int] = None
    total_affected: Optional[int] = None
    high_count_cells: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass(frozen=True)
class LoadResult:
    data: Dict[str, Any]
    metadata: LoadMetadata
    stats: LayerStats
    data_source: str = JAMMING_AGG
    sequence: int = field(default=0, compare=False)
