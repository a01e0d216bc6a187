"""
Declarative map styling: source/layer definitions, legends and stats labels.

The renderer is external; it receives these dicts as-is (Mapbox GL style spec).
"""
from typing import Any, Dict, List

from core.models import JAMMING_AGG, JAMMING_COVERAGE, SPOOFING_AGG, SPOOFING_H3
from core.severity import BucketTable, get_bucket_table

SOURCE_ID = "interference-source"

JAMMING_FILL_LAYER = "jamming-layer"
JAMMING_OUTLINE_LAYER = "jamming-layer-outline"
SPOOFING_LINE_LAYER = "spoofing-line-layer"
SPOOFING_POINT_LAYER = "spoofing-point-layer"
SPOOFING_GRID_LAYER = "spoofing-h3-layer"

FALLBACK_COLOR = "#cccccc"
SPOOFING_PATH_COLOR = "#f59e0b"
SPOOFING_EVENT_COLOR = "#dc2626"
COVERAGE_YES_COLOR = "#10b981"
COVERAGE_NO_COLOR = "#dc2626"

# (lower bound of flight count, colour, label)
H3_COUNT_SCALE = [
    (1, "#fef3c7", "1-5 Flights"),
    (5, "#fbbf24", "5-10 Flights"),
    (10, "#f59e0b", "10-20 Flights"),
    (20, "#d97706", "20-50 Flights"),
    (50, "#dc2626", "50+ Flights"),
]


def ratio_color_expression(table: BucketTable) -> List[Any]:
    """`step` expression over ratio_bad built from a bucket table."""
    thresholds = table.thresholds()
    step: List[Any] = ["step", ["get", "ratio_bad"], thresholds[0][1]]
    for lower, color in thresholds[1:]:
        step.extend([lower, color])
    return ["case", ["has", "ratio_bad"], step, FALLBACK_COLOR]


def _count_color_expression() -> List[Any]:
    step: List[Any] = ["step", ["get", "count"], H3_COUNT_SCALE[0][1]]
    for lower, color, _ in H3_COUNT_SCALE[1:]:
        step.extend([lower, color])
    return step


def jamming_layers(table: BucketTable) -> List[Dict[str, Any]]:
    return [
        {
            "id": JAMMING_FILL_LAYER,
            "type": "fill",
            "source": SOURCE_ID,
            "paint": {
                "fill-color": ratio_color_expression(table),
                "fill-opacity": 0.6,
            },
        },
        {
            "id": JAMMING_OUTLINE_LAYER,
            "type": "line",
            "source": SOURCE_ID,
            "paint": {"line-color": "#ffffff", "line-width": 1, "line-opacity": 0.3},
        },
    ]


def coverage_layers() -> List[Dict[str, Any]]:
    has_coverage = ["all", ["has", "coverage"], ["!=", ["get", "coverage"], "none"],
                    ["!=", ["get", "coverage"], False]]
    return [
        {
            "id": JAMMING_FILL_LAYER,
            "type": "fill",
            "source": SOURCE_ID,
            "paint": {
                "fill-color": ["case", has_coverage, COVERAGE_YES_COLOR, COVERAGE_NO_COLOR],
                "fill-opacity": 0.6,
            },
        },
        {
            "id": JAMMING_OUTLINE_LAYER,
            "type": "line",
            "source": SOURCE_ID,
            "paint": {"line-color": "#ffffff", "line-width": 1, "line-opacity": 0.3},
        },
    ]


def spoofing_layers(include_grid: bool = True, include_events: bool = True) -> List[Dict[str, Any]]:
    layers = []
    # Grid goes first so event lines/points draw on top of it
    if include_grid:
        layers.append({
            "id": SPOOFING_GRID_LAYER,
            "type": "fill",
            "source": SOURCE_ID,
            "filter": ["==", ["geometry-type"], "Polygon"],
            "paint": {"fill-color": _count_color_expression(), "fill-opacity": 0.6},
        })
    if include_events:
        layers.append({
            "id": SPOOFING_LINE_LAYER,
            "type": "line",
            "source": SOURCE_ID,
            "filter": ["==", ["geometry-type"], "LineString"],
            "paint": {"line-color": SPOOFING_PATH_COLOR, "line-width": 3, "line-opacity": 0.8},
        })
        layers.append({
            "id": SPOOFING_POINT_LAYER,
            "type": "circle",
            "source": SOURCE_ID,
            "filter": ["==", ["geometry-type"], "Point"],
            "paint": {
                "circle-radius": 6,
                "circle-color": SPOOFING_EVENT_COLOR,
                "circle-opacity": 0.8,
                "circle-stroke-width": 2,
                "circle-stroke-color": "#ffffff",
                "circle-stroke-opacity": 0.5,
            },
        })
    return layers


def layers_for(data_source: str, show_both: bool = False, scheme: str = "v3") -> List[Dict[str, Any]]:
    """All map layers that render the shared source for a data source."""
    if data_source == JAMMING_AGG:
        return jamming_layers(get_bucket_table(scheme))
    if data_source == JAMMING_COVERAGE:
        return coverage_layers()
    if data_source == SPOOFING_AGG:
        return spoofing_layers(include_grid=show_both, include_events=True)
    if data_source == SPOOFING_H3:
        return spoofing_layers(include_grid=True, include_events=show_both)
    raise ValueError(f"Unknown data source: {data_source}")


# ============================================================================
# Legend + stats labels
# ============================================================================

def _h3_legend_items() -> List[Dict[str, str]]:
    return [{"color": color, "label": label, "shape": "fill"} for _, color, label in H3_COUNT_SCALE]


def _event_legend_items() -> List[Dict[str, str]]:
    return [
        {"color": SPOOFING_PATH_COLOR, "label": "Flight Path", "shape": "line"},
        {"color": SPOOFING_EVENT_COLOR, "label": "Event Location", "shape": "circle"},
    ]


def legend_for(data_source: str, show_both: bool = False, scheme: str = "v3") -> Dict[str, Any]:
    """
    Legend content: a title plus one or more titled sections of items.
    Section titles are None when the legend has a single section.
    """
    if data_source.startswith("spoofing/"):
        if show_both:
            return {
                "title": "Spoofing (Both Layers)",
                "sections": [
                    {"title": "Flight Events:", "items": _event_legend_items()},
                    {"title": "H3 Grid:", "items": _h3_legend_items()},
                ],
            }
        if data_source == SPOOFING_H3:
            return {"title": "Spoofing H3 Grid",
                    "sections": [{"title": None, "items": _h3_legend_items()}]}
        return {"title": "Spoofing Events",
                "sections": [{"title": None, "items": _event_legend_items()}]}

    if data_source == JAMMING_COVERAGE:
        return {
            "title": "Coverage Areas",
            "sections": [{"title": None, "items": [
                {"color": COVERAGE_YES_COLOR, "label": "Has Coverage", "shape": "fill"},
                {"color": COVERAGE_NO_COLOR, "label": "No Coverage", "shape": "fill"},
            ]}],
        }

    table = get_bucket_table(scheme)
    return {
        "title": "Jamming Severity",
        "sections": [{"title": None, "items": [
            {"color": b.color, "label": b.label, "shape": "fill"} for b in table.buckets
        ]}],
    }


# label, and whether the row is shown at all
_STATS_LABELS = {
    JAMMING_AGG: {
        "cells": ("Total Cells:", True),
        "aircraft": ("Unique Aircraft:", True),
        "high": ("High Severity (≥30%):", True),
    },
    JAMMING_COVERAGE: {
        "cells": ("Coverage Areas:", True),
        "aircraft": ("Unique Aircraft:", False),
        "high": ("High Severity:", False),
    },
    SPOOFING_AGG: {
        "cells": ("Total Events:", True),
        "aircraft": ("Unique Aircraft:", True),
        "high": ("Unique Flights:", True),
    },
    SPOOFING_H3: {
        "cells": ("Total H3 Cells:", True),
        "aircraft": ("Total Affected:", True),
        "high": ("High Activity (≥10):", True),
    },
}


def stats_labels_for(data_source: str) -> Dict[str, Dict[str, Any]]:
    try:
        labels = _STATS_LABELS[data_source]
    except KeyError:
        raise ValueError(f"Unknown data source: {data_source}")
    return {key: {"label": label, "visible": visible} for key, (label, visible) in labels.items()}
