"""
Presentation helpers: formatting, the sortable data table, the collapsible
JSON tree and feature popups. Everything here is a pure function of the data.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.models import JAMMING_AGG, JAMMING_COVERAGE, SPOOFING_AGG, features_of, parse_properties
from core.severity import get_bucket_table, ratio_or_zero

SORT_ASC = "asc"
SORT_DESC = "desc"

# ============================================================================
# Formatting
# ============================================================================


def color_for_ratio(ratio: Optional[float], scheme: str = "v3") -> str:
    return get_bucket_table(scheme).bucket_for(ratio).color


def _parse_timestamp(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(iso_string: Optional[str]) -> str:
    """'2024-10-18T14:30:00Z' -> 'Oct 18, 02:30 PM UTC'"""
    if not iso_string:
        return "-"
    try:
        dt = _parse_timestamp(iso_string)
    except ValueError:
        return iso_string
    return f"{dt:%b} {dt.day}, {dt:%I:%M %p} UTC"


def format_time_of_day(iso_string: Optional[str]) -> str:
    if not iso_string:
        return "N/A"
    try:
        dt = _parse_timestamp(iso_string)
    except ValueError:
        return iso_string
    return f"{dt:%I:%M:%S %p} UTC"


def format_percentage(ratio: Optional[float]) -> str:
    return f"{ratio_or_zero(ratio) * 100:.1f}%"


def format_bytes(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    return f"{round(size / 1024 ** i, 2):g} {units[i]}"


def response_size_bytes(data: Any) -> int:
    """Size of the compact JSON encoding, i.e. roughly what came over the wire."""
    return len(json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8"))


def format_number(value) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if value.is_integer():
            return f"{int(value):,}"
        return f"{round(value, 3):,}"
    return f"{value:,}"


def format_altitude(alt: Optional[float]) -> str:
    if alt is None:
        return "N/A"
    return f"{round(alt):,} ft"


def format_track(track: Optional[float]) -> str:
    if track is None:
        return "N/A"
    return f"{track:.1f}°"


# ============================================================================
# Data table
# ============================================================================

@dataclass(frozen=True)
class Cell:
    text: str
    css: str = ""


@dataclass
class Table:
    columns: List[str]
    rows: List[List[Cell]]
    count_label: str
    sort_column: Optional[str] = None
    sort_direction: str = SORT_ASC

    @property
    def is_empty(self) -> bool:
        return not self.rows or self.columns == ["No data available"]


def _is_index_column(key: str) -> bool:
    return key in ("h3_index", "h3_indices") or key.endswith("_index") or key.endswith("_indices")


def table_columns(features: Sequence[Dict[str, Any]]) -> List[str]:
    """id, regular properties, index properties, type, geometry"""
    keys = set()
    for feature in features:
        keys.update((feature.get("properties") or {}).keys())

    index_fields = [k for k in sorted(keys) if _is_index_column(k)]
    regular = [k for k in sorted(keys) if not _is_index_column(k)]
    return ["id", *regular, *index_fields, "type", "geometry"]


def _sort_value(feature: Dict[str, Any], column: str):
    if column == "id":
        return feature.get("id")
    if column == "type":
        return (feature.get("geometry") or {}).get("type")
    if column == "geometry":
        return 1 if feature.get("geometry") else 0
    return (feature.get("properties") or {}).get(column)


def sort_features(features: Sequence[Dict[str, Any]], column: str,
                  direction: str = SORT_ASC) -> List[Dict[str, Any]]:
    """
    Stable sort by a table column. Missing values go last ascending and first
    descending; numbers compare numerically, anything else case-insensitively.
    """
    sign = 1 if direction == SORT_ASC else -1

    def compare(a, b) -> int:
        a_val, b_val = _sort_value(a, column), _sort_value(b, column)
        if a_val is None and b_val is None:
            return 0
        if a_val is None:
            return sign
        if b_val is None:
            return -sign
        a_num = isinstance(a_val, (int, float)) and not isinstance(a_val, bool)
        b_num = isinstance(b_val, (int, float)) and not isinstance(b_val, bool)
        if a_num and b_num:
            result = (a_val > b_val) - (a_val < b_val)
        else:
            a_str, b_str = str(a_val).lower(), str(b_val).lower()
            result = (a_str > b_str) - (a_str < b_str)
        return sign * result

    return sorted(features, key=cmp_to_key(compare))


def _ratio_class(value: float) -> str:
    # table classes follow the 4-level scheme
    return f"ratio-cell ratio-{get_bucket_table('v4').bucket_for(value).name}"


def format_cell(feature: Dict[str, Any], column: str) -> Cell:
    if column == "id":
        return Cell(str(feature.get("id")) if feature.get("id") not in (None, "") else "-")
    if column == "type":
        return Cell((feature.get("geometry") or {}).get("type") or "-")
    if column == "geometry":
        return Cell("✓" if feature.get("geometry") else "-", "geometry-cell")

    value = (feature.get("properties") or {}).get(column)
    if value is None:
        return Cell("-")
    if column == "ratio_bad" and isinstance(value, (int, float)):
        return Cell(format_percentage(value), _ratio_class(value))
    if column == "coverage":
        has_coverage = parse_properties(JAMMING_COVERAGE, {"coverage": value}).has_coverage
        return Cell("✓ Has Coverage" if has_coverage else "✗ No Coverage",
                    "coverage-yes" if has_coverage else "coverage-no")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Cell(format_number(value), "number-cell")
    if isinstance(value, list):
        return Cell(f"[{len(value)} items]", "array-cell")
    if isinstance(value, bool):
        return Cell(str(value).lower())
    return Cell(str(value))


def build_table(geojson: Optional[Dict[str, Any]], sort_column: Optional[str] = None,
                sort_direction: str = SORT_ASC) -> Table:
    features = features_of(geojson)
    if not features:
        return Table(
            columns=["No data available"],
            rows=[[Cell("Load data using the controls to see results")]],
            count_label="0 records",
        )

    columns = table_columns(features)
    if sort_column:
        features = sort_features(features, sort_column, sort_direction)

    rows = [[format_cell(f, col) for col in columns] for f in features]
    return Table(
        columns=columns,
        rows=rows,
        count_label=f"{len(features)} records",
        sort_column=sort_column,
        sort_direction=sort_direction,
    )


def next_sort_state(current_column: Optional[str], current_direction: str,
                    column: str) -> Tuple[str, str]:
    """Clicking the sorted column flips direction; a new column starts ascending."""
    if current_column == column:
        return column, SORT_DESC if current_direction == SORT_ASC else SORT_ASC
    return column, SORT_ASC


# ============================================================================
# JSON tree
# ============================================================================

@dataclass
class JsonNode:
    key: Optional[str]
    kind: str  # object | array | string | number | boolean | null
    value: Any = None
    children: List["JsonNode"] = field(default_factory=list)
    collapsed: bool = False

    @property
    def is_container(self) -> bool:
        return self.kind in ("object", "array")

    @property
    def summary(self) -> str:
        if self.kind == "array" and self.children:
            return f"{len(self.children)} items"
        if self.kind == "object" and self.children:
            return f"{len(self.children)} properties"
        return ""

    def toggle(self):
        if self.is_container and self.children:
            self.collapsed = not self.collapsed


def render_json_tree(data: Any, key: Optional[str] = None) -> JsonNode:
    if isinstance(data, dict):
        return JsonNode(key, "object",
                        children=[render_json_tree(v, str(k)) for k, v in data.items()])
    if isinstance(data, (list, tuple)):
        return JsonNode(key, "array", children=[render_json_tree(v) for v in data])
    if data is None:
        return JsonNode(key, "null")
    if isinstance(data, bool):
        return JsonNode(key, "boolean", data)
    if isinstance(data, (int, float)):
        return JsonNode(key, "number", data)
    return JsonNode(key, "string", str(data))


def _scalar_text(node: JsonNode) -> str:
    if node.kind == "string":
        return f'"{node.value}"'
    if node.kind == "null":
        return "null"
    if node.kind == "boolean":
        return "true" if node.value else "false"
    return str(node.value)


def json_tree_lines(node: JsonNode, indent: int = 0, width: int = 2) -> List[str]:
    """Text rendering; collapsed containers show their summary only."""
    pad = " " * (indent * width)
    label = f'"{node.key}": ' if node.key is not None else ""

    if not node.is_container:
        return [f"{pad}  {label}{_scalar_text(node)}"]

    open_b, close_b = ("[", "]") if node.kind == "array" else ("{", "}")
    toggle = "▶" if node.collapsed else "▼"
    if not node.children:
        return [f"{pad}  {label}{open_b}{close_b}"]

    header = f"{pad}{toggle} {label}{open_b} {node.summary}"
    if node.collapsed:
        return [f"{header} {close_b}"]

    lines = [header]
    for child in node.children:
        lines.extend(json_tree_lines(child, indent + 1, width))
    lines.append(f"{pad}  {close_b}")
    return lines


# ============================================================================
# Popups
# ============================================================================

def jamming_popup(properties: Dict[str, Any]) -> List[Tuple[str, str]]:
    props = parse_properties(JAMMING_AGG, properties)
    rows = []
    if props.h3_indices:
        rows.append(("Cells in Group", str(len(props.h3_indices))))
    elif props.h3_index:
        rows.append(("H3 Index", props.h3_index))
    rows.extend([
        ("Altitude", props.altitude or "N/A"),
        ("Total Aircraft", format_number(props.n_unique_ac or 0)),
        ("Good (NIC 8-11)", format_number(props.n_good or 0)),
        ("Bad (NIC 0)", format_number(props.n_bad or 0)),
        ("Severity", format_percentage(props.ratio_bad)),
    ])
    extra = props.model_extra or {}
    if extra.get("unioned"):
        rows.append(("Merged Cells", str(extra.get("unioned_count", 0))))
    return rows


def spoofing_popup(properties: Dict[str, Any]) -> List[Tuple[str, str]]:
    props = parse_properties(SPOOFING_AGG, properties)
    duration = "N/A"
    if props.timestamp_during_min and props.timestamp_during_max:
        try:
            delta = _parse_timestamp(props.timestamp_during_max) - _parse_timestamp(props.timestamp_during_min)
            duration = f"{round(delta.total_seconds())}s"
        except ValueError:
            pass
    return [
        ("Flight ID", props.flight_id or "N/A"),
        ("ICAO24", props.icao24 or "N/A"),
        ("Segment", props.segment or "N/A"),
        ("During Period", format_time_of_day(props.timestamp_during_min)),
        ("Duration", duration),
        ("Altitude (During)", format_altitude(props.altitude_during)),
        ("Track (During)", format_track(props.track_during)),
    ]
