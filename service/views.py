"""
Downstream views fed by the refresh coordinator.

The map renderer is external: MapSource only needs `set_data(geojson)`. The
other views keep their rendered state so a UI layer (or a test) can read it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Protocol

from core import styling
from core.models import LoadResult, empty_collection
from service.presentation import (
    SORT_ASC,
    JsonNode,
    Table,
    build_table,
    format_bytes,
    format_number,
    next_sort_state,
    render_json_tree,
    response_size_bytes,
)

logger = logging.getLogger(__name__)


class MapSource(Protocol):
    def set_data(self, geojson: Dict[str, Any]) -> None:
        ...


class InMemoryMapSource:
    """Holds the last GeoJSON and layer specs; stands in for the renderer."""

    def __init__(self, source_id: str = styling.SOURCE_ID):
        self.source_id = source_id
        self.data: Dict[str, Any] = empty_collection()
        self.layers: List[Dict[str, Any]] = []
        self.updates = 0

    def set_data(self, geojson: Dict[str, Any]) -> None:
        self.data = geojson
        self.updates += 1

    def set_layers(self, layers: List[Dict[str, Any]]) -> None:
        self.layers = layers


class TableView:
    def __init__(self):
        self.sort_column: Optional[str] = None
        self.sort_direction: str = SORT_ASC
        self.table: Table = build_table(None)
        self._data: Optional[Dict[str, Any]] = None

    def update(self, data: Optional[Dict[str, Any]]):
        self._data = data
        self.table = build_table(data, self.sort_column, self.sort_direction)

    def sort_by(self, column: str):
        self.sort_column, self.sort_direction = next_sort_state(
            self.sort_column, self.sort_direction, column
        )
        self.table = build_table(self._data, self.sort_column, self.sort_direction)


class JsonTreeView:
    def __init__(self):
        self.root: Optional[JsonNode] = None

    def update(self, data: Optional[Dict[str, Any]]):
        self.root = render_json_tree(data) if data else None


@dataclass
class StatsDisplay:
    cells: str = "0"
    aircraft: str = "0"
    high: str = "0"
    updated: str = "-"
    size: str = "-"
    api_url: str = "-"
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    labels: Optional[Dict[str, Dict[str, Any]]] = None


class StatsPanel:
    def __init__(self, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self._clock = clock
        self.display = StatsDisplay()

    def update(self, result: LoadResult):
        stats = result.stats
        aircraft = stats.total_affected if stats.total_affected is not None else stats.unique_aircraft
        high = stats.high_count_cells if stats.high_count_cells is not None else stats.high_severity_cells
        self.display = StatsDisplay(
            cells=format_number(stats.total_cells or 0),
            aircraft=format_number(aircraft or 0),
            high=format_number(high or 0),
            updated=f"{self._clock():%I:%M %p} UTC",
            size=format_bytes(response_size_bytes(result.data)),
            api_url=result.metadata.url or "-",
            period_start=result.metadata.period_start,
            period_end=result.metadata.period_end,
            labels=styling.stats_labels_for(result.data_source),
        )


def log_notice(message: str):
    logger.error(message)
