"""Spoofing events/grid loading, combined mode and stats."""
import pytest

from conftest import FakeResponse, collection, square
from core.errors import NetworkError, RequestError
from core.settings import QuerySettings
from service.api_client import SPOOFING_AGG_ENDPOINT, SPOOFING_H3_ENDPOINT
from service.spoofing_layer import (
    SpoofingLayer,
    calculate_event_stats,
    calculate_grid_stats,
    filter_by_segment,
)


def event(flight_id, icao24, segment="during"):
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [34.8, 32.0]},
        "properties": {"flight_id": flight_id, "icao24": icao24, "segment": segment},
    }


def cell(count, x=0):
    return {"type": "Feature", "geometry": square(x, 0), "properties": {"h3_index": f"83{x}", "count": count}}


EVENTS = collection([
    event("f1", "aaa111"),
    event("f2", "aaa111", "before-during"),
    event("f3", "bbb222", "during-after"),
    event("f3", "bbb222", "during-after"),
])
GRID = collection([cell(3, 0), cell(10, 1), cell(25, 2)])


# ============================================================================
# Stats
# ============================================================================

def test_event_stats():
    stats = calculate_event_stats(EVENTS)
    assert stats.total_cells == 4
    assert stats.unique_aircraft == 2
    assert stats.unique_flights == 3
    assert stats.high_severity_cells == 3


def test_grid_stats():
    stats = calculate_grid_stats(GRID)
    assert stats.total_cells == 3
    assert stats.total_affected == 38
    assert stats.high_count_cells == 2
    assert stats.as_dict()["unique_aircraft"] == 38
    assert "unique_flights" not in stats.as_dict()


def test_segment_filter():
    kept = filter_by_segment(EVENTS["features"], ("during-after",))
    assert [f["properties"]["flight_id"] for f in kept] == ["f3", "f3"]
    assert filter_by_segment(EVENTS["features"], ()) == EVENTS["features"]


# ============================================================================
# Single source
# ============================================================================

def test_load_events_only(api_client, fake_session):
    fake_session.add(SPOOFING_AGG_ENDPOINT, FakeResponse(200, EVENTS))

    result = SpoofingLayer(api_client).load(QuerySettings(data_source="spoofing/agg", lookback_hours=6))

    assert len(result.data["features"]) == 4
    assert result.stats.unique_flights == 3
    assert result.data_source == "spoofing/agg"
    assert [c["path"] for c in fake_session.calls] == [SPOOFING_AGG_ENDPOINT]
    assert fake_session.calls[0]["query"] == {"lookback_minutes": "360"}


def test_load_grid_sends_grid_parameters(api_client, fake_session):
    fake_session.add(SPOOFING_H3_ENDPOINT, FakeResponse(200, GRID))

    settings = QuerySettings(data_source="spoofing/h3", resolution=4, coordinates_source="raw")
    SpoofingLayer(api_client).load(settings)

    query = fake_session.calls[0]["query"]
    assert query["lookback_minutes"] == "1440"
    assert query["resolution"] == "4"
    assert query["coordinates_source"] == "raw"
    assert query["max_time_diff_before_sec"] == "600"


def test_events_are_filtered_by_segment(api_client, fake_session):
    fake_session.add(SPOOFING_AGG_ENDPOINT, FakeResponse(200, EVENTS))

    settings = QuerySettings(data_source="spoofing/agg", spoofing_segments=("during",))
    result = SpoofingLayer(api_client).load(settings)

    assert len(result.data["features"]) == 1
    assert result.stats.unique_aircraft == 1


# ============================================================================
# Combined mode
# ============================================================================

@pytest.mark.parametrize("selected,expected_total", [
    ("spoofing/agg", 4),
    ("spoofing/h3", 3),
])
def test_combined_renders_both_but_counts_selected(api_client, fake_session, selected, expected_total):
    fake_session.add(SPOOFING_AGG_ENDPOINT, FakeResponse(200, EVENTS))
    fake_session.add(SPOOFING_H3_ENDPOINT, FakeResponse(200, GRID))

    settings = QuerySettings(data_source=selected, show_both_spoofing_layers=True)
    result = SpoofingLayer(api_client).load(settings)

    assert len(result.data["features"]) == 7
    assert result.stats.total_cells == expected_total
    assert result.data_source == selected
    assert {c["path"] for c in fake_session.calls} == {SPOOFING_AGG_ENDPOINT, SPOOFING_H3_ENDPOINT}


def test_combined_puts_selected_features_first(api_client, fake_session):
    fake_session.add(SPOOFING_AGG_ENDPOINT, FakeResponse(200, EVENTS))
    fake_session.add(SPOOFING_H3_ENDPOINT, FakeResponse(200, GRID, headers={"x-period-end": "grid-end"}))

    settings = QuerySettings(data_source="spoofing/h3", show_both_spoofing_layers=True)
    result = SpoofingLayer(api_client).load(settings)

    assert "count" in result.data["features"][0]["properties"]
    assert "flight_id" in result.data["features"][-1]["properties"]
    assert result.metadata.period_end == "grid-end"


def test_combined_fails_if_either_request_fails(api_client, fake_session, connection_error):
    fake_session.add(SPOOFING_AGG_ENDPOINT, FakeResponse(200, EVENTS))
    fake_session.add(SPOOFING_H3_ENDPOINT, connection_error)

    settings = QuerySettings(data_source="spoofing/agg", show_both_spoofing_layers=True)
    with pytest.raises(NetworkError):
        SpoofingLayer(api_client).load(settings)


def test_combined_surfaces_http_errors(api_client, fake_session):
    fake_session.add(SPOOFING_AGG_ENDPOINT, FakeResponse(500, {}, reason="Internal Server Error"))
    fake_session.add(SPOOFING_H3_ENDPOINT, FakeResponse(200, GRID))

    settings = QuerySettings(data_source="spoofing/h3", show_both_spoofing_layers=True)
    with pytest.raises(RequestError):
        SpoofingLayer(api_client).load(settings)


def test_numeric_flight_ids_are_counted(api_client, fake_session):
    body = collection([event(123456, 4001), event(123456, 4001), event(654321, "abc123")])
    fake_session.add(SPOOFING_AGG_ENDPOINT, FakeResponse(200, body))

    result = SpoofingLayer(api_client).load(QuerySettings(data_source="spoofing/agg"))

    assert result.stats.total_cells == 3
    assert result.stats.unique_flights == 2
    assert result.stats.unique_aircraft == 2
