"""Fetch client: URL building, metadata, error mapping, endpoint defaults."""
import pytest

from conftest import FakeResponse, collection
from core.errors import NetworkError, RequestError
from service.api_client import (
    JAMMING_AGG_ENDPOINT,
    JAMMING_COVERAGE_ENDPOINT,
    SPOOFING_AGG_ENDPOINT,
    SPOOFING_H3_ENDPOINT,
    build_query,
    serialize_param,
)


def test_serialize_param_forms():
    assert serialize_param(True) == "true"
    assert serialize_param(False) == "false"
    assert serialize_param(5) == "5"
    assert serialize_param(0.05) == "0.05"
    assert serialize_param(6.0) == "6"
    assert serialize_param("FL100-FL450") == "FL100-FL450"
    assert serialize_param(["a", "b"]) == "a,b"


def test_build_query_drops_none_only():
    query = build_query({"a": None, "b": False, "c": 0, "d": "", "e": 1})
    assert query == {"b": "false", "c": "0", "d": "", "e": "1"}


def test_get_returns_body_and_metadata(api_client, fake_session):
    body = collection([])
    fake_session.add("/db-api/v1/x", FakeResponse(200, body, headers={
        "x-period-start": "2024-10-18T08:00:00Z",
        "x-period-end": "2024-10-18T14:00:00Z",
    }))

    response = api_client.get("/db-api/v1/x", {"lookback_hours": 6, "skip": None})

    assert response.data == body
    assert response.metadata.period_start == "2024-10-18T08:00:00Z"
    assert response.metadata.period_end == "2024-10-18T14:00:00Z"
    assert response.metadata.status == 200
    assert response.metadata.url == "http://localhost:3333/db-api/v1/x?lookback_hours=6"
    assert fake_session.calls[0]["headers"] == {"Accept": "application/json"}
    assert "skip" not in fake_session.calls[0]["query"]


def test_missing_period_headers_are_none(api_client, fake_session):
    fake_session.add("/db-api/v1/x", FakeResponse(200, collection([])))
    response = api_client.get("/db-api/v1/x")
    assert response.metadata.period_start is None
    assert response.metadata.period_end is None
    assert response.metadata.url == "http://localhost:3333/db-api/v1/x"


def test_non_2xx_raises_request_error(api_client, fake_session):
    fake_session.add("/db-api/v1/x", FakeResponse(503, {"error": "down"}, reason="Service Unavailable"))

    with pytest.raises(RequestError) as exc:
        api_client.get("/db-api/v1/x")

    assert exc.value.status == 503
    assert exc.value.status_text == "Service Unavailable"
    assert "503 Service Unavailable" in str(exc.value)


def test_transport_failure_raises_network_error(api_client, fake_session, connection_error):
    fake_session.add("/db-api/v1/x", connection_error)
    with pytest.raises(NetworkError):
        api_client.get("/db-api/v1/x")
    assert len(fake_session.calls) == 1  # single attempt, no retry


def test_jamming_data_defaults(api_client, fake_session):
    fake_session.add(JAMMING_AGG_ENDPOINT, FakeResponse(200, collection([])))
    api_client.get_jamming_data()
    assert fake_session.calls[0]["query"] == {
        "lookback_hours": "6",
        "altitudes": "FL100-FL450",
        "altitude_summed": "false",
        "hours_summed": "true",
        "n_obs_min": "5",
        "grouped": "false",
        "full_output": "false",
        "max_ratio_bad": "0.05",
        "max_n_bad": "3",
    }


def test_coverage_renames_n_obs_min(api_client, fake_session):
    fake_session.add(JAMMING_COVERAGE_ENDPOINT, FakeResponse(200, collection([])))
    api_client.get_jamming_coverage(n_obs_min=9)
    query = fake_session.calls[0]["query"]
    assert query["min_count"] == "9"
    assert "n_obs_min" not in query
    assert query["lookback_hours"] == "24"
    assert query["show_no_coverage"] == "false"


def test_spoofing_lookback_converted_to_minutes(api_client, fake_session):
    fake_session.add(SPOOFING_AGG_ENDPOINT, FakeResponse(200, collection([])))
    api_client.get_spoofing_data()
    api_client.get_spoofing_data(lookback_hours=2)
    assert fake_session.calls[0]["query"] == {"lookback_minutes": "360"}
    assert fake_session.calls[1]["query"] == {"lookback_minutes": "120"}


def test_spoofing_h3_defaults(api_client, fake_session):
    fake_session.add(SPOOFING_H3_ENDPOINT, FakeResponse(200, collection([])))
    api_client.get_spoofing_h3_data()
    assert fake_session.calls[0]["query"] == {
        "lookback_minutes": "1440",
        "resolution": "3",
        "coordinates_source": "interpolated",
    }


@pytest.mark.parametrize("body", [[{"detail": "x"}], "ok", 42])
def test_non_object_body_raises_request_error(api_client, fake_session, body):
    fake_session.add("/db-api/v1/x", FakeResponse(200, body))

    with pytest.raises(RequestError) as exc:
        api_client.get("/db-api/v1/x")

    assert exc.value.status == 200
    assert exc.value.status_text == "Invalid response body"
