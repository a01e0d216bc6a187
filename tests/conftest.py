"""
Pytest fixtures shared by the client, layer, coordinator and proxy tests.
No network: upstream HTTP is a fake requests-like session.
(run pytest from project root: python -m pytest tests/)
"""
import json
from urllib.parse import parse_qs, urlparse

import pytest
import requests
from fastapi.testclient import TestClient
from requests.structures import CaseInsensitiveDict

from api.api import create_app
from core.config import ProxySettings
from service.api_client import ApiClient


class FakeResponse:
    """Just enough of requests.Response for ApiClient and the proxy."""

    def __init__(self, status_code=200, body=None, headers=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self.headers = CaseInsensitiveDict(headers or {})
        self._content = body if isinstance(body, bytes) else json.dumps(body if body is not None else {}).encode()
        self.closed = False

    def json(self):
        return json.loads(self._content)

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self._content), chunk_size):
            yield self._content[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """
    Routes requests by URL path to queued FakeResponses (or exceptions).
    Every call is recorded in `calls`.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.on_request = None

    def add(self, path, response):
        self.routes[path] = response

    def _respond(self, method, url, **kwargs):
        parsed = urlparse(url)
        self.calls.append({
            "method": method,
            "url": url,
            "path": parsed.path,
            "query": {k: v[0] for k, v in parse_qs(parsed.query).items()},
            **kwargs,
        })
        if self.on_request is not None:
            self.on_request(method, url)
        response = self.routes.get(parsed.path)
        if response is None:
            return FakeResponse(404, {"detail": "not found"}, reason="Not Found")
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._respond("GET", url, **kwargs)

    def request(self, method, url, **kwargs):
        return self._respond(method, url, **kwargs)


def square(x, y, size=1.0):
    return {
        "type": "Polygon",
        "coordinates": [[[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]],
    }


def jamming_feature(ratio_bad, x=0.0, y=0.0, **props):
    properties = {"ratio_bad": ratio_bad, "n_unique_ac": 10, **props}
    if ratio_bad is None:
        del properties["ratio_bad"]
    return {"type": "Feature", "geometry": square(x, y), "properties": properties}


def collection(features):
    return {"type": "FeatureCollection", "features": list(features)}


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def api_client(fake_session):
    return ApiClient("http://localhost:3333", session=fake_session)


@pytest.fixture
def proxy_settings():
    return ProxySettings(
        api_key="test-api-key-1234567890",
        client_id="test-client",
        target_api="https://upstream.example",
    )


@pytest.fixture
def proxy_client(proxy_settings, fake_session):
    """Synchronous TestClient for the proxy app, upstream faked."""
    return TestClient(create_app(proxy_settings, session=fake_session))


@pytest.fixture
def connection_error():
    return requests.exceptions.ConnectionError("Connection refused")
