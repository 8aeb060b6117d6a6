"""Tests for aduplanner/vision/client.py with a fake HTTP session."""
import pytest
import requests

from aduplanner.config import VisionServiceConfig
from aduplanner.errors import MalformedResponse, ServiceError
from aduplanner.models import LatLng, VisionRequest
from aduplanner.vision import VisionServiceClient


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON")
        return self._payload


class FakeSession:
    """Returns (or raises) queued outcomes in order and records each post."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.posts = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        pass


def make_client(*outcomes, **config):
    session = FakeSession(*outcomes)
    sleeps = []
    client = VisionServiceClient(
        VisionServiceConfig(base_url="http://vision.test", **config),
        session=session,
        sleep=sleeps.append,
    )
    return client, session, sleeps


REQUEST = VisionRequest(
    image="data:image/jpeg;base64,AAAA",
    prompt="Find the boundary",
    property_center=LatLng(lat=37.77, lng=-122.42),
    zoom_level=19,
    type="property",
)


def test_posts_camel_case_body():
    client, session, _ = make_client(FakeResponse(200, {"corners": []}))
    assert client.analyze(REQUEST) == {"corners": []}
    post = session.posts[0]
    assert post["url"] == "http://vision.test/api/vision/analyze"
    assert post["json"] == {
        "image": "data:image/jpeg;base64,AAAA",
        "prompt": "Find the boundary",
        "propertyCenter": {"lat": 37.77, "lng": -122.42},
        "zoomLevel": 19.0,
        "type": "property",
    }
    assert post["timeout"] == 90


def test_error_message_passed_through_verbatim():
    client, _, _ = make_client(FakeResponse(500, {"error": "Image URL or data URL is required"}))
    with pytest.raises(ServiceError) as exc_info:
        client.analyze(REQUEST)
    assert str(exc_info.value) == "Image URL or data URL is required"
    assert exc_info.value.message == "Image URL or data URL is required"
    assert exc_info.value.status_code == 500


def test_error_without_body():
    client, _, _ = make_client(FakeResponse(404))
    with pytest.raises(ServiceError, match="HTTP 404"):
        client.analyze(REQUEST)


def test_error_field_in_success_body():
    client, _, _ = make_client(FakeResponse(200, {"error": "No analysis generated"}))
    with pytest.raises(ServiceError, match="No analysis generated"):
        client.analyze(REQUEST)


def test_non_json_success_body():
    client, _, _ = make_client(FakeResponse(200))
    with pytest.raises(MalformedResponse):
        client.analyze(REQUEST)


def test_retries_transient_status():
    client, session, sleeps = make_client(
        FakeResponse(503), FakeResponse(429), FakeResponse(200, {"raw": "{}"}),
        retry_delay=2.0,
    )
    assert client.analyze(REQUEST) == {"raw": "{}"}
    assert len(session.posts) == 3
    assert sleeps == [2.0, 4.0]


def test_transient_status_on_last_attempt_is_error():
    client, _, _ = make_client(FakeResponse(503, {"error": "busy"}), max_retries=1)
    with pytest.raises(ServiceError, match="busy") as exc_info:
        client.analyze(REQUEST)
    assert exc_info.value.status_code == 503


def test_timeouts_exhaust_retries():
    client, session, sleeps = make_client(
        requests.exceptions.Timeout(), requests.exceptions.Timeout(), requests.exceptions.Timeout(),
    )
    with pytest.raises(ServiceError, match="timed out"):
        client.analyze(REQUEST)
    assert len(session.posts) == 3
    assert len(sleeps) == 2


def test_connection_error_then_success():
    client, _, _ = make_client(
        requests.exceptions.ConnectionError("refused"), FakeResponse(200, {"processed": {}}),
    )
    assert client.analyze(REQUEST) == {"processed": {}}
