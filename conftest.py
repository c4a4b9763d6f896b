import pytest
import requests


class FakeResponse:
    def __init__(self, json_data=None, status_code=200):
        self._json = json_data if json_data is not None else {}
        self.status_code = status_code
        self.text = "" if json_data is None else "json"

    def json(self):
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error", response=self)


class Recorder:
    """Stands in for requests.get/post/put/patch and remembers every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if not self.responses:
            return FakeResponse({})
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


@pytest.fixture
def adf_story():
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {"type": "heading", "attrs": {"level": 2}, "content": [{"type": "text", "text": "Acceptance Criteria"}]},
            {"type": "paragraph", "content": [
                {"type": "text", "text": "GIVEN a logged in user WHEN they open settings THEN the profile form shows"},
            ]},
            {"type": "paragraph", "content": [
                {"type": "text", "text": "Given a guest When they open settings Then they are redirected to login"},
            ]},
        ],
    }


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def recorder():
    return Recorder
