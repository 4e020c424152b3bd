import json
from types import SimpleNamespace

import pytest


class FakeResponse:
    """Stand-in for requests.Response covering what the clients read."""

    def __init__(self, status_code=200, json_data=None, content=None):
        self.status_code = status_code
        self._json = json_data
        if content is None:
            content = json.dumps(json_data).encode("utf-8") if json_data is not None else b""
        self.content = content
        self.closed = False

    @property
    def text(self):
        return self.content.decode("utf-8", errors="replace")

    def json(self):
        if self._json is None:
            return json.loads(self.content.decode("utf-8"))
        return self._json

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeSession:
    """Records every request and replays queued responses (or raises queued exceptions)."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.headers = {}
        self.calls = []
        self.closed = False

    def _next(self, method, url, **kwargs):
        self.calls.append(SimpleNamespace(method=method, url=url, **kwargs))
        if not self.responses:
            raise AssertionError(f"unexpected {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    def patch(self, url, **kwargs):
        return self._next("PATCH", url, **kwargs)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture(autouse=True)
def clean_action_env(monkeypatch):
    """Keep workflow variables from the host environment out of the tests."""
    import os

    for key in list(os.environ):
        if key.startswith("INPUT_"):
            monkeypatch.delenv(key, raising=False)
    for key in ("GITHUB_EVENT_PATH", "GITHUB_OUTPUT", "GITHUB_REPOSITORY"):
        monkeypatch.delenv(key, raising=False)
