import pytest
import requests

from listing_form.core.autocomplete import AutocompleteController
from listing_form.core.cache import ResponseCache
from listing_form.vendors.suggestions import SuggestionClient, build_request_url

BASE_URL = "https://places.example.test/suggest"

_INVALID_JSON = object()


class DummyResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else []

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._payload is _INVALID_JSON:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class DummySession:
    """Answers only URLs registered for an exact query."""

    def __init__(self):
        self.calls = []
        self.responses = {}
        self.error = None

    def respond(self, query, payload=None, status_code=200):
        self.responses[build_request_url(BASE_URL, query)] = DummyResponse(status_code, payload)

    def respond_invalid_json(self, query):
        self.respond(query, payload=_INVALID_JSON)

    def get(self, url, timeout=None):
        self.calls.append((url, timeout))
        if self.error is not None:
            raise self.error
        if url not in self.responses:
            raise requests.ConnectionError(f"no mock response for {url}")
        return self.responses[url]


class FakeTimer:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers fire on ``advance``, fetches run on ``run_pending``."""

    def __init__(self):
        self.now = 0.0
        self.timers = []
        self.tasks = []
        self.shut_down = False

    def call_later(self, delay, callback):
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def submit(self, fn, *args):
        self.tasks.append((fn, args))

    def advance(self, seconds):
        self.now += seconds
        due = [t for t in self.timers if not t.cancelled and t.due <= self.now]
        self.timers = [t for t in self.timers if not t.cancelled and t not in due]
        for timer in due:
            timer.callback()

    def run_pending(self):
        while self.tasks:
            fn, args = self.tasks.pop(0)
            fn(*args)

    def shutdown(self):
        self.shut_down = True


@pytest.fixture
def session():
    return DummySession()


@pytest.fixture
def client(session):
    return SuggestionClient(BASE_URL, timeout=5, session=session)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def cache():
    return ResponseCache(capacity=16)


@pytest.fixture
def controller(client, cache, scheduler):
    return AutocompleteController(client, cache=cache, scheduler=scheduler, debounce_seconds=0.3)


ATHENS = {"placeId": "1", "mainText": "Athens", "secondaryText": "Greece"}
ATHENS_GA = {"placeId": "2", "mainText": "Athens", "secondaryText": "GA, USA"}
