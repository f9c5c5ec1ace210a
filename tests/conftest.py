"""Shared fixtures and fakes for statcrab tests."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from statcrab.types import ContributionRecord, RepositoryRecord, Resource


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeClient:
    """
    Stand-in for GitHubClient.

    streams maps Resource -> records (or None for an absent connection).
    failures maps Resource -> list of exceptions raised on successive calls
    before the records are returned.
    """

    def __init__(
        self,
        streams: Optional[Dict[Resource, Any]] = None,
        failures: Optional[Dict[Resource, List[Exception]]] = None,
        delay: float = 0.0,
    ):
        self.streams = streams or {}
        self.failures = {k: list(v) for k, v in (failures or {}).items()}
        self.delay = delay
        self.calls: List[tuple] = []
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def fetch_all(self, resource: Resource, username: str):
        self.calls.append((resource, username))
        if self.delay:
            await asyncio.sleep(self.delay)
        pending = self.failures.get(resource)
        if pending:
            raise pending.pop(0)
        return self.streams.get(resource, [])

    async def aclose(self) -> None:
        self.closed = True


def make_repo(name: str, languages: Optional[Dict[str, int]] = None, **kwargs: Any) -> RepositoryRecord:
    """RepositoryRecord with the name doubling as id."""
    kwargs.setdefault("id", f"R_{name}")
    kwargs.setdefault("owner", "octocat")
    return RepositoryRecord(name=name, languages=languages or {}, **kwargs)


def contributions(*repos: str, count: int = 1) -> List[ContributionRecord]:
    return [ContributionRecord(repository=r, count=count) for r in repos]


def graphql_response(
    data: Optional[Dict[str, Any]] = None,
    errors: Optional[List[Dict[str, Any]]] = None,
    remaining: int = 4999,
    reset_at: str = "2030-01-01T00:00:00Z",
    status_code: int = 200,
) -> httpx.Response:
    """Build a GraphQL HTTP response with a rateLimit block."""
    body: Dict[str, Any] = {}
    if data is not None:
        body["data"] = dict(data, rateLimit={"cost": 1, "remaining": remaining, "resetAt": reset_at})
    if errors is not None:
        body["errors"] = errors
    return httpx.Response(status_code, json=body)


class RecordingHandler:
    """httpx.MockTransport handler that replays queued responses and records requests."""

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.requests: List[Dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        if not self.responses:
            raise AssertionError("Unexpected upstream request")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_transport() -> Callable[[List[Any]], tuple]:
    """Returns a factory: responses -> (transport, handler)."""

    def factory(responses: List[Any]):
        handler = RecordingHandler(responses)
        return httpx.MockTransport(handler), handler

    return factory
