"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx
import pytest
import pytest_asyncio

from presigned_media.services.refresh_executor import RefreshExecutor

# Configure pytest-asyncio to auto-detect async tests
pytest_plugins = ("pytest_asyncio",)

BASE_URL = "https://api.example.test"
REFRESH_PATH = "/api/v1/files/refresh-url"


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RefreshBackend:
    """Scriptable stand-in for the refresh-url endpoint.

    Each queued item is either a dict (JSON body, status 200), an
    ``httpx.Response``, or an exception instance to raise from the transport.
    When the queue is empty a successful envelope is generated.
    """

    def __init__(self, expires_in: int = 3600) -> None:
        self.expires_in = expires_in
        self.requests: list[httpx.Request] = []
        self.queue: list[object] = []

    def push(self, *items: object) -> None:
        self.queue.extend(items)

    def success_body(self, key: str) -> dict:
        n = len(self.requests)
        return {
            "success": True,
            "data": {
                "fileKey": key,
                "presignedUrl": f"https://cdn.example.test/file/bucket/{key}?v={n}",
                "expiresIn": self.expires_in,
            },
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = request.url.params.get("fileKey", "")
        item = self.queue.pop(0) if self.queue else self.success_body(key)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, httpx.Response):
            return item
        return httpx.Response(200, content=json.dumps(item).encode(), headers={"Content-Type": "application/json"})

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def backend() -> RefreshBackend:
    return RefreshBackend()


@pytest_asyncio.fixture
async def http_client(backend: RefreshBackend):
    async with httpx.AsyncClient(
        base_url=BASE_URL,
        transport=httpx.MockTransport(backend.handler),
    ) as client:
        yield client


@pytest.fixture
def make_executor(http_client) -> Callable[..., RefreshExecutor]:
    def _make(**kwargs) -> RefreshExecutor:
        kwargs.setdefault("refresh_path", REFRESH_PATH)
        return RefreshExecutor(http_client, **kwargs)

    return _make


@pytest.fixture
def executor(make_executor) -> RefreshExecutor:
    return make_executor()
