"""Shared test fixtures for falconkit.

Provides a fake Falcon API built on :class:`httpx.MockTransport`, a
controllable monotonic clock, default settings with zero retry delay, and
automatic reset of the global output manager.
"""

from __future__ import annotations

from typing import Any, Callable, Union

import httpx
import pytest

from falconkit.models import FalconSettings
from falconkit.output import OutputManager, reset_output, set_output


BASE_URL = "https://api.falcon.test"

Handler = Callable[[httpx.Request], httpx.Response]
RouteTarget = Union[Handler, httpx.Response, list]


# ---------------------------------------------------------------------------
# Output isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _quiet_output_between_tests():
    """Install a quiet, colourless output manager and reset it afterwards."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> FalconSettings:
    """Valid settings with no delay between retry attempts."""
    return FalconSettings(
        base_url=BASE_URL,
        client_id="test-client-id",
        client_secret="test-client-secret",
        retry_delay_seconds=0,
    )


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------


def _json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code=status_code, json=data)


def _copy(response: httpx.Response) -> httpx.Response:
    return httpx.Response(
        status_code=response.status_code, headers=response.headers, content=response.content
    )


class FakeFalconApi:
    """Routes requests by path to canned responses and records every call.

    The token endpoint is pre-routed to return ``tok-1``, ``tok-2``, ... with
    ``expires_in=1800``. A route may be a handler function, a single
    response, or a list of responses served in order (the last one repeats).
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_count = 0
        self._routes: dict[str, RouteTarget] = {"/oauth2/token": self._issue_token}

    def _issue_token(self, request: httpx.Request) -> httpx.Response:
        self.token_count += 1
        return _json_response({"access_token": f"tok-{self.token_count}", "expires_in": 1800})

    def route(self, path: str, target: RouteTarget) -> None:
        if isinstance(target, list):
            target = list(target)
        self._routes[path] = target

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        target = self._routes.get(request.url.path)
        if target is None:
            return _json_response({"errors": [{"code": 404, "message": "no route"}]}, 404)
        if isinstance(target, list):
            return _copy(target.pop(0) if len(target) > 1 else target[0])
        if isinstance(target, httpx.Response):
            return _copy(target)
        return target(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def falcon_api() -> FakeFalconApi:
    return FakeFalconApi()

