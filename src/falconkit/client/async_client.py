"""Asynchronous Falcon API client with bearer-token injection and error mapping.

:class:`FalconClient` wraps :class:`httpx.AsyncClient` and owns the
:class:`~falconkit.auth.TokenManager` for the tenant. Each call to
:meth:`FalconClient.request` makes exactly one HTTP attempt; bounded retry
is layered on top by the pagination engine and the resource services via
:func:`~falconkit.retry.retry_on_failure`.

Failures are mapped to typed exceptions carrying the status code and raw
body:

* network / timeout errors -> :class:`~falconkit.exceptions.ConnectionError_`
* other request failures (redirect loops, undecodable bodies) ->
  :class:`~falconkit.exceptions.TransportError`
* 401 / 403 -> :class:`~falconkit.exceptions.UnauthorizedError` (the cached
  token is dropped so a retry re-authenticates)
* 404 -> :class:`~falconkit.exceptions.NotFoundError`
* anything else outside 2xx -> :class:`~falconkit.exceptions.ServerError`

Request timeouts are inherited from the ``request_timeout`` setting handed
to httpx; nothing else bounds a call.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional

import httpx

from falconkit.auth.token_manager import TokenManager
from falconkit.config import validate_settings
from falconkit.exceptions import (
    ConnectionError_,
    NotFoundError,
    ServerError,
    TransportError,
    UnauthorizedError,
)
from falconkit.models import FalconSettings
from falconkit.output import get_output


class FalconClient:
    """Asynchronous HTTP client for the Falcon API.

    Must be used as an async context manager so that the underlying
    connection pool is opened and closed.

    Args:
        settings: Connection settings. Validated immediately, so bad
            configuration fails before any network call.
        transport: Optional httpx transport (tests pass
            :class:`httpx.MockTransport`).
        clock: Monotonic time source forwarded to the token manager.

    Raises:
        ConfigError: If *settings* fail validation.

    Example::

        async with FalconClient(settings) as client:
            response = await client.get("/devices/queries/devices/v1?limit=10")
    """

    def __init__(
        self,
        settings: FalconSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        validate_settings(settings)
        self._settings = settings
        self._transport = transport
        self._clock = clock
        self._client: Optional[httpx.AsyncClient] = None
        self._token_manager: Optional[TokenManager] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> FalconClient:
        self._client = httpx.AsyncClient(
            timeout=self._settings.request_timeout,
            verify=self._settings.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        self._token_manager = TokenManager(self._settings, self._client, clock=self._clock)
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Accessors
    # ------------------------------------------------------------------ #

    @property
    def settings(self) -> FalconSettings:
        return self._settings

    @property
    def base_url(self) -> str:
        return self._settings.base_url

    @property
    def token_manager(self) -> TokenManager:
        assert self._token_manager is not None, "Client not initialised -- use as async context manager"
        return self._token_manager

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def request(
        self,
        method: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """Send one authenticated request.

        Args:
            method: HTTP method.
            url: Absolute URL, or a path appended to the configured base URL.
            params: Extra query parameters.
            headers: Extra request headers.

        Returns:
            The 2xx :class:`httpx.Response`.

        Raises:
            AuthError: If no bearer token could be obtained.
            UnauthorizedError: On 401 / 403.
            NotFoundError: On 404.
            ServerError: On any other non-2xx status.
            ConnectionError_: On network or timeout errors.
            TransportError: On any other request failure, such as too many
                redirects.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        token = await self.token_manager.get_token()
        merged_headers: dict[str, str] = {"Accept": "application/json"}
        merged_headers.update(headers or {})
        merged_headers["Authorization"] = f"Bearer {token}"

        if not url.startswith(("http://", "https://")):
            url = f"{self._settings.base_url}{url}"

        get_output().debug(f"{method.upper()} {url}")
        try:
            response = await self._client.request(
                method, url, params=params, headers=merged_headers,
            )
        except httpx.TransportError as exc:
            raise ConnectionError_(f"{method.upper()} {url} failed: {exc}") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"{method.upper()} {url} failed: {exc}") from exc

        self._map_response_error(response)
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated GET request. See :meth:`request`."""
        return await self.request("GET", url, **kwargs)

    async def is_reachable(self) -> bool:
        """Shortcut for :meth:`TokenManager.is_reachable`."""
        return await self.token_manager.is_reachable()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for any non-2xx status."""
        status = response.status_code
        if 200 <= status < 300:
            return

        body = response.text
        msg = f"HTTP {status}"
        snippet = body[:200] if body else ""
        full_msg = f"{msg}: {snippet}" if snippet else msg

        if status in (401, 403):
            self.token_manager.invalidate()
            raise UnauthorizedError(full_msg, status_code=status, body=body)
        if status == 404:
            raise NotFoundError(full_msg, status_code=status, body=body)
        raise ServerError(full_msg, status_code=status, body=body)
