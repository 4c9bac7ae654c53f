"""OAuth2 client-credentials token lifecycle for the Falcon API.

:class:`TokenManager` owns exactly one cached :class:`~falconkit.models.Token`
and hands out its value through :meth:`TokenManager.get_token`:

* **Fast path** -- a fresh cached token is returned without I/O and without
  taking the lock. Reading ``self._token`` is a single attribute load, and a
  refresh replaces the frozen token object in one assignment, so a reader
  never sees a half-written token.
* **Refresh path** -- the caller takes an :class:`asyncio.Lock`, re-checks
  the cache (another task may have refreshed while it waited) and only then
  POSTs ``client_id`` / ``client_secret`` to ``{base_url}/oauth2/token``.
  Concurrent callers therefore collapse into a single network call.

A token is considered fresh while ``now < expires_at - refresh_buffer``,
where ``expires_at = now + max(expires_in, default_ttl) - refresh_buffer``
at issue time. ``expires_in=0`` therefore falls back to the default TTL, and
:func:`~falconkit.config.validate_settings` keeps ``2 * refresh_buffer``
below that TTL so a new token is never already stale.

:meth:`TokenManager.run_refresh_loop` replaces the token in the background
once it is within ``early_refresh_seconds`` of going stale, so foreground
callers keep hitting the fast path. It is never started implicitly: the
owner starts it with :meth:`TokenManager.start_background_refresh` and
stops it by setting the :class:`asyncio.Event` it passed in (or by
cancelling the task).

Timeouts are whatever the shared :class:`httpx.AsyncClient` was configured
with; the manager adds none of its own.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from falconkit.exceptions import AuthError, FalconError, ServerError
from falconkit.models import FalconSettings, Token, TokenResponse
from falconkit.output import get_output
from falconkit.retry import retry_on_failure

TOKEN_PATH = "/oauth2/token"
PROBE_PATH = "/devices/queries/devices/v1?limit=1"


class TokenManager:
    """Caches and refreshes the bearer token for one API client.

    Args:
        settings: Validated connection settings.
        http: Shared :class:`httpx.AsyncClient` used for the token call and
            the reachability probe. The manager does not close it.
        clock: Monotonic time source, injectable for tests.

    Example::

        async with httpx.AsyncClient() as http:
            manager = TokenManager(settings, http)
            token = await manager.get_token()
    """

    min_refresh_interval: float = 1.0
    """Lower bound on the background loop's sleep between refreshes."""

    def __init__(
        self,
        settings: FalconSettings,
        http: httpx.AsyncClient,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._http = http
        self._clock = clock
        self._token: Optional[Token] = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Optional[Token]:
        """The currently cached token, if any (for diagnostics)."""
        return self._token

    def _is_fresh(self, token: Optional[Token]) -> bool:
        return token is not None and token.is_fresh(
            self._clock(), self._settings.refresh_buffer_seconds
        )

    async def get_token(self) -> str:
        """Return a valid bearer token value, refreshing it if needed.

        Raises:
            AuthError: If the token endpoint stays unreachable after all
                attempts, rejects the credentials, or returns no token.
        """
        token = self._token
        if self._is_fresh(token):
            return token.value  # type: ignore[union-attr]

        async with self._lock:
            token = self._token
            if self._is_fresh(token):
                return token.value  # type: ignore[union-attr]
            token = await self._refresh()
            self._token = token
            return token.value

    def invalidate(self) -> None:
        """Drop the cached token so the next :meth:`get_token` refreshes."""
        self._token = None

    # ------------------------------------------------------------------ #
    # Token endpoint
    # ------------------------------------------------------------------ #

    async def _post_token_request(self) -> httpx.Response:
        response = await self._http.post(
            f"{self._settings.base_url}{TOKEN_PATH}",
            data={
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        if response.status_code >= 500:
            raise ServerError(
                f"Token endpoint returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def _refresh(self) -> Token:
        output = get_output()
        output.debug("Requesting a new bearer token")

        try:
            response = await retry_on_failure(
                self._post_token_request,
                max_attempts=self._settings.max_attempts,
                delay=self._settings.retry_delay_seconds,
                description="Token request",
            )
        except (httpx.HTTPError, ServerError) as exc:
            raise AuthError(
                f"Token endpoint unreachable after {self._settings.max_attempts} attempts: {exc}",
                status_code=getattr(exc, "status_code", None),
            ) from exc

        body = response.text
        if response.status_code >= 400:
            raise AuthError(
                f"Token request failed with status {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        try:
            parsed = TokenResponse.model_validate_json(body)
        except ValidationError as exc:
            raise AuthError(
                "Failed to retrieve access token: no access token returned",
                status_code=response.status_code,
                body=body,
            ) from exc

        if parsed.errors:
            output.warning(
                "Token endpoint reported error(s): "
                + "; ".join(str(e) for e in parsed.errors)
            )

        if not parsed.access_token:
            raise AuthError(
                "Failed to retrieve access token: no access token returned",
                status_code=response.status_code,
                body=body,
            )

        lifetime = max(parsed.expires_in or 0, self._settings.default_token_ttl_seconds)
        expires_at = self._clock() + lifetime - self._settings.refresh_buffer_seconds
        output.debug(f"Bearer token acquired, valid for {lifetime:.0f}s")
        return Token(value=parsed.access_token, expires_at=expires_at)

    # ------------------------------------------------------------------ #
    # Background refresh
    # ------------------------------------------------------------------ #

    def seconds_until_refresh(self) -> float:
        """Seconds until the cached token enters the early-refresh window.

        The window opens ``early_refresh_seconds`` before :meth:`get_token`
        would treat the token as stale.
        """
        token = self._token
        if token is None:
            return 0.0
        stale_at = token.expires_at - self._settings.refresh_buffer_seconds
        remaining = stale_at - self._settings.early_refresh_seconds - self._clock()
        return max(remaining, 0.0)

    async def refresh_ahead(self) -> str:
        """Refresh now if the token is missing or inside the early-refresh window.

        Unlike :meth:`get_token`, a token that is still fresh but close to
        going stale is replaced. Takes the same lock as the refresh path.
        """
        async with self._lock:
            token = self._token
            if token is not None and self.seconds_until_refresh() > 0:
                return token.value
            token = await self._refresh()
            self._token = token
            return token.value

    async def run_refresh_loop(self, stop: asyncio.Event) -> None:
        """Keep the cached token warm until *stop* is set.

        Refresh failures are logged and retried after
        ``refresh_cooldown_seconds``; they never end the loop.
        """
        output = get_output()
        while not stop.is_set():
            try:
                await self.refresh_ahead()
                delay = max(self.seconds_until_refresh(), self.min_refresh_interval)
            except FalconError as exc:
                output.warning(
                    f"Background token refresh failed: {exc}; "
                    f"retrying in {self._settings.refresh_cooldown_seconds}s"
                )
                delay = self._settings.refresh_cooldown_seconds

            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

    def start_background_refresh(self, stop: asyncio.Event) -> asyncio.Task[None]:
        """Start :meth:`run_refresh_loop` as a task owned by the caller."""
        return asyncio.create_task(self.run_refresh_loop(stop), name="falconkit-token-refresh")

    # ------------------------------------------------------------------ #
    # Diagnostics
    # ------------------------------------------------------------------ #

    async def is_reachable(self) -> bool:
        """Return ``True`` if a token can be obtained and an authenticated GET succeeds.

        Never raises: any failure is logged and reported as ``False``.
        """
        output = get_output()
        try:
            token = await self.get_token()
            response = await self._http.get(
                f"{self._settings.base_url}{PROBE_PATH}",
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            )
        except (FalconError, httpx.HTTPError) as exc:
            output.error(f"Falcon API is not reachable: {exc}")
            return False

        if not response.is_success:
            output.error(f"Falcon API probe returned HTTP {response.status_code}")
            return False
        return True
