"""Shared plumbing for the resource services.

Every public service method returns a :class:`~falconkit.models.RequestResult`
rather than raising: :meth:`FalconService._capture` runs the body of the
call and turns any :class:`~falconkit.exceptions.FalconError` into a failed
result carrying the status code, raw body and exception.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional, TypeVar
from urllib.parse import urlencode

import httpx

from falconkit.client.async_client import FalconClient
from falconkit.client.response import parse_envelope
from falconkit.exceptions import FalconError
from falconkit.models import PageEnvelope, RequestResult
from falconkit.output import get_output
from falconkit.retry import retry_on_failure

T = TypeVar("T")


def build_url(base_url: str, path: str, params: dict[str, Any]) -> str:
    """Join *base_url*, *path* and the non-``None`` *params* into a request URL.

    List values become repeated parameters (``ids=a&ids=b``).
    """
    query = urlencode({k: v for k, v in params.items() if v is not None}, doseq=True)
    return f"{base_url}{path}?{query}" if query else f"{base_url}{path}"


class FalconService:
    """Base class for one group of Falcon endpoints.

    Args:
        client: An entered :class:`~falconkit.client.FalconClient`.
    """

    api_name = "Falcon API"

    def __init__(self, client: FalconClient) -> None:
        self._client = client

    @property
    def base_url(self) -> str:
        return self._client.base_url

    @property
    def retry_options(self) -> dict[str, Any]:
        settings = self._client.settings
        return {"max_attempts": settings.max_attempts, "delay": settings.retry_delay_seconds}

    async def _get(self, url: str) -> httpx.Response:
        return await self._client.get(url)

    async def _get_with_retry(self, url: str) -> httpx.Response:
        return await retry_on_failure(
            lambda: self._get(url),
            description=f"{self.api_name} request",
            **self.retry_options,
        )

    def _parser(
        self, item_type: type[T], result: RequestResult[Any]
    ) -> Callable[[httpx.Response], Awaitable[PageEnvelope[T]]]:
        """Return an async page parser that records the body and API-level errors on *result*."""

        async def parse(response: httpx.Response) -> PageEnvelope[T]:
            return parse_envelope(response, item_type, self.api_name, result)

        return parse

    async def _capture(
        self,
        result: RequestResult[T],
        operation: Callable[[], Awaitable[T]],
        label: str,
    ) -> RequestResult[T]:
        """Run *operation* and store its outcome on *result*."""
        try:
            result.data = await operation()
            result.status_code = 200
        except FalconError as exc:
            get_output().error(f"{label} failed: {exc}")
            result.exception = exc
            result.status_code = exc.status_code or 500
            if exc.body is not None:
                result.raw_response = exc.body
            result.error_message = str(exc)
        return result


def first_or_none(items: list[T]) -> Optional[T]:
    return items[0] if items else None
