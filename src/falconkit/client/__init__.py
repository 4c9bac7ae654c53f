"""HTTP client layer for falconkit.

Provides :class:`FalconClient`, an async context manager wrapping
:class:`httpx.AsyncClient` with bearer-token injection and typed error
mapping, plus the response helpers in :mod:`falconkit.client.response`.

Example::

    from falconkit.client import FalconClient

    async with FalconClient(settings) as client:
        resp = await client.get("/alerts/queries/alerts/v1")
"""

from falconkit.client.async_client import FalconClient

__all__ = ["FalconClient"]
