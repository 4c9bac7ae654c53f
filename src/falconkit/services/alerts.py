"""Alerts: ``/alerts/queries/alerts/v1`` (cursor-paged ids) and ``/alerts/entities/alerts/v2``."""

from __future__ import annotations

from typing import Optional, Sequence

from falconkit.models import AlertDetail, RequestResult
from falconkit.pagination import fetch_all_cursor, fetch_in_chunks
from falconkit.services.base import FalconService, build_url

ALERT_QUERY_PATH = "/alerts/queries/alerts/v1"
ALERT_ENTITIES_PATH = "/alerts/entities/alerts/v2"

DETAIL_CHUNK_SIZE = 100


def alert_query_url(base_url: str, filter: Optional[str] = None, cursor: Optional[str] = None) -> str:
    """URL for one page of alert ids."""
    return build_url(
        base_url, ALERT_QUERY_PATH, {"filter": filter or None, "next_token": cursor or None}
    )


def alert_details_url(base_url: str, ids: Sequence[str]) -> str:
    """URL for the details of a chunk of alert ids, as an ``ids:[...]`` filter."""
    quoted = ",".join(f"'{alert_id}'" for alert_id in ids)
    return build_url(base_url, ALERT_ENTITIES_PATH, {"filter": f"ids:[{quoted}]"})


class AlertService(FalconService):
    """Alert lookups."""

    api_name = "Alerts API"

    async def get_alert_ids(self, filter: Optional[str] = None) -> RequestResult[list[str]]:
        """Return every alert id matching the FQL *filter* (all alerts if ``None``)."""
        result: RequestResult[list[str]] = RequestResult()

        async def fetch_page(cursor: Optional[str]):
            return await self._get(alert_query_url(self.base_url, filter, cursor))

        async def run() -> list[str]:
            return await fetch_all_cursor(
                fetch_page, self._parser(str, result), **self.retry_options
            )

        return await self._capture(result, run, "Listing alert ids")

    async def get_alert_details(self, alert_ids: Sequence[str]) -> RequestResult[list[AlertDetail]]:
        """Return the details of *alert_ids*, fetched in chunks of 100."""
        result: RequestResult[list[AlertDetail]] = RequestResult()
        if not alert_ids:
            result.data = []
            result.status_code = 200
            return result

        async def fetch_chunk(chunk: list[str]):
            return await self._get(alert_details_url(self.base_url, chunk))

        async def run() -> list[AlertDetail]:
            return await fetch_in_chunks(
                list(alert_ids),
                fetch_chunk,
                self._parser(AlertDetail, result),
                chunk_size=DETAIL_CHUNK_SIZE,
                **self.retry_options,
            )

        return await self._capture(result, run, "Fetching alert details")
