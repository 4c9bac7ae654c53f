"""Spotlight vulnerabilities for a single host.

Both endpoints are cursor-paged on ``next_token``:

* ``/spotlight/queries/vulnerabilities/v1`` -- vulnerability ids.
* ``/spotlight/combined/vulnerabilities/v1`` -- full records, optionally
  with the ``remediation`` and ``evaluation_logic`` facets.
"""

from __future__ import annotations

from typing import Optional

from falconkit.models import RequestResult, VulnerabilityDetail
from falconkit.pagination import fetch_all_cursor
from falconkit.services.base import FalconService, build_url

VULN_QUERY_PATH = "/spotlight/queries/vulnerabilities/v1"
VULN_COMBINED_PATH = "/spotlight/combined/vulnerabilities/v1"
FACETS = "remediation,evaluation_logic"


def host_filter(aid: str) -> str:
    return f"aid:'{aid}'"


def vulnerability_query_url(base_url: str, filter: str, cursor: Optional[str] = None) -> str:
    """URL for one page of vulnerability ids."""
    return build_url(base_url, VULN_QUERY_PATH, {"filter": filter, "next_token": cursor or None})


def vulnerability_details_url(
    base_url: str,
    filter: str,
    cursor: Optional[str] = None,
    use_facets: bool = False,
) -> str:
    """URL for one page of combined vulnerability records."""
    return build_url(
        base_url,
        VULN_COMBINED_PATH,
        {
            "filter": filter,
            "facet": FACETS if use_facets else None,
            "next_token": cursor or None,
        },
    )


class SpotlightService(FalconService):
    """Vulnerability lookups."""

    api_name = "Spotlight API"

    async def get_vulnerability_ids(self, aid: str) -> RequestResult[list[str]]:
        """Return every vulnerability id reported for host *aid*."""
        result: RequestResult[list[str]] = RequestResult()
        fql = host_filter(aid)

        async def fetch_page(cursor: Optional[str]):
            return await self._get(vulnerability_query_url(self.base_url, fql, cursor))

        async def run() -> list[str]:
            return await fetch_all_cursor(
                fetch_page, self._parser(str, result), **self.retry_options
            )

        return await self._capture(result, run, f"Listing vulnerabilities for {aid}")

    async def get_vulnerability_details(
        self,
        aid: str,
        filter: Optional[str] = None,
        use_facets: bool = False,
    ) -> RequestResult[list[VulnerabilityDetail]]:
        """Return full vulnerability records for host *aid*.

        Args:
            aid: Host id; used to build the filter when *filter* is empty.
            filter: Explicit FQL filter overriding the host filter.
            use_facets: Include remediation and evaluation-logic facets.
        """
        result: RequestResult[list[VulnerabilityDetail]] = RequestResult()
        fql = filter or host_filter(aid)

        async def fetch_page(cursor: Optional[str]):
            return await self._get(
                vulnerability_details_url(self.base_url, fql, cursor, use_facets)
            )

        async def run() -> list[VulnerabilityDetail]:
            return await fetch_all_cursor(
                fetch_page, self._parser(VulnerabilityDetail, result), **self.retry_options
            )

        return await self._capture(result, run, f"Fetching vulnerability details for {aid}")
