"""Host inventory: ``/devices/queries/devices/v1`` and ``/devices/entities/devices/v2``.

Offset termination differs per call site:

* :meth:`DeviceService.get_all_server_devices` pages the full inventory
  with ``limit=500`` and stops on the reported ``total``
  (:attr:`~falconkit.pagination.OffsetStop.TOTAL`).
* :meth:`DeviceService.get_device_ids` looks up one hostname with
  ``limit=100`` and stops on the first short page
  (:attr:`~falconkit.pagination.OffsetStop.SHORT_PAGE`); hostname queries
  rarely span more than one page and some tenants omit ``total`` there.
"""

from __future__ import annotations

from typing import Optional, Sequence

from falconkit.models import DeviceDetail, RequestResult
from falconkit.pagination import OffsetStop, fetch_all_offset, fetch_in_chunks
from falconkit.services.base import FalconService, build_url, first_or_none

DEVICE_QUERY_PATH = "/devices/queries/devices/v1"
DEVICE_ENTITIES_PATH = "/devices/entities/devices/v2"

INVENTORY_PAGE_SIZE = 500
HOSTNAME_PAGE_SIZE = 100
DETAIL_CHUNK_SIZE = 100

SERVER_PRODUCT_TYPES = frozenset({"2", "3"})
"""``product_type`` codes for servers (2) and domain controllers (3)."""

SERVER_PRODUCT_TYPE_DESCS = frozenset({"server", "domain controller"})


def device_query_url(
    base_url: str,
    filter: Optional[str] = None,
    offset: int = 0,
    limit: int = INVENTORY_PAGE_SIZE,
    sort: Optional[str] = None,
) -> str:
    """URL for one page of device ids."""
    return build_url(
        base_url,
        DEVICE_QUERY_PATH,
        {"limit": limit, "offset": offset, "sort": sort, "filter": filter},
    )


def device_details_url(base_url: str, ids: Sequence[str]) -> str:
    """URL for the details of up to one chunk of device ids."""
    return build_url(base_url, DEVICE_ENTITIES_PATH, {"ids": list(ids)})


def is_server(device: DeviceDetail) -> bool:
    """True for servers and domain controllers, by type code or description."""
    if device.product_type in SERVER_PRODUCT_TYPES:
        return True
    desc = (device.product_type_desc or "").strip().lower()
    return desc in SERVER_PRODUCT_TYPE_DESCS


class DeviceService(FalconService):
    """Device (host) lookups."""

    api_name = "Devices API"

    async def get_all_server_devices(self) -> RequestResult[list[DeviceDetail]]:
        """Return every server and domain controller in the tenant.

        Pages through all device ids (most recently seen first), fetches
        their details in chunks of 100 and keeps only server-class hosts.
        """
        result: RequestResult[list[DeviceDetail]] = RequestResult()

        async def fetch_ids(offset: int):
            return await self._get(
                device_query_url(self.base_url, offset=offset, sort="last_seen.desc")
            )

        async def fetch_details(chunk: list[str]):
            return await self._get(device_details_url(self.base_url, chunk))

        async def run() -> list[DeviceDetail]:
            ids = await fetch_all_offset(
                fetch_ids,
                self._parser(str, result),
                page_size=INVENTORY_PAGE_SIZE,
                stop_on=OffsetStop.TOTAL,
                **self.retry_options,
            )
            devices = await fetch_in_chunks(
                ids,
                fetch_details,
                self._parser(DeviceDetail, result),
                chunk_size=DETAIL_CHUNK_SIZE,
                **self.retry_options,
            )
            return [d for d in devices if is_server(d)]

        return await self._capture(result, run, "Listing server devices")

    async def get_device_ids(self, hostname: str) -> RequestResult[list[str]]:
        """Return the device ids (AIDs) registered under *hostname*."""
        result: RequestResult[list[str]] = RequestResult()
        host_filter = f"hostname:'{hostname}'"

        async def fetch_ids(offset: int):
            return await self._get(
                device_query_url(
                    self.base_url, filter=host_filter, offset=offset, limit=HOSTNAME_PAGE_SIZE
                )
            )

        async def run() -> list[str]:
            return await fetch_all_offset(
                fetch_ids,
                self._parser(str, result),
                page_size=HOSTNAME_PAGE_SIZE,
                stop_on=OffsetStop.SHORT_PAGE,
                **self.retry_options,
            )

        return await self._capture(result, run, f"Looking up devices for '{hostname}'")

    async def get_device_details(self, aid: str) -> RequestResult[Optional[DeviceDetail]]:
        """Return the details of one device, or ``None`` data if it has none."""
        result: RequestResult[Optional[DeviceDetail]] = RequestResult()
        parse = self._parser(DeviceDetail, result)

        async def run() -> Optional[DeviceDetail]:
            response = await self._get_with_retry(device_details_url(self.base_url, [aid]))
            envelope = await parse(response)
            return first_or_none(envelope.items)

        return await self._capture(result, run, f"Fetching device {aid}")
