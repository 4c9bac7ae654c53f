"""Pagination engine -- drives paged fetches until a result set is exhausted.

Three drivers share the same shape: the caller supplies a *fetch* callable
that issues one HTTP request and a *parse* callable that turns the response
into a :class:`~falconkit.models.PageEnvelope`. Both are wrapped
independently in :func:`~falconkit.retry.retry_on_failure`, so a transient
transport error and a transient parse error are retried the same way.

* :func:`fetch_all_cursor` -- follows ``meta.pagination.next_token``.
* :func:`fetch_all_offset` -- advances ``offset`` by ``page_size``.
* :func:`fetch_in_chunks` -- one detail request per slice of an id list.

Results keep arrival order: pages in the order fetched, items in API order
within a page. Nothing is deduplicated or sorted; overlapping pages from a
misbehaving server show up as duplicates.

.. warning::
   :func:`fetch_all_cursor` has no iteration cap. A server that never
   returns an empty cursor makes it loop forever.
"""

from __future__ import annotations

from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

import httpx

from falconkit.models import PageEnvelope
from falconkit.output import get_output
from falconkit.retry import DEFAULT_DELAY, DEFAULT_MAX_ATTEMPTS, retry_on_failure

T = TypeVar("T")
K = TypeVar("K")

FetchByCursor = Callable[[Optional[str]], Awaitable[httpx.Response]]
FetchByOffset = Callable[[int], Awaitable[httpx.Response]]
FetchChunk = Callable[[list[K]], Awaitable[httpx.Response]]
ParsePage = Callable[[httpx.Response], Awaitable[PageEnvelope[T]]]

DEFAULT_PAGE_SIZE = 500
DEFAULT_CHUNK_SIZE = 100


class OffsetStop(str, Enum):
    """Termination rule for :func:`fetch_all_offset`.

    The two rules disagree when a server rounds or caps page sizes, so each
    call site picks one explicitly. Either way an empty page always stops.
    """

    TOTAL = "total"
    """Stop once ``offset >= total`` for the last reported ``total``.
    A page without ``total`` keeps paging."""

    SHORT_PAGE = "short_page"
    """Stop after a page with fewer than ``page_size`` items."""


async def fetch_all_cursor(
    fetch_page: FetchByCursor,
    parse_page: ParsePage[T],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
) -> list[T]:
    """Collect every item of a cursor-paginated listing.

    The first call receives ``None``; each following call receives the
    ``next_token`` of the previous page. Paging ends on a missing or empty
    cursor.

    Args:
        fetch_page: ``async (cursor) -> response``.
        parse_page: ``async (response) -> PageEnvelope``.
        max_attempts: Attempts per fetch and per parse.
        delay: Seconds between attempts.

    Returns:
        The concatenated items of all pages.
    """
    results: list[T] = []
    cursor: Optional[str] = None
    page_number = 0

    while True:
        page_number += 1
        current = cursor
        response = await retry_on_failure(
            lambda: fetch_page(current), max_attempts, delay, description=f"Page {page_number} fetch"
        )
        envelope = await retry_on_failure(
            lambda: parse_page(response), max_attempts, delay, description=f"Page {page_number} parse"
        )
        results.extend(envelope.items)
        cursor = envelope.cursor
        get_output().debug(
            f"Page {page_number}: {len(envelope.items)} item(s), {len(results)} total"
        )
        if not cursor:
            return results


async def fetch_all_offset(
    fetch_page: FetchByOffset,
    parse_page: ParsePage[T],
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    stop_on: OffsetStop = OffsetStop.TOTAL,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
) -> list[T]:
    """Collect every item of an offset-paginated listing.

    Args:
        fetch_page: ``async (offset) -> response``; the callable is
            responsible for sending ``limit=page_size``.
        parse_page: ``async (response) -> PageEnvelope``.
        page_size: Offset increment per page.
        stop_on: Termination rule, see :class:`OffsetStop`.
        max_attempts: Attempts per fetch and per parse.
        delay: Seconds between attempts.

    Returns:
        The concatenated items of all pages.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    results: list[T] = []
    offset = 0
    total: Optional[int] = None

    while True:
        current = offset
        response = await retry_on_failure(
            lambda: fetch_page(current), max_attempts, delay, description=f"Page fetch at offset {current}"
        )
        envelope = await retry_on_failure(
            lambda: parse_page(response), max_attempts, delay, description=f"Page parse at offset {current}"
        )
        items = envelope.items
        results.extend(items)
        if envelope.total is not None:
            total = envelope.total
        offset += page_size
        get_output().debug(
            f"Offset {current}: {len(items)} item(s), {len(results)}/{total if total is not None else '?'}"
        )

        if not items:
            return results
        if stop_on == OffsetStop.SHORT_PAGE:
            if len(items) < page_size:
                return results
        elif total is not None and offset >= total:
            return results


def chunked(items: Sequence[K], size: int) -> list[list[K]]:
    """Split *items* into consecutive lists of at most *size* elements."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


async def fetch_in_chunks(
    ids: Sequence[K],
    fetch_chunk: FetchChunk[K],
    parse_chunk: ParsePage[T],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_DELAY,
) -> list[T]:
    """Fetch details for *ids* one chunk at a time.

    A chunk that still fails after all attempts aborts the whole call; the
    items gathered so far are discarded.

    Args:
        ids: Identifiers to look up, in order.
        fetch_chunk: ``async (ids_chunk) -> response``.
        parse_chunk: ``async (response) -> PageEnvelope``.
        chunk_size: Maximum ids per request.
        max_attempts: Attempts per fetch and per parse.
        delay: Seconds between attempts.

    Returns:
        Parsed items of all chunks, in chunk order.
    """
    results: list[T] = []
    chunks = chunked(ids, chunk_size)
    for index, chunk in enumerate(chunks, start=1):
        response = await retry_on_failure(
            lambda: fetch_chunk(chunk), max_attempts, delay, description=f"Chunk {index}/{len(chunks)} fetch"
        )
        envelope = await retry_on_failure(
            lambda: parse_chunk(response), max_attempts, delay, description=f"Chunk {index}/{len(chunks)} parse"
        )
        results.extend(envelope.items)
    return results
