"""Tests for the cursor, offset and chunked pagination drivers."""

from __future__ import annotations

from typing import Any, Optional

import httpx
import pytest

from falconkit.models import PageEnvelope
from falconkit.pagination import (
    OffsetStop,
    chunked,
    fetch_all_cursor,
    fetch_all_offset,
    fetch_in_chunks,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _page(
    resources: list[Any],
    next_token: Optional[str] = None,
    total: Optional[int] = None,
) -> httpx.Response:
    pagination: dict[str, Any] = {}
    if next_token is not None:
        pagination["next_token"] = next_token
    if total is not None:
        pagination["total"] = total
    return httpx.Response(200, json={"resources": resources, "meta": {"pagination": pagination}})


async def _parse(response: httpx.Response) -> PageEnvelope[str]:
    return PageEnvelope[str].model_validate_json(response.text)


class _Recorder:
    """Fetch callable returning canned responses keyed by the argument it is called with."""

    def __init__(self, pages: dict[Any, httpx.Response]) -> None:
        self.pages = pages
        self.calls: list[Any] = []

    async def __call__(self, key: Any) -> httpx.Response:
        self.calls.append(key)
        return self.pages[key]


def _ids(prefix: str, count: int) -> list[str]:
    return [f"{prefix}{i}" for i in range(count)]


# ---------------------------------------------------------------------------
# Cursor
# ---------------------------------------------------------------------------


class TestCursorPagination:
    @pytest.mark.asyncio
    async def test_single_page_without_cursor(self) -> None:
        fetch = _Recorder({None: _page(["a", "b"])})
        assert await fetch_all_cursor(fetch, _parse, delay=0) == ["a", "b"]
        assert fetch.calls == [None]

    @pytest.mark.asyncio
    async def test_follows_cursor_until_empty(self) -> None:
        fetch = _Recorder(
            {
                None: _page(["a", "b"], next_token="c1"),
                "c1": _page(["c"], next_token="c2"),
                "c2": _page(["d", "e"], next_token=""),
            }
        )
        parsed: list[httpx.Response] = []

        async def parse(response: httpx.Response) -> PageEnvelope[str]:
            parsed.append(response)
            return await _parse(response)

        assert await fetch_all_cursor(fetch, parse, delay=0) == ["a", "b", "c", "d", "e"]
        assert fetch.calls == [None, "c1", "c2"]
        assert len(parsed) == 3

    @pytest.mark.asyncio
    async def test_empty_first_page(self) -> None:
        fetch = _Recorder({None: _page([])})
        assert await fetch_all_cursor(fetch, _parse, delay=0) == []

    @pytest.mark.asyncio
    async def test_duplicates_are_kept(self) -> None:
        fetch = _Recorder({None: _page(["a", "b"], next_token="x"), "x": _page(["b", "c"])})
        assert await fetch_all_cursor(fetch, _parse, delay=0) == ["a", "b", "b", "c"]

    @pytest.mark.asyncio
    async def test_failed_fetch_is_retried_with_same_cursor(self) -> None:
        calls: list[Optional[str]] = []

        async def fetch(cursor: Optional[str]) -> httpx.Response:
            calls.append(cursor)
            if cursor == "c1" and calls.count("c1") == 1:
                raise httpx.ReadTimeout("slow")
            return _page(["a"], next_token="c1") if cursor is None else _page(["b"])

        assert await fetch_all_cursor(fetch, _parse, max_attempts=3, delay=0) == ["a", "b"]
        assert calls == [None, "c1", "c1"]

    @pytest.mark.asyncio
    async def test_failed_parse_is_retried_without_refetching(self) -> None:
        fetch = _Recorder({None: _page(["a"])})
        attempts = 0

        async def parse(response: httpx.Response) -> PageEnvelope[str]:
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                raise ValueError("transient parse failure")
            return await _parse(response)

        assert await fetch_all_cursor(fetch, parse, max_attempts=3, delay=0) == ["a"]
        assert fetch.calls == [None]
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_exhausted_page_aborts(self) -> None:
        async def fetch(cursor: Optional[str]) -> httpx.Response:
            if cursor is None:
                return _page(["a"], next_token="c1")
            raise httpx.ConnectError("down")

        with pytest.raises(httpx.ConnectError):
            await fetch_all_cursor(fetch, _parse, max_attempts=2, delay=0)


# ---------------------------------------------------------------------------
# Offset
# ---------------------------------------------------------------------------


class TestOffsetPagination:
    @pytest.mark.asyncio
    async def test_stops_on_total(self) -> None:
        fetch = _Recorder(
            {
                0: _page(_ids("a", 500), total=1050),
                500: _page(_ids("b", 500), total=1050),
                1000: _page(_ids("c", 50), total=1050),
            }
        )
        items = await fetch_all_offset(fetch, _parse, page_size=500, delay=0)
        assert len(items) == 1050
        assert fetch.calls == [0, 500, 1000]
        assert items[0] == "a0" and items[-1] == "c49"

    @pytest.mark.asyncio
    async def test_total_zero_stops_after_one_fetch(self) -> None:
        fetch = _Recorder({0: _page([], total=0)})
        assert await fetch_all_offset(fetch, _parse, page_size=500, delay=0) == []
        assert fetch.calls == [0]

    @pytest.mark.asyncio
    async def test_missing_total_pages_until_empty(self) -> None:
        fetch = _Recorder(
            {
                0: _page(_ids("a", 2)),
                2: _page(_ids("b", 1)),
                4: _page([]),
            }
        )
        items = await fetch_all_offset(fetch, _parse, page_size=2, delay=0)
        assert items == ["a0", "a1", "b0"]
        assert fetch.calls == [0, 2, 4]

    @pytest.mark.asyncio
    async def test_last_reported_total_is_kept(self) -> None:
        fetch = _Recorder(
            {
                0: _page(_ids("a", 2), total=4),
                2: _page(_ids("b", 2)),
            }
        )
        assert len(await fetch_all_offset(fetch, _parse, page_size=2, delay=0)) == 4
        assert fetch.calls == [0, 2]

    @pytest.mark.asyncio
    async def test_short_page_stops(self) -> None:
        fetch = _Recorder(
            {
                0: _page(_ids("a", 100)),
                100: _page(_ids("b", 7)),
            }
        )
        items = await fetch_all_offset(
            fetch, _parse, page_size=100, stop_on=OffsetStop.SHORT_PAGE, delay=0
        )
        assert len(items) == 107
        assert fetch.calls == [0, 100]

    @pytest.mark.asyncio
    async def test_short_page_ignores_total(self) -> None:
        fetch = _Recorder(
            {
                0: _page(_ids("a", 2), total=2),
                2: _page([], total=2),
            }
        )
        await fetch_all_offset(fetch, _parse, page_size=2, stop_on=OffsetStop.SHORT_PAGE, delay=0)
        assert fetch.calls == [0, 2]

    @pytest.mark.asyncio
    async def test_empty_page_stops_even_with_larger_total(self) -> None:
        fetch = _Recorder({0: _page(_ids("a", 2), total=10), 2: _page([], total=10)})
        assert len(await fetch_all_offset(fetch, _parse, page_size=2, delay=0)) == 2
        assert fetch.calls == [0, 2]

    @pytest.mark.asyncio
    async def test_invalid_page_size(self) -> None:
        with pytest.raises(ValueError):
            await fetch_all_offset(_Recorder({}), _parse, page_size=0)


# ---------------------------------------------------------------------------
# Chunks
# ---------------------------------------------------------------------------


class TestChunked:
    def test_splits_with_remainder(self) -> None:
        assert chunked(list(range(5)), 2) == [[0, 1], [2, 3], [4]]

    def test_exact_multiple(self) -> None:
        assert [len(c) for c in chunked(_ids("x", 200), 100)] == [100, 100]

    def test_empty(self) -> None:
        assert chunked([], 100) == []

    def test_invalid_size(self) -> None:
        with pytest.raises(ValueError):
            chunked([1], 0)


class TestFetchInChunks:
    @pytest.mark.asyncio
    async def test_chunk_sizes_and_order(self) -> None:
        ids = _ids("id", 250)
        sizes: list[int] = []

        async def fetch_chunk(chunk: list[str]) -> httpx.Response:
            sizes.append(len(chunk))
            return _page([f"detail-{i}" for i in chunk])

        items = await fetch_in_chunks(ids, fetch_chunk, _parse, chunk_size=100, delay=0)
        assert sizes == [100, 100, 50]
        assert items == [f"detail-{i}" for i in ids]

    @pytest.mark.asyncio
    async def test_no_ids_no_requests(self) -> None:
        calls = 0

        async def fetch_chunk(chunk: list[str]) -> httpx.Response:
            nonlocal calls
            calls += 1
            return _page([])

        assert await fetch_in_chunks([], fetch_chunk, _parse, delay=0) == []
        assert calls == 0

    @pytest.mark.asyncio
    async def test_failed_chunk_aborts(self) -> None:
        seen: list[str] = []

        async def fetch_chunk(chunk: list[str]) -> httpx.Response:
            seen.append(chunk[0])
            if chunk[0] == "id100":
                raise httpx.ReadTimeout("slow")
            return _page(chunk)

        with pytest.raises(httpx.ReadTimeout):
            await fetch_in_chunks(_ids("id", 250), fetch_chunk, _parse, chunk_size=100, max_attempts=2, delay=0)
        assert seen == ["id0", "id100", "id100"]
