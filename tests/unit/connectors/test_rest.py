"""Unit tests for the REST query connector."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest

from laakhay.backfill.connectors import HTTPClient, QueryHint, RESTQueryClient, build_where
from laakhay.backfill.core import SORT_KEY, InvalidInputError, PermanentUpstreamError, RangeFilter
from laakhay.backfill.models import SortCursor

START = datetime(2024, 3, 1, tzinfo=UTC)
WINDOW = RangeFilter(start=START, end=START + timedelta(days=1))


@pytest.fixture
def mock_http():
    """Create a mock HTTP client."""
    http = MagicMock(spec=HTTPClient)
    http.get = AsyncMock(
        return_value={
            "results": [
                {"id": "o-1", "createdAt": "2024-03-01T00:00:01.000Z", "totalPrice": 10},
                {"id": "o-2", "createdAt": "2024-03-01T00:00:02.000Z", "totalPrice": 20},
            ],
            "total": 2,
            "offset": 0,
            "count": 2,
        }
    )
    http.close = AsyncMock()
    return http


class TestBuildWhere:
    """Test predicate rendering."""

    def test_range_predicate(self):
        where = build_where(WINDOW, QueryHint())

        assert where == (
            'createdAt >= "2024-03-01T00:00:00.000Z" and createdAt < "2024-03-02T00:00:00.000Z"'
        )

    def test_keyset_clause(self):
        after = SortCursor(timestamp=START + timedelta(hours=1), record_id="o-9")
        window = RangeFilter(start=after.timestamp, end=WINDOW.end, after=after)

        where = build_where(window, QueryHint())

        assert where.endswith(
            ' and (createdAt > "2024-03-01T01:00:00.000Z" or '
            '(createdAt = "2024-03-01T01:00:00.000Z" and id > "o-9"))'
        )

    def test_custom_field_names(self):
        hint = QueryHint(timestamp_field="lastModifiedAt")

        assert build_where(WINDOW, hint).startswith('lastModifiedAt >= "')

    def test_non_utc_bounds_are_normalized(self):
        tz = ZoneInfo("America/New_York")
        window = RangeFilter(
            start=datetime(2024, 3, 1, tzinfo=tz), end=datetime(2024, 3, 2, tzinfo=tz)
        )

        assert '"2024-03-01T05:00:00.000Z"' in build_where(window, QueryHint())

    def test_sub_millisecond_bounds_rejected(self):
        window = RangeFilter(
            start=START + timedelta(microseconds=400),
            end=START + timedelta(hours=1, microseconds=900),
        )

        with pytest.raises(InvalidInputError):
            build_where(window, QueryHint())

    def test_whole_millisecond_bounds_kept_exact(self):
        window = RangeFilter(
            start=START + timedelta(milliseconds=1), end=START + timedelta(hours=1, milliseconds=7)
        )

        assert build_where(window, QueryHint()) == (
            'createdAt >= "2024-03-01T00:00:00.001Z" and createdAt < "2024-03-01T01:00:00.007Z"'
        )

    def test_cursor_id_is_escaped(self):
        after = SortCursor(timestamp=START + timedelta(hours=1), record_id='a" or id != "')
        window = RangeFilter(start=after.timestamp, end=WINDOW.end, after=after)

        where = build_where(window, QueryHint())

        assert where.endswith('and id > "a\\" or id != \\""))')
        assert ' or id != ""' not in where

    def test_backslash_in_cursor_id_is_escaped(self):
        after = SortCursor(timestamp=START, record_id="dir\\")
        window = RangeFilter(start=START, end=WINDOW.end, after=after)

        assert build_where(window, QueryHint()).endswith('and id > "dir\\\\"))')


class TestRESTQueryClient:
    """Test RESTQueryClient."""

    def test_build_params(self, mock_http):
        client = RESTQueryClient("https://api.example.com/p", http=mock_http)

        params = client.build_params(WINDOW, SORT_KEY, offset=500, limit=250)

        assert ("sort", "createdAt asc") in params
        assert ("sort", "id asc") in params
        assert ("offset", 500) in params
        assert ("limit", 250) in params
        assert params[0][0] == "where"

    @pytest.mark.asyncio
    async def test_query_parses_envelope(self, mock_http):
        client = RESTQueryClient("https://api.example.com/p", http=mock_http)

        page = await client.query(WINDOW, SORT_KEY, 0, 500)

        assert [r.id for r in page.records] == ["o-1", "o-2"]
        assert page.records[0].timestamp == START + timedelta(seconds=1)
        assert page.records[0].payload["totalPrice"] == 10
        assert page.total == 2
        mock_http.get.assert_awaited_once()
        assert mock_http.get.await_args.args[0] == "/orders"

    @pytest.mark.asyncio
    async def test_query_refuses_sub_millisecond_window(self, mock_http):
        client = RESTQueryClient("https://api.example.com/p", http=mock_http)
        window = RangeFilter(start=START, end=START + timedelta(hours=1, microseconds=900))

        with pytest.raises(InvalidInputError):
            await client.query(window, SORT_KEY, 0, 500)
        mock_http.get.assert_not_awaited()

    def test_parse_rejects_malformed_envelope(self, mock_http):
        client = RESTQueryClient("https://api.example.com/p", http=mock_http)

        with pytest.raises(PermanentUpstreamError):
            client.parse({"items": []})
        with pytest.raises(PermanentUpstreamError):
            client.parse([])

    def test_parse_rejects_malformed_record(self, mock_http):
        client = RESTQueryClient("https://api.example.com/p", http=mock_http)

        with pytest.raises(PermanentUpstreamError):
            client.parse({"results": [{"id": "o-1"}]})
        with pytest.raises(PermanentUpstreamError):
            client.parse({"results": [{"id": "o-1", "createdAt": "2024-03-01T00:00:00"}]})

    def test_parse_without_total(self, mock_http):
        client = RESTQueryClient("https://api.example.com/p", http=mock_http)

        page = client.parse({"results": []})

        assert page.records == []
        assert page.total is None

    @pytest.mark.asyncio
    async def test_close_closes_http(self, mock_http):
        async with RESTQueryClient("https://api.example.com/p", http=mock_http):
            pass

        mock_http.close.assert_awaited_once()
