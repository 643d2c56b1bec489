from decimal import Decimal

import httpx
import pytest
import respx
from conftest import api_item

from costsheet.config import Config
from costsheet.errors import PageLimitExceeded
from costsheet.fetcher import UsageFetcher
from costsheet.models import BillingPeriod

BASE_URL = "https://billing.test"
PERIOD = BillingPeriod(2023, 1)


def _usage_url(account_id: "str") -> "str":
    return (
        f"{BASE_URL}/subscriptions/{account_id}/providers/Microsoft.Billing"
        "/billingPeriods/20230101/providers/Microsoft.Consumption/usageDetails"
    )


def _fetcher(**overrides: "object") -> "UsageFetcher":
    config = Config(**{"base_url": BASE_URL, **overrides})
    return UsageFetcher(config, token="tok-123")


class TestUsageFetcherRequest:
    @respx.mock
    def test_builds_initial_request(self) -> "None":
        route = respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(200, json={"value": []})
        )

        with _fetcher() as fetcher:
            fetcher.fetch_account("sub-1", PERIOD)

        request = route.calls[0].request
        assert request.headers["Authorization"] == "Bearer tok-123"
        assert request.url.params["$expand"] == "properties/meterDetails"
        assert request.url.params["api-version"] == "2019-10-01"

    def test_uses_given_transport(self) -> "None":
        seen: "list[httpx.Request]" = []

        def handler(request: "httpx.Request") -> "httpx.Response":
            seen.append(request)
            return httpx.Response(200, json={"value": [api_item()]})

        config = Config(base_url=BASE_URL)
        fetcher = UsageFetcher(config, "tok", transport=httpx.MockTransport(handler))
        result = fetcher.fetch_account("sub-9", PERIOD)
        fetcher.close()

        assert len(result.records) == 1
        assert seen[0].url.path.startswith("/subscriptions/sub-9/")


class TestUsageFetcherPagination:
    @respx.mock
    def test_follows_next_link(self) -> "None":
        next_link = f"{_usage_url('sub-1')}?api-version=2019-10-01&$skiptoken=abc"
        route = respx.get(_usage_url("sub-1")).mock(
            side_effect=[
                httpx.Response(
                    200,
                    json={
                        "value": [api_item(resource_name="vm1"), api_item(resource_name="vm2")],
                        "nextLink": next_link,
                    },
                ),
                httpx.Response(
                    200,
                    json={"value": [api_item(resource_name="vm3")]},
                ),
            ]
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.complete
        assert result.pages == 2
        assert [r.resource_name for r in result.records] == ["vm1", "vm2", "vm3"]
        assert route.call_count == 2
        assert route.calls[1].request.url.params["$skiptoken"] == "abc"

    @respx.mock
    def test_empty_page_ends_without_records(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(200, json={"value": [], "nextLink": None})
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.complete
        assert result.pages == 1
        assert result.records == ()

    @respx.mock
    def test_costs_are_parsed_as_decimal(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(
                200,
                content=b'{"value": [{"properties": {"cost": 0.1}}]}',
                headers={"Content-Type": "application/json"},
            )
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.records[0].cost == Decimal("0.1")

    @respx.mock
    def test_page_limit_raises(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(
                200,
                json={"value": [api_item()], "nextLink": f"{_usage_url('sub-1')}?p=next"},
            )
        )

        with _fetcher(max_pages=3) as fetcher:
            with pytest.raises(PageLimitExceeded) as exc_info:
                fetcher.fetch_account("sub-1", PERIOD)

        assert exc_info.value.account_id == "sub-1"
        assert exc_info.value.max_pages == 3

    @respx.mock
    def test_follows_link_on_same_host(self) -> "None":
        route = respx.get(_usage_url("sub-1")).mock(
            side_effect=[
                httpx.Response(
                    200,
                    json={
                        "value": [api_item()],
                        "nextLink": f"{_usage_url('sub-1')}?$skiptoken=2",
                    },
                ),
                httpx.Response(200, json={"value": [api_item()]}),
            ]
        )

        with _fetcher(base_url=f"{BASE_URL}/") as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.complete
        assert route.call_count == 2

class TestUsageFetcherFailures:
    @respx.mock
    def test_error_status_returns_partial_result(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            side_effect=[
                httpx.Response(
                    200,
                    json={
                        "value": [api_item()],
                        "nextLink": f"{_usage_url('sub-1')}?$skiptoken=x",
                    },
                ),
                httpx.Response(500, json={"error": {"code": "InternalError"}}),
            ]
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert not result.complete
        assert result.error == "HTTP 500"
        assert result.pages == 1
        assert len(result.records) == 1

    @respx.mock
    def test_timeout_returns_partial_result(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(side_effect=httpx.ReadTimeout("slow"))

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.error == "request timed out"
        assert result.records == ()

    @respx.mock
    def test_connection_error_returns_partial_result(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(side_effect=httpx.ConnectError("refused"))

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert not result.complete
        assert "ConnectError" in (result.error or "")

    @respx.mock
    def test_invalid_json_returns_partial_result(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(200, content=b"<html>oops</html>")
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.error == "invalid JSON in response"

    @respx.mock
    def test_non_object_body_returns_partial_result(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(200, json=["x"])
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.error == "unexpected response shape"
        assert result.pages == 0
        assert result.records == ()

    @respx.mock
    def test_non_list_value_returns_partial_result(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(200, json={"value": {"cost": 1}})
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.error == "unexpected response shape"

    @respx.mock
    def test_non_object_items_are_kept_as_empty_records(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(
                200, json={"value": ["oops", api_item(resource_name="vm1")]}
            )
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        assert result.complete
        assert [r.resource_name for r in result.records] == [None, "vm1"]

    @respx.mock
    def test_link_to_other_host_is_not_followed(self) -> "None":
        respx.get(_usage_url("sub-1")).mock(
            return_value=httpx.Response(
                200,
                json={
                    "value": [api_item()],
                    "nextLink": "https://elsewhere.test/usageDetails?$skiptoken=x",
                },
            )
        )

        with _fetcher() as fetcher:
            result = fetcher.fetch_account("sub-1", PERIOD)

        # only the first page was requested
        assert respx.calls.call_count == 1
        assert result.error == "continuation link to another host"
        assert result.pages == 1
        assert len(result.records) == 1
