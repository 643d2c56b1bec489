from decimal import Decimal

import httpx
import structlog

from costsheet.config import Config
from costsheet.errors import PageLimitExceeded
from costsheet.models import BillingPeriod, FetchResult, UsageRecord

logger = structlog.get_logger()

USAGE_DETAILS_PATH = (
    "/subscriptions/{account_id}/providers/Microsoft.Billing"
    "/billingPeriods/{period_key}/providers/Microsoft.Consumption/usageDetails"
)


class UsageFetcher:
    """
    UsageFetcher pulls usage details for a billing period from the
    consumption API, one account at a time, following `nextLink`
    continuation URIs until the API stops returning them.

    A failed page request does not raise; the account's FetchResult
    is returned incomplete with the records gathered so far, and the
    caller decides whether partial data is acceptable.
    """

    def __init__(
        self,
        config: "Config",
        token: "str",
        transport: "httpx.BaseTransport | None" = None,
    ) -> "None":
        self._base_url = config.base_url.rstrip("/")
        self._api_version = config.api_version
        self._max_pages = config.max_pages
        self._client: "httpx.Client" = httpx.Client(
            timeout=config.request_timeout,
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
        )

    def close(self) -> "None":
        """
        closes the underlying HTTP client.
        """
        self._client.close()

    def __enter__(self) -> "UsageFetcher":
        return self

    def __exit__(self, *exc_info: "object") -> "None":
        self.close()

    def usage_url(self, account_id: "str", period: "BillingPeriod") -> "str":
        path = USAGE_DETAILS_PATH.format(
            account_id=account_id, period_key=period.key
        )
        return f"{self._base_url}{path}"

    def fetch_account(
        self,
        account_id: "str",
        period: "BillingPeriod",
    ) -> "FetchResult":
        """
        fetches all pages of usage details for one account.
        Raises PageLimitExceeded if the continuation chain is
        longer than the configured cap.
        """
        records: "list[UsageRecord]" = []
        pages = 0
        url = self.usage_url(account_id, period)
        params: "dict[str, str] | None" = {
            "$expand": "properties/meterDetails",
            "api-version": self._api_version,
        }

        while url:
            if pages >= self._max_pages:
                raise PageLimitExceeded(account_id, self._max_pages)

            logger.debug("fetch_page", account_id=account_id, page=pages + 1)
            try:
                resp = self._client.get(url, params=params)
                resp.raise_for_status()
                data = resp.json(parse_float=Decimal)
            except (httpx.HTTPError, ValueError) as exc:
                return self._partial(account_id, records, pages, _describe_error(exc))

            value = (data.get("value") or []) if isinstance(data, dict) else None
            if not isinstance(value, list):
                return self._partial(
                    account_id, records, pages, "unexpected response shape"
                )

            pages += 1
            page_records = [UsageRecord.from_api(item) for item in value]
            records.extend(page_records)
            logger.debug(
                "page_fetched",
                account_id=account_id,
                page=pages,
                record_count=len(page_records),
            )

            # continuation links already carry every query parameter
            url = data.get("nextLink") or ""
            params = None
            if url and not self._is_own_link(url):
                return self._partial(
                    account_id, records, pages, "continuation link to another host"
                )

        return FetchResult(account_id, tuple(records), pages)

    def _is_own_link(self, url: "object") -> "bool":
        # the bearer token must only ever go to the configured API host
        if not isinstance(url, str):
            return False
        try:
            link = httpx.URL(url)
        except httpx.InvalidURL:
            return False
        base = httpx.URL(self._base_url)
        return (link.scheme, link.host, link.port) == (
            base.scheme,
            base.host,
            base.port,
        )

    def _partial(
        self,
        account_id: "str",
        records: "list[UsageRecord]",
        pages: "int",
        reason: "str",
    ) -> "FetchResult":
        logger.warning(
            "page_fetch_failed",
            account_id=account_id,
            page=pages + 1,
            records_so_far=len(records),
            error=reason,
        )
        return FetchResult(account_id, tuple(records), pages, error=reason)


def _describe_error(exc: "Exception") -> "str":
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "request timed out"
    if isinstance(exc, ValueError):
        return "invalid JSON in response"
    return f"{type(exc).__name__}: {exc}"
