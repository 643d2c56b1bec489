import time
from dataclasses import dataclass
from typing import Iterable

import structlog

from costsheet.aggregator import Aggregation, aggregate
from costsheet.errors import FetchError
from costsheet.fetcher import UsageFetcher
from costsheet.metrics import MetricsUpdater
from costsheet.models import BillingPeriod, FetchResult, UsageRecord

logger = structlog.get_logger()


@dataclass(frozen=True)
class BillingReport:
    period: "BillingPeriod"
    fetch_results: "tuple[FetchResult, ...]"
    aggregation: "Aggregation"

    @property
    def incomplete_accounts(self) -> "list[str]":
        return [r.account_id for r in self.fetch_results if not r.complete]

    @property
    def complete(self) -> "bool":
        return not self.incomplete_accounts


class ReportRunner:
    """
    ReportRunner fetches usage for every account of a billing period
    and aggregates the combined records. Accounts are fetched one
    after another; a failed account either aborts the run or is kept
    as partial data and reported, depending on fail_on_fetch_error.
    """

    def __init__(
        self,
        fetcher: "UsageFetcher",
        metrics: "MetricsUpdater",
        fail_on_fetch_error: "bool" = False,
    ) -> "None":
        self._fetcher = fetcher
        self._metrics = metrics
        self._fail_on_fetch_error = fail_on_fetch_error

    def run(
        self,
        account_ids: "Iterable[str]",
        period: "BillingPeriod",
    ) -> "BillingReport":
        results: "list[FetchResult]" = []
        records: "list[UsageRecord]" = []

        for account_id in account_ids:
            result = self._fetch(account_id, period)
            results.append(result)
            records.extend(result.records)

        aggregation = aggregate(records, period.label)
        self._metrics.update_summaries(aggregation.summaries)

        report = BillingReport(period, tuple(results), aggregation)
        if not report.complete:
            logger.warning(
                "report_incomplete",
                period=period.label,
                accounts=report.incomplete_accounts,
            )
        return report

    def _fetch(self, account_id: "str", period: "BillingPeriod") -> "FetchResult":
        logger.info("account_fetch_start", account_id=account_id, period=period.label)
        start = time.monotonic()
        result = self._fetcher.fetch_account(account_id, period)
        self._metrics.update_fetch(result, time.monotonic() - start)

        if not result.complete:
            logger.warning(
                "account_fetch_failed",
                account_id=account_id,
                pages=result.pages,
                record_count=len(result.records),
                error=result.error,
            )
            if self._fail_on_fetch_error:
                raise FetchError(account_id, result.error or "unknown error")
            return result

        logger.info(
            "account_fetch_done",
            account_id=account_id,
            pages=result.pages,
            record_count=len(result.records),
        )
        return result
