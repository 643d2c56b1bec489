from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    write_to_textfile,
)

from costsheet.models import FetchResult, GroupSummary


class MetricsUpdater:
    """
    records fetch progress and report totals of a run. Batch runs
    have no scrape endpoint, so write() dumps the registry in the
    textfile collector format instead.
    """

    def __init__(self, registry: "CollectorRegistry" = REGISTRY) -> "None":
        self._registry: "CollectorRegistry" = registry
        self._pages: "Counter" = Counter(
            "costsheet_pages_fetched_total",
            "Usage detail pages fetched per account",
            ["account_id"],
            registry=registry,
        )
        self._records: "Counter" = Counter(
            "costsheet_records_fetched_total",
            "Usage records fetched per account",
            ["account_id"],
            registry=registry,
        )
        self._fetch_errors: "Counter" = Counter(
            "costsheet_fetch_errors_total",
            "Accounts whose fetch ended with a failed page request",
            ["account_id"],
            registry=registry,
        )
        self._fetch_duration: "Histogram" = Histogram(
            "costsheet_fetch_duration_seconds",
            "Duration of fetching all pages of one account",
            ["account_id"],
            registry=registry,
        )
        self._group_cost: "Gauge" = Gauge(
            "costsheet_group_cost",
            "Total cost of one group in a grouping dimension",
            ["billing_period", "dimension", "key"],
            registry=registry,
        )
        self._last_run_success: "Gauge" = Gauge(
            "costsheet_last_run_success_timestamp_seconds",
            "Unix timestamp of the last run that wrote a report",
            registry=registry,
        )

    def update_fetch(self, result: "FetchResult", duration_seconds: "float") -> "None":
        labels = {"account_id": result.account_id}
        self._pages.labels(**labels).inc(result.pages)
        self._records.labels(**labels).inc(len(result.records))
        self._fetch_duration.labels(**labels).observe(duration_seconds)
        if not result.complete:
            self._fetch_errors.labels(**labels).inc()

    def update_summaries(
        self, summaries: "dict[str, tuple[GroupSummary, ...]]"
    ) -> "None":
        for dimension, groups in summaries.items():
            for summary in groups:
                self._group_cost.labels(
                    billing_period=summary.billing_period,
                    dimension=dimension,
                    key=summary.key,
                ).set(float(summary.total_cost))

    def set_last_run_success(self, timestamp: "float") -> "None":
        self._last_run_success.set(timestamp)

    def write(self, path: "str") -> "None":
        write_to_textfile(path, self._registry)
