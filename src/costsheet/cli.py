import argparse

from costsheet.config import FAILURE_POLICIES, Config
from costsheet.logging import LOG_FORMATS
from costsheet.models import BillingPeriod


def parse_args(argv: "list[str] | None" = None) -> "tuple[Config, BillingPeriod]":
    parser = argparse.ArgumentParser(
        prog="costsheet",
        description="Monthly cloud usage and cost report as a spreadsheet",
    )
    parser.add_argument(
        "--period",
        dest="period",
        type=BillingPeriod.parse,
        default=None,
        help="Billing period as YYYYMM or YYYY-MM (default: previous month)",
    )
    parser.add_argument(
        "--account",
        dest="accounts",
        action="append",
        default=None,
        help="Account ID to fetch, repeatable (default: $COSTSHEET_ACCOUNTS)",
    )
    parser.add_argument(
        "--output",
        dest="output_path",
        default="",
        help="Spreadsheet path (default: usage_<period>.xlsx)",
    )
    parser.add_argument(
        "--fetch.max-pages",
        dest="max_pages",
        type=int,
        default=1000,
        help="Pages allowed per account before aborting (default: 1000)",
    )
    parser.add_argument(
        "--fetch.timeout",
        dest="request_timeout",
        type=float,
        default=30.0,
        help="Per-request timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--fetch.on-failure",
        dest="on_fetch_failure",
        default="warn",
        choices=list(FAILURE_POLICIES),
        help="Keep partial data and warn, or fail the run (default: warn)",
    )
    parser.add_argument(
        "--metrics.textfile",
        dest="metrics_textfile",
        default="",
        help="Write Prometheus metrics to this file after the run",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=list(LOG_FORMATS),
        help="Log output format (default: console)",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    if args.accounts:
        config.accounts = args.accounts
    config.output_path = args.output_path
    config.max_pages = args.max_pages
    config.request_timeout = args.request_timeout
    config.on_fetch_failure = args.on_fetch_failure
    config.metrics_textfile = args.metrics_textfile
    config.log_level = args.log_level
    config.log_format = args.log_format

    period = args.period or BillingPeriod.previous()
    return config, period
