import time

import structlog
from prometheus_client import CollectorRegistry

from costsheet.auth import StaticTokenProvider
from costsheet.cli import parse_args
from costsheet.errors import CostsheetError
from costsheet.fetcher import UsageFetcher
from costsheet.logging import bind_run_context, setup_logging
from costsheet.metrics import MetricsUpdater
from costsheet.pipeline import ReportRunner
from costsheet.report import write_report

logger = structlog.get_logger()


def main(argv: "list[str] | None" = None) -> "int":
    config, period = parse_args(argv)
    setup_logging(config.log_level, config.log_format)
    bind_run_context(period.label)

    if not config.accounts:
        raise SystemExit(
            "No accounts configured. Pass --account or set COSTSHEET_ACCOUNTS."
        )

    metrics = MetricsUpdater(CollectorRegistry())
    output_path = config.output_path or f"usage_{period.label}.xlsx"

    try:
        token = StaticTokenProvider(config.access_token).get_token()
        with UsageFetcher(config, token) as fetcher:
            runner = ReportRunner(fetcher, metrics, config.fail_on_fetch_error)
            report = runner.run(config.accounts, period)
        write_report(report, output_path)
        metrics.set_last_run_success(time.time())
    except CostsheetError as exc:
        logger.error("run_failed", period=period.label, error=str(exc))
        return 1
    finally:
        if config.metrics_textfile:
            metrics.write(config.metrics_textfile)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
