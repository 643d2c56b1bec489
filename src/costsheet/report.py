from decimal import Decimal
from typing import Any, Iterable

import pandas as pd
import structlog

from costsheet.aggregator import DIMENSIONS, Dimension
from costsheet.models import FlatRow, GroupSummary, column_name
from costsheet.pipeline import BillingReport

logger = structlog.get_logger()

# dimension name -> sheet name
SUMMARY_SHEETS: "dict[str, str]" = {
    "project": "by_project",
    "resource_group": "by_resource_group",
    "resource_name": "by_resource_name",
    "consumed_service": "by_service",
}

USAGE_COLUMNS: "list[str]" = [
    "date",
    "resourceName",
    "resourceGroup",
    "resourceLocation",
    "consumedService",
    "product",
    "quantity",
    "unitOfMeasure",
    "unitPrice",
    "cost",
    "currency",
    "partNumber",
    "meterId",
    "costCenter",
    "project",
    "environment",
]

STATUS_COLUMNS: "list[str]" = ["accountId", "pages", "records", "complete", "error"]


def _cell(value: "Any") -> "Any":
    # spreadsheets have no decimal type
    if isinstance(value, Decimal):
        return float(value)
    return value


def usage_frame(rows: "Iterable[FlatRow]") -> "pd.DataFrame":
    data = [{k: _cell(v) for k, v in r.to_row().items()} for r in rows]
    return pd.DataFrame(data, columns=USAGE_COLUMNS)


def summary_columns(dimension: "Dimension") -> "list[str]":
    return [
        "billingPeriod",
        column_name(dimension.name),
        *(column_name(name) for name in dimension.carried),
        "totalCost",
    ]


def summary_frame(
    dimension: "Dimension",
    summaries: "Iterable[GroupSummary]",
) -> "pd.DataFrame":
    data = [{k: _cell(v) for k, v in s.to_row().items()} for s in summaries]
    # explicit columns keep the header row on empty sheets
    return pd.DataFrame(data, columns=summary_columns(dimension))


def status_frame(report: "BillingReport") -> "pd.DataFrame":
    data = [
        {
            "accountId": r.account_id,
            "pages": r.pages,
            "records": len(r.records),
            "complete": r.complete,
            "error": r.error or "",
        }
        for r in report.fetch_results
    ]
    return pd.DataFrame(data, columns=STATUS_COLUMNS)


def write_report(report: "BillingReport", path: "str") -> "None":
    """
    writes the flat rows, one sheet per grouping dimension and a
    fetch status sheet into a single workbook.
    """
    aggregation = report.aggregation
    with pd.ExcelWriter(path, engine="xlsxwriter") as xw:
        usage_frame(aggregation.rows).to_excel(xw, sheet_name="usage", index=False)
        for dimension in DIMENSIONS:
            summaries = aggregation.summaries.get(dimension.name, ())
            frame = summary_frame(dimension, summaries)
            sheet = SUMMARY_SHEETS[dimension.name]
            frame.to_excel(xw, sheet_name=sheet, index=False)
        status_frame(report).to_excel(xw, sheet_name="fetch_status", index=False)

    logger.info(
        "report_written",
        path=path,
        rows=len(aggregation.rows),
        complete=report.complete,
    )
