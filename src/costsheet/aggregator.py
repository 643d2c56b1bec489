from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, NamedTuple, Sequence

from costsheet.models import FlatRow, GroupSummary, UsageRecord


class Dimension(NamedTuple):
    """
    Dimension names the FlatRow field rows are grouped on and the
    descriptive fields each summary borrows from its first row.
    """

    name: "str"
    carried: "tuple[str, ...]" = ()


DIMENSIONS: "tuple[Dimension, ...]" = (
    Dimension("project", ("cost_center", "environment")),
    Dimension("resource_group", ("resource_location", "project")),
    Dimension("resource_name", ("resource_group", "consumed_service")),
    Dimension("consumed_service"),
)


@dataclass(frozen=True)
class Aggregation:
    billing_period: "str"
    rows: "tuple[FlatRow, ...]"
    # dimension name -> summaries, highest total first
    summaries: "dict[str, tuple[GroupSummary, ...]]"


def project(record: "UsageRecord") -> "FlatRow":
    """
    flattens a record, mapping absent strings and tags to "".
    """
    tags = record.tags or {}
    return FlatRow(
        date=record.date,
        resource_name=record.resource_name or "",
        resource_group=record.resource_group or "",
        resource_location=record.resource_location or "",
        consumed_service=record.consumed_service or "",
        product=record.product or "",
        quantity=record.quantity,
        unit_of_measure=record.unit_of_measure or "",
        unit_price=record.unit_price,
        cost=record.cost,
        currency=record.currency or "",
        part_number=record.part_number or "",
        meter_id=record.meter_id or "",
        cost_center=tags.get("cost-center") or "",
        project=tags.get("project") or "",
        environment=tags.get("environment") or "",
    )


def sort_rows(rows: "Iterable[FlatRow]") -> "list[FlatRow]":
    """
    orders rows by (date, project, resource_name). Rows without a
    date come first.
    """
    return sorted(
        rows,
        key=lambda r: (r.date or date.min, r.project, r.resource_name),
    )


def group_rows(
    rows: "Sequence[FlatRow]",
    dimension: "Dimension",
    billing_period: "str",
) -> "list[GroupSummary]":
    """
    partitions rows on the dimension field and sums their cost.
    Carried fields come from the first row of each group in input
    order, so rows should already be sorted with sort_rows().
    """
    totals: "dict[str, Decimal]" = {}
    first: "dict[str, FlatRow]" = {}

    for row in rows:
        key = getattr(row, dimension.name)
        if key not in totals:
            totals[key] = Decimal(0)
            first[key] = row
        if row.cost is not None:
            totals[key] += row.cost

    summaries = [
        GroupSummary(
            billing_period=billing_period,
            dimension=dimension.name,
            key=key,
            total_cost=total,
            carried=tuple(
                (name, getattr(first[key], name)) for name in dimension.carried
            ),
        )
        for key, total in totals.items()
    ]
    # sorted() is stable, equal totals keep first-seen order
    summaries = sorted(summaries, key=lambda s: s.total_cost, reverse=True)
    return summaries


def aggregate(
    records: "Iterable[UsageRecord]",
    billing_period: "str",
) -> "Aggregation":
    rows = sort_rows(project(r) for r in records)
    return Aggregation(
        billing_period=billing_period,
        rows=tuple(rows),
        summaries={
            d.name: tuple(group_rows(rows, d, billing_period)) for d in DIMENSIONS
        },
    )
