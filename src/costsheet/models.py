from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class BillingPeriod:
    """
    BillingPeriod is one calendar month of billing.
    """

    year: "int"
    month: "int"

    def __post_init__(self) -> "None":
        if not 1 <= self.month <= 12:
            raise ValueError(f"invalid month: {self.month}")

    @classmethod
    def parse(cls, value: "str") -> "BillingPeriod":
        """
        parses a period in format 'YYYYMM' or 'YYYY-MM'.
        """
        digits = value.strip().replace("-", "")
        if len(digits) != 6 or not digits.isdigit():
            raise ValueError(f"invalid billing period: {value!r}")
        return cls(int(digits[:4]), int(digits[4:]))

    @classmethod
    def previous(cls, today: "date | None" = None) -> "BillingPeriod":
        """
        returns the calendar month before the given day (defaults to today).
        """
        today = today or date.today()
        if today.month == 1:
            return cls(today.year - 1, 12)
        return cls(today.year, today.month - 1)

    @property
    def label(self) -> "str":
        return f"{self.year:04d}{self.month:02d}"

    @property
    def key(self) -> "str":
        # the provider names billing periods by their first day
        return f"{self.label}01"

    def __str__(self) -> "str":
        return self.label


@dataclass(frozen=True, slots=True)
class UsageRecord:
    """
    UsageRecord represents one billed line item as returned
    by the consumption API. Any field the API left out is None.
    """

    date: "date | None" = None
    resource_name: "str | None" = None
    resource_group: "str | None" = None
    resource_location: "str | None" = None
    consumed_service: "str | None" = None
    product: "str | None" = None
    quantity: "Decimal | None" = None
    unit_of_measure: "str | None" = None
    unit_price: "Decimal | None" = None
    cost: "Decimal | None" = None
    currency: "str | None" = None
    part_number: "str | None" = None
    meter_id: "str | None" = None
    tags: "Mapping[str, str]" = field(default_factory=dict)

    @classmethod
    def from_api(cls, item: "Any") -> "UsageRecord":
        """
        builds a record from one element of the response `value` array.
        Anything that isn't an object, at any level, reads as absent.
        """
        item = _mapping(item)
        props = _mapping(item.get("properties"))
        meter_details = _mapping(props.get("meterDetails"))
        return cls(
            date=_to_date(props.get("date")),
            resource_name=props.get("resourceName"),
            resource_group=props.get("resourceGroup"),
            resource_location=props.get("resourceLocation"),
            consumed_service=props.get("consumedService"),
            product=props.get("product"),
            quantity=_to_decimal(props.get("quantity")),
            unit_of_measure=meter_details.get("unitOfMeasure"),
            unit_price=_to_decimal(props.get("unitPrice")),
            cost=_to_decimal(props.get("cost")),
            currency=props.get("billingCurrency"),
            part_number=props.get("partNumber"),
            meter_id=props.get("meterId"),
            tags=dict(_mapping(item.get("tags"))),
        )


@dataclass(frozen=True, slots=True)
class FlatRow:
    """
    FlatRow is a UsageRecord projected into a flat shape with the
    well-known tags pulled up to the top level. Missing strings
    are empty, missing numbers are None.
    """

    date: "date | None"
    resource_name: "str"
    resource_group: "str"
    resource_location: "str"
    consumed_service: "str"
    product: "str"
    quantity: "Decimal | None"
    unit_of_measure: "str"
    unit_price: "Decimal | None"
    cost: "Decimal | None"
    currency: "str"
    part_number: "str"
    meter_id: "str"
    cost_center: "str"
    project: "str"
    environment: "str"

    def to_row(self) -> "dict[str, Any]":
        """
        returns the row keyed by its report column names.
        """
        return {
            "date": self.date,
            "resourceName": self.resource_name,
            "resourceGroup": self.resource_group,
            "resourceLocation": self.resource_location,
            "consumedService": self.consumed_service,
            "product": self.product,
            "quantity": self.quantity,
            "unitOfMeasure": self.unit_of_measure,
            "unitPrice": self.unit_price,
            "cost": self.cost,
            "currency": self.currency,
            "partNumber": self.part_number,
            "meterId": self.meter_id,
            "costCenter": self.cost_center,
            "project": self.project,
            "environment": self.environment,
        }


@dataclass(frozen=True, slots=True)
class GroupSummary:
    """
    GroupSummary is the total cost of all rows sharing one key
    in a grouping dimension, plus descriptive fields borrowed
    from the first row of the group.
    """

    billing_period: "str"
    dimension: "str"
    key: "str"
    total_cost: "Decimal"
    # (column name, value) pairs taken from the representative row
    carried: "tuple[tuple[str, str], ...]" = ()

    def to_row(self) -> "dict[str, Any]":
        row: "dict[str, Any]" = {
            "billingPeriod": self.billing_period,
            column_name(self.dimension): self.key,
        }
        for name, value in self.carried:
            row[column_name(name)] = value
        row["totalCost"] = self.total_cost
        return row


@dataclass(frozen=True, slots=True)
class FetchResult:
    """
    FetchResult holds everything fetched for one account. When a page
    request failed, `complete` is False, `error` carries the reason and
    `records` holds whatever arrived before the failure.
    """

    account_id: "str"
    records: "tuple[UsageRecord, ...]"
    pages: "int"
    error: "str | None" = None

    @property
    def complete(self) -> "bool":
        return self.error is None


_COLUMN_NAMES: "dict[str, str]" = {
    "resource_name": "resourceName",
    "resource_group": "resourceGroup",
    "resource_location": "resourceLocation",
    "consumed_service": "consumedService",
    "cost_center": "costCenter",
}


def column_name(field_name: "str") -> "str":
    """
    returns the report column name of a FlatRow field.
    """
    return _COLUMN_NAMES.get(field_name, field_name)


def _mapping(value: "Any") -> "Mapping[str, Any]":
    return value if isinstance(value, Mapping) else {}


def _to_decimal(value: "Any") -> "Decimal | None":
    if isinstance(value, Decimal):
        number = value
    elif value is None or value == "" or isinstance(value, bool):
        return None
    else:
        # go through str so floats keep their printed value
        try:
            number = Decimal(str(value))
        except ArithmeticError:
            return None
    # NaN and Infinity would poison every sum they take part in
    if not number.is_finite():
        return None
    return number


def _to_date(value: "Any") -> "date | None":
    # the API sends either '2023-01-02' or a full ISO timestamp
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None
