from typing import Any

import pytest
from prometheus_client import CollectorRegistry


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


def api_item(
    date: "str" = "2023-01-01T00:00:00.0000000Z",
    resource_name: "str" = "vm1",
    resource_group: "str" = "rg1",
    cost: "Any" = 1,
    tags: "dict[str, str] | None" = None,
    **extra: "Any",
) -> "dict[str, Any]":
    """
    builds one element of a usageDetails `value` array.
    """
    properties: "dict[str, Any]" = {
        "date": date,
        "resourceName": resource_name,
        "resourceGroup": resource_group,
        "resourceLocation": "westeurope",
        "consumedService": "Microsoft.Compute",
        "product": "Virtual Machines D2s v3",
        "quantity": 24,
        "meterDetails": {"unitOfMeasure": "1 Hour"},
        "unitPrice": 0.5,
        "cost": cost,
        "billingCurrency": "EUR",
        "partNumber": "AAA-123",
        "meterId": "meter-1",
    }
    properties.update(extra)
    item: "dict[str, Any]" = {"properties": properties}
    if tags is not None:
        item["tags"] = tags
    return item
