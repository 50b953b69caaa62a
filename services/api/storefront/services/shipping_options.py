"""Normalization of Avasam warehouse/shipping payloads.

The warehouse-detail endpoint does not have one stable shape. Seen so far:
- a list of warehouses, each nesting its shipping services
- a flat list of shipping services (warehouse fields inline)
- either of the above wrapped in an object ({"Warehouses": [...]}, {"Data": [...]})
- a single warehouse object

Every normalized field is read from the first alias (in FIELD_ALIASES order)
that carries a usable value. Service-level fields look at the service entry
first and fall back to its warehouse; warehouse-level fields do the reverse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import Any, Callable

logger = logging.getLogger("uvicorn.error")


@dataclass
class ShippingOption:
    """One way of shipping a SKU: a warehouse + service pair with cost and timing."""

    warehouse_id: int | None = None
    warehouse_name: str | None = None
    service_id: int | None = None
    service_name: str | None = None
    shipping_cost: float | None = None
    shipping_cost_inc_vat: float | None = None
    currency: str | None = None
    dispatch_days: int | None = None
    delivery_min_days: int | None = None
    delivery_max_days: int | None = None
    raw: dict[str, Any] = field(default_factory=dict)


# Keys under which the payload wraps its list of entries.
ENVELOPE_KEYS: tuple[str, ...] = (
    "Warehouses",
    "warehouses",
    "WarehouseDetails",
    "warehouseDetails",
    "Data",
    "data",
    "Result",
    "result",
    "Items",
    "items",
)

# Keys under which a warehouse nests its shipping services.
SERVICE_LIST_KEYS: tuple[str, ...] = (
    "ShippingServices",
    "shippingServices",
    "Services",
    "services",
    "ShippingOptions",
    "shippingOptions",
    "DeliveryServices",
    "deliveryServices",
)

# Normalized field -> candidate supplier keys, highest priority first.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "warehouse_id": ("WarehouseId", "WarehouseID", "warehouseId", "warehouse_id"),
    "warehouse_name": ("WarehouseName", "warehouseName", "warehouse_name", "Warehouse"),
    "service_id": (
        "ServiceId",
        "ServiceID",
        "ShippingServiceId",
        "serviceId",
        "service_id",
        "shippingServiceId",
    ),
    "service_name": (
        "ServiceName",
        "ShippingServiceName",
        "serviceName",
        "service_name",
        "shippingServiceName",
        "Service",
    ),
    "shipping_cost": ("ShippingCost", "shippingCost", "shipping_cost", "Cost", "cost", "Price", "price"),
    "shipping_cost_inc_vat": (
        "ShippingCostIncVat",
        "ShippingCostIncVAT",
        "shippingCostIncVat",
        "shipping_cost_inc_vat",
        "CostIncVat",
        "costIncVat",
        "PriceIncVat",
        "priceIncVat",
    ),
    "currency": ("Currency", "CurrencyCode", "currency", "currencyCode"),
    "dispatch_days": (
        "DispatchDays",
        "dispatchDays",
        "dispatch_days",
        "DispatchTime",
        "HandlingDays",
        "HandlingTime",
        "LeadTime",
    ),
    "delivery_min_days": (
        "DeliveryMinDays",
        "deliveryMinDays",
        "delivery_min_days",
        "MinDeliveryDays",
        "DeliveryTimeMin",
        "MinDays",
    ),
    "delivery_max_days": (
        "DeliveryMaxDays",
        "deliveryMaxDays",
        "delivery_max_days",
        "MaxDeliveryDays",
        "DeliveryTimeMax",
        "MaxDays",
    ),
}

# On a warehouse entry a bare Id/Name describes the warehouse; on a service, the service.
WAREHOUSE_ENTRY_ALIASES: dict[str, tuple[str, ...]] = {
    "warehouse_id": ("Id", "ID", "id"),
    "warehouse_name": ("Name", "name"),
}
SERVICE_ENTRY_ALIASES: dict[str, tuple[str, ...]] = {
    "service_id": ("Id", "ID", "id"),
    "service_name": ("Name", "name"),
}

WAREHOUSE_FIELDS = ("warehouse_id", "warehouse_name")


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().lstrip("£$€").replace(",", "")
        if not cleaned:
            return None
        try:
            result = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return result if math.isfinite(result) else None


def _to_int(value: Any) -> int | None:
    number = _to_float(value)
    if number is None:
        return None
    # Fractional day counts round up: never promise faster than the supplier.
    return int(math.ceil(number))


def _to_text(value: Any) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, str)):
        text = str(value).strip()
        return text or None
    return None


def _to_currency(value: Any) -> str | None:
    """ISO 4217 code or nothing."""
    text = _to_text(value)
    if text is None or len(text) != 3 or not text.isalpha():
        return None
    return text.upper()


COERCERS: dict[str, Callable[[Any], Any]] = {
    "warehouse_id": _to_int,
    "warehouse_name": _to_text,
    "service_id": _to_int,
    "service_name": _to_text,
    "shipping_cost": _to_float,
    "shipping_cost_inc_vat": _to_float,
    "currency": _to_currency,
    "dispatch_days": _to_int,
    "delivery_min_days": _to_int,
    "delivery_max_days": _to_int,
}


def _pick(entry: dict[str, Any], aliases: tuple[str, ...], coerce: Callable[[Any], Any]) -> Any:
    for key in aliases:
        if key not in entry or entry[key] is None:
            continue
        value = coerce(entry[key])
        if value is not None:
            return value
    return None


def _extract(
    name: str,
    service: dict[str, Any] | None,
    warehouse: dict[str, Any] | None,
) -> Any:
    """Resolve one normalized field from a (service, warehouse) pair."""
    coerce = COERCERS[name]
    aliases = FIELD_ALIASES[name]

    if name in WAREHOUSE_FIELDS:
        sources = [
            (warehouse, aliases + WAREHOUSE_ENTRY_ALIASES.get(name, ())),
            (service, aliases),
        ]
    else:
        sources = [
            (service, aliases + SERVICE_ENTRY_ALIASES.get(name, ())),
            (warehouse, aliases),
        ]

    for entry, keys in sources:
        if not entry:
            continue
        value = _pick(entry, keys, coerce)
        if value is not None:
            return value
    return None


def _build_option(service: dict[str, Any] | None, warehouse: dict[str, Any] | None) -> ShippingOption:
    values = {name: _extract(name, service, warehouse) for name in FIELD_ALIASES}

    if warehouse is not None and service is not None:
        warehouse_ctx = {k: v for k, v in warehouse.items() if k not in SERVICE_LIST_KEYS}
        raw: dict[str, Any] = {"warehouse": warehouse_ctx, "service": service}
    else:
        raw = dict(service or warehouse or {})

    return ShippingOption(raw=raw, **values)


def _nested_services(entry: dict[str, Any]) -> list[Any] | None:
    for key in SERVICE_LIST_KEYS:
        services = entry.get(key)
        if isinstance(services, list):
            return services
    return None


def _unwrap(payload: Any) -> list[Any] | None:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return None

    for key in ENVELOPE_KEYS:
        inner = payload.get(key)
        if isinstance(inner, list):
            return inner
        if isinstance(inner, dict):
            return _unwrap(inner)

    # Single warehouse (possibly just {"ShippingServices": [...]}) or single service.
    return [payload]


def normalize_shipping_options(payload: Any) -> list[ShippingOption]:
    """Flatten a warehouse-detail payload into a list of shipping options.

    Args:
        payload: Decoded JSON body of the warehouse-detail endpoint.

    Returns:
        One ShippingOption per (warehouse, service) pair; warehouses without a
        service list become one option each. Unrecognized payloads yield [],
        and entries with none of the known fields are dropped.
    """
    entries = _unwrap(payload)
    if entries is None:
        logger.warning(f"Unrecognized Avasam shipping payload type: {type(payload).__name__}")
        return []

    options: list[ShippingOption] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue

        services = _nested_services(entry)
        if services is None:
            options.append(_build_option(entry, None))
            continue

        for service in services:
            if isinstance(service, dict):
                options.append(_build_option(service, entry))

    # Error envelopes ({"Message": "..."}) normalize to all-empty options.
    return [o for o in options if not _is_blank(o)]


def _is_blank(option: ShippingOption) -> bool:
    return all(getattr(option, name) is None for name in FIELD_ALIASES)
