"""Canonical order and order-item records.

Orders come back from the orders API in several historical shapes: amounts
under half a dozen names, items under ``items`` or ``services``, ids as
``_id`` or ``id``. These functions are pure and never raise; they do not
read the clock, so missing timestamps stay ``None``.
"""

import re
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum, IntEnum

from checkout.customer.normalization import normalize_customer
from checkout.money.amounts import parse_decimal


class ServiceType(Enum):
    CARD = "card"
    TEST = "test"
    COURSE = "course"
    QUALIFICATION = "qualification"
    OTHER = "other"


class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentStatusCode(IntEnum):
    """Payment status codes used by the orders API."""

    NOT_STARTED = 0
    PENDING = 1
    PAID = 2
    ATTEMPTED = 4


_ORDER_ID_KEYS = ("id", "_id", "order_id", "orderId")
_AMOUNT_KEYS = (
    "amount",
    "grand_total_to_pay",
    "grandTotalToPay",
    "items_total",
    "itemsTotal",
    "total",
    "grand_total",
    "grandTotal",
    "total_amount",
    "totalAmount",
    "order_total",
    "orderTotal",
)
_REFERENCE_KEYS = ("order_reference", "orderReference", "reference", "orderRef", "order_number", "orderNumber", "orderNo")
_DETAIL_BLOCKS = {
    "card_details": ("card_details", "cardDetails"),
    "test_details": ("test_details", "testDetails"),
    "course_details": ("course_details", "courseDetails"),
    "qualification_details": ("qualification_details", "qualificationDetails"),
}
_STATUS_ALIASES = {
    "pending": OrderStatus.PENDING,
    "paid": OrderStatus.PAID,
    "completed": OrderStatus.PAID,
    "cancelled": OrderStatus.CANCELLED,
    "canceled": OrderStatus.CANCELLED,
}


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _snake_case(key) -> str:
    if not isinstance(key, str):
        return key
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _detail_block(value: Mapping) -> dict:
    """Copy a details block with its keys in snake_case; snake_case spellings win."""
    block = {}
    for key, inner in value.items():
        name = _snake_case(key)
        if name == key or name not in value:
            block[name] = inner
    return block


def _first_present(raw: Mapping, keys):
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def _id_of(value) -> str | None:
    if isinstance(value, Mapping):
        value = _first_present(value, _ORDER_ID_KEYS)
    text = _text(value)
    return text or None


def normalize_service_type(value) -> str:
    """Map free-form service types (``"Tests"``, ``"cards"``) onto ``ServiceType``."""
    candidate = _text(value).lower()
    if candidate in ServiceType._value2member_map_:
        return candidate
    if candidate.endswith("s") and candidate[:-1] in ServiceType._value2member_map_:
        return candidate[:-1]
    return ServiceType.OTHER.value


def _price(value) -> float:
    parsed = parse_decimal(value)
    if parsed is None or parsed < 0:
        return 0.0
    return float(parsed)


def _quantity(value) -> int:
    parsed = parse_decimal(value)
    if parsed is None:
        return 1
    return max(int(parsed), 1)


def normalize_order_item(raw, fallback_customer=None) -> dict:
    """Normalize one order line.

    ``fallback_customer`` fills the recipient fields of a line that has no
    recipient of its own.
    """
    if not isinstance(raw, Mapping):
        return {}

    service = raw.get("service")
    item_id = _id_of(_first_present(raw, ("id", "_id", "item_id", "itemId"))) or _id_of(service)
    title = _first_present(raw, ("title", "name"))
    if title is None and isinstance(service, Mapping):
        title = _first_present(service, ("title", "name"))

    item = {
        "id": item_id,
        "title": _text(title),
        "service_type": normalize_service_type(_first_present(raw, ("service_type", "serviceType", "type"))),
        "price": _price(raw.get("price")),
        "quantity": _quantity(raw.get("quantity")),
    }

    for block, keys in _DETAIL_BLOCKS.items():
        value = _first_present(raw, keys)
        if isinstance(value, Mapping):
            item[block] = _detail_block(value)

    recipient = _first_present(raw, ("recipient", "assigned_to", "assignedTo"))
    recipient_id = _id_of(_first_present(raw, ("recipient_id", "recipientId"))) or _id_of(recipient)
    recipient_name = _text(_first_present(raw, ("recipient_name", "recipientName")))
    if not recipient_name and isinstance(recipient, Mapping):
        recipient_name = (normalize_customer(recipient) or {}).get("name", "")

    fallback = normalize_customer(fallback_customer) or {}
    if not recipient_id and fallback:
        recipient_id = fallback.get("id")
        recipient_name = recipient_name or fallback.get("name", "")

    if recipient_id or recipient_name:
        item["recipient_id"] = recipient_id
        item["recipient_name"] = recipient_name

    scheduled = _first_present(raw, ("scheduled_date", "scheduledDate"))
    if scheduled is not None:
        item["scheduled_date"] = scheduled

    return item


def order_reference(raw) -> str:
    if not isinstance(raw, Mapping):
        return ""
    return _text(_first_present(raw, _REFERENCE_KEYS))


def order_amount(raw, items=None) -> float:
    """The order's amount in major units.

    Uses the first amount field present; without one, sums price times
    quantity over the (normalized) items.
    """
    if not isinstance(raw, Mapping):
        return 0.0
    for key in _AMOUNT_KEYS:
        parsed = parse_decimal(raw.get(key))
        if parsed is not None:
            return float(parsed)

    lines = items if items is not None else [normalize_order_item(i) for i in _raw_items(raw)]
    total = sum((Decimal(str(line["price"])) * line["quantity"] for line in lines if line), Decimal(0))
    return float(total)


def _raw_items(raw: Mapping) -> list:
    items = raw.get("items")
    if not items:
        items = raw.get("services")
    return list(items) if isinstance(items, (list, tuple)) else []


def _status(value) -> str:
    resolved = _STATUS_ALIASES.get(_text(value).lower())
    return (resolved or OrderStatus.PENDING).value


def _payment_status(value) -> int:
    parsed = parse_decimal(value)
    if parsed is None:
        return PaymentStatusCode.NOT_STARTED.value
    return int(parsed)


def normalize_order(raw) -> dict | None:
    """Normalize an order from any known API shape.

    ``None`` and non-mapping input yield ``None``; an empty mapping yields
    an empty dict.
    """
    if raw is None or not isinstance(raw, Mapping):
        return None
    if not raw:
        return {}

    customer = normalize_customer(raw.get("customer")) if isinstance(raw.get("customer"), Mapping) else None
    items = [normalize_order_item(i, fallback_customer=customer) for i in _raw_items(raw)]
    items = [i for i in items if i]

    customer_id = _id_of(_first_present(raw, ("customer_id", "customerId", "user_id", "userId")))
    if customer_id is None and customer:
        customer_id = customer.get("id")

    recipient_ids = raw.get("recipient_ids") or raw.get("recipientIds")
    if not isinstance(recipient_ids, (list, tuple)):
        recipient_ids = unique_recipients(items)

    return {
        "id": _id_of(_first_present(raw, _ORDER_ID_KEYS)),
        "amount": order_amount(raw, items),
        "items": items,
        "customer": customer,
        "customer_id": customer_id,
        "order_reference": order_reference(raw),
        "order_type": _text(_first_present(raw, ("order_type", "orderType"))) or "standard",
        "status": _status(raw.get("status")),
        "payment_status": _payment_status(_first_present(raw, ("payment_status", "paymentStatus"))),
        "is_group_booking": bool(_first_present(raw, ("is_group_booking", "isGroupBooking"))),
        "organization_name": _text(_first_present(raw, ("organization_name", "organizationName"))),
        "recipient_ids": [str(r) for r in recipient_ids],
        "notes": _text(_first_present(raw, ("notes", "group_booking_notes", "groupBookingNotes"))),
        "created_at": _first_present(raw, ("created_at", "createdAt")),
        "updated_at": _first_present(raw, ("updated_at", "updatedAt")),
    }


def unique_recipients(items) -> list[str]:
    seen: list[str] = []
    for item in items or []:
        recipient_id = item.get("recipient_id") if isinstance(item, Mapping) else None
        if recipient_id and recipient_id not in seen:
            seen.append(recipient_id)
    return seen


def is_group_booking(order) -> bool:
    """An order is a group booking when flagged so or when it serves several recipients."""
    normalized = normalize_order(order) or {}
    return bool(normalized.get("is_group_booking")) or len(normalized.get("recipient_ids", [])) > 1
