"""Tests for order and order-item normalization."""

import pytest
from checkout.order.normalization import (
    OrderStatus,
    PaymentStatusCode,
    is_group_booking,
    normalize_order,
    normalize_order_item,
    normalize_service_type,
    order_amount,
    order_reference,
)


class TestNullHandling:
    def test_none(self):
        assert normalize_order(None) is None

    def test_non_mapping(self):
        assert normalize_order("ord-1") is None

    def test_empty(self):
        assert normalize_order({}) == {}


class TestOrderAmount:
    @pytest.mark.parametrize(
        "key",
        ["amount", "grandTotalToPay", "itemsTotal", "total", "grandTotal", "totalAmount", "orderTotal"],
    )
    def test_amount_aliases(self, key):
        assert order_amount({key: "79.5"}) == 79.5

    def test_first_amount_wins(self):
        assert order_amount({"total": 10, "amount": 12}) == 12

    def test_sums_items_without_an_amount(self):
        raw = {"items": [{"id": "a", "price": 36, "quantity": 2}, {"id": "b", "price": "7.25"}]}
        assert order_amount(raw) == 79.25

    def test_no_items_is_zero(self):
        assert order_amount({"id": "ord-1"}) == 0.0


class TestOrderItems:
    def test_services_are_read_when_items_are_missing(self):
        order = normalize_order({"_id": "ord-1", "services": [{"_id": "svc-1", "title": "Theory test"}]})
        assert order["id"] == "ord-1"
        assert [item["id"] for item in order["items"]] == ["svc-1"]

    def test_item_defaults(self):
        item = normalize_order_item({"id": "svc-1", "price": -3, "quantity": 0})
        assert item["price"] == 0.0
        assert item["quantity"] == 1
        assert item["service_type"] == "other"

    def test_nested_service_supplies_id_and_title(self):
        item = normalize_order_item({"service": {"_id": "svc-9", "name": "CSCS card"}, "serviceType": "Cards"})
        assert item["id"] == "svc-9"
        assert item["title"] == "CSCS card"
        assert item["service_type"] == "card"

    def test_detail_blocks_are_snake_cased(self):
        item = normalize_order_item({"id": "svc-1", "testDetails": {"test_date": "2026-11-02"}})
        assert item["test_details"] == {"test_date": "2026-11-02"}

    def test_detail_fields_are_snake_cased(self):
        item = normalize_order_item(
            {
                "id": "svc-1",
                "testDetails": {"testDate": "2026-11-02", "testTime": "09:30", "testCentre": "Croydon"},
                "cardDetails": {"cardType": "Blue", "card_type": "Green"},
            }
        )
        assert item["test_details"] == {"test_date": "2026-11-02", "test_time": "09:30", "test_centre": "Croydon"}
        assert item["card_details"] == {"card_type": "Green"}

    def test_order_customer_is_the_fallback_recipient(self):
        order = normalize_order(
            {"id": "ord-1", "customer": {"_id": "u-1", "firstName": "Ada", "lastName": "Lovelace"}, "items": [{"id": "a"}]}
        )
        assert order["items"][0]["recipient_id"] == "u-1"
        assert order["items"][0]["recipient_name"] == "Ada Lovelace"
        assert order["customer_id"] == "u-1"


class TestServiceType:
    @pytest.mark.parametrize(
        "raw,expected",
        [("Test", "test"), ("tests", "test"), ("COURSES", "course"), ("qualification", "qualification"), ("gift", "other"), (None, "other")],
    )
    def test_normalize(self, raw, expected):
        assert normalize_service_type(raw) == expected


class TestStatusAndReference:
    def test_status_aliases(self):
        assert normalize_order({"id": "o", "status": "Completed"})["status"] == OrderStatus.PAID.value
        assert normalize_order({"id": "o", "status": "canceled"})["status"] == OrderStatus.CANCELLED.value
        assert normalize_order({"id": "o", "status": "weird"})["status"] == OrderStatus.PENDING.value

    def test_payment_status_codes(self):
        assert normalize_order({"id": "o"})["payment_status"] == PaymentStatusCode.NOT_STARTED
        assert normalize_order({"id": "o", "paymentStatus": "2"})["payment_status"] == PaymentStatusCode.PAID

    def test_reference_aliases(self):
        assert order_reference({"orderNumber": "REF-42"}) == "REF-42"
        assert order_reference(None) == ""

    def test_timestamps_stay_none_when_absent(self):
        order = normalize_order({"id": "o"})
        assert order["created_at"] is None
        assert order["updated_at"] is None


class TestGroupBooking:
    def test_flagged(self):
        assert is_group_booking({"id": "o", "isGroupBooking": True})

    def test_several_recipients(self):
        raw = {"id": "o", "items": [{"id": "a", "recipientId": "u-1"}, {"id": "b", "recipientId": "u-2"}]}
        assert normalize_order(raw)["recipient_ids"] == ["u-1", "u-2"]
        assert is_group_booking(raw)

    def test_single_recipient(self):
        assert not is_group_booking({"id": "o", "items": [{"id": "a", "recipientId": "u-1"}]})


class TestIdempotence:
    def test_normalizing_twice_changes_nothing(self):
        raw = {
            "_id": "ord-7",
            "grandTotal": "120.00",
            "orderRef": "REF-7",
            "status": "paid",
            "paymentStatus": 2,
            "customer": {"_id": "u-1", "Email": "Ada@Example.com", "firstName": "Ada"},
            "services": [
                {"_id": "svc-1", "type": "tests", "price": "60", "quantity": 2, "testDetails": {"test_centre": "Leeds"}},
            ],
            "createdAt": "2026-10-01T09:00:00Z",
        }
        once = normalize_order(raw)
        assert normalize_order(once) == once
