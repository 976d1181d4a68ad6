from __future__ import annotations

from decimal import Decimal

import pytest

from helpers import make_event, order_payload, refund_payload
from salerecords.clients.lookups import ItemOffer, Member, Payment
from salerecords.domain.errors import SaleRecordError
from salerecords.reconciliation.normalizer import EventNormalizer, OrderEventNormalizer, split_discount


def test_order_header_and_lines(lookups):
    record = EventNormalizer(lookups).normalize(make_event(order_payload(42)))

    assert record.order_id == 42
    assert record.refund_id == 0
    assert record.transaction_type == "PLUS"
    assert record.transaction_channel_type == "POS"
    assert record.is_refund is False
    assert record.base_trim_code == "A"
    assert record.created_by == "kafka-listener"
    assert record.total_transaction_price == Decimal("120")
    assert record.discount_offer_price == Decimal("30")
    assert record.discount_coupon_price == Decimal("0")

    first, second = record.lines
    assert first.order_item_id == 421
    assert first.brand_code == "BR"
    assert first.total_transaction_price == Decimal("100")
    assert first.total_distributed_cart_offer_price == Decimal("20")
    assert first.total_distributed_payment_price == Decimal("80")
    assert first.distributed_cash_price == Decimal("80")
    assert first.total_distributed_item_offer_price == Decimal("0")
    assert [offer.type for offer in first.cart_offers] == ["ORDER"]
    assert second.total_distributed_payment_price == Decimal("40")

    assert [offer.type for offer in record.cart_offers] == ["ORDER"]
    assert [(p.pay_method, p.pay_amt) for p in record.payments] == [("CASH", Decimal("120"))]


def test_discount_split_by_coupon_presence():
    event = make_event(
        order_payload(
            1,
            offers=[
                {"offerNo": "A", "price": 10.1},
                {"offerNo": "B", "couponNo": "CP-1", "price": 19.9},
                {"offerNo": "C", "price": 0.2},
            ],
        )
    )
    assert split_discount(event.payload.offers) == (Decimal("10.30"), Decimal("19.90"))


def test_item_offer_recorded_only_with_catalog_offer_and_discount(lookups):
    lookups.products.add_item("ITEM-A", offer=ItemOffer(no="IO-1", discount_price=Decimal("5")))
    lookups.products.add_item("ITEM-B", offer=ItemOffer(no="IO-2", discount_price=Decimal("3")))
    payload = order_payload(43)
    payload["items"][1]["totalDiscountPrice"] = 0
    record = EventNormalizer(lookups).normalize(make_event(payload))

    first, second = record.lines
    assert [(o.offer_no, o.item_code, o.price, o.type) for o in first.item_offers] == [
        ("IO-1", "ITEM-A", Decimal("5"), "ORDER")
    ]
    assert second.item_offers == []


def test_item_offer_share_from_list_minus_sale(lookups):
    payload = order_payload(44)
    payload["items"][0].update(totalListPrice=110, totalSalePrice=100)
    record = EventNormalizer(lookups).normalize(make_event(payload))
    assert record.lines[0].total_distributed_item_offer_price == Decimal("10")


def test_mileage_price_reduces_cash_only(lookups):
    payload = order_payload(45, mileagePrice=5)
    payload["items"][0]["mileagePrice"] = 5
    line = EventNormalizer(lookups).normalize(make_event(payload)).lines[0]
    assert line.distributed_cash_price == Decimal("75")
    assert line.total_distributed_payment_price == Decimal("80")


def test_negative_cash_share_is_rejected(lookups):
    payload = order_payload(46)
    payload["items"][0]["totalDistributedCartOfferPrice"] = 101
    with pytest.raises(SaleRecordError) as excinfo:
        EventNormalizer(lookups).normalize(make_event(payload))
    assert excinfo.value.tag == "DistributedCashPrice"


def test_negative_payment_share_is_rejected_when_cash_is_fine(lookups):
    payload = order_payload(47)
    payload["items"][0].update(totalDistributedCartOfferPrice=101, mileagePrice=-10)
    with pytest.raises(SaleRecordError) as excinfo:
        EventNormalizer(lookups).normalize(make_event(payload))
    assert excinfo.value.tag == "TotalDistributedPaymentPrice"


def test_missing_payments_reject_the_order(lookups):
    lookups.payments.empty.add((48, 0))
    with pytest.raises(SaleRecordError) as excinfo:
        EventNormalizer(lookups).normalize(make_event(order_payload(48)))
    assert excinfo.value.tag == "PayMentNotExist"


def test_employee_id_from_first_internal_coupon(lookups):
    lookups.coupons.internal.update({"CP-INT", "CP-INT-2"})
    lookups.members.members[77] = Member(id=77, hr_emp_no="E-0077")
    payload = order_payload(
        49,
        customerId=77,
        offers=[
            {"offerNo": "X", "couponNo": "CP-EXT", "price": 10},
            {"offerNo": "Y", "couponNo": "CP-INT", "price": 10},
            {"offerNo": "Z", "couponNo": "CP-INT-2", "price": 10},
        ],
    )
    record = EventNormalizer(lookups).normalize(make_event(payload))
    assert record.emp_id == "E-0077"


def test_employee_id_empty_without_customer(lookups):
    lookups.coupons.internal.add("CP-INT")
    payload = order_payload(50, offers=[{"offerNo": "Y", "couponNo": "CP-INT", "price": 30}])
    assert OrderEventNormalizer(lookups).resolve_emp_id(make_event(payload).payload) == ""


def test_refund_record(lookups):
    lookups.payments.rows[(0, 61)] = [Payment(seq_no=1, pay_method="CARD", pay_amt=Decimal("-80"))]
    event = make_event(order_payload(60, refunds=[refund_payload(60, 61)]), status="RefundOrderSuccess")
    record = EventNormalizer(lookups).normalize(event)

    assert record.order_id == 60
    assert record.refund_id == 61
    assert record.is_refund is True
    assert record.transaction_type == "MINUS"
    assert record.created_by == "7"
    assert record.total_transaction_price == Decimal("80")
    assert [offer.type for offer in record.cart_offers] == ["REFUND"]
    assert record.payments[0].pay_amt == Decimal("80")
    assert record.emp_id in ("", None)

    line = record.lines[0]
    assert line.refund_item_id == 611
    assert line.order_item_id == 601
    assert line.product_id == 10
    assert line.list_price == Decimal("100")
    assert line.total_distributed_payment_price == Decimal("80")


def test_redistribution_replaces_upstream_shares(lookups):
    payload = order_payload(70)
    for item in payload["items"]:
        item["totalDistributedCartOfferPrice"] = 0
    record = EventNormalizer(lookups, redistribute_cart_offers=True).normalize(make_event(payload))
    shares = [line.total_distributed_cart_offer_price for line in record.lines]
    assert shares == [Decimal("20"), Decimal("10")]


def test_redistribution_marks_gift_items_fully_discounted(lookups):
    payload = order_payload(71, offers=[{"offerNo": "GIFT", "targetItemIds": "712", "price": 50, "targetType": "gift"}])
    record = EventNormalizer(lookups, redistribute_cart_offers=True).normalize(make_event(payload))
    assert [line.total_distributed_cart_offer_price for line in record.lines] == [Decimal("0"), Decimal("50")]


def test_redistribution_leaves_event_untouched(lookups):
    event = make_event(order_payload(72))
    EventNormalizer(lookups, redistribute_cart_offers=True).normalize(event)
    assert event.payload.items[0].total_distributed_cart_offer_price == Decimal("20")
