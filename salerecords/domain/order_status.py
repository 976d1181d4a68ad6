from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OrderStatus:
    sequence: int
    value: str
    type: str
    can_make_sale_record: bool


ORDER_STATUSES: tuple[OrderStatus, ...] = (
    OrderStatus(1, "SaleOrderProcessing", "ORDER", False),
    OrderStatus(2, "SaleOrderCancel", "ORDER", False),
    OrderStatus(3, "SaleOrderFinished", "ORDER", True),
    OrderStatus(4, "StockDistributed", "ORDER", True),
    OrderStatus(5, "SaleShippingWaiting", "ORDER", True),
    OrderStatus(6, "SaleShippingProcessing", "ORDER", True),
    OrderStatus(7, "SaleShippingFinished", "ORDER", True),
    OrderStatus(8, "BuyerReceivedConfirmed", "ORDER", True),
    OrderStatus(9, "SaleOrderSuccess", "ORDER", True),
    OrderStatus(10, "RefundOrderRegistered", "REFUND", False),
    OrderStatus(11, "SellerRefundAgree", "REFUND", False),
    OrderStatus(12, "RefundOrderCancel", "REFUND", False),
    OrderStatus(13, "RefundOrderProcessing", "REFUND", False),
    OrderStatus(14, "RefundShippingWaiting", "REFUND", False),
    OrderStatus(15, "RefundShippingProcessing", "REFUND", False),
    OrderStatus(16, "RefundShippingFinished", "REFUND", False),
    OrderStatus(17, "RefundRequisiteApprovals", "REFUND", False),
    OrderStatus(18, "RefundOrderSuccess", "REFUND", True),
)

UNDEFINED_STATUS = OrderStatus(18, "Undefined", "", False)

_BY_VALUE = {status.value: status for status in ORDER_STATUSES}


def find_order_status(value: str | None) -> OrderStatus:
    return _BY_VALUE.get(value or "", UNDEFINED_STATUS)


def can_make_sale_record(value: str | None) -> bool:
    return find_order_status(value).can_make_sale_record
