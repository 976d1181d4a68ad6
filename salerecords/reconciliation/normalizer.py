from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from salerecords.clients.lookups import Item, Lookups
from salerecords.core.context import TraceContext
from salerecords.domain.distribution import DistributeData, calculate_distribute_amt
from salerecords.domain.errors import SaleRecordError, SaleRecordErrorKind
from salerecords.domain.money import ZERO, RoundingSpec, sum_fixed, to_fixed
from salerecords.domain.rounding import RoundingPolicy, RoundingPolicyResolver
from salerecords.events.schemas import (
    Event,
    EventItemBase,
    OfferEvent,
    OrderEvent,
    OrderEventItem,
    RefundEvent,
    RefundEventItem,
    TransactionEventBase,
)
from salerecords.persistence.models import (
    AppliedCartOfferModel,
    AppliedItemOfferModel,
    LineCartOfferModel,
    SaleRecordLineModel,
    SaleRecordModel,
    SaleRecordPaymentModel,
)

logger = logging.getLogger(__name__)

LISTENER_ACTOR = "kafka-listener"
GIFT_TARGET_TYPE = "gift"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def split_discount(offers: list[OfferEvent]) -> tuple[Decimal, Decimal]:
    """Return (offer discount, coupon discount) summed from the cart offers."""
    offer_total = sum_fixed(offer.price for offer in offers if not offer.coupon_no)
    coupon_total = sum_fixed(offer.price for offer in offers if offer.coupon_no)
    return offer_total, coupon_total


def _offer_item_ids(offer: OfferEvent) -> list[str]:
    raw = offer.target_item_ids or offer.item_ids
    return [part.strip() for part in raw.split(",") if part.strip()]


class _BaseNormalizer:
    transaction_type = ""
    offer_type = ""

    def __init__(self, lookups: Lookups, redistribute_cart_offers: bool = False):
        self.lookups = lookups
        self.redistribute_cart_offers = redistribute_cart_offers

    # hooks

    def _distribution_id(self, item: EventItemBase) -> int:
        raise NotImplementedError

    def _header_actor(self, body: TransactionEventBase) -> str:
        raise NotImplementedError

    def _line_identity(self, item: EventItemBase, catalog: Item) -> dict:
        raise NotImplementedError

    # shared steps

    def distribute_cart_offers(self, body: TransactionEventBase, spec: RoundingSpec) -> TransactionEventBase:
        """Recompute each item's cart-offer share on a copy of ``body``."""
        body = body.model_copy(deep=True)
        if not body.offers:
            return body
        for item in body.items:
            item.total_distributed_cart_offer_price = ZERO

        for offer in body.offers:
            if offer.price == ZERO:
                continue
            item_ids = set(_offer_item_ids(offer))
            targets = [item for item in body.items if str(self._distribution_id(item)) in item_ids]
            if offer.target_type == GIFT_TARGET_TYPE:
                for item in targets:
                    item.total_distributed_cart_offer_price = item.total_list_price
                continue

            data = DistributeData()
            for item in targets:
                data.add(self._distribution_id(item), item.item_code, item.total_sale_price, spec)
            calculate_distribute_amt(data, offer.price, spec)
            shares = {entry.id: entry.distribute_amt for entry in data.items}
            for item in targets:
                item.total_distributed_cart_offer_price = to_fixed(
                    item.total_distributed_cart_offer_price + shares[self._distribution_id(item)]
                )
        return body

    def _header(self, body: TransactionEventBase, policy: RoundingPolicy) -> SaleRecordModel:
        now = _now()
        actor = self._header_actor(body)
        offer_price, coupon_price = split_discount(body.offers)
        return SaleRecordModel(
            tenant_code=body.tenant_code,
            store_id=body.store_id,
            channel_id=body.channel_id,
            outer_order_no=body.outer_order_no,
            customer_id=body.customer_id,
            salesman_id=body.salesman_id,
            transaction_channel_type=body.channel_type,
            transaction_type=self.transaction_type,
            transaction_status=body.status,
            transaction_create_date=body.created_at,
            transaction_update_date=body.created_at,
            transaction_created_id=body.created_id,
            is_out_paid=body.is_out_paid,
            total_list_price=body.total_list_price,
            total_sale_price=body.total_sale_price,
            total_discount_price=body.total_discount_price,
            total_transaction_price=body.payment_price,
            discount_offer_price=offer_price,
            discount_coupon_price=coupon_price,
            freight_price=body.freight_price,
            cash_price=body.cash_price,
            mileage=body.mileage,
            mileage_price=body.mileage_price,
            obtain_mileage=body.obtain_mileage,
            base_trim_code=policy.trim_code,
            created=now,
            created_by=actor,
            modified=now,
            modified_by=actor,
            cart_offers=[
                AppliedCartOfferModel(
                    tenant_code=body.tenant_code,
                    offer_no=offer.offer_no,
                    coupon_no=offer.coupon_no,
                    item_ids=offer.item_ids,
                    target_item_ids=offer.target_item_ids,
                    price=offer.price,
                    target_type=offer.target_type,
                    type=self.offer_type,
                )
                for offer in body.offers
            ],
        )

    def _line(self, body: TransactionEventBase, item: EventItemBase, trace: TraceContext | None) -> SaleRecordLineModel:
        catalog = self.lookups.products.get_item_by_code(item.item_code, trace=trace)
        payment_price = item.payment_price
        cart_offer_price = item.total_distributed_cart_offer_price

        distributed_cash_price = to_fixed(payment_price - cart_offer_price - item.mileage_price)
        if distributed_cash_price < ZERO:
            raise SaleRecordError(
                SaleRecordErrorKind.DISTRIBUTED_CASH_PRICE,
                f"item {item.item_code} distributed cash price {distributed_cash_price} is negative",
            )
        distributed_payment_price = to_fixed(payment_price - cart_offer_price)
        if distributed_payment_price < ZERO:
            raise SaleRecordError(
                SaleRecordErrorKind.TOTAL_DISTRIBUTED_PAYMENT_PRICE,
                f"item {item.item_code} distributed payment price {distributed_payment_price} is negative",
            )

        line = SaleRecordLineModel(
            brand_id=catalog.sku.product.brand.id,
            brand_code=catalog.sku.product.brand.code,
            item_code=item.item_code,
            item_name=item.item_name,
            item_fee=item.item_fee,
            fee_rate=item.fee_rate,
            sku_id=item.sku_id,
            sku_img=item.sku_img,
            quantity=item.quantity,
            total_list_price=item.total_list_price,
            total_sale_price=item.total_sale_price,
            total_discount_price=item.total_discount_price,
            total_transaction_price=payment_price,
            distributed_cash_price=distributed_cash_price,
            total_distributed_cart_offer_price=cart_offer_price,
            total_distributed_item_offer_price=to_fixed(item.total_list_price - item.total_sale_price),
            total_distributed_payment_price=distributed_payment_price,
            mileage=item.mileage,
            mileage_price=item.mileage_price,
            obtain_mileage=item.obtain_mileage,
            is_delivery=item.is_delivery,
            status=item.status,
            created=item.created_at,
            created_by=LISTENER_ACTOR,
            modified=item.updated_at,
            modified_by=LISTENER_ACTOR,
            cart_offers=[
                LineCartOfferModel(
                    offer_no=offer.offer_no,
                    coupon_no=offer.coupon_no,
                    target_type=offer.target_type,
                    is_target=offer.is_target,
                    price=offer.price,
                    type=self.offer_type,
                )
                for offer in item.group_offers
            ],
            **self._line_identity(item, catalog),
        )
        if catalog.offer is not None and item.total_discount_price != ZERO:
            line.item_offers.append(
                AppliedItemOfferModel(
                    tenant_code=body.tenant_code,
                    offer_no=catalog.offer.no,
                    item_code=item.item_code,
                    item_codes=item.item_code,
                    price=catalog.offer.discount_price,
                    type=self.offer_type,
                )
            )
        return line

    def _payments(self, order_id: int, refund_id: int, trace: TraceContext | None) -> list[SaleRecordPaymentModel]:
        rows = self.lookups.payments.get_payments(order_id, refund_id, trace=trace)
        if not rows:
            raise SaleRecordError(
                SaleRecordErrorKind.PAYMENT_NOT_EXIST,
                f"no payments for orderId={order_id} refundId={refund_id}",
            )
        return [
            SaleRecordPaymentModel(
                seq_no=row.seq_no,
                pay_method=row.pay_method,
                pay_amt=abs(row.pay_amt),
                created_at=row.created_at,
            )
            for row in rows
        ]

    def _build(
        self,
        body: TransactionEventBase,
        policy: RoundingPolicy,
        trace: TraceContext | None,
    ) -> SaleRecordModel:
        if self.redistribute_cart_offers:
            body = self.distribute_cart_offers(body, policy.spec)
        record = self._header(body, policy)
        for item in body.items:
            record.lines.append(self._line(body, item, trace))
        return record


class OrderEventNormalizer(_BaseNormalizer):
    transaction_type = "PLUS"
    offer_type = "ORDER"

    def _distribution_id(self, item: OrderEventItem) -> int:
        return item.id

    def _header_actor(self, body: OrderEvent) -> str:
        return LISTENER_ACTOR

    def _line_identity(self, item: OrderEventItem, catalog: Item) -> dict:
        return {
            "order_item_id": item.id,
            "product_id": item.product_id,
            "list_price": item.list_price,
            "sale_price": item.sale_price,
        }

    def normalize(self, order: OrderEvent, policy: RoundingPolicy, trace: TraceContext | None = None) -> SaleRecordModel:
        record = self._build(order, policy, trace)
        record.order_id = order.id
        record.refund_id = 0
        record.is_refund = False
        record.payments = self._payments(order.id, 0, trace)
        record.emp_id = self.resolve_emp_id(order, trace)
        return record

    def resolve_emp_id(self, order: OrderEvent, trace: TraceContext | None = None) -> str:
        if not order.offers or order.customer_id <= 0:
            return ""
        for offer in order.offers:
            if not offer.coupon_no:
                continue
            coupon = self.lookups.coupons.get_coupon(offer.coupon_no, trace=trace)
            if not coupon.is_internal:
                continue
            member = self.lookups.members.get_member(order.customer_id, order.tenant_code, trace=trace)
            if member is None:
                continue
            logger.info("order %s employee purchase via coupon %s", order.id, offer.coupon_no)
            return member.hr_emp_no
        return ""


class RefundEventNormalizer(_BaseNormalizer):
    transaction_type = "MINUS"
    offer_type = "REFUND"

    def _distribution_id(self, item: RefundEventItem) -> int:
        return item.order_item_id

    def _header_actor(self, body: RefundEvent) -> str:
        return str(body.salesman_id)

    def _line_identity(self, item: RefundEventItem, catalog: Item) -> dict:
        return {
            "order_item_id": item.order_item_id,
            "refund_item_id": item.id,
            "product_id": catalog.sku.product.id,
            "list_price": catalog.sku.product.list_price,
            "sale_price": catalog.sale_price,
        }

    def normalize(
        self,
        refund: RefundEvent,
        order_id: int,
        policy: RoundingPolicy,
        trace: TraceContext | None = None,
    ) -> SaleRecordModel:
        record = self._build(refund, policy, trace)
        record.order_id = order_id
        record.refund_id = refund.id
        record.is_refund = True
        record.payments = self._payments(0, refund.id, trace)
        return record


class EventNormalizer:
    """Turns an inbound order event into an unsaved sale record aggregate."""

    def __init__(self, lookups: Lookups, redistribute_cart_offers: bool = False):
        self.rounding = RoundingPolicyResolver(lookups.stores)
        self.orders = OrderEventNormalizer(lookups, redistribute_cart_offers)
        self.refunds = RefundEventNormalizer(lookups, redistribute_cart_offers)

    def normalize(self, event: Event, trace: TraceContext | None = None) -> SaleRecordModel:
        refund = event.refund
        body = refund if refund is not None else event.payload
        policy = self.rounding.resolve(body.store_id, trace=trace)
        if refund is not None:
            return self.refunds.normalize(refund, event.payload.id, policy, trace=trace)
        return self.orders.normalize(event.payload, policy, trace=trace)
