from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from salerecords.core.context import TraceContext
from salerecords.domain.money import Money
from salerecords.persistence.models import (
    AppliedCartOfferModel,
    AppliedItemOfferModel,
    LineCartOfferModel,
    SaleRecordLineModel,
    SaleRecordLogModel,
    SaleRecordModel,
    SaleRecordPaymentModel,
)

ZERO = Decimal("0")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# Inbound order / refund events


class OfferEvent(CamelModel):
    offer_no: str = ""
    coupon_no: str = ""
    item_ids: str = ""
    target_item_ids: str = ""
    price: Money = ZERO
    target_type: str = ""


class OrderItemOfferEvent(CamelModel):
    offer_no: str = ""
    coupon_no: str = ""
    target_type: str = ""
    is_target: bool = False
    price: Money = ZERO


class EventItemBase(CamelModel):
    id: int = 0
    outer_order_item_no: str = ""
    item_code: str = ""
    item_name: str = ""
    item_fee: Money = ZERO
    fee_rate: Decimal = ZERO
    product_id: int = 0
    sku_id: int = 0
    sku_img: str = ""
    option: str = ""
    list_price: Money = ZERO
    sale_price: Money = ZERO
    quantity: int = 0
    total_list_price: Money = ZERO
    total_sale_price: Money = ZERO
    total_discount_price: Money = ZERO
    mileage: Money = ZERO
    mileage_price: Money = ZERO
    obtain_mileage: Money = ZERO
    cash_price: Money = ZERO
    total_distributed_cart_offer_price: Money = ZERO
    status: str = ""
    is_delivery: bool = False
    group_offers: list[OrderItemOfferEvent] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderEventItem(EventItemBase):
    total_payment_price: Money = ZERO
    is_stock_checked: bool = False

    @property
    def payment_price(self) -> Decimal:
        return self.total_payment_price


class RefundEventItem(EventItemBase):
    order_item_id: int = 0
    separate_id: int = 0
    stock_distribution_item_id: int = 0
    total_refund_price: Money = ZERO

    @property
    def payment_price(self) -> Decimal:
        return self.total_refund_price


class TransactionEventBase(CamelModel):
    id: int = 0
    outer_order_no: str = ""
    tenant_code: str = ""
    store_id: int = 0
    channel_id: int = 0
    customer_id: int = 0
    salesman_id: int = 0
    total_list_price: Money = ZERO
    total_sale_price: Money = ZERO
    total_discount_price: Money = ZERO
    freight_price: Money = ZERO
    mileage: Money = ZERO
    mileage_price: Money = ZERO
    obtain_mileage: Money = ZERO
    cash_price: Money = ZERO
    is_out_paid: bool = False
    status: str = ""
    offers: list[OfferEvent] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_id: int = 0


class RefundEvent(TransactionEventBase):
    refund_type: str = ""
    total_refund_price: Money = ZERO
    cust_remark: str = ""
    refund_reason: str = ""
    refuse_reason: str = ""
    items: list[RefundEventItem] = Field(default_factory=list)

    @property
    def channel_type(self) -> str:
        return self.refund_type

    @property
    def payment_price(self) -> Decimal:
        return self.total_refund_price


class OrderEvent(TransactionEventBase):
    sale_type: str = ""
    total_payment_price: Money = ZERO
    items: list[OrderEventItem] = Field(default_factory=list)
    refunds: list[RefundEvent] | None = None

    @property
    def channel_type(self) -> str:
        return self.sale_type

    @property
    def payment_price(self) -> Decimal:
        return self.total_payment_price


class Event(CamelModel):
    entity_type: str = ""
    status: str = ""
    payload: OrderEvent = Field(default_factory=OrderEvent)

    @property
    def refund(self) -> RefundEvent | None:
        if self.payload.refunds:
            return self.payload.refunds[0]
        return None

    def snapshot(self) -> str:
        return self.model_dump_json(by_alias=True)


# Outbound sale record projection


class TotalPriceEvent(CamelModel):
    list_price: Money = ZERO
    sale_price: Money = ZERO
    discount_price: Money = ZERO
    transaction_price: Money = ZERO


class DistributedPriceEvent(CamelModel):
    total_distributed_item_offer_price: Money = ZERO
    total_distributed_cart_offer_price: Money = ZERO
    total_distributed_payment_price: Money = ZERO
    distributed_cash_price: Money = ZERO


class CommittedEvent(CamelModel):
    created: datetime | None = None
    created_by: str = ""
    modified: datetime | None = None
    modified_by: str = ""


class ItemOfferEvent(CamelModel):
    offer_id: int | None = None
    tenant_code: str = ""
    offer_no: str = ""
    coupon_no: str = ""
    item_codes: str = ""
    item_code: str = ""
    price: Money = ZERO
    type: str = ""
    target_type: str = ""


class ItemCartOfferEvent(CamelModel):
    offer_no: str = ""
    coupon_no: str = ""
    target_type: str = ""
    is_target: bool = False
    price: Money = ZERO
    type: str = ""


class CartOfferEvent(CamelModel):
    offer_id: int | None = None
    offer_no: str = ""
    coupon_no: str = ""
    item_ids: str = ""
    target_item_ids: str = ""
    price: Money = ZERO
    type: str = ""
    target_type: str = ""


class PaymentEvent(CamelModel):
    seq_no: int = 0
    pay_method: str = ""
    pay_amt: Money = ZERO
    created_at: datetime | None = None


class SaleRecordDtlEvent(CamelModel):
    id: int | None = None
    order_item_id: int = 0
    refund_item_id: int = 0
    brand_id: int = 0
    brand_code: str = ""
    item_code: str = ""
    item_name: str = ""
    product_id: int = 0
    sku_id: int = 0
    sku_img: str = ""
    list_price: Money = ZERO
    sale_price: Money = ZERO
    quantity: int = 0
    mileage: Money = ZERO
    mileage_price: Money = ZERO
    obtain_mileage: Money = ZERO
    total_price: TotalPriceEvent = Field(default_factory=TotalPriceEvent)
    distributed_price: DistributedPriceEvent = Field(default_factory=DistributedPriceEvent)
    status: str = ""
    item_fee: Money = ZERO
    fee_rate: Decimal = ZERO
    is_delivery: bool = False
    item_offers: list[ItemOfferEvent] = Field(default_factory=list)
    cart_offers: list[ItemCartOfferEvent] = Field(default_factory=list)
    committed: CommittedEvent = Field(default_factory=CommittedEvent)

    def to_line(self) -> SaleRecordLineModel:
        return SaleRecordLineModel(
            id=self.id,
            order_item_id=self.order_item_id,
            refund_item_id=self.refund_item_id,
            brand_id=self.brand_id,
            brand_code=self.brand_code,
            item_code=self.item_code,
            item_name=self.item_name,
            product_id=self.product_id,
            sku_id=self.sku_id,
            sku_img=self.sku_img,
            item_fee=self.item_fee,
            fee_rate=self.fee_rate,
            list_price=self.list_price,
            sale_price=self.sale_price,
            quantity=self.quantity,
            mileage=self.mileage,
            mileage_price=self.mileage_price,
            obtain_mileage=self.obtain_mileage,
            total_list_price=self.total_price.list_price,
            total_sale_price=self.total_price.sale_price,
            total_discount_price=self.total_price.discount_price,
            total_transaction_price=self.total_price.transaction_price,
            distributed_cash_price=self.distributed_price.distributed_cash_price,
            total_distributed_cart_offer_price=self.distributed_price.total_distributed_cart_offer_price,
            total_distributed_item_offer_price=self.distributed_price.total_distributed_item_offer_price,
            total_distributed_payment_price=self.distributed_price.total_distributed_payment_price,
            is_delivery=self.is_delivery,
            status=self.status,
            created=self.committed.created,
            created_by=self.committed.created_by,
            modified=self.committed.modified,
            modified_by=self.committed.modified_by,
            item_offers=[
                AppliedItemOfferModel(
                    id=offer.offer_id,
                    tenant_code=offer.tenant_code,
                    offer_no=offer.offer_no,
                    coupon_no=offer.coupon_no,
                    item_codes=offer.item_codes,
                    item_code=offer.item_code,
                    price=offer.price,
                    type=offer.type,
                    target_type=offer.target_type,
                )
                for offer in self.item_offers
            ],
            cart_offers=[
                LineCartOfferModel(
                    offer_no=offer.offer_no,
                    coupon_no=offer.coupon_no,
                    target_type=offer.target_type,
                    is_target=offer.is_target,
                    price=offer.price,
                    type=offer.type,
                )
                for offer in self.cart_offers
            ],
        )


class SaleRecordEvent(CamelModel):
    transaction_id: int | None = None
    assorted_sale_record_dtl_list: list[SaleRecordDtlEvent] = Field(default_factory=list)
    tenant_code: str = ""
    store_id: int = 0
    channel_id: int = 0
    order_id: int = 0
    outer_order_no: str = ""
    refund_id: int = 0
    is_refund: bool = False
    transaction_type: str = ""
    transaction_channel_type: str = ""
    transaction_status: str = ""
    transaction_create_date: datetime | None = None
    transaction_update_date: datetime | None = None
    transaction_created_id: int = 0
    customer_id: int = 0
    emp_id: str = ""
    salesman_id: int = 0
    salesman_emp_id: str = ""
    salesman_shop_code: str = ""
    total_price: TotalPriceEvent = Field(default_factory=TotalPriceEvent)
    discount_offer_price: Money = ZERO
    discount_coupon_price: Money = ZERO
    freight_price: Money = ZERO
    mileage: Money = ZERO
    mileage_price: Money = ZERO
    obtain_mileage: Money = ZERO
    cash_price: Money = ZERO
    is_out_paid: bool = False
    cart_offers: list[CartOfferEvent] = Field(default_factory=list)
    committed: CommittedEvent = Field(default_factory=CommittedEvent)
    base_trim_code: str = ""
    payments: list[PaymentEvent] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: SaleRecordModel) -> "SaleRecordEvent":
        return cls(
            transaction_id=record.transaction_id,
            assorted_sale_record_dtl_list=[_line_event(line) for line in record.lines],
            tenant_code=record.tenant_code,
            store_id=record.store_id,
            channel_id=record.channel_id,
            order_id=record.order_id,
            outer_order_no=record.outer_order_no,
            refund_id=record.refund_id,
            is_refund=record.is_refund,
            transaction_type=record.transaction_type,
            transaction_channel_type=record.transaction_channel_type,
            transaction_status=record.transaction_status,
            transaction_create_date=record.transaction_create_date,
            transaction_update_date=record.transaction_update_date,
            transaction_created_id=record.transaction_created_id,
            customer_id=record.customer_id,
            emp_id=record.emp_id,
            salesman_id=record.salesman_id,
            salesman_emp_id=record.salesman_emp_id,
            salesman_shop_code=record.salesman_shop_code,
            total_price=TotalPriceEvent(
                list_price=record.total_list_price,
                sale_price=record.total_sale_price,
                discount_price=record.total_discount_price,
                transaction_price=record.total_transaction_price,
            ),
            discount_offer_price=record.discount_offer_price,
            discount_coupon_price=record.discount_coupon_price,
            freight_price=record.freight_price,
            mileage=record.mileage,
            mileage_price=record.mileage_price,
            obtain_mileage=record.obtain_mileage,
            cash_price=record.cash_price,
            is_out_paid=record.is_out_paid,
            cart_offers=[
                CartOfferEvent(
                    offer_id=offer.id,
                tenant_code=offer.tenant_code,
                    offer_no=offer.offer_no,
                    coupon_no=offer.coupon_no,
                    item_ids=offer.item_ids,
                    target_item_ids=offer.target_item_ids,
                    price=offer.price,
                    type=offer.type,
                    target_type=offer.target_type,
                )
                for offer in record.cart_offers
            ],
            committed=CommittedEvent(
                created=record.created,
                created_by=record.created_by,
                modified=record.modified,
                modified_by=record.modified_by,
            ),
            base_trim_code=record.base_trim_code,
            payments=[
                PaymentEvent(
                    seq_no=payment.seq_no,
                    pay_method=payment.pay_method,
                    pay_amt=payment.pay_amt,
                    created_at=payment.created_at,
                )
                for payment in record.payments
            ],
        )

    def to_record(self) -> SaleRecordModel:
        """Rebuild an unsaved aggregate from the projection."""
        return SaleRecordModel(
            transaction_id=self.transaction_id,
            tenant_code=self.tenant_code,
            store_id=self.store_id,
            channel_id=self.channel_id,
            order_id=self.order_id,
            outer_order_no=self.outer_order_no,
            refund_id=self.refund_id,
            is_refund=self.is_refund,
            customer_id=self.customer_id,
            emp_id=self.emp_id,
            salesman_id=self.salesman_id,
            salesman_emp_id=self.salesman_emp_id,
            salesman_shop_code=self.salesman_shop_code,
            transaction_channel_type=self.transaction_channel_type,
            transaction_type=self.transaction_type,
            transaction_status=self.transaction_status,
            transaction_create_date=self.transaction_create_date,
            transaction_update_date=self.transaction_update_date,
            transaction_created_id=self.transaction_created_id,
            is_out_paid=self.is_out_paid,
            total_list_price=self.total_price.list_price,
            total_sale_price=self.total_price.sale_price,
            total_discount_price=self.total_price.discount_price,
            total_transaction_price=self.total_price.transaction_price,
            discount_offer_price=self.discount_offer_price,
            discount_coupon_price=self.discount_coupon_price,
            freight_price=self.freight_price,
            cash_price=self.cash_price,
            mileage=self.mileage,
            mileage_price=self.mileage_price,
            obtain_mileage=self.obtain_mileage,
            base_trim_code=self.base_trim_code,
            created=self.committed.created,
            created_by=self.committed.created_by,
            modified=self.committed.modified,
            modified_by=self.committed.modified_by,
            lines=[line.to_line() for line in self.assorted_sale_record_dtl_list],
            cart_offers=[
                AppliedCartOfferModel(
                    id=offer.offer_id,
                    tenant_code=self.tenant_code,
                    offer_no=offer.offer_no,
                    coupon_no=offer.coupon_no,
                    item_ids=offer.item_ids,
                    target_item_ids=offer.target_item_ids,
                    price=offer.price,
                    type=offer.type,
                    target_type=offer.target_type,
                )
                for offer in self.cart_offers
            ],
            payments=[
                SaleRecordPaymentModel(
                    seq_no=payment.seq_no,
                    pay_method=payment.pay_method,
                    pay_amt=payment.pay_amt,
                    created_at=payment.created_at,
                )
                for payment in self.payments
            ],
        )


def _line_event(line: SaleRecordLineModel) -> SaleRecordDtlEvent:
    return SaleRecordDtlEvent(
        id=line.id,
        order_item_id=line.order_item_id,
        refund_item_id=line.refund_item_id,
        brand_id=line.brand_id,
        brand_code=line.brand_code,
        item_code=line.item_code,
        item_name=line.item_name,
        product_id=line.product_id,
        sku_id=line.sku_id,
        sku_img=line.sku_img,
        list_price=line.list_price,
        sale_price=line.sale_price,
        quantity=line.quantity,
        mileage=line.mileage,
        mileage_price=line.mileage_price,
        obtain_mileage=line.obtain_mileage,
        total_price=TotalPriceEvent(
            list_price=line.total_list_price,
            sale_price=line.total_sale_price,
            discount_price=line.total_discount_price,
            transaction_price=line.total_transaction_price,
        ),
        distributed_price=DistributedPriceEvent(
            total_distributed_item_offer_price=line.total_distributed_item_offer_price,
            total_distributed_cart_offer_price=line.total_distributed_cart_offer_price,
            total_distributed_payment_price=line.total_distributed_payment_price,
            distributed_cash_price=line.distributed_cash_price,
        ),
        status=line.status,
        item_fee=line.item_fee,
        fee_rate=line.fee_rate,
        is_delivery=line.is_delivery,
        item_offers=[
            ItemOfferEvent(
                offer_id=offer.id,
                tenant_code=offer.tenant_code,
                offer_no=offer.offer_no,
                coupon_no=offer.coupon_no,
                item_codes=offer.item_codes,
                item_code=offer.item_code,
                price=offer.price,
                type=offer.type,
                target_type=offer.target_type,
            )
            for offer in line.item_offers
        ],
        cart_offers=[
            ItemCartOfferEvent(
                offer_no=offer.offer_no,
                coupon_no=offer.coupon_no,
                target_type=offer.target_type,
                is_target=offer.is_target,
                price=offer.price,
                type=offer.type,
            )
            for offer in line.cart_offers
        ],
        committed=CommittedEvent(
            created=line.created,
            created_by=line.created_by,
            modified=line.modified,
            modified_by=line.modified_by,
        ),
    )


class SaleRecordFailEvent(CamelModel):
    id: int = 0
    tenant_code: str = ""
    channel_type: str = ""
    order_id: int = 0
    refund_id: int = 0
    store_id: int = 0
    error_type: str = ""
    error: str = ""
    is_success: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_log(cls, row: SaleRecordLogModel) -> "SaleRecordFailEvent":
        return cls(
            id=row.id,
            tenant_code=row.tenant_code,
            channel_type=row.channel_type,
            order_id=row.order_id,
            refund_id=row.refund_id,
            store_id=row.store_id,
            error_type=row.error_type,
            error=row.error,
            is_success=row.is_success,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class SaleRecordLogView(CamelModel):
    id: int
    tenant_code: str
    channel_type: str
    transaction_type: str
    order_id: int
    refund_id: int
    store_id: int
    error_type: str
    error: str
    details: str
    is_success: bool
    order_entity: str = Field(serialization_alias="orderEntitys")
    transaction_create_date: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_log(cls, row: SaleRecordLogModel) -> "SaleRecordLogView":
        return cls(**{name: getattr(row, name) for name in cls.model_fields})


def wrap_message(payload: BaseModel, trace: TraceContext | None = None) -> dict[str, Any]:
    trace = trace or TraceContext()
    return {
        "requestId": trace.request_id,
        "actionId": trace.action_id,
        "authToken": trace.auth_token,
        "payload": payload.model_dump(mode="json", by_alias=True),
    }
