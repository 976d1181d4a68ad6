from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from salerecords.domain.money import ZERO, Money
from salerecords.persistence.models import (
    AppliedCartOfferModel,
    SaleRecordLineModel,
    SaleRecordModel,
    SaleRecordPaymentModel,
)

EXCEL_UPLOAD_ACTOR = "excel-upload"
TMALL_ACTOR = "sale-record-tmall"
CHANNEL_ACTORS = {"EMALL": EXCEL_UPLOAD_ACTOR, "TMALL": TMALL_ACTOR}
SALE_STATUS = "BuyerReceivedConfirmed"
REFUND_STATUS = "RefundOrderSuccess"


class InputModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SaleRecordDtlInput(InputModel):
    order_item_id: int = Field(default=0, ge=0)
    refund_item_id: int = Field(default=0, ge=0)
    brand_id: int
    brand_code: str = Field(min_length=1)
    product_id: int
    sku_id: int
    fee_rate: Decimal = ZERO
    list_price: Money
    sale_price: Money
    quantity: int
    total_list_price: Money
    total_discount_price: Money = Field(default=ZERO, ge=0)
    total_payment_price: Money


class SaleRecordCartOfferInput(InputModel):
    offer_no: str = ""
    order_item_ids: str = ""
    price: Money = Field(default=ZERO, ge=0)


class SaleRecordPaymentInput(InputModel):
    pay_amt: Money
    pay_method: str = Field(min_length=1)


class SaleRecordInput(InputModel):
    order_id: int = Field(default=0, ge=0)
    refund_id: int = Field(default=0, ge=0)
    channel_id: int = 0
    store_id: int = Field(default=0, ge=0)
    outer_order_no: str = ""
    tenant_code: str = Field(min_length=1)
    total_list_price: Money
    total_discount_price: Money = Field(default=ZERO, ge=0)
    total_payment_price: Money
    freight_price: Money = ZERO
    channel_type: str = Field(min_length=1)
    created_id: int = Field(default=0, ge=0)
    salesman_id: int = Field(default=0, ge=0)
    transaction_type: str = Field(min_length=1)
    offline_shop_code: str = ""
    sale_record_dtl_inputs: list[SaleRecordDtlInput] = Field(min_length=1)
    sale_record_cart_offers: list[SaleRecordCartOfferInput] = Field(default_factory=list)
    sale_record_payments: list[SaleRecordPaymentInput] = Field(min_length=1)

    def actor(self) -> str:
        return CHANNEL_ACTORS.get(self.channel_type, str(self.created_id))

    def split_offline_shop_code(self) -> tuple[str, str]:
        """Return (shop code, salesman employee id) from ``offlineShopCode``."""
        if not self.offline_shop_code:
            return "", ""
        parts = self.offline_shop_code.replace("，", ",", 1).split(",")
        emp_id = parts[-1] if len(parts) > 1 else ""
        return parts[0], emp_id

    def to_sale_record(self) -> SaleRecordModel:
        now = datetime.now(timezone.utc)
        actor = self.actor()
        is_refund = self.refund_id != 0
        status = REFUND_STATUS if is_refund else SALE_STATUS
        shop_code, salesman_emp_id = self.split_offline_shop_code()
        salesman_id = 0 if self.channel_type in CHANNEL_ACTORS else self.salesman_id

        return SaleRecordModel(
            order_id=self.order_id,
            refund_id=self.refund_id,
            tenant_code=self.tenant_code,
            store_id=self.store_id,
            channel_id=self.channel_id,
            outer_order_no=self.outer_order_no,
            customer_id=0,
            emp_id="",
            salesman_id=salesman_id,
            salesman_emp_id=salesman_emp_id,
            salesman_shop_code=shop_code,
            transaction_channel_type=self.channel_type,
            transaction_type=self.transaction_type,
            transaction_status=status,
            transaction_create_date=now,
            transaction_update_date=now,
            transaction_created_id=self.created_id,
            is_out_paid=True,
            is_refund=is_refund,
            total_list_price=self.total_list_price,
            total_sale_price=self.total_payment_price,
            total_discount_price=self.total_discount_price,
            total_transaction_price=self.total_payment_price,
            discount_offer_price=self.total_discount_price,
            discount_coupon_price=ZERO,
            freight_price=self.freight_price,
            cash_price=self.total_payment_price,
            mileage=ZERO,
            mileage_price=ZERO,
            obtain_mileage=ZERO,
            base_trim_code="",
            created=now,
            created_by=actor,
            modified=now,
            modified_by=actor,
            lines=[
                SaleRecordLineModel(
                    order_item_id=line.order_item_id,
                    refund_item_id=line.refund_item_id,
                    brand_id=line.brand_id,
                    brand_code=line.brand_code,
                    product_id=line.product_id,
                    sku_id=line.sku_id,
                    fee_rate=line.fee_rate,
                    list_price=line.list_price,
                    sale_price=line.sale_price,
                    quantity=line.quantity,
                    total_list_price=line.total_list_price,
                    total_discount_price=line.total_discount_price,
                    total_sale_price=line.total_payment_price,
                    total_transaction_price=line.total_payment_price,
                    distributed_cash_price=line.total_payment_price,
                    total_distributed_cart_offer_price=line.total_discount_price,
                    total_distributed_payment_price=line.total_payment_price,
                    is_delivery=False,
                    status=status,
                    created=now,
                    created_by=actor,
                    modified=now,
                    modified_by=actor,
                )
                for line in self.sale_record_dtl_inputs
            ],
            cart_offers=[
                AppliedCartOfferModel(
                    tenant_code=self.tenant_code,
                    offer_no=offer.offer_no,
                    item_ids=offer.order_item_ids,
                    price=offer.price,
                )
                for offer in self.sale_record_cart_offers
            ],
            payments=[
                SaleRecordPaymentModel(
                    seq_no=1,
                    pay_method="CASH",
                    pay_amt=self.total_payment_price,
                    created_at=now,
                )
            ],
        )
