from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _money():
    return Numeric(18, 2)


class Base(DeclarativeBase):
    pass


class SaleRecordModel(Base):
    __tablename__ = "sale_records"
    __table_args__ = (
        UniqueConstraint(
            "tenant_code",
            "transaction_channel_type",
            "transaction_type",
            "dedup_key",
            name="uq_sale_records_dedup",
        ),
    )

    transaction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dedup_key: Mapped[str] = mapped_column(String(40), nullable=False)
    tenant_code: Mapped[str] = mapped_column(String(50), nullable=False)
    store_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    channel_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    order_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    refund_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    outer_order_no: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    customer_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    emp_id: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    salesman_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    salesman_emp_id: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    salesman_shop_code: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    transaction_channel_type: Mapped[str] = mapped_column(String(30), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    transaction_status: Mapped[str] = mapped_column(String(30), nullable=False)
    transaction_create_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    transaction_update_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    transaction_created_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    is_out_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_refund: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    total_list_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_sale_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_discount_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_transaction_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    discount_offer_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    discount_coupon_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    freight_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    cash_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    mileage: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    mileage_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    obtain_mileage: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    base_trim_code: Mapped[str] = mapped_column(String(10), default="", nullable=False)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    modified: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    modified_by: Mapped[str] = mapped_column(String(64), default="", nullable=False)

    lines: Mapped[list["SaleRecordLineModel"]] = relationship(
        back_populates="sale_record",
        cascade="all, delete-orphan",
        order_by="SaleRecordLineModel.id",
    )
    cart_offers: Mapped[list["AppliedCartOfferModel"]] = relationship(
        cascade="all, delete-orphan",
        order_by="AppliedCartOfferModel.id",
    )
    payments: Mapped[list["SaleRecordPaymentModel"]] = relationship(
        cascade="all, delete-orphan",
        order_by="SaleRecordPaymentModel.id",
    )


class SaleRecordLineModel(Base):
    __tablename__ = "sale_record_lines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("sale_records.transaction_id"), nullable=False)
    order_item_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    refund_item_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    brand_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    brand_code: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    item_code: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    item_name: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    sku_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    sku_img: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    item_fee: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    fee_rate: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    list_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    sale_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    distributed_cash_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_distributed_cart_offer_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_distributed_item_offer_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_distributed_payment_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_list_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_sale_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_discount_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    total_transaction_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    mileage: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    mileage_price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    obtain_mileage: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    is_delivery: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default="", nullable=False)
    created: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    modified: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    modified_by: Mapped[str] = mapped_column(String(64), default="", nullable=False)

    sale_record: Mapped[SaleRecordModel] = relationship(back_populates="lines")
    item_offers: Mapped[list["AppliedItemOfferModel"]] = relationship(
        cascade="all, delete-orphan",
        order_by="AppliedItemOfferModel.id",
    )
    cart_offers: Mapped[list["LineCartOfferModel"]] = relationship(
        cascade="all, delete-orphan",
        order_by="LineCartOfferModel.id",
    )


class AppliedCartOfferModel(Base):
    __tablename__ = "sale_record_cart_offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("sale_records.transaction_id"), nullable=False)
    tenant_code: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    offer_no: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    coupon_no: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    item_ids: Mapped[str] = mapped_column(Text, default="", nullable=False)
    target_item_ids: Mapped[str] = mapped_column(Text, default="", nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    target_type: Mapped[str] = mapped_column(String(10), default="", nullable=False)


class LineCartOfferModel(Base):
    __tablename__ = "sale_record_line_cart_offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_dtl_id: Mapped[int] = mapped_column(ForeignKey("sale_record_lines.id"), nullable=False)
    offer_no: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    coupon_no: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    target_type: Mapped[str] = mapped_column(String(10), default="", nullable=False)
    is_target: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)


class AppliedItemOfferModel(Base):
    __tablename__ = "sale_record_item_offers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_dtl_id: Mapped[int] = mapped_column(ForeignKey("sale_record_lines.id"), nullable=False)
    tenant_code: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    offer_no: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    coupon_no: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    item_codes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    item_code: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    price: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    target_type: Mapped[str] = mapped_column(String(10), default="", nullable=False)


class SaleRecordPaymentModel(Base):
    __tablename__ = "sale_record_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("sale_records.transaction_id"), nullable=False)
    seq_no: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    pay_method: Mapped[str] = mapped_column(String(50), default="", nullable=False)
    pay_amt: Mapped[Decimal] = mapped_column(_money(), default=0, nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class SaleRecordLogModel(Base):
    __tablename__ = "sale_record_logs"
    __table_args__ = (
        UniqueConstraint(
            "order_id",
            "refund_id",
            "tenant_code",
            "channel_type",
            "transaction_type",
            name="uq_sale_record_logs_key",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_code: Mapped[str] = mapped_column(String(50), nullable=False)
    channel_type: Mapped[str] = mapped_column(String(30), nullable=False)
    transaction_type: Mapped[str] = mapped_column(String(30), nullable=False)
    order_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    refund_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    store_id: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    error_type: Mapped[str] = mapped_column(String(30), default="", nullable=False)
    error: Mapped[str] = mapped_column(Text, default="", nullable=False)
    details: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    is_success: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    order_entity: Mapped[str] = mapped_column(Text, default="", nullable=False)
    transaction_create_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


Index("ix_sale_records_order", SaleRecordModel.order_id)
Index("ix_sale_records_refund", SaleRecordModel.refund_id)
Index("ix_sale_records_store_created", SaleRecordModel.store_id, SaleRecordModel.created)
Index("ix_sale_record_lines_transaction", SaleRecordLineModel.transaction_id)
Index("ix_sale_record_logs_created", SaleRecordLogModel.created_at)
Index("ix_sale_record_logs_error_type", SaleRecordLogModel.error_type)
