from __future__ import annotations

from salerecords.clients.lookups import Lookups
from salerecords.core.context import TraceContext
from salerecords.domain.errors import SaleRecordError, SaleRecordErrorKind
from salerecords.domain.inputs import SaleRecordInput
from salerecords.domain.money import ZERO, sum_fixed, to_fixed
from salerecords.events.schemas import TransactionEventBase

POS_CHANNEL = "POS"


def check_line_totals(data: SaleRecordInput) -> None:
    lines = data.sale_record_dtl_inputs
    payment = sum_fixed(line.total_payment_price for line in lines)
    discount = sum_fixed(line.total_discount_price for line in lines)
    list_price = sum_fixed(line.total_list_price for line in lines)
    if (
        payment != to_fixed(data.total_payment_price)
        or discount != to_fixed(data.total_discount_price)
        or list_price != to_fixed(data.total_list_price)
    ):
        raise SaleRecordError(
            SaleRecordErrorKind.TOTAL_PRICE,
            f"line totals payment={payment} discount={discount} list={list_price} "
            f"do not match header payment={data.total_payment_price} "
            f"discount={data.total_discount_price} list={data.total_list_price}",
        )


def check_discount_identity(data: SaleRecordInput) -> None:
    expected = to_fixed(data.total_list_price - data.total_payment_price)
    if to_fixed(data.total_discount_price) != expected:
        raise SaleRecordError(
            SaleRecordErrorKind.DISCOUNT_PRICE,
            f"discount {data.total_discount_price} != list {data.total_list_price} - payment {data.total_payment_price}",
        )


def check_cart_offers(data: SaleRecordInput) -> None:
    discount = to_fixed(data.total_discount_price)
    if discount <= ZERO:
        return
    offers = data.sale_record_cart_offers
    if not offers:
        raise SaleRecordError(SaleRecordErrorKind.DISCOUNT_PRICE_NOT_MATCH_OFFER, "discount without any cart offer")
    for offer in offers:
        if not offer.offer_no:
            raise SaleRecordError(SaleRecordErrorKind.OFFER_NO, "cart offer without offerNo")
    offered = sum_fixed(offer.price for offer in offers)
    if offered != discount:
        raise SaleRecordError(
            SaleRecordErrorKind.DISCOUNT_PRICE_NOT_MATCH_OFFER,
            f"cart offers sum {offered} != discount {discount}",
        )


def check_store_brands(data: SaleRecordInput, lookups: Lookups, trace: TraceContext | None = None) -> None:
    if data.store_id == 0:
        raise SaleRecordError(SaleRecordErrorKind.STORE_ID, "storeId is 0")
    store = lookups.stores.get_store(data.store_id, trace=trace)
    if store is None:
        raise SaleRecordError(SaleRecordErrorKind.STORE_NOT_EXIST, f"store {data.store_id} not found")
    for line in data.sale_record_dtl_inputs:
        if not store.has_brand(line.brand_id, line.brand_code):
            raise SaleRecordError(
                SaleRecordErrorKind.BRAND_NOT_MATCH,
                f"brand {line.brand_id}/{line.brand_code} not sold in store {data.store_id}",
            )


def check_skus(data: SaleRecordInput, lookups: Lookups, trace: TraceContext | None = None) -> None:
    for line in data.sale_record_dtl_inputs:
        sku = lookups.products.get_sku(line.sku_id, trace=trace)
        if sku is None:
            raise SaleRecordError(SaleRecordErrorKind.SKU_NOT_EXIST, f"sku {line.sku_id} not found")
        product = sku.product
        if to_fixed(product.list_price) != to_fixed(line.list_price):
            raise SaleRecordError(
                SaleRecordErrorKind.SKU_LIST_PRICE,
                f"sku {line.sku_id} list price {product.list_price} != {line.list_price}",
            )
        if product.id != line.product_id:
            raise SaleRecordError(
                SaleRecordErrorKind.PRODUCT_NOT_MATCH,
                f"sku {line.sku_id} product {product.id} != {line.product_id}",
            )
        if product.brand.code != line.brand_code:
            raise SaleRecordError(
                SaleRecordErrorKind.PRODUCT_BRAND,
                f"sku {line.sku_id} brand {product.brand.code} != {line.brand_code}",
            )


def validate_sale_record_input(data: SaleRecordInput, lookups: Lookups, trace: TraceContext | None = None) -> None:
    """Check an API submission, stopping at the first broken rule."""
    check_line_totals(data)
    if data.created_id == 0:
        raise SaleRecordError(SaleRecordErrorKind.CREATED_ID, "createdId is 0")
    check_discount_identity(data)
    check_cart_offers(data)
    check_store_brands(data, lookups, trace)
    check_skus(data, lookups, trace)


def check_mileage(body: TransactionEventBase) -> None:
    mileage = to_fixed(body.mileage)
    mileage_price = to_fixed(body.mileage_price)
    for item in body.items:
        if item.fee_rate == ZERO:
            raise SaleRecordError(SaleRecordErrorKind.ITEM_FEE_RATE, f"item {item.item_code} has no fee rate")
        mileage = to_fixed(mileage - item.mileage)
        mileage_price = to_fixed(mileage_price - item.mileage_price)
    if mileage != ZERO or mileage_price != ZERO:
        raise SaleRecordError(
            SaleRecordErrorKind.MILEAGE,
            f"item mileage does not reconcile to header: mileage diff={mileage} price diff={mileage_price}",
        )


def validate_transaction_event(body: TransactionEventBase) -> None:
    """Rules shared by order and refund event bodies."""
    if body.created_id == 0:
        raise SaleRecordError(SaleRecordErrorKind.CREATED_ID, f"createdId is 0 for {body.id}")
    if body.channel_type == POS_CHANNEL and body.salesman_id == 0:
        raise SaleRecordError(SaleRecordErrorKind.POS_SALESMAN_ID, f"POS transaction {body.id} has no salesman")
    if body.store_id == 0:
        raise SaleRecordError(SaleRecordErrorKind.STORE_ID, f"storeId is 0 for {body.id}")
    check_mileage(body)
