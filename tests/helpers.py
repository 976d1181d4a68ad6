from __future__ import annotations

import itertools
from decimal import Decimal

from salerecords.clients.lookups import (
    Brand,
    Coupon,
    Item,
    ItemOffer,
    Lookups,
    Member,
    Payment,
    Product,
    RoundingType,
    Sku,
    Store,
    StoreBrand,
)
from salerecords.domain.errors import ExternalServiceError
from salerecords.events.publisher import SaleRecordPublishers
from salerecords.events.schemas import Event

STORE_ID = 100
BRAND_ID = 1
BRAND_CODE = "BR"

_ids = itertools.count(10_000)


def next_id() -> int:
    return next(_ids)


class FakeStores:
    def __init__(self):
        self.stores: dict[int, Store] = {}
        self.add(STORE_ID, trim_code="A")

    def add(self, store_id: int, trim_code: str | None = "A", brands=((BRAND_ID, BRAND_CODE),)) -> Store:
        store = Store(
            id=store_id,
            code=f"S{store_id}",
            enable=True,
            rounding_type=RoundingType(code=trim_code) if trim_code is not None else None,
            brands=[StoreBrand(id=brand_id, code=code, enable=True) for brand_id, code in brands],
        )
        self.stores[store_id] = store
        return store

    def get_store(self, store_id, trace=None):
        return self.stores.get(store_id)


class FakeProducts:
    def __init__(self):
        self.items: dict[str, Item] = {}
        self.skus: dict[int, Sku] = {}
        self.missing: set[str] = set()

    def add_item(self, code: str, sale_price="100", offer: ItemOffer | None = None, product_id: int = 10) -> Item:
        item = Item(
            sale_price=Decimal(sale_price),
            name=code,
            offer=offer,
            sku=Sku(
                product=Product(
                    id=product_id,
                    code=f"P{product_id}",
                    list_price=Decimal(sale_price),
                    brand=Brand(id=BRAND_ID, code=BRAND_CODE),
                )
            ),
        )
        self.items[code] = item
        return item

    def add_sku(self, sku_id: int, list_price, product_id: int = 10, brand_code: str = BRAND_CODE) -> Sku:
        sku = Sku(
            product=Product(
                id=product_id,
                code=f"P{product_id}",
                list_price=Decimal(str(list_price)),
                brand=Brand(id=BRAND_ID, code=brand_code),
            )
        )
        self.skus[sku_id] = sku
        return sku

    def get_item_by_code(self, code, trace=None):
        if code in self.missing:
            raise ExternalServiceError("product", f"item not found: {code}")
        return self.items.get(code) or self.add_item(code)

    def get_sku(self, sku_id, trace=None):
        return self.skus.get(sku_id)


class FakePayments:
    def __init__(self):
        self.rows: dict[tuple[int, int], list[Payment]] = {}
        self.empty: set[tuple[int, int]] = set()
        self.calls: list[tuple[int, int]] = []

    def get_payments(self, order_id, refund_id, trace=None):
        self.calls.append((order_id, refund_id))
        key = (order_id, refund_id)
        if key in self.empty:
            return []
        if key in self.rows:
            return self.rows[key]
        amount = Decimal("-120") if refund_id else Decimal("120")
        return [Payment(seq_no=1, pay_method="CASH", pay_amt=amount)]


class FakeCoupons:
    def __init__(self):
        self.internal: set[str] = set()

    def get_coupon(self, coupon_no, trace=None):
        return Coupon(coupon_no=coupon_no, is_internal=coupon_no in self.internal)


class FakeMembers:
    def __init__(self):
        self.members: dict[int, Member] = {}

    def get_member(self, customer_id, tenant_code, trace=None):
        return self.members.get(customer_id)


def make_lookups() -> Lookups:
    return Lookups(
        stores=FakeStores(),
        products=FakeProducts(),
        payments=FakePayments(),
        coupons=FakeCoupons(),
        members=FakeMembers(),
    )


def order_payload(order_id: int, **overrides) -> dict:
    """An order of two items: 100 and 50 list, 20 and 10 cart discount, 120 paid."""
    payload = {
        "id": order_id,
        "tenantCode": "hublabs",
        "storeId": STORE_ID,
        "channelId": 3,
        "customerId": 0,
        "saleType": "POS",
        "salesmanId": 7,
        "createdId": 7,
        "status": "BuyerReceivedConfirmed",
        "outerOrderNo": f"OUT-{order_id}",
        "totalListPrice": 150,
        "totalSalePrice": 150,
        "totalDiscountPrice": 30,
        "totalPaymentPrice": 120,
        "cashPrice": 120,
        "createdAt": "2024-05-01T10:00:00Z",
        "offers": [
            {"offerNo": "CART-1", "itemIds": f"{order_id}1,{order_id}2", "price": 30, "targetType": ""},
        ],
        "items": [
            {
                "id": int(f"{order_id}1"),
                "itemCode": "ITEM-A",
                "itemName": "Item A",
                "feeRate": 0.05,
                "productId": 10,
                "skuId": 1001,
                "listPrice": 100,
                "salePrice": 100,
                "quantity": 1,
                "totalListPrice": 100,
                "totalSalePrice": 100,
                "totalDiscountPrice": 20,
                "totalPaymentPrice": 100,
                "totalDistributedCartOfferPrice": 20,
                "status": "BuyerReceivedConfirmed",
                "groupOffers": [{"offerNo": "CART-1", "price": 20, "isTarget": True}],
            },
            {
                "id": int(f"{order_id}2"),
                "itemCode": "ITEM-B",
                "itemName": "Item B",
                "feeRate": 0.05,
                "productId": 10,
                "skuId": 1002,
                "listPrice": 50,
                "salePrice": 50,
                "quantity": 1,
                "totalListPrice": 50,
                "totalSalePrice": 50,
                "totalDiscountPrice": 10,
                "totalPaymentPrice": 50,
                "totalDistributedCartOfferPrice": 10,
                "status": "BuyerReceivedConfirmed",
            },
        ],
    }
    payload.update(overrides)
    return payload


def refund_payload(order_id: int, refund_id: int, **overrides) -> dict:
    refund = {
        "id": refund_id,
        "tenantCode": "hublabs",
        "storeId": STORE_ID,
        "refundType": "POS",
        "salesmanId": 7,
        "createdId": 7,
        "status": "RefundOrderSuccess",
        "totalListPrice": 100,
        "totalSalePrice": 100,
        "totalDiscountPrice": 20,
        "totalRefundPrice": 80,
        "createdAt": "2024-05-02T10:00:00Z",
        "offers": [{"offerNo": "CART-1", "itemIds": f"{order_id}1", "price": 20}],
        "items": [
            {
                "id": refund_id * 10 + 1,
                "orderItemId": int(f"{order_id}1"),
                "itemCode": "ITEM-A",
                "feeRate": 0.05,
                "skuId": 1001,
                "quantity": 1,
                "totalListPrice": 100,
                "totalSalePrice": 100,
                "totalDiscountPrice": 20,
                "totalRefundPrice": 100,
                "totalDistributedCartOfferPrice": 20,
                "status": "RefundOrderSuccess",
            }
        ],
    }
    refund.update(overrides)
    return refund


def make_event(payload: dict, status: str = "BuyerReceivedConfirmed") -> Event:
    return Event.model_validate({"entityType": "Order", "status": status, "payload": payload})


def drain(publishers: SaleRecordPublishers) -> None:
    """Wait for every queued publish; the dispatcher restarts on the next submit."""
    publishers.dispatcher.close()




def input_payload(order_id: int, **overrides) -> dict:
    """An uploaded sale record matching ``order_payload`` totals, sku 1001 and 1002."""
    payload = {
        "orderId": order_id,
        "refundId": 0,
        "storeId": STORE_ID,
        "tenantCode": "hublabs",
        "totalListPrice": 150,
        "totalDiscountPrice": 30,
        "totalPaymentPrice": 120,
        "channelType": "EMALL",
        "createdId": 9,
        "transactionType": "PLUS",
        "saleRecordDtlInputs": [
            {
                "orderItemId": 1,
                "brandId": BRAND_ID,
                "brandCode": BRAND_CODE,
                "productId": 10,
                "skuId": 1001,
                "listPrice": 100,
                "salePrice": 100,
                "quantity": 1,
                "totalListPrice": 100,
                "totalDiscountPrice": 20,
                "totalPaymentPrice": 80,
            },
            {
                "orderItemId": 2,
                "brandId": BRAND_ID,
                "brandCode": BRAND_CODE,
                "productId": 10,
                "skuId": 1002,
                "listPrice": 50,
                "salePrice": 50,
                "quantity": 1,
                "totalListPrice": 50,
                "totalDiscountPrice": 10,
                "totalPaymentPrice": 40,
            },
        ],
        "saleRecordCartOffers": [{"offerNo": "CART-1", "orderItemIds": "1,2", "price": 30}],
        "saleRecordPayments": [{"payAmt": 120, "payMethod": "CASH"}],
    }
    payload.update(overrides)
    return payload


def register_input_skus(lookups: Lookups) -> Lookups:
    lookups.products.add_sku(1001, "100")
    lookups.products.add_sku(1002, "50")
    return lookups
