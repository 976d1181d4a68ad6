from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from salerecords.core.config import Settings, get_settings
from salerecords.core.context import TraceContext
from salerecords.domain.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class LookupModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class StoreBrand(LookupModel):
    id: int = 0
    code: str = ""
    enable: bool = False


class RoundingType(LookupModel):
    code: str = ""
    precision: float = 0
    offset: int = 0


class Store(LookupModel):
    id: int = 0
    tenant_code: str = ""
    code: str = ""
    name: str = ""
    enable: bool = False
    rounding_type: RoundingType | None = None
    brands: list[StoreBrand] = Field(default_factory=list)

    def has_brand(self, brand_id: int, brand_code: str) -> bool:
        return any(
            brand.enable and brand.id == brand_id and brand.code == brand_code for brand in self.brands
        )


class Brand(LookupModel):
    id: int = 0
    code: str = ""


class Product(LookupModel):
    id: int = 0
    code: str = ""
    list_price: Decimal = Decimal("0")
    brand: Brand = Field(default_factory=Brand)


class Sku(LookupModel):
    product: Product = Field(default_factory=Product)


class ItemOffer(LookupModel):
    no: str = ""
    name: str = ""
    discount_price: Decimal = Decimal("0")
    start_at: datetime | None = None
    end_at: datetime | None = None


class Item(LookupModel):
    sale_price: Decimal = Decimal("0")
    name: str = ""
    offer: ItemOffer | None = None
    sku: Sku = Field(default_factory=Sku)
    bar_code: str = ""


class Payment(LookupModel):
    id: int = 0
    order_id: int = 0
    refund_order_id: int = 0
    seq_no: int = 0
    pay_method: str = ""
    pay_amt: Decimal = Decimal("0")
    status: str = ""
    created_at: datetime | None = None


class Coupon(LookupModel):
    coupon_no: str = ""
    is_internal: bool = False


class Member(LookupModel):
    id: int = 0
    hr_emp_no: str = ""
    card_no: str = ""
    tenant_code: str = ""
    member_name: str = ""


class StoreLookup(Protocol):
    def get_store(self, store_id: int, trace: TraceContext | None = None) -> Store | None:
        ...


class ProductLookup(Protocol):
    def get_item_by_code(self, code: str, trace: TraceContext | None = None) -> Item:
        ...

    def get_sku(self, sku_id: int, trace: TraceContext | None = None) -> Sku | None:
        ...


class PaymentLookup(Protocol):
    def get_payments(self, order_id: int, refund_id: int, trace: TraceContext | None = None) -> list[Payment]:
        ...


class CouponLookup(Protocol):
    def get_coupon(self, coupon_no: str, trace: TraceContext | None = None) -> Coupon:
        ...


class MemberLookup(Protocol):
    def get_member(self, customer_id: int, tenant_code: str, trace: TraceContext | None = None) -> Member | None:
        ...


class _ServiceClient:
    service_name = "service"

    def __init__(self, base_url: str, timeout: float = 10.0, transport: httpx.BaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = max(0.1, timeout)
        self.transport = transport

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        trace: TraceContext | None = None,
    ) -> dict[str, Any] | None:
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        if trace is not None:
            headers.update(trace.headers())
        logger.info("%s %s %s params=%s", self.service_name, method, url, params)
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(method, url, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(self.service_name, f"request failed: {exc}") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ExternalServiceError(
                self.service_name,
                f"unexpected status {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        payload = response.json()
        if isinstance(payload, dict):
            return payload
        return {"success": True, "result": payload}

    def _unwrap(self, payload: dict[str, Any] | None, *, require_success: bool = True) -> Any:
        if payload is None:
            return None
        if require_success and not payload.get("success"):
            error = payload.get("error") or {}
            raise ExternalServiceError(
                self.service_name,
                f"[{error.get('code', 0)}]{error.get('message', '')}",
            )
        return payload.get("result")


class StoreClient(_ServiceClient):
    service_name = "place-management"

    def get_store(self, store_id: int, trace: TraceContext | None = None) -> Store | None:
        params = {
            "storeIds": store_id,
            "enable": "true",
            "propsEnable": "true",
            "withBrand": "true",
            "withPayMethod": "true",
            "maxResultCount": 100,
            "withRoundingType": "true",
        }
        result = self._unwrap(self._request("GET", "/v1/store/getallinfo", params=params, trace=trace))
        if not result or not result.get("totalCount") or not result.get("items"):
            return None
        return Store.model_validate(result["items"][0])


class ProductClient(_ServiceClient):
    service_name = "product"

    def get_item_by_code(self, code: str, trace: TraceContext | None = None) -> Item:
        result = self._unwrap(self._request("GET", f"/v1/items/{code}", trace=trace))
        if result is None:
            raise ExternalServiceError(self.service_name, f"item not found: {code}")
        return Item.model_validate(result)

    def get_sku(self, sku_id: int, trace: TraceContext | None = None) -> Sku | None:
        result = self._unwrap(self._request("GET", f"/v1/skus/{sku_id}", trace=trace))
        if result is None:
            return None
        return Sku.model_validate(result)


class PaymentClient(_ServiceClient):
    service_name = "payamt"

    def get_payments(self, order_id: int, refund_id: int, trace: TraceContext | None = None) -> list[Payment]:
        if refund_id > 0:
            path = f"/v1/query/refundId/{refund_id}"
        else:
            path = f"/v1/query/orderId/{order_id}"
        result = self._unwrap(self._request("GET", path, trace=trace), require_success=False)
        return [Payment.model_validate(row) for row in (result or [])]


class CouponClient(_ServiceClient):
    service_name = "coupon"

    def get_coupon(self, coupon_no: str, trace: TraceContext | None = None) -> Coupon:
        result = self._unwrap(self._request("GET", f"/v1/coupons/{coupon_no}", trace=trace))
        if result is None:
            raise ExternalServiceError(self.service_name, f"coupon not found: {coupon_no}")
        return Coupon.model_validate(result)


class MemberClient(_ServiceClient):
    service_name = "membership"

    def get_member(self, customer_id: int, tenant_code: str, trace: TraceContext | None = None) -> Member | None:
        params = {"memberId": customer_id, "tenantCode": tenant_code}
        result = self._unwrap(self._request("GET", "/v1/member", params=params, trace=trace))
        if result is None:
            return None
        return Member.model_validate(result)


@dataclass
class Lookups:
    stores: StoreLookup
    products: ProductLookup
    payments: PaymentLookup
    coupons: CouponLookup
    members: MemberLookup


def build_lookups(settings: Settings | None = None) -> Lookups:
    settings = settings or get_settings()
    timeout = settings.lookup_timeout_seconds
    return Lookups(
        stores=StoreClient(settings.place_management_url, timeout),
        products=ProductClient(settings.product_api_url, timeout),
        payments=PaymentClient(settings.payamt_api_url, timeout),
        coupons=CouponClient(settings.coupon_api_url, timeout),
        members=MemberClient(settings.membership_api_url, timeout),
    )
