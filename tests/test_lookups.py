from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from salerecords.clients.lookups import CouponClient, PaymentClient, ProductClient, StoreClient
from salerecords.core.context import TraceContext
from salerecords.domain.errors import ExternalServiceError


def _transport(routes: dict, seen: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        status, body = routes.get(request.url.path, (404, None))
        return httpx.Response(status, json=body)

    return httpx.MockTransport(handler)


def test_store_lookup_unwraps_first_item_and_forwards_trace():
    seen = []
    store_body = {
        "id": 100,
        "code": "S100",
        "enable": True,
        "roundingType": {"code": "T"},
        "brands": [{"id": 1, "code": "BR", "enable": True}],
    }
    envelope = {"success": True, "result": {"totalCount": 1, "items": [store_body]}}
    client = StoreClient("http://places/", transport=_transport({"/v1/store/getallinfo": (200, envelope)}, seen))

    store = client.get_store(100, trace=TraceContext(request_id="req-1", action_id="act-1"))

    assert store.rounding_type.code == "T"
    assert store.has_brand(1, "BR")
    assert not store.has_brand(1, "OTHER")
    request = seen[0]
    assert request.url.params["storeIds"] == "100"
    assert request.headers["x-request-id"] == "req-1"
    assert request.headers["x-action-id"] == "act-1"


def test_store_lookup_without_items_is_none():
    envelope = {"success": True, "result": {"totalCount": 0, "items": []}}
    client = StoreClient("http://places", transport=_transport({"/v1/store/getallinfo": (200, envelope)}))
    assert client.get_store(100) is None


def test_unsuccessful_envelope_raises():
    client = CouponClient(
        "http://coupons",
        transport=_transport({"/v1/coupons/CP-1": (200, {"success": False, "error": {"code": 7, "message": "nope"}})}),
    )
    with pytest.raises(ExternalServiceError, match=r"\[7\]nope"):
        client.get_coupon("CP-1")


def test_server_error_raises_with_status():
    client = ProductClient("http://products", transport=_transport({"/v1/items/X": (500, {"error": "boom"})}))
    with pytest.raises(ExternalServiceError) as excinfo:
        client.get_item_by_code("X")
    assert excinfo.value.status_code == 500


def test_missing_item_raises_but_missing_sku_is_none():
    client = ProductClient("http://products", transport=_transport({}))
    with pytest.raises(ExternalServiceError, match="item not found"):
        client.get_item_by_code("X")
    assert client.get_sku(5) is None


def test_payments_by_refund_use_refund_path():
    rows = [{"seqNo": 1, "payMethod": "CARD", "payAmt": -80}]
    client = PaymentClient("http://payamt", transport=_transport({"/v1/query/refundId/9": (200, rows)}))

    payments = client.get_payments(1, 9)

    assert [(p.seq_no, p.pay_method, p.pay_amt) for p in payments] == [(1, "CARD", Decimal("-80"))]
    assert client.get_payments(1, 0) == []


def test_transport_errors_become_external_service_errors():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = CouponClient("http://coupons", transport=httpx.MockTransport(handler))
    with pytest.raises(ExternalServiceError, match="request failed"):
        client.get_coupon("CP-1")


def test_unknown_coupon_raises():
    client = CouponClient("http://coupons", transport=_transport({}))
    with pytest.raises(ExternalServiceError, match="coupon not found: CP-404"):
        client.get_coupon("CP-404")


def test_coupon_lookup_reads_internal_flag():
    body = {"success": True, "result": {"couponNo": "CP-1", "isInternal": True}}
    client = CouponClient("http://coupons", transport=_transport({"/v1/coupons/CP-1": (200, body)}))
    assert client.get_coupon("CP-1").is_internal is True
