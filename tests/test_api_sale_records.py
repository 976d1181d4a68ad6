from __future__ import annotations

from helpers import drain, input_payload, make_event, next_id, order_payload, register_input_skus
from salerecords.main import app


def _create(client, auth_headers, lookups, **overrides) -> dict:
    register_input_skus(lookups)
    order_id = overrides.pop("orderId", None) or next_id()
    response = client.post("/v1/sale-records", json=input_payload(order_id, **overrides), headers=auth_headers["service"])
    assert response.status_code == 200, response.text
    return response.json()


def test_create_and_fetch_by_ids(client, auth_headers, lookups):
    order_id = next_id()
    body = _create(client, auth_headers, lookups, orderId=order_id)

    assert body["success"] is True
    assert body["state"] == "COMMITTED"
    created = body["result"]
    assert created["orderId"] == order_id
    assert created["transactionChannelType"] == "EMALL"
    assert created["committed"]["createdBy"] == "excel-upload"
    assert created["totalPrice"]["transactionPrice"] == 120.0

    by_order = client.get(
        f"/v1/sale-records/get-by-orderId/{order_id}",
        params={"channelType": "EMALL"},
        headers=auth_headers["service"],
    )
    assert by_order.status_code == 200
    assert by_order.json()["result"]["transactionId"] == created["transactionId"]

    by_transaction = client.get(
        f"/v1/sale-records/get-by-transactionId/{created['transactionId']}",
        headers=auth_headers["service"],
    )
    assert by_transaction.json()["result"]["orderId"] == order_id


def test_resubmission_returns_same_record(client, auth_headers, lookups):
    order_id = next_id()
    first = _create(client, auth_headers, lookups, orderId=order_id)
    second = _create(client, auth_headers, lookups, orderId=order_id)

    assert second["state"] == "DUPLICATE"
    assert second["result"]["transactionId"] == first["result"]["transactionId"]


def test_rule_failure_returns_error_body(client, auth_headers, lookups):
    register_input_skus(lookups)
    order_id = next_id()
    response = client.post(
        "/v1/sale-records",
        json=input_payload(order_id, totalListPrice=151),
        headers=auth_headers["service"],
    )

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "TotalPrice"
    assert body["detail"] == "总金额计算错误！"
    assert body["message"].startswith("line totals")

    logs = client.get(
        "/v1/sale-record-log",
        params={"orderId": order_id, "isSuccess": "false"},
        headers=auth_headers["service"],
    ).json()["result"]
    assert logs["totalCount"] == 1
    assert logs["items"][0]["errorType"] == "TotalPrice"


def test_rejects_missing_ids_and_pos_without_salesman(client, auth_headers):
    no_ids = client.post("/v1/sale-records", json=input_payload(0), headers=auth_headers["service"])
    assert no_ids.status_code == 400

    pos = client.post(
        "/v1/sale-records",
        json=input_payload(next_id(), channelType="POS"),
        headers=auth_headers["service"],
    )
    assert pos.status_code == 400


def test_malformed_body_is_parameter_error(client, auth_headers):
    payload = input_payload(next_id())
    del payload["tenantCode"]
    response = client.post("/v1/sale-records", json=payload, headers=auth_headers["service"])

    assert response.status_code == 400
    assert response.json()["error"] == "Parameter"


def test_unknown_records_are_404(client, auth_headers):
    missing = next_id()
    for path in (
        f"/v1/sale-records/get-by-orderId/{missing}",
        f"/v1/sale-records/get-by-refundId/{missing}",
        f"/v1/sale-records/get-by-transactionId/{missing}",
    ):
        assert client.get(path, headers=auth_headers["service"]).status_code == 404


def test_search_by_id_list_and_filters(client, auth_headers, lookups):
    first = _create(client, auth_headers, lookups)["result"]
    second = _create(client, auth_headers, lookups, channelType="TMALL")["result"]
    ids = f"{first['orderId']},{second['orderId']}"

    response = client.get("/v1/sale-records", params={"orderIds": ids}, headers=auth_headers["service"])
    result = response.json()["result"]
    assert result["totalCount"] == 2
    assert {item["orderId"] for item in result["items"]} == {first["orderId"], second["orderId"]}

    tmall = client.get(
        "/v1/sale-records",
        params={"orderIds": ids, "channelType": "TMALL"},
        headers=auth_headers["service"],
    ).json()["result"]
    assert [item["orderId"] for item in tmall["items"]] == [second["orderId"]]

    paged = client.get(
        "/v1/sale-records",
        params={"orderIds": ids, "maxResultCount": 1},
        headers=auth_headers["service"],
    ).json()["result"]
    assert paged["totalCount"] == 2
    assert len(paged["items"]) == 1


def test_search_without_ids_uses_recent_window(client, auth_headers, lookups):
    created = _create(client, auth_headers, lookups, outerOrderNo="OUT-WINDOW")["result"]

    recent = client.get(
        "/v1/sale-records",
        params={"outerOrderNo": "OUT-WINDOW"},
        headers=auth_headers["service"],
    ).json()["result"]
    assert [item["transactionId"] for item in recent["items"]] == [created["transactionId"]]

    old = client.get(
        "/v1/sale-records",
        params={"outerOrderNo": "OUT-WINDOW", "orderStartAt": "2020-01-01", "orderEndAt": "2020-01-10"},
        headers=auth_headers["service"],
    ).json()["result"]
    assert old["totalCount"] == 0


def test_search_rejects_bad_id_list(client, auth_headers):
    response = client.get("/v1/sale-records", params={"orderIds": "1,x"}, headers=auth_headers["service"])
    assert response.status_code == 400


def test_republish_requires_operator(client, auth_headers, lookups):
    created = _create(client, auth_headers, lookups)["result"]
    path = f"/v1/sale-records/republish/{created['transactionId']}"

    assert client.get(path, headers=auth_headers["service"]).status_code == 403

    publishers = app.state.publishers
    drain(publishers)
    before = len(publishers.sale_records.messages)
    response = client.get(path, headers=auth_headers["operator"])
    assert response.status_code == 200
    drain(publishers)
    assert len(publishers.sale_records.messages) == before + 1
    assert publishers.sale_records.messages[-1][0] == str(created["transactionId"])


def test_requests_without_key_are_rejected(client):
    assert client.get("/v1/sale-records/get-by-transactionId/1").status_code == 401


def test_order_event_route(client, auth_headers):
    order_id = next_id()
    response = client.post(
        "/v1/order-events",
        json=make_event(order_payload(order_id)).model_dump(mode="json", by_alias=True),
        headers=auth_headers["service"],
    )
    body = response.json()
    assert body["success"] is True
    assert body["state"] == "COMMITTED"
    assert body["result"]["orderId"] == order_id

    failed = client.post(
        "/v1/order-events",
        json=make_event(order_payload(next_id(), createdId=0)).model_dump(mode="json", by_alias=True),
        headers=auth_headers["service"],
    ).json()
    assert failed["success"] is False
    assert failed["error"] == "CreatedId"


def test_healthz_reports_publish_stats(client):
    body = client.get("/healthz").json()
    assert body["status"] == "ok"
    assert body["publish"]["rejected"] == 0
