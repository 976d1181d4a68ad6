from __future__ import annotations

import pytest

from helpers import next_id
from salerecords.core.config import Settings, get_settings


def test_sale_record_reads_require_api_key(client, auth_headers):
    path = f"/v1/sale-records/get-by-transactionId/{next_id()}"

    assert client.get(path).status_code == 401
    assert client.get(path, headers={"X-API-Key": "not-a-key"}).status_code == 401
    assert client.get(path, headers={"Authorization": "Basic abc"}).status_code == 401
    assert client.get(path, headers=auth_headers["service"]).status_code == 404


def test_bearer_token_is_accepted(client):
    token = get_settings().operator_api_key
    response = client.get(
        f"/v1/sale-records/republish/{next_id()}",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 404


def test_service_key_cannot_republish(client, auth_headers):
    response = client.get(f"/v1/sale-records/republish/{next_id()}", headers=auth_headers["service"])
    assert response.status_code == 403


def test_log_search_requires_api_key(client, auth_headers):
    assert client.get("/v1/sale-record-log").status_code == 401
    assert client.get("/v1/sale-record-log", headers=auth_headers["service"]).status_code == 200


def test_insecure_defaults_rejected_outside_dev():
    with pytest.raises(ValueError, match="SR_OPERATOR_API_KEY"):
        Settings(env="prod", service_api_key="rotated")
