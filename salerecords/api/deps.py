from __future__ import annotations

from fastapi import Request

from salerecords.clients.lookups import Lookups
from salerecords.core.context import TraceContext
from salerecords.events.publisher import SaleRecordPublishers


def get_lookups(request: Request) -> Lookups:
    return request.app.state.lookups


def get_publishers(request: Request) -> SaleRecordPublishers:
    return request.app.state.publishers


def get_trace(request: Request) -> TraceContext:
    headers = request.headers
    values = {
        "action_id": headers.get("x-action-id", ""),
        "auth_token": headers.get("authorization", ""),
    }
    if headers.get("x-request-id"):
        values["request_id"] = headers["x-request-id"]
    return TraceContext(**values)
