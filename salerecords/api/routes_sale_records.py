from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from salerecords.api.deps import get_lookups, get_publishers, get_trace
from salerecords.api.utils import parse_id_list, resolve_search_window
from salerecords.clients.lookups import Lookups
from salerecords.core.config import get_settings
from salerecords.core.context import TraceContext
from salerecords.core.security import Claims, get_claims, require_operator
from salerecords.domain.inputs import SaleRecordInput
from salerecords.events.publisher import SaleRecordPublishers
from salerecords.events.schemas import SaleRecordEvent
from salerecords.persistence.models import SaleRecordModel
from salerecords.persistence.pg import get_session
from salerecords.persistence.store import SaleRecordSearch, SaleRecordStore
from salerecords.reconciliation.controller import ReconciliationController

router = APIRouter(prefix="/v1/sale-records", tags=["sale-records"])


def _project(record: SaleRecordModel) -> dict:
    return SaleRecordEvent.from_record(record).model_dump(mode="json", by_alias=True)


def _found(record: SaleRecordModel | None, what: str) -> dict:
    if record is None:
        raise HTTPException(status_code=404, detail=f"sale record not found for {what}")
    return {"success": True, "result": _project(record)}


@router.post("")
def create_sale_record(
    body: SaleRecordInput,
    claims: Claims = Depends(get_claims),
    session: Session = Depends(get_session),
    lookups: Lookups = Depends(get_lookups),
    publishers: SaleRecordPublishers = Depends(get_publishers),
    trace: TraceContext = Depends(get_trace),
):
    if body.order_id == 0 and body.refund_id == 0:
        raise HTTPException(status_code=400, detail="orderId and refundId can't both be 0")
    if body.channel_type == "POS" and body.salesman_id == 0:
        raise HTTPException(status_code=400, detail="salesmanId can't be 0 for POS")

    controller = ReconciliationController(session, lookups, publishers)
    outcome = controller.submit(body, trace)
    if not outcome.ok:
        return JSONResponse(
            status_code=400,
            content={"error": outcome.error_type, "message": outcome.message, "detail": outcome.detail},
        )
    return {"success": True, "state": outcome.state.value, "result": _project(outcome.record)}


@router.get("/get-by-orderId/{order_id}")
def get_by_order_id(
    order_id: int,
    channel_type: str | None = Query(default=None, alias="channelType"),
    claims: Claims = Depends(get_claims),
    session: Session = Depends(get_session),
):
    if order_id <= 0:
        raise HTTPException(status_code=400, detail="orderId is required")
    record = SaleRecordStore(session).get_by_order_id(order_id, claims.tenant_code, "PLUS", channel_type)
    return _found(record, f"orderId={order_id}")


@router.get("/get-by-refundId/{refund_id}")
def get_by_refund_id(
    refund_id: int,
    channel_type: str | None = Query(default=None, alias="channelType"),
    claims: Claims = Depends(get_claims),
    session: Session = Depends(get_session),
):
    if refund_id <= 0:
        raise HTTPException(status_code=400, detail="refundId is required")
    record = SaleRecordStore(session).get_by_refund_id(refund_id, claims.tenant_code, "MINUS", channel_type)
    return _found(record, f"refundId={refund_id}")


@router.get("/get-by-transactionId/{transaction_id}")
def get_by_transaction_id(
    transaction_id: int,
    claims: Claims = Depends(get_claims),
    session: Session = Depends(get_session),
):
    if transaction_id <= 0:
        raise HTTPException(status_code=400, detail="transactionId is required")
    record = SaleRecordStore(session).get_by_transaction_id(transaction_id)
    return _found(record, f"transactionId={transaction_id}")


@router.get("/republish/{transaction_id}")
def republish(
    transaction_id: int,
    claims: Claims = Depends(get_claims),
    session: Session = Depends(get_session),
    lookups: Lookups = Depends(get_lookups),
    publishers: SaleRecordPublishers = Depends(get_publishers),
    trace: TraceContext = Depends(get_trace),
):
    require_operator(claims)
    if transaction_id <= 0:
        raise HTTPException(status_code=400, detail="transactionId is required")
    record = ReconciliationController(session, lookups, publishers).republish(transaction_id, trace)
    return _found(record, f"transactionId={transaction_id}")


@router.get("")
def search_sale_records(
    customer_id: int | None = Query(default=None, alias="customerId"),
    order_start_at: str | None = Query(default=None, alias="orderStartAt"),
    order_end_at: str | None = Query(default=None, alias="orderEndAt"),
    created_id: int | None = Query(default=None, alias="createdId"),
    status: str | None = Query(default=None),
    transaction_type: str | None = Query(default=None, alias="type"),
    channel_type: str | None = Query(default=None, alias="channelType"),
    salesman_id: int | None = Query(default=None, alias="salesmanId"),
    emp_id: str | None = Query(default=None, alias="empId"),
    store_id: int | None = Query(default=None, alias="storeId"),
    transaction_id: int | None = Query(default=None, alias="transactionId"),
    order_id: int | None = Query(default=None, alias="orderId"),
    refund_id: int | None = Query(default=None, alias="refundId"),
    order_ids: str | None = Query(default=None, alias="orderIds"),
    refund_ids: str | None = Query(default=None, alias="refundIds"),
    outer_order_no: str | None = Query(default=None, alias="outerOrderNo"),
    is_out_paid: bool | None = Query(default=None, alias="isOutPaid"),
    skip_count: int = Query(default=0, ge=0, alias="skipCount"),
    max_result_count: int = Query(default=0, ge=0, le=1000, alias="maxResultCount"),
    claims: Claims = Depends(get_claims),
    session: Session = Depends(get_session),
):
    try:
        parsed_order_ids = parse_id_list(order_ids)
        parsed_refund_ids = parse_id_list(refund_ids)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"invalid id list: {exc}") from exc

    query = SaleRecordSearch(
        customer_id=customer_id,
        created_id=created_id,
        status=status,
        transaction_type=transaction_type,
        channel_type=channel_type,
        salesman_id=salesman_id,
        emp_id=emp_id,
        store_id=store_id,
        transaction_id=transaction_id,
        order_id=order_id,
        refund_id=refund_id,
        order_ids=parsed_order_ids,
        refund_ids=parsed_refund_ids,
        outer_order_no=outer_order_no,
        is_out_paid=is_out_paid,
        skip_count=skip_count,
        max_result_count=max_result_count,
    )
    if not (transaction_id or order_id or refund_id or parsed_order_ids or parsed_refund_ids):
        settings = get_settings()
        query.created_from, query.created_to = resolve_search_window(
            order_start_at,
            order_end_at,
            settings.search_max_days,
            utc_offset_hours=settings.search_utc_offset_hours,
        )

    total, records = SaleRecordStore(session).search(query)
    return {
        "success": True,
        "result": {"totalCount": total, "items": [_project(record) for record in records]},
    }
