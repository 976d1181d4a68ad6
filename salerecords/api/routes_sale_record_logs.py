from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from salerecords.api.utils import resolve_search_window
from salerecords.core.config import get_settings
from salerecords.core.security import Claims, get_claims
from salerecords.events.schemas import SaleRecordLogView
from salerecords.persistence.pg import get_session
from salerecords.persistence.store import SaleRecordLogSearch, SaleRecordLogStore

router = APIRouter(prefix="/v1/sale-record-log", tags=["sale-record-log"])


@router.get("")
def search_sale_record_logs(
    start_at: str | None = Query(default=None, alias="startAt"),
    end_at: str | None = Query(default=None, alias="endAt"),
    error_type: str | None = Query(default=None, alias="errType"),
    channel_type: str | None = Query(default=None, alias="channelType"),
    transaction_type: str | None = Query(default=None, alias="transactionType"),
    is_success: bool = Query(default=False, alias="isSuccess"),
    store_id: int | None = Query(default=None, alias="storeId"),
    order_id: int | None = Query(default=None, alias="orderId"),
    refund_id: int | None = Query(default=None, alias="refundId"),
    emp_id: str | None = Query(default=None, alias="empId"),
    skip_count: int = Query(default=0, ge=0, alias="skipCount"),
    max_result_count: int = Query(default=0, ge=0, le=1000, alias="maxResultCount"),
    claims: Claims = Depends(get_claims),
    session: Session = Depends(get_session),
):
    query = SaleRecordLogSearch(
        is_success=is_success,
        store_id=store_id,
        order_id=order_id,
        refund_id=refund_id,
        error_type=error_type,
        channel_type=channel_type,
        transaction_type=transaction_type,
        emp_id=emp_id,
        skip_count=skip_count,
        max_result_count=max_result_count,
    )
    # a lookup by id searches the whole history
    if not (order_id or refund_id):
        settings = get_settings()
        query.created_from, query.created_to = resolve_search_window(
            start_at,
            end_at,
            settings.search_max_days,
            utc_offset_hours=settings.search_utc_offset_hours,
        )

    total, rows = SaleRecordLogStore(session).search(query)
    return {
        "success": True,
        "result": {
            "totalCount": total,
            "items": [SaleRecordLogView.from_log(row).model_dump(mode="json", by_alias=True) for row in rows],
        },
    }
