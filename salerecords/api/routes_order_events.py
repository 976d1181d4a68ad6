from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from salerecords.api.deps import get_lookups, get_publishers, get_trace
from salerecords.clients.lookups import Lookups
from salerecords.core.context import TraceContext
from salerecords.core.security import Claims, get_claims
from salerecords.events.publisher import SaleRecordPublishers
from salerecords.events.schemas import Event, SaleRecordEvent
from salerecords.persistence.pg import get_session
from salerecords.reconciliation.controller import ReconciliationController

router = APIRouter(prefix="/v1/order-events", tags=["order-events"])


@router.post("")
def handle_order_event(
    event: Event,
    claims: Claims = Depends(get_claims),
    session: Session = Depends(get_session),
    lookups: Lookups = Depends(get_lookups),
    publishers: SaleRecordPublishers = Depends(get_publishers),
    trace: TraceContext = Depends(get_trace),
):
    outcome = ReconciliationController(session, lookups, publishers).handle_event(event, trace)
    result = None
    if outcome.record is not None:
        result = SaleRecordEvent.from_record(outcome.record).model_dump(mode="json", by_alias=True)
    return {
        "success": outcome.ok,
        "state": outcome.state.value,
        "error": outcome.error_type,
        "message": outcome.message,
        "detail": outcome.detail,
        "result": result,
    }
