from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from salerecords.core.context import TraceContext
from salerecords.domain.errors import classify
from salerecords.domain.inputs import SaleRecordInput
from salerecords.events.publisher import SaleRecordPublishers
from salerecords.events.schemas import Event, SaleRecordEvent
from salerecords.persistence.models import SaleRecordLogModel, SaleRecordModel
from salerecords.persistence.store import SaleRecordLogStore

logger = logging.getLogger(__name__)


class FailureRecorder:
    """Writes the per-transaction audit row and emits failure events.

    Every call commits on its own so a row survives whatever the caller does
    with the session afterwards.
    """

    def __init__(self, session: Session, publishers: SaleRecordPublishers):
        self.session = session
        self.publishers = publishers
        self.logs = SaleRecordLogStore(session)

    def record_success(self, record: SaleRecordModel, snapshot: str | None = None) -> SaleRecordLogModel:
        if snapshot is None:
            snapshot = SaleRecordEvent.from_record(record).model_dump_json(by_alias=True)
        row = self.logs.upsert(
            order_id=record.order_id,
            refund_id=record.refund_id,
            tenant_code=record.tenant_code,
            channel_type=record.transaction_channel_type,
            transaction_type=record.transaction_type,
            store_id=record.store_id,
            is_success=True,
            error_type="",
            error="",
            details="",
            order_entity=snapshot,
            transaction_create_date=record.transaction_create_date,
        )
        self.session.commit()
        return row

    def record_event_failure(
        self,
        event: Event,
        exc: BaseException,
        trace: TraceContext | None = None,
    ) -> SaleRecordLogModel:
        order = event.payload
        refund = event.refund
        if refund is not None:
            key = dict(
                order_id=order.id,
                refund_id=refund.id,
                tenant_code=refund.tenant_code or order.tenant_code,
                channel_type=refund.refund_type,
                transaction_type="MINUS",
                store_id=refund.store_id,
                transaction_create_date=refund.created_at,
            )
        else:
            key = dict(
                order_id=order.id,
                refund_id=0,
                tenant_code=order.tenant_code,
                channel_type=order.sale_type,
                transaction_type="PLUS",
                store_id=order.store_id,
                transaction_create_date=order.created_at,
            )
        return self._record_failure(key, exc, event.snapshot(), trace)

    def record_input_failure(
        self,
        data: SaleRecordInput,
        exc: BaseException,
        trace: TraceContext | None = None,
    ) -> SaleRecordLogModel:
        key = dict(
            order_id=data.order_id,
            refund_id=data.refund_id,
            tenant_code=data.tenant_code,
            channel_type=data.channel_type,
            transaction_type=data.transaction_type,
            store_id=data.store_id,
            transaction_create_date=None,
        )
        return self._record_failure(key, exc, data.model_dump_json(by_alias=True), trace)

    def _record_failure(
        self,
        key: dict,
        exc: BaseException,
        snapshot: str,
        trace: TraceContext | None,
    ) -> SaleRecordLogModel:
        error_type, message, detail = classify(exc)
        logger.warning(
            "sale record failed order_id=%s refund_id=%s channel=%s type=%s: %s %s",
            key["order_id"],
            key["refund_id"],
            key["channel_type"],
            key["transaction_type"],
            error_type,
            message,
        )
        row = self.logs.upsert(
            is_success=False,
            error_type=error_type,
            error=message,
            details=detail,
            order_entity=snapshot,
            **key,
        )
        self.session.commit()
        self.publishers.publish_failure(row, trace)
        return row
