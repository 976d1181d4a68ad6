from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salerecords.clients.lookups import Lookups
from salerecords.core.config import Settings, get_settings
from salerecords.core.context import TraceContext
from salerecords.domain.errors import SaleRecordError
from salerecords.domain.inputs import SaleRecordInput
from salerecords.domain.order_status import can_make_sale_record
from salerecords.events.publisher import SaleRecordPublishers
from salerecords.events.schemas import Event
from salerecords.persistence.models import SaleRecordModel
from salerecords.persistence.store import SaleRecordStore
from salerecords.reconciliation.failures import FailureRecorder
from salerecords.reconciliation.normalizer import LISTENER_ACTOR, EventNormalizer
from salerecords.validation.rules import validate_sale_record_input, validate_transaction_event

logger = logging.getLogger(__name__)


class ReconciliationState(str, Enum):
    NEW = "NEW"
    VALIDATED = "VALIDATED"
    COMMITTED = "COMMITTED"
    DUPLICATE = "DUPLICATE"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass
class ReconciliationOutcome:
    state: ReconciliationState
    record: SaleRecordModel | None = None
    error_type: str = ""
    message: str = ""
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.state is not ReconciliationState.FAILED


@dataclass(frozen=True)
class _DedupKey:
    tenant_code: str
    channel_type: str
    transaction_type: str
    order_id: int
    refund_id: int


class ReconciliationController:
    """Drives one event or API submission from NEW to a terminal state."""

    def __init__(
        self,
        session: Session,
        lookups: Lookups,
        publishers: SaleRecordPublishers,
        settings: Settings | None = None,
        normalizer: EventNormalizer | None = None,
    ):
        self.settings = settings or get_settings()
        self.session = session
        self.lookups = lookups
        self.publishers = publishers
        self.records = SaleRecordStore(session)
        self.failures = FailureRecorder(session, publishers)
        self.normalizer = normalizer or EventNormalizer(
            lookups, redistribute_cart_offers=self.settings.redistribute_cart_offers
        )

    # inbound order / refund events

    def handle_event(self, event: Event, trace: TraceContext | None = None) -> ReconciliationOutcome:
        if not can_make_sale_record(event.status):
            logger.info("order %s status %s does not produce a sale record", event.payload.id, event.status)
            return ReconciliationOutcome(ReconciliationState.SKIPPED)

        key = self._event_key(event)
        state = ReconciliationState.NEW
        try:
            existing = self._find(key)
            if existing is not None:
                return self._duplicate(existing, event.status, trace)

            body = event.refund if event.refund is not None else event.payload
            validate_transaction_event(body)
            record = self.normalizer.normalize(event, trace=trace)
            record.transaction_status = body.status or event.status
            state = ReconciliationState.VALIDATED
            outcome = self._commit(key, record, trace)
        except Exception as exc:
            self._log_failure(key, state, exc)
            self.session.rollback()
            row = self.failures.record_event_failure(event, exc, trace)
            return self._failed(row.error_type, row.error, row.details)
        return self._finish(outcome, None, trace)

    # API submissions

    def submit(self, data: SaleRecordInput, trace: TraceContext | None = None) -> ReconciliationOutcome:
        key = _DedupKey(
            tenant_code=data.tenant_code,
            channel_type=data.channel_type,
            transaction_type=data.transaction_type,
            order_id=data.order_id,
            refund_id=data.refund_id,
        )
        state = ReconciliationState.NEW
        try:
            existing = self._find(key)
            if existing is not None:
                self.publishers.publish_sale_record(existing, trace)
                return ReconciliationOutcome(ReconciliationState.DUPLICATE, record=existing)

            validate_sale_record_input(data, self.lookups, trace)
            state = ReconciliationState.VALIDATED
            record = data.to_sale_record()
            outcome = self._commit(key, record, trace)
        except Exception as exc:
            self._log_failure(key, state, exc)
            self.session.rollback()
            row = self.failures.record_input_failure(data, exc, trace)
            return self._failed(row.error_type, row.error, row.details)
        return self._finish(outcome, data.model_dump_json(by_alias=True), trace)

    def republish(self, transaction_id: int, trace: TraceContext | None = None) -> SaleRecordModel | None:
        record = self.records.get_by_transaction_id(transaction_id)
        if record is not None:
            self.publishers.publish_sale_record(record, trace)
        return record

    # steps

    def _event_key(self, event: Event) -> _DedupKey:
        refund = event.refund
        order = event.payload
        if refund is not None:
            return _DedupKey(
                tenant_code=refund.tenant_code or order.tenant_code,
                channel_type=refund.refund_type,
                transaction_type="MINUS",
                order_id=order.id,
                refund_id=refund.id,
            )
        return _DedupKey(
            tenant_code=order.tenant_code,
            channel_type=order.sale_type,
            transaction_type="PLUS",
            order_id=order.id,
            refund_id=0,
        )

    def _find(self, key: _DedupKey) -> SaleRecordModel | None:
        return self.records.get_by_dedup_key(
            key.tenant_code,
            key.channel_type,
            key.transaction_type,
            key.order_id,
            key.refund_id,
        )

    def _duplicate(self, record: SaleRecordModel, status: str, trace: TraceContext | None) -> ReconciliationOutcome:
        self.records.refresh_status(record, status, LISTENER_ACTOR)
        self.session.commit()
        logger.info("sale record %s already exists, republishing", record.transaction_id)
        self.publishers.publish_sale_record(record, trace)
        return ReconciliationOutcome(ReconciliationState.DUPLICATE, record=record)

    def _commit(
        self,
        key: _DedupKey,
        record: SaleRecordModel,
        trace: TraceContext | None,
    ) -> ReconciliationOutcome:
        try:
            self.records.add(record)
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self._find(key)
            if existing is None:
                raise
            logger.info("sale record %s inserted concurrently, treating as duplicate", existing.transaction_id)
            return ReconciliationOutcome(ReconciliationState.DUPLICATE, record=existing)

        logger.info(
            "sale record %s committed order_id=%s refund_id=%s channel=%s type=%s",
            record.transaction_id,
            record.order_id,
            record.refund_id,
            record.transaction_channel_type,
            record.transaction_type,
        )
        return ReconciliationOutcome(ReconciliationState.COMMITTED, record=record)

    def _finish(
        self,
        outcome: ReconciliationOutcome,
        snapshot: str | None,
        trace: TraceContext | None,
    ) -> ReconciliationOutcome:
        if outcome.state is ReconciliationState.COMMITTED:
            self.failures.record_success(outcome.record, snapshot)
        self.publishers.publish_sale_record(outcome.record, trace)
        return outcome

    def _failed(self, error_type: str, message: str, detail: str) -> ReconciliationOutcome:
        return ReconciliationOutcome(
            ReconciliationState.FAILED,
            error_type=error_type,
            message=message,
            detail=detail,
        )

    @staticmethod
    def _log_failure(key: _DedupKey, state: ReconciliationState, exc: Exception) -> None:
        if not isinstance(exc, SaleRecordError):
            logger.exception("unexpected error in %s for %s", state.value, key)
