from __future__ import annotations

import logging
import threading
from typing import Any, Callable, ContextManager

from confluent_kafka import TopicPartition
from pydantic import ValidationError
from sqlalchemy.orm import Session

from salerecords.clients.lookups import Lookups
from salerecords.core.config import Settings, get_settings
from salerecords.core.context import TraceContext
from salerecords.events.publisher import SaleRecordPublishers
from salerecords.events.schemas import Event
from salerecords.reconciliation.controller import ReconciliationController, ReconciliationOutcome

logger = logging.getLogger(__name__)


class OrderEventConsumer:
    """Feeds order events from a broker consumer into the reconciliation controller.

    ``consumer`` is anything with the confluent-kafka ``poll``/``commit``/``seek``/``close``
    surface. Offsets are committed by hand once a message reaches a handled
    outcome. A message whose failure could not even be recorded is left
    uncommitted and the partition is rewound to it, so the next poll delivers
    it again instead of a later commit skipping past it.
    """

    def __init__(
        self,
        consumer: Any,
        session_factory: Callable[[], ContextManager[Session]],
        lookups: Lookups,
        publishers: SaleRecordPublishers,
        settings: Settings | None = None,
        retry_backoff: float | None = None,
    ):
        self.consumer = consumer
        self.session_factory = session_factory
        self.lookups = lookups
        self.publishers = publishers
        self.settings = settings or get_settings()
        if retry_backoff is None:
            retry_backoff = self.settings.kafka_poll_timeout_ms / 1000.0
        self.retry_backoff = retry_backoff
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> None:
        timeout = self.settings.kafka_poll_timeout_ms / 1000.0
        logger.info("consuming order events from %s", self.settings.order_event_topic)
        try:
            while not self._stop.is_set():
                message = self.consumer.poll(timeout)
                if message is None:
                    continue
                if message.error():
                    logger.error("consumer error: %s", message.error())
                    continue
                self.process(message)
        finally:
            self.consumer.close()

    def process(self, message: Any) -> ReconciliationOutcome | None:
        try:
            outcome = self.handle_value(message.value())
        except Exception:
            logger.exception(
                "order event at %s[%s]@%s not handled, rewinding for redelivery",
                message.topic(),
                message.partition(),
                message.offset(),
            )
            self.consumer.seek(TopicPartition(message.topic(), message.partition(), message.offset()))
            self._stop.wait(self.retry_backoff)
            return None
        self.consumer.commit(message=message, asynchronous=False)
        logger.debug("committed %s[%s]@%s", message.topic(), message.partition(), message.offset())
        return outcome

    def handle_value(self, value: bytes | str | None) -> ReconciliationOutcome | None:
        if not value:
            logger.warning("skipping empty order event")
            return None
        try:
            event = Event.model_validate_json(value)
        except ValidationError as exc:
            logger.error("skipping undecodable order event: %s", exc)
            return None

        trace = TraceContext(action_id="order-event")
        with self.session_factory() as session:
            controller = ReconciliationController(session, self.lookups, self.publishers, settings=self.settings)
            outcome = controller.handle_event(event, trace)
        logger.info(
            "order event %s status=%s -> %s %s",
            event.payload.id,
            event.status,
            outcome.state.value,
            outcome.error_type,
        )
        return outcome
