from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Protocol

from salerecords.core.config import Settings, get_settings
from salerecords.core.context import TraceContext
from salerecords.events.schemas import SaleRecordEvent, SaleRecordFailEvent, wrap_message
from salerecords.persistence.models import SaleRecordLogModel, SaleRecordModel

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    topic: str

    def publish(self, message: dict[str, Any], key: str = "") -> None:
        ...

    def close(self) -> None:
        ...


class InMemoryEventPublisher:
    def __init__(self, topic: str):
        self.topic = topic
        self.messages: list[tuple[str, dict[str, Any]]] = []
        self.closed = False
        self._lock = threading.Lock()

    def publish(self, message: dict[str, Any], key: str = "") -> None:
        if self.closed:
            raise RuntimeError(f"publisher for {self.topic} is closed")
        # copy through JSON so the stored message matches what a broker would see
        encoded = json.loads(json.dumps(message))
        with self._lock:
            self.messages.append((key, encoded))

    def close(self) -> None:
        self.closed = True


class PublishFailureSink:
    """Collects publish jobs that were dropped or raised."""

    def __init__(self):
        self._lock = threading.Lock()
        self.failed = 0
        self.rejected = 0
        self.last_error = ""

    def record_failure(self, topic: str, key: str, exc: BaseException) -> None:
        logger.error("publish to %s failed key=%s: %s", topic, key, exc)
        with self._lock:
            self.failed += 1
            self.last_error = f"{topic}: {exc}"

    def record_rejected(self, topic: str, key: str) -> None:
        logger.error("publish queue full, dropping message topic=%s key=%s", topic, key)
        with self._lock:
            self.rejected += 1
            self.last_error = f"{topic}: publish queue full"

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {"failed": self.failed, "rejected": self.rejected, "last_error": self.last_error}


class PublishDispatcher:
    def __init__(self, max_workers: int = 4, max_pending: int = 1000, sink: PublishFailureSink | None = None):
        self.sink = sink or PublishFailureSink()
        self.max_workers = max_workers
        self.max_pending = max_pending
        self._slots = threading.BoundedSemaphore(max_pending)
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="publish")

    def submit(self, publisher: EventPublisher, message: dict[str, Any], key: str = "") -> bool:
        """Queue one publish without blocking; False when it was dropped."""
        if self._executor is None:
            self.start()
        if not self._slots.acquire(blocking=False):
            self.sink.record_rejected(publisher.topic, key)
            return False
        try:
            self._executor.submit(self._run, publisher, message, key)
        except RuntimeError as exc:
            self._slots.release()
            self.sink.record_failure(publisher.topic, key, exc)
            return False
        return True

    def _run(self, publisher: EventPublisher, message: dict[str, Any], key: str) -> None:
        try:
            publisher.publish(message, key)
        except Exception as exc:
            self.sink.record_failure(publisher.topic, key, exc)
        finally:
            self._slots.release()

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)


class SaleRecordPublishers:
    def __init__(
        self,
        sale_records: EventPublisher,
        failures: EventPublisher,
        dispatcher: PublishDispatcher | None = None,
    ):
        self.sale_records = sale_records
        self.failures = failures
        self.dispatcher = dispatcher or PublishDispatcher()

    def open(self) -> "SaleRecordPublishers":
        self.dispatcher.start()
        return self

    def close(self) -> None:
        self.dispatcher.close()
        for publisher in (self.sale_records, self.failures):
            try:
                publisher.close()
            except Exception:
                logger.exception("closing publisher for %s failed", publisher.topic)

    def __enter__(self) -> "SaleRecordPublishers":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def publish_sale_record(self, record: SaleRecordModel, trace: TraceContext | None = None) -> bool:
        message = wrap_message(SaleRecordEvent.from_record(record), trace)
        return self.dispatcher.submit(self.sale_records, message, key=str(record.transaction_id))

    def publish_failure(self, row: SaleRecordLogModel, trace: TraceContext | None = None) -> bool:
        message = wrap_message(SaleRecordFailEvent.from_log(row), trace)
        return self.dispatcher.submit(self.failures, message, key=f"{row.order_id}:{row.refund_id}")

    def stats(self) -> dict[str, Any]:
        return self.dispatcher.sink.snapshot()


def _memory_publisher(topic: str, settings: Settings) -> EventPublisher:
    return InMemoryEventPublisher(topic)


def build_publishers(
    settings: Settings | None = None,
    factory: Callable[[str, Settings], EventPublisher] | None = None,
) -> SaleRecordPublishers:
    settings = settings or get_settings()
    if factory is None:
        if settings.broker_backend == "memory":
            factory = _memory_publisher
        else:
            from salerecords.events.kafka import KafkaEventPublisher

            factory = KafkaEventPublisher
    dispatcher = PublishDispatcher(
        max_workers=settings.publish_max_workers,
        max_pending=settings.publish_max_pending,
    )
    return SaleRecordPublishers(
        sale_records=factory(settings.sale_record_topic, settings),
        failures=factory(settings.sale_record_fail_topic, settings),
        dispatcher=dispatcher,
    )
