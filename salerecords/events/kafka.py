from __future__ import annotations

import json
import logging
from typing import Any

from confluent_kafka import Consumer, Producer

from salerecords.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _producer_conf(settings: Settings) -> dict[str, Any]:
    return {
        "bootstrap.servers": settings.kafka_bootstrap_servers,
        "client.id": settings.kafka_client_id,
        "request.timeout.ms": max(1000, settings.kafka_request_timeout_ms),
        "enable.idempotence": True,
    }


def _consumer_conf(settings: Settings) -> dict[str, Any]:
    return {
        "bootstrap.servers": settings.kafka_bootstrap_servers,
        "client.id": settings.kafka_client_id,
        "group.id": settings.kafka_consumer_group,
        "enable.auto.commit": False,
        "auto.offset.reset": "earliest",
        "session.timeout.ms": max(6000, settings.kafka_request_timeout_ms),
    }


class KafkaEventPublisher:
    def __init__(self, topic: str, settings: Settings | None = None):
        self.topic = topic
        self.settings = settings or get_settings()
        self._producer = Producer(_producer_conf(self.settings))

    def publish(self, message: dict[str, Any], key: str = "") -> None:
        payload = json.dumps(message, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        delivery: dict[str, Any] = {}

        def _on_delivery(err, msg) -> None:
            delivery["error"] = err
            delivery["message"] = msg

        self._producer.produce(topic=self.topic, key=key.encode("utf-8"), value=payload, on_delivery=_on_delivery)
        self._producer.flush(self.settings.kafka_request_timeout_ms / 1000.0)
        if "message" not in delivery:
            raise RuntimeError(f"kafka publish to {self.topic} timed out")
        if delivery["error"] is not None:
            raise RuntimeError(f"kafka publish to {self.topic} failed: {delivery['error']}")
        msg = delivery["message"]
        logger.info(
            "published topic=%s partition=%s offset=%s bytes=%s",
            self.topic,
            msg.partition(),
            msg.offset(),
            len(payload),
        )

    def close(self) -> None:
        remaining = self._producer.flush(self.settings.kafka_request_timeout_ms / 1000.0)
        if remaining:
            logger.warning("%s messages for %s were not delivered before close", remaining, self.topic)


def build_kafka_consumer(settings: Settings | None = None) -> Consumer:
    settings = settings or get_settings()
    consumer = Consumer(_consumer_conf(settings))
    consumer.subscribe([settings.order_event_topic])
    return consumer
