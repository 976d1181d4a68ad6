from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SERVICE_API_KEY = "sr-service-dev-key"
DEFAULT_OPERATOR_API_KEY = "sr-operator-dev-key"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SR_", extra="ignore")

    app_name: str = "Sale Record API"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./sale_records.db"

    auth_enabled: bool = True
    service_api_key: str = DEFAULT_SERVICE_API_KEY
    operator_api_key: str = DEFAULT_OPERATOR_API_KEY
    service_actor_id: str = "kafka-listener"
    operator_actor_id: str = "operator-001"
    tenant_code: str = "hublabs"

    # Lookup collaborators
    place_management_url: str = "http://place-management-api"
    product_api_url: str = "http://product-api"
    payamt_api_url: str = "http://payamt-api"
    coupon_api_url: str = "http://coupon-api"
    membership_api_url: str = "http://membership-api"
    lookup_timeout_seconds: float = 10.0

    # Broker backend: kafka | memory
    broker_backend: str = "kafka"
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_client_id: str = "sale-record-api"
    kafka_consumer_group: str = "sale-record-api"
    kafka_request_timeout_ms: int = 15000
    kafka_poll_timeout_ms: int = 500
    order_event_topic: str = "order"
    sale_record_topic: str = "sale-record"
    sale_record_fail_topic: str = "sale-record-fail"

    publish_max_workers: int = Field(default=4, ge=1)
    publish_max_pending: int = Field(default=1000, ge=1)

    search_max_days: int = 31
    search_utc_offset_hours: int = 8

    redistribute_cart_offers: bool = False

    def model_post_init(self, __context) -> None:
        if self.env.lower() == "dev":
            return

        insecure_items: list[str] = []
        if self.service_api_key == DEFAULT_SERVICE_API_KEY:
            insecure_items.append("SR_SERVICE_API_KEY")
        if self.operator_api_key == DEFAULT_OPERATOR_API_KEY:
            insecure_items.append("SR_OPERATOR_API_KEY")

        if insecure_items:
            raise ValueError(
                "insecure default secrets are not allowed outside dev mode; set env vars: "
                + ", ".join(sorted(insecure_items))
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
