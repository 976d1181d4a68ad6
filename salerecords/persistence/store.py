from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import desc, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from salerecords.persistence.models import (
    SaleRecordLineModel,
    SaleRecordLogModel,
    SaleRecordModel,
)

logger = logging.getLogger(__name__)

LOG_KEY_COLUMNS = ("order_id", "refund_id", "tenant_code", "channel_type", "transaction_type")
LOG_UPDATE_COLUMNS = ("is_success", "error", "error_type", "details", "order_entity", "store_id")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def dedup_key(order_id: int, refund_id: int) -> str:
    if refund_id > 0:
        return f"refund:{refund_id}"
    return f"order:{order_id}"


def _with_children(stmt):
    return stmt.options(
        selectinload(SaleRecordModel.lines).selectinload(SaleRecordLineModel.item_offers),
        selectinload(SaleRecordModel.lines).selectinload(SaleRecordLineModel.cart_offers),
        selectinload(SaleRecordModel.cart_offers),
        selectinload(SaleRecordModel.payments),
    )


@dataclass
class SaleRecordSearch:
    customer_id: int | None = None
    created_id: int | None = None
    status: str | None = None
    transaction_type: str | None = None
    channel_type: str | None = None
    salesman_id: int | None = None
    emp_id: str | None = None
    store_id: int | None = None
    transaction_id: int | None = None
    order_id: int | None = None
    refund_id: int | None = None
    order_ids: list[int] = field(default_factory=list)
    refund_ids: list[int] = field(default_factory=list)
    outer_order_no: str | None = None
    is_out_paid: bool | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    skip_count: int = 0
    max_result_count: int = 0


@dataclass
class SaleRecordLogSearch:
    is_success: bool = False
    store_id: int | None = None
    order_id: int | None = None
    refund_id: int | None = None
    error_type: str | None = None
    channel_type: str | None = None
    transaction_type: str | None = None
    emp_id: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    skip_count: int = 0
    max_result_count: int = 0


class SaleRecordStore:
    def __init__(self, session: Session):
        self.session = session

    def get_by_dedup_key(
        self,
        tenant_code: str,
        channel_type: str,
        transaction_type: str,
        order_id: int,
        refund_id: int,
    ) -> SaleRecordModel | None:
        stmt = _with_children(
            select(SaleRecordModel).where(
                SaleRecordModel.tenant_code == tenant_code,
                SaleRecordModel.transaction_channel_type == channel_type,
                SaleRecordModel.transaction_type == transaction_type,
                SaleRecordModel.dedup_key == dedup_key(order_id, refund_id),
            )
        )
        return self.session.scalars(stmt).first()

    def get_by_order_id(
        self,
        order_id: int,
        tenant_code: str,
        transaction_type: str = "PLUS",
        channel_type: str | None = None,
    ) -> SaleRecordModel | None:
        stmt = select(SaleRecordModel).where(
            SaleRecordModel.order_id == order_id,
            SaleRecordModel.tenant_code == tenant_code,
            SaleRecordModel.transaction_type == transaction_type,
        )
        if channel_type:
            stmt = stmt.where(SaleRecordModel.transaction_channel_type == channel_type)
        return self.session.scalars(_with_children(stmt.order_by(SaleRecordModel.transaction_id))).first()

    def get_by_refund_id(
        self,
        refund_id: int,
        tenant_code: str,
        transaction_type: str = "MINUS",
        channel_type: str | None = None,
    ) -> SaleRecordModel | None:
        stmt = select(SaleRecordModel).where(
            SaleRecordModel.refund_id == refund_id,
            SaleRecordModel.tenant_code == tenant_code,
            SaleRecordModel.transaction_type == transaction_type,
        )
        if channel_type:
            stmt = stmt.where(SaleRecordModel.transaction_channel_type == channel_type)
        return self.session.scalars(_with_children(stmt.order_by(SaleRecordModel.transaction_id))).first()

    def get_by_transaction_id(self, transaction_id: int) -> SaleRecordModel | None:
        stmt = _with_children(select(SaleRecordModel).where(SaleRecordModel.transaction_id == transaction_id))
        return self.session.scalars(stmt).first()

    def search(self, query: SaleRecordSearch) -> tuple[int, list[SaleRecordModel]]:
        if query.transaction_id:
            record = self.get_by_transaction_id(query.transaction_id)
            return (1, [record]) if record is not None else (0, [])

        conditions = []
        if query.created_from is not None and query.created_to is not None:
            conditions.append(SaleRecordModel.created >= query.created_from)
            conditions.append(SaleRecordModel.created < query.created_to)
        if query.order_id:
            conditions.append(SaleRecordModel.order_id == query.order_id)
        if query.refund_id:
            conditions.append(SaleRecordModel.refund_id == query.refund_id)
        if query.order_ids:
            conditions.append(SaleRecordModel.order_id.in_(query.order_ids))
        if query.refund_ids:
            conditions.append(SaleRecordModel.refund_id.in_(query.refund_ids))
        if query.customer_id is not None:
            conditions.append(SaleRecordModel.customer_id == query.customer_id)
        if query.created_id is not None:
            conditions.append(SaleRecordModel.created_by == str(query.created_id))
        if query.status:
            conditions.append(SaleRecordModel.transaction_status == query.status)
        if query.transaction_type:
            conditions.append(SaleRecordModel.transaction_type == query.transaction_type)
        if query.channel_type:
            conditions.append(SaleRecordModel.transaction_channel_type == query.channel_type)
        if query.salesman_id is not None:
            conditions.append(SaleRecordModel.salesman_id == query.salesman_id)
        if query.emp_id:
            conditions.append(SaleRecordModel.emp_id == query.emp_id)
        if query.store_id is not None:
            conditions.append(SaleRecordModel.store_id == query.store_id)
        if query.outer_order_no:
            conditions.append(SaleRecordModel.outer_order_no == query.outer_order_no)
        if query.is_out_paid is not None:
            conditions.append(SaleRecordModel.is_out_paid == query.is_out_paid)

        total = self.session.scalar(select(func.count()).select_from(SaleRecordModel).where(*conditions)) or 0
        stmt = _with_children(
            select(SaleRecordModel)
            .where(*conditions)
            .order_by(desc(SaleRecordModel.transaction_create_date), desc(SaleRecordModel.transaction_id))
        )
        if query.max_result_count > 0:
            stmt = stmt.offset(query.skip_count).limit(query.max_result_count)
        return int(total), list(self.session.scalars(stmt).all())

    def add(self, record: SaleRecordModel) -> SaleRecordModel:
        record.dedup_key = dedup_key(record.order_id, record.refund_id)
        self.session.add(record)
        self.session.flush()
        return record

    def refresh_status(self, record: SaleRecordModel, status: str, modified_by: str) -> SaleRecordModel:
        if not status or record.transaction_status == status:
            return record
        record.transaction_status = status
        record.modified = now_utc()
        record.modified_by = modified_by
        self.session.flush()
        return record


class SaleRecordLogStore:
    def __init__(self, session: Session):
        self.session = session

    def get(self, **key) -> SaleRecordLogModel | None:
        stmt = (
            select(SaleRecordLogModel)
            .filter_by(**{column: key[column] for column in LOG_KEY_COLUMNS})
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).first()

    def upsert(self, **values) -> SaleRecordLogModel:
        now = now_utc()
        key = {column: values[column] for column in LOG_KEY_COLUMNS}
        updates = {column: values[column] for column in LOG_UPDATE_COLUMNS if column in values}
        updates["updated_at"] = now

        dialect = self.session.get_bind().dialect.name
        if dialect in {"postgresql", "sqlite"}:
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert(SaleRecordLogModel).values(created_at=now, updated_at=now, **values)
            stmt = stmt.on_conflict_do_update(index_elements=list(LOG_KEY_COLUMNS), set_=updates)
            self.session.execute(stmt)
        else:
            self._update_or_insert(key, updates, values, now)

        row = self.get(**key)
        if row is None:  # pragma: no cover
            raise RuntimeError(f"sale record log upsert lost row for key={key}")
        return row

    def _update_or_insert(self, key: dict, updates: dict, values: dict, now: datetime) -> None:
        existing = self.get(**key)
        if existing is None:
            try:
                with self.session.begin_nested():
                    self.session.add(SaleRecordLogModel(created_at=now, updated_at=now, **values))
                return
            except IntegrityError:
                logger.info("sale record log inserted concurrently, updating instead: %s", key)
                existing = self.get(**key)
        for column, value in updates.items():
            setattr(existing, column, value)
        self.session.flush()

    def search(self, query: SaleRecordLogSearch) -> tuple[int, list[SaleRecordLogModel]]:
        conditions = [SaleRecordLogModel.is_success == query.is_success]
        if query.store_id:
            conditions.append(SaleRecordLogModel.store_id == query.store_id)
        if query.order_id:
            conditions.append(SaleRecordLogModel.order_id == query.order_id)
        if query.refund_id:
            conditions.append(SaleRecordLogModel.refund_id == query.refund_id)
        if query.error_type:
            conditions.append(SaleRecordLogModel.error_type == query.error_type)
        if query.channel_type:
            conditions.append(SaleRecordLogModel.channel_type == query.channel_type)
        if query.transaction_type:
            conditions.append(SaleRecordLogModel.transaction_type == query.transaction_type)
        if query.emp_id:
            # failed attempts never produced a record, so only successful keys can match
            conditions.append(
                select(SaleRecordModel.transaction_id)
                .where(
                    SaleRecordModel.order_id == SaleRecordLogModel.order_id,
                    SaleRecordModel.refund_id == SaleRecordLogModel.refund_id,
                    SaleRecordModel.tenant_code == SaleRecordLogModel.tenant_code,
                    SaleRecordModel.transaction_channel_type == SaleRecordLogModel.channel_type,
                    SaleRecordModel.transaction_type == SaleRecordLogModel.transaction_type,
                    SaleRecordModel.emp_id == query.emp_id,
                )
                .exists()
            )
        if query.created_from is not None and query.created_to is not None:
            conditions.append(SaleRecordLogModel.created_at >= query.created_from)
            conditions.append(SaleRecordLogModel.created_at < query.created_to)

        total = self.session.scalar(select(func.count()).select_from(SaleRecordLogModel).where(*conditions)) or 0
        stmt = select(SaleRecordLogModel).where(*conditions).order_by(desc(SaleRecordLogModel.id))
        if query.max_result_count > 0:
            stmt = stmt.offset(query.skip_count).limit(query.max_result_count)
        return int(total), list(self.session.scalars(stmt).all())
