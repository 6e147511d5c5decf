import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID, uuid4

from sqlalchemy import create_engine, delete, func, insert, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from src.safetynet.domain.delivery_record import DeliveryRecord
from src.safetynet.domain.exceptions import StorageError
from src.safetynet.interfaces.history_ledger import HistoryLedger
from src.safetynet.store.models import Base, DeliveryHistoryModel

logger = logging.getLogger(__name__)

_table = DeliveryHistoryModel.__table__


def _to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("ledger timestamps must be timezone-aware")
    return value.astimezone(timezone.utc)


def _from_db(value: datetime) -> datetime:
    # sqlite hands back naive values; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlHistoryLedger(HistoryLedger):
    """
    Ledger persisted in a relational database through SQLAlchemy.
    Works against any shared store; that store is the single source of truth
    when several processes need one unified limit.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.ensure_schema()

    @classmethod
    def from_dsn(cls, dsn: str) -> "SqlHistoryLedger":
        engine = create_engine(dsn, pool_pre_ping=True, future=True)
        return cls(engine)

    def ensure_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageError(f"cannot create delivery history schema: {exc}") from exc

    def record(self, address: str, channel: str, action: str, timestamp: datetime) -> UUID:
        record_id = uuid4()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(_table).values(
                        id=str(record_id),
                        address=address,
                        channel=channel,
                        method=action,
                        created_at=_to_utc(timestamp),
                    )
                )
        except SQLAlchemyError as exc:
            logger.error("delivery history write failed for %s/%s: %s", channel, action, exc)
            raise StorageError(f"cannot record delivery: {exc}") from exc
        return record_id

    def count_matching(
        self,
        address: str,
        channel: str,
        action: str,
        since: Optional[datetime] = None,
    ) -> int:
        query = (
            select(func.count())
            .select_from(_table)
            .where(
                _table.c.address == address,
                _table.c.channel == channel,
                _table.c.method == action,
            )
        )
        if since is not None:
            query = query.where(_table.c.created_at >= _to_utc(since))
        try:
            with self.engine.connect() as conn:
                return int(conn.execute(query).scalar_one())
        except SQLAlchemyError as exc:
            logger.error("delivery history read failed for %s/%s: %s", channel, action, exc)
            raise StorageError(f"cannot count deliveries: {exc}") from exc

    def purge_all(self) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(_table))
        except SQLAlchemyError as exc:
            raise StorageError(f"cannot purge delivery history: {exc}") from exc

    def history(self, address: Optional[str] = None) -> List[DeliveryRecord]:
        query = select(_table).order_by(_table.c.created_at.asc())
        if address is not None:
            query = query.where(_table.c.address == address)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as exc:
            raise StorageError(f"cannot read delivery history: {exc}") from exc
        return [
            DeliveryRecord(
                id=UUID(row.id),
                address=row.address,
                channel=row.channel,
                action=row.method,
                created_at=_from_db(row.created_at),
            )
            for row in rows
        ]
