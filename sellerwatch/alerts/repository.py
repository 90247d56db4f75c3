"""
Alert Repository

Write path used by detectors and read path used by the alerts API.
Every write is a single independent insert; duplicate suppression is the
detectors' job (see ``detection.base``), not the store's.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sellerwatch.models import AlertRecord
from sellerwatch.models.base import utcnow
from .models import Alert, AlertKind, AlertStatus

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


def clamp_limit(limit: Optional[int], default: int = DEFAULT_LIMIT) -> int:
    """Clamp a page size to 1..MAX_LIMIT, falling back to ``default``."""
    if limit is None or limit < 1:
        return default
    return min(limit, MAX_LIMIT)


def normalize_marketplace(value: Optional[str]) -> str:
    return (value or "").strip().lower()


class AlertRepository(ABC):
    """Storage for alerts."""

    @abstractmethod
    async def create(self, alert: Alert) -> Alert:
        """Insert an alert and return it with id and timestamps set."""

    @abstractmethod
    async def find(
        self,
        account_id: str,
        region: str,
        country: str,
        status: Optional[AlertStatus] = None,
        kind: Optional[AlertKind] = None,
        limit: int = DEFAULT_LIMIT,
        skip: int = 0,
    ) -> Tuple[List[Alert], int]:
        """List alerts newest first, with the total matching count."""

    @abstractmethod
    async def find_by_id(self, alert_id: str, account_id: str) -> Optional[Alert]:
        """Get one alert owned by the account."""

    @abstractmethod
    async def mark_viewed(self, alert_id: str, account_id: str) -> Optional[Alert]:
        """Set viewed=True. Returns None if the alert does not exist for the account."""

    @abstractmethod
    async def latest_for_kind(
        self, account_id: str, region: str, country: str, kind: AlertKind
    ) -> Optional[Alert]:
        """Most recently created alert of a kind for an account marketplace."""

    async def find_latest(
        self, account_id: str, region: str, country: str, limit: int = 10
    ) -> List[Alert]:
        alerts, _ = await self.find(account_id, region, country, limit=clamp_limit(limit, 10))
        return alerts


class SQLAlchemyAlertRepository(AlertRepository):
    """Alert repository backed by the ``alerts`` table."""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    def _marketplace_filter(self, query, account_id: str, region: str, country: str):
        return (
            query.where(AlertRecord.account_id == account_id)
            .where(func.lower(AlertRecord.region) == normalize_marketplace(region))
            .where(func.lower(AlertRecord.country) == normalize_marketplace(country))
        )

    async def create(self, alert: Alert) -> Alert:
        async with self.session_maker() as db:
            record = AlertRecord(**alert.to_record_fields())
            db.add(record)
            await db.commit()
            await db.refresh(record)
            logger.info(
                f"Alert {record.id} saved: {record.kind} for account {record.account_id} "
                f"({record.region}/{record.country}), {alert.finding_count} finding(s)"
            )
            return Alert.from_record(record)

    async def find(
        self,
        account_id: str,
        region: str,
        country: str,
        status: Optional[AlertStatus] = None,
        kind: Optional[AlertKind] = None,
        limit: int = DEFAULT_LIMIT,
        skip: int = 0,
    ) -> Tuple[List[Alert], int]:
        limit = clamp_limit(limit)
        skip = max(skip or 0, 0)

        query = self._marketplace_filter(select(AlertRecord), account_id, region, country)
        count_query = self._marketplace_filter(
            select(func.count(AlertRecord.id)), account_id, region, country
        )
        if status:
            query = query.where(AlertRecord.status == AlertStatus(status).value)
            count_query = count_query.where(AlertRecord.status == AlertStatus(status).value)
        if kind:
            query = query.where(AlertRecord.kind == AlertKind(kind).value)
            count_query = count_query.where(AlertRecord.kind == AlertKind(kind).value)

        async with self.session_maker() as db:
            result = await db.execute(
                query.order_by(AlertRecord.created_at.desc()).offset(skip).limit(limit)
            )
            records = result.scalars().all()
            total = (await db.execute(count_query)).scalar() or 0

        return [Alert.from_record(r) for r in records], total

    async def _get_record(self, db: AsyncSession, alert_id: str, account_id: str) -> Optional[AlertRecord]:
        result = await db.execute(
            select(AlertRecord)
            .where(AlertRecord.id == alert_id)
            .where(AlertRecord.account_id == account_id)
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, alert_id: str, account_id: str) -> Optional[Alert]:
        async with self.session_maker() as db:
            record = await self._get_record(db, alert_id, account_id)
            return Alert.from_record(record) if record else None

    async def mark_viewed(self, alert_id: str, account_id: str) -> Optional[Alert]:
        async with self.session_maker() as db:
            record = await self._get_record(db, alert_id, account_id)
            if not record:
                return None
            record.viewed = True
            record.updated_at = utcnow()
            await db.commit()
            await db.refresh(record)
            return Alert.from_record(record)

    async def latest_for_kind(
        self, account_id: str, region: str, country: str, kind: AlertKind
    ) -> Optional[Alert]:
        query = self._marketplace_filter(select(AlertRecord), account_id, region, country)
        async with self.session_maker() as db:
            result = await db.execute(
                query.where(AlertRecord.kind == AlertKind(kind).value)
                .order_by(AlertRecord.created_at.desc())
                .limit(1)
            )
            record = result.scalar_one_or_none()
            return Alert.from_record(record) if record else None


def get_alert_repository(session_maker: Optional[async_sessionmaker] = None) -> AlertRepository:
    """Get an alert repository bound to the application database."""
    if session_maker is None:
        from sellerwatch.database import async_session_maker
        session_maker = async_session_maker
    return SQLAlchemyAlertRepository(session_maker)
