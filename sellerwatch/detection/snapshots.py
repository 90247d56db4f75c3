"""
Snapshot Store Adapter

Read-only access to the operational snapshots collected by the sync jobs.
Detectors only see the ``Snapshot`` dataclass, never the ORM rows.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from sellerwatch.models import SnapshotRecord


class SnapshotKind(str, Enum):
    """Kinds of stored snapshots read by the detectors."""
    PRODUCT_LISTINGS = "product_listings"            # listing content + star ratings
    APLUS_CONTENT = "aplus_content"                  # A+ content status per ASIN
    BUY_BOX = "buy_box"                              # buy box share per ASIN
    ECONOMICS = "economics"                          # datewise sales
    RESTOCK_INVENTORY = "restock_inventory"          # restock recommendations report
    STRANDED_INVENTORY = "stranded_inventory"        # stranded inventory report
    INBOUND_NONCOMPLIANCE = "inbound_noncompliance"  # inbound shipment problems


@dataclass
class Snapshot:
    """A timestamped point-in-time read of marketplace data."""
    id: str
    kind: SnapshotKind
    account_id: str
    region: str
    country: str
    created_at: datetime
    records: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: SnapshotRecord) -> "Snapshot":
        created_at = record.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=record.id,
            kind=SnapshotKind(record.kind),
            account_id=record.account_id,
            region=record.region,
            country=record.country,
            created_at=created_at,
            records=list(record.records or []),
        )


class SnapshotStore(ABC):
    """Read interface over stored snapshots."""

    @abstractmethod
    async def get_recent(
        self,
        account_id: str,
        kind: SnapshotKind,
        region: str,
        country: str,
        n: int,
    ) -> List[Snapshot]:
        """Up to ``n`` most recent snapshots, newest first."""

    async def get_latest(
        self,
        account_id: str,
        kind: SnapshotKind,
        region: str,
        country: str,
    ) -> Optional[Snapshot]:
        recent = await self.get_recent(account_id, kind, region, country, 1)
        return recent[0] if recent else None


class SQLAlchemySnapshotStore(SnapshotStore):
    """Snapshot store backed by the ``snapshots`` table."""

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def get_recent(
        self,
        account_id: str,
        kind: SnapshotKind,
        region: str,
        country: str,
        n: int,
    ) -> List[Snapshot]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(SnapshotRecord)
                .where(SnapshotRecord.account_id == account_id)
                .where(SnapshotRecord.kind == SnapshotKind(kind).value)
                .where(func.lower(SnapshotRecord.region) == (region or "").strip().lower())
                .where(func.lower(SnapshotRecord.country) == (country or "").strip().lower())
                .order_by(SnapshotRecord.created_at.desc())
                .limit(n)
            )
            return [Snapshot.from_record(r) for r in result.scalars().all()]


def get_snapshot_store(session_maker: Optional[async_sessionmaker] = None) -> SnapshotStore:
    """Get a snapshot store bound to the application database."""
    if session_maker is None:
        from sellerwatch.database import async_session_maker
        session_maker = async_session_maker
    return SQLAlchemySnapshotStore(session_maker)
