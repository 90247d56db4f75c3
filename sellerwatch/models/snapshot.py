"""
Snapshot Record

Point-in-time reads of marketplace data collected by the sync jobs.
The pipeline only ever reads these rows.
"""

from sqlalchemy import Column, String, DateTime, JSON, Index

from sellerwatch.database import Base
from .base import id_default, utcnow


class SnapshotRecord(Base):
    """Stored snapshot of one data kind for one account marketplace."""
    __tablename__ = "snapshots"

    id = Column(String, primary_key=True, default=id_default("snap"))
    account_id = Column(String, nullable=False, index=True)
    kind = Column(String, nullable=False)
    region = Column(String, nullable=False)
    country = Column(String, nullable=False)

    # List of per-ASIN or per-day rows, shape depends on kind
    records = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_snapshots_lookup", "account_id", "kind", "region", "country", "created_at"),
    )
