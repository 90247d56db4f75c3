"""
Alert Record

Single table for every alert kind. The kind-specific body lives in the
``payload`` JSON column and is validated by ``sellerwatch.alerts.models``.
"""

from sqlalchemy import Column, String, DateTime, Boolean, JSON, Index

from sellerwatch.database import Base
from .base import id_default, utcnow


class AlertRecord(Base):
    """Persisted alert row."""
    __tablename__ = "alerts"

    id = Column(String, primary_key=True, default=id_default("alert"))
    account_id = Column(String, nullable=False, index=True)
    region = Column(String, nullable=False, index=True)
    country = Column(String, nullable=False, index=True)

    kind = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="active", index=True)
    viewed = Column(Boolean, nullable=False, default=False, index=True)
    message = Column(String, nullable=True)

    payload = Column(JSON, nullable=False, default=dict)
    # "metadata" is reserved on declarative classes
    extra_data = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_alerts_account_marketplace_status", "account_id", "region", "country", "status"),
        Index("ix_alerts_account_kind_created", "account_id", "kind", "created_at"),
    )
