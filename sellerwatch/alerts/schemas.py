"""
Alerts Schemas

Pydantic response schemas for the alerts API.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .models import Alert, AlertKind, AlertStatus


class AlertResponse(BaseModel):
    """One stored alert."""
    id: str
    kind: AlertKind
    account_id: str
    region: str
    country: str
    status: AlertStatus
    viewed: bool
    message: str
    finding_count: int
    payload: Dict[str, Any]
    metadata: Dict[str, Any]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_alert(cls, alert: Alert) -> "AlertResponse":
        return cls(
            id=alert.id,
            kind=alert.kind,
            account_id=alert.account_id,
            region=alert.region,
            country=alert.country,
            status=alert.status,
            viewed=alert.viewed,
            message=alert.message,
            finding_count=alert.finding_count,
            payload=alert.payload.model_dump(mode="json"),
            metadata=alert.metadata,
            created_at=alert.created_at,
            updated_at=alert.updated_at,
        )


class AlertsListResponse(BaseModel):
    alerts: List[AlertResponse]
    total: int
    limit: int
    skip: int


class LatestAlertsResponse(BaseModel):
    alerts: List[AlertResponse]
