"""
Alerts Routes

Read and acknowledge stored alerts for an account marketplace.
Alerts are only ever created by the detectors.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from .models import AlertKind, AlertStatus
from .repository import AlertRepository, DEFAULT_LIMIT, clamp_limit, get_alert_repository
from .schemas import AlertResponse, AlertsListResponse, LatestAlertsResponse

router = APIRouter(prefix="/accounts/{account_id}/alerts")


def get_repository() -> AlertRepository:
    return get_alert_repository()


@router.get("", response_model=AlertsListResponse)
async def list_alerts(
    account_id: str,
    region: str = Query(..., min_length=1),
    country: str = Query(..., min_length=1),
    status: Optional[AlertStatus] = None,
    kind: Optional[AlertKind] = None,
    limit: int = Query(DEFAULT_LIMIT),
    skip: int = Query(0, ge=0),
    repository: AlertRepository = Depends(get_repository),
):
    """List alerts newest first. ``limit`` is clamped to 1..100."""
    limit = clamp_limit(limit)
    alerts, total = await repository.find(
        account_id, region, country, status=status, kind=kind, limit=limit, skip=skip
    )
    return AlertsListResponse(
        alerts=[AlertResponse.from_alert(a) for a in alerts],
        total=total,
        limit=limit,
        skip=skip,
    )


@router.get("/latest", response_model=LatestAlertsResponse)
async def latest_alerts(
    account_id: str,
    region: str = Query(..., min_length=1),
    country: str = Query(..., min_length=1),
    limit: int = Query(10),
    repository: AlertRepository = Depends(get_repository),
):
    """Most recent alerts, for the dashboard bell."""
    alerts = await repository.find_latest(account_id, region, country, limit=limit)
    return LatestAlertsResponse(alerts=[AlertResponse.from_alert(a) for a in alerts])


@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(
    account_id: str,
    alert_id: str,
    repository: AlertRepository = Depends(get_repository),
):
    alert = await repository.find_by_id(alert_id, account_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse.from_alert(alert)


@router.patch("/{alert_id}/viewed", response_model=AlertResponse)
async def mark_alert_viewed(
    account_id: str,
    alert_id: str,
    repository: AlertRepository = Depends(get_repository),
):
    alert = await repository.mark_viewed(alert_id, account_id)
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    return AlertResponse.from_alert(alert)
