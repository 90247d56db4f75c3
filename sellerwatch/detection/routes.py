"""
Alerts Run Routes

Operational endpoints: trigger a full run, run one account now, and inspect
the scheduler.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from .scheduler import AlertsRunInProgress, AlertsRunScheduler, alerts_scheduler

router = APIRouter(prefix="/alerts")


def get_scheduler() -> AlertsRunScheduler:
    return alerts_scheduler


@router.post("/run")
async def run_alerts(scheduler: AlertsRunScheduler = Depends(get_scheduler)):
    """Run the alerts job now. Same execution as the cron job."""
    try:
        stats = await scheduler.run_all_accounts()
    except AlertsRunInProgress as e:
        raise HTTPException(status_code=409, detail=str(e))
    return stats.to_dict()


@router.post("/run/{account_id}")
async def run_alerts_for_account(
    account_id: str,
    region: Optional[str] = None,
    country: Optional[str] = None,
    scheduler: AlertsRunScheduler = Depends(get_scheduler),
):
    try:
        summaries = await scheduler.process_account(account_id, region, country)
    except LookupError:
        raise HTTPException(status_code=404, detail="Account not found")
    return {"account_id": account_id, "results": [s.to_dict() for s in summaries]}


@router.get("/status")
async def scheduler_status(scheduler: AlertsRunScheduler = Depends(get_scheduler)):
    return scheduler.get_status()
