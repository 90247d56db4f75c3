"""
Alerts Run Scheduler

Batch orchestrator for the alerts run:
- Enumerates verified, subscribed accounts with at least one marketplace
- Expands them to one work item per (account, region, country)
- Runs work items in fixed-size batches; items in a batch run concurrently
  and one item failing never affects the others
- Sleeps between batches to spread load on the snapshot store

Triggered by APScheduler on a cron (06:00 UTC Sunday and Wednesday by
default) or on demand through ``manual_run``. Both share ``run_all_accounts``.
There are no retries: a failed account is picked up by the next run.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sellerwatch.config import settings
from .accounts import AccountSource, get_account_source
from .aggregator import run_account_alerts
from .base import DetectionContext
from .models import (
    AccountRunSummary,
    BatchRunStatistics,
    Marketplace,
    MonitoredAccount,
    RunState,
)
from .snapshots import SnapshotStore, get_snapshot_store

logger = logging.getLogger(__name__)

WorkItem = Tuple[MonitoredAccount, Marketplace]


class AlertsRunInProgress(RuntimeError):
    """A run was requested while another one is still going."""


def build_work_items(accounts: List[MonitoredAccount]) -> List[WorkItem]:
    """One item per configured marketplace of each subscribed account."""
    items = []
    for account in accounts:
        if account.opted_out:
            continue
        for marketplace in account.configured_regions:
            items.append((account, marketplace))
    return items


def chunk(items: List[Any], size: int) -> List[List[Any]]:
    size = max(int(size), 1)
    return [items[i:i + size] for i in range(0, len(items), size)]


class AlertsRunScheduler:
    """
    Runs alert detection for every monitored account.

    Collaborators default to the database-backed implementations and are
    resolved on first use, so the module singleton can be created at import.
    """

    def __init__(
        self,
        account_source: Optional[AccountSource] = None,
        snapshot_store: Optional[SnapshotStore] = None,
        alert_repository=None,
        notifier=None,
        batch_size: Optional[int] = None,
        batch_delay_seconds: Optional[float] = None,
    ):
        self.account_source = account_source
        self.snapshot_store = snapshot_store
        self.alert_repository = alert_repository
        self.notifier = notifier
        self.batch_size = batch_size or settings.ALERTS_BATCH_SIZE
        self.batch_delay_seconds = (
            settings.ALERTS_BATCH_DELAY_SECONDS if batch_delay_seconds is None else batch_delay_seconds
        )

        self._state = RunState.IDLE
        self._current_batch = 0
        self._total_batches = 0
        self._last_run: Optional[BatchRunStatistics] = None
        self._last_run_at: Optional[datetime] = None
        self._last_error: Optional[str] = None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state in (RunState.ENUMERATING, RunState.BATCHING)

    def _resolve(self) -> None:
        if self.account_source is None:
            self.account_source = get_account_source()
        if self.snapshot_store is None:
            self.snapshot_store = get_snapshot_store()
        if self.alert_repository is None:
            from sellerwatch.alerts.repository import get_alert_repository
            self.alert_repository = get_alert_repository()
        if self.notifier is None:
            from sellerwatch.notifications.service import get_alert_notifier
            self.notifier = get_alert_notifier()

    def _context(self) -> DetectionContext:
        return DetectionContext(snapshots=self.snapshot_store, alerts=self.alert_repository)

    async def run_all_accounts(self) -> BatchRunStatistics:
        """
        Run detection for all monitored accounts.

        Raises AlertsRunInProgress if a run is already going, and re-raises
        if the accounts cannot be enumerated. Per-account failures are counted
        in ``failed_accounts``. Any fault, cancellation included, leaves the
        state at FAILED rather than running.
        """
        if self.running:
            raise AlertsRunInProgress("Alerts run already in progress")
        self._resolve()
        started = time.monotonic()
        stats = BatchRunStatistics(started_at=datetime.now(timezone.utc))
        self._last_run_at = stats.started_at
        self._last_error = None
        self._current_batch = 0
        self._total_batches = 0

        logger.info("Starting alerts run")
        self._state = RunState.ENUMERATING
        try:
            accounts = await self.account_source.list_monitored_accounts()
        except BaseException as e:
            self._state = RunState.FAILED
            self._last_error = str(e) or type(e).__name__
            logger.exception(f"Alerts run failed while enumerating accounts: {e}")
            raise

        try:
            stats = await self._run_batches(accounts, stats)
        except BaseException as e:
            self._state = RunState.FAILED
            self._last_error = str(e) or type(e).__name__
            logger.exception(f"Alerts run failed after enumeration: {self._last_error}")
            raise

        stats.duration_seconds = round(time.monotonic() - started)
        self._state = RunState.COMPLETED
        self._last_run = stats
        logger.info(
            f"Alerts run completed: {stats.processed_accounts} processed, "
            f"{stats.failed_accounts} failed in {stats.duration_seconds}s"
        )
        return stats

    async def _run_batches(
        self, accounts: List[MonitoredAccount], stats: BatchRunStatistics
    ) -> BatchRunStatistics:
        stats.accounts_enumerated = len(accounts)
        items = build_work_items(accounts)
        batches = chunk(items, self.batch_size)
        stats.total_batches = self._total_batches = len(batches)
        logger.info(
            f"Alerts run: {len(accounts)} account(s), {len(items)} marketplace(s), "
            f"{len(batches)} batch(es) of up to {self.batch_size}"
        )

        self._state = RunState.BATCHING
        for index, batch in enumerate(batches, start=1):
            self._current_batch = index
            results = await asyncio.gather(
                *(self._run_item(account, marketplace) for account, marketplace in batch),
                return_exceptions=True,
            )

            for (account, marketplace), result in zip(batch, results):
                stats.processed_accounts += 1
                if isinstance(result, BaseException):
                    stats.failed_accounts += 1
                    logger.error(
                        f"Alerts failed for account {account.account_id} "
                        f"({marketplace.region}/{marketplace.country}): {result}"
                    )
                    continue
                stats.summaries.append(result)
                if not result.success:
                    stats.failed_accounts += 1

            if index < len(batches) and self.batch_delay_seconds > 0:
                await asyncio.sleep(self.batch_delay_seconds)

        return stats

    async def _run_item(self, account: MonitoredAccount, marketplace: Marketplace) -> AccountRunSummary:
        return await run_account_alerts(account, marketplace, self._context(), self.notifier)

    async def process_account(
        self,
        account_id: str,
        region: Optional[str] = None,
        country: Optional[str] = None,
    ) -> List[AccountRunSummary]:
        """
        Run detection for one account now, outside the batch schedule.

        With ``region`` and ``country`` only that marketplace is processed;
        otherwise every configured marketplace of the account is.
        Raises LookupError if the account does not exist.
        """
        self._resolve()
        account = await self.account_source.get_account(account_id)
        if account is None:
            raise LookupError(f"Account {account_id} not found")

        if region or country:
            marketplaces = [Marketplace(region=region, country=country)]
        else:
            marketplaces = account.configured_regions or [Marketplace(region=None, country=None)]

        logger.info(f"Running alerts for account {account_id} on {len(marketplaces)} marketplace(s)")
        summaries = []
        for marketplace in marketplaces:
            summaries.append(await self._run_item(account, marketplace))
        return summaries

    def get_status(self) -> Dict[str, Any]:
        """Current state, batch progress and the last completed run."""
        return {
            "state": self._state.value,
            "running": self.running,
            "current_batch": self._current_batch,
            "total_batches": self._total_batches,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "last_run": self._last_run.to_dict() if self._last_run else None,
            "last_error": self._last_error,
        }


# Singleton instance for use across the application
alerts_scheduler = AlertsRunScheduler()


async def run_scheduled_alerts() -> Optional[Dict[str, Any]]:
    """Cron entry point. Fatal errors are logged so the schedule keeps running."""
    try:
        stats = await alerts_scheduler.run_all_accounts()
    except Exception as e:
        logger.error(f"Scheduled alerts run failed: {e}")
        return None
    return stats.to_dict()


async def manual_run() -> Dict[str, Any]:
    """Run now. Same execution and return shape as the cron job; errors propagate."""
    stats = await alerts_scheduler.run_all_accounts()
    return stats.to_dict()


async def run_alerts_for_account(
    account_id: str, region: Optional[str] = None, country: Optional[str] = None
) -> List[Dict[str, Any]]:
    summaries = await alerts_scheduler.process_account(account_id, region, country)
    return [s.to_dict() for s in summaries]


# crontab counts days of week from Sunday=0, APScheduler 3 from Monday=0
_DAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat", "sun"]


def crontab_day_of_week(field: str) -> str:
    """
    Rewrite a crontab day-of-week field with day names.

    Numeric days, ranges and steps (``*/2``, ``1-5/2``) are expanded to
    explicit names. Named days pass through; named days with a step are
    rejected.
    """
    if field in ("*", "?"):
        return "*"
    names = []
    for token in field.split(","):
        token = token.strip().lower()
        base, _, step = token.partition("/")
        if step and not (step.isdigit() and int(step) > 0):
            raise ValueError(f"Invalid day-of-week step: {token!r}")
        if base in ("*", "?"):
            base = "0-6"
        elif step and base.isdigit():
            base = f"{base}-6"

        if base.isdigit():
            days = [int(base)]
        elif "-" in base and base.replace("-", "").isdigit():
            start, end = (int(p) for p in base.split("-"))
            days = list(range(start, end + 1))
        elif step:
            raise ValueError(f"Unsupported day-of-week step: {token!r}")
        else:
            names.append(token)
            continue

        if not days or max(days) >= len(_DAY_NAMES):
            raise ValueError(f"Day of week out of range: {token!r}")
        names.extend(_DAY_NAMES[d] for d in days[::int(step or 1)])
    return ",".join(dict.fromkeys(names))


def crontab_fields(expression: str) -> Dict[str, str]:
    """Split a 5-field crontab expression into APScheduler cron arguments."""
    parts = expression.split()
    if len(parts) != 5:
        raise ValueError(f"Expected 5 crontab fields, got {len(parts)}: {expression!r}")
    minute, hour, day, month, day_of_week = parts
    return {
        "minute": minute,
        "hour": hour,
        "day": day,
        "month": month,
        "day_of_week": crontab_day_of_week(day_of_week),
    }


def setup_apscheduler(scheduler, cron: Optional[str] = None, tz: Optional[str] = None):
    """
    Configure APScheduler with the alerts job.

    Usage:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        scheduler = AsyncIOScheduler()
        setup_apscheduler(scheduler)
        scheduler.start()

    Args:
        scheduler: APScheduler instance (AsyncIOScheduler)
        cron: crontab expression, defaults to ALERTS_WORKER_CRON
        tz: timezone name, defaults to TIMEZONE
    """
    cron = cron or settings.ALERTS_WORKER_CRON
    tz = tz or settings.TIMEZONE

    scheduler.add_job(
        run_scheduled_alerts,
        'cron',
        timezone=tz,
        id='alerts_worker',
        name='Alerts Run',
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        **crontab_fields(cron),
    )

    logger.info(f"Alerts job scheduled: '{cron}' ({tz})")
