"""
Detector Contract

Every detector exposes ``detect(account_id, region, country, context)`` and
returns a DetectorOutcome. ``detect`` never raises: faults inside a detector
are logged with account/kind context and reported as ``error``.

Idempotence: before storing, a detector checks the most recent alert of its
kind for the account marketplace. If that alert was created at or after the
newest snapshot being evaluated, the data has not advanced since it was last
reported and the detector skips with ``already reported``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sellerwatch.alerts.models import Alert, AlertKind
from sellerwatch.alerts.repository import AlertRepository
from .models import DetectorOutcome, SkipReason
from .snapshots import Snapshot, SnapshotStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class DetectionContext:
    """Collaborators shared by all detectors in one run."""
    snapshots: SnapshotStore
    alerts: AlertRepository
    now: datetime = field(default_factory=_utcnow)

    @property
    def today(self):
        """Run date (UTC)."""
        return as_utc(self.now).date()

    def is_created_today(self, snapshot: Snapshot) -> bool:
        return as_utc(snapshot.created_at).date() == self.today

    def is_within_days(self, snapshot: Snapshot, days: int) -> bool:
        return as_utc(snapshot.created_at) >= as_utc(self.now) - timedelta(days=days)


class Detector(ABC):
    """Base class for the fixed detector set."""

    kind: AlertKind

    async def detect(
        self,
        account_id: str,
        region: str,
        country: str,
        context: DetectionContext,
    ) -> DetectorOutcome:
        """Run the detector. Never raises."""
        try:
            return await self._detect(account_id, region, country, context)
        except Exception as e:
            logger.error(
                f"Detector {self.kind.value} failed for account {account_id} "
                f"({region}/{country}): {e}"
            )
            return DetectorOutcome.failed(str(e))

    @abstractmethod
    async def _detect(
        self,
        account_id: str,
        region: str,
        country: str,
        context: DetectionContext,
    ) -> DetectorOutcome:
        """Detector-specific evaluation."""

    async def _already_reported(
        self,
        account_id: str,
        region: str,
        country: str,
        context: DetectionContext,
        snapshot: Snapshot,
    ) -> bool:
        """True if an alert of this kind already covers ``snapshot``."""
        latest = await context.alerts.latest_for_kind(account_id, region, country, self.kind)
        if latest is None or latest.created_at is None:
            return False
        return as_utc(latest.created_at) >= as_utc(snapshot.created_at)

    async def _store(
        self,
        account_id: str,
        region: str,
        country: str,
        context: DetectionContext,
        payload: Dict[str, Any],
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> DetectorOutcome:
        """
        Write exactly one alert for the findings in ``payload``.

        A failed write loses the findings for this run: it is logged and
        reported as an error outcome with a zero count.
        """
        alert = Alert(
            account_id=account_id,
            region=region,
            country=country,
            message=message,
            payload={"kind": self.kind.value, **payload},
            metadata=metadata or {},
        )
        try:
            saved = await context.alerts.create(alert)
        except Exception as e:
            logger.warning(
                f"Could not store {self.kind.value} alert for account {account_id} "
                f"({region}/{country}): {e}"
            )
            return DetectorOutcome.failed(f"alert write failed: {e}")

        logger.info(
            f"{self.kind.value} alert created for account {account_id} "
            f"({region}/{country}): {saved.finding_count} finding(s)"
        )
        return DetectorOutcome.stored(saved)
