"""Shared test fixtures and in-memory fakes for SellerWatch tests."""
import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

import pytest

from sellerwatch.alerts.models import Alert, AlertKind
from sellerwatch.alerts.repository import AlertRepository, clamp_limit, normalize_marketplace
from sellerwatch.detection.accounts import AccountSource
from sellerwatch.detection.base import DetectionContext
from sellerwatch.detection.models import Marketplace, MonitoredAccount
from sellerwatch.detection.snapshots import Snapshot, SnapshotKind, SnapshotStore
from sellerwatch.notifications.email_provider import EmailMessage, EmailProvider, SendResult

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

# Wednesday 06:00 UTC, a scheduled run time
NOW = datetime(2026, 10, 14, 6, 0, tzinfo=timezone.utc)


# =============================================================================
# Fakes
# =============================================================================

class FakeSnapshotStore(SnapshotStore):
    """Snapshot store over a list. ``fail_kinds`` raise on read."""

    def __init__(self):
        self.snapshots: List[Snapshot] = []
        self.fail_kinds: Set[SnapshotKind] = set()
        self._ids = itertools.count(1)

    def add(
        self,
        kind: SnapshotKind,
        records: list,
        created_at: datetime,
        account_id: str = "acct_a",
        region: str = "NA",
        country: str = "US",
        snapshot_id: Optional[str] = None,
    ) -> Snapshot:
        snapshot = Snapshot(
            id=snapshot_id or f"snap_{next(self._ids)}",
            kind=kind,
            account_id=account_id,
            region=region,
            country=country,
            created_at=created_at,
            records=records,
        )
        self.snapshots.append(snapshot)
        return snapshot

    async def get_recent(self, account_id, kind, region, country, n):
        if kind in self.fail_kinds:
            raise RuntimeError(f"snapshot store unavailable for {kind.value}")
        matching = [
            s for s in self.snapshots
            if s.account_id == account_id
            and s.kind == kind
            and normalize_marketplace(s.region) == normalize_marketplace(region)
            and normalize_marketplace(s.country) == normalize_marketplace(country)
        ]
        matching.sort(key=lambda s: s.created_at, reverse=True)
        return matching[:n]


class FakeAlertRepository(AlertRepository):
    """Alert repository over a list. ``fail_kinds`` raise on create."""

    def __init__(self, now: datetime = NOW):
        self.alerts: List[Alert] = []
        self.fail_kinds: Set[AlertKind] = set()
        self.now = now
        self._ids = itertools.count(1)

    def add(self, alert: Alert) -> Alert:
        """Store synchronously, for route tests."""
        stored = alert.model_copy(update={
            "id": alert.id or f"alert_{next(self._ids)}",
            "created_at": alert.created_at or self.now,
            "updated_at": alert.updated_at or self.now,
        })
        self.alerts.append(stored)
        return stored

    async def create(self, alert: Alert) -> Alert:
        if alert.kind in self.fail_kinds:
            raise RuntimeError("alert store write failed")
        return self.add(alert)

    def _for_marketplace(self, account_id, region, country):
        return [
            a for a in self.alerts
            if a.account_id == account_id
            and normalize_marketplace(a.region) == normalize_marketplace(region)
            and normalize_marketplace(a.country) == normalize_marketplace(country)
        ]

    async def find(self, account_id, region, country, status=None, kind=None, limit=50, skip=0):
        alerts = self._for_marketplace(account_id, region, country)
        if status:
            alerts = [a for a in alerts if a.status == status]
        if kind:
            alerts = [a for a in alerts if a.kind == kind]
        alerts.sort(key=lambda a: a.created_at, reverse=True)
        limit = clamp_limit(limit)
        return alerts[skip:skip + limit], len(alerts)

    async def find_by_id(self, alert_id, account_id):
        for alert in self.alerts:
            if alert.id == alert_id and alert.account_id == account_id:
                return alert
        return None

    async def mark_viewed(self, alert_id, account_id):
        for i, alert in enumerate(self.alerts):
            if alert.id == alert_id and alert.account_id == account_id:
                self.alerts[i] = alert.model_copy(update={"viewed": True, "updated_at": self.now})
                return self.alerts[i]
        return None

    async def latest_for_kind(self, account_id, region, country, kind):
        alerts = [a for a in self._for_marketplace(account_id, region, country) if a.kind == kind]
        return max(alerts, key=lambda a: a.created_at) if alerts else None

    def of_kind(self, kind: AlertKind) -> List[Alert]:
        return [a for a in self.alerts if a.kind == kind]


class FakeAccountSource(AccountSource):
    def __init__(self, accounts: Optional[List[MonitoredAccount]] = None, error: Optional[Exception] = None):
        self.accounts = list(accounts or [])
        self.error = error

    async def list_monitored_accounts(self):
        if self.error:
            raise self.error
        return list(self.accounts)

    async def get_account(self, account_id):
        for account in self.accounts:
            if account.account_id == account_id:
                return account
        return None


class FakeEmailProvider(EmailProvider):
    """Records sent messages. ``success=False`` simulates a rejected send."""

    def __init__(self, success: bool = True, error: Optional[Exception] = None):
        self.success = success
        self.error = error
        self.sent: List[EmailMessage] = []

    def is_configured(self) -> bool:
        return True

    async def _deliver(self, message: EmailMessage) -> Optional[str]:
        self.sent.append(message)
        return f"msg-{len(self.sent)}"

    async def send(self, message: EmailMessage) -> SendResult:
        # ``error`` escapes the provider boundary on purpose
        if self.error:
            raise self.error
        if not self.success:
            self.sent.append(message)
            return SendResult(success=False, error="mailbox unavailable")
        return await super().send(message)


# =============================================================================
# Helpers
# =============================================================================

def make_account(
    account_id: str = "acct_a",
    region: Optional[str] = "NA",
    country: Optional[str] = "US",
    subscribed: Optional[bool] = True,
    email: Optional[str] = "seller@example.com",
) -> MonitoredAccount:
    return MonitoredAccount(
        account_id=account_id,
        email=email,
        first_name="Sam",
        subscribed=subscribed,
        regions=[Marketplace(region=region, country=country)],
    )


def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)


def listing(asin: str, title: str = "Steel Water Bottle", **fields) -> Dict:
    record = {
        "asin": asin,
        "sku": f"SKU-{asin}",
        "product_title": title,
        "product_description": ["Keeps drinks cold for 24 hours"],
        "about_product": ["Leak proof", "BPA free"],
        "product_photos": ["https://img.example.com/1.jpg"],
    }
    record.update(fields)
    return record


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def snapshot_store():
    return FakeSnapshotStore()


@pytest.fixture
def alert_repository():
    return FakeAlertRepository()


@pytest.fixture
def context(snapshot_store, alert_repository):
    return DetectionContext(snapshots=snapshot_store, alerts=alert_repository, now=NOW)


@pytest.fixture
def email_provider():
    return FakeEmailProvider()
