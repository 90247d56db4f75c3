"""
API tests for the alerts and alerts-run routes.

Repositories and the scheduler are swapped for in-memory fakes through
dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient

from sellerwatch.alerts.models import Alert
from sellerwatch.alerts.routes import get_repository
from sellerwatch.detection.models import RunState
from sellerwatch.detection.routes import get_scheduler
from sellerwatch.detection.scheduler import AlertsRunScheduler
from sellerwatch.detection.snapshots import SnapshotKind
from sellerwatch.main import app
from sellerwatch.notifications.service import AlertNotifier
from sellerwatch.notifications.templates import AlertsEmailTemplate

from conftest import (
    FakeAccountSource,
    FakeAlertRepository,
    FakeSnapshotStore,
    days_ago,
    make_account,
)


def _alert(asin="B000Y", created_at=None, **overrides):
    fields = dict(
        account_id="acct_a",
        region="NA",
        country="US",
        message="1 product(s) without buy box",
        payload={"kind": "BuyBoxMissing", "products": [{"asin": asin}]},
        created_at=created_at,
    )
    fields.update(overrides)
    return Alert(**fields)


@pytest.fixture
def repository():
    return FakeAlertRepository()


@pytest.fixture
def client(repository):
    app.dependency_overrides[get_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def run_scheduler(repository, email_provider):
    snapshots = FakeSnapshotStore()
    snapshots.add(SnapshotKind.BUY_BOX, [{"asin": "B000Y", "buy_box_percentage": 0}], days_ago(1))
    scheduler = AlertsRunScheduler(
        account_source=FakeAccountSource([make_account()]),
        snapshot_store=snapshots,
        alert_repository=repository,
        notifier=AlertNotifier(AlertsEmailTemplate.load(), email_provider, "https://x"),
        batch_delay_seconds=0,
    )
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    yield scheduler
    app.dependency_overrides.pop(get_scheduler, None)


ALERTS_URL = "/api/accounts/acct_a/alerts"
MARKETPLACE = {"region": "NA", "country": "US"}


class TestListAlerts:
    def test_newest_first_with_total(self, client, repository):
        repository.add(_alert("B0001", created_at=days_ago(2)))
        repository.add(_alert("B0002", created_at=days_ago(1)))
        repository.add(_alert("B0003", region="EU", country="DE"))

        response = client.get(ALERTS_URL, params=MARKETPLACE)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["limit"] == 50
        assert [a["payload"]["products"][0]["asin"] for a in data["alerts"]] == ["B0002", "B0001"]
        assert data["alerts"][0]["kind"] == "BuyBoxMissing"
        assert data["alerts"][0]["finding_count"] == 1

    def test_marketplace_matched_case_insensitively(self, client, repository):
        repository.add(_alert())

        response = client.get(ALERTS_URL, params={"region": "na", "country": "us"})

        assert response.json()["total"] == 1

    def test_limit_clamped(self, client, repository):
        for i in range(3):
            repository.add(_alert(f"B000{i}", created_at=days_ago(i)))

        assert client.get(ALERTS_URL, params={**MARKETPLACE, "limit": 500}).json()["limit"] == 100
        data = client.get(ALERTS_URL, params={**MARKETPLACE, "limit": 0}).json()
        assert data["limit"] == 50
        assert len(data["alerts"]) == 3

    def test_skip_pages(self, client, repository):
        for i in range(3):
            repository.add(_alert(f"B000{i}", created_at=days_ago(i)))

        data = client.get(ALERTS_URL, params={**MARKETPLACE, "limit": 2, "skip": 2}).json()

        assert data["total"] == 3
        assert [a["payload"]["products"][0]["asin"] for a in data["alerts"]] == ["B0002"]

    def test_kind_filter(self, client, repository):
        repository.add(_alert())
        repository.add(_alert(payload={
            "kind": "APlusMissing",
            "products": [{"asin": "B000Z", "message": "A+ content not present (status: Not Available)"}],
        }))

        data = client.get(ALERTS_URL, params={**MARKETPLACE, "kind": "APlusMissing"}).json()

        assert data["total"] == 1
        assert data["alerts"][0]["kind"] == "APlusMissing"

    def test_marketplace_required(self, client):
        assert client.get(ALERTS_URL, params={"region": "NA"}).status_code == 422

    def test_latest(self, client, repository):
        for i in range(3):
            repository.add(_alert(f"B000{i}", created_at=days_ago(i)))

        response = client.get(f"{ALERTS_URL}/latest", params={**MARKETPLACE, "limit": 2})

        assert response.status_code == 200
        assert len(response.json()["alerts"]) == 2


class TestSingleAlert:
    def test_get_and_mark_viewed(self, client, repository):
        stored = repository.add(_alert())

        response = client.get(f"{ALERTS_URL}/{stored.id}")
        assert response.status_code == 200
        assert response.json()["viewed"] is False

        response = client.patch(f"{ALERTS_URL}/{stored.id}/viewed")
        assert response.status_code == 200
        assert response.json()["viewed"] is True

    def test_other_accounts_alert_not_found(self, client, repository):
        stored = repository.add(_alert(account_id="acct_b"))

        assert client.get(f"{ALERTS_URL}/{stored.id}").status_code == 404
        assert client.patch(f"{ALERTS_URL}/{stored.id}/viewed").status_code == 404


class TestAlertsRunRoutes:
    def test_manual_run(self, client, repository, email_provider, run_scheduler):
        response = client.post("/api/alerts/run")

        assert response.status_code == 200
        assert response.json()["processed_accounts"] == 1
        assert response.json()["failed_accounts"] == 0
        assert len(repository.alerts) == 1
        assert len(email_provider.sent) == 1

    def test_run_refused_while_in_progress(self, client, repository, run_scheduler):
        run_scheduler._state = RunState.BATCHING

        response = client.post("/api/alerts/run")

        assert response.status_code == 409
        assert repository.alerts == []

    def test_run_single_account(self, client, run_scheduler):
        response = client.post("/api/alerts/run/acct_a")

        assert response.status_code == 200
        data = response.json()
        assert data["account_id"] == "acct_a"
        assert data["results"][0]["outcomes"]["BuyBoxMissing"]["count"] == 1

    def test_run_unknown_account(self, client, run_scheduler):
        assert client.post("/api/alerts/run/acct_missing").status_code == 404

    def test_status(self, client, run_scheduler):
        client.post("/api/alerts/run")

        data = client.get("/api/alerts/status").json()

        assert data["state"] == "completed"
        assert data["running"] is False
        assert data["last_run"]["processed_accounts"] == 1
