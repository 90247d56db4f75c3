"""
Tests for the account result aggregator.

Covers detector isolation, the missing-marketplace short circuit and the
notification gate.
"""

import pytest
from unittest.mock import AsyncMock

from sellerwatch.alerts.models import AlertKind
from sellerwatch.detection.aggregator import run_account_alerts
from sellerwatch.detection.base import Detector
from sellerwatch.detection.detectors import DETECTOR_CLASSES
from sellerwatch.detection.models import DetectorOutcome, Marketplace, SkipReason
from sellerwatch.detection.snapshots import SnapshotKind
from sellerwatch.notifications.service import AlertNotifier
from sellerwatch.notifications.templates import AlertsEmailTemplate

from conftest import FakeEmailProvider, days_ago, listing, make_account


class ExplodingDetector(Detector):
    """Raises past its own boundary, to exercise the aggregator backstop."""
    kind = AlertKind.CONVERSION_RATES

    async def detect(self, account_id, region, country, context):
        raise RuntimeError("boom")

    async def _detect(self, account_id, region, country, context):
        return DetectorOutcome()


@pytest.fixture
def notifier():
    notifier = AsyncMock()
    notifier.notify.return_value = True
    return notifier


def _seed_buy_box(snapshot_store, asin="B000Y"):
    snapshot_store.add(SnapshotKind.BUY_BOX, [{"asin": asin, "buy_box_percentage": 0}], days_ago(1))


class TestRunAccountAlerts:
    """Tests for run_account_alerts."""

    @pytest.mark.asyncio
    async def test_every_detector_reports_an_outcome(self, context, notifier):
        account = make_account()

        summary = await run_account_alerts(account, account.regions[0], context, notifier)

        assert set(summary.outcomes) == {cls.kind for cls in DETECTOR_CLASSES}
        assert len(summary.outcomes) == 8
        assert summary.total_findings == 0
        assert summary.success
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_detector_does_not_affect_others(self, snapshot_store, context, notifier):
        _seed_buy_box(snapshot_store)
        snapshot_store.fail_kinds.add(SnapshotKind.PRODUCT_LISTINGS)
        account = make_account()

        summary = await run_account_alerts(account, account.regions[0], context, notifier)

        assert summary.outcomes[AlertKind.PRODUCT_CONTENT_CHANGE].has_error
        assert summary.outcomes[AlertKind.NEGATIVE_REVIEWS].has_error
        assert summary.outcomes[AlertKind.BUY_BOX_MISSING].count == 1
        assert summary.success
        notifier.notify.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_raising_detector_converted_to_error(self, context):
        account = make_account()

        summary = await run_account_alerts(
            account, account.regions[0], context, detectors=[ExplodingDetector()]
        )

        outcome = summary.outcomes[AlertKind.CONVERSION_RATES]
        assert outcome.error == "boom"
        assert not summary.success

    @pytest.mark.asyncio
    async def test_missing_region_skips_everything(self, snapshot_store, alert_repository, context, notifier):
        _seed_buy_box(snapshot_store)
        account = make_account(region=None)

        summary = await run_account_alerts(account, Marketplace(region=None, country="US"), context, notifier)

        assert len(summary.outcomes) == 8
        assert all(
            o.skipped_reason == SkipReason.NO_ACCOUNT_DATA.value for o in summary.outcomes.values()
        )
        assert alert_repository.alerts == []
        notifier.notify.assert_not_called()


class TestNotificationGate:
    """Notify iff findings were stored and the account has not opted out."""

    @pytest.mark.asyncio
    async def test_unsubscribed_account_not_notified(self, snapshot_store, context, notifier):
        _seed_buy_box(snapshot_store)
        account = make_account(subscribed=False)

        summary = await run_account_alerts(account, account.regions[0], context, notifier)

        assert summary.total_findings == 1
        assert not summary.notified
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_preference_counts_as_subscribed(self, snapshot_store, context, notifier):
        _seed_buy_box(snapshot_store)
        account = make_account(subscribed=None)

        summary = await run_account_alerts(account, account.regions[0], context, notifier)

        assert summary.notified
        notifier.notify.assert_awaited_once_with(account, summary)

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_abort(self, snapshot_store, context):
        _seed_buy_box(snapshot_store)
        account = make_account()
        notifier = AsyncMock()
        notifier.notify.side_effect = RuntimeError("smtp down")

        summary = await run_account_alerts(account, account.regions[0], context, notifier)

        assert summary.total_findings == 1
        assert not summary.notified


class TestEndToEnd:
    """Account A on NA/US with a title change and a lost buy box."""

    @pytest.mark.asyncio
    async def test_two_alerts_one_email(self, snapshot_store, alert_repository, context):
        snapshot_store.add(SnapshotKind.PRODUCT_LISTINGS, [listing("B000X", "Bottle")], days_ago(3))
        snapshot_store.add(SnapshotKind.PRODUCT_LISTINGS, [listing("B000X", "Bottle 1L")], days_ago(1))
        snapshot_store.add(SnapshotKind.BUY_BOX, [{"asin": "B000Y", "buy_box_percentage": 0}], days_ago(1))

        provider = FakeEmailProvider()
        notifier = AlertNotifier(
            template=AlertsEmailTemplate.load(),
            email_provider=provider,
            dashboard_url="https://app.sellerwatch.app/alerts",
        )
        account = make_account()

        summary = await run_account_alerts(account, Marketplace("NA", "US"), context, notifier)

        assert len(alert_repository.alerts) == 2
        content = alert_repository.of_kind(AlertKind.PRODUCT_CONTENT_CHANGE)
        buy_box = alert_repository.of_kind(AlertKind.BUY_BOX_MISSING)
        assert len(content) == 1 and content[0].finding_count == 1
        assert len(buy_box) == 1 and buy_box[0].finding_count == 1

        assert summary.counts[AlertKind.PRODUCT_CONTENT_CHANGE] == 1
        assert summary.counts[AlertKind.BUY_BOX_MISSING] == 1
        assert summary.notified
        assert len(provider.sent) == 1
        assert "1 product content change, 1 buybox missing alert" in provider.sent[0].subject
