"""
Account Result Aggregator

Runs the detector set for one account marketplace, collects the outcomes and
sends at most one summary notification.

The detectors touch disjoint snapshot kinds and alert kinds, so they run
concurrently and are only joined when the outcomes are collected.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from .base import DetectionContext, Detector
from .detectors import default_detectors
from .models import (
    AccountRunSummary,
    DetectorOutcome,
    Marketplace,
    MonitoredAccount,
    SkipReason,
)

logger = logging.getLogger(__name__)


async def run_account_alerts(
    account: MonitoredAccount,
    marketplace: Marketplace,
    context: DetectionContext,
    notifier=None,
    detectors: Optional[Sequence[Detector]] = None,
) -> AccountRunSummary:
    """
    Run all detectors for ``account`` on ``marketplace``.

    Detector faults never abort the aggregation. A notification is sent iff
    at least one finding was stored and the account has not opted out.
    """
    detectors: List[Detector] = list(detectors) if detectors is not None else default_detectors()
    region, country = marketplace.region, marketplace.country
    summary = AccountRunSummary(account_id=account.account_id, region=region, country=country)

    if not marketplace.is_configured:
        logger.warning(
            f"Account {account.account_id} has no region/country, skipping all detectors"
        )
        summary.skipped_reason = SkipReason.NO_ACCOUNT_DATA.value
        for detector in detectors:
            summary.outcomes[detector.kind] = DetectorOutcome.skip(SkipReason.NO_ACCOUNT_DATA)
        return summary

    results = await asyncio.gather(
        *(d.detect(account.account_id, region, country, context) for d in detectors),
        return_exceptions=True,
    )

    for detector, result in zip(detectors, results):
        if isinstance(result, BaseException):
            logger.error(
                f"Detector {detector.kind.value} raised for account {account.account_id} "
                f"({region}/{country}): {result}"
            )
            result = DetectorOutcome.failed(str(result))
        summary.outcomes[detector.kind] = result

    logger.info(
        f"Alerts for account {account.account_id} ({region}/{country}): "
        f"{summary.total_findings} finding(s), {len(summary.errors)} error(s)"
    )

    if summary.total_findings > 0 and not account.opted_out and notifier is not None:
        try:
            summary.notified = await notifier.notify(account, summary)
        except Exception as e:
            logger.error(f"Alert notification failed for account {account.account_id}: {e}")
            summary.notified = False

    return summary
