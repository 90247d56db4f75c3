"""
Buy Box Detector

Flags ASINs with a 0% buy box share in the latest ``buy_box`` snapshot.
Records carry ``asin`` (or ``child_asin``), ``sku`` and ``buy_box_percentage``.
"""

from typing import Any, Dict, List, Optional

from sellerwatch.alerts.models import AlertKind, ProductFinding
from ..base import DetectionContext, Detector
from ..models import DetectorOutcome, SkipReason
from ..snapshots import SnapshotKind


def parse_share(value: Any) -> float:
    """Buy box share as a number. Null, absent and non-numeric values are 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        share = float(str(value).strip().rstrip("%"))
    except ValueError:
        return 0.0
    return 0.0 if share != share else share


def _asin(record: Dict[str, Any]) -> str:
    return str(record.get("child_asin") or record.get("asin") or "").strip()


def _known_shares(records: Optional[List[Dict[str, Any]]]) -> Dict[str, float]:
    """Shares the snapshot actually reported (nulls left out)."""
    shares = {}
    for record in records or []:
        asin = _asin(record)
        if asin and record.get("buy_box_percentage") is not None:
            shares[asin] = parse_share(record["buy_box_percentage"])
    return shares


def find_missing_buy_box(
    records: List[Dict[str, Any]],
    previous_records: Optional[List[Dict[str, Any]]] = None,
) -> List[ProductFinding]:
    """
    Products without the buy box.

    An ASIN the previous snapshot already reported at 0% was flagged then and
    is not flagged again.
    """
    previous = _known_shares(previous_records)
    products = []
    for record in records:
        if parse_share(record.get("buy_box_percentage")) > 0:
            continue
        asin = _asin(record)
        if not asin or previous.get(asin) == 0:
            continue
        products.append(ProductFinding(
            asin=asin,
            sku=record.get("sku"),
            title=record.get("title"),
            message="Buy box not present (0% buy box share)",
        ))
    return products


class BuyBoxMissingDetector(Detector):
    kind = AlertKind.BUY_BOX_MISSING

    async def _detect(self, account_id, region, country, context: DetectionContext) -> DetectorOutcome:
        recent = await context.snapshots.get_recent(
            account_id, SnapshotKind.BUY_BOX, region, country, 2
        )
        if not recent:
            return DetectorOutcome.skip(SkipReason.NO_DATA)

        latest = recent[0]
        previous = recent[1] if len(recent) > 1 else None
        if not latest.records:
            return DetectorOutcome()
        if await self._already_reported(account_id, region, country, context, latest):
            return DetectorOutcome.skip(SkipReason.ALREADY_REPORTED)

        products = find_missing_buy_box(latest.records, previous.records if previous else None)
        if not products:
            return DetectorOutcome()

        return await self._store(
            account_id, region, country, context,
            payload={"products": products},
            message=f"{len(products)} product(s) without buy box",
            metadata={
                "snapshot_id": latest.id,
                "snapshot_created_at": latest.created_at.isoformat(),
                "previous_snapshot_id": previous.id if previous else None,
            },
        )
