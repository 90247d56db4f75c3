"""
Inventory Detectors

- LowInventory: latest ``restock_inventory`` report, only if it was pulled
  today (UTC). Records: ``asin``, ``merchant_sku``, ``available``,
  ``recommended_replenishment_qty``, ``alert``.
- StrandedInventory: latest ``stranded_inventory`` report, if pulled within
  the last 3 days. Rows may be nested lists. Records: ``asin``, ``sku``,
  ``status_primary``, ``stranded_reason``.
- InboundShipment: latest ``inbound_noncompliance`` report, same freshness.
  Records: ``asin``, ``sku``, ``issue_reported_date``,
  ``shipment_creation_date``, ``problem_type``.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from sellerwatch.alerts.models import (
    AlertKind,
    InboundShipmentProduct,
    LowInventoryProduct,
    StrandedProduct,
)
from ..base import DetectionContext, Detector
from ..models import DetectorOutcome, SkipReason
from ..snapshots import Snapshot, SnapshotKind

logger = logging.getLogger(__name__)

LOW_STOCK_REPLENISHMENT_QTY_THRESHOLD = 30
REPORT_FRESHNESS_DAYS = 3
OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _qty(value: Any) -> int:
    try:
        return int(float(_text(value).replace(",", "")))
    except (TypeError, ValueError, OverflowError):
        return 0


def _stock_flag(record: Dict[str, Any]) -> str:
    return _text(record.get("alert")).lower()


# =============================================================================
# Pure rules
# =============================================================================

def out_of_stock_asins(records: Optional[Iterable[Dict[str, Any]]]) -> Set[str]:
    return {
        _text(r.get("asin")) for r in records or []
        if _text(r.get("asin")) and _stock_flag(r) == OUT_OF_STOCK
    }


def find_low_inventory(
    records: List[Dict[str, Any]],
    previous_records: Optional[List[Dict[str, Any]]] = None,
    threshold: int = LOW_STOCK_REPLENISHMENT_QTY_THRESHOLD,
) -> List[LowInventoryProduct]:
    """
    Out of stock and low stock products.

    An out-of-stock flag takes precedence over the replenishment quantity.
    Otherwise a recommended replenishment above ``threshold`` is low stock.
    Products already out of stock in the previous report are not re-flagged.
    """
    already_out = out_of_stock_asins(previous_records)
    products = []
    for record in records:
        asin = _text(record.get("asin"))
        if not asin:
            continue
        flag = _stock_flag(record)
        qty = _qty(record.get("recommended_replenishment_qty"))
        available = _text(record.get("available")) or "0"
        sku = _text(record.get("merchant_sku") or record.get("sku")) or None

        if flag == OUT_OF_STOCK:
            if asin in already_out:
                continue
            products.append(LowInventoryProduct(
                asin=asin,
                sku=sku,
                available=available,
                recommended_replenishment_qty=str(qty),
                alert=OUT_OF_STOCK,
                message=f"Out of stock. {available} units available. Replenish {qty} units.",
            ))
        elif qty > threshold:
            products.append(LowInventoryProduct(
                asin=asin,
                sku=sku,
                available=available,
                recommended_replenishment_qty=str(qty),
                alert=flag or LOW_STOCK,
                message=(
                    f"Low stock. {available} units available. "
                    f"Amazon recommends replenishing {qty} units."
                ),
            ))
    return products


def flatten_stranded_rows(rows: Iterable[Any]) -> List[Dict[str, Any]]:
    """Flatten one level of nested row lists and drop rows without an ASIN."""
    flat = []
    for row in rows or []:
        if isinstance(row, list):
            flat.extend(row)
        else:
            flat.append(row)
    return [r for r in flat if isinstance(r, dict) and _text(r.get("asin"))]


def find_stranded(rows: Iterable[Any]) -> List[StrandedProduct]:
    products = []
    for row in flatten_stranded_rows(rows):
        status = _text(row.get("status_primary"))
        reason = _text(row.get("stranded_reason"))
        products.append(StrandedProduct(
            asin=_text(row["asin"]),
            sku=_text(row.get("sku")) or None,
            status_primary=status or None,
            stranded_reason=reason or None,
            message=" - ".join(p for p in (status, reason) if p) or "Stranded inventory",
        ))
    return products


def find_inbound_issues(rows: Iterable[Dict[str, Any]]) -> List[InboundShipmentProduct]:
    products = []
    for row in rows or []:
        asin = _text(row.get("asin"))
        if not asin:
            continue
        problem = _text(row.get("problem_type"))
        products.append(InboundShipmentProduct(
            asin=asin,
            sku=_text(row.get("sku")) or None,
            issue_reported_date=_text(row.get("issue_reported_date")) or None,
            shipment_creation_date=_text(row.get("shipment_creation_date")) or None,
            problem_type=problem or None,
            message=f"Inbound issue: {problem or 'Unknown'}",
        ))
    return products


def _report_metadata(snapshot: Snapshot) -> Dict[str, Any]:
    return {
        "snapshot_id": snapshot.id,
        "snapshot_created_at": snapshot.created_at.isoformat(),
    }


# =============================================================================
# Detectors
# =============================================================================

class LowInventoryDetector(Detector):
    kind = AlertKind.LOW_INVENTORY

    async def _detect(self, account_id, region, country, context: DetectionContext) -> DetectorOutcome:
        recent = await context.snapshots.get_recent(
            account_id, SnapshotKind.RESTOCK_INVENTORY, region, country, 2
        )
        if not recent:
            return DetectorOutcome.skip(SkipReason.NO_DATA)

        latest = recent[0]
        if not context.is_created_today(latest):
            logger.info(
                f"Restock report for account {account_id} ({region}/{country}) "
                f"is from {latest.created_at.date()}, skipping"
            )
            return DetectorOutcome.skip(SkipReason.STALE_DATA)
        if not latest.records:
            return DetectorOutcome()
        if await self._already_reported(account_id, region, country, context, latest):
            return DetectorOutcome.skip(SkipReason.ALREADY_REPORTED)

        previous = recent[1].records if len(recent) > 1 else None
        products = find_low_inventory(latest.records, previous)
        if not products:
            return DetectorOutcome()

        return await self._store(
            account_id, region, country, context,
            payload={"products": products},
            message=f"{len(products)} product(s) with low or no inventory",
            metadata=_report_metadata(latest),
        )


class StrandedInventoryDetector(Detector):
    kind = AlertKind.STRANDED_INVENTORY

    async def _detect(self, account_id, region, country, context: DetectionContext) -> DetectorOutcome:
        latest = await context.snapshots.get_latest(
            account_id, SnapshotKind.STRANDED_INVENTORY, region, country
        )
        if latest is None:
            return DetectorOutcome.skip(SkipReason.NO_DATA)
        if not context.is_within_days(latest, REPORT_FRESHNESS_DAYS):
            return DetectorOutcome.skip(SkipReason.STALE_DATA)
        if not latest.records:
            return DetectorOutcome()
        if await self._already_reported(account_id, region, country, context, latest):
            return DetectorOutcome.skip(SkipReason.ALREADY_REPORTED)

        products = find_stranded(latest.records)
        if not products:
            return DetectorOutcome()

        return await self._store(
            account_id, region, country, context,
            payload={"products": products},
            message=f"{len(products)} stranded inventory item(s)",
            metadata=_report_metadata(latest),
        )


class InboundShipmentDetector(Detector):
    kind = AlertKind.INBOUND_SHIPMENT

    async def _detect(self, account_id, region, country, context: DetectionContext) -> DetectorOutcome:
        latest = await context.snapshots.get_latest(
            account_id, SnapshotKind.INBOUND_NONCOMPLIANCE, region, country
        )
        if latest is None:
            return DetectorOutcome.skip(SkipReason.NO_DATA)
        if not context.is_within_days(latest, REPORT_FRESHNESS_DAYS):
            return DetectorOutcome.skip(SkipReason.STALE_DATA)
        if not latest.records:
            return DetectorOutcome()
        if await self._already_reported(account_id, region, country, context, latest):
            return DetectorOutcome.skip(SkipReason.ALREADY_REPORTED)

        products = find_inbound_issues(latest.records)
        if not products:
            return DetectorOutcome()

        return await self._store(
            account_id, region, country, context,
            payload={"products": products},
            message=f"{len(products)} inbound shipment issue(s)",
            metadata=_report_metadata(latest),
        )
