"""
Sales Drop Detector

Compares consecutive days of the latest ``economics`` snapshot inside a fixed
8-day window ending yesterday (UTC). Day records carry ``date`` (YYYY-MM-DD),
``units_ordered`` and ``sales`` = ``{"amount", "currency_code"}``.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List

from sellerwatch.alerts.models import AlertKind, DateRange, SalesDropDay
from ..base import DetectionContext, Detector, as_utc
from ..models import DetectorOutcome, SkipReason
from ..snapshots import SnapshotKind

UNITS_DROP_THRESHOLD_PCT = 40.0
REVENUE_DROP_THRESHOLD_PCT = 40.0
WINDOW_DAYS = 8
DEFAULT_CURRENCY = "USD"


def sales_window(now: datetime) -> DateRange:
    """Yesterday and the 7 days before it, as YYYY-MM-DD strings."""
    end = as_utc(now).date() - timedelta(days=1)
    start = end - timedelta(days=WINDOW_DAYS - 1)
    return DateRange(start_date=start.isoformat(), end_date=end.isoformat())


def _number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if number != number else number


def _sales(day: Dict[str, Any]) -> Dict[str, Any]:
    sales = day.get("sales")
    return sales if isinstance(sales, dict) else {}


def days_in_window(days: List[Dict[str, Any]], window: DateRange) -> List[Dict[str, Any]]:
    """Day records inside ``window``, sorted ascending by date."""
    selected = [
        d for d in days
        if d.get("date") and window.start_date <= str(d["date"])[:10] <= window.end_date
    ]
    return sorted(selected, key=lambda d: str(d["date"]))


def drop_pct(previous: float, current: float):
    """Percentage drop from ``previous`` to ``current``; None unless previous > 0."""
    if previous <= 0:
        return None
    return (previous - current) / previous * 100


def find_sales_drops(
    days: List[Dict[str, Any]],
    units_threshold: float = UNITS_DROP_THRESHOLD_PCT,
    revenue_threshold: float = REVENUE_DROP_THRESHOLD_PCT,
) -> List[SalesDropDay]:
    """
    Day-over-day drops at or above either threshold.

    A side with a zero previous value gives no verdict; the day can still be
    flagged by the other side.
    """
    ordered = sorted(days, key=lambda d: str(d.get("date") or ""))
    drops = []
    for prev, curr in zip(ordered, ordered[1:]):
        prev_units = _number(prev.get("units_ordered"))
        curr_units = _number(curr.get("units_ordered"))
        prev_revenue = _number(_sales(prev).get("amount"))
        curr_revenue = _number(_sales(curr).get("amount"))

        units_pct = drop_pct(prev_units, curr_units)
        revenue_pct = drop_pct(prev_revenue, curr_revenue)
        by_units = units_pct is not None and units_pct >= units_threshold
        by_revenue = revenue_pct is not None and revenue_pct >= revenue_threshold
        if not (by_units or by_revenue):
            continue

        drops.append(SalesDropDay(
            date=str(curr["date"])[:10],
            previous_date=str(prev["date"])[:10],
            units_ordered_drop_pct=units_pct,
            revenue_drop_pct=revenue_pct,
            previous_units=prev_units,
            current_units=curr_units,
            previous_revenue=prev_revenue,
            current_revenue=curr_revenue,
            currency_code=(
                _sales(curr).get("currency_code")
                or _sales(prev).get("currency_code")
                or DEFAULT_CURRENCY
            ),
            flagged_by_units=by_units,
            flagged_by_revenue=by_revenue,
        ))
    return drops


class SalesDropDetector(Detector):
    kind = AlertKind.SALES_DROP

    async def _detect(self, account_id, region, country, context: DetectionContext) -> DetectorOutcome:
        latest = await context.snapshots.get_latest(
            account_id, SnapshotKind.ECONOMICS, region, country
        )
        if latest is None:
            return DetectorOutcome.skip(SkipReason.NO_DATA)

        window = sales_window(context.now)
        days = days_in_window(latest.records, window)
        if len(days) < 2:
            return DetectorOutcome.skip(SkipReason.INSUFFICIENT_HISTORY)
        if await self._already_reported(account_id, region, country, context, latest):
            return DetectorOutcome.skip(SkipReason.ALREADY_REPORTED)

        drops = find_sales_drops(days)
        if not drops:
            return DetectorOutcome()

        return await self._store(
            account_id, region, country, context,
            payload={"date_range": window, "marketplace": country, "drops": drops},
            message=(
                f"Sales drop of {UNITS_DROP_THRESHOLD_PCT:g}% or more on "
                f"{len(drops)} day(s) between {window.start_date} and {window.end_date}"
            ),
            metadata={
                "snapshot_id": latest.id,
                "snapshot_created_at": latest.created_at.isoformat(),
                "dates": [d.date for d in drops],
            },
        )
