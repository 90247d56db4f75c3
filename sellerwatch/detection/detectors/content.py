"""
Listing Content Detectors

ProductContentChange diffs the two most recent ``product_listings`` snapshots.
NegativeReviews reads star ratings from the latest one. APlusMissing reads the
latest ``aplus_content`` snapshot.

Listing records carry ``asin``, ``sku``, ``product_title``,
``product_description``, ``about_product`` (bullet points), ``product_photos``,
``product_star_ratings`` and ``product_num_ratings``.
"""

import math
import re
from typing import Any, Dict, Iterable, List, Optional

from sellerwatch.alerts.models import (
    AlertKind,
    ChangeType,
    ContentChangeProduct,
    NegativeReviewProduct,
    ProductFinding,
)
from ..base import DetectionContext, Detector
from ..models import DetectorOutcome, SkipReason
from ..snapshots import Snapshot, SnapshotKind

NEGATIVE_REVIEW_RATING_THRESHOLD = 4.0
APLUS_PRESENT_STATUSES = ("APPROVED", "PUBLISHED", "true")

_WHITESPACE = re.compile(r"\s+")
_NEWLINE = re.compile(r"\r?\n")

_CHANGE_LABELS = {
    ChangeType.TITLE: "title",
    ChangeType.DESCRIPTION: "description",
    ChangeType.BULLET_POINTS: "bullet points",
    ChangeType.IMAGES: "images",
}


# =============================================================================
# Normalization helpers
# =============================================================================

def normalize_text(value: Any) -> str:
    """Collapse runs of whitespace to one space and trim."""
    if value is None:
        return ""
    return _WHITESPACE.sub(" ", str(value)).strip()


def normalize_list(value: Any) -> List[str]:
    """
    Coerce a field to a list of trimmed strings.

    Lists keep their order and length. A plain string is split on newlines so
    "A\\nB" compares equal to ["A", "B"].
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return ["" if item is None else str(item).strip() for item in value]
    text = str(value).strip()
    if not text:
        return []
    return [part.strip() for part in _NEWLINE.split(text)]


def normalize_asin(value: Any) -> str:
    return _clean_asin(value).upper()


def _clean_asin(value: Any) -> str:
    # Lists and numbers are not ASINs
    return value.strip() if isinstance(value, str) else ""


def _index_by_asin(records: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    indexed = {}
    for record in records:
        key = normalize_asin(record.get("asin"))
        if key:
            indexed[key] = record
    return indexed


# =============================================================================
# Pure rules
# =============================================================================

def content_change_types(older: Dict[str, Any], newer: Dict[str, Any]) -> List[ChangeType]:
    """Fields that differ between two listing records, in fixed order."""
    changes = []
    if normalize_text(older.get("product_title")) != normalize_text(newer.get("product_title")):
        changes.append(ChangeType.TITLE)
    if normalize_list(older.get("product_description")) != normalize_list(newer.get("product_description")):
        changes.append(ChangeType.DESCRIPTION)
    if normalize_list(older.get("about_product")) != normalize_list(newer.get("about_product")):
        changes.append(ChangeType.BULLET_POINTS)
    if normalize_list(older.get("product_photos")) != normalize_list(newer.get("product_photos")):
        changes.append(ChangeType.IMAGES)
    return changes


def find_content_changes(
    older: List[Dict[str, Any]], newer: List[Dict[str, Any]]
) -> List[ContentChangeProduct]:
    """Products present in both snapshots whose listing content changed."""
    older_by_asin = _index_by_asin(older)
    products = []
    for key, newer_record in _index_by_asin(newer).items():
        older_record = older_by_asin.get(key)
        if older_record is None:
            continue
        changes = content_change_types(older_record, newer_record)
        if not changes:
            continue
        labels = ", ".join(_CHANGE_LABELS[c] for c in changes)
        products.append(ContentChangeProduct(
            asin=_clean_asin(newer_record.get("asin")),
            sku=newer_record.get("sku"),
            title=normalize_text(newer_record.get("product_title")) or None,
            change_types=changes,
            message=f"Content change(s) detected: {labels}",
        ))
    return products


def parse_rating(value: Any) -> Optional[float]:
    """Parse a star rating; None when non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        rating = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(rating):
        return None
    return rating


def _parse_int(value: Any) -> int:
    try:
        return int(float(str(value).replace(",", "").strip()))
    except (TypeError, ValueError, OverflowError):
        return 0


def find_negative_reviews(
    records: List[Dict[str, Any]], threshold: float = NEGATIVE_REVIEW_RATING_THRESHOLD
) -> List[NegativeReviewProduct]:
    """Products rated strictly below ``threshold``. Unparseable ratings are excluded."""
    products = []
    for record in records:
        asin = _clean_asin(record.get("asin"))
        rating = parse_rating(record.get("product_star_ratings"))
        if not asin or rating is None or rating >= threshold:
            continue
        products.append(NegativeReviewProduct(
            asin=asin,
            sku=record.get("sku"),
            title=normalize_text(record.get("product_title")) or None,
            rating=rating,
            review_count=_parse_int(record.get("product_num_ratings")),
            message=f"Star rating {rating:g} is below {threshold:g}",
        ))
    return products


def has_aplus_content(status: Any) -> bool:
    return status is True or status in APLUS_PRESENT_STATUSES


def find_missing_aplus(records: List[Dict[str, Any]]) -> List[ProductFinding]:
    """Products whose A+ status is not a present status. Missing status counts as missing."""
    products = []
    for record in records:
        asin = _clean_asin(record.get("asin")) or _clean_asin(record.get("asins"))
        if not asin:
            continue
        status = record.get("status")
        if has_aplus_content(status):
            continue
        products.append(ProductFinding(
            asin=asin,
            sku=record.get("sku"),
            message=f"A+ content not present (status: {status or 'Not Available'})",
        ))
    return products


def _snapshot_metadata(*snapshots: Snapshot) -> Dict[str, Any]:
    return {
        "snapshot_ids": [s.id for s in snapshots],
        "snapshot_created_at": [s.created_at.isoformat() for s in snapshots],
    }


# =============================================================================
# Detectors
# =============================================================================

class ProductContentChangeDetector(Detector):
    kind = AlertKind.PRODUCT_CONTENT_CHANGE

    async def _detect(self, account_id, region, country, context: DetectionContext) -> DetectorOutcome:
        recent = await context.snapshots.get_recent(
            account_id, SnapshotKind.PRODUCT_LISTINGS, region, country, 2
        )
        if not recent:
            return DetectorOutcome.skip(SkipReason.NO_DATA)
        if len(recent) < 2:
            return DetectorOutcome.skip(SkipReason.INSUFFICIENT_HISTORY)

        newer, older = recent[0], recent[1]
        if newer.id == older.id:
            return DetectorOutcome()
        if await self._already_reported(account_id, region, country, context, newer):
            return DetectorOutcome.skip(SkipReason.ALREADY_REPORTED)

        products = find_content_changes(older.records, newer.records)
        if not products:
            return DetectorOutcome()

        return await self._store(
            account_id, region, country, context,
            payload={"products": products},
            message=f"{len(products)} product(s) with content changes",
            metadata=_snapshot_metadata(older, newer),
        )


class NegativeReviewsDetector(Detector):
    kind = AlertKind.NEGATIVE_REVIEWS

    async def _detect(self, account_id, region, country, context: DetectionContext) -> DetectorOutcome:
        latest = await context.snapshots.get_latest(
            account_id, SnapshotKind.PRODUCT_LISTINGS, region, country
        )
        if latest is None:
            return DetectorOutcome.skip(SkipReason.NO_DATA)
        if not latest.records:
            return DetectorOutcome()
        if await self._already_reported(account_id, region, country, context, latest):
            return DetectorOutcome.skip(SkipReason.ALREADY_REPORTED)

        products = find_negative_reviews(latest.records)
        if not products:
            return DetectorOutcome()

        metadata = _snapshot_metadata(latest)
        metadata["threshold"] = NEGATIVE_REVIEW_RATING_THRESHOLD
        return await self._store(
            account_id, region, country, context,
            payload={"products": products},
            message=(
                f"{len(products)} product(s) with star rating below "
                f"{NEGATIVE_REVIEW_RATING_THRESHOLD:g}"
            ),
            metadata=metadata,
        )


class APlusMissingDetector(Detector):
    kind = AlertKind.APLUS_MISSING

    async def _detect(self, account_id, region, country, context: DetectionContext) -> DetectorOutcome:
        latest = await context.snapshots.get_latest(
            account_id, SnapshotKind.APLUS_CONTENT, region, country
        )
        if latest is None:
            return DetectorOutcome.skip(SkipReason.NO_DATA)
        if not latest.records:
            return DetectorOutcome()
        if await self._already_reported(account_id, region, country, context, latest):
            return DetectorOutcome.skip(SkipReason.ALREADY_REPORTED)

        products = find_missing_aplus(latest.records)
        if not products:
            return DetectorOutcome()

        return await self._store(
            account_id, region, country, context,
            payload={"products": products},
            message=f"{len(products)} product(s) without A+ content",
            metadata=_snapshot_metadata(latest),
        )
