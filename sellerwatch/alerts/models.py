"""
Alert Models

One envelope type carrying the fields common to every alert, and a
``kind``-indexed payload union holding the kind-specific body.

Payload lists (products, drops, day entries) are never empty: a detector that
finds nothing must not build an Alert, and constructing one with an empty list
raises a ValidationError.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class AlertKind(str, Enum):
    """Closed set of alert kinds."""
    PRODUCT_CONTENT_CHANGE = "ProductContentChange"
    BUY_BOX_MISSING = "BuyBoxMissing"
    NEGATIVE_REVIEWS = "NegativeReviews"
    APLUS_MISSING = "APlusMissing"
    SALES_DROP = "SalesDrop"
    CONVERSION_RATES = "ConversionRates"
    LOW_INVENTORY = "LowInventory"
    STRANDED_INVENTORY = "StrandedInventory"
    INBOUND_SHIPMENT = "InboundShipment"


class AlertStatus(str, Enum):
    """Status of an alert. Only changed by user actions."""
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


class ChangeType(str, Enum):
    """Listing fields compared by the content change detector."""
    TITLE = "title"
    DESCRIPTION = "description"
    BULLET_POINTS = "bullet_points"
    IMAGES = "images"


# =============================================================================
# Per-product findings
# =============================================================================

class ProductFinding(BaseModel):
    """A flagged product."""
    asin: str = Field(min_length=1)
    sku: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None


class ContentChangeProduct(ProductFinding):
    change_types: List[ChangeType] = Field(default_factory=list)


class NegativeReviewProduct(ProductFinding):
    rating: Optional[float] = None
    review_count: Optional[int] = None


class LowInventoryProduct(ProductFinding):
    available: Optional[str] = None
    recommended_replenishment_qty: Optional[str] = None
    alert: Optional[str] = None


class StrandedProduct(ProductFinding):
    status_primary: Optional[str] = None
    stranded_reason: Optional[str] = None


class InboundShipmentProduct(ProductFinding):
    issue_reported_date: Optional[str] = None
    shipment_creation_date: Optional[str] = None
    problem_type: Optional[str] = None


# =============================================================================
# Day-level findings
# =============================================================================

class DateRange(BaseModel):
    """Inclusive YYYY-MM-DD range."""
    start_date: str
    end_date: str


class SalesDropDay(BaseModel):
    date: str
    previous_date: str
    units_ordered_drop_pct: Optional[float] = None
    revenue_drop_pct: Optional[float] = None
    previous_units: float
    current_units: float
    previous_revenue: float
    current_revenue: float
    currency_code: str = "USD"
    flagged_by_units: bool = False
    flagged_by_revenue: bool = False


class ConversionRateDay(BaseModel):
    date: str
    sessions: int = 0
    conversion_rate: float = 0.0
    page_views: Optional[int] = None
    units_ordered: Optional[int] = None


# =============================================================================
# Payload variants
# =============================================================================

class _ProductPayload(BaseModel):
    @property
    def finding_count(self) -> int:
        return len(self.products)


class ProductContentChangePayload(_ProductPayload):
    kind: Literal["ProductContentChange"] = "ProductContentChange"
    products: List[ContentChangeProduct] = Field(min_length=1)


class BuyBoxMissingPayload(_ProductPayload):
    kind: Literal["BuyBoxMissing"] = "BuyBoxMissing"
    products: List[ProductFinding] = Field(min_length=1)


class NegativeReviewsPayload(_ProductPayload):
    kind: Literal["NegativeReviews"] = "NegativeReviews"
    products: List[NegativeReviewProduct] = Field(min_length=1)


class APlusMissingPayload(_ProductPayload):
    kind: Literal["APlusMissing"] = "APlusMissing"
    products: List[ProductFinding] = Field(min_length=1)


class LowInventoryPayload(_ProductPayload):
    kind: Literal["LowInventory"] = "LowInventory"
    products: List[LowInventoryProduct] = Field(min_length=1)


class StrandedInventoryPayload(_ProductPayload):
    kind: Literal["StrandedInventory"] = "StrandedInventory"
    products: List[StrandedProduct] = Field(min_length=1)


class InboundShipmentPayload(_ProductPayload):
    kind: Literal["InboundShipment"] = "InboundShipment"
    products: List[InboundShipmentProduct] = Field(min_length=1)


class SalesDropPayload(BaseModel):
    kind: Literal["SalesDrop"] = "SalesDrop"
    date_range: DateRange
    marketplace: str
    drops: List[SalesDropDay] = Field(min_length=1)

    @property
    def finding_count(self) -> int:
        return len(self.drops)


class ConversionRatesPayload(BaseModel):
    kind: Literal["ConversionRates"] = "ConversionRates"
    date_range: DateRange
    marketplace: str
    conversion_rates: List[ConversionRateDay] = Field(min_length=1)

    @property
    def finding_count(self) -> int:
        return len(self.conversion_rates)


AlertPayload = Annotated[
    Union[
        ProductContentChangePayload,
        BuyBoxMissingPayload,
        NegativeReviewsPayload,
        APlusMissingPayload,
        SalesDropPayload,
        ConversionRatesPayload,
        LowInventoryPayload,
        StrandedInventoryPayload,
        InboundShipmentPayload,
    ],
    Field(discriminator="kind"),
]


# =============================================================================
# Envelope
# =============================================================================

class Alert(BaseModel):
    """
    Persisted record of one fired condition.

    ``id``, ``created_at`` and ``updated_at`` are assigned by the repository
    on write. ``metadata`` is diagnostic provenance only.
    """
    id: Optional[str] = None
    account_id: str
    region: str
    country: str
    status: AlertStatus = AlertStatus.ACTIVE
    viewed: bool = False
    message: str = ""
    payload: AlertPayload
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def kind(self) -> AlertKind:
        return AlertKind(self.payload.kind)

    @property
    def finding_count(self) -> int:
        return self.payload.finding_count

    @classmethod
    def from_record(cls, record) -> "Alert":
        """Build an Alert from an ``AlertRecord`` row."""
        payload = dict(record.payload or {})
        payload["kind"] = record.kind
        return cls(
            id=record.id,
            account_id=record.account_id,
            region=record.region,
            country=record.country,
            status=record.status,
            viewed=record.viewed,
            message=record.message or "",
            payload=payload,
            metadata=record.extra_data or {},
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_record_fields(self) -> Dict[str, Any]:
        """Column values for inserting this alert."""
        payload = self.payload.model_dump(mode="json", exclude={"kind"})
        return {
            "account_id": self.account_id,
            "region": self.region,
            "country": self.country,
            "kind": self.kind.value,
            "status": self.status.value,
            "viewed": self.viewed,
            "message": self.message,
            "payload": payload,
            "extra_data": self.model_dump(mode="json", include={"metadata"})["metadata"],
        }
