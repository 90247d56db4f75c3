# Detectors - one per alert kind
#
# - content.py: ProductContentChange, NegativeReviews, APlusMissing
# - buybox.py: BuyBoxMissing
# - sales.py: SalesDrop
# - inventory.py: LowInventory, StrandedInventory, InboundShipment
#
# ConversionRates is a stored alert kind with no detector.

from typing import List

from ..base import Detector
from .content import (
    ProductContentChangeDetector,
    NegativeReviewsDetector,
    APlusMissingDetector,
    find_content_changes,
    find_negative_reviews,
    find_missing_aplus,
)
from .buybox import BuyBoxMissingDetector, find_missing_buy_box
from .sales import SalesDropDetector, find_sales_drops, sales_window
from .inventory import (
    LowInventoryDetector,
    StrandedInventoryDetector,
    InboundShipmentDetector,
    find_low_inventory,
    flatten_stranded_rows,
)

DETECTOR_CLASSES = (
    ProductContentChangeDetector,
    NegativeReviewsDetector,
    APlusMissingDetector,
    BuyBoxMissingDetector,
    SalesDropDetector,
    LowInventoryDetector,
    StrandedInventoryDetector,
    InboundShipmentDetector,
)


def default_detectors() -> List[Detector]:
    """Fresh instances of the fixed detector set."""
    return [cls() for cls in DETECTOR_CLASSES]


__all__ = [
    "DETECTOR_CLASSES",
    "default_detectors",
    # Detectors
    "ProductContentChangeDetector",
    "NegativeReviewsDetector",
    "APlusMissingDetector",
    "BuyBoxMissingDetector",
    "SalesDropDetector",
    "LowInventoryDetector",
    "StrandedInventoryDetector",
    "InboundShipmentDetector",
    # Rules
    "find_content_changes",
    "find_negative_reviews",
    "find_missing_aplus",
    "find_missing_buy_box",
    "find_sales_drops",
    "sales_window",
    "find_low_inventory",
    "flatten_stranded_rows",
]
